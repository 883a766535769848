"""Resolved on-disk layout of a platform package."""

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class PlatformLayout:
    """Filesystem paths of the package being built.

    ``build_resources_path`` is the resources location as handed to the
    user build command, which runs from the project directory and may
    therefore receive a relative path.
    """

    package_name: str
    package_root: Path
    bin_dir: Path
    resources_dir: Path
    build_resources_path: Path
    binary_name: str
    extra_dirs: tuple[Path, ...] = field(default=())

    @property
    def binary_path(self) -> Path:
        """Full path to the compiled executable."""
        return self.bin_dir / self.binary_name

    @property
    def directories(self) -> tuple[Path, ...]:
        """Every directory of the skeleton, in creation order."""
        dirs = [self.package_root, self.bin_dir, self.resources_dir, *self.extra_dirs]
        return tuple(dict.fromkeys(dirs))
