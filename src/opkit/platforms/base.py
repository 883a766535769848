"""Platform packaging strategy shared by macOS, Linux and Windows."""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping
from pathlib import Path
from typing import TYPE_CHECKING

from opkit.errors import ConfigurationError, ExternalProcessError, LayoutError
from opkit.layout import PlatformLayout
from opkit.manifests import Manifest
from opkit.utils.process import ProcessResult

if TYPE_CHECKING:
    from opkit.context import BuildContext
    from opkit.utils.process import ProcessRunner

OnOutput = Callable[[str], Awaitable[None]]


def check_result(step_name: str, message: str, result: ProcessResult) -> None:
    """Raise ExternalProcessError when a tool exited nonzero."""
    if not result.ok:
        raise ExternalProcessError(step_name, message, result.exit_code, result.output)


class Platform(ABC):
    """One target platform's layout, manifests, packaging and signing.

    The pipeline is platform-agnostic: it asks the host's strategy for
    each of these operations and never branches on the platform itself.
    """

    key: str = ""
    display_name: str = ""
    command_key: str = ""
    binary_suffix: str = ""
    sign_before_package: bool = False
    supports_signing: bool = True
    supports_notarization: bool = False
    supports_app_store: bool = False

    def default_settings(self, settings: Mapping[str, str]) -> dict[str, str]:
        """Values for optional keys the manifests reference, when unset."""
        name = settings["name"]
        return {
            "revision": settings.get("revision") or "1",
            "description": settings.get("description") or settings["title"],
            "bundle_identifier": settings.get("bundle_identifier")
            or f"com.example.{settings['executable']}",
            "copyright": settings.get("copyright") or f"Copyright {name}",
        }

    def binary_name(self, settings: Mapping[str, str]) -> str:
        return settings["executable"] + self.binary_suffix

    @abstractmethod
    def resolve_layout(self, settings: Mapping[str, str], project_dir: Path) -> PlatformLayout:
        """Compute the package layout. Pure, touches nothing on disk."""
        ...

    def derived_settings(
        self, settings: Mapping[str, str], layout: PlatformLayout
    ) -> dict[str, str]:
        """Keys computed from the layout that manifests need."""
        return {}

    @abstractmethod
    def manifests(self, settings: Mapping[str, str], layout: PlatformLayout) -> list[Manifest]:
        """Manifests to render into the package."""
        ...

    def create_skeleton(
        self, layout: PlatformLayout, settings: Mapping[str, str], project_dir: Path
    ) -> None:
        """Create every layout directory; existing directories are fine.

        Raises:
            LayoutError: If a directory cannot be created
        """
        for directory in layout.directories:
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise LayoutError("layout", f"Unable to create {directory}: {e}") from e

    @abstractmethod
    def compile_sources(self, prefix: Path) -> list[str]:
        ...

    @abstractmethod
    def compile_flags(self, prefix: Path) -> str:
        ...

    @abstractmethod
    def artifact_path(self, context: "BuildContext") -> Path:
        """Path of the distributable produced by :meth:`assemble`."""
        ...

    @abstractmethod
    async def assemble(
        self, context: "BuildContext", runner: "ProcessRunner", on_output: OnOutput
    ) -> None:
        """Build the distributable artifact."""
        ...

    async def sign(
        self, context: "BuildContext", runner: "ProcessRunner", on_output: OnOutput
    ) -> None:
        raise ConfigurationError("sign", f"code signing is not supported on {self.display_name}")

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
