"""Linux: Debian package tree and dpkg-deb archive."""

import shutil
from collections.abc import Mapping
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from opkit.errors import LayoutError, PackagingError
from opkit.layout import PlatformLayout
from opkit.manifests import Manifest
from opkit.platforms.base import OnOutput, Platform, check_result

if TYPE_CHECKING:
    from opkit.context import BuildContext
    from opkit.utils.process import ProcessRunner

ICON_DIR = PurePosixPath("usr/share/icons/hicolor/256x256/apps")
APPLICATIONS_DIR = PurePosixPath("usr/share/applications")


class LinuxPlatform(Platform):
    """Builds a Debian package tree installed under ``/opt/<name>``."""

    key = "linux"
    display_name = "Linux"
    command_key = "linux_cmd"
    supports_signing = False

    def default_settings(self, settings: Mapping[str, str]) -> dict[str, str]:
        defaults = super().default_settings(settings)
        defaults["maintainer"] = settings.get("maintainer") or f"{settings['name']} maintainers"
        defaults["linux_categories"] = settings.get("linux_categories") or "Utility"
        return defaults

    def package_name(self, settings: Mapping[str, str]) -> str:
        # Debian naming: <package>_<version>-<revision>_<arch>
        return (
            f"{settings['executable']}_{settings['version']}"
            f"-{settings['revision']}_{settings['arch']}"
        )

    def resolve_layout(self, settings: Mapping[str, str], project_dir: Path) -> PlatformLayout:
        package_name = self.package_name(settings)
        package_root = project_dir / settings["output"] / package_name
        install_dir = package_root / "opt" / settings["name"]
        return PlatformLayout(
            package_name=package_name,
            package_root=package_root,
            bin_dir=install_dir,
            resources_dir=install_dir,
            build_resources_path=Path(settings["output"]) / package_name / "opt" / settings["name"],
            binary_name=self.binary_name(settings),
            extra_dirs=(
                package_root / "DEBIAN",
                package_root / APPLICATIONS_DIR,
                package_root / ICON_DIR,
            ),
        )

    def derived_settings(
        self, settings: Mapping[str, str], layout: PlatformLayout
    ) -> dict[str, str]:
        executable = settings["executable"]
        return {
            "linux_executable_path": str(self.install_path(settings)),
            "linux_icon_path": str(PurePosixPath("/") / ICON_DIR / f"{executable}.png"),
        }

    def install_path(self, settings: Mapping[str, str]) -> PurePosixPath:
        """Absolute path of the executable once the package is installed."""
        return PurePosixPath("/opt") / settings["name"] / settings["executable"]

    def manifests(self, settings: Mapping[str, str], layout: PlatformLayout) -> list[Manifest]:
        return [
            Manifest(
                "app.desktop",
                layout.package_root / APPLICATIONS_DIR / f"{settings['name']}.desktop",
            ),
            Manifest("control", layout.package_root / "DEBIAN" / "control"),
        ]

    def create_skeleton(
        self, layout: PlatformLayout, settings: Mapping[str, str], project_dir: Path
    ) -> None:
        super().create_skeleton(layout, settings, project_dir)

        icon = settings.get("linux_icon")
        if not icon:
            return
        source = project_dir / icon
        destination = layout.package_root / ICON_DIR / f"{settings['executable']}.png"
        if destination.exists():
            return
        try:
            shutil.copyfile(source, destination)
        except OSError as e:
            raise LayoutError("layout", f"Unable to copy icon {source}: {e}") from e

    def compile_sources(self, prefix: Path) -> list[str]:
        return [str(prefix / "src" / "main.cc"), str(prefix / "src" / "process_unix.cc")]

    def compile_flags(self, prefix: Path) -> str:
        return "-std=c++2a `pkg-config --cflags --libs gtk+-3.0 webkit2gtk-4.0`"

    def artifact_path(self, context: "BuildContext") -> Path:
        layout = context.require_layout()
        return context.output_dir / f"{layout.package_name}.deb"

    def link_executable(self, context: "BuildContext") -> Path:
        """Point ``usr/local/bin/<executable>`` at the installed binary."""
        layout = context.require_layout()
        bin_dir = layout.package_root / "usr" / "local" / "bin"
        link = bin_dir / context.settings["executable"]
        try:
            bin_dir.mkdir(parents=True, exist_ok=True)
            if link.is_symlink() or link.exists():
                link.unlink()
            link.symlink_to(self.install_path(context.settings))
        except OSError as e:
            raise PackagingError("package", f"Unable to create symlink {link}: {e}") from e
        return link

    async def assemble(
        self, context: "BuildContext", runner: "ProcessRunner", on_output: OnOutput
    ) -> None:
        layout = context.require_layout()
        link = self.link_executable(context)
        await on_output(f"Linked {link} -> {self.install_path(context.settings)}\n")

        result = await runner.run(
            cmd=[
                "dpkg-deb",
                "--build",
                "--root-owner-group",
                str(layout.package_root),
                str(context.output_dir),
            ],
            cwd=context.project_dir,
            on_output=on_output,
        )
        check_result("package", "failed to create deb package", result)
        await on_output(f"\033[32m✓ Created deb package in {context.output_dir}\033[0m\n")
