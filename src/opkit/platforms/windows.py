"""Windows: flat package directory, .appx container and signtool."""

import re
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING

from opkit.appx import AppxWriter
from opkit.errors import ConfigurationError, ExternalProcessError
from opkit.layout import PlatformLayout
from opkit.manifests import Manifest
from opkit.platforms.base import OnOutput, Platform

if TYPE_CHECKING:
    from opkit.context import BuildContext
    from opkit.utils.process import ProcessRunner

TIMESTAMP_SERVER = "http://timestamp.digicert.com"

ARCHITECTURES = {
    "amd64": "x64",
    "x86_64": "x64",
    "x64": "x64",
    "arm64": "arm64",
    "aarch64": "arm64",
    "i386": "x86",
    "i686": "x86",
    "x86": "x86",
}


def appx_version(version: str, revision: str) -> str:
    """Four-part package version, e.g. ``1.2`` + ``3`` -> ``1.2.0.3``."""
    numbers = [int(part) for part in re.findall(r"\d+", version)[:3]]
    numbers += [0] * (3 - len(numbers))
    return ".".join(str(n) for n in [*numbers, int(revision) if revision.isdigit() else 0])


class WindowsPlatform(Platform):
    """Builds ``<executable>-<version>`` directories and ``.appx`` packages."""

    key = "win"
    display_name = "Windows"
    command_key = "win_cmd"
    binary_suffix = ".exe"

    def default_settings(self, settings: Mapping[str, str]) -> dict[str, str]:
        defaults = super().default_settings(settings)
        defaults["win_publisher"] = settings.get("win_publisher") or f"CN={settings['name']}"
        defaults["win_publisher_name"] = settings.get("win_publisher_name") or settings["name"]
        defaults["win_logo"] = settings.get("win_logo") or "icon.png"
        return defaults

    def resolve_layout(self, settings: Mapping[str, str], project_dir: Path) -> PlatformLayout:
        package_name = f"{settings['executable']}-{settings['version']}"
        package_root = (project_dir / settings["output"] / package_name).absolute()
        return PlatformLayout(
            package_name=package_name,
            package_root=package_root,
            bin_dir=package_root,
            resources_dir=package_root,
            build_resources_path=package_root,
            binary_name=self.binary_name(settings),
        )

    def derived_settings(
        self, settings: Mapping[str, str], layout: PlatformLayout
    ) -> dict[str, str]:
        arch = settings["arch"].lower()
        return {
            "win_version": appx_version(settings["version"], settings["revision"]),
            "win_arch": ARCHITECTURES.get(arch, arch),
        }

    def manifests(self, settings: Mapping[str, str], layout: PlatformLayout) -> list[Manifest]:
        return [Manifest("AppxManifest.xml", layout.package_root / AppxWriter.MANIFEST)]

    def compile_sources(self, prefix: Path) -> list[str]:
        return [str(prefix / "src" / "main.cc"), str(prefix / "src" / "process_win.cc")]

    def compile_flags(self, prefix: Path) -> str:
        win64 = prefix / "src" / "win64"
        return f"-std=c++20 -I{prefix} -I{win64} -L{win64}"

    def artifact_path(self, context: "BuildContext") -> Path:
        layout = context.require_layout()
        return layout.package_root.parent / f"{layout.package_name}.appx"

    async def assemble(
        self, context: "BuildContext", runner: "ProcessRunner", on_output: OnOutput
    ) -> None:
        layout = context.require_layout()
        writer = AppxWriter(layout.package_root, self.artifact_path(context))
        result = writer.write()

        for skipped in result.skipped:
            await on_output(f"\033[33m{skipped.message}\033[0m\n")

        if result.complete:
            await on_output(f"\033[32m✓ Package saved: {result.path}\033[0m\n")
        else:
            await on_output(
                f"\033[33m! Package saved INCOMPLETE: {result.path} "
                f"({len(result.skipped)} file(s) omitted)\033[0m\n"
            )

    async def sign(
        self, context: "BuildContext", runner: "ProcessRunner", on_output: OnOutput
    ) -> None:
        signing = context.windows_signing
        if signing.validate_for_signing():
            raise ConfigurationError(
                "sign",
                "missing env var SIGNTOOL, should be the path to the "
                "Windows SDK signtool.exe binary.",
            )

        appx = self.artifact_path(context)
        certificate = context.project_dir / context.settings.get("win_pfx", "cert.pfx")
        result = await runner.run(
            cmd=[
                signing.signtool,
                "sign",
                "/debug",
                "/tr",
                TIMESTAMP_SERVER,
                "/td",
                "sha256",
                "/fd",
                "sha256",
                "/f",
                str(certificate),
                "/p",
                signing.password,
                str(appx),
            ],
            cwd=context.project_dir,
        )

        if not result.ok:
            await on_output(f"---\n{appx}\n---\n{result.output}\n---\n")
            raise ExternalProcessError("sign", "Unable to sign", result.exit_code, result.output)

        await on_output(result.output)
        await on_output(f"\033[32m✓ Signed {appx}\033[0m\n")
