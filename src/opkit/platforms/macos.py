"""macOS: app bundle, codesign, ditto archive and App Store package."""

import shlex
import shutil
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING

from opkit.errors import ConfigurationError, LayoutError
from opkit.layout import PlatformLayout
from opkit.manifests import Manifest
from opkit.platforms.base import OnOutput, Platform, check_result

if TYPE_CHECKING:
    from opkit.context import BuildContext
    from opkit.utils.process import ProcessRunner


class MacOSPlatform(Platform):
    """Builds ``<name>.app`` bundles."""

    key = "mac"
    display_name = "macOS"
    command_key = "mac_cmd"
    sign_before_package = True
    supports_notarization = True
    supports_app_store = True

    def default_settings(self, settings: Mapping[str, str]) -> dict[str, str]:
        defaults = super().default_settings(settings)
        defaults["mac_category"] = (
            settings.get("mac_category") or "public.app-category.developer-tools"
        )
        return defaults

    def resolve_layout(self, settings: Mapping[str, str], project_dir: Path) -> PlatformLayout:
        package_name = f"{settings['name']}.app"
        package_root = project_dir / settings["output"] / package_name
        contents = package_root / "Contents"
        return PlatformLayout(
            package_name=package_name,
            package_root=package_root,
            bin_dir=contents / "MacOS",
            resources_dir=contents / "Resources",
            build_resources_path=Path(settings["output"]) / package_name / "Contents" / "Resources",
            binary_name=self.binary_name(settings),
        )

    def manifests(self, settings: Mapping[str, str], layout: PlatformLayout) -> list[Manifest]:
        return [Manifest("Info.plist", layout.package_root / "Contents" / "Info.plist")]

    def compile_sources(self, prefix: Path) -> list[str]:
        return [str(prefix / "src" / "main.cc"), str(prefix / "src" / "process_unix.cc")]

    def compile_flags(self, prefix: Path) -> str:
        return "-std=c++2a -framework WebKit -framework Cocoa -ObjC++"

    def artifact_path(self, context: "BuildContext") -> Path:
        return context.output_dir / f"{context.settings['executable']}.zip"

    def store_package_path(self, context: "BuildContext") -> Path:
        return context.output_dir / f"{context.settings['executable']}.pkg"

    async def assemble(
        self, context: "BuildContext", runner: "ProcessRunner", on_output: OnOutput
    ) -> None:
        """Zip the bundle with ditto, keeping the top-level folder."""
        layout = context.require_layout()
        archive = self.artifact_path(context)

        result = await runner.run(
            cmd=[
                "ditto",
                "-c",
                "-k",
                "--sequesterRsrc",
                "--keepParent",
                str(layout.package_root),
                str(archive),
            ],
            cwd=context.project_dir,
            on_output=on_output,
        )
        check_result("package", "failed to create zip for notarization", result)
        await on_output(f"\033[32m✓ Created zip artifact: {archive}\033[0m\n")

    def sign_command(self, context: "BuildContext", entitlements: Path | None) -> str:
        """Compose the codesign pipeline for payload paths, binary and bundle.

        Stages are joined with ``&&`` so the exit status is that of the
        first failing stage.
        """
        layout = context.require_layout()
        identity = context.require("mac_sign", "sign")

        options = ["codesign", "--force", "--options", "runtime", "--timestamp"]
        if entitlements is not None:
            options += ["--entitlements", str(entitlements)]
        options += ["--sign", f"Developer ID Application: {identity}"]

        targets: list[Path] = []
        sign_paths = context.settings.get("mac_sign_paths", "")
        for entry in sign_paths.split(";"):
            if entry.strip():
                targets.append(layout.resources_dir / entry.strip())
        targets.append(layout.binary_path)
        targets.append(layout.package_root)

        return " && ".join(shlex.join([*options, str(target)]) for target in targets)

    def copy_entitlements(self, context: "BuildContext") -> Path:
        """Copy the project's entitlements plist into the bundle resources."""
        layout = context.require_layout()
        source = context.project_dir / context.require("mac_entitlements", "sign")
        destination = layout.resources_dir / "entitlements.plist"
        try:
            shutil.copyfile(source, destination)
        except OSError as e:
            raise LayoutError("sign", f"Unable to copy entitlements {source}: {e}") from e
        return destination

    async def sign(
        self, context: "BuildContext", runner: "ProcessRunner", on_output: OnOutput
    ) -> None:
        entitlements = None
        if context.options.entitlements:
            entitlements = self.copy_entitlements(context)
            await on_output(f"Using entitlements: {entitlements}\n")

        result = await runner.run(
            cmd=self.sign_command(context, entitlements),
            cwd=context.project_dir,
            on_output=on_output,
        )
        check_result("sign", "Unable to sign", result)
        await on_output("\033[32m✓ Finished code signing\033[0m\n")

    async def bundle_for_store(
        self, context: "BuildContext", runner: "ProcessRunner", on_output: OnOutput
    ) -> Path:
        """Create a signed installer package for the App Store."""
        layout = context.require_layout()
        identity = context.settings.get("mac_sign")
        if not identity:
            raise ConfigurationError("appstore", "'mac_sign' key/value is required")

        installer_cert = f"3rd Party Mac Developer Installer: {identity}"
        output_path = self.store_package_path(context)
        await on_output(f"Creating package with installer certificate: {installer_cert}\n")

        result = await runner.run(
            cmd=[
                "productbuild",
                "--component",
                str(layout.package_root),
                "/Applications",
                "--sign",
                installer_cert,
                str(output_path),
            ],
            cwd=context.project_dir,
            on_output=on_output,
        )
        check_result("appstore", "Failed to create installer package", result)
        await on_output(f"\033[32m✓ Package created: {output_path}\033[0m\n")
        return output_path
