"""Package layout and manifest steps."""

import shutil
from collections.abc import Awaitable, Callable

from opkit.context import BuildContext
from opkit.errors import LayoutError
from opkit.manifests import write_manifest
from opkit.steps.base import BuildStep
from opkit.utils.process import ProcessRunner


def resolve_layout(context: BuildContext) -> BuildContext:
    """Resolve and create the package skeleton, merging derived settings.

    Safe to call repeatedly: existing directories are left alone.

    Raises:
        LayoutError: If a directory cannot be created
    """
    platform = context.platform
    context = context.with_settings(**platform.default_settings(context.settings))
    layout = platform.resolve_layout(context.settings, context.project_dir)
    platform.create_skeleton(layout, context.settings, context.project_dir)
    derived = platform.derived_settings(context.settings, layout)
    return context.with_layout(layout).with_settings(**derived)


class LayoutStep(BuildStep):
    """Clean the output directory and lay out the package skeleton."""

    def __init__(self) -> None:
        super().__init__("Preparing package layout...")

    async def execute(
        self,
        context: BuildContext,
        runner: ProcessRunner,
        on_output: Callable[[str], Awaitable[None]],
    ) -> BuildContext:
        """Create the platform directory tree.

        Unless only the previous build is being reused, the output
        directory is removed first.

        Raises:
            LayoutError: If the output cannot be cleaned or created
        """
        output_dir = context.output_dir
        if not context.options.only_build and output_dir.exists():
            try:
                shutil.rmtree(output_dir)
            except OSError as e:
                raise LayoutError(self.name, f"Unable to clean {output_dir}: {e}") from e
            await on_output(f"cleaned: {output_dir}\n")

        await on_output(f"preparing build for {context.platform.display_name}\n")
        context = resolve_layout(context)
        layout = context.require_layout()
        await on_output(f"Package: {layout.package_root}\n")
        await on_output(f"Binary: {layout.binary_path}\n")
        return context


class ManifestStep(BuildStep):
    """Render the platform manifests into the package."""

    def __init__(self) -> None:
        super().__init__("Rendering manifests...")

    async def execute(
        self,
        context: BuildContext,
        runner: ProcessRunner,
        on_output: Callable[[str], Awaitable[None]],
    ) -> None:
        layout = context.require_layout()
        for manifest in context.platform.manifests(context.settings, layout):
            path = write_manifest(manifest, context.settings)
            await on_output(f"Wrote {path}\n")
        await on_output("package prepared\n")
