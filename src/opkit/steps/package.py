"""Distributable packaging steps."""

from collections.abc import Awaitable, Callable

from opkit.context import BuildContext
from opkit.steps.base import BuildStep
from opkit.utils.process import ProcessRunner


class PackageStep(BuildStep):
    """Assemble the platform's distributable (.zip, .deb or .appx)."""

    def __init__(self) -> None:
        super().__init__("Packaging the app...")

    async def execute(
        self,
        context: BuildContext,
        runner: ProcessRunner,
        on_output: Callable[[str], Awaitable[None]],
    ) -> None:
        await context.platform.assemble(context, runner, on_output)

    def should_run(self, context: BuildContext) -> bool:
        return context.options.package


class AppStorePackageStep(BuildStep):
    """Create signed installer package for the App Store."""

    def __init__(self) -> None:
        super().__init__("Creating signed installer package...")

    async def execute(
        self,
        context: BuildContext,
        runner: ProcessRunner,
        on_output: Callable[[str], Awaitable[None]],
    ) -> None:
        """Create the App Store .pkg with productbuild.

        Raises:
            ConfigurationError: If no signing identity is configured
            ExternalProcessError: If productbuild fails
        """
        await context.platform.bundle_for_store(context, runner, on_output)
        await on_output(
            "\n\033[36mNote: App Store packages are not notarized - "
            "Apple handles this during review.\033[0m\n"
        )

    def should_run(self, context: BuildContext) -> bool:
        return context.options.appstore and context.platform.supports_app_store
