"""Code signing step."""

from collections.abc import Awaitable, Callable

from opkit.context import BuildContext
from opkit.steps.base import BuildStep
from opkit.utils.process import ProcessRunner


class CodeSignStep(BuildStep):
    """Sign the binary and package with the platform's signing tool."""

    def __init__(self) -> None:
        super().__init__("Code signing...")

    async def execute(
        self,
        context: BuildContext,
        runner: ProcessRunner,
        on_output: Callable[[str], Awaitable[None]],
    ) -> None:
        """Sign with codesign (macOS) or signtool (Windows).

        Raises:
            ConfigurationError: If the signing identity or tool is missing
            ExternalProcessError: If the signing tool fails
        """
        await context.platform.sign(context, runner, on_output)

    def should_run(self, context: BuildContext) -> bool:
        return context.options.codesign and context.platform.supports_signing
