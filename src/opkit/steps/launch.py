"""Launch the freshly built app."""

from collections.abc import Awaitable, Callable

from opkit.context import BuildContext
from opkit.steps.base import BuildStep
from opkit.utils.process import ProcessRunner


class LaunchStep(BuildStep):
    """Start the built binary without waiting for it."""

    def __init__(self) -> None:
        super().__init__("Launching app...")

    async def execute(
        self,
        context: BuildContext,
        runner: ProcessRunner,
        on_output: Callable[[str], Awaitable[None]],
    ) -> None:
        layout = context.require_layout()
        await on_output(f"{layout.binary_path}\n")
        runner.spawn([str(layout.binary_path)], cwd=layout.bin_dir)

    def should_run(self, context: BuildContext) -> bool:
        return context.options.run
