"""Protocol definition for pipeline UIs."""

from typing import Protocol

from opkit.steps.base import StepStatus


class BuildUI(Protocol):
    """What the runner needs from a UI.

    SimpleUI (plain terminal) and BuildApp (textual TUI) both implement
    it, so the runner works with either.
    """

    async def log_output(self, text: str) -> None:
        """Log command output (may contain ANSI escape codes)."""
        ...

    async def log_step(self, step_num: int, total: int, name: str) -> None:
        """Announce the start of a step (1-indexed)."""
        ...

    async def update_step_status(self, step_num: int, status: StepStatus) -> None:
        ...

    def log_error(self, message: str) -> None:
        ...

    def log_info(self, message: str) -> None:
        ...

    def print_summary(
        self,
        steps: list[tuple[str, StepStatus]],
        success: bool,
        output_path: str | None = None,
        build_description: str | None = None,
    ) -> None:
        """Print final summary.

        Args:
            steps: List of (step_name, status) tuples
            success: Whether the pipeline succeeded
            output_path: Path to the produced artifact (if successful)
            build_description: Description of the build
        """
        ...
