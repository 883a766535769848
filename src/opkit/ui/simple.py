"""Plain colored output UI for --simple mode and CI."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from opkit.steps.base import StepStatus
from opkit.ui.timing import StepTimer

if TYPE_CHECKING:
    from opkit.utils.logging import BuildLogger


# ANSI color codes
BLUE = "\033[0;34m"
CYAN = "\033[0;36m"
GREEN = "\033[0;32m"
YELLOW = "\033[1;33m"
RED = "\033[0;31m"
DIM = "\033[2m"
NC = "\033[0m"  # No color

STATUS_LABELS = {
    StepStatus.SUCCESS: ("[SUCCESS]", GREEN),
    StepStatus.FAILED: ("[FAILED ]", RED),
    StepStatus.RUNNING: ("[RUNNING]", YELLOW),
    StepStatus.SKIPPED: ("[SKIPPED]", DIM),
    StepStatus.PENDING: ("[PENDING]", DIM),
}


class SimpleUI:
    """Non-TUI output with colored step headers and step timings.

    Colors are only emitted when stdout is a TTY; the log file always
    receives plain text.
    """

    def __init__(self, logger: BuildLogger | None = None) -> None:
        self.is_tty = sys.stdout.isatty()
        self.step_statuses: list[tuple[str, StepStatus]] = []
        self.timer = StepTimer()
        self.logger = logger

    def _color(self, code: str) -> str:
        return code if self.is_tty else ""

    def _emit(self, line: str, plain: str | None = None) -> None:
        print(line)
        if self.logger:
            self.logger.write_line(plain if plain is not None else line)

    async def log_output(self, text: str) -> None:
        """Pass output straight through (keeps ANSI colors from the PTY)."""
        print(text, end="", flush=True)
        if self.logger:
            self.logger.write(text)

    async def log_step(self, step_num: int, total: int, name: str) -> None:
        print()
        self._emit(
            f"{self._color(CYAN)}• [{step_num}/{total}] {name}{self._color(NC)}",
            f"\n• [{step_num}/{total}] {name}",
        )
        self.step_statuses.append((name, StepStatus.RUNNING))
        self.timer.start(step_num)

    async def update_step_status(self, step_num: int, status: StepStatus) -> None:
        if not 0 < step_num <= len(self.step_statuses):
            return
        name = self.step_statuses[step_num - 1][0]
        self.step_statuses[step_num - 1] = (name, status)
        if status == StepStatus.RUNNING:
            return

        elapsed = StepTimer.format(self.timer.stop(step_num))
        label, color = STATUS_LABELS[status]
        self._emit(
            f"  {self._color(color)}{label}{self._color(NC)} "
            f"{self._color(GREEN)}{elapsed}{self._color(NC)}",
            f"  {label} {elapsed}",
        )

    def log_error(self, message: str) -> None:
        self._emit(
            f"  {self._color(RED)}✗ ERROR: {message}{self._color(NC)}",
            f"  ✗ ERROR: {message}",
        )

    def log_info(self, message: str) -> None:
        self._emit(f"{self._color(BLUE)}{message}{self._color(NC)}", message)

    def print_summary(
        self,
        steps: list[tuple[str, StepStatus]],
        success: bool,
        output_path: str | None = None,
        build_description: str | None = None,
    ) -> None:
        """Print final summary with one line per step."""
        print()
        self._emit(f"{self._color(CYAN)}=== Build Summary ==={self._color(NC)}", "\n=== Build Summary ===")

        # Calculate max step name length for alignment
        max_len = max(len(name) for name, _ in steps) if steps else 0

        for i, (name, status) in enumerate(steps, 1):
            label, color = STATUS_LABELS[status]
            elapsed = StepTimer.format(self.timer.elapsed(i))
            self._emit(
                f"{self._color(color)}{label}{self._color(NC)} "
                f"[{i}/{len(steps)}] {name:<{max_len}} {elapsed}",
                f"{label} [{i}/{len(steps)}] {name} {elapsed}".rstrip(),
            )

        print()
        if success:
            self._emit(f"{self._color(GREEN)}=== Build Complete ==={self._color(NC)}", "=== Build Complete ===")
            if output_path:
                self._emit(f"{self._color(BLUE)}Output: {output_path}{self._color(NC)}", f"Output: {output_path}")
            if build_description:
                self._emit(
                    f"{self._color(BLUE)}Build type: {build_description}{self._color(NC)}",
                    f"Build type: {build_description}",
                )
        else:
            self._emit(f"{self._color(RED)}=== Build Failed ==={self._color(NC)}", "=== Build Failed ===")
