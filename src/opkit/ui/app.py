"""Textual TUI for opkit.

Layout:
- Title bar with the build description
- Step table with status and elapsed time per step
- Scrolling output log with preserved ANSI colors

When the app exits, the complete output and the summary are replayed to
the real terminal so they stay in the scrollback.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from textual.app import App, ComposeResult
from textual.containers import Container, Vertical
from textual.widgets import DataTable, Footer, Header, RichLog, Static

from opkit.steps.base import StepStatus
from opkit.ui.simple import CYAN, GREEN, NC, RED, STATUS_LABELS
from opkit.ui.timing import StepTimer
from opkit.utils.terminal import OutputProcessor

if TYPE_CHECKING:
    from opkit.utils.logging import BuildLogger


COLUMNS = ("Status", "Step", "Details", "Time")

# Rich markup for the step table (escaped "[" so labels render literally)
MARKUP = {
    StepStatus.SUCCESS: "[green]\\[SUCCESS][/green]",
    StepStatus.FAILED: "[red]\\[FAILED ][/red]",
    StepStatus.RUNNING: "[yellow]\\[RUNNING][/yellow]",
    StepStatus.SKIPPED: "[dim]\\[SKIPPED][/dim]",
    StepStatus.PENDING: "[dim]\\[PENDING][/dim]",
}


class BuildApp(App):
    """Textual front end implementing the BuildUI protocol."""

    CSS = """
    #header-container {
        height: auto;
        max-height: 50%;
    }

    #title {
        text-align: center;
        text-style: bold;
        padding: 1;
        background: $primary;
    }

    #steps-table {
        height: auto;
        max-height: 15;
        margin: 0 1;
    }

    #output-container {
        height: 1fr;
        margin: 0 1 1 1;
        border: solid $primary;
    }

    #output-log {
        height: 1fr;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("ctrl+c", "quit", "Quit"),
    ]

    def __init__(
        self,
        build_description: str,
        app_title: str,
        step_names: list[str],
        on_ready: Callable[[], None] | None = None,
        logger: BuildLogger | None = None,
    ) -> None:
        """Initialize the app.

        Args:
            build_description: Human-readable build description
            app_title: Title of the application being packaged
            step_names: Names of the steps that will run, in order
            on_ready: Callback to invoke once the UI is mounted
            logger: Optional build logger for saving output to file
        """
        super().__init__()
        self.build_description = build_description
        self.app_title = app_title
        self.step_names = list(step_names)
        self.timer = StepTimer()
        self._on_ready = on_ready
        self.logger = logger

        # Everything printed, replayed to the terminal on exit
        self.output_buffer: list[str] = []
        self.output_processor = OutputProcessor()

        self._summary: tuple[list[tuple[str, StepStatus]], bool, str | None, str | None] | None = None
        self._mounted = False

    def compose(self) -> ComposeResult:
        yield Header()
        with Container(id="header-container"):
            yield Static(f"opkit: {self.app_title} ({self.build_description})", id="title")
            yield DataTable(id="steps-table")
        with Vertical(id="output-container"):
            yield RichLog(id="output-log", highlight=True, markup=False)
        yield Footer()

    def on_mount(self) -> None:
        if self._mounted:
            return

        table = self.query_one("#steps-table", DataTable)
        for label in COLUMNS:
            table.add_column(label, key=label.lower())
        total = len(self.step_names)
        for i, name in enumerate(self.step_names):
            table.add_row(MARKUP[StepStatus.PENDING], f"[{i + 1}/{total}]", name, "", key=str(i))

        self._mounted = True
        if self._on_ready:
            self.set_timer(0.1, self._on_ready)

    def _write_log(self, text: str) -> None:
        if not self._mounted:
            return
        self.query_one("#output-log", RichLog).write(text)

    def _record(self, terminal_text: str, plain_text: str) -> None:
        self.output_buffer.append(terminal_text)
        if self.logger:
            self.logger.write(plain_text)

    async def log_output(self, text: str) -> None:
        self._record(text, text)
        for line in self.output_processor.feed(text):
            self._write_log(line)

    async def log_step(self, step_num: int, total: int, name: str) -> None:
        self._record(f"\n{CYAN}• [{step_num}/{total}] {name}{NC}\n", f"\n• [{step_num}/{total}] {name}\n")
        if step_num <= len(self.step_names):
            self.step_names[step_num - 1] = name
        self.timer.start(step_num)
        await self.update_step_status(step_num, StepStatus.RUNNING)
        self._write_log(f"{CYAN}• [{step_num}/{total}] {name}{NC}")

    async def update_step_status(self, step_num: int, status: StepStatus) -> None:
        if not 0 < step_num <= len(self.step_names):
            return

        elapsed = ""
        if status != StepStatus.RUNNING:
            elapsed = StepTimer.format(self.timer.stop(step_num))

        if not self._mounted:
            return
        table = self.query_one("#steps-table", DataTable)
        row = str(step_num - 1)
        table.update_cell(row, "status", MARKUP[status])
        table.update_cell(row, "details", self.step_names[step_num - 1])
        table.update_cell(row, "time", elapsed)

    def log_error(self, message: str) -> None:
        self._record(f"  {RED}✗ ERROR: {message}{NC}\n", f"  ✗ ERROR: {message}\n")
        self._write_log(f"  {RED}✗ ERROR: {message}{NC}")

    def log_info(self, message: str) -> None:
        self._record(f"{message}\n", f"{message}\n")
        self._write_log(message)

    def print_summary(
        self,
        steps: list[tuple[str, StepStatus]],
        success: bool,
        output_path: str | None = None,
        build_description: str | None = None,
    ) -> None:
        """Store the summary; it is printed once the TUI has exited."""
        self._summary = (steps, success, output_path, build_description)
        if self.logger:
            for line in self._summary_lines(color=False):
                self.logger.write_line(line)

    @property
    def build_success(self) -> bool:
        return self._summary is not None and self._summary[1]

    def on_unmount(self) -> None:
        """Replay buffered output and the summary to the real terminal."""
        remaining = self.output_processor.flush()
        if remaining is not None:
            self.output_buffer.append("\n")

        for chunk in self.output_buffer:
            print(chunk, end="")
        for line in self._summary_lines(color=True):
            print(line)

    def _summary_lines(self, color: bool) -> list[str]:
        if self._summary is None:
            return []
        steps, success, output_path, build_description = self._summary

        def paint(code: str, text: str) -> str:
            return f"{code}{text}{NC}" if color else text

        lines = ["", paint(CYAN, "=== Build Summary ===")]
        max_len = max(len(name) for name, _ in steps) if steps else 0
        for i, (name, status) in enumerate(steps, 1):
            label, code = STATUS_LABELS[status]
            label = paint(code, label)
            elapsed = StepTimer.format(self.timer.elapsed(i))
            lines.append(f"{label} [{i}/{len(steps)}] {name:<{max_len}} {elapsed}".rstrip())
        lines.append("")

        if success:
            lines.append(paint(GREEN, "=== Build Complete ==="))
            if output_path:
                lines.append(f"Output: {output_path}")
            if build_description:
                lines.append(f"Build type: {build_description}")
        else:
            lines.append(paint(RED, "=== Build Failed ==="))
        return lines
