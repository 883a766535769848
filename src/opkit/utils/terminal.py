"""Line assembly for command output shown in the TUI.

PTY output arrives in arbitrary chunks and uses carriage returns to
redraw progress lines. The TUI log widget is not a terminal emulator, so
chunks are folded into whole lines here: ``\\r`` rewinds the current
line, ``\\b`` deletes a character, ``\\n`` (or ``\\r\\n``) completes it.
ANSI color sequences are kept for the widget to render.
"""

import re

# A control character, or a run of ordinary text.
TOKEN = re.compile(r"[\r\n\b]|[^\r\n\b]+")


class OutputProcessor:
    """Fold raw terminal chunks into completed lines."""

    def __init__(self) -> None:
        self.current_line = ""
        # A "\r" may be the first half of a "\r\n" split across chunks.
        self._pending_cr = False

    def feed(self, text: str) -> list[str]:
        """Consume a chunk and return the lines it completed."""
        lines: list[str] = []
        for token in TOKEN.findall(text):
            if token == "\n":
                lines.append(self.current_line)
                self.current_line = ""
                self._pending_cr = False
                continue
            if self._pending_cr:
                self.current_line = ""
                self._pending_cr = False
            if token == "\r":
                self._pending_cr = True
            elif token == "\b":
                self.current_line = self.current_line[:-1]
            else:
                self.current_line += token
        return lines

    def flush(self) -> str | None:
        """Return and clear any unterminated trailing line."""
        self._pending_cr = False
        if not self.current_line:
            return None
        line, self.current_line = self.current_line, ""
        return line
