"""Build log files with rotation.

Each run writes ``<project>/.opkit/log/build.log``; earlier runs are
shifted to ``build.log.1``, ``build.log.2``... and the oldest beyond
``max_logs`` is deleted.
"""

import re
from datetime import datetime
from pathlib import Path
from typing import TextIO

DEFAULT_MAX_LOGS = 5

ANSI_ESCAPE = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")


def get_log_dir(project_dir: Path) -> Path:
    return project_dir / ".opkit" / "log"


def get_log_path(log_dir: Path, index: int = 0) -> Path:
    """Path of a log file (0 = current, 1+ = older)."""
    if index == 0:
        return log_dir / "build.log"
    return log_dir / f"build.log.{index}"


def strip_ansi(text: str) -> str:
    return ANSI_ESCAPE.sub("", text)


def rotate_logs(log_dir: Path, max_logs: int = DEFAULT_MAX_LOGS) -> None:
    """Shift existing logs up by one index, dropping the oldest."""
    log_dir.mkdir(parents=True, exist_ok=True)

    oldest = get_log_path(log_dir, max_logs - 1)
    if oldest.exists():
        oldest.unlink()

    for i in range(max_logs - 2, -1, -1):
        current = get_log_path(log_dir, i)
        if current.exists():
            current.rename(get_log_path(log_dir, i + 1))


class BuildLogger:
    """Writes everything shown to the operator into the current log file."""

    def __init__(self, log_dir: Path, max_logs: int = DEFAULT_MAX_LOGS) -> None:
        self.log_dir = log_dir
        self.max_logs = max_logs
        self.log_path = get_log_path(log_dir)
        self._file_handle: TextIO | None = None

    @classmethod
    def for_project(cls, project_dir: Path, max_logs: int = DEFAULT_MAX_LOGS) -> "BuildLogger":
        return cls(get_log_dir(project_dir), max_logs=max_logs)

    def start(self) -> None:
        """Rotate logs and open a new log file."""
        rotate_logs(self.log_dir, self.max_logs)
        self._file_handle = open(self.log_path, "w", encoding="utf-8")
        self.write_line(f"# opkit build started {datetime.now().isoformat(timespec='seconds')}")

    def write(self, text: str) -> None:
        """Append text, with ANSI codes removed."""
        if self._file_handle:
            self._file_handle.write(strip_ansi(text))
            self._file_handle.flush()

    def write_line(self, text: str) -> None:
        if not text.endswith("\n"):
            text += "\n"
        self.write(text)

    def close(self) -> None:
        if self._file_handle:
            self._file_handle.close()
            self._file_handle = None

    def __enter__(self) -> "BuildLogger":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
