"""Per-step stopwatch shared by the UIs."""

import time


class StepTimer:
    """Measures how long each step ran, in milliseconds."""

    def __init__(self) -> None:
        self._started: dict[int, float] = {}
        self._elapsed: dict[int, int] = {}

    def start(self, step_num: int) -> None:
        self._started[step_num] = time.monotonic()

    def stop(self, step_num: int) -> int | None:
        """Freeze and return the elapsed time of a step, if it was started."""
        started = self._started.pop(step_num, None)
        if started is None:
            return self._elapsed.get(step_num)
        elapsed = int((time.monotonic() - started) * 1000)
        self._elapsed[step_num] = elapsed
        return elapsed

    def elapsed(self, step_num: int) -> int | None:
        return self._elapsed.get(step_num)

    @staticmethod
    def format(elapsed: int | None) -> str:
        return "" if elapsed is None else f"+{elapsed}ms"
