"""Base class for pipeline steps."""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import TYPE_CHECKING

from opkit.errors import BuildStepError

if TYPE_CHECKING:
    from opkit.context import BuildContext
    from opkit.utils.process import ProcessRunner

__all__ = ["BuildStep", "BuildStepError", "StepStatus"]


class StepStatus(Enum):
    """Status of a pipeline step."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class BuildStep(ABC):
    """Abstract base class for pipeline steps.

    Each step is one discrete operation of the release pipeline
    (preparing the layout, compiling, packaging, signing...). A step that
    derives new values returns an updated context; the runner hands that
    context to every following step.
    """

    def __init__(self, name: str) -> None:
        """Initialize the step.

        Args:
            name: Human-readable name for the step
        """
        self.name = name
        self.status = StepStatus.PENDING

    @abstractmethod
    async def execute(
        self,
        context: "BuildContext",
        runner: "ProcessRunner",
        on_output: Callable[[str], Awaitable[None]],
    ) -> "BuildContext | None":
        """Execute the step.

        Args:
            context: Resolved build context
            runner: Process runner for executing commands
            on_output: Async callback for command output

        Returns:
            An updated context, or None when nothing was derived

        Raises:
            BuildStepError: If the step fails
        """
        ...

    def should_run(self, context: "BuildContext") -> bool:
        """Determine if this step should run for the given context.

        Override in subclasses to conditionally skip steps.
        """
        return True
