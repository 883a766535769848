"""Notarization step."""

from collections.abc import Awaitable, Callable

from opkit.context import BuildContext
from opkit.errors import ConfigurationError
from opkit.notarization import Notarizer
from opkit.steps.base import BuildStep
from opkit.utils.process import ProcessRunner


class NotarizeStep(BuildStep):
    """Submit the zipped bundle for notarization and wait for the verdict."""

    def __init__(self, notarizer_factory: Callable[..., Notarizer] = Notarizer) -> None:
        super().__init__("Submitting for notarization...")
        self.notarizer_factory = notarizer_factory
        self.request_id: str | None = None

    async def execute(
        self,
        context: BuildContext,
        runner: ProcessRunner,
        on_output: Callable[[str], Awaitable[None]],
    ) -> None:
        """Notarize the archive produced by the package step.

        Raises:
            ConfigurationError: If credentials or the archive are missing
            BuildStepError: If the service rejects, fails or times out
        """
        developer = context.developer
        missing = developer.validate_for_notarization()
        if missing:
            raise ConfigurationError(
                self.name,
                f"Missing required environment variables: {', '.join(missing)}",
            )

        archive = context.platform.artifact_path(context)
        if not archive.exists():
            raise ConfigurationError(
                self.name,
                f"Archive not found at {archive} (notarization requires packaging)",
            )

        notarizer = self.notarizer_factory(
            runner=runner,
            cwd=context.project_dir,
            apple_id=developer.apple_id,
            password=developer.password,
            bundle_id=context.settings["bundle_identifier"],
            on_output=on_output,
        )
        session = await notarizer.notarize(archive)
        self.request_id = session.request_id
        await on_output(f"finished notarization after {session.attempts} status checks\n")

    def should_run(self, context: BuildContext) -> bool:
        return context.options.notarize and context.platform.supports_notarization
