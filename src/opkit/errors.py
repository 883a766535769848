"""Error taxonomy for the release pipeline."""


class BuildStepError(Exception):
    """Exception raised when a pipeline step fails."""

    def __init__(self, step_name: str, message: str, exit_code: int | None = None) -> None:
        """Initialize the error.

        Args:
            step_name: Name of the failed step
            message: Error message
            exit_code: Process exit code (if applicable)
        """
        self.step_name = step_name
        self.message = message
        self.exit_code = exit_code
        super().__init__(f"{step_name}: {message}")


class ConfigurationError(BuildStepError):
    """Required configuration is missing or invalid. Always exits 1."""

    def __init__(self, step_name: str, message: str) -> None:
        super().__init__(step_name, message, exit_code=1)


class MissingConfiguration(ConfigurationError):
    """A mandatory settings key is absent."""

    def __init__(self, key: str, message: str | None = None) -> None:
        self.key = key
        super().__init__("settings", message or f"'{key}' key/value is required")


class UnresolvedPlaceholder(ConfigurationError):
    """A manifest template references keys that settings do not define."""

    def __init__(self, template: str, keys: list[str]) -> None:
        self.template = template
        self.keys = keys
        super().__init__(
            "manifest",
            f"{template} references undefined keys: {', '.join(keys)}",
        )


class LayoutError(BuildStepError):
    """The package directory skeleton could not be created."""


class ExternalProcessError(BuildStepError):
    """An invoked tool exited nonzero."""

    def __init__(self, step_name: str, message: str, exit_code: int, output: str = "") -> None:
        self.output = output
        super().__init__(step_name, message, exit_code=exit_code)


class ExternalProcessTimeout(BuildStepError):
    """An invoked tool did not exit within the configured timeout."""

    def __init__(self, command: str, timeout: float) -> None:
        self.command = command
        self.timeout = timeout
        super().__init__("process", f"timed out after {timeout}s: {command}", exit_code=1)


class PackagingError(BuildStepError):
    """The distributable container could not be written."""


class PartialArtifactError(BuildStepError):
    """A single payload file could not be added to a container.

    Not fatal: the packaging step records it and carries on.
    """

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__("package", f"Could not add file: {path} ({reason})")


class ServiceProtocolError(BuildStepError):
    """The notarization service answered with text we cannot parse."""


class ServiceTimeout(BuildStepError):
    """The notarization service never reached a terminal verdict."""


class NotarizationRejected(BuildStepError):
    """The notarization service rejected the archive."""


class NotarizationFailed(BuildStepError):
    """The notarization service returned an unrecognised terminal status."""
