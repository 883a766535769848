"""Notarization submission and status polling.

The notarization service only answers in human-readable text. All
parsing of that text lives in the pure functions at the top of this
module; :class:`Notarizer` is the state machine that drives the
service and only ever looks at classified outcomes.
"""

import asyncio
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from opkit.errors import (
    ExternalProcessError,
    NotarizationFailed,
    NotarizationRejected,
    ServiceProtocolError,
    ServiceTimeout,
)
from opkit.utils.process import ProcessRunner

POLL_INTERVAL = 6.144  # seconds
MAX_ATTEMPTS = 1024

REQUEST_ID_PATTERN = re.compile(r"\nRequestUUID = (.+?)\n")
STATUS_PATTERN = re.compile(r"\n *Status: (.+?)\n")


class NotarizationStatus(Enum):
    """Classified answer of a status query."""

    PENDING = "pending"
    IN_PROGRESS = "in progress"
    SUCCESS = "success"
    INVALID = "invalid"
    UNPARSEABLE = "unparseable"


class NotarizationState(Enum):
    """States of the notarization state machine."""

    NOT_SUBMITTED = "not submitted"
    SUBMITTED = "submitted"
    POLLING = "polling"
    SUCCESS = "success"
    REJECTED = "rejected"
    TIMED_OUT = "timed out"
    SERVICE_ERROR = "service error"


def normalize_newlines(output: str) -> str:
    """Fold the CRLF line endings a pseudo-terminal produces into LF."""
    return output.replace("\r\n", "\n").replace("\r", "\n")


def extract_request_id(output: str) -> str | None:
    """Request identifier from submit output, or None."""
    match = REQUEST_ID_PATTERN.search(normalize_newlines(output))
    return match.group(1).strip() if match else None


def extract_status(output: str) -> str:
    """Status phrase from status-query output, or an empty string."""
    match = STATUS_PATTERN.search(normalize_newlines(output))
    return match.group(1).strip() if match else ""


def classify_status(output: str) -> NotarizationStatus:
    """Map status-query output onto a :class:`NotarizationStatus`.

    Anything that is not recognisably in progress, invalid or successful
    (including output with no status line at all) is UNPARSEABLE.
    """
    phrase = extract_status(output).lower()
    if "in progress" in phrase:
        return NotarizationStatus.IN_PROGRESS
    if "invalid" in phrase:
        return NotarizationStatus.INVALID
    if "success" in phrase:
        return NotarizationStatus.SUCCESS
    return NotarizationStatus.UNPARSEABLE


@dataclass
class NotarizationSession:
    """One submitted request being polled."""

    request_id: str
    status: NotarizationStatus = NotarizationStatus.PENDING
    attempts: int = 0


class Notarizer:
    """Submit an archive and poll the service until a terminal verdict.

    ``NOT_SUBMITTED -> SUBMITTED -> POLLING -> SUCCESS | REJECTED |
    TIMED_OUT | SERVICE_ERROR``. Every non-success terminal state raises.
    """

    STEP_NAME = "notarize"

    def __init__(
        self,
        runner: ProcessRunner,
        cwd: Path,
        apple_id: str,
        password: str,
        bundle_id: str,
        on_output: Callable[[str], Awaitable[None]],
        poll_interval: float = POLL_INTERVAL,
        max_attempts: int = MAX_ATTEMPTS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.runner = runner
        self.cwd = cwd
        self.apple_id = apple_id
        self.password = password
        self.bundle_id = bundle_id
        self.on_output = on_output
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self.sleep = sleep
        self.state = NotarizationState.NOT_SUBMITTED

    async def notarize(self, archive: Path) -> NotarizationSession:
        session = await self.submit(archive)
        return await self.poll(session)

    async def submit(self, archive: Path) -> NotarizationSession:
        """Upload the archive and return a session for its request id.

        Raises:
            ExternalProcessError: If the submit command fails
            ServiceProtocolError: If no request id can be found in its output
        """
        result = await self.runner.run(
            cmd=[
                "xcrun",
                "altool",
                "--notarize-app",
                "--username",
                self.apple_id,
                "--password",
                self.password,
                "--primary-bundle-id",
                self.bundle_id,
                "--file",
                str(archive),
            ],
            cwd=self.cwd,
        )
        if not result.ok:
            self.state = NotarizationState.SERVICE_ERROR
            await self.on_output(result.output)
            raise ExternalProcessError(
                self.STEP_NAME, "Unable to notarize", result.exit_code, result.output
            )

        request_id = extract_request_id(result.output)
        if request_id is None:
            self.state = NotarizationState.SERVICE_ERROR
            await self.on_output(result.output)
            raise ServiceProtocolError(
                self.STEP_NAME, "no RequestUUID in notarization response", exit_code=1
            )

        self.state = NotarizationState.SUBMITTED
        await self.on_output(f"Submitted for notarization, RequestUUID = {request_id}\n")
        return NotarizationSession(request_id=request_id)

    async def query(self, session: NotarizationSession) -> str:
        result = await self.runner.run(
            cmd=[
                "xcrun",
                "altool",
                "--notarization-info",
                session.request_id,
                "-u",
                self.apple_id,
                "-p",
                self.password,
            ],
            cwd=self.cwd,
        )
        return result.output

    async def poll(self, session: NotarizationSession) -> NotarizationSession:
        """Wait for a terminal verdict on a submitted request.

        Raises:
            NotarizationRejected: The service found the archive invalid
            NotarizationFailed: The service answered with an unknown status
            ServiceTimeout: No verdict within ``max_attempts`` queries
        """
        self.state = NotarizationState.POLLING
        await self.on_output("Polling for notarization\n")

        while session.attempts < self.max_attempts:
            await self.sleep(self.poll_interval)
            session.attempts += 1

            output = await self.query(session)
            session.status = classify_status(output)

            match session.status:
                case NotarizationStatus.IN_PROGRESS:
                    await self.on_output("Checking for updates from apple\n")
                    continue
                case NotarizationStatus.INVALID:
                    self.state = NotarizationState.REJECTED
                    await self.on_output(output)
                    await self.history()
                    raise NotarizationRejected(
                        self.STEP_NAME,
                        "apple rejected the request for notarization",
                        exit_code=1,
                    )
                case NotarizationStatus.SUCCESS:
                    self.state = NotarizationState.SUCCESS
                    await self.on_output("\033[32m✓ Successfully notarized\033[0m\n")
                    return session
                case _:
                    self.state = NotarizationState.SERVICE_ERROR
                    await self.on_output(output)
                    raise NotarizationFailed(
                        self.STEP_NAME,
                        f"apple was unable to notarize (status: {extract_status(output)!r})",
                        exit_code=1,
                    )

        self.state = NotarizationState.TIMED_OUT
        raise ServiceTimeout(
            self.STEP_NAME,
            "apple did not respond to the request for notarization",
            exit_code=1,
        )

    async def history(self) -> str:
        """Fetch and surface the notarization history for diagnostics."""
        result = await self.runner.run(
            cmd=[
                "xcrun",
                "altool",
                "--notarization-history",
                "0",
                "-u",
                self.apple_id,
                "-p",
                self.password,
            ],
            cwd=self.cwd,
        )
        if not result.ok:
            await self.on_output(result.output)
            raise ExternalProcessError(
                self.STEP_NAME,
                "Unable to get notarization history",
                result.exit_code,
                result.output,
            )
        await self.on_output(result.output)
        return result.output
