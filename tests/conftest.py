# tests/conftest.py
from pathlib import Path

import pytest

from opkit.config import BuildOptions, DeveloperConfig, ToolchainConfig, WindowsSigningConfig
from opkit.context import BuildContext
from opkit.steps.base import StepStatus
from opkit.utils.process import ProcessResult, describe

LINUX_SETTINGS = """\
# sample project
name: foo
title: Foo
executable: foo
output: dist
version: 1.0
arch: amd64
revision: 1
linux_cmd: true
"""

MAC_SETTINGS = """\
name: Foo
title: Foo App
executable: foo
output: build
version: 2.1
arch: arm64
mac_cmd: make assets
mac_sign: Jane Doe (TEAM123)
"""

WINDOWS_SETTINGS = """\
name: Foo
title: Foo App
executable: foo
output: build
version: 1.2
arch: amd64
win_cmd: build.bat
"""


class FakeRunner:
    """Stands in for ProcessRunner: records commands, returns scripted results.

    ``handler`` receives the rendered command string and returns a
    ProcessResult; without one every command succeeds with no output.
    """

    def __init__(self, handler=None):
        self.handler = handler
        self.commands: list = []
        self.cwds: list = []
        self.spawned: list = []

    async def run(self, cmd, cwd, env=None, on_output=None, timeout=None):
        self.commands.append(cmd)
        self.cwds.append(cwd)
        result = self.handler(describe(cmd)) if self.handler else ProcessResult(0, "")
        if on_output and result.output:
            await on_output(result.output)
        return result

    def spawn(self, cmd, cwd):
        self.spawned.append((cmd, cwd))

    def rendered(self) -> list[str]:
        return [describe(cmd) for cmd in self.commands]


class RecordingUI:
    """Minimal BuildUI that keeps everything in memory."""

    def __init__(self):
        self.output: list[str] = []
        self.errors: list[str] = []
        self.info: list[str] = []
        self.statuses: dict[int, StepStatus] = {}
        self.summary = None

    async def log_output(self, text: str) -> None:
        self.output.append(text)

    async def log_step(self, step_num: int, total: int, name: str) -> None:
        self.statuses[step_num] = StepStatus.RUNNING

    async def update_step_status(self, step_num: int, status: StepStatus) -> None:
        self.statuses[step_num] = status

    def log_error(self, message: str) -> None:
        self.errors.append(message)

    def log_info(self, message: str) -> None:
        self.info.append(message)

    def print_summary(self, steps, success, output_path=None, build_description=None):
        self.summary = {
            "steps": steps,
            "success": success,
            "output_path": output_path,
            "build_description": build_description,
        }

    @property
    def text(self) -> str:
        return "".join(self.output)


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def ui():
    return RecordingUI()


@pytest.fixture
def toolchain(tmp_path):
    return ToolchainConfig(cxx="c++", cxx_flags="-O2", prefix=tmp_path / "opkit")


def make_context(
    project_dir: Path,
    settings_text: str,
    platform,
    toolchain: ToolchainConfig | None = None,
    developer: DeveloperConfig | None = None,
    windows_signing: WindowsSigningConfig | None = None,
    **options,
) -> BuildContext:
    """Write settings.config into project_dir and build a context from it."""
    project_dir.mkdir(parents=True, exist_ok=True)
    (project_dir / "settings.config").write_text(settings_text)
    return BuildContext.create(
        project_dir=project_dir,
        settings_text=settings_text,
        options=BuildOptions(**options),
        platform=platform,
        toolchain=toolchain or ToolchainConfig(cxx="c++", cxx_flags="", prefix=Path("/opt/opkit")),
        developer=developer or DeveloperConfig(),
        windows_signing=windows_signing or WindowsSigningConfig(),
    )
