"""User build and native compile steps."""

from collections.abc import Awaitable, Callable

from opkit.config import encode_settings_blob
from opkit.context import BuildContext
from opkit.errors import ExternalProcessError
from opkit.steps.base import BuildStep, StepStatus
from opkit.utils.process import ProcessRunner


def user_build_command(context: BuildContext) -> str:
    """``<platform cmd> <resources path> --debug=<0|1>``"""
    layout = context.require_layout()
    command = context.settings[context.command_key]
    debug = 1 if context.options.debug else 0
    return f"{command} {layout.build_resources_path} --debug={debug}"


def compile_command(context: BuildContext) -> str:
    """Compiler invocation producing the binary at the layout's path.

    The whole settings file is embedded as ``SETTINGS``, percent-encoded
    so it survives as a single shell word.
    """
    layout = context.require_layout()
    toolchain = context.toolchain
    platform = context.platform

    extra_key = "debug_flags" if context.options.debug else "flags"
    debug = 1 if context.options.debug else 0

    parts = [
        toolchain.cxx,
        *platform.compile_sources(toolchain.prefix),
        platform.compile_flags(toolchain.prefix),
        toolchain.cxx_flags,
        context.settings.get(extra_key, ""),
        "-o",
        str(layout.binary_path),
        f"-DDEBUG={debug}",
        f'-DSETTINGS="{encode_settings_blob(context.settings_text)}"',
    ]
    return " ".join(part for part in parts if part)


class UserBuildStep(BuildStep):
    """Run the project's own build command."""

    def __init__(self) -> None:
        super().__init__("Running user build command...")

    async def execute(
        self,
        context: BuildContext,
        runner: ProcessRunner,
        on_output: Callable[[str], Awaitable[None]],
    ) -> None:
        """Run the platform build command from the project directory.

        The command receives the directory it should write its assets to,
        as seen from the project directory, and the debug flag.

        Raises:
            ExternalProcessError: If the command exits nonzero
        """
        command = user_build_command(context)
        await on_output(f"{command}\n")

        result = await runner.run(cmd=command, cwd=context.project_dir, on_output=on_output)

        if not result.ok:
            raise ExternalProcessError(
                self.name,
                "Unable to run user build command",
                result.exit_code,
                result.output,
            )
        await on_output("ran user build command\n")


class CompileStep(BuildStep):
    """Compile the native host binary."""

    def __init__(self) -> None:
        super().__init__("Compiling native binary...")

    async def execute(
        self,
        context: BuildContext,
        runner: ProcessRunner,
        on_output: Callable[[str], Awaitable[None]],
    ) -> None:
        """Compile, unless reusing a previous build whose binary exists.

        Raises:
            ExternalProcessError: If the compiler exits nonzero
        """
        layout = context.require_layout()

        if context.options.only_build and layout.binary_path.exists():
            await on_output(f"Reusing previous build: {layout.binary_path}\n")
            self.status = StepStatus.SKIPPED
            return

        if context.toolchain.cxx_defaulted:
            await on_output(
                f"\033[33mwarning! $CXX env var not set, assuming {context.toolchain.cxx}\033[0m\n"
            )

        result = await runner.run(
            cmd=compile_command(context),
            cwd=context.project_dir,
            on_output=on_output,
        )

        if not result.ok:
            raise ExternalProcessError(self.name, "Unable to build", result.exit_code, result.output)

        await on_output(f"\033[32m✓ Compiled native binary: {layout.binary_path}\033[0m\n")
