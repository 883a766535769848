"""Entry point for opkit.

Usage:
    opkit <project-dir>              Debug build for the host platform
    opkit <project-dir> -xd -p       Release build, packaged
    opkit <project-dir> --simple     Use simple output instead of TUI
    python -m opkit <project-dir>    Same as above
"""

import asyncio
import sys
from pathlib import Path

from opkit.cli import build_parser, options_from_args, should_use_tui
from opkit.config import load_env, read_settings_text
from opkit.context import BuildContext
from opkit.errors import ConfigurationError
from opkit.platforms import host_platform
from opkit.runner import get_steps, run_build
from opkit.utils.logging import BuildLogger


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code (0 for success, the failing step's exit code otherwise)
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.project_dir:
        parser.print_help()
        return 0

    project_dir = Path(args.project_dir).resolve()
    load_env(project_dir)

    try:
        platform = host_platform()
        context = BuildContext.create(
            project_dir=project_dir,
            settings_text=read_settings_text(project_dir),
            options=options_from_args(args),
            platform=platform,
        )
    except ConfigurationError as e:
        print(f"\033[31mConfiguration error: {e}\033[0m", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"\033[31mError loading configuration: {e}\033[0m", file=sys.stderr)
        return 1

    # Initialize build logger (rotates previous logs on start)
    logger = BuildLogger.for_project(project_dir)

    if should_use_tui(args):
        return run_with_tui(context, logger)
    return run_with_simple_ui(context, logger)


def run_with_tui(context: BuildContext, logger: BuildLogger) -> int:
    """Run build with Textual TUI.

    Args:
        context: Build context
        logger: Build logger for saving output to file

    Returns:
        Exit code
    """
    from opkit.ui.app import BuildApp

    steps = get_steps(context)

    # Store result for after app exits
    result = {"exit_code": 1}

    app: BuildApp | None = None

    logger.start()
    logger.write_line(f"=== Building {context.settings['title']} ({context.build_description}) ===\n")

    def start_build() -> None:
        """Start the build process when UI is ready."""
        asyncio.create_task(do_build())

    async def do_build() -> None:
        if app is None:
            return
        try:
            result["exit_code"] = await run_build(context, app, use_pty=True, steps=steps)
        finally:
            app.exit()

    app = BuildApp(
        build_description=context.build_description,
        app_title=context.settings["title"],
        step_names=[step.name for step in steps],
        on_ready=start_build,
        logger=logger,
    )

    try:
        app.run()
    finally:
        logger.close()

    return result["exit_code"]


def run_with_simple_ui(context: BuildContext, logger: BuildLogger) -> int:
    """Run build with simple colored output.

    Args:
        context: Build context
        logger: Build logger for saving output to file

    Returns:
        Exit code
    """
    from opkit.ui.simple import SimpleUI

    with logger:
        ui = SimpleUI(logger=logger)

        header = f"=== Building {context.settings['title']} ({context.build_description}) ==="
        if ui.is_tty:
            print(f"\033[32m{header}\033[0m")
        else:
            print(header)
        logger.write_line(header)

        return asyncio.run(run_build(context, ui, use_pty=sys.stdout.isatty()))


if __name__ == "__main__":
    sys.exit(main())
