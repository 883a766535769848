"""Command-line interface for opkit."""

import argparse
import sys

from opkit.config import BuildOptions


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="opkit",
        description="Build, package, sign and notarize a native application",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  opkit myapp                 Debug build for the host platform
  opkit myapp -xd -p          Release build, packaged
  opkit myapp -xd -c -p -mn   Release build, signed, packaged and notarized (macOS)
  opkit myapp -o -r           Recompile the previous build and launch it
        """,
    )

    parser.add_argument(
        "project_dir",
        nargs="?",
        help="Project directory containing settings.config",
    )

    parser.add_argument("-b", "--appstore", action="store_true", help="Build an App Store package (macOS)")
    parser.add_argument("-c", "--codesign", action="store_true", help="Code sign the application")
    parser.add_argument(
        "-me",
        "--entitlements",
        action="store_true",
        help="Sign with the project's entitlements.plist (macOS)",
    )
    parser.add_argument("-mn", "--notarize", action="store_true", help="Notarize the packaged application (macOS)")
    parser.add_argument(
        "-o",
        "--only-build",
        action="store_true",
        help="Reuse the previous build: keep the output directory and skip an existing binary",
    )
    parser.add_argument("-p", "--package", action="store_true", help="Package the application for distribution")
    parser.add_argument("-r", "--run", action="store_true", help="Launch the application after building")
    parser.add_argument("-xd", "--no-debug", action="store_true", help="Release build (no -dev suffix, DEBUG=0)")

    # UI mode
    parser.add_argument(
        "--simple",
        action="store_true",
        help="Use simple output instead of TUI (colors preserved)",
    )

    return parser


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        args: Arguments to parse, or None to use sys.argv

    Returns:
        Parsed arguments namespace
    """
    return build_parser().parse_args(args)


def options_from_args(args: argparse.Namespace) -> BuildOptions:
    return BuildOptions(
        appstore=args.appstore,
        codesign=args.codesign,
        entitlements=args.entitlements,
        notarize=args.notarize,
        only_build=args.only_build,
        package=args.package,
        run=args.run,
        debug=not args.no_debug,
    )


def should_use_tui(args: argparse.Namespace) -> bool:
    """Determine whether to use Textual TUI.

    Returns False if:
    - User requested simple output (--simple)
    - Not running in a TTY (CI, piped output)
    """
    if args.simple:
        return False
    if not sys.stdout.isatty():
        return False
    return True
