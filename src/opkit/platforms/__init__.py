"""Platform packaging strategies."""

import sys

from opkit.errors import ConfigurationError
from opkit.platforms.base import Platform
from opkit.platforms.linux import LinuxPlatform
from opkit.platforms.macos import MacOSPlatform
from opkit.platforms.windows import WindowsPlatform

__all__ = ["LinuxPlatform", "MacOSPlatform", "Platform", "WindowsPlatform", "host_platform"]


def host_platform(name: str | None = None) -> Platform:
    """Return the strategy for the host (or for ``name``, a sys.platform value)."""
    name = name or sys.platform
    if name == "darwin":
        return MacOSPlatform()
    if name.startswith("linux"):
        return LinuxPlatform()
    if name in ("win32", "cygwin"):
        return WindowsPlatform()
    raise ConfigurationError("platform", f"unsupported platform: {name}")
