"""Configuration management for opkit.

Loads configuration from:
- settings.config: app metadata and per-platform build commands
- Environment variables: toolchain and signing credentials (a .env file in
  the project directory is loaded first, so local and CI setups agree)
"""

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote, unquote

from dotenv import load_dotenv

from opkit.errors import MissingConfiguration

SETTINGS_FILE = "settings.config"

REQUIRED_KEYS = ("name", "title", "executable", "output", "version", "arch")
COMMAND_KEYS = ("mac_cmd", "linux_cmd", "win_cmd")
DEBUG_KEYS = ("name", "title", "executable")
DEBUG_SUFFIX = "-dev"

# encodeURIComponent's unreserved set minus the single quote
_BLOB_SAFE = "-_.!~*()"


def parse_settings(text: str) -> dict[str, str]:
    """Parse ``key: value`` lines into an ordered mapping.

    Blank lines and lines starting with ``#`` are ignored. Only the first
    colon separates key from value, so values may contain colons.
    """
    settings: dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition(":")
        if not sep:
            continue
        settings[key.strip()] = value.strip()
    return settings


def strip_comments(text: str) -> str:
    """Drop comment lines, keeping everything else byte for byte."""
    return "\n".join(
        line for line in text.splitlines() if not line.lstrip().startswith("#")
    )


def validate_settings(settings: dict[str, str], command_key: str | None = None) -> None:
    """Fail fast when a mandatory key is missing.

    Args:
        settings: Parsed settings
        command_key: The host platform's build command key, if known

    Raises:
        MissingConfiguration: naming the first absent key
    """
    if not any(key in settings for key in COMMAND_KEYS):
        raise MissingConfiguration(
            "_cmd",
            "at least one of 'win_cmd', 'mac_cmd', 'linux_cmd' key/value is required",
        )

    for key in REQUIRED_KEYS:
        if key not in settings:
            raise MissingConfiguration(key)

    if command_key is not None and command_key not in settings:
        raise MissingConfiguration(command_key)


def apply_debug_suffix(settings: dict[str, str]) -> dict[str, str]:
    """Return a copy with ``-dev`` appended to the debug-sensitive keys.

    The suffix is appended unconditionally, so a name that already ends
    in ``-dev`` still gets its own debug identity. Only
    :meth:`BuildContext.create` calls this, once, on freshly parsed
    settings.
    """
    result = dict(settings)
    for key in DEBUG_KEYS:
        result[key] = result[key] + DEBUG_SUFFIX
    return result


def encode_settings_blob(text: str) -> str:
    """Percent-encode settings text for a ``-DSETTINGS="..."`` define.

    The result contains no whitespace and no quote characters.
    """
    return quote(strip_comments(text), safe=_BLOB_SAFE)


def decode_settings_blob(blob: str) -> str:
    """Reverse :func:`encode_settings_blob`."""
    return unquote(blob)


def _env_timeout() -> float | None:
    value = os.environ.get("OPKIT_PROCESS_TIMEOUT", "").strip()
    if not value:
        return None
    return float(value)


def _default_prefix() -> Path:
    if sys.platform == "win32":
        return Path(os.environ.get("LOCALAPPDATA", "C:\\")) / "opkit"
    return Path("/usr/local/lib/opkit")


@dataclass(frozen=True)
class ToolchainConfig:
    """Native compiler configuration from environment variables."""

    cxx: str
    cxx_flags: str
    prefix: Path
    process_timeout: float | None = None
    cxx_defaulted: bool = False

    @classmethod
    def from_env(cls) -> "ToolchainConfig":
        """Load from environment, falling back to the platform compiler."""
        cxx = os.environ.get("CXX", "")
        defaulted = not cxx
        if defaulted:
            cxx = "clang++" if sys.platform == "win32" else "/usr/bin/g++"
        prefix = os.environ.get("OPKIT_PREFIX")
        return cls(
            cxx=cxx,
            cxx_flags=os.environ.get("CXX_FLAGS", ""),
            prefix=Path(prefix) if prefix else _default_prefix(),
            process_timeout=_env_timeout(),
            cxx_defaulted=defaulted,
        )


@dataclass(frozen=True)
class DeveloperConfig:
    """Apple developer credentials used for notarization."""

    apple_id: str | None = None
    password: str | None = None

    @classmethod
    def from_env(cls) -> "DeveloperConfig":
        return cls(
            apple_id=os.environ.get("APPLE_ID"),
            password=os.environ.get("APPLE_ID_PASSWORD"),
        )

    def validate_for_notarization(self) -> list[str]:
        """Validate configuration for notarization. Returns list of missing vars."""
        missing: list[str] = []
        if not self.apple_id:
            missing.append("APPLE_ID")
        if not self.password:
            missing.append("APPLE_ID_PASSWORD")
        return missing


@dataclass(frozen=True)
class WindowsSigningConfig:
    """signtool location and certificate password."""

    signtool: str | None = None
    password: str = ""

    @classmethod
    def from_env(cls) -> "WindowsSigningConfig":
        return cls(
            signtool=os.environ.get("SIGNTOOL") or None,
            password=os.environ.get("CSC_KEY_PASSWORD", ""),
        )

    def validate_for_signing(self) -> list[str]:
        return [] if self.signtool else ["SIGNTOOL"]


@dataclass(frozen=True)
class BuildOptions:
    """Pipeline switches taken from the command line."""

    appstore: bool = False
    codesign: bool = False
    entitlements: bool = False
    notarize: bool = False
    only_build: bool = False
    package: bool = False
    run: bool = False
    debug: bool = True


def read_settings_text(project_dir: Path) -> str:
    """Read the raw settings file of a project.

    Raises:
        MissingConfiguration: If the project has no settings file
    """
    path = project_dir / SETTINGS_FILE
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise MissingConfiguration(SETTINGS_FILE, f"settings file not found: {path}") from None


def load_env(project_dir: Path) -> None:
    """Load a project-level .env file if it exists (no-op in CI)."""
    env_path = project_dir / ".env"
    if env_path.exists():
        load_dotenv(env_path)
