"""Immutable build context threaded through the pipeline.

The context is built once, after the settings are validated and the
debug suffix applied. Steps never mutate it: a step that derives new
values returns a copy made with :meth:`BuildContext.with_settings` or
:meth:`BuildContext.with_layout`.
"""

from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING

from opkit.config import (
    BuildOptions,
    DeveloperConfig,
    ToolchainConfig,
    WindowsSigningConfig,
    apply_debug_suffix,
    parse_settings,
    validate_settings,
)
from opkit.errors import ConfigurationError
from opkit.layout import PlatformLayout

if TYPE_CHECKING:
    from opkit.platforms.base import Platform


@dataclass(frozen=True)
class BuildContext:
    """Runtime configuration combining settings, options and environment."""

    project_dir: Path
    settings: Mapping[str, str]
    settings_text: str
    options: BuildOptions
    platform: "Platform"
    toolchain: ToolchainConfig
    developer: DeveloperConfig
    windows_signing: WindowsSigningConfig
    layout: PlatformLayout | None = None

    @classmethod
    def create(
        cls,
        project_dir: Path,
        settings_text: str,
        options: BuildOptions,
        platform: "Platform",
        toolchain: ToolchainConfig | None = None,
        developer: DeveloperConfig | None = None,
        windows_signing: WindowsSigningConfig | None = None,
    ) -> "BuildContext":
        """Parse, validate and freeze the settings of a project.

        Raises:
            MissingConfiguration: If a mandatory key is absent
        """
        settings = parse_settings(settings_text)
        validate_settings(settings, platform.command_key)
        if options.debug:
            settings = apply_debug_suffix(settings)

        return cls(
            project_dir=project_dir.resolve(),
            settings=MappingProxyType(settings),
            settings_text=settings_text,
            options=options,
            platform=platform,
            toolchain=toolchain or ToolchainConfig.from_env(),
            developer=developer or DeveloperConfig.from_env(),
            windows_signing=windows_signing or WindowsSigningConfig.from_env(),
        )

    def with_settings(self, **values: str) -> "BuildContext":
        """Return a copy with derived keys merged into the settings."""
        merged = {**self.settings, **values}
        return replace(self, settings=MappingProxyType(merged))

    def with_layout(self, layout: PlatformLayout) -> "BuildContext":
        return replace(self, layout=layout)

    def require(self, key: str, step_name: str) -> str:
        """Return a settings value a step cannot do without."""
        value = self.settings.get(key, "")
        if not value:
            raise ConfigurationError(step_name, f"'{key}' key/value is required")
        return value

    def require_layout(self) -> PlatformLayout:
        if self.layout is None:
            raise RuntimeError("package layout has not been resolved yet")
        return self.layout

    @property
    def output_dir(self) -> Path:
        """Full path to the output directory."""
        return self.project_dir / self.settings["output"]

    @property
    def command_key(self) -> str:
        return self.platform.command_key

    @property
    def build_description(self) -> str:
        """Human-readable build description."""
        parts = [self.platform.display_name]
        parts.append("debug" if self.options.debug else "release")
        if self.options.package:
            parts.append("packaged")
        if self.options.codesign:
            parts.append("signed")
        if self.options.notarize:
            parts.append("notarized")
        return ", ".join(parts)
