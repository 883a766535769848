"""UI components for opkit."""

from opkit.ui.protocol import BuildUI
from opkit.ui.simple import SimpleUI

__all__ = ["BuildUI", "SimpleUI"]
