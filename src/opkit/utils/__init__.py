"""Utility modules for opkit."""

from opkit.utils.logging import BuildLogger, rotate_logs
from opkit.utils.process import ProcessResult, ProcessRunner
from opkit.utils.terminal import OutputProcessor

__all__ = ["BuildLogger", "OutputProcessor", "ProcessResult", "ProcessRunner", "rotate_logs"]
