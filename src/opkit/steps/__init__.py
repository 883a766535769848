"""Pipeline steps for opkit."""

from opkit.steps.base import BuildStep, StepStatus
from opkit.steps.prepare import LayoutStep, ManifestStep
from opkit.steps.build import CompileStep, UserBuildStep
from opkit.steps.signing import CodeSignStep
from opkit.steps.package import AppStorePackageStep, PackageStep
from opkit.steps.notarize import NotarizeStep
from opkit.steps.launch import LaunchStep

__all__ = [
    "BuildStep",
    "StepStatus",
    "LayoutStep",
    "ManifestStep",
    "UserBuildStep",
    "CompileStep",
    "CodeSignStep",
    "PackageStep",
    "NotarizeStep",
    "AppStorePackageStep",
    "LaunchStep",
]
