"""opkit: build, package, sign and notarize native applications."""

__version__ = "0.1.0"
