"""Platform manifest rendering.

Templates use ``{{ key }}`` placeholders that are filled from settings.
Rendering is preceded by a pre-flight check: a placeholder without a
matching settings key is an error, never an empty string in the output.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from xml.sax.saxutils import escape

from opkit.errors import UnresolvedPlaceholder

PLACEHOLDER = re.compile(r"\{\{\s*([A-Za-z0-9_]+)\s*\}\}")
XML_SUFFIXES = (".xml", ".plist")
XML_ENTITIES = {'"': "&quot;"}


@dataclass(frozen=True)
class Manifest:
    """A template and the file it renders to."""

    template: str
    destination: Path


def load_template(name: str) -> str:
    """Load a bundled template by file name."""
    return resources.files("opkit.templates").joinpath(name).read_text(encoding="utf-8")


def referenced_keys(template: str) -> list[str]:
    """Placeholder keys of a template, in order of first appearance."""
    return list(dict.fromkeys(PLACEHOLDER.findall(template)))


def check_placeholders(name: str, template: str, settings: Mapping[str, str]) -> None:
    """Raise if the template references keys absent from settings.

    Raises:
        UnresolvedPlaceholder: listing every missing key
    """
    missing = [key for key in referenced_keys(template) if key not in settings]
    if missing:
        raise UnresolvedPlaceholder(name, missing)


def render_template(template: str, settings: Mapping[str, str], xml: bool = False) -> str:
    """Fill placeholders; with ``xml`` the values are escaped for text and attributes."""
    if xml:
        return PLACEHOLDER.sub(lambda match: escape(settings[match.group(1)], XML_ENTITIES), template)
    return PLACEHOLDER.sub(lambda match: settings[match.group(1)], template)


def is_xml_template(name: str) -> bool:
    return Path(name).suffix in XML_SUFFIXES


def write_manifest(manifest: Manifest, settings: Mapping[str, str]) -> Path:
    """Check, render and write one manifest.

    Returns:
        The path written
    """
    template = load_template(manifest.template)
    check_placeholders(manifest.template, template, settings)
    manifest.destination.parent.mkdir(parents=True, exist_ok=True)
    text = render_template(template, settings, xml=is_xml_template(manifest.template))
    manifest.destination.write_text(text, encoding="utf-8")
    return manifest.destination
