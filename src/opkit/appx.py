"""Writer for .appx app package containers.

An .appx is a ZIP32 archive holding the payload files uncompressed, plus
three package parts: ``AppxManifest.xml``, ``AppxBlockMap.xml`` (SHA-256
of every 64 KiB block of every file) and ``[Content_Types].xml``.
"""

import base64
import hashlib
import mimetypes
import os
import xml.etree.ElementTree as ET
import zipfile
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from opkit.errors import PackagingError, PartialArtifactError

BLOCKMAP_NS = "http://schemas.microsoft.com/appx/2010/blockmap"
CONTENT_TYPES_NS = "http://schemas.openxmlformats.org/package/2006/content-types"
HASH_METHOD = "http://www.w3.org/2001/04/xmlenc#sha256"

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Fixed part of a ZIP local file header, before the file name.
LOCAL_HEADER_SIZE = 30


@dataclass
class AppxResult:
    """Outcome of writing a package."""

    path: Path
    added: list[str] = field(default_factory=list)
    skipped: list[PartialArtifactError] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.skipped


def guess_content_type(name: str) -> str:
    """Best-effort MIME type for a payload file."""
    content_type, _ = mimetypes.guess_type(name, strict=False)
    return content_type or DEFAULT_CONTENT_TYPE


class AppxWriter:
    """Build an .appx container from a package directory."""

    MANIFEST = "AppxManifest.xml"
    BLOCKMAP = "AppxBlockMap.xml"
    CONTENT_TYPES = "[Content_Types].xml"
    RESERVED = (BLOCKMAP, CONTENT_TYPES, "AppxSignature.p7x")
    BLOCK_SIZE = 64 * 1024

    def __init__(self, source_dir: Path, destination: Path) -> None:
        self.source_dir = source_dir
        self.destination = destination
        self._blockmap = ET.Element("BlockMap", {"xmlns": BLOCKMAP_NS, "HashMethod": HASH_METHOD})
        self._defaults: dict[str, str] = {}
        self._overrides: dict[str, str] = {}

    def payload_files(self) -> list[tuple[Path, str]]:
        """Files to add, as (absolute path, archive name) in stable order.

        Anything named like the manifest is skipped at every depth; the
        manifest is attached separately when the package is finalized.
        """
        files: list[tuple[Path, str]] = []
        for root, dirs, names in os.walk(self.source_dir):
            dirs.sort()
            relative = PurePosixPath(Path(root).relative_to(self.source_dir).as_posix())
            for name in sorted(names):
                if name.startswith(self.MANIFEST) or name in self.RESERVED:
                    continue
                files.append((Path(root) / name, str(relative / name)))
        return files

    def write(self) -> AppxResult:
        """Write the package.

        Returns:
            The written path with the files added and skipped

        Raises:
            PackagingError: If the container cannot be created or finalized
        """
        manifest_path = self.source_dir / self.MANIFEST
        if not manifest_path.is_file():
            raise PackagingError("package", f"Could not generate {self.MANIFEST}: {manifest_path}")

        result = AppxResult(path=self.destination)
        try:
            archive = zipfile.ZipFile(
                self.destination, "w", compression=zipfile.ZIP_STORED, allowZip64=False
            )
        except OSError as e:
            raise PackagingError("package", f"Unable to initialize package writer: {e}") from e

        with archive:
            for path, name in self.payload_files():
                try:
                    data = path.read_bytes()
                except OSError as e:
                    result.skipped.append(PartialArtifactError(str(path), str(e)))
                    continue
                self._add(archive, name, data, guess_content_type(name))
                result.added.append(name)

            try:
                manifest = manifest_path.read_bytes()
            except OSError as e:
                raise PackagingError("package", f"Could not read {self.MANIFEST}: {e}") from e
            self._add(archive, self.MANIFEST, manifest, None)
            self._overrides["/" + self.MANIFEST] = "application/vnd.ms-appx.manifest+xml"
            self._overrides["/" + self.BLOCKMAP] = "application/vnd.ms-appx.blockmap+xml"

            self._writestr(archive, self.BLOCKMAP, self._xml(self._blockmap))
            self._writestr(archive, self.CONTENT_TYPES, self._xml(self._content_types()))

        return result

    def _add(self, archive: zipfile.ZipFile, name: str, data: bytes, content_type: str | None) -> None:
        self._writestr(archive, name, data)

        entry = ET.SubElement(
            self._blockmap,
            "File",
            {
                "Name": name.replace("/", "\\"),
                "Size": str(len(data)),
                "LfhSize": str(LOCAL_HEADER_SIZE + len(name.encode("utf-8"))),
            },
        )
        for offset in range(0, len(data), self.BLOCK_SIZE):
            digest = hashlib.sha256(data[offset : offset + self.BLOCK_SIZE]).digest()
            ET.SubElement(entry, "Block", {"Hash": base64.b64encode(digest).decode("ascii")})

        if content_type is None:
            return
        extension = PurePosixPath(name).suffix.lstrip(".").lower()
        if extension:
            self._defaults.setdefault(extension, content_type)
        else:
            self._overrides["/" + name] = content_type

    def _writestr(self, archive: zipfile.ZipFile, name: str, data: bytes) -> None:
        info = zipfile.ZipInfo(name, date_time=(1980, 1, 1, 0, 0, 0))
        info.compress_type = zipfile.ZIP_STORED
        try:
            archive.writestr(info, data)
        except (OSError, zipfile.LargeZipFile) as e:
            raise PackagingError("package", f"Unable to save package; {e}") from e

    def _content_types(self) -> ET.Element:
        types = ET.Element("Types", {"xmlns": CONTENT_TYPES_NS})
        for extension, content_type in sorted(self._defaults.items()):
            ET.SubElement(types, "Default", {"Extension": extension, "ContentType": content_type})
        for part, content_type in self._overrides.items():
            ET.SubElement(types, "Override", {"PartName": part, "ContentType": content_type})
        return types

    @staticmethod
    def _xml(element: ET.Element) -> bytes:
        return ET.tostring(element, encoding="utf-8", xml_declaration=True)
