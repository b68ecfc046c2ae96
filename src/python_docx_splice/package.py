"""
OOXMLPackage class for managing the Word document ZIP structure.

A package session extracts the archive into a private staging directory,
exposes the parts as files, bytes, text or parsed XML, and reassembles the
staging tree into a fresh archive on save. The staging directory belongs to
exactly one session and is released by close() or by leaving the context
manager.
"""

import io
import logging
import re
import shutil
import tempfile
import zipfile
from pathlib import Path
from typing import Any, BinaryIO

from lxml import etree

from .constants import REQUIRED_PARTS
from .errors import (
    ExtractionError,
    PackageNotFoundError,
    PackagingError,
    PartNotFoundError,
    StructuralError,
)

logger = logging.getLogger(__name__)

_ENCODING_DECLARATION = re.compile(r'(<\?xml[^>]*encoding=)["\']([^"\']*)["\']')

# Parts of a minimal blank document
_BLANK_PARTS = {
    "[Content_Types].xml": """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">
<Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>
<Default Extension="xml" ContentType="application/xml"/>
<Override PartName="/word/document.xml" ContentType="application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml"/>
<Override PartName="/docProps/core.xml" ContentType="application/vnd.openxmlformats-package.core-properties+xml"/>
<Override PartName="/docProps/app.xml" ContentType="application/vnd.openxmlformats-officedocument.extended-properties+xml"/>
</Types>""",
    "_rels/.rels": """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">
<Relationship Id="rId1" Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/officeDocument" Target="word/document.xml"/>
<Relationship Id="rId2" Type="http://schemas.openxmlformats.org/package/2006/relationships/metadata/core-properties" Target="docProps/core.xml"/>
<Relationship Id="rId3" Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/extended-properties" Target="docProps/app.xml"/>
</Relationships>""",
    "word/document.xml": """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<w:document xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main" xmlns:r="http://schemas.openxmlformats.org/officeDocument/2006/relationships" xmlns:wp="http://schemas.openxmlformats.org/drawingml/2006/wordprocessingDrawing" xmlns:a="http://schemas.openxmlformats.org/drawingml/2006/main"><w:body><w:sectPr><w:pgSz w:w="12240" w:h="15840"/><w:pgMar w:top="1440" w:right="1440" w:bottom="1440" w:left="1440" w:header="720" w:footer="720" w:gutter="0"/><w:cols w:space="720"/></w:sectPr></w:body></w:document>""",
    "word/_rels/document.xml.rels": """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships"></Relationships>""",
    "docProps/core.xml": """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<cp:coreProperties xmlns:cp="http://schemas.openxmlformats.org/package/2006/metadata/core-properties" xmlns:dc="http://purl.org/dc/elements/1.1/" xmlns:dcterms="http://purl.org/dc/terms/" xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"><dc:title></dc:title><dc:creator></dc:creator></cp:coreProperties>""",
    "docProps/app.xml": """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Properties xmlns="http://schemas.openxmlformats.org/officeDocument/2006/extended-properties"><Application>python-docx-splice</Application></Properties>""",
}


class OOXMLPackage:
    """Manages the OOXML ZIP package structure.

    This class handles the low-level operations of:
    - Extracting .docx ZIP archives to temporary directories
    - Providing access to package parts (XML files, nested archives)
    - Repacking the staging tree into a new ZIP archive
    - Cleaning up temporary resources

    Example:
        >>> with OOXMLPackage.open("report.docx") as pkg:
        ...     body = pkg.read_text("word/document.xml")
        ...     pkg.write_text("word/document.xml", body.replace("Q1", "Q2"))
        ...     pkg.save("report_q2.docx")
    """

    def __init__(self, temp_dir: Path, source_path: Path | None = None) -> None:
        """Initialize package with an already-extracted directory.

        Use the class methods `open()`, `from_bytes()` or `blank()` instead of
        calling this constructor directly.

        Args:
            temp_dir: Path to the extracted package contents
            source_path: Original source file path, if opened from disk
        """
        self._temp_dir = temp_dir
        self._source_path = source_path
        self._closed = False

    @classmethod
    def open(cls, source: str | Path | BinaryIO) -> "OOXMLPackage":
        """Open an OOXML package from a file path or file-like object.

        Args:
            source: Path to .docx file or file-like object containing it

        Returns:
            OOXMLPackage instance with extracted contents

        Raises:
            PackageNotFoundError: If the source path does not exist
            ExtractionError: If the source is not a readable ZIP archive
            StructuralError: If required parts are missing from the archive
        """
        source_path: Path | None = None

        if isinstance(source, str | Path):
            source_path = Path(source)
            if not source_path.exists():
                raise PackageNotFoundError(str(source_path))
            zip_source: Path | BinaryIO = source_path
        else:
            zip_source = source

        if not zipfile.is_zipfile(zip_source):
            raise ExtractionError("Source must be a valid .docx (ZIP) file")

        # is_zipfile moves the stream position
        if hasattr(zip_source, "seek"):
            zip_source.seek(0)

        temp_dir = Path(tempfile.mkdtemp(prefix="python_docx_splice_"))
        try:
            with zipfile.ZipFile(zip_source, "r") as zip_ref:
                _extract_members(zip_ref, temp_dir)
        except ExtractionError:
            shutil.rmtree(temp_dir, ignore_errors=True)
            raise
        except (zipfile.BadZipFile, OSError) as e:
            shutil.rmtree(temp_dir, ignore_errors=True)
            raise ExtractionError(f"Failed to extract .docx file: {e}") from e

        package = cls(temp_dir, source_path)
        try:
            package.validate_structure()
        except StructuralError:
            package.close()
            raise

        logger.debug(f"Opened package {source_path or '<stream>'} into {temp_dir}")
        return package

    @classmethod
    def from_bytes(cls, data: bytes) -> "OOXMLPackage":
        """Open an OOXML package from bytes.

        Args:
            data: Bytes containing a .docx file

        Returns:
            OOXMLPackage instance with extracted contents
        """
        return cls.open(io.BytesIO(data))

    @classmethod
    def blank(cls) -> "OOXMLPackage":
        """Create a package for a new, empty document.

        The document has one body with a trailing section properties block and
        an empty document relationships file.

        Returns:
            OOXMLPackage instance over the blank document
        """
        temp_dir = Path(tempfile.mkdtemp(prefix="python_docx_splice_"))
        for name, content in _BLANK_PARTS.items():
            path = temp_dir / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content.encode("utf-8"))
        return cls(temp_dir)

    @property
    def temp_dir(self) -> Path:
        """Get the temporary directory containing extracted package contents."""
        return self._temp_dir

    @property
    def source_path(self) -> Path | None:
        """Get the original source file path, if available."""
        return self._source_path

    @property
    def closed(self) -> bool:
        """Whether the staging directory has been released."""
        return self._closed

    def validate_structure(self) -> None:
        """Check that the parts every edit depends on are present.

        Raises:
            StructuralError: If a required part is missing
        """
        for part_name in REQUIRED_PARTS:
            if not self.part_exists(part_name):
                raise StructuralError(part_name, "required part is missing from the package")

    def get_part_path(self, part_name: str) -> Path:
        """Get the filesystem path to a package part.

        Args:
            part_name: Relative path within the package (e.g., "word/document.xml")

        Returns:
            Path to the part in the temp directory

        Raises:
            PartNotFoundError: If the name resolves outside the package
        """
        path = self._temp_dir / part_name.lstrip("/")
        if not self.is_inside(part_name):
            raise PartNotFoundError(part_name, "the name resolves outside the package")
        return path

    def is_inside(self, part_name: str) -> bool:
        """Check that a part name stays within the staging directory."""
        root = self._temp_dir.resolve()
        target = (self._temp_dir / part_name.lstrip("/")).resolve()
        return target == root or root in target.parents

    def part_exists(self, part_name: str) -> bool:
        """Check if a package part exists.

        Args:
            part_name: Relative path within the package

        Returns:
            True if the part exists; names outside the package never exist
        """
        if not self.is_inside(part_name):
            return False
        return self.get_part_path(part_name).is_file()

    def read_bytes(self, part_name: str) -> bytes:
        """Read a package part as raw bytes.

        Raises:
            PartNotFoundError: If the part does not exist
        """
        path = self.get_part_path(part_name)
        if not path.is_file():
            raise PartNotFoundError(part_name)
        return path.read_bytes()

    def write_bytes(self, part_name: str, data: bytes) -> None:
        """Write raw bytes to a package part, creating parent folders.

        Raises:
            PackagingError: If the part cannot be written
        """
        path = self.get_part_path(part_name)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise PackagingError(f"Failed to write part {part_name}: {e}") from e
        logger.debug(f"Wrote part {part_name} ({len(data)} bytes)")

    def read_text(self, part_name: str) -> str:
        """Read an XML part as a UTF-8 string.

        Raises:
            PartNotFoundError: If the part does not exist
        """
        return self.read_bytes(part_name).decode("utf-8")

    def write_text(self, part_name: str, text: str) -> None:
        """Write a string to a package part encoded as UTF-8."""
        self.write_bytes(part_name, text.encode("utf-8"))

    def get_part(self, part_name: str) -> etree._Element | None:
        """Get a package part as a parsed XML element.

        Args:
            part_name: Relative path within the package (e.g., "word/document.xml")

        Returns:
            Parsed XML element tree, or None if part doesn't exist
        """
        part_path = self.get_part_path(part_name)
        if not part_path.exists():
            return None

        parser = etree.XMLParser(remove_blank_text=False)
        tree = etree.parse(str(part_path), parser)
        return tree.getroot()

    def set_part(self, part_name: str, element: etree._Element) -> None:
        """Write an XML element to a package part.

        Args:
            part_name: Relative path within the package (e.g., "word/document.xml")
            element: XML element to write
        """
        part_path = self.get_part_path(part_name)
        part_path.parent.mkdir(parents=True, exist_ok=True)

        tree = element.getroottree()
        tree.write(
            str(part_path),
            encoding="utf-8",
            xml_declaration=True,
            pretty_print=False,
        )

    def copy_part(self, source_part: str, dest_part: str) -> None:
        """Copy a part byte-for-byte to a new location in the package.

        Raises:
            PartNotFoundError: If the source part does not exist
        """
        self.write_bytes(dest_part, self.read_bytes(source_part))

    def remove_part(self, part_name: str) -> bool:
        """Delete a part from the staging tree.

        Returns:
            True if a part was removed, False if it did not exist
        """
        path = self.get_part_path(part_name)
        if not path.is_file():
            return False
        path.unlink()
        logger.debug(f"Removed part {part_name}")
        return True

    def list_parts(self, directory: str = "", pattern: str = "*") -> list[str]:
        """List the parts directly inside a package directory.

        Args:
            directory: Package-relative directory (e.g., "word/embeddings")
            pattern: Glob pattern the file name must match

        Returns:
            Package-relative part names in sorted order
        """
        base = self.get_part_path(directory) if directory else self._temp_dir
        if not base.is_dir():
            return []
        return sorted(
            path.relative_to(self._temp_dir).as_posix()
            for path in base.glob(pattern)
            if path.is_file()
        )

    def iter_parts(self) -> list[str]:
        """List every part in the staging tree in sorted order."""
        return sorted(
            path.relative_to(self._temp_dir).as_posix()
            for path in self._temp_dir.rglob("*")
            if path.is_file()
        )

    def _write_archive(self, target: str | Path | BinaryIO) -> None:
        """Zip the staging tree into target without modifying the tree."""
        with zipfile.ZipFile(target, "w", zipfile.ZIP_DEFLATED) as zip_ref:
            for part_name in self.iter_parts():
                data = self.get_part_path(part_name).read_bytes()
                if part_name.endswith((".xml", ".rels")):
                    data = _normalize_encoding(data)
                zip_ref.writestr(part_name, data)

    def save(self, output_path: str | Path) -> None:
        """Save the package to a .docx file.

        The staging tree is left as it is, so the session can keep editing and
        save again.

        Args:
            output_path: Path to save the .docx file

        Raises:
            PackagingError: If the archive cannot be written
        """
        output_path = Path(output_path)
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            self._write_archive(output_path)
        except OSError as e:
            raise PackagingError(f"Failed to write {output_path}: {e}") from e
        logger.debug(f"Saved package to {output_path}")

    def save_to_bytes(self) -> bytes:
        """Save the package to bytes.

        Returns:
            The complete .docx file as bytes
        """
        buffer = io.BytesIO()
        try:
            self._write_archive(buffer)
        except OSError as e:
            raise PackagingError(f"Failed to assemble package: {e}") from e
        return buffer.getvalue()

    def close(self) -> None:
        """Remove the staging directory. Calling close() again is a no-op."""
        if self._closed:
            return
        if self._temp_dir and self._temp_dir.exists():
            shutil.rmtree(self._temp_dir, ignore_errors=True)
        self._closed = True

    def __enter__(self) -> "OOXMLPackage":
        """Context manager support."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager cleanup."""
        self.close()

    def __del__(self) -> None:
        """Clean up temporary directory on garbage collection."""
        self.close()


def _extract_members(zip_ref: zipfile.ZipFile, temp_dir: Path) -> None:
    """Extract every archive member, refusing names that escape temp_dir."""
    root = temp_dir.resolve()
    for member in zip_ref.infolist():
        target = (temp_dir / member.filename).resolve()
        if target != root and root not in target.parents:
            raise ExtractionError(f"Archive entry escapes the package root: {member.filename}")
        if member.is_dir():
            target.mkdir(parents=True, exist_ok=True)
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(zip_ref.read(member))


def _normalize_encoding(data: bytes) -> bytes:
    """Rewrite a non-Unicode XML encoding declaration as UTF-8.

    OOXML requires UTF-8 or UTF-16, but some tools write encoding="ASCII" or
    similar. Only the copy going into the archive is changed.
    """
    head = data[:200].decode("latin-1")
    match = _ENCODING_DECLARATION.search(head)
    if not match:
        return data
    if match.group(2).upper() in ("UTF-8", "UTF-16", "UTF-16LE", "UTF-16BE"):
        return data

    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError:
        text = data.decode("latin-1")
    return _ENCODING_DECLARATION.sub(r'\1"UTF-8"', text, count=1).encode("utf-8")
