"""
ContentTypeManager class for managing [Content_Types].xml in OOXML packages.

Content types in OOXML use two mechanisms:
- Default: Maps file extensions to content types (e.g., .xlsx -> spreadsheet)
- Override: Maps specific part names to content types (e.g., /word/charts/chart1.xml)
"""

import logging

from lxml import etree

from .constants import CONTENT_TYPES_NAMESPACE, CONTENT_TYPES_PART
from .package import OOXMLPackage

logger = logging.getLogger(__name__)

_DEFAULT_TAG = f"{{{CONTENT_TYPES_NAMESPACE}}}Default"
_OVERRIDE_TAG = f"{{{CONTENT_TYPES_NAMESPACE}}}Override"


def normalize_part_name(part_name: str) -> str:
    """Return a part name in the absolute form used by Override entries."""
    return "/" + part_name.lstrip("/")


class ContentTypeManager:
    """Manages [Content_Types].xml in OOXML packages.

    This class handles the low-level operations of:
    - Reading the content types file
    - Adding Override entries for new package parts
    - Adding Default entries for file extensions
    - Persisting changes back to the package

    Example:
        >>> ct_mgr = ContentTypeManager(package)
        >>> ct_mgr.add_override("word/charts/chart2.xml", CT_CHART)
        True
        >>> ct_mgr.save()

    Attributes:
        package: The OOXMLPackage containing this content types file
    """

    def __init__(self, package: OOXMLPackage) -> None:
        """Initialize a ContentTypeManager for a package.

        Args:
            package: The OOXMLPackage containing the [Content_Types].xml file
        """
        self._package = package
        self._content_types_path = package.get_part_path(CONTENT_TYPES_PART)
        self._root: etree._Element | None = None
        self._tree: etree._ElementTree | None = None
        self._modified = False

    def _ensure_loaded(self) -> None:
        """Ensure the content types XML is loaded into memory."""
        if self._root is not None:
            return

        if self._content_types_path.exists():
            parser = etree.XMLParser(remove_blank_text=False)
            self._tree = etree.parse(str(self._content_types_path), parser)
            self._root = self._tree.getroot()
        else:
            self._root = etree.Element(
                f"{{{CONTENT_TYPES_NAMESPACE}}}Types",
                nsmap={None: CONTENT_TYPES_NAMESPACE},
            )
            self._tree = etree.ElementTree(self._root)
            self._modified = True

    def get_content_type(self, part_name: str) -> str | None:
        """Get the content type declared for a part.

        Overrides win over extension defaults.

        Args:
            part_name: The part name to look up (with or without leading slash)

        Returns:
            The content type string if declared, None otherwise
        """
        self._ensure_loaded()
        assert self._root is not None

        part_name = normalize_part_name(part_name)
        for override in self._root.iter(_OVERRIDE_TAG):
            if override.get("PartName") == part_name:
                return override.get("ContentType")

        extension = part_name.rsplit(".", 1)[-1].lower() if "." in part_name else ""
        return self.get_default(extension)

    def get_default(self, extension: str) -> str | None:
        """Get the default content type for a file extension."""
        self._ensure_loaded()
        assert self._root is not None

        extension = extension.lstrip(".").lower()
        for default in self._root.iter(_DEFAULT_TAG):
            if default.get("Extension", "").lower() == extension:
                return default.get("ContentType")
        return None

    def has_override(self, part_name: str) -> bool:
        """Check if an override exists for the given part name."""
        self._ensure_loaded()
        assert self._root is not None

        part_name = normalize_part_name(part_name)
        return any(o.get("PartName") == part_name for o in self._root.iter(_OVERRIDE_TAG))

    def add_override(self, part_name: str, content_type: str) -> bool:
        """Add a content type override for a part.

        If an override already exists for the part, this is a no-op.

        Args:
            part_name: The part name (e.g., "word/charts/chart1.xml")
            content_type: The content type (e.g., "application/...chart+xml")

        Returns:
            True if a new override was added, False if it already existed
        """
        self._ensure_loaded()
        assert self._root is not None

        part_name = normalize_part_name(part_name)
        if self.has_override(part_name):
            logger.debug(f"Content type override already exists for {part_name}")
            return False

        override = etree.SubElement(self._root, _OVERRIDE_TAG)
        override.set("PartName", part_name)
        override.set("ContentType", content_type)

        self._modified = True
        logger.debug(f"Added content type override: {part_name} -> {content_type}")

        return True

    def add_default(self, extension: str, content_type: str) -> bool:
        """Add a default content type for a file extension.

        Defaults are kept ahead of overrides, as Word writes them.

        Returns:
            True if a new default was added, False if the extension was declared
        """
        self._ensure_loaded()
        assert self._root is not None

        extension = extension.lstrip(".").lower()
        if self.get_default(extension) is not None:
            return False

        default = etree.Element(_DEFAULT_TAG)
        default.set("Extension", extension)
        default.set("ContentType", content_type)

        first_override = next(self._root.iter(_OVERRIDE_TAG), None)
        if first_override is not None:
            first_override.addprevious(default)
        else:
            self._root.append(default)

        self._modified = True
        logger.debug(f"Added content type default: .{extension} -> {content_type}")
        return True

    def remove_override(self, part_name: str) -> bool:
        """Remove a content type override by part name.

        Returns:
            True if an override was removed, False if not found
        """
        self._ensure_loaded()
        assert self._root is not None

        part_name = normalize_part_name(part_name)
        for override in list(self._root.iter(_OVERRIDE_TAG)):
            if override.get("PartName") == part_name:
                override.getparent().remove(override)
                self._modified = True
                logger.debug(f"Removed content type override: {part_name}")
                return True

        return False

    def save(self) -> None:
        """Persist changes to the [Content_Types].xml file.

        Only writes if modifications were made.
        """
        if not self._modified or self._tree is None:
            return

        self._tree.write(
            str(self._content_types_path),
            encoding="utf-8",
            xml_declaration=True,
            pretty_print=True,
        )

        self._modified = False
        logger.debug(f"Saved content types file: {self._content_types_path.name}")

    @property
    def is_modified(self) -> bool:
        """Check if there are unsaved modifications."""
        return self._modified
