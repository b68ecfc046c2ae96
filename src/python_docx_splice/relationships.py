"""
RelationshipManager class for managing .rels files in OOXML packages.

A relationship links one part to another using an id that is unique within
the owning part, a relationship type URI and a target path. Targets are
written relative to the owning part's directory, so "../embeddings/x.xlsx"
declared by word/charts/chart1.xml names word/embeddings/x.xlsx.
"""

import logging
import posixpath
from dataclasses import dataclass
from pathlib import PurePosixPath

from lxml import etree

from .constants import PACKAGE_RELATIONSHIPS_NAMESPACE
from .errors import RelationshipNotFoundError
from .package import OOXMLPackage

logger = logging.getLogger(__name__)

RELS_NAMESPACE = PACKAGE_RELATIONSHIPS_NAMESPACE

_REL_TAG = f"{{{RELS_NAMESPACE}}}Relationship"


@dataclass(frozen=True)
class Relationship:
    """One entry of a relationships file.

    Attributes:
        id: Relationship id, unique within the owning part (e.g., "rId3")
        type: Relationship type URI
        target: Target exactly as written in the file
        target_mode: "External" for URLs, None for package parts
    """

    id: str
    type: str
    target: str
    target_mode: str | None = None

    @property
    def is_external(self) -> bool:
        """Whether the target lies outside the package."""
        return self.target_mode == "External"


def rels_part_for(part_name: str) -> str:
    """Return the relationships part that belongs to a part.

    For example:
    - "word/document.xml" -> "word/_rels/document.xml.rels"
    - "word/charts/chart1.xml" -> "word/charts/_rels/chart1.xml.rels"
    """
    path = PurePosixPath(part_name.lstrip("/"))
    return str(path.parent / "_rels" / f"{path.name}.rels")


def resolve_part_target(part_name: str, target: str) -> str:
    """Resolve a relationship target against the owning part's directory.

    Args:
        part_name: The part that declares the relationship
        target: Target as written in the relationships file

    Returns:
        Package-relative path of the target part (no leading slash)
    """
    if target.startswith("/"):
        return posixpath.normpath(target).lstrip("/")
    base = posixpath.dirname(part_name.lstrip("/"))
    return posixpath.normpath(posixpath.join(base, target)).lstrip("/")


def relative_target(part_name: str, target_part: str) -> str:
    """Express a package path relative to the owning part's directory.

    This is the inverse of resolve_part_target(), used when minting new
    relationships (e.g., chart1.xml -> "../embeddings/book1.xlsx").
    """
    base = posixpath.dirname(part_name.lstrip("/")) or "."
    return posixpath.relpath(target_part.lstrip("/"), base)


class RelationshipManager:
    """Manages .rels files in OOXML packages.

    This class handles the low-level operations of:
    - Reading relationship files (.rels)
    - Resolving relationship ids to package paths
    - Adding new relationships with auto-generated IDs
    - Retargeting existing relationships
    - Persisting changes back to the package

    Example:
        >>> rel_mgr = RelationshipManager(package, "word/document.xml")
        >>> rel_id = rel_mgr.add_relationship(REL_TYPE_CHART, "charts/chart2.xml")
        >>> rel_mgr.save()
        >>> rel_mgr.resolve_target(rel_id)
        'word/charts/chart2.xml'

    Attributes:
        package: The OOXMLPackage containing this relationship file
        part_name: The part this relationship file is for (e.g., "word/document.xml")
    """

    def __init__(self, package: OOXMLPackage, part_name: str) -> None:
        """Initialize a RelationshipManager for a specific part.

        Args:
            package: The OOXMLPackage containing the relationship file
            part_name: The part this relationship file is for.
                      For example, "word/document.xml" -> "word/_rels/document.xml.rels"
        """
        self._package = package
        self._part_name = part_name.lstrip("/")
        self._rels_part = rels_part_for(part_name)
        self._rels_path = package.get_part_path(self._rels_part)
        self._root: etree._Element | None = None
        self._tree: etree._ElementTree | None = None
        self._modified = False

    @property
    def part_name(self) -> str:
        """The owning part."""
        return self._part_name

    @property
    def rels_part(self) -> str:
        """Package path of the relationships file."""
        return self._rels_part

    def _ensure_loaded(self) -> None:
        """Ensure the relationship XML is loaded into memory."""
        if self._root is not None:
            return

        if self._rels_path.exists():
            parser = etree.XMLParser(remove_blank_text=False)
            self._tree = etree.parse(str(self._rels_path), parser)
            self._root = self._tree.getroot()
        else:
            self._root = etree.Element(
                f"{{{RELS_NAMESPACE}}}Relationships",
                nsmap={None: RELS_NAMESPACE},
            )
            self._tree = etree.ElementTree(self._root)
            self._modified = True

    def _elements(self) -> list[etree._Element]:
        self._ensure_loaded()
        assert self._root is not None
        return list(self._root.iter(_REL_TAG))

    def _find(self, rel_id: str) -> etree._Element:
        for rel in self._elements():
            if rel.get("Id") == rel_id:
                return rel
        raise RelationshipNotFoundError(self._part_name, rel_id)

    def relationships(self) -> list[Relationship]:
        """List all relationships in file order."""
        return [
            Relationship(
                id=rel.get("Id", ""),
                type=rel.get("Type", ""),
                target=rel.get("Target", ""),
                target_mode=rel.get("TargetMode"),
            )
            for rel in self._elements()
        ]

    def get_relationship(self, rel_type: str) -> str | None:
        """Get the id of the first relationship of a given type.

        Args:
            rel_type: The relationship type URI to search for

        Returns:
            The relationship ID (e.g., "rId3") if found, None otherwise
        """
        for rel in self._elements():
            if rel.get("Type") == rel_type:
                return rel.get("Id")
        return None

    def has_relationship(self, rel_type: str) -> bool:
        """Check if a relationship of the given type exists."""
        return self.get_relationship(rel_type) is not None

    def get_target(self, rel_id: str) -> str:
        """Get the target of a relationship exactly as written.

        Raises:
            RelationshipNotFoundError: If the id is not declared
        """
        return self._find(rel_id).get("Target", "")

    def resolve_target(self, rel_id: str) -> str:
        """Resolve a relationship id to a package path.

        The target is resolved relative to the directory of the owning part,
        not the directory of the _rels folder. External targets (URLs) are
        returned unchanged.

        Args:
            rel_id: The relationship id (e.g., "rId1")

        Returns:
            Package-relative path of the target part

        Raises:
            RelationshipNotFoundError: If the id is not declared
        """
        rel = self._find(rel_id)
        target = rel.get("Target", "")
        if rel.get("TargetMode") == "External":
            return target
        return resolve_part_target(self._part_name, target)

    def find_by_target(self, target_part: str) -> str | None:
        """Find the id of a relationship pointing at a package path."""
        target_part = target_part.lstrip("/")
        for rel in self._elements():
            if rel.get("TargetMode") == "External":
                continue
            if resolve_part_target(self._part_name, rel.get("Target", "")) == target_part:
                return rel.get("Id")
        return None

    def add_relationship(self, rel_type: str, target: str, target_mode: str | None = None) -> str:
        """Add a new relationship, always minting a new ID.

        Args:
            rel_type: The relationship type URI
            target: The target path (relative to the part's directory)
            target_mode: Optional target mode, e.g. "External" for URLs

        Returns:
            The new relationship ID (e.g., "rId3")
        """
        self._ensure_loaded()
        assert self._root is not None

        rel_id = f"rId{self._next_available_id()}"

        rel_elem = etree.SubElement(self._root, _REL_TAG)
        rel_elem.set("Id", rel_id)
        rel_elem.set("Type", rel_type)
        rel_elem.set("Target", target)
        if target_mode is not None:
            rel_elem.set("TargetMode", target_mode)

        self._modified = True
        logger.debug(f"Added relationship {rel_id} on {self._part_name}: {rel_type} -> {target}")

        return rel_id

    def set_target(self, rel_id: str, target: str) -> None:
        """Point an existing relationship at a new target.

        Raises:
            RelationshipNotFoundError: If the id is not declared
        """
        rel = self._find(rel_id)
        rel.set("Target", target)
        self._modified = True
        logger.debug(f"Retargeted {rel_id} on {self._part_name} -> {target}")

    def _next_available_id(self) -> int:
        """Find the next sequential relationship ID number.

        Returns one more than the highest numeric rId in use, so ids released
        by removed relationships are never handed out again.
        """
        highest = 0
        for rel in self._elements():
            rel_id = rel.get("Id", "")
            if rel_id.startswith("rId") and rel_id[3:].isdigit():
                highest = max(highest, int(rel_id[3:]))
        return highest + 1

    def save(self) -> None:
        """Persist changes to the .rels file.

        Only writes if modifications were made. Creates the _rels
        directory if it doesn't exist.
        """
        if not self._modified or self._tree is None:
            return

        self._rels_path.parent.mkdir(parents=True, exist_ok=True)
        self._tree.write(
            str(self._rels_path),
            encoding="utf-8",
            xml_declaration=True,
            pretty_print=True,
        )

        self._modified = False
        logger.debug(f"Saved relationship file: {self._rels_part}")

    @property
    def is_modified(self) -> bool:
        """Check if there are unsaved modifications."""
        return self._modified


def resolve_target(package: OOXMLPackage, part_name: str, rel_id: str) -> str:
    """Resolve one relationship id of a part to a package path.

    Raises:
        RelationshipNotFoundError: If the id is not declared
    """
    return RelationshipManager(package, part_name).resolve_target(rel_id)
