"""
Custom exception classes for python_docx_splice package.

Every failure the library raises derives from DocxSpliceError. The hierarchy
separates malformed caller input (ValidationError), missing parts, ids and
anchors (NotFoundError and its subclasses), archive I/O failures
(ExtractionError, PackagingError) and packages whose markup lacks a marker the
splicer or synchronizer depends on (StructuralError).
"""


class DocxSpliceError(Exception):
    """Base exception for all python_docx_splice errors."""

    pass


class ValidationError(DocxSpliceError):
    """Raised when caller-supplied input is malformed.

    Validation always happens before any part of the package is written, so
    catching this error leaves the session untouched.

    Attributes:
        errors: List of specific validation error messages (optional)
    """

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        self.errors = errors or []
        super().__init__(self._format_message(message))

    def _format_message(self, message: str) -> str:
        """Append individual problems to the summary message."""
        if not self.errors:
            return message
        msg = message + "\n"
        for error in self.errors:
            msg += f"  • {error}\n"
        return msg.rstrip("\n")


class NotFoundError(DocxSpliceError):
    """Raised when a part, relationship, workbook or anchor cannot be found."""

    pass


class PackageNotFoundError(NotFoundError):
    """Raised when the package file to open does not exist.

    Attributes:
        path: The path that was requested
    """

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Document not found: {path}")


class PartNotFoundError(NotFoundError):
    """Raised when a package part is missing.

    Attributes:
        part_name: Package-relative path of the missing part
    """

    def __init__(self, part_name: str, hint: str | None = None) -> None:
        self.part_name = part_name
        self.hint = hint
        msg = f"Part '{part_name}' does not exist in the package"
        if hint:
            msg += f"\n\nNote: {hint}"
        super().__init__(msg)


class ChartNotFoundError(NotFoundError):
    """Raised when no chart part exists for a chart index.

    Attributes:
        index: The 1-based chart index that was requested
        available: Chart indexes present in the package
    """

    def __init__(self, index: int, available: list[int] | None = None) -> None:
        self.index = index
        self.available = available or []
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format an error message listing the charts that do exist."""
        msg = f"Chart {self.index} not found (expected word/charts/chart{self.index}.xml)"
        if self.available:
            msg += "\n\nAvailable charts: " + ", ".join(str(i) for i in self.available)
        else:
            msg += "\n\nThe document contains no charts"
        return msg


class RelationshipNotFoundError(NotFoundError):
    """Raised when a relationship id is not declared for a part.

    Attributes:
        part_name: The part owning the relationships file
        rel_id: The relationship id that was looked up
    """

    def __init__(self, part_name: str, rel_id: str) -> None:
        self.part_name = part_name
        self.rel_id = rel_id
        super().__init__(f"Relationship '{rel_id}' not found for part '{part_name}'")


class WorkbookNotFoundError(NotFoundError):
    """Raised when no embedded workbook can be located for a chart.

    Attributes:
        chart_part: The chart part whose workbook was requested
        reason: Explanation of why resolution failed
    """

    def __init__(self, chart_part: str, reason: str | None = None) -> None:
        self.chart_part = chart_part
        self.reason = reason
        msg = f"No embedded workbook found for '{chart_part}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class AnchorNotFoundError(NotFoundError):
    """Raised when anchor text does not occur in the document markup.

    Attributes:
        anchor: The literal text that was searched for
        part_name: The part that was searched
    """

    def __init__(self, anchor: str, part_name: str = "word/document.xml") -> None:
        self.anchor = anchor
        self.part_name = part_name
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format a helpful error message."""
        msg = f"Could not find anchor text '{self.anchor}' in {self.part_name}"
        msg += "\n\nSuggestions:\n"
        msg += "  • Anchor search is literal and case-sensitive\n"
        msg += "  • Text split across runs or containing XML-escaped characters is not matched\n"
        return msg


class ExtractionError(DocxSpliceError):
    """Raised when a package or nested workbook cannot be read as a ZIP archive."""

    pass


class PackagingError(DocxSpliceError):
    """Raised when writing an output archive fails."""

    pass


class StructuralError(DocxSpliceError):
    """Raised when markup lacks a marker the operation depends on.

    Attributes:
        part_name: The part that was being processed
        marker: Description of the missing marker
    """

    def __init__(self, part_name: str, marker: str) -> None:
        self.part_name = part_name
        self.marker = marker
        super().__init__(f"Unexpected structure in '{part_name}': {marker}")
