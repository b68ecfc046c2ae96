"""
Document class for splicing charts and structure into Word documents.

This module provides the main Document class which handles loading .docx
files, updating, creating and copying charts, inserting breaks and
fragments, and saving the modified documents.
"""

import io
import logging
from pathlib import Path
from typing import Any, BinaryIO

from .chart_data import ChartData, ChartOptions, load_chart_data
from .operations.charts import ChartOperations
from .operations.structure import StructureOperations
from .package import OOXMLPackage
from .results import ChartInfo, ChartUpdateResult, WorkbookLocation
from .splicer import InsertPosition

logger = logging.getLogger(__name__)


class Document:
    """Main class for working with charts and structure in Word documents.

    The document is extracted into a private staging directory when it is
    opened. Every operation edits parts in that directory, and saving zips
    the directory into a new archive. The source file is never modified
    unless it is also the save target.

    Documents can be loaded from:
    - File paths (str or Path)
    - Raw bytes
    - BytesIO objects
    - Open file objects (in binary mode)
    - Nothing, for a new blank document

    Example:
        >>> with Document("report.docx") as doc:
        ...     data = doc.get_chart_data(1)
        ...     data.series[0].values[0] = 42
        ...     doc.update_chart(1, data)
        ...     doc.save("report_updated.docx")

    Attributes:
        path: Path to the document file (None for in-memory documents)
    """

    def __init__(self, source: str | Path | bytes | BinaryIO | None = None) -> None:
        """Initialize a Document from a .docx file or in-memory data.

        Args:
            source: Document source - can be:
                    - Path to a .docx file (str or Path)
                    - Raw bytes of a .docx file
                    - BytesIO object containing a .docx file
                    - Open file object in binary mode
                    - None for a new blank document

        Raises:
            PackageNotFoundError: If the path does not exist
            ExtractionError: If the source is not a valid .docx archive
            StructuralError: If required parts are missing
        """
        self.path: Path | None = None
        if source is None:
            self._package = OOXMLPackage.blank()
        elif isinstance(source, bytes):
            self._package = OOXMLPackage.open(io.BytesIO(source))
        elif hasattr(source, "read"):
            self._package = OOXMLPackage.open(source)  # type: ignore[arg-type]
        else:
            self.path = Path(source)
            self._package = OOXMLPackage.open(self.path)

        logger.debug(f"Opened document {self.path or '<in-memory document>'}")

    @classmethod
    def blank(cls) -> "Document":
        """Create a new document with an empty body."""
        return cls()

    @property
    def package(self) -> OOXMLPackage:
        """The staging area holding the document's parts."""
        return self._package

    @property
    def _chart_ops(self) -> ChartOperations:
        """Get the ChartOperations instance (lazy initialization)."""
        if not hasattr(self, "_chart_ops_instance"):
            self._chart_ops_instance = ChartOperations(self)
        return self._chart_ops_instance

    @property
    def _structure_ops(self) -> StructureOperations:
        """Get the StructureOperations instance (lazy initialization)."""
        if not hasattr(self, "_structure_ops_instance"):
            self._structure_ops_instance = StructureOperations(self)
        return self._structure_ops_instance

    # Charts

    @property
    def chart_count(self) -> int:
        """Number of chart parts in the document."""
        return self._chart_ops.chart_count()

    def chart_indexes(self) -> list[int]:
        """Get the indexes of every chart part, in ascending order."""
        return self._chart_ops.chart_indexes()

    def list_charts(self) -> list[ChartInfo]:
        """Summarize every chart in the document.

        Example:
            >>> for chart in Document("report.docx").list_charts():
            ...     print(chart)
        """
        return self._chart_ops.list_charts()

    def get_chart_data(self, index: int) -> ChartData:
        """Read a chart's cached categories, series and titles.

        Args:
            index: 1-based chart index

        Raises:
            ChartNotFoundError: If the chart does not exist
        """
        return self._chart_ops.get_chart_data(index)

    def find_workbook(self, index: int, strict: bool = False) -> WorkbookLocation:
        """Locate the embedded workbook behind a chart.

        Args:
            index: 1-based chart index
            strict: Refuse to guess when the chart has no workbook relationship

        Raises:
            ChartNotFoundError: If the chart does not exist
            WorkbookNotFoundError: If no workbook can be located
        """
        return self._chart_ops.find_workbook(index, strict)

    def get_workbook_data(self, index: int, strict: bool = False) -> ChartData:
        """Read the data grid of a chart's embedded workbook."""
        return self._chart_ops.get_workbook_data(index, strict)

    def update_chart(self, index: int, data: ChartData, strict: bool = False) -> ChartUpdateResult:
        """Replace a chart's data in its caches and its embedded workbook.

        Args:
            index: 1-based chart index
            data: New categories and series; titles are optional
            strict: Refuse to guess when the chart has no workbook relationship

        Returns:
            ChartUpdateResult describing what was rewritten

        Raises:
            ValidationError: If the data is malformed or has too many series
            ChartNotFoundError: If the chart does not exist
            WorkbookNotFoundError: If no workbook can be located

        Example:
            >>> data = ChartData(
            ...     categories=["Q1", "Q2"],
            ...     series=[SeriesData("Revenue", [10, 12.5])],
            ... )
            >>> print(doc.update_chart(1, data))
        """
        return self._chart_ops.update_chart(index, data, strict)

    def update_chart_from_file(
        self, index: int, path: str | Path, strict: bool = False
    ) -> ChartUpdateResult:
        """Update a chart from a YAML or JSON data file.

        Raises:
            FileNotFoundError: If the data file does not exist
            ValidationError: If the file is malformed
        """
        return self.update_chart(index, load_chart_data(path), strict)

    def create_chart(self, options: ChartOptions) -> int:
        """Create a new chart with its workbook and insert its drawing.

        Returns:
            The 1-based index of the new chart

        Raises:
            ValidationError: If the options are malformed
            AnchorNotFoundError: If the anchor text does not occur in the body
        """
        return self._chart_ops.create_chart(options)

    def copy_chart(
        self,
        source_index: int,
        anchor: str | None = None,
        position: InsertPosition | str = InsertPosition.AFTER_TEXT,
    ) -> int:
        """Duplicate a chart and its workbook, and insert a drawing for the copy.

        Without an anchor the copy is shown right after the source chart.

        Returns:
            The 1-based index of the new chart
        """
        return self._chart_ops.copy_chart(source_index, anchor, position)

    # Structure

    def insert_markup(
        self,
        fragment: str,
        position: InsertPosition | str = InsertPosition.END,
        anchor: str | None = None,
    ) -> None:
        """Splice a complete XML fragment (e.g. a ``<w:p>``) into the body.

        Raises:
            ValidationError: If the fragment is empty or an anchor is missing
            AnchorNotFoundError: If the anchor text does not occur in the body
            StructuralError: If body or paragraph delimiters are missing
        """
        self._structure_ops.insert_markup(fragment, position, anchor)

    def insert_page_break(
        self,
        anchor: str | None = None,
        position: InsertPosition | str = InsertPosition.AFTER_TEXT,
    ) -> None:
        """Insert a page break paragraph after (or before) the anchor's paragraph.

        Example:
            >>> doc.insert_page_break("End of summary")
        """
        self._structure_ops.insert_page_break(position, anchor)

    def insert_section_break(
        self,
        anchor: str | None = None,
        kind: str = "nextPage",
        position: InsertPosition | str = InsertPosition.AFTER_TEXT,
    ) -> None:
        """Insert a section break paragraph.

        Args:
            anchor: Text to place the break relative to
            kind: One of "nextPage", "continuous", "evenPage", "oddPage"
            position: Placement relative to the anchor, or START / END
        """
        self._structure_ops.insert_section_break(kind, position, anchor)

    # Saving

    def save(self, output_path: str | Path | None = None) -> None:
        """Save the document to a file.

        Args:
            output_path: Path to save the document. If None, saves to the original path.

        Raises:
            ValueError: If output_path is not provided for in-memory documents
            PackagingError: If the archive cannot be written
        """
        if output_path is None:
            if self.path is None:
                raise ValueError(
                    "output_path is required for in-memory documents. "
                    "Use doc.save(path) or doc.save_to_bytes() instead."
                )
            output_path = self.path
        self._package.save(output_path)

    def save_to_bytes(self) -> bytes:
        """Save the document to bytes (in-memory).

        Returns:
            bytes: The complete .docx file as bytes
        """
        return self._package.save_to_bytes()

    def close(self) -> None:
        """Remove the staging directory. Safe to call more than once."""
        self._package.close()

    def __enter__(self) -> "Document":
        """Context manager support."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager cleanup."""
        self.close()
