"""
python_docx_splice - Update charts and splice structure into Word documents.

This package rewrites the data behind existing charts (both the cached values
Word draws and the embedded workbook Word edits), creates and copies charts,
and inserts page breaks, section breaks and other fragments at positions
anchored on text, all without disturbing the rest of the document.

Example:
    >>> from python_docx_splice import Document, load_chart_data
    >>> doc = Document("report.docx")
    >>> doc.update_chart(1, load_chart_data("q3.yaml"))
    >>> doc.insert_page_break("End of summary")
    >>> doc.save("report_q3.docx")
"""

__version__ = "0.1.0"
__all__ = [
    "Document",
    "OOXMLPackage",
    "from_python_docx",
    "to_python_docx",
    "AxisOptions",
    "ChartData",
    "ChartKind",
    "ChartOptions",
    "DataLabelOptions",
    "SeriesData",
    "load_chart_data",
    "load_chart_options",
    "InsertPosition",
    "ChartInfo",
    "ChartUpdateResult",
    "WorkbookLocation",
    "WorkbookResolution",
    "DocxSpliceError",
    "ValidationError",
    "NotFoundError",
    "PackageNotFoundError",
    "PartNotFoundError",
    "ChartNotFoundError",
    "RelationshipNotFoundError",
    "WorkbookNotFoundError",
    "AnchorNotFoundError",
    "ExtractionError",
    "PackagingError",
    "StructuralError",
]

# Import chart data model and loaders
from .chart_data import (
    AxisOptions,
    ChartData,
    ChartKind,
    ChartOptions,
    DataLabelOptions,
    SeriesData,
    load_chart_data,
    load_chart_options,
)

# Import compatibility helpers (python-docx integration)
from .compat import from_python_docx, to_python_docx

# Import document class
from .document import Document
from .errors import (
    AnchorNotFoundError,
    ChartNotFoundError,
    DocxSpliceError,
    ExtractionError,
    NotFoundError,
    PackageNotFoundError,
    PackagingError,
    PartNotFoundError,
    RelationshipNotFoundError,
    StructuralError,
    ValidationError,
    WorkbookNotFoundError,
)
from .package import OOXMLPackage
from .results import ChartInfo, ChartUpdateResult, WorkbookLocation, WorkbookResolution
from .splicer import InsertPosition
