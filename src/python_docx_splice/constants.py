"""
Centralized constants for OOXML namespaces and other magic values.

Namespace URIs, relationship types, content types, well-known part paths and
chart defaults live here so the registry, synchronizer and splicer agree on
them.
"""

# =============================================================================
# Word Processing Namespaces
# =============================================================================

# Main WordprocessingML namespace (Word 2007+)
WORD_NAMESPACE = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"


# =============================================================================
# DrawingML Namespaces
# =============================================================================

# DrawingML main namespace
A_NAMESPACE = "http://schemas.openxmlformats.org/drawingml/2006/main"

# DrawingML chart namespace
CHART_NAMESPACE = "http://schemas.openxmlformats.org/drawingml/2006/chart"

# Word Processing Drawing namespace (inline/anchor positioning)
WP_NAMESPACE = "http://schemas.openxmlformats.org/drawingml/2006/wordprocessingDrawing"
WP14_NAMESPACE = "http://schemas.microsoft.com/office/word/2010/wordprocessingDrawing"


# =============================================================================
# SpreadsheetML Namespaces
# =============================================================================

SPREADSHEET_NAMESPACE = "http://schemas.openxmlformats.org/spreadsheetml/2006/main"


# =============================================================================
# Package and Relationship Namespaces
# =============================================================================

# Open Packaging Convention namespaces
PACKAGE_RELATIONSHIPS_NAMESPACE = "http://schemas.openxmlformats.org/package/2006/relationships"
CONTENT_TYPES_NAMESPACE = "http://schemas.openxmlformats.org/package/2006/content-types"

# Office Document relationships
OFFICE_RELATIONSHIPS_NAMESPACE = (
    "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
)

# XML namespace
XML_NAMESPACE = "http://www.w3.org/XML/1998/namespace"


# =============================================================================
# Relationship Types
# =============================================================================

REL_TYPE_OFFICE_DOCUMENT = (
    "http://schemas.openxmlformats.org/officeDocument/2006/relationships/officeDocument"
)
REL_TYPE_CHART = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/chart"
REL_TYPE_PACKAGE = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/package"
REL_TYPE_WORKSHEET = (
    "http://schemas.openxmlformats.org/officeDocument/2006/relationships/worksheet"
)
REL_TYPE_SHARED_STRINGS = (
    "http://schemas.openxmlformats.org/officeDocument/2006/relationships/sharedStrings"
)


# =============================================================================
# Content Types
# =============================================================================

CT_CHART = "application/vnd.openxmlformats-officedocument.drawingml.chart+xml"
CT_XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


# =============================================================================
# Well-known Part Paths
# =============================================================================

CONTENT_TYPES_PART = "[Content_Types].xml"
DOCUMENT_PART = "word/document.xml"
CHARTS_DIR = "word/charts"
EMBEDDINGS_DIR = "word/embeddings"

# Parts that must be present for a package to be edited
REQUIRED_PARTS = (DOCUMENT_PART, CONTENT_TYPES_PART)

# Chart parts are addressed by a 1-based index: word/charts/chart{N}.xml
CHART_PART_TEMPLATE = "word/charts/chart{index}.xml"
WORKBOOK_NAME_TEMPLATE = "Microsoft_Excel_Worksheet{index}.xlsx"


# =============================================================================
# Chart Defaults
# =============================================================================

# Default chart extent (roughly 6.67" x 3.65")
DEFAULT_CHART_WIDTH = 6099523
DEFAULT_CHART_HEIGHT = 3340467

DEFAULT_LEGEND_POSITION = "r"
LEGEND_POSITIONS = ("r", "l", "t", "b", "tr")

# Accepted values of the optional chart settings
BAR_GROUPINGS = ("clustered", "stacked", "percentStacked")
AXIS_POSITIONS = ("b", "l", "r", "t")
TICK_MARKS = ("cross", "in", "none", "out")
TICK_LABEL_POSITIONS = ("high", "low", "nextTo", "none")
DISPLAY_BLANKS_AS = ("gap", "span", "zero")

# Data label positions Word accepts for each plot type
DATA_LABEL_POSITIONS = {
    "column": ("ctr", "inBase", "inEnd", "outEnd"),
    "bar": ("ctr", "inBase", "inEnd", "outEnd"),
    "line": ("b", "ctr", "l", "r", "t"),
    "pie": ("bestFit", "ctr", "inEnd", "outEnd"),
    "area": (),
}

DEFAULT_CHART_STYLE = 2
DEFAULT_CHART_LANGUAGE = "en-US"

# Axis ids shared by the category and value axes of generated charts
CATEGORY_AXIS_ID = 2071991400
VALUE_AXIS_ID = 2071991240

# Seeds for the wp14:anchorId / wp14:editId attributes of chart drawings
DRAWING_ANCHOR_ID_BASE = 0x30000000
DRAWING_EDIT_ID_BASE = 0x0D000000
DRAWING_ID_STRIDE = 0x1000

# Worksheet referenced by generated chart formulas
DEFAULT_SHEET_NAME = "Sheet1"


# =============================================================================
# Tag Helper Functions
# =============================================================================


def w(tag: str) -> str:
    """Create a fully qualified WordprocessingML tag name."""
    return f"{{{WORD_NAMESPACE}}}{tag}"


def c(tag: str) -> str:
    """Create a fully qualified DrawingML chart tag name."""
    return f"{{{CHART_NAMESPACE}}}{tag}"


def a(tag: str) -> str:
    """Create a fully qualified DrawingML main tag name."""
    return f"{{{A_NAMESPACE}}}{tag}"


def r(tag: str) -> str:
    """Create a fully qualified relationships attribute name."""
    return f"{{{OFFICE_RELATIONSHIPS_NAMESPACE}}}{tag}"


def x(tag: str) -> str:
    """Create a fully qualified SpreadsheetML tag name."""
    return f"{{{SPREADSHEET_NAMESPACE}}}{tag}"
