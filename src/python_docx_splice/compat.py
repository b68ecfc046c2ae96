"""
Compatibility helpers for integrating with python-docx.

Documents move between the two libraries as in-memory .docx bytes, so a
document can be built with python-docx, given charts here, and handed back.
"""

from __future__ import annotations

import io
from typing import Any

from .document import Document


def from_python_docx(python_docx_doc: Any) -> Document:
    """Create a python_docx_splice Document from a python-docx Document.

    Args:
        python_docx_doc: A python-docx Document object

    Returns:
        A python_docx_splice Document holding the same package

    Raises:
        ImportError: If python-docx is not installed (with helpful message)
        TypeError: If the input is not a python-docx Document

    Example:
        >>> from docx import Document as PythonDocxDocument
        >>> from python_docx_splice import ChartData, ChartOptions, SeriesData
        >>> from python_docx_splice.compat import from_python_docx
        >>>
        >>> py_doc = PythonDocxDocument()
        >>> py_doc.add_paragraph("Revenue by quarter")
        >>>
        >>> doc = from_python_docx(py_doc)
        >>> data = ChartData(["Q1", "Q2"], [SeriesData("Revenue", [10, 12])])
        >>> doc.create_chart(ChartOptions(data, anchor="Revenue by quarter", position="after"))
        >>> doc.save("revenue.docx")
    """
    try:
        from docx.document import Document as PythonDocxDocType
    except ImportError as e:
        raise ImportError(
            "python-docx is required for from_python_docx(). "
            "Install it with: pip install python-docx"
        ) from e

    if not isinstance(python_docx_doc, PythonDocxDocType):
        raise TypeError(
            f"Expected python-docx Document, got {type(python_docx_doc).__name__}. "
            "Pass a Document object created with: from docx import Document"
        )

    buffer = io.BytesIO()
    python_docx_doc.save(buffer)
    buffer.seek(0)
    return Document(buffer)


def to_python_docx(doc: Document) -> Any:
    """Convert a python_docx_splice Document to a python-docx Document.

    Args:
        doc: A python_docx_splice Document

    Returns:
        A python-docx Document object

    Raises:
        ImportError: If python-docx is not installed
    """
    try:
        from docx import Document as PythonDocxDoc
    except ImportError as e:
        raise ImportError(
            "python-docx is required for to_python_docx(). Install it with: pip install python-docx"
        ) from e

    return PythonDocxDoc(io.BytesIO(doc.save_to_bytes()))
