"""
StructureOperations class for splicing structural markup into the body.

Page breaks, section breaks, chart drawings and caller-built fragments all
go through the anchor-relative splicer, so the rest of word/document.xml is
left exactly as it was.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from lxml import etree

from ..constants import (
    A_NAMESPACE,
    CHART_NAMESPACE,
    DOCUMENT_PART,
    DRAWING_ANCHOR_ID_BASE,
    DRAWING_EDIT_ID_BASE,
    DRAWING_ID_STRIDE,
    OFFICE_RELATIONSHIPS_NAMESPACE,
    WORD_NAMESPACE,
    WP14_NAMESPACE,
    WP_NAMESPACE,
    a,
    c,
    r,
    w,
)
from ..errors import ValidationError
from ..splicer import InsertPosition, insert_at

if TYPE_CHECKING:
    from ..document import Document

logger = logging.getLogger(__name__)

SECTION_BREAK_TYPES = ("nextPage", "continuous", "evenPage", "oddPage")

_DOCPR_ID = re.compile(r"<(?:[\w.-]+:)?docPr\b[^>]*?\sid=\"(\d+)\"")


def _wp(tag: str) -> str:
    return f"{{{WP_NAMESPACE}}}{tag}"


def _to_markup(element: etree._Element) -> str:
    return etree.tostring(element, encoding="unicode")


def next_drawing_id(markup: str) -> int:
    """Return one more than the largest drawing (docPr) id in the markup."""
    ids = [int(match) for match in _DOCPR_ID.findall(markup)]
    return max(ids, default=0) + 1


def page_break_paragraph() -> str:
    """Build a paragraph holding a single page break."""
    paragraph = etree.Element(w("p"), nsmap={"w": WORD_NAMESPACE})
    run = etree.SubElement(paragraph, w("r"))
    etree.SubElement(run, w("br"), attrib={w("type"): "page"})
    return _to_markup(paragraph)


def section_break_paragraph(kind: str = "nextPage") -> str:
    """Build a paragraph that ends a section.

    The new section properties use US Letter pages with one-inch margins.

    Raises:
        ValidationError: If the break type is unknown
    """
    if kind not in SECTION_BREAK_TYPES:
        raise ValidationError(
            f"Unknown section break type '{kind}'. Use one of: {', '.join(SECTION_BREAK_TYPES)}"
        )
    paragraph = etree.Element(w("p"), nsmap={"w": WORD_NAMESPACE})
    p_pr = etree.SubElement(paragraph, w("pPr"))
    sect_pr = etree.SubElement(p_pr, w("sectPr"))
    etree.SubElement(sect_pr, w("type"), attrib={w("val"): kind})
    etree.SubElement(sect_pr, w("pgSz"), attrib={w("w"): "12240", w("h"): "15840"})
    etree.SubElement(
        sect_pr,
        w("pgMar"),
        attrib={
            w("top"): "1440",
            w("right"): "1440",
            w("bottom"): "1440",
            w("left"): "1440",
            w("header"): "720",
            w("footer"): "720",
            w("gutter"): "0",
        },
    )
    etree.SubElement(sect_pr, w("cols"), attrib={w("space"): "720"})
    return _to_markup(paragraph)


def chart_drawing_paragraph(
    chart_index: int, rel_id: str, drawing_id: int, width: int, height: int
) -> str:
    """Build a paragraph holding an inline chart drawing.

    Every namespace the fragment uses is declared on the fragment itself, so
    it is well-formed wherever it is spliced into the body.

    Args:
        chart_index: 1-based chart index, used for the drawing name and ids
        rel_id: Document relationship id of the chart part
        drawing_id: Unique docPr id for the drawing
        width: Extent in EMUs
        height: Extent in EMUs

    Returns:
        The paragraph markup
    """
    paragraph = etree.Element(w("p"), nsmap={"w": WORD_NAMESPACE})
    run = etree.SubElement(paragraph, w("r"))
    drawing = etree.SubElement(run, w("drawing"))

    inline = etree.SubElement(
        drawing,
        _wp("inline"),
        nsmap={"wp": WP_NAMESPACE, "wp14": WP14_NAMESPACE},
        attrib={"distT": "0", "distB": "0", "distL": "0", "distR": "0"},
    )
    offset = chart_index * DRAWING_ID_STRIDE
    inline.set(f"{{{WP14_NAMESPACE}}}anchorId", f"{DRAWING_ANCHOR_ID_BASE + offset:08X}")
    inline.set(f"{{{WP14_NAMESPACE}}}editId", f"{DRAWING_EDIT_ID_BASE + offset:08X}")

    etree.SubElement(inline, _wp("extent"), attrib={"cx": str(width), "cy": str(height)})
    etree.SubElement(
        inline, _wp("effectExtent"), attrib={"l": "0", "t": "0", "r": "15875", "b": "12700"}
    )
    etree.SubElement(
        inline, _wp("docPr"), attrib={"id": str(drawing_id), "name": f"Chart {chart_index}"}
    )
    etree.SubElement(inline, _wp("cNvGraphicFramePr"))

    graphic = etree.SubElement(inline, a("graphic"), nsmap={"a": A_NAMESPACE})
    graphic_data = etree.SubElement(graphic, a("graphicData"), attrib={"uri": CHART_NAMESPACE})
    chart = etree.SubElement(
        graphic_data,
        c("chart"),
        nsmap={"c": CHART_NAMESPACE, "r": OFFICE_RELATIONSHIPS_NAMESPACE},
    )
    chart.set(r("id"), rel_id)
    return _to_markup(paragraph)


class StructureOperations:
    """Handles structural inserts into the document body.

    This class encapsulates:
    - Splicing caller-built fragments at a position
    - Page and section breaks
    - Inline chart drawings
    """

    def __init__(self, document: Document) -> None:
        """Initialize StructureOperations.

        Args:
            document: The Document instance to operate on
        """
        self._document = document

    def insert_markup(
        self,
        fragment: str,
        position: InsertPosition | str = InsertPosition.END,
        anchor: str | None = None,
    ) -> None:
        """Splice a fragment into word/document.xml and write the part.

        Raises:
            ValidationError: If the fragment is empty or an anchor is missing
            AnchorNotFoundError: If the anchor text does not occur in the body
            StructuralError: If body or paragraph delimiters are missing
        """
        package = self._document.package
        markup = package.read_text(DOCUMENT_PART)
        updated = insert_at(markup, fragment, position, anchor, DOCUMENT_PART)
        package.write_text(DOCUMENT_PART, updated)

    def insert_page_break(
        self,
        position: InsertPosition | str = InsertPosition.AFTER_TEXT,
        anchor: str | None = None,
    ) -> None:
        """Insert a page break paragraph."""
        self.insert_markup(page_break_paragraph(), position, anchor)
        logger.debug(f"Inserted page break at {InsertPosition(position).value} {anchor or ''}")

    def insert_section_break(
        self,
        kind: str = "nextPage",
        position: InsertPosition | str = InsertPosition.AFTER_TEXT,
        anchor: str | None = None,
    ) -> None:
        """Insert a section break paragraph.

        Raises:
            ValidationError: If the break type is unknown
        """
        self.insert_markup(section_break_paragraph(kind), position, anchor)
        logger.debug(f"Inserted {kind} section break at {InsertPosition(position).value}")

    def insert_chart_drawing(
        self,
        chart_index: int,
        rel_id: str,
        width: int,
        height: int,
        position: InsertPosition | str,
        anchor: str | None = None,
    ) -> None:
        """Insert an inline drawing that shows a chart part."""
        package = self._document.package
        markup = package.read_text(DOCUMENT_PART)
        fragment = chart_drawing_paragraph(
            chart_index, rel_id, next_drawing_id(markup), width, height
        )
        package.write_text(DOCUMENT_PART, insert_at(markup, fragment, position, anchor))
        logger.debug(f"Inserted drawing for chart {chart_index} ({rel_id})")
