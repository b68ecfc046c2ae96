"""
Anchor-relative splicing of markup into the document body.

Insertion points are resolved against the serialized text of
word/document.xml, so a fragment can be placed without parsing and
re-serializing the whole tree. The result stays well-formed as long as the
anchor sits in paragraph text and the fragment is a complete element (or a
sequence of complete elements) whose namespace prefixes are declared either
on the document root or on the fragment itself.

Known limitation: anchor search is literal. Text split across runs, or text
that only appears inside an attribute value, does not behave like text a
reader sees in Word.
"""

import logging
from enum import Enum

from .constants import WORD_NAMESPACE
from .errors import AnchorNotFoundError, StructuralError, ValidationError
from .markup import (
    escape,
    find_block,
    find_close,
    find_open,
    namespace_prefix,
    qname,
    rfind_open,
    tag_end,
)

logger = logging.getLogger(__name__)


class InsertPosition(str, Enum):
    """Where a fragment is placed relative to the body or an anchor."""

    START = "start"
    END = "end"
    AFTER_TEXT = "after"
    BEFORE_TEXT = "before"

    @property
    def needs_anchor(self) -> bool:
        """Whether the position is resolved against anchor text."""
        return self in (InsertPosition.AFTER_TEXT, InsertPosition.BEFORE_TEXT)


def _word_prefix(markup: str) -> str:
    prefix = namespace_prefix(markup, WORD_NAMESPACE)
    return "w" if prefix is None else prefix


def body_bounds(markup: str, part_name: str = "word/document.xml") -> tuple[int, int]:
    """Locate the inside of the document body.

    Returns:
        (offset just past the body opening tag, offset of the body closing tag)

    Raises:
        StructuralError: If the body delimiters are missing
    """
    body = qname(_word_prefix(markup), "body")
    open_index = find_open(markup, body)
    if open_index == -1:
        raise StructuralError(part_name, f"no <{body}> opening tag")
    inner_start = tag_end(markup, open_index)
    if inner_start == -1:
        raise StructuralError(part_name, f"unterminated <{body}> opening tag")
    close_index = markup.rfind(f"</{body}>")
    if close_index == -1 or close_index < inner_start:
        raise StructuralError(part_name, f"no </{body}> closing tag")
    return inner_start, close_index


def find_anchor(markup: str, anchor: str, start: int = 0, end: int | None = None) -> int:
    """Find the first occurrence of anchor text.

    The literal text is searched first; if it does not occur, the
    XML-escaped form is tried so anchors containing ``&`` or ``<`` still
    match the serialized text.

    Returns:
        Offset of the match, or -1 if not found
    """
    end = len(markup) if end is None else end
    index = markup.find(anchor, start, end)
    if index == -1:
        escaped = escape(anchor)
        if escaped != anchor:
            index = markup.find(escaped, start, end)
    return index


def locate(
    markup: str,
    position: InsertPosition | str,
    anchor: str | None = None,
    part_name: str = "word/document.xml",
) -> int:
    """Resolve an insertion position to a character offset.

    Args:
        markup: Serialized document markup
        position: Where to insert (see InsertPosition)
        anchor: Literal text to anchor on, required for AFTER_TEXT/BEFORE_TEXT
        part_name: Part name used in error messages

    Returns:
        Offset at which a fragment would be inserted

    Raises:
        ValidationError: If an anchor position is requested without anchor text
        AnchorNotFoundError: If the anchor text does not occur in the body
        StructuralError: If body or paragraph delimiters are missing
    """
    position = InsertPosition(position)
    if position.needs_anchor and not anchor:
        raise ValidationError(f"Anchor text is required for position '{position.value}'")

    body_start, body_end = body_bounds(markup, part_name)
    w_prefix = _word_prefix(markup)

    if position is InsertPosition.START:
        return body_start

    if position is InsertPosition.END:
        # Section properties must remain the last child of the body
        sect_pr = qname(w_prefix, "sectPr")
        sect_index = rfind_open(markup, sect_pr, body_end, body_start)
        if sect_index != -1:
            block = find_block(markup, sect_pr, sect_index, body_end)
            if block is not None and not markup[block.end : body_end].strip():
                return block.start
        return body_end

    assert anchor is not None
    anchor_index = find_anchor(markup, anchor, body_start, body_end)
    if anchor_index == -1:
        raise AnchorNotFoundError(anchor, part_name)

    paragraph = qname(w_prefix, "p")
    if position is InsertPosition.AFTER_TEXT:
        close_index = find_close(markup, paragraph, anchor_index, body_end)
        if close_index == -1:
            raise StructuralError(part_name, f"no </{paragraph}> after anchor '{anchor}'")
        return close_index + len(paragraph) + 3

    open_index = rfind_open(markup, paragraph, anchor_index, body_start)
    if open_index == -1:
        raise StructuralError(part_name, f"no <{paragraph}> before anchor '{anchor}'")
    return open_index


def insert_at(
    markup: str,
    fragment: str,
    position: InsertPosition | str,
    anchor: str | None = None,
    part_name: str = "word/document.xml",
) -> str:
    """Return new markup with a fragment spliced in at a position.

    The input string is never modified; on any error nothing is returned and
    the caller's markup is unchanged.

    Args:
        markup: Serialized document markup
        fragment: Complete element markup to insert (e.g., a ``<w:p>``)
        position: START, END, AFTER_TEXT or BEFORE_TEXT
        anchor: Literal text to anchor on, required for AFTER_TEXT/BEFORE_TEXT
        part_name: Part name used in error messages

    Returns:
        The markup with the fragment inserted

    Raises:
        ValidationError: If the fragment is empty or an anchor is missing
        AnchorNotFoundError: If the anchor text does not occur in the body
        StructuralError: If body or paragraph delimiters are missing

    Example:
        >>> insert_at(body, "<w:p/>", InsertPosition.AFTER_TEXT, "Figure 1")
    """
    if not fragment:
        raise ValidationError("Fragment to insert must not be empty")
    offset = locate(markup, position, anchor, part_name)
    logger.debug(f"Splicing {len(fragment)} chars into {part_name} at offset {offset}")
    return markup[:offset] + fragment + markup[offset:]
