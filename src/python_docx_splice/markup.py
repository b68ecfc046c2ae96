"""
Lexical scanner over serialized OOXML markup.

The splicer and the chart cache writer work on the flat text of a part rather
than on a parsed tree, so that everything outside the edited span survives
byte-for-byte. This module recognizes the handful of markers they need:
opening and closing tags with correct name boundaries (``<c:tx`` never
matches ``<c:txPr``, ``<w:p`` never matches ``<w:pPr``), whole element blocks,
attributes of an opening tag, and namespace prefixes.

Scanning is not a parser: comments, CDATA and processing instructions are
not recognized, which is fine for the machine-written parts this library
edits.
"""

import re
from dataclasses import dataclass
from xml.sax.saxutils import escape as _sax_escape
from xml.sax.saxutils import unescape as _sax_unescape

# Characters that may follow a tag name inside an opening tag
_NAME_BOUNDARY = frozenset(" \t\r\n/>")

_XML_ENTITIES = {'"': "&quot;"}
_XML_UNENTITIES = {"&quot;": '"', "&apos;": "'"}


@dataclass(frozen=True)
class Block:
    """Offsets of one element inside a markup string.

    Attributes:
        start: Offset of the ``<`` of the opening tag
        end: Offset just past the closing tag (or the self-closing ``/>``)
        inner_start: Offset just past the opening tag
        inner_end: Offset of the ``<`` of the closing tag
    """

    start: int
    end: int
    inner_start: int
    inner_end: int

    @property
    def self_closing(self) -> bool:
        """Whether the element was written as ``<name/>``."""
        return self.inner_start == self.end

    def text(self, markup: str) -> str:
        """Return the element's full markup."""
        return markup[self.start : self.end]

    def inner(self, markup: str) -> str:
        """Return the markup between the opening and closing tags."""
        return markup[self.inner_start : self.inner_end]

    def open_tag(self, markup: str) -> str:
        """Return the opening tag including its attributes."""
        return markup[self.start : self.inner_start]


def qname(prefix: str, local: str) -> str:
    """Join a namespace prefix (possibly empty) and a local name."""
    return f"{prefix}:{local}" if prefix else local


def namespace_prefix(markup: str, namespace: str) -> str | None:
    """Find the prefix bound to a namespace URI in a part's markup.

    Returns:
        The prefix (e.g., "c"), "" when the namespace is the default
        namespace, or None when it is not declared at all
    """
    match = re.search(r'xmlns:([\w.-]+)\s*=\s*["\']' + re.escape(namespace) + r'["\']', markup)
    if match:
        return match.group(1)
    if re.search(r'xmlns\s*=\s*["\']' + re.escape(namespace) + r'["\']', markup):
        return ""
    return None


def _is_open_at(markup: str, index: int, name: str) -> bool:
    after = index + 1 + len(name)
    return after < len(markup) and markup[after] in _NAME_BOUNDARY


def find_open(markup: str, name: str, start: int = 0, end: int | None = None) -> int:
    """Find the next opening tag ``<name ...>`` or ``<name/>``.

    Args:
        markup: Text to scan
        name: Qualified tag name (e.g., "w:p")
        start: Offset to start scanning from
        end: Offset the tag must start before

    Returns:
        Offset of the ``<`` or -1 if not found
    """
    end = len(markup) if end is None else end
    needle = "<" + name
    index = markup.find(needle, start, end)
    while index != -1:
        if _is_open_at(markup, index, name):
            return index
        index = markup.find(needle, index + 1, end)
    return -1


def rfind_open(markup: str, name: str, end: int, start: int = 0) -> int:
    """Find the last opening tag of ``name`` that starts before ``end``.

    Returns:
        Offset of the ``<`` or -1 if not found
    """
    needle = "<" + name
    index = markup.rfind(needle, start, end)
    while index != -1:
        if _is_open_at(markup, index, name):
            return index
        index = markup.rfind(needle, start, index)
    return -1


def find_close(markup: str, name: str, start: int = 0, end: int | None = None) -> int:
    """Find the next closing tag ``</name>``.

    Returns:
        Offset of the ``<`` or -1 if not found
    """
    end = len(markup) if end is None else end
    return markup.find(f"</{name}>", start, end)


def tag_end(markup: str, open_index: int) -> int:
    """Return the offset just past the ``>`` of the tag starting at open_index.

    Quoted attribute values may contain ``>`` and are skipped.

    Returns:
        Offset past the tag, or -1 if the tag is not terminated
    """
    quote: str | None = None
    for i in range(open_index + 1, len(markup)):
        ch = markup[i]
        if quote:
            if ch == quote:
                quote = None
        elif ch in "\"'":
            quote = ch
        elif ch == ">":
            return i + 1
    return -1


def find_block(markup: str, name: str, start: int = 0, end: int | None = None) -> Block | None:
    """Find the next complete element named ``name``.

    Nested elements of the same name are balanced, so the returned block
    always ends at the matching closing tag.

    Returns:
        The element's Block, or None if no complete element is found
    """
    end = len(markup) if end is None else end
    open_index = find_open(markup, name, start, end)
    if open_index == -1:
        return None
    inner_start = tag_end(markup, open_index)
    if inner_start == -1 or inner_start > end:
        return None
    if markup[inner_start - 2] == "/":
        return Block(open_index, inner_start, inner_start, inner_start)

    depth = 1
    cursor = inner_start
    close_tag = f"</{name}>"
    while depth:
        next_close = find_close(markup, name, cursor, end)
        if next_close == -1:
            return None
        next_open = find_open(markup, name, cursor, next_close)
        if next_open != -1:
            nested_end = tag_end(markup, next_open)
            if nested_end == -1:
                return None
            if markup[nested_end - 2] != "/":
                depth += 1
            cursor = nested_end
            continue
        depth -= 1
        cursor = next_close + len(close_tag)
        if depth == 0:
            return Block(open_index, cursor, inner_start, next_close)
    return None


def find_blocks(markup: str, name: str, start: int = 0, end: int | None = None) -> list[Block]:
    """Find every top-level element named ``name`` in document order."""
    blocks: list[Block] = []
    cursor = start
    while True:
        block = find_block(markup, name, cursor, end)
        if block is None:
            return blocks
        blocks.append(block)
        cursor = block.end


def get_attribute(open_tag: str, name: str) -> str | None:
    """Read an attribute value from an opening tag's text."""
    match = re.search(r"(?:^|\s)" + re.escape(name) + r"""\s*=\s*(["'])(.*?)\1""", open_tag)
    return unescape(match.group(2)) if match else None


def set_attribute(open_tag: str, name: str, value: str) -> str:
    """Return the opening tag with an attribute set, added if missing."""
    escaped = escape(value)
    pattern = re.compile(r"((?:^|\s)" + re.escape(name) + r"""\s*=\s*)(["']).*?\2""")
    if pattern.search(open_tag):
        return pattern.sub(lambda m: f'{m.group(1)}"{escaped}"', open_tag, count=1)
    closing = "/>" if open_tag.endswith("/>") else ">"
    return f'{open_tag[: -len(closing)].rstrip()} {name}="{escaped}"{closing}'


def escape(text: str) -> str:
    """Escape text for use in element content or a double-quoted attribute."""
    return _sax_escape(text, _XML_ENTITIES)


def unescape(text: str) -> str:
    """Reverse escape() and the predefined XML entities."""
    return _sax_unescape(text, _XML_UNENTITIES)
