"""
The workbook embedded next to a chart (word/embeddings/*.xlsx).

An embedded workbook is itself a ZIP package. It is read fully into memory,
its worksheet grid and shared-string table are rewritten there, and the
result is handed back as bytes for the caller to store in the document
package. Grid layout:

    A1 empty, B1.. series names
    A2.. category labels, B2.. values (one column per series)
"""

from __future__ import annotations

import io
import logging
import re
import zipfile

from lxml import etree

from .chart_data import ChartData, SeriesData, format_number
from .chart_xml import column_letter
from .constants import (
    DEFAULT_SHEET_NAME,
    OFFICE_RELATIONSHIPS_NAMESPACE,
    PACKAGE_RELATIONSHIPS_NAMESPACE,
    REL_TYPE_OFFICE_DOCUMENT,
    REL_TYPE_SHARED_STRINGS,
    REL_TYPE_WORKSHEET,
    SPREADSHEET_NAMESPACE,
    XML_NAMESPACE,
    x,
)
from .errors import ExtractionError, StructuralError
from .markup import (
    escape,
    find_block,
    find_open,
    get_attribute,
    namespace_prefix,
    qname,
    set_attribute,
)
from .relationships import rels_part_for, resolve_part_target

logger = logging.getLogger(__name__)

_CELL_REF = re.compile(r"^([A-Z]+)(\d+)$")

# A cell whose value is an index into the shared-string table
_SHARED_STRING_CELL = re.compile(r"""<(?:[\w.-]+:)?c\b[^>]*\st=["']s["']""")

# Elements that may follow <dimension> in a worksheet, in schema order
_AFTER_DIMENSION = ("sheetViews", "sheetFormatPr", "cols", "sheetData")

_NEW_WORKBOOK_PARTS = {
    "[Content_Types].xml": """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types"><Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/><Default Extension="xml" ContentType="application/xml"/><Override PartName="/xl/workbook.xml" ContentType="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet.main+xml"/><Override PartName="/xl/worksheets/sheet1.xml" ContentType="application/vnd.openxmlformats-officedocument.spreadsheetml.worksheet+xml"/><Override PartName="/xl/styles.xml" ContentType="application/vnd.openxmlformats-officedocument.spreadsheetml.styles+xml"/><Override PartName="/xl/sharedStrings.xml" ContentType="application/vnd.openxmlformats-officedocument.spreadsheetml.sharedStrings+xml"/></Types>""",
    "_rels/.rels": """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships"><Relationship Id="rId1" Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/officeDocument" Target="xl/workbook.xml"/></Relationships>""",
    "xl/workbook.xml": f"""<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<workbook xmlns="http://schemas.openxmlformats.org/spreadsheetml/2006/main" xmlns:r="http://schemas.openxmlformats.org/officeDocument/2006/relationships"><sheets><sheet name="{DEFAULT_SHEET_NAME}" sheetId="1" r:id="rId1"/></sheets></workbook>""",
    "xl/_rels/workbook.xml.rels": """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships"><Relationship Id="rId1" Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/worksheet" Target="worksheets/sheet1.xml"/><Relationship Id="rId2" Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/styles" Target="styles.xml"/><Relationship Id="rId3" Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/sharedStrings" Target="sharedStrings.xml"/></Relationships>""",
    "xl/worksheets/sheet1.xml": """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<worksheet xmlns="http://schemas.openxmlformats.org/spreadsheetml/2006/main" xmlns:r="http://schemas.openxmlformats.org/officeDocument/2006/relationships"><dimension ref="A1"/><sheetData/></worksheet>""",
    "xl/styles.xml": """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<styleSheet xmlns="http://schemas.openxmlformats.org/spreadsheetml/2006/main"><fonts count="1"><font><sz val="11"/><name val="Calibri"/><family val="2"/></font></fonts><fills count="2"><fill><patternFill patternType="none"/></fill><fill><patternFill patternType="gray125"/></fill></fills><borders count="1"><border><left/><right/><top/><bottom/><diagonal/></border></borders><cellStyleXfs count="1"><xf numFmtId="0" fontId="0" fillId="0" borderId="0"/></cellStyleXfs><cellXfs count="1"><xf numFmtId="0" fontId="0" fillId="0" borderId="0" xfId="0"/></cellXfs><cellStyles count="1"><cellStyle name="Normal" xfId="0" builtinId="0"/></cellStyles></styleSheet>""",
    "xl/sharedStrings.xml": """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<sst xmlns="http://schemas.openxmlformats.org/spreadsheetml/2006/main" count="0" uniqueCount="0"/>""",
}


def column_index(letters: str) -> int:
    """Convert spreadsheet column letters to a 1-based number (A -> 1, AA -> 27)."""
    number = 0
    for ch in letters:
        number = number * 26 + (ord(ch) - ord("A") + 1)
    return number


class SharedStringTable:
    """The shared-string table of a workbook (xl/sharedStrings.xml).

    Strings are only ever appended: an index handed out once keeps naming
    the same string, so cells elsewhere in the workbook stay valid.

    Example:
        >>> table = SharedStringTable.from_xml(data)
        >>> table.merge(["Q1", "Q2"])
        {'Q1': 0, 'Q2': 5}
    """

    def __init__(self, root: etree._Element) -> None:
        self._root = root
        self._index: dict[str, int] = {}
        for i, text in enumerate(self.items):
            self._index.setdefault(text, i)

    @classmethod
    def from_xml(cls, data: bytes) -> SharedStringTable:
        """Parse a shared-string table.

        Raises:
            StructuralError: If the table is not well-formed
        """
        try:
            root = etree.fromstring(data)
        except etree.XMLSyntaxError as e:
            raise StructuralError("xl/sharedStrings.xml", f"not well-formed: {e}") from e
        return cls(root)

    @property
    def items(self) -> list[str]:
        """All strings in index order."""
        return [self._item_text(si) for si in self._root.findall(x("si"))]

    @staticmethod
    def _item_text(si: etree._Element) -> str:
        # Phonetic runs (rPh) are reading aids, not part of the string
        return "".join(
            t.text or "" for t in si.iter(x("t")) if t.getparent().tag != x("rPh")
        )

    def __len__(self) -> int:
        return len(self._root.findall(x("si")))

    def index_of(self, text: str) -> int | None:
        """Get the index of a string, or None if it is not in the table."""
        return self._index.get(text)

    def add(self, text: str) -> int:
        """Return the index of a string, appending it if missing."""
        existing = self._index.get(text)
        if existing is not None:
            return existing

        si = etree.SubElement(self._root, x("si"))
        t = etree.SubElement(si, x("t"))
        t.text = text
        if text != text.strip():
            t.set(f"{{{XML_NAMESPACE}}}space", "preserve")

        index = len(self) - 1
        self._index[text] = index
        return index

    def merge(self, strings: list[str]) -> dict[str, int]:
        """Add every missing string and return the index of each.

        Merging the same strings again adds nothing.
        """
        indexes = {text: self.add(text) for text in strings}
        unique = len(self)
        self._root.set("uniqueCount", str(unique))
        previous = self._root.get("count", "")
        count = int(previous) if previous.isdigit() else 0
        self._root.set("count", str(max(count, unique)))
        return indexes

    def set_reference_count(self, references: int) -> None:
        """Record how many cells of the workbook reference the table."""
        self._root.set("count", str(references))

    def to_xml(self) -> bytes:
        """Serialize the table."""
        return etree.tostring(
            self._root, encoding="UTF-8", xml_declaration=True, standalone=True
        )


class EmbeddedWorkbook:
    """An embedded .xlsx package held in memory.

    Entries keep their archive order, so a workbook written back contains
    the same entries in the same order as it was read, with only the
    worksheet and shared-string table changed.

    Example:
        >>> book = EmbeddedWorkbook.from_bytes(package.read_bytes(path), path)
        >>> book.write_chart_data(data)
        >>> package.write_bytes(path, book.to_bytes())
    """

    def __init__(self, entries: dict[str, bytes], part_name: str = "embedded workbook") -> None:
        self._entries = entries
        self.part_name = part_name

    @classmethod
    def from_bytes(cls, data: bytes, part_name: str = "embedded workbook") -> EmbeddedWorkbook:
        """Read every entry of a workbook archive.

        Raises:
            ExtractionError: If the data is not a readable ZIP archive
        """
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as archive:
                entries = {info.filename: archive.read(info) for info in archive.infolist()}
        except (zipfile.BadZipFile, OSError) as e:
            raise ExtractionError(f"Failed to read workbook {part_name}: {e}") from e
        return cls(entries, part_name)

    @classmethod
    def create(cls, data: ChartData, part_name: str = "embedded workbook") -> EmbeddedWorkbook:
        """Create a single-sheet workbook holding a chart's grid."""
        entries = {name: text.encode("utf-8") for name, text in _NEW_WORKBOOK_PARTS.items()}
        book = cls(entries, part_name)
        book.write_chart_data(data)
        return book

    @property
    def entry_names(self) -> list[str]:
        """Archive entry names in archive order."""
        return list(self._entries)

    def read_entry(self, name: str) -> bytes | None:
        """Get the raw bytes of one archive entry."""
        return self._entries.get(name)

    def _relationship_targets(self, owner: str, rel_type: str) -> list[str]:
        data = self._entries.get(rels_part_for(owner) if owner else "_rels/.rels")
        if data is None:
            return []
        try:
            root = etree.fromstring(data)
        except etree.XMLSyntaxError:
            logger.warning(f"Ignoring malformed relationships of {owner} in {self.part_name}")
            return []
        return [
            resolve_part_target(owner, rel.get("Target", ""))
            for rel in root.iter(f"{{{PACKAGE_RELATIONSHIPS_NAMESPACE}}}Relationship")
            if rel.get("Type") == rel_type
        ]

    @property
    def workbook_path(self) -> str:
        """Entry name of the workbook part (normally xl/workbook.xml)."""
        targets = self._relationship_targets("", REL_TYPE_OFFICE_DOCUMENT)
        for target in targets:
            if target in self._entries:
                return target
        return "xl/workbook.xml"

    @property
    def worksheet_path(self) -> str:
        """Entry name of the first worksheet.

        The first sheet listed in the workbook part is followed through the
        workbook relationships; if that fails, the first
        xl/worksheets/sheet*.xml entry in sorted order is used.

        Raises:
            StructuralError: If the workbook has no worksheet
        """
        workbook_path = self.workbook_path
        resolved = self._first_sheet_from_workbook(workbook_path)
        if resolved is not None:
            return resolved

        candidates = sorted(
            name
            for name in self._entries
            if re.match(r"^xl/worksheets/sheet[^/]*\.xml$", name)
        )
        if not candidates:
            raise StructuralError(self.part_name, "workbook contains no worksheet")
        logger.debug(f"Using first worksheet entry {candidates[0]} in {self.part_name}")
        return candidates[0]

    def _first_sheet_from_workbook(self, workbook_path: str) -> str | None:
        data = self._entries.get(workbook_path)
        if data is None:
            return None
        try:
            root = etree.fromstring(data)
        except etree.XMLSyntaxError:
            return None
        sheet = root.find(f"{x('sheets')}/{x('sheet')}")
        if sheet is None:
            return None
        rel_id = sheet.get(f"{{{OFFICE_RELATIONSHIPS_NAMESPACE}}}id")

        rels = self._entries.get(rels_part_for(workbook_path))
        if rel_id is None or rels is None:
            return None
        try:
            rels_root = etree.fromstring(rels)
        except etree.XMLSyntaxError:
            return None
        for rel in rels_root.iter(f"{{{PACKAGE_RELATIONSHIPS_NAMESPACE}}}Relationship"):
            if rel.get("Id") == rel_id and rel.get("Type") == REL_TYPE_WORKSHEET:
                target = resolve_part_target(workbook_path, rel.get("Target", ""))
                return target if target in self._entries else None
        return None

    @property
    def shared_strings_path(self) -> str | None:
        """Entry name of the shared-string table, or None if there is none."""
        for target in self._relationship_targets(self.workbook_path, REL_TYPE_SHARED_STRINGS):
            if target in self._entries:
                return target
        return "xl/sharedStrings.xml" if "xl/sharedStrings.xml" in self._entries else None

    @property
    def shared_strings(self) -> SharedStringTable | None:
        """The shared-string table, parsed fresh from the current entry."""
        path = self.shared_strings_path
        if path is None:
            return None
        return SharedStringTable.from_xml(self._entries[path])

    def write_chart_data(self, data: ChartData) -> None:
        """Replace the worksheet grid with a chart's data.

        With a shared-string table, names and categories are merged into it
        (existing indices untouched) and referenced by index; without one
        they are written as inline strings. The worksheet's dimension is
        recomputed.

        Raises:
            StructuralError: If the worksheet has no sheetData, or a
                dimension element without a ref attribute
        """
        sheet_path = self.worksheet_path
        sheet = self._entries[sheet_path].decode("utf-8")
        p = namespace_prefix(sheet, SPREADSHEET_NAMESPACE) or ""
        c_tag, v_tag, row_tag = qname(p, "c"), qname(p, "v"), qname(p, "row")

        strings_path = self.shared_strings_path
        table = self.shared_strings
        indexes: dict[str, int] | None = None
        if table is not None:
            indexes = table.merge([s.name for s in data.series] + list(data.categories))

        def string_cell(ref: str, text: str) -> str:
            if indexes is not None:
                return f'<{c_tag} r="{ref}" t="s"><{v_tag}>{indexes[text]}</{v_tag}></{c_tag}>'
            is_tag, t_tag = qname(p, "is"), qname(p, "t")
            space = ' xml:space="preserve"' if text != text.strip() else ""
            return (
                f'<{c_tag} r="{ref}" t="inlineStr"><{is_tag}>'
                f"<{t_tag}{space}>{escape(text)}</{t_tag}></{is_tag}></{c_tag}>"
            )

        def number_cell(ref: str, value: float) -> str:
            return f'<{c_tag} r="{ref}"><{v_tag}>{format_number(value)}</{v_tag}></{c_tag}>'

        last_column = column_letter(len(data.series) + 1)
        spans = f"1:{len(data.series) + 1}"

        rows = [f'<{row_tag} r="1" spans="{spans}">']
        for i, series in enumerate(data.series):
            rows.append(string_cell(f"{column_letter(i + 2)}1", series.name))
        rows.append(f"</{row_tag}>")
        for offset, category in enumerate(data.categories):
            row_number = offset + 2
            rows.append(f'<{row_tag} r="{row_number}" spans="{spans}">')
            rows.append(string_cell(f"A{row_number}", category))
            for i, series in enumerate(data.series):
                ref = f"{column_letter(i + 2)}{row_number}"
                rows.append(number_cell(ref, series.values[offset]))
            rows.append(f"</{row_tag}>")

        sheet_data_tag = qname(p, "sheetData")
        block = find_block(sheet, sheet_data_tag)
        if block is None:
            raise StructuralError(sheet_path, f"no <{sheet_data_tag}> element")
        open_tag = block.open_tag(sheet)
        if block.self_closing:
            open_tag = open_tag[:-2].rstrip() + ">"
        sheet = (
            sheet[: block.start]
            + open_tag
            + "".join(rows)
            + f"</{sheet_data_tag}>"
            + sheet[block.end :]
        )

        dimension = f"A1:{last_column}{len(data.categories) + 1}"
        sheet = self._set_dimension(sheet, p, dimension, sheet_path)

        self._entries[sheet_path] = sheet.encode("utf-8")
        if table is not None and strings_path is not None:
            table.set_reference_count(self._string_references())
            self._entries[strings_path] = table.to_xml()
        logger.debug(
            f"Rewrote {sheet_path} in {self.part_name}: "
            f"{len(data.series)} series x {len(data.categories)} categories"
        )

    def _string_references(self) -> int:
        """Count the cells of every worksheet that point into the shared-string table."""
        total = 0
        for name, data in self._entries.items():
            if name.startswith("xl/worksheets/") and name.endswith(".xml"):
                total += len(_SHARED_STRING_CELL.findall(data.decode("utf-8")))
        return total

    @staticmethod
    def _set_dimension(sheet: str, p: str, ref: str, sheet_path: str) -> str:
        dimension_tag = qname(p, "dimension")
        block = find_block(sheet, dimension_tag)
        if block is not None:
            open_tag = block.open_tag(sheet)
            if get_attribute(open_tag, "ref") is None:
                raise StructuralError(sheet_path, f"<{dimension_tag}> has no ref attribute")
            updated = set_attribute(open_tag, "ref", ref)
            return sheet[: block.start] + updated + sheet[block.inner_start :]

        for local in _AFTER_DIMENSION:
            index = find_open(sheet, qname(p, local))
            if index != -1:
                return sheet[:index] + f'<{dimension_tag} ref="{ref}"/>' + sheet[index:]
        raise StructuralError(sheet_path, f"no place to put <{dimension_tag}>")

    def read_chart_data(self) -> ChartData:
        """Read the grid back as chart data.

        Series names are read from row 1 starting at column B up to the first
        empty cell; categories from column A starting at row 2 up to the first
        empty cell.
        """
        sheet_path = self.worksheet_path
        try:
            root = etree.fromstring(self._entries[sheet_path])
        except etree.XMLSyntaxError as e:
            raise StructuralError(sheet_path, f"not well-formed: {e}") from e
        table = self.shared_strings
        strings = table.items if table is not None else []

        cells: dict[tuple[int, int], str] = {}
        for cell in root.iter(x("c")):
            match = _CELL_REF.match(cell.get("r", ""))
            if not match:
                continue
            key = (column_index(match.group(1)), int(match.group(2)))
            cell_type = cell.get("t")
            if cell_type == "inlineStr":
                cells[key] = "".join(t.text or "" for t in cell.iter(x("t")))
                continue
            v = cell.find(x("v"))
            text = (v.text or "") if v is not None else ""
            if cell_type == "s" and text.isdigit() and int(text) < len(strings):
                text = strings[int(text)]
            cells[key] = text

        names: list[str] = []
        column = 2
        while cells.get((column, 1)):
            names.append(cells[(column, 1)])
            column += 1
        categories: list[str] = []
        row = 2
        while (1, row) in cells:
            categories.append(cells[(1, row)])
            row += 1

        series = []
        for offset, name in enumerate(names):
            values = []
            for row in range(2, len(categories) + 2):
                raw = cells.get((offset + 2, row), "")
                try:
                    values.append(float(raw))
                except ValueError:
                    values.append(0.0)
            series.append(SeriesData(name=name, values=values))
        return ChartData(categories=categories, series=series)

    def to_bytes(self) -> bytes:
        """Zip the entries back into a workbook archive."""
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
            for name, data in self._entries.items():
                archive.writestr(name, data)
        return buffer.getvalue()
