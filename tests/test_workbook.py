"""Tests for embedded workbook grids and shared-string tables."""

import pytest
from docx_fixtures import LEGACY_STRING, SS_NS, workbook_bytes
from lxml import etree

from python_docx_splice.chart_data import ChartData, SeriesData
from python_docx_splice.errors import ExtractionError, StructuralError
from python_docx_splice.workbook import EmbeddedWorkbook, SharedStringTable, column_index

X = f"{{{SS_NS}}}"


def new_data() -> ChartData:
    return ChartData(
        categories=["Jan", "Feb", "Mar", "Apr"],
        series=[SeriesData("Revenue", [1, 2, 3, 4.5]), SeriesData("Margin", [9, 8, 7, 6])],
    )


def sheet_root(book: EmbeddedWorkbook) -> etree._Element:
    return etree.fromstring(book.read_entry("xl/worksheets/sheet1.xml"))


class TestSharedStringTable:
    """Tests for the append-only shared-string table."""

    def test_merge_keeps_existing_indexes(self):
        """Test that strings already present keep their index."""
        book = EmbeddedWorkbook.from_bytes(workbook_bytes())
        table = book.shared_strings
        before = table.items
        indexes = table.merge(["Q2", "Brand new"])

        assert indexes["Q2"] == before.index("Q2")
        assert indexes["Brand new"] == len(before)
        assert table.items[: len(before)] == before

    def test_merge_is_idempotent(self):
        """Test that merging the same strings twice adds nothing."""
        table = EmbeddedWorkbook.from_bytes(workbook_bytes()).shared_strings
        table.merge(["X", "Y"])
        size = len(table)
        table.merge(["X", "Y"])
        assert len(table) == size

    def test_counts_follow_size(self):
        """Test that uniqueCount follows the size and count never drops below it."""
        table = EmbeddedWorkbook.from_bytes(workbook_bytes()).shared_strings
        table.merge(["Z"])
        root = etree.fromstring(table.to_xml())
        assert root.get("count") == str(len(table))
        assert root.get("uniqueCount") == str(len(table))

    def test_count_tracks_cell_references(self):
        """Test that count is the number of cells pointing into the table."""
        book = EmbeddedWorkbook.from_bytes(workbook_bytes())
        book.write_chart_data(new_data())
        table = book.shared_strings
        root = etree.fromstring(table.to_xml())
        # two series names and four categories
        assert root.get("count") == "6"
        assert root.get("uniqueCount") == str(len(table))
        assert len(table) > 6

    def test_preserves_surrounding_space(self):
        """Test that strings with edge whitespace get xml:space."""
        table = SharedStringTable.from_xml(f'<sst xmlns="{SS_NS}"/>'.encode())
        table.add(" padded ")
        assert b'xml:space="preserve"' in table.to_xml()
        assert table.index_of(" padded ") == 0

    def test_malformed(self):
        """Test that a broken table is a StructuralError."""
        with pytest.raises(StructuralError):
            SharedStringTable.from_xml(b"<sst")


class TestWriteChartData:
    """Tests for rewriting the worksheet grid."""

    def test_grid_layout(self):
        """Test that names run along row 1 and categories down column A."""
        book = EmbeddedWorkbook.from_bytes(workbook_bytes())
        book.write_chart_data(new_data())

        assert book.read_chart_data() == new_data()
        refs = [cell.get("r") for cell in sheet_root(book).iter(f"{X}c")]
        assert "A1" not in refs
        assert refs[:2] == ["B1", "C1"]
        assert "A5" in refs

    def test_dimension_updated(self):
        """Test that the dimension covers the new grid."""
        book = EmbeddedWorkbook.from_bytes(workbook_bytes())
        book.write_chart_data(new_data())
        assert sheet_root(book).find(f"{X}dimension").get("ref") == "A1:C5"

    def test_missing_dimension_inserted(self):
        """Test that a worksheet without a dimension gets one before sheetViews."""
        book = EmbeddedWorkbook.from_bytes(workbook_bytes(with_dimension=False))
        book.write_chart_data(new_data())
        root = sheet_root(book)
        assert root[0].tag == f"{X}dimension"
        assert root[0].get("ref") == "A1:C5"

    def test_dimension_without_ref(self):
        """Test that a dimension element lacking ref is a StructuralError."""
        data = workbook_bytes()
        book = EmbeddedWorkbook.from_bytes(data)
        sheet = book.read_entry("xl/worksheets/sheet1.xml").replace(
            b'<dimension ref="A1:C4"/>', b"<dimension/>"
        )
        entries = {name: book.read_entry(name) for name in book.entry_names}
        entries["xl/worksheets/sheet1.xml"] = sheet
        with pytest.raises(StructuralError):
            EmbeddedWorkbook(entries).write_chart_data(new_data())

    def test_unreferenced_strings_survive(self):
        """Test that table entries no cell uses are kept."""
        book = EmbeddedWorkbook.from_bytes(workbook_bytes())
        book.write_chart_data(new_data())
        book.write_chart_data(new_data())
        items = book.shared_strings.items
        assert LEGACY_STRING in items
        assert items.count("Jan") == 1

    def test_other_entries_untouched(self):
        """Test that entries other than the sheet and table are byte-identical."""
        original = EmbeddedWorkbook.from_bytes(workbook_bytes())
        book = EmbeddedWorkbook.from_bytes(workbook_bytes())
        book.write_chart_data(new_data())
        rewritten = EmbeddedWorkbook.from_bytes(book.to_bytes())

        assert rewritten.entry_names == original.entry_names
        for name in ("xl/workbook.xml", "_rels/.rels", "[Content_Types].xml"):
            assert rewritten.read_entry(name) == original.read_entry(name)

    def test_inline_strings_without_table(self):
        """Test that a workbook without shared strings gets inline strings."""
        book = EmbeddedWorkbook.from_bytes(workbook_bytes())
        entries = {
            name: book.read_entry(name)
            for name in book.entry_names
            if name != "xl/sharedStrings.xml"
        }
        book = EmbeddedWorkbook(entries)
        book.write_chart_data(new_data())
        assert b't="inlineStr"' in book.read_entry("xl/worksheets/sheet1.xml")
        assert book.read_chart_data() == new_data()


class TestCreate:
    """Tests for building a new workbook."""

    def test_create(self):
        """Test that a created workbook reads back its data."""
        book = EmbeddedWorkbook.create(new_data())
        reopened = EmbeddedWorkbook.from_bytes(book.to_bytes())
        assert reopened.read_chart_data() == new_data()
        assert reopened.worksheet_path == "xl/worksheets/sheet1.xml"
        assert reopened.shared_strings_path == "xl/sharedStrings.xml"

    def test_not_a_zip(self):
        """Test that non-archive bytes raise ExtractionError."""
        with pytest.raises(ExtractionError):
            EmbeddedWorkbook.from_bytes(b"not a workbook")


class TestColumnIndex:
    """Tests for column letter parsing."""

    def test_column_index(self):
        """Test converting letters to numbers."""
        assert column_index("A") == 1
        assert column_index("Z") == 26
        assert column_index("AB") == 28
