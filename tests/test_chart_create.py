"""Tests for creating new charts with their workbooks and drawings."""

from pathlib import Path

import pytest
from docx_fixtures import CT_NS, PKG_RELS_NS, REL_CHART, REL_PACKAGE, read_entry
from lxml import etree

from python_docx_splice import Document
from python_docx_splice.chart_data import ChartData, ChartKind, ChartOptions, SeriesData
from python_docx_splice.constants import CT_CHART, CT_XLSX
from python_docx_splice.errors import AnchorNotFoundError, StructuralError, ValidationError
from python_docx_splice.operations import StructureOperations
from python_docx_splice.splicer import InsertPosition


def options(**overrides) -> ChartOptions:
    data = ChartData(
        categories=["2022", "2023", "2024"],
        series=[SeriesData("Users", [120, 150, 210]), SeriesData("Churn", [5, 7, 4.5])],
        title="Growth",
    )
    values = {"data": data}
    values.update(overrides)
    return ChartOptions(**values)


def overrides(content_types: bytes) -> dict[str, str]:
    root = etree.fromstring(content_types)
    return {o.get("PartName"): o.get("ContentType") for o in root.iter(f"{{{CT_NS}}}Override")}


def relationships(rels: bytes) -> dict[str, tuple[str, str]]:
    root = etree.fromstring(rels)
    return {
        rel.get("Id"): (rel.get("Type"), rel.get("Target"))
        for rel in root.iter(f"{{{PKG_RELS_NS}}}Relationship")
    }


class TestCreateChart:
    """Tests for Document.create_chart."""

    def test_create_registers_every_part(self, chart_docx: Path, tmp_path: Path):
        """Test that the chart, workbook, relationships and content types all agree."""
        output = tmp_path / "created.docx"
        with Document(chart_docx) as doc:
            index = doc.create_chart(options())
            doc.save(output)

        assert index == 2
        types = overrides(read_entry(output, "[Content_Types].xml"))
        assert types["/word/charts/chart2.xml"] == CT_CHART
        assert types["/word/embeddings/Microsoft_Excel_Worksheet2.xlsx"] == CT_XLSX

        document_rels = relationships(read_entry(output, "word/_rels/document.xml.rels"))
        assert document_rels["rId6"] == (REL_CHART, "charts/chart2.xml")

        chart_rels = relationships(read_entry(output, "word/charts/_rels/chart2.xml.rels"))
        assert chart_rels["rId1"] == (REL_PACKAGE, "../embeddings/Microsoft_Excel_Worksheet2.xlsx")

        body = read_entry(output, "word/document.xml").decode("utf-8")
        assert 'r:id="rId6"' in body
        assert body.index("Closing remarks") < body.index('r:id="rId6"') < body.index("<w:sectPr>")

    def test_created_chart_reads_back(self, chart_docx: Path, tmp_path: Path):
        """Test that a reopened document sees the new chart and its workbook."""
        output = tmp_path / "created.docx"
        with Document(chart_docx) as doc:
            doc.create_chart(options(kind=ChartKind.LINE))
            doc.save(output)

        with Document(output) as doc:
            assert doc.chart_indexes() == [1, 2]
            assert doc.get_chart_data(2).categories == ["2022", "2023", "2024"]
            location = doc.find_workbook(2, strict=True)
            assert location.part_name == "word/embeddings/Microsoft_Excel_Worksheet2.xlsx"
            workbook = doc.get_workbook_data(2)
            assert workbook.series[1].values == [5.0, 7.0, 4.5]

    def test_drawing_ids_are_unique(self, chart_docx: Path):
        """Test that the new drawing gets a docPr id above the existing ones."""
        with Document(chart_docx) as doc:
            doc.create_chart(options(position=InsertPosition.START))
            body = doc.package.read_text("word/document.xml")
        assert body.count('id="7"') == 1
        assert 'id="8" name="Chart 2"' in body

    def test_after_anchor(self, chart_docx: Path):
        """Test placing the drawing after the paragraph holding the anchor."""
        with Document(chart_docx) as doc:
            doc.create_chart(
                options(position=InsertPosition.AFTER_TEXT, anchor="Quarterly Report")
            )
            body = doc.package.read_text("word/document.xml")
        assert body.index("Quarterly Report") < body.index('name="Chart 2"')
        assert body.index('name="Chart 2"') < body.index("Revenue grew")

    def test_escaped_anchor(self, chart_docx: Path):
        """Test anchors containing characters that are escaped in the body."""
        with Document(chart_docx) as doc:
            doc.create_chart(
                options(position=InsertPosition.BEFORE_TEXT, anchor="Revenue grew & costs")
            )
            body = doc.package.read_text("word/document.xml")
        assert body.index('name="Chart 2"') < body.index("Revenue grew")

    def test_missing_anchor_writes_nothing(self, chart_docx: Path):
        """Test that an unknown anchor fails before any part is written."""
        with Document(chart_docx) as doc:
            parts_before = doc.package.iter_parts()
            body_before = doc.package.read_bytes("word/document.xml")
            with pytest.raises(AnchorNotFoundError):
                doc.create_chart(options(position=InsertPosition.AFTER_TEXT, anchor="Nowhere"))
            assert doc.package.iter_parts() == parts_before
            assert doc.package.read_bytes("word/document.xml") == body_before

    def test_invalid_options(self, chart_docx: Path):
        """Test that invalid options are rejected up front."""
        with Document(chart_docx) as doc:
            with pytest.raises(ValidationError):
                doc.create_chart(options(legend_position="middle"))
            assert doc.chart_count == 1

    def test_failure_rolls_back(self, chart_docx: Path, monkeypatch):
        """Test that a failing final step undoes every earlier step."""

        def fail(*args, **kwargs):
            raise StructuralError("word/document.xml", "simulated failure")

        monkeypatch.setattr(StructureOperations, "insert_chart_drawing", fail)
        with Document(chart_docx) as doc:
            package = doc.package
            parts_before = package.iter_parts()
            saved = {
                name: package.read_bytes(name)
                for name in ("[Content_Types].xml", "word/_rels/document.xml.rels")
            }
            with pytest.raises(StructuralError):
                doc.create_chart(options())

            assert package.iter_parts() == parts_before
            for name, data in saved.items():
                assert package.read_bytes(name) == data

    def test_blank_document(self, tmp_path: Path):
        """Test creating a chart in a new document."""
        output = tmp_path / "new.docx"
        with Document() as doc:
            assert doc.create_chart(options(kind=ChartKind.PIE)) == 1
            doc.save(output)

        with Document(output) as doc:
            assert doc.chart_count == 1
            assert doc.find_workbook(1).part_name == (
                "word/embeddings/Microsoft_Excel_Worksheet1.xlsx"
            )
        document_rels = relationships(read_entry(output, "word/_rels/document.xml.rels"))
        assert document_rels["rId1"] == (REL_CHART, "charts/chart1.xml")

    def test_workbook_name_taken(self, chart_docx: Path):
        """Test that an existing workbook name is not reused."""
        with Document(chart_docx) as doc:
            doc.package.write_bytes("word/embeddings/Microsoft_Excel_Worksheet2.xlsx", b"taken")
            doc.create_chart(options())
            assert doc.find_workbook(2).part_name == (
                "word/embeddings/Microsoft_Excel_Worksheet3.xlsx"
            )
