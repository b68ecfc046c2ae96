"""Shared pytest fixtures."""

from pathlib import Path

import pytest
from docx_fixtures import create_chart_docx, create_text_docx, workbook_bytes


@pytest.fixture
def chart_docx(tmp_path: Path) -> Path:
    """A document with one chart linked to its workbook by relationship."""
    return create_chart_docx(tmp_path / "chart.docx")


@pytest.fixture
def unlinked_chart_docx(tmp_path: Path) -> Path:
    """A document whose chart has no workbook relationship and two embedded workbooks."""
    return create_chart_docx(
        tmp_path / "unlinked.docx",
        workbook_rel=False,
        embeddings={
            "Microsoft_Excel_Worksheet_b.xlsx": workbook_bytes(),
            "Microsoft_Excel_Worksheet_a.xlsx": workbook_bytes(),
        },
    )


@pytest.fixture
def text_docx(tmp_path: Path) -> Path:
    """A document with two plain paragraphs."""
    return create_text_docx(tmp_path / "text.docx")
