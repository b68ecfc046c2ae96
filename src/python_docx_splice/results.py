"""
Result classes for chart operations.

This module provides the types returned by chart updates and lookups so
callers can see which parts were touched and how they were found.
"""

from dataclasses import dataclass
from enum import Enum


class WorkbookResolution(str, Enum):
    """How the embedded workbook behind a chart was located."""

    RELATIONSHIP = "relationship"
    HEURISTIC = "heuristic"


@dataclass
class WorkbookLocation:
    """Where a chart's embedded workbook lives.

    Attributes:
        part_name: Package part name of the .xlsx (e.g. "word/embeddings/x.xlsx")
        resolution: Whether the chart's own relationship or the fallback found it
        rel_id: Relationship id on the chart part, when resolved through it
    """

    part_name: str
    resolution: WorkbookResolution
    rel_id: str | None = None

    @property
    def is_heuristic(self) -> bool:
        """Whether the fallback guess was used instead of the chart's relationship."""
        return self.resolution is WorkbookResolution.HEURISTIC


@dataclass
class ChartUpdateResult:
    """Result of rewriting a chart and its workbook.

    Attributes:
        chart_index: 1-based index of the chart that was updated
        chart_part: Part name of the chart XML
        workbook: Location of the workbook that was rewritten
        series_updated: Number of series blocks rewritten
        series_preserved: Number of trailing series blocks left untouched
    """

    chart_index: int
    chart_part: str
    workbook: WorkbookLocation
    series_updated: int
    series_preserved: int = 0

    def __str__(self) -> str:
        """Get string representation of the result."""
        message = (
            f"Updated chart {self.chart_index}: {self.series_updated} series, "
            f"workbook {self.workbook.part_name} ({self.workbook.resolution.value})"
        )
        if self.series_preserved:
            message += f", {self.series_preserved} series left unchanged"
        return message


@dataclass
class ChartInfo:
    """Summary of one chart part.

    Attributes:
        index: 1-based chart index
        part_name: Part name of the chart XML
        title: Chart title text, if the chart has one
        series_count: Number of series in the chart
        workbook: Part name of the embedded workbook, if one could be found
    """

    index: int
    part_name: str
    title: str | None
    series_count: int
    workbook: str | None = None

    def __str__(self) -> str:
        """Get string representation of the chart summary."""
        title = f'"{self.title}"' if self.title else "(untitled)"
        workbook = self.workbook or "no workbook"
        return f"{self.index}: {self.part_name} {title}, {self.series_count} series, {workbook}"
