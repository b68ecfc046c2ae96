"""
ChartOperations class for reading, updating, creating and copying charts.

A chart lives in several parts at once: the chart XML with its cached
values, the embedded workbook that holds the editable source data, the
chart's relationships, the content types, and the drawing in the document
body that shows it. The operations here keep those parts consistent.
"""

from __future__ import annotations

import logging
import posixpath
import re
from typing import TYPE_CHECKING

from ..chart_data import ChartData, ChartOptions
from ..chart_xml import (
    external_data_rel_id,
    generate_chart_xml,
    read_chart_data,
    series_count,
    set_external_data_rel_id,
    update_chart_markup,
)
from ..constants import (
    CHART_PART_TEMPLATE,
    CHARTS_DIR,
    CONTENT_TYPES_PART,
    CT_CHART,
    CT_XLSX,
    DEFAULT_CHART_HEIGHT,
    DEFAULT_CHART_WIDTH,
    DOCUMENT_PART,
    EMBEDDINGS_DIR,
    REL_TYPE_CHART,
    REL_TYPE_PACKAGE,
    WORKBOOK_NAME_TEMPLATE,
)
from ..content_types import ContentTypeManager
from ..errors import (
    ChartNotFoundError,
    RelationshipNotFoundError,
    ValidationError,
    WorkbookNotFoundError,
)
from ..journal import MutationJournal
from ..relationships import RelationshipManager, rels_part_for, relative_target
from ..results import ChartInfo, ChartUpdateResult, WorkbookLocation, WorkbookResolution
from ..splicer import InsertPosition, locate
from ..workbook import EmbeddedWorkbook
from .structure import StructureOperations

if TYPE_CHECKING:
    from ..document import Document

logger = logging.getLogger(__name__)

_CHART_PART = re.compile(r"chart(\d+)\.xml$")
_WORKBOOK_NAME = re.compile(r"^(?P<stem>.*?)(?P<number>\d*)(?P<suffix>\.[^.]+)$")
_EXTENT = re.compile(r"<(?:[\w.-]+:)?extent\b[^>]*?\bcx=\"(\d+)\"[^>]*?\bcy=\"(\d+)\"")


class ChartOperations:
    """Handles chart operations on a document.

    This class encapsulates:
    - Listing charts and reading their cached data
    - Locating the embedded workbook behind a chart
    - Rewriting a chart's caches and workbook from new data
    - Creating new charts and copying existing ones
    """

    def __init__(self, document: Document) -> None:
        """Initialize ChartOperations.

        Args:
            document: The Document instance to operate on
        """
        self._document = document

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def chart_indexes(self) -> list[int]:
        """Get the indexes of every chart part, in ascending order."""
        indexes = []
        for part_name in self._document.package.list_parts(CHARTS_DIR, "chart*.xml"):
            match = _CHART_PART.search(part_name)
            if match:
                indexes.append(int(match.group(1)))
        return sorted(indexes)

    def chart_count(self) -> int:
        """Get the number of chart parts in the package."""
        return len(self.chart_indexes())

    def _chart_part(self, index: int) -> str:
        """Resolve a chart index to its part name.

        Raises:
            ValidationError: If the index is not a positive integer
            ChartNotFoundError: If there is no chart part with that index
        """
        if isinstance(index, bool) or not isinstance(index, int) or index < 1:
            raise ValidationError(f"Chart index must be a positive integer, got {index!r}")
        part_name = CHART_PART_TEMPLATE.format(index=index)
        if not self._document.package.part_exists(part_name):
            raise ChartNotFoundError(index, self.chart_indexes())
        return part_name

    def find_workbook(self, index: int, strict: bool = False) -> WorkbookLocation:
        """Locate the embedded workbook behind a chart.

        The chart's externalData relationship is followed first. When the
        chart has no usable relationship, the first workbook under
        word/embeddings/ (sorted by name) is used instead and a warning is
        logged, unless strict is set.

        Args:
            index: 1-based chart index
            strict: Refuse the fallback guess

        Returns:
            WorkbookLocation describing where the workbook is and how it was found

        Raises:
            ChartNotFoundError: If the chart does not exist
            WorkbookNotFoundError: If no workbook can be located
        """
        package = self._document.package
        chart_part = self._chart_part(index)
        rel_id = external_data_rel_id(package.read_text(chart_part))

        if rel_id is not None:
            try:
                target = RelationshipManager(package, chart_part).resolve_target(rel_id)
            except RelationshipNotFoundError:
                logger.debug(f"{chart_part} references undeclared relationship {rel_id}")
            else:
                if not package.is_inside(target):
                    logger.warning(
                        f"{chart_part} relationship {rel_id} points outside the package "
                        f"({target}); ignoring it"
                    )
                elif package.part_exists(target):
                    return WorkbookLocation(target, WorkbookResolution.RELATIONSHIP, rel_id)
                else:
                    logger.debug(f"{chart_part} relationship {rel_id} points at missing {target}")

        if strict:
            raise WorkbookNotFoundError(chart_part, "the chart has no valid workbook relationship")

        candidates = package.list_parts(EMBEDDINGS_DIR, "*.xlsx")
        if not candidates:
            raise WorkbookNotFoundError(chart_part, f"no .xlsx parts under {EMBEDDINGS_DIR}/")
        logger.warning(
            f"No workbook relationship on {chart_part}; "
            f"guessing {candidates[0]} from {len(candidates)} embedded workbook(s)"
        )
        return WorkbookLocation(candidates[0], WorkbookResolution.HEURISTIC)

    def get_chart_data(self, index: int) -> ChartData:
        """Read a chart's cached categories, series and titles.

        Raises:
            ChartNotFoundError: If the chart does not exist
        """
        package = self._document.package
        return read_chart_data(package.read_bytes(self._chart_part(index)))

    def get_workbook_data(self, index: int, strict: bool = False) -> ChartData:
        """Read the data grid of a chart's embedded workbook.

        Raises:
            ChartNotFoundError: If the chart does not exist
            WorkbookNotFoundError: If no workbook can be located
        """
        location = self.find_workbook(index, strict)
        data = self._document.package.read_bytes(location.part_name)
        return EmbeddedWorkbook.from_bytes(data, location.part_name).read_chart_data()

    def list_charts(self) -> list[ChartInfo]:
        """Summarize every chart in the package."""
        charts = []
        for index in self.chart_indexes():
            part_name = CHART_PART_TEMPLATE.format(index=index)
            xml = self._document.package.read_bytes(part_name)
            try:
                workbook: str | None = self.find_workbook(index).part_name
            except WorkbookNotFoundError:
                workbook = None
            charts.append(
                ChartInfo(
                    index=index,
                    part_name=part_name,
                    title=read_chart_data(xml).title,
                    series_count=series_count(xml),
                    workbook=workbook,
                )
            )
        return charts

    # -------------------------------------------------------------------------
    # Update
    # -------------------------------------------------------------------------

    def update_chart(self, index: int, data: ChartData, strict: bool = False) -> ChartUpdateResult:
        """Replace a chart's data in both its caches and its embedded workbook.

        Both new parts are computed in memory before anything is written. The
        chart part is written first; if the workbook write then fails, the
        chart part is restored and the error propagates.

        Args:
            index: 1-based chart index
            data: New categories, series and optional titles
            strict: Refuse to guess the workbook when the chart has no relationship

        Returns:
            ChartUpdateResult describing what was rewritten

        Raises:
            ValidationError: If the data is malformed or has more series than the chart
            ChartNotFoundError: If the chart does not exist
            WorkbookNotFoundError: If no workbook can be located
            StructuralError: If the chart or workbook is missing expected markup
        """
        data.validate()
        package = self._document.package
        chart_part = self._chart_part(index)

        update = update_chart_markup(package.read_text(chart_part), data, chart_part)
        location = self.find_workbook(index, strict)
        workbook = EmbeddedWorkbook.from_bytes(
            package.read_bytes(location.part_name), location.part_name
        )
        workbook.write_chart_data(data)
        workbook_bytes = workbook.to_bytes()

        with MutationJournal(package) as journal:
            journal.snapshot(chart_part, f"rewrite caches of {chart_part}")
            package.write_text(chart_part, update.markup)
            journal.snapshot(location.part_name, f"rewrite workbook {location.part_name}")
            package.write_bytes(location.part_name, workbook_bytes)

        logger.debug(
            f"Updated {chart_part}: {update.series_updated} series written, "
            f"{update.series_preserved} preserved"
        )
        return ChartUpdateResult(
            chart_index=index,
            chart_part=chart_part,
            workbook=location,
            series_updated=update.series_updated,
            series_preserved=update.series_preserved,
        )

    # -------------------------------------------------------------------------
    # Create and copy
    # -------------------------------------------------------------------------

    def _next_chart_index(self) -> int:
        return max(self.chart_indexes(), default=0) + 1

    def _unique_workbook_part(self, index: int, template: str | None = None) -> str:
        """Pick an unused workbook part name for a chart index.

        The number in the template's file name is replaced by the chart index
        and bumped until the name is free.
        """
        name = posixpath.basename(template) if template else WORKBOOK_NAME_TEMPLATE.format(index=1)
        match = _WORKBOOK_NAME.match(name)
        stem, suffix = (match.group("stem"), match.group("suffix")) if match else (name, "")

        package = self._document.package
        number = index
        while True:
            part_name = f"{EMBEDDINGS_DIR}/{stem}{number}{suffix}"
            if not package.part_exists(part_name):
                return part_name
            number += 1

    def _check_position(self, position: InsertPosition, anchor: str | None) -> None:
        """Fail before any write when the drawing could not be placed."""
        markup = self._document.package.read_text(DOCUMENT_PART)
        locate(markup, position, anchor, DOCUMENT_PART)

    def create_chart(self, options: ChartOptions) -> int:
        """Create a new chart with its workbook and show it in the body.

        The parts are written in order (workbook, chart, chart relationships,
        content types, document relationships, drawing). If any step fails,
        the completed steps are undone in reverse order.

        Args:
            options: Data, plot type, size and placement of the new chart

        Returns:
            The 1-based index of the new chart

        Raises:
            ValidationError: If the options are malformed
            AnchorNotFoundError: If the anchor text does not occur in the body
            StructuralError: If the body delimiters are missing
        """
        options.validate()
        position = InsertPosition(options.position)
        self._check_position(position, options.anchor)

        package = self._document.package
        index = self._next_chart_index()
        chart_part = CHART_PART_TEMPLATE.format(index=index)
        workbook_part = self._unique_workbook_part(index)

        with MutationJournal(package) as journal:
            journal.snapshot(workbook_part, f"create workbook {workbook_part}")
            workbook = EmbeddedWorkbook.create(options.data, workbook_part)
            package.write_bytes(workbook_part, workbook.to_bytes())

            chart_rels = RelationshipManager(package, chart_part)
            workbook_rel_id = chart_rels.add_relationship(
                REL_TYPE_PACKAGE, relative_target(chart_part, workbook_part)
            )
            journal.snapshot(chart_part, f"create chart {chart_part}")
            package.write_bytes(chart_part, generate_chart_xml(options, workbook_rel_id))

            journal.snapshot(chart_rels.rels_part, f"create {chart_rels.rels_part}")
            chart_rels.save()

            content_types = ContentTypeManager(package)
            journal.snapshot(CONTENT_TYPES_PART, "register chart content types")
            content_types.add_override(chart_part, CT_CHART)
            content_types.add_override(workbook_part, CT_XLSX)
            content_types.save()

            document_rels = RelationshipManager(package, DOCUMENT_PART)
            journal.snapshot(document_rels.rels_part, "add chart relationship to document")
            chart_rel_id = document_rels.add_relationship(
                REL_TYPE_CHART, relative_target(DOCUMENT_PART, chart_part)
            )
            document_rels.save()

            journal.snapshot(DOCUMENT_PART, "insert chart drawing")
            StructureOperations(self._document).insert_chart_drawing(
                index, chart_rel_id, options.width, options.height, position, options.anchor
            )

        logger.debug(f"Created {chart_part} with workbook {workbook_part}")
        return index

    def _source_extent(self, markup: str, rel_marker: str) -> tuple[int, int]:
        """Read the drawing size of the paragraph that shows a chart."""
        at = markup.find(rel_marker)
        extents = _EXTENT.findall(markup, 0, at) if at != -1 else []
        if not extents:
            return DEFAULT_CHART_WIDTH, DEFAULT_CHART_HEIGHT
        cx, cy = extents[-1]
        return int(cx), int(cy)

    def copy_chart(
        self,
        source_index: int,
        anchor: str | None = None,
        position: InsertPosition | str = InsertPosition.AFTER_TEXT,
    ) -> int:
        """Duplicate a chart, its relationships and its workbook.

        Without an anchor, the copy's drawing is placed right after the
        paragraph that shows the source chart (or at the end of the body if
        the source chart is not shown). The copy keeps the source's drawing
        size.

        Args:
            source_index: 1-based index of the chart to copy
            anchor: Text to place the copy relative to
            position: Placement relative to the anchor, or START / END

        Returns:
            The 1-based index of the new chart

        Raises:
            ChartNotFoundError: If the source chart does not exist
            AnchorNotFoundError: If the anchor text does not occur in the body
        """
        package = self._document.package
        source_part = self._chart_part(source_index)
        position = InsertPosition(position)

        document_markup = package.read_text(DOCUMENT_PART)
        document_rels = RelationshipManager(package, DOCUMENT_PART)
        source_rel_id = document_rels.find_by_target(source_part)
        source_marker = f'id="{source_rel_id}"' if source_rel_id else None

        if position.needs_anchor and anchor is None:
            if source_marker and source_marker in document_markup:
                anchor = source_marker
            else:
                logger.warning(f"{source_part} is not shown in the body; appending the copy")
                position = InsertPosition.END
        self._check_position(position, anchor)

        width, height = (DEFAULT_CHART_WIDTH, DEFAULT_CHART_HEIGHT)
        if source_marker:
            width, height = self._source_extent(document_markup, source_marker)

        try:
            source_workbook: WorkbookLocation | None = self.find_workbook(source_index)
        except WorkbookNotFoundError:
            logger.warning(f"{source_part} has no embedded workbook; copying the chart alone")
            source_workbook = None

        index = self._next_chart_index()
        chart_part = CHART_PART_TEMPLATE.format(index=index)

        with MutationJournal(package) as journal:
            journal.snapshot(chart_part, f"copy {source_part} to {chart_part}")
            package.copy_part(source_part, chart_part)

            chart_rels_part = rels_part_for(chart_part)
            journal.snapshot(chart_rels_part, f"create {chart_rels_part}")
            if package.part_exists(rels_part_for(source_part)):
                package.copy_part(rels_part_for(source_part), chart_rels_part)

            workbook_part = None
            if source_workbook is not None:
                workbook_part = self._unique_workbook_part(index, source_workbook.part_name)
                journal.snapshot(workbook_part, f"copy workbook to {workbook_part}")
                package.copy_part(source_workbook.part_name, workbook_part)
                self._link_workbook(chart_part, workbook_part, source_workbook)

            content_types = ContentTypeManager(package)
            journal.snapshot(CONTENT_TYPES_PART, "register copied chart content types")
            content_types.add_override(chart_part, CT_CHART)
            if workbook_part is not None and (
                content_types.has_override(source_workbook.part_name)
                or content_types.get_content_type(workbook_part) is None
            ):
                workbook_type = content_types.get_content_type(source_workbook.part_name)
                content_types.add_override(workbook_part, workbook_type or CT_XLSX)
            content_types.save()

            journal.snapshot(document_rels.rels_part, "add copied chart relationship")
            chart_rel_id = document_rels.add_relationship(
                REL_TYPE_CHART, relative_target(DOCUMENT_PART, chart_part)
            )
            document_rels.save()

            journal.snapshot(DOCUMENT_PART, "insert copied chart drawing")
            StructureOperations(self._document).insert_chart_drawing(
                index, chart_rel_id, width, height, position, anchor
            )

        logger.debug(f"Copied chart {source_index} to {chart_part}")
        return index

    def _link_workbook(
        self, chart_part: str, workbook_part: str, source_workbook: WorkbookLocation
    ) -> None:
        """Point a copied chart's external data at its own copy of the workbook."""
        package = self._document.package
        chart_rels = RelationshipManager(package, chart_part)
        target = relative_target(chart_part, workbook_part)

        if source_workbook.rel_id is not None:
            chart_rels.set_target(source_workbook.rel_id, target)
        else:
            markup = package.read_text(chart_part)
            if external_data_rel_id(markup) is None:
                logger.debug(f"{chart_part} has no externalData element to relink")
                return
            rel_id = chart_rels.add_relationship(REL_TYPE_PACKAGE, target)
            package.write_text(chart_part, set_external_data_rel_id(markup, rel_id, chart_part))
        chart_rels.save()
