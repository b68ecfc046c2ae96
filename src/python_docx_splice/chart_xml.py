"""
Reading, rewriting and generating chart parts (word/charts/chartN.xml).

Updates rewrite the cached data of existing series blocks in place through
the markup scanner, leaving every other byte of the part as it was. Reads and
new charts go through lxml.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from lxml import etree

from .chart_data import (
    AxisOptions,
    ChartData,
    ChartKind,
    ChartOptions,
    DataLabelOptions,
    SeriesData,
    format_number,
    is_number,
)
from .constants import (
    A_NAMESPACE,
    CATEGORY_AXIS_ID,
    CHART_NAMESPACE,
    DEFAULT_SHEET_NAME,
    OFFICE_RELATIONSHIPS_NAMESPACE,
    VALUE_AXIS_ID,
    a,
    c,
    r,
)
from .errors import StructuralError, ValidationError
from .markup import (
    Block,
    escape,
    find_block,
    find_blocks,
    get_attribute,
    namespace_prefix,
    qname,
    set_attribute,
    unescape,
)

logger = logging.getLogger(__name__)

# Sheet1!$A$2:$A$4, 'My Sheet'!$B$1
_CELL_RANGE = re.compile(
    r"^(?P<sheet>'[^']+'|[^!]+)!\$?(?P<col1>[A-Z]{1,3})\$?(?P<row1>\d+)"
    r"(?::\$?(?P<col2>[A-Z]{1,3})\$?(?P<row2>\d+))?$"
)

# Point containers a category or value section may hold
_CACHE_TAGS = ("strCache", "numCache", "strLit", "numLit")


def column_letter(index: int) -> str:
    """Convert a 1-based column number to its spreadsheet letters (1 -> A, 27 -> AA)."""
    letters = ""
    while index > 0:
        index, remainder = divmod(index - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


@dataclass
class ChartCacheUpdate:
    """Outcome of rewriting a chart part's caches in memory.

    Attributes:
        markup: The rewritten chart part
        series_updated: Number of series blocks rewritten
        series_preserved: Number of trailing series blocks left untouched
    """

    markup: str
    series_updated: int
    series_preserved: int


def chart_prefix(markup: str, part_name: str = "chart") -> str:
    """Return the prefix bound to the chart namespace in a chart part.

    Raises:
        StructuralError: If the chart namespace is not declared
    """
    prefix = namespace_prefix(markup, CHART_NAMESPACE)
    if prefix is None:
        raise StructuralError(part_name, "chart namespace is not declared")
    return prefix


def _external_data_reference(markup: str) -> tuple[Block, str, str] | None:
    """Find the externalData element with its id attribute name and value."""
    prefix = namespace_prefix(markup, CHART_NAMESPACE)
    block = find_block(markup, qname(prefix or "c", "externalData"))
    if block is None:
        return None
    open_tag = block.open_tag(markup)

    r_prefix = namespace_prefix(markup, OFFICE_RELATIONSHIPS_NAMESPACE)
    candidates = [qname(r_prefix, "id")] if r_prefix else []
    candidates += ["r:id", "relationships:id"]
    for attribute in candidates:
        rel_id = get_attribute(open_tag, attribute)
        if rel_id:
            return block, attribute, rel_id
    return None


def external_data_rel_id(markup: str) -> str | None:
    """Get the relationship id of the chart's external data reference.

    Returns:
        The id (e.g., "rId1"), or None when the chart declares no external data
    """
    reference = _external_data_reference(markup)
    return reference[2] if reference else None


def set_external_data_rel_id(markup: str, rel_id: str, part_name: str = "chart") -> str:
    """Point the chart's external data reference at another relationship id.

    Raises:
        StructuralError: If the chart has no external data reference
    """
    reference = _external_data_reference(markup)
    if reference is None:
        raise StructuralError(part_name, "no externalData reference")
    block, attribute, _ = reference
    open_tag = block.open_tag(markup)
    updated_tag = set_attribute(open_tag, attribute, rel_id)
    return markup[: block.start] + updated_tag + markup[block.inner_start :]


# =============================================================================
# In-place cache rewriting
# =============================================================================


def _realign_formula(formula: str, column: str, first_row: int, last_row: int | None) -> str:
    """Point a simple cell or range reference at a new column and rows.

    References that are not a plain cell or range (named ranges, unions)
    come back unchanged.
    """
    match = _CELL_RANGE.match(formula.strip())
    if not match:
        return formula
    sheet = match.group("sheet")
    if last_row is None:
        return f"{sheet}!${column}${first_row}"
    return f"{sheet}!${column}${first_row}:${column}${last_row}"


def _rewrite_formula(
    markup: str, p: str, column: str, first_row: int, last_row: int | None
) -> str:
    block = find_block(markup, qname(p, "f"))
    if block is None or block.self_closing:
        return markup
    formula = unescape(block.inner(markup))
    realigned = _realign_formula(formula, column, first_row, last_row)
    if realigned == formula:
        return markup
    return markup[: block.inner_start] + escape(realigned) + markup[block.inner_end :]


def _cache_points(p: str, values: list[str]) -> str:
    points = [f'<{qname(p, "ptCount")} val="{len(values)}"/>']
    for idx, value in enumerate(values):
        points.append(
            f'<{qname(p, "pt")} idx="{idx}"><{qname(p, "v")}>{escape(value)}'
            f'</{qname(p, "v")}></{qname(p, "pt")}>'
        )
    return "".join(points)


def _rewrite_cache(markup: str, p: str, values: list[str], numeric: bool) -> str:
    """Rewrite the first string or numeric cache/literal found in markup.

    A numeric cache keeps its leading formatCode element.

    Raises:
        ValidationError: If a numeric cache would receive non-numeric values
    """
    for local in _CACHE_TAGS:
        block = find_block(markup, qname(p, local))
        if block is None:
            continue
        is_numeric = local.startswith("num")
        if is_numeric and not numeric and not all(is_number(v) for v in values):
            raise ValidationError(
                "Chart stores categories in a numeric cache; categories must be numbers",
                [v for v in values if not is_number(v)],
            )

        open_tag = block.open_tag(markup)
        inner = ""
        if block.self_closing:
            open_tag = open_tag[:-2].rstrip() + ">"
        else:
            inner = block.inner(markup)

        keep = ""
        format_code = find_block(inner, qname(p, "formatCode"))
        if is_numeric and format_code is not None:
            keep = format_code.text(inner)
        rebuilt = open_tag + keep + _cache_points(p, values) + f"</{qname(p, local)}>"
        return markup[: block.start] + rebuilt + markup[block.end :]
    return markup


def _rewrite_series_name(ser: str, p: str, name: str, column: str) -> str:
    tx = find_block(ser, qname(p, "tx"))
    if tx is None or tx.self_closing:
        return ser
    inner = tx.inner(ser)
    inner = _rewrite_formula(inner, p, column, 1, None)
    v = find_block(inner, qname(p, "v"))
    if v is not None and not v.self_closing:
        inner = inner[: v.inner_start] + escape(name) + inner[v.inner_end :]
    return ser[: tx.inner_start] + inner + ser[tx.inner_end :]


def _ensure_cache(inner: str, p: str) -> str:
    """Give a strRef or numRef without a cache an empty one after its formula."""
    for ref_local, cache_local in (("strRef", "strCache"), ("numRef", "numCache")):
        ref = find_block(inner, qname(p, ref_local))
        if ref is None or ref.self_closing:
            continue
        ref_inner = ref.inner(inner)
        if any(find_block(ref_inner, qname(p, local)) for local in _CACHE_TAGS):
            return inner
        formula = find_block(ref_inner, qname(p, "f"))
        at = ref.inner_start + (formula.end if formula is not None else 0)
        cache = f"<{qname(p, cache_local)}>"
        if cache_local == "numCache":
            cache += f"<{qname(p, 'formatCode')}>General</{qname(p, 'formatCode')}>"
        cache += f"</{qname(p, cache_local)}>"
        logger.debug(f"Series {ref_local} has no cache; adding a {cache_local}")
        return inner[:at] + cache + inner[at:]
    return inner


def _flatten_multi_level(inner: str, block: Block, p: str, values: list[str]) -> str:
    """Replace a multi-level category reference with a single-level strRef.

    The workbook grid keeps categories in one column, so the rewritten chart
    refers to that column alone.
    """
    formula_block = find_block(inner, qname(p, "f"), block.start, block.end)
    last_row = len(values) + 1
    formula = f"{DEFAULT_SHEET_NAME}!$A$2:$A${last_row}"
    if formula_block is not None and not formula_block.self_closing:
        current = unescape(formula_block.inner(inner))
        if _CELL_RANGE.match(current.strip()):
            formula = _realign_formula(current, "A", 2, last_row)
    f = qname(p, "f")
    cache = qname(p, "strCache")
    ref = qname(p, "strRef")
    rebuilt = (
        f"<{ref}><{f}>{escape(formula)}</{f}>"
        f"<{cache}>{_cache_points(p, values)}</{cache}></{ref}>"
    )
    logger.info("Multi-level category reference replaced by a single-level one")
    return inner[: block.start] + rebuilt + inner[block.end :]


def _rewrite_section(
    ser: str, p: str, locals_: tuple[str, ...], values: list[str], numeric: bool, column: str
) -> str:
    for local in locals_:
        section = find_block(ser, qname(p, local))
        if section is None or section.self_closing:
            continue
        inner = section.inner(ser)
        multi_level = find_block(inner, qname(p, "multiLvlStrRef"))
        if multi_level is not None:
            inner = _flatten_multi_level(inner, multi_level, p, values)
        else:
            inner = _rewrite_formula(inner, p, column, 2, len(values) + 1)
            inner = _ensure_cache(inner, p)
            inner = _rewrite_cache(inner, p, values, numeric)
        return ser[: section.inner_start] + inner + ser[section.inner_end :]
    return ser


def rewrite_series_block(
    ser: str, p: str, position: int, series: SeriesData, categories: list[str]
) -> str:
    """Rewrite one series block's name, category and value caches.

    Args:
        ser: Markup of one series block
        p: Chart namespace prefix
        position: 0-based position of the series (column B is position 0)
        series: New series data
        categories: New category labels

    Returns:
        The rewritten block markup
    """
    column = column_letter(position + 2)
    ser = _rewrite_series_name(ser, p, series.name, column)
    ser = _rewrite_section(ser, p, ("cat", "xVal"), categories, False, "A")
    ser = _rewrite_section(
        ser, p, ("val", "yVal"), [format_number(v) for v in series.values], True, column
    )
    return ser


def _set_title_text(markup: str, block: Block, text: str, a_prefix: str) -> str:
    """Put text into the first run of a title block and empty the other runs.

    Run formatting is kept.
    """
    inner = block.inner(markup)
    runs = [t for t in find_blocks(inner, qname(a_prefix, "t")) if not t.self_closing]
    if not runs:
        logger.debug("Title has no text run to rewrite; leaving it unchanged")
        return markup
    for t in reversed(runs[1:]):
        inner = inner[: t.inner_start] + inner[t.inner_end :]
    first = runs[0]
    inner = inner[: first.inner_start] + escape(text) + inner[first.inner_end :]
    return markup[: block.inner_start] + inner + markup[block.inner_end :]


def _axis_title_blocks(markup: str, p: str) -> tuple[Block | None, Block | None]:
    """Find the title blocks of the category and value axes."""
    plot_area = find_block(markup, qname(p, "plotArea"))
    if plot_area is None:
        return None, None
    category_axes = find_blocks(markup, qname(p, "catAx"), plot_area.start, plot_area.end)
    category_axes += find_blocks(markup, qname(p, "dateAx"), plot_area.start, plot_area.end)
    value_axes = find_blocks(markup, qname(p, "valAx"), plot_area.start, plot_area.end)
    if not category_axes and len(value_axes) > 1:
        # Scatter charts use a value axis for X
        category_axes, value_axes = value_axes[:1], value_axes[1:]

    def title_of(axes: list[Block]) -> Block | None:
        if not axes:
            return None
        return find_block(markup, qname(p, "title"), axes[0].start, axes[0].end)

    return title_of(category_axes), title_of(value_axes)


def _update_titles(markup: str, p: str, data: ChartData) -> str:
    a_prefix = namespace_prefix(markup, A_NAMESPACE) or "a"

    if data.title is not None:
        chart = find_block(markup, qname(p, "chart"))
        plot_area = find_block(markup, qname(p, "plotArea"))
        limit = plot_area.start if plot_area else (chart.end if chart else None)
        title = find_block(markup, qname(p, "title"), chart.start if chart else 0, limit)
        if title is not None:
            markup = _set_title_text(markup, title, data.title, a_prefix)
        else:
            logger.debug("Chart has no title element; chart title not updated")

    # Category axis first so the value axis offsets are recomputed afterwards
    if data.category_axis_title is not None:
        category_title, _ = _axis_title_blocks(markup, p)
        if category_title is not None:
            markup = _set_title_text(markup, category_title, data.category_axis_title, a_prefix)
    if data.value_axis_title is not None:
        _, value_title = _axis_title_blocks(markup, p)
        if value_title is not None:
            markup = _set_title_text(markup, value_title, data.value_axis_title, a_prefix)
    return markup


def update_chart_markup(
    markup: str, data: ChartData, part_name: str = "chart"
) -> ChartCacheUpdate:
    """Rewrite the cached data of a chart part in memory.

    The i-th supplied series replaces the name, category cache and value
    cache of the i-th series block in document order. Blocks beyond the
    supplied series are left byte-for-byte as they were; blocks are never
    added or removed.

    Args:
        markup: Current chart part markup
        data: Validated chart data
        part_name: Part name used in error messages

    Returns:
        ChartCacheUpdate with the new markup and block counts

    Raises:
        StructuralError: If the part has no series blocks
        ValidationError: If more series are supplied than the chart has, or
            a numeric category cache would receive text
    """
    p = chart_prefix(markup, part_name)
    blocks = find_blocks(markup, qname(p, "ser"))
    if not blocks:
        raise StructuralError(part_name, f"no <{qname(p, 'ser')}> series blocks")
    if len(data.series) > len(blocks):
        raise ValidationError(
            f"Chart has {len(blocks)} series but {len(data.series)} were supplied; "
            "series blocks are never added by an update"
        )

    pieces: list[str] = []
    cursor = 0
    for position, block in enumerate(blocks):
        pieces.append(markup[cursor : block.start])
        ser = block.text(markup)
        if position < len(data.series):
            ser = rewrite_series_block(ser, p, position, data.series[position], data.categories)
        pieces.append(ser)
        cursor = block.end
    pieces.append(markup[cursor:])

    updated = _update_titles("".join(pieces), p, data)
    return ChartCacheUpdate(
        markup=updated,
        series_updated=len(data.series),
        series_preserved=len(blocks) - len(data.series),
    )


# =============================================================================
# Reading
# =============================================================================


def _cache_values(section: etree._Element | None) -> list[str]:
    """Read a cache or literal into a list ordered by point index."""
    if section is None:
        return []
    cache = None
    for local in _CACHE_TAGS:
        cache = section.find(f".//{c(local)}")
        if cache is not None:
            break
    if cache is None:
        return []

    count_el = cache.find(c("ptCount"))
    points: dict[int, str] = {}
    for pt in cache.findall(c("pt")):
        v = pt.find(c("v"))
        points[int(pt.get("idx", "0"))] = (v.text or "") if v is not None else ""
    count = int(count_el.get("val", "0")) if count_el is not None else 0
    count = max(count, max(points) + 1 if points else 0)
    return [points.get(i, "") for i in range(count)]


def _rich_text(title: etree._Element | None) -> str | None:
    if title is None:
        return None
    runs = [t.text or "" for t in title.iter(a("t"))]
    if runs:
        return "".join(runs)
    v = title.find(f".//{c('v')}")
    return v.text if v is not None else None


def _to_float(text: str) -> float:
    try:
        return float(text)
    except ValueError:
        return 0.0


def read_chart_data(xml: bytes | str) -> ChartData:
    """Read categories, series and titles from a chart part's caches.

    Categories come from the first series. Each series' values are padded
    with zeros or truncated to the category count.

    Raises:
        StructuralError: If the markup cannot be parsed
    """
    if isinstance(xml, str):
        xml = xml.encode("utf-8")
    try:
        root = etree.fromstring(xml)
    except etree.XMLSyntaxError as e:
        raise StructuralError("chart", f"markup is not well-formed: {e}") from e

    series_elements = list(root.iter(c("ser")))
    categories: list[str] = []
    if series_elements:
        first = series_elements[0]
        section = first.find(c("cat"))
        categories = _cache_values(section if section is not None else first.find(c("xVal")))

    series: list[SeriesData] = []
    for ser in series_elements:
        tx = ser.find(c("tx"))
        name_values = _cache_values(tx) if tx is not None else []
        if not name_values and tx is not None:
            v = tx.find(c("v"))
            name_values = [v.text or ""] if v is not None else []
        section = ser.find(c("val"))
        raw = _cache_values(section if section is not None else ser.find(c("yVal")))
        values = [_to_float(v) for v in raw[: len(categories)]]
        values += [0.0] * (len(categories) - len(values))
        series.append(SeriesData(name=name_values[0] if name_values else "", values=values))

    chart = root.find(c("chart"))
    title = chart.find(c("title")) if chart is not None else None
    cat_ax = root.find(f".//{c('catAx')}")
    val_ax = root.find(f".//{c('valAx')}")
    return ChartData(
        categories=categories,
        series=series,
        title=_rich_text(title),
        category_axis_title=_rich_text(cat_ax.find(c("title")) if cat_ax is not None else None),
        value_axis_title=_rich_text(val_ax.find(c("title")) if val_ax is not None else None),
    )


def series_count(xml: bytes | str) -> int:
    """Count the series blocks of a chart part."""
    markup = xml.decode("utf-8") if isinstance(xml, bytes) else xml
    prefix = namespace_prefix(markup, CHART_NAMESPACE)
    return len(find_blocks(markup, qname(prefix or "c", "ser")))


# =============================================================================
# Generating new chart parts
# =============================================================================


def _sub(parent: etree._Element, tag: str, val: str | None = None, **attrib: str) -> etree._Element:
    element = etree.SubElement(parent, tag, attrib=attrib)
    if val is not None:
        element.set("val", val)
    return element


def _add_rich_title(parent: etree._Element, text: str) -> None:
    title = _sub(parent, c("title"))
    tx = _sub(title, c("tx"))
    rich = _sub(tx, c("rich"))
    _sub(rich, a("bodyPr"))
    _sub(rich, a("lstStyle"))
    paragraph = _sub(rich, a("p"))
    _sub(_sub(paragraph, a("pPr")), a("defRPr"))
    run = _sub(paragraph, a("r"))
    _sub(run, a("t")).text = text
    _sub(title, c("overlay"), "0")


def _add_cache(parent: etree._Element, tag: str, values: list[str]) -> etree._Element:
    cache = _sub(parent, c(tag))
    if tag == "numCache":
        _sub(cache, c("formatCode")).text = "General"
    _sub(cache, c("ptCount"), str(len(values)))
    for idx, value in enumerate(values):
        pt = _sub(cache, c("pt"), idx=str(idx))
        _sub(pt, c("v")).text = value
    return cache


def _add_series(
    plot: etree._Element, kind: ChartKind, position: int, series: SeriesData, categories: list[str]
) -> None:
    column = column_letter(position + 2)
    last_row = len(categories) + 1
    ser = _sub(plot, c("ser"))
    _sub(ser, c("idx"), str(position))
    _sub(ser, c("order"), str(position))

    str_ref = _sub(_sub(ser, c("tx")), c("strRef"))
    _sub(str_ref, c("f")).text = f"{DEFAULT_SHEET_NAME}!${column}$1"
    _add_cache(str_ref, "strCache", [series.name])

    if series.color:
        sp_pr = _sub(ser, c("spPr"))
        if kind is ChartKind.LINE:
            line = _sub(sp_pr, a("ln"), w="28575", cap="rnd")
            _sub(_sub(line, a("solidFill")), a("srgbClr"), series.color.upper())
            _sub(line, a("round"))
        else:
            _sub(_sub(sp_pr, a("solidFill")), a("srgbClr"), series.color.upper())

    if kind in (ChartKind.COLUMN, ChartKind.BAR):
        _sub(ser, c("invertIfNegative"), "0")
    if kind is ChartKind.LINE:
        _sub(_sub(ser, c("marker")), c("symbol"), "none")

    cat_ref = _sub(_sub(ser, c("cat")), c("strRef"))
    _sub(cat_ref, c("f")).text = f"{DEFAULT_SHEET_NAME}!$A$2:$A${last_row}"
    _add_cache(cat_ref, "strCache", list(categories))

    num_ref = _sub(_sub(ser, c("val")), c("numRef"))
    _sub(num_ref, c("f")).text = f"{DEFAULT_SHEET_NAME}!${column}$2:${column}${last_row}"
    _add_cache(num_ref, "numCache", [format_number(v) for v in series.values])

    if kind is ChartKind.LINE:
        _sub(ser, c("smooth"), "0")


def _add_axis(
    plot_area: etree._Element,
    tag: str,
    axis_id: int,
    settings: AxisOptions,
    default_position: str,
    default_gridlines: bool,
    title: str | None,
) -> etree._Element:
    """Add an axis element up to and including its tick label position."""
    axis = _sub(plot_area, c(tag))
    _sub(axis, c("axId"), str(axis_id))
    scaling = _sub(axis, c("scaling"))
    _sub(scaling, c("orientation"), "minMax")
    if settings.maximum is not None:
        _sub(scaling, c("max"), format_number(settings.maximum))
    if settings.minimum is not None:
        _sub(scaling, c("min"), format_number(settings.minimum))
    _sub(axis, c("delete"), "0" if settings.visible else "1")
    _sub(axis, c("axPos"), settings.position or default_position)

    major_gridlines = settings.major_gridlines
    if major_gridlines is None:
        major_gridlines = default_gridlines
    if major_gridlines:
        _sub(axis, c("majorGridlines"))
    if settings.minor_gridlines:
        _sub(axis, c("minorGridlines"))
    if title:
        _add_rich_title(axis, title)

    if settings.number_format is None:
        _sub(axis, c("numFmt"), formatCode="General", sourceLinked="1")
    else:
        _sub(axis, c("numFmt"), formatCode=settings.number_format, sourceLinked="0")
    _sub(axis, c("majorTickMark"), settings.major_tick_mark)
    _sub(axis, c("minorTickMark"), settings.minor_tick_mark)
    _sub(axis, c("tickLblPos"), settings.tick_label_position)
    return axis


def _add_crossing(axis: etree._Element, cross_axis_id: int, settings: AxisOptions) -> None:
    _sub(axis, c("crossAx"), str(cross_axis_id))
    if settings.crosses_at is not None:
        _sub(axis, c("crossesAt"), format_number(settings.crosses_at))
    else:
        _sub(axis, c("crosses"), "autoZero")


def _add_axes(plot_area: etree._Element, options: ChartOptions) -> None:
    horizontal = options.kind is ChartKind.BAR
    data = options.data

    category = options.category_axis
    cat_ax = _add_axis(
        plot_area,
        "catAx",
        CATEGORY_AXIS_ID,
        category,
        "l" if horizontal else "b",
        False,
        data.category_axis_title,
    )
    _add_crossing(cat_ax, VALUE_AXIS_ID, category)
    _sub(cat_ax, c("auto"), "1")
    _sub(cat_ax, c("lblAlgn"), "ctr")
    _sub(cat_ax, c("lblOffset"), "100")
    _sub(cat_ax, c("noMultiLvlLbl"), "0")

    value = options.value_axis
    val_ax = _add_axis(
        plot_area,
        "valAx",
        VALUE_AXIS_ID,
        value,
        "b" if horizontal else "l",
        True,
        data.value_axis_title,
    )
    _add_crossing(val_ax, CATEGORY_AXIS_ID, value)
    _sub(val_ax, c("crossBetween"), "between")
    if value.major_unit is not None:
        _sub(val_ax, c("majorUnit"), format_number(value.major_unit))
    if value.minor_unit is not None:
        _sub(val_ax, c("minorUnit"), format_number(value.minor_unit))


def _add_data_labels(plot: etree._Element, labels: DataLabelOptions) -> None:
    d_lbls = _sub(plot, c("dLbls"))
    if labels.position is not None:
        _sub(d_lbls, c("dLblPos"), labels.position)
    _sub(d_lbls, c("showLegendKey"), "1" if labels.show_legend_key else "0")
    _sub(d_lbls, c("showVal"), "1" if labels.show_value else "0")
    _sub(d_lbls, c("showCatName"), "1" if labels.show_category_name else "0")
    _sub(d_lbls, c("showSerName"), "1" if labels.show_series_name else "0")
    _sub(d_lbls, c("showPercent"), "1" if labels.show_percent else "0")
    _sub(d_lbls, c("showBubbleSize"), "0")
    if labels.show_leader_lines:
        _sub(d_lbls, c("showLeaderLines"), "1")


def generate_chart_xml(options: ChartOptions, workbook_rel_id: str = "rId1") -> bytes:
    """Build a complete chart part for new chart options.

    The series formulas point at a single-sheet workbook laid out with
    series names in row 1 from column B and categories in column A from
    row 2, matching the workbook created alongside the chart.

    Args:
        options: Validated chart options
        workbook_rel_id: Relationship id of the embedded workbook

    Returns:
        The chart part as UTF-8 encoded XML
    """
    nsmap = {
        "c": CHART_NAMESPACE,
        "a": A_NAMESPACE,
        "r": OFFICE_RELATIONSHIPS_NAMESPACE,
    }
    data = options.data
    space = etree.Element(c("chartSpace"), nsmap=nsmap)
    _sub(space, c("date1904"), "0")
    _sub(space, c("lang"), options.language)
    _sub(space, c("roundedCorners"), "0")
    if options.style is not None:
        _sub(space, c("style"), str(options.style))

    chart = _sub(space, c("chart"))
    if data.title:
        _add_rich_title(chart, data.title)
    _sub(chart, c("autoTitleDeleted"), "0" if data.title else "1")

    plot_area = _sub(chart, c("plotArea"))
    _sub(plot_area, c("layout"))

    kind = options.kind
    if kind in (ChartKind.COLUMN, ChartKind.BAR):
        plot = _sub(plot_area, c("barChart"))
        _sub(plot, c("barDir"), "bar" if kind is ChartKind.BAR else "col")
        _sub(plot, c("grouping"), options.bar_grouping)
        _sub(plot, c("varyColors"), "0")
    elif kind is ChartKind.LINE:
        plot = _sub(plot_area, c("lineChart"))
        _sub(plot, c("grouping"), "standard")
        _sub(plot, c("varyColors"), "0")
    elif kind is ChartKind.AREA:
        plot = _sub(plot_area, c("areaChart"))
        _sub(plot, c("grouping"), "standard")
        _sub(plot, c("varyColors"), "0")
    else:
        plot = _sub(plot_area, c("pieChart"))
        _sub(plot, c("varyColors"), "1")

    for position, series in enumerate(data.series):
        _add_series(plot, kind, position, series, data.categories)
    if options.data_labels is not None:
        _add_data_labels(plot, options.data_labels)

    if kind in (ChartKind.COLUMN, ChartKind.BAR):
        _sub(plot, c("gapWidth"), str(options.gap_width))
        _sub(plot, c("overlap"), str(options.bar_overlap))
    elif kind is ChartKind.LINE:
        _sub(plot, c("marker"), "1")
    elif kind is ChartKind.PIE:
        _sub(plot, c("firstSliceAng"), "0")

    if kind is not ChartKind.PIE:
        _sub(plot, c("axId"), str(CATEGORY_AXIS_ID))
        _sub(plot, c("axId"), str(VALUE_AXIS_ID))
        _add_axes(plot_area, options)

    if options.show_legend:
        legend = _sub(chart, c("legend"))
        _sub(legend, c("legendPos"), options.legend_position)
        _sub(legend, c("overlay"), "1" if options.legend_overlay else "0")
    _sub(chart, c("plotVisOnly"), "1")
    _sub(chart, c("dispBlanksAs"), options.display_blanks_as)

    external = _sub(space, c("externalData"))
    external.set(r("id"), workbook_rel_id)
    _sub(external, c("autoUpdate"), "0")

    return etree.tostring(space, encoding="UTF-8", xml_declaration=True, standalone=True)
