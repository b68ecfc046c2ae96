"""
Data models for chart content.

ChartData is what gets written into (and read back from) a chart's caches and
its embedded workbook; ChartOptions adds what is needed to create a new chart.
Both can be loaded from YAML or JSON files.
"""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Callable

import yaml

from .constants import (
    AXIS_POSITIONS,
    BAR_GROUPINGS,
    DATA_LABEL_POSITIONS,
    DEFAULT_CHART_HEIGHT,
    DEFAULT_CHART_LANGUAGE,
    DEFAULT_CHART_STYLE,
    DEFAULT_CHART_WIDTH,
    DEFAULT_LEGEND_POSITION,
    DISPLAY_BLANKS_AS,
    LEGEND_POSITIONS,
    TICK_LABEL_POSITIONS,
    TICK_MARKS,
)
from .errors import ValidationError
from .splicer import InsertPosition

_HEX_COLOR = re.compile(r"^[0-9A-Fa-f]{6}$")


class ChartKind(str, Enum):
    """Plot types supported when creating a chart."""

    COLUMN = "column"
    BAR = "bar"
    LINE = "line"
    PIE = "pie"
    AREA = "area"


def format_number(value: float) -> str:
    """Format a number the way it is stored in chart caches and cells.

    Integral values carry no fractional part ("10", not "10.0"); other values
    use the shortest representation that round-trips, without exponent.

    Example:
        >>> format_number(10.0), format_number(2.5), format_number(1e-7)
        ('10', '2.5', '0.0000001')
    """
    number = float(value)
    if number.is_integer() and abs(number) < 1e21:
        return str(int(number))
    text = repr(number)
    if "e" in text or "E" in text:
        text = format(Decimal(text), "f")
    return text


def is_number(text: str) -> bool:
    """Whether a category label can be stored in a numeric cache."""
    try:
        return math.isfinite(float(text))
    except ValueError:
        return False


@dataclass
class SeriesData:
    """One data series.

    Attributes:
        name: Series name shown in the legend and the workbook header row
        values: One value per category
        color: Optional fill color as six hex digits (e.g., "4472C4")
    """

    name: str
    values: list[float]
    color: str | None = None


@dataclass
class ChartData:
    """Categories and series of a chart, plus optional titles.

    Attributes:
        categories: Category labels in display order
        series: Data series; each has one value per category
        title: Chart title (None leaves an existing title alone)
        category_axis_title: Title of the category axis
        value_axis_title: Title of the value axis
    """

    categories: list[str]
    series: list[SeriesData]
    title: str | None = None
    category_axis_title: str | None = None
    value_axis_title: str | None = None

    def problems(self) -> list[str]:
        """List everything wrong with the data, empty when valid."""
        errors: list[str] = []
        if not self.categories:
            errors.append("categories must not be empty")
        if not self.series:
            errors.append("at least one series is required")
        for i, series in enumerate(self.series):
            if not series.name or not series.name.strip():
                errors.append(f"series[{i}] name must not be empty")
            if len(series.values) != len(self.categories):
                errors.append(
                    f"series[{i}] values length ({len(series.values)}) must match "
                    f"categories length ({len(self.categories)})"
                )
            for j, value in enumerate(series.values):
                if isinstance(value, bool) or not isinstance(value, int | float):
                    errors.append(f"series[{i}] value {j} is not a number: {value!r}")
                elif not math.isfinite(value):
                    errors.append(f"series[{i}] value {j} is not finite: {value!r}")
            if series.color is not None and not _HEX_COLOR.match(series.color):
                errors.append(f"series[{i}] color must be six hex digits, got {series.color!r}")
        return errors

    def validate(self) -> None:
        """Check the data before anything is written.

        Raises:
            ValidationError: If the data is malformed
        """
        errors = self.problems()
        if errors:
            raise ValidationError("Invalid chart data", errors)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChartData:
        """Build chart data from a plain mapping (as loaded from YAML/JSON).

        Raises:
            ValidationError: If required keys are missing or mistyped
        """
        if not isinstance(data, dict):
            raise ValidationError("Chart data must be a dictionary/object")
        categories = data.get("categories")
        series = data.get("series")
        if not isinstance(categories, list):
            raise ValidationError("'categories' must be a list")
        if not isinstance(series, list):
            raise ValidationError("'series' must be a list")

        parsed: list[SeriesData] = []
        for i, item in enumerate(series):
            if not isinstance(item, dict):
                raise ValidationError(f"series[{i}] must be a dictionary/object")
            values = item.get("values", [])
            if not isinstance(values, list):
                raise ValidationError(f"series[{i}] 'values' must be a list")
            parsed.append(
                SeriesData(
                    name=str(item.get("name", "")),
                    values=values,
                    color=item.get("color"),
                )
            )

        return cls(
            categories=[str(category) for category in categories],
            series=parsed,
            title=data.get("title"),
            category_axis_title=data.get("category_axis_title"),
            value_axis_title=data.get("value_axis_title"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain mapping suitable for YAML/JSON output."""
        result: dict[str, Any] = {}
        if self.title is not None:
            result["title"] = self.title
        result["categories"] = list(self.categories)
        result["series"] = []
        for series in self.series:
            item: dict[str, Any] = {"name": series.name, "values": list(series.values)}
            if series.color:
                item["color"] = series.color
            result["series"].append(item)
        if self.category_axis_title is not None:
            result["category_axis_title"] = self.category_axis_title
        if self.value_axis_title is not None:
            result["value_axis_title"] = self.value_axis_title
        return result


def _number(data: dict[str, Any], key: str, convert: Callable[[Any], Any], default: Any) -> Any:
    """Read a numeric setting, reporting values that are not numbers as ValidationError."""
    value = data.get(key, default)
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(f"'{key}' must be a number, got {value!r}")
    try:
        return convert(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"'{key}' must be a number, got {value!r}") from e


def _mapping(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValidationError(f"'{key}' must be a dictionary/object")
    return value


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass
class AxisOptions:
    """Scale and appearance of one axis of a new chart.

    Unset values leave the choice to Word: automatic bounds and units, the
    plot type's usual side, and major gridlines on the value axis only.

    Attributes:
        minimum: Lower bound of the axis scale
        maximum: Upper bound of the axis scale
        major_unit: Distance between major tick marks
        minor_unit: Distance between minor tick marks
        major_gridlines: Draw major gridlines (None uses the axis default)
        minor_gridlines: Draw minor gridlines
        number_format: Label format code (e.g., "0%"); None follows the data
        position: Side of the plot area, one of "b", "l", "r", "t"
        visible: Whether the axis is drawn at all
        major_tick_mark: One of "cross", "in", "none", "out"
        minor_tick_mark: One of "cross", "in", "none", "out"
        tick_label_position: One of "high", "low", "nextTo", "none"
        crosses_at: Point on the other axis where this axis crosses it
    """

    minimum: float | None = None
    maximum: float | None = None
    major_unit: float | None = None
    minor_unit: float | None = None
    major_gridlines: bool | None = None
    minor_gridlines: bool = False
    number_format: str | None = None
    position: str | None = None
    visible: bool = True
    major_tick_mark: str = "none"
    minor_tick_mark: str = "none"
    tick_label_position: str = "nextTo"
    crosses_at: float | None = None

    def problems(self, name: str) -> list[str]:
        """List everything wrong with the axis settings, empty when valid."""
        errors: list[str] = []
        if self.minimum is not None and self.maximum is not None and self.minimum >= self.maximum:
            errors.append(f"{name}: minimum must be less than maximum")
        if self.major_unit is not None and self.major_unit <= 0:
            errors.append(f"{name}: major_unit must be positive")
        if self.minor_unit is not None and self.minor_unit <= 0:
            errors.append(f"{name}: minor_unit must be positive")
        if (
            self.major_unit is not None
            and self.minor_unit is not None
            and self.minor_unit >= self.major_unit
        ):
            errors.append(f"{name}: minor_unit must be less than major_unit")
        if self.position is not None and self.position not in AXIS_POSITIONS:
            errors.append(
                f"{name}: position must be one of {', '.join(AXIS_POSITIONS)}, "
                f"got {self.position!r}"
            )
        for label, mark in (
            ("major_tick_mark", self.major_tick_mark),
            ("minor_tick_mark", self.minor_tick_mark),
        ):
            if mark not in TICK_MARKS:
                errors.append(
                    f"{name}: {label} must be one of {', '.join(TICK_MARKS)}, got {mark!r}"
                )
        if self.tick_label_position not in TICK_LABEL_POSITIONS:
            errors.append(
                f"{name}: tick_label_position must be one of "
                f"{', '.join(TICK_LABEL_POSITIONS)}, got {self.tick_label_position!r}"
            )
        if self.number_format is not None and not self.number_format.strip():
            errors.append(f"{name}: number_format must not be empty")
        return errors

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AxisOptions:
        """Build axis options from a plain mapping.

        Raises:
            ValidationError: If a numeric setting is not a number
        """
        major_gridlines = data.get("major_gridlines")
        number_format = data.get("number_format")
        return cls(
            minimum=_number(data, "min", float, None),
            maximum=_number(data, "max", float, None),
            major_unit=_number(data, "major_unit", float, None),
            minor_unit=_number(data, "minor_unit", float, None),
            major_gridlines=None if major_gridlines is None else bool(major_gridlines),
            minor_gridlines=bool(data.get("minor_gridlines", False)),
            number_format=None if number_format is None else str(number_format),
            position=data.get("position"),
            visible=bool(data.get("visible", True)),
            major_tick_mark=data.get("major_tick_mark", "none"),
            minor_tick_mark=data.get("minor_tick_mark", "none"),
            tick_label_position=data.get("tick_label_position", "nextTo"),
            crosses_at=_number(data, "crosses_at", float, None),
        )


@dataclass
class DataLabelOptions:
    """Labels drawn on every data point of a new chart."""

    show_value: bool = True
    show_category_name: bool = False
    show_series_name: bool = False
    show_percent: bool = False
    show_legend_key: bool = False
    show_leader_lines: bool = False
    position: str | None = None

    def problems(self, kind: ChartKind, grouping: str) -> list[str]:
        """List label settings Word would reject for the plot type."""
        errors: list[str] = []
        if self.position is None:
            return errors
        allowed = DATA_LABEL_POSITIONS[kind.value]
        if not allowed:
            errors.append(f"{kind.value} charts do not accept a data label position")
        elif self.position not in allowed:
            errors.append(
                f"data label position for {kind.value} charts must be one of "
                f"{', '.join(allowed)}, got {self.position!r}"
            )
        elif self.position == "outEnd" and grouping != "clustered":
            errors.append("data labels cannot be placed outside the end of stacked bars")
        return errors

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DataLabelOptions:
        """Build data label options from a plain mapping."""
        return cls(
            show_value=bool(data.get("show_value", True)),
            show_category_name=bool(data.get("show_category_name", False)),
            show_series_name=bool(data.get("show_series_name", False)),
            show_percent=bool(data.get("show_percent", False)),
            show_legend_key=bool(data.get("show_legend_key", False)),
            show_leader_lines=bool(data.get("show_leader_lines", False)),
            position=data.get("position"),
        )


@dataclass
class ChartOptions:
    """Everything needed to create a new chart.

    Attributes:
        data: Categories, series and titles
        kind: Plot type
        show_legend: Whether a legend is drawn
        legend_position: One of "r", "l", "t", "b", "tr"
        legend_overlay: Let the legend overlap the plot area
        width: Drawing width in EMUs
        height: Drawing height in EMUs
        position: Where the chart drawing is inserted
        anchor: Anchor text for AFTER_TEXT / BEFORE_TEXT
        category_axis: Category axis settings
        value_axis: Value axis settings
        data_labels: Point labels, or None for no labels
        bar_grouping: "clustered", "stacked" or "percentStacked" (bar and column)
        gap_width: Space between bar clusters, 0-500 percent of a bar width
        overlap: Bar overlap within a cluster, -100 to 100 (None picks 0 for
            clustered bars and 100 for stacked ones)
        style: Built-in chart style 1-48, or None to omit it
        language: Editing language of the chart text
        display_blanks_as: How empty cells are drawn: "gap", "span" or "zero"
    """

    data: ChartData
    kind: ChartKind = ChartKind.COLUMN
    show_legend: bool = True
    legend_position: str = DEFAULT_LEGEND_POSITION
    legend_overlay: bool = False
    width: int = DEFAULT_CHART_WIDTH
    height: int = DEFAULT_CHART_HEIGHT
    position: InsertPosition = InsertPosition.END
    anchor: str | None = None
    category_axis: AxisOptions = field(default_factory=AxisOptions)
    value_axis: AxisOptions = field(default_factory=AxisOptions)
    data_labels: DataLabelOptions | None = None
    bar_grouping: str = "clustered"
    gap_width: int = 150
    overlap: int | None = None
    style: int | None = DEFAULT_CHART_STYLE
    language: str = DEFAULT_CHART_LANGUAGE
    display_blanks_as: str = "gap"

    @property
    def bar_overlap(self) -> int:
        """Overlap written for bar and column charts."""
        if self.overlap is not None:
            return self.overlap
        return 0 if self.bar_grouping == "clustered" else 100

    def validate(self) -> None:
        """Check the options before anything is written.

        Raises:
            ValidationError: If the options or their data are malformed
        """
        errors = self.data.problems()
        if self.legend_position not in LEGEND_POSITIONS:
            errors.append(
                f"legend_position must be one of {', '.join(LEGEND_POSITIONS)}, "
                f"got {self.legend_position!r}"
            )
        if self.width <= 0 or self.height <= 0:
            errors.append("width and height must be positive")
        position = InsertPosition(self.position)
        if position.needs_anchor and not self.anchor:
            errors.append(f"anchor text is required for position '{position.value}'")

        errors += self.category_axis.problems("category_axis")
        errors += self.value_axis.problems("value_axis")
        if self.bar_grouping not in BAR_GROUPINGS:
            errors.append(
                f"bar_grouping must be one of {', '.join(BAR_GROUPINGS)}, "
                f"got {self.bar_grouping!r}"
            )
        if not _is_integer(self.gap_width) or not 0 <= self.gap_width <= 500:
            errors.append(f"gap_width must be an integer from 0 to 500, got {self.gap_width!r}")
        if self.overlap is not None and (
            not _is_integer(self.overlap) or not -100 <= self.overlap <= 100
        ):
            errors.append(f"overlap must be an integer from -100 to 100, got {self.overlap!r}")
        if self.style is not None and (not _is_integer(self.style) or not 1 <= self.style <= 48):
            errors.append(f"style must be an integer from 1 to 48, got {self.style!r}")
        if not self.language or not self.language.strip():
            errors.append("language must not be empty")
        if self.display_blanks_as not in DISPLAY_BLANKS_AS:
            errors.append(
                f"display_blanks_as must be one of {', '.join(DISPLAY_BLANKS_AS)}, "
                f"got {self.display_blanks_as!r}"
            )
        if self.data_labels is not None:
            errors += self.data_labels.problems(ChartKind(self.kind), self.bar_grouping)
        if errors:
            raise ValidationError("Invalid chart options", errors)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChartOptions:
        """Build chart options from a plain mapping.

        Chart data keys (categories, series, titles) sit at the top level next
        to the option keys. Axis and data label settings are nested mappings
        under category_axis, value_axis and data_labels; data_labels may also
        be true to show values with the default settings.

        Raises:
            ValidationError: If a value cannot be interpreted
        """
        chart_data = ChartData.from_dict(data)
        try:
            kind = ChartKind(data.get("kind", ChartKind.COLUMN.value))
            position = InsertPosition(data.get("position", InsertPosition.END.value))
        except ValueError as e:
            raise ValidationError(str(e)) from e

        labels = data.get("data_labels")
        if labels is True:
            data_labels: DataLabelOptions | None = DataLabelOptions()
        elif labels is None or labels is False:
            data_labels = None
        else:
            data_labels = DataLabelOptions.from_dict(_mapping(data, "data_labels"))

        return cls(
            data=chart_data,
            kind=kind,
            show_legend=bool(data.get("show_legend", True)),
            legend_position=data.get("legend_position", DEFAULT_LEGEND_POSITION),
            legend_overlay=bool(data.get("legend_overlay", False)),
            width=_number(data, "width", int, DEFAULT_CHART_WIDTH),
            height=_number(data, "height", int, DEFAULT_CHART_HEIGHT),
            position=position,
            anchor=data.get("anchor"),
            category_axis=AxisOptions.from_dict(_mapping(data, "category_axis")),
            value_axis=AxisOptions.from_dict(_mapping(data, "value_axis")),
            data_labels=data_labels,
            bar_grouping=data.get("bar_grouping", "clustered"),
            gap_width=_number(data, "gap_width", int, 150),
            overlap=_number(data, "overlap", int, None),
            style=_number(data, "style", int, DEFAULT_CHART_STYLE),
            language=str(data.get("language", DEFAULT_CHART_LANGUAGE)),
            display_blanks_as=data.get("display_blanks_as", "gap"),
        )


def _load_mapping(path: str | Path, format: str | None) -> dict[str, Any]:
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"Chart data file not found: {path}")

    if format is None:
        format = "json" if file_path.suffix.lower() == ".json" else "yaml"

    with open(file_path, encoding="utf-8") as f:
        try:
            if format == "yaml":
                data = yaml.safe_load(f)
            elif format == "json":
                data = json.load(f)
            else:
                raise ValidationError(f"Unsupported format: {format}")
        except yaml.YAMLError as e:
            raise ValidationError(f"Failed to parse YAML: {e}") from e
        except json.JSONDecodeError as e:
            raise ValidationError(f"Failed to parse JSON: {e}") from e

    if not isinstance(data, dict):
        raise ValidationError("Chart data file must contain a dictionary/object")
    return data


def load_chart_data(path: str | Path, format: str | None = None) -> ChartData:
    """Load chart data from a YAML or JSON file.

    The format is taken from the file extension unless given explicitly.

    Example YAML file:
        ```yaml
        title: Quarterly revenue
        categories: [Q1, Q2, Q3]
        series:
          - name: "2024"
            values: [10, 20, 30]
        ```

    Raises:
        FileNotFoundError: If the file does not exist
        ValidationError: If the file cannot be parsed or has invalid shape
    """
    return ChartData.from_dict(_load_mapping(path, format))


def load_chart_options(path: str | Path, format: str | None = None) -> ChartOptions:
    """Load chart creation options from a YAML or JSON file.

    Raises:
        FileNotFoundError: If the file does not exist
        ValidationError: If the file cannot be parsed or has invalid shape
    """
    return ChartOptions.from_dict(_load_mapping(path, format))
