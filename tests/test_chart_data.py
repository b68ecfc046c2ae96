"""Tests for chart data models and data file loading."""

import json
from pathlib import Path

import pytest

from python_docx_splice.chart_data import (
    AxisOptions,
    ChartData,
    ChartKind,
    ChartOptions,
    DataLabelOptions,
    SeriesData,
    format_number,
    load_chart_data,
    load_chart_options,
)
from python_docx_splice.errors import ValidationError
from python_docx_splice.splicer import InsertPosition


def sample_data() -> ChartData:
    return ChartData(
        categories=["Q1", "Q2", "Q3"],
        series=[SeriesData("Revenue", [10, 20.5, 30]), SeriesData("Cost", [1, 2, 3])],
        title="Results",
    )


class TestFormatNumber:
    """Tests for the stable numeric text written to caches and cells."""

    def test_integral_values(self):
        """Test that whole numbers carry no fractional part."""
        assert format_number(10) == "10"
        assert format_number(10.0) == "10"
        assert format_number(-3.0) == "-3"
        assert format_number(0.0) == "0"

    def test_fractional_values(self):
        """Test that other values use the shortest round-trip text."""
        assert format_number(2.5) == "2.5"
        assert format_number(0.1) == "0.1"

    def test_no_exponent(self):
        """Test that tiny values are written without exponent notation."""
        assert format_number(1e-7) == "0.0000001"

    def test_round_trip_is_stable(self):
        """Test that formatting a parsed value yields the same text."""
        for text in ("10", "2.5", "0.125", "-7", "1234567.75"):
            assert format_number(float(text)) == text


class TestValidation:
    """Tests for chart data validation."""

    def test_valid(self):
        """Test that well-formed data passes."""
        sample_data().validate()

    def test_length_mismatch(self):
        """Test that each series needs one value per category."""
        data = ChartData(["A", "B"], [SeriesData("S", [1])])
        with pytest.raises(ValidationError) as exc_info:
            data.validate()
        assert "values length (1) must match categories length (2)" in str(exc_info.value)

    def test_reports_every_problem(self):
        """Test that all problems are listed at once."""
        data = ChartData([], [SeriesData("", [float("nan")])])
        problems = data.problems()
        assert any("categories" in p for p in problems)
        assert any("name" in p for p in problems)
        assert any("not finite" in p for p in problems)

    def test_non_numeric_value(self):
        """Test that strings and booleans are not accepted as values."""
        data = ChartData(["A", "B"], [SeriesData("S", ["1", True])])
        problems = data.problems()
        assert len([p for p in problems if "not a number" in p]) == 2

    def test_bad_color(self):
        """Test that colors must be six hex digits."""
        data = ChartData(["A"], [SeriesData("S", [1], color="blue")])
        with pytest.raises(ValidationError):
            data.validate()

    def test_options_need_anchor(self):
        """Test that anchor positions require anchor text."""
        options = ChartOptions(sample_data(), position=InsertPosition.AFTER_TEXT)
        with pytest.raises(ValidationError) as exc_info:
            options.validate()
        assert "anchor" in str(exc_info.value)

    def test_options_bad_legend(self):
        """Test that unknown legend positions are rejected."""
        with pytest.raises(ValidationError):
            ChartOptions(sample_data(), legend_position="middle").validate()

    @pytest.mark.parametrize(
        "overrides, fragment",
        [
            ({"gap_width": 600}, "gap_width"),
            ({"overlap": 150}, "overlap"),
            ({"bar_grouping": "weird"}, "bar_grouping"),
            ({"style": 0}, "style"),
            ({"language": ""}, "language"),
            ({"display_blanks_as": "skip"}, "display_blanks_as"),
            ({"value_axis": AxisOptions(minimum=10, maximum=5)}, "value_axis: minimum"),
            ({"value_axis": AxisOptions(major_unit=1, minor_unit=2)}, "value_axis: minor_unit"),
            ({"category_axis": AxisOptions(position="x")}, "category_axis: position"),
            ({"category_axis": AxisOptions(major_tick_mark="big")}, "major_tick_mark"),
        ],
    )
    def test_options_out_of_range(self, overrides, fragment):
        """Test that chart layout settings outside their ranges are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            ChartOptions(sample_data(), **overrides).validate()
        assert any(fragment in error for error in exc_info.value.errors)

    def test_label_position_depends_on_kind(self):
        """Test that data label positions are checked against the plot type."""
        labels = DataLabelOptions(position="outEnd")
        ChartOptions(sample_data(), data_labels=labels).validate()

        with pytest.raises(ValidationError) as exc_info:
            ChartOptions(sample_data(), kind=ChartKind.AREA, data_labels=labels).validate()
        assert "area charts" in str(exc_info.value)

        with pytest.raises(ValidationError) as exc_info:
            ChartOptions(sample_data(), kind=ChartKind.LINE, data_labels=labels).validate()
        assert "must be one of" in str(exc_info.value)

    def test_label_outside_stacked_bars(self):
        """Test that outEnd labels are refused on stacked bars."""
        options = ChartOptions(
            sample_data(),
            bar_grouping="stacked",
            data_labels=DataLabelOptions(position="outEnd"),
        )
        with pytest.raises(ValidationError) as exc_info:
            options.validate()
        assert "stacked" in str(exc_info.value)

    def test_stacked_bars_overlap(self):
        """Test the default overlap for clustered and stacked bars."""
        assert ChartOptions(sample_data()).bar_overlap == 0
        assert ChartOptions(sample_data(), bar_grouping="stacked").bar_overlap == 100
        assert ChartOptions(sample_data(), bar_grouping="stacked", overlap=50).bar_overlap == 50


class TestLoading:
    """Tests for reading chart data files."""

    def test_from_dict_round_trip(self):
        """Test that to_dict output loads back to equal data."""
        data = sample_data()
        assert ChartData.from_dict(data.to_dict()) == data

    def test_from_dict_requires_lists(self):
        """Test that categories and series must be lists."""
        with pytest.raises(ValidationError):
            ChartData.from_dict({"categories": "Q1", "series": []})

    def test_load_yaml(self, tmp_path: Path):
        """Test loading chart data from YAML."""
        path = tmp_path / "data.yaml"
        path.write_text(
            "title: Sales\n"
            "categories: [2022, 2023]\n"
            "series:\n"
            "  - name: North\n"
            "    values: [1.5, 2]\n"
        )
        data = load_chart_data(path)
        assert data.title == "Sales"
        assert data.categories == ["2022", "2023"]
        assert data.series[0].values == [1.5, 2]

    def test_load_json(self, tmp_path: Path):
        """Test loading chart data from JSON."""
        path = tmp_path / "data.json"
        path.write_text(json.dumps({"categories": ["A"], "series": [{"name": "S", "values": [1]}]}))
        assert load_chart_data(path).series[0].name == "S"

    def test_load_missing_file(self, tmp_path: Path):
        """Test that a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_chart_data(tmp_path / "missing.yaml")

    def test_load_invalid_yaml(self, tmp_path: Path):
        """Test that malformed YAML raises ValidationError."""
        path = tmp_path / "bad.yaml"
        path.write_text("categories: [unclosed\n")
        with pytest.raises(ValidationError):
            load_chart_data(path)

    def test_load_options(self, tmp_path: Path):
        """Test loading chart creation options."""
        path = tmp_path / "options.yaml"
        path.write_text(
            "kind: line\n"
            "position: after\n"
            "anchor: Summary\n"
            "legend_position: b\n"
            "categories: [A, B]\n"
            "series:\n"
            "  - {name: S, values: [1, 2]}\n"
        )
        options = load_chart_options(path)
        assert options.kind is ChartKind.LINE
        assert options.position is InsertPosition.AFTER_TEXT
        assert options.anchor == "Summary"
        options.validate()

    def test_load_options_unknown_kind(self, tmp_path: Path):
        """Test that an unknown chart kind is a ValidationError."""
        path = tmp_path / "options.yaml"
        path.write_text("kind: radar\ncategories: [A]\nseries: [{name: S, values: [1]}]\n")
        with pytest.raises(ValidationError):
            load_chart_options(path)

    def test_load_nested_options(self, tmp_path: Path):
        """Test loading axis and data label settings from nested mappings."""
        path = tmp_path / "options.yaml"
        path.write_text(
            "bar_grouping: stacked\n"
            "gap_width: 80\n"
            "data_labels: true\n"
            "category_axis: {position: t}\n"
            "value_axis:\n"
            "  min: 0\n"
            "  max: 100\n"
            "  major_unit: 25\n"
            "  number_format: '0%'\n"
            "  major_gridlines: false\n"
            "categories: [A, B]\n"
            "series:\n"
            "  - {name: S, values: [1, 2]}\n"
        )
        options = load_chart_options(path)
        assert options.bar_grouping == "stacked"
        assert options.gap_width == 80
        assert options.data_labels == DataLabelOptions()
        assert options.category_axis.position == "t"
        assert options.value_axis.minimum == 0
        assert options.value_axis.maximum == 100
        assert options.value_axis.major_unit == 25
        assert options.value_axis.number_format == "0%"
        assert options.value_axis.major_gridlines is False
        options.validate()

    @pytest.mark.parametrize(
        "key, value",
        [("width", "wide"), ("height", [1]), ("gap_width", "narrow"), ("style", True)],
    )
    def test_non_numeric_option(self, key, value):
        """Test that non-numeric sizes are a ValidationError, not a ValueError."""
        mapping = {"categories": ["A"], "series": [{"name": "S", "values": [1]}], key: value}
        with pytest.raises(ValidationError) as exc_info:
            ChartOptions.from_dict(mapping)
        assert key in str(exc_info.value)

    def test_non_numeric_axis_bound(self):
        """Test that axis bounds must be numbers."""
        mapping = {
            "categories": ["A"],
            "series": [{"name": "S", "values": [1]}],
            "value_axis": {"max": "lots"},
        }
        with pytest.raises(ValidationError):
            ChartOptions.from_dict(mapping)
