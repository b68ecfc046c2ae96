"""Tests for rewriting, reading and generating chart parts."""

import re

import pytest
from docx_fixtures import chart_xml, scatter_chart_xml
from lxml import etree

from python_docx_splice.chart_data import (
    AxisOptions,
    ChartData,
    ChartKind,
    ChartOptions,
    DataLabelOptions,
    SeriesData,
)
from python_docx_splice.chart_xml import (
    column_letter,
    external_data_rel_id,
    generate_chart_xml,
    read_chart_data,
    series_count,
    set_external_data_rel_id,
    update_chart_markup,
)
from python_docx_splice.constants import c
from python_docx_splice.errors import StructuralError, ValidationError


def parse(markup: str) -> etree._Element:
    return etree.fromstring(markup.encode("utf-8"))


def points(section: etree._Element) -> list[str]:
    return [pt.findtext(c("v")) for pt in section.iter(c("pt"))]


class TestColumnLetter:
    """Tests for column numbering."""

    def test_letters(self):
        """Test single and double letter columns."""
        assert column_letter(1) == "A"
        assert column_letter(2) == "B"
        assert column_letter(26) == "Z"
        assert column_letter(27) == "AA"


class TestUpdateChartMarkup:
    """Tests for in-place cache rewriting."""

    def test_cache_counts_match_data(self):
        """Test that every cache holds exactly one point per category."""
        data = ChartData(
            categories=["Jan", "Feb", "Mar", "Apr"],
            series=[SeriesData("North", [1, 2, 3, 4]), SeriesData("South", [5, 6, 7, 8.5])],
        )
        update = update_chart_markup(chart_xml(), data)
        root = parse(update.markup)

        for ser, series in zip(root.iter(c("ser")), data.series, strict=True):
            str_cache = ser.find(f"{c('cat')}//{c('strCache')}")
            num_cache = ser.find(f"{c('val')}//{c('numCache')}")
            assert str_cache.find(c("ptCount")).get("val") == "4"
            assert num_cache.find(c("ptCount")).get("val") == "4"
            assert points(str_cache) == ["Jan", "Feb", "Mar", "Apr"]
            assert len(points(num_cache)) == 4
            assert ser.find(f"{c('tx')}//{c('v')}").text == series.name
        assert update.series_updated == 2
        assert update.series_preserved == 0

    def test_numbers_are_formatted(self):
        """Test that integral values lose their '.0' and fractions keep their digits."""
        data = ChartData(["A", "B"], [SeriesData("S", [3.0, 2.25])])
        root = parse(update_chart_markup(chart_xml(), data).markup)
        num_cache = next(root.iter(c("numCache")))
        assert points(num_cache) == ["3", "2.25"]

    def test_format_code_kept(self):
        """Test that the numeric cache keeps its formatCode."""
        data = ChartData(["A"], [SeriesData("S", [1])])
        root = parse(update_chart_markup(chart_xml(), data).markup)
        assert next(root.iter(c("numCache"))).findtext(c("formatCode")) == "#,##0"

    def test_formulas_follow_the_grid(self):
        """Test that cell references are realigned to the new row count."""
        data = ChartData(["A", "B", "C", "D", "E"], [SeriesData("S", [1, 2, 3, 4, 5])])
        root = parse(update_chart_markup(chart_xml(), data).markup)
        ser = next(root.iter(c("ser")))
        assert ser.findtext(f"{c('cat')}//{c('f')}") == "Sheet1!$A$2:$A$6"
        assert ser.findtext(f"{c('val')}//{c('f')}") == "Sheet1!$B$2:$B$6"
        assert ser.findtext(f"{c('tx')}//{c('f')}") == "Sheet1!$B$1"

    def test_fewer_series_preserves_extra_blocks(self):
        """Test that blocks beyond the supplied series are left byte-for-byte."""
        original = chart_xml()
        data = ChartData(["A", "B", "C"], [SeriesData("Only", [1, 2, 3])])
        update = update_chart_markup(original, data)

        second_before = original[original.rindex("<c:ser>") : original.rindex("</c:ser>")]
        assert second_before in update.markup
        assert update.series_updated == 1
        assert update.series_preserved == 1

    def test_more_series_than_blocks(self):
        """Test that an update never adds series blocks."""
        data = ChartData(["A"], [SeriesData(f"S{i}", [i]) for i in range(3)])
        with pytest.raises(ValidationError):
            update_chart_markup(chart_xml(), data)

    def test_outside_series_untouched(self):
        """Test that markup outside series blocks and titles is unchanged."""
        original = chart_xml()
        data = ChartData(["A", "B", "C"], [SeriesData("X", [1, 2, 3]), SeriesData("Y", [4, 5, 6])])
        update = update_chart_markup(original, data)
        tail = original[original.index("<c:axId") :]
        assert update.markup.endswith(tail)
        assert '<a:srgbClr val="4472C4"/>' in update.markup

    def test_escapes_text(self):
        """Test that names and categories are escaped."""
        data = ChartData(["R&D", "<b>"], [SeriesData('Cost "net"', [1, 2])])
        update = update_chart_markup(chart_xml(), data)
        root = parse(update.markup)
        assert points(next(root.iter(c("strCache")))) == ['Cost "net"']
        cat = next(root.iter(c("cat")))
        assert points(cat) == ["R&D", "<b>"]

    def test_titles(self):
        """Test that the first title run gets the text and later runs are emptied."""
        data = ChartData(
            ["A"],
            [SeriesData("S", [1])],
            title="New title",
            category_axis_title="Month",
            value_axis_title="EUR",
        )
        markup = update_chart_markup(chart_xml(), data).markup
        assert '<a:r><a:rPr b="1"/><a:t>New title</a:t></a:r><a:r><a:t></a:t></a:r>' in markup
        read = read_chart_data(markup)
        assert read.title == "New title"
        assert read.category_axis_title == "Month"
        assert read.value_axis_title == "EUR"

    def test_titles_left_alone_when_not_given(self):
        """Test that a missing title keeps the existing one."""
        data = ChartData(["A"], [SeriesData("S", [1])])
        assert read_chart_data(update_chart_markup(chart_xml(), data).markup).title == (
            "Revenue by quarter"
        )

    def test_numeric_category_cache(self):
        """Test that a numeric category cache only accepts numbers."""
        markup = chart_xml().replace("<c:strRef><c:f>Sheet1!$A", "<c:numRef><c:f>Sheet1!$A")
        markup = markup.replace(
            '<c:strCache><c:ptCount val="3"/>', '<c:numCache><c:ptCount val="3"/>'
        )
        markup = markup.replace(
            "</c:strCache></c:strRef></c:cat>", "</c:numCache></c:numRef></c:cat>"
        )
        ok = ChartData(["2020", "2021"], [SeriesData("S", [1, 2])])
        assert "2021" in update_chart_markup(markup, ok).markup
        bad = ChartData(["Q1", "Q2"], [SeriesData("S", [1, 2])])
        with pytest.raises(ValidationError):
            update_chart_markup(markup, bad)

    def test_reference_without_cache_gets_one(self):
        """Test that a strRef or numRef holding only a formula receives a fresh cache."""
        markup = re.sub(
            r"(<c:cat><c:strRef><c:f>[^<]*</c:f>)<c:strCache>.*?</c:strCache>", r"\1", chart_xml()
        )
        markup = re.sub(
            r"(<c:val><c:numRef><c:f>[^<]*</c:f>)<c:numCache>.*?</c:numCache>", r"\1", markup
        )
        assert "<c:cat><c:strRef><c:f>Sheet1!$A$2:$A$4</c:f></c:strRef>" in markup

        data = ChartData(["X", "Y", "Z"], [SeriesData("A", [1, 2, 3]), SeriesData("B", [4, 5, 6])])
        out = update_chart_markup(markup, data).markup
        read = read_chart_data(out)
        assert read.categories == ["X", "Y", "Z"]
        assert [s.values for s in read.series] == [[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]]

        ser = next(parse(out).iter(c("ser")))
        str_ref = ser.find(f"{c('cat')}/{c('strRef')}")
        assert [child.tag for child in str_ref] == [c("f"), c("strCache")]
        num_cache = ser.find(f"{c('val')}/{c('numRef')}/{c('numCache')}")
        assert num_cache.findtext(c("formatCode")) == "General"
        assert num_cache.find(c("ptCount")).get("val") == "3"

    def test_multi_level_categories_flattened(self):
        """Test that a multi-level category reference becomes a single column of labels."""
        multi = (
            "<c:cat><c:multiLvlStrRef><c:f>Sheet1!$A$2:$B$3</c:f><c:multiLvlStrCache>"
            '<c:ptCount val="2"/><c:lvl><c:pt idx="0"><c:v>a</c:v></c:pt>'
            '<c:pt idx="1"><c:v>b</c:v></c:pt></c:lvl><c:lvl><c:pt idx="0"><c:v>H1</c:v>'
            "</c:pt></c:lvl></c:multiLvlStrCache></c:multiLvlStrRef></c:cat>"
        )
        markup = re.sub(
            r"<c:cat>.*?</c:cat>",
            multi,
            chart_xml(series=(("Revenue", (1, 2)),), categories=("a", "b")),
            flags=re.S,
        )
        data = ChartData(["X", "Y", "Z"], [SeriesData("Revenue", [7, 8, 9])])
        out = update_chart_markup(markup, data).markup

        assert "multiLvl" not in out
        cat = next(parse(out).iter(c("cat")))
        assert cat.findtext(f"{c('strRef')}/{c('f')}") == "Sheet1!$A$2:$A$4"
        assert cat.find(f".//{c('ptCount')}").get("val") == "3"
        assert read_chart_data(out).categories == ["X", "Y", "Z"]

    def test_no_series(self):
        """Test that a chart without series blocks is a StructuralError."""
        markup = chart_xml(series=())
        with pytest.raises(StructuralError):
            update_chart_markup(markup, ChartData(["A"], [SeriesData("S", [1])]))

    def test_undeclared_chart_namespace(self):
        """Test that a part without the chart namespace is a StructuralError."""
        with pytest.raises(StructuralError):
            update_chart_markup("<chartSpace/>", ChartData(["A"], [SeriesData("S", [1])]))


class TestScatterCharts:
    """Tests for rewriting charts that plot numeric X values."""

    def test_x_and_y_sections_rewritten(self):
        """Test that xVal and yVal caches and formulas follow the new grid."""
        data = ChartData(["10", "20", "30", "40"], [SeriesData("Trend", [1, 2, 3, 4.5])])
        out = update_chart_markup(scatter_chart_xml(), data).markup
        ser = next(parse(out).iter(c("ser")))

        x_val = ser.find(c("xVal"))
        assert x_val.findtext(f".//{c('f')}") == "Sheet1!$A$2:$A$5"
        assert points(x_val) == ["10", "20", "30", "40"]
        y_val = ser.find(c("yVal"))
        assert y_val.findtext(f".//{c('f')}") == "Sheet1!$B$2:$B$5"
        assert points(y_val) == ["1", "2", "3", "4.5"]
        assert y_val.findtext(f".//{c('formatCode')}") == "0.0"

        read = read_chart_data(out)
        assert read.categories == ["10", "20", "30", "40"]
        assert read.series[0].values == [1.0, 2.0, 3.0, 4.5]

    def test_text_x_values_rejected(self):
        """Test that labels cannot go into a numeric X cache."""
        data = ChartData(["low", "mid", "high"], [SeriesData("Trend", [1, 2, 3])])
        with pytest.raises(ValidationError) as exc_info:
            update_chart_markup(scatter_chart_xml(), data)
        assert "low" in exc_info.value.errors


class TestReadChartData:
    """Tests for reading chart caches."""

    def test_read(self):
        """Test reading categories, names, values and titles."""
        data = read_chart_data(chart_xml())
        assert data.categories == ["Q1", "Q2", "Q3"]
        assert [s.name for s in data.series] == ["Revenue", "Cost"]
        assert data.series[0].values == [10.0, 20.0, 30.0]
        assert data.title == "Revenue by quarter"
        assert data.category_axis_title == "Quarter"
        assert data.value_axis_title == "USD"

    def test_values_padded_to_categories(self):
        """Test that short value caches are padded with zeros."""
        markup = chart_xml(series=(("S", (1,)),), categories=("A", "B"))
        assert read_chart_data(markup).series[0].values == [1.0, 0.0]

    def test_series_count(self):
        """Test counting series blocks."""
        assert series_count(chart_xml()) == 2
        assert series_count(chart_xml().encode("utf-8")) == 2

    def test_update_then_read(self):
        """Test that reading an updated chart returns the written data."""
        data = ChartData(["A", "B"], [SeriesData("X", [1.5, 2]), SeriesData("Y", [3, 4])])
        read = read_chart_data(update_chart_markup(chart_xml(), data).markup)
        assert read.categories == data.categories
        assert [s.values for s in read.series] == [[1.5, 2.0], [3.0, 4.0]]


class TestExternalData:
    """Tests for the chart's workbook reference."""

    def test_read_and_set(self):
        """Test reading and replacing the externalData relationship id."""
        markup = chart_xml()
        assert external_data_rel_id(markup) == "rId1"
        updated = set_external_data_rel_id(markup, "rId4")
        assert external_data_rel_id(updated) == "rId4"
        assert updated.replace('r:id="rId4"', 'r:id="rId1"') == markup

    def test_missing(self):
        """Test charts without external data."""
        markup = chart_xml(external_rel_id=None)
        assert external_data_rel_id(markup) is None
        with pytest.raises(StructuralError):
            set_external_data_rel_id(markup, "rId2")


class TestGenerateChartXml:
    """Tests for building new chart parts."""

    @pytest.mark.parametrize("kind", list(ChartKind))
    def test_generated_chart_reads_back(self, kind: ChartKind):
        """Test that every chart kind produces a readable part."""
        data = ChartData(
            ["A", "B"],
            [SeriesData("S1", [1, 2.5], color="ff0000"), SeriesData("S2", [3, 4])],
            title="T",
        )
        xml = generate_chart_xml(ChartOptions(data, kind=kind), "rId7")
        read = read_chart_data(xml)
        assert read.categories == ["A", "B"]
        assert [s.values for s in read.series] == [[1.0, 2.5], [3.0, 4.0]]
        assert read.title == "T"
        assert external_data_rel_id(xml.decode("utf-8")) == "rId7"

    def test_bar_direction_and_axes(self):
        """Test horizontal bars and axis titles."""
        data = ChartData(
            ["A"], [SeriesData("S", [1])], category_axis_title="Cat", value_axis_title="Val"
        )
        root = etree.fromstring(generate_chart_xml(ChartOptions(data, kind=ChartKind.BAR)))
        assert root.find(f".//{c('barDir')}").get("val") == "bar"
        read = read_chart_data(etree.tostring(root))
        assert read.category_axis_title == "Cat"
        assert read.value_axis_title == "Val"

    def test_pie_has_no_axes(self):
        """Test that pie charts have no axes."""
        data = ChartData(["A"], [SeriesData("S", [1])])
        root = etree.fromstring(generate_chart_xml(ChartOptions(data, kind=ChartKind.PIE)))
        assert root.find(f".//{c('catAx')}") is None

    def test_legend(self):
        """Test legend placement and suppression."""
        data = ChartData(["A"], [SeriesData("S", [1])])
        root = etree.fromstring(generate_chart_xml(ChartOptions(data, legend_position="b")))
        assert root.find(f".//{c('legendPos')}").get("val") == "b"
        root = etree.fromstring(generate_chart_xml(ChartOptions(data, show_legend=False)))
        assert root.find(f".//{c('legend')}") is None

    def test_formulas_point_at_grid(self):
        """Test that generated formulas match the workbook layout."""
        data = ChartData(
            ["A", "B", "C"], [SeriesData("S1", [1, 2, 3]), SeriesData("S2", [4, 5, 6])]
        )
        root = etree.fromstring(generate_chart_xml(ChartOptions(data)))
        second = list(root.iter(c("ser")))[1]
        assert second.findtext(f"{c('tx')}//{c('f')}") == "Sheet1!$C$1"
        assert second.findtext(f"{c('val')}//{c('f')}") == "Sheet1!$C$2:$C$4"

    def test_axis_options(self):
        """Test scale bounds, units, gridlines and number formats on the axes."""
        data = ChartData(["A", "B"], [SeriesData("S", [10, 20])])
        options = ChartOptions(
            data,
            category_axis=AxisOptions(position="t", minor_gridlines=True),
            value_axis=AxisOptions(
                minimum=0,
                maximum=50,
                major_unit=10,
                minor_unit=2.5,
                major_gridlines=False,
                number_format="0%",
                major_tick_mark="out",
            ),
        )
        root = etree.fromstring(generate_chart_xml(options))
        cat_ax = root.find(f".//{c('catAx')}")
        val_ax = root.find(f".//{c('valAx')}")

        assert cat_ax.find(c("axPos")).get("val") == "t"
        assert cat_ax.find(c("minorGridlines")) is not None
        assert cat_ax.find(c("majorGridlines")) is None
        scaling = val_ax.find(c("scaling"))
        assert [child.tag for child in scaling] == [c("orientation"), c("max"), c("min")]
        assert scaling.find(c("max")).get("val") == "50"
        assert scaling.find(c("min")).get("val") == "0"
        assert val_ax.find(c("majorGridlines")) is None
        assert val_ax.find(c("numFmt")).get("formatCode") == "0%"
        assert val_ax.find(c("numFmt")).get("sourceLinked") == "0"
        assert val_ax.find(c("majorTickMark")).get("val") == "out"
        assert val_ax.find(c("majorUnit")).get("val") == "10"
        assert val_ax.find(c("minorUnit")).get("val") == "2.5"
        assert val_ax[-1].tag == c("minorUnit")

    def test_default_axes(self):
        """Test that unset axis options keep automatic scaling and value gridlines."""
        root = etree.fromstring(
            generate_chart_xml(ChartOptions(ChartData(["A"], [SeriesData("S", [1])])))
        )
        val_ax = root.find(f".//{c('valAx')}")
        assert val_ax.find(c("majorGridlines")) is not None
        assert val_ax.find(f"{c('scaling')}/{c('min')}") is None
        assert val_ax.find(c("numFmt")).get("sourceLinked") == "1"
        assert val_ax.find(c("crosses")).get("val") == "autoZero"

    def test_crosses_at(self):
        """Test that a crossing point replaces automatic crossing."""
        data = ChartData(["A"], [SeriesData("S", [1])])
        options = ChartOptions(data, category_axis=AxisOptions(crosses_at=5))
        cat_ax = etree.fromstring(generate_chart_xml(options)).find(f".//{c('catAx')}")
        assert cat_ax.find(c("crossesAt")).get("val") == "5"
        assert cat_ax.find(c("crosses")) is None

    def test_bar_grouping(self):
        """Test stacked bars with a custom gap width."""
        data = ChartData(["A"], [SeriesData("S1", [1]), SeriesData("S2", [2])])
        options = ChartOptions(data, bar_grouping="stacked", gap_width=80)
        bar = etree.fromstring(generate_chart_xml(options)).find(f".//{c('barChart')}")
        assert bar.find(c("grouping")).get("val") == "stacked"
        assert bar.find(c("gapWidth")).get("val") == "80"
        assert bar.find(c("overlap")).get("val") == "100"

        options = ChartOptions(data, overlap=-20)
        bar = etree.fromstring(generate_chart_xml(options)).find(f".//{c('barChart')}")
        assert bar.find(c("grouping")).get("val") == "clustered"
        assert bar.find(c("overlap")).get("val") == "-20"

    def test_data_labels(self):
        """Test that data labels follow the series and precede the gap width."""
        data = ChartData(["A"], [SeriesData("S", [1])])
        labels = DataLabelOptions(show_category_name=True, position="outEnd")
        bar = etree.fromstring(
            generate_chart_xml(ChartOptions(data, data_labels=labels))
        ).find(f".//{c('barChart')}")
        tags = [child.tag for child in bar]
        assert tags.index(c("ser")) < tags.index(c("dLbls")) < tags.index(c("gapWidth"))
        d_lbls = bar.find(c("dLbls"))
        assert d_lbls[0].tag == c("dLblPos")
        assert d_lbls.find(c("dLblPos")).get("val") == "outEnd"
        assert d_lbls.find(c("showVal")).get("val") == "1"
        assert d_lbls.find(c("showCatName")).get("val") == "1"
        assert d_lbls.find(c("showPercent")).get("val") == "0"

    def test_chart_properties(self):
        """Test style, language, blanks handling and legend overlay."""
        data = ChartData(["A"], [SeriesData("S", [1])])
        options = ChartOptions(
            data, style=10, language="de-DE", display_blanks_as="zero", legend_overlay=True
        )
        root = etree.fromstring(generate_chart_xml(options))
        assert root.find(c("style")).get("val") == "10"
        assert root.find(c("lang")).get("val") == "de-DE"
        chart = root.find(c("chart"))
        assert chart.find(c("dispBlanksAs")).get("val") == "zero"
        assert chart.find(f"{c('legend')}/{c('overlay')}").get("val") == "1"

        root = etree.fromstring(generate_chart_xml(ChartOptions(data, style=None)))
        assert root.find(c("style")) is None
        assert "c16r2" not in etree.tostring(root).decode("utf-8")
