"""Tests for ECharts option builders."""

from __future__ import annotations

from typing import Any

import pytest

from core.charting import echarts
from core.charting.mapping import map_to_factory_config
from core.charting.schema import FieldRef

pytestmark = pytest.mark.unit


def _config(chart_type: str, assignments: dict[str, Any], **custom: Any) -> dict[str, Any]:
    return map_to_factory_config(assignments, custom, chart_type=chart_type)


def test_empty_rows_draw_the_no_data_message() -> None:
    """Builders never return an empty canvas."""

    option = echarts.build_bar_option([], _config("bar", {"x-axis": "month", "y-axis": "sales"}))
    assert option["title"]["text"] == echarts.NO_DATA_TEXT
    assert option["series"] == []


def test_bar_option_pivots_series_and_keeps_gaps(sales_rows) -> None:
    """A series field yields one bar series per value, aligned by month."""

    config = _config("bar", {"x-axis": "month", "y-axis": "sales", "series": "region"}, stacked=True, show_values=True)
    option = echarts.build_bar_option(sales_rows, config)

    assert option["xAxis"] == {"type": "category", "data": ["2025-01", "2025-02", "2025-03"]}
    assert option["yAxis"] == {"type": "value"}
    assert [(s["name"], s["data"]) for s in option["series"]] == [("EU", [120, 150, 90]), ("US", [80, 60, None])]
    assert option["series"][0]["stack"] == "total"
    assert option["series"][0]["label"] == {"show": True, "position": "top"}
    assert option["tooltip"]["trigger"] == "axis"


def test_horizontal_bar_swaps_axes(sales_rows) -> None:
    """Horizontal bars put categories on the y axis."""

    config = _config("bar", {"x-axis": "region", "y-axis": "sales"}, orientation="horizontal", y_axis_label="Sales")
    option = echarts.build_bar_option(sales_rows, config)
    assert option["yAxis"]["data"] == ["EU", "US"]
    assert option["xAxis"] == {"type": "value", "name": "Sales"}
    assert option["series"][0]["data"] == [360, 140]


def test_line_and_area_options(sales_rows) -> None:
    """Area charts are filled line charts."""

    config = _config("line", {"x-axis": "month", "y-axis": "units"}, smooth=True)
    line = echarts.build_line_option(sales_rows, config)
    assert line["series"][0]["smooth"] is True
    assert line["series"][0]["data"] == [6, 8, 6]
    assert "areaStyle" not in line["series"][0]
    assert line["xAxis"]["boundaryGap"] is False

    area = echarts.build_area_option(sales_rows, config)
    assert area["series"][0]["areaStyle"] == {"opacity": 0.3}


def test_time_axis_sorts_categories() -> None:
    """Date x values are drawn in chronological order."""

    rows = [{"day": "2025-03-01", "v": 3}, {"day": "2025-01-01", "v": 1}, {"day": "2025-02-01", "v": 2}]
    config = _config("line", {"x-axis": FieldRef("day", "date"), "y-axis": "v"})
    option = echarts.build_line_option(rows, config)
    assert option["xAxis"]["data"] == ["2025-01-01", "2025-02-01", "2025-03-01"]
    assert option["series"][0]["data"] == [1, 2, 3]


def test_pie_option_sums_per_label(sales_rows) -> None:
    """Pie slices aggregate the value field per label."""

    option = echarts.build_pie_option(sales_rows, _config("pie", {"category": "region", "value": "sales"}, inner_radius=30))
    series = option["series"][0]
    assert series["data"] == [{"name": "EU", "value": 360}, {"name": "US", "value": 140}]
    assert series["radius"] == ["30%", "70%"]
    assert option["legend"]["orient"] == "vertical"


def test_scatter_option_scales_symbol_sizes() -> None:
    """Size values map onto symbol sizes between 6 and 40."""

    rows = [{"x": 1, "y": 2, "s": 10}, {"x": 2, "y": 4, "s": 30}, {"x": "n/a", "y": 1, "s": 5}]
    option = echarts.build_scatter_option(rows, _config("scatter", {"x-axis": "x", "y-axis": "y", "size": "s"}))
    points = option["series"][0]["data"]
    assert len(points) == 2
    assert points[0] == {"value": [1, 2, 10], "symbolSize": 6}
    assert points[1]["symbolSize"] == 40


def test_heatmap_option_places_cells(sales_rows) -> None:
    """Cells are `[x_index, y_index, value]` and missing cells are skipped."""

    option = echarts.build_heatmap_option(
        sales_rows, _config("heatmap", {"x-axis": "month", "y-axis": "region", "value": "sales"})
    )
    assert option["series"][0]["data"] == [[0, 0, 120], [1, 0, 150], [2, 0, 90], [0, 1, 80], [1, 1, 60]]
    assert (option["visualMap"]["min"], option["visualMap"]["max"]) == (60, 150)


def test_funnel_and_gauge_options(sales_rows) -> None:
    """Funnel stages sort descending; the gauge averages by default."""

    funnel = echarts.build_funnel_option(sales_rows, _config("funnel", {"category": "channel", "value": "sales"}))
    assert [stage["name"] for stage in funnel["series"][0]["data"]] == ["Online", "Retail"]

    gauge = echarts.build_gauge_option(sales_rows, _config("gauge", {"value": "sales"}))
    assert gauge["series"][0]["data"][0]["value"] == 100
    assert gauge["series"][0]["max"] == 100


def test_sankey_option_drops_self_links() -> None:
    """Flows from a node to itself are skipped and duplicate links are summed."""

    rows = [
        {"from": "A", "to": "B", "n": 3},
        {"from": "A", "to": "B", "n": 2},
        {"from": "B", "to": "B", "n": 9},
        {"from": "B", "to": "C", "n": 1},
    ]
    option = echarts.build_sankey_option(rows, _config("sankey", {"source": "from", "target": "to", "value": "n"}))
    series = option["series"][0]
    assert series["data"] == [{"name": "A"}, {"name": "B"}, {"name": "C"}]
    assert series["links"] == [{"source": "A", "target": "B", "value": 5}, {"source": "B", "target": "C", "value": 1}]


def test_treemap_option_nests_path_fields(sales_rows) -> None:
    """Hierarchy path fields produce nested nodes."""

    option = echarts.build_treemap_option(sales_rows, _config("treemap", {"path": ["region", "channel"], "value": "sales"}))
    tree = option["series"][0]["data"]
    assert [node["name"] for node in tree] == ["EU", "US"]
    assert tree[1]["value"] == 140


def test_boxplot_option_summarizes_each_category() -> None:
    """Each category gets a five-number summary."""

    rows = [{"g": "a", "v": value} for value in (1, 2, 3, 4, 5)] + [{"g": "b", "v": "x"}]
    option = echarts.build_boxplot_option(rows, _config("boxplot", {"x-axis": "g", "y-axis": "v"}))
    assert option["xAxis"]["data"] == ["a"]
    assert option["series"][0]["data"] == [[1, 2, 3, 4, 5]]


def test_candlestick_option_skips_incomplete_rows() -> None:
    """Rows missing any price are left out."""

    rows = [
        {"d": "2025-01-01", "o": 10, "c": 12, "l": 9, "h": 13},
        {"d": "2025-01-02", "o": 12, "c": None, "l": 11, "h": 14},
    ]
    assignments = {"x-axis": "d", "open": "o", "close": "c", "low": "l", "high": "h"}
    option = echarts.build_candlestick_option(rows, _config("candlestick", assignments))
    assert option["xAxis"]["data"] == ["2025-01-01"]
    assert option["series"][0]["data"] == [[10, 12, 9, 13]]
    assert option["dataZoom"] == []


def test_waterfall_option_stacks_offsets_and_deltas() -> None:
    """Offsets float each delta bar; a total bar closes the chart."""

    rows = [{"step": "Start", "delta": 100}, {"step": "Cost", "delta": -30}, {"step": "Extra", "delta": 20}]
    option = echarts.build_waterfall_option(rows, _config("waterfall", {"category": "step", "value": "delta"}))
    offsets, deltas = option["series"]
    assert option["xAxis"]["data"] == ["Start", "Cost", "Extra", "Total"]
    assert offsets["data"] == [0, 70, 70, 0]
    assert [d["value"] for d in deltas["data"]] == [100, 30, 20, 90]
    assert deltas["data"][1]["itemStyle"]["color"] == echarts.NEGATIVE_COLOR


def test_sunburst_option_nests_rings_by_path(sales_rows) -> None:
    """Inner rings are regions and outer rings their channels."""

    option = echarts.build_sunburst_option(sales_rows, _config("sunburst", {"path": ["region", "channel"], "value": "sales"}))
    series = option["series"][0]
    assert series["type"] == "sunburst"
    assert series["radius"] == ["0%", "90%"]
    assert series["sort"] is None
    assert [(node["name"], node["value"]) for node in series["data"]] == [("EU", 360), ("US", 140)]
    assert [(child["name"], child["value"]) for child in series["data"][0]["children"]] == [("Online", 270), ("Retail", 90)]


def test_graph_option_sizes_nodes_by_degree_and_groups_categories() -> None:
    """Repeated links are summed and grouped sources carry a category index."""

    rows = [
        {"from": "A", "to": "B", "n": 3, "team": "core"},
        {"from": "A", "to": "B", "n": 2, "team": "core"},
        {"from": "B", "to": "C", "n": 1, "team": "edge"},
    ]
    config = _config("graph", {"source": "from", "target": "to", "value": "n", "series": "team"}, layout="circular")
    series = echarts.build_graph_option(rows, config)["series"][0]

    assert series["layout"] == "circular"
    assert "force" not in series
    assert series["links"] == [{"source": "A", "target": "B", "value": 5}, {"source": "B", "target": "C", "value": 1}]
    assert series["categories"] == [{"name": "core"}, {"name": "edge"}]
    nodes = {node["id"]: node for node in series["data"]}
    assert nodes["B"]["symbolSize"] == 16
    assert nodes["A"]["category"] == 0
    assert nodes["B"]["category"] == 1
    assert "category" not in nodes["C"]


def test_graph_option_needs_source_and_target() -> None:
    """Without both endpoints the graph is empty."""

    option = echarts.build_graph_option([{"from": "A"}], _config("graph", {"source": "from"}))
    assert option["title"]["text"] == echarts.NO_DATA_TEXT


def test_parallel_option_draws_one_axis_per_y_column(sales_rows) -> None:
    """Each y column is an axis and each series value a group of lines."""

    option = echarts.build_parallel_option(sales_rows, _config("parallel", {"y-axis": ["sales", "units"], "series": "region"}))
    assert option["parallelAxis"] == [
        {"dim": 0, "name": "sales", "type": "value"},
        {"dim": 1, "name": "units", "type": "value"},
    ]
    assert [(s["name"], s["data"]) for s in option["series"]] == [
        ("EU", [[120, 4], [150, 5], [90, 6]]),
        ("US", [[80, 2], [60, 3]]),
    ]
    assert option["series"][0]["type"] == "parallel"

    single = echarts.build_parallel_option(sales_rows, _config("parallel", {"y-axis": "sales"}))
    assert single["series"] == []
