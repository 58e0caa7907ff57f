"""Tests for rendering chart plugins from data and field assignments."""

from __future__ import annotations

import pytest

from core.charting.configs import DEFAULT_REGISTRY
from core.charting.plugin_config import chart_config_template, create_chart_config
from core.charting.render import RenderSettings, render_cache_key, render_chart, render_charts
from core.charting.schema import FieldRef, RenderRequest

pytestmark = pytest.mark.unit

BAR = DEFAULT_REGISTRY.require("echarts-bar-chart")


def test_render_chart_builds_the_library_option(sales_rows) -> None:
    """A complete assignment renders with schema defaults applied."""

    rendered = render_chart(
        plugin=BAR,
        data={"rows": sales_rows},
        assignments={"x-axis": "month", "y-axis": "sales"},
        custom_config={"title": "Sales"},
    )
    assert rendered.error is None
    assert rendered.row_count == 5
    assert rendered.option["title"]["text"] == "Sales"
    assert rendered.option["series"][0]["data"] == [200, 210, 90]
    assert rendered.option["series"][0]["barWidth"] == "60%"

    payload = rendered.as_json()
    assert payload["plugin"] == "echarts-bar-chart"
    assert payload["library"] == "echarts"
    assert payload["chart_type"] == "bar"


def test_missing_required_role_is_an_error(sales_rows) -> None:
    """Unassigned required roles stop rendering with an empty option."""

    rendered = render_chart(plugin=BAR, data=sales_rows, assignments={"x-axis": "month"})
    assert rendered.option == {}
    assert rendered.error == "Y-axis field is required for bar charts."


def test_assigned_column_must_exist_in_the_data(sales_rows) -> None:
    """A column missing from the dataset is reported by name and role."""

    rendered = render_chart(plugin=BAR, data=sales_rows, assignments={"x-axis": "month", "y-axis": "profit"})
    assert rendered.error == "Field 'profit' assigned to y-axis is not present in the data."


def test_unsupported_column_types_only_warn() -> None:
    """Boolean columns are outside the built-in supported types."""

    rows = [{"flag": True, "n": 1}, {"flag": False, "n": 2}]
    rendered = render_chart(plugin=BAR, data=rows, assignments={"x-axis": "flag", "y-axis": "n"})
    assert rendered.error is None
    assert rendered.warnings == ("Bar Chart does not support boolean columns (flag).",)


def test_untyped_assignments_take_column_types_from_the_data() -> None:
    """Bare column names pick up the dataset's types, so date axes are ordered."""

    rows = [
        {"day": "2025-03-01", "visits": 3},
        {"day": "2025-01-01", "visits": 1},
        {"day": "2025-02-01", "visits": 2},
    ]
    line = DEFAULT_REGISTRY.require("echarts-line-chart")
    bare = render_chart(plugin=line, data=rows, assignments={"x-axis": "day", "y-axis": {"name": "visits"}})
    typed = render_chart(
        plugin=line,
        data=rows,
        assignments={"x-axis": FieldRef("day", "date"), "y-axis": FieldRef("visits", "number")},
    )
    assert bare.error is None
    assert bare.option["xAxis"]["data"] == ["2025-01-01", "2025-02-01", "2025-03-01"]
    assert bare.option["series"][0]["data"] == [1, 2, 3]
    assert bare.option == typed.option

    scatter = DEFAULT_REGISTRY.require("echarts-scatter-chart")
    rendered = render_chart(plugin=scatter, data=rows, assignments={"x-axis": "day", "y-axis": "visits"})
    assert rendered.warnings == ("Scatter charts work best with numeric X-axis values.",)


def test_row_limit_and_thresholds_come_from_settings(sales_rows) -> None:
    """Oversized datasets are refused and large ones lose animation."""

    assignments = {"x-axis": "month", "y-axis": "sales"}
    refused = render_chart(plugin=BAR, data=sales_rows, assignments=assignments, settings=RenderSettings(max_rows=3))
    assert refused.error is not None
    assert refused.error.startswith("Too many rows to render safely (5 > 3).")

    tuned = render_chart(
        plugin=BAR,
        data=sales_rows,
        assignments=assignments,
        settings=RenderSettings(animation_threshold=2),
    )
    assert tuned.option["animation"] is False


def test_render_settings_from_mapping() -> None:
    """Missing keys keep their defaults."""

    settings = RenderSettings.from_mapping({"MAX_ROWS": "10", "HOVER_THRESHOLD": 7})
    assert settings == RenderSettings(max_rows=10, animation_threshold=1000, hover_threshold=7)
    assert RenderSettings.from_mapping(None) == RenderSettings()


def test_builder_failures_are_reported(caplog) -> None:
    """Errors raised by an option builder become a render error."""

    def broken(rows, config):
        raise ValueError("bad series")

    data = chart_config_template("broken-chart", "echarts")
    data["option_builder"] = broken
    plugin = create_chart_config(data)

    rendered = render_chart(plugin=plugin, data=[{"c": "a", "v": 1}], assignments={"category": "c", "value": "v"})
    assert rendered.error == "Chart could not be rendered: bad series"
    assert "Option builder for echarts-broken-chart failed" in caplog.text


def test_render_charts_reuses_identical_requests(sales_rows) -> None:
    """Equivalent requests render once; unknown plugins get an error entry."""

    requests = [
        RenderRequest("echarts-bar-chart", sales_rows, {"x-axis": "month", "y-axis": "sales"}),
        RenderRequest("echarts-bar-chart", sales_rows, {"x-axis": FieldRef("month"), "y-axis": {"name": "sales"}}),
        RenderRequest("echarts-nope", sales_rows),
    ]
    first, second, unknown = render_charts(requests, registry=DEFAULT_REGISTRY)
    assert first is second
    assert unknown.error == "Unknown chart type: echarts-nope"
    assert unknown.option == {}


def test_render_cache_key_depends_on_content(sales_rows) -> None:
    """Keys change with the plugin, data, and config."""

    base = RenderRequest("echarts-bar-chart", sales_rows, {"x-axis": "month"})
    assert render_cache_key(base) == render_cache_key(RenderRequest("echarts-bar-chart", sales_rows, {"x-axis": "month"}))
    assert render_cache_key(base) != render_cache_key(RenderRequest("chartjs-bar-chart", sales_rows, {"x-axis": "month"}))
    assert render_cache_key(base) != render_cache_key(
        RenderRequest("echarts-bar-chart", sales_rows, {"x-axis": "month"}, {"title": "x"})
    )
