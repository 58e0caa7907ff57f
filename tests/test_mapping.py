"""Tests for mapping field assignments and custom settings onto factory configs."""

from __future__ import annotations

import pytest

from core.charting.configs import DEFAULT_REGISTRY
from core.charting.defaults import DEFAULT_PALETTE
from core.charting.mapping import (
    create_field_mapping,
    field_refs,
    infer_axis_type,
    map_to_factory_config,
    schema_defaults,
    validate_mapped_config,
)
from core.charting.schema import FieldRef

pytestmark = pytest.mark.unit


def test_infer_axis_type_follows_column_category() -> None:
    """Numeric columns get value axes and dates get time axes."""

    assert infer_axis_type("integer") == "value"
    assert infer_axis_type("timestamp") == "time"
    assert infer_axis_type("text") == "category"
    assert infer_axis_type(None) == "category"


def test_field_refs_accepts_every_assignment_form() -> None:
    """Refs, mappings, names, and lists all resolve; blanks are skipped."""

    assert field_refs(FieldRef("a")) == [FieldRef("a")]
    assert field_refs({"name": "b", "type": "number"}) == [FieldRef("b", "number")]
    assert field_refs("c") == [FieldRef("c")]
    assert field_refs(["d", {"name": ""}, "  ", FieldRef("e")]) == [FieldRef("d"), FieldRef("e")]
    assert field_refs(None) == []


def test_create_field_mapping_keeps_path_as_list() -> None:
    """Only multi-column roles map to lists."""

    mapping = create_field_mapping({"x-axis": [FieldRef("month"), FieldRef("day")], "path": ["region", "country"], "value": {}})
    assert mapping == {"x-axis": "month", "path": ["region", "country"]}


def test_assignments_become_fields_and_axes() -> None:
    """Axis roles set both the `*_field` key and the axis metadata."""

    config = map_to_factory_config(
        {"x-axis": FieldRef("day", "date"), "y-axis": FieldRef("sales", "integer"), "series": FieldRef("region")},
        chart_type="line",
    )
    assert config["x_field"] == "day"
    assert config["y_field"] == "sales"
    assert config["series_field"] == "region"
    assert config["axes"]["x"] == {"field": "day", "type": "time"}
    assert config["axes"]["y"] == {"field": "sales", "type": "value"}
    assert config["legend"]["position"] == "top"
    assert config["colors"] == list(DEFAULT_PALETTE)
    assert config["field_assignments"] == {"x-axis": "day", "y-axis": "sales", "series": "region"}


def test_multiple_y_fields_are_kept_as_a_list() -> None:
    """Several columns on one role produce a plural key."""

    config = map_to_factory_config({"x-axis": "month", "y-axis": ["sales", "cost"]}, chart_type="bar")
    assert config["y_field"] == "sales"
    assert config["y_fields"] == ["sales", "cost"]


def test_custom_settings_fold_into_sections() -> None:
    """Form values land in legend, grid, axes, and dimensions."""

    custom = {
        "title": "  Revenue  ",
        "show_legend": False,
        "show_grid": True,
        "x_axis_label": "Month",
        "width": 640,
        "colors": ["#000", "#fff"],
        "stacked": True,
    }
    config = map_to_factory_config({"x-axis": "month", "y-axis": "sales"}, custom, chart_type="bar")
    assert config["title"] == "Revenue"
    assert config["legend"]["show"] is False
    assert config["grid"] == {"show": True}
    assert config["axes"]["x"]["title"] == "Month"
    assert config["dimensions"] == {"width": 640}
    assert config["colors"] == ["#000", "#fff"]
    assert config["stacked"] is True
    assert config["animation"]["enabled"] is True


def test_explicit_false_overrides_schema_default() -> None:
    """A False from the form wins over a True schema default."""

    schema = DEFAULT_REGISTRY.require("echarts-bar-chart").config_schema
    assert schema_defaults(schema)["show_legend"] is True

    config = map_to_factory_config({"x-axis": "m", "y-axis": "s"}, {"show_legend": False}, chart_type="bar", schema=schema)
    assert config["legend"]["show"] is False
    assert config["orientation"] == "vertical"
    assert config["aggregation"] == "sum"


def test_custom_values_never_override_assignments() -> None:
    """Pass-through keys cannot replace fields set by assignments."""

    config = map_to_factory_config({"x-axis": "month"}, {"x_field": "other", "y_field": "sales"}, chart_type="bar")
    assert config["x_field"] == "month"
    assert config["y_field"] == "sales"
    assert config["axes"]["y"] == {"field": "sales", "type": "value"}


def test_inputs_are_not_mutated() -> None:
    """The mapper copies custom settings."""

    custom = {"animation": {"enabled": False}, "colors": ["#111"]}
    config = map_to_factory_config({"category": "region", "value": "sales"}, custom, chart_type="pie")
    config["animation"]["duration"] = 5
    assert custom == {"animation": {"enabled": False}, "colors": ["#111"]}
    assert config["label_field"] == "region"
    assert config["legend"]["position"] == "right"


def test_validate_mapped_config_uses_default_roles() -> None:
    """Pie charts need category and value; others need both axes."""

    pie = validate_mapped_config({}, chart_type="pie", assignments={})
    assert pie.errors == ("Category field is required for pie charts.", "Value field is required for pie charts.")

    bar = validate_mapped_config({}, chart_type="bar", assignments={"x-axis": "month"})
    assert bar.errors == ("Y-axis field is required for bar charts.",)


def test_validate_mapped_config_with_plugin_roles_and_dimensions() -> None:
    """Explicit roles replace the defaults and dimensions are range-checked."""

    assignments = {"path": ["region", "country"]}
    config = map_to_factory_config(assignments, {"height": 10}, chart_type="treemap")
    result = validate_mapped_config(config, chart_type="treemap", assignments=assignments, required_roles=["path"])
    assert result.is_valid is False
    assert result.errors == ("Chart height must be between 50 and 5000.",)


def test_type_mismatches_are_warnings_only() -> None:
    """Text on a scatter axis or a line x axis warns without failing."""

    scatter = validate_mapped_config(
        {},
        chart_type="scatter",
        assignments={"x-axis": FieldRef("name", "text"), "y-axis": FieldRef("score", "number")},
    )
    assert scatter.is_valid is True
    assert scatter.warnings == ("Scatter charts work best with numeric X-axis values.",)

    line = validate_mapped_config({}, chart_type="line", assignments={"x-axis": FieldRef("name", "text"), "y-axis": "v"})
    assert line.is_valid is True
    assert line.warnings == ("Line charts work best with date or numeric X-axis values.",)
