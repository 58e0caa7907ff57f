"""Tests for validating saved chart definitions."""

from __future__ import annotations

import pytest

from core.charting.validator import ChartValidator, ValidationRule

pytestmark = pytest.mark.unit


def _chart(**overrides: object) -> dict[str, object]:
    chart: dict[str, object] = {"name": "Sales by region", "type": "bar", "description": "Monthly sales"}
    chart.update(overrides)
    return chart


def test_valid_chart_has_no_issues() -> None:
    """A named, typed, described chart passes cleanly."""

    result = ChartValidator().validate_chart(_chart())
    assert result.is_valid is True
    assert result.errors == ()
    assert result.warnings == ()


def test_default_rules_check_name_and_type() -> None:
    """Missing names and unsupported types are errors."""

    result = ChartValidator().validate_chart(_chart(name="", type="sunburst"))
    messages = {issue.field: issue.message for issue in result.errors}
    assert messages["name"] == "name is required"
    assert messages["type"].startswith("type must be one of: bar, column")


def test_long_names_and_missing_descriptions_warn() -> None:
    """Readability hints are warnings, promoted to errors in strict mode."""

    chart = _chart(name="x" * 60, description="")
    relaxed = ChartValidator().validate_chart(chart)
    assert relaxed.is_valid is True
    assert [issue.field for issue in relaxed.warnings] == ["name", "description"]

    strict = ChartValidator().validate_chart(chart, strict=True)
    assert strict.is_valid is False
    assert strict.warnings == ()
    assert all(issue.severity == "error" for issue in strict.errors)


def test_metric_and_table_charts_need_query_fields() -> None:
    """Metric charts need measures; tables need a dimension or measure."""

    metric = ChartValidator().validate_chart(_chart(type="metric", query_config={"measures": []}))
    assert metric.errors[0].field == "query_config.measures"

    table = ChartValidator().validate_chart(_chart(type="table", query_config={"dimensions": ["region"]}))
    assert table.is_valid is True


def test_bar_charts_need_an_x_axis_field() -> None:
    """An x-axis section without a field is rejected for bar charts."""

    result = ChartValidator().validate_chart(_chart(visualization_config={"x_axis": {"label": "Month"}}))
    assert result.errors[0].message == "X-axis field is required for bar charts"


def test_data_compatibility(sales_rows) -> None:
    """Empty data errors; line charts without a time column only warn."""

    validator = ChartValidator()
    assert validator.validate_data_compatibility("bar", [])[0].message == "Chart data is empty"
    assert validator.validate_data_compatibility("heatmap", [{"a": 1, "b": 2}])[0].message == (
        "Heatmap charts require at least 3 columns"
    )

    line = validator.validate_chart(_chart(type="line"), sales_rows)
    assert line.is_valid is True
    assert line.warnings[0].message == "Line charts work best with a date or time column"

    dated = [{"day": "2025-01-01", "sales": 1}]
    assert validator.validate_data_compatibility("line", dated) == []
    skipped = validator.validate_chart(_chart(type="line"), [], skip_data_validation=True)
    assert skipped.is_valid is True


def test_rules_can_be_added_replaced_and_removed() -> None:
    """A later rule for a field replaces the earlier one."""

    validator = ChartValidator()
    validator.add_rule(ValidationRule(field="name", required=True, min_length=20, message="Name too short"))
    assert validator.validate_chart(_chart()).errors[0].message == "Name too short"

    assert validator.remove_rule("name") is True
    assert validator.remove_rule("name") is False
    assert validator.validate_chart(_chart(name="")).is_valid is True


def test_custom_and_nested_rules() -> None:
    """Extra rules read dotted paths and may call a custom check."""

    rule = ValidationRule(
        field="visualization_config.height",
        type="number",
        max_value=800,
    )
    refresh = ValidationRule(
        field="refresh",
        custom=lambda value, chart: None if value in (30, 60) else "Refresh must be 30 or 60 seconds",
    )
    chart = _chart(visualization_config={"height": 900}, refresh=45)
    result = ChartValidator().validate_chart(chart, custom_rules=[rule, refresh])
    assert [issue.message for issue in result.errors] == [
        "visualization_config.height must be no more than 800",
        "Refresh must be 30 or 60 seconds",
    ]


def test_quick_validate_needs_name_type_and_dataset() -> None:
    """Only the fields required to save a chart are checked."""

    result = ChartValidator().quick_validate({"name": "Sales"})
    assert [issue.message for issue in result.errors] == ["Chart type is required", "Dataset is required"]
    assert ChartValidator().quick_validate({"name": "a", "type": "bar", "dataset_id": 3}).is_valid is True


def test_unexpected_failures_become_a_general_error() -> None:
    """A crashing custom check yields a single internal-error issue."""

    def explode(value: object, chart: object) -> str | None:
        raise RuntimeError("boom")

    result = ChartValidator().validate_chart(_chart(), custom_rules=[ValidationRule(field="name", custom=explode)])
    assert result.is_valid is False
    assert result.errors[0].field == "general"
