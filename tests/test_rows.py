"""Tests for normalizing chart data shapes into canonical rows."""

from __future__ import annotations

import logging

import pytest

from analysis.rows import (
    ChartDataError,
    get_data_array,
    get_data_columns,
    get_data_length,
    is_chart_data_empty,
    is_wrapped_rows,
    normalize_chart_data,
    validate_chart_data,
    wrap_rows,
)

pytestmark = pytest.mark.unit


def test_plain_wrapped_and_envelope_shapes_yield_the_same_rows() -> None:
    """All three accepted shapes normalize to identical row dictionaries."""

    rows = [{"region": "EU", "sales": 10}, {"region": "US", "sales": 7}]
    wrapped = {"rows": rows, "columns": ["region", "sales"]}
    envelope = {"data": rows, "columns": [{"name": "region"}, {"name": "sales"}], "execution_time": 12}

    assert get_data_array(rows) == get_data_array(wrapped) == get_data_array(envelope) == rows
    assert is_wrapped_rows(wrapped) is True
    assert is_wrapped_rows(envelope) is False


def test_positional_rows_are_zipped_with_declared_columns() -> None:
    """Sequence rows become mappings keyed by the declared column names."""

    data = {"rows": [["EU", 10], ["US"]], "columns": ["region", "sales"]}
    assert get_data_array(data) == [{"region": "EU", "sales": 10}, {"region": "US", "sales": None}]


def test_rows_that_are_not_mappings_are_dropped_with_a_warning(caplog) -> None:
    """Scalar rows are skipped and the drop is logged."""

    with caplog.at_level(logging.WARNING, logger="analysis.rows"):
        rows = get_data_array([{"a": 1}, 5, "text"])
    assert rows == [{"a": 1}]
    assert "Dropped 2 chart data rows" in caplog.text


def test_get_data_array_returns_copies() -> None:
    """Returned rows can be modified without touching the input."""

    original = [{"a": 1}]
    rows = get_data_array(original)
    rows[0]["a"] = 2
    assert original == [{"a": 1}]


def test_data_columns_prefer_declared_order_then_first_seen_keys() -> None:
    """Declared columns win; otherwise keys are collected across rows."""

    assert get_data_columns({"rows": [{"b": 1, "a": 2}], "columns": ["a", "b"]}) == ["a", "b"]
    assert get_data_columns([{"b": 1}, {"a": 2, "b": 3}]) == ["b", "a"]


def test_empty_and_missing_data() -> None:
    """Empty shapes report zero length and fail validation with the component name."""

    assert is_chart_data_empty({"rows": []}) is True
    assert get_data_length({"data": [{"a": 1}]}) == 1
    assert get_data_array({"unexpected": True}) == []

    with pytest.raises(ChartDataError, match="Sales chart: No data provided"):
        validate_chart_data(None, "Sales chart")
    with pytest.raises(ChartDataError, match="Chart: Data array is empty"):
        validate_chart_data([])


def test_counts_ignore_rows_that_would_be_dropped() -> None:
    """Lengths and validation only count rows that survive normalization."""

    assert get_data_length([1, 2]) == 0
    assert is_chart_data_empty([1, 2]) is True
    with pytest.raises(ChartDataError, match="Chart: Data array is empty"):
        validate_chart_data([1, 2])

    assert get_data_length([{"a": 1}, "text", ["x"]]) == 1
    assert get_data_length({"rows": [["EU", 1], "bad"], "columns": ["region", "sales"]}) == 1


def test_normalize_chart_data_infers_and_maps_types(sales_rows) -> None:
    """Declared types map onto field types and undeclared ones are inferred."""

    normalized = normalize_chart_data(sales_rows)
    assert normalized.column_names == ("month", "region", "channel", "sales", "units")
    assert normalized.column("sales").type == "number"
    assert normalized.column("month").type == "string"
    assert len(normalized) == 5

    declared = normalize_chart_data(
        {
            "data": [{"day": "2025-01-01", "total": "3"}],
            "columns": [{"name": "day", "type": "timestamp"}, {"name": "total", "type": "varchar", "display_name": "Total"}],
        }
    )
    assert declared.column("day").type == "date"
    assert declared.column("total").type == "string"
    assert declared.column("total").display_name == "Total"


def test_normalize_chart_data_marks_nullable_columns() -> None:
    """A column missing from any row, or holding an empty value, is nullable."""

    normalized = normalize_chart_data([{"a": 1, "b": "x"}, {"a": 2}])
    assert normalized.column("a").nullable is False
    assert normalized.column("b").nullable is True


def test_wrap_rows_round_trips_normalized_columns(sales_rows) -> None:
    """Wrapping produces the `{"rows", "columns"}` shape with column metadata."""

    wrapped = wrap_rows(normalize_chart_data(sales_rows))
    assert wrapped["rows"] == sales_rows
    assert wrapped["columns"][3] == {"name": "sales", "type": "number", "nullable": False}
