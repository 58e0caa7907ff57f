"""Tests for grouping, pivoting, and nesting chart rows."""

from __future__ import annotations

import pytest

from analysis.aggregations import aggregate, distinct_values, group_rows, nest_rows, pivot_rows, quartiles, to_number

pytestmark = pytest.mark.unit


def test_to_number_rejects_booleans_and_non_finite_values() -> None:
    """Only finite numeric values and numeric strings convert."""

    assert to_number(" 3.5 ") == 3.5
    assert to_number(True) is None
    assert to_number("nan") is None
    assert to_number("abc") is None


def test_aggregate_skips_non_numeric_values() -> None:
    """Aggregates ignore values that are not numbers."""

    values = [1, "2", None, "x", 3]
    assert aggregate(values, "sum") == 6.0
    assert aggregate(values, "avg") == 2.0
    assert aggregate(values, "min") == 1.0
    assert aggregate(values, "max") == 3.0
    assert aggregate(values, "count") == 4.0


def test_aggregate_handles_empty_input() -> None:
    """Empty input gives None, except count which gives zero."""

    assert aggregate([], "sum") is None
    assert aggregate([], "count") == 0.0


def test_aggregate_rejects_unknown_method() -> None:
    """Unsupported aggregation names raise ValueError."""

    with pytest.raises(ValueError, match="Unsupported aggregation"):
        aggregate([1], "median")


def test_group_rows_preserves_first_seen_order(sales_rows) -> None:
    """Groups appear in dataset order and count when no value field is given."""

    assert group_rows(sales_rows, key_field="region", value_field="sales") == {"EU": 360.0, "US": 140.0}
    assert group_rows(sales_rows, key_field="region", value_field=None) == {"EU": 3.0, "US": 2.0}
    assert distinct_values(sales_rows, "month") == ["2025-01", "2025-02", "2025-03"]


def test_pivot_rows_fills_missing_cells_with_none(sales_rows) -> None:
    """Pivoting aligns every series with the shared x values."""

    x_values, series, matrix = pivot_rows(sales_rows, x_field="month", series_field="region", value_field="sales")
    assert x_values == ["2025-01", "2025-02", "2025-03"]
    assert series == ["EU", "US"]
    assert matrix == [[120.0, 150.0, 90.0], [80.0, 60.0, None]]


def test_quartiles_interpolates_linearly() -> None:
    """The five-number summary uses linear interpolation."""

    assert quartiles([1, 2, 3, 4, 5]) == (1.0, 2.0, 3.0, 4.0, 5.0)
    assert quartiles([1, 2, 3, 4]) == (1.0, 1.75, 2.5, 3.25, 4.0)
    assert quartiles(["x", None]) is None


def test_nest_rows_sums_children_into_parents(sales_rows) -> None:
    """Inner nodes carry the sum of their children."""

    tree = nest_rows(sales_rows, path_fields=["region", "channel"], value_field="sales")
    assert [node["name"] for node in tree] == ["EU", "US"]
    eu = tree[0]
    assert eu["value"] == 360.0
    assert {child["name"]: child["value"] for child in eu["children"]} == {"Online": 270.0, "Retail": 90.0}
    assert nest_rows(sales_rows, path_fields=[], value_field="sales") == []
