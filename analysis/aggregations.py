"""Aggregation helpers for chart option builders.

This module provides deterministic, reusable grouping and aggregation
functions used by the per-library option builders without introducing Django
dependencies. Grouping preserves first-seen order so that chart categories
appear in the order the dataset supplies them.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Literal

AggregationMethod = Literal["sum", "count", "avg", "min", "max"]

AGGREGATION_METHODS: tuple[AggregationMethod, ...] = ("sum", "count", "avg", "min", "max")


def to_number(value: object) -> float | None:
    """Return `value` as a finite float, or None when it is not numeric.

    Booleans are not treated as numbers.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number):
        return None
    return number


def aggregate(values: Iterable[object], how: str = "sum") -> float | None:
    """Aggregate values with one of the supported methods.

    Args:
        values: Raw values; `None` and non-numeric values are skipped.
        how: One of "sum", "count", "avg", "min", "max".

    Returns:
        The aggregate, or None when no numeric values exist. "count" counts
        non-null values of any type and returns 0 for an empty input.

    Raises:
        ValueError: When `how` is not a supported method.
    """

    if how not in AGGREGATION_METHODS:
        raise ValueError(f"Unsupported aggregation: {how!r}.")

    materialized = list(values)
    if how == "count":
        return float(sum(1 for value in materialized if value is not None and value != ""))

    numbers = [n for n in (to_number(value) for value in materialized) if n is not None]
    if not numbers:
        return None
    if how == "sum":
        return math.fsum(numbers)
    if how == "avg":
        return math.fsum(numbers) / len(numbers)
    if how == "min":
        return min(numbers)
    return max(numbers)


def distinct_values(rows: Iterable[Mapping[str, Any]], field: str) -> list[Any]:
    """Return distinct non-null values of `field` in first-seen order."""

    seen: set[str] = set()
    ordered: list[Any] = []
    for row in rows:
        value = row.get(field)
        if value is None:
            continue
        marker = repr(value)
        if marker in seen:
            continue
        seen.add(marker)
        ordered.append(value)
    return ordered


def group_rows(
    rows: Iterable[Mapping[str, Any]],
    *,
    key_field: str,
    value_field: str | None,
    how: str = "sum",
) -> dict[Any, float | None]:
    """Group rows by `key_field` and aggregate `value_field` per group.

    Args:
        rows: Row mappings.
        key_field: Field whose values become group keys. Rows with a missing
            key are skipped.
        value_field: Field to aggregate. When None, rows are counted.
        how: Aggregation method.

    Returns:
        Ordered mapping of group key to aggregate value.
    """

    buckets: dict[Any, list[object]] = {}
    for row in rows:
        key = row.get(key_field)
        if key is None:
            continue
        buckets.setdefault(_hashable(key), []).append(row.get(value_field) if value_field else 1)

    method = how if value_field else "count"
    return {key: aggregate(values, method) for key, values in buckets.items()}


def pivot_rows(
    rows: Iterable[Mapping[str, Any]],
    *,
    x_field: str,
    series_field: str,
    value_field: str,
    how: str = "sum",
) -> tuple[list[Any], list[Any], list[list[float | None]]]:
    """Pivot long-format rows into one value list per series.

    Args:
        rows: Row mappings in long format (one row per x/series pair).
        x_field: Field providing the shared x values.
        series_field: Field whose values name each series.
        value_field: Field aggregated into each cell.
        how: Aggregation applied when several rows share an x/series pair.

    Returns:
        `(x_values, series_names, matrix)` where `matrix[s][i]` is the value of
        series `s` at `x_values[i]`, or None when no row supplies it.
    """

    cells: dict[tuple[Any, Any], list[object]] = {}
    x_values: list[Any] = []
    series_names: list[Any] = []
    seen_x: set[Any] = set()
    seen_series: set[Any] = set()
    for row in rows:
        x = row.get(x_field)
        series = row.get(series_field)
        if x is None or series is None:
            continue
        x_key = _hashable(x)
        series_key = _hashable(series)
        if x_key not in seen_x:
            seen_x.add(x_key)
            x_values.append(x_key)
        if series_key not in seen_series:
            seen_series.add(series_key)
            series_names.append(series_key)
        cells.setdefault((x_key, series_key), []).append(row.get(value_field))

    matrix = [
        [aggregate(cells[(x, series)], how) if (x, series) in cells else None for x in x_values]
        for series in series_names
    ]
    return x_values, series_names, matrix


def quartiles(values: Sequence[object]) -> tuple[float, float, float, float, float] | None:
    """Return `(min, q1, median, q3, max)` using linear interpolation.

    Returns:
        The five-number summary, or None when no numeric values exist.
    """

    numbers = sorted(n for n in (to_number(value) for value in values) if n is not None)
    if not numbers:
        return None

    def _quantile(q: float) -> float:
        position = (len(numbers) - 1) * q
        lower = math.floor(position)
        upper = math.ceil(position)
        if lower == upper:
            return numbers[int(position)]
        return numbers[lower] + (numbers[upper] - numbers[lower]) * (position - lower)

    return (numbers[0], _quantile(0.25), _quantile(0.5), _quantile(0.75), numbers[-1])


def _hashable(value: Any) -> Any:
    try:
        hash(value)
    except TypeError:
        return repr(value)
    return value


def nest_rows(
    rows: Iterable[Mapping[str, Any]],
    *,
    path_fields: Sequence[str],
    value_field: str | None,
    how: str = "sum",
) -> list[dict[str, Any]]:
    """Nest rows into a `{"name", "value", "children"}` tree along `path_fields`.

    Args:
        rows: Row mappings.
        path_fields: Fields naming each hierarchy level, outermost first.
            Rows missing any level are skipped.
        value_field: Field aggregated at the leaves. When None, rows are counted.
        how: Aggregation applied to leaf values.

    Returns:
        Top-level nodes in first-seen order. Inner nodes carry the sum of their
        children's values.
    """

    if not path_fields:
        return []

    leaves: dict[tuple[Any, ...], list[object]] = {}
    for row in rows:
        path = tuple(row.get(name) for name in path_fields)
        if any(part is None for part in path):
            continue
        leaves.setdefault(tuple(_hashable(part) for part in path), []).append(
            row.get(value_field) if value_field else 1
        )

    method = how if value_field else "count"
    roots: dict[Any, dict[str, Any]] = {}
    for path, values in leaves.items():
        level = roots
        node: dict[str, Any] = {}
        for depth, part in enumerate(path):
            node = level.setdefault(part, {"name": str(part), "value": 0.0, "_children": {}})
            if depth < len(path) - 1:
                level = node["_children"]
        node["value"] = aggregate(values, method) or 0.0

    def _finish(level: dict[Any, dict[str, Any]]) -> list[dict[str, Any]]:
        nodes: list[dict[str, Any]] = []
        for node in level.values():
            children = _finish(node.pop("_children"))
            if children:
                node["children"] = children
                node["value"] = math.fsum(child["value"] for child in children)
            nodes.append(node)
        return nodes

    return _finish(roots)
