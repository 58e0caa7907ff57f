"""Shared series extraction for option builders.

Every axis-based chart resolves its x/y fields the same way and turns rows
into one value list per series (pivoting on a series field, fanning out
several y fields, or aggregating a single y field). Keeping that here stops
the per-library builders from drifting apart.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date, datetime
from typing import Any

from analysis.aggregations import aggregate, group_rows, pivot_rows, to_number
from analysis.field_types import parse_datetime

from .schema import Row

NamedSeries = tuple[str, list[float | None]]


def _axis_field(config: Mapping[str, Any], axis: str) -> str | None:
    axes = config.get("axes")
    if isinstance(axes, Mapping) and isinstance(axes.get(axis), Mapping):
        field = axes[axis].get("field")
        return str(field) if field else None
    return None


def x_field(config: Mapping[str, Any]) -> str | None:
    """Return the field drawn along the category (x) axis."""

    return config.get("x_field") or _axis_field(config, "x") or config.get("category_field")


def y_field(config: Mapping[str, Any]) -> str | None:
    """Return the field drawn along the value (y) axis."""

    return config.get("y_field") or _axis_field(config, "y") or config.get("value_field")


def label_field(config: Mapping[str, Any]) -> str | None:
    """Return the field naming slices, stages, or categories in non-axis charts."""

    return config.get("label_field") or config.get("category_field") or config.get("x_field")


def value_field(config: Mapping[str, Any]) -> str | None:
    """Return the field sized by non-axis charts."""

    return config.get("value_field") or config.get("y_field")


def axis_title(config: Mapping[str, Any], axis: str) -> str | None:
    """Return the user-supplied axis title, if any."""

    axes = config.get("axes")
    if isinstance(axes, Mapping) and isinstance(axes.get(axis), Mapping):
        title = axes[axis].get("title")
        return str(title) if title else None
    return None


def aggregation(config: Mapping[str, Any], default: str = "sum") -> str:
    """Return the configured aggregation method."""

    how = config.get("aggregation")
    return str(how) if how else default


def json_value(value: Any) -> Any:
    """Return `value` in a JSON-serializable form (dates become ISO strings)."""

    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def label(value: Any) -> str:
    """Return a display label for a category value."""

    return str(json_value(value))


def order_key(value: Any) -> tuple[int, Any]:
    """Sort key ordering dates chronologically, numbers numerically, then text."""

    parsed = parse_datetime(value)
    if parsed is not None:
        return (0, parsed.replace(tzinfo=None).isoformat())
    number = to_number(value)
    if number is not None:
        return (1, number)
    return (2, str(value))


def should_sort_x(config: Mapping[str, Any]) -> bool:
    """Return True when the x axis is continuous (time or value) or sorting is requested."""

    if config.get("sort_x") is not None:
        return bool(config.get("sort_x"))
    axes = config.get("axes")
    if isinstance(axes, Mapping) and isinstance(axes.get("x"), Mapping):
        return axes["x"].get("type") in ("time", "value")
    return False


def category_series(
    rows: Sequence[Row],
    config: Mapping[str, Any],
    *,
    sort: bool | None = None,
) -> tuple[list[Any], list[NamedSeries]]:
    """Return x categories and one aggregated value list per series.

    Series come from the series field when assigned (long-format pivot), from
    several y fields when more than one is assigned, or from the single y
    field otherwise.

    Args:
        rows: Chart rows.
        config: Factory config.
        sort: Force or suppress ordering categories; defaults to
            `should_sort_x(config)`.

    Returns:
        `(categories, [(series_name, values), ...])` where each values list is
        aligned with `categories`.
    """

    x = x_field(config)
    y = y_field(config)
    if not x:
        return [], []

    how = aggregation(config)
    series_field = config.get("series_field")
    y_fields = config.get("y_fields")

    if series_field and y:
        categories, names, matrix = pivot_rows(rows, x_field=x, series_field=series_field, value_field=y, how=how)
        series: list[NamedSeries] = [(label(name), values) for name, values in zip(names, matrix)]
    elif isinstance(y_fields, list) and len(y_fields) > 1:
        grouped = [group_rows(rows, key_field=x, value_field=field, how=how) for field in y_fields]
        categories = list(grouped[0].keys())
        for extra in grouped[1:]:
            categories.extend(key for key in extra if key not in categories)
        series = [(str(field), [values.get(c) for c in categories]) for field, values in zip(y_fields, grouped)]
    else:
        grouped_single = group_rows(rows, key_field=x, value_field=y, how=how)
        categories = list(grouped_single.keys())
        series = [(str(y or "count"), list(grouped_single.values()))]

    if sort if sort is not None else should_sort_x(config):
        order = sorted(range(len(categories)), key=lambda idx: order_key(categories[idx]))
        categories = [categories[idx] for idx in order]
        series = [(name, [values[idx] for idx in order]) for name, values in series]
    return categories, series


def edge_totals(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[tuple[str, str], float] | None:
    """Return `{(source, target): total}` from the source, target, and value fields.

    Links are summed when a value field is assigned and counted otherwise.
    Returns None when the source or target field is missing.
    """

    source = config.get("source_field")
    target = config.get("target_field")
    if not rows or not source or not target:
        return None
    values_from = config.get("value_field")
    buckets: dict[tuple[str, str], list[object]] = {}
    for row in rows:
        s, t = row.get(source), row.get(target)
        if s is None or t is None:
            continue
        buckets.setdefault((label(s), label(t)), []).append(row.get(values_from) if values_from else 1)
    method = "sum" if values_from else "count"
    return {edge: aggregate(values, method) or 0.0 for edge, values in buckets.items()}


def numeric_pairs(
    rows: Sequence[Row],
    *,
    x: str,
    y: str,
    size: str | None = None,
) -> list[tuple[float, float, float | None, Row]]:
    """Return `(x, y, size, row)` for rows whose x and y are numeric."""

    points: list[tuple[float, float, float | None, Row]] = []
    for row in rows:
        x_value = to_number(row.get(x))
        y_value = to_number(row.get(y))
        if x_value is None or y_value is None:
            continue
        points.append((x_value, y_value, to_number(row.get(size)) if size else None, row))
    return points


def scale(value: float | None, low: float, high: float, *, out_min: float, out_max: float) -> float:
    """Linearly map `value` from [low, high] to [out_min, out_max]; midpoint when degenerate."""

    if value is None:
        return out_min
    if high <= low:
        return (out_min + out_max) / 2
    return out_min + (out_max - out_min) * (value - low) / (high - low)
