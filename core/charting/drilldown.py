"""Drilldown bar and treemap charts.

A drilldown chart walks a hierarchy one level at a time. `path_fields` names
the levels (e.g. region, country, city) and `drill_path` holds the values the
user has clicked so far. The chart shows the next level's totals within that
selection, plus breadcrumbs for navigating back up.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from analysis.aggregations import group_rows

from .echarts import build_bar_option, build_treemap_option, empty_option
from .schema import Row
from .series import aggregation, label

ROOT_LABEL = "All"


def drill_level(path_fields: Sequence[str], drill_path: Sequence[Any]) -> int:
    """Return the hierarchy level to display; clamped to the deepest level."""

    return min(len(drill_path), max(len(path_fields) - 1, 0))


def filter_drill_path(rows: Sequence[Row], path_fields: Sequence[str], drill_path: Sequence[Any]) -> list[Row]:
    """Return rows matching every selected value along the drill path."""

    selected = list(zip(path_fields, drill_path))
    return [row for row in rows if all(label(row.get(field)) == label(value) for field, value in selected)]


def breadcrumbs(drill_path: Sequence[Any]) -> list[dict[str, Any]]:
    """Return breadcrumb entries from the root to the current selection."""

    crumbs: list[dict[str, Any]] = [{"label": ROOT_LABEL, "path": []}]
    for idx, value in enumerate(drill_path):
        crumbs.append({"label": label(value), "path": [label(v) for v in drill_path[: idx + 1]]})
    return crumbs


def build_drilldown_bar_option(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build an ECharts bar option for the current drilldown level.

    The result carries a `drilldown` section with the active level, the level
    field names, breadcrumbs, and whether a deeper level exists.
    """

    path_fields = [str(f) for f in config.get("path_fields") or []]
    drill_path = list(config.get("drill_path") or [])
    values_from = config.get("value_field") or config.get("y_field")
    if not rows or not path_fields:
        return empty_option(config)

    level = drill_level(path_fields, drill_path)
    drill_path = drill_path[:level]
    scoped = filter_drill_path(rows, path_fields, drill_path)
    level_field = path_fields[level]

    level_config = {key: value for key, value in config.items() if key not in ("series_field", "y_fields")}
    level_config.update({"x_field": level_field, "y_field": values_from, "axes": {"x": {"field": level_field}}})
    if values_from is None:
        # Without a value field each level shows row counts.
        totals = group_rows(scoped, key_field=level_field, value_field=None)
        scoped = [{level_field: key, "count": value} for key, value in totals.items()]
        level_config["y_field"] = "count"

    option = build_bar_option(scoped, level_config) if scoped else empty_option(config)
    option["drilldown"] = {
        "level": level,
        "levels": path_fields,
        "field": level_field,
        "path": [label(v) for v in drill_path],
        "breadcrumbs": breadcrumbs(drill_path),
        "can_drill": level < len(path_fields) - 1,
        "aggregation": aggregation(config),
    }
    return option


def build_drilldown_treemap_option(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build a treemap rooted at the current drilldown selection.

    Levels below the selection are nested into the treemap, so clicking a
    tile narrows `drill_path` by one level.
    """

    path_fields = [str(f) for f in config.get("path_fields") or []]
    drill_path = list(config.get("drill_path") or [])
    if not rows or not path_fields:
        return empty_option(config)

    level = drill_level(path_fields, drill_path)
    drill_path = drill_path[:level]
    scoped = filter_drill_path(rows, path_fields, drill_path)
    level_config = {key: value for key, value in config.items() if key != "category_field"}
    level_config["path_fields"] = path_fields[level:]
    if drill_path:
        level_config["title"] = " / ".join(label(v) for v in drill_path)

    option = build_treemap_option(scoped, level_config) if scoped else empty_option(config)
    option["drilldown"] = {
        "level": level,
        "levels": path_fields,
        "field": path_fields[level],
        "path": [label(v) for v in drill_path],
        "breadcrumbs": breadcrumbs(drill_path),
        "can_drill": level < len(path_fields) - 1,
        "aggregation": aggregation(config),
    }
    return option
