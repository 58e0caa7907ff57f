"""D3 chart specifications.

D3 charts are drawn by client-side components that expect a flat spec:
`{"type", "width", "height", "margin", "colors", ..., "data"}`. The shared
dimensions, margin, palette, and animation settings come from
`convert_config_for_library`; builders add the chart-specific data layout.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from analysis.aggregations import aggregate, nest_rows, pivot_rows, to_number
from analysis.field_types import parse_datetime

from .defaults import convert_config_for_library
from .echarts import NO_DATA_TEXT
from .schema import Row
from .series import aggregation, edge_totals, label, numeric_pairs, order_key, value_field, x_field, y_field

STREAM_OFFSETS = ("wiggle", "silhouette", "expand", "none")
HIERARCHY_LAYOUTS = ("tree", "cluster", "pack", "partition", "treemap")


def _spec(chart_type: str, config: Mapping[str, Any], data: Any) -> dict[str, Any]:
    spec = convert_config_for_library(config, "d3")
    spec["type"] = chart_type
    spec["data"] = data
    return spec


def empty_spec(chart_type: str, config: Mapping[str, Any]) -> dict[str, Any]:
    """Return a spec with no data and a "No Data Available" message."""

    spec = _spec(chart_type, config, [])
    spec["empty_message"] = NO_DATA_TEXT
    return spec


def build_stream_graph_spec(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build a stream graph: one layer per series, x sorted, gaps filled with zero."""

    x = x_field(config)
    series_field = config.get("series_field")
    values_from = config.get("y_field") or config.get("value_field")
    if not rows or not x or not series_field or not values_from:
        return empty_spec("stream-graph", config)

    x_values, series_names, matrix = pivot_rows(
        rows,
        x_field=x,
        series_field=series_field,
        value_field=values_from,
        how=aggregation(config),
    )
    order = sorted(range(len(x_values)), key=lambda idx: order_key(x_values[idx]))
    keys = [label(name) for name in series_names]
    points: list[dict[str, Any]] = []
    for idx in order:
        point: dict[str, Any] = {"x": label(x_values[idx])}
        for key, values in zip(keys, matrix):
            point[key] = values[idx] if values[idx] is not None else 0
        points.append(point)

    offset = config.get("offset") if config.get("offset") in STREAM_OFFSETS else "wiggle"
    spec = _spec("stream-graph", config, points)
    spec.update(
        {
            "keys": keys,
            "x_field": "x",
            "x_is_time": all(parse_datetime(point["x"]) is not None for point in points),
            "offset": offset,
            "curve": "curveBasis" if config.get("smooth", True) else "curveLinear",
        }
    )
    return spec


def build_hierarchy_spec(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build a rooted hierarchy for tree, cluster, pack, or partition layouts."""

    path_fields = config.get("path_fields") or []
    if not rows or not path_fields:
        return empty_spec("hierarchy", config)

    children = nest_rows(rows, path_fields=path_fields, value_field=config.get("value_field"), how=aggregation(config))
    root = {
        "name": str(config.get("root_label") or config.get("title") or "All"),
        "value": sum(child["value"] for child in children),
        "children": children,
    }
    layout = config.get("layout") if config.get("layout") in HIERARCHY_LAYOUTS else "tree"
    spec = _spec("hierarchy", config, root)
    spec.update({"layout": layout, "depth": len(path_fields)})
    return spec


def build_force_graph_spec(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build a force-directed graph; node radius grows with degree."""

    edges = edge_totals(rows, config)
    if not edges:
        return empty_spec("force-graph", config)

    degree: dict[str, int] = {}
    for s, t in edges:
        degree[s] = degree.get(s, 0) + 1
        degree[t] = degree.get(t, 0) + 1

    group_field = config.get("series_field")
    groups: dict[str, str] = {}
    if group_field:
        source = config["source_field"]
        for row in rows:
            if row.get(source) is not None and row.get(group_field) is not None:
                groups.setdefault(label(row[source]), label(row[group_field]))

    nodes = [
        {"id": name, "group": groups.get(name, "default"), "degree": count, "radius": 4 + min(count, 10)}
        for name, count in degree.items()
    ]
    links = [{"source": s, "target": t, "value": value} for (s, t), value in edges.items()]
    spec = _spec("force-graph", config, {"nodes": nodes, "links": links})
    spec.update(
        {
            "charge": to_number(config.get("charge")) or -120.0,
            "link_distance": to_number(config.get("link_distance")) or 40.0,
        }
    )
    return spec


def build_chord_spec(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build a chord diagram as a square flow matrix over all named nodes."""

    edges = edge_totals(rows, config)
    if not edges:
        return empty_spec("chord", config)

    names: list[str] = []
    for s, t in edges:
        for name in (s, t):
            if name not in names:
                names.append(name)
    index = {name: idx for idx, name in enumerate(names)}
    matrix = [[0.0 for _ in names] for _ in names]
    for (s, t), value in edges.items():
        matrix[index[s]][index[t]] += value

    spec = _spec("chord", config, {"names": names, "matrix": matrix})
    spec["pad_angle"] = to_number(config.get("pad_angle")) or 0.05
    return spec


def build_calendar_heatmap_spec(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build a calendar heatmap of daily aggregated values."""

    date_field = config.get("date_field") or x_field(config)
    values_from = value_field(config)
    if not rows or not date_field:
        return empty_spec("calendar-heatmap", config)

    buckets: dict[str, list[object]] = {}
    for row in rows:
        moment = parse_datetime(row.get(date_field))
        if moment is None:
            continue
        buckets.setdefault(moment.date().isoformat(), []).append(row.get(values_from) if values_from else 1)
    if not buckets:
        return empty_spec("calendar-heatmap", config)

    method = aggregation(config) if values_from else "count"
    days = [{"date": day, "value": aggregate(values, method)} for day, values in sorted(buckets.items())]
    present = [day["value"] for day in days if day["value"] is not None]
    spec = _spec("calendar-heatmap", config, days)
    spec.update(
        {
            "years": sorted({int(day["date"][:4]) for day in days}),
            "color_range": [min(present), max(present)] if present else [0, 0],
            "week_start": config.get("week_start") or "monday",
        }
    )
    return spec


def build_voronoi_spec(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build a Voronoi diagram from numeric x/y points.

    The client computes the Delaunay triangulation; the spec carries the
    points, their domains, and the optional group used for cell colors.
    """

    x = x_field(config)
    y = y_field(config)
    if not rows or not x or not y:
        return empty_spec("voronoi", config)

    group_field = config.get("series_field")
    points: list[dict[str, Any]] = []
    for x_value, y_value, _, row in numeric_pairs(rows, x=x, y=y):
        group = row.get(group_field) if group_field else None
        points.append({"x": x_value, "y": y_value, "group": label(group) if group is not None else "default"})
    if not points:
        return empty_spec("voronoi", config)

    xs = [point["x"] for point in points]
    ys = [point["y"] for point in points]
    stroke_width = to_number(config.get("stroke_width"))
    spec = _spec("voronoi", config, points)
    spec.update(
        {
            "x_domain": [min(xs), max(xs)],
            "y_domain": [min(ys), max(ys)],
            "stroke_width": 1.0 if stroke_width is None else stroke_width,
            "show_points": bool(config.get("show_points", True)),
        }
    )
    return spec
