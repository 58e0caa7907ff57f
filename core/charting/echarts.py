"""ECharts option builders.

Each builder receives canonical rows plus a factory config and returns an
ECharts `option` dictionary. Builders start from the shared base produced by
`convert_config_for_library` (title, legend, palette, tooltip, animation) and
add axes and series. Empty input yields a centred "No Data Available" title
instead of an empty canvas.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from typing import Any

from analysis.aggregations import aggregate, distinct_values, group_rows, nest_rows, pivot_rows, quartiles, to_number

from .defaults import convert_config_for_library
from .schema import Row
from .series import (
    aggregation,
    axis_title,
    category_series,
    edge_totals,
    label,
    label_field,
    numeric_pairs,
    scale,
    value_field,
    x_field,
    y_field,
)

NO_DATA_TEXT = "No Data Available"

POSITIVE_COLOR = "#91cc75"
NEGATIVE_COLOR = "#ee6666"

GRAPH_LAYOUTS = ("force", "circular", "none")


def empty_option(config: Mapping[str, Any]) -> dict[str, Any]:
    """Return an option that draws only a centred "No Data Available" message."""

    option = convert_config_for_library(config, "echarts")
    option["title"] = {
        "text": NO_DATA_TEXT,
        "left": "center",
        "top": "middle",
        "textStyle": {"color": "#999", "fontSize": 14, "fontWeight": "normal"},
    }
    option["series"] = []
    return option


def _base(config: Mapping[str, Any], *, trigger: str = "item") -> dict[str, Any]:
    option = convert_config_for_library(config, "echarts")
    option["tooltip"]["trigger"] = trigger
    return option


def _round(value: float | None, digits: int = 4) -> float | None:
    if value is None:
        return None
    rounded = round(value, digits)
    return int(rounded) if float(rounded).is_integer() else rounded


def _axes(config: Mapping[str, Any], categories: Sequence[Any], *, horizontal: bool) -> tuple[dict, dict]:
    category_axis: dict[str, Any] = {"type": "category", "data": [label(c) for c in categories]}
    value_axis: dict[str, Any] = {"type": "value"}
    x_title = axis_title(config, "x")
    y_title = axis_title(config, "y")
    if x_title:
        category_axis["name"] = x_title
    if y_title:
        value_axis["name"] = y_title
    if horizontal:
        return value_axis, category_axis
    return category_axis, value_axis


def build_bar_option(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build a bar chart option; supports orientation, stacking, and value labels."""

    if not rows:
        return empty_option(config)

    horizontal = config.get("orientation") == "horizontal"
    stacked = bool(config.get("stacked"))
    categories, named = category_series(rows, config)

    series: list[dict[str, Any]] = []
    for name, values in named:
        entry: dict[str, Any] = {"name": name, "type": "bar", "data": [_round(v) for v in values]}
        if stacked:
            entry["stack"] = "total"
        if config.get("bar_width"):
            entry["barWidth"] = f"{config['bar_width']}%"
        if config.get("show_values"):
            entry["label"] = {"show": True, "position": "right" if horizontal else "top"}
        series.append(entry)

    option = _base(config, trigger="axis")
    option["tooltip"]["axisPointer"] = {"type": "shadow"}
    option["xAxis"], option["yAxis"] = _axes(config, categories, horizontal=horizontal)
    option["series"] = series
    return option


def _line_option(rows: Sequence[Row], config: Mapping[str, Any], *, area: bool) -> dict[str, Any]:
    if not rows:
        return empty_option(config)

    categories, named = category_series(rows, config)
    series: list[dict[str, Any]] = []
    for name, values in named:
        entry: dict[str, Any] = {
            "name": name,
            "type": "line",
            "data": [_round(v) for v in values],
            "smooth": bool(config.get("smooth", False)),
            "showSymbol": bool(config.get("show_symbols", True)),
            "connectNulls": bool(config.get("connect_nulls", False)),
            "lineStyle": {"width": config.get("line_width", 2)},
        }
        if area:
            entry["areaStyle"] = {"opacity": config.get("area_opacity", 0.3)}
        if config.get("stacked"):
            entry["stack"] = "total"
        series.append(entry)

    option = _base(config, trigger="axis")
    option["xAxis"], option["yAxis"] = _axes(config, categories, horizontal=False)
    option["xAxis"]["boundaryGap"] = False
    option["series"] = series
    return option


def build_line_option(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build a line chart option."""

    return _line_option(rows, config, area=False)


def build_area_option(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build an area chart option (a line chart with filled series)."""

    return _line_option(rows, config, area=True)


def _pie_radius(config: Mapping[str, Any]) -> str | list[str]:
    inner = to_number(config.get("inner_radius"))
    if inner:
        return [f"{_round(inner)}%", "70%"]
    if config.get("donut") or config.get("chart_type") in ("doughnut", "donut"):
        return ["40%", "70%"]
    return "70%"


def build_pie_option(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build a pie (or donut) option; values are summed per label."""

    if not rows:
        return empty_option(config)

    labels_from = label_field(config)
    values_from = value_field(config)
    if not labels_from:
        return empty_option(config)
    grouped = group_rows(rows, key_field=labels_from, value_field=values_from, how=aggregation(config))
    data = [{"name": label(key), "value": _round(value)} for key, value in grouped.items() if value is not None]

    show_percentages = bool(config.get("show_percentages", False))
    option = _base(config, trigger="item")
    option["tooltip"]["formatter"] = "{a} <br/>{b}: {c} ({d}%)"
    option["series"] = [
        {
            "name": config.get("title") or values_from or "value",
            "type": "pie",
            "radius": _pie_radius(config),
            "center": ["50%", "50%"],
            "data": data,
            "label": {
                "show": bool(config.get("show_labels", True)),
                "formatter": "{b}: {d}%" if show_percentages else "{b}",
            },
            "emphasis": {
                "itemStyle": {"shadowBlur": 10, "shadowOffsetX": 0, "shadowColor": "rgba(0, 0, 0, 0.5)"},
            },
        }
    ]
    return option


def build_scatter_option(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build a scatter option; an optional size field scales symbol sizes."""

    x = x_field(config)
    y = y_field(config)
    if not rows or not x or not y:
        return empty_option(config)

    size_field = config.get("size_field")
    points = numeric_pairs(rows, x=x, y=y, size=size_field)
    sizes = [p[2] for p in points if p[2] is not None]
    low, high = (min(sizes), max(sizes)) if sizes else (0.0, 0.0)

    series_field = config.get("series_field")
    groups: dict[str, list[dict[str, Any]]] = {}
    for x_value, y_value, size, row in points:
        name = label(row.get(series_field)) if series_field and row.get(series_field) is not None else str(y)
        point: dict[str, Any] = {"value": [_round(x_value), _round(y_value)]}
        if size_field:
            point["value"].append(_round(size))
            point["symbolSize"] = _round(scale(size, low, high, out_min=6, out_max=40), 1)
        groups.setdefault(name, []).append(point)

    option = _base(config, trigger="item")
    option["xAxis"] = {"type": "value", "scale": True, "name": axis_title(config, "x") or x}
    option["yAxis"] = {"type": "value", "scale": True, "name": axis_title(config, "y") or y}
    option["series"] = [
        {"name": name, "type": "scatter", "data": data, "symbolSize": config.get("symbol_size", 10)}
        for name, data in groups.items()
    ]
    return option


def build_heatmap_option(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build a heatmap over two categorical axes with a continuous visual map."""

    x = x_field(config)
    y = y_field(config)
    v = config.get("value_field")
    if not rows or not x or not y or not v:
        return empty_option(config)

    x_values, y_values, matrix = pivot_rows(rows, x_field=x, series_field=y, value_field=v, how=aggregation(config))
    data: list[list[Any]] = []
    present: list[float] = []
    for y_idx, values in enumerate(matrix):
        for x_idx, value in enumerate(values):
            if value is None:
                continue
            present.append(value)
            data.append([x_idx, y_idx, _round(value)])

    option = _base(config, trigger="item")
    option["xAxis"] = {"type": "category", "data": [label(c) for c in x_values], "splitArea": {"show": True}}
    option["yAxis"] = {"type": "category", "data": [label(c) for c in y_values], "splitArea": {"show": True}}
    option["visualMap"] = {
        "min": _round(min(present)) if present else 0,
        "max": _round(max(present)) if present else 0,
        "calculable": True,
        "orient": "horizontal",
        "left": "center",
        "bottom": "0%",
    }
    option["series"] = [
        {
            "name": v,
            "type": "heatmap",
            "data": data,
            "label": {"show": bool(config.get("show_values", False))},
            "emphasis": {"itemStyle": {"shadowBlur": 10, "shadowColor": "rgba(0, 0, 0, 0.5)"}},
        }
    ]
    return option


def build_funnel_option(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build a funnel option; stages are sorted by value, largest first."""

    labels_from = label_field(config)
    if not rows or not labels_from:
        return empty_option(config)

    grouped = group_rows(rows, key_field=labels_from, value_field=value_field(config), how=aggregation(config))
    stages = sorted(
        ((key, value) for key, value in grouped.items() if value is not None and value > 0),
        key=lambda item: item[1],
        reverse=True,
    )
    option = _base(config, trigger="item")
    option["tooltip"]["formatter"] = "{b}: {c}"
    option["series"] = [
        {
            "name": config.get("title") or value_field(config) or "value",
            "type": "funnel",
            "sort": "descending",
            "gap": 2,
            "left": "10%",
            "width": "80%",
            "label": {"show": True, "position": "inside"},
            "data": [{"name": label(key), "value": _round(value)} for key, value in stages],
        }
    ]
    return option


def build_gauge_option(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build a single-value gauge; the value field is aggregated across all rows."""

    values_from = value_field(config)
    if not rows or not values_from:
        return empty_option(config)

    value = aggregate((row.get(values_from) for row in rows), aggregation(config, default="avg"))
    low = to_number(config.get("min")) or 0.0
    high = to_number(config.get("max"))
    if high is None:
        high = max(100.0, float(math.ceil(value or 0)))

    option = _base(config, trigger="item")
    option["tooltip"]["formatter"] = "{b}: {c}"
    option["series"] = [
        {
            "name": values_from,
            "type": "gauge",
            "min": _round(low),
            "max": _round(high),
            "progress": {"show": True},
            "detail": {"valueAnimation": True, "formatter": "{value}"},
            "data": [{"value": _round(value, 2) if value is not None else 0, "name": config.get("title") or values_from}],
        }
    ]
    return option


def build_radar_option(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build a radar option; categories become indicators and series become polygons."""

    if not rows or not label_field(config) or not value_field(config):
        return empty_option(config)

    radar_config = dict(config)
    radar_config["x_field"] = label_field(config)
    radar_config["y_field"] = value_field(config)
    categories, named = category_series(rows, radar_config, sort=False)

    maxima: list[float] = []
    for idx in range(len(categories)):
        column = [values[idx] for _, values in named if values[idx] is not None]
        peak = max(column) if column else 0.0
        maxima.append(peak * 1.1 if peak > 0 else 1.0)

    option = _base(config, trigger="item")
    option["radar"] = {
        "indicator": [{"name": label(c), "max": _round(m, 2)} for c, m in zip(categories, maxima)],
        "shape": config.get("shape", "polygon"),
    }
    option["series"] = [
        {
            "type": "radar",
            "data": [{"name": name, "value": [_round(v) if v is not None else 0 for v in values]} for name, values in named],
        }
    ]
    if config.get("fill_area"):
        option["series"][0]["areaStyle"] = {"opacity": 0.2}
    return option


def build_sankey_option(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build a sankey option from source/target/value rows; self-links are dropped."""

    source = config.get("source_field")
    target = config.get("target_field")
    if not rows or not source or not target:
        return empty_option(config)

    values_from = config.get("value_field")
    links: dict[tuple[str, str], list[object]] = {}
    for row in rows:
        s, t = row.get(source), row.get(target)
        if s is None or t is None or label(s) == label(t):
            continue
        links.setdefault((label(s), label(t)), []).append(row.get(values_from) if values_from else 1)

    nodes: list[str] = []
    for s, t in links:
        for name in (s, t):
            if name not in nodes:
                nodes.append(name)

    option = _base(config, trigger="item")
    option["series"] = [
        {
            "type": "sankey",
            "emphasis": {"focus": "adjacency"},
            "data": [{"name": name} for name in nodes],
            "links": [
                {"source": s, "target": t, "value": _round(aggregate(values, "sum" if values_from else "count"))}
                for (s, t), values in links.items()
            ],
            "lineStyle": {"color": "gradient", "curveness": 0.5},
        }
    ]
    return option


def build_treemap_option(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build a treemap from hierarchy path fields and a value field."""

    path_fields = config.get("path_fields") or [f for f in (config.get("category_field"),) if f]
    if not rows or not path_fields:
        return empty_option(config)

    tree = nest_rows(rows, path_fields=path_fields, value_field=config.get("value_field"), how=aggregation(config))
    option = _base(config, trigger="item")
    option["series"] = [
        {
            "name": config.get("title") or "All",
            "type": "treemap",
            "data": tree,
            "leafDepth": config.get("leaf_depth"),
            "breadcrumb": {"show": True},
            "label": {"show": True, "formatter": "{b}"},
        }
    ]
    return option


def build_boxplot_option(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build a boxplot with one five-number summary per category."""

    x = x_field(config)
    y = y_field(config)
    if not rows or not x or not y:
        return empty_option(config)

    buckets: dict[str, list[object]] = {}
    for category in distinct_values(rows, x):
        buckets[label(category)] = []
    for row in rows:
        if row.get(x) is not None:
            buckets[label(row.get(x))].append(row.get(y))

    categories: list[str] = []
    data: list[list[float | None]] = []
    for category, values in buckets.items():
        summary = quartiles(values)
        if summary is None:
            continue
        categories.append(category)
        data.append([_round(v) for v in summary])

    option = _base(config, trigger="item")
    option["xAxis"], option["yAxis"] = _axes(config, categories, horizontal=False)
    option["yAxis"]["scale"] = True
    option["series"] = [{"name": y, "type": "boxplot", "data": data}]
    return option


def build_candlestick_option(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build a candlestick option from open/close/low/high fields, in row order."""

    x = x_field(config) or config.get("date_field")
    keys = [config.get(f"{part}_field") for part in ("open", "close", "low", "high")]
    if not rows or not x or not all(keys):
        return empty_option(config)

    categories: list[str] = []
    data: list[list[float | None]] = []
    for row in rows:
        prices = [to_number(row.get(str(key))) for key in keys]
        if row.get(x) is None or any(price is None for price in prices):
            continue
        categories.append(label(row.get(x)))
        data.append([_round(price) for price in prices])

    option = _base(config, trigger="axis")
    option["tooltip"]["axisPointer"] = {"type": "cross"}
    option["xAxis"] = {"type": "category", "data": categories, "boundaryGap": True}
    option["yAxis"] = {"type": "value", "scale": True}
    option["dataZoom"] = [{"type": "inside"}, {"type": "slider"}] if len(categories) > 30 else []
    option["series"] = [
        {
            "name": config.get("title") or "price",
            "type": "candlestick",
            "data": data,
            "itemStyle": {"color": NEGATIVE_COLOR, "color0": POSITIVE_COLOR},
        }
    ]
    return option


def build_waterfall_option(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build a waterfall as two stacked bars: a transparent offset and the visible delta."""

    labels_from = label_field(config)
    if not rows or not labels_from:
        return empty_option(config)

    grouped = group_rows(rows, key_field=labels_from, value_field=value_field(config), how=aggregation(config))
    categories: list[str] = []
    offsets: list[float | None] = []
    deltas: list[dict[str, Any]] = []
    running = 0.0
    for key, value in grouped.items():
        delta = value or 0.0
        start = running
        running += delta
        categories.append(label(key))
        offsets.append(_round(min(start, running)))
        deltas.append(
            {"value": _round(abs(delta)), "itemStyle": {"color": POSITIVE_COLOR if delta >= 0 else NEGATIVE_COLOR}}
        )
    if config.get("show_total", True):
        categories.append(str(config.get("total_label") or "Total"))
        offsets.append(_round(min(0.0, running)))
        deltas.append({"value": _round(abs(running)), "itemStyle": {"color": "#5470c6"}})

    option = _base(config, trigger="axis")
    option["tooltip"]["axisPointer"] = {"type": "shadow"}
    option["xAxis"], option["yAxis"] = _axes(config, categories, horizontal=False)
    option["series"] = [
        {
            "name": "offset",
            "type": "bar",
            "stack": "waterfall",
            "itemStyle": {"borderColor": "transparent", "color": "transparent"},
            "emphasis": {"itemStyle": {"borderColor": "transparent", "color": "transparent"}},
            "data": offsets,
        },
        {
            "name": value_field(config) or "value",
            "type": "bar",
            "stack": "waterfall",
            "label": {"show": bool(config.get("show_values", True)), "position": "top"},
            "data": deltas,
        },
    ]
    return option



def build_sunburst_option(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build a sunburst from hierarchy path fields, innermost ring first."""

    path_fields = config.get("path_fields") or [f for f in (config.get("category_field"),) if f]
    if not rows or not path_fields:
        return empty_option(config)

    tree = nest_rows(rows, path_fields=path_fields, value_field=value_field(config), how=aggregation(config))
    if not tree:
        return empty_option(config)
    option = _base(config, trigger="item")
    option["series"] = [
        {
            "type": "sunburst",
            "data": tree,
            "radius": ["0%", "90%"],
            "sort": None if config.get("sort") in (None, "none") else config.get("sort"),
            "emphasis": {"focus": "ancestor"},
            "label": {"show": bool(config.get("show_labels", True)), "rotate": "radial"},
        }
    ]
    return option


def build_graph_option(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build a network graph from source/target rows; symbol size grows with degree."""

    edges = edge_totals(rows, config)
    if not edges:
        return empty_option(config)

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
    categories = list(dict.fromkeys(groups.values()))

    nodes: list[dict[str, Any]] = []
    for name, count in degree.items():
        node: dict[str, Any] = {"id": name, "name": name, "value": count, "symbolSize": 10 + min(count, 10) * 3}
        if name in groups:
            node["category"] = categories.index(groups[name])
        nodes.append(node)

    layout = config.get("layout") if config.get("layout") in GRAPH_LAYOUTS else "force"
    series: dict[str, Any] = {
        "type": "graph",
        "layout": layout,
        "roam": bool(config.get("roam", True)),
        "data": nodes,
        "links": [{"source": s, "target": t, "value": _round(value)} for (s, t), value in edges.items()],
        "categories": [{"name": name} for name in categories],
        "label": {"show": bool(config.get("show_labels", True)), "position": "right"},
        "emphasis": {"focus": "adjacency"},
        "lineStyle": {"color": "source", "curveness": 0.3 if layout == "circular" else 0},
    }
    if layout == "force":
        series["force"] = {"repulsion": to_number(config.get("repulsion")) or 100, "edgeLength": 50}
    option = _base(config, trigger="item")
    option["series"] = [series]
    return option


def build_parallel_option(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build parallel coordinates with one axis per numeric dimension.

    Dimensions come from the assigned y fields. Rows are grouped into one line
    series per series field value; rows with a non-numeric dimension are skipped.
    """

    dimensions = [str(f) for f in config.get("y_fields") or [f for f in (y_field(config),) if f]]
    if not rows or len(dimensions) < 2:
        return empty_option(config)

    group_field = config.get("series_field")
    lines: dict[str, list[list[float]]] = {}
    for row in rows:
        values = [to_number(row.get(dim)) for dim in dimensions]
        if any(value is None for value in values):
            continue
        name = label(row.get(group_field)) if group_field and row.get(group_field) is not None else "All"
        lines.setdefault(name, []).append([_round(value) for value in values])
    if not lines:
        return empty_option(config)

    option = _base(config, trigger="item")
    option["parallelAxis"] = [{"dim": idx, "name": dim, "type": "value"} for idx, dim in enumerate(dimensions)]
    option["parallel"] = {"left": "5%", "right": "13%", "bottom": "10%", "top": "20%"}
    option["series"] = [
        {
            "name": name,
            "type": "parallel",
            "lineStyle": {"width": 1, "opacity": to_number(config.get("line_opacity")) or 0.5},
            "data": data,
        }
        for name, data in lines.items()
    ]
    return option
