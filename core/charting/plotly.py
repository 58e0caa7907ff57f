"""Plotly figure builders.

Builders return a Plotly figure specification: `{"data": [...traces],
"layout": {...}, "config": {...}}`. Layout and config start from the shared
base produced by `convert_config_for_library`.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from analysis.aggregations import distinct_values, group_rows, pivot_rows, to_number

from .defaults import convert_config_for_library
from .echarts import NO_DATA_TEXT
from .schema import Row
from .series import aggregation, axis_title, label, label_field, value_field, x_field, y_field


def _figure(config: Mapping[str, Any], traces: list[dict[str, Any]]) -> dict[str, Any]:
    base = convert_config_for_library(config, "plotly")
    return {"data": traces, "layout": base["layout"], "config": base["config"]}


def empty_figure(config: Mapping[str, Any]) -> dict[str, Any]:
    """Return a figure with no traces and a centred "No Data Available" annotation."""

    figure = _figure(config, [])
    figure["layout"]["annotations"] = [
        {
            "text": NO_DATA_TEXT,
            "showarrow": False,
            "xref": "paper",
            "yref": "paper",
            "x": 0.5,
            "y": 0.5,
            "font": {"size": 14, "color": "#999"},
        }
    ]
    figure["layout"]["xaxis"] = {"visible": False}
    figure["layout"]["yaxis"] = {"visible": False}
    return figure


def _axis_titles(figure: dict[str, Any], config: Mapping[str, Any], *, x: str | None, y: str | None) -> None:
    layout = figure["layout"]
    layout["xaxis"] = {"title": {"text": axis_title(config, "x") or x or ""}}
    layout["yaxis"] = {"title": {"text": axis_title(config, "y") or y or ""}}


def build_funnel_figure(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build a funnel; only stages with positive values are drawn, in dataset order."""

    labels_from = label_field(config)
    values_from = value_field(config)
    if not rows or not labels_from:
        return empty_figure(config)

    grouped = group_rows(rows, key_field=labels_from, value_field=values_from, how=aggregation(config))
    stages = [(label(key), value) for key, value in grouped.items() if value is not None and value > 0]
    if not stages:
        return empty_figure(config)

    labels = [stage for stage, _ in stages]
    values = [value for _, value in stages]
    vertical = config.get("orientation") == "vertical"
    trace: dict[str, Any] = {
        "type": "funnel",
        "name": values_from or "value",
        "orientation": "v" if vertical else "h",
        "textinfo": config.get("textinfo") or "value+percent initial",
        "marker": {"color": list(figure_colors(config, len(values)))},
    }
    if vertical:
        trace.update({"x": labels, "y": values})
    else:
        trace.update({"y": labels, "x": values})
    figure = _figure(config, [trace])
    figure["layout"]["funnelmode"] = "stack"
    return figure


def figure_colors(config: Mapping[str, Any], count: int) -> list[str]:
    """Return `count` colors cycled from the config palette."""

    palette = convert_config_for_library(config, "plotly")["layout"]["colorway"]
    return [palette[idx % len(palette)] for idx in range(count)]


def build_waterfall_figure(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build a waterfall with relative steps and an optional closing total."""

    labels_from = label_field(config)
    if not rows or not labels_from:
        return empty_figure(config)

    grouped = group_rows(rows, key_field=labels_from, value_field=value_field(config), how=aggregation(config))
    x = [label(key) for key in grouped]
    y = [value or 0.0 for value in grouped.values()]
    measure = ["relative"] * len(y)
    if config.get("show_total", True):
        x.append(str(config.get("total_label") or "Total"))
        y.append(0.0)
        measure.append("total")

    trace = {
        "type": "waterfall",
        "name": value_field(config) or "value",
        "orientation": "v",
        "x": x,
        "y": y,
        "measure": measure,
        "connector": {"line": {"color": "rgb(63, 63, 63)"}},
        "textposition": "outside",
    }
    figure = _figure(config, [trace])
    _axis_titles(figure, config, x=labels_from, y=value_field(config))
    return figure


def build_violin_figure(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build one violin per category (or a single violin without a category field)."""

    y = y_field(config)
    if not rows or not y:
        return empty_figure(config)

    x = x_field(config)
    groups: list[tuple[str, list[float]]] = []
    if x:
        for category in distinct_values(rows, x):
            values = [to_number(row.get(y)) for row in rows if row.get(x) == category]
            groups.append((label(category), [v for v in values if v is not None]))
    else:
        values = [to_number(row.get(y)) for row in rows]
        groups.append((y, [v for v in values if v is not None]))

    traces = [
        {
            "type": "violin",
            "name": name,
            "x": [name] * len(values),
            "y": values,
            "box": {"visible": bool(config.get("show_box", True))},
            "meanline": {"visible": bool(config.get("show_mean", True))},
            "points": config.get("points") or False,
        }
        for name, values in groups
        if values
    ]
    if not traces:
        return empty_figure(config)
    figure = _figure(config, traces)
    _axis_titles(figure, config, x=x, y=y)
    return figure


def _grid(rows: Sequence[Row], config: Mapping[str, Any]) -> tuple[list[Any], list[Any], list[list[float | None]]] | None:
    x = x_field(config)
    y = y_field(config)
    z = config.get("z_field") or config.get("value_field")
    if not rows or not x or not y or not z:
        return None
    x_values, y_values, matrix = pivot_rows(rows, x_field=x, series_field=y, value_field=z, how=aggregation(config))
    if not x_values:
        return None
    return x_values, y_values, matrix


def build_contour_figure(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build a contour plot; z values are pivoted into a y-by-x grid."""

    grid = _grid(rows, config)
    if grid is None:
        return empty_figure(config)
    x_values, y_values, matrix = grid
    trace = {
        "type": "contour",
        "x": [label(v) if to_number(v) is None else to_number(v) for v in x_values],
        "y": [label(v) if to_number(v) is None else to_number(v) for v in y_values],
        "z": matrix,
        "colorscale": config.get("colorscale") or "Viridis",
        "contours": {"coloring": "heatmap", "showlabels": bool(config.get("show_labels", False))},
    }
    figure = _figure(config, [trace])
    _axis_titles(figure, config, x=x_field(config), y=y_field(config))
    return figure


def build_surface_figure(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build a 3D surface; z values are pivoted into a y-by-x grid."""

    grid = _grid(rows, config)
    if grid is None:
        return empty_figure(config)
    x_values, y_values, matrix = grid
    trace = {
        "type": "surface",
        "x": [label(v) if to_number(v) is None else to_number(v) for v in x_values],
        "y": [label(v) if to_number(v) is None else to_number(v) for v in y_values],
        "z": matrix,
        "colorscale": config.get("colorscale") or "Viridis",
    }
    figure = _figure(config, [trace])
    figure["layout"]["scene"] = {
        "xaxis": {"title": {"text": axis_title(config, "x") or x_field(config) or ""}},
        "yaxis": {"title": {"text": axis_title(config, "y") or y_field(config) or ""}},
        "zaxis": {"title": {"text": config.get("z_field") or config.get("value_field") or ""}},
    }
    return figure


def build_mesh3d_figure(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build a 3D mesh over scattered x/y/z points.

    Plotly triangulates the points itself, so at least three rows with numeric
    x, y, and z are needed. An assigned color field becomes the mesh intensity.
    """

    x = x_field(config)
    y = y_field(config)
    z = config.get("z_field") or config.get("value_field")
    if not rows or not x or not y or not z:
        return empty_figure(config)

    intensity_from = config.get("color_field")
    xs: list[float] = []
    ys: list[float] = []
    zs: list[float] = []
    intensity: list[float | None] = []
    for row in rows:
        point = [to_number(row.get(x)), to_number(row.get(y)), to_number(row.get(z))]
        if any(value is None for value in point):
            continue
        xs.append(point[0])
        ys.append(point[1])
        zs.append(point[2])
        if intensity_from:
            intensity.append(to_number(row.get(intensity_from)))
    if len(xs) < 3:
        return empty_figure(config)

    trace: dict[str, Any] = {
        "type": "mesh3d",
        "x": xs,
        "y": ys,
        "z": zs,
        "opacity": to_number(config.get("opacity")) or 0.7,
        "colorscale": config.get("colorscale") or "Viridis",
    }
    if intensity_from:
        trace["intensity"] = intensity
    else:
        trace["color"] = figure_colors(config, 1)[0]
    figure = _figure(config, [trace])
    figure["layout"]["scene"] = {
        "xaxis": {"title": {"text": axis_title(config, "x") or x}},
        "yaxis": {"title": {"text": axis_title(config, "y") or y}},
        "zaxis": {"title": {"text": z}},
    }
    return figure
