"""Chart.js configuration builders.

Builders return a Chart.js config: `{"type", "data": {"labels", "datasets"},
"options"}`. Options start from the shared base produced by
`convert_config_for_library`.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from analysis.aggregations import group_rows, to_number

from .defaults import convert_config_for_library, extract_color_palette
from .echarts import NO_DATA_TEXT
from .schema import Row
from .series import aggregation, category_series, label, label_field, numeric_pairs, scale, value_field, x_field, y_field


def _config(chart_type: str, config: Mapping[str, Any], labels: list[str], datasets: list[dict[str, Any]]) -> dict:
    base = convert_config_for_library(config, "chartjs")
    return {"type": chart_type, "data": {"labels": labels, "datasets": datasets}, "options": base["options"]}


def empty_config(chart_type: str, config: Mapping[str, Any]) -> dict[str, Any]:
    """Return a config with no datasets whose title reads "No Data Available"."""

    result = _config(chart_type, config, [], [])
    result["options"]["plugins"]["title"] = {"display": True, "text": NO_DATA_TEXT}
    return result


def _color(palette: list[str], idx: int) -> str:
    return palette[idx % len(palette)]


def _translucent(color: str, alpha: str = "33") -> str:
    """Append an alpha channel to a #rrggbb color."""

    if color.startswith("#") and len(color) == 7:
        return f"{color}{alpha}"
    return color


def build_bar_config(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build a bar chart; horizontal bars use `indexAxis: "y"`."""

    if not rows:
        return empty_config("bar", config)

    categories, named = category_series(rows, config)
    palette = extract_color_palette(config)
    datasets = [
        {"label": name, "data": values, "backgroundColor": _color(palette, idx), "borderWidth": 0}
        for idx, (name, values) in enumerate(named)
    ]
    result = _config("bar", config, [label(c) for c in categories], datasets)
    options = result["options"]
    if config.get("orientation") == "horizontal":
        options["indexAxis"] = "y"
    if config.get("stacked"):
        options["scales"] = {"x": {"stacked": True}, "y": {"stacked": True}}
    return result


def build_line_config(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build a line chart; `smooth` sets a curve tension and `fill` shades the area."""

    if not rows:
        return empty_config("line", config)

    categories, named = category_series(rows, config)
    palette = extract_color_palette(config)
    datasets = []
    for idx, (name, values) in enumerate(named):
        color = _color(palette, idx)
        datasets.append(
            {
                "label": name,
                "data": values,
                "borderColor": color,
                "backgroundColor": _translucent(color),
                "fill": bool(config.get("fill", False)),
                "tension": 0.4 if config.get("smooth") else 0,
                "pointRadius": 3 if config.get("show_symbols", True) else 0,
                "spanGaps": bool(config.get("connect_nulls", False)),
            }
        )
    return _config("line", config, [label(c) for c in categories], datasets)


def _slices(rows: Sequence[Row], config: Mapping[str, Any]) -> tuple[list[str], list[float]]:
    labels_from = label_field(config)
    if not labels_from:
        return [], []
    grouped = group_rows(rows, key_field=labels_from, value_field=value_field(config), how=aggregation(config))
    pairs = [(label(key), value) for key, value in grouped.items() if value is not None]
    return [name for name, _ in pairs], [value for _, value in pairs]


def build_doughnut_config(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build a doughnut; `inner_radius` (percent) sets the cutout."""

    labels, values = _slices(rows, config)
    if not labels:
        return empty_config("doughnut", config)
    palette = extract_color_palette(config)
    datasets = [
        {
            "label": value_field(config) or "value",
            "data": values,
            "backgroundColor": [_color(palette, idx) for idx in range(len(values))],
        }
    ]
    result = _config("doughnut", config, labels, datasets)
    cutout = to_number(config.get("inner_radius"))
    result["options"]["cutout"] = f"{int(cutout)}%" if cutout else "50%"
    return result


def build_polar_area_config(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build a polar area chart with one wedge per label."""

    labels, values = _slices(rows, config)
    if not labels:
        return empty_config("polarArea", config)
    palette = extract_color_palette(config)
    datasets = [
        {
            "label": value_field(config) or "value",
            "data": values,
            "backgroundColor": [_translucent(_color(palette, idx), "99") for idx in range(len(values))],
        }
    ]
    return _config("polarArea", config, labels, datasets)


def _point_datasets(rows: Sequence[Row], config: Mapping[str, Any], *, bubble: bool) -> list[dict[str, Any]]:
    x = x_field(config)
    y = y_field(config)
    if not x or not y:
        return []
    size_field = config.get("size_field") if bubble else None
    points = numeric_pairs(rows, x=x, y=y, size=size_field)
    sizes = [p[2] for p in points if p[2] is not None]
    low, high = (min(sizes), max(sizes)) if sizes else (0.0, 0.0)

    series_field = config.get("series_field")
    groups: dict[str, list[dict[str, float]]] = {}
    for x_value, y_value, size, row in points:
        name = label(row.get(series_field)) if series_field and row.get(series_field) is not None else y
        point = {"x": x_value, "y": y_value}
        if bubble:
            point["r"] = round(scale(size, low, high, out_min=3, out_max=20), 1) if size_field else 6
        groups.setdefault(name, []).append(point)

    palette = extract_color_palette(config)
    return [
        {"label": name, "data": data, "backgroundColor": _translucent(_color(palette, idx), "99")}
        for idx, (name, data) in enumerate(groups.items())
    ]


def build_scatter_config(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build a scatter chart with one dataset per series value."""

    datasets = _point_datasets(rows, config, bubble=False)
    if not datasets:
        return empty_config("scatter", config)
    return _config("scatter", config, [], datasets)


def build_bubble_config(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build a bubble chart; radii scale between 3 and 20 pixels by the size field."""

    datasets = _point_datasets(rows, config, bubble=True)
    if not datasets:
        return empty_config("bubble", config)
    return _config("bubble", config, [], datasets)


def build_radar_config(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build a radar chart; categories become spokes and series become datasets."""

    if not rows or not label_field(config) or not value_field(config):
        return empty_config("radar", config)

    radar_config = dict(config)
    radar_config["x_field"] = label_field(config)
    radar_config["y_field"] = value_field(config)
    categories, named = category_series(rows, radar_config, sort=False)
    palette = extract_color_palette(config)
    datasets = [
        {
            "label": name,
            "data": values,
            "borderColor": _color(palette, idx),
            "backgroundColor": _translucent(_color(palette, idx)),
            "fill": True,
        }
        for idx, (name, values) in enumerate(named)
    ]
    return _config("radar", config, [label(c) for c in categories], datasets)


def build_mixed_config(rows: Sequence[Row], config: Mapping[str, Any]) -> dict[str, Any]:
    """Build a bar/line combination over shared x categories.

    The first `bar_series` series are drawn as bars on the left axis and the
    rest as lines. Lines move to a right-hand `y1` axis when `secondary_axis`
    is set.
    """

    if not rows:
        return empty_config("bar", config)

    categories, named = category_series(rows, config)
    if not categories:
        return empty_config("bar", config)
    palette = extract_color_palette(config)
    bar_count = int(to_number(config.get("bar_series")) or 1)
    secondary = bool(config.get("secondary_axis", True)) and len(named) > bar_count
    datasets: list[dict[str, Any]] = []
    for idx, (name, values) in enumerate(named):
        color = _color(palette, idx)
        if idx < bar_count:
            datasets.append(
                {"type": "bar", "label": name, "data": values, "backgroundColor": color, "yAxisID": "y", "order": 2}
            )
        else:
            datasets.append(
                {
                    "type": "line",
                    "label": name,
                    "data": values,
                    "borderColor": color,
                    "backgroundColor": _translucent(color),
                    "tension": 0.3,
                    "yAxisID": "y1" if secondary else "y",
                    "order": 1,
                }
            )

    result = _config("bar", config, [label(c) for c in categories], datasets)
    scales = result["options"].setdefault("scales", {})
    scales["y"] = {**scales.get("y", {}), "type": "linear", "position": "left"}
    if secondary:
        scales["y1"] = {"type": "linear", "position": "right", "grid": {"drawOnChartArea": False}}
    return result
