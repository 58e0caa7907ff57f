"""Library-agnostic chart configuration defaults and conversions.

Factory configs produced by `core.charting.mapping` are library-agnostic.
The helpers here fill in defaults, tune a config for large datasets, and
translate the shared settings (title, legend, palette, animation,
interactions, dimensions) into each library's base option structure. Option
builders start from that base and add their series.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from .schema import ValidationResult

DEFAULT_PALETTE: tuple[str, ...] = (
    "#1f77b4",
    "#ff7f0e",
    "#2ca02c",
    "#d62728",
    "#9467bd",
    "#8c564b",
    "#e377c2",
    "#7f7f7f",
    "#bcbd22",
    "#17becf",
)

MIN_DIMENSION = 50
MAX_DIMENSION = 5000

DEFAULT_ANIMATION_DURATION = 1000
LARGE_DATASET_THRESHOLD = 1000
HUGE_DATASET_THRESHOLD = 5000

D3_DEFAULT_WIDTH = 400
D3_DEFAULT_HEIGHT = 300
D3_DEFAULT_MARGIN: dict[str, int] = {"top": 20, "right": 20, "bottom": 40, "left": 40}

_MERGED_SECTIONS = ("animation", "interactions", "legend", "dimensions")
_PIE_TYPES = frozenset({"pie", "doughnut", "donut"})
_AXIS_TYPES = frozenset({"line", "area", "bar", "column"})


def _section(config: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = config.get(key)
    return value if isinstance(value, Mapping) else {}


def _flag(section: Mapping[str, Any], key: str, *, default: bool) -> bool:
    value = section.get(key)
    return value if isinstance(value, bool) else default


def validate_chart_config(config: Mapping[str, Any]) -> ValidationResult:
    """Validate generic chart settings.

    Width and height, when present (top-level or under `dimensions`), must be
    numbers within [50, 5000].
    """

    errors: list[str] = []
    dimensions = _section(config, "dimensions")
    for key in ("width", "height"):
        value = dimensions.get(key, config.get(key))
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            errors.append(f"Chart {key} must be a number.")
        elif value < MIN_DIMENSION or value > MAX_DIMENSION:
            errors.append(f"Chart {key} must be between {MIN_DIMENSION} and {MAX_DIMENSION}.")
    return ValidationResult(is_valid=not errors, errors=tuple(errors))


def create_default_config(chart_type: str) -> dict[str, Any]:
    """Return animation, interaction, and legend defaults for `chart_type`.

    Pie-family charts place the legend on the right, vertically; line and
    area charts on top; everything else at the bottom.
    """

    if chart_type in _PIE_TYPES:
        legend = {"show": True, "position": "right", "orientation": "vertical"}
    elif chart_type in ("line", "area"):
        legend = {"show": True, "position": "top", "orientation": "horizontal"}
    else:
        legend = {"show": True, "position": "bottom", "orientation": "horizontal"}
    return {
        "animation": {"enabled": True, "duration": DEFAULT_ANIMATION_DURATION},
        "interactions": {"enabled": True, "tooltip": True, "hover": {"enabled": True}},
        "legend": legend,
    }


def merge_configurations(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Merge two configs, combining nested animation, interaction, legend, and dimension sections.

    Args:
        base: Lower-precedence config.
        override: Higher-precedence config.

    Returns:
        A new dictionary; neither input is modified.
    """

    merged = copy.deepcopy(dict(base))
    for key, value in override.items():
        if key in _MERGED_SECTIONS and isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            section = dict(merged[key])
            section.update(copy.deepcopy(dict(value)))
            merged[key] = section
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def optimize_config_for_data(
    config: Mapping[str, Any],
    data_size: int,
    *,
    animation_threshold: int = LARGE_DATASET_THRESHOLD,
    hover_threshold: int = HUGE_DATASET_THRESHOLD,
) -> dict[str, Any]:
    """Disable expensive effects for large datasets.

    Args:
        config: Factory config.
        data_size: Number of rows being charted.
        animation_threshold: Row count above which animation is disabled.
        hover_threshold: Row count above which hover effects are disabled.

    Returns:
        A tuned copy of `config`.
    """

    optimized = copy.deepcopy(dict(config))
    if data_size > animation_threshold:
        animation = dict(_section(optimized, "animation"))
        animation["enabled"] = False
        optimized["animation"] = animation
    if data_size > hover_threshold:
        interactions = dict(_section(optimized, "interactions"))
        interactions["hover"] = {**dict(_section(interactions, "hover")), "enabled": False}
        optimized["interactions"] = interactions
    return optimized


def extract_color_palette(config: Mapping[str, Any]) -> list[str]:
    """Return the palette for a config: theme primary colors, then `colors`, then the default."""

    theme_colors = _section(_section(config, "theme"), "colors").get("primary")
    if isinstance(theme_colors, (list, tuple)) and theme_colors:
        return [str(color) for color in theme_colors]
    colors = config.get("colors")
    if isinstance(colors, (list, tuple)) and colors:
        return [str(color) for color in colors]
    return list(DEFAULT_PALETTE)


def validate_config_for_chart_type(config: Mapping[str, Any], chart_type: str) -> ValidationResult:
    """Check the minimum field assignments a chart type needs to draw anything."""

    errors: list[str] = []
    if chart_type in _PIE_TYPES:
        if not config.get("series") and not config.get("value_field"):
            errors.append(f"{chart_type} charts require a value field or series.")
    elif chart_type in _AXIS_TYPES:
        axes = _section(config, "axes")
        x_field = _section(axes, "x").get("field") or config.get("x_field")
        y_field = _section(axes, "y").get("field") or config.get("y_field")
        if not x_field:
            errors.append(f"{chart_type} charts require an x-axis field.")
        if not y_field:
            errors.append(f"{chart_type} charts require a y-axis field.")
    return ValidationResult(is_valid=not errors, errors=tuple(errors))


def _echarts_legend(legend: Mapping[str, Any]) -> dict[str, Any]:
    position = str(legend.get("position") or "bottom")
    orientation = str(legend.get("orientation") or "horizontal")
    option: dict[str, Any] = {
        "show": _flag(legend, "show", default=True),
        "orient": "vertical" if orientation == "vertical" else "horizontal",
        "type": "scroll",
    }
    if position in ("left", "right"):
        option[position] = 10
        option["top"] = "middle"
    else:
        option[position if position in ("top", "bottom") else "bottom"] = 0
    return option


def _echarts_base(config: Mapping[str, Any]) -> dict[str, Any]:
    animation = _section(config, "animation")
    interactions = _section(config, "interactions")
    option: dict[str, Any] = {
        "animation": _flag(animation, "enabled", default=True),
        "animationDuration": animation.get("duration", DEFAULT_ANIMATION_DURATION),
        "color": extract_color_palette(config),
        "tooltip": {"show": _flag(interactions, "tooltip", default=True), "trigger": "item"},
        "legend": _echarts_legend(_section(config, "legend")),
        "grid": {
            "left": "3%",
            "right": "4%",
            "bottom": "10%",
            "containLabel": True,
            "show": _flag(_section(config, "grid"), "show", default=False),
        },
    }
    title = config.get("title")
    if title:
        option["title"] = {"text": str(title), "left": "center"}
        if config.get("subtitle"):
            option["title"]["subtext"] = str(config["subtitle"])
    return option


def _d3_base(config: Mapping[str, Any]) -> dict[str, Any]:
    dimensions = _section(config, "dimensions")
    animation = _section(config, "animation")
    margin = dict(D3_DEFAULT_MARGIN)
    if isinstance(dimensions.get("margin"), Mapping):
        margin.update(dimensions["margin"])
    return {
        "width": dimensions.get("width") or D3_DEFAULT_WIDTH,
        "height": dimensions.get("height") or D3_DEFAULT_HEIGHT,
        "margin": margin,
        "colors": extract_color_palette(config),
        "title": config.get("title"),
        "animation": {
            "enabled": _flag(animation, "enabled", default=True),
            "duration": animation.get("duration", DEFAULT_ANIMATION_DURATION),
        },
        "tooltip": _flag(_section(config, "interactions"), "tooltip", default=True),
    }


def _chartjs_base(config: Mapping[str, Any]) -> dict[str, Any]:
    animation = _section(config, "animation")
    interactions = _section(config, "interactions")
    legend = _section(config, "legend")
    title = config.get("title")
    options: dict[str, Any] = {
        "responsive": _flag(config, "responsive", default=True),
        "maintainAspectRatio": False,
        "animation": (
            {"duration": animation.get("duration", DEFAULT_ANIMATION_DURATION)}
            if _flag(animation, "enabled", default=True)
            else False
        ),
        "plugins": {
            "legend": {
                "display": _flag(legend, "show", default=True),
                "position": legend.get("position") or "top",
            },
            "tooltip": {"enabled": _flag(interactions, "tooltip", default=True)},
            "title": {"display": bool(title), "text": str(title) if title else ""},
        },
    }
    if not _flag(_section(interactions, "hover"), "enabled", default=True):
        # An empty event list switches off hover handling entirely.
        options["events"] = []
    return {"options": options}


def _plotly_base(config: Mapping[str, Any]) -> dict[str, Any]:
    animation = _section(config, "animation")
    interactions = _section(config, "interactions")
    legend = _section(config, "legend")
    dimensions = _section(config, "dimensions")
    hover_enabled = _flag(_section(interactions, "hover"), "enabled", default=True)

    layout: dict[str, Any] = {
        "showlegend": _flag(legend, "show", default=True),
        "legend": {"orientation": "v" if legend.get("orientation") == "vertical" else "h"},
        "colorway": extract_color_palette(config),
        "hovermode": "closest" if hover_enabled and _flag(interactions, "tooltip", default=True) else False,
        "autosize": not (dimensions.get("width") or dimensions.get("height")),
    }
    if config.get("title"):
        layout["title"] = {"text": str(config["title"])}
    for key in ("width", "height"):
        if dimensions.get(key):
            layout[key] = dimensions[key]
    if _flag(animation, "enabled", default=True):
        layout["transition"] = {"duration": animation.get("duration", DEFAULT_ANIMATION_DURATION)}
    return {
        "layout": layout,
        "config": {
            "responsive": _flag(config, "responsive", default=True),
            "displaylogo": False,
            "staticPlot": not _flag(interactions, "enabled", default=True),
        },
    }


def convert_config_for_library(config: Mapping[str, Any], library: str) -> dict[str, Any]:
    """Translate shared factory-config settings into a library's base option.

    Args:
        config: Factory config.
        library: Target library ("echarts", "d3"/"d3js", "chartjs", "plotly").

    Returns:
        A fresh base option. Libraries without a converter get a deep copy
        of `config`.
    """

    if library == "echarts":
        return _echarts_base(config)
    if library in ("d3", "d3js"):
        return _d3_base(config)
    if library == "chartjs":
        return _chartjs_base(config)
    if library == "plotly":
        return _plotly_base(config)
    return copy.deepcopy(dict(config))
