"""Built-in chart plugin definitions.

Every entry goes through `create_chart_config`, so a malformed definition
fails at import time instead of at render time.
"""

from __future__ import annotations

from typing import Any, Final

from . import chartjs, d3, drilldown, echarts, plotly
from .plugin_config import create_multiple_chart_configs
from .registry import ChartPluginRegistry
from .schema import ChartPluginConfig

COMMON_PROPERTIES: Final[dict[str, Any]] = {
    "title": {"type": "string", "title": "Chart Title", "default": ""},
    "subtitle": {"type": "string", "title": "Subtitle"},
    "show_legend": {"type": "boolean", "title": "Show Legend", "default": True},
    "colors": {"type": "array", "title": "Color Palette", "items": {"type": "string", "format": "color"}},
}

AXIS_PROPERTIES: Final[dict[str, Any]] = {
    "x_axis_label": {"type": "string", "title": "X-Axis Title", "group": "appearance"},
    "y_axis_label": {"type": "string", "title": "Y-Axis Title", "group": "appearance"},
    "show_grid": {"type": "boolean", "title": "Show Grid Lines", "default": False, "group": "appearance"},
}

AGGREGATION_PROPERTY: Final[dict[str, Any]] = {
    "type": "string",
    "title": "Aggregation",
    "enum": ["sum", "count", "avg", "min", "max"],
    "default": "sum",
}


def _schema(properties: dict[str, Any], *, axes: bool = False) -> dict[str, Any]:
    merged = dict(COMMON_PROPERTIES)
    if axes:
        merged.update(AXIS_PROPERTIES)
    merged.update(properties)
    return {"type": "object", "properties": merged, "required": []}


def _plugin(
    *,
    name: str,
    display_name: str,
    library: str,
    chart_type: str,
    category: str,
    builder: Any,
    required: list[str],
    optional: list[str] | None = None,
    properties: dict[str, Any] | None = None,
    axes: bool = False,
    min_columns: int | None = None,
    description: str | None = None,
    tags: list[str] | None = None,
    interactions: dict[str, bool] | None = None,
    export_formats: list[str] | None = None,
    aggregation_support: bool = True,
    pivot_support: bool = False,
) -> dict[str, Any]:
    return {
        "name": name,
        "display_name": display_name,
        "library": library,
        "chart_type": chart_type,
        "category": category,
        "version": "1.0.0",
        "description": description or f"{display_name} drawn with {library}",
        "tags": tags or [library, chart_type],
        "config_schema": _schema(properties or {}, axes=axes),
        "data_requirements": {
            "min_columns": min_columns or max(len(required), 1),
            "required_fields": required,
            "optional_fields": optional or [],
            "supported_types": ["string", "number", "date"],
            "aggregation_support": aggregation_support,
            "pivot_support": pivot_support,
        },
        "export_formats": export_formats or ["png", "svg"],
        "interaction_support": {"tooltip": True, **(interactions or {})},
        "option_builder": builder,
    }


_ECHARTS_DEFINITIONS: Final[list[dict[str, Any]]] = [
    _plugin(
        name="echarts-bar-chart",
        display_name="Bar Chart",
        library="echarts",
        chart_type="bar",
        category="basic",
        builder=echarts.build_bar_option,
        required=["x-axis", "y-axis"],
        optional=["series"],
        axes=True,
        pivot_support=True,
        properties={
            "orientation": {"type": "string", "title": "Orientation", "enum": ["vertical", "horizontal"], "default": "vertical"},
            "stacked": {"type": "boolean", "title": "Stack Series", "default": False},
            "show_values": {"type": "boolean", "title": "Show Values", "default": False},
            "bar_width": {"type": "number", "title": "Bar Width (%)", "minimum": 10, "maximum": 100, "default": 60},
            "aggregation": AGGREGATION_PROPERTY,
        },
        interactions={"zoom": True, "selection": True, "brush": True},
        export_formats=["png", "svg", "pdf", "jpg"],
    ),
    _plugin(
        name="echarts-line-chart",
        display_name="Line Chart",
        library="echarts",
        chart_type="line",
        category="basic",
        builder=echarts.build_line_option,
        required=["x-axis", "y-axis"],
        optional=["series"],
        axes=True,
        pivot_support=True,
        properties={
            "smooth": {"type": "boolean", "title": "Smooth Lines", "default": False},
            "show_symbols": {"type": "boolean", "title": "Show Points", "default": True},
            "line_width": {"type": "number", "title": "Line Width", "minimum": 1, "maximum": 10, "default": 2},
            "stacked": {"type": "boolean", "title": "Stack Series", "default": False},
            "connect_nulls": {"type": "boolean", "title": "Connect Gaps", "default": False},
            "aggregation": AGGREGATION_PROPERTY,
        },
        interactions={"zoom": True, "pan": True, "brush": True},
        export_formats=["png", "svg", "pdf", "jpg"],
    ),
    _plugin(
        name="echarts-area-chart",
        display_name="Area Chart",
        library="echarts",
        chart_type="area",
        category="basic",
        builder=echarts.build_area_option,
        required=["x-axis", "y-axis"],
        optional=["series"],
        axes=True,
        pivot_support=True,
        properties={
            "smooth": {"type": "boolean", "title": "Smooth Lines", "default": True},
            "stacked": {"type": "boolean", "title": "Stack Series", "default": True},
            "area_opacity": {"type": "number", "title": "Fill Opacity", "minimum": 0, "maximum": 1, "default": 0.3},
            "aggregation": AGGREGATION_PROPERTY,
        },
        interactions={"zoom": True, "pan": True},
    ),
    _plugin(
        name="echarts-pie-chart",
        display_name="Pie Chart",
        library="echarts",
        chart_type="pie",
        category="basic",
        builder=echarts.build_pie_option,
        required=["category", "value"],
        properties={
            "inner_radius": {"type": "number", "title": "Inner Radius (%)", "minimum": 0, "maximum": 80, "default": 0},
            "legend_position": {
                "type": "string",
                "title": "Legend Position",
                "enum": ["top", "bottom", "left", "right"],
                "default": "right",
            },
            "show_labels": {"type": "boolean", "title": "Show Labels", "default": True},
            "show_percentages": {"type": "boolean", "title": "Show Percentages", "default": False},
            "aggregation": AGGREGATION_PROPERTY,
        },
        interactions={"selection": True},
    ),
    _plugin(
        name="echarts-scatter-chart",
        display_name="Scatter Plot",
        library="echarts",
        chart_type="scatter",
        category="statistical",
        builder=echarts.build_scatter_option,
        required=["x-axis", "y-axis"],
        optional=["size", "series"],
        axes=True,
        aggregation_support=False,
        properties={
            "symbol_size": {"type": "number", "title": "Point Size", "minimum": 2, "maximum": 40, "default": 10},
        },
        interactions={"zoom": True, "pan": True, "brush": True, "selection": True},
    ),
    _plugin(
        name="echarts-heatmap",
        display_name="Heatmap",
        library="echarts",
        chart_type="heatmap",
        category="advanced",
        builder=echarts.build_heatmap_option,
        required=["x-axis", "y-axis", "value"],
        properties={
            "show_values": {"type": "boolean", "title": "Show Values", "default": False},
            "aggregation": AGGREGATION_PROPERTY,
        },
    ),
    _plugin(
        name="echarts-funnel-chart",
        display_name="Funnel Chart",
        library="echarts",
        chart_type="funnel",
        category="advanced",
        builder=echarts.build_funnel_option,
        required=["category", "value"],
        properties={"aggregation": AGGREGATION_PROPERTY},
    ),
    _plugin(
        name="echarts-gauge-chart",
        display_name="Gauge",
        library="echarts",
        chart_type="gauge",
        category="basic",
        builder=echarts.build_gauge_option,
        required=["value"],
        min_columns=1,
        properties={
            "min": {"type": "number", "title": "Minimum", "default": 0},
            "max": {"type": "number", "title": "Maximum"},
            "aggregation": {**AGGREGATION_PROPERTY, "default": "avg"},
        },
    ),
    _plugin(
        name="echarts-radar-chart",
        display_name="Radar Chart",
        library="echarts",
        chart_type="radar",
        category="advanced",
        builder=echarts.build_radar_option,
        required=["category", "value"],
        optional=["series"],
        pivot_support=True,
        properties={
            "shape": {"type": "string", "title": "Grid Shape", "enum": ["polygon", "circle"], "default": "polygon"},
            "fill_area": {"type": "boolean", "title": "Fill Area", "default": False},
        },
    ),
    _plugin(
        name="echarts-sankey-diagram",
        display_name="Sankey Diagram",
        library="echarts",
        chart_type="sankey",
        category="advanced",
        builder=echarts.build_sankey_option,
        required=["source", "target"],
        optional=["value"],
    ),
    _plugin(
        name="echarts-treemap",
        display_name="Treemap",
        library="echarts",
        chart_type="treemap",
        category="advanced",
        builder=echarts.build_treemap_option,
        required=["path"],
        optional=["value"],
        properties={
            "leaf_depth": {"type": "integer", "title": "Visible Depth", "minimum": 1, "maximum": 5},
            "aggregation": AGGREGATION_PROPERTY,
        },
        interactions={"drilldown": True},
    ),
    _plugin(
        name="echarts-boxplot",
        display_name="Box Plot",
        library="echarts",
        chart_type="boxplot",
        category="statistical",
        builder=echarts.build_boxplot_option,
        required=["x-axis", "y-axis"],
        axes=True,
        aggregation_support=False,
    ),
    _plugin(
        name="echarts-candlestick-chart",
        display_name="Candlestick Chart",
        library="echarts",
        chart_type="candlestick",
        category="financial",
        builder=echarts.build_candlestick_option,
        required=["x-axis", "open", "close", "low", "high"],
        axes=True,
        aggregation_support=False,
        interactions={"zoom": True, "pan": True},
    ),
    _plugin(
        name="echarts-waterfall-chart",
        display_name="Waterfall Chart",
        library="echarts",
        chart_type="waterfall",
        category="financial",
        builder=echarts.build_waterfall_option,
        required=["category", "value"],
        axes=True,
        properties={
            "show_total": {"type": "boolean", "title": "Show Total", "default": True},
            "total_label": {"type": "string", "title": "Total Label", "default": "Total"},
            "show_values": {"type": "boolean", "title": "Show Values", "default": True},
        },
    ),
    _plugin(
        name="echarts-sunburst-chart",
        display_name="Sunburst Chart",
        library="echarts",
        chart_type="sunburst",
        category="advanced",
        builder=echarts.build_sunburst_option,
        required=["path"],
        optional=["value"],
        properties={
            "sort": {"type": "string", "title": "Sort Slices", "enum": ["none", "desc", "asc"], "default": "none"},
            "show_labels": {"type": "boolean", "title": "Show Labels", "default": True},
            "aggregation": AGGREGATION_PROPERTY,
        },
        interactions={"drilldown": True},
    ),
    _plugin(
        name="echarts-graph-chart",
        display_name="Network Graph",
        library="echarts",
        chart_type="graph",
        category="advanced",
        builder=echarts.build_graph_option,
        required=["source", "target"],
        optional=["value", "series"],
        properties={
            "layout": {"type": "string", "title": "Layout", "enum": list(echarts.GRAPH_LAYOUTS), "default": "force"},
            "roam": {"type": "boolean", "title": "Zoom and Pan", "default": True},
            "show_labels": {"type": "boolean", "title": "Show Labels", "default": True},
        },
        interactions={"zoom": True, "pan": True, "selection": True},
    ),
    _plugin(
        name="echarts-parallel-chart",
        display_name="Parallel Coordinates",
        library="echarts",
        chart_type="parallel",
        category="statistical",
        builder=echarts.build_parallel_option,
        required=["y-axis"],
        optional=["series"],
        min_columns=2,
        properties={
            "line_opacity": {"type": "number", "title": "Line Opacity", "minimum": 0.1, "maximum": 1, "default": 0.5},
        },
        interactions={"brush": True},
        aggregation_support=False,
    ),
]

_PLOTLY_DEFINITIONS: Final[list[dict[str, Any]]] = [
    _plugin(
        name="plotly-funnel-chart",
        display_name="Funnel Chart",
        library="plotly",
        chart_type="funnel",
        category="advanced",
        builder=plotly.build_funnel_figure,
        required=["category", "value"],
        properties={
            "orientation": {
                "type": "string",
                "title": "Orientation",
                "enum": ["horizontal", "vertical"],
                "default": "horizontal",
            },
            "textinfo": {
                "type": "string",
                "title": "Stage Text",
                "enum": ["value", "percent initial", "value+percent initial", "label+value"],
                "default": "value+percent initial",
            },
        },
        export_formats=["png", "svg", "html"],
    ),
    _plugin(
        name="plotly-waterfall-chart",
        display_name="Waterfall Chart",
        library="plotly",
        chart_type="waterfall",
        category="financial",
        builder=plotly.build_waterfall_figure,
        required=["category", "value"],
        axes=True,
        properties={
            "show_total": {"type": "boolean", "title": "Show Total", "default": True},
            "total_label": {"type": "string", "title": "Total Label", "default": "Total"},
        },
        export_formats=["png", "svg", "html"],
    ),
    _plugin(
        name="plotly-violin-plot",
        display_name="Violin Plot",
        library="plotly",
        chart_type="violin",
        category="statistical",
        builder=plotly.build_violin_figure,
        required=["y-axis"],
        optional=["x-axis"],
        axes=True,
        aggregation_support=False,
        properties={
            "show_box": {"type": "boolean", "title": "Show Box", "default": True},
            "show_mean": {"type": "boolean", "title": "Show Mean Line", "default": True},
        },
        export_formats=["png", "svg", "html"],
    ),
    _plugin(
        name="plotly-contour-plot",
        display_name="Contour Plot",
        library="plotly",
        chart_type="contour",
        category="statistical",
        builder=plotly.build_contour_figure,
        required=["x-axis", "y-axis", "z-axis"],
        axes=True,
        properties={
            "colorscale": {
                "type": "string",
                "title": "Color Scale",
                "enum": ["Viridis", "Cividis", "Blues", "RdBu", "Portland"],
                "default": "Viridis",
            },
            "show_labels": {"type": "boolean", "title": "Label Contours", "default": False},
        },
        interactions={"zoom": True, "pan": True},
        export_formats=["png", "svg", "html"],
    ),
    _plugin(
        name="plotly-surface-3d",
        display_name="3D Surface",
        library="plotly",
        chart_type="surface-3d",
        category="advanced",
        builder=plotly.build_surface_figure,
        required=["x-axis", "y-axis", "z-axis"],
        axes=True,
        properties={
            "colorscale": {
                "type": "string",
                "title": "Color Scale",
                "enum": ["Viridis", "Cividis", "Blues", "RdBu", "Portland"],
                "default": "Viridis",
            },
        },
        interactions={"zoom": True, "pan": True},
        export_formats=["png", "html"],
    ),
    _plugin(
        name="plotly-mesh-3d",
        display_name="3D Mesh",
        library="plotly",
        chart_type="mesh-3d",
        category="advanced",
        builder=plotly.build_mesh3d_figure,
        required=["x-axis", "y-axis", "z-axis"],
        optional=["color"],
        axes=True,
        properties={
            "opacity": {"type": "number", "title": "Opacity", "minimum": 0.1, "maximum": 1, "default": 0.7},
            "colorscale": {
                "type": "string",
                "title": "Color Scale",
                "enum": ["Viridis", "Cividis", "Blues", "RdBu", "Portland"],
                "default": "Viridis",
            },
        },
        interactions={"zoom": True, "pan": True},
        export_formats=["png", "html"],
        aggregation_support=False,
    ),
]

_D3_DEFINITIONS: Final[list[dict[str, Any]]] = [
    _plugin(
        name="d3js-stream-graph",
        display_name="Stream Graph",
        library="d3js",
        chart_type="stream-graph",
        category="advanced",
        builder=d3.build_stream_graph_spec,
        required=["x-axis", "series", "value"],
        pivot_support=True,
        properties={
            "offset": {"type": "string", "title": "Offset", "enum": list(d3.STREAM_OFFSETS), "default": "wiggle"},
            "smooth": {"type": "boolean", "title": "Smooth Layers", "default": True},
        },
        export_formats=["png", "svg"],
    ),
    _plugin(
        name="d3js-hierarchy",
        display_name="Hierarchy",
        library="d3js",
        chart_type="hierarchy",
        category="advanced",
        builder=d3.build_hierarchy_spec,
        required=["path"],
        optional=["value"],
        properties={
            "layout": {"type": "string", "title": "Layout", "enum": list(d3.HIERARCHY_LAYOUTS), "default": "tree"},
            "root_label": {"type": "string", "title": "Root Label", "default": "All"},
        },
        interactions={"drilldown": True, "zoom": True},
    ),
    _plugin(
        name="d3js-force-graph",
        display_name="Force-Directed Graph",
        library="d3js",
        chart_type="force-graph",
        category="advanced",
        builder=d3.build_force_graph_spec,
        required=["source", "target"],
        optional=["value", "series"],
        properties={
            "charge": {"type": "number", "title": "Node Repulsion", "maximum": 0, "default": -120},
            "link_distance": {"type": "number", "title": "Link Distance", "minimum": 5, "default": 40},
        },
        interactions={"zoom": True, "pan": True, "selection": True},
    ),
    _plugin(
        name="d3js-chord-diagram",
        display_name="Chord Diagram",
        library="d3js",
        chart_type="chord",
        category="advanced",
        builder=d3.build_chord_spec,
        required=["source", "target"],
        optional=["value"],
        properties={
            "pad_angle": {"type": "number", "title": "Group Spacing", "minimum": 0, "maximum": 0.5, "default": 0.05},
        },
    ),
    _plugin(
        name="d3js-calendar-heatmap",
        display_name="Calendar Heatmap",
        library="d3js",
        chart_type="calendar-heatmap",
        category="advanced",
        builder=d3.build_calendar_heatmap_spec,
        required=["date"],
        optional=["value"],
        min_columns=1,
        properties={
            "week_start": {"type": "string", "title": "Week Starts On", "enum": ["monday", "sunday"], "default": "monday"},
            "aggregation": AGGREGATION_PROPERTY,
        },
    ),
    _plugin(
        name="d3js-voronoi-diagram",
        display_name="Voronoi Diagram",
        library="d3js",
        chart_type="voronoi",
        category="advanced",
        builder=d3.build_voronoi_spec,
        required=["x-axis", "y-axis"],
        optional=["series"],
        axes=True,
        properties={
            "stroke_width": {"type": "number", "title": "Cell Border Width", "minimum": 0, "maximum": 5, "default": 1},
            "show_points": {"type": "boolean", "title": "Show Points", "default": True},
        },
        interactions={"selection": True},
        aggregation_support=False,
    ),
]

_CHARTJS_DEFINITIONS: Final[list[dict[str, Any]]] = [
    _plugin(
        name="chartjs-bar-chart",
        display_name="Bar Chart",
        library="chartjs",
        chart_type="bar",
        category="basic",
        builder=chartjs.build_bar_config,
        required=["x-axis", "y-axis"],
        optional=["series"],
        pivot_support=True,
        properties={
            "orientation": {"type": "string", "title": "Orientation", "enum": ["vertical", "horizontal"], "default": "vertical"},
            "stacked": {"type": "boolean", "title": "Stack Series", "default": False},
        },
    ),
    _plugin(
        name="chartjs-line-chart",
        display_name="Line Chart",
        library="chartjs",
        chart_type="line",
        category="basic",
        builder=chartjs.build_line_config,
        required=["x-axis", "y-axis"],
        optional=["series"],
        pivot_support=True,
        properties={
            "smooth": {"type": "boolean", "title": "Smooth Lines", "default": False},
            "fill": {"type": "boolean", "title": "Fill Area", "default": False},
            "show_symbols": {"type": "boolean", "title": "Show Points", "default": True},
        },
    ),
    _plugin(
        name="chartjs-doughnut-chart",
        display_name="Doughnut Chart",
        library="chartjs",
        chart_type="doughnut",
        category="basic",
        builder=chartjs.build_doughnut_config,
        required=["category", "value"],
        properties={
            "inner_radius": {"type": "number", "title": "Cutout (%)", "minimum": 0, "maximum": 80, "default": 50},
        },
    ),
    _plugin(
        name="chartjs-scatter-chart",
        display_name="Scatter Plot",
        library="chartjs",
        chart_type="scatter",
        category="statistical",
        builder=chartjs.build_scatter_config,
        required=["x-axis", "y-axis"],
        optional=["series"],
        aggregation_support=False,
    ),
    _plugin(
        name="chartjs-bubble-chart",
        display_name="Bubble Chart",
        library="chartjs",
        chart_type="bubble",
        category="statistical",
        builder=chartjs.build_bubble_config,
        required=["x-axis", "y-axis", "size"],
        optional=["series"],
        aggregation_support=False,
    ),
    _plugin(
        name="chartjs-radar-chart",
        display_name="Radar Chart",
        library="chartjs",
        chart_type="radar",
        category="advanced",
        builder=chartjs.build_radar_config,
        required=["category", "value"],
        optional=["series"],
        pivot_support=True,
    ),
    _plugin(
        name="chartjs-polar-area",
        display_name="Polar Area Chart",
        library="chartjs",
        chart_type="polar-area",
        category="basic",
        builder=chartjs.build_polar_area_config,
        required=["category", "value"],
    ),
    _plugin(
        name="chartjs-mixed-chart",
        display_name="Mixed Bar and Line",
        library="chartjs",
        chart_type="mixed",
        category="advanced",
        builder=chartjs.build_mixed_config,
        required=["x-axis", "y-axis"],
        axes=True,
        properties={
            "bar_series": {"type": "integer", "title": "Bar Series", "minimum": 1, "default": 1},
            "secondary_axis": {"type": "boolean", "title": "Lines on Right Axis", "default": True},
            "aggregation": AGGREGATION_PROPERTY,
        },
    ),
]

_DRILLDOWN_DEFINITIONS: Final[list[dict[str, Any]]] = [
    _plugin(
        name="drilldown-bar-chart",
        display_name="Drilldown Bar Chart",
        library="drilldown",
        chart_type="bar",
        category="advanced",
        builder=drilldown.build_drilldown_bar_option,
        required=["path"],
        optional=["value"],
        properties={
            "drill_path": {
                "type": "array",
                "title": "Drill Path",
                "items": {"type": "string"},
                "default": [],
                "group": "behavior",
            },
            "aggregation": AGGREGATION_PROPERTY,
        },
        interactions={"drilldown": True, "selection": True},
    ),
    _plugin(
        name="drilldown-treemap",
        display_name="Drilldown Treemap",
        library="drilldown",
        chart_type="treemap",
        category="advanced",
        builder=drilldown.build_drilldown_treemap_option,
        required=["path"],
        optional=["value"],
        properties={
            "drill_path": {
                "type": "array",
                "title": "Drill Path",
                "items": {"type": "string"},
                "default": [],
                "group": "behavior",
            },
            "aggregation": AGGREGATION_PROPERTY,
        },
        interactions={"drilldown": True, "selection": True},
    ),
]

_BATCH = create_multiple_chart_configs(
    [
        *_ECHARTS_DEFINITIONS,
        *_PLOTLY_DEFINITIONS,
        *_D3_DEFINITIONS,
        *_CHARTJS_DEFINITIONS,
        *_DRILLDOWN_DEFINITIONS,
    ]
)
if _BATCH.failed:
    joined = "\n".join(f"[{failure.index}] {failure.error.formatted_message()}" for failure in _BATCH.failed)
    raise ValueError(f"Invalid BUILTIN_PLUGINS:\n{joined}")


BUILTIN_PLUGINS: Final[tuple[ChartPluginConfig, ...]] = _BATCH.successful

DEFAULT_REGISTRY: Final[ChartPluginRegistry] = ChartPluginRegistry(BUILTIN_PLUGINS)
