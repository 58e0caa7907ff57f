"""Chart-type previews rendered from a small built-in sample dataset.

The chart picker shows each plugin drawn with representative data before the
user has mapped any of their own columns. Sample columns are chosen per role
so every plugin's required roles are filled.
"""

from __future__ import annotations

from typing import Any

from analysis.rows import normalize_chart_data

from .render import RenderedChart, RenderSettings, render_chart
from .schema import ChartPluginConfig, FieldAssignment, FieldRef

SAMPLE_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun")
SAMPLE_REGIONS = ("North", "South", "East", "West")
SAMPLE_CHANNELS = ("Online", "Retail")

ROLE_COLUMNS: dict[str, str] = {
    "x-axis": "month",
    "y-axis": "revenue",
    "z-axis": "z_value",
    "category": "region",
    "value": "revenue",
    "series": "channel",
    "size": "units",
    "color": "channel",
    "source": "region",
    "target": "channel",
    "date": "date",
    "open": "open",
    "close": "close",
    "low": "low",
    "high": "high",
}

# Chart types whose x and y roles need numeric columns.
NUMERIC_XY_CHART_TYPES = frozenset({"scatter", "bubble", "contour", "surface-3d", "mesh-3d", "voronoi"})
DATE_X_CHART_TYPES = frozenset({"candlestick", "stream-graph"})
# Chart types that draw one series or axis per y column.
MULTI_Y_COLUMNS: dict[str, tuple[str, ...]] = {"parallel": ("revenue", "cost", "units"), "mixed": ("revenue", "cost")}


def sample_dataset() -> list[dict[str, Any]]:
    """Return 24 deterministic sample rows (6 months by 4 regions)."""

    rows: list[dict[str, Any]] = []
    for month_idx, month in enumerate(SAMPLE_MONTHS):
        for region_idx, region in enumerate(SAMPLE_REGIONS):
            opening = 100 + month_idx * 3 + region_idx
            closing = opening + (2 if (month_idx + region_idx) % 2 == 0 else -2)
            point = month_idx * len(SAMPLE_REGIONS) + region_idx
            rows.append(
                {
                    "month": month,
                    "date": f"2025-{month_idx + 1:02d}-{region_idx * 7 + 1:02d}",
                    "region": region,
                    "country": f"{region} {'AB'[month_idx % 2]}",
                    "channel": SAMPLE_CHANNELS[(month_idx + region_idx) % 2],
                    "revenue": 100 + 15 * month_idx + 20 * region_idx,
                    "cost": 60 + 10 * month_idx + 5 * region_idx,
                    "units": 5 + month_idx + 2 * region_idx,
                    "x_value": month_idx,
                    "y_value": region_idx,
                    "z_value": round((month_idx - 2.5) ** 2 + (region_idx - 1.5) ** 2 + point * 0.1, 2),
                    "open": opening,
                    "close": closing,
                    "low": min(opening, closing) - 1.5,
                    "high": max(opening, closing) + 1.5,
                }
            )
    return rows


def _column_for(plugin: ChartPluginConfig, role: str) -> str | None:
    chart_type = plugin.chart_type
    if chart_type in NUMERIC_XY_CHART_TYPES and role in ("x-axis", "y-axis"):
        return "x_value" if role == "x-axis" else "y_value"
    if chart_type in DATE_X_CHART_TYPES and role == "x-axis":
        return "date"
    if chart_type in ("heatmap", "boxplot") and role == "y-axis":
        return "region" if chart_type == "heatmap" else "revenue"
    if chart_type == "violin" and role == "x-axis":
        return "region"
    return ROLE_COLUMNS.get(role)


def sample_assignments(plugin: ChartPluginConfig, rows: list[dict[str, Any]]) -> dict[str, FieldAssignment]:
    """Return field assignments filling the plugin's required and optional roles from the sample columns."""

    types = {column.name: column.type for column in normalize_chart_data(rows).columns}
    assignments: dict[str, FieldAssignment] = {}
    requirements = plugin.data_requirements
    for role in (*requirements.required_fields, *requirements.optional_fields):
        if role == "path":
            assignments[role] = [FieldRef(name=name, type=types.get(name)) for name in ("region", "country")]
            continue
        if role == "y-axis" and plugin.chart_type in MULTI_Y_COLUMNS:
            assignments[role] = [FieldRef(name=name, type=types.get(name)) for name in MULTI_Y_COLUMNS[plugin.chart_type]]
            continue
        if role in requirements.optional_fields and role in ("series", "color"):
            # Optional grouping roles stay unassigned in previews.
            continue
        name = _column_for(plugin, role)
        if name is not None:
            assignments[role] = FieldRef(name=name, type=types.get(name))
    return assignments


def sample_rows(plugin: ChartPluginConfig) -> tuple[list[dict[str, Any]], dict[str, FieldAssignment]]:
    """Return the sample dataset with assignments for `plugin`."""

    rows = sample_dataset()
    return rows, sample_assignments(plugin, rows)


def build_preview(plugin: ChartPluginConfig, *, settings: RenderSettings | None = None) -> RenderedChart:
    """Render `plugin` with the sample dataset and animation disabled.

    The plugin's `preview_builder` is used when it has one.
    """

    rows, assignments = sample_rows(plugin)
    return render_chart(
        plugin=plugin,
        data=rows,
        assignments=assignments,
        custom_config={"title": plugin.display_name, "animation": {"enabled": False}},
        settings=settings,
        builder=plugin.preview_builder,
    )
