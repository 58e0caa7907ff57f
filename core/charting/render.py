"""Render chart plugins from data, field assignments, and custom settings."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from hashlib import sha256
from typing import Any

from analysis.rows import NormalizedData, normalize_chart_data

from .defaults import HUGE_DATASET_THRESHOLD, LARGE_DATASET_THRESHOLD, optimize_config_for_data
from .mapping import field_refs, map_to_factory_config, validate_mapped_config
from .registry import ChartPluginRegistry
from .schema import ChartPluginConfig, FieldAssignments, FieldRef, OptionBuilder, RenderRequest

logger = logging.getLogger(__name__)

MAX_CHART_ROWS = 50_000


@dataclass(frozen=True, slots=True)
class RenderSettings:
    """Limits applied while rendering.

    Args:
        max_rows: Datasets with more rows are rejected.
        animation_threshold: Row count above which animation is disabled.
        hover_threshold: Row count above which hover effects are disabled.
    """

    max_rows: int = MAX_CHART_ROWS
    animation_threshold: int = LARGE_DATASET_THRESHOLD
    hover_threshold: int = HUGE_DATASET_THRESHOLD

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any] | None) -> RenderSettings:
        """Build settings from a `CHART_RENDER`-style mapping; missing keys keep defaults."""

        values = values or {}
        return cls(
            max_rows=int(values.get("MAX_ROWS", MAX_CHART_ROWS)),
            animation_threshold=int(values.get("ANIMATION_THRESHOLD", LARGE_DATASET_THRESHOLD)),
            hover_threshold=int(values.get("HOVER_THRESHOLD", HUGE_DATASET_THRESHOLD)),
        )


@dataclass(frozen=True, slots=True)
class RenderedChart:
    """A chart option produced by a plugin's option builder."""

    plugin_name: str
    library: str
    chart_type: str
    option: dict[str, Any]
    error: str | None = None
    warnings: tuple[str, ...] = ()
    row_count: int = 0

    def as_json(self) -> dict[str, Any]:
        """Return a JSON-serializable representation."""

        return {
            "plugin": self.plugin_name,
            "library": self.library,
            "chart_type": self.chart_type,
            "option": self.option,
            "error": self.error,
            "warnings": list(self.warnings),
            "row_count": self.row_count,
        }


def _failed(plugin: ChartPluginConfig, error: str, *, warnings: Iterable[str] = (), row_count: int = 0) -> RenderedChart:
    return RenderedChart(
        plugin_name=plugin.name,
        library=plugin.library,
        chart_type=plugin.chart_type,
        option={},
        error=error,
        warnings=tuple(warnings),
        row_count=row_count,
    )


def _typed_assignments(assignments: FieldAssignments, normalized: NormalizedData) -> dict[str, list[FieldRef]]:
    """Return the assignments with column types filled in from the dataset where missing."""

    typed: dict[str, list[FieldRef]] = {}
    for role, assignment in assignments.items():
        refs = []
        for ref in field_refs(assignment):
            column = normalized.column(ref.name)
            if ref.type is None and column is not None:
                ref = FieldRef(name=ref.name, type=column.type)
            refs.append(ref)
        typed[role] = refs
    return typed


def _data_warnings(
    plugin: ChartPluginConfig,
    normalized: NormalizedData,
    assignments: FieldAssignments,
) -> tuple[list[str], list[str]]:
    """Return (errors, warnings) comparing assigned columns with the dataset."""

    errors: list[str] = []
    warnings: list[str] = []
    if not normalized.rows:
        return errors, warnings

    requirements = plugin.data_requirements
    for role, assignment in assignments.items():
        for ref in field_refs(assignment):
            column = normalized.column(ref.name)
            if column is None:
                errors.append(f"Field {ref.name!r} assigned to {role} is not present in the data.")
            elif column.type not in requirements.supported_types:
                warnings.append(f"{plugin.display_name} does not support {column.type} columns ({ref.name}).")

    column_count = len(normalized.columns)
    if column_count < requirements.min_columns:
        warnings.append(
            f"{plugin.display_name} expects at least {requirements.min_columns} columns; the data has {column_count}."
        )
    if requirements.max_columns is not None and column_count > requirements.max_columns:
        warnings.append(
            f"{plugin.display_name} uses at most {requirements.max_columns} columns; the data has {column_count}."
        )
    return errors, warnings


def render_chart(
    *,
    plugin: ChartPluginConfig,
    data: object,
    assignments: FieldAssignments | None,
    custom_config: Mapping[str, Any] | None = None,
    settings: RenderSettings | None = None,
    builder: OptionBuilder | None = None,
) -> RenderedChart:
    """Render one chart.

    Data is normalized, field assignments and custom settings are mapped onto
    a factory config, the config is validated and tuned for the row count,
    and the plugin's option builder produces the library option.

    Args:
        plugin: Plugin to render with.
        data: Chart data in any shape `analysis.rows` accepts.
        assignments: Role to column assignment.
        custom_config: Values from the configuration form.
        settings: Rendering limits; defaults apply when omitted.
        builder: Builder used instead of `plugin.option_builder`.

    Returns:
        RenderedChart. Validation problems and builder failures are reported
        through `error` with an empty option rather than raised.
    """

    settings = settings or RenderSettings()
    assignments = assignments or {}
    normalized = normalize_chart_data(data)
    row_count = len(normalized)
    assignments = _typed_assignments(assignments, normalized)

    factory_config = map_to_factory_config(
        assignments,
        custom_config,
        chart_type=plugin.chart_type,
        library=plugin.library,
        schema=plugin.config_schema,
    )
    validation = validate_mapped_config(
        factory_config,
        chart_type=plugin.chart_type,
        assignments=assignments,
        required_roles=plugin.data_requirements.required_fields,
    )
    data_errors, data_warnings = _data_warnings(plugin, normalized, assignments)
    warnings = [*validation.warnings, *data_warnings]
    errors = [*validation.errors, *data_errors]
    if errors:
        return _failed(plugin, " ".join(errors), warnings=warnings, row_count=row_count)

    if row_count > settings.max_rows:
        return _failed(
            plugin,
            f"Too many rows to render safely ({row_count} > {settings.max_rows}). Filter or aggregate the data first.",
            warnings=warnings,
            row_count=row_count,
        )

    tuned = optimize_config_for_data(
        factory_config,
        row_count,
        animation_threshold=settings.animation_threshold,
        hover_threshold=settings.hover_threshold,
    )
    try:
        option = (builder or plugin.option_builder)(normalized.rows, tuned)
    except (ValueError, KeyError, TypeError) as exc:
        logger.exception("Option builder for %s failed", plugin.name)
        return _failed(plugin, f"Chart could not be rendered: {exc}", warnings=warnings, row_count=row_count)

    return RenderedChart(
        plugin_name=plugin.name,
        library=plugin.library,
        chart_type=plugin.chart_type,
        option=option,
        warnings=tuple(warnings),
        row_count=row_count,
    )


def render_charts(
    requests: Iterable[RenderRequest],
    *,
    registry: ChartPluginRegistry,
    settings: RenderSettings | None = None,
) -> tuple[RenderedChart, ...]:
    """Render several charts, reusing results for identical requests.

    Args:
        requests: Render requests, in display order.
        registry: Registry the plugin names are resolved against.
        settings: Rendering limits shared by every request.

    Returns:
        RenderedChart entries in the same order as `requests`. Unknown plugin
        names produce an entry with an error.
    """

    rendered: list[RenderedChart] = []
    cache: dict[str, RenderedChart] = {}
    for request in requests:
        cache_key = render_cache_key(request)
        if cache_key not in cache:
            plugin = registry.get(request.plugin_name)
            if plugin is None:
                cache[cache_key] = RenderedChart(
                    plugin_name=request.plugin_name,
                    library="",
                    chart_type="",
                    option={},
                    error=f"Unknown chart type: {request.plugin_name}",
                )
            else:
                cache[cache_key] = render_chart(
                    plugin=plugin,
                    data=request.data,
                    assignments=request.assignments,
                    custom_config=request.custom_config,
                    settings=settings,
                )
        rendered.append(cache[cache_key])
    return tuple(rendered)


def render_cache_key(request: RenderRequest) -> str:
    """Return a content-based cache key for a render request.

    Notes:
        Field assignments are reduced to column names and types, so the
        FieldRef, mapping, and bare-name spellings of one assignment share a key.
    """

    payload = {
        "plugin": request.plugin_name,
        "data": request.data,
        "assignments": {
            role: [ref.as_json() for ref in field_refs(assignment)]
            for role, assignment in (request.assignments or {}).items()
        },
        "config": request.custom_config or {},
    }
    dumped = json.dumps(payload, sort_keys=True, default=str)
    return sha256(dumped.encode("utf-8")).hexdigest()
