"""Schema types for chart plugin configuration.

Every chart type the builder offers is described by a `ChartPluginConfig`:
which library draws it, which data roles it needs, which options it exposes
(as a JSON-Schema-like `config_schema`), and the option builder that turns
rows plus a factory config into the library's nested option structure.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal

ChartCategory = Literal["basic", "advanced", "statistical", "geographic", "financial", "custom"]

ChartLibrary = Literal["echarts", "d3js", "plotly", "chartjs", "nvd3js", "drilldown"]

ExportFormat = Literal["png", "svg", "pdf", "jpg", "html"]

SupportedDataType = Literal["string", "number", "date", "boolean"]

CHART_CATEGORIES: tuple[ChartCategory, ...] = ("basic", "advanced", "statistical", "geographic", "financial", "custom")
CHART_LIBRARIES: tuple[ChartLibrary, ...] = ("echarts", "d3js", "plotly", "chartjs", "nvd3js", "drilldown")
EXPORT_FORMATS: tuple[ExportFormat, ...] = ("png", "svg", "pdf", "jpg", "html")
SUPPORTED_DATA_TYPES: tuple[SupportedDataType, ...] = ("string", "number", "date", "boolean")

INTERACTION_KEYS: tuple[str, ...] = ("zoom", "pan", "selection", "brush", "drilldown", "tooltip", "cross_filter")

Row = Mapping[str, Any]
OptionBuilder = Callable[[Sequence[Row], Mapping[str, Any]], dict[str, Any]]


@dataclass(frozen=True, slots=True)
class FieldRef:
    """A dataset column assigned to a chart role.

    Args:
        name: Column name in the dataset rows.
        type: Declared or inferred column type, when known.
    """

    name: str
    type: str | None = None

    def as_json(self) -> dict[str, Any]:
        """Return a JSON-serializable representation."""

        return {"name": self.name, "type": self.type}


FieldAssignment = FieldRef | Sequence[FieldRef] | Mapping[str, Any]
FieldAssignments = Mapping[str, FieldAssignment]


@dataclass(frozen=True, slots=True)
class DataRequirements:
    """Data shape a chart plugin needs.

    Args:
        min_columns: Minimum number of dataset columns.
        max_columns: Optional upper bound on dataset columns.
        required_fields: Mapping roles that must be assigned ("x-axis", ...).
        optional_fields: Mapping roles the plugin can use when assigned.
        supported_types: Column types the plugin can consume.
        aggregation_support: Whether rows are aggregated per category.
        pivot_support: Whether long-format rows are pivoted into series.
    """

    min_columns: int
    max_columns: int | None = None
    required_fields: tuple[str, ...] = ()
    optional_fields: tuple[str, ...] = ()
    supported_types: tuple[SupportedDataType, ...] = SUPPORTED_DATA_TYPES
    aggregation_support: bool = False
    pivot_support: bool = False


@dataclass(frozen=True, slots=True)
class InteractionSupport:
    """Interactive capabilities advertised by a chart plugin."""

    zoom: bool = False
    pan: bool = False
    selection: bool = False
    brush: bool = False
    drilldown: bool = False
    tooltip: bool = True
    cross_filter: bool = False

    def as_json(self) -> dict[str, bool]:
        """Return a JSON-serializable representation."""

        return {key: bool(getattr(self, key)) for key in INTERACTION_KEYS}


@dataclass(frozen=True, slots=True)
class ChartPluginConfig:
    """A validated chart plugin definition.

    Instances are produced by `core.charting.plugin_config.create_chart_config`,
    which enforces naming, versioning, and schema rules.
    """

    name: str
    display_name: str
    category: ChartCategory
    library: ChartLibrary
    version: str
    chart_type: str
    config_schema: Mapping[str, Any]
    data_requirements: DataRequirements
    option_builder: OptionBuilder
    description: str | None = None
    tags: tuple[str, ...] = ()
    export_formats: tuple[ExportFormat, ...] = ("png", "svg")
    interaction_support: InteractionSupport = field(default_factory=InteractionSupport)
    preview_builder: OptionBuilder | None = None

    def summary(self) -> dict[str, Any]:
        """Return JSON-serializable chart-type metadata for listings and caching."""

        requirements = self.data_requirements
        return {
            "name": self.name,
            "display_name": self.display_name,
            "category": self.category,
            "library": self.library,
            "version": self.version,
            "chart_type": self.chart_type,
            "description": self.description,
            "tags": list(self.tags),
            "export_formats": list(self.export_formats),
            "interaction_support": self.interaction_support.as_json(),
            "data_requirements": {
                "min_columns": requirements.min_columns,
                "max_columns": requirements.max_columns,
                "required_fields": list(requirements.required_fields),
                "optional_fields": list(requirements.optional_fields),
                "supported_types": list(requirements.supported_types),
                "aggregation_support": requirements.aggregation_support,
                "pivot_support": requirements.pivot_support,
            },
        }


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Result of validating a chart configuration."""

    is_valid: bool
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    def as_json(self) -> dict[str, Any]:
        """Return a JSON-serializable representation."""

        return {"is_valid": self.is_valid, "errors": list(self.errors), "warnings": list(self.warnings)}


Severity = Literal["error", "warning"]


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """One problem found while validating a chart or configuration."""

    field: str
    message: str
    severity: Severity = "error"

    def as_json(self) -> dict[str, str]:
        """Return a JSON-serializable representation."""

        return {"field": self.field, "message": self.message, "severity": self.severity}


@dataclass(frozen=True, slots=True)
class RenderRequest:
    """A request to render one chart.

    Args:
        plugin_name: Registered plugin name, e.g. "echarts-bar-chart".
        data: Chart data in any shape `analysis.rows` accepts.
        assignments: Role to column assignment.
        custom_config: Values from the configuration form.
    """

    plugin_name: str
    data: object
    assignments: FieldAssignments = field(default_factory=dict)
    custom_config: Mapping[str, Any] | None = None
