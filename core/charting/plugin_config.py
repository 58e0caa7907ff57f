"""Construction and validation of chart plugin configurations.

Plugin definitions are treated as author-supplied input, so construction is
strict and fails fast: the first problem raises `ChartConfigValidationError`
naming the offending field. Batch construction collects failures instead.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, cast

from .schema import (
    CHART_CATEGORIES,
    CHART_LIBRARIES,
    EXPORT_FORMATS,
    INTERACTION_KEYS,
    SUPPORTED_DATA_TYPES,
    ChartPluginConfig,
    DataRequirements,
    InteractionSupport,
)

logger = logging.getLogger(__name__)

SEMVER_PATTERN = re.compile(r"^\d+\.\d+\.\d+(-[\w.-]+)?(\+[\w.-]+)?$")
PLUGIN_NAME_PATTERN = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)+$")

DEFAULT_EXPORT_FORMATS: tuple[str, ...] = ("png", "svg")


class ChartConfigValidationError(ValueError):
    """Raised when a chart plugin definition is invalid.

    Args:
        message: Human-readable description of the problem.
        field: Name of the offending field.
        value: The rejected value.
        allowed_values: Accepted values, when the field is an enumeration.
    """

    def __init__(
        self,
        message: str,
        *,
        field: str,
        value: Any = None,
        allowed_values: tuple[str, ...] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.value = value
        self.allowed_values = allowed_values

    def formatted_message(self) -> str:
        """Return the message with allowed values and the received value appended."""

        message = self.message
        if self.allowed_values:
            message += f". Allowed values: {', '.join(self.allowed_values)}"
        if self.value is not None:
            message += f". Received: {json.dumps(self.value, default=str)}"
        return message


@dataclass(frozen=True, slots=True)
class BatchFailure:
    """A plugin definition that failed validation during batch creation."""

    index: int
    input: Mapping[str, Any]
    error: ChartConfigValidationError


@dataclass(frozen=True, slots=True)
class BatchResult:
    """Outcome of `create_multiple_chart_configs`."""

    successful: tuple[ChartPluginConfig, ...]
    failed: tuple[BatchFailure, ...]


def _require_string(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ChartConfigValidationError(f"{key} is required and must be a non-empty string", field=key, value=value)
    return value.strip()


def _optional_string(data: Mapping[str, Any], key: str) -> str | None:
    if key not in data or data[key] is None:
        return None
    value = data[key]
    if not isinstance(value, str) or not value.strip():
        raise ChartConfigValidationError(f"{key} must be a non-empty string if provided", field=key, value=value)
    return value.strip()


def _enum_value(value: str, *, key: str, allowed: tuple[str, ...]) -> str:
    if value not in allowed:
        raise ChartConfigValidationError(f"Invalid {key}: {value}", field=key, value=value, allowed_values=allowed)
    return value


def validate_category(category: object) -> bool:
    """Return True when `category` is a supported chart category."""

    return category in CHART_CATEGORIES


def validate_library(library: object) -> bool:
    """Return True when `library` is a supported chart library."""

    return library in CHART_LIBRARIES


def available_options() -> dict[str, list[str]]:
    """Return the enumerations plugin definitions may use."""

    return {
        "categories": list(CHART_CATEGORIES),
        "libraries": list(CHART_LIBRARIES),
        "export_formats": list(EXPORT_FORMATS),
        "data_types": list(SUPPORTED_DATA_TYPES),
    }


def _validate_name(name: str, library: str) -> None:
    if not PLUGIN_NAME_PATTERN.match(name):
        raise ChartConfigValidationError(
            "name must be kebab-case with at least two segments (e.g. 'echarts-bar-chart')",
            field="name",
            value=name,
        )
    if not name.startswith(f"{library}-"):
        raise ChartConfigValidationError(
            f"name must start with the library prefix '{library}-'",
            field="name",
            value=name,
        )


def _validate_tags(value: object) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, (list, tuple)) or not all(isinstance(tag, str) for tag in value):
        raise ChartConfigValidationError("tags must be a list of strings", field="tags", value=value)
    return tuple(value)


def _validate_export_formats(value: object) -> tuple[str, ...]:
    if value is None:
        return DEFAULT_EXPORT_FORMATS
    if not isinstance(value, (list, tuple)):
        raise ChartConfigValidationError("export_formats must be a list", field="export_formats", value=value)
    for fmt in value:
        if fmt not in EXPORT_FORMATS:
            raise ChartConfigValidationError(
                f"Invalid export format: {fmt}",
                field="export_formats",
                value=fmt,
                allowed_values=EXPORT_FORMATS,
            )
    return tuple(value)


def _validate_config_schema(value: object) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ChartConfigValidationError("config_schema must be a mapping", field="config_schema", value=value)
    if value.get("type") != "object":
        raise ChartConfigValidationError(
            "config_schema.type must be 'object'",
            field="config_schema.type",
            value=value.get("type"),
        )
    if not isinstance(value.get("properties"), Mapping):
        raise ChartConfigValidationError(
            "config_schema.properties must be a mapping",
            field="config_schema.properties",
        )
    required = value.get("required")
    if required is not None and (
        not isinstance(required, (list, tuple)) or not all(isinstance(key, str) for key in required)
    ):
        raise ChartConfigValidationError(
            "config_schema.required must be a list of property names",
            field="config_schema.required",
            value=required,
        )
    return value


def _validate_data_requirements(value: object) -> DataRequirements:
    if not isinstance(value, Mapping):
        raise ChartConfigValidationError(
            "data_requirements is required and must be a mapping",
            field="data_requirements",
            value=value,
        )

    min_columns = value.get("min_columns")
    if isinstance(min_columns, bool) or not isinstance(min_columns, int) or min_columns < 1:
        raise ChartConfigValidationError(
            "data_requirements.min_columns must be a positive integer",
            field="data_requirements.min_columns",
            value=min_columns,
        )

    max_columns = value.get("max_columns")
    if max_columns is not None and (
        isinstance(max_columns, bool) or not isinstance(max_columns, int) or max_columns < min_columns
    ):
        raise ChartConfigValidationError(
            "data_requirements.max_columns must be an integer >= min_columns",
            field="data_requirements.max_columns",
            value=max_columns,
        )

    required_fields = value.get("required_fields", [])
    if not isinstance(required_fields, (list, tuple)) or not all(isinstance(f, str) for f in required_fields):
        raise ChartConfigValidationError(
            "data_requirements.required_fields must be a list of role names",
            field="data_requirements.required_fields",
            value=required_fields,
        )

    optional_fields = value.get("optional_fields", [])
    if not isinstance(optional_fields, (list, tuple)) or not all(isinstance(f, str) for f in optional_fields):
        raise ChartConfigValidationError(
            "data_requirements.optional_fields must be a list of role names",
            field="data_requirements.optional_fields",
            value=optional_fields,
        )

    supported_types = value.get("supported_types", list(SUPPORTED_DATA_TYPES))
    if not isinstance(supported_types, (list, tuple)):
        raise ChartConfigValidationError(
            "data_requirements.supported_types must be a list",
            field="data_requirements.supported_types",
            value=supported_types,
        )
    for data_type in supported_types:
        if data_type not in SUPPORTED_DATA_TYPES:
            raise ChartConfigValidationError(
                f"Invalid data type: {data_type}",
                field="data_requirements.supported_types",
                value=data_type,
                allowed_values=SUPPORTED_DATA_TYPES,
            )

    return DataRequirements(
        min_columns=min_columns,
        max_columns=max_columns,
        required_fields=tuple(required_fields),
        optional_fields=tuple(optional_fields),
        supported_types=tuple(supported_types),
        aggregation_support=bool(value.get("aggregation_support", False)),
        pivot_support=bool(value.get("pivot_support", False)),
    )


def _validate_interaction_support(value: object) -> InteractionSupport:
    if value is None:
        return InteractionSupport()
    if not isinstance(value, Mapping):
        raise ChartConfigValidationError(
            "interaction_support must be a mapping",
            field="interaction_support",
            value=value,
        )
    flags: dict[str, bool] = {}
    for key in INTERACTION_KEYS:
        if key not in value:
            continue
        flag = value[key]
        if not isinstance(flag, bool):
            raise ChartConfigValidationError(
                f"interaction_support.{key} must be a boolean",
                field=f"interaction_support.{key}",
                value=flag,
            )
        flags[key] = flag
    return InteractionSupport(**flags)


def _build(data: Mapping[str, Any]) -> ChartPluginConfig:
    name = _require_string(data, "name")
    display_name = _require_string(data, "display_name")
    category = _enum_value(_require_string(data, "category"), key="category", allowed=CHART_CATEGORIES)
    library = _enum_value(_require_string(data, "library"), key="library", allowed=CHART_LIBRARIES)
    version = _require_string(data, "version")
    description = _optional_string(data, "description")

    if not SEMVER_PATTERN.match(version):
        raise ChartConfigValidationError(
            "version must follow semantic versioning (e.g. '1.0.0')",
            field="version",
            value=version,
        )
    _validate_name(name, library)

    tags = _validate_tags(data.get("tags"))
    export_formats = _validate_export_formats(data.get("export_formats"))
    config_schema = _validate_config_schema(data.get("config_schema"))
    data_requirements = _validate_data_requirements(data.get("data_requirements"))

    option_builder = data.get("option_builder")
    if option_builder is None:
        raise ChartConfigValidationError("option_builder is required", field="option_builder")
    if not callable(option_builder):
        raise ChartConfigValidationError(
            "option_builder must be callable",
            field="option_builder",
            value=type(option_builder).__name__,
        )
    preview_builder = data.get("preview_builder")
    if preview_builder is not None and not callable(preview_builder):
        raise ChartConfigValidationError(
            "preview_builder must be callable if provided",
            field="preview_builder",
            value=type(preview_builder).__name__,
        )

    interaction_support = _validate_interaction_support(data.get("interaction_support"))

    chart_type = data.get("chart_type")
    if chart_type is None:
        chart_type = name[len(library) + 1 :]
    elif not isinstance(chart_type, str) or not chart_type.strip():
        raise ChartConfigValidationError(
            "chart_type must be a non-empty string if provided",
            field="chart_type",
            value=chart_type,
        )

    return ChartPluginConfig(
        name=name,
        display_name=display_name,
        category=cast(Any, category),
        library=cast(Any, library),
        version=version,
        chart_type=chart_type.strip(),
        config_schema=config_schema,
        data_requirements=data_requirements,
        option_builder=option_builder,
        description=description,
        tags=tags,
        export_formats=cast(Any, export_formats),
        interaction_support=interaction_support,
        preview_builder=preview_builder,
    )


def create_chart_config(data: Mapping[str, Any]) -> ChartPluginConfig:
    """Validate a plugin definition and build a `ChartPluginConfig`.

    Args:
        data: Plugin definition with `name`, `display_name`, `category`,
            `library`, `version`, `config_schema`, `data_requirements`, and
            `option_builder`, plus optional `description`, `tags`,
            `export_formats`, `interaction_support`, `preview_builder`, and
            `chart_type`.

    Returns:
        The validated plugin configuration with defaults applied.

    Raises:
        ChartConfigValidationError: On the first invalid field. Unexpected
            errors are wrapped with `field="unknown"`.
    """

    if not isinstance(data, Mapping):
        raise ChartConfigValidationError("Chart config must be a mapping", field="config", value=repr(data))
    try:
        return _build(data)
    except ChartConfigValidationError:
        raise
    except Exception as exc:
        raise ChartConfigValidationError(
            f"Unexpected error during chart config validation: {exc}",
            field="unknown",
        ) from exc


def create_multiple_chart_configs(inputs: Iterable[Mapping[str, Any]]) -> BatchResult:
    """Build several plugin configurations, collecting failures.

    Args:
        inputs: Plugin definitions.

    Returns:
        BatchResult with built configs and the failures (with input index).
    """

    successful: list[ChartPluginConfig] = []
    failed: list[BatchFailure] = []
    for index, data in enumerate(inputs):
        try:
            successful.append(create_chart_config(data))
        except ChartConfigValidationError as exc:
            logger.warning("Chart config %s failed validation: %s", index, exc.formatted_message())
            failed.append(BatchFailure(index=index, input=data, error=exc))
    return BatchResult(successful=tuple(successful), failed=tuple(failed))


def chart_config_template(name: str, library: str, category: str = "basic") -> dict[str, Any]:
    """Return a starter plugin definition for a new chart.

    The returned mapping lacks an `option_builder`; callers supply one before
    passing it to `create_chart_config`.

    Args:
        name: Chart name without the library prefix, e.g. "bar-chart".
        library: Library the chart is drawn with.
        category: Chart category.

    Returns:
        A plugin definition with a minimal schema and data requirements.
    """

    display_name = " ".join(word.capitalize() for word in name.split("-") if word)
    return {
        "name": f"{library}-{name}",
        "display_name": display_name,
        "category": category,
        "library": library,
        "version": "1.0.0",
        "description": f"{display_name} chart using {library}",
        "tags": [library, category],
        "config_schema": {
            "type": "object",
            "properties": {
                "title": {"type": "string", "title": "Chart Title", "default": ""},
                "show_legend": {"type": "boolean", "title": "Show Legend", "default": True},
                "colors": {"type": "array", "title": "Color Palette", "items": {"type": "string"}},
            },
            "required": [],
        },
        "data_requirements": {
            "min_columns": 2,
            "required_fields": ["category", "value"],
            "optional_fields": ["series"],
            "supported_types": ["string", "number", "date"],
        },
        "export_formats": ["png", "svg"],
        "interaction_support": {
            "zoom": False,
            "pan": False,
            "selection": False,
            "brush": False,
            "drilldown": False,
            "tooltip": True,
            "cross_filter": False,
        },
    }
