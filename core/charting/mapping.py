"""Map user field assignments and custom settings onto a factory config.

The factory config is the single library-agnostic description every option
builder consumes. Field roles ("x-axis", "value", ...) become `*_field`
keys, axis metadata is derived from the assigned columns' types, and custom
settings from the configuration form are folded into nested sections.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from analysis.field_types import data_type_category

from .defaults import create_default_config, extract_color_palette, validate_chart_config
from .schema import FieldAssignments, FieldRef, ValidationResult

logger = logging.getLogger(__name__)

ROLE_CONFIG_KEYS: dict[str, str] = {
    "x-axis": "x_field",
    "y-axis": "y_field",
    "z-axis": "z_field",
    "category": "category_field",
    "value": "value_field",
    "series": "series_field",
    "size": "size_field",
    "color": "color_field",
    "source": "source_field",
    "target": "target_field",
    "date": "date_field",
    "open": "open_field",
    "close": "close_field",
    "low": "low_field",
    "high": "high_field",
}
MULTI_ROLE_CONFIG_KEYS: dict[str, str] = {"path": "path_fields"}

ROLE_LABELS: dict[str, str] = {
    "x-axis": "X-axis",
    "y-axis": "Y-axis",
    "z-axis": "Z-axis",
    "category": "Category",
    "value": "Value",
    "series": "Series",
    "size": "Size",
    "source": "Source",
    "target": "Target",
    "date": "Date",
    "open": "Open",
    "close": "Close",
    "low": "Low",
    "high": "High",
    "path": "Hierarchy path",
}

PIE_CHART_TYPES = frozenset({"pie", "doughnut", "donut"})

_HANDLED_CUSTOM_KEYS = frozenset(
    {
        "title",
        "subtitle",
        "colors",
        "show_legend",
        "legend_position",
        "show_grid",
        "x_axis_label",
        "y_axis_label",
        "width",
        "height",
        "x_field",
        "y_field",
    }
)


def is_pie_chart(chart_type: str) -> bool:
    """Return True for pie-family chart types."""

    return chart_type in PIE_CHART_TYPES


def infer_axis_type(field_type: str | None) -> str:
    """Return the axis type ("category", "value", or "time") for a column type."""

    if not field_type:
        return "category"
    category = data_type_category(field_type)
    if category == "numeric":
        return "value"
    if category == "date":
        return "time"
    return "category"


def field_refs(assignment: object) -> list[FieldRef]:
    """Return the columns in one role assignment.

    Accepts a FieldRef, a `{"name", "type"}` mapping, a bare column name, or a
    sequence of any of those. Entries without a name are skipped.
    """

    if assignment is None:
        return []
    if isinstance(assignment, FieldRef):
        return [assignment] if assignment.name else []
    if isinstance(assignment, str):
        return [FieldRef(name=assignment)] if assignment.strip() else []
    if isinstance(assignment, Mapping):
        name = assignment.get("name")
        if not name:
            return []
        field_type = assignment.get("type")
        return [FieldRef(name=str(name), type=str(field_type) if field_type else None)]
    if isinstance(assignment, Iterable):
        refs: list[FieldRef] = []
        for item in assignment:
            refs.extend(field_refs(item))
        return refs
    return []


def create_field_mapping(assignments: FieldAssignments | None) -> dict[str, str | list[str]]:
    """Return role to column-name mapping; multi-column roles map to lists."""

    mapping: dict[str, str | list[str]] = {}
    for role, assignment in (assignments or {}).items():
        refs = field_refs(assignment)
        if not refs:
            continue
        if role in MULTI_ROLE_CONFIG_KEYS:
            mapping[role] = [ref.name for ref in refs]
        else:
            mapping[role] = refs[0].name
    return mapping


def _axis(config: dict[str, Any], axis: str) -> dict[str, Any]:
    axes = config.setdefault("axes", {})
    return axes.setdefault(axis, {})


def _apply_assignments(config: dict[str, Any], assignments: FieldAssignments) -> None:
    for role, assignment in assignments.items():
        refs = field_refs(assignment)
        if not refs:
            continue

        if role in MULTI_ROLE_CONFIG_KEYS:
            config[MULTI_ROLE_CONFIG_KEYS[role]] = [ref.name for ref in refs]
            continue

        key = ROLE_CONFIG_KEYS.get(role)
        if key is None:
            key = f"{role.strip().lower().replace('-', '_')}_field"
            logger.debug("Mapping unrecognized field role %r to %r", role, key)

        first = refs[0]
        config[key] = first.name
        if len(refs) > 1:
            config[f"{key}s"] = [ref.name for ref in refs]

        if role == "x-axis":
            _axis(config, "x").update({"field": first.name, "type": infer_axis_type(first.type)})
        elif role == "y-axis":
            _axis(config, "y").update({"field": first.name, "type": infer_axis_type(first.type)})
        elif role == "category":
            config["label_field"] = first.name


def _apply_custom(config: dict[str, Any], custom: Mapping[str, Any]) -> None:
    for key, value in custom.items():
        if key not in _HANDLED_CUSTOM_KEYS and key not in config:
            config[key] = copy.deepcopy(value)

    if isinstance(custom.get("title"), str) and custom["title"].strip():
        config["title"] = custom["title"].strip()
    if isinstance(custom.get("subtitle"), str) and custom["subtitle"].strip():
        config["subtitle"] = custom["subtitle"].strip()
    if isinstance(custom.get("colors"), (list, tuple)) and custom["colors"]:
        config["colors"] = [str(color) for color in custom["colors"]]

    if isinstance(custom.get("show_legend"), bool):
        config.setdefault("legend", {})["show"] = custom["show_legend"]
    if isinstance(custom.get("legend_position"), str):
        config.setdefault("legend", {})["position"] = custom["legend_position"]
    if isinstance(custom.get("show_grid"), bool):
        config.setdefault("grid", {})["show"] = custom["show_grid"]

    if custom.get("x_axis_label"):
        _axis(config, "x")["title"] = str(custom["x_axis_label"])
    if custom.get("y_axis_label"):
        _axis(config, "y")["title"] = str(custom["y_axis_label"])

    for key in ("width", "height"):
        if custom.get(key) is not None:
            config.setdefault("dimensions", {})[key] = custom[key]

    if custom.get("x_field") and not config.get("x_field"):
        config["x_field"] = str(custom["x_field"])
        _axis(config, "x").setdefault("field", config["x_field"])
    if custom.get("y_field") and not config.get("y_field"):
        config["y_field"] = str(custom["y_field"])
        _axis(config, "y").setdefault("field", config["y_field"])


def schema_defaults(schema: Mapping[str, Any] | None) -> dict[str, Any]:
    """Return `{property: default}` for schema properties that declare one."""

    if not schema:
        return {}
    properties = schema.get("properties")
    if not isinstance(properties, Mapping):
        return {}
    return {
        key: copy.deepcopy(spec["default"])
        for key, spec in properties.items()
        if isinstance(spec, Mapping) and "default" in spec
    }


def map_to_factory_config(
    assignments: FieldAssignments | None,
    custom_config: Mapping[str, Any] | None = None,
    *,
    chart_type: str,
    library: str = "echarts",
    schema: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Build a factory config from field assignments and custom settings.

    Args:
        assignments: Role to column assignment.
        custom_config: Values from the configuration form. Keys the mapper
            does not recognize pass through unchanged unless an assignment
            already produced them.
        chart_type: Chart type being configured.
        library: Target library, recorded on the config.
        schema: Plugin `config_schema`; its property defaults fill settings
            the user did not supply.

    Returns:
        A new factory config dictionary. Inputs are never mutated.
    """

    assignments = assignments or {}
    config: dict[str, Any] = {"chart_type": chart_type, "library": library}

    _apply_assignments(config, assignments)
    _apply_custom(config, {**schema_defaults(schema), **dict(custom_config or {})})

    defaults = create_default_config(chart_type)
    for section in ("animation", "interactions", "legend"):
        config[section] = {**defaults[section], **config.get(section, {})}
    config.setdefault("responsive", True)
    config["colors"] = extract_color_palette(config)

    axes = config.get("axes")
    if axes:
        if "x" in axes:
            axes["x"].setdefault("type", "category")
        if "y" in axes:
            axes["y"].setdefault("type", "value")

    config["field_assignments"] = create_field_mapping(assignments)
    return config


def _role_type(assignments: FieldAssignments, role: str) -> str | None:
    refs = field_refs(assignments.get(role))
    return refs[0].type if refs else None


def _role_assigned(config: Mapping[str, Any], mapping: Mapping[str, Any], role: str) -> bool:
    if mapping.get(role):
        return True
    key = ROLE_CONFIG_KEYS.get(role) or MULTI_ROLE_CONFIG_KEYS.get(role)
    return bool(key and config.get(key))


def validate_mapped_config(
    factory_config: Mapping[str, Any],
    *,
    chart_type: str,
    assignments: FieldAssignments | None,
    required_roles: Iterable[str] | None = None,
) -> ValidationResult:
    """Validate a factory config against the roles its chart type needs.

    Args:
        factory_config: Output of `map_to_factory_config`.
        chart_type: Chart type being configured.
        assignments: The field assignments the config was built from.
        required_roles: Roles the plugin requires. When omitted, pie-family
            charts need "category" and "value" and other charts need
            "x-axis" and "y-axis".

    Returns:
        ValidationResult; warnings never affect `is_valid`.
    """

    assignments = assignments or {}
    mapping = create_field_mapping(assignments)
    errors: list[str] = []
    warnings: list[str] = []

    if required_roles is None:
        roles: tuple[str, ...] = ("category", "value") if is_pie_chart(chart_type) else ("x-axis", "y-axis")
    else:
        roles = tuple(required_roles)

    for role in roles:
        if not _role_assigned(factory_config, mapping, role):
            label = ROLE_LABELS.get(role, role)
            errors.append(f"{label} field is required for {chart_type} charts.")

    errors.extend(validate_chart_config(factory_config).errors)

    x_type = _role_type(assignments, "x-axis")
    y_type = _role_type(assignments, "y-axis")
    if chart_type in ("scatter", "bubble"):
        if x_type and data_type_category(x_type) != "numeric":
            warnings.append(f"{chart_type.capitalize()} charts work best with numeric X-axis values.")
        if y_type and data_type_category(y_type) != "numeric":
            warnings.append(f"{chart_type.capitalize()} charts work best with numeric Y-axis values.")
    if chart_type in ("line", "area") and x_type:
        if data_type_category(x_type) not in ("date", "numeric"):
            warnings.append(f"{chart_type.capitalize()} charts work best with date or numeric X-axis values.")

    return ValidationResult(is_valid=not errors, errors=tuple(errors), warnings=tuple(warnings))
