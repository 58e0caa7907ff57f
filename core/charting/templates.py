"""Configuration templates for the chart configuration form.

A template describes what the configuration form shows for one chart type:
sections of fields, which fields are required, which column types suit each
data-mapping field, and named cross-field checks. Templates for registered
plugins are derived from the plugin's `config_schema` and data requirements.
Chart types without a plugin fall back to built-in generators, and finally to
a generic single-section template.
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Iterable, Mapping, MutableMapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from analysis.field_types import expected_data_types, validate_field_type

from .mapping import MULTI_ROLE_CONFIG_KEYS, ROLE_CONFIG_KEYS, schema_defaults
from .schema import ChartPluginConfig, ValidationIssue

if TYPE_CHECKING:
    from .registry import ChartPluginRegistry

CustomValidator = Callable[[Mapping[str, Any]], str | None]

SECTION_TITLES: dict[str, str] = {
    "data-mapping": "Data Mapping",
    "appearance": "Appearance",
    "behavior": "Behavior",
    "basic": "Basic Settings",
}
SECTION_ICONS: dict[str, str] = {
    "data-mapping": "table_chart",
    "appearance": "palette",
    "behavior": "tune",
    "basic": "settings",
}
_SECTION_ORDER = ("data-mapping", "appearance", "behavior")


@dataclass(frozen=True, slots=True)
class FieldValidation:
    """Bounds and pattern for a configuration field."""

    min: float | None = None
    max: float | None = None
    pattern: str | None = None


@dataclass(frozen=True, slots=True)
class ConfigurationField:
    """One input in the configuration form.

    Args:
        key: Dotted config key the field writes to.
        type: Input kind ("field", "string", "number", "boolean", "select",
            "multiselect", "color", "array", "object").
        title: Label shown to the user.
        description: Optional help text.
        required: Whether the form must supply a value.
        default: Default value, if any.
        options: Choices for select inputs.
        validation: Optional numeric bounds or pattern.
        group: Explicit section id overriding key-based categorization.
    """

    key: str
    type: str
    title: str
    description: str | None = None
    required: bool = False
    default: Any = None
    options: tuple[Any, ...] = ()
    validation: FieldValidation | None = None
    group: str | None = None

    def as_json(self) -> dict[str, Any]:
        """Return a JSON-serializable representation."""

        payload: dict[str, Any] = {
            "key": self.key,
            "type": self.type,
            "title": self.title,
            "required": self.required,
        }
        if self.description:
            payload["description"] = self.description
        if self.default is not None:
            payload["default"] = copy.deepcopy(self.default)
        if self.options:
            payload["options"] = list(self.options)
        if self.validation is not None:
            payload["validation"] = {
                key: value
                for key, value in (
                    ("min", self.validation.min),
                    ("max", self.validation.max),
                    ("pattern", self.validation.pattern),
                )
                if value is not None
            }
        return payload


@dataclass(frozen=True, slots=True)
class ConfigurationSection:
    """A titled group of configuration fields."""

    id: str
    title: str
    fields: tuple[ConfigurationField, ...]
    icon: str | None = None
    collapsed: bool = False

    def as_json(self) -> dict[str, Any]:
        """Return a JSON-serializable representation."""

        return {
            "id": self.id,
            "title": self.title,
            "icon": self.icon,
            "collapsed": self.collapsed,
            "fields": [f.as_json() for f in self.fields],
        }


@dataclass(frozen=True, slots=True)
class ValidationRules:
    """Template-level validation rules.

    Args:
        required: Config keys that must have a value.
        field_types: Config key to accepted column type categories.
        custom: Named checks receiving the whole config and returning an
            error message, or None.
    """

    required: tuple[str, ...] = ()
    field_types: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    custom: Mapping[str, CustomValidator] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ConfigurationTemplate:
    """Everything the configuration form needs for one chart type."""

    chart_type: str
    library: str
    sections: tuple[ConfigurationSection, ...]
    validation: ValidationRules
    defaults: Mapping[str, Any]

    @property
    def fields(self) -> tuple[ConfigurationField, ...]:
        """All fields across sections, in display order."""

        return tuple(f for section in self.sections for f in section.fields)

    def as_json(self) -> dict[str, Any]:
        """Return a JSON-serializable representation; custom checks are listed by name."""

        return {
            "chart_type": self.chart_type,
            "library": self.library,
            "sections": [section.as_json() for section in self.sections],
            "validation": {
                "required": list(self.validation.required),
                "field_types": {key: list(types) for key, types in self.validation.field_types.items()},
                "custom": sorted(self.validation.custom),
            },
            "defaults": copy.deepcopy(dict(self.defaults)),
        }


@dataclass(frozen=True, slots=True)
class TemplateValidationResult:
    """Result of validating a config against a template."""

    is_valid: bool
    issues: tuple[ValidationIssue, ...] = ()

    @property
    def errors(self) -> tuple[ValidationIssue, ...]:
        return tuple(issue for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> tuple[ValidationIssue, ...]:
        return tuple(issue for issue in self.issues if issue.severity == "warning")

    def as_json(self) -> dict[str, Any]:
        """Return a JSON-serializable representation."""

        return {"is_valid": self.is_valid, "issues": [issue.as_json() for issue in self.issues]}


def get_nested_value(obj: object, path: str) -> Any:
    """Return the value at a dotted path, or None when any segment is missing."""

    current: Any = obj
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return None
        current = current[part]
    return current


def set_nested_value(obj: MutableMapping[str, Any], path: str, value: Any) -> None:
    """Set the value at a dotted path, creating intermediate dictionaries."""

    parts = path.split(".")
    current: MutableMapping[str, Any] = obj
    for part in parts[:-1]:
        child = current.get(part)
        if not isinstance(child, MutableMapping):
            child = {}
            current[part] = child
        current = child
    current[parts[-1]] = value


def _fields_must_differ(config: Mapping[str, Any]) -> str | None:
    x_field = config.get("x_field")
    if x_field and x_field == config.get("y_field"):
        return "X-Axis and Y-Axis fields must be different"
    return None


def _bar_template(library: str) -> ConfigurationTemplate:
    return ConfigurationTemplate(
        chart_type="bar",
        library=library,
        sections=(
            ConfigurationSection(
                id="data-mapping",
                title=SECTION_TITLES["data-mapping"],
                icon=SECTION_ICONS["data-mapping"],
                fields=(
                    ConfigurationField(key="x_field", type="field", title="X-Axis Field", required=True),
                    ConfigurationField(key="y_field", type="field", title="Y-Axis Field", required=True),
                    ConfigurationField(key="series_field", type="field", title="Series Field"),
                ),
            ),
            ConfigurationSection(
                id="appearance",
                title=SECTION_TITLES["appearance"],
                icon=SECTION_ICONS["appearance"],
                fields=(
                    ConfigurationField(key="title", type="string", title="Chart Title"),
                    ConfigurationField(
                        key="orientation",
                        type="select",
                        title="Orientation",
                        default="vertical",
                        options=("vertical", "horizontal"),
                    ),
                    ConfigurationField(key="colors", type="color", title="Colors"),
                    ConfigurationField(
                        key="bar_width",
                        type="number",
                        title="Bar Width (%)",
                        default=60,
                        validation=FieldValidation(min=10, max=100),
                    ),
                ),
            ),
            ConfigurationSection(
                id="behavior",
                title=SECTION_TITLES["behavior"],
                icon=SECTION_ICONS["behavior"],
                collapsed=True,
                fields=(
                    ConfigurationField(key="animation.enabled", type="boolean", title="Enable Animation", default=True),
                    ConfigurationField(key="show_values", type="boolean", title="Show Values", default=False),
                    ConfigurationField(key="stacked", type="boolean", title="Stack Series", default=False),
                ),
            ),
        ),
        validation=ValidationRules(
            required=("x_field", "y_field"),
            field_types={
                "x_field": expected_data_types("x-axis"),
                "y_field": expected_data_types("y-axis"),
                "series_field": expected_data_types("series"),
            },
            custom={"fields_must_differ": _fields_must_differ},
        ),
        defaults={"orientation": "vertical", "bar_width": 60, "show_values": False, "stacked": False},
    )


def _pie_template(library: str) -> ConfigurationTemplate:
    return ConfigurationTemplate(
        chart_type="pie",
        library=library,
        sections=(
            ConfigurationSection(
                id="data-mapping",
                title=SECTION_TITLES["data-mapping"],
                icon=SECTION_ICONS["data-mapping"],
                fields=(
                    ConfigurationField(key="category_field", type="field", title="Label Field", required=True),
                    ConfigurationField(key="value_field", type="field", title="Value Field", required=True),
                ),
            ),
            ConfigurationSection(
                id="appearance",
                title=SECTION_TITLES["appearance"],
                icon=SECTION_ICONS["appearance"],
                fields=(
                    ConfigurationField(key="title", type="string", title="Chart Title"),
                    ConfigurationField(
                        key="inner_radius",
                        type="number",
                        title="Inner Radius (%)",
                        description="Set above zero to draw a donut.",
                        default=0,
                        validation=FieldValidation(min=0, max=80),
                    ),
                    ConfigurationField(
                        key="legend_position",
                        type="select",
                        title="Legend Position",
                        default="right",
                        options=("top", "bottom", "left", "right"),
                    ),
                ),
            ),
            ConfigurationSection(
                id="behavior",
                title=SECTION_TITLES["behavior"],
                icon=SECTION_ICONS["behavior"],
                collapsed=True,
                fields=(
                    ConfigurationField(key="show_labels", type="boolean", title="Show Labels", default=True),
                    ConfigurationField(key="show_percentages", type="boolean", title="Show Percentages", default=False),
                ),
            ),
        ),
        validation=ValidationRules(
            required=("category_field", "value_field"),
            field_types={
                "category_field": expected_data_types("category"),
                "value_field": expected_data_types("value"),
            },
        ),
        defaults={"inner_radius": 0, "legend_position": "right", "show_labels": True, "show_percentages": False},
    )


def _line_template(library: str) -> ConfigurationTemplate:
    return ConfigurationTemplate(
        chart_type="line",
        library=library,
        sections=(
            ConfigurationSection(
                id="data-mapping",
                title=SECTION_TITLES["data-mapping"],
                icon=SECTION_ICONS["data-mapping"],
                fields=(
                    ConfigurationField(key="x_field", type="field", title="X-Axis Field", required=True),
                    ConfigurationField(key="y_field", type="field", title="Y-Axis Field", required=True),
                    ConfigurationField(key="series_field", type="field", title="Series Field"),
                ),
            ),
            ConfigurationSection(
                id="appearance",
                title=SECTION_TITLES["appearance"],
                icon=SECTION_ICONS["appearance"],
                fields=(
                    ConfigurationField(key="title", type="string", title="Chart Title"),
                    ConfigurationField(key="colors", type="color", title="Colors"),
                    ConfigurationField(key="smooth", type="boolean", title="Smooth Lines", default=False),
                    ConfigurationField(key="show_symbols", type="boolean", title="Show Points", default=True),
                    ConfigurationField(
                        key="line_width",
                        type="number",
                        title="Line Width",
                        default=2,
                        validation=FieldValidation(min=1, max=10),
                    ),
                ),
            ),
            ConfigurationSection(
                id="behavior",
                title=SECTION_TITLES["behavior"],
                icon=SECTION_ICONS["behavior"],
                collapsed=True,
                fields=(
                    ConfigurationField(key="animation.enabled", type="boolean", title="Enable Animation", default=True),
                ),
            ),
        ),
        validation=ValidationRules(
            required=("x_field", "y_field"),
            field_types={
                "x_field": expected_data_types("x-axis"),
                "y_field": expected_data_types("y-axis"),
                "series_field": expected_data_types("series"),
            },
            custom={"fields_must_differ": _fields_must_differ},
        ),
        defaults={"smooth": False, "show_symbols": True, "line_width": 2},
    )


TEMPLATE_GENERATORS: dict[str, Callable[[str], ConfigurationTemplate]] = {
    "bar": _bar_template,
    "column": _bar_template,
    "pie": _pie_template,
    "doughnut": _pie_template,
    "line": _line_template,
    "area": _line_template,
}


def generic_template(chart_type: str, library: str) -> ConfigurationTemplate:
    """Return the single-section fallback template for unknown chart types."""

    return ConfigurationTemplate(
        chart_type=chart_type,
        library=library,
        sections=(
            ConfigurationSection(
                id="basic",
                title=SECTION_TITLES["basic"],
                icon=SECTION_ICONS["basic"],
                fields=(ConfigurationField(key="title", type="string", title="Chart Title"),),
            ),
        ),
        validation=ValidationRules(),
        defaults={},
    )


def categorize_field(key: str) -> str:
    """Return the section id a config key belongs to when no group is declared."""

    lowered = key.lower()
    if "field" in lowered:
        return "data-mapping"
    if any(token in lowered for token in ("color", "title", "legend")):
        return "appearance"
    return "behavior"


def _humanize(key: str) -> str:
    return " ".join(part.capitalize() for part in key.replace(".", " ").replace("_", " ").split())


def _field_kind(key: str, spec: Mapping[str, Any]) -> str:
    json_type = spec.get("type")
    if key.endswith("_field") or key.endswith("_fields"):
        return "field"
    if json_type == "string":
        if spec.get("format") == "color":
            return "color"
        return "select" if spec.get("enum") else "string"
    if json_type in ("number", "integer"):
        return "number"
    if json_type == "boolean":
        return "boolean"
    if json_type == "array":
        items = spec.get("items")
        if isinstance(items, Mapping) and items.get("enum"):
            return "multiselect"
        return "color" if "color" in key.lower() else "array"
    if json_type == "object":
        return "object"
    return "string"


def _schema_field(key: str, spec: Mapping[str, Any], *, required: bool) -> ConfigurationField:
    validation = None
    if any(name in spec for name in ("minimum", "maximum", "pattern")):
        validation = FieldValidation(min=spec.get("minimum"), max=spec.get("maximum"), pattern=spec.get("pattern"))
    options = spec.get("enum")
    if options is None and isinstance(spec.get("items"), Mapping):
        options = spec["items"].get("enum")
    group = spec.get("group")
    return ConfigurationField(
        key=key,
        type=_field_kind(key, spec),
        title=str(spec.get("title") or _humanize(key)),
        description=spec.get("description"),
        required=required,
        default=copy.deepcopy(spec.get("default")),
        options=tuple(options or ()),
        validation=validation,
        group=str(group) if group else None,
    )


def _role_key(role: str) -> str | None:
    return ROLE_CONFIG_KEYS.get(role) or MULTI_ROLE_CONFIG_KEYS.get(role)


def convert_from_plugin_schema(plugin: ChartPluginConfig) -> ConfigurationTemplate:
    """Derive a configuration template from a plugin's schema and data requirements.

    Args:
        plugin: Registered chart plugin.

    Returns:
        A template whose data-mapping section covers every role the plugin
        requires or accepts, plus one field per schema property.
    """

    schema = plugin.config_schema
    properties: Mapping[str, Any] = schema.get("properties") or {}
    schema_required = set(schema.get("required") or ())
    requirements = plugin.data_requirements

    fields: list[ConfigurationField] = []
    for role in (*requirements.required_fields, *requirements.optional_fields):
        key = _role_key(role)
        if key is None or key in properties:
            continue
        fields.append(
            ConfigurationField(
                key=key,
                type="field",
                title=f"{_humanize(role)} Field",
                required=role in requirements.required_fields,
            )
        )
    for key, spec in properties.items():
        if isinstance(spec, Mapping):
            fields.append(_schema_field(key, spec, required=key in schema_required))

    grouped: dict[str, list[ConfigurationField]] = {}
    for f in fields:
        grouped.setdefault(f.group or categorize_field(f.key), []).append(f)
    ordered_ids = [sid for sid in _SECTION_ORDER if sid in grouped] + sorted(
        sid for sid in grouped if sid not in _SECTION_ORDER
    )
    sections = tuple(
        ConfigurationSection(
            id=sid,
            title=SECTION_TITLES.get(sid, _humanize(sid.replace("-", " "))),
            icon=SECTION_ICONS.get(sid),
            collapsed=sid == "behavior",
            fields=tuple(grouped[sid]),
        )
        for sid in ordered_ids
    )

    required_keys = [key for key in schema.get("required") or () if isinstance(key, str)]
    field_types: dict[str, tuple[str, ...]] = {}
    for role in (*requirements.required_fields, *requirements.optional_fields):
        key = _role_key(role)
        if key is None:
            continue
        if role in requirements.required_fields and key not in required_keys:
            required_keys.append(key)
        field_types[key] = expected_data_types(role)

    generator = TEMPLATE_GENERATORS.get(plugin.chart_type)
    custom = dict(generator(plugin.library).validation.custom) if generator else {}

    return ConfigurationTemplate(
        chart_type=plugin.chart_type,
        library=plugin.library,
        sections=sections,
        validation=ValidationRules(required=tuple(required_keys), field_types=field_types, custom=custom),
        defaults=schema_defaults(schema),
    )


def build_template(
    chart_type: str,
    library: str,
    *,
    registry: ChartPluginRegistry | None = None,
) -> ConfigurationTemplate:
    """Return the configuration template for a chart type and library.

    Args:
        chart_type: Chart type, e.g. "bar".
        library: Library, e.g. "echarts".
        registry: Plugin registry consulted first.

    Returns:
        The plugin-derived template, a built-in generator's template, or the
        generic fallback, in that order of preference.
    """

    plugin = registry.find(chart_type, library) if registry is not None else None
    if plugin is not None:
        return convert_from_plugin_schema(plugin)
    generator = TEMPLATE_GENERATORS.get(chart_type)
    if generator is not None:
        return generator(library)
    return generic_template(chart_type, library)


def generate_default_configuration(template: ConfigurationTemplate) -> dict[str, Any]:
    """Return a starting config populated with the template's defaults."""

    config: dict[str, Any] = {
        "chart_type": template.chart_type,
        "library": template.library,
        "field_assignments": {},
    }
    config.update(copy.deepcopy(dict(template.defaults)))
    for f in template.fields:
        if f.default is not None:
            set_nested_value(config, f.key, copy.deepcopy(f.default))
    return config


def _column_types(data_columns: Iterable[object]) -> dict[str, str | None]:
    types: dict[str, str | None] = {}
    for column in data_columns:
        if isinstance(column, Mapping):
            name = column.get("name")
            column_type = column.get("type")
        else:
            name = getattr(column, "name", None)
            column_type = getattr(column, "type", None)
        if name:
            types[str(name)] = str(column_type) if column_type else None
    return types


def validate_configuration(
    config: Mapping[str, Any],
    template: ConfigurationTemplate,
    data_columns: Sequence[object] = (),
) -> TemplateValidationResult:
    """Validate a config against a template and, optionally, the dataset columns.

    Args:
        config: Config produced by the configuration form or the mapper.
        template: Template for the config's chart type.
        data_columns: Dataset columns as ColumnInfo objects or `{"name", "type"}`
            mappings. Type checks are skipped when empty.

    Returns:
        TemplateValidationResult. Type mismatches are warnings; missing
        required values, unknown columns, and custom check failures are errors.
    """

    issues: list[ValidationIssue] = []
    for key in template.validation.required:
        value = get_nested_value(config, key)
        if value is None or value == "" or value == []:
            issues.append(ValidationIssue(field=key, message=f"{_humanize(key)} is required"))

    columns = _column_types(data_columns)
    if columns:
        for key, expected in template.validation.field_types.items():
            value = get_nested_value(config, key)
            names = value if isinstance(value, list) else [value] if value else []
            for name in names:
                if name not in columns:
                    issues.append(ValidationIssue(field=key, message=f"Field '{name}' does not exist in the dataset"))
                    continue
                column_type = columns[name]
                if column_type and not validate_field_type(column_type, expected):
                    issues.append(
                        ValidationIssue(
                            field=key,
                            message=(
                                f"Field '{name}' has type '{column_type}'; "
                                f"{_humanize(key)} expects {' or '.join(expected)}"
                            ),
                            severity="warning",
                        )
                    )

    for check_name, check in template.validation.custom.items():
        message = check(config)
        if message:
            issues.append(ValidationIssue(field=check_name, message=message))

    is_valid = not any(issue.severity == "error" for issue in issues)
    return TemplateValidationResult(is_valid=is_valid, issues=tuple(issues))
