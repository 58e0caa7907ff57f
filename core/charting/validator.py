"""Validation for saved chart definitions.

A chart definition is the persisted description of a chart on a dashboard:
name, chart type, dataset, query config, and visualization config. Unlike
plugin configs, these are user input, so validation collects every issue
(with a severity) instead of failing fast.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from analysis.rows import get_data_array, get_data_columns, normalize_chart_data

from .schema import ValidationIssue
from .templates import get_nested_value

logger = logging.getLogger(__name__)

SUPPORTED_CHART_TYPES: tuple[str, ...] = (
    "bar",
    "column",
    "line",
    "area",
    "pie",
    "doughnut",
    "scatter",
    "bubble",
    "heatmap",
    "gauge",
    "table",
    "metric",
    "funnel",
    "waterfall",
    "candlestick",
)

MIN_COLUMNS_BY_TYPE: dict[str, int] = {
    "pie": 2,
    "doughnut": 2,
    "scatter": 2,
    "bubble": 2,
    "heatmap": 3,
}

MAX_NAME_LENGTH = 100
LONG_NAME_WARNING_LENGTH = 50

_TIME_COLUMN_HINTS = ("date", "time", "timestamp", "datetime")

_TYPE_CHECKS: dict[str, Callable[[Any], bool]] = {
    "string": lambda value: isinstance(value, str),
    "number": lambda value: isinstance(value, (int, float)) and not isinstance(value, bool),
    "boolean": lambda value: isinstance(value, bool),
    "object": lambda value: isinstance(value, Mapping),
    "array": lambda value: isinstance(value, (list, tuple)),
}


@dataclass(frozen=True, slots=True)
class ChartValidationResult:
    """Result of validating a chart definition."""

    is_valid: bool
    errors: tuple[ValidationIssue, ...] = ()
    warnings: tuple[ValidationIssue, ...] = ()

    def as_json(self) -> dict[str, Any]:
        """Return a JSON-serializable representation."""

        return {
            "is_valid": self.is_valid,
            "errors": [issue.as_json() for issue in self.errors],
            "warnings": [issue.as_json() for issue in self.warnings],
        }


@dataclass(frozen=True, slots=True)
class ValidationRule:
    """A declarative check applied to one (possibly dotted) chart field.

    Args:
        field: Dotted path into the chart definition.
        required: Whether the value must be present and non-empty.
        type: Expected JSON type name ("string", "number", "boolean",
            "object", "array").
        min_length: Minimum length for strings and arrays.
        max_length: Maximum length for strings and arrays.
        min_value: Minimum for numbers.
        max_value: Maximum for numbers.
        pattern: Regular expression strings must match.
        allowed: Permitted values.
        custom: Callable receiving `(value, chart)` and returning an error
            message, or None when the value is acceptable.
        message: Overrides the generated message for any failure.
    """

    field: str
    required: bool = False
    type: str | None = None
    min_length: int | None = None
    max_length: int | None = None
    min_value: float | None = None
    max_value: float | None = None
    pattern: str | None = None
    allowed: tuple[Any, ...] | None = None
    custom: Callable[[Any, Mapping[str, Any]], str | None] | None = None
    message: str | None = None

    def check(self, chart: Mapping[str, Any]) -> str | None:
        """Return an error message when `chart` violates this rule."""

        value = get_nested_value(chart, self.field)
        if value is None or value == "" or value == [] or value == {}:
            if self.required:
                return self.message or f"{self.field} is required"
            return None

        if self.type and not _TYPE_CHECKS.get(self.type, lambda _: True)(value):
            return self.message or f"{self.field} must be of type {self.type}"

        if isinstance(value, (str, list, tuple)):
            if self.min_length is not None and len(value) < self.min_length:
                return self.message or f"{self.field} must be at least {self.min_length} characters"
            if self.max_length is not None and len(value) > self.max_length:
                return self.message or f"{self.field} must be no more than {self.max_length} characters"

        if isinstance(value, (int, float)) and not isinstance(value, bool):
            if self.min_value is not None and value < self.min_value:
                return self.message or f"{self.field} must be at least {self.min_value}"
            if self.max_value is not None and value > self.max_value:
                return self.message or f"{self.field} must be no more than {self.max_value}"

        if self.pattern and isinstance(value, str) and not re.search(self.pattern, value):
            return self.message or f"{self.field} format is invalid"

        if self.allowed is not None and value not in self.allowed:
            return self.message or f"{self.field} must be one of: {', '.join(str(v) for v in self.allowed)}"

        if self.custom is not None:
            return self.custom(value, chart)
        return None


DEFAULT_RULES: tuple[ValidationRule, ...] = (
    ValidationRule(field="name", required=True, type="string", max_length=MAX_NAME_LENGTH),
    ValidationRule(field="type", required=True, type="string", allowed=SUPPORTED_CHART_TYPES),
)


def _has_items(value: object) -> bool:
    return isinstance(value, (list, tuple)) and len(value) > 0


class ChartValidator:
    """Validate chart definitions against a mutable set of rules.

    Args:
        rules: Initial rules; defaults to `DEFAULT_RULES`. A later rule for
            the same field replaces an earlier one.
    """

    def __init__(self, rules: Iterable[ValidationRule] | None = None) -> None:
        self._rules: dict[str, ValidationRule] = {}
        for rule in DEFAULT_RULES if rules is None else rules:
            self._rules[rule.field] = rule

    @property
    def rules(self) -> tuple[ValidationRule, ...]:
        """Registered rules in insertion order."""

        return tuple(self._rules.values())

    def add_rule(self, rule: ValidationRule) -> None:
        """Register `rule`, replacing any rule for the same field."""

        self._rules[rule.field] = rule

    def remove_rule(self, field: str) -> bool:
        """Remove the rule for `field`; returns whether one existed."""

        return self._rules.pop(field, None) is not None

    def validate_chart(
        self,
        chart: Mapping[str, Any],
        data: object = None,
        *,
        strict: bool = False,
        skip_data_validation: bool = False,
        custom_rules: Iterable[ValidationRule] = (),
    ) -> ChartValidationResult:
        """Validate a chart definition and, optionally, its data.

        Args:
            chart: Chart definition mapping.
            data: Optional chart data in any supported shape.
            strict: Promote warnings to errors.
            skip_data_validation: Skip data compatibility checks.
            custom_rules: Extra rules applied after the registered ones.

        Returns:
            ChartValidationResult with errors and warnings.
        """

        try:
            issues = self._collect(chart, data, skip_data_validation=skip_data_validation, custom_rules=custom_rules)
        except Exception:
            logger.exception("Chart validation failed unexpectedly")
            issue = ValidationIssue(field="general", message="Validation failed due to an internal error")
            return ChartValidationResult(is_valid=False, errors=(issue,))

        errors = [issue for issue in issues if issue.severity == "error"]
        warnings = [issue for issue in issues if issue.severity == "warning"]
        if strict:
            errors.extend(ValidationIssue(field=w.field, message=w.message, severity="error") for w in warnings)
            warnings = []
        return ChartValidationResult(is_valid=not errors, errors=tuple(errors), warnings=tuple(warnings))

    def _collect(
        self,
        chart: Mapping[str, Any],
        data: object,
        *,
        skip_data_validation: bool,
        custom_rules: Iterable[ValidationRule],
    ) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []

        for rule in (*self._rules.values(), *custom_rules):
            message = rule.check(chart)
            if message:
                issues.append(ValidationIssue(field=rule.field, message=message))

        chart_type = chart.get("type")
        issues.extend(self._type_issues(chart, chart_type))
        issues.extend(self._visualization_issues(chart, chart_type))

        if data is not None and not skip_data_validation and isinstance(chart_type, str):
            issues.extend(self.validate_data_compatibility(chart_type, data))

        name = chart.get("name")
        if isinstance(name, str) and len(name) > LONG_NAME_WARNING_LENGTH:
            issues.append(
                ValidationIssue(
                    field="name",
                    message="Consider using a shorter chart name for better readability",
                    severity="warning",
                )
            )
        if not chart.get("description"):
            issues.append(
                ValidationIssue(
                    field="description",
                    message="Adding a description helps others understand the chart",
                    severity="warning",
                )
            )
        return issues

    def _type_issues(self, chart: Mapping[str, Any], chart_type: object) -> list[ValidationIssue]:
        query_config = chart.get("query_config")
        query_config = query_config if isinstance(query_config, Mapping) else {}
        if chart_type == "metric" and not _has_items(query_config.get("measures")):
            return [ValidationIssue(field="query_config.measures", message="Metric charts require at least one measure")]
        if chart_type == "table" and not (
            _has_items(query_config.get("dimensions")) or _has_items(query_config.get("measures"))
        ):
            return [
                ValidationIssue(
                    field="query_config",
                    message="Table charts require at least one dimension or measure",
                )
            ]
        return []

    def _visualization_issues(self, chart: Mapping[str, Any], chart_type: object) -> list[ValidationIssue]:
        if chart_type not in ("bar", "column"):
            return []
        x_axis = get_nested_value(chart, "visualization_config.x_axis")
        if isinstance(x_axis, Mapping) and not x_axis.get("field"):
            return [
                ValidationIssue(
                    field="visualization_config.x_axis.field",
                    message=f"X-axis field is required for {chart_type} charts",
                )
            ]
        return []

    def quick_validate(self, chart: Mapping[str, Any]) -> ChartValidationResult:
        """Check only the fields a chart needs before it can be saved."""

        errors = [
            ValidationIssue(field=key, message=f"{label} is required")
            for key, label in (("name", "Chart name"), ("type", "Chart type"), ("dataset_id", "Dataset"))
            if not chart.get(key)
        ]
        return ChartValidationResult(is_valid=not errors, errors=tuple(errors))

    def validate_data_compatibility(self, chart_type: str, data: object) -> list[ValidationIssue]:
        """Check that `data` can be drawn as `chart_type`.

        Returns:
            Issues found; a missing time column for line and area charts is a
            warning rather than an error.
        """

        rows = get_data_array(data)
        if not rows:
            return [ValidationIssue(field="data", message="Chart data is empty")]

        issues: list[ValidationIssue] = []
        columns = get_data_columns(data)
        minimum = MIN_COLUMNS_BY_TYPE.get(chart_type)
        if minimum is not None and len(columns) < minimum:
            issues.append(
                ValidationIssue(
                    field="data",
                    message=f"{chart_type.capitalize()} charts require at least {minimum} columns",
                )
            )

        if chart_type in ("line", "area"):
            normalized = normalize_chart_data(data)
            has_time_column = any(
                column.type == "date" or any(hint in column.name.lower() for hint in _TIME_COLUMN_HINTS)
                for column in normalized.columns
            )
            if not has_time_column:
                issues.append(
                    ValidationIssue(
                        field="data",
                        message=f"{chart_type.capitalize()} charts work best with a date or time column",
                        severity="warning",
                    )
                )
        return issues
