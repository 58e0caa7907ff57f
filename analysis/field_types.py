"""Field type classification, inference, and coercion for chart datasets.

Datasets arrive with column types named by whatever database produced them
(`int4`, `varchar`, `timestamptz`, `DECIMAL`, ...) or with no declared type at
all. This module maps those names onto the four chart-facing types and infers
a type from sample values when no declaration exists.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Literal

FieldType = Literal["string", "number", "date", "boolean"]
DataTypeCategory = Literal["numeric", "date", "boolean", "categorical", "unknown"]

SUPPORTED_FIELD_TYPES: tuple[FieldType, ...] = ("string", "number", "date", "boolean")

_NUMERIC_TYPES = frozenset(
    {
        # PostgreSQL
        "integer",
        "bigint",
        "smallint",
        "decimal",
        "numeric",
        "real",
        "double precision",
        "serial",
        "bigserial",
        "smallserial",
        "money",
        "int",
        "int2",
        "int4",
        "int8",
        "float4",
        "float8",
        # MySQL
        "tinyint",
        "mediumint",
        "float",
        "double",
        "bit",
        # Generic
        "number",
        "num",
        "float64",
        "int64",
    }
)
_NUMERIC_KEYWORDS = ("int", "float", "double", "decimal", "numeric", "number", "money", "serial")

_CATEGORICAL_TYPES = frozenset(
    {
        "text",
        "varchar",
        "character varying",
        "char",
        "character",
        "string",
        "enum",
        "uuid",
        "json",
        "jsonb",
        "tinytext",
        "mediumtext",
        "longtext",
        "set",
        "object",
        "category",
    }
)
_CATEGORICAL_KEYWORDS = ("char", "text", "string", "enum", "uuid")

_DATE_TYPES = frozenset(
    {
        "date",
        "time",
        "timestamp",
        "timestamptz",
        "timestamp with time zone",
        "timestamp without time zone",
        "datetime",
        "datetime64",
        "year",
        "interval",
    }
)
_DATE_KEYWORDS = ("date", "time", "timestamp")

_BOOLEAN_TYPES = frozenset({"boolean", "bool", "bit(1)"})

_TRUE_STRINGS = frozenset({"true", "yes", "y", "t", "1", "on"})
_FALSE_STRINGS = frozenset({"false", "no", "n", "f", "0", "off"})
_BOOLEAN_SAMPLE_STRINGS = frozenset({"true", "false"})

# Mapping roles and factory-config keys share these expectations.
_ROLE_EXPECTATIONS: dict[str, tuple[str, ...]] = {
    "x-axis": ("categorical", "date", "string"),
    "category": ("categorical", "date", "string"),
    "series": ("categorical", "string"),
    "path": ("categorical", "string"),
    "source": ("categorical", "string"),
    "target": ("categorical", "string"),
    "y-axis": ("numeric",),
    "value": ("numeric",),
    "measure": ("numeric",),
    "size": ("numeric",),
    "z-axis": ("numeric",),
    "open": ("numeric",),
    "close": ("numeric",),
    "low": ("numeric",),
    "high": ("numeric",),
    "color": ("categorical", "numeric"),
    "date": ("date",),
    "time": ("date",),
}


def _normalized_name(data_type: object) -> str:
    if data_type is None:
        return ""
    return str(data_type).strip().lower()


def is_numeric_type(data_type: object) -> bool:
    """Return True when a declared column type is numeric."""

    name = _normalized_name(data_type)
    if not name or is_boolean_type(name):
        return False
    if name in _NUMERIC_TYPES:
        return True
    if is_date_type(name):
        return False
    return any(keyword in name for keyword in _NUMERIC_KEYWORDS)


def is_categorical_type(data_type: object) -> bool:
    """Return True when a declared column type holds text-like categories."""

    name = _normalized_name(data_type)
    if not name:
        return False
    if name in _CATEGORICAL_TYPES:
        return True
    return any(keyword in name for keyword in _CATEGORICAL_KEYWORDS)


def is_date_type(data_type: object) -> bool:
    """Return True when a declared column type is a date, time, or timestamp."""

    name = _normalized_name(data_type)
    if not name:
        return False
    if name in _DATE_TYPES:
        return True
    return any(keyword in name for keyword in _DATE_KEYWORDS)


def is_boolean_type(data_type: object) -> bool:
    """Return True when a declared column type is boolean."""

    return _normalized_name(data_type) in _BOOLEAN_TYPES


def data_type_category(data_type: object) -> DataTypeCategory:
    """Classify a declared column type.

    Categories are checked in a fixed order (numeric, date, boolean,
    categorical) so that names matching several keyword lists resolve
    deterministically.

    Args:
        data_type: Declared type name, e.g. "int4" or "character varying".

    Returns:
        The category name, or "unknown" when nothing matches.
    """

    if is_numeric_type(data_type):
        return "numeric"
    if is_date_type(data_type):
        return "date"
    if is_boolean_type(data_type):
        return "boolean"
    if is_categorical_type(data_type):
        return "categorical"
    return "unknown"


def normalize_data_type(data_type: object) -> FieldType:
    """Map a declared column type onto one of the supported field types."""

    category = data_type_category(data_type)
    if category == "numeric":
        return "number"
    if category == "date":
        return "date"
    if category == "boolean":
        return "boolean"
    return "string"


def validate_field_type(data_type: object, expected_types: Iterable[str]) -> bool:
    """Return True when `data_type` satisfies any of `expected_types`.

    Expected names may be categories ("numeric", "categorical", ...) or plain
    field types ("number", "string", ...). Unknown expectation names accept
    any type.
    """

    category = data_type_category(data_type)
    for expected in expected_types:
        if expected in ("numeric", "number"):
            if category == "numeric":
                return True
        elif expected == "date":
            if category == "date":
                return True
        elif expected == "boolean":
            if category == "boolean":
                return True
        elif expected in ("categorical", "string"):
            if category in ("categorical", "unknown"):
                return True
        else:
            return True
    return False


def expected_data_types(role: str) -> tuple[str, ...]:
    """Return the type categories a mapping role expects.

    Args:
        role: Mapping role ("x-axis", "value", ...) or a factory-config key
            such as "y_field".

    Returns:
        Accepted type categories. Unknown roles accept anything.
    """

    key = role.strip().lower()
    if key.endswith("_field"):
        key = key[: -len("_field")]
        key = {"x": "x-axis", "y": "y-axis", "z": "z-axis", "label": "category", "name": "category"}.get(key, key)
    return _ROLE_EXPECTATIONS.get(key, ("categorical", "numeric", "date", "boolean"))


def _is_number(value: object) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return math.isfinite(float(value))
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return False
        try:
            return math.isfinite(float(text))
        except ValueError:
            return False
    return False


def parse_datetime(value: object) -> datetime | None:
    """Best-effort ISO-8601 parsing for date and datetime sample values."""

    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str):
        return None
    text = value.strip()
    if len(text) < 8 or not text[:4].isdigit():
        return None
    if text.endswith("Z"):
        text = f"{text[:-1]}+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def infer_field_type(sample_values: Iterable[object]) -> FieldType:
    """Infer a field type from sample values.

    Args:
        sample_values: Values observed in the column. `None` and empty strings
            are ignored.

    Returns:
        "boolean", "number", "date", or "string", checked in that order.
    """

    values = [v for v in sample_values if v is not None and v != ""]
    if not values:
        return "string"

    distinct = {str(v).strip().lower() for v in values}
    if all(isinstance(v, bool) for v in values) or (len(distinct) <= 2 and distinct <= _BOOLEAN_SAMPLE_STRINGS):
        return "boolean"
    if all(_is_number(v) for v in values):
        return "number"
    if all(parse_datetime(v) is not None for v in values):
        return "date"
    return "string"


def coerce_value(value: object, field_type: str) -> Any:
    """Convert a raw value into the Python type for `field_type`.

    Returns:
        The converted value, or None when `value` is missing or cannot be
        converted. Integral numbers stay `int`.
    """

    if value is None or value == "":
        return None
    if field_type == "number":
        if isinstance(value, bool) or not _is_number(value):
            return None
        if isinstance(value, int):
            return value
        number = float(value)  # type: ignore[arg-type]
        if isinstance(value, str) and number.is_integer() and "." not in value and "e" not in value.lower():
            return int(number)
        return number
    if field_type == "date":
        return parse_datetime(value)
    if field_type == "boolean":
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
        return None
    return str(value)


@dataclass(frozen=True, slots=True)
class FieldStatistics:
    """Summary statistics for one column of sample values."""

    count: int
    unique_count: int
    null_count: int
    min: float | None = None
    max: float | None = None
    avg: float | None = None
    sum: float | None = None


def field_statistics(values: Iterable[object], field_type: str) -> FieldStatistics:
    """Compute count, distinct and null counts, plus numeric aggregates for numbers."""

    materialized = list(values)
    present = [v for v in materialized if v is not None and v != ""]
    unique_count = len({repr(v) for v in present})
    null_count = len(materialized) - len(present)

    if field_type != "number":
        return FieldStatistics(count=len(materialized), unique_count=unique_count, null_count=null_count)

    numbers = [float(v) for v in present if _is_number(v)]  # type: ignore[arg-type]
    if not numbers:
        return FieldStatistics(count=len(materialized), unique_count=unique_count, null_count=null_count)
    total = sum(numbers)
    return FieldStatistics(
        count=len(materialized),
        unique_count=unique_count,
        null_count=null_count,
        min=min(numbers),
        max=max(numbers),
        avg=total / len(numbers),
        sum=total,
    )


def validate_field_info(field: Mapping[str, Any]) -> list[str]:
    """Validate a field description dictionary.

    Args:
        field: Mapping with "name", "type", and optional "count" and
            "unique_count" entries.

    Returns:
        A list of error strings; empty when the field is valid.
    """

    errors: list[str] = []
    name = field.get("name")
    if not isinstance(name, str) or not name.strip():
        errors.append("Field name is required.")
    field_type = field.get("type")
    if field_type not in SUPPORTED_FIELD_TYPES:
        errors.append(f"Field type must be one of {', '.join(SUPPORTED_FIELD_TYPES)}; got {field_type!r}.")
    for key in ("count", "unique_count"):
        value = field.get(key)
        if value is not None and (isinstance(value, bool) or not isinstance(value, int) or value < 0):
            errors.append(f"Field {key} must be a non-negative integer.")
    return errors
