"""Normalize heterogeneous chart data shapes into canonical rows.

Chart data reaches the charting layer in three shapes:

- a plain list of row mappings: `[{"region": "EU", "sales": 10}, ...]`
- wrapped rows: `{"rows": [...], "columns": [...]}`, where rows may be
  mappings or positional sequences aligned with `columns`
- the query API envelope: `{"data": [...], "columns": [{"name", "type"}],
  "execution_time": ..., "metadata": ...}`

Everything downstream consumes `NormalizedData`, so shape detection lives in
exactly one place.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from analysis.field_types import FieldType, infer_field_type, normalize_data_type

logger = logging.getLogger(__name__)


class ChartDataError(ValueError):
    """Raised when chart data is missing or empty where rows are required."""


@dataclass(frozen=True, slots=True)
class ColumnInfo:
    """Describe one column of normalized chart data.

    Args:
        name: Column key used in row mappings.
        type: Chart-facing field type.
        display_name: Optional human label supplied by the data source.
        nullable: Whether any observed row has a missing value.
    """

    name: str
    type: FieldType
    display_name: str | None = None
    nullable: bool = True

    def as_json(self) -> dict[str, Any]:
        """Return a JSON-serializable representation."""

        payload: dict[str, Any] = {"name": self.name, "type": self.type, "nullable": self.nullable}
        if self.display_name:
            payload["display_name"] = self.display_name
        return payload


@dataclass(frozen=True, slots=True)
class NormalizedData:
    """Canonical chart data: row dictionaries plus column descriptions."""

    rows: tuple[dict[str, Any], ...]
    columns: tuple[ColumnInfo, ...]

    @property
    def column_names(self) -> tuple[str, ...]:
        """Column names in declaration order."""

        return tuple(column.name for column in self.columns)

    def column(self, name: str) -> ColumnInfo | None:
        """Return the column named `name`, if present."""

        for column in self.columns:
            if column.name == name:
                return column
        return None

    def __len__(self) -> int:
        return len(self.rows)


def is_wrapped_rows(data: object) -> bool:
    """Return True when `data` is a mapping holding a `rows` list."""

    return isinstance(data, Mapping) and isinstance(data.get("rows"), list)


def _is_envelope(data: object) -> bool:
    return isinstance(data, Mapping) and isinstance(data.get("data"), list)


def _declared_columns(data: object) -> list[dict[str, Any]]:
    """Return declared column descriptions as dictionaries with at least a name."""

    if not isinstance(data, Mapping):
        return []
    raw = data.get("columns")
    if not isinstance(raw, list):
        return []

    seen: set[str] = set()
    declared: list[dict[str, Any]] = []
    for entry in raw:
        if isinstance(entry, str):
            spec: dict[str, Any] = {"name": entry}
        elif isinstance(entry, Mapping) and entry.get("name"):
            spec = dict(entry)
            spec["name"] = str(entry["name"])
        else:
            continue
        if spec["name"] in seen:
            continue
        seen.add(spec["name"])
        declared.append(spec)
    return declared


def _raw_rows(data: object) -> list[object]:
    if data is None:
        return []
    if isinstance(data, list):
        return data
    if is_wrapped_rows(data):
        return data["rows"]  # type: ignore[index]
    if _is_envelope(data):
        return data["data"]  # type: ignore[index]
    return []


def _is_usable_row(raw: object, names: list[str]) -> bool:
    if isinstance(raw, Mapping):
        return True
    return bool(names) and isinstance(raw, Sequence) and not isinstance(raw, (str, bytes))


def get_data_array(data: object) -> list[dict[str, Any]]:
    """Extract row dictionaries from any supported data shape.

    Args:
        data: Plain row list, wrapped rows, or an API envelope.

    Returns:
        A new list of row dictionaries. Unknown shapes yield an empty list.
    """

    names = [column["name"] for column in _declared_columns(data)]
    rows: list[dict[str, Any]] = []
    dropped = 0
    for raw in _raw_rows(data):
        if not _is_usable_row(raw, names):
            dropped += 1
        elif isinstance(raw, Mapping):
            rows.append(dict(raw))
        else:
            values = list(raw)
            rows.append({name: values[idx] if idx < len(values) else None for idx, name in enumerate(names)})
    if dropped:
        logger.warning("Dropped %s chart data rows that were not mappings", dropped)
    return rows


def has_data_content(data: object) -> bool:
    """Return True when `data` holds at least one usable row."""

    return get_data_length(data) > 0


def is_chart_data_empty(data: object) -> bool:
    """Return True when `data` holds no rows."""

    return not has_data_content(data)


def get_data_length(data: object) -> int:
    """Return the number of rows `get_data_array` would keep."""

    names = [column["name"] for column in _declared_columns(data)]
    return sum(1 for raw in _raw_rows(data) if _is_usable_row(raw, names))


def get_data_columns(data: object) -> list[str]:
    """Return column names for `data`.

    Declared columns win for wrapped and envelope shapes. Otherwise the keys
    of all rows are collected in first-seen order.
    """

    declared = _declared_columns(data)
    if declared:
        return [column["name"] for column in declared]

    names: list[str] = []
    seen: set[str] = set()
    for row in get_data_array(data):
        for key in row:
            if key not in seen:
                seen.add(key)
                names.append(str(key))
    return names


def validate_chart_data(data: object, component_name: str = "Chart") -> None:
    """Raise `ChartDataError` unless `data` carries at least one row.

    Args:
        data: Any supported data shape.
        component_name: Prefix for error messages.

    Raises:
        ChartDataError: When `data` is missing or holds no rows.
    """

    if data is None:
        raise ChartDataError(f"{component_name}: No data provided")
    if not has_data_content(data):
        raise ChartDataError(f"{component_name}: Data array is empty")


def normalize_chart_data(data: object, *, sample_size: int = 100) -> NormalizedData:
    """Normalize any supported data shape into `NormalizedData`.

    Declared column types are mapped onto the supported field types. Columns
    without a declared type have their type inferred from up to `sample_size`
    non-empty values.

    Args:
        data: Plain row list, wrapped rows, or an API envelope.
        sample_size: Maximum number of values inspected per column.

    Returns:
        NormalizedData with copied rows; the input is never mutated.
    """

    rows = get_data_array(data)
    declared = {column["name"]: column for column in _declared_columns(data)}

    columns: list[ColumnInfo] = []
    for name in get_data_columns(data):
        values = [row.get(name) for row in rows]
        nullable = any(value is None or value == "" for value in values) or any(name not in row for row in rows)
        spec = declared.get(name, {})
        declared_type = spec.get("type") or spec.get("data_type")
        if declared_type:
            field_type = normalize_data_type(declared_type)
        else:
            samples = [value for value in values if value is not None and value != ""][:sample_size]
            field_type = infer_field_type(samples)
        display_name = spec.get("display_name") or spec.get("displayName")
        columns.append(
            ColumnInfo(
                name=name,
                type=field_type,
                display_name=str(display_name) if display_name else None,
                nullable=nullable,
            )
        )

    return NormalizedData(rows=tuple(rows), columns=tuple(columns))


def wrap_rows(normalized: NormalizedData) -> dict[str, Any]:
    """Convert normalized data back to the wrapped `{"rows", "columns"}` shape."""

    return {
        "rows": [dict(row) for row in normalized.rows],
        "columns": [column.as_json() for column in normalized.columns],
    }
