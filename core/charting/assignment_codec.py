"""Encoding/decoding helpers for field assignments and render requests."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, cast

from .mapping import MULTI_ROLE_CONFIG_KEYS, field_refs
from .schema import FieldAssignment, FieldAssignments, FieldRef, RenderRequest

ASSIGNMENT_VERSION = "field_assignments_v1"


def encode_field_assignments(assignments: FieldAssignments | None) -> dict[str, Any]:
    """Encode field assignments into a JSON-serializable dictionary.

    Args:
        assignments: Role to column assignment in any accepted spelling.

    Returns:
        `{role: {"name", "type"}}`; multi-column roles (and roles assigned a
        list) encode as lists. Roles with no named column are dropped.
    """

    payload: dict[str, Any] = {}
    for role, assignment in (assignments or {}).items():
        refs = field_refs(assignment)
        if not refs:
            continue
        many = role in MULTI_ROLE_CONFIG_KEYS or not isinstance(assignment, (str, FieldRef, Mapping))
        payload[str(role)] = [ref.as_json() for ref in refs] if many else refs[0].as_json()
    return payload


def decode_field_assignments(payload: object) -> dict[str, FieldAssignment]:
    """Decode field assignments from a stored or posted payload.

    Args:
        payload: Mapping previously produced by `encode_field_assignments`, or
            a client-side equivalent using bare column names.

    Returns:
        Role to FieldRef (or list of FieldRef). Malformed entries are skipped.
    """

    if not isinstance(payload, Mapping):
        return {}
    decoded: dict[str, FieldAssignment] = {}
    for role, raw in payload.items():
        refs = field_refs(raw)
        if not refs:
            continue
        if role in MULTI_ROLE_CONFIG_KEYS or not isinstance(raw, (str, Mapping)):
            decoded[str(role)] = refs
        else:
            decoded[str(role)] = refs[0]
    return decoded


def encode_render_request(request: RenderRequest) -> dict[str, Any]:
    """Encode a RenderRequest into the JSON body accepted by the render endpoint."""

    return {
        "plugin": request.plugin_name,
        "data": request.data,
        "field_assignments": encode_field_assignments(request.assignments),
        "custom_config": dict(request.custom_config or {}),
    }


def decode_render_request(payload: object) -> RenderRequest:
    """Decode a RenderRequest from a posted JSON body.

    Args:
        payload: Parsed JSON body.

    Returns:
        RenderRequest instance.

    Raises:
        ValueError: When the body is not an object, names no plugin, carries
            no data, or has a non-object `custom_config`.
    """

    if not isinstance(payload, Mapping):
        raise ValueError("Request body must be a JSON object.")
    body = cast(Mapping[str, Any], payload)

    plugin_name = body.get("plugin") or body.get("plugin_name")
    if not isinstance(plugin_name, str) or not plugin_name.strip():
        raise ValueError("plugin is required.")
    if body.get("data") is None:
        raise ValueError("data is required.")

    custom_config = body.get("custom_config")
    if custom_config is not None and not isinstance(custom_config, Mapping):
        raise ValueError("custom_config must be an object.")

    return RenderRequest(
        plugin_name=plugin_name.strip(),
        data=body["data"],
        assignments=decode_field_assignments(body.get("field_assignments")),
        custom_config=dict(custom_config) if custom_config else None,
    )
