"""JSON views for the chart builder.

Every endpoint answers with the envelope `{"success", "data", "message"}`.
Unknown chart types give 404, malformed bodies 400, and charts that fail
validation or rendering 422.
"""

from __future__ import annotations

import json
from hashlib import sha256
from typing import Any

from django.conf import settings
from django.http import HttpRequest, JsonResponse

from core.charting.assignment_codec import decode_render_request, encode_field_assignments
from core.charting.cache import ChartCache
from core.charting.configs import DEFAULT_REGISTRY
from core.charting.plugin_config import available_options
from core.charting.previews import build_preview
from core.charting.render import RenderSettings, render_chart
from core.charting.schema import ChartPluginConfig
from core.charting.templates import ConfigurationTemplate, build_template, generate_default_configuration
from core.charting.validator import ChartValidator


def _envelope(data: Any = None, *, success: bool = True, message: str = "", status: int = 200) -> JsonResponse:
    return JsonResponse({"success": success, "data": data, "message": message}, status=status)


def _method_not_allowed(*allowed: str) -> JsonResponse:
    response = _envelope(success=False, message=f"Method not allowed. Use {' or '.join(allowed)}.", status=405)
    response["Allow"] = ", ".join(allowed)
    return response


def _json_body(request: HttpRequest) -> Any:
    """Return the parsed JSON request body.

    Raises:
        ValueError: When the body is not valid JSON.
    """

    try:
        return json.loads(request.body or b"null")
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValueError(f"Malformed JSON body: {exc}") from exc


def _plugin_or_404(name: str) -> ChartPluginConfig | JsonResponse:
    plugin = DEFAULT_REGISTRY.get(name)
    if plugin is None:
        return _envelope(success=False, message=f"Unknown chart type: {name}", status=404)
    return plugin


def _render_settings() -> RenderSettings:
    return RenderSettings.from_mapping(getattr(settings, "CHART_RENDER", None))


def chart_types(request: HttpRequest) -> JsonResponse:
    """List chart-type summaries, optionally filtered by `library` and `category`."""

    if request.method != "GET":
        return _method_not_allowed("GET")

    cache = ChartCache.for_request(request)
    summaries = cache.get_chart_types()
    if summaries is None:
        summaries = [plugin.summary() for plugin in DEFAULT_REGISTRY.list()]
        cache.set_chart_types(summaries)
        cache.set_factory_initialized()

    library = (request.GET.get("library") or "").strip()
    category = (request.GET.get("category") or "").strip()
    filtered = [
        summary
        for summary in summaries
        if (not library or summary["library"] == library) and (not category or summary["category"] == category)
    ]
    return _envelope(
        {
            "chart_types": filtered,
            "libraries": list(DEFAULT_REGISTRY.libraries()),
            "options": available_options(),
            "library_preferences": cache.get_library_preferences(),
            "recent_charts": cache.get_recent_charts(),
        },
        message=f"{len(filtered)} chart types",
    )


def chart_type_detail(request: HttpRequest, name: str) -> JsonResponse:
    """Return one chart type's summary."""

    if request.method != "GET":
        return _method_not_allowed("GET")
    plugin = _plugin_or_404(name)
    if isinstance(plugin, JsonResponse):
        return plugin
    return _envelope(plugin.summary())


def chart_type_template(request: HttpRequest, name: str) -> JsonResponse:
    """Return the configuration template and its default configuration."""

    if request.method != "GET":
        return _method_not_allowed("GET")
    plugin = _plugin_or_404(name)
    if isinstance(plugin, JsonResponse):
        return plugin

    cache = ChartCache.for_request(request)
    template = cache.get_config_schema(plugin.chart_type, plugin.library)
    if not isinstance(template, ConfigurationTemplate):
        template = build_template(plugin.chart_type, plugin.library, registry=DEFAULT_REGISTRY)
        cache.set_config_schema(plugin.chart_type, plugin.library, template)

    saved = cache.get_field_assignments(plugin.chart_type, plugin.library)
    return _envelope(
        {
            "template": template.as_json(),
            "defaults": generate_default_configuration(template),
            "field_assignments": encode_field_assignments(saved) if saved else None,
        }
    )


def chart_type_preview(request: HttpRequest, name: str) -> JsonResponse:
    """Return a chart option drawn from built-in sample data."""

    if request.method != "GET":
        return _method_not_allowed("GET")
    plugin = _plugin_or_404(name)
    if isinstance(plugin, JsonResponse):
        return plugin

    cache = ChartCache.for_request(request)
    preview = cache.get_preview(plugin.chart_type, plugin.library)
    if preview is None:
        preview = build_preview(plugin, settings=_render_settings()).as_json()
        cache.set_preview(plugin.chart_type, plugin.library, preview)
    return _envelope(preview)


def render_chart_view(request: HttpRequest) -> JsonResponse:
    """Render user data with a chart plugin.

    On success the field assignments are saved for the chart type and the
    plugin is recorded as a recent chart.
    """

    if request.method != "POST":
        return _method_not_allowed("POST")
    try:
        render_request = decode_render_request(_json_body(request))
    except ValueError as exc:
        return _envelope(success=False, message=str(exc), status=400)

    plugin = _plugin_or_404(render_request.plugin_name)
    if isinstance(plugin, JsonResponse):
        return plugin

    rendered = render_chart(
        plugin=plugin,
        data=render_request.data,
        assignments=render_request.assignments,
        custom_config=render_request.custom_config,
        settings=_render_settings(),
    )
    if rendered.error:
        return _envelope(rendered.as_json(), success=False, message=rendered.error, status=422)

    cache = ChartCache.for_request(request)
    cache.set_field_assignments(plugin.chart_type, plugin.library, render_request.assignments)
    cache.add_recent_chart(plugin.name)
    return _envelope(rendered.as_json(), message="Chart rendered")


def validate_chart_view(request: HttpRequest) -> JsonResponse:
    """Validate a chart definition (and optionally its data)."""

    if request.method != "POST":
        return _method_not_allowed("POST")
    try:
        body = _json_body(request)
    except ValueError as exc:
        return _envelope(success=False, message=str(exc), status=400)
    if not isinstance(body, dict) or not isinstance(body.get("chart"), dict):
        return _envelope(success=False, message="chart is required and must be an object.", status=400)

    data = body.get("data")
    strict = bool(body.get("strict", False))
    canonical = json.dumps({"chart": body["chart"], "data": data, "strict": strict}, sort_keys=True, default=str)
    key = sha256(canonical.encode("utf-8")).hexdigest()

    cache = ChartCache.for_request(request)
    result = cache.get_validation_result(key)
    if result is None:
        result = ChartValidator().validate_chart(body["chart"], data, strict=strict).as_json()
        cache.set_validation_result(key, result)
    message = "Chart is valid" if result["is_valid"] else "Chart has validation errors"
    return _envelope(result, message=message)


def field_assignments_view(request: HttpRequest, name: str) -> JsonResponse:
    """Return the auto-saved field assignments for a chart type."""

    if request.method != "GET":
        return _method_not_allowed("GET")
    plugin = _plugin_or_404(name)
    if isinstance(plugin, JsonResponse):
        return plugin
    saved = ChartCache.for_request(request).get_field_assignments(plugin.chart_type, plugin.library)
    return _envelope(encode_field_assignments(saved) if saved else None)


def library_preferences_view(request: HttpRequest) -> JsonResponse:
    """Read (GET) or replace (POST) the primary and secondary chart libraries."""

    cache = ChartCache.for_request(request)
    if request.method == "GET":
        return _envelope(cache.get_library_preferences())
    if request.method != "POST":
        return _method_not_allowed("GET", "POST")

    try:
        body = _json_body(request)
    except ValueError as exc:
        return _envelope(success=False, message=str(exc), status=400)
    if not isinstance(body, dict):
        return _envelope(success=False, message="Request body must be a JSON object.", status=400)
    try:
        stored = cache.set_library_preferences(body)
    except ValueError as exc:
        return _envelope(success=False, message=str(exc), status=400)
    return _envelope(stored, message="Library preferences saved")


def cache_stats_view(request: HttpRequest) -> JsonResponse:
    """Return entry counts for each cache tier."""

    if request.method != "GET":
        return _method_not_allowed("GET")
    return _envelope(ChartCache.for_request(request).stats().as_json())


def cache_clear_view(request: HttpRequest) -> JsonResponse:
    """Clear the chart caches owned by the current visitor.

    Process-wide previews, templates, and validation results are shared with
    other visitors and expire on their own.
    """

    if request.method != "POST":
        return _method_not_allowed("POST")
    ChartCache.for_request(request).clear_all()
    return _envelope(message="Chart caches cleared")
