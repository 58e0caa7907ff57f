"""Django integration tests for the chart builder JSON API."""

from __future__ import annotations

import pytest
from django.test import override_settings
from django.urls import reverse

pytestmark = pytest.mark.integration

RENDER_BODY = {
    "plugin": "echarts-bar-chart",
    "data": {
        "data": [
            {"region": "EU", "sales": 10},
            {"region": "US", "sales": 7},
            {"region": "EU", "sales": 5},
        ],
        "columns": [{"name": "region", "type": "varchar"}, {"name": "sales", "type": "integer"}],
    },
    "field_assignments": {"x-axis": {"name": "region", "type": "varchar"}, "y-axis": "sales"},
    "custom_config": {"title": "Sales by region"},
}


def _render(client, body: dict[str, object]):
    return client.post(reverse("core:render_chart"), body, content_type="application/json")


@pytest.mark.django_db
def test_chart_types_lists_and_filters(client) -> None:
    """The listing covers every plugin and honours library filters."""

    response = client.get(reverse("core:chart_types"))
    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert len(payload["data"]["chart_types"]) == 39
    assert payload["data"]["library_preferences"]["primary"] == ["d3js"]
    assert payload["data"]["recent_charts"] == []

    filtered = client.get(reverse("core:chart_types"), {"library": "plotly"}).json()
    assert {item["library"] for item in filtered["data"]["chart_types"]} == {"plotly"}
    assert filtered["message"] == "6 chart types"


@pytest.mark.django_db
def test_wrong_method_is_rejected(client) -> None:
    """Read-only endpoints refuse POST with an Allow header."""

    response = client.post(reverse("core:chart_types"))
    assert response.status_code == 405
    assert response["Allow"] == "GET"
    assert response.json()["success"] is False

    assert client.get(reverse("core:render_chart")).status_code == 405


@pytest.mark.django_db
def test_chart_type_detail_and_unknown_names(client) -> None:
    """Known names return their summary; unknown names are 404."""

    detail = client.get(reverse("core:chart_type_detail", args=["plotly-violin-plot"])).json()
    assert detail["data"]["display_name"] == "Violin Plot"
    assert detail["data"]["data_requirements"]["required_fields"] == ["y-axis"]

    missing = client.get(reverse("core:chart_type_detail", args=["echarts-nope"]))
    assert missing.status_code == 404
    assert missing.json()["message"] == "Unknown chart type: echarts-nope"


@pytest.mark.django_db
def test_chart_type_template_returns_sections_and_defaults(client) -> None:
    """The template endpoint returns the form layout and default values."""

    payload = client.get(reverse("core:chart_type_template", args=["echarts-bar-chart"])).json()["data"]
    assert [section["id"] for section in payload["template"]["sections"]] == ["data-mapping", "appearance", "behavior"]
    assert payload["template"]["validation"]["custom"] == ["fields_must_differ"]
    assert payload["defaults"]["bar_width"] == 60
    assert payload["field_assignments"] is None


@pytest.mark.django_db
def test_chart_type_preview_renders_sample_data(client) -> None:
    """Previews render without error and are served from memory afterwards."""

    url = reverse("core:chart_type_preview", args=["echarts-pie-chart"])
    first = client.get(url).json()["data"]
    assert first["error"] is None
    assert first["row_count"] == 24
    assert first["option"]["title"]["text"] == "Pie Chart"

    stats = client.get(reverse("core:cache_stats")).json()["data"]
    assert stats["memory_items"]["previews"] == 1
    assert client.get(url).json()["data"] == first


@pytest.mark.django_db
def test_render_saves_assignments_and_recent_charts(client) -> None:
    """A successful render remembers the assignments and the chart."""

    response = _render(client, RENDER_BODY)
    assert response.status_code == 200
    payload = response.json()
    assert payload["message"] == "Chart rendered"
    assert payload["data"]["option"]["series"][0]["data"] == [15, 7]
    assert payload["data"]["row_count"] == 3

    saved = client.get(reverse("core:field_assignments", args=["echarts-bar-chart"])).json()["data"]
    assert saved == {"x-axis": {"name": "region", "type": "varchar"}, "y-axis": {"name": "sales", "type": None}}

    listing = client.get(reverse("core:chart_types")).json()["data"]
    assert listing["recent_charts"] == ["echarts-bar-chart"]

    template = client.get(reverse("core:chart_type_template", args=["echarts-bar-chart"])).json()["data"]
    assert template["field_assignments"]["x-axis"]["name"] == "region"


@pytest.mark.django_db
def test_render_rejects_bad_requests(client) -> None:
    """Malformed bodies are 400, unknown plugins 404, invalid charts 422."""

    malformed = client.post(reverse("core:render_chart"), "{not json", content_type="application/json")
    assert malformed.status_code == 400
    assert malformed.json()["message"].startswith("Malformed JSON body")

    no_data = _render(client, {"plugin": "echarts-bar-chart"})
    assert no_data.status_code == 400
    assert no_data.json()["message"] == "data is required."

    unknown = _render(client, {**RENDER_BODY, "plugin": "echarts-nope"})
    assert unknown.status_code == 404

    invalid = _render(client, {**RENDER_BODY, "field_assignments": {"x-axis": "region"}})
    assert invalid.status_code == 422
    body = invalid.json()
    assert body["message"] == "Y-axis field is required for bar charts."
    assert body["data"]["option"] == {}

    recent = client.get(reverse("core:chart_types")).json()["data"]["recent_charts"]
    assert recent == []


@pytest.mark.django_db
@override_settings(CHART_RENDER={"MAX_ROWS": 2})
def test_render_honours_row_limit_setting(client) -> None:
    """The row limit comes from settings."""

    response = _render(client, RENDER_BODY)
    assert response.status_code == 422
    assert response.json()["message"].startswith("Too many rows to render safely (3 > 2).")


@pytest.mark.django_db
def test_validate_chart(client) -> None:
    """Chart definitions are validated, with strict mode promoting warnings."""

    url = reverse("core:validate_chart")
    chart = {"name": "Sales", "type": "line"}
    data = [{"region": "EU", "sales": 1}]

    relaxed = client.post(url, {"chart": chart, "data": data}, content_type="application/json").json()
    assert relaxed["message"] == "Chart is valid"
    assert {issue["field"] for issue in relaxed["data"]["warnings"]} == {"data", "description"}

    strict = client.post(url, {"chart": chart, "data": data, "strict": True}, content_type="application/json").json()
    assert strict["message"] == "Chart has validation errors"
    assert strict["data"]["is_valid"] is False

    missing = client.post(url, {"data": data}, content_type="application/json")
    assert missing.status_code == 400


@pytest.mark.django_db
def test_library_preferences_round_trip(client) -> None:
    """Preferences are stored per visitor, keeping only known libraries."""

    url = reverse("core:library_preferences")
    saved = client.post(url, {"primary": ["plotly", "vega"], "secondary": ["echarts"]}, content_type="application/json")
    assert saved.status_code == 200
    assert saved.json()["data"] == {"primary": ["plotly"], "secondary": ["echarts"]}
    assert client.get(url).json()["data"]["primary"] == ["plotly"]

    rejected = client.post(url, {"primary": "plotly"}, content_type="application/json")
    assert rejected.status_code == 400
    assert client.post(url, ["plotly"], content_type="application/json").status_code == 400


@pytest.mark.django_db
def test_library_preferences_are_isolated_per_user(client, django_user_model) -> None:
    """Logged-in users do not see another visitor's preferences."""

    url = reverse("core:library_preferences")
    client.post(url, {"primary": ["chartjs"]}, content_type="application/json")

    user = django_user_model.objects.create_user(username="analyst", password="pw")
    client.force_login(user)
    assert client.get(url).json()["data"]["primary"] == ["d3js"]


@pytest.mark.django_db
def test_cache_stats_and_clear(client) -> None:
    """Clearing drops the visitor's entries and keeps shared previews."""

    _render(client, RENDER_BODY)
    client.get(reverse("core:chart_types"))
    client.get(reverse("core:chart_type_preview", args=["echarts-bar-chart"]))

    stats = client.get(reverse("core:cache_stats")).json()["data"]
    assert stats["has_session"] is True
    assert stats["session_items"] == 3
    assert stats["store_items"] == 1
    assert stats["memory_items"]["previews"] == 1

    cleared = client.post(reverse("core:cache_clear"))
    assert cleared.json()["message"] == "Chart caches cleared"

    after = client.get(reverse("core:cache_stats")).json()["data"]
    assert after["session_items"] == 0
    assert after["store_items"] == 0
    assert after["memory_items"]["previews"] == 1
