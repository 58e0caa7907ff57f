"""URL configuration for the chart builder API."""

from __future__ import annotations

from django.urls import path

from core import views

app_name = "core"

urlpatterns = [
    path("api/chart-types/", views.chart_types, name="chart_types"),
    path("api/chart-types/<slug:name>/", views.chart_type_detail, name="chart_type_detail"),
    path("api/chart-types/<slug:name>/template/", views.chart_type_template, name="chart_type_template"),
    path("api/chart-types/<slug:name>/preview/", views.chart_type_preview, name="chart_type_preview"),
    path("api/charts/render/", views.render_chart_view, name="render_chart"),
    path("api/charts/validate/", views.validate_chart_view, name="validate_chart"),
    path(
        "api/charts/field-assignments/<slug:name>/",
        views.field_assignments_view,
        name="field_assignments",
    ),
    path("api/preferences/libraries/", views.library_preferences_view, name="library_preferences"),
    path("api/cache/stats/", views.cache_stats_view, name="cache_stats"),
    path("api/cache/clear/", views.cache_clear_view, name="cache_clear"),
]
