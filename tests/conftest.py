"""Pytest fixtures shared across the chart builder tests."""

from __future__ import annotations

from collections.abc import Sequence

import pytest

from core.charting.cache import reset_process_memory


class FakeClock:
    """Manually advanced clock for cache expiry tests."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    """Return a clock starting at a fixed instant."""

    return FakeClock()


@pytest.fixture
def sales_rows() -> list[dict[str, object]]:
    """Return a small long-format sales dataset."""

    return [
        {"month": "2025-01", "region": "EU", "channel": "Online", "sales": 120, "units": 4},
        {"month": "2025-01", "region": "US", "channel": "Retail", "sales": 80, "units": 2},
        {"month": "2025-02", "region": "EU", "channel": "Online", "sales": 150, "units": 5},
        {"month": "2025-02", "region": "US", "channel": "Online", "sales": 60, "units": 3},
        {"month": "2025-03", "region": "EU", "channel": "Retail", "sales": 90, "units": 6},
    ]


@pytest.fixture(autouse=True)
def _fresh_process_memory():
    """Give every test empty process-wide memory caches."""

    reset_process_memory()
    yield
    reset_process_memory()


@pytest.fixture(autouse=True)
def _fresh_store_cache():
    """Isolate the Django cache used as the persistent store per test."""

    from django.core.cache import caches

    caches["default"].clear()
    yield
    caches["default"].clear()


def pytest_collection_modifyitems(items: Sequence[pytest.Item]) -> None:
    """Enforce that every test has exactly one speed marker.

    - `unit`: pure, fast tests with no database access.
    - `integration`: tests touching Django, database, sessions, or views.

    Each test must have exactly one of these markers.
    """

    invalid: list[str] = []
    for item in items:
        has_unit = item.get_closest_marker("unit") is not None
        has_integration = item.get_closest_marker("integration") is not None
        if has_unit == has_integration:
            markers = []
            if has_unit:
                markers.append("unit")
            if has_integration:
                markers.append("integration")
            invalid.append(f"{item.nodeid} (markers={markers or 'none'})")

    if invalid:
        joined = "\n".join(f"- {nodeid}" for nodeid in invalid)
        raise pytest.UsageError(
            "Each test must have exactly one speed marker: `@pytest.mark.unit` or "
            "`@pytest.mark.integration`.\n"
            f"Offending tests:\n{joined}"
        )
