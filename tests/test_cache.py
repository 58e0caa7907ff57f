"""Tests for the session, store, and memory chart caches."""

from __future__ import annotations

from typing import Any

import pytest

from core.charting.cache import (
    CHART_TYPES_KEY,
    FIELD_ASSIGNMENTS_KEY,
    CacheDurations,
    ChartCache,
    MemoryBuckets,
    TTLCache,
    chart_key,
)
from core.charting.schema import FieldRef

pytestmark = pytest.mark.unit


class FakeStore:
    """Dictionary-backed stand-in for a Django cache backend."""

    def __init__(self) -> None:
        self.data: dict[str, Any] = {}

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def set(self, key: str, value: Any, timeout: Any = None) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)

    def delete_many(self, keys: list[str]) -> None:
        for key in keys:
            self.delete(key)


def _cache(clock, *, session: dict[str, Any] | None = None, store: FakeStore | None = None, **durations: int) -> ChartCache:
    settings = CacheDurations(**durations)
    return ChartCache(
        session=session,
        store=store,
        memory=MemoryBuckets.create(settings, clock=clock),
        durations=settings,
        clock=clock,
        owner="user:7",
    )


def test_ttl_cache_expires_entries(clock) -> None:
    """Entries vanish once their lifetime has passed."""

    cache = TTLCache(10, clock=clock)
    cache.set("a", 1)
    cache.set("b", 2, ttl=30)
    clock.advance(10)
    assert cache.get("a") is None
    assert cache.get("b") == 2
    assert "b" in cache
    assert len(cache) == 1


def test_ttl_cache_evicts_least_recently_used(clock) -> None:
    """Reading an entry protects it from the next eviction."""

    cache = TTLCache(60, max_entries=2, clock=clock)
    cache.set("a", 1)
    cache.set("b", 2)
    assert cache.get("a") == 1
    cache.set("c", 3)
    assert [key for key, _ in cache.items()] == ["a", "c"]


def test_ttl_cache_purges_and_validates_arguments(clock) -> None:
    """Expired entries are purged in bulk; bad bounds are rejected."""

    cache = TTLCache(5, clock=clock)
    cache.set("a", 1)
    cache.set("b", 2)
    clock.advance(6)
    assert cache.purge_expired() == 2

    with pytest.raises(ValueError, match="ttl must be positive"):
        TTLCache(0)
    with pytest.raises(ValueError, match="max_entries must be at least 1"):
        TTLCache(5, max_entries=0)


def test_durations_from_settings_mapping() -> None:
    """Upper-case keys override defaults."""

    durations = CacheDurations.from_settings({"PREVIEWS": "60", "MAX_PREVIEWS": 3})
    assert durations.previews == 60
    assert durations.max_previews == 3
    assert durations.chart_types == 900


def test_session_entries_expire(clock) -> None:
    """Chart types live in the session until their lifetime passes."""

    session: dict[str, Any] = {}
    cache = _cache(clock, session=session, chart_types=100)
    cache.set_chart_types([{"name": "echarts-bar-chart"}])
    assert session[CHART_TYPES_KEY]["expires_at"] == clock.now + 100
    assert cache.get_chart_types() == [{"name": "echarts-bar-chart"}]

    clock.advance(100)
    assert cache.get_chart_types() is None
    assert CHART_TYPES_KEY not in session


def test_corrupt_session_entries_are_discarded(clock, caplog) -> None:
    """Entries without an expiry are deleted with a warning."""

    session: dict[str, Any] = {CHART_TYPES_KEY: ["not", "wrapped"]}
    cache = _cache(clock, session=session)
    assert cache.get_chart_types() is None
    assert CHART_TYPES_KEY not in session
    assert "Discarding corrupt session cache entry" in caplog.text


def test_factory_flag(clock) -> None:
    """The factory flag defaults to False."""

    cache = _cache(clock, session={})
    assert cache.is_factory_initialized() is False
    cache.set_factory_initialized()
    assert cache.is_factory_initialized() is True


def test_field_assignments_are_kept_per_chart_type(clock) -> None:
    """Each chart type and library has its own auto-saved assignments."""

    session: dict[str, Any] = {}
    cache = _cache(clock, session=session, field_assignments=50)
    cache.set_field_assignments("bar", "echarts", {"x-axis": FieldRef("month", "string"), "path": ["a", "b"]})
    cache.set_field_assignments("pie", "echarts", {"category": "region"})

    assert set(session[FIELD_ASSIGNMENTS_KEY]) == {"echarts:bar", "echarts:pie"}
    assert cache.get_field_assignments("bar", "echarts") == {
        "x-axis": FieldRef("month", "string"),
        "path": [FieldRef("a"), FieldRef("b")],
    }
    assert cache.get_field_assignments("bar", "plotly") is None

    clock.advance(50)
    assert cache.get_field_assignments("bar", "echarts") is None
    assert "echarts:bar" not in session[FIELD_ASSIGNMENTS_KEY]


def test_session_operations_without_a_session(clock) -> None:
    """Without a session every read misses and writes are ignored."""

    cache = _cache(clock)
    cache.set_chart_types([{"name": "x"}])
    cache.set_field_assignments("bar", "echarts", {"x-axis": "m"})
    assert cache.get_chart_types() is None
    assert cache.get_field_assignments("bar", "echarts") is None
    assert cache.is_factory_initialized() is False


def test_library_preferences_default_and_filter_unknown(clock) -> None:
    """Unknown libraries are dropped before storing."""

    store = FakeStore()
    cache = _cache(clock, store=store)
    assert cache.get_library_preferences() == {"primary": ["d3js"], "secondary": ["echarts", "chartjs", "plotly"]}

    stored = cache.set_library_preferences({"primary": ["plotly", "highcharts"], "secondary": []})
    assert stored == {"primary": ["plotly"], "secondary": []}
    assert store.data["bi_library_preferences:user:7"] == stored
    assert cache.get_library_preferences() == stored

    with pytest.raises(ValueError, match="primary must be a list"):
        cache.set_library_preferences({"primary": "plotly"})


def test_corrupt_store_entries_fall_back(clock) -> None:
    """Malformed stored values are deleted and defaults returned."""

    store = FakeStore()
    store.data["bi_library_preferences:user:7"] = "plotly"
    store.data["bi_recent_charts:user:7"] = {"a": 1}
    cache = _cache(clock, store=store)
    assert cache.get_library_preferences()["primary"] == ["d3js"]
    assert cache.get_recent_charts() == []
    assert store.data == {}


def test_recent_charts_move_to_front_and_cap(clock) -> None:
    """Re-adding a chart moves it to the front; the list is bounded."""

    cache = _cache(clock, store=FakeStore(), max_recent_charts=3)
    for name in ("a", "b", "c", "a", "d"):
        cache.add_recent_chart(name)
    assert cache.get_recent_charts() == ["d", "a", "c"]


def test_memory_buckets_and_stats(clock) -> None:
    """Previews are bounded; stats count entries per tier."""

    session: dict[str, Any] = {}
    store = FakeStore()
    cache = _cache(clock, session=session, store=store, max_previews=2)
    for chart_type in ("bar", "line", "pie"):
        cache.set_preview(chart_type, "echarts", {"chart": chart_type})
    assert cache.get_preview("bar", "echarts") is None
    assert cache.get_preview("pie", "echarts") == {"chart": "pie"}

    cache.set_config_schema("bar", "echarts", {"sections": []})
    cache.set_validation_result("k", {"is_valid": True})
    cache.set_chart_types([])
    cache.add_recent_chart("echarts-bar-chart")

    stats = cache.stats()
    assert stats.memory_items == {"previews": 2, "schemas": 1, "validation": 1}
    assert stats.session_items == 1
    assert stats.store_items == 1
    assert stats.memory_size_bytes > 0
    assert stats.as_json()["has_session"] is True


def test_clear_all_empties_every_tier(clock) -> None:
    """Clearing removes session keys, store entries, and private memory buckets."""

    session: dict[str, Any] = {"unrelated": 1}
    store = FakeStore()
    cache = ChartCache(session=session, store=store, clock=clock, owner="user:7")
    cache.set_chart_types([])
    cache.set_library_preferences({"primary": ["echarts"]})
    cache.set_preview("bar", "echarts", {})

    cache.clear_all()
    assert session == {"unrelated": 1}
    assert store.data == {}
    assert cache.stats().memory_items == {"previews": 0, "schemas": 0, "validation": 0}


def test_clear_all_keeps_other_owners_entries(clock) -> None:
    """One owner clearing does not touch shared memory or another owner's store."""

    store = FakeStore()
    durations = CacheDurations()
    shared = MemoryBuckets.create(durations, clock=clock)
    alice = ChartCache(session={}, store=store, memory=shared, durations=durations, clock=clock, owner="user:1")
    bob = ChartCache(session={}, store=store, memory=shared, durations=durations, clock=clock, owner="user:2")
    bob.set_preview("bar", "echarts", {"chart": "bar"})
    bob.add_recent_chart("echarts-bar-chart")
    alice.add_recent_chart("echarts-pie-chart")

    alice.clear_all()
    assert alice.get_recent_charts() == []
    assert bob.get_recent_charts() == ["echarts-bar-chart"]
    assert bob.get_preview("bar", "echarts") == {"chart": "bar"}


def test_chart_key() -> None:
    """Keys combine library and chart type."""

    assert chart_key("bar", "echarts") == "echarts:bar"
