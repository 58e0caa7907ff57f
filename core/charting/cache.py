"""Caching for chart-type metadata, previews, schemas, and user choices.

Three tiers back the chart builder:

- the Django session: chart-type listings, the factory-initialized flag, and
  auto-saved field assignments, each stored as `{"value", "expires_at"}`;
- a persistent store (a Django cache alias): library preferences and recent
  charts, keyed per user or session;
- process memory: generated previews, configuration templates, and
  validation results, held in bounded `TTLCache` buckets.

Every session operation degrades to a no-op (or a default) without a
session, and likewise for the store.
"""

from __future__ import annotations

import json
import logging
import time
from collections import OrderedDict
from collections.abc import Callable, Iterator, Mapping, MutableMapping
from dataclasses import dataclass, fields
from typing import Any

from .assignment_codec import decode_field_assignments, encode_field_assignments
from .schema import CHART_LIBRARIES, FieldAssignment, FieldAssignments

logger = logging.getLogger(__name__)

Clock = Callable[[], float]

CHART_TYPES_KEY = "bi_chart_types"
FACTORY_INITIALIZED_KEY = "bi_factory_initialized"
FIELD_ASSIGNMENTS_KEY = "bi_field_assignments"
LIBRARY_PREFERENCES_KEY = "bi_library_preferences"
RECENT_CHARTS_KEY = "bi_recent_charts"

SESSION_KEYS: tuple[str, ...] = (CHART_TYPES_KEY, FACTORY_INITIALIZED_KEY, FIELD_ASSIGNMENTS_KEY)
STORE_KEYS: tuple[str, ...] = (LIBRARY_PREFERENCES_KEY, RECENT_CHARTS_KEY)

DEFAULT_LIBRARY_PREFERENCES: dict[str, list[str]] = {
    "primary": ["d3js"],
    "secondary": ["echarts", "chartjs", "plotly"],
}


class TTLCache:
    """In-memory mapping whose entries expire after `ttl` seconds.

    With `max_entries` set, the least recently used entry is evicted when a
    write would exceed the bound. Expired entries are dropped when read.
    """

    def __init__(self, ttl: float, *, max_entries: int | None = None, clock: Clock = time.monotonic) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, Any]] = OrderedDict()

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return value

    def set(self, key: str, value: Any, *, ttl: float | None = None) -> None:
        self._entries[key] = (self._clock() + (ttl or self.ttl), value)
        self._entries.move_to_end(key)
        if self.max_entries is not None:
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted %s from memory cache", evicted)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def purge_expired(self) -> int:
        """Drop expired entries and return how many were removed."""

        now = self._clock()
        expired = [key for key, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def items(self) -> Iterator[tuple[str, Any]]:
        """Yield live `(key, value)` pairs, oldest first."""

        self.purge_expired()
        for key, (_, value) in list(self._entries.items()):
            yield key, value

    def __len__(self) -> int:
        self.purge_expired()
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None


@dataclass(frozen=True, slots=True)
class CacheDurations:
    """Lifetimes (seconds) and capacities for each cache bucket."""

    chart_types: int = 15 * 60
    previews: int = 10 * 60
    validation: int = 5 * 60
    schemas: int = 30 * 60
    factory_state: int = 30 * 60
    field_assignments: int = 60 * 60
    max_previews: int = 15
    max_recent_charts: int = 10

    @classmethod
    def from_settings(cls, values: Mapping[str, Any] | None = None) -> CacheDurations:
        """Build durations from `settings.CHART_CACHE` (or an explicit mapping).

        Keys are the upper-case field names, e.g. `PREVIEWS` or `MAX_PREVIEWS`.
        Missing keys keep their defaults.
        """

        if values is None:
            from django.conf import settings

            values = getattr(settings, "CHART_CACHE", {}) or {}
        defaults = cls()
        return cls(
            **{
                item.name: int(values.get(item.name.upper(), getattr(defaults, item.name)))
                for item in fields(cls)
            }
        )


@dataclass(frozen=True, slots=True)
class MemoryBuckets:
    """Process-local caches for generated artifacts."""

    previews: TTLCache
    schemas: TTLCache
    validation: TTLCache

    @classmethod
    def create(cls, durations: CacheDurations, *, clock: Clock = time.monotonic) -> MemoryBuckets:
        return cls(
            previews=TTLCache(durations.previews, max_entries=durations.max_previews, clock=clock),
            schemas=TTLCache(durations.schemas, clock=clock),
            validation=TTLCache(durations.validation, clock=clock),
        )

    def buckets(self) -> tuple[tuple[str, TTLCache], ...]:
        return (("previews", self.previews), ("schemas", self.schemas), ("validation", self.validation))

    def clear(self) -> None:
        for _, bucket in self.buckets():
            bucket.clear()


@dataclass(frozen=True, slots=True)
class CacheStats:
    """Entry counts per cache tier."""

    session_items: int
    store_items: int
    memory_items: dict[str, int]
    memory_size_bytes: int
    has_session: bool

    def as_json(self) -> dict[str, Any]:
        """Return a JSON-serializable representation."""

        return {
            "session_items": self.session_items,
            "store_items": self.store_items,
            "memory_items": dict(self.memory_items),
            "memory_size_bytes": self.memory_size_bytes,
            "has_session": self.has_session,
        }


_process_memory: MemoryBuckets | None = None


def process_memory(durations: CacheDurations | None = None) -> MemoryBuckets:
    """Return the memory buckets shared by every request in this process."""

    global _process_memory
    if _process_memory is None:
        _process_memory = MemoryBuckets.create(durations or CacheDurations.from_settings())
    return _process_memory


def reset_process_memory() -> None:
    """Forget the shared memory buckets; the next request recreates them."""

    global _process_memory
    _process_memory = None


def chart_key(chart_type: str, library: str) -> str:
    """Return the cache key for a chart type drawn with a library."""

    return f"{library}:{chart_type}"


class ChartCache:
    """Facade over the session, persistent store, and memory caches.

    Args:
        session: Django session (or any mutable mapping), or None.
        store: Django cache backend for persistent entries, or None.
        memory: Memory buckets shared with other caches. Private buckets are
            created when omitted, and only private buckets are emptied by
            `clear_all`.
        durations: Bucket lifetimes and capacities.
        clock: Wall-clock source for session expiry timestamps.
        owner: Prefix isolating this user's persistent store entries.
    """

    def __init__(
        self,
        *,
        session: MutableMapping[str, Any] | None = None,
        store: Any | None = None,
        memory: MemoryBuckets | None = None,
        durations: CacheDurations | None = None,
        clock: Clock = time.time,
        owner: str = "anonymous",
    ) -> None:
        self.durations = durations or CacheDurations()
        self.session = session
        self.store = store
        self.memory = memory or MemoryBuckets.create(self.durations, clock=clock)
        self.owns_memory = memory is None
        self._clock = clock
        self.owner = owner

    @classmethod
    def for_request(cls, request: Any) -> ChartCache:
        """Build a cache for a Django request.

        Uses `request.session`, the cache alias named by
        `CHART_CACHE["STORE_ALIAS"]`, and the process-wide memory buckets.
        """

        from django.conf import settings
        from django.core.cache import caches

        durations = CacheDurations.from_settings()
        alias = (getattr(settings, "CHART_CACHE", {}) or {}).get("STORE_ALIAS", "default")
        session = getattr(request, "session", None)
        user = getattr(request, "user", None)
        if user is not None and getattr(user, "is_authenticated", False):
            owner = f"user:{user.pk}"
        elif session is not None:
            if not session.session_key:
                session.save()
            owner = f"session:{session.session_key}"
        else:
            owner = "anonymous"
        return cls(
            session=session,
            store=caches[alias],
            memory=process_memory(durations),
            durations=durations,
            owner=owner,
        )

    # Session tier

    def _session_get(self, key: str) -> Any | None:
        if self.session is None:
            return None
        entry = self.session.get(key)
        if entry is None:
            return None
        if not isinstance(entry, Mapping) or not isinstance(entry.get("expires_at"), (int, float)):
            logger.warning("Discarding corrupt session cache entry %s", key)
            del self.session[key]
            return None
        if self._clock() >= entry["expires_at"]:
            logger.debug("Session cache entry %s expired", key)
            del self.session[key]
            return None
        logger.debug("Session cache hit for %s", key)
        return entry.get("value")

    def _session_set(self, key: str, value: Any, ttl: int) -> None:
        if self.session is None:
            return
        self.session[key] = {"value": value, "expires_at": self._clock() + ttl}
        logger.debug("Cached %s in session for %ss", key, ttl)

    def get_chart_types(self) -> list[dict[str, Any]] | None:
        value = self._session_get(CHART_TYPES_KEY)
        return value if isinstance(value, list) else None

    def set_chart_types(self, chart_types: list[dict[str, Any]]) -> None:
        self._session_set(CHART_TYPES_KEY, list(chart_types), self.durations.chart_types)

    def is_factory_initialized(self) -> bool:
        return self._session_get(FACTORY_INITIALIZED_KEY) is True

    def set_factory_initialized(self, initialized: bool = True) -> None:
        self._session_set(FACTORY_INITIALIZED_KEY, bool(initialized), self.durations.factory_state)

    def get_field_assignments(self, chart_type: str, library: str) -> dict[str, FieldAssignment] | None:
        """Return auto-saved field assignments for a chart type, if still fresh."""

        if self.session is None:
            return None
        saved = self.session.get(FIELD_ASSIGNMENTS_KEY)
        if saved is None:
            return None
        if not isinstance(saved, Mapping):
            logger.warning("Discarding corrupt field assignment cache")
            del self.session[FIELD_ASSIGNMENTS_KEY]
            return None
        entry = saved.get(chart_key(chart_type, library))
        if not isinstance(entry, Mapping) or not isinstance(entry.get("expires_at"), (int, float)):
            return None
        if self._clock() >= entry["expires_at"]:
            remaining = {key: value for key, value in saved.items() if key != chart_key(chart_type, library)}
            self.session[FIELD_ASSIGNMENTS_KEY] = remaining
            return None
        return decode_field_assignments(entry.get("value"))

    def set_field_assignments(self, chart_type: str, library: str, assignments: FieldAssignments) -> None:
        if self.session is None:
            return
        saved = self.session.get(FIELD_ASSIGNMENTS_KEY)
        updated = dict(saved) if isinstance(saved, Mapping) else {}
        updated[chart_key(chart_type, library)] = {
            "value": encode_field_assignments(assignments),
            "expires_at": self._clock() + self.durations.field_assignments,
        }
        self.session[FIELD_ASSIGNMENTS_KEY] = updated
        logger.debug("Saved field assignments for %s", chart_key(chart_type, library))

    # Persistent store tier

    def _store_key(self, key: str) -> str:
        return f"{key}:{self.owner}"

    def _store_get(self, key: str) -> Any | None:
        if self.store is None:
            return None
        return self.store.get(self._store_key(key))

    def _store_set(self, key: str, value: Any) -> None:
        if self.store is None:
            return
        self.store.set(self._store_key(key), value, timeout=None)
        logger.debug("Stored %s for %s", key, self.owner)

    def get_library_preferences(self) -> dict[str, list[str]]:
        stored = self._store_get(LIBRARY_PREFERENCES_KEY)
        if stored is None:
            return {key: list(value) for key, value in DEFAULT_LIBRARY_PREFERENCES.items()}
        if not isinstance(stored, Mapping) or not all(isinstance(v, list) for v in stored.values()):
            logger.warning("Discarding corrupt library preferences for %s", self.owner)
            if self.store is not None:
                self.store.delete(self._store_key(LIBRARY_PREFERENCES_KEY))
            return {key: list(value) for key, value in DEFAULT_LIBRARY_PREFERENCES.items()}
        return {str(key): [str(lib) for lib in value] for key, value in stored.items()}

    def set_library_preferences(self, preferences: Mapping[str, Any]) -> dict[str, list[str]]:
        """Store preferences, keeping only known libraries; returns what was stored."""

        cleaned: dict[str, list[str]] = {}
        for key in ("primary", "secondary"):
            value = preferences.get(key, DEFAULT_LIBRARY_PREFERENCES[key])
            if not isinstance(value, (list, tuple)):
                raise ValueError(f"{key} must be a list of libraries.")
            cleaned[key] = [str(lib) for lib in value if lib in CHART_LIBRARIES]
        self._store_set(LIBRARY_PREFERENCES_KEY, cleaned)
        return cleaned

    def get_recent_charts(self) -> list[str]:
        stored = self._store_get(RECENT_CHARTS_KEY)
        if stored is None:
            return []
        if not isinstance(stored, list):
            logger.warning("Discarding corrupt recent chart list for %s", self.owner)
            if self.store is not None:
                self.store.delete(self._store_key(RECENT_CHARTS_KEY))
            return []
        return [str(name) for name in stored]

    def add_recent_chart(self, name: str) -> list[str]:
        """Move `name` to the front of the recent list and return the list."""

        recent = [name, *(existing for existing in self.get_recent_charts() if existing != name)]
        recent = recent[: self.durations.max_recent_charts]
        self._store_set(RECENT_CHARTS_KEY, recent)
        return recent

    # Memory tier

    def get_preview(self, chart_type: str, library: str) -> Any | None:
        return self.memory.previews.get(chart_key(chart_type, library))

    def set_preview(self, chart_type: str, library: str, preview: Any) -> None:
        self.memory.previews.set(chart_key(chart_type, library), preview)
        logger.debug("Cached preview for %s", chart_key(chart_type, library))

    def get_config_schema(self, chart_type: str, library: str) -> Any | None:
        return self.memory.schemas.get(chart_key(chart_type, library))

    def set_config_schema(self, chart_type: str, library: str, schema: Any) -> None:
        self.memory.schemas.set(chart_key(chart_type, library), schema)

    def get_validation_result(self, key: str) -> Any | None:
        return self.memory.validation.get(key)

    def set_validation_result(self, key: str, result: Any) -> None:
        self.memory.validation.set(key, result)

    # Maintenance

    def clear_all(self) -> None:
        """Drop this owner's session and store entries, and any private memory entries."""

        if self.session is not None:
            for key in SESSION_KEYS:
                self.session.pop(key, None)
        if self.store is not None:
            self.store.delete_many([self._store_key(key) for key in STORE_KEYS])
        if self.owns_memory:
            self.memory.clear()
        logger.debug("Cleared chart caches for %s", self.owner)

    def stats(self) -> CacheStats:
        session_items = 0
        if self.session is not None:
            session_items = sum(1 for key in SESSION_KEYS if key in self.session)
        store_items = sum(1 for key in STORE_KEYS if self._store_get(key) is not None)

        memory_items: dict[str, int] = {}
        size = 0
        for name, bucket in self.memory.buckets():
            entries = list(bucket.items())
            memory_items[name] = len(entries)
            for key, value in entries:
                size += len(key) + len(json.dumps(value, default=str))
        return CacheStats(
            session_items=session_items,
            store_items=store_items,
            memory_items=memory_items,
            memory_size_bytes=size,
            has_session=self.session is not None,
        )
