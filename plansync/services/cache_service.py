"""
Dataset Cache Service

Durable fallback for the read path:
  - Last known-good ProjectRecord list + ISO timestamp under fixed keys
  - Overwritten only after a successful, non-empty sync
  - Read only when a sync fails or yields no rows

Storage is a KeyValueStore: Redis in production (via REDIS_URL), a simple
in-memory dict for development/testing or when Redis is unreachable.
Tests pass a MemoryStore directly.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Protocol

from redis.exceptions import RedisError

from plansync.models.project import ProjectRecord, ProjectStatus, ProjectType

logger = logging.getLogger(__name__)

# A down or flaky backend degrades to a cache miss; it never fails a sync.
BACKEND_ERRORS = (RedisError, OSError)


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> object: ...

    def delete(self, *keys: str) -> object: ...

    def ping(self) -> bool: ...


# ── In-memory backend ────────────────────────────────────────────────────


class MemoryStore:
    """Simple dict store for dev/testing."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key):
        return self._data.get(key)

    def set(self, key, value):
        self._data[key] = value
        return True

    def delete(self, *keys):
        for k in keys:
            self._data.pop(k, None)

    def ping(self):
        return True


def create_store(redis_url: str | None) -> KeyValueStore:
    """Redis when REDIS_URL points to one, otherwise in-memory."""
    if redis_url and not redis_url.startswith("memory://"):
        try:
            import redis as _redis
            backend = _redis.from_url(redis_url, decode_responses=True)
            backend.ping()
            logger.info("Cache: using Redis at %s", redis_url.split("@")[-1])
            return backend
        except Exception as exc:
            logger.warning("Redis unavailable (%s) — falling back to memory cache", exc)
    return MemoryStore()


def backend_name(store: KeyValueStore) -> str:
    return "memory" if isinstance(store, MemoryStore) else "redis"


# ── Built-in defaults (last resort, keeps first load non-empty) ──────────

DEFAULT_PROJECTS = (
    ProjectRecord(
        id="default-1",
        code="TA2026",
        year=2026,
        description="Tech Awards 2026",
        type=ProjectType.ANNUAL,
        department="Công nghệ",
        status=ProjectStatus.IN_PROGRESS,
        phase="Thiết kế Landing Page",
        quarter=1,
        tech_handoff_date="2026-03-15",
        release_date="2026-04-01",
        pm="HieuNT",
        designer="AnhTH",
        request_owner="MinhLQ",
        kpi="10M Traffic",
        dashboard_url="https://bi.vnexpress.net/ta2026",
        notes="Ưu tiên trải nghiệm mobile.",
    ),
)


def default_projects() -> list[ProjectRecord]:
    return [ProjectRecord.from_dict(p.to_dict()) for p in DEFAULT_PROJECTS]


# ── Cache manager ────────────────────────────────────────────────────────


class DatasetCache:
    """Persists and restores the last good dataset.

    Keys:
        <prefix>:projects            JSON list of ProjectRecord dicts
        <prefix>:projects:synced_at  ISO-8601 UTC timestamp
    """

    def __init__(self, store: KeyValueStore, prefix: str = "plansync") -> None:
        self.store = store
        self.records_key = f"{prefix}:projects"
        self.timestamp_key = f"{prefix}:projects:synced_at"

    def save(self, records: list[ProjectRecord], synced_at: datetime | None = None) -> str | None:
        """Replace the cached dataset.

        Returns the stored timestamp, or None when the backend refused the write.
        """
        if not records:
            raise ValueError("Refusing to cache an empty dataset")
        ts = (synced_at or datetime.now(timezone.utc)).isoformat()
        payload = json.dumps([r.to_dict() for r in records], ensure_ascii=False)
        try:
            self.store.set(self.records_key, payload)
            self.store.set(self.timestamp_key, ts)
        except BACKEND_ERRORS as exc:
            logger.warning("Cache write failed, keeping previous dataset: %s", exc)
            return None
        logger.debug("Cached %d records at %s", len(records), ts)
        return ts

    def load(self) -> tuple[list[ProjectRecord], str | None] | None:
        """Return (records, synced_at) or None on miss / unreadable payload."""
        try:
            raw = self.store.get(self.records_key)
            synced_at = self.store.get(self.timestamp_key)
        except BACKEND_ERRORS as exc:
            logger.warning("Cache read failed, treating as a miss: %s", exc)
            return None
        if raw is None:
            return None
        try:
            records = [ProjectRecord.from_dict(item) for item in json.loads(raw)]
        except (json.JSONDecodeError, TypeError, ValueError, KeyError) as exc:
            logger.warning("Cached dataset unreadable, ignoring: %s", exc)
            return None
        if not records:
            return None
        return records, synced_at

    def clear(self) -> None:
        self.store.delete(self.records_key, self.timestamp_key)

    def health_check(self) -> dict:
        """Return cache backend status."""
        try:
            self.store.ping()
            return {"status": "ok", "backend": backend_name(self.store)}
        except Exception as exc:
            return {"status": "error", "detail": str(exc)}
