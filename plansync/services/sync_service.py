"""
Plan Sync Service
Sync pipeline — one pass of fetch → parse → infer → normalize → cache → publish.

Fallback chain when a pass fails (NetworkError, FormatError) or yields no
rows (EmptyResultError):

    fresh data  >  last cached dataset  >  built-in defaults

The cache is written only by a successful non-empty pass that was actually
published. A failed pass never replaces a live or cached list already on
screen (it may carry staged records); the cache fills an empty or default
screen, and defaults fill an empty one.

Passes may overlap (timer thread + manual refresh). Each pass takes a
sequence number at start; ProjectStore discards publishes older than the
one already shown.
"""

from __future__ import annotations

import itertools
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable

from plansync.core.exceptions import EmptyResultError, SyncError
from plansync.models.project import ProjectRecord
from plansync.services.cache_service import DatasetCache, default_projects
from plansync.services.project_store import ProjectStore
from plansync.services.record_normalizer import RecordNormalizer
from plansync.services.schema_inference import infer_column_map
from plansync.services.tabular_parser import parse_tsv

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Outcome of one pipeline pass."""

    seq: int
    trigger: str
    source: str
    record_count: int
    published: bool
    duration_ms: int = 0
    error: str | None = None
    error_type: str | None = None
    column_map: dict | None = None
    auxiliary: dict = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        return {
            "seq": self.seq,
            "trigger": self.trigger,
            "source": self.source,
            "record_count": self.record_count,
            "published": self.published,
            "duration_ms": self.duration_ms,
            "error": self.error,
            "error_type": self.error_type,
            "column_map": self.column_map,
            "auxiliary": self.auxiliary,
        }


def parse_feed(text: str, normalizer: RecordNormalizer) -> tuple[list[ProjectRecord], dict]:
    """Pure part of the pipeline: raw text → (records, column map dict)."""
    rows = parse_tsv(text)
    cmap = infer_column_map(rows)
    records = normalizer.normalize(rows, cmap)
    if not records:
        raise EmptyResultError(row_count=len(rows))
    return records, cmap.to_dict()


class SyncService:
    """Runs pipeline passes against the plan feed.

    Args:
        gateway:     object with ``fetch_feed(url) -> str``.
        cache:       DatasetCache holding the last good dataset.
        store:       ProjectStore the pass publishes into.
        normalizer:  RecordNormalizer configured with planning year/defaults.
        feed_url:    plan feed URL.
        auxiliary:   optional AuxiliaryFeeds refreshed after each pass.
    """

    def __init__(
        self,
        gateway,
        cache: DatasetCache,
        store: ProjectStore,
        normalizer: RecordNormalizer,
        feed_url: str,
        *,
        auxiliary=None,
    ) -> None:
        self.gateway = gateway
        self.cache = cache
        self.store = store
        self.normalizer = normalizer
        self.feed_url = feed_url
        self.auxiliary = auxiliary
        self._seq = itertools.count(1)
        self._seq_lock = threading.Lock()
        self._publish_lock = threading.Lock()
        self._in_flight = 0
        self._listeners: list[Callable[[list[ProjectRecord]], None]] = []
        self.last_result: SyncResult | None = None

    # ── Listeners ────────────────────────────────────────────────────────

    def on_live_sync(self, callback: Callable[[list[ProjectRecord]], None]) -> None:
        """Register a callback invoked with the records of each published live pass."""
        self._listeners.append(callback)

    # ── State ────────────────────────────────────────────────────────────

    @property
    def is_syncing(self) -> bool:
        """Advisory only: a second trigger is never blocked."""
        with self._seq_lock:
            return self._in_flight > 0

    def _begin(self) -> int:
        with self._seq_lock:
            self._in_flight += 1
            return next(self._seq)

    def _end(self) -> None:
        with self._seq_lock:
            self._in_flight -= 1

    # ── Pipeline ─────────────────────────────────────────────────────────

    def run(self, trigger: str = "manual") -> SyncResult:
        """Run one full pass. Never raises for sync failures."""
        seq = self._begin()
        t0 = time.perf_counter()
        try:
            result = self._run_pass(seq, trigger)
            if self.auxiliary is not None:
                result.auxiliary = self.auxiliary.refresh()
        finally:
            self._end()
        result.duration_ms = int((time.perf_counter() - t0) * 1000)
        self.last_result = result
        return result

    def _run_pass(self, seq: int, trigger: str) -> SyncResult:
        log_extra = {"sync_seq": seq, "trigger": trigger}
        try:
            text = self.gateway.fetch_feed(self.feed_url)
            records, column_map = parse_feed(text, self.normalizer)
        except SyncError as exc:
            logger.warning(
                "Sync pass %d failed (%s): %s", seq, type(exc).__name__, exc, extra=log_extra,
            )
            return self._fallback(seq, trigger, exc)

        with self._publish_lock:
            published = self.store.publish(seq, records, "live")
            if published:
                self.cache.save(records)
        if not published:
            return SyncResult(
                seq=seq, trigger=trigger, source="live", record_count=len(records),
                published=False, column_map=column_map,
            )

        for callback in self._listeners:
            callback(records)
        logger.info(
            "Sync pass %d published %d records", seq, len(records),
            extra={**log_extra, "source": "live", "record_count": len(records)},
        )
        return SyncResult(
            seq=seq, trigger=trigger, source="live", record_count=len(records),
            published=True, column_map=column_map,
        )

    def _fallback(self, seq: int, trigger: str, exc: SyncError) -> SyncResult:
        base = dict(seq=seq, trigger=trigger, error=str(exc), error_type=type(exc).__name__)

        meta = self.store.meta()
        if meta["source"] in ("live", "cache"):
            # On-screen list is at least as new as the cache and may hold staged records.
            return SyncResult(source=meta["source"], record_count=meta["count"], published=False, **base)

        cached = self.cache.load()
        if cached is not None:
            records, synced_at = cached
            published = self.store.publish(seq, records, "cache")
            logger.info(
                "Serving %d cached records from %s", len(records), synced_at,
                extra={"sync_seq": seq, "source": "cache", "record_count": len(records)},
            )
            return SyncResult(source="cache", record_count=len(records), published=published, **base)

        if meta["source"] == "empty":
            records = default_projects()
            published = self.store.publish(seq, records, "default")
            logger.info("No cache available; serving built-in defaults", extra={"sync_seq": seq})
            return SyncResult(source="default", record_count=len(records), published=published, **base)

        return SyncResult(source=meta["source"], record_count=meta["count"], published=False, **base)
