"""
In-memory project list — the read model every API consumer sees.

Two writers:
  - the sync pipeline, which publishes whole lists tagged with a sequence
    number (a pass older than the one already published is discarded)
  - the mutation reconciler, which appends or patches single records

All access goes through one lock so each read/modify/write is atomic
between the scheduler thread and request threads.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime, timezone

from plansync.core.exceptions import NotFoundError
from plansync.models.project import ProjectRecord

logger = logging.getLogger(__name__)

SOURCES = {"empty", "live", "cache", "default"}


class ProjectStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: list[ProjectRecord] = []
        self._published_seq = 0
        self._source = "empty"
        self._published_at: datetime | None = None

    # ── Publishing (read path) ───────────────────────────────────────────

    def publish(self, seq: int, records: list[ProjectRecord], source: str) -> bool:
        """Replace the whole list unless a newer pass already published.

        Returns:
            True when the list was replaced.
        """
        if source not in SOURCES:
            raise ValueError(f"Unknown source: {source}")
        with self._lock:
            if seq < self._published_seq:
                logger.info(
                    "Discarding stale sync pass seq=%d (published=%d)",
                    seq, self._published_seq,
                    extra={"sync_seq": seq, "source": source},
                )
                return False
            self._records = list(records)
            self._published_seq = seq
            self._source = source
            self._published_at = datetime.now(timezone.utc)
            return True

    def meta(self) -> dict:
        with self._lock:
            return {
                "source": self._source,
                "published_seq": self._published_seq,
                "published_at": self._published_at.isoformat() if self._published_at else None,
                "count": len(self._records),
            }

    # ── Read accessor ────────────────────────────────────────────────────

    def list_projects(self, year: int | None = None, query: str | None = None) -> list[ProjectRecord]:
        """Current records, optionally filtered by year and a code/description search."""
        with self._lock:
            records = list(self._records)
        if year is not None:
            records = [r for r in records if r.year == year]
        if query:
            needle = query.strip().lower()
            records = [
                r for r in records
                if needle in r.description.lower() or needle in r.code.lower()
            ]
        return records

    def get(self, project_id: str) -> ProjectRecord:
        with self._lock:
            for record in self._records:
                if record.id == project_id:
                    return record
        raise NotFoundError(resource="Project", resource_id=project_id)

    # ── Local mutations (write path) ─────────────────────────────────────

    def add_local(self, record: ProjectRecord) -> ProjectRecord:
        with self._lock:
            self._records.append(record)
        return record

    def patch(self, project_id: str, changes: dict) -> tuple[ProjectRecord, ProjectRecord]:
        """Apply field changes in place. Returns (before, after)."""
        with self._lock:
            for idx, record in enumerate(self._records):
                if record.id == project_id:
                    updated = replace(record, **changes)
                    self._records[idx] = updated
                    return record, updated
        raise NotFoundError(resource="Project", resource_id=project_id)
