"""
Plan Sync Service
Mutation Reconciler — optimistic local edits forwarded to the sheet.

Flow for stage_add / stage_update:
    1. Validate and apply to ProjectStore immediately (what the UI sees).
    2. Record a StagedMutation in the ledger with state "pending".
    3. Hand the forward write to the runner (daemon thread by default).
       The endpoint's reply is never read; only a raised transport error
       is observed.
    4. On WriteForwardError: state "failed" + a user-visible notice.
       The local record is NOT rolled back.

After every published live sync the list is replaced wholesale, so a
staged record that never reached the sheet disappears. reconcile() makes
that explicit: pending entries found in the fresh feed become "confirmed",
entries still missing after the grace period become "failed" with a
notice.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable

from plansync.core.exceptions import ValidationError, WriteForwardError
from plansync.models.project import LOCAL_ID_PREFIX, ProjectRecord, ProjectStatus, ProjectType
from plansync.utils.text import fold

logger = logging.getLogger(__name__)

MUTATION_STATES = {"pending", "confirmed", "failed"}

# Fields accepted from API payloads → ProjectRecord attribute.
EDITABLE_FIELDS = (
    "code", "year", "description", "type", "department", "status", "phase",
    "quarter", "tech_handoff_date", "release_date", "pm", "designer",
    "request_owner", "kpi", "dashboard_url", "notes",
)

# ProjectRecord attribute → write endpoint key
WRITE_FIELD_NAMES = {
    "code": "project_no",
    "year": "year",
    "description": "description",
    "type": "type",
    "department": "department",
    "status": "status",
    "phase": "phase",
    "quarter": "quarter",
    "tech_handoff_date": "tech_handoff",
    "release_date": "release_date",
    "pm": "pm",
    "designer": "designer",
    "request_owner": "request_owner",
    "kpi": "kpi",
    "dashboard_url": "dashboard_url",
    "notes": "notes",
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def spawn_daemon(fn: Callable[[], None]) -> None:
    threading.Thread(target=fn, name="plansync-write-forward", daemon=True).start()


@dataclass
class StagedMutation:
    mutation_id: str
    action: str
    project_id: str
    payload: dict
    state: str = "pending"
    error: str | None = None
    created_at: datetime = field(default_factory=_now)

    def to_dict(self) -> dict:
        return {
            "mutation_id": self.mutation_id,
            "action": self.action,
            "project_id": self.project_id,
            "payload": dict(self.payload),
            "state": self.state,
            "error": self.error,
            "created_at": self.created_at.isoformat(),
        }


class NoticeBoard:
    """Bounded list of user-visible notices (newest last)."""

    def __init__(self, maxlen: int = 50) -> None:
        self._lock = threading.Lock()
        self._items: deque = deque(maxlen=maxlen)

    def post(self, message: str, *, level: str = "error", mutation_id: str | None = None) -> dict:
        notice = {
            "level": level,
            "message": message,
            "mutation_id": mutation_id,
            "created_at": _now().isoformat(),
        }
        with self._lock:
            self._items.append(notice)
        return notice

    def list(self) -> list[dict]:
        with self._lock:
            return list(self._items)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()


def _coerce_changes(data: dict, *, partial: bool) -> dict:
    """Validate API input into ProjectRecord attribute values."""
    errors: dict[str, str] = {}
    changes: dict = {}
    for name in EDITABLE_FIELDS:
        if name not in data:
            continue
        value = data[name]
        if name == "type":
            try:
                changes[name] = ProjectType(value)
            except ValueError:
                errors[name] = f"must be one of {[t.value for t in ProjectType]}"
        elif name == "status":
            try:
                changes[name] = ProjectStatus(value)
            except ValueError:
                errors[name] = f"must be one of {[s.value for s in ProjectStatus]}"
        elif name == "quarter":
            try:
                quarter = int(value)
            except (TypeError, ValueError):
                quarter = 0
            if quarter not in (1, 2, 3, 4):
                errors[name] = "must be 1-4"
            else:
                changes[name] = quarter
        elif name == "year":
            try:
                changes[name] = int(value)
            except (TypeError, ValueError):
                errors[name] = "must be an integer"
        else:
            changes[name] = "" if value is None else str(value).strip()

    if not partial or "description" in changes:
        if not changes.get("description"):
            errors["description"] = "is required"
    if errors:
        raise ValidationError("Invalid project data", details=errors)
    return changes


def build_write_payload(action: str, record: ProjectRecord, fields_: tuple[str, ...] = EDITABLE_FIELDS) -> dict:
    payload = {"action": action, "project_id": record.id}
    for name in fields_:
        value = getattr(record, name)
        if isinstance(value, (ProjectType, ProjectStatus)):
            value = value.value
        payload[WRITE_FIELD_NAMES[name]] = value
    return payload


class MutationReconciler:
    """Stages adds/updates locally and forwards them to the write endpoint.

    Args:
        store:          ProjectStore to apply optimistic changes to.
        gateway:        object with ``forward_write(url, payload)``.
        write_url:      write endpoint URL.
        planning_year:  year for staged records that don't give one.
        runner:         callable scheduling the forward; defaults to a daemon thread.
        grace_seconds:  how long a pending mutation may stay unmatched by syncs.
    """

    def __init__(
        self,
        store,
        gateway,
        write_url: str,
        *,
        planning_year: int = 2026,
        default_department: str = "General",
        runner: Callable[[Callable[[], None]], None] = spawn_daemon,
        grace_seconds: int = 600,
        notices: NoticeBoard | None = None,
        clock: Callable[[], datetime] = _now,
    ) -> None:
        self.store = store
        self.gateway = gateway
        self.write_url = write_url
        self.planning_year = planning_year
        self.default_department = default_department
        self.runner = runner
        self.grace = timedelta(seconds=grace_seconds)
        self.notices = notices or NoticeBoard()
        self._clock = clock
        self._lock = threading.Lock()
        self._ledger: dict[str, StagedMutation] = {}

    # ── Entry points ─────────────────────────────────────────────────────

    def stage_add(self, data: dict) -> tuple[ProjectRecord, StagedMutation]:
        changes = _coerce_changes(data, partial=False)
        changes.setdefault("year", self.planning_year)
        changes.setdefault("department", self.default_department)
        local_id = f"{LOCAL_ID_PREFIX}{uuid.uuid4().hex[:12]}"
        record = ProjectRecord(
            id=local_id,
            code=changes.pop("code", "") or "",
            year=changes.pop("year"),
            description=changes.pop("description"),
            **changes,
        )
        self.store.add_local(record)
        mutation = self._record("add", record.id, build_write_payload("add", record))
        self._dispatch(mutation)
        return record, mutation

    def stage_update(self, project_id: str, patch: dict) -> tuple[ProjectRecord, StagedMutation]:
        changes = _coerce_changes(patch, partial=True)
        if not changes:
            raise ValidationError("No editable fields in update", details={"fields": list(EDITABLE_FIELDS)})
        _before, record = self.store.patch(project_id, changes)
        payload = build_write_payload("update", record, tuple(k for k in EDITABLE_FIELDS if k in changes))
        # Upstream rows are addressed by project number.
        payload.setdefault("project_no", record.code)
        mutation = self._record("update", record.id, payload)
        self._dispatch(mutation)
        return record, mutation

    # ── Ledger ───────────────────────────────────────────────────────────

    def _record(self, action: str, project_id: str, payload: dict) -> StagedMutation:
        mutation = StagedMutation(
            mutation_id=uuid.uuid4().hex[:12],
            action=action,
            project_id=project_id,
            payload=payload,
            created_at=self._clock(),
        )
        with self._lock:
            self._ledger[mutation.mutation_id] = mutation
        logger.info(
            "Staged %s for project %s", action, project_id,
            extra={"mutation_id": mutation.mutation_id},
        )
        return mutation

    def mutations(self, state: str | None = None) -> list[StagedMutation]:
        with self._lock:
            items = list(self._ledger.values())
        if state:
            items = [m for m in items if m.state == state]
        return sorted(items, key=lambda m: m.created_at)

    def get(self, mutation_id: str) -> StagedMutation | None:
        with self._lock:
            return self._ledger.get(mutation_id)

    def _fail(self, mutation: StagedMutation, reason: str, notice: str) -> None:
        with self._lock:
            mutation.state = "failed"
            mutation.error = reason
        self.notices.post(notice, mutation_id=mutation.mutation_id)

    # ── Forwarding ───────────────────────────────────────────────────────

    def _dispatch(self, mutation: StagedMutation) -> None:
        self.runner(lambda: self._forward(mutation))

    def _forward(self, mutation: StagedMutation) -> None:
        try:
            self.gateway.forward_write(self.write_url, mutation.payload)
        except WriteForwardError as exc:
            exc.mutation_id = mutation.mutation_id
            logger.error(
                "Write forward failed for %s: %s", mutation.project_id, exc.reason,
                extra={"mutation_id": mutation.mutation_id},
            )
            self._fail(
                mutation, exc.reason,
                f"Could not send {mutation.action} for "
                f"'{mutation.payload.get('description') or mutation.payload.get('project_no')}' "
                f"to the sheet; the change is only visible locally.",
            )

    # ── Reconciliation ───────────────────────────────────────────────────

    def reconcile(self, records: list[ProjectRecord]) -> dict:
        """Match pending mutations against a freshly published live list."""
        by_code = {fold(r.code): r for r in records if r.code}
        by_desc = {fold(r.description): r for r in records}
        now = self._clock()
        summary = {"confirmed": 0, "failed": 0, "pending": 0}

        for mutation in self.mutations(state="pending"):
            payload = mutation.payload
            match = None
            code = fold(str(payload.get("project_no") or ""))
            if code:
                match = by_code.get(code)
            if match is None and payload.get("description"):
                match = by_desc.get(fold(payload["description"]))

            if match is not None and self._reflects(match, payload):
                with self._lock:
                    mutation.state = "confirmed"
                summary["confirmed"] += 1
            elif now - mutation.created_at > self.grace:
                self._fail(
                    mutation, "not reflected in the sheet after sync",
                    f"Change '{mutation.action}' for project {payload.get('project_no') or mutation.project_id} "
                    f"never appeared in the sheet and was dropped from the list.",
                )
                summary["failed"] += 1
            else:
                summary["pending"] += 1

        if summary["confirmed"] or summary["failed"]:
            logger.info("Reconciled staged mutations: %s", summary)
        return summary

    @staticmethod
    def _reflects(record: ProjectRecord, payload: dict) -> bool:
        """True when every forwarded field already matches the feed row."""
        for name, key in WRITE_FIELD_NAMES.items():
            if key not in payload or name == "code":
                continue
            value = getattr(record, name)
            if isinstance(value, (ProjectType, ProjectStatus)):
                value = value.value
            if fold(str(value)) != fold(str(payload[key])):
                return False
        return True
