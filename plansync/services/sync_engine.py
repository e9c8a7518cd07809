"""
Plan Sync Service
Sync engine — one object owning every long-lived collaborator.

    gateway → SyncService → ProjectStore ← MutationReconciler
                   ↑                              ↑
             SyncScheduler ← SessionGate     (on_live_sync)

Created once per app in create_app() and stored at
``app.extensions["plansync"]``. Blueprints reach it through get_engine().
"""

from __future__ import annotations

import logging
from typing import Callable

from flask import Flask, current_app

from plansync.integrations.sheet_gateway import SheetGateway
from plansync.services.cache_service import DatasetCache, create_store
from plansync.services.feed_service import AuxiliaryFeeds
from plansync.services.mutation_service import MutationReconciler, spawn_daemon
from plansync.services.project_store import ProjectStore
from plansync.services.record_normalizer import RecordNormalizer
from plansync.services.scheduler_service import SessionGate, SyncScheduler
from plansync.services.sync_service import SyncService

logger = logging.getLogger(__name__)

EXTENSION_KEY = "plansync"


class SyncEngine:
    """Wires the sync pipeline, scheduler and mutation reconciler together."""

    def __init__(
        self,
        *,
        gateway,
        cache: DatasetCache,
        store: ProjectStore,
        normalizer: RecordNormalizer,
        auxiliary: AuxiliaryFeeds,
        sync: SyncService,
        gate: SessionGate,
        scheduler: SyncScheduler,
        reconciler: MutationReconciler,
    ) -> None:
        self.gateway = gateway
        self.cache = cache
        self.store = store
        self.normalizer = normalizer
        self.auxiliary = auxiliary
        self.sync = sync
        self.gate = gate
        self.scheduler = scheduler
        self.reconciler = reconciler
        sync.on_live_sync(reconciler.reconcile)

    @classmethod
    def from_config(
        cls,
        cfg,
        *,
        gateway=None,
        store=None,
        runner: Callable[[Callable[[], None]], None] = spawn_daemon,
    ) -> SyncEngine:
        """Build an engine from a Flask config mapping.

        ``gateway``, ``store`` (key-value backend) and ``runner`` are
        injectable for tests.
        """
        gateway = gateway or SheetGateway(
            timeout=cfg["FEED_TIMEOUT_SECONDS"],
            write_timeout=cfg["WRITE_TIMEOUT_SECONDS"],
        )
        kv = store if store is not None else create_store(cfg.get("REDIS_URL"))
        cache = DatasetCache(kv, prefix=cfg["CACHE_KEY_PREFIX"])
        project_store = ProjectStore()
        normalizer = RecordNormalizer(
            planning_year=cfg["PLANNING_YEAR"],
            default_status=cfg["DEFAULT_STATUS"],
            default_department=cfg["DEFAULT_DEPARTMENT"],
        )
        auxiliary = AuxiliaryFeeds(
            gateway,
            report_url=cfg.get("REPORT_FEED_URL", ""),
            documents_url=cfg.get("DOCUMENTS_FEED_URL", ""),
            planning_year=cfg["PLANNING_YEAR"],
        )
        sync = SyncService(
            gateway, cache, project_store, normalizer, cfg["PLAN_FEED_URL"], auxiliary=auxiliary,
        )
        gate = SessionGate(timeout_seconds=cfg["SESSION_TIMEOUT_SECONDS"])
        scheduler = SyncScheduler(sync, gate, interval_seconds=cfg["SYNC_INTERVAL_SECONDS"])
        reconciler = MutationReconciler(
            project_store,
            gateway,
            cfg["WRITE_ENDPOINT_URL"],
            planning_year=cfg["PLANNING_YEAR"],
            default_department=cfg["DEFAULT_DEPARTMENT"],
            runner=runner,
            grace_seconds=cfg["WRITE_RECONCILE_GRACE_SECONDS"],
        )
        return cls(
            gateway=gateway,
            cache=cache,
            store=project_store,
            normalizer=normalizer,
            auxiliary=auxiliary,
            sync=sync,
            gate=gate,
            scheduler=scheduler,
            reconciler=reconciler,
        )

    # ── Session gating ───────────────────────────────────────────────────

    def start_session(self):
        """Activate the gate and run the mount pass (starts the timer)."""
        self.gate.activate()
        return self.scheduler.start()

    def heartbeat(self) -> None:
        self.gate.touch()

    def end_session(self) -> None:
        self.gate.deactivate()
        self.scheduler.stop()

    def status(self) -> dict:
        last = self.sync.last_result
        return {
            "syncing": self.scheduler.is_syncing,
            "timer_running": self.scheduler.is_running,
            "interval_seconds": self.scheduler.interval_seconds,
            "session": self.gate.to_dict(),
            "store": self.store.meta(),
            "last_result": last.to_dict() if last else None,
            "pending_mutations": len(self.reconciler.mutations(state="pending")),
        }


def init_sync_engine(app: Flask, engine: SyncEngine | None = None) -> SyncEngine:
    engine = engine or SyncEngine.from_config(app.config)
    app.extensions[EXTENSION_KEY] = engine
    logger.debug("Sync engine attached (feed=%s)", app.config.get("PLAN_FEED_URL"))
    return engine


def get_engine() -> SyncEngine:
    return current_app.extensions[EXTENSION_KEY]
