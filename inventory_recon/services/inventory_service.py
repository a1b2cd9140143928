"""
Inventory engine: scan, plan and execute behind one object.

    Idle -> Scanning -> Planned -> Executing -> Idle

Only one run executes at a time per engine. Scopes may be run back to back
(``missing_copies`` then ``status_issues``); each run re-scans the store
before planning.
"""
from __future__ import annotations

import logging
import threading
import time

from flask import current_app

from inventory_recon.services.errors import RepairInProgressError, ScanReadError
from inventory_recon.services.health_service import HealthReport, aggregate
from inventory_recon.services.inventory_scanner import InventoryScanner
from inventory_recon.services.repair_executor import CancelToken, RepairExecutor, RepairResult
from inventory_recon.services.repair_planner import SINGLE_BOOK, RepairPlan, RepairPlanner

logger = logging.getLogger(__name__)

IDLE = "idle"
SCANNING = "scanning"
PLANNED = "planned"
EXECUTING = "executing"


class InventoryEngine:
    def __init__(self, store, delay_ms: int = 30, settle_seconds: float = 2.0,
                 copy_number_limit: int = 1000, code_probe_limit: int = 999,
                 sleep=time.sleep, rng=None):
        self.store = store
        self.scanner = InventoryScanner(store)
        self.planner = RepairPlanner(store, copy_number_limit=copy_number_limit,
                                     code_probe_limit=code_probe_limit, rng=rng)
        self.executor = RepairExecutor(store, delay_ms=delay_ms, sleep=sleep)
        self.settle_seconds = settle_seconds
        self._sleep = sleep

        self._lock = threading.Lock()
        self._state = IDLE
        self._cancel_token: CancelToken | None = None
        self._last_progress = None

    @classmethod
    def from_config(cls, store, config) -> "InventoryEngine":
        return cls(
            store,
            delay_ms=int(config.get("INVENTORY_REPAIR_DELAY_MS", 30)),
            settle_seconds=float(config.get("INVENTORY_SETTLE_DELAY_SECONDS", 2)),
            copy_number_limit=int(config.get("INVENTORY_COPY_NUMBER_LIMIT", 1000)),
            code_probe_limit=int(config.get("INVENTORY_CODE_PROBE_LIMIT", 999)),
        )

    @property
    def state(self) -> str:
        return self._state

    @property
    def last_progress(self):
        return self._last_progress

    def _acquire(self):
        if not self._lock.acquire(blocking=False):
            raise RepairInProgressError(self._state)

    def _release(self):
        self._state = IDLE
        self._cancel_token = None
        self._lock.release()

    def _report(self, book_id=None) -> HealthReport:
        snapshot, issues = self.scanner.scan(book_id)
        return aggregate(issues, snapshot)

    def scan(self, book_id=None) -> HealthReport:
        self._acquire()
        try:
            self._state = SCANNING
            report = self._report(book_id)
        finally:
            self._release()

        logger.info(
            f"[inventory] scan books={report.total_books} flagged={report.flagged_books} "
            f"health_score={report.health_score}"
        )
        return report

    def plan(self, scope: str, book_id=None) -> RepairPlan:
        """Dry run: the plan a repair of ``scope`` would execute right now."""
        self._acquire()
        try:
            self._state = SCANNING
            snapshot = self.scanner.load(book_id if scope == SINGLE_BOOK else None)
            self._state = PLANNED
            return self.planner.plan(scope, snapshot, book_id=book_id)
        finally:
            self._release()

    def plan_and_execute(self, scope: str, on_progress=None, book_id=None,
                         cancel_token: CancelToken | None = None) -> RepairResult:
        self._acquire()
        try:
            self._state = SCANNING
            scan_filter = book_id if scope == SINGLE_BOOK else None
            snapshot = self.scanner.load(scan_filter)

            self._state = PLANNED
            plan = self.planner.plan(scope, snapshot, book_id=book_id)
            logger.info(f"[inventory] scope={scope} planned {len(plan)} operations {plan.summary()}")

            self._state = EXECUTING
            self._cancel_token = cancel_token or CancelToken()
            self._last_progress = None

            def _progress(p):
                self._last_progress = p
                if on_progress is not None:
                    on_progress(p)

            result = self.executor.execute(plan, on_progress=_progress, cancel_token=self._cancel_token)

            # follow-up scan is informational only
            if self.settle_seconds:
                self._sleep(self.settle_seconds)
            self._state = SCANNING
            try:
                result.report = self._report(scan_filter)
            except ScanReadError:
                logger.exception(f"[inventory] scope={scope} follow-up scan failed")

            return result
        finally:
            self._release()

    def cancel(self) -> bool:
        token = self._cancel_token
        if token is None:
            return False
        token.cancel()
        logger.info("[inventory] cancellation requested")
        return True


def get_engine() -> InventoryEngine:
    """Engine bound to the current Flask app (created in create_app)."""
    return current_app.extensions["inventory_engine"]
