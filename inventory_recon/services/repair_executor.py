from __future__ import annotations

import logging
import threading
import time
from dataclasses import asdict, dataclass

from inventory_recon.services.errors import PlanStateError, StoreWriteError
from inventory_recon.services.repair_planner import OPERATION_TYPES, RepairPlan

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Progress:
    scope: str
    current: int
    total: int
    fixed: int
    failed: int
    description: str

    @property
    def done(self) -> bool:
        return self.current >= self.total

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class RepairResult:
    scope: str
    fixed: int = 0
    failed: int = 0
    total: int = 0
    cancelled: bool = False
    report: object = None  # HealthReport from the follow-up scan, if it succeeded

    def to_dict(self) -> dict:
        return {
            "scope": self.scope,
            "fixed": self.fixed,
            "failed": self.failed,
            "total": self.total,
            "cancelled": self.cancelled,
            "report": self.report.to_dict() if self.report is not None else None,
        }


class CancelToken:
    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class RepairExecutor:
    """
    Applies a repair plan one write at a time, in plan order.

    A StoreWriteError is counted in ``failed`` and the run moves on to the
    next operation. Between operations it sleeps ``delay_ms`` to keep the
    load on the store flat, and checks the cancel token.
    """

    def __init__(self, store, delay_ms: int = 30, sleep=time.sleep):
        self.store = store
        self.delay_ms = delay_ms
        self._sleep = sleep

    def execute(self, plan: RepairPlan, on_progress=None, cancel_token: CancelToken | None = None) -> RepairResult:
        total = len(plan)
        result = RepairResult(scope=plan.scope, total=total)

        for index, op in enumerate(plan.operations, start=1):
            if cancel_token is not None and cancel_token.cancelled:
                result.cancelled = True
                logger.info(f"[executor] scope={plan.scope} cancelled at {index - 1}/{total}")
                break

            if not isinstance(op, OPERATION_TYPES):
                raise PlanStateError(f"Unknown operation in plan at position {index}: {op!r}")

            description = op.describe()
            try:
                op.apply(self.store)
                result.fixed += 1
            except StoreWriteError as e:
                result.failed += 1
                logger.warning(f"[executor] {description} failed: {e}")

            if on_progress is not None:
                on_progress(Progress(
                    scope=plan.scope,
                    current=index,
                    total=total,
                    fixed=result.fixed,
                    failed=result.failed,
                    description=description,
                ))

            if index < total and self.delay_ms:
                self._sleep(self.delay_ms / 1000.0)

        logger.info(
            f"[executor] scope={plan.scope} finished fixed={result.fixed} "
            f"failed={result.failed} total={total} cancelled={result.cancelled}"
        )
        return result
