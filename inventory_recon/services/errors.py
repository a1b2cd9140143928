"""
Typed errors for the reconciliation engine.

Every error carries a machine-readable ``code`` so controllers can answer
with a stable JSON payload instead of parsing messages.

    InventoryError
    +-- ScanReadError          READ_FAILURE        bulk listing failed, scan/plan aborted
    +-- StoreWriteError        WRITE_FAILURE       one corrective write failed, run continues
    +-- PlanStateError         PLAN_STATE          unknown scope, malformed operation
    |   +-- BookNotFoundError  BOOK_NOT_FOUND      single-book repair for a missing id
    +-- RepairInProgressError  REPAIR_IN_PROGRESS  a run is already executing
"""

from __future__ import annotations


class InventoryError(Exception):
    code = "INVENTORY_ERROR"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"success": False, "message": self.message, "code": self.code}


class ScanReadError(InventoryError):
    code = "READ_FAILURE"

    def __init__(self, collection: str, cause: Exception | None = None):
        self.collection = collection
        self.cause = cause
        super().__init__(f"Could not read {collection}: {cause}")


class StoreWriteError(InventoryError):
    code = "WRITE_FAILURE"

    def __init__(self, target: str, record_id=None, cause: Exception | None = None):
        self.target = target
        self.record_id = record_id
        self.cause = cause
        super().__init__(f"Write to {target} #{record_id} failed: {cause}")


class PlanStateError(InventoryError):
    code = "PLAN_STATE"


class BookNotFoundError(PlanStateError):
    code = "BOOK_NOT_FOUND"

    def __init__(self, book_id):
        self.book_id = book_id
        super().__init__(f"Book #{book_id} not found")


class RepairInProgressError(InventoryError):
    code = "REPAIR_IN_PROGRESS"

    def __init__(self, state: str):
        self.state = state
        super().__init__(f"A repair run is already in progress (state={state})")
