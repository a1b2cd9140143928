"""
Repair planner.

Turns a scan snapshot into an ordered list of corrective writes for one
repair scope. Nothing here writes to the store; the only store access is
the code allocator's collision probe (and the tracking-code probe).

Phases run against a private clone of the snapshot and apply their own
operations to it, so "all" yields one internally consistent plan:

    missing_copies -> mismatched_counts -> status_issues -> book_codes -> tracking_codes
"""
from __future__ import annotations

import logging
import random
from collections import defaultdict
from dataclasses import dataclass, field

from inventory_recon.services.code_allocator import CodeAllocator, random_suffix
from inventory_recon.services.errors import BookNotFoundError, PlanStateError
from inventory_recon.services.records import (
    COPY_AVAILABLE,
    COPY_SETTLED_STATUSES,
    CopyRecord,
    InventorySnapshot,
    derive_book_status,
)

logger = logging.getLogger(__name__)

MISSING_COPIES = "missing_copies"
MISMATCHED_COUNTS = "mismatched_counts"
STATUS_ISSUES = "status_issues"
BOOK_CODES = "book_codes"
TRACKING_CODES = "tracking_codes"
ALL = "all"
SINGLE_BOOK = "single_book"

PHASES = (MISSING_COPIES, MISMATCHED_COUNTS, STATUS_ISSUES, BOOK_CODES, TRACKING_CODES)
SCOPES = PHASES + (ALL, SINGLE_BOOK)

# copy numbers probed while filling gaps
COPY_NUMBER_LIMIT = 1000


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CreateCopy:
    book_id: object
    copy_number: int
    tracking_code: str
    code: str | None = None
    status: str = COPY_AVAILABLE
    condition: str = "good"

    kind = "create_copy"

    def fields(self) -> dict:
        return {
            "book_id": self.book_id,
            "copy_number": self.copy_number,
            "code": self.code,
            "tracking_code": self.tracking_code,
            "status": self.status,
            "condition": self.condition,
        }

    def apply(self, store):
        return store.create_book_copy(self.fields())

    def describe(self) -> str:
        return f"Create copy #{self.copy_number} ({self.tracking_code}) for book #{self.book_id}"


@dataclass(frozen=True)
class SetCopyStatus:
    copy_id: object
    book_id: object
    status: str
    previous: str | None = None

    kind = "set_copy_status"

    def apply(self, store):
        return store.update_book_copy(self.copy_id, {"status": self.status})

    def describe(self) -> str:
        return f"Set copy #{self.copy_id} status {self.previous!r} -> {self.status!r}"


@dataclass(frozen=True)
class SetBookCounters:
    book_id: object
    total_copies: int
    available_copies: int
    status: str | None = None

    kind = "set_book_counters"

    def __post_init__(self):
        if self.total_copies < 0 or self.available_copies < 0:
            raise PlanStateError(
                f"negative counters for book #{self.book_id}: "
                f"total={self.total_copies} available={self.available_copies}"
            )
        if self.available_copies > self.total_copies:
            raise PlanStateError(
                f"available_copies > total_copies for book #{self.book_id}: "
                f"{self.available_copies} > {self.total_copies}"
            )

    def fields(self) -> dict:
        out = {"total_copies": self.total_copies, "available_copies": self.available_copies}
        if self.status is not None:
            out["status"] = self.status
        return out

    def apply(self, store):
        return store.update_book(self.book_id, self.fields())

    def describe(self) -> str:
        text = f"Set book #{self.book_id} counters total={self.total_copies} available={self.available_copies}"
        if self.status is not None:
            text += f" status={self.status}"
        return text


@dataclass(frozen=True)
class AssignCode:
    book_id: object
    code: str

    kind = "assign_code"

    def apply(self, store):
        return store.update_book(self.book_id, {"code": self.code})

    def describe(self) -> str:
        return f"Assign code {self.code} to book #{self.book_id}"


@dataclass(frozen=True)
class SetTrackingCode:
    copy_id: object
    book_id: object
    tracking_code: str
    previous: str | None = None

    kind = "set_tracking_code"

    def apply(self, store):
        return store.update_book_copy(self.copy_id, {"tracking_code": self.tracking_code})

    def describe(self) -> str:
        return f"Relabel copy #{self.copy_id} {self.previous} -> {self.tracking_code}"


OPERATION_TYPES = (CreateCopy, SetCopyStatus, SetBookCounters, AssignCode, SetTrackingCode)


@dataclass
class RepairPlan:
    scope: str
    operations: list = field(default_factory=list)
    book_id: object = None

    def __len__(self):
        return len(self.operations)

    def __iter__(self):
        return iter(self.operations)

    @property
    def is_empty(self) -> bool:
        return not self.operations

    def of_kind(self, op_type) -> list:
        return [op for op in self.operations if isinstance(op, op_type)]

    def summary(self) -> dict:
        counts = defaultdict(int)
        for op in self.operations:
            counts[op.kind] += 1
        return dict(counts)


# ---------------------------------------------------------------------------
# Planner
# ---------------------------------------------------------------------------

class RepairPlanner:
    def __init__(self, store, copy_number_limit: int = COPY_NUMBER_LIMIT,
                 code_probe_limit: int = 999, rng: random.Random | None = None):
        self.store = store
        self.copy_number_limit = copy_number_limit
        self.code_probe_limit = code_probe_limit
        self.rng = rng

    def plan(self, scope: str, snapshot: InventorySnapshot, book_id=None) -> RepairPlan:
        if scope not in SCOPES:
            raise PlanStateError(f"Unknown repair scope: {scope!r}")

        state = snapshot.clone()
        if scope == SINGLE_BOOK:
            if book_id is None:
                raise PlanStateError("single_book repair needs a book id")
            state.books = [b for b in state.books if b.id == book_id]
            if not state.books:
                raise BookNotFoundError(book_id)

        phases = PHASES if scope in (ALL, SINGLE_BOOK) else (scope,)

        allocator = CodeAllocator(self.store, probe_limit=self.code_probe_limit, rng=self.rng)
        for b in state.books:
            if b.has_code:
                allocator.reserve(b.code)

        ops: list = []
        for phase in phases:
            before = len(ops)
            getattr(self, f"_plan_{phase}")(state, allocator, ops)
            logger.info(f"[planner] scope={scope} phase={phase} operations={len(ops) - before}")

        return RepairPlan(scope=scope, operations=ops, book_id=book_id)

    # -- phases ------------------------------------------------------------

    def _book_code(self, book, allocator) -> str:
        return book.code if book.has_code else allocator.code_for(book)

    @staticmethod
    def _tracking_codes_in_use(state) -> set:
        return {c.tracking_code for copies in state.copies_by_book.values() for c in copies if c.tracking_code}

    def _plan_missing_copies(self, state, allocator, ops):
        in_use = self._tracking_codes_in_use(state)

        for book in state.books:
            copies = state.copies_by_book.setdefault(book.id, [])
            needed = book.total_copies - len(copies)
            if needed <= 0:
                continue

            code = self._book_code(book, allocator)
            used = {c.copy_number for c in copies}

            numbers = []
            candidate = 1
            while len(numbers) < needed and candidate <= self.copy_number_limit:
                if candidate not in used:
                    numbers.append(candidate)
                candidate += 1

            overflow = needed - len(numbers)
            if overflow:
                logger.warning(
                    f"[planner] book #{book.id}: copy number search hit {self.copy_number_limit}, "
                    f"{overflow} copies get randomized tracking codes"
                )

            planned = []
            for n in numbers:
                label = f"{code}-{n:02d}"
                # the snapshot may cover one book only; the store knows every label
                if label in in_use or self.store.find_copy_by_tracking_code(label) is not None:
                    label = f"{code}-R{random_suffix(rng=self.rng)}"
                planned.append((n, label))
            top = max(used | set(numbers) | {self.copy_number_limit})
            for i in range(1, overflow + 1):
                planned.append((top + i, f"{code}-R{random_suffix(rng=self.rng)}"))

            for number, tracking in planned:
                op = CreateCopy(book_id=book.id, copy_number=number, tracking_code=tracking, code=code)
                ops.append(op)
                in_use.add(tracking)
                copies.append(CopyRecord(
                    id=("planned", book.id, number),
                    book_id=book.id,
                    copy_number=number,
                    tracking_code=tracking,
                    status=op.status,
                    code=code,
                    condition=op.condition,
                ))

    def _plan_mismatched_counts(self, state, allocator, ops):
        for book in state.books:
            total = len(state.copies_for(book.id))
            available = state.count_available(book.id)
            if book.total_copies == total and book.available_copies == available:
                continue
            ops.append(SetBookCounters(book_id=book.id, total_copies=total, available_copies=available))
            book.total_copies = total
            book.available_copies = available

    def _plan_status_issues(self, state, allocator, ops):
        for book in state.books:
            for c in state.copies_for(book.id):
                # a copy out on an active loan is never touched
                if c.status in COPY_SETTLED_STATUSES or state.is_out(c):
                    continue
                ops.append(SetCopyStatus(copy_id=c.id, book_id=book.id, status=COPY_AVAILABLE, previous=c.status))
                c.status = COPY_AVAILABLE

            total = len(state.copies_for(book.id))
            available = state.count_available(book.id)
            status = derive_book_status(total, available)
            if (book.total_copies, book.available_copies, book.status) == (total, available, status):
                continue
            ops.append(SetBookCounters(book_id=book.id, total_copies=total,
                                       available_copies=available, status=status))
            book.total_copies = total
            book.available_copies = available
            book.status = status

    def _plan_book_codes(self, state, allocator, ops):
        for book in state.books:
            if book.has_code:
                continue
            code = allocator.code_for(book)
            ops.append(AssignCode(book_id=book.id, code=code))
            book.code = code

    def _plan_tracking_codes(self, state, allocator, ops):
        in_use = self._tracking_codes_in_use(state)

        for book in state.books:
            groups = defaultdict(list)
            for c in state.copies_for(book.id):
                if c.tracking_code:
                    groups[c.tracking_code].append(c)

            for tracking, copies in sorted(groups.items()):
                if len(copies) < 2:
                    continue
                code = self._book_code(book, allocator)
                # lowest copy number keeps the label
                for c in sorted(copies, key=lambda x: x.copy_number)[1:]:
                    candidate = f"{code}-{c.copy_number:02d}"
                    if candidate in in_use or self.store.find_copy_by_tracking_code(candidate) is not None:
                        candidate = f"{code}-R{random_suffix(rng=self.rng)}"
                    ops.append(SetTrackingCode(copy_id=c.id, book_id=book.id,
                                               tracking_code=candidate, previous=tracking))
                    in_use.add(candidate)
                    c.tracking_code = candidate
