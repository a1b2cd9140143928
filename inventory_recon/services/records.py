"""
Plain record values the engine works on.

The gateway converts ORM rows into these so the planner can simulate
corrective writes in memory without touching the SQLAlchemy session.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

# BookCopy.status
COPY_AVAILABLE = "available"
COPY_BORROWED = "borrowed"
COPY_DAMAGED = "damaged"
COPY_LOST = "lost"
COPY_STATUSES = (COPY_AVAILABLE, COPY_BORROWED, COPY_DAMAGED, COPY_LOST)
# statuses a copy may keep while nobody has it out
COPY_SETTLED_STATUSES = (COPY_AVAILABLE, COPY_DAMAGED, COPY_LOST)

# Book.status
BOOK_AVAILABLE = "available"
BOOK_UNAVAILABLE = "unavailable"

# Borrowing.status
BORROWING_ACTIVE = "active"


@dataclass
class BookRecord:
    id: Any
    title: str
    code: str | None = None
    total_copies: int = 0
    available_copies: int = 0
    status: str = BOOK_AVAILABLE
    author: str | None = None

    @property
    def has_code(self) -> bool:
        return bool((self.code or "").strip())

    def copy(self) -> "BookRecord":
        return replace(self)


@dataclass
class CopyRecord:
    id: Any
    book_id: Any
    copy_number: int
    tracking_code: str | None = None
    status: str = COPY_AVAILABLE
    code: str | None = None
    condition: str | None = None

    def copy(self) -> "CopyRecord":
        return replace(self)


@dataclass(frozen=True)
class BorrowingRecord:
    id: Any
    book_id: Any
    book_copy_id: Any
    student_id: Any = None
    status: str = BORROWING_ACTIVE


def derive_book_status(actual_copies: int, actual_available: int) -> str:
    if actual_copies == 0 or actual_available == 0:
        return BOOK_UNAVAILABLE
    return BOOK_AVAILABLE


@dataclass
class InventorySnapshot:
    """Books, their copies and the set of copy ids currently out on loan."""

    books: list[BookRecord]
    copies_by_book: dict[Any, list[CopyRecord]]
    out_copy_ids: set[Any] = field(default_factory=set)
    active_borrowings: int = 0

    @classmethod
    def build(cls, books, copies, borrowings) -> "InventorySnapshot":
        copies_by_book: dict[Any, list[CopyRecord]] = {}
        for c in copies:
            copies_by_book.setdefault(c.book_id, []).append(c)

        out = {b.book_copy_id for b in borrowings
               if b.status == BORROWING_ACTIVE and b.book_copy_id is not None}

        active = sum(1 for b in borrowings if b.status == BORROWING_ACTIVE)
        return cls(books=list(books), copies_by_book=copies_by_book,
                   out_copy_ids=out, active_borrowings=active)

    def copies_for(self, book_id) -> list[CopyRecord]:
        return self.copies_by_book.get(book_id, [])

    @property
    def total_copy_records(self) -> int:
        return sum(len(v) for v in self.copies_by_book.values())

    def is_out(self, copy: CopyRecord) -> bool:
        return copy.id in self.out_copy_ids

    def count_available(self, book_id) -> int:
        return sum(
            1 for c in self.copies_for(book_id)
            if c.status == COPY_AVAILABLE and c.id not in self.out_copy_ids
        )

    def clone(self) -> "InventorySnapshot":
        """Deep enough copy for in-memory planning."""
        return InventorySnapshot(
            books=[b.copy() for b in self.books],
            copies_by_book={k: [c.copy() for c in v] for k, v in self.copies_by_book.items()},
            out_copy_ids=set(self.out_copy_ids),
            active_borrowings=self.active_borrowings,
        )
