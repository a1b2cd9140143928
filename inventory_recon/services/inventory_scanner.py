"""
Inventory scanner.

Loads books, copies and active borrowings and classifies every book
against the aggregate/detail invariants:

    total_copies     == number of copies
    available_copies == copies that read "available" and are not currently out
    status           == "unavailable" iff there are no copies or none available
"""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field

from inventory_recon.services.records import (
    COPY_SETTLED_STATUSES,
    BookRecord,
    InventorySnapshot,
    derive_book_status,
)

logger = logging.getLogger(__name__)

HEALTHY = "healthy"
NO_COPIES = "no_copies"
MISMATCHED_COUNTS = "mismatched_counts"
NO_BOOK_CODE = "no_book_code"
DUPLICATE_TRACKING = "duplicate_tracking"
STATUS_ISSUE = "status_issue"

# precedence for the single bucket a book is reported under
ISSUE_TYPES = (NO_COPIES, MISMATCHED_COUNTS, STATUS_ISSUE, DUPLICATE_TRACKING, NO_BOOK_CODE)


@dataclass
class BookIssue:
    book_id: object
    title: str
    code: str | None
    total_copies: int
    available_copies: int
    status: str
    actual_copies: int
    actual_available: int
    derived_status: str
    flags: tuple = ()
    recommendations: list = field(default_factory=list)
    stray_copy_ids: tuple = ()
    duplicate_tracking_codes: tuple = ()

    @property
    def issue_type(self) -> str:
        for t in ISSUE_TYPES:
            if t in self.flags:
                return t
        return HEALTHY

    @property
    def is_healthy(self) -> bool:
        return not self.flags

    def has(self, flag: str) -> bool:
        return flag in self.flags

    def to_dict(self) -> dict:
        return {
            "id": self.book_id,
            "title": self.title,
            "book_code": self.code,
            "total_copies": self.total_copies,
            "available_copies": self.available_copies,
            "status": self.status,
            "actual_copies": self.actual_copies,
            "actual_available": self.actual_available,
            "derived_status": self.derived_status,
            "issue_type": self.issue_type,
            "flags": list(self.flags),
            "recommendations": list(self.recommendations),
        }


def classify_book(book: BookRecord, snapshot: InventorySnapshot) -> BookIssue:
    copies = snapshot.copies_for(book.id)
    actual_copies = len(copies)
    actual_available = snapshot.count_available(book.id)
    derived = derive_book_status(actual_copies, actual_available)

    flags = []
    recs = []

    if book.total_copies > 0 and actual_copies == 0:
        flags.append(NO_COPIES)
        recs.append("Create missing book copies")
    elif book.total_copies != actual_copies or book.available_copies != actual_available:
        flags.append(MISMATCHED_COUNTS)
        if book.total_copies != actual_copies:
            recs.append(f"Expected {book.total_copies} copies, found {actual_copies}")
        if book.available_copies != actual_available:
            recs.append(
                f"Available count mismatch: DB says {book.available_copies}, "
                f"actual available: {actual_available}"
            )

    if not book.has_code:
        flags.append(NO_BOOK_CODE)
        recs.append("Generate book code")

    counts = Counter(c.tracking_code for c in copies if c.tracking_code)
    dupes = tuple(sorted(code for code, n in counts.items() if n > 1))
    if dupes:
        flags.append(DUPLICATE_TRACKING)
        recs.append(f"Fix duplicate tracking codes: {', '.join(dupes)}")

    stray = tuple(
        c.id for c in copies
        if c.status not in COPY_SETTLED_STATUSES and not snapshot.is_out(c)
    )
    # available-count drift is already reported as mismatched_counts;
    # an empty catalogue entry (0 declared, 0 on the shelf) keeps whatever flag it has
    empty = book.total_copies == 0 and actual_copies == 0
    status_drift = not empty and book.status != derived
    if stray or status_drift:
        flags.append(STATUS_ISSUE)
        if stray:
            recs.append(f"{len(stray)} copies marked unavailable without an active borrowing")
        if status_drift:
            recs.append(f"Book status should be '{derived}', found '{book.status}'")

    return BookIssue(
        book_id=book.id,
        title=book.title,
        code=book.code,
        total_copies=book.total_copies,
        available_copies=book.available_copies,
        status=book.status,
        actual_copies=actual_copies,
        actual_available=actual_available,
        derived_status=derived,
        flags=tuple(flags),
        recommendations=recs,
        stray_copy_ids=stray,
        duplicate_tracking_codes=dupes,
    )


def classify(snapshot: InventorySnapshot) -> list[BookIssue]:
    return [classify_book(b, snapshot) for b in snapshot.books]


class InventoryScanner:
    """Reads the three collections through the record store and classifies them."""

    def __init__(self, store):
        self.store = store

    def load(self, book_id=None) -> InventorySnapshot:
        # any ScanReadError aborts here: no partial snapshot
        books = self.store.list_books(book_id)
        copies = self.store.list_book_copies(book_id)
        borrowings = self.store.list_active_borrowings(book_id)
        snapshot = InventorySnapshot.build(books, copies, borrowings)
        logger.info(
            f"[scanner] loaded books={len(snapshot.books)} copies={snapshot.total_copy_records} "
            f"active_borrowings={snapshot.active_borrowings}"
        )
        return snapshot

    def scan(self, book_id=None) -> tuple[InventorySnapshot, list[BookIssue]]:
        snapshot = self.load(book_id)
        return snapshot, classify(snapshot)
