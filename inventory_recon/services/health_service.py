from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal

from inventory_recon.services.inventory_scanner import HEALTHY, ISSUE_TYPES, BookIssue
from inventory_recon.services.records import InventorySnapshot


@dataclass
class HealthReport:
    total_books: int
    total_copies_records: int
    active_borrowings: int
    counters: dict
    by_primary: dict
    problem_books: list = field(default_factory=list)
    health_score: int = 100

    @property
    def flagged_books(self) -> int:
        return len(self.problem_books)

    def to_dict(self) -> dict:
        return {
            "summary": {
                "total_books": self.total_books,
                "total_copies_records": self.total_copies_records,
                "active_borrowings": self.active_borrowings,
                "flagged_books": self.flagged_books,
                "issues": dict(self.counters),
                "by_primary": dict(self.by_primary),
                "health_score": self.health_score,
            },
            "problem_books": [p.to_dict() for p in self.problem_books],
        }


def health_score(total_books: int, flagged_books: int) -> int:
    if total_books == 0:
        return 100
    # half up, not banker's rounding: 5 of 8 healthy is 63
    score = Decimal(total_books - flagged_books) * 100 / Decimal(total_books)
    return int(score.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def aggregate(issues: list[BookIssue], snapshot: InventorySnapshot | None = None) -> HealthReport:
    """Reduce per-book classifications into counters, problem list and score."""
    counters = {t: 0 for t in ISSUE_TYPES}
    by_primary = {t: 0 for t in (HEALTHY,) + ISSUE_TYPES}

    for issue in issues:
        for flag in issue.flags:
            if flag not in counters:
                raise ValueError(f"unknown issue flag {flag!r} on book #{issue.book_id}")
            counters[flag] += 1
        by_primary[issue.issue_type] += 1

    problems = sorted(
        (i for i in issues if not i.is_healthy),
        key=lambda i: ((i.title or "").lower(), i.book_id),
    )

    return HealthReport(
        total_books=len(issues),
        total_copies_records=snapshot.total_copy_records if snapshot else sum(i.actual_copies for i in issues),
        active_borrowings=snapshot.active_borrowings if snapshot else 0,
        counters=counters,
        by_primary=by_primary,
        problem_books=problems,
        health_score=health_score(len(issues), len(problems)),
    )
