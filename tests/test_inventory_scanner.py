"""
Tests for services/inventory_scanner.py -- per-book issue classification.
"""

import pytest

from inventory_recon.services.errors import ScanReadError
from inventory_recon.services.inventory_scanner import (
    DUPLICATE_TRACKING,
    HEALTHY,
    MISMATCHED_COUNTS,
    NO_BOOK_CODE,
    NO_COPIES,
    STATUS_ISSUE,
    InventoryScanner,
)


def _scan_one(store, book_id):
    _snapshot, issues = InventoryScanner(store).scan()
    return next(i for i in issues if i.book_id == book_id)


class TestClassification:

    def test_consistent_book_is_healthy(self, store):
        store.add_book(1, "Blue River", code="BLU", total=2, available=2)
        store.add_copy(10, 1, 1, tracking="BLU-01")
        store.add_copy(11, 1, 2, tracking="BLU-02")

        issue = _scan_one(store, 1)
        assert issue.issue_type == HEALTHY
        assert issue.flags == ()
        assert issue.recommendations == []

    def test_declared_copies_but_none_exist(self, store):
        store.add_book(1, "Blue River", code="BLU", total=3, available=3)

        issue = _scan_one(store, 1)
        assert issue.issue_type == NO_COPIES
        assert MISMATCHED_COUNTS not in issue.flags
        assert issue.actual_copies == 0

    def test_zero_declared_zero_actual_is_not_a_mismatch(self, store):
        store.add_book(1, "Empty Shelf", code="EMP", total=0, available=0, status="unavailable")

        issue = _scan_one(store, 1)
        assert issue.is_healthy

    def test_new_empty_book_with_default_status_is_healthy(self, store):
        store.add_book(1, "Empty Shelf", code="EMP", total=0, available=0)

        issue = _scan_one(store, 1)
        assert issue.flags == ()
        assert issue.is_healthy

    def test_total_mismatch(self, store):
        store.add_book(1, "Blue River", code="BLU", total=4, available=1)
        store.add_copy(10, 1, 1, tracking="BLU-01")

        issue = _scan_one(store, 1)
        assert issue.issue_type == MISMATCHED_COUNTS
        assert "Expected 4 copies, found 1" in issue.recommendations

    def test_copy_on_active_loan_is_not_available(self, store):
        store.add_book(1, "Blue River", code="BLU", total=2, available=2)
        store.add_copy(10, 1, 1, tracking="BLU-01")
        store.add_copy(11, 1, 2, tracking="BLU-02")
        store.lend(11)

        issue = _scan_one(store, 1)
        assert issue.actual_available == 1
        assert issue.has(MISMATCHED_COUNTS)

    def test_returned_loan_does_not_count_as_out(self, store):
        store.add_book(1, "Blue River", code="BLU", total=1, available=1)
        store.add_copy(10, 1, 1, tracking="BLU-01")
        store.lend(10, status="returned")

        assert _scan_one(store, 1).is_healthy

    def test_borrowed_copy_with_active_loan_is_fine(self, store):
        store.add_book(1, "Blue River", code="BLU", total=2, available=1)
        store.add_copy(10, 1, 1, tracking="BLU-01")
        store.add_copy(11, 1, 2, status="borrowed", tracking="BLU-02")
        store.lend(11)

        assert _scan_one(store, 1).is_healthy

    def test_stray_borrowed_copy_is_a_status_issue(self, store):
        store.add_book(1, "Blue River", code="BLU", total=2, available=1)
        store.add_copy(10, 1, 1, tracking="BLU-01")
        store.add_copy(11, 1, 2, status="borrowed", tracking="BLU-02")

        issue = _scan_one(store, 1)
        assert issue.issue_type == STATUS_ISSUE
        assert issue.stray_copy_ids == (11,)

    def test_damaged_and_lost_copies_are_settled(self, store):
        store.add_book(1, "Blue River", code="BLU", total=3, available=1)
        store.add_copy(10, 1, 1, tracking="BLU-01")
        store.add_copy(11, 1, 2, status="damaged", tracking="BLU-02")
        store.add_copy(12, 1, 3, status="lost", tracking="BLU-03")

        assert _scan_one(store, 1).is_healthy

    def test_wrong_book_status_flag(self, store):
        store.add_book(1, "Blue River", code="BLU", total=1, available=0, status="available")
        store.add_copy(10, 1, 1, status="borrowed", tracking="BLU-01")
        store.lend(10)

        issue = _scan_one(store, 1)
        assert issue.derived_status == "unavailable"
        assert issue.flags == (STATUS_ISSUE,)

    @pytest.mark.parametrize("code", [None, "", "   "])
    def test_missing_code(self, store, code):
        store.add_book(1, "Blue River", code=code, total=0, available=0, status="unavailable")

        issue = _scan_one(store, 1)
        assert issue.flags == (NO_BOOK_CODE,)
        assert issue.issue_type == NO_BOOK_CODE

    def test_duplicate_tracking_codes(self, store):
        store.add_book(1, "Blue River", code="BLU", total=2, available=2)
        store.add_copy(10, 1, 1, tracking="BLU-01")
        store.add_copy(11, 1, 2, tracking="BLU-01")

        issue = _scan_one(store, 1)
        assert issue.issue_type == DUPLICATE_TRACKING
        assert issue.duplicate_tracking_codes == ("BLU-01",)

    def test_orthogonal_flags_and_primary_bucket(self, store):
        # Atlas of Kenya: 3 declared, copies #1 and #2 on the shelf, no code
        store.add_book(1, "Atlas of Kenya", code=None, total=3, available=3)
        store.add_copy(10, 1, 1)
        store.add_copy(11, 1, 2)

        issue = _scan_one(store, 1)
        assert set(issue.flags) == {NO_BOOK_CODE, MISMATCHED_COUNTS}
        assert issue.issue_type == MISMATCHED_COUNTS


class TestScanner:

    def test_read_failure_aborts_scan(self, store):
        store.add_book(1, "Blue River", code="BLU")
        store.failing_reads.add("borrowings")

        with pytest.raises(ScanReadError) as exc:
            InventoryScanner(store).scan()
        assert exc.value.collection == "borrowings"
        assert exc.value.code == "READ_FAILURE"

    def test_filtered_scan_only_loads_one_book(self, store):
        store.add_book(1, "Blue River", code="BLU")
        store.add_book(2, "Red Hill", code="RED", total=1, available=1)
        store.add_copy(20, 2, 1, tracking="RED-01")

        snapshot, issues = InventoryScanner(store).scan(book_id=2)
        assert [i.book_id for i in issues] == [2]
        assert snapshot.total_copy_records == 1

    def test_scan_is_read_only(self, store):
        store.add_book(1, "Blue River", total=5, available=5)
        InventoryScanner(store).scan()
        assert store.writes == []
