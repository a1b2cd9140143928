from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from inventory_recon.extensions import db
from inventory_recon.models.book_copy import BookCopy
from inventory_recon.repositories.book_repo import BookRepo
from inventory_recon.repositories.book_copy_repo import BookCopyRepo
from inventory_recon.repositories.borrowing_repo import BorrowingRepo
from inventory_recon.services.errors import ScanReadError, StoreWriteError
from inventory_recon.services.records import BookRecord, BorrowingRecord, CopyRecord

logger = logging.getLogger(__name__)


def _book_record(b) -> BookRecord:
    return BookRecord(
        id=b.id,
        title=b.title or "",
        code=b.code,
        total_copies=b.total_copies or 0,
        available_copies=b.available_copies or 0,
        status=b.status,
        author=b.author,
    )


def _copy_record(c) -> CopyRecord:
    return CopyRecord(
        id=c.id,
        book_id=c.book_id,
        copy_number=c.copy_number,
        tracking_code=c.tracking_code,
        status=c.status,
        code=c.code,
        condition=c.condition,
    )


def _borrowing_record(b) -> BorrowingRecord:
    return BorrowingRecord(
        id=b.id,
        book_id=b.book_id,
        book_copy_id=b.book_copy_id,
        student_id=b.student_id,
        status=b.status,
    )


class SqlRecordStore:
    """
    Record store gateway over the Flask-SQLAlchemy repositories.

    Reads hand back plain records. Every write commits on its own; a failed
    write rolls the session back and surfaces as StoreWriteError so the
    executor can count it and move on.
    """

    def list_books(self, book_id=None) -> list[BookRecord]:
        try:
            return [_book_record(b) for b in BookRepo.list_all(book_id)]
        except SQLAlchemyError as e:
            db.session.rollback()
            raise ScanReadError("books", e) from e

    def list_book_copies(self, book_id=None) -> list[CopyRecord]:
        try:
            return [_copy_record(c) for c in BookCopyRepo.list_all(book_id)]
        except SQLAlchemyError as e:
            db.session.rollback()
            raise ScanReadError("book_copies", e) from e

    def list_active_borrowings(self, book_id=None) -> list[BorrowingRecord]:
        try:
            return [_borrowing_record(b) for b in BorrowingRepo.list_active(book_id)]
        except SQLAlchemyError as e:
            db.session.rollback()
            raise ScanReadError("borrowings", e) from e

    def find_book_by_code(self, code: str) -> BookRecord | None:
        try:
            b = BookRepo.find_by_code(code)
        except SQLAlchemyError as e:
            db.session.rollback()
            raise ScanReadError("books", e) from e
        return _book_record(b) if b else None

    def find_copy_by_tracking_code(self, tracking_code: str) -> CopyRecord | None:
        try:
            c = BookCopyRepo.find_by_tracking_code(tracking_code)
        except SQLAlchemyError as e:
            db.session.rollback()
            raise ScanReadError("book_copies", e) from e
        return _copy_record(c) if c else None

    def update_book(self, book_id, fields: dict) -> None:
        try:
            BookRepo.update_fields(book_id, fields)
        except (SQLAlchemyError, LookupError) as e:
            db.session.rollback()
            raise StoreWriteError("books", book_id, e) from e

    def update_book_copy(self, copy_id, fields: dict) -> None:
        try:
            BookCopyRepo.update_fields(copy_id, fields)
        except (SQLAlchemyError, LookupError) as e:
            db.session.rollback()
            raise StoreWriteError("book_copies", copy_id, e) from e

    def create_book_copy(self, fields: dict) -> CopyRecord:
        try:
            row = BookCopyRepo.create(BookCopy(**fields))
        except SQLAlchemyError as e:
            db.session.rollback()
            raise StoreWriteError("book_copies", None, e) from e
        logger.debug(f"[store] created copy #{row.id} ({row.tracking_code}) for book #{row.book_id}")
        return _copy_record(row)
