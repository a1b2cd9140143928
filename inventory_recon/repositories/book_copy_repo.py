from __future__ import annotations

from inventory_recon.models.book_copy import BookCopy
from inventory_recon.extensions import db


class BookCopyRepo:
    @staticmethod
    def list_all(book_id: int | None = None):
        q = BookCopy.query
        if book_id is not None:
            q = q.filter(BookCopy.book_id == book_id)
        return q.order_by(BookCopy.book_id, BookCopy.copy_number).all()

    @staticmethod
    def get(copy_id: int):
        return db.session.get(BookCopy, copy_id)

    @staticmethod
    def find_by_tracking_code(tracking_code: str):
        return BookCopy.query.filter_by(tracking_code=tracking_code).first()

    @staticmethod
    def create(copy: BookCopy):
        db.session.add(copy)
        db.session.commit()
        return copy

    @staticmethod
    def update_fields(copy_id: int, fields: dict):
        copy = BookCopyRepo.get(copy_id)
        if not copy:
            raise LookupError(f"book copy #{copy_id} not found")
        for k, v in fields.items():
            setattr(copy, k, v)
        db.session.commit()
        return copy
