from __future__ import annotations

from inventory_recon.models.borrowing import Borrowing


class BorrowingRepo:
    @staticmethod
    def list_active(book_id: int | None = None):
        q = Borrowing.query.filter(Borrowing.status == "active")
        if book_id is not None:
            q = q.filter(Borrowing.book_id == book_id)
        return q.order_by(Borrowing.id).all()
