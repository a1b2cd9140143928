from __future__ import annotations

from inventory_recon.models.book import Book
from inventory_recon.extensions import db


class BookRepo:
    @staticmethod
    def list_all(book_id: int | None = None):
        q = Book.query
        if book_id is not None:
            q = q.filter(Book.id == book_id)
        return q.order_by(Book.title, Book.id).all()

    @staticmethod
    def get(book_id: int):
        return db.session.get(Book, book_id)

    @staticmethod
    def find_by_code(code: str):
        return Book.query.filter_by(code=code).first()

    @staticmethod
    def update_fields(book_id: int, fields: dict):
        book = BookRepo.get(book_id)
        if not book:
            raise LookupError(f"book #{book_id} not found")
        for k, v in fields.items():
            setattr(book, k, v)
        db.session.commit()
        return book
