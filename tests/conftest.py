"""
Shared fixtures.

- ``store``: in-memory record store with read/write failure injection
- ``engine``: InventoryEngine over ``store`` with no delays
- ``app`` / ``client`` / ``admin_headers``: Flask app on in-memory SQLite
"""

import pytest
from flask_jwt_extended import create_access_token

from inventory_recon import create_app
from inventory_recon.config import TestConfig
from inventory_recon.extensions import db as _db
from inventory_recon.models.book import Book
from inventory_recon.models.book_copy import BookCopy
from inventory_recon.models.borrowing import Borrowing
from inventory_recon.services.errors import ScanReadError, StoreWriteError
from inventory_recon.services.inventory_service import InventoryEngine
from inventory_recon.services.records import BookRecord, BorrowingRecord, CopyRecord


class FakeRecordStore:
    def __init__(self):
        self.books = {}
        self.copies = {}
        self.borrowings = []
        self.failing_reads = set()   # collection names
        self.failing_writes = set()  # (collection, record id)
        self.writes = []
        self.code_probes = []
        self._next_copy_id = 1000

    # -- setup helpers -----------------------------------------------------

    def add_book(self, id, title, code=None, total=0, available=0, status="available"):
        self.books[id] = BookRecord(id=id, title=title, code=code, total_copies=total,
                                    available_copies=available, status=status)
        return self.books[id]

    def add_copy(self, id, book_id, number, status="available", tracking=None):
        self.copies[id] = CopyRecord(id=id, book_id=book_id, copy_number=number,
                                     tracking_code=tracking, status=status)
        return self.copies[id]

    def lend(self, copy_id, status="active"):
        c = self.copies[copy_id]
        b = BorrowingRecord(id=len(self.borrowings) + 1, book_id=c.book_id,
                            book_copy_id=copy_id, student_id=7, status=status)
        self.borrowings.append(b)
        return b

    def copies_of(self, book_id):
        return sorted((c for c in self.copies.values() if c.book_id == book_id), key=lambda c: c.copy_number)

    # -- gateway -----------------------------------------------------------

    def _check_read(self, name):
        if name in self.failing_reads:
            raise ScanReadError(name, RuntimeError("connection reset"))

    def _check_write(self, collection, record_id):
        if (collection, record_id) in self.failing_writes:
            raise StoreWriteError(collection, record_id, RuntimeError("deadlock victim"))

    def list_books(self, book_id=None):
        self._check_read("books")
        rows = sorted(self.books.values(), key=lambda b: (b.title, b.id))
        return [b.copy() for b in rows if book_id is None or b.id == book_id]

    def list_book_copies(self, book_id=None):
        self._check_read("book_copies")
        return [c.copy() for c in self.copies.values() if book_id is None or c.book_id == book_id]

    def list_active_borrowings(self, book_id=None):
        self._check_read("borrowings")
        return [b for b in self.borrowings
                if b.status == "active" and (book_id is None or b.book_id == book_id)]

    def find_book_by_code(self, code):
        self._check_read("books")
        self.code_probes.append(code)
        return next((b.copy() for b in self.books.values() if b.code == code), None)

    def find_copy_by_tracking_code(self, tracking_code):
        self._check_read("book_copies")
        return next((c.copy() for c in self.copies.values() if c.tracking_code == tracking_code), None)

    def update_book(self, book_id, fields):
        self._check_write("books", book_id)
        if book_id not in self.books:
            raise StoreWriteError("books", book_id, LookupError("missing"))
        for k, v in fields.items():
            setattr(self.books[book_id], k, v)
        self.writes.append(("update_book", book_id, dict(fields)))

    def update_book_copy(self, copy_id, fields):
        self._check_write("book_copies", copy_id)
        if copy_id not in self.copies:
            raise StoreWriteError("book_copies", copy_id, LookupError("missing"))
        for k, v in fields.items():
            setattr(self.copies[copy_id], k, v)
        self.writes.append(("update_book_copy", copy_id, dict(fields)))

    def create_book_copy(self, fields):
        self._check_write("book_copies", ("new", fields["book_id"], fields["copy_number"]))
        self._next_copy_id += 1
        c = CopyRecord(
            id=self._next_copy_id,
            book_id=fields["book_id"],
            copy_number=fields["copy_number"],
            tracking_code=fields.get("tracking_code"),
            status=fields.get("status", "available"),
            code=fields.get("code"),
            condition=fields.get("condition"),
        )
        self.copies[c.id] = c
        self.writes.append(("create_book_copy", c.id, dict(fields)))
        return c.copy()


@pytest.fixture
def store():
    return FakeRecordStore()


@pytest.fixture
def engine(store):
    return InventoryEngine(store, delay_ms=0, settle_seconds=0)


# ---------------------------------------------------------------------------
# Flask / SQLite
# ---------------------------------------------------------------------------

@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_headers(app):
    token = create_access_token(identity="1", additional_claims={"role": "admin"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_headers(app):
    token = create_access_token(identity="2", additional_claims={"role": "user"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def seed(app):
    """Insert rows through the ORM: seed.book(...), seed.copy(...), seed.loan(...)."""

    class _Seed:
        def book(self, title, code=None, total=0, available=0, status="available"):
            b = Book(title=title, code=code, total_copies=total, available_copies=available, status=status)
            _db.session.add(b)
            _db.session.commit()
            return b

        def copy(self, book, number, status="available", tracking=None):
            c = BookCopy(book_id=book.id, copy_number=number, status=status,
                         tracking_code=tracking, code=book.code)
            _db.session.add(c)
            _db.session.commit()
            return c

        def loan(self, copy, status="active"):
            b = Borrowing(student_id=7, book_id=copy.book_id, book_copy_id=copy.id, status=status)
            _db.session.add(b)
            _db.session.commit()
            return b

    return _Seed()
