from datetime import datetime
from inventory_recon.extensions import db


class BookCopy(db.Model):
    __tablename__ = "book_copies"
    __table_args__ = (
        db.UniqueConstraint("book_id", "copy_number", name="uq_book_copies_book_copy_number"),
    )

    id = db.Column(db.Integer, primary_key=True)
    book_id = db.Column(db.Integer, db.ForeignKey("books.id"), nullable=False, index=True)

    copy_number = db.Column(db.Integer, nullable=False)
    code = db.Column(db.String(32), nullable=True)

    # legacy rows may share a tracking code, so no unique constraint here
    tracking_code = db.Column(db.String(64), nullable=True, index=True)

    status = db.Column(db.String(20), nullable=False, default="available")  # available/borrowed/damaged/lost
    condition = db.Column(db.String(50), nullable=True, default="good")

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    book = db.relationship("Book", backref="copies")
