from datetime import datetime
from inventory_recon.extensions import db


class Borrowing(db.Model):
    __tablename__ = "borrowings"

    id = db.Column(db.Integer, primary_key=True)

    # students live in another module, only the id is needed here
    student_id = db.Column(db.Integer, nullable=False, index=True)
    book_id = db.Column(db.Integer, db.ForeignKey("books.id"), nullable=False, index=True)
    book_copy_id = db.Column(db.Integer, db.ForeignKey("book_copies.id"), nullable=True, index=True)

    borrowed_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    due_date = db.Column(db.DateTime, nullable=True)
    returned_at = db.Column(db.DateTime, nullable=True)

    status = db.Column(db.String(20), nullable=False, default="active")  # active/returned/lost

    book = db.relationship("Book", backref="borrowings")
    book_copy = db.relationship("BookCopy", backref="borrowings")
