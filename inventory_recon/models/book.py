from datetime import datetime
from inventory_recon.extensions import db


class Book(db.Model):
    __tablename__ = "books"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False, index=True)
    author = db.Column(db.String(200), nullable=True, index=True)

    # human-readable catalog code, e.g. "ATL" / "ATL001"
    code = db.Column(db.String(32), unique=True, nullable=True, index=True)

    total_copies = db.Column(db.Integer, nullable=False, default=0)
    available_copies = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(20), nullable=False, default="available")  # available/unavailable

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
