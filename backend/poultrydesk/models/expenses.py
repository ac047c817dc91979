from __future__ import annotations

from ..extensions import db
from poultrydesk.time_utils import to_utc_z


class Expense(db.Model):
    """Operating cost booked against a flock (feed, medication, labour, ...)."""
    __tablename__ = "expenses"
    __table_args__ = (
        db.Index("ix_expenses_user_flock_incurred_at", "user_id", "flock_id", "incurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    flock_id = db.Column(db.Integer, db.ForeignKey("flocks.id"), nullable=False, index=True)

    category = db.Column(db.String(50), nullable=False)
    description = db.Column(db.String(255), nullable=True)
    amount_cents = db.Column(db.Integer, nullable=False)

    incurred_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    flock = db.relationship("Flock", backref=db.backref("expenses", lazy=True, cascade="all, delete-orphan"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "flock_id": self.flock_id,
            "category": self.category,
            "description": self.description,
            "amount_cents": self.amount_cents,
            "incurred_at": to_utc_z(self.incurred_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
