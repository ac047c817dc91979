from __future__ import annotations

from ..extensions import db
from poultrydesk.time_utils import to_utc_z


class Budget(db.Model):
    """Planned spend for one flock in one calendar month."""
    __tablename__ = "budgets"
    __table_args__ = (
        db.UniqueConstraint("user_id", "flock_id", "year", "month", name="uq_budgets_flock_month"),
        db.Index("ix_budgets_user_period", "user_id", "year", "month"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    flock_id = db.Column(db.Integer, db.ForeignKey("flocks.id"), nullable=False, index=True)

    year = db.Column(db.Integer, nullable=False)
    month = db.Column(db.Integer, nullable=False)  # 1 = January
    amount_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    flock = db.relationship("Flock", backref=db.backref("budgets", lazy=True, cascade="all, delete-orphan"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "flock_id": self.flock_id,
            "year": self.year,
            "month": self.month,
            "amount_cents": self.amount_cents,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
