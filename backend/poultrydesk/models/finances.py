from __future__ import annotations

from ..extensions import db
from poultrydesk.time_utils import to_utc_z


class FlockFinancialData(db.Model):
    """
    Materialized financial snapshot for one (flock, user, period_start).

    WHY: Period roll-ups are recomputed on request and stored so dashboards
    and reports can read them back without re-aggregating.

    INVARIANT: at most one row per (flock_id, user_id, period_start).
    Writers upsert against uq_flock_financial_period; the last writer wins.
    """
    __tablename__ = "flock_financial_data"
    __table_args__ = (
        db.UniqueConstraint("flock_id", "user_id", "period_start", name="uq_flock_financial_period"),
        db.Index("ix_flock_financial_user_period", "user_id", "period_start"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    flock_id = db.Column(db.Integer, db.ForeignKey("flocks.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    period_start = db.Column(db.DateTime(timezone=True), nullable=False)
    period_end = db.Column(db.DateTime(timezone=True), nullable=False)

    total_revenue_cents = db.Column(db.Integer, nullable=False, default=0)
    total_expenses_cents = db.Column(db.Integer, nullable=False, default=0)
    net_profit_cents = db.Column(db.Integer, nullable=False, default=0)
    # Percentages; NULL when revenue is zero (undefined)
    profit_margin = db.Column(db.Float, nullable=True)
    expense_ratio = db.Column(db.Float, nullable=True)
    # NULL when nothing was sold in the period
    cost_per_unit_cents = db.Column(db.Float, nullable=True)
    inventory_cost_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    flock = db.relationship(
        "Flock",
        backref=db.backref("financial_snapshots", lazy=True, cascade="all, delete-orphan"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "flock_id": self.flock_id,
            "user_id": self.user_id,
            "period_start": to_utc_z(self.period_start),
            "period_end": to_utc_z(self.period_end),
            "total_revenue_cents": self.total_revenue_cents,
            "total_expenses_cents": self.total_expenses_cents,
            "net_profit_cents": self.net_profit_cents,
            "profit_margin": self.profit_margin,
            "cost_per_unit_cents": self.cost_per_unit_cents,
            "expense_ratio": self.expense_ratio,
            "inventory_cost_cents": self.inventory_cost_cents,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
