from __future__ import annotations

from ..extensions import db
from poultrydesk.time_utils import to_utc_z


class Sale(db.Model):
    """
    Sale booked against a flock (eggs, culled birds, manure, ...).

    amount_cents is the booked revenue; quantity feeds cost-per-unit-sold.
    """
    __tablename__ = "sales"
    __table_args__ = (
        # Composite index for tenant-scoped range scans
        db.Index("ix_sales_user_flock_sold_at", "user_id", "flock_id", "sold_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    flock_id = db.Column(db.Integer, db.ForeignKey("flocks.id"), nullable=False, index=True)

    # Human-readable reference (e.g., "REF-7-20260105101502-0042")
    ref_no = db.Column(db.String(64), nullable=False, unique=True)

    product = db.Column(db.String(100), nullable=False)
    category = db.Column(db.String(50), nullable=False)  # e.g. Eggs, Birds, Manure
    description = db.Column(db.String(255), nullable=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    unit_price_cents = db.Column(db.Integer, nullable=False, default=0)
    amount_cents = db.Column(db.Integer, nullable=False)

    sold_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    flock = db.relationship("Flock", backref=db.backref("sales", lazy=True, cascade="all, delete-orphan"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "flock_id": self.flock_id,
            "ref_no": self.ref_no,
            "product": self.product,
            "category": self.category,
            "description": self.description,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "amount_cents": self.amount_cents,
            "sold_at": to_utc_z(self.sold_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
