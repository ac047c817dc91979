from __future__ import annotations

from ..extensions import db
from poultrydesk.time_utils import to_utc_z


class InventoryItem(db.Model):
    """
    Stock held for a flock (feed bags, vaccines, litter).

    NOTE: This is a current snapshot, not a ledger. Its valuation
    (quantity * cost_per_unit_cents) is added to a flock's expenses for
    every period regardless of dates.
    """
    __tablename__ = "inventory_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    flock_id = db.Column(db.Integer, db.ForeignKey("flocks.id"), nullable=False, index=True)

    item_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    reorder_level = db.Column(db.Integer, nullable=False, default=0)
    cost_per_unit_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    flock = db.relationship("Flock", backref=db.backref("inventory_items", lazy=True, cascade="all, delete-orphan"))

    @property
    def value_cents(self) -> int:
        return (self.quantity or 0) * (self.cost_per_unit_cents or 0)

    @property
    def needs_reorder(self) -> bool:
        return (self.quantity or 0) <= (self.reorder_level or 0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "flock_id": self.flock_id,
            "item_name": self.item_name,
            "quantity": self.quantity,
            "reorder_level": self.reorder_level,
            "cost_per_unit_cents": self.cost_per_unit_cents,
            "value_cents": self.value_cents,
            "needs_reorder": self.needs_reorder,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
