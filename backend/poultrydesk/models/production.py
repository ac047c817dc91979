from __future__ import annotations

from ..extensions import db
from poultrydesk.time_utils import to_utc_z


class EggProduction(db.Model):
    """Daily egg collection for a flock."""
    __tablename__ = "egg_productions"
    __table_args__ = (
        db.Index("ix_egg_productions_user_flock_produced_at", "user_id", "flock_id", "produced_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    flock_id = db.Column(db.Integer, db.ForeignKey("flocks.id"), nullable=False, index=True)

    eggs_collected = db.Column(db.Integer, nullable=False)
    price_per_unit_cents = db.Column(db.Integer, nullable=False, default=0)

    produced_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    flock = db.relationship("Flock", backref=db.backref("egg_productions", lazy=True, cascade="all, delete-orphan"))

    @property
    def total_revenue_cents(self) -> int:
        return (self.eggs_collected or 0) * (self.price_per_unit_cents or 0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "flock_id": self.flock_id,
            "eggs_collected": self.eggs_collected,
            "price_per_unit_cents": self.price_per_unit_cents,
            "total_revenue_cents": self.total_revenue_cents,
            "produced_at": to_utc_z(self.produced_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
