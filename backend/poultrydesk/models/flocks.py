from __future__ import annotations

from ..extensions import db
from poultrydesk.time_utils import to_utc_z


class Flock(db.Model):
    """
    A managed group of birds; the unit revenue and cost are booked against.

    Cached metrics (revenue_cents, expenses_cents, mortality_rate) are
    recomputed by flock_service.refresh_metrics on every write. Each write
    that changes the head-count or feed intake also appends one observation
    to mortality_rate_data.
    """
    __tablename__ = "flocks"
    __table_args__ = (
        db.UniqueConstraint("user_id", "name", name="uq_flocks_user_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    name = db.Column(db.String(120), nullable=False)
    breed = db.Column(db.String(120), nullable=True)
    status = db.Column(db.String(32), nullable=False, default="ACTIVE")  # ACTIVE, SOLD, CULLED

    initial_bird_count = db.Column(db.Integer, nullable=False, default=0)
    bird_count = db.Column(db.Integer, nullable=False, default=0)
    age_weeks = db.Column(db.Integer, nullable=False, default=0)
    feed_intake = db.Column(db.Float, nullable=False, default=0.0)  # kg per day

    # [{"recorded_at", "bird_count", "mortality_rate", "feed_intake"}, ...] oldest first
    mortality_rate_data = db.Column(db.JSON, nullable=False, default=list)

    # Derived
    revenue_cents = db.Column(db.Integer, nullable=False, default=0)
    expenses_cents = db.Column(db.Integer, nullable=False, default=0)
    mortality_rate = db.Column(db.Float, nullable=False, default=0.0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    owner = db.relationship("User", backref=db.backref("flocks", lazy=True, cascade="all, delete-orphan"))

    def __repr__(self) -> str:
        return f"<Flock id={self.id} name={self.name!r} user_id={self.user_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "breed": self.breed,
            "status": self.status,
            "initial_bird_count": self.initial_bird_count,
            "bird_count": self.bird_count,
            "age_weeks": self.age_weeks,
            "feed_intake": self.feed_intake,
            "revenue_cents": self.revenue_cents,
            "expenses_cents": self.expenses_cents,
            "mortality_rate": self.mortality_rate,
            "mortality_rate_data": list(self.mortality_rate_data or []),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
