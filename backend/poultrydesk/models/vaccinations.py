from __future__ import annotations

from ..extensions import db
from poultrydesk.time_utils import to_utc_z


class Vaccination(db.Model):
    """
    A scheduled (or given) vaccine dose for a flock.

    reminder_sent_at is set once the owner has been reminded; moving the
    date clears it so the new date is reminded again.
    """
    __tablename__ = "vaccinations"
    __table_args__ = (
        db.Index("ix_vaccinations_user_flock_scheduled_at", "user_id", "flock_id", "scheduled_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    flock_id = db.Column(db.Integer, db.ForeignKey("flocks.id"), nullable=False, index=True)

    vaccine_name = db.Column(db.String(120), nullable=False)
    mode_of_administration = db.Column(db.String(64), nullable=False)  # drinking water, eye drop, injection
    status = db.Column(db.String(16), nullable=False, default="SCHEDULED")  # SCHEDULED, COMPLETED, MISSED
    period = db.Column(db.String(32), nullable=True)  # repeat hint, e.g. "monthly"

    scheduled_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    reminder_sent_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    flock = db.relationship("Flock", backref=db.backref("vaccinations", lazy=True, cascade="all, delete-orphan"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "flock_id": self.flock_id,
            "vaccine_name": self.vaccine_name,
            "mode_of_administration": self.mode_of_administration,
            "status": self.status,
            "period": self.period,
            "scheduled_at": to_utc_z(self.scheduled_at),
            "reminder_sent_at": to_utc_z(self.reminder_sent_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
