# Overview: Vaccination reminders; notifies owners of doses coming up soon.

from __future__ import annotations

from datetime import datetime, timedelta

from flask import current_app

from ..broadcast import publish_event
from ..extensions import db
from ..models import Vaccination, Flock
from .notification_service import notify
from poultrydesk.time_utils import utcnow


def due_vaccinations(now: datetime, lead_days: int, user_id: int | None = None) -> list[Vaccination]:
    """SCHEDULED doses in [now, now + lead_days) not yet reminded, soonest first."""
    query = db.session.query(Vaccination).filter(
        Vaccination.status == "SCHEDULED",
        Vaccination.reminder_sent_at.is_(None),
        Vaccination.scheduled_at >= now,
        Vaccination.scheduled_at < now + timedelta(days=lead_days),
    )
    if user_id is not None:
        query = query.filter(Vaccination.user_id == user_id)
    return query.order_by(Vaccination.scheduled_at.asc(), Vaccination.id.asc()).all()


def send_due_reminders(now: datetime | None = None, lead_days: int | None = None,
                       user_id: int | None = None) -> int:
    """
    Remind each owner once per scheduled dose. Returns how many were sent.

    Each reminder is stored as a notification and also published as a
    `vaccination_reminder` event on the owner's live channel.
    """
    now = now or utcnow()
    if lead_days is None:
        lead_days = current_app.config.get("VACCINATION_REMINDER_DAYS", 3)

    sent = 0
    for vaccination in due_vaccinations(now, lead_days, user_id=user_id):
        flock = db.session.get(Flock, vaccination.flock_id)
        flock_name = flock.name if flock is not None else f"flock {vaccination.flock_id}"
        due = vaccination.scheduled_at.strftime("%Y-%m-%d")

        vaccination.reminder_sent_at = now
        notify(
            vaccination.user_id,
            "Vaccination Reminder",
            f"{vaccination.vaccine_name} for {flock_name} is due on {due}.",
            type="warning",
            url="/vaccinations",
        )
        publish_event(
            "vaccination_reminder",
            "vaccination",
            {"vaccination_name": vaccination.vaccine_name, "vaccination_date": due, "flock_name": flock_name},
            user_id=vaccination.user_id,
        )
        sent += 1

    current_app.logger.info("Sent %s vaccination reminders", sent)
    return sent
