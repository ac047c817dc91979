# Overview: Service-layer operations for flocks; encapsulates business logic and database work.

from __future__ import annotations

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..broadcast import publish_event
from ..extensions import db
from ..models import Flock, Sale, Expense, EggProduction
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_flock,
    ConflictError,
    ValidationError,
)
from .tenant_service import scoped_get
from poultrydesk.time_utils import utcnow, to_utc_z


FLOCK_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "breed",
        "status",
        "initial_bird_count",
        "bird_count",
        "age_weeks",
        "feed_intake",
    },
    required_on_create={"name", "initial_bird_count"},
    non_negative={"initial_bird_count", "bird_count", "age_weeks", "feed_intake"},
)

FLOCK_STATUSES = {"ACTIVE", "SOLD", "CULLED"}


def _check_status(patch: dict) -> None:
    if "status" in patch:
        patch["status"] = patch["status"].upper()
        if patch["status"] not in FLOCK_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(sorted(FLOCK_STATUSES))}")


def mortality_rate(initial_bird_count: int, bird_count: int) -> float:
    """Percentage of the starting flock that has been lost. 0 when nothing was placed."""
    if not initial_bird_count or initial_bird_count <= 0:
        return 0.0
    return (initial_bird_count - bird_count) / initial_bird_count * 100


def refresh_metrics(flock: Flock) -> Flock:
    """
    Recompute the cached figures on a flock (all-time, not period-bound).

    Does not commit; callers commit with their own change.
    """
    flock.mortality_rate = mortality_rate(flock.initial_bird_count or 0, flock.bird_count or 0)

    if flock.id is None:
        flock.revenue_cents = 0
        flock.expenses_cents = 0
        return flock

    flock.revenue_cents = int(
        db.session.query(func.coalesce(func.sum(Sale.amount_cents), 0))
        .filter(Sale.flock_id == flock.id, Sale.user_id == flock.user_id)
        .scalar() or 0
    )
    flock.expenses_cents = int(
        db.session.query(func.coalesce(func.sum(Expense.amount_cents), 0))
        .filter(Expense.flock_id == flock.id, Expense.user_id == flock.user_id)
        .scalar() or 0
    )
    return flock


def record_observation(flock: Flock, now=None) -> Flock:
    """
    Append the current head-count, mortality and feed intake to the series.

    The list is replaced, not mutated, so the JSON column is marked dirty.
    """
    entry = {
        "recorded_at": to_utc_z(now or utcnow()),
        "bird_count": flock.bird_count,
        "mortality_rate": round(flock.mortality_rate or 0.0, 2),
        "feed_intake": flock.feed_intake or 0.0,
    }
    flock.mortality_rate_data = [*(flock.mortality_rate_data or []), entry]
    return flock


def refresh_flock_metrics(flock_id: int, user_id: int) -> None:
    """Refresh and commit after a record under the flock changed."""
    flock = db.session.query(Flock).filter_by(id=flock_id, user_id=user_id).first()
    if flock is None:
        return
    refresh_metrics(flock)
    db.session.commit()


def recent_egg_counts(flock: Flock, limit: int) -> list[int]:
    """Eggs collected per record, newest first."""
    rows = db.session.query(EggProduction.eggs_collected).filter(
        EggProduction.flock_id == flock.id,
        EggProduction.user_id == flock.user_id,
    ).order_by(EggProduction.produced_at.desc()).limit(limit).all()
    return [int(r[0]) for r in rows]


def list_flocks(user_id: int, status: str | None = None) -> list[Flock]:
    query = db.session.query(Flock).filter(Flock.user_id == user_id)
    if status:
        query = query.filter(Flock.status == status.upper())
    return query.order_by(Flock.name.asc()).all()


def get_flock(user_id: int, flock_id: int) -> Flock:
    return scoped_get(Flock, flock_id, user_id, label="Flock")


def create_flock(user_id: int, payload: dict) -> Flock:
    patch = validate_payload(model=Flock, payload=payload, policy=FLOCK_POLICY, partial=False)
    _check_status(patch)
    # A new flock starts at its placed count unless told otherwise
    patch.setdefault("bird_count", patch["initial_bird_count"])
    enforce_rules_flock(patch)

    flock = Flock(user_id=user_id, **patch)
    refresh_metrics(flock)
    record_observation(flock)
    db.session.add(flock)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"Flock named '{patch['name']}' already exists")

    current_app.logger.info("Created flock id=%s user_id=%s", flock.id, user_id)
    publish_event("flock_added", "flock", flock.to_dict(), user_id=user_id)
    return flock


def update_flock(user_id: int, flock_id: int, payload: dict) -> Flock:
    flock = get_flock(user_id, flock_id)
    patch = validate_payload(model=Flock, payload=payload, policy=FLOCK_POLICY, partial=True)
    _check_status(patch)
    merged = {"bird_count": flock.bird_count, **patch}
    enforce_rules_flock(merged, initial_bird_count=flock.initial_bird_count)

    observed = any(
        k in patch and patch[k] != getattr(flock, k) for k in ("bird_count", "feed_intake")
    )
    for k, v in patch.items():
        setattr(flock, k, v)
    try:
        refresh_metrics(flock)
        if observed:
            record_observation(flock)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"Flock named '{patch.get('name')}' already exists")

    publish_event("flock_updated", "flock", flock.to_dict(), user_id=user_id)
    return flock


def delete_flock(user_id: int, flock_id: int) -> None:
    """Delete a flock and, by cascade, every record and snapshot under it."""
    flock = get_flock(user_id, flock_id)
    db.session.delete(flock)
    db.session.commit()
    current_app.logger.info("Deleted flock id=%s user_id=%s", flock_id, user_id)
    publish_event("flock_deleted", "flock", {"id": flock_id}, user_id=user_id)
