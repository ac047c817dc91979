# Overview: Service-layer operations for flock records (sales, expenses, egg production, vaccinations).

"""
Flock Records

Sales, expenses, egg production and vaccination records share one lifecycle:
validated against a ModelValidationPolicy, attached to a flock the
tenant owns, committed, then announced on the tenant's live channel.

Sales and expenses also feed the cached revenue/expense figures on the
flock, so those are refreshed after every change.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..broadcast import publish_event
from ..extensions import db
from ..models import Sale, Expense, EggProduction, Vaccination
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    validate_payload,
    enforce_rules_sale,
)
from .flock_service import refresh_flock_metrics
from .notification_service import notify
from .tenant_service import scoped_get, require_flock_owned
from poultrydesk.time_utils import utcnow, format_cents


class RecordError(Exception):
    """Raised when a record cannot be written."""
    pass


@dataclass(frozen=True)
class RecordKind:
    model: type
    label: str
    category: str  # live event category, also the event name prefix
    time_field: str
    policy: ModelValidationPolicy
    refreshes_flock: bool = False


SALES = RecordKind(
    model=Sale,
    label="Sale",
    category="sale",
    time_field="sold_at",
    policy=ModelValidationPolicy(
        writable_fields={
            "flock_id",
            "product",
            "category",
            "description",
            "quantity",
            "unit_price_cents",
            "amount_cents",
            "sold_at",
        },
        required_on_create={"flock_id", "product", "category"},
        non_negative={"quantity", "unit_price_cents", "amount_cents"},
    ),
    refreshes_flock=True,
)

EXPENSES = RecordKind(
    model=Expense,
    label="Expense",
    category="expense",
    time_field="incurred_at",
    policy=ModelValidationPolicy(
        writable_fields={"flock_id", "category", "description", "amount_cents", "incurred_at"},
        required_on_create={"flock_id", "category", "amount_cents"},
        non_negative={"amount_cents"},
    ),
    refreshes_flock=True,
)

EGG_PRODUCTION = RecordKind(
    model=EggProduction,
    label="Egg production record",
    category="egg_production",
    time_field="produced_at",
    policy=ModelValidationPolicy(
        writable_fields={"flock_id", "eggs_collected", "price_per_unit_cents", "produced_at"},
        required_on_create={"flock_id", "eggs_collected"},
        non_negative={"eggs_collected", "price_per_unit_cents"},
    ),
)

VACCINATIONS = RecordKind(
    model=Vaccination,
    label="Vaccination",
    category="vaccination",
    time_field="scheduled_at",
    policy=ModelValidationPolicy(
        writable_fields={
            "flock_id",
            "vaccine_name",
            "mode_of_administration",
            "status",
            "period",
            "scheduled_at",
        },
        required_on_create={"flock_id", "vaccine_name", "mode_of_administration", "scheduled_at"},
    ),
)

VACCINATION_STATUSES = {"SCHEDULED", "COMPLETED", "MISSED"}


def generate_ref_no(user_id: int, now: datetime | None = None) -> str:
    """REF-<user>-<yyyymmddHHMMSS>-<nnnn>"""
    stamp = (now or utcnow()).strftime("%Y%m%d%H%M%S")
    return f"REF-{user_id}-{stamp}-{secrets.randbelow(10000):04d}"


def _prepare_sale(patch: dict, existing: Sale | None = None) -> None:
    if existing is not None and "amount_cents" not in patch and (
        "quantity" in patch or "unit_price_cents" in patch
    ):
        patch.setdefault("quantity", existing.quantity)
        patch.setdefault("unit_price_cents", existing.unit_price_cents)
    enforce_rules_sale(patch)
    if existing is None and patch.get("amount_cents") is None:
        raise ValidationError("amount_cents is required (or quantity and unit_price_cents)")


def _prepare_vaccination(patch: dict, existing: Vaccination | None = None) -> None:
    if patch.get("status"):
        patch["status"] = patch["status"].upper()
        if patch["status"] not in VACCINATION_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(sorted(VACCINATION_STATUSES))}")
    # A new date needs a new reminder
    if existing is not None and "scheduled_at" in patch and patch["scheduled_at"] != existing.scheduled_at:
        patch["reminder_sent_at"] = None


def list_records(
    kind: RecordKind,
    user_id: int,
    *,
    flock_id: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list:
    model = kind.model
    time_col = getattr(model, kind.time_field)
    query = db.session.query(model).filter(model.user_id == user_id)
    if flock_id is not None:
        query = query.filter(model.flock_id == flock_id)
    if start is not None:
        query = query.filter(time_col >= start)
    if end is not None:
        query = query.filter(time_col < end)
    return query.order_by(time_col.desc(), model.id.desc()).all()


def get_record(kind: RecordKind, user_id: int, record_id: int):
    return scoped_get(kind.model, record_id, user_id, label=kind.label)


def create_record(kind: RecordKind, user_id: int, payload: dict):
    patch = validate_payload(model=kind.model, payload=payload, policy=kind.policy, partial=False)
    require_flock_owned(patch["flock_id"], user_id)
    if kind is SALES:
        _prepare_sale(patch)
    if kind is VACCINATIONS:
        _prepare_vaccination(patch)
    if patch.get(kind.time_field) is None:
        patch[kind.time_field] = utcnow()

    record = kind.model(user_id=user_id, **patch)
    if kind is SALES:
        record.ref_no = generate_ref_no(user_id)

    db.session.add(record)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        current_app.logger.warning("Failed to save %s: %s", kind.category, exc)
        raise RecordError(f"{kind.label} could not be saved")

    if kind.refreshes_flock:
        refresh_flock_metrics(record.flock_id, user_id)

    publish_event(f"{kind.category}_added", kind.category, record.to_dict(), user_id=user_id)
    if kind is EXPENSES:
        notify(
            user_id,
            "New Expense",
            f"{record.category} expense of {format_cents(record.amount_cents)} recorded.",
            url="/expenses",
        )
    return record


def update_record(kind: RecordKind, user_id: int, record_id: int, payload: dict):
    record = get_record(kind, user_id, record_id)
    patch = validate_payload(model=kind.model, payload=payload, policy=kind.policy, partial=True)
    if "flock_id" in patch:
        require_flock_owned(patch["flock_id"], user_id)
    if kind is SALES:
        _prepare_sale(patch, existing=record)
    if kind is VACCINATIONS:
        _prepare_vaccination(patch, existing=record)

    previous_flock_id = record.flock_id
    for k, v in patch.items():
        setattr(record, k, v)
    db.session.commit()

    if kind.refreshes_flock:
        refresh_flock_metrics(record.flock_id, user_id)
        if previous_flock_id != record.flock_id:
            refresh_flock_metrics(previous_flock_id, user_id)

    publish_event(f"{kind.category}_updated", kind.category, record.to_dict(), user_id=user_id)
    return record


def delete_record(kind: RecordKind, user_id: int, record_id: int) -> None:
    record = get_record(kind, user_id, record_id)
    flock_id = record.flock_id
    db.session.delete(record)
    db.session.commit()

    if kind.refreshes_flock:
        refresh_flock_metrics(flock_id, user_id)

    publish_event(f"{kind.category}_deleted", kind.category, {"id": record_id}, user_id=user_id)
