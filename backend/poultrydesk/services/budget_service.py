# Overview: Service-layer operations for monthly flock budgets and budget-vs-actual figures.

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..broadcast import publish_event
from ..extensions import db
from ..models import Budget
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ConflictError,
    ValidationError,
)
from .finance_service import total_booked_expenses
from .tenant_service import scoped_get, require_flock_owned
from poultrydesk.time_utils import utcnow


BUDGET_POLICY = ModelValidationPolicy(
    writable_fields={"flock_id", "year", "month", "amount_cents"},
    required_on_create={"flock_id", "year", "month", "amount_cents"},
    non_negative={"amount_cents"},
)

MIN_YEAR = 2000
MAX_YEAR = 2100


def _check_month_year(year: int | None, month: int | None) -> None:
    if month is not None and not 1 <= month <= 12:
        raise ValidationError("month must be between 1 and 12")
    if year is not None and not MIN_YEAR <= year <= MAX_YEAR:
        raise ValidationError(f"year must be between {MIN_YEAR} and {MAX_YEAR}")


def month_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    """[1st 00:00, 1st of next month 00:00)"""
    _check_month_year(year, month)
    start = datetime(year, month, 1)
    if month == 12:
        return start, datetime(year + 1, 1, 1)
    return start, datetime(year, month + 1, 1)


def list_budgets(
    user_id: int,
    *,
    flock_id: int | None = None,
    year: int | None = None,
    month: int | None = None,
) -> list[Budget]:
    query = db.session.query(Budget).filter(Budget.user_id == user_id)
    if flock_id is not None:
        query = query.filter(Budget.flock_id == flock_id)
    if year is not None:
        query = query.filter(Budget.year == year)
    if month is not None:
        query = query.filter(Budget.month == month)
    return query.order_by(Budget.year.desc(), Budget.month.desc(), Budget.flock_id.asc()).all()


def get_budget(user_id: int, budget_id: int) -> Budget:
    return scoped_get(Budget, budget_id, user_id, label="Budget")


def create_budget(user_id: int, payload: dict) -> Budget:
    patch = validate_payload(model=Budget, payload=payload, policy=BUDGET_POLICY, partial=False)
    _check_month_year(patch["year"], patch["month"])
    require_flock_owned(patch["flock_id"], user_id)

    budget = Budget(user_id=user_id, **patch)
    db.session.add(budget)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("A budget for this flock and month already exists")

    current_app.logger.info("Created budget id=%s user_id=%s flock_id=%s", budget.id, user_id, budget.flock_id)
    publish_event("budget_added", "budget", budget.to_dict(), user_id=user_id)
    return budget


def update_budget(user_id: int, budget_id: int, payload: dict) -> Budget:
    budget = get_budget(user_id, budget_id)
    patch = validate_payload(model=Budget, payload=payload, policy=BUDGET_POLICY, partial=True)
    _check_month_year(patch.get("year"), patch.get("month"))
    if "flock_id" in patch:
        require_flock_owned(patch["flock_id"], user_id)

    for k, v in patch.items():
        setattr(budget, k, v)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("A budget for this flock and month already exists")

    publish_event("budget_updated", "budget", budget.to_dict(), user_id=user_id)
    return budget


def delete_budget(user_id: int, budget_id: int) -> None:
    budget = get_budget(user_id, budget_id)
    db.session.delete(budget)
    db.session.commit()
    publish_event("budget_deleted", "budget", {"id": budget_id}, user_id=user_id)


def budget_vs_actual(user_id: int, year: int | None = None, month: int | None = None) -> dict:
    """
    Each budgeted flock for the month against what was actually booked.

    actual_cents counts expense records only; stock on hand is not spend.
    utilization is actual / budget * 100, None for a zero budget.
    """
    if year is None or month is None:
        now = utcnow()
        year, month = year or now.year, month or now.month
    start, end = month_bounds(year, month)

    budgets = list_budgets(user_id, year=year, month=month)
    actual = total_booked_expenses(user_id, start, end)

    rows = []
    for budget in budgets:
        spent = actual.get(budget.flock_id, 0)
        rows.append({
            "budget_id": budget.id,
            "flock_id": budget.flock_id,
            "budget_cents": budget.amount_cents,
            "actual_cents": spent,
            "remaining_cents": budget.amount_cents - spent,
            "utilization": (spent / budget.amount_cents * 100) if budget.amount_cents else None,
            "over_budget": spent > budget.amount_cents,
        })

    total_budget = sum(r["budget_cents"] for r in rows)
    total_actual = sum(r["actual_cents"] for r in rows)
    return {
        "year": year,
        "month": month,
        "flocks": rows,
        "total_budget_cents": total_budget,
        "total_actual_cents": total_actual,
        "total_remaining_cents": total_budget - total_actual,
    }
