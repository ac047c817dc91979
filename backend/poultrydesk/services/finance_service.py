# Overview: Service-layer operations for flock finances; per-tenant roll-ups and stored period snapshots.

"""
Flock Financial Aggregation

All figures are per flock, per tenant, over a half-open interval
[start, end). Amounts are integer cents; ratios are percentages.

- revenue:   SUM(sales.amount_cents) in range
- expenses:  SUM(expenses.amount_cents) in range
             + current inventory valuation (quantity * cost_per_unit_cents)
- net profit = revenue - expenses over every flock in either map
- profit margin = net / revenue * 100, only where revenue != 0
- expense ratio = expenses / revenue * 100, only where revenue != 0
- cost per unit = expenses / quantity sold, only where quantity != 0

NOTE: inventory valuation is a current snapshot and is NOT limited to the
period. Every period's expenses include today's stock value. This matches
the long-standing behavior of the reports and is kept on purpose.

Snapshots (FlockFinancialData) are upserted per (flock, user, period_start).
Each flock commits on its own; one flock's failure doesn't roll back
another's.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Sale, Expense, InventoryItem, Flock, FlockFinancialData
from ..validation import ValidationError
from .concurrency import write_with_retry, first_for_update
from .periods import current_period, parse_range
from .tenant_service import require_flock_owned
from poultrydesk.time_utils import utcnow


class FinanceError(Exception):
    """Raised when an aggregation or snapshot cannot be produced."""
    pass


# ---------------------------------------------------------------------------
# Read side: one aggregate query per figure, always filtered by tenant
# ---------------------------------------------------------------------------

def _owned_flocks_subquery(user_id: int):
    return db.select(Flock.id).where(Flock.user_id == user_id)


def _sum_by_flock(model, value_expr, time_col, user_id: int, start: datetime, end: datetime) -> dict[int, int]:
    rows = db.session.query(
        model.flock_id,
        func.coalesce(func.sum(value_expr), 0).label("total"),
    ).filter(
        model.user_id == user_id,
        model.flock_id.in_(_owned_flocks_subquery(user_id)),
        time_col >= start,
        time_col < end,
    ).group_by(model.flock_id).all()
    return {int(row.flock_id): int(row.total or 0) for row in rows}


def total_revenue(user_id: int, start: datetime, end: datetime) -> dict[int, int]:
    """Sale amounts per flock. Flocks without sales in range are absent."""
    return _sum_by_flock(Sale, Sale.amount_cents, Sale.sold_at, user_id, start, end)


def total_quantity_sold(user_id: int, start: datetime, end: datetime) -> dict[int, int]:
    return _sum_by_flock(Sale, Sale.quantity, Sale.sold_at, user_id, start, end)


def total_inventory_cost(user_id: int) -> dict[int, int]:
    """Current stock value per flock (not time-bounded)."""
    rows = db.session.query(
        InventoryItem.flock_id,
        func.coalesce(
            func.sum(InventoryItem.quantity * InventoryItem.cost_per_unit_cents), 0
        ).label("total"),
    ).filter(
        InventoryItem.user_id == user_id,
        InventoryItem.flock_id.in_(_owned_flocks_subquery(user_id)),
    ).group_by(InventoryItem.flock_id).all()
    return {int(row.flock_id): int(row.total or 0) for row in rows}


def total_booked_expenses(user_id: int, start: datetime, end: datetime) -> dict[int, int]:
    """Expense records only, without stock valuation (what budgets are held against)."""
    return _sum_by_flock(Expense, Expense.amount_cents, Expense.incurred_at, user_id, start, end)


def total_expenses(user_id: int, start: datetime, end: datetime) -> dict[int, int]:
    """
    Expense amounts in range plus current inventory valuation.

    A flock holding stock but with no expenses in range still appears here.
    """
    totals = total_booked_expenses(user_id, start, end)
    for flock_id, cost in total_inventory_cost(user_id).items():
        totals[flock_id] = totals.get(flock_id, 0) + cost
    return totals


# ---------------------------------------------------------------------------
# Derived figures (pure)
# ---------------------------------------------------------------------------

def net_profit(revenue: dict[int, int], expenses: dict[int, int]) -> dict[int, int]:
    flock_ids = set(revenue) | set(expenses)
    return {fid: revenue.get(fid, 0) - expenses.get(fid, 0) for fid in flock_ids}


def profit_margin(revenue: dict[int, int], expenses: dict[int, int]) -> dict[int, float]:
    profit = net_profit(revenue, expenses)
    return {
        fid: profit[fid] / amount * 100
        for fid, amount in revenue.items()
        if amount != 0
    }


def expense_ratio(revenue: dict[int, int], expenses: dict[int, int]) -> dict[int, float]:
    return {
        fid: expenses.get(fid, 0) / amount * 100
        for fid, amount in revenue.items()
        if amount != 0
    }


def cost_per_unit_sold(expenses: dict[int, int], quantities: dict[int, int]) -> dict[int, float]:
    return {
        fid: expenses.get(fid, 0) / qty
        for fid, qty in quantities.items()
        if qty != 0
    }


@dataclass
class FinancialMetrics:
    start: datetime
    end: datetime
    revenue: dict[int, int] = field(default_factory=dict)
    expenses: dict[int, int] = field(default_factory=dict)
    inventory_cost: dict[int, int] = field(default_factory=dict)
    quantity_sold: dict[int, int] = field(default_factory=dict)
    net_profit: dict[int, int] = field(default_factory=dict)
    profit_margin: dict[int, float] = field(default_factory=dict)
    cost_per_unit: dict[int, float] = field(default_factory=dict)
    expense_ratio: dict[int, float] = field(default_factory=dict)

    @property
    def flock_ids(self) -> list[int]:
        """Every flock with revenue or expenses in the period."""
        return sorted(set(self.revenue) | set(self.expenses))

    def for_flock(self, flock_id: int) -> dict:
        return {
            "total_revenue_cents": self.revenue.get(flock_id, 0),
            "total_expenses_cents": self.expenses.get(flock_id, 0),
            "net_profit_cents": self.net_profit.get(flock_id, 0),
            "profit_margin": self.profit_margin.get(flock_id),
            "cost_per_unit_cents": self.cost_per_unit.get(flock_id),
            "expense_ratio": self.expense_ratio.get(flock_id),
            "inventory_cost_cents": self.inventory_cost.get(flock_id, 0),
        }


def compute_metrics(user_id: int, start: datetime, end: datetime) -> FinancialMetrics:
    """
    Read every figure for the tenant and period in one pass.

    Any read failure aborts the whole computation (the exception propagates).
    """
    if start >= end:
        raise ValidationError("start must be before end")

    revenue = total_revenue(user_id, start, end)
    inventory = total_inventory_cost(user_id)
    expenses = _sum_by_flock(Expense, Expense.amount_cents, Expense.incurred_at, user_id, start, end)
    for flock_id, cost in inventory.items():
        expenses[flock_id] = expenses.get(flock_id, 0) + cost
    quantities = total_quantity_sold(user_id, start, end)

    return FinancialMetrics(
        start=start,
        end=end,
        revenue=revenue,
        expenses=expenses,
        inventory_cost=inventory,
        quantity_sold=quantities,
        net_profit=net_profit(revenue, expenses),
        profit_margin=profit_margin(revenue, expenses),
        cost_per_unit=cost_per_unit_sold(expenses, quantities),
        expense_ratio=expense_ratio(revenue, expenses),
    )


# ---------------------------------------------------------------------------
# Write side: snapshots
# ---------------------------------------------------------------------------

_SNAPSHOT_FIELDS = (
    "total_revenue_cents",
    "total_expenses_cents",
    "net_profit_cents",
    "profit_margin",
    "cost_per_unit_cents",
    "expense_ratio",
    "inventory_cost_cents",
)


def _upsert_snapshot(values: dict) -> None:
    """
    INSERT ... ON CONFLICT (flock_id, user_id, period_start) DO UPDATE.

    Atomic at the database; concurrent writers for the same key resolve to
    last-writer-wins. Dialects without ON CONFLICT fall back to a locked
    read-modify-write.
    """
    dialect = db.engine.dialect.name

    if dialect in ("sqlite", "postgresql"):
        if dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            from sqlalchemy.dialects.postgresql import insert

        stmt = insert(FlockFinancialData.__table__).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["flock_id", "user_id", "period_start"],
            set_={name: stmt.excluded[name] for name in (*_SNAPSHOT_FIELDS, "period_end", "updated_at")},
        )
        db.session.execute(stmt)
        return

    existing = first_for_update(
        db.session.query(FlockFinancialData).filter_by(
            flock_id=values["flock_id"],
            user_id=values["user_id"],
            period_start=values["period_start"],
        )
    )
    if existing is None:
        db.session.add(FlockFinancialData(**values))
    else:
        for name in (*_SNAPSHOT_FIELDS, "period_end", "updated_at"):
            setattr(existing, name, values[name])


def _write_snapshot(metrics: FinancialMetrics, user_id: int, flock_id: int) -> None:
    now = utcnow()
    values = {
        "flock_id": flock_id,
        "user_id": user_id,
        "period_start": metrics.start,
        "period_end": metrics.end,
        "created_at": now,
        "updated_at": now,
        **metrics.for_flock(flock_id),
    }

    write_with_retry(
        lambda: _upsert_snapshot(values),
        label=f"Snapshot flock_id={flock_id} period_start={metrics.start}",
    )


def _load_snapshots(user_id: int, start: datetime, flock_ids=None) -> list[FlockFinancialData]:
    query = db.session.query(FlockFinancialData).filter(
        FlockFinancialData.user_id == user_id,
        FlockFinancialData.period_start == start,
    )
    if flock_ids is not None:
        query = query.filter(FlockFinancialData.flock_id.in_(list(flock_ids)))
    return query.order_by(FlockFinancialData.flock_id.asc()).all()


def snapshot_flock(user_id: int, flock_id: int, start: datetime, end: datetime) -> FlockFinancialData:
    """
    Compute and upsert the snapshot for one owned flock.

    Raises NotFoundError if the flock doesn't belong to the tenant.
    Calling it again with unchanged data overwrites the same row.
    """
    require_flock_owned(flock_id, user_id)
    metrics = compute_metrics(user_id, start, end)

    try:
        _write_snapshot(metrics, user_id, int(flock_id))
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise FinanceError(f"Failed to save financial snapshot for flock {flock_id}") from exc

    current_app.logger.info(
        "Saved financial snapshot user_id=%s flock_id=%s period_start=%s",
        user_id, flock_id, start.isoformat(),
    )
    return _load_snapshots(user_id, start, [int(flock_id)])[0]


def get_financials_for_range(user_id: int, start: datetime, end: datetime) -> list[FlockFinancialData]:
    """
    Snapshot every flock with activity in [start, end) and return the rows.

    A failed upsert for one flock is logged and skipped; flocks already
    written stay written.
    """
    metrics = compute_metrics(user_id, start, end)

    written: list[int] = []
    for flock_id in metrics.flock_ids:
        try:
            _write_snapshot(metrics, user_id, flock_id)
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.warning(
                "Financial snapshot failed user_id=%s flock_id=%s; continuing",
                user_id, flock_id, exc_info=True,
            )
            continue
        written.append(flock_id)

    current_app.logger.info(
        "Saved %s financial snapshots for user_id=%s period_start=%s",
        len(written), user_id, start.isoformat(),
    )
    if not written:
        return []
    return _load_snapshots(user_id, start, written)


def period_bounds(period_kind: str, now: datetime | None = None) -> tuple[datetime, datetime]:
    """[start, end) of the named period, honouring the configured week start."""
    return current_period(
        period_kind,
        now=now,
        week_starts_on=current_app.config.get("WEEK_STARTS_ON", "sunday"),
    )


def get_period_financials(user_id: int, period_kind: str, now: datetime | None = None) -> list[FlockFinancialData]:
    """day / week / month / year containing `now` (default: current time)."""
    start, end = period_bounds(period_kind, now)
    return get_financials_for_range(user_id, start, end)


def get_range_financials(user_id: int, start, end) -> list[FlockFinancialData]:
    """Explicit range from request input (ISO strings or datetimes)."""
    start_dt, end_dt = parse_range(start, end)
    return get_financials_for_range(user_id, start_dt, end_dt)


def list_snapshots(user_id: int, flock_id: int | None = None) -> list[FlockFinancialData]:
    """Stored snapshots, newest period first."""
    query = db.session.query(FlockFinancialData).filter(FlockFinancialData.user_id == user_id)
    if flock_id is not None:
        query = query.filter(FlockFinancialData.flock_id == flock_id)
    return query.order_by(
        FlockFinancialData.period_start.desc(),
        FlockFinancialData.flock_id.asc(),
    ).all()


def delete_snapshots(user_id: int, flock_id: int) -> int:
    """Drop every stored snapshot for one owned flock. Returns rows deleted."""
    require_flock_owned(flock_id, user_id)
    count = db.session.query(FlockFinancialData).filter(
        FlockFinancialData.user_id == user_id,
        FlockFinancialData.flock_id == int(flock_id),
    ).delete(synchronize_session=False)
    db.session.commit()
    return count


def summarize(rows: list[FlockFinancialData]) -> dict:
    """Tenant-wide totals across a list of snapshots."""
    revenue = sum(r.total_revenue_cents for r in rows)
    expenses = sum(r.total_expenses_cents for r in rows)
    return {
        "flock_count": len(rows),
        "total_revenue_cents": revenue,
        "total_expenses_cents": expenses,
        "net_profit_cents": revenue - expenses,
        "profit_margin": ((revenue - expenses) / revenue * 100) if revenue else None,
    }
