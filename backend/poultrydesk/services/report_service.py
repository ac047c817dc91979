# Overview: Service-layer operations for reports; builds figures, chart and PDF, then records the report.

"""
Report Compiler

generate_report(kind, user_id, start, end):
  1. fetch the tenant's records for the kind and [start, end)
  2. subtotal them (per category or per flock) and total them
  3. draw the chart (bar, or line for egg production); empty data draws
     a single "No Data" point
  4. render templates/reports/<kind>.html
  5. convert to PDF with the external renderer (bounded by a timeout)
  6. write one Report row

If the renderer fails, the chart and any partial PDF are removed, no row
is written and ReportRenderError is raised. Every call writes new,
timestamped files and a new row.
"""

from __future__ import annotations

import os
import secrets
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from flask import current_app, render_template
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import User, Flock, Sale, Expense, EggProduction, InventoryItem, Report
from ..validation import ValidationError, NotFoundError
from . import charts
from .finance_service import compute_metrics
from .notification_service import notify
from .pdf_renderer import render_pdf, PdfRenderError
from .periods import parse_range
from .tenant_service import scoped_get
from poultrydesk.time_utils import utcnow, file_timestamp, format_cents, to_utc_z


class ReportError(Exception):
    """Raised when report generation fails."""
    pass


class ReportRenderError(ReportError):
    """The external PDF renderer failed; nothing was recorded."""
    pass


@dataclass
class ReportContent:
    title: str
    chart_title: str
    chart_style: str = "bar"  # bar | line
    chart_points: list = field(default_factory=list)
    subtotals: list = field(default_factory=list)  # [(label, display value)]
    rows: list = field(default_factory=list)
    totals: dict = field(default_factory=dict)
    summary: str = ""


def _flock_names(user_id: int) -> dict[int, str]:
    rows = db.session.query(Flock.id, Flock.name).filter(Flock.user_id == user_id).all()
    return {r.id: r.name for r in rows}


def _in_range(query, model, col, user_id, start, end):
    return query.filter(model.user_id == user_id, col >= start, col < end)


def _cents_points(subtotals: "OrderedDict[str, int]") -> list[tuple[str, float]]:
    # Charts are drawn in currency units, not cents
    return [(label, cents / 100) for label, cents in subtotals.items()]


# ---------------------------------------------------------------------------
# Builders: one per report kind
# ---------------------------------------------------------------------------

def _build_sales(user_id: int, start: datetime, end: datetime) -> ReportContent:
    names = _flock_names(user_id)
    sales = _in_range(db.session.query(Sale), Sale, Sale.sold_at, user_id, start, end).order_by(
        Sale.sold_at.asc(), Sale.id.asc()
    ).all()

    by_category: OrderedDict[str, int] = OrderedDict()
    rows = []
    total = 0
    quantity = 0
    for sale in sales:
        by_category[sale.category] = by_category.get(sale.category, 0) + sale.amount_cents
        total += sale.amount_cents
        quantity += sale.quantity or 0
        rows.append({
            "date": sale.sold_at.strftime("%Y-%m-%d"),
            "ref_no": sale.ref_no,
            "flock": names.get(sale.flock_id, "-"),
            "product": sale.product,
            "category": sale.category,
            "quantity": sale.quantity,
            "amount": format_cents(sale.amount_cents),
        })

    return ReportContent(
        title="Sales Report",
        chart_title="Sales by Category",
        chart_points=_cents_points(by_category),
        subtotals=[(k, format_cents(v)) for k, v in by_category.items()],
        rows=rows,
        totals={"amount": format_cents(total), "quantity": quantity, "count": len(rows)},
        summary=f"{len(rows)} sales totalling {format_cents(total)}.",
    )


def _build_expenses(user_id: int, start: datetime, end: datetime) -> ReportContent:
    names = _flock_names(user_id)
    expenses = _in_range(
        db.session.query(Expense), Expense, Expense.incurred_at, user_id, start, end
    ).order_by(Expense.incurred_at.asc(), Expense.id.asc()).all()

    by_category: OrderedDict[str, int] = OrderedDict()
    rows = []
    total = 0
    for expense in expenses:
        by_category[expense.category] = by_category.get(expense.category, 0) + expense.amount_cents
        total += expense.amount_cents
        rows.append({
            "date": expense.incurred_at.strftime("%Y-%m-%d"),
            "flock": names.get(expense.flock_id, "-"),
            "category": expense.category,
            "description": expense.description or "",
            "amount": format_cents(expense.amount_cents),
        })

    return ReportContent(
        title="Expense Report",
        chart_title="Expenses by Category",
        chart_points=_cents_points(by_category),
        subtotals=[(k, format_cents(v)) for k, v in by_category.items()],
        rows=rows,
        totals={"amount": format_cents(total), "count": len(rows)},
        summary=f"{len(rows)} expenses totalling {format_cents(total)}.",
    )


def _build_egg_production(user_id: int, start: datetime, end: datetime) -> ReportContent:
    names = _flock_names(user_id)
    records = _in_range(
        db.session.query(EggProduction), EggProduction, EggProduction.produced_at, user_id, start, end
    ).order_by(EggProduction.produced_at.asc(), EggProduction.id.asc()).all()

    by_day: OrderedDict[str, int] = OrderedDict()
    by_flock: OrderedDict[str, int] = OrderedDict()
    rows = []
    total_eggs = 0
    total_value = 0
    for rec in records:
        day = rec.produced_at.strftime("%Y-%m-%d")
        flock = names.get(rec.flock_id, "-")
        by_day[day] = by_day.get(day, 0) + rec.eggs_collected
        by_flock[flock] = by_flock.get(flock, 0) + rec.eggs_collected
        total_eggs += rec.eggs_collected
        total_value += rec.total_revenue_cents
        rows.append({
            "date": day,
            "flock": flock,
            "eggs": rec.eggs_collected,
            "price": format_cents(rec.price_per_unit_cents),
            "value": format_cents(rec.total_revenue_cents),
        })

    return ReportContent(
        title="Egg Production Report",
        chart_title="Eggs Collected per Day",
        chart_style="line",
        chart_points=list(by_day.items()),
        subtotals=[(k, f"{v:,}") for k, v in by_flock.items()],
        rows=rows,
        totals={"eggs": f"{total_eggs:,}", "value": format_cents(total_value), "count": len(rows)},
        summary=f"{total_eggs:,} eggs collected, valued at {format_cents(total_value)}.",
    )


def _build_inventory(user_id: int, start: datetime, end: datetime) -> ReportContent:
    # Inventory is current state; the range is recorded but not applied
    names = _flock_names(user_id)
    items = db.session.query(InventoryItem).filter(InventoryItem.user_id == user_id).order_by(
        InventoryItem.item_name.asc(), InventoryItem.id.asc()
    ).all()

    by_flock: OrderedDict[str, int] = OrderedDict()
    rows = []
    total = 0
    low = 0
    for item in items:
        flock = names.get(item.flock_id, "-")
        by_flock[flock] = by_flock.get(flock, 0) + item.value_cents
        total += item.value_cents
        low += 1 if item.needs_reorder else 0
        rows.append({
            "item": item.item_name,
            "flock": flock,
            "quantity": item.quantity,
            "reorder_level": item.reorder_level,
            "unit_cost": format_cents(item.cost_per_unit_cents),
            "value": format_cents(item.value_cents),
            "low": item.needs_reorder,
        })

    return ReportContent(
        title="Inventory Report",
        chart_title="Stock Value by Flock",
        chart_points=_cents_points(by_flock),
        subtotals=[(k, format_cents(v)) for k, v in by_flock.items()],
        rows=rows,
        totals={"value": format_cents(total), "count": len(rows), "low_stock": low},
        summary=f"{len(rows)} items valued at {format_cents(total)}; {low} at or below reorder level.",
    )


def _build_flocks(user_id: int, start: datetime, end: datetime) -> ReportContent:
    flocks = db.session.query(Flock).filter(
        Flock.user_id == user_id,
        Flock.created_at < end,
    ).order_by(Flock.name.asc()).all()

    rows = []
    birds = 0
    for flock in flocks:
        birds += flock.bird_count or 0
        rows.append({
            "name": flock.name,
            "breed": flock.breed or "-",
            "status": flock.status,
            "age_weeks": flock.age_weeks,
            "initial": flock.initial_bird_count,
            "current": flock.bird_count,
            "mortality": f"{flock.mortality_rate:.1f}%",
            "revenue": format_cents(flock.revenue_cents),
            "expenses": format_cents(flock.expenses_cents),
        })

    return ReportContent(
        title="Flock Report",
        chart_title="Birds per Flock",
        chart_points=[(f.name, f.bird_count or 0) for f in flocks],
        subtotals=[(f.name, f"{f.bird_count or 0:,}") for f in flocks],
        rows=rows,
        totals={"birds": f"{birds:,}", "count": len(rows)},
        summary=f"{len(rows)} flocks holding {birds:,} birds.",
    )


def _build_financial(user_id: int, start: datetime, end: datetime) -> ReportContent:
    names = _flock_names(user_id)
    metrics = compute_metrics(user_id, start, end)

    rows = []
    net_by_flock: OrderedDict[str, int] = OrderedDict()
    revenue = expenses = 0
    for flock_id in metrics.flock_ids:
        figures = metrics.for_flock(flock_id)
        name = names.get(flock_id, f"Flock {flock_id}")
        net_by_flock[name] = figures["net_profit_cents"]
        revenue += figures["total_revenue_cents"]
        expenses += figures["total_expenses_cents"]
        margin = figures["profit_margin"]
        ratio = figures["expense_ratio"]
        rows.append({
            "flock": name,
            "revenue": format_cents(figures["total_revenue_cents"]),
            "expenses": format_cents(figures["total_expenses_cents"]),
            "inventory": format_cents(figures["inventory_cost_cents"]),
            "net": format_cents(figures["net_profit_cents"]),
            "margin": f"{margin:.1f}%" if margin is not None else "-",
            "expense_ratio": f"{ratio:.1f}%" if ratio is not None else "-",
        })

    net = revenue - expenses
    return ReportContent(
        title="Financial Report",
        chart_title="Net Profit by Flock",
        chart_points=_cents_points(net_by_flock),
        subtotals=[(k, format_cents(v)) for k, v in net_by_flock.items()],
        rows=rows,
        totals={
            "revenue": format_cents(revenue),
            "expenses": format_cents(expenses),
            "net": format_cents(net),
            "count": len(rows),
        },
        summary=(
            f"Revenue {format_cents(revenue)}, expenses {format_cents(expenses)}, "
            f"net {format_cents(net)}."
        ),
    )


REPORT_BUILDERS = {
    "sales": _build_sales,
    "expenses": _build_expenses,
    "egg_production": _build_egg_production,
    "inventory": _build_inventory,
    "flocks": _build_flocks,
    "financial": _build_financial,
}

REPORT_KINDS = tuple(REPORT_BUILDERS)


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

def _output_dir() -> str:
    path = current_app.config["REPORTS_OUTPUT_DIR"]
    os.makedirs(path, exist_ok=True)
    return path


def _remove_files(*paths: str) -> None:
    for path in paths:
        if path and os.path.exists(path):
            os.remove(path)


def _chart_path_for(pdf_path: str) -> str:
    return os.path.splitext(pdf_path)[0] + ".svg"


def generate_report(kind: str, user_id: int, start, end) -> Report:
    """
    Build, render and record one report. Returns the new Report row.

    Raises:
        ValidationError: unknown kind or bad range
        NotFoundError: unknown user
        ReportRenderError: PDF renderer failed (nothing recorded)
        ReportError: chart or database failure (nothing recorded)
    """
    kind = (kind or "").strip().lower()
    builder = REPORT_BUILDERS.get(kind)
    if builder is None:
        raise ValidationError(f"Invalid report type: {kind}. Use one of: {', '.join(REPORT_KINDS)}")
    start_dt, end_dt = parse_range(start, end)

    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")

    content = builder(user_id, start_dt, end_dt)

    generated_at = utcnow()
    out_dir = _output_dir()
    base_name = f"{kind}_report_{user_id}_{file_timestamp(generated_at)}_{secrets.token_hex(2)}"
    pdf_name = f"{base_name}.pdf"
    pdf_path = os.path.join(out_dir, pdf_name)
    chart_path = _chart_path_for(pdf_path)

    draw = charts.render_line_chart if content.chart_style == "line" else charts.render_bar_chart
    try:
        draw(content.chart_points, chart_path, title=content.chart_title)
    except charts.ChartError as exc:
        _remove_files(chart_path)
        raise ReportError(str(exc)) from exc

    # From here on, any failure leaves neither files nor a row behind
    try:
        html = render_template(
            f"reports/{kind}.html",
            report=content,
            user=user,
            start=start_dt,
            end=end_dt,
            generated_at=generated_at,
            chart_url=Path(chart_path).resolve().as_uri(),
        )
        render_pdf(html, pdf_path, base_url=Path(out_dir).resolve().as_uri() + "/")

        report = Report(
            user_id=user_id,
            report_type=kind,
            name=pdf_name,
            file_path=pdf_path,
            start_date=start_dt,
            end_date=end_dt,
            generated_at=generated_at,
        )
        db.session.add(report)
        db.session.commit()
    except PdfRenderError as exc:
        _remove_files(chart_path, pdf_path)
        current_app.logger.error("Report rendering failed kind=%s user_id=%s: %s", kind, user_id, exc)
        raise ReportRenderError(f"Failed to render PDF: {exc}") from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        _remove_files(chart_path, pdf_path)
        raise ReportError("Failed to save report") from exc
    except Exception:
        db.session.rollback()
        _remove_files(chart_path, pdf_path)
        current_app.logger.exception("Report generation failed kind=%s user_id=%s", kind, user_id)
        raise

    current_app.logger.info("Generated %s report id=%s user_id=%s at %s", kind, report.id, user_id, pdf_path)
    notify(
        user_id,
        "Report Ready",
        f"Your {content.title.lower()} for {to_utc_z(start_dt)} to {to_utc_z(end_dt)} is ready.",
        type="success",
        url=f"/reports/{report.id}",
    )
    return report


# ---------------------------------------------------------------------------
# Stored reports
# ---------------------------------------------------------------------------

def list_reports(user_id: int, kind: str | None = None) -> list[Report]:
    query = db.session.query(Report).filter(Report.user_id == user_id)
    if kind:
        query = query.filter(Report.report_type == kind)
    return query.order_by(Report.generated_at.desc(), Report.id.desc()).all()


def get_report(user_id: int, report_id: int) -> Report:
    return scoped_get(Report, report_id, user_id, label="Report")


def report_file(user_id: int, report_id: int) -> Report:
    """The report, provided its PDF is still on disk."""
    report = get_report(user_id, report_id)
    if not os.path.isfile(report.file_path):
        raise NotFoundError("Report file not found")
    return report


def delete_report(user_id: int, report_id: int) -> None:
    """Delete the row, its PDF and its chart."""
    report = get_report(user_id, report_id)
    pdf_path = report.file_path
    db.session.delete(report)
    db.session.commit()
    _remove_files(pdf_path, _chart_path_for(pdf_path))
    current_app.logger.info("Deleted report id=%s user_id=%s", report_id, user_id)
