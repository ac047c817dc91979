# Overview: Pytest coverage for per-flock financial aggregation and snapshot upserts.

"""
Flock Financial Tests

Verifies:
1. Revenue, expenses, net profit and ratios per flock over [start, end)
2. Inventory valuation counts toward expenses in every period
3. Undefined ratios (zero revenue / zero quantity) are left out, not zero
4. Snapshots upsert: one row per (flock, user, period_start)
5. Tenants never see each other's figures
6. One flock's failed snapshot doesn't stop the others
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import SQLAlchemyError

from poultrydesk.extensions import db
from poultrydesk.models import Sale, Expense, InventoryItem, Flock, FlockFinancialData
from poultrydesk.services import finance_service
from poultrydesk.validation import ValidationError, NotFoundError


JAN_1 = datetime(2026, 1, 1)
FEB_1 = datetime(2026, 2, 1)

_ref_counter = [0]


def add_sale(flock, amount_cents, quantity=0, when=datetime(2026, 1, 10, 9, 0)):
    _ref_counter[0] += 1
    sale = Sale(
        user_id=flock.user_id,
        flock_id=flock.id,
        ref_no=f"REF-TEST-{_ref_counter[0]:06d}",
        product="Eggs",
        category="Eggs",
        quantity=quantity,
        unit_price_cents=0,
        amount_cents=amount_cents,
        sold_at=when,
    )
    db.session.add(sale)
    db.session.commit()
    return sale


def add_expense(flock, amount_cents, when=datetime(2026, 1, 12, 9, 0), category="Feed"):
    expense = Expense(
        user_id=flock.user_id,
        flock_id=flock.id,
        category=category,
        amount_cents=amount_cents,
        incurred_at=when,
    )
    db.session.add(expense)
    db.session.commit()
    return expense


def add_stock(flock, quantity, cost_per_unit_cents, name="Layer mash"):
    item = InventoryItem(
        user_id=flock.user_id,
        flock_id=flock.id,
        item_name=name,
        quantity=quantity,
        reorder_level=0,
        cost_per_unit_cents=cost_per_unit_cents,
    )
    db.session.add(item)
    db.session.commit()
    return item


class TestAggregation:

    def test_revenue_expenses_and_ratios(self, db_session, flock_a):
        """100.00 revenue and 40.00 expenses give 60.00 net at 60% margin."""
        add_sale(flock_a, 10000, quantity=10)
        add_expense(flock_a, 4000)

        metrics = finance_service.compute_metrics(flock_a.user_id, JAN_1, FEB_1)

        assert metrics.revenue == {flock_a.id: 10000}
        assert metrics.expenses == {flock_a.id: 4000}
        assert metrics.net_profit == {flock_a.id: 6000}
        assert metrics.profit_margin[flock_a.id] == pytest.approx(60.0)
        assert metrics.expense_ratio[flock_a.id] == pytest.approx(40.0)
        assert metrics.cost_per_unit[flock_a.id] == pytest.approx(400.0)

    def test_range_is_half_open(self, db_session, flock_a):
        add_sale(flock_a, 1000, when=JAN_1)
        add_sale(flock_a, 5000, when=FEB_1)

        revenue = finance_service.total_revenue(flock_a.user_id, JAN_1, FEB_1)

        assert revenue == {flock_a.id: 1000}

    def test_zero_quantity_has_no_cost_per_unit(self, db_session, flock_a):
        add_sale(flock_a, 2500, quantity=0)
        add_expense(flock_a, 1000)

        metrics = finance_service.compute_metrics(flock_a.user_id, JAN_1, FEB_1)

        assert flock_a.id not in metrics.cost_per_unit
        assert metrics.for_flock(flock_a.id)["cost_per_unit_cents"] is None

    def test_expenses_without_revenue_leave_ratios_undefined(self, db_session, flock_a):
        add_expense(flock_a, 3000)

        metrics = finance_service.compute_metrics(flock_a.user_id, JAN_1, FEB_1)

        assert metrics.net_profit == {flock_a.id: -3000}
        assert metrics.profit_margin == {}
        assert metrics.expense_ratio == {}
        figures = metrics.for_flock(flock_a.id)
        assert figures["profit_margin"] is None
        assert figures["expense_ratio"] is None

    def test_inventory_counts_toward_expenses(self, db_session, flock_a):
        add_expense(flock_a, 1000)
        add_stock(flock_a, quantity=4, cost_per_unit_cents=250)

        expenses = finance_service.total_expenses(flock_a.user_id, JAN_1, FEB_1)

        assert expenses == {flock_a.id: 2000}

    def test_inventory_only_flock_still_reported(self, db_session, flock_a):
        """A flock holding stock appears even with no expenses in range."""
        add_stock(flock_a, quantity=10, cost_per_unit_cents=300)

        metrics = finance_service.compute_metrics(flock_a.user_id, JAN_1, FEB_1)

        assert metrics.flock_ids == [flock_a.id]
        assert metrics.expenses[flock_a.id] == 3000
        assert metrics.inventory_cost[flock_a.id] == 3000

    def test_inventory_is_not_period_bound(self, db_session, flock_a):
        add_stock(flock_a, quantity=2, cost_per_unit_cents=500)

        old = finance_service.total_expenses(flock_a.user_id, datetime(2020, 1, 1), datetime(2020, 2, 1))

        assert old == {flock_a.id: 1000}

    def test_net_profit_covers_union_of_flocks(self):
        profit = finance_service.net_profit({1: 500}, {2: 200})
        assert profit == {1: 500, 2: -200}

    def test_start_must_precede_end(self, db_session, flock_a):
        with pytest.raises(ValidationError):
            finance_service.compute_metrics(flock_a.user_id, FEB_1, JAN_1)
        with pytest.raises(ValidationError):
            finance_service.compute_metrics(flock_a.user_id, JAN_1, JAN_1)

    def test_no_activity_returns_empty(self, db_session, flock_a):
        rows = finance_service.get_financials_for_range(flock_a.user_id, JAN_1, FEB_1)
        assert rows == []
        assert db_session.query(FlockFinancialData).count() == 0


class TestSnapshots:

    def test_snapshot_row_written(self, db_session, flock_a):
        add_sale(flock_a, 10000, quantity=10)
        add_expense(flock_a, 4000)

        rows = finance_service.get_financials_for_range(flock_a.user_id, JAN_1, FEB_1)

        assert len(rows) == 1
        row = rows[0]
        assert row.flock_id == flock_a.id
        assert row.user_id == flock_a.user_id
        assert row.period_start == JAN_1
        assert row.period_end == FEB_1
        assert row.total_revenue_cents == 10000
        assert row.total_expenses_cents == 4000
        assert row.net_profit_cents == 6000
        assert row.profit_margin == pytest.approx(60.0)
        assert row.expense_ratio == pytest.approx(40.0)
        assert row.cost_per_unit_cents == pytest.approx(400.0)

    def test_recompute_updates_same_row(self, db_session, flock_a):
        add_sale(flock_a, 10000, quantity=10)
        first = finance_service.get_financials_for_range(flock_a.user_id, JAN_1, FEB_1)
        first_id = first[0].id

        again = finance_service.get_financials_for_range(flock_a.user_id, JAN_1, FEB_1)
        assert again[0].id == first_id

        add_sale(flock_a, 5000, quantity=5)
        updated = finance_service.get_financials_for_range(flock_a.user_id, JAN_1, FEB_1)

        assert db_session.query(FlockFinancialData).count() == 1
        assert updated[0].id == first_id
        assert updated[0].total_revenue_cents == 15000

    def test_different_periods_get_separate_rows(self, db_session, flock_a):
        add_sale(flock_a, 1000, when=datetime(2026, 1, 5))
        add_sale(flock_a, 2000, when=datetime(2026, 2, 5))

        finance_service.get_financials_for_range(flock_a.user_id, JAN_1, FEB_1)
        finance_service.get_financials_for_range(flock_a.user_id, FEB_1, datetime(2026, 3, 1))

        rows = finance_service.list_snapshots(flock_a.user_id, flock_id=flock_a.id)
        assert [r.period_start for r in rows] == [FEB_1, JAN_1]
        assert [r.total_revenue_cents for r in rows] == [2000, 1000]

    def test_snapshot_single_flock(self, db_session, flock_a):
        add_sale(flock_a, 800, quantity=4)

        row = finance_service.snapshot_flock(flock_a.user_id, flock_a.id, JAN_1, FEB_1)

        assert row.total_revenue_cents == 800
        assert row.cost_per_unit_cents == pytest.approx(0.0)
        assert db_session.query(FlockFinancialData).count() == 1

    def test_period_financials_use_current_month(self, db_session, flock_a):
        add_sale(flock_a, 700, when=datetime(2026, 1, 20))

        rows = finance_service.get_period_financials(
            flock_a.user_id, "month", now=datetime(2026, 1, 25, 15, 30)
        )

        assert len(rows) == 1
        assert rows[0].period_start == JAN_1
        assert rows[0].period_end == FEB_1

    def test_range_financials_parse_iso_strings(self, db_session, flock_a):
        add_sale(flock_a, 700, when=datetime(2026, 1, 20))

        rows = finance_service.get_range_financials(flock_a.user_id, "2026-01-01", "2026-02-01T00:00:00Z")

        assert rows[0].period_start == JAN_1

    def test_aware_range_matches_naive_snapshot(self, db_session, flock_a):
        add_sale(flock_a, 700, when=datetime(2026, 1, 20))
        finance_service.get_range_financials(flock_a.user_id, JAN_1, FEB_1)

        eat = timezone(timedelta(hours=3))
        rows = finance_service.get_range_financials(
            flock_a.user_id, datetime(2026, 1, 1, 3, 0, tzinfo=eat), datetime(2026, 2, 1, 3, 0, tzinfo=eat)
        )

        assert rows[0].period_start == JAN_1
        assert rows[0].total_revenue_cents == 700
        assert db_session.query(FlockFinancialData).count() == 1

    def test_failed_flock_is_skipped(self, db_session, user_a, monkeypatch):
        broken = Flock(user_id=user_a.id, name="Broken", initial_bird_count=10, bird_count=10)
        healthy = Flock(user_id=user_a.id, name="Healthy", initial_bird_count=10, bird_count=10)
        db_session.add_all([broken, healthy])
        db_session.commit()
        add_sale(broken, 1000)
        add_sale(healthy, 2000)

        real_upsert = finance_service._upsert_snapshot

        def flaky_upsert(values):
            if values["flock_id"] == broken.id:
                raise SQLAlchemyError("disk full")
            return real_upsert(values)

        monkeypatch.setattr(finance_service, "_upsert_snapshot", flaky_upsert)

        rows = finance_service.get_financials_for_range(user_a.id, JAN_1, FEB_1)

        assert [r.flock_id for r in rows] == [healthy.id]
        assert db_session.query(FlockFinancialData).filter_by(flock_id=broken.id).count() == 0

    def test_snapshot_flock_wraps_write_failure(self, db_session, flock_a, monkeypatch):
        add_sale(flock_a, 1000)

        def failing_upsert(values):
            raise SQLAlchemyError("constraint")

        monkeypatch.setattr(finance_service, "_upsert_snapshot", failing_upsert)

        with pytest.raises(finance_service.FinanceError):
            finance_service.snapshot_flock(flock_a.user_id, flock_a.id, JAN_1, FEB_1)

    def test_delete_snapshots(self, db_session, flock_a):
        add_sale(flock_a, 1000)
        finance_service.get_financials_for_range(flock_a.user_id, JAN_1, FEB_1)

        deleted = finance_service.delete_snapshots(flock_a.user_id, flock_a.id)

        assert deleted == 1
        assert finance_service.list_snapshots(flock_a.user_id) == []

    def test_summarize(self):
        rows = [
            FlockFinancialData(total_revenue_cents=10000, total_expenses_cents=4000),
            FlockFinancialData(total_revenue_cents=0, total_expenses_cents=1000),
        ]
        summary = finance_service.summarize(rows)
        assert summary["flock_count"] == 2
        assert summary["net_profit_cents"] == 5000
        assert summary["profit_margin"] == pytest.approx(50.0)
        assert finance_service.summarize([])["profit_margin"] is None


class TestTenantIsolation:

    def test_figures_scoped_to_tenant(self, db_session, flock_a, flock_b):
        add_sale(flock_a, 1000)
        add_sale(flock_b, 9000)
        add_stock(flock_b, quantity=1, cost_per_unit_cents=100)

        metrics_a = finance_service.compute_metrics(flock_a.user_id, JAN_1, FEB_1)

        assert metrics_a.flock_ids == [flock_a.id]
        assert flock_b.id not in metrics_a.expenses

    def test_snapshots_scoped_to_tenant(self, db_session, flock_a, flock_b):
        add_sale(flock_a, 1000)
        add_sale(flock_b, 9000)
        finance_service.get_financials_for_range(flock_a.user_id, JAN_1, FEB_1)
        finance_service.get_financials_for_range(flock_b.user_id, JAN_1, FEB_1)

        rows_a = finance_service.list_snapshots(flock_a.user_id)

        assert [r.flock_id for r in rows_a] == [flock_a.id]

    def test_cross_tenant_snapshot_is_not_found(self, db_session, flock_a, flock_b):
        with pytest.raises(NotFoundError):
            finance_service.snapshot_flock(flock_a.user_id, flock_b.id, JAN_1, FEB_1)
        with pytest.raises(NotFoundError):
            finance_service.delete_snapshots(flock_a.user_id, flock_b.id)
