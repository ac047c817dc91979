# Overview: Pytest coverage for report compilation; figures, chart, PDF and the Report row.

"""
Report Compiler Tests

Verifies:
1. A successful run writes the PDF, the chart and exactly one Report row
2. Renderer failure (exit code, timeout, missing binary) leaves no row and no files
3. Empty periods still produce a report with a "No Data" chart
4. Each builder subtotals only the tenant's own records
"""

import os
import subprocess
from datetime import datetime

import pytest

from poultrydesk.extensions import db
from poultrydesk.models import Report, Notification, Sale, Expense, EggProduction, InventoryItem
from poultrydesk.services import pdf_renderer
from poultrydesk.services import report_service
from poultrydesk.services.report_service import ReportRenderError
from poultrydesk.validation import ValidationError, NotFoundError


START = "2026-01-01"
END = "2026-02-01"


def _files(path):
    return sorted(os.listdir(path)) if os.path.isdir(path) else []


def _sale(flock, amount_cents, category="Eggs", quantity=1, day=10, ref="REF-R-0001"):
    db.session.add(Sale(
        user_id=flock.user_id, flock_id=flock.id, ref_no=ref, product=category,
        category=category, quantity=quantity, unit_price_cents=0, amount_cents=amount_cents,
        sold_at=datetime(2026, 1, day, 8, 0),
    ))
    db.session.commit()


class TestGenerate:

    def test_success_writes_files_and_row(self, db_session, flock_a, reports_dir, fake_renderer):
        _sale(flock_a, 12000, category="Eggs", ref="REF-R-1")
        _sale(flock_a, 3000, category="Manure", ref="REF-R-2")

        report = report_service.generate_report("sales", flock_a.user_id, START, END)

        assert db_session.query(Report).count() == 1
        assert report.report_type == "sales"
        assert report.start_date == datetime(2026, 1, 1)
        assert report.end_date == datetime(2026, 2, 1)
        assert report.name.startswith(f"sales_report_{flock_a.user_id}_")
        assert report.name.endswith(".pdf")
        assert os.path.isfile(report.file_path)
        assert os.path.dirname(report.file_path) == str(reports_dir)

        chart = os.path.splitext(report.file_path)[0] + ".svg"
        assert os.path.isfile(chart)

        html = fake_renderer[0]["input"].decode("utf-8")
        assert "Sales Report" in html
        assert "Manure" in html
        assert "150.00" in html
        assert "farm_a" in html

    def test_success_notifies_owner(self, db_session, flock_a, reports_dir, fake_renderer):
        report_service.generate_report("expenses", flock_a.user_id, START, END)

        titles = [n.title for n in db_session.query(Notification).filter_by(user_id=flock_a.user_id)]
        assert "Report Ready" in titles

    def test_every_call_is_a_new_report(self, db_session, flock_a, reports_dir, fake_renderer):
        first = report_service.generate_report("flocks", flock_a.user_id, START, END)
        second = report_service.generate_report("flocks", flock_a.user_id, START, END)

        assert first.id != second.id
        assert first.file_path != second.file_path
        assert db_session.query(Report).count() == 2

    def test_empty_period_still_reports(self, db_session, user_a, reports_dir, fake_renderer):
        report = report_service.generate_report("egg_production", user_a.id, START, END)

        assert os.path.isfile(report.file_path)
        html = fake_renderer[0]["input"].decode("utf-8")
        assert "No records in this period." in html

    @pytest.mark.parametrize("kind", list(report_service.REPORT_KINDS))
    def test_every_kind_renders(self, db_session, flock_a, reports_dir, fake_renderer, kind):
        _sale(flock_a, 5000, quantity=5)
        db_session.add(Expense(user_id=flock_a.user_id, flock_id=flock_a.id, category="Feed",
                               amount_cents=2000, incurred_at=datetime(2026, 1, 11)))
        db_session.add(EggProduction(user_id=flock_a.user_id, flock_id=flock_a.id, eggs_collected=420,
                                     price_per_unit_cents=15, produced_at=datetime(2026, 1, 12)))
        db_session.add(InventoryItem(user_id=flock_a.user_id, flock_id=flock_a.id, item_name="Grit",
                                     quantity=3, reorder_level=5, cost_per_unit_cents=700))
        db_session.commit()

        report = report_service.generate_report(kind, flock_a.user_id, START, END)

        assert report.report_type == kind
        assert os.path.isfile(report.file_path)

    def test_unknown_kind(self, db_session, user_a, reports_dir, fake_renderer):
        with pytest.raises(ValidationError):
            report_service.generate_report("payroll", user_a.id, START, END)
        assert fake_renderer == []

    def test_bad_range(self, db_session, user_a, reports_dir, fake_renderer):
        with pytest.raises(ValidationError):
            report_service.generate_report("sales", user_a.id, END, START)
        assert _files(reports_dir) == []

    def test_unknown_user(self, db_session, reports_dir, fake_renderer):
        with pytest.raises(NotFoundError):
            report_service.generate_report("sales", 424242, START, END)


class TestRenderFailure:

    def test_nonzero_exit_leaves_nothing(self, db_session, user_a, reports_dir, monkeypatch):
        def _fail(cmd, **kwargs):
            with open(cmd[-1], "wb") as fh:
                fh.write(b"%PDF-partial")
            return subprocess.CompletedProcess(cmd, 2, stdout=b"", stderr=b"boom")

        monkeypatch.setattr(pdf_renderer.subprocess, "run", _fail)

        with pytest.raises(ReportRenderError):
            report_service.generate_report("sales", user_a.id, START, END)

        assert db_session.query(Report).count() == 0
        assert _files(reports_dir) == []

    def test_timeout_leaves_nothing(self, db_session, user_a, reports_dir, monkeypatch):
        def _hang(cmd, **kwargs):
            raise subprocess.TimeoutExpired(cmd, kwargs.get("timeout"))

        monkeypatch.setattr(pdf_renderer.subprocess, "run", _hang)

        with pytest.raises(ReportRenderError):
            report_service.generate_report("expenses", user_a.id, START, END)

        assert db_session.query(Report).count() == 0
        assert _files(reports_dir) == []

    def test_missing_renderer_leaves_nothing(self, app, db_session, user_a, reports_dir, tmp_path, monkeypatch):
        monkeypatch.setitem(app.config, "PDF_RENDERER_BIN", str(tmp_path / "no-such-renderer"))

        with pytest.raises(ReportRenderError):
            report_service.generate_report("inventory", user_a.id, START, END)

        assert db_session.query(Report).count() == 0
        assert _files(reports_dir) == []

    def test_non_executable_renderer_leaves_nothing(self, app, db_session, flock_a, reports_dir, tmp_path,
                                                    monkeypatch):
        renderer = tmp_path / "weasyprint"
        renderer.write_text("#!/bin/sh\nexit 0\n")
        renderer.chmod(0o644)
        monkeypatch.setitem(app.config, "PDF_RENDERER_BIN", str(renderer))
        _sale(flock_a, 2500, day=5)

        with pytest.raises(ReportRenderError):
            report_service.generate_report("sales", flock_a.user_id, START, END)

        assert db_session.query(Report).count() == 0
        assert _files(reports_dir) == []

    def test_template_failure_leaves_nothing(self, db_session, user_a, reports_dir, fake_renderer, monkeypatch):
        def _broken(*args, **kwargs):
            raise RuntimeError("template exploded")

        monkeypatch.setattr(report_service, "render_template", _broken)

        with pytest.raises(RuntimeError):
            report_service.generate_report("sales", user_a.id, START, END)

        assert db_session.query(Report).count() == 0
        assert _files(reports_dir) == []
        assert fake_renderer == []


class TestStoredReports:

    def test_list_and_get_are_tenant_scoped(self, db_session, user_a, user_b, reports_dir, fake_renderer):
        mine = report_service.generate_report("sales", user_a.id, START, END)
        theirs = report_service.generate_report("sales", user_b.id, START, END)

        assert [r.id for r in report_service.list_reports(user_a.id)] == [mine.id]
        assert report_service.list_reports(user_a.id, kind="expenses") == []
        with pytest.raises(NotFoundError):
            report_service.get_report(user_a.id, theirs.id)

    def test_report_file_missing_on_disk(self, db_session, user_a, reports_dir, fake_renderer):
        report = report_service.generate_report("sales", user_a.id, START, END)
        os.remove(report.file_path)

        with pytest.raises(NotFoundError):
            report_service.report_file(user_a.id, report.id)

    def test_delete_removes_row_and_files(self, db_session, user_a, reports_dir, fake_renderer):
        report = report_service.generate_report("sales", user_a.id, START, END)

        report_service.delete_report(user_a.id, report.id)

        assert db_session.query(Report).count() == 0
        assert _files(reports_dir) == []


class TestBuilders:

    def test_sales_subtotals_by_category(self, db_session, flock_a, flock_b):
        _sale(flock_a, 1000, category="Eggs", ref="REF-B-1")
        _sale(flock_a, 500, category="Eggs", ref="REF-B-2")
        _sale(flock_a, 250, category="Birds", ref="REF-B-3")
        _sale(flock_b, 99999, category="Eggs", ref="REF-B-4")

        content = report_service._build_sales(
            flock_a.user_id, datetime(2026, 1, 1), datetime(2026, 2, 1)
        )

        assert content.subtotals == [("Eggs", "15.00"), ("Birds", "2.50")]
        assert content.chart_points == [("Eggs", 15.0), ("Birds", 2.5)]
        assert content.totals["amount"] == "17.50"
        assert len(content.rows) == 3

    def test_egg_production_is_a_line_chart(self, db_session, flock_a):
        content = report_service._build_egg_production(
            flock_a.user_id, datetime(2026, 1, 1), datetime(2026, 2, 1)
        )
        assert content.chart_style == "line"
        assert content.rows == []

    def test_financial_uses_period_figures(self, db_session, flock_a):
        _sale(flock_a, 10000, quantity=10, ref="REF-F-1")
        db_session.add(Expense(user_id=flock_a.user_id, flock_id=flock_a.id, category="Feed",
                               amount_cents=4000, incurred_at=datetime(2026, 1, 3)))
        db_session.commit()

        content = report_service._build_financial(
            flock_a.user_id, datetime(2026, 1, 1), datetime(2026, 2, 1)
        )

        assert content.totals["net"] == "60.00"
        assert content.rows[0]["margin"] == "60.0%"
