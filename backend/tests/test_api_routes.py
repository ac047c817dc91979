# Overview: Pytest coverage for the JSON API; CRUD, finances, reports, notifications and tenant isolation.

"""
API Tests

Exercises each blueprint through the test client. Cross-tenant ids must
return 404 exactly like ids that don't exist, and collections never
include another tenant's rows.
"""

import os

import pytest

from poultrydesk.extensions import db
from poultrydesk.models import Flock, Notification
from poultrydesk.services import finance_service


class TestFlocks:

    def test_create_list_get_update_delete(self, client, db_session, user_a, headers_a):
        created = client.post("/api/flocks/", json={
            "name": "Kienyeji 1", "breed": "Kienyeji", "initial_bird_count": 300, "age_weeks": 6,
        }, headers=headers_a)
        assert created.status_code == 201
        flock = created.json["flock"]
        assert flock["bird_count"] == 300
        assert flock["mortality_rate"] == 0
        assert flock["status"] == "ACTIVE"

        listed = client.get("/api/flocks/", headers=headers_a)
        assert [f["id"] for f in listed.json["flocks"]] == [flock["id"]]

        updated = client.put(f"/api/flocks/{flock['id']}", json={"bird_count": 270}, headers=headers_a)
        assert updated.status_code == 200
        assert updated.json["flock"]["mortality_rate"] == pytest.approx(10.0)

        detail = client.get(f"/api/flocks/{flock['id']}", headers=headers_a)
        assert detail.status_code == 200
        assert detail.json["egg_production_7_days"] == []

        deleted = client.delete(f"/api/flocks/{flock['id']}", headers=headers_a)
        assert deleted.status_code == 200
        assert client.get(f"/api/flocks/{flock['id']}", headers=headers_a).status_code == 404

    def test_duplicate_name_conflicts(self, client, db_session, flock_a, headers_a):
        response = client.post("/api/flocks/", json={"name": flock_a.name, "initial_bird_count": 1},
                               headers=headers_a)
        assert response.status_code == 409

    def test_head_count_and_feed_series(self, client, db_session, user_a, headers_a):
        created = client.post("/api/flocks/", json={
            "name": "Layers C", "initial_bird_count": 200, "feed_intake": 22.5,
        }, headers=headers_a).json["flock"]
        assert len(created["mortality_rate_data"]) == 1
        assert created["mortality_rate_data"][0]["bird_count"] == 200
        assert created["mortality_rate_data"][0]["feed_intake"] == pytest.approx(22.5)

        client.put(f"/api/flocks/{created['id']}", json={"bird_count": 190}, headers=headers_a)
        client.put(f"/api/flocks/{created['id']}", json={"breed": "Isa Brown"}, headers=headers_a)
        client.put(f"/api/flocks/{created['id']}", json={"feed_intake": 24.0}, headers=headers_a)

        series = client.get(f"/api/flocks/{created['id']}", headers=headers_a).json["flock"]["mortality_rate_data"]
        assert [p["bird_count"] for p in series] == [200, 190, 190]
        assert [p["mortality_rate"] for p in series] == [0.0, 5.0, 5.0]
        assert series[-1]["feed_intake"] == pytest.approx(24.0)
        assert all(p["recorded_at"].endswith("Z") for p in series)

    def test_series_is_not_writable(self, client, db_session, flock_a, headers_a):
        response = client.put(f"/api/flocks/{flock_a.id}", json={"mortality_rate_data": []}, headers=headers_a)
        assert response.status_code == 400

    @pytest.mark.parametrize("payload", [
        {"initial_bird_count": 10},
        {"name": "X", "initial_bird_count": -1},
        {"name": "X", "initial_bird_count": 10, "bird_count": 11},
        {"name": "X", "initial_bird_count": 10, "status": "LOST"},
        {"name": "X", "initial_bird_count": 10, "user_id": 99},
    ])
    def test_invalid_payloads(self, client, db_session, user_a, headers_a, payload):
        assert client.post("/api/flocks/", json=payload, headers=headers_a).status_code == 400

    def test_recent_egg_counts(self, client, db_session, flock_a, headers_a):
        for day in range(1, 10):
            client.post("/api/egg-productions/", json={
                "flock_id": flock_a.id, "eggs_collected": 100 + day,
                "produced_at": f"2026-01-{day:02d}T07:00:00Z",
            }, headers=headers_a)

        detail = client.get(f"/api/flocks/{flock_a.id}", headers=headers_a).json

        assert detail["egg_production_7_days"] == [109, 108, 107, 106, 105, 104, 103]
        assert len(detail["egg_production_4_weeks"]) == 9


class TestRecords:

    def test_sale_amount_from_quantity_and_price(self, client, db_session, flock_a, headers_a):
        response = client.post("/api/sales/", json={
            "flock_id": flock_a.id, "product": "Eggs (tray)", "category": "Eggs",
            "quantity": 12, "unit_price_cents": 350, "sold_at": "2026-01-05T09:00:00Z",
        }, headers=headers_a)

        assert response.status_code == 201
        sale = response.json["sale"]
        assert sale["amount_cents"] == 4200
        assert sale["ref_no"].startswith(f"REF-{flock_a.user_id}-")
        assert sale["sold_at"] == "2026-01-05T09:00:00Z"

    def test_sale_requires_some_amount(self, client, db_session, flock_a, headers_a):
        response = client.post("/api/sales/", json={
            "flock_id": flock_a.id, "product": "Eggs", "category": "Eggs",
        }, headers=headers_a)
        assert response.status_code == 400

    def test_sales_refresh_flock_metrics(self, client, db_session, flock_a, headers_a):
        client.post("/api/sales/", json={
            "flock_id": flock_a.id, "product": "Eggs", "category": "Eggs", "amount_cents": 9000,
        }, headers=headers_a)
        client.post("/api/expenses/", json={
            "flock_id": flock_a.id, "category": "Feed", "amount_cents": 2500,
        }, headers=headers_a)

        flock = client.get(f"/api/flocks/{flock_a.id}", headers=headers_a).json["flock"]
        assert flock["revenue_cents"] == 9000
        assert flock["expenses_cents"] == 2500

    def test_expense_creates_notification(self, client, db_session, flock_a, headers_a):
        client.post("/api/expenses/", json={
            "flock_id": flock_a.id, "category": "Vaccines", "amount_cents": 1200,
        }, headers=headers_a)

        notes = client.get("/api/notifications/", headers=headers_a).json
        assert notes["unread_count"] == 1
        assert notes["notifications"][0]["title"] == "New Expense"

    def test_list_filters(self, client, db_session, flock_a, headers_a):
        for day in (3, 15, 28):
            client.post("/api/expenses/", json={
                "flock_id": flock_a.id, "category": "Feed", "amount_cents": day * 100,
                "incurred_at": f"2026-01-{day:02d}T10:00:00Z",
            }, headers=headers_a)

        response = client.get("/api/expenses/?start=2026-01-10&end=2026-01-28T10:00:00Z", headers=headers_a)

        assert [e["amount_cents"] for e in response.json["expenses"]] == [1500]

    def test_update_and_delete_record(self, client, db_session, flock_a, headers_a):
        created = client.post("/api/egg-productions/", json={
            "flock_id": flock_a.id, "eggs_collected": 400, "price_per_unit_cents": 12,
        }, headers=headers_a).json["egg_production"]
        assert created["total_revenue_cents"] == 4800

        updated = client.put(f"/api/egg-productions/{created['id']}", json={"eggs_collected": 410},
                             headers=headers_a)
        assert updated.json["egg_production"]["eggs_collected"] == 410

        assert client.delete(f"/api/egg-productions/{created['id']}", headers=headers_a).status_code == 200
        assert client.get(f"/api/egg-productions/{created['id']}", headers=headers_a).status_code == 404

    def test_negative_amount_rejected(self, client, db_session, flock_a, headers_a):
        response = client.post("/api/expenses/", json={
            "flock_id": flock_a.id, "category": "Feed", "amount_cents": -5,
        }, headers=headers_a)
        assert response.status_code == 400


class TestInventory:

    def test_crud_and_valuation(self, client, db_session, flock_a, headers_a):
        created = client.post("/api/inventory/", json={
            "flock_id": flock_a.id, "item_name": "Layer mash (70kg)", "quantity": 10,
            "reorder_level": 3, "cost_per_unit_cents": 3500,
        }, headers=headers_a)
        assert created.status_code == 201
        item = created.json["item"]
        assert item["value_cents"] == 35000
        assert item["needs_reorder"] is False

        listed = client.get("/api/inventory/", headers=headers_a).json
        assert listed["total_value_cents"] == 35000

        updated = client.put(f"/api/inventory/{item['id']}", json={"quantity": 2}, headers=headers_a)
        assert updated.json["item"]["needs_reorder"] is True

        low = client.get("/api/inventory/?low_stock=true", headers=headers_a).json
        assert [i["id"] for i in low["items"]] == [item["id"]]

        titles = [n.title for n in db_session.query(Notification).all()]
        assert "Low Stock" in titles

        assert client.delete(f"/api/inventory/{item['id']}", headers=headers_a).status_code == 200

    def test_low_stock_notifications_can_be_disabled(self, app, client, db_session, flock_a, headers_a,
                                                     monkeypatch):
        monkeypatch.setitem(app.config, "LOW_STOCK_NOTIFICATIONS", False)

        client.post("/api/inventory/", json={
            "flock_id": flock_a.id, "item_name": "Vaccine", "quantity": 0,
            "reorder_level": 5, "cost_per_unit_cents": 100,
        }, headers=headers_a)

        titles = [n.title for n in db_session.query(Notification).all()]
        assert "Low Stock" not in titles


class TestFinances:

    def test_range_endpoint(self, client, db_session, flock_a, headers_a):
        client.post("/api/sales/", json={
            "flock_id": flock_a.id, "product": "Eggs", "category": "Eggs",
            "quantity": 10, "amount_cents": 10000, "sold_at": "2026-01-10T08:00:00Z",
        }, headers=headers_a)
        client.post("/api/expenses/", json={
            "flock_id": flock_a.id, "category": "Feed", "amount_cents": 4000,
            "incurred_at": "2026-01-11T08:00:00Z",
        }, headers=headers_a)

        response = client.get("/api/finances/range?start=2026-01-01&end=2026-02-01", headers=headers_a)

        assert response.status_code == 200
        body = response.json
        assert body["period_start"] == "2026-01-01T00:00:00Z"
        assert body["period_end"] == "2026-02-01T00:00:00Z"
        assert len(body["flocks"]) == 1
        row = body["flocks"][0]
        assert row["net_profit_cents"] == 6000
        assert row["profit_margin"] == pytest.approx(60.0)
        assert body["summary"]["net_profit_cents"] == 6000

        again = client.get("/api/finances/range?start=2026-01-01&end=2026-02-01", headers=headers_a)
        assert again.json["flocks"][0]["id"] == row["id"]
        assert len(client.get("/api/finances/snapshots", headers=headers_a).json["snapshots"]) == 1

    @pytest.mark.parametrize("query", [
        "",
        "?start=2026-01-01",
        "?start=2026-02-01&end=2026-01-01",
        "?start=yesterday&end=2026-01-01",
    ])
    def test_range_validation(self, client, db_session, user_a, headers_a, query):
        assert client.get(f"/api/finances/range{query}", headers=headers_a).status_code == 400

    def test_period_endpoint(self, client, db_session, flock_a, headers_a):
        client.post("/api/sales/", json={
            "flock_id": flock_a.id, "product": "Eggs", "category": "Eggs", "amount_cents": 500,
        }, headers=headers_a)

        for kind in ("day", "week", "month", "year"):
            response = client.get(f"/api/finances/period/{kind}", headers=headers_a)
            assert response.status_code == 200
            assert response.json["flocks"][0]["total_revenue_cents"] == 500

        assert client.get("/api/finances/period/decade", headers=headers_a).status_code == 400

    def test_period_endpoint_uses_service_operation(self, client, db_session, flock_a, headers_a, monkeypatch):
        calls = []
        real = finance_service.get_period_financials

        def _spy(user_id, kind, now=None):
            calls.append((user_id, kind))
            return real(user_id, kind, now=now)

        monkeypatch.setattr(finance_service, "get_period_financials", _spy)

        response = client.get("/api/finances/period/week", headers=headers_a)

        assert response.status_code == 200
        assert calls == [(flock_a.user_id, "week")]

    def test_snapshot_one_flock(self, client, db_session, flock_a, headers_a):
        response = client.post(f"/api/finances/flocks/{flock_a.id}/snapshot",
                               json={"start": "2026-01-01", "end": "2026-02-01"}, headers=headers_a)
        assert response.status_code == 200
        assert response.json["snapshot"]["flock_id"] == flock_a.id

        deleted = client.delete(f"/api/finances/flocks/{flock_a.id}/snapshots", headers=headers_a)
        assert deleted.json["deleted"] == 1


class TestReports:

    def test_generate_list_download_delete(self, client, db_session, flock_a, headers_a, reports_dir,
                                           fake_renderer):
        created = client.post("/api/reports/sales", json={"start": "2026-01-01", "end": "2026-02-01"},
                              headers=headers_a)
        assert created.status_code == 201
        report = created.json["report"]
        assert report["report_type"] == "sales"

        listed = client.get("/api/reports/?type=sales", headers=headers_a).json["reports"]
        assert [r["id"] for r in listed] == [report["id"]]

        download = client.get(f"/api/reports/{report['id']}/download", headers=headers_a)
        assert download.status_code == 200
        assert download.mimetype == "application/pdf"
        assert download.data.startswith(b"%PDF")
        download.close()

        assert client.delete(f"/api/reports/{report['id']}", headers=headers_a).status_code == 200
        assert not os.path.exists(report["file_path"])

    def test_bad_kind_and_range(self, client, db_session, user_a, headers_a, reports_dir, fake_renderer):
        assert client.post("/api/reports/payroll", json={"start": "2026-01-01", "end": "2026-02-01"},
                           headers=headers_a).status_code == 400
        assert client.post("/api/reports/sales", json={"start": "2026-01-01"},
                           headers=headers_a).status_code == 400

    def test_renderer_failure_is_bad_gateway(self, app, client, db_session, user_a, headers_a, reports_dir,
                                             tmp_path, monkeypatch):
        monkeypatch.setitem(app.config, "PDF_RENDERER_BIN", str(tmp_path / "missing-renderer"))

        response = client.post("/api/reports/expenses", json={"start": "2026-01-01", "end": "2026-02-01"},
                               headers=headers_a)

        assert response.status_code == 502
        assert client.get("/api/reports/", headers=headers_a).json["reports"] == []

    def test_non_executable_renderer_is_bad_gateway(self, app, client, db_session, user_a, headers_a, reports_dir,
                                                    tmp_path, monkeypatch):
        renderer = tmp_path / "weasyprint"
        renderer.write_text("#!/bin/sh\nexit 0\n")
        renderer.chmod(0o644)
        monkeypatch.setitem(app.config, "PDF_RENDERER_BIN", str(renderer))

        response = client.post("/api/reports/sales", json={"start": "2026-01-01", "end": "2026-02-01"},
                               headers=headers_a)

        assert response.status_code == 502
        assert os.listdir(reports_dir) == []


class TestNotifications:

    def test_mark_read_and_delete(self, client, db_session, flock_a, headers_a):
        client.post("/api/expenses/", json={"flock_id": flock_a.id, "category": "Feed", "amount_cents": 1},
                    headers=headers_a)
        client.post("/api/expenses/", json={"flock_id": flock_a.id, "category": "Feed", "amount_cents": 2},
                    headers=headers_a)
        notes = client.get("/api/notifications/", headers=headers_a).json["notifications"]
        assert len(notes) == 2

        first = client.post(f"/api/notifications/{notes[0]['id']}/read", headers=headers_a)
        assert first.json["notification"]["is_read"] is True

        unread = client.get("/api/notifications/?unread=true", headers=headers_a).json
        assert unread["unread_count"] == 1

        assert client.post("/api/notifications/read-all", headers=headers_a).json["updated"] == 1
        assert client.delete(f"/api/notifications/{notes[1]['id']}", headers=headers_a).status_code == 200


class TestTenantIsolation:

    def test_other_tenants_flock_is_not_found(self, client, db_session, flock_a, flock_b, headers_a):
        assert client.get(f"/api/flocks/{flock_b.id}", headers=headers_a).status_code == 404
        assert client.put(f"/api/flocks/{flock_b.id}", json={"age_weeks": 9},
                          headers=headers_a).status_code == 404
        assert client.delete(f"/api/flocks/{flock_b.id}", headers=headers_a).status_code == 404
        assert client.get(f"/api/flocks/{flock_b.id + 1000}", headers=headers_a).status_code == 404

        db.session.expire_all()
        assert db_session.get(Flock, flock_b.id) is not None

    def test_cannot_book_against_foreign_flock(self, client, db_session, flock_a, flock_b, headers_a):
        sale = client.post("/api/sales/", json={
            "flock_id": flock_b.id, "product": "Eggs", "category": "Eggs", "amount_cents": 100,
        }, headers=headers_a)
        expense = client.post("/api/expenses/", json={
            "flock_id": flock_b.id, "category": "Feed", "amount_cents": 100,
        }, headers=headers_a)
        item = client.post("/api/inventory/", json={
            "flock_id": flock_b.id, "item_name": "Feed", "quantity": 1, "cost_per_unit_cents": 1,
        }, headers=headers_a)
        snapshot = client.post(f"/api/finances/flocks/{flock_b.id}/snapshot", json={"period": "month"},
                               headers=headers_a)

        assert sale.status_code == 404
        assert expense.status_code == 404
        assert item.status_code == 404
        assert snapshot.status_code == 404

    def test_collections_are_scoped(self, client, db_session, flock_a, flock_b, headers_a, headers_b):
        client.post("/api/sales/", json={
            "flock_id": flock_b.id, "product": "Birds", "category": "Birds", "amount_cents": 50000,
        }, headers=headers_b)

        assert client.get("/api/sales/", headers=headers_a).json["sales"] == []
        assert [f["id"] for f in client.get("/api/flocks/", headers=headers_a).json["flocks"]] == [flock_a.id]
        assert client.get("/api/finances/period/month", headers=headers_a).json["flocks"] == []

    def test_other_tenants_record_is_not_found(self, client, db_session, flock_a, flock_b, headers_a,
                                               headers_b):
        theirs = client.post("/api/expenses/", json={
            "flock_id": flock_b.id, "category": "Feed", "amount_cents": 700,
        }, headers=headers_b).json["expense"]

        assert client.get(f"/api/expenses/{theirs['id']}", headers=headers_a).status_code == 404
        assert client.delete(f"/api/expenses/{theirs['id']}", headers=headers_a).status_code == 404


class TestSystem:

    def test_health(self, client, db_session):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json["checks"]["database"]["status"] == "healthy"
        assert response.json["checks"]["broadcast"]["status"] == "healthy"

    def test_announce_requires_admin(self, client, db_session, user_a, headers_a, admin_user):
        assert client.post("/api/system/announce", json={"message": "hi"}, headers=headers_a).status_code == 403

        from poultrydesk.services.session_service import create_session
        _, token = create_session(admin_user.id)
        admin_headers = {"Authorization": f"Bearer {token}"}

        assert client.post("/api/system/announce", json={}, headers=admin_headers).status_code == 400
        assert client.post("/api/system/announce", json={"message": "Water off at 2pm"},
                           headers=admin_headers).status_code == 202

    def test_cors_for_allowed_origin(self, client, db_session):
        response = client.get("/health", headers={"Origin": "http://localhost:5173"})
        assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"

        other = client.get("/health", headers={"Origin": "http://evil.example"})
        assert "Access-Control-Allow-Origin" not in other.headers
