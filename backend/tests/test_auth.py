# Overview: Pytest coverage for registration, login, sessions and route protection.

import pytest

from poultrydesk.services import session_service
from poultrydesk.services.auth_service import (
    create_user,
    authenticate,
    validate_password_strength,
    AuthError,
    PasswordValidationError,
)


class TestPasswords:

    @pytest.mark.parametrize("password", ["short1!", "alllower1!", "ALLUPPER1!", "NoDigits!!", "NoSpecial12"])
    def test_weak_passwords_rejected(self, password):
        with pytest.raises(PasswordValidationError):
            validate_password_strength(password)

    def test_strong_password_accepted(self):
        validate_password_strength("Secr3t!pass")


class TestUsers:

    def test_create_and_authenticate(self, db_session):
        user = create_user("henhouse", "Hen@Example.com", "Secr3t!pass")

        assert user.email == "hen@example.com"
        assert user.password_hash != "Secr3t!pass"
        assert authenticate("henhouse", "Secr3t!pass").id == user.id
        assert authenticate("hen@example.com", "Secr3t!pass").id == user.id
        assert authenticate("henhouse", "wrong") is None

    def test_duplicate_rejected(self, db_session, user_a):
        with pytest.raises(AuthError):
            create_user("farm_a", "other@example.com", "Secr3t!pass")
        with pytest.raises(AuthError):
            create_user("other", "farm_a@example.com", "Secr3t!pass")

    def test_bad_email_rejected(self, db_session):
        with pytest.raises(AuthError):
            create_user("someone", "not-an-email", "Secr3t!pass")


class TestSessions:

    def test_revoked_session_is_invalid(self, db_session, user_a, token_a):
        assert session_service.validate_session(token_a).user_id == user_a.id

        assert session_service.revoke_session(token_a) is True
        assert session_service.validate_session(token_a) is None

    def test_idle_session_expires(self, app, db_session, user_a, token_a, monkeypatch):
        monkeypatch.setitem(app.config, "SESSION_IDLE_TIMEOUT_HOURS", 0)
        assert session_service.validate_session(token_a) is None

    def test_unknown_token(self, db_session):
        assert session_service.validate_session("deadbeef") is None
        assert session_service.validate_session("") is None


class TestAuthRoutes:

    def test_register_login_me_logout(self, client, db_session, login):
        response = client.post("/api/auth/register", json={
            "username": "coop",
            "email": "coop@example.com",
            "password": "Secr3t!pass",
            "contact": "+254700000000",
        })
        assert response.status_code == 201
        assert response.json["user"]["contact"] == "+254700000000"

        token = login("coop")
        assert token
        headers = {"Authorization": f"Bearer {token}"}

        me = client.get("/api/auth/me", headers=headers)
        assert me.status_code == 200
        assert me.json["user"]["username"] == "coop"

        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401

    def test_register_weak_password(self, client, db_session):
        response = client.post("/api/auth/register", json={
            "username": "coop", "email": "coop@example.com", "password": "weak",
        })
        assert response.status_code == 400

    def test_login_failures(self, client, db_session, user_a):
        assert client.post("/api/auth/login", json={}).status_code == 400
        response = client.post("/api/auth/login", json={"username": "farm_a", "password": "Wr0ng!pass"})
        assert response.status_code == 401

    @pytest.mark.parametrize("method,path", [
        ("GET", "/api/flocks/"),
        ("POST", "/api/flocks/"),
        ("GET", "/api/sales/"),
        ("GET", "/api/expenses/"),
        ("GET", "/api/egg-productions/"),
        ("GET", "/api/inventory/"),
        ("GET", "/api/vaccinations/"),
        ("POST", "/api/vaccinations/reminders"),
        ("GET", "/api/budgets/variance"),
        ("GET", "/api/finances/period/month"),
        ("GET", "/api/finances/snapshots"),
        ("POST", "/api/reports/sales"),
        ("GET", "/api/reports/"),
        ("GET", "/api/notifications/"),
        ("POST", "/api/system/announce"),
    ])
    def test_protected_routes_require_token(self, client, db_session, method, path):
        response = client.open(path, method=method)
        assert response.status_code == 401

    def test_garbage_token_rejected(self, client, db_session):
        response = client.get("/api/flocks/", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401
