"""
Pytest fixtures for poultrydesk backend tests.

Provides an in-memory database, two tenants with flocks, bearer tokens,
and a stand-in for the external PDF renderer.
"""

import subprocess

import pytest

from poultrydesk import create_app
from poultrydesk.extensions import db
from poultrydesk.models import Flock
from poultrydesk.services import pdf_renderer
from poultrydesk.services.auth_service import create_user
from poultrydesk.services.session_service import create_session


PASSWORD = "Secr3t!pass"


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'REPORTS_OUTPUT_DIR': str(tmp_path_factory.mktemp("reports")),
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()
        app.extensions["broadcast_hub"].stop()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def reports_dir(app, tmp_path, monkeypatch):
    """Per-test output directory for PDFs and charts."""
    path = tmp_path / "reports"
    monkeypatch.setitem(app.config, "REPORTS_OUTPUT_DIR", str(path))
    return path


@pytest.fixture(scope='function')
def fake_renderer(monkeypatch):
    """
    Replace the renderer process with one that writes a tiny PDF.

    Captures each call's argv and stdin so tests can inspect them.
    """
    calls = []

    def _run(cmd, input=None, capture_output=False, timeout=None, check=False):
        calls.append({"cmd": cmd, "input": input, "timeout": timeout})
        with open(cmd[-1], "wb") as fh:
            fh.write(b"%PDF-1.4\n%fake\n")
        return subprocess.CompletedProcess(cmd, 0, stdout=b"", stderr=b"")

    monkeypatch.setattr(pdf_renderer.subprocess, "run", _run)
    return calls


@pytest.fixture(scope='function')
def user_a(db_session):
    """First tenant."""
    return create_user("farm_a", "farm_a@example.com", PASSWORD)


@pytest.fixture(scope='function')
def user_b(db_session):
    """Second tenant."""
    return create_user("farm_b", "farm_b@example.com", PASSWORD)


@pytest.fixture(scope='function')
def admin_user(db_session):
    return create_user("ops", "ops@example.com", PASSWORD, is_admin=True)


@pytest.fixture(scope='function')
def flock_a(db_session, user_a):
    flock = Flock(user_id=user_a.id, name="Layers A", breed="Isa Brown",
                  initial_bird_count=500, bird_count=480)
    db_session.add(flock)
    db_session.commit()
    return flock


@pytest.fixture(scope='function')
def flock_b(db_session, user_b):
    flock = Flock(user_id=user_b.id, name="Broilers B", breed="Cobb 500",
                  initial_bird_count=1000, bird_count=1000)
    db_session.add(flock)
    db_session.commit()
    return flock


@pytest.fixture(scope='function')
def token_a(user_a):
    _, token = create_session(user_a.id)
    return token


@pytest.fixture(scope='function')
def token_b(user_b):
    _, token = create_session(user_b.id)
    return token


@pytest.fixture(scope='function')
def headers_a(token_a):
    return {'Authorization': f'Bearer {token_a}'}


@pytest.fixture(scope='function')
def headers_b(token_b):
    return {'Authorization': f'Bearer {token_b}'}


@pytest.fixture(scope='function')
def login(client):
    """Helper to get auth token for a user via the API."""
    def _login(identifier: str, password: str = PASSWORD):
        response = client.post('/api/auth/login', json={
            'username': identifier,
            'password': password
        })
        if response.status_code == 200:
            return response.json.get('token')
        return None
    return _login
