"""
Shared pytest fixtures for the Revision Tracker test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - actor / actor_headers: the default test owner
    - catalog: one venture/work/discipline/designer created via the API
"""

import pytest

from revtrack import create_app
from revtrack.models import db as _db
from revtrack.services.actor import ActorContext

TEST_OWNER = "owner-test"
OTHER_OWNER = "owner-other"


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture()
def actor():
    return ActorContext(owner_id=TEST_OWNER)


@pytest.fixture()
def actor_headers(app):
    return {app.config["ACTOR_HEADER"]: TEST_OWNER}


@pytest.fixture()
def other_headers(app):
    return {app.config["ACTOR_HEADER"]: OTHER_OWNER}


# ── Convenience fixtures ─────────────────────────────────────────────────


def _post(client, headers, path, payload):
    res = client.post(path, json=payload, headers=headers)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


@pytest.fixture()
def catalog(client, actor_headers):
    """One venture with one work, a 5-day discipline and a designer."""
    venture = _post(client, actor_headers, "/api/v1/ventures", {"name": "Riverside Towers"})
    work = _post(client, actor_headers, "/api/v1/works", {"name": "Block A", "venture_id": venture["id"]})
    discipline = _post(
        client, actor_headers, "/api/v1/disciplines", {"name": "Structural", "analysis_lead_days": 5},
    )
    designer = _post(
        client, actor_headers, "/api/v1/designers", {"name": "Acme Engineering", "email": "pm@acme-eng.com"},
    )
    return {"venture": venture, "work": work, "discipline": discipline, "designer": designer}


@pytest.fixture()
def group(catalog):
    """Group foreign keys of the ``catalog`` fixture, ready to splat into a payload."""
    return {
        "venture_id": catalog["venture"]["id"],
        "work_id": catalog["work"]["id"],
        "discipline_id": catalog["discipline"]["id"],
        "designer_id": catalog["designer"]["id"],
    }
