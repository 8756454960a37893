"""Shared test fixtures for the Viao boost test suite.

Provides:
- app: Flask app configured for testing (in-memory SQLite, CSRF off)
- client: Flask test client
- db_session: clean database per test (tables created/dropped)
- seed_data: admin, two organizers, a plain user and an event
- login: helper that logs a client in as a given user id
"""

from datetime import datetime, timedelta, timezone

import pytest
from flask import g

from viao import create_app
from viao.extensions import db as _db
from viao.models.event import Event
from viao.models.user import User


@pytest.fixture(scope="session")
def app():
    """Create the Flask application configured for testing."""
    app = create_app("testing")
    yield app


@pytest.fixture(autouse=True)
def db_session(app):
    """Create all tables before each test, drop after."""
    with app.app_context():
        _db.create_all()
        yield _db.session
        _db.session.rollback()
        _db.drop_all()


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def login():
    """Log a test client in as `user_id` by writing the Flask-Login session keys.

    Accounts are issued elsewhere, so there is no login route to post to.
    """

    def _login(client, user_id):
        with client.session_transaction() as sess:
            sess["_user_id"] = user_id
            sess["_fresh"] = True
        # Requests share the fixture's app context (and its g), so drop
        # any user Flask-Login cached for a previous identity.
        g.pop("_login_user", None)

    return _login


@pytest.fixture
def seed_data(app, db_session):
    """Seed the database with users and one upcoming event.

    Returns a dict of plain IDs so tests can use them after the objects
    have been expired by a commit or rollback.
    """
    admin = User(
        email="admin@viao.local",
        name="Admin",
        role="ADMIN",
        preferences={"adminSettings": {"stripeEnabled": True}},
    )
    organizer = User(
        email="organizer@viao.local", name="Olivia Organizer", role="ORGANIZER"
    )
    other_organizer = User(
        email="other@viao.local", name="Otto Other", role="ORGANIZER"
    )
    member = User(email="member@viao.local", name="Mia Member", role="USER")
    _db.session.add_all([admin, organizer, other_organizer, member])
    _db.session.flush()

    event = Event(
        title="Lake Zurich Sunset Run",
        description="5k along the lake.",
        date=datetime.now(timezone.utc) + timedelta(days=10),
        location="Zürich",
        category="sports",
        organizer_id=organizer.id,
    )
    _db.session.add(event)
    _db.session.commit()

    return {
        "admin_id": admin.id,
        "organizer_id": organizer.id,
        "other_organizer_id": other_organizer.id,
        "member_id": member.id,
        "event_id": event.id,
    }
