"""
Shared pytest fixtures for the Travel Desk test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - make_user / auth_headers: user factory and bearer-token headers
    - requester, reviewer, second_reviewer, minister, admin: pre-created users
    - draft / submitted: applications owned by ``requester``
"""

import copy

import pytest

from traveldesk import create_app
from traveldesk.models import db as _db
from traveldesk.models.auth import User
from traveldesk.services import application_service, decision_service
from traveldesk.services.jwt_service import generate_access_token
from traveldesk.services.payloads import Actor
from traveldesk.utils.crypto import hash_password

VALID_APPLICATION = {
    "department": "Finance Secretariat",
    "head_of_department": "11",
    "event_title": "Pacific Finance Ministers Meeting",
    "reason_for_participation": "Represent the department",
    "start_date": "2026-11-02",
    "end_date": "2026-11-06",
    "minister_email": "m@x.gov",
    "hod_email": "h@x.gov",
    "travellers": [{"name": "Ana Detenamo", "role": "Director"}],
    "expenses": [
        {"expense_type": "Airfare", "cost_per_person": 1200, "persons_or_days": 1, "donor_funding": "No"},
        {"expense_type": "Accommodation", "cost_per_person": 150, "persons_or_days": 4, "donor_funding": "Yes"},
    ],
}


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


# ── Users & tokens ───────────────────────────────────────────────────────


@pytest.fixture()
def make_user():
    """Factory: create and commit a User."""

    def _make(email, roles=("USER",), *, first_name="Test", last_name="User",
              status="ACTIVE", password=None, department_head_code=None):
        user = User(
            email=email,
            first_name=first_name,
            last_name=last_name,
            roles=list(roles),
            status=status,
            department_head_code=department_head_code,
            password_hash=hash_password(password, rounds=4) if password else None,
        )
        _db.session.add(user)
        _db.session.commit()
        return user

    return _make


@pytest.fixture()
def auth_headers():
    """Bearer-token headers for a user."""

    def _headers(user):
        token = generate_access_token(user.id, user.roles)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture()
def requester(make_user):
    return make_user("requester@finance.gov.nr", first_name="Ana", last_name="Detenamo",
                     department_head_code="11")


@pytest.fixture()
def reviewer(make_user):
    return make_user("reviewer@pmo.gov.nr", ("USER", "REVIEWER"), first_name="Rita", last_name="Review")


@pytest.fixture()
def second_reviewer(make_user):
    return make_user("reviewer2@pmo.gov.nr", ("USER", "REVIEWER"), first_name="Ron", last_name="Second")


@pytest.fixture()
def minister(make_user):
    return make_user("minister@x.gov", ("USER", "MINISTER"), first_name="Milo", last_name="Minister")


@pytest.fixture()
def admin(make_user):
    return make_user("admin@pmo.gov.nr", ("USER", "ADMIN"), first_name="Ada", last_name="Admin")


@pytest.fixture()
def actor_of():
    """Actor snapshot for a user, as the JWT middleware would build it."""
    return Actor.from_user


@pytest.fixture()
def application_data():
    """A fresh copy of a complete, submittable application body."""
    return copy.deepcopy(VALID_APPLICATION)


# ── Applications ─────────────────────────────────────────────────────────


@pytest.fixture()
def draft(requester, actor_of, application_data):
    """A DRAFT application owned by ``requester``."""
    return application_service.create_application(actor_of(requester), application_data)


@pytest.fixture()
def submitted(requester, draft, actor_of):
    """A SUBMITTED application owned by ``requester``."""
    return decision_service.decide(draft["id"], actor_of(requester), "submit")
