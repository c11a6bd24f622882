"""
Shared fixtures for the portal test suite.

The environment is pointed at an in-memory SQLite database and eager Celery
before anything from portal is imported, so settings pick it up.

Fixtures:
    db              - a session on the freshly created schema
    client          - FastAPI TestClient (startup hooks do not run)
    make_user       - factory for users with a given role
    admin_user / admin_headers
    member_user / member_headers
    other_headers   - a second member, for ownership checks
    published_tour  - bookable tour: 10 seats, adult 10000, child 5000, no senior price
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["NOTIFY_DRY_RUN"] = "true"

from datetime import datetime, timedelta
from itertools import count

import pytest
from fastapi.testclient import TestClient

from portal.core.database import SessionLocal, drop_db, init_db
from portal.core.security import create_access_token, hash_password
from portal.main import app
from portal.models import Region, Tour, TourDestination, TourStatus, User, UserRole

_aadhar_seq = count(100000000001)


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


def participant(name="Ravi Kumar", age=40, category="adult", aadhar=None):
    return {
        "name": name,
        "age": age,
        "aadharNumber": aadhar or str(next(_aadhar_seq)),
        "priceCategory": category,
    }


@pytest.fixture(autouse=True)
def schema():
    init_db()
    yield
    drop_db()


@pytest.fixture
def db():
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def make_user(db):
    """Creates and commits a user; the password is always 'secret123'."""

    def _make(email, role=UserRole.MEMBER, first_name="Test"):
        user = User(
            first_name=first_name,
            last_name="User",
            email=email,
            password_hash=hash_password("secret123"),
            phone_number="9876543210",
            aadhar_number=str(next(_aadhar_seq)),
            role=role,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def admin_user(make_user):
    return make_user("admin@example.com", role=UserRole.ADMIN, first_name="Admin")


@pytest.fixture
def admin_headers(admin_user):
    return auth_headers(admin_user)


@pytest.fixture
def member_user(make_user):
    return make_user("member@example.com", first_name="Lakshmi")


@pytest.fixture
def member_headers(member_user):
    return auth_headers(member_user)


@pytest.fixture
def other_headers(make_user):
    return auth_headers(make_user("other@example.com", first_name="Other"))


@pytest.fixture
def published_tour(db):
    start = datetime.utcnow().replace(microsecond=0) + timedelta(days=30)
    tour = Tour(
        title="South India Temple Circuit",
        description="Temples of Tamil Nadu and Andhra Pradesh",
        short_description="7-day temple circuit",
        duration_days=7,
        duration_nights=6,
        price_adult=10000,
        price_child=5000,
        start_date=start,
        end_date=start + timedelta(days=6),
        max_participants=10,
        status=TourStatus.PUBLISHED,
    )
    tour.destinations = [
        TourDestination(position=0, name="Tirupati", state="Andhra Pradesh", region=Region.SOUTH,
                        temples=["Sri Venkateswara Temple"]),
    ]
    db.add(tour)
    db.commit()
    db.refresh(tour)
    return tour
