"""
Shared fixtures: an in-memory SQLite database, seeded users and a listing,
and HTTP clients logged in as a given user.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, select

from db import get_session
from main import app
from models import (
    ACTIVE_REQUEST_STATUSES,
    FoodCategory,
    FoodListing,
    ListingStatus,
    Notification,
    PickupRequest,
    User,
)
from routers.auth import hash_password
from services.transitions import PickupService

PASSWORD = "secret-pass"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


def _user(session, email, name, **flags) -> User:
    user = User(email=email, name=name, password_hash=hash_password(PASSWORD), **flags)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def donor(session):
    return _user(session, "dana@foodshare.org", "Dana Donor", is_donor=True)


@pytest.fixture
def other_donor(session):
    return _user(session, "otto@foodshare.org", "Otto Donor", is_donor=True)


@pytest.fixture
def receiver(session):
    return _user(session, "rui@foodshare.org", "Rui Receiver", is_receiver=True)


@pytest.fixture
def ngo(session):
    return _user(session, "meals@foodshare.org", "Meals NGO", is_ngo=True)


@pytest.fixture
def volunteer(session):
    return _user(session, "val@foodshare.org", "Val Volunteer", is_volunteer=True)


@pytest.fixture
def other_volunteer(session):
    return _user(session, "vic@foodshare.org", "Vic Volunteer", is_volunteer=True)


@pytest.fixture
def admin(session):
    return _user(session, "ada@foodshare.org", "Ada Admin", is_admin=True)


def make_listing(session, donor: User, title: str = "Vegetable curry") -> FoodListing:
    listing = FoodListing(
        donor_id=donor.id,
        title=title,
        description="Two trays, cooked this afternoon",
        category=FoodCategory.COOKED,
        dietary_tags=["vegetarian"],
        pickup_address="12 Market Street",
    )
    session.add(listing)
    session.commit()
    session.refresh(listing)
    return listing


@pytest.fixture
def listing(session, donor):
    return make_listing(session, donor)


@pytest.fixture
def service(session):
    return PickupService(session)


def notifications_for(session, user_id: int):
    stmt = select(Notification).where(Notification.user_id == user_id).order_by(Notification.id)
    return list(session.exec(stmt).all())


def listing_status(session, listing_id: int) -> ListingStatus:
    session.expire_all()
    return session.get(FoodListing, listing_id).status


def assert_listing_coupled(session, listing_id: int) -> None:
    """A listing is claimed iff exactly one active request points at it."""
    session.expire_all()
    listing = session.get(FoodListing, listing_id)
    active = session.exec(
        select(PickupRequest).where(
            PickupRequest.listing_id == listing_id,
            PickupRequest.status.in_(list(ACTIVE_REQUEST_STATUSES)),
        )
    ).all()
    if listing.status is ListingStatus.CLAIMED:
        assert len(active) == 1
    else:
        assert active == []


@pytest.fixture
def login_as(engine):
    """Return a factory producing a TestClient logged in as (user, role)."""

    def override_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_session

    def _login(user: User, role: str) -> TestClient:
        client = TestClient(app)
        resp = client.post(
            "/login", json={"email": user.email, "password": PASSWORD, "role": role}
        )
        assert resp.status_code == 200, resp.text
        return client

    yield _login
    app.dependency_overrides.clear()


@pytest.fixture
def anonymous(engine):
    def override_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    yield TestClient(app)
    app.dependency_overrides.clear()
