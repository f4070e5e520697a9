"""Shared test fixtures."""

import os

os.environ.setdefault("CAMPUS_POINTS_DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("CAMPUS_POINTS_RECONCILIATION_ENABLED", "false")

from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from campus_points.core.database import Base, get_db
from campus_points.main import app
from campus_points.models import Event, EventGuest, EventOrganizer, Promotion, PromotionKind, Role, User
from campus_points.utils.datetime import utcnow


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    """HTTP client whose requests each get a fresh session on the test database."""

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make_user(utorid, *, role=Role.REGULAR, balance=0, verified=True, suspicious=False):
        user = User(
            utorid=utorid,
            name=utorid.title(),
            role=role,
            balance=balance,
            verified=verified,
            suspicious=suspicious,
        )
        db.add(user)
        db.commit()
        return user

    return _make_user


@pytest.fixture
def make_promotion(db):
    def _make_promotion(
        kind=PromotionKind.AUTOMATIC,
        *,
        rate=None,
        points=None,
        min_spending=None,
        start_time=None,
        end_time=None,
        name="Promo",
    ):
        now = utcnow()
        promotion = Promotion(
            name=name,
            kind=kind,
            rate=Decimal(str(rate)) if rate is not None else None,
            points=points,
            min_spending=Decimal(str(min_spending)) if min_spending is not None else None,
            start_time=start_time or now - timedelta(days=1),
            end_time=end_time or now + timedelta(days=1),
        )
        db.add(promotion)
        db.commit()
        return promotion

    return _make_promotion


@pytest.fixture
def make_event(db):
    def _make_event(*, points_total=100, guests=(), organizers=(), start_time=None, end_time=None, name="Mixer"):
        now = utcnow()
        event = Event(
            name=name,
            start_time=start_time or now - timedelta(hours=1),
            end_time=end_time or now + timedelta(hours=2),
            points_total=points_total,
            points_remain=points_total,
            points_awarded=0,
        )
        db.add(event)
        db.flush()
        for guest in guests:
            db.add(EventGuest(event_id=event.event_id, user_id=guest.user_id))
        for organizer in organizers:
            db.add(EventOrganizer(event_id=event.event_id, user_id=organizer.user_id))
        db.commit()
        return event

    return _make_event


@pytest.fixture
def cashier(make_user):
    return make_user("cashier1", role=Role.CASHIER)


@pytest.fixture
def manager(make_user):
    return make_user("manager1", role=Role.MANAGER)
