"""
Shared fixtures for the response engine tests.

Engine tests run against an in-memory SQLite database; API and client tests
drive the real FastAPI app through TestClient with get_db overridden.
Times are always injected, never read from the wall clock.
"""
from datetime import date, datetime, time, timedelta
from types import SimpleNamespace
from unittest.mock import patch
from uuid import uuid4

import pytest
import pytz
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.models.db_models import (
    MealType, ProviderDB, CustomerDB, MealPreferenceDB,
)
from app.services.responses import ResponseStore


IST = pytz.timezone("Asia/Kolkata")

TODAY = date(2026, 3, 10)
YESTERDAY = TODAY - timedelta(days=1)
TOMORROW = TODAY + timedelta(days=1)


def at(hour: int, minute: int, day: date = TODAY) -> datetime:
    """Service-timezone datetime on `day`."""
    return IST.localize(datetime.combine(day, time(hour, minute)))


# =============================================================================
# DATABASE
# =============================================================================

@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(tmp_path):
    """
    File-backed database with independent connections, for interleaving two
    sessions the way two concurrent requests would.
    """
    engine = create_engine(f"sqlite:///{tmp_path / 'responses.db'}")
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    try:
        yield factory
    finally:
        engine.dispose()


def add_provider(db, name="Annapurna Tiffins", lunch_cutoff="10:30 AM", dinner_cutoff="06:30 PM"):
    """Provider with both meals enabled; pass None to leave a meal unsaved."""
    provider = ProviderDB(id=str(uuid4()), name=name)
    db.add(provider)
    for meal_type, cutoff in ((MealType.LUNCH, lunch_cutoff), (MealType.DINNER, dinner_cutoff)):
        if cutoff is None:
            continue
        db.add(MealPreferenceDB(
            id=str(uuid4()),
            provider_id=provider.id,
            meal_type=meal_type,
            enabled=True,
            price=80.0,
            cutoff_time=cutoff,
        ))
    db.commit()
    return provider


def add_customers(db, provider, names=("Asha", "Meena", "Ravi")):
    customers = []
    for index, name in enumerate(names):
        customer = CustomerDB(
            id=str(uuid4()),
            provider_id=provider.id,
            name=name,
            phone=f"98450000{index:02d}",
        )
        db.add(customer)
        customers.append(customer)
    db.commit()
    return customers


@pytest.fixture
def seeded(db_session):
    """
    One provider (lunch cutoff 10:30 AM, dinner 06:30 PM), three customers and
    pending lunch responses for yesterday, today and tomorrow.
    """
    provider = add_provider(db_session)
    customers = add_customers(db_session, provider)
    store = ResponseStore(db_session)
    responses = {}
    for day in (YESTERDAY, TODAY, TOMORROW):
        records = store.open_window(provider.id, [c.id for c in customers], day, MealType.LUNCH)
        responses[day] = {c.name: r for c, r in zip(customers, records)}
    return SimpleNamespace(
        provider=provider,
        customers={c.name: c for c in customers},
        responses=responses,
    )


# =============================================================================
# API
# =============================================================================

@pytest.fixture
def service_clock():
    """Mutable "now" patched into every module that reads the service clock."""
    state = {"now": at(9, 0)}

    def now():
        return state["now"]

    with patch("app.services.responses.response_service.local_now", side_effect=now), \
            patch("app.services.responses.queries.local_now", side_effect=now):
        yield state


@pytest.fixture
def api(db_session):
    """TestClient bound to the test session. Lifespan (init_db) is not run."""
    from fastapi.testclient import TestClient
    from app.main import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(seeded):
    from app.auth import create_access_token
    return {"Authorization": f"Bearer {create_access_token(seeded.provider.id)}"}
