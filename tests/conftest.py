"""
Shared fixtures: an in-memory SQLite database per test, a frozen clock and
an API client whose collaborators are swapped for test doubles.
"""
import os

# Must be set before app.core.config is imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENABLE_SCHEDULER", "false")

from datetime import datetime
from unittest.mock import patch

import fakeredis
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.exc import InternalError, OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.api import deps
from app.core.clock import FixedClock
from app.core.security import create_access_token
from app.db.base import Base
from app.db.session import get_db
from app.models.booking_config import BookingConfig
from app.models.user import User
from app.models.working_day import WorkingDay
from app.services.booking_config import BookingConfigService
from app.services.booking_lifecycle import BookingLifecycle
from app.services.config_cache import ConfigCache
from app.services.notifications import RecordingNotifier
from app.services.payment_gateway import PaymentGateway

# Monday 2 March 2026, 09:00 local
NOW = datetime(2026, 3, 2, 9, 0)
GATEWAY_SECRET = "test-gateway-secret"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory) -> Session:
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def redis_client() -> fakeredis.FakeRedis:
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def cache(redis_client) -> ConfigCache:
    return ConfigCache(redis_client, ttl_seconds=3600)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def gateway() -> PaymentGateway:
    return PaymentGateway(GATEWAY_SECRET)


@pytest.fixture
def config_service(db, cache, clock) -> BookingConfigService:
    return BookingConfigService(db, cache, clock=clock)


@pytest.fixture
def seeded_configs(config_service) -> BookingConfigService:
    config_service.seed(admin_id="system")
    return config_service


@pytest.fixture
def lifecycle(db, seeded_configs, notifier, gateway, clock) -> BookingLifecycle:
    return BookingLifecycle(db, seeded_configs, notifier, gateway, clock=clock)


@pytest.fixture
def config_queries_fail(db):
    """
    BookingConfig queries on ``db`` raise and, as on PostgreSQL, the session
    refuses to commit until it has been rolled back. Yields the rollback mock.
    """
    real_query, real_commit, real_rollback = db.query, db.commit, db.rollback
    state = {"aborted": False}

    def query(*entities, **kwargs):
        if entities and entities[0] is BookingConfig:
            state["aborted"] = True
            raise OperationalError("SELECT", {}, Exception("server closed the connection"))
        return real_query(*entities, **kwargs)

    def commit():
        if state["aborted"]:
            raise InternalError("COMMIT", {}, Exception("current transaction is aborted"))
        return real_commit()

    def rollback():
        state["aborted"] = False
        return real_rollback()

    with patch.object(db, "query", side_effect=query), patch.object(db, "commit", side_effect=commit), \
            patch.object(db, "rollback", side_effect=rollback) as rolled_back:
        yield rolled_back


# ---------------------------------------------------------------------------
# Data
# ---------------------------------------------------------------------------


@pytest.fixture
def customer(db) -> User:
    user = User(email="priya@example.com", full_name="Priya Sharma", role="customer")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def admin(db) -> User:
    user = User(email="admin@example.com", full_name="Salon Admin", role="admin")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def weekday_schedule(db):
    """Mon-Sat 09:00-13:00 with a 11:00-11:30 break; Sunday off."""
    days = [WorkingDay(day_of_week=0, is_working=False, is_active=True)]
    for dow in range(1, 7):
        days.append(
            WorkingDay(
                day_of_week=dow,
                is_working=True,
                start_time="09:00",
                end_time="13:00",
                break_start="11:00",
                break_end="11:30",
                is_active=True,
            )
        )
    db.add_all(days)
    db.commit()
    return days


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------


@pytest.fixture
def client(session_factory, clock, cache, notifier, gateway):
    from app.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[deps.get_clock] = lambda: clock
    app.dependency_overrides[deps.get_config_cache] = lambda: cache
    app.dependency_overrides[deps.get_notifier] = lambda: notifier
    app.dependency_overrides[deps.get_payment_gateway] = lambda: gateway

    # Not used as a context manager, so the lifespan (db bootstrap, scheduler) never runs
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(str(user.id))}"}


@pytest.fixture
def customer_headers(customer) -> dict:
    return auth_headers(customer)


@pytest.fixture
def admin_headers(admin) -> dict:
    return auth_headers(admin)
