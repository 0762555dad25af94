"""
Shared fixtures: in-memory SQLite database and an API client wired to it.
"""
from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app import models  # noqa: F401
from app.core.database import Base, get_db
from app.main import app
from app.models.subscription import Subscription
from app.models.user import User
from app.services.passphrase import rate_limiter


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
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def user(db):
    user = User(email="alice@example.com", hashed_password="not-a-real-hash", full_name="Alice", is_active=True)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def make_subscription(db, user):
    """Insert a subscription directly, bypassing the service defaults."""

    def _make(**overrides):
        values = {
            "user_id": user.id,
            "name": "ChatGPT Plus",
            "icon": "🤖",
            "price": Decimal("20.00"),
            "currency": "EUR",
            "billing_cycle": "monthly",
            "renewal_day": 15,
            "credits_total": 100,
            "credits_remaining": 100,
            "last_reset_date": date(2025, 1, 15),
            "alerts_enabled": True,
            "position": 0,
        }
        values.update(overrides)
        subscription = Subscription(**values)
        db.add(subscription)
        db.commit()
        db.refresh(subscription)
        return subscription

    return _make


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    rate_limiter.reset()
    yield
    rate_limiter.reset()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    # Not used as a context manager: startup hooks (scheduler, create_all) stay off
    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_client(client):
    response = client.post(
        "/api/auth/register",
        json={"email": "bob@example.com", "password": "secret123", "full_name": "Bob"},
    )
    assert response.status_code == 201
    return client
