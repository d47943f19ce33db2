import os
from typing import Generator

# demo data is loaded per test through the `seeded` fixture
os.environ.setdefault("SEED_DEMO_DATA", "0")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from olms import config
from olms.db import Base
from olms.dependencies import get_db
from olms.main import app
from olms.seed import seed_demo_data


@pytest.fixture(autouse=True)
def settings():
    previous = config.configure(jwt_secret="test-secret", erp_mock=True)
    yield config.get_settings()
    config.reset(previous)


@pytest.fixture(scope="function")
def db_session() -> Generator:
    # Use in-memory SQLite with a single connection
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def seeded(db_session):
    seed_demo_data(db_session)
    return db_session


@pytest.fixture(scope="function")
def client(db_session):
    # Override dependency to use the same session
    def override_get_db():
        try:
            yield db_session
        finally:
            pass
    app.dependency_overrides[get_db] = override_get_db
    from fastapi.testclient import TestClient
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _login(client, email: str, password: str) -> dict:
    r = client.post("/trpc/users.login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['token']}"}


@pytest.fixture
def login(client):
    """Log in through the API and return ready-to-use headers."""
    return lambda email, password: _login(client, email, password)


@pytest.fixture
def admin_headers(client, seeded):
    return _login(client, "admin@zenith.com", "admin123")


@pytest.fixture
def customer_headers(client, seeded):
    return _login(client, "customer@zenith.com", "customer123")


@pytest.fixture
def factory_headers(client, seeded):
    return _login(client, "factory@zenith.com", "factory123")
