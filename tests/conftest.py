import os
import tempfile

os.environ.setdefault("DB_DIR", tempfile.mkdtemp(prefix="certprep-tests-"))
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import cli
from certprep import config
from certprep.app import app
from certprep.database import Base, get_db, init_db
from certprep.models.db.user import User
from certprep.services.session_provider import SessionProvider

PASSWORD = "secret-pass"


@pytest.fixture()
def db_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db(db_factory):
    session = db_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def provider(db_factory):
    return SessionProvider(db_factory)


@pytest.fixture()
def client(db_factory, provider, monkeypatch):
    def override_get_db():
        session = db_factory()
        try:
            yield session
        finally:
            session.close()

    monkeypatch.setattr(config, "DATA_FALLBACK", "off")
    app.dependency_overrides[get_db] = override_get_db
    app.state.session_provider = provider
    # No context manager: startup workers are not needed here
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def seeded(db):
    cli.seed(db)
    return "test-1"


def register_and_login(client: TestClient, email: str) -> dict[str, str]:
    response = client.post(
        "/api/auth/register",
        json={"email": email, "password": PASSWORD, "full_name": "Test Learner"},
    )
    assert response.status_code == 201, response.text
    response = client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['data']['access_token']}"}


@pytest.fixture()
def user_headers(client):
    return register_and_login(client, "learner@certprep.io")


@pytest.fixture()
def admin_headers(client, db):
    headers = register_and_login(client, "admin@certprep.io")
    user = db.query(User).filter(User.email == "admin@certprep.io").one()
    user.is_admin = True
    db.commit()
    return headers
