"""Pytest fixtures shared by unit, integration and security tests.

Provides:
- Database session on an in-memory SQLite database (tables recreated per test)
- Test organizations and profiles for every role (owner, admin, member)
- API client with get_db overridden and bearer token helpers

Usage:
    def test_admin_endpoint(client, admin_headers):
        response = client.get("/api/v1/employees", headers=admin_headers)
        assert response.status_code == 200
"""

import os
import sys
from pathlib import Path

# Set environment variables BEFORE any docuflow imports so settings pick them up
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-key-256-bits-minimum-length-required-for-security")
os.environ.setdefault("PASSWORD_PEPPER", "test-pepper-secret-key-32-chars-long")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

backend_src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(backend_src))
sys.path.insert(0, str(Path(__file__).parent))

from typing import Dict, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from docuflow.auth.rate_limit import rate_limiter
from docuflow.database import get_db
from docuflow.main import create_app
from docuflow.models import Base, Org, Profile, StorageConfig

from fixtures.factories import (
    ADMIN_PASSWORD,
    MEMBER_PASSWORD,
    OWNER_PASSWORD,
    auth_headers_for,
    make_profile,
    make_storage,
)
from fixtures.memory_storage import memory_storage  # noqa: F401

test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope="function", autouse=True)
def reset_rate_limiter():
    """Each test starts with a fresh login rate limit window."""
    rate_limiter.reset()
    yield
    rate_limiter.reset()


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Fresh database per test: tables are created before and dropped after."""
    Base.metadata.create_all(bind=test_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def test_org(db_session: Session) -> Org:
    org = Org(slug="test-org", name="Test Organization", settings_json={})
    db_session.add(org)
    db_session.commit()
    db_session.refresh(org)
    return org


@pytest.fixture
def other_org(db_session: Session) -> Org:
    org = Org(slug="other-org", name="Other Organization", settings_json={})
    db_session.add(org)
    db_session.commit()
    db_session.refresh(org)
    return org


@pytest.fixture
def owner_user(db_session: Session, test_org: Org) -> Profile:
    return make_profile(db_session, test_org, "owner@test.com", "owner", OWNER_PASSWORD, full_name="Olivia Owner")


@pytest.fixture
def admin_user(db_session: Session, test_org: Org) -> Profile:
    return make_profile(db_session, test_org, "admin@test.com", "admin", ADMIN_PASSWORD, full_name="Adam Admin")


@pytest.fixture
def member_user(db_session: Session, test_org: Org) -> Profile:
    return make_profile(db_session, test_org, "member@test.com", "member", MEMBER_PASSWORD, full_name="Mia Member")


@pytest.fixture
def other_admin(db_session: Session, other_org: Org) -> Profile:
    return make_profile(db_session, other_org, "admin@other.com", "admin", ADMIN_PASSWORD, full_name="Otto Other")


@pytest.fixture
def owner_headers(owner_user: Profile) -> Dict[str, str]:
    return auth_headers_for(owner_user)


@pytest.fixture
def admin_headers(admin_user: Profile) -> Dict[str, str]:
    return auth_headers_for(admin_user)


@pytest.fixture
def member_headers(member_user: Profile) -> Dict[str, str]:
    return auth_headers_for(member_user)


@pytest.fixture
def other_admin_headers(other_admin: Profile) -> Dict[str, str]:
    return auth_headers_for(other_admin)


@pytest.fixture
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """API client sharing the test database session."""
    app = create_app()

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def storage_config(db_session: Session, test_org: Org) -> StorageConfig:
    """Default object store config of test_org."""
    return make_storage(db_session, test_org)
