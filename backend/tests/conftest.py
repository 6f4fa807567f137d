"""
Pytest configuration and fixtures.

Tests run against an in-memory SQLite database shared by every session (the
engine uses a StaticPool for in-memory URLs), so API requests, websocket
handlers and the test's own session all see the same rows.
"""

import os
import uuid
from typing import Callable, Dict, Generator

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("ENVIRONMENT", "development")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from coderoom.core.rate_limiter import limiter
from coderoom.core.security import create_identity_token
from coderoom.database import Base, SessionLocal, engine
from coderoom.models import CollaboratorRole, Project, User
from coderoom.services.grants import upsert_grant
from coderoom.services.projects import create_project


@pytest.fixture(autouse=True)
def _schema() -> Generator[None, None, None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a database session for testing."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def make_user(db: Session) -> Callable[..., User]:
    def _make(username: str = "alice", avatar_url: str = None) -> User:
        user = User(id=uuid.uuid4(), username=username, avatar_url=avatar_url)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def owner(make_user) -> User:
    return make_user("owner")


@pytest.fixture
def project(db: Session, owner: User) -> Project:
    return create_project(db, owner.id, "Interview room", language="python")


@pytest.fixture
def grant(db: Session) -> Callable[[Project, User, CollaboratorRole], None]:
    def _grant(project: Project, user: User, role: CollaboratorRole) -> None:
        upsert_grant(db, project.id, user.id, role)
        db.commit()

    return _grant


@pytest.fixture
def auth_headers() -> Callable[[User], Dict[str, str]]:
    def _headers(user: User) -> Dict[str, str]:
        token = create_identity_token(user.id, name=user.username)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    from coderoom.main import app

    limiter.reset()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
