"""Shared fixtures: in-memory database, temporary upload directory, users."""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from taskflow.config import Settings, get_settings
from taskflow.db.session import get_session
from taskflow.main import create_app
from taskflow.models import User, UserRole
from taskflow.services.access import Actor
from taskflow.services.storage import DocumentStorage
from taskflow.services.tasks import TaskService

PDF_BYTES = (
    b"%PDF-1.4\n1 0 obj<</Type/Catalog/Pages 2 0 R>>endobj 2 0 obj<</Type/Pages/Count 0>>endobj\n"
    b"xref\n0 3\n0000000000 65535 f\n0000000009 00000 n\n0000000052 00000 n\n"
    b"trailer<</Size 3/Root 1 0 R>>startxref\n106\n%%EOF"
)


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


@pytest.fixture
def upload_dir(tmp_path) -> Path:
    return tmp_path / "uploads"


@pytest.fixture
def storage(upload_dir) -> DocumentStorage:
    return DocumentStorage(upload_dir)


@pytest.fixture
def service(session, storage) -> TaskService:
    return TaskService(session, storage)


def _add_user(session: Session, email: str, role: UserRole = UserRole.USER) -> User:
    user = User(email=email, hashed_password="not-a-real-hash", role=role.value)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def users(session):
    """Creator, assignee, an unrelated user and an admin."""
    creator = _add_user(session, "creator@example.com")
    assignee = _add_user(session, "assignee@example.com")
    stranger = _add_user(session, "stranger@example.com")
    admin = _add_user(session, "admin@example.com", UserRole.ADMIN)
    return {
        "creator": Actor(id=creator.id, role=UserRole.USER),
        "assignee": Actor(id=assignee.id, role=UserRole.USER),
        "stranger": Actor(id=stranger.id, role=UserRole.USER),
        "admin": Actor(id=admin.id, role=UserRole.ADMIN),
    }


@pytest.fixture
def store_pdf(storage):
    """Write a PDF upload to storage the way the upload layer does."""
    def _store(name: str = "doc.pdf"):
        return storage.save(name, "application/pdf", PDF_BYTES)
    return _store


@pytest.fixture
def settings(upload_dir) -> Settings:
    return Settings(
        database_url="sqlite://",
        upload_dir=upload_dir,
        jwt_secret="test-secret",
        allow_admin_registration=True,
        rate_limit_max_requests=1000,
    )


@pytest.fixture
def client(engine, settings):
    app = create_app(settings)

    def _session_override():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _session_override
    app.dependency_overrides[get_settings] = lambda: settings
    return TestClient(app)


def signup(client: TestClient, email: str, role: str = "user", password: str = "secret123"):
    """Register and log in through the API; return the user id and auth headers."""
    response = client.post("/api/auth/register", json={"email": email, "password": password, "role": role})
    assert response.status_code == 201, response.text
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    body = response.json()
    return body["user"]["id"], {"x-auth-token": body["token"]}


def stored_files(upload_dir: Path):
    if not upload_dir.exists():
        return []
    return sorted(p.name for p in upload_dir.iterdir())
