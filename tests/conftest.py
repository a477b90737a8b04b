"""Shared pytest fixtures for all test suites."""

import os
import uuid
from collections.abc import Callable, Generator
from types import MappingProxyType

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import NullPool, StaticPool

from backend.docflow.db.context import Principal
from backend.docflow.db.engine import create_session_factory, get_session
from backend.docflow.db.models import Base
from backend.docflow.documents.service import DocumentService
from backend.docflow.models.common import DocumentKind, Visibility
from backend.docflow.models.documents import DocumentRecord

ORG_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
OTHER_ORG_ID = uuid.UUID("00000000-0000-0000-0000-000000000009")
TEAM_ID = uuid.UUID("00000000-0000-0000-0000-0000000000aa")

PrincipalFactory = Callable[..., Principal]
DocumentFactory = Callable[..., DocumentRecord]


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """In-memory SQLite engine shared across threads, schema created from metadata."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def file_engine(tmp_path) -> Generator[Engine, None, None]:
    """File-backed SQLite engine; separate sessions get separate connections."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'docflow.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine: Engine) -> Generator[Session, None, None]:
    with create_session_factory(engine)() as session:
        yield session


@pytest.fixture
def make_principal() -> PrincipalFactory:
    """Build principals; each call gets a fresh user id unless one is given."""

    def _make(
        org_id: uuid.UUID | None = ORG_ID,
        org_role: str | None = "member",
        teams: dict[uuid.UUID, str] | None = None,
        user_id: uuid.UUID | None = None,
    ) -> Principal:
        return Principal(
            user_id=user_id or uuid.uuid4(),
            org_id=org_id,
            org_role=org_role,
            team_roles=MappingProxyType(dict(teams or {})),
        )

    return _make


@pytest.fixture
def owner(make_principal: PrincipalFactory) -> Principal:
    return make_principal()


@pytest.fixture
def outsider(make_principal: PrincipalFactory) -> Principal:
    """Authenticated user in a different organization."""
    return make_principal(org_id=OTHER_ORG_ID)


@pytest.fixture
def make_document(session: Session, owner: Principal) -> DocumentFactory:
    """Create documents through the service so each has a default branch and v1."""
    service = DocumentService(session)

    def _make(
        title: str = "Design notes",
        content: str = "line one\nline two",
        visibility: Visibility = Visibility.private,
        principal: Principal | None = None,
        kind: DocumentKind = DocumentKind.text,
        team_id: uuid.UUID | None = None,
    ) -> DocumentRecord:
        return service.create_document(
            principal or owner,
            title,
            content,
            kind=kind,
            visibility=visibility,
            team_id=team_id,
        )

    return _make


def bearer(principal: Principal) -> dict[str, str]:
    """Authorization headers for a principal in the stub token format."""
    headers = {
        "Authorization": f"Bearer {principal.org_id}:{principal.user_id}:{principal.org_role}"
    }
    if principal.team_roles:
        headers["X-Team-Memberships"] = ",".join(
            f"{team_id}={role}" for team_id, role in principal.team_roles.items()
        )
    return headers


@pytest.fixture
def auth_headers() -> Callable[[Principal], dict[str, str]]:
    return bearer


@pytest.fixture
def client(engine: Engine) -> Generator[TestClient, None, None]:
    """TestClient with request sessions bound to the in-memory test engine."""
    from backend.docflow.main import app

    factory = create_session_factory(engine)

    def _override_session() -> Generator[Session, None, None]:
        with factory() as session:
            yield session

    app.dependency_overrides[get_session] = _override_session
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def postgres_engine() -> Generator[Engine, None, None]:
    """Engine for PostgreSQL integration tests.

    Requires DATABASE_URL to be set to a real PostgreSQL connection string.
    Tests using this fixture should be marked with @pytest.mark.postgres.
    """
    database_url = os.getenv("DATABASE_URL")
    if not database_url or not database_url.startswith("postgresql"):
        pytest.skip(f"DATABASE_URL is not PostgreSQL: {database_url}")

    engine = create_engine(database_url, poolclass=NullPool)
    Base.metadata.create_all(engine)

    yield engine

    Base.metadata.drop_all(engine)
    engine.dispose()
