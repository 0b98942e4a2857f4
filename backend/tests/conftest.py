"""Shared pytest fixtures for backend tests."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, Iterator

import pytest
from fastapi.testclient import TestClient
from passlib.context import CryptContext
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

ROOT_DIR = Path(__file__).resolve().parents[1]
for path in (ROOT_DIR, ROOT_DIR / "src"):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from app.core import security
from app.core.security import create_access_token, get_password_hash
from app.database import get_db
from app.main import app
from app.models import (
    Base,
    ChannelType,
    ChatChannel,
    Department,
    Project,
    ProjectAssignment,
    Team,
    TeamMember,
    User,
    UserRole,
)
from workhub.realtime import EventBus

security.pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def test_engine() -> Iterator[Engine]:
    """Provide an in-memory SQLite engine for isolated tests."""

    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture()
def session_factory(test_engine) -> sessionmaker[Session]:
    """Return a session factory bound to the test engine."""

    return sessionmaker(bind=test_engine, future=True)


@pytest.fixture()
def db_session(session_factory) -> Iterator[Session]:
    """Yield a SQLAlchemy session for unit tests."""

    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def bus() -> EventBus:
    """An isolated event bus per test."""

    return EventBus()


@pytest.fixture()
def make_user(db_session) -> Callable[..., User]:
    """Factory creating committed users."""

    counter = {"value": 0}

    def _make_user(
        name: str | None = None,
        *,
        role: UserRole = UserRole.USER,
        is_admin: bool = False,
        department: Department | None = None,
        password: str = "supersecret",
        status: str = "active",
    ) -> User:
        counter["value"] += 1
        name = name or f"User {counter['value']}"
        user = User(
            name=name,
            email=f"user{counter['value']}@example.com",
            hashed_password=get_password_hash(password),
            role=role,
            is_admin=is_admin,
            status=status,
            department_id=department.id if department is not None else None,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def department(db_session) -> Department:
    dep = Department(name="Engineering")
    db_session.add(dep)
    db_session.commit()
    db_session.refresh(dep)
    return dep


@pytest.fixture()
def member(make_user, department) -> User:
    return make_user("Alice", department=department)


@pytest.fixture()
def colleague(make_user, department) -> User:
    return make_user("Bob", department=department)


@pytest.fixture()
def outsider(make_user) -> User:
    return make_user("Mallory")


@pytest.fixture()
def admin(make_user) -> User:
    return make_user("Root", role=UserRole.SUPER_ADMIN)


@pytest.fixture()
def department_channel(db_session, department) -> ChatChannel:
    channel = ChatChannel(
        id=42,
        type=ChannelType.DEPARTMENT.value,
        name=department.name,
        ref_id=department.id,
    )
    db_session.add(channel)
    db_session.commit()
    db_session.refresh(channel)
    return channel


@pytest.fixture()
def broadcast_channel(db_session) -> ChatChannel:
    channel = ChatChannel(type=ChannelType.BROADCAST.value, name="Everyone")
    db_session.add(channel)
    db_session.commit()
    db_session.refresh(channel)
    return channel


@pytest.fixture()
def dm_channel(db_session, member, colleague) -> ChatChannel:
    channel = ChatChannel(
        type=ChannelType.DM.value,
        name="Direct message",
        dm_user_a=min(member.id, colleague.id),
        dm_user_b=max(member.id, colleague.id),
    )
    db_session.add(channel)
    db_session.commit()
    db_session.refresh(channel)
    return channel


@pytest.fixture()
def team_channel(db_session, member) -> ChatChannel:
    team = Team(name="Platform")
    db_session.add(team)
    db_session.flush()
    db_session.add(TeamMember(team_id=team.id, user_id=member.id))
    channel = ChatChannel(type=ChannelType.TEAM.value, name=team.name, ref_id=team.id)
    db_session.add(channel)
    db_session.commit()
    db_session.refresh(channel)
    return channel


@pytest.fixture()
def project_channel(db_session, member) -> ChatChannel:
    project = Project(code="WH-1", name="Workhub")
    db_session.add(project)
    db_session.flush()
    db_session.add(ProjectAssignment(project_id=project.id, user_id=member.id))
    channel = ChatChannel(type=ChannelType.PROJECT.value, name="WH-1 - Workhub", ref_id=project.id)
    db_session.add(channel)
    db_session.commit()
    db_session.refresh(channel)
    return channel


@pytest.fixture()
def auth_headers() -> Callable[[User], dict[str, str]]:
    """Build bearer headers for a user."""

    def _headers(user: User) -> dict[str, str]:
        token = create_access_token({"sub": str(user.id)})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture()
def client(session_factory, bus) -> Iterator[TestClient]:
    """Yield a FastAPI TestClient with the database dependency overridden."""

    def override_get_db() -> Iterator[Session]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    previous_bus = app.state.event_bus
    app.state.event_bus = bus
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    app.state.event_bus = previous_bus
