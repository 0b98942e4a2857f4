"""The initial schema revision, applied to a blank SQLite database."""

from __future__ import annotations

import importlib.util
from pathlib import Path
from typing import Iterator

import pytest
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import create_engine, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from app.models import ChannelType, ChatChannel, User, UserRole
from app.services.channels import list_channels

REVISION_PATH = (
    Path(__file__).resolve().parents[1] / "alembic" / "versions" / "20261019_01_create_chat_tables.py"
)


def _load_revision():
    spec = importlib.util.spec_from_file_location("chat_tables_revision", REVISION_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture()
def migrated_engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    revision = _load_revision()
    with engine.begin() as connection:
        with Operations.context(MigrationContext.configure(connection)):
            revision.upgrade()
    try:
        yield engine
    finally:
        engine.dispose()


def test_upgrade_seeds_single_broadcast_channel(migrated_engine):
    with migrated_engine.connect() as connection:
        rows = connection.execute(text("SELECT type, name, ref_id FROM chat_channels")).all()

    assert rows == [("broadcast", "Tous", None)]


def test_seeded_broadcast_is_listed_for_privileged_users_only(migrated_engine):
    with Session(migrated_engine) as db:
        admin = User(name="Root", email="root@example.com", role=UserRole.SUPER_ADMIN)
        member = User(name="Alice", email="alice@example.com")
        db.add_all([admin, member])
        db.commit()

        admin_channels = list_channels(db, admin, admin.is_privileged)
        member_channels = list_channels(db, member, member.is_privileged)
        broadcast = db.execute(
            select(ChatChannel).where(ChatChannel.type == ChannelType.BROADCAST.value)
        ).scalar_one()

    assert [(view.type, view.name) for view in admin_channels] == [("broadcast", "Tous")]
    assert admin_channels[0].id == broadcast.id
    assert member_channels == []
