"""Channel provisioning, listing and direct conversations."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models import (
    ChannelType,
    ChatChannel,
    Department,
    Project,
    ProjectAssignment,
    Team,
    TeamMember,
    User,
)
from app.services.errors import InvalidInput, NotFound

logger = logging.getLogger(__name__)

DM_DEFAULT_NAME = "Direct message"

CHANNEL_TYPE_ORDER: dict[str, int] = {
    ChannelType.BROADCAST.value: 0,
    ChannelType.DEPARTMENT.value: 1,
    ChannelType.TEAM.value: 2,
    ChannelType.PROJECT.value: 3,
    ChannelType.DM.value: 4,
}


@dataclass(slots=True)
class ChannelView:
    """Channel as presented to a particular user."""

    id: int
    type: str
    name: str
    ref_id: int | None


def _ensure_ref_channel(db: Session, channel_type: ChannelType, ref_id: int, name: str) -> None:
    stmt = select(ChatChannel.id).where(
        ChatChannel.type == channel_type.value,
        ChatChannel.ref_id == ref_id,
    )
    if db.execute(stmt).first() is not None:
        return
    db.add(ChatChannel(type=channel_type.value, name=name, ref_id=ref_id))
    try:
        db.commit()
    except IntegrityError:
        # Provisioned concurrently by another request.
        db.rollback()
        return
    logger.info("Provisioned %s channel for ref_id=%s", channel_type.value, ref_id)


def provision_member_channels(db: Session, user: User) -> None:
    """Create the department, team and project channels ``user`` belongs to."""

    if user.department_id is not None:
        department = db.get(Department, user.department_id)
        if department is not None:
            _ensure_ref_channel(db, ChannelType.DEPARTMENT, department.id, department.name)

    teams = db.execute(
        select(Team).join(TeamMember, TeamMember.team_id == Team.id).where(TeamMember.user_id == user.id)
    ).scalars()
    for team in teams.all():
        _ensure_ref_channel(db, ChannelType.TEAM, team.id, team.name)

    projects = db.execute(
        select(Project)
        .join(ProjectAssignment, ProjectAssignment.project_id == Project.id)
        .where(ProjectAssignment.user_id == user.id)
    ).scalars()
    for project in projects.all():
        _ensure_ref_channel(db, ChannelType.PROJECT, project.id, f"{project.code} - {project.name}")


def list_channels(db: Session, user: User, is_privileged: bool) -> list[ChannelView]:
    """Return every channel ``user`` can read, provisioning membership channels first."""

    provision_member_channels(db, user)

    conditions = [
        and_(
            ChatChannel.type == ChannelType.DM.value,
            or_(ChatChannel.dm_user_a == user.id, ChatChannel.dm_user_b == user.id),
        ),
        and_(
            ChatChannel.type == ChannelType.TEAM.value,
            ChatChannel.ref_id.in_(select(TeamMember.team_id).where(TeamMember.user_id == user.id)),
        ),
        and_(
            ChatChannel.type == ChannelType.PROJECT.value,
            ChatChannel.ref_id.in_(
                select(ProjectAssignment.project_id).where(ProjectAssignment.user_id == user.id)
            ),
        ),
    ]
    if user.department_id is not None:
        conditions.append(
            and_(
                ChatChannel.type == ChannelType.DEPARTMENT.value,
                ChatChannel.ref_id == user.department_id,
            )
        )
    if is_privileged:
        conditions.append(ChatChannel.type == ChannelType.BROADCAST.value)

    channels = db.execute(select(ChatChannel).where(or_(*conditions))).scalars().all()

    other_ids = {
        channel.dm_user_b if channel.dm_user_a == user.id else channel.dm_user_a
        for channel in channels
        if channel.type == ChannelType.DM.value
    }
    other_ids.discard(None)
    names: dict[int, str] = {}
    if other_ids:
        rows = db.execute(select(User.id, User.name).where(User.id.in_(other_ids))).all()
        names = {row.id: row.name for row in rows}

    views: list[ChannelView] = []
    for channel in channels:
        name = channel.name
        if channel.type == ChannelType.DM.value:
            other_id = channel.dm_user_b if channel.dm_user_a == user.id else channel.dm_user_a
            name = names.get(other_id, DM_DEFAULT_NAME)
        views.append(ChannelView(id=channel.id, type=channel.type, name=name, ref_id=channel.ref_id))

    views.sort(key=lambda view: (CHANNEL_TYPE_ORDER.get(view.type, len(CHANNEL_TYPE_ORDER)), view.name))
    return views


def _find_dm(db: Session, user_a: int, user_b: int) -> ChatChannel | None:
    stmt = select(ChatChannel).where(
        ChatChannel.type == ChannelType.DM.value,
        ChatChannel.dm_user_a == user_a,
        ChatChannel.dm_user_b == user_b,
    )
    return db.execute(stmt).scalar_one_or_none()


def get_or_create_dm(db: Session, user: User, other_user_id: int) -> ChatChannel:
    """Return the direct channel between ``user`` and ``other_user_id``, creating it once."""

    if other_user_id <= 0:
        raise InvalidInput("user_id is required")
    if other_user_id == user.id:
        raise InvalidInput("Cannot open a direct conversation with yourself")
    if db.get(User, other_user_id) is None:
        raise NotFound("User not found")

    user_a, user_b = min(user.id, other_user_id), max(user.id, other_user_id)
    channel = _find_dm(db, user_a, user_b)
    if channel is not None:
        return channel

    channel = ChatChannel(
        type=ChannelType.DM.value,
        name=DM_DEFAULT_NAME,
        dm_user_a=user_a,
        dm_user_b=user_b,
        created_by=user.id,
    )
    db.add(channel)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        channel = _find_dm(db, user_a, user_b)
        if channel is None:
            raise
        return channel
    db.refresh(channel)
    logger.info("Created dm channel %s for users %s/%s", channel.id, user_a, user_b)
    return channel


def list_active_users(db: Session, user: User) -> list[User]:
    """Users a caller can start a direct conversation with."""

    stmt = (
        select(User)
        .where(User.status == "active", User.id != user.id)
        .order_by(User.name.asc())
    )
    return list(db.execute(stmt).scalars())


__all__ = [
    "ChannelView",
    "CHANNEL_TYPE_ORDER",
    "provision_member_channels",
    "list_channels",
    "get_or_create_dm",
    "list_active_users",
]
