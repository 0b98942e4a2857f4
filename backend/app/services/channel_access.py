"""Per-channel read/write authorization derived from organisational membership.

Rules are evaluated against the current database state on every call; nothing
is cached between requests because department, team and project membership can
change between two connections of the same user.
"""

from __future__ import annotations

from typing import Callable

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models import ChannelType, ChatChannel, ProjectAssignment, TeamMember, User

AccessRule = Callable[[Session, int, ChatChannel, bool], bool]


def _broadcast_rule(db: Session, user_id: int, channel: ChatChannel, is_privileged: bool) -> bool:
    return is_privileged


def _dm_rule(db: Session, user_id: int, channel: ChatChannel, is_privileged: bool) -> bool:
    return user_id in (channel.dm_user_a, channel.dm_user_b)


def _department_rule(db: Session, user_id: int, channel: ChatChannel, is_privileged: bool) -> bool:
    if channel.ref_id is None:
        return False
    department_id = db.execute(
        select(User.department_id).where(User.id == user_id)
    ).scalar_one_or_none()
    return department_id is not None and department_id == channel.ref_id


def _team_rule(db: Session, user_id: int, channel: ChatChannel, is_privileged: bool) -> bool:
    if channel.ref_id is None:
        return False
    stmt = (
        select(TeamMember.id)
        .where(TeamMember.team_id == channel.ref_id, TeamMember.user_id == user_id)
        .limit(1)
    )
    return db.execute(stmt).first() is not None


def _project_rule(db: Session, user_id: int, channel: ChatChannel, is_privileged: bool) -> bool:
    if channel.ref_id is None:
        return False
    stmt = (
        select(ProjectAssignment.id)
        .where(
            ProjectAssignment.project_id == channel.ref_id,
            ProjectAssignment.user_id == user_id,
        )
        .limit(1)
    )
    return db.execute(stmt).first() is not None


READ_RULES: dict[ChannelType, AccessRule] = {
    ChannelType.BROADCAST: _broadcast_rule,
    ChannelType.DM: _dm_rule,
    ChannelType.DEPARTMENT: _department_rule,
    ChannelType.TEAM: _team_rule,
    ChannelType.PROJECT: _project_rule,
}

# Broadcast channels are announcement-only: writing needs the same privilege as reading.
WRITE_RULES: dict[ChannelType, AccessRule] = dict(READ_RULES)


def _evaluate(
    rules: dict[ChannelType, AccessRule],
    db: Session,
    user_id: int,
    channel_id: int,
    is_privileged: bool,
) -> bool:
    if user_id <= 0 or channel_id <= 0:
        return False
    channel = db.get(ChatChannel, channel_id)
    if channel is None:
        return False
    rule = rules.get(channel.channel_type)
    if rule is None:
        return False
    return bool(rule(db, user_id, channel, is_privileged))


def can_read_channel(db: Session, user_id: int, channel_id: int, is_privileged: bool) -> bool:
    """Return whether ``user_id`` may read messages and open a stream on the channel."""

    return _evaluate(READ_RULES, db, user_id, channel_id, is_privileged)


def can_write_channel(db: Session, user_id: int, channel_id: int, is_privileged: bool) -> bool:
    """Return whether ``user_id`` may post or react in the channel."""

    return _evaluate(WRITE_RULES, db, user_id, channel_id, is_privileged)


__all__ = ["can_read_channel", "can_write_channel", "READ_RULES", "WRITE_RULES"]
