"""Authorization rules for each chat channel type."""

from __future__ import annotations

import pytest

from app.models import ChatChannel, TeamMember
from app.services.channel_access import can_read_channel, can_write_channel


def test_broadcast_is_privileged_only(db_session, broadcast_channel, member, admin):
    assert can_read_channel(db_session, admin.id, broadcast_channel.id, True) is True
    assert can_write_channel(db_session, admin.id, broadcast_channel.id, True) is True
    assert can_read_channel(db_session, member.id, broadcast_channel.id, False) is False
    assert can_write_channel(db_session, member.id, broadcast_channel.id, False) is False


def test_dm_only_allows_the_two_participants(db_session, dm_channel, member, colleague, outsider, admin):
    for participant in (member, colleague):
        assert can_read_channel(db_session, participant.id, dm_channel.id, False) is True
        assert can_write_channel(db_session, participant.id, dm_channel.id, False) is True

    assert can_read_channel(db_session, outsider.id, dm_channel.id, False) is False
    assert can_write_channel(db_session, outsider.id, dm_channel.id, False) is False
    # Privilege does not open other people's direct conversations.
    assert can_read_channel(db_session, admin.id, dm_channel.id, True) is False
    assert can_write_channel(db_session, admin.id, dm_channel.id, True) is False


def test_department_access_tracks_live_membership(db_session, department_channel, member, outsider):
    assert can_read_channel(db_session, member.id, department_channel.id, False) is True
    assert can_read_channel(db_session, outsider.id, department_channel.id, False) is False

    member.department_id = None
    db_session.commit()

    assert can_read_channel(db_session, member.id, department_channel.id, False) is False
    assert can_write_channel(db_session, member.id, department_channel.id, False) is False


def test_team_access_requires_membership_row(db_session, team_channel, member, colleague):
    assert can_read_channel(db_session, member.id, team_channel.id, False) is True
    assert can_write_channel(db_session, member.id, team_channel.id, False) is True
    assert can_read_channel(db_session, colleague.id, team_channel.id, False) is False

    db_session.add(TeamMember(team_id=team_channel.ref_id, user_id=colleague.id))
    db_session.commit()

    assert can_read_channel(db_session, colleague.id, team_channel.id, False) is True


def test_project_access_requires_assignment(db_session, project_channel, member, colleague, admin):
    assert can_read_channel(db_session, member.id, project_channel.id, False) is True
    assert can_read_channel(db_session, colleague.id, project_channel.id, False) is False
    assert can_read_channel(db_session, admin.id, project_channel.id, True) is False


def test_unknown_channel_fails_closed(db_session, member):
    assert can_read_channel(db_session, member.id, 9999, True) is False
    assert can_write_channel(db_session, member.id, 9999, True) is False


@pytest.mark.parametrize("channel_id", [0, -3])
def test_invalid_channel_ids_fail_closed(db_session, member, channel_id):
    assert can_read_channel(db_session, member.id, channel_id, True) is False


def test_unknown_channel_type_fails_closed(db_session, member):
    channel = ChatChannel(type="voice", name="Lobby", ref_id=member.department_id)
    db_session.add(channel)
    db_session.commit()

    assert can_read_channel(db_session, member.id, channel.id, True) is False
    assert can_write_channel(db_session, member.id, channel.id, True) is False
