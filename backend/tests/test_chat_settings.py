from __future__ import annotations

import pytest

from app.models import ChatSetting
from app.services import chat_settings
from app.services.errors import Forbidden, InvalidInput


def test_reads_fall_back_to_default_without_writing(db_session):
    assert chat_settings.is_message_deletion_allowed(db_session) is False
    assert db_session.query(ChatSetting).count() == 0


def test_unknown_setting_is_rejected_on_read(db_session):
    with pytest.raises(InvalidInput):
        chat_settings.get_setting(db_session, "allow_everything")


def test_listing_requires_privilege(db_session):
    with pytest.raises(Forbidden):
        chat_settings.list_settings(db_session, is_privileged=False)


def test_listing_initializes_defaults(db_session):
    values = chat_settings.list_settings(db_session, is_privileged=True)

    assert list(values) == ["allow_message_deletion"]
    assert values["allow_message_deletion"].value is False
    assert values["allow_message_deletion"].description
    stored = db_session.get(ChatSetting, "allow_message_deletion")
    assert stored is not None and stored.setting_value == "false"


def test_update_upserts_and_is_read_fresh(db_session):
    chat_settings.update_settings(db_session, {"allow_message_deletion": True}, True, actor_id=1)
    assert chat_settings.is_message_deletion_allowed(db_session) is True
    assert db_session.get(ChatSetting, "allow_message_deletion").setting_value == "true"

    values = chat_settings.update_settings(db_session, {"allow_message_deletion": False}, True)

    assert values["allow_message_deletion"].value is False
    assert chat_settings.is_message_deletion_allowed(db_session) is False
    assert db_session.query(ChatSetting).count() == 1


def test_update_requires_privilege(db_session):
    with pytest.raises(Forbidden):
        chat_settings.update_settings(db_session, {"allow_message_deletion": True}, False)

    assert chat_settings.is_message_deletion_allowed(db_session) is False


@pytest.mark.parametrize("updates", [{}, {"allow_message_deletion": True, "ban_everyone": True}])
def test_update_rejects_empty_or_unknown_keys(db_session, updates):
    with pytest.raises(InvalidInput):
        chat_settings.update_settings(db_session, updates, True)

    assert db_session.query(ChatSetting).count() == 0


def test_unrecognised_stored_value_uses_default(db_session):
    db_session.add(ChatSetting(setting_key="allow_message_deletion", setting_value="maybe"))
    db_session.commit()

    assert chat_settings.is_message_deletion_allowed(db_session) is False
