"""Moderation settings gate backed by the ``chat_settings`` table."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Mapping

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models import ChatSetting
from app.services.errors import Forbidden, InvalidInput

logger = logging.getLogger(__name__)

ALLOW_MESSAGE_DELETION = "allow_message_deletion"


@dataclass(frozen=True, slots=True)
class SettingDefault:
    value: bool
    description: str


DEFAULT_SETTINGS: dict[str, SettingDefault] = {
    ALLOW_MESSAGE_DELETION: SettingDefault(
        value=False,
        description="Allow every user to delete their own messages after the edit window",
    ),
}


@dataclass(slots=True)
class SettingValue:
    value: bool
    description: str | None
    updated_at: datetime | None


def _encode(value: bool) -> str:
    return "true" if value else "false"


def _decode(raw: str | None, default: bool) -> bool:
    if raw == "true":
        return True
    if raw == "false":
        return False
    return default


def get_setting(db: Session, key: str) -> bool:
    """Read a boolean setting fresh from the store, falling back to its default."""

    default = DEFAULT_SETTINGS.get(key)
    if default is None:
        raise InvalidInput(f"Unknown setting: {key}")
    raw = db.execute(
        select(ChatSetting.setting_value).where(ChatSetting.setting_key == key)
    ).scalar_one_or_none()
    return _decode(raw, default.value)


def is_message_deletion_allowed(db: Session) -> bool:
    return get_setting(db, ALLOW_MESSAGE_DELETION)


def _ensure_defaults(db: Session) -> None:
    existing = set(db.execute(select(ChatSetting.setting_key)).scalars())
    missing = [key for key in DEFAULT_SETTINGS if key not in existing]
    if not missing:
        return
    for key in missing:
        default = DEFAULT_SETTINGS[key]
        db.add(
            ChatSetting(
                setting_key=key,
                setting_value=_encode(default.value),
                description=default.description,
            )
        )
    db.commit()


def list_settings(db: Session, is_privileged: bool) -> dict[str, SettingValue]:
    """Return every known setting; only privileged callers may inspect them."""

    if not is_privileged:
        raise Forbidden("Chat settings are restricted to administrators")
    _ensure_defaults(db)

    rows = db.execute(select(ChatSetting).order_by(ChatSetting.setting_key)).scalars()
    result: dict[str, SettingValue] = {}
    for row in rows:
        default = DEFAULT_SETTINGS.get(row.setting_key)
        if default is None:
            continue
        result[row.setting_key] = SettingValue(
            value=_decode(row.setting_value, default.value),
            description=row.description or default.description,
            updated_at=row.updated_at,
        )
    return result


def update_settings(
    db: Session,
    updates: Mapping[str, bool],
    is_privileged: bool,
    *,
    actor_id: int | None = None,
) -> dict[str, SettingValue]:
    """Upsert the given settings and return the resulting state."""

    if not is_privileged:
        raise Forbidden("Chat settings are restricted to administrators")
    if not updates:
        raise InvalidInput("At least one setting is required")
    unknown = sorted(key for key in updates if key not in DEFAULT_SETTINGS)
    if unknown:
        raise InvalidInput(f"Unknown setting: {', '.join(unknown)}")

    now = datetime.now(timezone.utc)
    for key, value in updates.items():
        row = db.get(ChatSetting, key)
        if row is None:
            row = ChatSetting(
                setting_key=key,
                description=DEFAULT_SETTINGS[key].description,
            )
            db.add(row)
        row.setting_value = _encode(bool(value))
        row.updated_at = now
    db.commit()
    logger.info(
        "Chat settings updated by user %s: %s",
        actor_id,
        ", ".join(f"{key}={_encode(bool(value))}" for key, value in updates.items()),
    )
    return list_settings(db, is_privileged)


__all__ = [
    "ALLOW_MESSAGE_DELETION",
    "DEFAULT_SETTINGS",
    "SettingValue",
    "get_setting",
    "is_message_deletion_allowed",
    "list_settings",
    "update_settings",
]
