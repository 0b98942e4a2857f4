"""Administrator endpoints for chat moderation settings."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_current_user
from app.database import get_db
from app.models import User
from app.schemas import ChatSettingRead, ChatSettingsRead, ChatSettingsUpdate
from app.services import chat_settings
from app.services.chat_settings import SettingValue

router = APIRouter(prefix="/settings", tags=["settings"])


def _serialize(values: dict[str, SettingValue]) -> ChatSettingsRead:
    return ChatSettingsRead(
        settings={
            key: ChatSettingRead(
                value=item.value,
                description=item.description,
                updated_at=item.updated_at,
            )
            for key, item in values.items()
        }
    )


@router.get("", response_model=ChatSettingsRead)
def read_settings(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ChatSettingsRead:
    return _serialize(chat_settings.list_settings(db, current_user.is_privileged))


@router.put("", response_model=ChatSettingsRead)
def update_settings(
    payload: ChatSettingsUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ChatSettingsRead:
    values = chat_settings.update_settings(
        db,
        payload.settings,
        current_user.is_privileged,
        actor_id=current_user.id,
    )
    return _serialize(values)
