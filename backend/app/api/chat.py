"""Chat identity, channel directory and direct conversations."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_current_user
from app.database import get_db
from app.models import User
from app.schemas import (
    ChannelList,
    ChannelRead,
    ChatUserList,
    ChatUserRead,
    CurrentUserRead,
    DirectChannelRead,
    DirectChannelRequest,
)
from app.services.channels import get_or_create_dm, list_active_users, list_channels

router = APIRouter(tags=["chat"])


@router.get("/me", response_model=CurrentUserRead)
def read_me(current_user: User = Depends(get_current_user)) -> CurrentUserRead:
    return CurrentUserRead(
        user_id=current_user.id,
        name=current_user.name,
        role=current_user.role,
        is_super=current_user.is_privileged,
    )


@router.get("/channels", response_model=ChannelList)
def read_channels(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ChannelList:
    """List the channels the caller can read, creating membership channels on demand."""

    views = list_channels(db, current_user, current_user.is_privileged)
    return ChannelList(items=[ChannelRead.model_validate(view) for view in views])


@router.post("/dm", response_model=DirectChannelRead)
def open_direct_channel(
    payload: DirectChannelRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> DirectChannelRead:
    channel = get_or_create_dm(db, current_user, payload.user_id)
    return DirectChannelRead(channel=ChannelRead.model_validate(channel))


@router.get("/users", response_model=ChatUserList)
def read_users(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ChatUserList:
    users = list_active_users(db, current_user)
    return ChatUserList(items=[ChatUserRead.model_validate(user) for user in users])
