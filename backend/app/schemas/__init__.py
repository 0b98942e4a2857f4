"""Pydantic schemas for API payloads."""

from .auth import CurrentUserRead, LoginRequest, Token
from .channels import ChannelList, ChannelRead, DirectChannelRead, DirectChannelRequest
from .events import (
    ChatEvent,
    MessagePosted,
    MessageRemoved,
    MessageUpdated,
    ReactionAdded,
    ReactionRemoved,
)
from .messages import (
    MessageCreate,
    MessageDeleted,
    MessageHistory,
    MessageRead,
    MessageUpdate,
    ReactionChange,
    ReactionList,
    ReactionRequest,
    ReactionSummary,
)
from .settings import ChatSettingRead, ChatSettingsRead, ChatSettingsUpdate
from .users import ChatUserList, ChatUserRead

__all__ = [
    "LoginRequest",
    "Token",
    "CurrentUserRead",
    "ChannelRead",
    "ChannelList",
    "DirectChannelRequest",
    "DirectChannelRead",
    "ChatEvent",
    "MessagePosted",
    "MessageUpdated",
    "MessageRemoved",
    "ReactionAdded",
    "ReactionRemoved",
    "MessageCreate",
    "MessageUpdate",
    "MessageRead",
    "MessageHistory",
    "MessageDeleted",
    "ReactionRequest",
    "ReactionSummary",
    "ReactionList",
    "ReactionChange",
    "ChatSettingRead",
    "ChatSettingsRead",
    "ChatSettingsUpdate",
    "ChatUserRead",
    "ChatUserList",
]
