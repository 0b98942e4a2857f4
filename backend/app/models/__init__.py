"""Database models package."""

from .base import Base
from .chat import ChatChannel, ChatMessage, ChatSetting, MessageReaction
from .enums import PRIVILEGED_ROLES, ChannelType, UserRole
from .org import Department, Project, ProjectAssignment, Team, TeamMember, User

__all__ = [
    "Base",
    "User",
    "Department",
    "Team",
    "TeamMember",
    "Project",
    "ProjectAssignment",
    "ChatChannel",
    "ChatMessage",
    "MessageReaction",
    "ChatSetting",
    "ChannelType",
    "UserRole",
    "PRIVILEGED_ROLES",
]
