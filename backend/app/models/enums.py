from __future__ import annotations

from enum import Enum


class ChannelType(str, Enum):
    """Kinds of chat channels, each with its own access rule."""

    BROADCAST = "broadcast"
    DM = "dm"
    DEPARTMENT = "department"
    TEAM = "team"
    PROJECT = "project"


class UserRole(str, Enum):
    """Application-wide roles carried by user accounts."""

    USER = "user"
    MANAGER = "manager"
    ADMIN = "admin"
    SUPER_ADMIN = "superAdmin"


PRIVILEGED_ROLES: frozenset[UserRole] = frozenset({UserRole.ADMIN, UserRole.SUPER_ADMIN})
