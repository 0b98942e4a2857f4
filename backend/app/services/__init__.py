"""Application service helpers."""

from .channel_access import can_read_channel, can_write_channel
from .errors import ChatError, Conflict, Forbidden, InvalidInput, NotFound

__all__ = [
    "can_read_channel",
    "can_write_channel",
    "ChatError",
    "Conflict",
    "Forbidden",
    "InvalidInput",
    "NotFound",
]
