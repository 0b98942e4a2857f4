"""Domain errors raised by chat services and mapped to HTTP responses."""

from __future__ import annotations

from fastapi import status


class ChatError(Exception):
    """Base class for expected, user-visible chat failures."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_detail = "Request could not be processed"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class InvalidInput(ChatError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid input"


class Forbidden(ChatError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Forbidden"


class NotFound(ChatError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class Conflict(ChatError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflict"
