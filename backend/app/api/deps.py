"""FastAPI dependencies for the API layer."""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from app.config import get_settings
from app.core.security import decode_access_token
from app.database import get_db
from app.models import User
from app.services.errors import InvalidInput
from workhub.realtime import EventBus

settings = get_settings()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def _credentials_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
    )


def get_current_user(
    request: Request,
    token: str | None = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Retrieve the current user from the bearer token or the session cookie."""

    token = token or request.cookies.get(settings.session_cookie_name)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return get_user_from_token(token, db)


def get_user_from_token(token: str, db: Session) -> User:
    """Resolve a user from a JWT token or raise an HTTP 401 error."""

    payload = decode_access_token(token)
    sub = payload.get("sub")
    if sub is None:
        raise _credentials_error()

    try:
        user_id = int(sub)
    except (TypeError, ValueError):
        raise _credentials_error() from None
    if user_id <= 0:
        raise _credentials_error()

    user = db.get(User, user_id)
    if user is None or user.status != "active":
        raise _credentials_error()
    return user


def get_event_bus(request: Request) -> EventBus:
    """Return the process-wide event bus created at application startup."""

    return request.app.state.event_bus


def parse_positive_id(raw: str | int | None, name: str) -> int:
    """Parse an identifier coming from a query string, rejecting non-positive values."""

    if raw is None:
        raise InvalidInput(f"{name} is required")
    try:
        value = int(str(raw).strip())
    except ValueError:
        raise InvalidInput(f"{name} must be a positive integer") from None
    if value <= 0:
        raise InvalidInput(f"{name} must be a positive integer")
    return value
