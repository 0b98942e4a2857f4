"""Authentication API endpoints."""

from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.config import get_settings
from app.core.security import (
    clear_session_cookie,
    create_access_token,
    set_session_cookie,
    verify_password,
)
from app.database import get_db
from app.models import User
from app.schemas import LoginRequest, Token

router = APIRouter()
settings = get_settings()


@router.post("/login", response_model=Token)
def login_user(credentials: LoginRequest, response: Response, db: Session = Depends(get_db)) -> Token:
    """Authenticate a user, set the session cookie and return the token."""

    email = credentials.email.lower()
    db_user = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if db_user is None or not verify_password(credentials.password, db_user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect e-mail or password",
        )
    if db_user.status != "active":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is disabled")

    access_token_expires = timedelta(minutes=settings.access_token_expire_minutes)
    access_token = create_access_token(
        {
            "sub": str(db_user.id),
            "email": db_user.email,
            "role": db_user.role.value,
            "is_admin": bool(db_user.is_admin),
        },
        expires_delta=access_token_expires,
    )
    set_session_cookie(response, access_token)

    return Token(
        access_token=access_token,
        token_type="bearer",
        expires_in=int(access_token_expires.total_seconds()),
    )


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout_user() -> Response:
    """Clear the session cookie."""

    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    clear_session_cookie(response)
    return response
