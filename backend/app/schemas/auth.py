"""Schemas for authentication endpoints."""

from pydantic import BaseModel, ConfigDict, Field, constr

from app.models.enums import UserRole


class LoginRequest(BaseModel):
    """Payload for user login."""

    email: constr(strip_whitespace=True, min_length=3, max_length=255) = Field(
        ..., description="Account e-mail address"
    )
    password: constr(min_length=1, max_length=128) = Field(..., description="User password")


class Token(BaseModel):
    """Session token returned after successful authentication."""

    access_token: str = Field(..., description="JWT session token (also set as an HttpOnly cookie)")
    token_type: str = Field(default="bearer", description="Token type, always 'bearer'")
    expires_in: int | None = Field(
        default=None,
        description="Number of seconds until the token expires",
    )


class CurrentUserRead(BaseModel):
    """Identity of the caller as seen by the chat endpoints."""

    model_config = ConfigDict(from_attributes=True)

    user_id: int
    name: str
    role: UserRole
    is_super: bool = Field(..., description="Whether the caller has administrator rights")
