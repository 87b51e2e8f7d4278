"""Pydantic schemas for authentication API."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class LoginRequest(BaseModel):
    """Request for login."""

    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)
    device_id: str | None = Field(None, max_length=100)
    device_name: str | None = Field(None, max_length=100)


class RefreshRequest(BaseModel):
    """Request for token refresh."""

    refresh_token: str = Field(..., min_length=1)


class LogoutRequest(BaseModel):
    """Request for logout with optional refresh token revocation."""

    refresh_token: str | None = Field(
        None,
        description="Refresh token to revoke. Without one, logout succeeds and revokes nothing.",
    )
    logout_all_devices: bool = Field(
        False, description="Revoke every active refresh token of the token's owner"
    )


class UserProfileResponse(BaseModel):
    """User information included with issued tokens."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    roles: list[str]
    is_active: bool
    last_login_at: datetime | None = None


class TokenResponse(BaseModel):
    """Response with access and refresh tokens."""

    model_config = ConfigDict(from_attributes=True)

    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    access_token_expires_at: datetime
    refresh_token_expires_at: datetime
    expires_in: int = Field(description="Access token expiry in seconds")
    user: UserProfileResponse


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str


class PrincipalResponse(BaseModel):
    """Claims of the current access token."""

    subject: str
    email: str
    token_id: str
    roles: list[str]
    issued_at: datetime
    expires_at: datetime


class SessionResponse(BaseModel):
    """An active refresh token, without its hash."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    device_id: str | None
    device_name: str | None
    ip_address: str | None
    user_agent: str | None
    created_at: datetime
    expires_at: datetime
