# Sessionvault Pydantic Schemas
from sessionvault.schemas.auth import (
    LoginRequest,
    LogoutRequest,
    MessageResponse,
    PrincipalResponse,
    RefreshRequest,
    SessionResponse,
    TokenResponse,
    UserProfileResponse,
)

__all__ = [
    "LoginRequest",
    "LogoutRequest",
    "MessageResponse",
    "PrincipalResponse",
    "RefreshRequest",
    "SessionResponse",
    "TokenResponse",
    "UserProfileResponse",
]
