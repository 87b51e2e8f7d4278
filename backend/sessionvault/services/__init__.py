# Sessionvault Services
from sessionvault.services.access_tokens import AccessTokenService, Principal
from sessionvault.services.auth import AuthTokens, SessionService
from sessionvault.services.refresh_tokens import DeviceInfo, RefreshTokenManager
from sessionvault.services.results import INVALID, SessionResult, Valid
from sessionvault.services.token_cleanup import RefreshTokenCleanupService
from sessionvault.services.token_store import RefreshTokenRepository
from sessionvault.services.users import SqlUserDirectory, UserDirectory

__all__ = [
    "AccessTokenService",
    "AuthTokens",
    "DeviceInfo",
    "INVALID",
    "Principal",
    "RefreshTokenCleanupService",
    "RefreshTokenManager",
    "RefreshTokenRepository",
    "SessionResult",
    "SessionService",
    "SqlUserDirectory",
    "UserDirectory",
    "Valid",
]
