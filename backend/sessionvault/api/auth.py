"""Authentication API endpoints."""

import logging
import time
from collections import defaultdict
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from sessionvault.core import TokenSettings, get_db, settings
from sessionvault.core.request_utils import get_client_ip, get_user_agent
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
from sessionvault.services.access_tokens import AccessTokenService, Principal
from sessionvault.services.auth import CREDENTIAL_FAILURES, AuthTokens, SessionService
from sessionvault.services.notifications import get_notification_sender
from sessionvault.services.refresh_tokens import DeviceInfo, RefreshTokenManager
from sessionvault.services.token_store import RefreshTokenRepository
from sessionvault.services.users import ADMIN_ROLE, SqlUserDirectory

logger = logging.getLogger(__name__)

# Rate limiting for login attempts
_login_attempts: dict[str, list[float]] = defaultdict(list)
_LOGIN_WINDOW = 60  # 1-minute window


def _check_login_rate_limit(client_ip: str) -> None:
    """Check if a client IP has exceeded the login attempt rate limit."""
    now = time.monotonic()
    attempts = _login_attempts[client_ip]
    _login_attempts[client_ip] = [t for t in attempts if now - t < _LOGIN_WINDOW]
    if len(_login_attempts[client_ip]) >= settings.login_rate_limit_per_minute:
        logger.warning("Login rate limit exceeded for %s", client_ip)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many login attempts. Please try again later.",
        )


def _record_login_attempt(client_ip: str) -> None:
    """Record a failed login attempt for rate limiting."""
    _login_attempts[client_ip].append(time.monotonic())


router = APIRouter(prefix="/auth", tags=["auth"])


def get_token_settings() -> TokenSettings:
    """Dependency to get the token configuration."""
    return settings.token_settings()


def get_access_token_service(
    config: TokenSettings = Depends(get_token_settings),
) -> AccessTokenService:
    """Dependency to get the access token service."""
    return AccessTokenService(config)


def get_session_service(
    db: AsyncSession = Depends(get_db),
    config: TokenSettings = Depends(get_token_settings),
    access_tokens: AccessTokenService = Depends(get_access_token_service),
) -> SessionService:
    """Dependency to get the session service for this request."""
    return SessionService(
        access_tokens=access_tokens,
        refresh_tokens=RefreshTokenManager(RefreshTokenRepository(db), config),
        users=SqlUserDirectory(
            db,
            max_failed_attempts=settings.max_failed_login_attempts,
            lockout=timedelta(minutes=settings.lockout_minutes),
        ),
        notifier=get_notification_sender(settings.notification_webhook_url),
        notify_on_login=settings.notify_on_login,
    )


async def get_current_principal(
    request: Request,
    access_tokens: AccessTokenService = Depends(get_access_token_service),
) -> Principal:
    """Dependency to get the current principal from the bearer token."""
    auth_header = request.headers.get("Authorization", "")

    if not auth_header.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    result = access_tokens.validate(auth_header[7:])  # Remove "Bearer " prefix
    if not result.is_valid:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return result.value


def _token_response(tokens: AuthTokens, config: TokenSettings) -> TokenResponse:
    return TokenResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        token_type=tokens.token_type,
        access_token_expires_at=tokens.access_token_expires_at,
        refresh_token_expires_at=tokens.refresh_token_expires_at,
        expires_in=int(config.access_token_ttl.total_seconds()),
        user=UserProfileResponse.model_validate(tokens.user),
    )


@router.post("/login", response_model=TokenResponse)
async def login(
    request: LoginRequest,
    http_request: Request,
    db: AsyncSession = Depends(get_db),
    config: TokenSettings = Depends(get_token_settings),
    session_service: SessionService = Depends(get_session_service),
) -> TokenResponse:
    """Authenticate and get an access token plus a refresh token.

    Failed attempts are rate limited per client IP.
    """
    client_ip = get_client_ip(http_request) or "unknown"
    _check_login_rate_limit(client_ip)

    device = DeviceInfo(
        device_id=request.device_id,
        device_name=request.device_name,
        ip_address=get_client_ip(http_request),
        user_agent=get_user_agent(http_request),
    )
    result = await session_service.login(request.email, request.password, device)
    if not result.success or result.data is None:
        _record_login_attempt(client_ip)
        if result.message in CREDENTIAL_FAILURES:
            # Keep failed-attempt counters; the 401 below would otherwise roll them back.
            # Internal errors fall through to the rollback in get_db.
            await db.commit()
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=result.message)

    return _token_response(result.data, config)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_tokens(
    request: RefreshRequest,
    http_request: Request,
    config: TokenSettings = Depends(get_token_settings),
    session_service: SessionService = Depends(get_session_service),
) -> TokenResponse:
    """Exchange a refresh token for a new access token and refresh token."""
    device = DeviceInfo(
        ip_address=get_client_ip(http_request),
        user_agent=get_user_agent(http_request),
    )
    result = await session_service.renew(request.refresh_token, device)
    if not result.success or result.data is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=result.message)

    return _token_response(result.data, config)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: LogoutRequest,
    session_service: SessionService = Depends(get_session_service),
) -> MessageResponse:
    """Revoke a refresh token, or all of its owner's tokens."""
    result = await session_service.logout(request.refresh_token, request.logout_all_devices)
    if not result.success:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=result.message)
    return MessageResponse(message=result.message)


@router.get("/me", response_model=PrincipalResponse)
async def get_current_user_info(
    principal: Principal = Depends(get_current_principal),
) -> PrincipalResponse:
    """Get the claims of the current access token."""
    return PrincipalResponse(
        subject=principal.subject,
        email=principal.email,
        token_id=principal.token_id,
        roles=sorted(principal.roles),
        issued_at=principal.issued_at,
        expires_at=principal.expires_at,
    )


@router.get("/sessions", response_model=list[SessionResponse])
async def list_sessions(
    principal: Principal = Depends(get_current_principal),
    session_service: SessionService = Depends(get_session_service),
) -> list[SessionResponse]:
    """List the caller's active refresh tokens."""
    records = await session_service.refresh_tokens.list_active(principal.subject)
    return [SessionResponse.model_validate(r) for r in records]


@router.post("/users/{user_id}/revoke", response_model=MessageResponse)
async def revoke_user_sessions(
    user_id: str,
    principal: Principal = Depends(get_current_principal),
    session_service: SessionService = Depends(get_session_service),
) -> MessageResponse:
    """Revoke every active refresh token of a user (admin only)."""
    if not principal.has_role(ADMIN_ROLE):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin role required")

    result = await session_service.revoke_user_sessions(user_id)
    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=result.message
        )
    logger.info("User %s revoked all sessions of user %s", principal.subject, user_id)
    return MessageResponse(message=result.message)
