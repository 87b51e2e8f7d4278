"""Session flows: login, token renewal and logout.

Every flow returns a SessionResult and never raises. Failure messages are
deliberately uniform so callers cannot tell a wrong password from an unknown
account, or a revoked renewal token from one that never existed.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sessionvault.core.clock import Clock, utcnow
from sessionvault.models.user_account import UserAccount
from sessionvault.services.access_tokens import AccessTokenService
from sessionvault.services.notifications import NotificationSender
from sessionvault.services.refresh_tokens import DeviceInfo, RefreshTokenManager
from sessionvault.services.results import SessionResult
from sessionvault.services.users import UserDirectory, is_account_usable

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
ACCOUNT_LOCKED = "Account is locked"
INVALID_REFRESH_TOKEN = "Invalid refresh token"

# Outcomes whose lockout bookkeeping must be persisted even though login failed
CREDENTIAL_FAILURES = frozenset({INVALID_CREDENTIALS, ACCOUNT_LOCKED})


@dataclass(frozen=True)
class UserProfile:
    id: str
    email: str
    roles: list[str]
    is_active: bool
    last_login_at: datetime | None = None


@dataclass(frozen=True)
class AuthTokens:
    """Token pair handed to the client after login or renewal."""

    access_token: str
    refresh_token: str
    access_token_expires_at: datetime
    refresh_token_expires_at: datetime
    user: UserProfile
    token_type: str = "Bearer"
    additional_data: dict[str, Any] = field(default_factory=dict)


class SessionService:
    """Composes token issuing, renewal token management and the user directory."""

    def __init__(
        self,
        access_tokens: AccessTokenService,
        refresh_tokens: RefreshTokenManager,
        users: UserDirectory,
        notifier: NotificationSender | None = None,
        notify_on_login: bool = False,
        clock: Clock = utcnow,
    ):
        self.access_tokens = access_tokens
        self.refresh_tokens = refresh_tokens
        self.users = users
        self.notifier = notifier
        self.notify_on_login = notify_on_login
        self._clock = clock

    async def login(
        self,
        email: str,
        password: str,
        device: DeviceInfo | None = None,
        extra_claims: Mapping[str, Any] | None = None,
    ) -> SessionResult[AuthTokens]:
        """Authenticate by email and password and issue a token pair."""
        try:
            user = await self.users.get_by_email(email)
            if user is None or not is_account_usable(user):
                logger.warning("Login attempt failed: unknown or inactive account")
                return SessionResult.fail(INVALID_CREDENTIALS)

            check = await self.users.check_password(user, password)
            if not check.succeeded:
                logger.warning("Password check failed for user: %s", user.id)
                return SessionResult.fail(
                    ACCOUNT_LOCKED if check.is_locked_out else INVALID_CREDENTIALS
                )

            user.last_login_at = self._clock()
            await self.users.update(user)

            tokens = await self._issue_tokens(user, device, extra_claims)
            tokens.additional_data.update(
                {
                    "device_id": device.device_id if device else None,
                    "device_name": device.device_name if device else None,
                }
            )
            logger.info("User %s logged in successfully", user.id)

            if self.notify_on_login:
                await self._notify(
                    user.email,
                    "New sign-in to your account",
                    f"A new sign-in was recorded at {user.last_login_at.isoformat()}.",
                )
            return SessionResult.ok("Login successful", tokens)
        except Exception:
            logger.exception("Error during login")
            return SessionResult.fail("An error occurred during login")

    async def renew(
        self,
        refresh_token: str,
        device: DeviceInfo | None = None,
    ) -> SessionResult[AuthTokens]:
        """Exchange a renewal token for a new token pair.

        The presented renewal token stays valid until it expires; it is not
        revoked here.
        """
        try:
            result = await self.refresh_tokens.validate(refresh_token)
            if not result.is_valid:
                return SessionResult.fail(INVALID_REFRESH_TOKEN)

            user = await self.users.get_by_id(result.value)
            if not is_account_usable(user):
                # A disabled owner is indistinguishable from a bad token
                logger.warning("Refresh attempt for unusable account: %s", result.value)
                return SessionResult.fail(INVALID_REFRESH_TOKEN)

            tokens = await self._issue_tokens(user, device)
            return SessionResult.ok("Token refreshed successfully", tokens)
        except Exception:
            logger.exception("Error during token refresh")
            return SessionResult.fail("An error occurred during token refresh")

    async def logout(
        self,
        refresh_token: str | None,
        all_devices: bool = False,
    ) -> SessionResult[bool]:
        """Revoke the presented renewal token, or every token of its owner."""
        try:
            if not refresh_token:
                return SessionResult.ok("Logout successful", True)

            result = await self.refresh_tokens.validate(refresh_token)
            if not result.is_valid:
                return SessionResult(success=False, message=INVALID_REFRESH_TOKEN, data=False)

            user_id = result.value
            if all_devices:
                revoked = await self.refresh_tokens.revoke_all(user_id)
            else:
                revoked = await self.refresh_tokens.revoke(refresh_token)

            if not revoked:
                return SessionResult(
                    success=False, message="Failed to revoke refresh token(s)", data=False
                )

            logger.info("User %s logged out (all devices: %s)", user_id, all_devices)
            return SessionResult.ok("Logout successful", True)
        except Exception:
            logger.exception("Error during logout")
            return SessionResult(success=False, message="An error occurred during logout", data=False)

    async def revoke_user_sessions(self, user_id: str) -> SessionResult[bool]:
        """Administrative revocation of every renewal token of a user."""
        try:
            await self.refresh_tokens.revoke_all(user_id)
            return SessionResult.ok("Sessions revoked", True)
        except Exception:
            logger.exception("Error revoking sessions for user %s", user_id)
            return SessionResult(
                success=False, message="An error occurred while revoking sessions", data=False
            )

    async def _issue_tokens(
        self,
        user: UserAccount,
        device: DeviceInfo | None,
        extra_claims: Mapping[str, Any] | None = None,
    ) -> AuthTokens:
        roles: Sequence[str] = await self.users.get_roles(user)
        now = self._clock()
        config = self.access_tokens.config

        access_token = self.access_tokens.issue(user.id, user.email, roles, extra_claims)
        refresh_token = await self.refresh_tokens.mint(user.id, device)

        return AuthTokens(
            access_token=access_token,
            refresh_token=refresh_token,
            access_token_expires_at=now + config.access_token_ttl,
            refresh_token_expires_at=now + config.refresh_token_ttl,
            user=UserProfile(
                id=user.id,
                email=user.email,
                roles=list(roles),
                is_active=user.is_active,
                last_login_at=user.last_login_at,
            ),
        )

    async def _notify(self, recipient: str, subject: str, body: str) -> None:
        """Best-effort delivery; a failing sender never fails the flow."""
        if self.notifier is None:
            return
        try:
            await self.notifier.send(recipient, subject, body)
        except Exception as e:
            logger.warning("Notification delivery failed: %s", e)
