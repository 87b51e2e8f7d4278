"""Renewal (refresh) token management.

Raw secrets are returned to the caller exactly once, at mint time. Only a
SHA-256 digest is stored, so a leaked table yields no usable secrets. The
digest is unsalted on purpose: the input is 512 bits of random data, not a
user-chosen password.
"""

import base64
import hashlib
import logging
import secrets
from collections.abc import Sequence
from dataclasses import dataclass

from sessionvault.core.clock import Clock, utcnow
from sessionvault.core.config import TokenSettings
from sessionvault.models.refresh_token import RefreshToken
from sessionvault.services.results import INVALID, Valid, ValidationResult
from sessionvault.services.token_store import RefreshTokenRepository

logger = logging.getLogger(__name__)

SECRET_BYTES = 64


@dataclass(frozen=True)
class DeviceInfo:
    """Optional client details recorded alongside a renewal token."""

    device_id: str | None = None
    device_name: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None


def hash_token(raw_token: str) -> str:
    """Digest a raw renewal secret for storage and lookup."""
    digest = hashlib.sha256(raw_token.encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")


def generate_secret() -> str:
    """Generate a new raw renewal secret."""
    return base64.b64encode(secrets.token_bytes(SECRET_BYTES)).decode("ascii")


class RefreshTokenManager:
    """Mints, validates, revokes and sweeps renewal tokens for one unit of work."""

    def __init__(
        self,
        repository: RefreshTokenRepository,
        config: TokenSettings,
        clock: Clock = utcnow,
    ):
        self.repository = repository
        self.config = config
        self._clock = clock

    async def mint(self, user_id: str, device: DeviceInfo | None = None) -> str:
        """Create and store a renewal token, returning the raw secret."""
        device = device or DeviceInfo()
        now = self._clock()
        raw_token = generate_secret()

        await self._enforce_quota(user_id)

        await self.repository.add(
            RefreshToken(
                token_hash=hash_token(raw_token),
                user_id=user_id,
                created_at=now,
                expires_at=now + self.config.refresh_token_ttl,
                revoked_at=None,
                device_id=device.device_id,
                device_name=device.device_name,
                ip_address=device.ip_address,
                user_agent=device.user_agent,
            )
        )
        logger.debug("Issued refresh token for user %s", user_id)
        return raw_token

    async def validate(self, raw_token: str | None) -> ValidationResult[str]:
        """Resolve the owning user id of an active renewal token."""
        record = await self._lookup(raw_token)
        if record is None or not record.is_active(self._clock()):
            return INVALID
        return Valid(record.user_id)

    async def revoke(self, raw_token: str | None) -> bool:
        """Revoke one renewal token. Returns False when it does not exist."""
        record = await self._lookup(raw_token)
        if record is None:
            return False

        record.revoke(self._clock())
        await self.repository.update(record)
        return True

    async def revoke_all(self, user_id: str) -> bool:
        """Revoke every active renewal token of a user."""
        now = self._clock()
        records = await self.repository.list_active_by_user(user_id, now)
        for record in records:
            record.revoke(now)
        await self.repository.update_many(records)

        if records:
            logger.info("Revoked %d refresh tokens for user %s", len(records), user_id)
        return True

    async def list_active(self, user_id: str) -> Sequence[RefreshToken]:
        return await self.repository.list_active_by_user(user_id, self._clock())

    async def sweep(self) -> int:
        """Delete expired records, revoked or not. Returns count removed."""
        return await self.repository.delete_expired(self._clock())

    async def _lookup(self, raw_token: str | None) -> RefreshToken | None:
        if not raw_token or not isinstance(raw_token, str):
            return None
        return await self.repository.get_by_hash(hash_token(raw_token))

    async def _enforce_quota(self, user_id: str) -> None:
        """Drop the oldest records so the new one fits under the per-user limit."""
        limit = self.config.max_refresh_tokens_per_user
        records = await self.repository.list_by_user(user_id)
        if len(records) < limit:
            return

        excess = len(records) - limit + 1
        removed = await self.repository.delete_many(records[:excess])
        logger.info("Evicted %d oldest refresh tokens for user %s", removed, user_id)
