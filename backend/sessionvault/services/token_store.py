"""Database-backed storage for renewal credential records."""

from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.engine import CursorResult
from sqlalchemy.ext.asyncio import AsyncSession

from sessionvault.models.refresh_token import RefreshToken


class RefreshTokenRepository:
    """Queries and mutations on refresh_tokens, keyed by hash, user and expiry.

    Writes are flushed, not committed; the caller owns the transaction.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, token: RefreshToken) -> RefreshToken:
        self.session.add(token)
        await self.session.flush()
        return token

    async def update(self, token: RefreshToken) -> None:
        self.session.add(token)
        await self.session.flush()

    async def update_many(self, tokens: Iterable[RefreshToken]) -> None:
        self.session.add_all(list(tokens))
        await self.session.flush()

    async def delete_many(self, tokens: Iterable[RefreshToken]) -> int:
        ids = [t.id for t in tokens]
        if not ids:
            return 0
        result: CursorResult[Any] = await self.session.execute(  # type: ignore[assignment]
            delete(RefreshToken).where(RefreshToken.id.in_(ids))
        )
        return result.rowcount

    async def get_by_hash(self, token_hash: str) -> RefreshToken | None:
        result = await self.session.execute(
            select(RefreshToken).where(RefreshToken.token_hash == token_hash)
        )
        return result.scalar_one_or_none()

    async def list_by_user(self, user_id: str) -> Sequence[RefreshToken]:
        """All records for a user, oldest first."""
        result = await self.session.execute(
            select(RefreshToken)
            .where(RefreshToken.user_id == user_id)
            .order_by(RefreshToken.created_at, RefreshToken.id)
        )
        return result.scalars().all()

    async def list_active_by_user(self, user_id: str, now: datetime) -> Sequence[RefreshToken]:
        result = await self.session.execute(
            select(RefreshToken)
            .where(
                RefreshToken.user_id == user_id,
                RefreshToken.revoked_at.is_(None),
                RefreshToken.expires_at > now,
            )
            .order_by(RefreshToken.created_at, RefreshToken.id)
        )
        return result.scalars().all()

    async def delete_expired(self, now: datetime) -> int:
        """Remove expired records regardless of revocation. Returns count removed."""
        result: CursorResult[Any] = await self.session.execute(  # type: ignore[assignment]
            delete(RefreshToken)
            .where(RefreshToken.expires_at <= now)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount
