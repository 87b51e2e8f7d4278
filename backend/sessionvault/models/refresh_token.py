"""Renewal credential records."""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from sessionvault.core.clock import ensure_utc, utcnow
from sessionvault.core.database import Base


class RefreshToken(Base):
    """A renewal credential, stored only as a digest of the raw secret.

    A record is active while it is unrevoked and unexpired. Expired records
    are deleted by the cleanup service whether or not they were revoked.
    """

    __tablename__ = "refresh_tokens"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    token_hash: Mapped[str] = mapped_column(String(128), nullable=False, unique=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Client-supplied device info, opaque to the token logic
    device_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    device_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)  # IPv6 max length
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)

    def is_expired(self, now: datetime | None = None) -> bool:
        return ensure_utc(self.expires_at) <= (now or utcnow())

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at is not None

    def is_active(self, now: datetime | None = None) -> bool:
        return not self.is_revoked and not self.is_expired(now)

    def revoke(self, now: datetime | None = None) -> None:
        """Mark the record revoked. The first revocation time is kept."""
        if self.revoked_at is None:
            self.revoked_at = now or utcnow()

    def __repr__(self) -> str:
        return f"<RefreshToken id={self.id} user={self.user_id}>"
