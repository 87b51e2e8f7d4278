"""User directory: account lookup, password checks with lockout, roles."""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import timedelta
from typing import Protocol

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sessionvault.core.clock import Clock, ensure_utc, utcnow
from sessionvault.models.user_account import UserAccount

logger = logging.getLogger(__name__)

ADMIN_ROLE = "Admin"

# Argon2 password hasher with recommended parameters
# Memory: 64 MiB, Time: 3 iterations, Parallelism: 4
ph = PasswordHasher(
    time_cost=3,
    memory_cost=65536,
    parallelism=4,
    hash_len=32,
    salt_len=16,
)


def hash_password(password: str) -> str:
    """Hash a password using Argon2id."""
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash using constant-time comparison."""
    try:
        ph.verify(password_hash, password)
        return True
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


@dataclass(frozen=True)
class PasswordCheck:
    """Result of a password check against the lockout policy."""

    succeeded: bool
    is_locked_out: bool = False


class UserDirectory(Protocol):
    """Account operations the session flows depend on."""

    async def get_by_email(self, email: str) -> UserAccount | None: ...

    async def get_by_id(self, user_id: str) -> UserAccount | None: ...

    async def check_password(self, user: UserAccount, password: str) -> PasswordCheck: ...

    async def get_roles(self, user: UserAccount) -> Sequence[str]: ...

    async def update(self, user: UserAccount) -> None: ...


def is_account_usable(user: UserAccount | None) -> bool:
    """True when the account exists, is active and is not soft-deleted."""
    return user is not None and user.is_active and not user.is_deleted


class SqlUserDirectory:
    """UserDirectory backed by the user_accounts table."""

    def __init__(
        self,
        session: AsyncSession,
        max_failed_attempts: int = 5,
        lockout: timedelta = timedelta(minutes=15),
        clock: Clock = utcnow,
    ):
        self.session = session
        self.max_failed_attempts = max_failed_attempts
        self.lockout = lockout
        self._clock = clock

    async def get_by_email(self, email: str) -> UserAccount | None:
        if not email:
            return None
        result = await self.session.execute(
            select(UserAccount).where(UserAccount.email == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def get_by_id(self, user_id: str) -> UserAccount | None:
        if not user_id:
            return None
        result = await self.session.execute(select(UserAccount).where(UserAccount.id == user_id))
        return result.scalar_one_or_none()

    async def check_password(self, user: UserAccount, password: str) -> PasswordCheck:
        """Verify a password, counting failures toward a temporary lockout."""
        now = self._clock()
        if user.lockout_end is not None and ensure_utc(user.lockout_end) > now:
            return PasswordCheck(succeeded=False, is_locked_out=True)

        if verify_password(password, user.password_hash):
            user.failed_login_count = 0
            user.lockout_end = None
            await self.session.flush()
            return PasswordCheck(succeeded=True)

        user.failed_login_count += 1
        locked = user.failed_login_count >= self.max_failed_attempts
        if locked:
            user.lockout_end = now + self.lockout
            user.failed_login_count = 0
            logger.warning("Account %s locked after repeated failed logins", user.id)
        await self.session.flush()
        return PasswordCheck(succeeded=False, is_locked_out=locked)

    async def get_roles(self, user: UserAccount) -> Sequence[str]:
        return list(user.roles or [])

    async def update(self, user: UserAccount) -> None:
        self.session.add(user)
        await self.session.flush()

    async def create_user(
        self,
        email: str,
        password: str,
        roles: Sequence[str] = (),
        is_active: bool = True,
    ) -> UserAccount:
        """Create an account. Used for seeding and tests."""
        user = UserAccount(
            email=email.strip().lower(),
            password_hash=hash_password(password),
            roles=list(roles),
            is_active=is_active,
        )
        self.session.add(user)
        await self.session.flush()
        await self.session.refresh(user)
        logger.info(f"Created user account: {user.id}")
        return user


async def seed_admin_account(
    session_factory: Callable[[], AsyncSession],
    email: str,
    password: str,
) -> UserAccount | None:
    """Create the initial admin account if no account uses ``email``.

    Runs in its own session and commits. Returns the new account, or None
    when it already existed.
    """
    async with session_factory() as db:
        directory = SqlUserDirectory(db)
        if await directory.get_by_email(email) is not None:
            logger.info("Admin account already exists, skipping seed")
            return None
        user = await directory.create_user(email, password, roles=(ADMIN_ROLE,))
        await db.commit()
    logger.info(f"Seeded admin account: {user.id}")
    return user
