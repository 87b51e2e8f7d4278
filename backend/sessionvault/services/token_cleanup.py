"""Refresh token cleanup service - periodically deletes expired renewal tokens."""

import asyncio
import threading
from collections.abc import Callable
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from sessionvault.core.config import TokenSettings
from sessionvault.core.logging import get_logger
from sessionvault.services.refresh_tokens import RefreshTokenManager
from sessionvault.services.token_store import RefreshTokenRepository

logger = get_logger("token_cleanup")

SessionFactory = Callable[[], AsyncSession]

# How long stop() waits for an in-flight sweep before cancelling it
STOP_TIMEOUT_SECONDS = 30.0


class RefreshTokenCleanupService:
    """Background service that sweeps expired refresh tokens on an interval.

    Each run opens its own database session. A failed run is logged and
    the loop carries on with the next one.
    """

    _instance: Optional["RefreshTokenCleanupService"] = None
    _instance_lock: threading.Lock = threading.Lock()

    def __init__(
        self,
        session_factory: SessionFactory,
        config: TokenSettings,
        initial_delay_seconds: float = 0.0,
    ):
        self._session_factory = session_factory
        self._config = config
        self._initial_delay = initial_delay_seconds
        self._running = False
        self._stop_event: asyncio.Event | None = None
        self._task: asyncio.Task | None = None
        self._sweep: asyncio.Future | None = None

    @classmethod
    def get_instance(
        cls,
        session_factory: SessionFactory | None = None,
        config: TokenSettings | None = None,
    ) -> "RefreshTokenCleanupService":
        """Get the process-wide instance, creating it on first use (thread-safe)."""
        if cls._instance is None:
            with cls._instance_lock:
                # Double-check locking pattern
                if cls._instance is None:
                    if session_factory is None or config is None:
                        raise RuntimeError(
                            "RefreshTokenCleanupService needs a session factory and config"
                        )
                    cls._instance = cls(session_factory, config)
        return cls._instance

    @classmethod
    def current_instance(cls) -> Optional["RefreshTokenCleanupService"]:
        """The process-wide instance if one was created, without creating it."""
        return cls._instance

    @property
    def interval_seconds(self) -> float:
        return self._config.cleanup_interval.total_seconds()

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the background cleanup task."""
        if self._running:
            logger.warning("Refresh token cleanup service is already running")
            return

        self._running = True
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._cleanup_loop(), name="refresh-token-cleanup")
        logger.info(
            f"Refresh token cleanup service started (interval: {self.interval_seconds:.0f}s)"
        )

    async def stop(self) -> None:
        """Stop the background task, letting an in-flight sweep finish."""
        self._running = False
        if self._stop_event is not None:
            self._stop_event.set()

        task = self._task
        if task is not None:
            try:
                await asyncio.wait_for(asyncio.shield(task), timeout=STOP_TIMEOUT_SECONDS)
            except TimeoutError:
                logger.warning("Refresh token cleanup did not stop in time, cancelling")
                if self._sweep is not None:
                    self._sweep.cancel()
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
            self._task = None
        logger.info("Refresh token cleanup service stopped")

    async def _cleanup_loop(self) -> None:
        """Main loop: sweep, then wait for the interval or a stop request."""
        try:
            if self._initial_delay and await self._wait(self._initial_delay):
                return

            while self._running:
                self._sweep = asyncio.ensure_future(self._run_cleanup())
                try:
                    # Shielded so cancellation does not abort a sweep mid-transaction
                    await asyncio.shield(self._sweep)
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.error(f"Error in refresh token cleanup: {e}")

                if await self._wait(self.interval_seconds):
                    return
        except asyncio.CancelledError:
            logger.info("Refresh token cleanup loop cancelled")
            if self._sweep is not None and not self._sweep.done():
                await self._drain_sweep(self._sweep)
        finally:
            self._sweep = None

    async def _drain_sweep(self, sweep: asyncio.Future) -> None:
        """Let a sweep interrupted by cancellation finish and collect its outcome."""
        try:
            await sweep
        except asyncio.CancelledError:
            logger.warning("Refresh token cleanup sweep was cancelled")
        except Exception as e:
            logger.error(f"Error in refresh token cleanup: {e}")

    async def _wait(self, seconds: float) -> bool:
        """Sleep for ``seconds``. Returns True when a stop was requested."""
        if self._stop_event is None:
            await asyncio.sleep(seconds)
            return not self._running
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
            return True
        except TimeoutError:
            return not self._running

    async def _run_cleanup(self) -> int:
        """Execute a single cleanup run in a fresh session."""
        async with self._session_factory() as db:
            try:
                manager = RefreshTokenManager(RefreshTokenRepository(db), self._config)
                removed = await manager.sweep()
                await db.commit()
            except Exception as e:
                logger.exception(f"Error during refresh token cleanup: {e}")
                await db.rollback()
                raise  # Propagate to _cleanup_loop which handles logging

        if removed > 0:
            logger.info(f"Refresh token cleanup removed {removed} expired tokens")
        return removed

    async def run_cleanup_now(self) -> int:
        """Manually trigger a cleanup run.

        Returns:
            Number of refresh tokens deleted
        """
        return await self._run_cleanup()
