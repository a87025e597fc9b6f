"""Periodic cleanup service for the in-memory stores.

An asyncio task owned by the app lifespan, started on startup and
cancelled on shutdown.
"""
import asyncio
from typing import Dict, Optional, TYPE_CHECKING

from core.logging import get_logger

if TYPE_CHECKING:
    from core.config import Settings
    from core.cache import TTLCache
    from core.sessions import SessionStore

logger = get_logger(__name__)


class CleanupService:
    """Background sweep of expired cache entries and sessions.

    Each sweep catches and logs its own failure, so a broken cache sweep
    neither skips the session sweep nor stops later iterations.
    """

    def __init__(
        self,
        cache: "TTLCache",
        sessions: "SessionStore",
        settings: "Settings"
    ):
        self.cache = cache
        self.sessions = sessions
        self.settings = settings
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the cleanup service background task."""
        if self._running:
            logger.warning("Cleanup service already running")
            return
        self._running = True
        self._task = asyncio.create_task(self._cleanup_loop())
        logger.info("Cleanup service started", interval=self.settings.cleanup_interval)

    async def stop(self) -> None:
        """Stop the cleanup service gracefully."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Cleanup service stopped")

    async def _cleanup_loop(self) -> None:
        """Main cleanup loop - runs at configured interval."""
        while self._running:
            await asyncio.sleep(self.settings.cleanup_interval)
            try:
                self.run_once()
            except Exception as e:
                logger.error("Cleanup failed", error=str(e))

    def run_once(self) -> Dict[str, int]:
        """Sweep both stores once and return how many items each dropped."""
        results = {}

        try:
            results['expired_cache'] = self.cache.sweep()
        except Exception as e:
            logger.warning("Failed to cleanup expired cache", error=str(e))
            results['expired_cache'] = 0

        try:
            results['expired_sessions'] = self.sessions.sweep()
        except Exception as e:
            logger.warning("Failed to cleanup expired sessions", error=str(e))
            results['expired_sessions'] = 0

        if sum(results.values()) > 0:
            logger.info("Cleanup completed", **results)
        return results
