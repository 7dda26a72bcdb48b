"""
Retention sweep for persisted recommendation rows.
"""
import asyncio
import logging
from datetime import datetime, timedelta
from typing import Optional, Tuple

from app.core.exceptions import ValidationError
from app.models.interfaces import RecommendationRepository
from app.models.schemas import utcnow

logger = logging.getLogger(__name__)


class RetentionSweeper:
    """Deletes old recommendation rows, on demand or periodically."""

    def __init__(
        self,
        recommendation_repo: RecommendationRepository,
        retention_days: int = 90,
        interval_sec: float = 86400,
    ) -> None:
        self._recommendation_repo = recommendation_repo
        self._retention_days = retention_days
        self._interval_sec = interval_sec
        self._task: Optional["asyncio.Task[None]"] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def sweep(self, days: Optional[int] = None) -> Tuple[int, datetime]:
        """
        Delete rows created more than `days` days ago.

        Returns:
            (rows deleted, cutoff used)
        """
        days = self._retention_days if days is None else days
        if days < 0:
            raise ValidationError("Retention days must be non-negative", {"days": days})
        cutoff = utcnow() - timedelta(days=days)
        deleted = await self._recommendation_repo.delete_older_than(cutoff)
        logger.info(f"Retention sweep removed {deleted} recommendation(s) older than {cutoff.isoformat()}")
        return deleted, cutoff

    def start(self) -> None:
        """Start the periodic loop; an interval of 0 disables it."""
        if self._interval_sec <= 0 or self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="retention-sweeper")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval_sec)
            try:
                await self.sweep()
            except Exception as e:
                logger.exception(f"Retention sweep failed: {e}")
