"""
Interaction tracking.

Appends behavior events and fires cache invalidation. Validation of the
user and video happens on the request path; the writes themselves run on
the bounded worker pool so tracking endpoints can answer immediately.
"""
import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Sequence, Set

from app.core.exceptions import NotFoundError
from app.core.worker_pool import BoundedWorkerPool
from app.models.interfaces import ActivityRepository, UserRepository, VideoRepository
from app.models.schemas import (
    InteractionEvent,
    InteractionType,
    TrackInteractionRequest,
    ViewingRecord,
)
from app.services.cache_coordinator import CacheCoordinator

logger = logging.getLogger(__name__)


def detailed_view_metadata(
    watch_duration_seconds: int,
    completion_rate: float,
    skip_count: int,
    replay_count: int,
) -> str:
    return (
        f"watchDuration:{watch_duration_seconds},"
        f"completionRate:{completion_rate:.2f},"
        f"skips:{skip_count},"
        f"replays:{replay_count}"
    )


class InteractionTracker:
    """Records interactions and viewing history for users."""

    def __init__(
        self,
        user_repo: UserRepository,
        video_repo: VideoRepository,
        activity_repo: ActivityRepository,
        cache: CacheCoordinator,
        worker_pool: Optional[BoundedWorkerPool] = None,
    ) -> None:
        self._user_repo = user_repo
        self._video_repo = video_repo
        self._activity_repo = activity_repo
        self._cache = cache
        self._worker_pool = worker_pool

    async def track_interaction(
        self,
        user_id: int,
        video_id: int,
        interaction_type: InteractionType,
        metadata: Optional[str] = None,
    ) -> "asyncio.Future[None]":
        """
        Validate and dispatch one interaction event.

        Raises:
            NotFoundError: If the user or video does not exist
            WorkerPoolSaturatedError: If the pool rejects the job
        """
        await self._require(user_id, video_id)
        event = InteractionEvent(
            user_id=user_id,
            video_id=video_id,
            interaction_type=interaction_type,
            metadata=metadata,
        )
        return self._dispatch(lambda: self._record_interactions([event]))

    async def track_viewing(
        self,
        user_id: int,
        video_id: int,
        watch_duration_seconds: int,
        completion_rate: float,
        skip_count: Optional[int] = None,
        replay_count: Optional[int] = None,
    ) -> "asyncio.Future[None]":
        """
        Validate and dispatch a viewing record plus its companion interaction.

        A plain VIEW is recorded unless skip or replay counts are supplied,
        in which case a DETAILED_VIEW carries the engagement metadata.
        """
        await self._require(user_id, video_id)
        detailed = skip_count is not None or replay_count is not None
        record = ViewingRecord(
            user_id=user_id,
            video_id=video_id,
            watch_duration_seconds=watch_duration_seconds,
            completion_rate=completion_rate,
            skip_count=skip_count or 0,
            replay_count=replay_count or 0,
        )
        if detailed:
            event = InteractionEvent(
                user_id=user_id,
                video_id=video_id,
                interaction_type=InteractionType.DETAILED_VIEW,
                metadata=detailed_view_metadata(
                    record.watch_duration_seconds,
                    record.completion_rate,
                    record.skip_count,
                    record.replay_count,
                ),
            )
        else:
            event = InteractionEvent(
                user_id=user_id,
                video_id=video_id,
                interaction_type=InteractionType.VIEW,
            )
        return self._dispatch(lambda: self._record_viewing(record, event))

    async def track_batch(
        self, events: Sequence[TrackInteractionRequest]
    ) -> "asyncio.Future[None]":
        """Validate every event first, then record them as one job."""
        for item in events:
            await self._require(item.user_id, item.video_id)
        batch = [
            InteractionEvent(
                user_id=item.user_id,
                video_id=item.video_id,
                interaction_type=item.interaction_type,
                metadata=item.metadata,
            )
            for item in events
        ]
        return self._dispatch(lambda: self._record_interactions(batch))

    # -------------------------------------------------------------------------
    # Jobs
    # -------------------------------------------------------------------------

    async def _record_interactions(self, events: List[InteractionEvent]) -> None:
        users: Set[int] = set()
        for event in events:
            await self._activity_repo.add_interaction(event)
            users.add(event.user_id)
        for user_id in sorted(users):
            self._cache.on_interaction_recorded(user_id)
        logger.info(f"Recorded {len(events)} interaction(s) for {len(users)} user(s)")

    async def _record_viewing(self, record: ViewingRecord, event: InteractionEvent) -> None:
        await self._activity_repo.add_viewing(record)
        await self._activity_repo.add_interaction(event)
        self._cache.on_viewing_recorded(record.user_id)
        logger.info(
            f"Recorded viewing: completion={record.completion_rate:.2f}",
            extra={"user_id": record.user_id, "video_id": record.video_id},
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _require(self, user_id: int, video_id: int) -> None:
        if await self._user_repo.get_user(user_id) is None:
            raise NotFoundError("User", user_id)
        if await self._video_repo.get_video(video_id) is None:
            raise NotFoundError("Video", video_id)

    def _dispatch(self, job: Callable[[], Awaitable[None]]) -> "asyncio.Future[None]":
        if self._worker_pool is None:
            future = asyncio.ensure_future(job())
        else:
            future = self._worker_pool.submit(job)
        future.add_done_callback(_log_failure)
        return future


def _log_failure(future: "asyncio.Future[None]") -> None:
    if future.cancelled():
        logger.warning("Tracking job cancelled before it ran")
        return
    error = future.exception()
    if error is not None:
        logger.error(f"Tracking job failed: {type(error).__name__}: {error}")
