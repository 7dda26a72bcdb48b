"""
Unit tests for InteractionTracker and RetentionSweeper.
"""
import asyncio
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from app.core.exceptions import NotFoundError, ValidationError, WorkerPoolSaturatedError
from app.core.worker_pool import BoundedWorkerPool
from app.models.schemas import (
    BehaviorSummary,
    InteractionType,
    Recommendation,
    RecommendationAlgorithm,
    TrackInteractionRequest,
    utcnow,
)
from app.services.interactions import InteractionTracker, detailed_view_metadata
from app.services.retention import RetentionSweeper


@pytest.fixture
def tracker(user_repo, video_repo, activity_repo, coordinator):
    return InteractionTracker(user_repo, video_repo, activity_repo, coordinator)


def _prime_cache(coordinator, user_id):
    coordinator.set_behavior_summary(BehaviorSummary(user_id=user_id, lookback_days=30))
    coordinator.set_recommendation_ids(user_id, [1, 2])


class TestInteractionTracker:
    @pytest.mark.asyncio
    async def test_interaction_invalidates_both_keys(self, tracker, coordinator, activity_repo):
        _prime_cache(coordinator, 10)

        await (await tracker.track_interaction(10, 1, InteractionType.LIKE))

        assert coordinator.get_recommendation_ids(10) is None
        assert coordinator.get_behavior_summary(10) is None
        events = await activity_repo.interactions_since(10, utcnow() - timedelta(days=1))
        assert [e.interaction_type for e in events] == [InteractionType.LIKE]

    @pytest.mark.asyncio
    async def test_plain_viewing_records_view(self, tracker, coordinator, activity_repo):
        _prime_cache(coordinator, 10)
        since = utcnow() - timedelta(days=1)

        await (await tracker.track_viewing(10, 2, 150, 0.75))

        viewing = await activity_repo.viewing_since(10, since)
        events = await activity_repo.interactions_since(10, since)
        assert len(viewing) == 1
        assert viewing[0].completion_rate == 0.75
        assert events[0].interaction_type is InteractionType.VIEW
        assert events[0].metadata is None
        assert coordinator.get_recommendation_ids(10) is None

    @pytest.mark.asyncio
    async def test_detailed_viewing_carries_metadata(self, tracker, activity_repo):
        since = utcnow() - timedelta(days=1)

        await (await tracker.track_viewing(10, 2, 120, 0.5, skip_count=2))

        events = await activity_repo.interactions_since(10, since)
        viewing = await activity_repo.viewing_since(10, since)
        assert events[0].interaction_type is InteractionType.DETAILED_VIEW
        assert events[0].metadata == "watchDuration:120,completionRate:0.50,skips:2,replays:0"
        assert viewing[0].skip_count == 2
        assert viewing[0].replay_count == 0

    @pytest.mark.asyncio
    async def test_batch_invalidates_each_user(self, tracker, coordinator, activity_repo):
        _prime_cache(coordinator, 10)
        _prime_cache(coordinator, 11)
        events = [
            TrackInteractionRequest(user_id=10, video_id=1, interaction_type=InteractionType.CLICK),
            TrackInteractionRequest(user_id=11, video_id=2, interaction_type=InteractionType.SHARE),
            TrackInteractionRequest(user_id=10, video_id=3, interaction_type=InteractionType.SKIP),
        ]

        await (await tracker.track_batch(events))

        assert coordinator.get_recommendation_ids(10) is None
        assert coordinator.get_recommendation_ids(11) is None
        since = utcnow() - timedelta(days=1)
        assert len(await activity_repo.interactions_since(10, since)) == 2

    @pytest.mark.asyncio
    async def test_unknown_video_rejected_before_dispatch(self, tracker, activity_repo):
        events = [
            TrackInteractionRequest(user_id=10, video_id=1, interaction_type=InteractionType.VIEW),
            TrackInteractionRequest(user_id=10, video_id=404, interaction_type=InteractionType.VIEW),
        ]

        with pytest.raises(NotFoundError):
            await tracker.track_batch(events)

        assert await activity_repo.interactions_since(10, utcnow() - timedelta(days=1)) == []

    @pytest.mark.asyncio
    async def test_unknown_user_rejected(self, tracker):
        with pytest.raises(NotFoundError):
            await tracker.track_interaction(999, 1, InteractionType.VIEW)

    @pytest.mark.asyncio
    async def test_saturated_pool_propagates(
        self, user_repo, video_repo, activity_repo, coordinator
    ):
        pool = MagicMock(spec=BoundedWorkerPool)
        pool.submit.side_effect = WorkerPoolSaturatedError("recommendations", 1)
        tracker = InteractionTracker(user_repo, video_repo, activity_repo, coordinator, pool)

        with pytest.raises(WorkerPoolSaturatedError):
            await tracker.track_interaction(10, 1, InteractionType.VIEW)

    @pytest.mark.asyncio
    async def test_runs_on_worker_pool(self, user_repo, video_repo, activity_repo, coordinator):
        pool = BoundedWorkerPool("tracking", size=1, queue_capacity=5)
        await pool.start()
        tracker = InteractionTracker(user_repo, video_repo, activity_repo, coordinator, pool)

        try:
            await (await tracker.track_interaction(10, 1, InteractionType.VIEW))
        finally:
            await pool.shutdown()

        assert pool.stats()["completed"] == 1

    def test_metadata_format(self):
        assert detailed_view_metadata(300, 0.456, 1, 3) == (
            "watchDuration:300,completionRate:0.46,skips:1,replays:3"
        )


class TestRetentionSweeper:
    async def _seed(self, recommendation_repo):
        now = utcnow()
        await recommendation_repo.save_all([
            Recommendation(user_id=10, video_id=1, score=0.5, rank=1,
                           algorithm=RecommendationAlgorithm.TRENDING,
                           created_at=now - timedelta(days=100)),
            Recommendation(user_id=10, video_id=2, score=0.5, rank=2,
                           algorithm=RecommendationAlgorithm.TRENDING,
                           created_at=now - timedelta(days=5)),
        ])

    @pytest.mark.asyncio
    async def test_sweep_deletes_rows_past_retention(self, recommendation_repo):
        await self._seed(recommendation_repo)
        sweeper = RetentionSweeper(recommendation_repo, retention_days=90)

        deleted, cutoff = await sweeper.sweep()

        assert deleted == 1
        assert cutoff < utcnow() - timedelta(days=89)
        remaining = await recommendation_repo.list_for_user(10)
        assert [r.video_id for r in remaining] == [2]

    @pytest.mark.asyncio
    async def test_explicit_days_override(self, recommendation_repo):
        await self._seed(recommendation_repo)
        sweeper = RetentionSweeper(recommendation_repo, retention_days=90)

        deleted, _ = await sweeper.sweep(days=1)

        assert deleted == 2

    @pytest.mark.asyncio
    async def test_negative_days_rejected(self, recommendation_repo):
        sweeper = RetentionSweeper(recommendation_repo)

        with pytest.raises(ValidationError):
            await sweeper.sweep(days=-1)

    @pytest.mark.asyncio
    async def test_zero_interval_disables_loop(self, recommendation_repo):
        sweeper = RetentionSweeper(recommendation_repo, interval_sec=0)

        sweeper.start()

        assert sweeper.running is False

    @pytest.mark.asyncio
    async def test_periodic_loop_sweeps(self, recommendation_repo):
        await self._seed(recommendation_repo)
        sweeper = RetentionSweeper(recommendation_repo, retention_days=90, interval_sec=0.01)

        sweeper.start()
        assert sweeper.running is True
        await asyncio.sleep(0.1)
        await sweeper.stop()

        assert sweeper.running is False
        assert len(await recommendation_repo.list_for_user(10)) == 1
