"""
Unit tests for BehaviorSummarizer and CandidateSelector.
"""
from datetime import timedelta

import pytest

from app.models.schemas import InteractionEvent, InteractionType, utcnow
from app.services.behavior import BehaviorSummarizer
from app.services.candidates import CandidateSelector


def _event(user_id, video_id, kind=InteractionType.VIEW, days_ago=1):
    return InteractionEvent(
        user_id=user_id,
        video_id=video_id,
        interaction_type=kind,
        timestamp=utcnow() - timedelta(days=days_ago),
    )


class TestBehaviorSummarizer:
    @pytest.mark.asyncio
    async def test_no_activity_renders_markers(self, activity_repo, video_repo, coordinator):
        summarizer = BehaviorSummarizer(activity_repo, video_repo, coordinator)

        summary = await summarizer.summarize(10)

        assert summary.has_data is False
        assert summary.avg_completion_rate is None
        assert "N/A" in summary.to_prompt_text()

    @pytest.mark.asyncio
    async def test_aggregates_recent_activity(self, activity_repo, video_repo, coordinator, make_viewing):
        activity_repo.preload(
            interactions=[
                _event(10, 1),
                _event(10, 2),
                _event(10, 3, InteractionType.LIKE),
                _event(10, 4, days_ago=45),  # outside the window
            ],
            viewing=[
                make_viewing(10, 1, completion_rate=0.9, duration=270),
                make_viewing(10, 2, completion_rate=0.5, duration=100),
            ],
        )
        summarizer = BehaviorSummarizer(activity_repo, video_repo, coordinator, lookback_days=30)

        summary = await summarizer.summarize(10)

        assert summary.total_interactions == 3
        assert summary.interaction_counts == {"VIEW": 2, "LIKE": 1}
        assert summary.category_counts == {"NBA": 2, "NFL": 1}
        assert summary.viewing_count == 2
        assert summary.avg_completion_rate == pytest.approx(0.7)
        assert summary.avg_watch_duration_seconds == pytest.approx(185.0)
        assert summary.high_engagement_count == 1
        assert summary.high_engagement_ratio == pytest.approx(0.5)
        assert "High engagement videos: 1 out of 2" in summary.to_prompt_text()

    @pytest.mark.asyncio
    async def test_cached_digest_returned_until_invalidated(
        self, activity_repo, video_repo, coordinator
    ):
        summarizer = BehaviorSummarizer(activity_repo, video_repo, coordinator)
        first = await summarizer.summarize(10)

        activity_repo.preload(interactions=[_event(10, 1)])
        cached = await summarizer.summarize(10)
        assert cached == first

        coordinator.on_interaction_recorded(10)
        fresh = await summarizer.summarize(10)
        assert fresh.total_interactions == 1

    @pytest.mark.asyncio
    async def test_cached_digest_not_reused_for_other_window(
        self, activity_repo, video_repo, coordinator
    ):
        activity_repo.preload(interactions=[_event(10, 1, days_ago=20)])
        summarizer = BehaviorSummarizer(activity_repo, video_repo, coordinator, lookback_days=30)

        wide = await summarizer.summarize(10, 30)
        narrow = await summarizer.summarize(10, 7)

        assert wide.lookback_days == 30
        assert wide.total_interactions == 1
        assert narrow.lookback_days == 7
        assert narrow.total_interactions == 0
        # The configured window is still cached
        assert coordinator.get_behavior_summary(10) == wide


class TestCandidateSelector:
    @pytest.mark.asyncio
    async def test_recent_views_excluded_older_views_kept(self, activity_repo, video_repo, make_viewing):
        activity_repo.preload(viewing=[
            make_viewing(10, 1, days_ago=3),
            make_viewing(10, 2, days_ago=8),
        ])
        selector = CandidateSelector(activity_repo, video_repo, exclusion_days=7)

        candidates = await selector.select(10)

        ids = [v.id for v in candidates]
        assert 1 not in ids
        assert 2 in ids
        assert ids == sorted(ids)

    @pytest.mark.asyncio
    async def test_capped_at_prompt_budget(self, activity_repo, video_repo):
        selector = CandidateSelector(activity_repo, video_repo, max_candidates=2)

        candidates = await selector.select(10)

        assert [v.id for v in candidates] == [1, 2]

    @pytest.mark.asyncio
    async def test_other_users_views_do_not_exclude(self, activity_repo, video_repo, make_viewing):
        activity_repo.preload(viewing=[make_viewing(11, 1, days_ago=1)])
        selector = CandidateSelector(activity_repo, video_repo)

        candidates = await selector.select(10)

        assert len(candidates) == 4
