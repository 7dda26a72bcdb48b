"""
Behavior summarizer.
Compresses a user's recent activity into the digest used as model input.
"""
import logging
from collections import Counter
from datetime import timedelta
from typing import Dict, Optional

from app.models.interfaces import ActivityRepository, VideoRepository
from app.models.schemas import BehaviorSummary, utcnow
from app.services.cache_coordinator import CacheCoordinator

logger = logging.getLogger(__name__)


class BehaviorSummarizer:
    """
    Builds (or reuses) the per-user behavior digest.

    On a cache hit for the same window the cached digest is returned
    unchanged and no repository is read.
    """

    def __init__(
        self,
        activity_repo: ActivityRepository,
        video_repo: VideoRepository,
        cache: CacheCoordinator,
        lookback_days: int = 30,
        high_engagement_threshold: float = 0.8,
    ) -> None:
        self._activity_repo = activity_repo
        self._video_repo = video_repo
        self._cache = cache
        self._lookback_days = lookback_days
        self._high_engagement_threshold = high_engagement_threshold

    async def summarize(
        self, user_id: int, lookback_days: Optional[int] = None
    ) -> BehaviorSummary:
        """
        Get the behavior digest for a user.

        Args:
            user_id: User identifier
            lookback_days: Window size; defaults to the configured lookback

        Returns:
            BehaviorSummary (with has_data False when nothing was recorded)
        """
        days = lookback_days if lookback_days is not None else self._lookback_days

        cached = self._cache.get_behavior_summary(user_id)
        if cached is not None and cached.lookback_days == days:
            return cached

        summary = await self._compute(user_id, days)
        # Only the configured window is cached; one-off windows must not evict it
        if days == self._lookback_days:
            self._cache.set_behavior_summary(summary)

        logger.debug(
            f"Behavior summary computed: interactions={summary.total_interactions}, "
            f"views={summary.viewing_count}",
            extra={"user_id": user_id},
        )
        return summary

    async def _compute(self, user_id: int, days: int) -> BehaviorSummary:
        since = utcnow() - timedelta(days=days)
        interactions = await self._activity_repo.interactions_since(user_id, since)
        viewing = await self._activity_repo.viewing_since(user_id, since)

        interaction_counts = Counter(e.interaction_type.value for e in interactions)

        # Per-item category lookup, memoized for this run
        categories: Dict[int, Optional[str]] = {}
        category_counts: Counter = Counter()
        for event in interactions:
            if event.video_id not in categories:
                video = await self._video_repo.get_video(event.video_id)
                categories[event.video_id] = video.category if video else None
            category = categories[event.video_id]
            if category:
                category_counts[category] += 1

        avg_completion = avg_duration = ratio = None
        high_engagement = 0
        if viewing:
            avg_completion = sum(r.completion_rate for r in viewing) / len(viewing)
            avg_duration = sum(r.watch_duration_seconds for r in viewing) / len(viewing)
            high_engagement = sum(
                1 for r in viewing
                if r.completion_rate >= self._high_engagement_threshold
            )
            ratio = high_engagement / len(viewing)

        return BehaviorSummary(
            user_id=user_id,
            lookback_days=days,
            total_interactions=len(interactions),
            interaction_counts=dict(interaction_counts),
            category_counts=dict(category_counts),
            viewing_count=len(viewing),
            avg_completion_rate=avg_completion,
            avg_watch_duration_seconds=avg_duration,
            high_engagement_count=high_engagement,
            high_engagement_ratio=ratio,
        )
