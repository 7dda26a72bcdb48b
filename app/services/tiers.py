"""
Recommendation tiers.

Each tier is one complete strategy in the fallback chain:
    inference -> collaborative -> trending

A tier never raises to the orchestrator; it reports a TierOutcome that
distinguishes "found nothing" (EMPTY), "could not run" (FAILED) and
"not attempted" (SKIPPED) from SUCCESS.
"""
import logging
import time
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Dict, List, Optional

from app.core.telemetry import TIER_OUTCOMES
from app.models.interfaces import (
    ActivityRepository,
    FeatureFlagService,
    UserRepository,
    VideoRepository,
)
from app.models.schemas import (
    Recommendation,
    RecommendationAlgorithm,
    User,
    utcnow,
)
from app.services.behavior import BehaviorSummarizer
from app.services.candidates import CandidateSelector
from app.services.inference import InferenceClient
from app.services.parser import parse_inference_response
from app.services.prompt import build_recommendation_prompt

logger = logging.getLogger(__name__)


# =============================================================================
# Outcome type
# =============================================================================


class TierStatus(str, Enum):
    SUCCESS = "success"
    EMPTY = "empty"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class TierOutcome:
    """Result of one tier attempt."""

    algorithm: RecommendationAlgorithm
    status: TierStatus
    recommendations: List[Recommendation] = field(default_factory=list)
    reason: Optional[str] = None

    @classmethod
    def success(
        cls, algorithm: RecommendationAlgorithm, recommendations: List[Recommendation]
    ) -> "TierOutcome":
        return cls(algorithm, TierStatus.SUCCESS, list(recommendations))

    @classmethod
    def empty(cls, algorithm: RecommendationAlgorithm, reason: str) -> "TierOutcome":
        return cls(algorithm, TierStatus.EMPTY, reason=reason)

    @classmethod
    def failed(cls, algorithm: RecommendationAlgorithm, reason: str) -> "TierOutcome":
        return cls(algorithm, TierStatus.FAILED, reason=reason)

    @classmethod
    def skipped(cls, algorithm: RecommendationAlgorithm, reason: str) -> "TierOutcome":
        return cls(algorithm, TierStatus.SKIPPED, reason=reason)


# =============================================================================
# Tier Strategy
# =============================================================================


class RecommendationTier(ABC):
    """Abstract base class for tiers."""

    algorithm: RecommendationAlgorithm

    async def run(self, user: Optional[User]) -> TierOutcome:
        """
        Attempt this tier for a user.

        Any runtime failure inside the tier is converted into a FAILED
        outcome here, the single place where tier exceptions are absorbed.
        """
        start = time.time()
        try:
            outcome = await self._attempt(user)
        except Exception as e:
            logger.warning(
                f"Tier {self.algorithm.value} failed: {type(e).__name__}: {e}",
                exc_info=True,
                extra={"user_id": user.id if user else None, "tier": self.algorithm.value},
            )
            outcome = TierOutcome.failed(self.algorithm, f"{type(e).__name__}: {e}")

        TIER_OUTCOMES.labels(tier=self.algorithm.value, status=outcome.status.value).inc()
        logger.info(
            f"Tier {self.algorithm.value} -> {outcome.status.value}: "
            f"items={len(outcome.recommendations)}, reason={outcome.reason}, "
            f"elapsed_ms={(time.time() - start) * 1000:.2f}",
            extra={"user_id": user.id if user else None, "tier": self.algorithm.value},
        )
        return outcome

    @abstractmethod
    async def _attempt(self, user: Optional[User]) -> TierOutcome:
        pass

    def _from_recommendations(
        self, recommendations: List[Recommendation], empty_reason: str
    ) -> TierOutcome:
        if recommendations:
            return TierOutcome.success(self.algorithm, recommendations)
        return TierOutcome.empty(self.algorithm, empty_reason)


class InferenceTier(RecommendationTier):
    """Summarize -> select candidates -> prompt the model -> parse its reply."""

    algorithm = RecommendationAlgorithm.INFERENCE
    REASONING = "AI-generated based on user behavior analysis"

    def __init__(
        self,
        summarizer: BehaviorSummarizer,
        selector: CandidateSelector,
        client: InferenceClient,
        feature_flags: Optional[FeatureFlagService] = None,
        count: int = 10,
        clamp_scores: bool = True,
    ) -> None:
        self._summarizer = summarizer
        self._selector = selector
        self._client = client
        self._feature_flags = feature_flags
        self._count = count
        self._clamp_scores = clamp_scores

    async def _attempt(self, user: Optional[User]) -> TierOutcome:
        if user is None:
            return TierOutcome.skipped(self.algorithm, "no user")
        if self._feature_flags is not None and not self._feature_flags.is_inference_enabled(user.id):
            return TierOutcome.skipped(self.algorithm, "disabled by feature flag")

        summary = await self._summarizer.summarize(user.id)
        candidates = await self._selector.select(user.id)
        if not candidates:
            return TierOutcome.empty(self.algorithm, "no candidates")

        prompt = build_recommendation_prompt(user, summary, candidates, self._count)
        result = await self._client.complete(prompt)
        if not result.ok:
            return TierOutcome.failed(self.algorithm, result.error or "inference unavailable")

        scored = parse_inference_response(
            result.text, candidates, clamp_scores=self._clamp_scores
        )[: self._count]
        recommendations = [
            Recommendation(
                user_id=user.id,
                video_id=item.video_id,
                score=item.score,
                algorithm=self.algorithm,
                rank=item.rank,
                reasoning=self.REASONING,
            )
            for item in scored
        ]
        return self._from_recommendations(recommendations, "no usable ids in reply")


class CollaborativeTier(RecommendationTier):
    """
    Lightweight collaborative filtering: items that peers sharing the
    user's primary preference watched to (near) completion.
    """

    algorithm = RecommendationAlgorithm.COLLABORATIVE
    REASONING = "Highly completed by users with similar preferences"

    def __init__(
        self,
        user_repo: UserRepository,
        activity_repo: ActivityRepository,
        count: int = 10,
        peer_limit: int = 10,
        min_completion: float = 0.7,
        lookback_days: int = 30,
    ) -> None:
        self._user_repo = user_repo
        self._activity_repo = activity_repo
        self._count = count
        self._peer_limit = peer_limit
        self._min_completion = min_completion
        self._lookback_days = lookback_days

    async def _attempt(self, user: Optional[User]) -> TierOutcome:
        token = user.primary_preference if user else None
        if user is None or not token:
            return TierOutcome.empty(self.algorithm, "no primary preference")

        peers = [
            peer for peer in await self._user_repo.find_by_preference(token)
            if peer.id != user.id
        ][: self._peer_limit]
        if not peers:
            return TierOutcome.empty(self.algorithm, "no peers")

        since = utcnow() - timedelta(days=self._lookback_days)
        totals: Dict[int, float] = defaultdict(float)
        for peer in peers:
            for record in await self._activity_repo.viewing_since(peer.id, since):
                if record.completion_rate >= self._min_completion:
                    totals[record.video_id] += record.completion_rate

        ranked = sorted(totals.items(), key=lambda kv: (-kv[1], kv[0]))[: self._count]
        recommendations = [
            Recommendation(
                user_id=user.id,
                video_id=video_id,
                score=min(total, 1.0),
                algorithm=self.algorithm,
                rank=rank,
                reasoning=self.REASONING,
            )
            for rank, (video_id, total) in enumerate(ranked, start=1)
        ]
        return self._from_recommendations(recommendations, "no qualifying peer views")


class TrendingTier(RecommendationTier):
    """Most popular videos in the user's preferred category. Last resort."""

    algorithm = RecommendationAlgorithm.TRENDING
    REASONING = "Popular content in preferred category"
    ANONYMOUS_USER_ID = 0

    def __init__(
        self,
        video_repo: VideoRepository,
        count: int = 10,
        default_category: str = "NBA",
        score: float = 0.5,
    ) -> None:
        self._video_repo = video_repo
        self._count = count
        self._default_category = default_category
        self._score = score

    def category_for(self, user: Optional[User]) -> str:
        token = user.primary_preference if user else None
        return token or self._default_category

    async def recommend(
        self,
        user: Optional[User],
        category: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Recommendation]:
        """Top videos of `category` (default: the user's) by popularity."""
        category = category or self.category_for(user)
        limit = limit if limit is not None else self._count
        videos = sorted(
            await self._video_repo.find_by_category(category),
            key=lambda v: (-v.view_count, v.id),
        )[:limit]
        user_id = user.id if user else self.ANONYMOUS_USER_ID
        return [
            Recommendation(
                user_id=user_id,
                video_id=video.id,
                score=self._score,
                algorithm=self.algorithm,
                rank=rank,
                reasoning=self.REASONING,
            )
            for rank, video in enumerate(videos, start=1)
        ]

    async def _attempt(self, user: Optional[User]) -> TierOutcome:
        recommendations = await self.recommend(user)
        return self._from_recommendations(
            recommendations, f"no videos in category {self.category_for(user)}"
        )
