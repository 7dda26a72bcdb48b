"""
Recommendation orchestrator - main business logic.

Drives the tiered fallback state machine:

    CACHE_CHECK -> INFERENCE_ATTEMPT -> COLLABORATIVE_ATTEMPT
                -> TRENDING_ATTEMPT -> DONE

CACHE_CHECK runs on the request path; a hit ends at DONE without touching
the worker pool. The tier states run strictly in sequence inside a single
unit of work on the bounded worker pool.

Callers always receive a list (possibly empty); the only error that reaches
them is NotFoundError for an unknown user.
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from app.core.exceptions import (
    NotFoundError,
    ServiceUnavailableError,
    WorkerPoolSaturatedError,
)
from app.core.telemetry import GENERATION_SECONDS
from app.core.worker_pool import BoundedWorkerPool
from app.models.interfaces import RecommendationRepository, UserRepository
from app.models.schemas import (
    Recommendation,
    RecommendationAlgorithm,
    RecommendationList,
    User,
    utcnow,
)
from app.services.cache_coordinator import CacheCoordinator
from app.services.tiers import (
    RecommendationTier,
    TierOutcome,
    TierStatus,
    TrendingTier,
)

logger = logging.getLogger(__name__)


class GenerationState(str, Enum):
    CACHE_CHECK = "cache_check"
    INFERENCE_ATTEMPT = "inference_attempt"
    COLLABORATIVE_ATTEMPT = "collaborative_attempt"
    TRENDING_ATTEMPT = "trending_attempt"
    DONE = "done"


# Where to go when a state produces no list
_FALLBACK_TRANSITIONS: Dict[GenerationState, GenerationState] = {
    GenerationState.CACHE_CHECK: GenerationState.INFERENCE_ATTEMPT,
    GenerationState.INFERENCE_ATTEMPT: GenerationState.COLLABORATIVE_ATTEMPT,
    GenerationState.COLLABORATIVE_ATTEMPT: GenerationState.TRENDING_ATTEMPT,
    GenerationState.TRENDING_ATTEMPT: GenerationState.DONE,
}


@dataclass
class GenerationResult:
    """Final list of one generation run plus the outcome of every tier tried."""

    algorithm: Optional[RecommendationAlgorithm]
    recommendations: List[Recommendation] = field(default_factory=list)
    outcomes: List[TierOutcome] = field(default_factory=list)


class RecommendationOrchestrator:
    """
    Recommendation service orchestrating the tier chain.

    Responsibilities:
    - Serve cached lists (cache-aside)
    - Dispatch generation to the worker pool, one task per user at a time
    - Walk the tiers in order and persist the winning list
    - Click tracking and forced refresh
    """

    def __init__(
        self,
        user_repo: UserRepository,
        recommendation_repo: RecommendationRepository,
        cache: CacheCoordinator,
        inference_tier: RecommendationTier,
        collaborative_tier: RecommendationTier,
        trending_tier: TrendingTier,
        worker_pool: Optional[BoundedWorkerPool] = None,
        cached_score: float = 0.8,
        deduplicate_inflight: bool = True,
    ) -> None:
        """
        Initialize the orchestrator with its collaborators.

        Args:
            user_repo: Repository for user lookups
            recommendation_repo: Repository for persisted recommendation rows
            cache: Cache coordinator for lists and digests
            inference_tier: First tier (language-model ranking)
            collaborative_tier: Second tier (similar users)
            trending_tier: Last tier (category popularity)
            worker_pool: Pool running generation; None runs it inline
            cached_score: Placeholder score for lists served from cache
            deduplicate_inflight: Share one generation per user across requests
        """
        self._user_repo = user_repo
        self._recommendation_repo = recommendation_repo
        self._cache = cache
        self._trending_tier = trending_tier
        self._tiers: Dict[GenerationState, RecommendationTier] = {
            GenerationState.INFERENCE_ATTEMPT: inference_tier,
            GenerationState.COLLABORATIVE_ATTEMPT: collaborative_tier,
            GenerationState.TRENDING_ATTEMPT: trending_tier,
        }
        self._worker_pool = worker_pool
        self._cached_score = cached_score
        self._deduplicate_inflight = deduplicate_inflight
        self._inflight: Dict[int, "asyncio.Future[GenerationResult]"] = {}

    # -------------------------------------------------------------------------
    # Public operations
    # -------------------------------------------------------------------------

    async def get_recommendations(self, user_id: int) -> RecommendationList:
        """
        Get recommendations for a user, from cache when possible.

        Raises:
            NotFoundError: If the user does not exist
        """
        user = await self._require_user(user_id)

        state = GenerationState.CACHE_CHECK
        cached = self._from_cache(user_id)
        if cached is not None:
            logger.info(
                f"Recommendations served from cache: items={len(cached.items)}",
                extra={"user_id": user_id},
            )
            return cached

        result = await self._dispatch(user, _FALLBACK_TRANSITIONS[state])
        return RecommendationList.from_recommendations(
            user_id, result.recommendations, algorithm=result.algorithm
        )

    async def refresh_recommendations(self, user_id: int) -> RecommendationList:
        """Drop both cached entries for the user and regenerate."""
        user = await self._require_user(user_id)
        self._cache.invalidate_user(user_id)
        result = await self._dispatch(user, GenerationState.INFERENCE_ATTEMPT)
        return RecommendationList.from_recommendations(
            user_id, result.recommendations, algorithm=result.algorithm
        )

    async def mark_clicked(self, user_id: int, video_id: int) -> bool:
        """
        Mark the latest non-clicked recommendation of (user, video) as clicked.

        Idempotent: returns False and changes nothing when no such row exists.
        """
        updated = await self._recommendation_repo.mark_clicked(user_id, video_id, utcnow())
        if updated:
            self._cache.on_recommendation_clicked(user_id)
            logger.info(
                "Recommendation marked clicked",
                extra={"user_id": user_id, "video_id": video_id},
            )
        return updated

    async def trending_for_anonymous(
        self, category: Optional[str] = None, limit: Optional[int] = None
    ) -> RecommendationList:
        """Trending list for callers without a user; nothing is persisted."""
        recommendations = await self._trending_tier.recommend(None, category=category, limit=limit)
        return RecommendationList.from_recommendations(
            TrendingTier.ANONYMOUS_USER_ID,
            recommendations,
            algorithm=RecommendationAlgorithm.TRENDING if recommendations else None,
        )

    async def generate(
        self,
        user: User,
        state: GenerationState = GenerationState.INFERENCE_ATTEMPT,
    ) -> GenerationResult:
        """
        Run the tier chain once for a user.

        Args:
            user: Subject user
            state: Tier state to start from; CACHE_CHECK is not a tier

        Tier failures never raise: every tier reports an outcome and the
        trending tier always terminates the chain.
        """
        if state not in self._tiers:
            raise ValueError(f"Generation cannot start from {state.value}")

        start = time.time()
        outcomes: List[TierOutcome] = []
        result = GenerationResult(algorithm=None, outcomes=outcomes)

        while state is not GenerationState.DONE:
            outcome = await self._tiers[state].run(user)
            outcomes.append(outcome)

            if outcome.status is TierStatus.SUCCESS or state is GenerationState.TRENDING_ATTEMPT:
                saved = await self._persist(outcome.recommendations)
                if outcome.status is TierStatus.SUCCESS and state is GenerationState.INFERENCE_ATTEMPT:
                    self._cache.set_recommendation_ids(user.id, [r.video_id for r in saved])
                result.recommendations = saved
                result.algorithm = outcome.algorithm if saved else None
                state = GenerationState.DONE
            else:
                state = _FALLBACK_TRANSITIONS[state]

        label = result.algorithm.value if result.algorithm else "none"
        GENERATION_SECONDS.labels(algorithm=label).observe(time.time() - start)
        logger.info(
            f"Recommendations generated: algorithm={label}, "
            f"items={len(result.recommendations)}, "
            f"tiers={[o.status.value for o in outcomes]}",
            extra={"user_id": user.id},
        )
        return result

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _require_user(self, user_id: int) -> User:
        user = await self._user_repo.get_user(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    def _from_cache(self, user_id: int) -> Optional[RecommendationList]:
        video_ids = self._cache.get_recommendation_ids(user_id)
        if not video_ids:
            return None
        recommendations = [
            Recommendation(
                user_id=user_id,
                video_id=video_id,
                score=self._cached_score,
                algorithm=RecommendationAlgorithm.INFERENCE,
                rank=rank,
            )
            for rank, video_id in enumerate(video_ids, start=1)
        ]
        return RecommendationList.from_recommendations(
            user_id,
            recommendations,
            algorithm=RecommendationAlgorithm.INFERENCE,
            from_cache=True,
        )

    async def _dispatch(self, user: User, state: GenerationState) -> GenerationResult:
        """Run generation on the pool, sharing any in-flight run for the user."""
        if self._deduplicate_inflight:
            existing = self._inflight.get(user.id)
            if existing is not None and not existing.done():
                logger.debug("Joining in-flight generation", extra={"user_id": user.id})
                return await self._await_generation(user, existing)

        if self._worker_pool is None:
            return await self.generate(user, state)

        try:
            future = self._worker_pool.submit(lambda: self.generate(user, state))
        except WorkerPoolSaturatedError:
            logger.warning(
                "Generation rejected by saturated pool; serving trending",
                extra={"user_id": user.id},
            )
            return await self._trending_only(user)
        except ServiceUnavailableError:
            logger.warning("Worker pool not running; generating inline", extra={"user_id": user.id})
            return await self.generate(user, state)

        if self._deduplicate_inflight:
            self._inflight[user.id] = future
            future.add_done_callback(lambda f, uid=user.id: self._forget_inflight(uid, f))

        return await self._await_generation(user, future)

    async def _await_generation(
        self, user: User, future: "asyncio.Future[GenerationResult]"
    ) -> GenerationResult:
        try:
            return await asyncio.shield(future)
        except asyncio.CancelledError:
            # Cancellation of this caller propagates; a cancelled shared run does not
            if not future.cancelled():
                raise
            logger.warning(
                "Generation task cancelled, serving trending",
                extra={"user_id": user.id},
            )
            return await self._trending_only(user)
        except Exception as e:
            logger.exception(
                f"Generation task failed, serving trending: {e}",
                extra={"user_id": user.id},
            )
            return await self._trending_only(user)

    def _forget_inflight(self, user_id: int, future: "asyncio.Future[GenerationResult]") -> None:
        if self._inflight.get(user_id) is future:
            del self._inflight[user_id]

    async def _trending_only(self, user: User) -> GenerationResult:
        outcome = await self._trending_tier.run(user)
        saved = await self._persist(outcome.recommendations)
        return GenerationResult(
            algorithm=outcome.algorithm if saved else None,
            recommendations=saved,
            outcomes=[outcome],
        )

    async def _persist(self, recommendations: List[Recommendation]) -> List[Recommendation]:
        if not recommendations:
            return []
        try:
            return await self._recommendation_repo.save_all(recommendations)
        except Exception as e:
            logger.error(f"Failed to persist {len(recommendations)} recommendations: {e}")
            return list(recommendations)
