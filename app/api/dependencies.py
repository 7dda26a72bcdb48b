"""
Dependency injection container.
Creates and wires all application components.
Uses FastAPI's dependency injection system.
"""
from functools import lru_cache
from typing import Tuple

from app.config import get_settings
from app.core.cache import CacheInterface, InMemoryCache, RedisCache
from app.core.circuit_breaker import CircuitBreaker
from app.core.worker_pool import BoundedWorkerPool
from app.repositories.memory import (
    InMemoryActivityRepository,
    InMemoryRecommendationRepository,
    InMemoryUserRepository,
    InMemoryVideoRepository,
    seed_demo_data,
)
from app.services.behavior import BehaviorSummarizer
from app.services.cache_coordinator import CacheCoordinator
from app.services.candidates import CandidateSelector
from app.services.feature_flags import ConfigBasedFeatureFlagService
from app.services.inference import (
    InferenceClient,
    OpenAIInferenceClient,
    StubInferenceClient,
)
from app.services.interactions import InteractionTracker
from app.services.recommendation import RecommendationOrchestrator
from app.services.retention import RetentionSweeper
from app.services.tiers import CollaborativeTier, InferenceTier, TrendingTier


# =============================================================================
# Singleton Instances (Application Lifetime)
# =============================================================================


@lru_cache()
def _behavior_store() -> Tuple[
    InMemoryUserRepository, InMemoryVideoRepository, InMemoryActivityRepository
]:
    """Users, catalog and activity share one seeding step."""
    users = InMemoryUserRepository()
    videos = InMemoryVideoRepository()
    activity = InMemoryActivityRepository()
    if get_settings().SEED_DEMO_DATA:
        seed_demo_data(users, videos, activity)
    return users, videos, activity


def get_user_repository() -> InMemoryUserRepository:
    return _behavior_store()[0]


def get_video_repository() -> InMemoryVideoRepository:
    return _behavior_store()[1]


def get_activity_repository() -> InMemoryActivityRepository:
    return _behavior_store()[2]


@lru_cache()
def get_recommendation_repository() -> InMemoryRecommendationRepository:
    """Get singleton recommendation repository."""
    return InMemoryRecommendationRepository()


@lru_cache()
def get_cache_store() -> CacheInterface[str]:
    """Redis when REDIS_URL is configured, process-local memory otherwise."""
    settings = get_settings()
    if settings.REDIS_URL:
        return RedisCache(settings.REDIS_URL)
    return InMemoryCache()


@lru_cache()
def get_cache_coordinator() -> CacheCoordinator:
    settings = get_settings()
    return CacheCoordinator(
        cache=get_cache_store(),
        behavior_ttl_sec=settings.BEHAVIOR_SUMMARY_TTL_SEC,
        recommendations_ttl_sec=settings.RECOMMENDATION_CACHE_TTL_SEC,
    )


@lru_cache()
def get_feature_flag_service() -> ConfigBasedFeatureFlagService:
    """Get singleton feature flag service."""
    settings = get_settings()
    return ConfigBasedFeatureFlagService(
        rollout_percentage=settings.INFERENCE_ROLLOUT_PERCENTAGE
    )


@lru_cache()
def get_inference_circuit_breaker() -> CircuitBreaker:
    """Get singleton circuit breaker for the inference endpoint."""
    settings = get_settings()
    return CircuitBreaker(
        name="inference",
        failure_threshold=settings.CIRCUIT_BREAKER_FAILURE_THRESHOLD,
        recovery_timeout_sec=settings.CIRCUIT_BREAKER_RECOVERY_TIMEOUT_SEC,
    )


@lru_cache()
def get_inference_client() -> InferenceClient:
    settings = get_settings()
    provider = settings.INFERENCE_PROVIDER.lower()
    if provider == "stub":
        return StubInferenceClient(count=settings.DEFAULT_RECOMMENDATION_COUNT)
    if provider == "openai":
        return OpenAIInferenceClient(
            api_key=settings.INFERENCE_API_KEY,
            model=settings.INFERENCE_MODEL,
            base_url=settings.INFERENCE_BASE_URL,
            max_tokens=settings.INFERENCE_MAX_TOKENS,
            temperature=settings.INFERENCE_TEMPERATURE,
            timeout_sec=settings.INFERENCE_TIMEOUT_SEC,
            circuit_breaker=get_inference_circuit_breaker(),
        )
    raise ValueError(f"Unknown inference provider: {settings.INFERENCE_PROVIDER}")


@lru_cache()
def get_worker_pool() -> BoundedWorkerPool:
    """Get singleton worker pool; started and stopped by the app lifespan."""
    settings = get_settings()
    return BoundedWorkerPool(
        name="recommendations",
        size=settings.WORKER_POOL_SIZE,
        queue_capacity=settings.WORKER_QUEUE_CAPACITY,
    )


@lru_cache()
def get_behavior_summarizer() -> BehaviorSummarizer:
    settings = get_settings()
    return BehaviorSummarizer(
        activity_repo=get_activity_repository(),
        video_repo=get_video_repository(),
        cache=get_cache_coordinator(),
        lookback_days=settings.BEHAVIOR_LOOKBACK_DAYS,
        high_engagement_threshold=settings.HIGH_ENGAGEMENT_THRESHOLD,
    )


@lru_cache()
def get_candidate_selector() -> CandidateSelector:
    settings = get_settings()
    return CandidateSelector(
        activity_repo=get_activity_repository(),
        video_repo=get_video_repository(),
        exclusion_days=settings.CANDIDATE_EXCLUSION_DAYS,
        max_candidates=settings.MAX_PROMPT_CANDIDATES,
    )


@lru_cache()
def get_recommendation_orchestrator() -> RecommendationOrchestrator:
    """
    Get the orchestrator with all tiers wired.
    Singleton so the in-flight generation guard is shared across requests.
    """
    settings = get_settings()
    count = settings.DEFAULT_RECOMMENDATION_COUNT
    return RecommendationOrchestrator(
        user_repo=get_user_repository(),
        recommendation_repo=get_recommendation_repository(),
        cache=get_cache_coordinator(),
        inference_tier=InferenceTier(
            summarizer=get_behavior_summarizer(),
            selector=get_candidate_selector(),
            client=get_inference_client(),
            feature_flags=get_feature_flag_service(),
            count=count,
            clamp_scores=settings.INFERENCE_CLAMP_SCORES,
        ),
        collaborative_tier=CollaborativeTier(
            user_repo=get_user_repository(),
            activity_repo=get_activity_repository(),
            count=count,
            peer_limit=settings.COLLABORATIVE_PEER_LIMIT,
            min_completion=settings.COLLABORATIVE_MIN_COMPLETION,
            lookback_days=settings.BEHAVIOR_LOOKBACK_DAYS,
        ),
        trending_tier=TrendingTier(
            video_repo=get_video_repository(),
            count=count,
            default_category=settings.DEFAULT_CATEGORY,
            score=settings.TRENDING_SCORE,
        ),
        worker_pool=get_worker_pool(),
        cached_score=settings.CACHED_RECOMMENDATION_SCORE,
        deduplicate_inflight=settings.DEDUPLICATE_INFLIGHT_GENERATION,
    )


@lru_cache()
def get_interaction_tracker() -> InteractionTracker:
    return InteractionTracker(
        user_repo=get_user_repository(),
        video_repo=get_video_repository(),
        activity_repo=get_activity_repository(),
        cache=get_cache_coordinator(),
        worker_pool=get_worker_pool(),
    )


@lru_cache()
def get_retention_sweeper() -> RetentionSweeper:
    settings = get_settings()
    return RetentionSweeper(
        recommendation_repo=get_recommendation_repository(),
        retention_days=settings.RECOMMENDATION_RETENTION_DAYS,
        interval_sec=settings.RETENTION_SWEEP_INTERVAL_SEC,
    )


# =============================================================================
# Cleanup Functions
# =============================================================================


def clear_caches() -> None:
    """Clear all cached singleton instances (for testing)."""
    _behavior_store.cache_clear()
    get_recommendation_repository.cache_clear()
    get_cache_store.cache_clear()
    get_cache_coordinator.cache_clear()
    get_feature_flag_service.cache_clear()
    get_inference_circuit_breaker.cache_clear()
    get_inference_client.cache_clear()
    get_worker_pool.cache_clear()
    get_behavior_summarizer.cache_clear()
    get_candidate_selector.cache_clear()
    get_recommendation_orchestrator.cache_clear()
    get_interaction_tracker.cache_clear()
    get_retention_sweeper.cache_clear()
