"""Services package - business logic layer."""
from .behavior import BehaviorSummarizer
from .cache_coordinator import CacheCoordinator
from .candidates import CandidateSelector
from .feature_flags import ConfigBasedFeatureFlagService
from .inference import (
    InferenceClient,
    InferenceResult,
    OpenAIInferenceClient,
    StubInferenceClient,
)
from .interactions import InteractionTracker
from .parser import parse_inference_response
from .recommendation import GenerationResult, GenerationState, RecommendationOrchestrator
from .retention import RetentionSweeper
from .tiers import (
    CollaborativeTier,
    InferenceTier,
    RecommendationTier,
    TierOutcome,
    TierStatus,
    TrendingTier,
)

__all__ = [
    "BehaviorSummarizer",
    "CacheCoordinator",
    "CandidateSelector",
    "CollaborativeTier",
    "ConfigBasedFeatureFlagService",
    "GenerationResult",
    "GenerationState",
    "InferenceClient",
    "InferenceResult",
    "InferenceTier",
    "InteractionTracker",
    "OpenAIInferenceClient",
    "RecommendationOrchestrator",
    "RecommendationTier",
    "RetentionSweeper",
    "StubInferenceClient",
    "TierOutcome",
    "TierStatus",
    "TrendingTier",
    "parse_inference_response",
]
