"""Models package - domain entities and interfaces."""
from .interfaces import (
    ActivityRepository,
    FeatureFlagService,
    RecommendationRepository,
    UserRepository,
    VideoRepository,
)
from .schemas import (
    AcceptedResponse,
    BehaviorSummary,
    CleanupResponse,
    ClickResponse,
    ErrorResponse,
    InteractionEvent,
    InteractionType,
    Recommendation,
    RecommendationAlgorithm,
    RecommendationItem,
    RecommendationList,
    ScoredCandidate,
    TrackBatchRequest,
    TrackInteractionRequest,
    TrackViewingRequest,
    User,
    Video,
    ViewingRecord,
)

__all__ = [
    # Interfaces
    "ActivityRepository",
    "FeatureFlagService",
    "RecommendationRepository",
    "UserRepository",
    "VideoRepository",
    # Schemas
    "AcceptedResponse",
    "BehaviorSummary",
    "CleanupResponse",
    "ClickResponse",
    "ErrorResponse",
    "InteractionEvent",
    "InteractionType",
    "Recommendation",
    "RecommendationAlgorithm",
    "RecommendationItem",
    "RecommendationList",
    "ScoredCandidate",
    "TrackBatchRequest",
    "TrackInteractionRequest",
    "TrackViewingRequest",
    "User",
    "Video",
    "ViewingRecord",
]
