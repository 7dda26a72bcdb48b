"""
Domain models using Pydantic.
All data structures for the recommendation system.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


def utcnow() -> datetime:
    """Timezone-aware current time used for every stored timestamp."""
    return datetime.now(timezone.utc)


# =============================================================================
# Enumerations
# =============================================================================


class RecommendationAlgorithm(str, Enum):
    """Tier that produced a recommendation."""

    INFERENCE = "inference"
    COLLABORATIVE = "collaborative"
    TRENDING = "trending"


class InteractionType(str, Enum):
    """Kinds of behavior events recorded by the tracking path."""

    VIEW = "VIEW"
    DETAILED_VIEW = "DETAILED_VIEW"
    CLICK = "CLICK"
    LIKE = "LIKE"
    SHARE = "SHARE"
    SKIP = "SKIP"


# =============================================================================
# Domain Models (Internal)
# =============================================================================


class User(BaseModel):
    """
    Platform user. Owned by the persistence collaborator; read-only here.
    """

    id: int = Field(..., description="User identifier")
    username: str = Field(default="", description="Display name")
    preferences: List[str] = Field(
        default_factory=list,
        description="Free-text preference tokens, most important first",
    )
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator("preferences", mode="before")
    @classmethod
    def _split_preferences(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        return [token.strip() for token in value if token and token.strip()]

    @property
    def primary_preference(self) -> Optional[str]:
        """First preference token, or None when the user has none."""
        return self.preferences[0] if self.preferences else None


class Video(BaseModel):
    """Catalog item. Read-only here."""

    id: int = Field(..., description="Video identifier")
    title: str = Field(..., description="Video title")
    category: str = Field(..., description="Category, e.g. NBA, NFL, Soccer")
    duration_seconds: Optional[int] = Field(default=None, ge=0)
    view_count: int = Field(default=0, ge=0, description="Popularity counter")
    like_count: int = Field(default=0, ge=0)
    last_updated: datetime = Field(default_factory=utcnow)


class InteractionEvent(BaseModel):
    """Append-only behavior event."""

    id: Optional[int] = None
    user_id: int
    video_id: int
    interaction_type: InteractionType
    timestamp: datetime = Field(default_factory=utcnow)
    metadata: Optional[str] = Field(default=None, max_length=500)


class ViewingRecord(BaseModel):
    """Append-only viewing record; completion_rate is the main quality signal."""

    id: Optional[int] = None
    user_id: int
    video_id: int
    watch_duration_seconds: int = Field(..., ge=0)
    completion_rate: float = Field(..., ge=0.0, le=1.0)
    skip_count: int = Field(default=0, ge=0)
    replay_count: int = Field(default=0, ge=0)
    watched_at: datetime = Field(default_factory=utcnow)


class BehaviorSummary(BaseModel):
    """
    Digest of a user's recent activity, used as inference input.
    Cached as JSON under the per-user behavior key.
    """

    user_id: int
    lookback_days: int
    generated_at: datetime = Field(default_factory=utcnow)
    total_interactions: int = 0
    interaction_counts: Dict[str, int] = Field(default_factory=dict)
    category_counts: Dict[str, int] = Field(default_factory=dict)
    viewing_count: int = 0
    avg_completion_rate: Optional[float] = None
    avg_watch_duration_seconds: Optional[float] = None
    high_engagement_count: int = 0
    high_engagement_ratio: Optional[float] = None

    @property
    def has_data(self) -> bool:
        return self.total_interactions > 0 or self.viewing_count > 0

    def to_prompt_text(self) -> str:
        """Render the digest as the text block embedded in the prompt."""
        if not self.has_data:
            return (
                "User Behavior Summary:\n"
                f"- No recorded activity in last {self.lookback_days} days\n"
                "- Interaction types: N/A\n"
                "- Preferred categories: N/A\n"
                "- Average completion rate: N/A\n"
                "- Average watch duration: N/A\n"
            )

        def _fmt_counts(counts: Dict[str, int]) -> str:
            if not counts:
                return "N/A"
            return ", ".join(f"{k}={v}" for k, v in sorted(counts.items()))

        completion = (
            f"{self.avg_completion_rate:.2f}"
            if self.avg_completion_rate is not None
            else "N/A"
        )
        duration = (
            f"{self.avg_watch_duration_seconds:.0f} seconds"
            if self.avg_watch_duration_seconds is not None
            else "N/A"
        )

        lines = [
            "User Behavior Summary:",
            f"- Total interactions in last {self.lookback_days} days: {self.total_interactions}",
            f"- Interaction types: {_fmt_counts(self.interaction_counts)}",
            f"- Preferred categories: {_fmt_counts(self.category_counts)}",
            f"- Average completion rate: {completion}",
            f"- Average watch duration: {duration}",
        ]
        if self.viewing_count:
            lines.append(
                f"- High engagement videos: {self.high_engagement_count} "
                f"out of {self.viewing_count}"
            )
        return "\n".join(lines) + "\n"


class ScoredCandidate(BaseModel):
    """Parsed (video, score) pair with its position in the model's answer."""

    video_id: int
    score: float
    rank: int = Field(..., ge=1)


class Recommendation(BaseModel):
    """Persisted recommendation row."""

    id: Optional[int] = None
    user_id: int
    video_id: int
    score: float
    algorithm: RecommendationAlgorithm
    rank: int = Field(..., ge=1)
    reasoning: Optional[str] = Field(default=None, max_length=500)
    created_at: datetime = Field(default_factory=utcnow)
    clicked: bool = False
    clicked_at: Optional[datetime] = None


# =============================================================================
# API Models (External)
# =============================================================================


class RecommendationItem(BaseModel):
    """Single entry of a recommendation list response."""

    video_id: int
    rank: int
    score: float
    algorithm: RecommendationAlgorithm
    reasoning: Optional[str] = None


class RecommendationList(BaseModel):
    """Ranked recommendation list returned to callers."""

    user_id: int
    algorithm: Optional[RecommendationAlgorithm] = Field(
        default=None,
        description="Tier that produced the list; None when every tier was empty",
    )
    items: List[RecommendationItem] = Field(default_factory=list)
    from_cache: bool = False
    generated_at: datetime = Field(default_factory=utcnow)

    @classmethod
    def from_recommendations(
        cls,
        user_id: int,
        recommendations: List[Recommendation],
        algorithm: Optional[RecommendationAlgorithm] = None,
        from_cache: bool = False,
    ) -> "RecommendationList":
        return cls(
            user_id=user_id,
            algorithm=algorithm,
            from_cache=from_cache,
            items=[
                RecommendationItem(
                    video_id=rec.video_id,
                    rank=rec.rank,
                    score=rec.score,
                    algorithm=rec.algorithm,
                    reasoning=rec.reasoning,
                )
                for rec in recommendations
            ],
        )


class TrackInteractionRequest(BaseModel):
    """Body of POST /v1/interactions."""

    user_id: int
    video_id: int
    interaction_type: InteractionType
    metadata: Optional[str] = Field(default=None, max_length=500)


class TrackBatchRequest(BaseModel):
    """Body of POST /v1/interactions/batch."""

    events: List[TrackInteractionRequest] = Field(..., min_length=1, max_length=500)


class TrackViewingRequest(BaseModel):
    """Body of POST /v1/viewing."""

    user_id: int
    video_id: int
    watch_duration_seconds: int = Field(..., ge=0)
    completion_rate: float = Field(..., ge=0.0, le=1.0)
    skip_count: Optional[int] = Field(default=None, ge=0)
    replay_count: Optional[int] = Field(default=None, ge=0)


class AcceptedResponse(BaseModel):
    """Acknowledgement for work dispatched to the background pool."""

    accepted: bool = True
    detail: str = ""


class ClickResponse(BaseModel):
    """Result of marking a recommendation as clicked."""

    user_id: int
    video_id: int
    updated: bool


class CleanupResponse(BaseModel):
    """Result of a retention sweep."""

    deleted: int
    cutoff: datetime


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: Dict[str, Any] = Field(..., description="Error details")
