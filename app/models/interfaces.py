"""
Repository interfaces (abstractions).
Using Protocol for structural subtyping (duck typing with type hints).
These define the contracts that data access implementations must follow.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Protocol, runtime_checkable

from app.models.schemas import (
    InteractionEvent,
    Recommendation,
    User,
    Video,
    ViewingRecord,
)


@runtime_checkable
class UserRepository(Protocol):
    """
    Interface for user lookups.
    Production: relational store owned by the accounts service.
    Testing: In-memory implementation.
    """

    async def get_user(self, user_id: int) -> Optional[User]:
        """
        Fetch a user by id.

        Returns:
            User if found, None otherwise
        """
        ...

    async def find_by_preference(self, token: str) -> List[User]:
        """
        Find users whose preference tokens include `token` (case-insensitive).

        Returns:
            Matching users ordered by id
        """
        ...


@runtime_checkable
class VideoRepository(Protocol):
    """
    Interface for catalog access.
    Production: relational store fed by catalog ingestion.
    Testing: In-memory implementation.
    """

    async def get_video(self, video_id: int) -> Optional[Video]:
        """Fetch a video by id."""
        ...

    async def list_videos(self) -> List[Video]:
        """Return the whole catalog in catalog (id) order."""
        ...

    async def find_by_category(self, category: str) -> List[Video]:
        """Return every video of `category` (case-insensitive)."""
        ...


@runtime_checkable
class ActivityRepository(Protocol):
    """
    Interface for behavior data (interaction events and viewing records).
    Both collections are append-only.
    """

    async def add_interaction(self, event: InteractionEvent) -> InteractionEvent:
        """Append an interaction event and return it with its id assigned."""
        ...

    async def add_viewing(self, record: ViewingRecord) -> ViewingRecord:
        """Append a viewing record and return it with its id assigned."""
        ...

    async def interactions_since(
        self, user_id: int, since: datetime
    ) -> List[InteractionEvent]:
        """Interactions of `user_id` after `since`, newest first."""
        ...

    async def viewing_since(self, user_id: int, since: datetime) -> List[ViewingRecord]:
        """Viewing records of `user_id` after `since`, newest first."""
        ...


@runtime_checkable
class RecommendationRepository(Protocol):
    """
    Interface for persisted recommendation rows.
    Each operation must be atomic per row.
    """

    async def save_all(self, recommendations: List[Recommendation]) -> List[Recommendation]:
        """Insert rows and return them with ids assigned."""
        ...

    async def mark_clicked(
        self, user_id: int, video_id: int, clicked_at: datetime
    ) -> bool:
        """
        Mark the most recent non-clicked row for (user, video) as clicked.

        Returns:
            True if a row changed, False if none matched
        """
        ...

    async def delete_older_than(self, cutoff: datetime) -> int:
        """Delete rows created before `cutoff`; return the number removed."""
        ...

    async def list_for_user(self, user_id: int) -> List[Recommendation]:
        """All rows for a user, newest first."""
        ...


class FeatureFlagService(ABC):
    """
    Abstract base class for feature flag evaluation.
    Supports kill switch and gradual rollout of the inference tier.
    """

    @abstractmethod
    def is_inference_enabled(self, user_id: int) -> bool:
        """
        Check if the inference tier may run for this user.

        Args:
            user_id: User identifier for percentage rollout

        Returns:
            True if the inference tier should be attempted
        """
        pass

    @abstractmethod
    def is_kill_switch_active(self) -> bool:
        """
        Check if the global inference kill switch is activated.

        Returns:
            True if inference must be skipped for everyone
        """
        pass
