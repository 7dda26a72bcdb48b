"""
Cache-aside coordination for behavior summaries and recommendation lists.

Two key families, each with its own TTL:
    user:behavior:{user_id}   -> BehaviorSummary JSON
    recommendations:{user_id} -> JSON list of video ids

A failing or unreachable store is never fatal: reads degrade to a miss and
writes/deletes are logged and skipped.
"""
import json
import logging
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from app.core.cache import CacheInterface
from app.core.exceptions import CacheError
from app.core.telemetry import CACHE_LOOKUPS
from app.models.schemas import BehaviorSummary

logger = logging.getLogger(__name__)

BEHAVIOR_FAMILY = "behavior"
RECOMMENDATIONS_FAMILY = "recommendations"


def behavior_key(user_id: int) -> str:
    return f"user:behavior:{user_id}"


def recommendations_key(user_id: int) -> str:
    return f"recommendations:{user_id}"


class CacheCoordinator:
    """
    Cache-aside layer in front of behavior digests and recommendation lists.

    Components never touch the cache store directly; they go through the
    typed accessors and invalidation hooks below.
    """

    def __init__(
        self,
        cache: CacheInterface[str],
        behavior_ttl_sec: float = 3600,
        recommendations_ttl_sec: float = 1800,
    ) -> None:
        self._cache = cache
        self._behavior_ttl = behavior_ttl_sec
        self._recommendations_ttl = recommendations_ttl_sec

    # -------------------------------------------------------------------------
    # Behavior summaries
    # -------------------------------------------------------------------------

    def get_behavior_summary(self, user_id: int) -> Optional[BehaviorSummary]:
        raw = self._safe_get(behavior_key(user_id))
        if raw is None:
            CACHE_LOOKUPS.labels(family=BEHAVIOR_FAMILY, result="miss").inc()
            return None
        try:
            summary = BehaviorSummary.model_validate_json(raw)
        except PydanticValidationError:
            logger.warning(
                "Discarding undecodable behavior summary",
                extra={"user_id": user_id},
            )
            self._safe_delete(behavior_key(user_id))
            CACHE_LOOKUPS.labels(family=BEHAVIOR_FAMILY, result="miss").inc()
            return None
        CACHE_LOOKUPS.labels(family=BEHAVIOR_FAMILY, result="hit").inc()
        return summary

    def set_behavior_summary(self, summary: BehaviorSummary) -> None:
        self._safe_set(
            behavior_key(summary.user_id),
            summary.model_dump_json(),
            self._behavior_ttl,
        )

    # -------------------------------------------------------------------------
    # Recommendation lists
    # -------------------------------------------------------------------------

    def get_recommendation_ids(self, user_id: int) -> Optional[List[int]]:
        """
        Cached id list, or None when absent.

        An empty or malformed payload is treated as absent.
        """
        raw = self._safe_get(recommendations_key(user_id))
        ids: Optional[List[int]] = None
        if raw is not None:
            try:
                decoded = json.loads(raw)
                if isinstance(decoded, list) and decoded:
                    ids = [int(v) for v in decoded]
            except (ValueError, TypeError):
                logger.warning(
                    "Discarding undecodable recommendation list",
                    extra={"user_id": user_id},
                )
                self._safe_delete(recommendations_key(user_id))

        CACHE_LOOKUPS.labels(
            family=RECOMMENDATIONS_FAMILY, result="hit" if ids else "miss"
        ).inc()
        return ids

    def set_recommendation_ids(self, user_id: int, video_ids: List[int]) -> None:
        if not video_ids:
            return
        self._safe_set(
            recommendations_key(user_id),
            json.dumps(list(video_ids)),
            self._recommendations_ttl,
        )

    # -------------------------------------------------------------------------
    # Invalidation hooks
    # -------------------------------------------------------------------------

    def on_interaction_recorded(self, user_id: int) -> None:
        """New interaction event: both the digest and the list are stale."""
        self.invalidate_user(user_id)

    def on_viewing_recorded(self, user_id: int) -> None:
        """New viewing record: both the digest and the list are stale."""
        self.invalidate_user(user_id)

    def on_recommendation_clicked(self, user_id: int) -> None:
        """A click only makes the list stale; the digest stays valid."""
        self._safe_delete(recommendations_key(user_id))

    def invalidate_user(self, user_id: int) -> None:
        self._safe_delete(behavior_key(user_id))
        self._safe_delete(recommendations_key(user_id))

    # -------------------------------------------------------------------------
    # Fail-soft store access
    # -------------------------------------------------------------------------

    def _safe_get(self, key: str) -> Optional[str]:
        try:
            return self._cache.get(key)
        except CacheError as e:
            logger.warning(f"Cache read failed, treating as miss: key={key}, error={e}")
            return None

    def _safe_set(self, key: str, value: str, ttl: float) -> None:
        try:
            self._cache.set(key, value, ttl_seconds=ttl)
        except CacheError as e:
            logger.warning(f"Cache write skipped: key={key}, error={e}")

    def _safe_delete(self, key: str) -> None:
        try:
            self._cache.delete(key)
        except CacheError as e:
            logger.warning(f"Cache delete failed: key={key}, error={e}")
