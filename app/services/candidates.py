"""
Candidate selector: catalog minus the user's recent watches.
"""
import logging
from datetime import timedelta
from typing import List

from app.models.interfaces import ActivityRepository, VideoRepository
from app.models.schemas import Video, utcnow

logger = logging.getLogger(__name__)


class CandidateSelector:
    """Computes the prompt-eligible candidate set for a user."""

    def __init__(
        self,
        activity_repo: ActivityRepository,
        video_repo: VideoRepository,
        exclusion_days: int = 7,
        max_candidates: int = 50,
    ) -> None:
        self._activity_repo = activity_repo
        self._video_repo = video_repo
        self._exclusion_days = exclusion_days
        self._max_candidates = max_candidates

    async def select(self, user_id: int) -> List[Video]:
        """
        Catalog items not viewed by the user within the exclusion window,
        in catalog order, capped at the prompt budget.
        """
        since = utcnow() - timedelta(days=self._exclusion_days)
        recent = await self._activity_repo.viewing_since(user_id, since)
        watched = {record.video_id for record in recent}

        candidates: List[Video] = []
        for video in await self._video_repo.list_videos():
            if video.id in watched:
                continue
            candidates.append(video)
            if len(candidates) >= self._max_candidates:
                break

        logger.debug(
            f"Candidate set: excluded={len(watched)}, selected={len(candidates)}",
            extra={"user_id": user_id},
        )
        return candidates
