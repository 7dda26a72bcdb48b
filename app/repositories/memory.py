"""
In-memory repository implementations.
Used for prototyping and testing.
Production would replace these with Postgres implementations.
"""
from datetime import datetime, timedelta
from itertools import count
from threading import Lock
from typing import Dict, Iterable, List, Optional

from app.models.schemas import (
    InteractionEvent,
    InteractionType,
    Recommendation,
    User,
    Video,
    ViewingRecord,
    utcnow,
)


class InMemoryUserRepository:
    """In-memory implementation of UserRepository."""

    def __init__(self, users: Optional[Iterable[User]] = None) -> None:
        self._users: Dict[int, User] = {}
        for user in users or []:
            self.add_user(user)

    def add_user(self, user: User) -> None:
        self._users[user.id] = user

    async def get_user(self, user_id: int) -> Optional[User]:
        return self._users.get(user_id)

    async def find_by_preference(self, token: str) -> List[User]:
        needle = token.strip().lower()
        if not needle:
            return []
        return [
            user
            for _, user in sorted(self._users.items())
            if any(p.lower() == needle for p in user.preferences)
        ]


class InMemoryVideoRepository:
    """In-memory implementation of VideoRepository."""

    def __init__(self, videos: Optional[Iterable[Video]] = None) -> None:
        self._videos: Dict[int, Video] = {}
        for video in videos or []:
            self.add_video(video)

    def add_video(self, video: Video) -> None:
        self._videos[video.id] = video

    async def get_video(self, video_id: int) -> Optional[Video]:
        return self._videos.get(video_id)

    async def list_videos(self) -> List[Video]:
        return [video for _, video in sorted(self._videos.items())]

    async def find_by_category(self, category: str) -> List[Video]:
        wanted = category.strip().lower()
        return [
            video
            for _, video in sorted(self._videos.items())
            if video.category.lower() == wanted
        ]


class InMemoryActivityRepository:
    """
    In-memory implementation of ActivityRepository.
    Simulates the append-only interaction and viewing tables.
    """

    def __init__(self) -> None:
        self._interactions: List[InteractionEvent] = []
        self._viewing: List[ViewingRecord] = []
        self._interaction_ids = count(1)
        self._viewing_ids = count(1)
        self._lock = Lock()

    def preload(
        self,
        interactions: Iterable[InteractionEvent] = (),
        viewing: Iterable[ViewingRecord] = (),
    ) -> None:
        """Synchronously load historical rows (seeding and tests)."""
        with self._lock:
            for event in interactions:
                self._interactions.append(
                    event.model_copy(update={"id": next(self._interaction_ids)})
                )
            for record in viewing:
                self._viewing.append(
                    record.model_copy(update={"id": next(self._viewing_ids)})
                )

    async def add_interaction(self, event: InteractionEvent) -> InteractionEvent:
        with self._lock:
            stored = event.model_copy(update={"id": next(self._interaction_ids)})
            self._interactions.append(stored)
        return stored

    async def add_viewing(self, record: ViewingRecord) -> ViewingRecord:
        with self._lock:
            stored = record.model_copy(update={"id": next(self._viewing_ids)})
            self._viewing.append(stored)
        return stored

    async def interactions_since(
        self, user_id: int, since: datetime
    ) -> List[InteractionEvent]:
        with self._lock:
            rows = [
                e for e in self._interactions
                if e.user_id == user_id and e.timestamp > since
            ]
        return sorted(rows, key=lambda e: e.timestamp, reverse=True)

    async def viewing_since(self, user_id: int, since: datetime) -> List[ViewingRecord]:
        with self._lock:
            rows = [
                r for r in self._viewing
                if r.user_id == user_id and r.watched_at > since
            ]
        return sorted(rows, key=lambda r: r.watched_at, reverse=True)


class InMemoryRecommendationRepository:
    """In-memory implementation of RecommendationRepository."""

    def __init__(self) -> None:
        self._rows: Dict[int, Recommendation] = {}
        self._ids = count(1)
        self._lock = Lock()

    async def save_all(self, recommendations: List[Recommendation]) -> List[Recommendation]:
        saved = []
        with self._lock:
            for rec in recommendations:
                stored = rec.model_copy(update={"id": next(self._ids)})
                self._rows[stored.id] = stored
                saved.append(stored)
        return saved

    async def mark_clicked(
        self, user_id: int, video_id: int, clicked_at: datetime
    ) -> bool:
        with self._lock:
            candidates = [
                row for row in self._rows.values()
                if row.user_id == user_id and row.video_id == video_id and not row.clicked
            ]
            if not candidates:
                return False
            latest = max(candidates, key=lambda r: (r.created_at, r.id))
            self._rows[latest.id] = latest.model_copy(
                update={"clicked": True, "clicked_at": clicked_at}
            )
            return True

    async def delete_older_than(self, cutoff: datetime) -> int:
        with self._lock:
            stale = [rid for rid, row in self._rows.items() if row.created_at < cutoff]
            for rid in stale:
                del self._rows[rid]
        return len(stale)

    async def list_for_user(self, user_id: int) -> List[Recommendation]:
        with self._lock:
            rows = [row for row in self._rows.values() if row.user_id == user_id]
        return sorted(rows, key=lambda r: (r.created_at, r.id or 0), reverse=True)


# =============================================================================
# Demo data
# =============================================================================


def seed_demo_data(
    users: InMemoryUserRepository,
    videos: InMemoryVideoRepository,
    activity: InMemoryActivityRepository,
) -> None:
    """Load a small sports catalog with a few users and viewing histories."""
    now = utcnow()
    day = timedelta(days=1)

    catalog = [
        Video(id=101, title="Top 10 NBA Buzzer Beaters", category="NBA",
              duration_seconds=420, view_count=1_500_000, like_count=42_000),
        Video(id=102, title="Finals Game 7 Highlights", category="NBA",
              duration_seconds=600, view_count=980_000, like_count=30_500),
        Video(id=103, title="Rookie Workout Routine", category="NBA",
              duration_seconds=300, view_count=120_000, like_count=4_100),
        Video(id=201, title="Greatest Fourth-Quarter Comebacks", category="NFL",
              duration_seconds=540, view_count=760_000, like_count=21_000),
        Video(id=202, title="Quarterback Mindset Talk", category="NFL",
              duration_seconds=900, view_count=210_000, like_count=9_800),
        Video(id=301, title="Last-Minute Winners", category="Soccer",
              duration_seconds=480, view_count=2_100_000, like_count=77_000),
        Video(id=302, title="Training Like a Pro Midfielder", category="Soccer",
              duration_seconds=360, view_count=340_000, like_count=12_300),
        Video(id=401, title="Grand Slam Match Points", category="Tennis",
              duration_seconds=510, view_count=450_000, like_count=15_600),
    ]
    for video in catalog:
        videos.add_video(video)

    for user in [
        User(id=1, username="hooper", preferences=["NBA", "NFL"], created_at=now - 120 * day),
        User(id=2, username="courtside", preferences=["NBA"], created_at=now - 40 * day),
        User(id=3, username="pitchside", preferences=["Soccer", "Tennis"], created_at=now - 10 * day),
        User(id=4, username="newcomer", preferences=[], created_at=now - 1 * day),
    ]:
        users.add_user(user)

    history = [
        ViewingRecord(user_id=1, video_id=101, watch_duration_seconds=410,
                      completion_rate=0.98, watched_at=now - 2 * day),
        ViewingRecord(user_id=2, video_id=102, watch_duration_seconds=570,
                      completion_rate=0.95, watched_at=now - 3 * day),
        ViewingRecord(user_id=2, video_id=103, watch_duration_seconds=240,
                      completion_rate=0.8, replay_count=1, watched_at=now - 5 * day),
        ViewingRecord(user_id=3, video_id=301, watch_duration_seconds=200,
                      completion_rate=0.42, skip_count=2, watched_at=now - 1 * day),
    ]
    activity.preload(
        interactions=[
            InteractionEvent(
                user_id=record.user_id,
                video_id=record.video_id,
                interaction_type=InteractionType.VIEW,
                timestamp=record.watched_at,
            )
            for record in history
        ],
        viewing=history,
    )
