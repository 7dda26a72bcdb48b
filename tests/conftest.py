"""
Pytest configuration and fixtures.
"""
import os

# Deterministic inference and no background sweep for every test run
os.environ.setdefault("INFERENCE_PROVIDER", "stub")
os.environ.setdefault("RETENTION_SWEEP_INTERVAL_SEC", "0")

from datetime import timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.api.dependencies import clear_caches  # noqa: E402
from app.core.cache import InMemoryCache  # noqa: E402
from app.main import app  # noqa: E402
from app.models.schemas import User, Video, ViewingRecord, utcnow  # noqa: E402
from app.repositories.memory import (  # noqa: E402
    InMemoryActivityRepository,
    InMemoryRecommendationRepository,
    InMemoryUserRepository,
    InMemoryVideoRepository,
)
from app.services.cache_coordinator import CacheCoordinator  # noqa: E402


def _viewing(user_id, video_id, completion_rate=0.9, days_ago=1, duration=300):
    return ViewingRecord(
        user_id=user_id,
        video_id=video_id,
        watch_duration_seconds=duration,
        completion_rate=completion_rate,
        watched_at=utcnow() - timedelta(days=days_ago),
    )


@pytest.fixture
def make_viewing():
    """Viewing record factory for arranging behavior history."""
    return _viewing


@pytest.fixture
def video_repo():
    """Small catalog: two NBA videos (A popular, B less), one NFL, one Soccer."""
    return InMemoryVideoRepository([
        Video(id=1, title="Alpha", category="NBA", duration_seconds=300, view_count=100),
        Video(id=2, title="Bravo", category="NBA", duration_seconds=200, view_count=50),
        Video(id=3, title="Charlie", category="NFL", duration_seconds=600, view_count=500),
        Video(id=4, title="Delta", category="Soccer", duration_seconds=120, view_count=10),
    ])


@pytest.fixture
def user_repo():
    return InMemoryUserRepository([
        User(id=10, username="subject", preferences=["NBA"]),
        User(id=11, username="peer_one", preferences=["nba", "NFL"]),
        User(id=12, username="peer_two", preferences="NBA,Soccer"),
        User(id=13, username="blank", preferences=[]),
    ])


@pytest.fixture
def activity_repo():
    return InMemoryActivityRepository()


@pytest.fixture
def recommendation_repo():
    return InMemoryRecommendationRepository()


@pytest.fixture
def cache_store():
    return InMemoryCache()


@pytest.fixture
def coordinator(cache_store):
    return CacheCoordinator(cache_store, behavior_ttl_sec=3600, recommendations_ttl_sec=1800)


@pytest.fixture
def test_client():
    """
    TestClient over the real app wired with fresh singletons.
    The lifespan starts and drains the worker pool around each test.
    """
    clear_caches()
    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
    clear_caches()
