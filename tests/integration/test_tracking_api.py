"""
Integration tests for the tracking endpoints.
"""
import asyncio
from datetime import timedelta
from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from app.api.dependencies import (
    clear_caches,
    get_activity_repository,
    get_cache_coordinator,
    get_interaction_tracker,
    get_user_repository,
    get_video_repository,
)
from app.core.exceptions import WorkerPoolSaturatedError
from app.core.worker_pool import BoundedWorkerPool
from app.main import app
from app.models.schemas import InteractionType, utcnow
from app.services.interactions import InteractionTracker


class TestTrackingAPI:
    def test_interaction_accepted(self, test_client: TestClient):
        response = test_client.post(
            "/v1/interactions",
            json={"user_id": 1, "video_id": 102, "interaction_type": "LIKE"},
        )

        assert response.status_code == 202
        assert response.json()["accepted"] is True

    def test_unknown_video(self, test_client: TestClient):
        response = test_client.post(
            "/v1/interactions",
            json={"user_id": 1, "video_id": 9999, "interaction_type": "VIEW"},
        )

        assert response.status_code == 404
        assert response.json()["error"]["details"]["resource"] == "Video"

    def test_invalid_interaction_type(self, test_client: TestClient):
        response = test_client.post(
            "/v1/interactions",
            json={"user_id": 1, "video_id": 102, "interaction_type": "BOOKMARK"},
        )

        assert response.status_code == 422

    def test_viewing_validation(self, test_client: TestClient):
        response = test_client.post(
            "/v1/viewing",
            json={"user_id": 1, "video_id": 102, "watch_duration_seconds": 30,
                  "completion_rate": 1.5},
        )

        assert response.status_code == 422

    def test_viewing_accepted(self, test_client: TestClient):
        response = test_client.post(
            "/v1/viewing",
            json={"user_id": 1, "video_id": 102, "watch_duration_seconds": 300,
                  "completion_rate": 0.5, "skip_count": 1},
        )

        assert response.status_code == 202

    def test_empty_batch_rejected(self, test_client: TestClient):
        response = test_client.post("/v1/interactions/batch", json={"events": []})

        assert response.status_code == 422

    def test_batch_accepted(self, test_client: TestClient):
        response = test_client.post(
            "/v1/interactions/batch",
            json={"events": [
                {"user_id": 1, "video_id": 102, "interaction_type": "CLICK"},
                {"user_id": 2, "video_id": 201, "interaction_type": "SHARE"},
            ]},
        )

        assert response.status_code == 202
        assert response.json()["detail"] == "2 interactions queued"

    def test_saturated_pool_returns_503(self, test_client: TestClient):
        pool = MagicMock(spec=BoundedWorkerPool)
        pool.submit.side_effect = WorkerPoolSaturatedError("recommendations", 100)
        tracker = InteractionTracker(
            user_repo=get_user_repository(),
            video_repo=get_video_repository(),
            activity_repo=get_activity_repository(),
            cache=get_cache_coordinator(),
            worker_pool=pool,
        )
        app.dependency_overrides[get_interaction_tracker] = lambda: tracker

        response = test_client.post(
            "/v1/interactions",
            json={"user_id": 1, "video_id": 102, "interaction_type": "VIEW"},
        )

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "SERVICE_UNAVAILABLE"


def test_interaction_invalidates_cached_recommendations():
    """Tracking writes land once the pool drains and drop the cached list."""
    clear_caches()
    try:
        with TestClient(app) as client:
            client.get("/v1/users/1/recommendations")
            assert client.get("/v1/users/1/recommendations").json()["from_cache"] is True

            response = client.post(
                "/v1/interactions",
                json={"user_id": 1, "video_id": 102, "interaction_type": "LIKE"},
            )
            assert response.status_code == 202

        # Lifespan shutdown drained the worker pool
        assert get_cache_coordinator().get_recommendation_ids(1) is None
        events = asyncio.run(
            get_activity_repository().interactions_since(1, utcnow() - timedelta(hours=1))
        )
        assert [e.interaction_type for e in events] == [InteractionType.LIKE]
    finally:
        clear_caches()
