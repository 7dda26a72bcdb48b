"""
Recommendations API router.
Serves per-user lists, forced refresh, click tracking, anonymous trending
and the retention cleanup.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, Response

from app.api.dependencies import (
    get_recommendation_orchestrator,
    get_retention_sweeper,
)
from app.models.schemas import (
    ClickResponse,
    CleanupResponse,
    ErrorResponse,
    RecommendationList,
)
from app.services.recommendation import RecommendationOrchestrator
from app.services.retention import RetentionSweeper

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["recommendations"])


def _apply_list_headers(response: Response, result: RecommendationList) -> None:
    response.headers["Cache-Control"] = "private, max-age=30"
    response.headers["X-Cache"] = "HIT" if result.from_cache else "MISS"
    response.headers["X-Recommendation-Algorithm"] = (
        result.algorithm.value if result.algorithm else "none"
    )


@router.get(
    "/users/{user_id}/recommendations",
    response_model=RecommendationList,
    summary="Get Recommendations",
    description="""
    Ranked video recommendations for a user.

    Served from cache when a fresh list exists; otherwise generated by the
    first tier that produces results:
    - inference (language-model ranking of candidate videos)
    - collaborative (videos completed by users with similar preferences)
    - trending (most viewed videos of the preferred category)
    """,
    responses={
        200: {"description": "Ranked list (possibly empty)"},
        404: {"model": ErrorResponse, "description": "User not found"},
    },
)
async def get_recommendations(
    response: Response,
    user_id: int = Path(..., ge=1, description="User identifier"),
    orchestrator: RecommendationOrchestrator = Depends(get_recommendation_orchestrator),
) -> RecommendationList:
    result = await orchestrator.get_recommendations(user_id)
    _apply_list_headers(response, result)
    return result


@router.post(
    "/users/{user_id}/recommendations/refresh",
    response_model=RecommendationList,
    summary="Refresh Recommendations",
    description="Drop the user's cached digest and list, then regenerate.",
)
async def refresh_recommendations(
    response: Response,
    user_id: int = Path(..., ge=1),
    orchestrator: RecommendationOrchestrator = Depends(get_recommendation_orchestrator),
) -> RecommendationList:
    result = await orchestrator.refresh_recommendations(user_id)
    _apply_list_headers(response, result)
    return result


@router.post(
    "/users/{user_id}/recommendations/{video_id}/click",
    response_model=ClickResponse,
    summary="Mark Recommendation Clicked",
    description="Idempotent: a repeated click reports updated=false.",
)
async def mark_clicked(
    user_id: int = Path(..., ge=1),
    video_id: int = Path(..., ge=1),
    orchestrator: RecommendationOrchestrator = Depends(get_recommendation_orchestrator),
) -> ClickResponse:
    updated = await orchestrator.mark_clicked(user_id, video_id)
    return ClickResponse(user_id=user_id, video_id=video_id, updated=updated)


@router.get(
    "/recommendations/trending",
    response_model=RecommendationList,
    summary="Trending Videos",
    description="Most viewed videos of a category for anonymous callers.",
)
async def get_trending(
    response: Response,
    category: Optional[str] = Query(
        default=None,
        min_length=1,
        description="Category name; defaults to the configured default category",
    ),
    limit: Optional[int] = Query(default=None, ge=1, le=50),
    orchestrator: RecommendationOrchestrator = Depends(get_recommendation_orchestrator),
) -> RecommendationList:
    result = await orchestrator.trending_for_anonymous(category=category, limit=limit)
    response.headers["Cache-Control"] = "public, max-age=30, stale-while-revalidate=15"
    return result


@router.post(
    "/admin/recommendations/cleanup",
    response_model=CleanupResponse,
    summary="Delete Old Recommendations",
)
async def cleanup_recommendations(
    days: Optional[int] = Query(
        default=None,
        ge=0,
        description="Retention in days; defaults to RECOMMENDATION_RETENTION_DAYS",
    ),
    sweeper: RetentionSweeper = Depends(get_retention_sweeper),
) -> CleanupResponse:
    deleted, cutoff = await sweeper.sweep(days)
    return CleanupResponse(deleted=deleted, cutoff=cutoff)
