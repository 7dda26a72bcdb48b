"""
Tracking API router.
Records interactions and viewing history; writes happen on the worker pool
so every endpoint answers 202 once the job is queued.
"""
from fastapi import APIRouter, Depends, status

from app.api.dependencies import get_interaction_tracker
from app.models.schemas import (
    AcceptedResponse,
    ErrorResponse,
    TrackBatchRequest,
    TrackInteractionRequest,
    TrackViewingRequest,
)
from app.services.interactions import InteractionTracker

router = APIRouter(prefix="/v1", tags=["tracking"])

_TRACKING_RESPONSES = {
    202: {"description": "Event queued"},
    404: {"model": ErrorResponse, "description": "User or video not found"},
    503: {"model": ErrorResponse, "description": "Worker pool saturated"},
}


@router.post(
    "/interactions",
    response_model=AcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Track Interaction",
    responses=_TRACKING_RESPONSES,
)
async def track_interaction(
    body: TrackInteractionRequest,
    tracker: InteractionTracker = Depends(get_interaction_tracker),
) -> AcceptedResponse:
    await tracker.track_interaction(
        body.user_id, body.video_id, body.interaction_type, body.metadata
    )
    return AcceptedResponse(detail="interaction queued")


@router.post(
    "/interactions/batch",
    response_model=AcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Track Interaction Batch",
    responses=_TRACKING_RESPONSES,
)
async def track_batch(
    body: TrackBatchRequest,
    tracker: InteractionTracker = Depends(get_interaction_tracker),
) -> AcceptedResponse:
    await tracker.track_batch(body.events)
    return AcceptedResponse(detail=f"{len(body.events)} interactions queued")


@router.post(
    "/viewing",
    response_model=AcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Track Viewing",
    responses=_TRACKING_RESPONSES,
)
async def track_viewing(
    body: TrackViewingRequest,
    tracker: InteractionTracker = Depends(get_interaction_tracker),
) -> AcceptedResponse:
    await tracker.track_viewing(
        body.user_id,
        body.video_id,
        body.watch_duration_seconds,
        body.completion_rate,
        skip_count=body.skip_count,
        replay_count=body.replay_count,
    )
    return AcceptedResponse(detail="viewing queued")
