"""
Tracking endpoints called from served artifacts (unauthenticated).
"""
from typing import Any, Dict

from fastapi import APIRouter, Request

from content_platform.services.tracking_service import TrackingService
from ..schemas import RecordScoreRequest, TrackInteractionRequest, TrackViewRequest

router = APIRouter(prefix="/api", tags=["tracking"])


def get_tracking_service(request: Request) -> TrackingService:
    return TrackingService(scoring=request.app.state.config.scoring)


@router.post("/track-view")
async def track_view(body: TrackViewRequest, request: Request) -> Dict[str, Any]:
    return get_tracking_service(request).track_view(body.tracking_link_id, body.content_id)


@router.post("/track-interaction")
async def track_interaction(body: TrackInteractionRequest, request: Request) -> Dict[str, Any]:
    return get_tracking_service(request).track_interaction(
        body.tracking_link_id,
        body.tag_name,
        body.interaction_type,
        body.interaction_value,
        body.success,
    )


@router.post("/record-score")
async def record_score(body: RecordScoreRequest, request: Request) -> Dict[str, Any]:
    return get_tracking_service(request).record_score(body.tracking_link_id, body.score, body.content_id)
