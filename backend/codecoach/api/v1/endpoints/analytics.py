import logging

from fastapi import APIRouter, Depends

from codecoach.api.deps import get_analytics_store, get_user_id
from codecoach.core.errors import BadRequestError
from codecoach.core.store import AnalyticsStore
from codecoach.schemas.analytics import DashboardResponse, ProctorEventRequest, RecordedAttemptResponse


router = APIRouter(tags=["analytics"])
logger = logging.getLogger(__name__)


@router.post("/analytics/attempt", response_model=RecordedAttemptResponse)
async def record_attempt(
    payload: dict,
    user_id: str = Depends(get_user_id),
    store: AnalyticsStore = Depends(get_analytics_store),
) -> RecordedAttemptResponse:
    attempt = await store.record_attempt(user_id, payload)
    return RecordedAttemptResponse(attempt=attempt)


@router.get("/analytics/dashboard", response_model=DashboardResponse)
async def dashboard(
    user_id: str = Depends(get_user_id),
    store: AnalyticsStore = Depends(get_analytics_store),
) -> DashboardResponse:
    return DashboardResponse(analytics=await store.summary(user_id))


@router.post("/proctor/event")
async def log_proctor_event(
    payload: ProctorEventRequest,
    user_id: str = Depends(get_user_id),
    store: AnalyticsStore = Depends(get_analytics_store),
) -> dict:
    if not payload.type:
        raise BadRequestError("type is required")
    await store.record_proctor_event(user_id, payload.type, payload.detail or "")
    logger.info("Proctor event logged", extra={"user_id": user_id, "event_type": payload.type})
    return {"ok": True}
