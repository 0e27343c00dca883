from fastapi import APIRouter

from codecoach.api.v1.endpoints.analytics import router as analytics_router
from codecoach.api.v1.endpoints.quiz import router as quiz_router
from codecoach.api.v1.endpoints.sessions import router as sessions_router


router = APIRouter()
router.include_router(quiz_router)
router.include_router(sessions_router)
router.include_router(analytics_router)
