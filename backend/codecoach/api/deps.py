from functools import lru_cache

from fastapi import Depends, Header

from codecoach.core.config import settings
from codecoach.core.database import AsyncSessionLocal
from codecoach.core.errors import UnauthorizedError
from codecoach.core.groq import ModelClient, ModelConfig
from codecoach.core.store import AnalyticsStore
from codecoach.utils.generation import QuizGenerator


async def get_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Caller identity, set by the upstream gateway after authentication."""
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise UnauthorizedError("Missing X-User-Id header")
    return user_id


async def get_optional_user_id(x_user_id: str | None = Header(default=None)) -> str | None:
    return (x_user_id or "").strip() or None


@lru_cache
def get_model_client() -> ModelClient:
    return ModelClient(ModelConfig.from_settings(settings))


def get_quiz_generator(client: ModelClient = Depends(get_model_client)) -> QuizGenerator:
    return QuizGenerator(client)


@lru_cache
def get_analytics_store() -> AnalyticsStore:
    return AnalyticsStore(AsyncSessionLocal)
