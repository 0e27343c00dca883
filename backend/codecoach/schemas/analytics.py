from typing import Any

from pydantic import BaseModel


class ProctorEventRequest(BaseModel):
    type: str | None = None
    detail: str | None = ""


class RecordedAttemptResponse(BaseModel):
    ok: bool = True
    attempt: dict[str, Any]


class DashboardResponse(BaseModel):
    ok: bool = True
    analytics: dict[str, Any]
