from typing import Any

from pydantic import BaseModel

from codecoach.utils.generation import GenerationRequest


class QuizResponse(BaseModel):
    ok: bool = True
    quiz: dict[str, Any]


__all__ = ["GenerationRequest", "QuizResponse"]
