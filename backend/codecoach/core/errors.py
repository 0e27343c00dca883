"""
Error taxonomy shared by the quiz pipeline and the HTTP layer.

Every error that crosses the service boundary is a ``QuizError`` and renders
as ``{"ok": false, "code", "message", "detail"}``.
"""
from typing import Any


class QuizError(Exception):
    code = "SERVER_ERROR"
    status_code = 500

    def __init__(self, message: str, detail: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_payload(self) -> dict[str, Any]:
        return {
            "ok": False,
            "code": self.code,
            "message": self.message,
            "detail": self.detail,
        }


class BadRequestError(QuizError):
    code = "BAD_REQUEST"
    status_code = 400


class InvalidAIOutputError(QuizError):
    code = "INVALID_AI_OUTPUT"
    status_code = 502


class UpstreamTimeoutError(QuizError):
    code = "UPSTREAM_TIMEOUT"
    status_code = 504


class UpstreamFailureError(QuizError):
    code = "UPSTREAM_FAILURE"
    status_code = 502

    def __init__(self, message: str, status: int | None = None, body: str | None = None) -> None:
        super().__init__(message, detail={"status": status, "body": body})
        self.status = status
        self.body = body


class QuizValidationError(QuizError):
    code = "VALIDATION_ERROR"
    status_code = 400


class SessionStateError(QuizError):
    code = "INVALID_STATE"
    status_code = 409


class NotFoundError(QuizError):
    code = "NOT_FOUND"
    status_code = 404


class UnauthorizedError(QuizError):
    code = "UNAUTHORIZED"
    status_code = 401


class AttemptRecordError(QuizError):
    code = "SERVER_ERROR"
    status_code = 500


# Internal pipeline signals. Callers decide how to surface them.

class NoJSONFoundError(ValueError):
    """No JSON value could be recovered from a model response."""


class EmptyQuizError(ValueError):
    """Normalization produced zero usable questions."""
