"""
Service-level exceptions.

Each class is one kind of failure a request can end in.  Route handlers
let them propagate; the handler registered in ``app.main`` turns them
into ``{"detail": ..., "error": ...}`` JSON with the matching status code.
"""

from __future__ import annotations

from typing import Any

from fastapi import status


class SurveyServiceError(Exception):
    """Base class for all expected, user-facing failures."""

    kind: str = "internal"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, *, headers: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.headers = headers

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message, "error": self.kind}


class Unauthorized(SurveyServiceError):
    """Access policy denial (site admin, test account, blocked user)."""

    kind = "unauthorized"
    status_code = status.HTTP_403_FORBIDDEN


class RateLimited(SurveyServiceError):
    kind = "rate_limited"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS


class InvalidCode(SurveyServiceError):
    """A submitted one-time code was rejected.

    ``reason`` is the :class:`app.services.otp.OtpError` that caused it.
    """

    kind = "invalid_code"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, reason) -> None:
        super().__init__(reason.message)
        self.reason = reason

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "reason": self.reason.value}


class NotFound(SurveyServiceError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ValidationFailed(SurveyServiceError):
    kind = "validation_failed"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, *, details: list[dict[str, str]] | None = None) -> None:
        super().__init__(message)
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.details:
            data["details"] = self.details
        return data


class Conflict(SurveyServiceError):
    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT


class Internal(SurveyServiceError):
    kind = "internal"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
