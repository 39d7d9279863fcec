"""
Structured errors for the job search endpoints.

Every fatal failure carries a stable machine-readable ``code`` next to a
human-readable message, so clients can tell a quota problem (show an upgrade
prompt) apart from a configuration or upstream problem.
"""
from __future__ import annotations

from fastapi import Request, status
from fastapi.responses import JSONResponse


class JobSearchError(Exception):
    code = "internal"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": {"code": self.code, "message": self.message}}


class PreconditionError(JobSearchError):
    """Missing server-side configuration (API keys)."""
    code = "failed-precondition"


class UnauthenticatedError(JobSearchError):
    code = "unauthenticated"
    status_code = status.HTTP_401_UNAUTHORIZED


class InvalidArgumentError(JobSearchError):
    code = "invalid-argument"
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(JobSearchError):
    code = "not-found"
    status_code = status.HTTP_404_NOT_FOUND


class QuotaExceededError(JobSearchError):
    code = "resource-exhausted"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS


class InternalError(JobSearchError):
    pass


class UpstreamError(InternalError):
    """The web search or completion service failed for this request."""


async def job_search_error_handler(request: Request, exc: JobSearchError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
