"""Error taxonomy shared by the engagement services.

Signed URL and routing failures never show up here: those components absorb
their own errors and degrade to a usable value.
"""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ReviewMapError(Exception):
    """Base class for recoverable, user-actionable failures."""


class BackendError(ReviewMapError):
    """A Supabase read or write was rejected or could not be sent."""


class RemoteReadError(ReviewMapError):
    """Loading data for a view failed; the previous state is kept."""


class RemoteWriteError(ReviewMapError):
    """A vote or comment mutation failed; the caller keeps its prior snapshot."""


class UnauthenticatedActionError(ReviewMapError):
    def __init__(self, action: str = "do that") -> None:
        super().__init__(f"You must sign in to {action}.")
        self.action = action


class MutationInFlightError(ReviewMapError):
    def __init__(self, review_id: str) -> None:
        super().__init__(f"Another change to review {review_id} is still being saved.")
        self.review_id = review_id


class ReviewNotFoundError(ReviewMapError):
    def __init__(self, review_id: str) -> None:
        super().__init__(f"Review {review_id} not found.")
        self.review_id = review_id


class EmptyCommentError(ReviewMapError):
    def __init__(self) -> None:
        super().__init__("Comment must not be empty.")


_STATUS_BY_ERROR: list[tuple[type[ReviewMapError], int]] = [
    (UnauthenticatedActionError, 401),
    (ReviewNotFoundError, 404),
    (MutationInFlightError, 409),
    (EmptyCommentError, 422),
    (RemoteReadError, 502),
    (RemoteWriteError, 502),
    (BackendError, 502),
]


def status_for(err: ReviewMapError) -> int:
    for cls, code in _STATUS_BY_ERROR:
        if isinstance(err, cls):
            return code
    return 400


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ReviewMapError)
    async def review_map_error(request: Request, err: ReviewMapError) -> JSONResponse:
        code = status_for(err)
        if code >= 500:
            logger.warning("%s %s failed: %s", request.method, request.url.path, err)
        return JSONResponse(status_code=code, content={"detail": str(err), "error": type(err).__name__})
