"""Map domain errors onto HTTP responses.

Routers catch QuizServiceError and raise ``http_error(e) from None``;
anything not listed here surfaces as a 500.
"""

from __future__ import annotations

from fastapi import HTTPException, status

from quiz_service.core.errors import (
    AlreadyCompleted,
    FetchFailure,
    IncompleteAttempt,
    InvalidAnswer,
    InvalidQuizDefinition,
    InvalidSchedule,
    InvalidSelector,
    NavigationBlocked,
    NotAssignmentOwner,
    NotQuizOwner,
    NotYetAvailable,
    QuizServiceError,
    ReviewForbidden,
    ReviewNotAvailable,
    SessionClosed,
    SessionNotFound,
    SubmissionFailed,
)

_STATUS_BY_ERROR: tuple[tuple[type[QuizServiceError], int], ...] = (
    (InvalidSelector, status.HTTP_422_UNPROCESSABLE_CONTENT),
    (InvalidSchedule, status.HTTP_422_UNPROCESSABLE_CONTENT),
    (InvalidQuizDefinition, status.HTTP_422_UNPROCESSABLE_CONTENT),
    (InvalidAnswer, status.HTTP_422_UNPROCESSABLE_CONTENT),
    (IncompleteAttempt, status.HTTP_409_CONFLICT),
    (NavigationBlocked, status.HTTP_409_CONFLICT),
    (AlreadyCompleted, status.HTTP_409_CONFLICT),
    (ReviewNotAvailable, status.HTTP_409_CONFLICT),
    (SessionClosed, status.HTTP_409_CONFLICT),
    (FetchFailure, status.HTTP_404_NOT_FOUND),
    (SessionNotFound, status.HTTP_404_NOT_FOUND),
    (NotQuizOwner, status.HTTP_403_FORBIDDEN),
    (NotAssignmentOwner, status.HTTP_403_FORBIDDEN),
    (ReviewForbidden, status.HTTP_403_FORBIDDEN),
    (NotYetAvailable, status.HTTP_403_FORBIDDEN),
    (SubmissionFailed, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def http_error(exc: QuizServiceError) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="internal error"
    )
