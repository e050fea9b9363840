"""Domain error taxonomy.

Services raise these; routers translate them into HTTP responses. Nothing
below imports FastAPI, so the services stay usable from the worker and
from plain unit tests.
"""

from __future__ import annotations


class QuizServiceError(Exception):
    pass


# --- input validation (422) ---


class InvalidQuizDefinition(QuizServiceError, ValueError):
    pass


class InvalidSelector(QuizServiceError, ValueError):
    """Roster selector names no source of students at all."""


class InvalidSchedule(QuizServiceError, ValueError):
    pass


class InvalidAnswer(QuizServiceError, ValueError):
    pass


# --- lookups (404) ---


class FetchFailure(QuizServiceError):
    """A quiz or assignment lookup failed; the current session cannot go on."""


class AssignmentNotFound(FetchFailure):
    def __init__(self, assignment_id: object) -> None:
        super().__init__(f"assignment {assignment_id} not found")
        self.assignment_id = assignment_id


class SessionNotFound(QuizServiceError):
    pass


# --- authorization (403) ---


class NotQuizOwner(QuizServiceError):
    pass


class NotAssignmentOwner(QuizServiceError):
    pass


class ReviewForbidden(QuizServiceError):
    pass


class NotYetAvailable(QuizServiceError):
    """The assignment's availability window has not opened."""


# --- state conflicts (409) ---


class AlreadyCompleted(QuizServiceError):
    """Second transition attempt on a completed assignment."""

    def __init__(self, assignment_id: object) -> None:
        super().__init__(f"assignment {assignment_id} already completed")
        self.assignment_id = assignment_id


class IncompleteAttempt(QuizServiceError):
    """Manual submission with unanswered questions while time remains."""

    def __init__(self, unanswered: int) -> None:
        super().__init__(f"{unanswered} question(s) still unanswered")
        self.unanswered = unanswered


class NavigationBlocked(QuizServiceError):
    pass


class ReviewNotAvailable(QuizServiceError):
    pass


class SessionClosed(QuizServiceError):
    pass


# --- infrastructure (503) ---


class SubmissionFailed(QuizServiceError):
    """The graded result could not be written; retrying recomputes it."""
