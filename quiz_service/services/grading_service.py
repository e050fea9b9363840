"""Submission path: grade an attempt and apply the completed transition.

Both the in-process attempt session and the direct submission endpoint
come through here, so ownership, availability and the single-transition
guard are enforced in one place regardless of who runs the countdown.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import NoReturn
from uuid import UUID

from quiz_service.core.clock import Clock
from quiz_service.core.errors import (
    AlreadyCompleted,
    AssignmentNotFound,
    FetchFailure,
    NotAssignmentOwner,
    NotYetAvailable,
    QuizServiceError,
    SubmissionFailed,
)
from quiz_service.core.metrics import QUIZ_SUBMISSIONS, SCORE_RATIO
from quiz_service.models.assignment import Assignment, SubmittedAnswer
from quiz_service.repos.stores import StoresFactory
from quiz_service.services import scoring
from quiz_service.services.notifications import (
    OUTCOME_ALREADY_COMPLETED,
    OUTCOME_FAILED,
    OUTCOME_GRADED,
    Notifier,
    SubmissionEvent,
)

logger = logging.getLogger(__name__)

TRIGGER_MANUAL = "manual"
TRIGGER_AUTO = "auto"


class GradingService:
    def __init__(
        self, *, open_stores: StoresFactory, clock: Clock, notifier: Notifier
    ) -> None:
        self._open_stores = open_stores
        self._clock = clock
        self._notifier = notifier

    async def submit(
        self,
        assignment_id: UUID,
        *,
        student_id: str,
        answers: Iterable[SubmittedAnswer],
        trigger: str = TRIGGER_MANUAL,
    ) -> Assignment:
        """Grade ``answers`` and complete the assignment.

        Returns the completed Assignment. Raises AlreadyCompleted when the
        assignment was completed earlier (or by a racing submission),
        InvalidAnswer when an answer selects a missing option, and
        SubmissionFailed when the store rejects the write or its commit.
        """
        answers = tuple(answers)
        log_extra = {
            "assignment_id": str(assignment_id),
            "user_id": student_id,
            "trigger": trigger,
        }

        try:
            async with self._open_stores() as stores:
                assignment = await stores.assignments.get(assignment_id)
                if assignment is None:
                    raise AssignmentNotFound(assignment_id)
                if assignment.student_id != student_id:
                    logger.warning(
                        "Submission rejected: user=%s does not own assignment=%s",
                        student_id,
                        assignment_id,
                        extra=log_extra,
                    )
                    raise NotAssignmentOwner(
                        f"assignment {assignment_id} belongs to another student"
                    )
                if assignment.is_completed:
                    await self._already_completed(assignment_id, student_id, trigger)

                now = self._clock.now()
                if not assignment.is_available_at(now):
                    raise NotYetAvailable(
                        f"assignment {assignment_id} opens at {assignment.available_from.isoformat()}"  # type: ignore[union-attr]
                    )

                quiz = await stores.quizzes.get(assignment.quiz_id)
                if quiz is None:
                    logger.error(
                        "Quiz %s missing for assignment %s",
                        assignment.quiz_id,
                        assignment_id,
                        extra=log_extra,
                    )
                    raise FetchFailure(f"quiz {assignment.quiz_id} not found")

                result = scoring.grade(
                    quiz, answers, due_by=assignment.due_by, completed_at=now
                )

                try:
                    completed = await stores.assignments.transition_to_completed(
                        assignment_id,
                        score=result.score,
                        total_questions=result.total_questions,
                        submitted_answers=result.submitted_answers,
                        submitted_late=result.submitted_late,
                        completed_at=result.completed_at,
                    )
                except AlreadyCompleted:
                    await self._already_completed(assignment_id, student_id, trigger)
        except QuizServiceError:
            raise
        except Exception as e:
            # Covers the commit on scope exit as well as the write itself
            logger.exception("Failed to record grade", extra=log_extra)
            QUIZ_SUBMISSIONS.labels(trigger=trigger, outcome=OUTCOME_FAILED).inc()
            await self._notifier.publish(
                SubmissionEvent(
                    assignment_id=str(assignment_id),
                    student_id=student_id,
                    trigger=trigger,
                    outcome=OUTCOME_FAILED,
                    detail=str(e),
                )
            )
            raise SubmissionFailed("could not record the graded submission") from e

        QUIZ_SUBMISSIONS.labels(trigger=trigger, outcome=OUTCOME_GRADED).inc()
        if result.total_questions:
            SCORE_RATIO.observe(result.score / result.total_questions)
        logger.info(
            "Graded assignment=%s score=%d/%d late=%s",
            assignment_id,
            result.score,
            result.total_questions,
            result.submitted_late,
            extra=log_extra,
        )
        await self._notifier.publish(
            SubmissionEvent(
                assignment_id=str(assignment_id),
                student_id=student_id,
                trigger=trigger,
                outcome=OUTCOME_GRADED,
                score=result.score,
                total_questions=result.total_questions,
                submitted_late=result.submitted_late,
            )
        )
        return completed

    async def _already_completed(
        self, assignment_id: UUID, student_id: str, trigger: str
    ) -> NoReturn:
        # Losing a submission race is benign: log it and tell the caller
        logger.info(
            "Assignment %s already completed; ignoring %s submission",
            assignment_id,
            trigger,
            extra={"assignment_id": str(assignment_id), "trigger": trigger},
        )
        QUIZ_SUBMISSIONS.labels(trigger=trigger, outcome=OUTCOME_ALREADY_COMPLETED).inc()
        await self._notifier.publish(
            SubmissionEvent(
                assignment_id=str(assignment_id),
                student_id=student_id,
                trigger=trigger,
                outcome=OUTCOME_ALREADY_COMPLETED,
            )
        )
        raise AlreadyCompleted(assignment_id)
