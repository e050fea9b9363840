"""Scoring and lateness evaluation.

Pure functions of (questions, answers, due date, completion time). Nothing
here reads a clock or a store, so a submission whose write failed can be
re-graded and will produce the identical result.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime

from quiz_service.core.errors import InvalidAnswer
from quiz_service.models.assignment import SubmittedAnswer
from quiz_service.models.quiz import Question, QuizDefinition

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GradeResult:
    score: int
    total_questions: int
    submitted_answers: tuple[SubmittedAnswer, ...]
    submitted_late: bool
    completed_at: datetime


def normalize_answers(
    questions: Sequence[Question], answers: Iterable[SubmittedAnswer]
) -> tuple[SubmittedAnswer, ...]:
    """One answer per known question, last write wins, in quiz order.

    Raises InvalidAnswer when a kept answer selects an option the question
    does not have.
    """
    latest: dict[str, int] = {}
    for a in answers:
        latest[a.question_id] = a.selected_option_index

    known = {q.id for q in questions}
    dropped = [qid for qid in latest if qid not in known]
    if dropped:
        logger.warning("Dropping answers to unknown questions: %s", dropped)

    for q in questions:
        if q.id in latest and not q.has_option(latest[q.id]):
            raise InvalidAnswer(
                f"option {latest[q.id]} out of range for question {q.id!r}"
            )

    return tuple(
        SubmittedAnswer(question_id=q.id, selected_option_index=latest[q.id])
        for q in questions
        if q.id in latest
    )


def score_answers(
    questions: Sequence[Question], answers: Iterable[SubmittedAnswer]
) -> tuple[int, int]:
    """Return (score, total_questions).

    A question scores when an answer exists for it and the selected index
    equals its correct index. Missing answers are simply incorrect.
    """
    selected = {a.question_id: a.selected_option_index for a in answers}
    score = sum(
        1
        for q in questions
        if q.id in selected and selected[q.id] == q.correct_option_index
    )
    return score, len(questions)


def is_late(due_by: datetime | None, completed_at: datetime) -> bool:
    """True when completed_at is strictly after due_by; both must be timezone-aware."""
    if due_by is None:
        return False
    return completed_at > due_by


def grade(
    quiz: QuizDefinition,
    answers: Iterable[SubmittedAnswer],
    *,
    due_by: datetime | None,
    completed_at: datetime,
) -> GradeResult:
    # Live definition, not a snapshot taken at assignment time
    normalized = normalize_answers(quiz.questions, answers)
    score, total = score_answers(quiz.questions, normalized)
    return GradeResult(
        score=score,
        total_questions=total,
        submitted_answers=normalized,
        submitted_late=is_late(due_by, completed_at),
        completed_at=completed_at,
    )
