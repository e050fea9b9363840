"""Read-only review of a completed assignment.

Joins the stored answers with the quiz definition so each option can be
marked correct and/or selected. Who may look is decided per audience:
the student who took it, the teacher who issued it, or a guardian linked
to the student.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from uuid import UUID

from quiz_service.core.errors import ReviewForbidden, ReviewNotAvailable
from quiz_service.models.assignment import Assignment
from quiz_service.models.principal import Principal
from quiz_service.models.quiz import QuizDefinition
from quiz_service.repos.roster_store import RosterStore

logger = logging.getLogger(__name__)


class Audience(StrEnum):
    STUDENT = "student"
    TEACHER = "teacher"
    GUARDIAN = "guardian"


@dataclass(frozen=True, slots=True)
class ReviewOption:
    index: int
    text: str
    is_correct: bool
    is_selected: bool


@dataclass(frozen=True, slots=True)
class ReviewQuestion:
    question_id: str
    question_text: str
    options: tuple[ReviewOption, ...]
    selected_option_index: int | None
    correct_option_index: int

    @property
    def answered(self) -> bool:
        return self.selected_option_index is not None

    @property
    def correct(self) -> bool:
        return self.selected_option_index == self.correct_option_index


@dataclass(frozen=True, slots=True)
class AssignmentReview:
    assignment_id: UUID
    quiz_id: UUID
    quiz_title: str
    student_id: str
    score: int
    total_questions: int
    submitted_late: bool
    completed_at: datetime | None
    questions: tuple[ReviewQuestion, ...]


async def authorize_review(
    principal: Principal, assignment: Assignment, roster: RosterStore
) -> Audience:
    if principal.is_student and principal.user_id == assignment.student_id:
        return Audience.STUDENT
    if principal.is_teacher and principal.user_id == assignment.assigned_by_teacher_id:
        return Audience.TEACHER
    if principal.is_guardian and await roster.is_guardian_of(
        principal.user_id, assignment.student_id
    ):
        return Audience.GUARDIAN

    logger.warning(
        "Review denied: user=%s assignment=%s",
        principal.user_id,
        assignment.id,
        extra={"user_id": principal.user_id, "assignment_id": str(assignment.id)},
    )
    raise ReviewForbidden(f"not allowed to review assignment {assignment.id}")


def project_review(assignment: Assignment, quiz: QuizDefinition) -> AssignmentReview:
    if not assignment.is_completed:
        raise ReviewNotAvailable(f"assignment {assignment.id} has not been completed")

    rows = []
    for q in quiz.questions:
        selected = assignment.selected_option(q.id)
        rows.append(
            ReviewQuestion(
                question_id=q.id,
                question_text=q.question_text,
                options=tuple(
                    ReviewOption(
                        index=i,
                        text=text,
                        is_correct=i == q.correct_option_index,
                        is_selected=i == selected,
                    )
                    for i, text in enumerate(q.options)
                ),
                selected_option_index=selected,
                correct_option_index=q.correct_option_index,
            )
        )

    return AssignmentReview(
        assignment_id=assignment.id,
        quiz_id=quiz.id,
        quiz_title=quiz.title,
        student_id=assignment.student_id,
        score=assignment.score or 0,
        total_questions=(
            assignment.total_questions
            if assignment.total_questions is not None
            else len(quiz.questions)
        ),
        submitted_late=bool(assignment.submitted_late),
        completed_at=assignment.completed_at,
        questions=tuple(rows),
    )
