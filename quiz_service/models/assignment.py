from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from uuid import UUID, uuid4


class AssignmentStatus(StrEnum):
    ASSIGNED = "assigned"
    COMPLETED = "completed"


@dataclass(frozen=True, slots=True)
class SubmittedAnswer:
    question_id: str
    selected_option_index: int


@dataclass(frozen=True, slots=True)
class Assignment:
    """Binding of one quiz to one student.

    Created as ``assigned``; moves to ``completed`` exactly once, at which
    point score, total_questions, submitted_answers, submitted_late and
    completed_at are written together. Never deleted.
    """

    id: UUID
    quiz_id: UUID
    student_id: str
    assigned_by_teacher_id: str
    assigned_at: datetime
    status: AssignmentStatus = AssignmentStatus.ASSIGNED
    available_from: datetime | None = None
    due_by: datetime | None = None
    score: int | None = None
    total_questions: int | None = None
    submitted_answers: tuple[SubmittedAnswer, ...] | None = None
    submitted_late: bool | None = None
    completed_at: datetime | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == AssignmentStatus.COMPLETED

    def is_available_at(self, now: datetime) -> bool:
        return self.available_from is None or now >= self.available_from

    def selected_option(self, question_id: str) -> int | None:
        for a in self.submitted_answers or ():
            if a.question_id == question_id:
                return a.selected_option_index
        return None

    @staticmethod
    def new(
        *,
        quiz_id: UUID,
        student_id: str,
        assigned_by_teacher_id: str,
        assigned_at: datetime,
        available_from: datetime | None = None,
        due_by: datetime | None = None,
    ) -> Assignment:
        return Assignment(
            id=uuid4(),
            quiz_id=quiz_id,
            student_id=student_id,
            assigned_by_teacher_id=assigned_by_teacher_id,
            assigned_at=assigned_at,
            available_from=available_from,
            due_by=due_by,
        )
