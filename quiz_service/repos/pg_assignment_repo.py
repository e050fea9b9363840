"""PostgreSQL implementation of AssignmentRepo.

The completed transition is a single conditional UPDATE
(``WHERE status = 'assigned'``). Two racing submissions both issue it;
the database lets exactly one of them match a row, and the loser sees
rowcount 0 and gets AlreadyCompleted.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from quiz_service.core.clock import ensure_aware
from quiz_service.core.errors import AlreadyCompleted, AssignmentNotFound
from quiz_service.db.tables import AssignmentRow
from quiz_service.models.assignment import (
    Assignment,
    AssignmentStatus,
    SubmittedAnswer,
)
from quiz_service.repos.assignment_repo import sort_for_listing


class PgAssignmentRepo:
    """Satisfies the AssignmentRepo Protocol using SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, assignment: Assignment) -> None:
        row = AssignmentRow(
            id=assignment.id,
            quiz_id=assignment.quiz_id,
            student_id=assignment.student_id,
            assigned_by_teacher_id=assignment.assigned_by_teacher_id,
            status=str(assignment.status),
            assigned_at=assignment.assigned_at,
            available_from=assignment.available_from,
            due_by=assignment.due_by,
        )
        # Savepoint per row: one failed insert must not poison the batch
        async with self._session.begin_nested():
            self._session.add(row)

    async def get(self, assignment_id: UUID) -> Assignment | None:
        stmt = (
            select(AssignmentRow)
            .where(AssignmentRow.id == assignment_id)
            .execution_options(populate_existing=True)
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_assignment(row)

    async def transition_to_completed(
        self,
        assignment_id: UUID,
        *,
        score: int,
        total_questions: int,
        submitted_answers: tuple[SubmittedAnswer, ...],
        submitted_late: bool,
        completed_at: datetime,
    ) -> Assignment:
        stmt = (
            update(AssignmentRow)
            .where(
                AssignmentRow.id == assignment_id,
                AssignmentRow.status == str(AssignmentStatus.ASSIGNED),
            )
            .values(
                status=str(AssignmentStatus.COMPLETED),
                score=score,
                total_questions=total_questions,
                submitted_answers=[
                    {
                        "question_id": a.question_id,
                        "selected_option_index": a.selected_option_index,
                    }
                    for a in submitted_answers
                ],
                submitted_late=submitted_late,
                completed_at=completed_at,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            if await self.get(assignment_id) is None:
                raise AssignmentNotFound(assignment_id)
            raise AlreadyCompleted(assignment_id)

        updated = await self.get(assignment_id)
        if updated is None:  # pragma: no cover - row matched a moment ago
            raise AssignmentNotFound(assignment_id)
        return updated

    async def list_by_student(self, student_id: str) -> list[Assignment]:
        stmt = select(AssignmentRow).where(AssignmentRow.student_id == student_id)
        rows = (await self._session.execute(stmt)).scalars().all()
        return sort_for_listing([_row_to_assignment(r) for r in rows])

    async def list_by_teacher(
        self, teacher_id: str, status: AssignmentStatus | None = None
    ) -> list[Assignment]:
        stmt = select(AssignmentRow).where(
            AssignmentRow.assigned_by_teacher_id == teacher_id
        )
        if status is not None:
            stmt = stmt.where(AssignmentRow.status == str(status))
        rows = (await self._session.execute(stmt)).scalars().all()
        return sort_for_listing([_row_to_assignment(r) for r in rows])

    async def find_open(self, quiz_id: UUID, student_id: str) -> Assignment | None:
        stmt = (
            select(AssignmentRow)
            .where(
                AssignmentRow.quiz_id == quiz_id,
                AssignmentRow.student_id == student_id,
                AssignmentRow.status == str(AssignmentStatus.ASSIGNED),
            )
            .limit(1)
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_assignment(row)


def _row_to_assignment(row: AssignmentRow) -> Assignment:
    answers = None
    if row.submitted_answers is not None:
        answers = tuple(
            SubmittedAnswer(
                question_id=a["question_id"],
                selected_option_index=a["selected_option_index"],
            )
            for a in row.submitted_answers
        )
    return Assignment(
        id=row.id,
        quiz_id=row.quiz_id,
        student_id=row.student_id,
        assigned_by_teacher_id=row.assigned_by_teacher_id,
        status=AssignmentStatus(row.status),
        assigned_at=ensure_aware(row.assigned_at),  # type: ignore[arg-type]
        available_from=ensure_aware(row.available_from),
        due_by=ensure_aware(row.due_by),
        score=row.score,
        total_questions=row.total_questions,
        submitted_answers=answers,
        submitted_late=row.submitted_late,
        completed_at=ensure_aware(row.completed_at),
    )
