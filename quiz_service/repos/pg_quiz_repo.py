"""PostgreSQL implementation of QuizRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quiz_service.core.clock import ensure_aware
from quiz_service.db.tables import QuizRow
from quiz_service.models.quiz import Question, QuizDefinition


class PgQuizRepo:
    """Satisfies the QuizRepo Protocol using SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, quiz: QuizDefinition) -> None:
        row = QuizRow(
            id=quiz.id,
            creator_id=quiz.creator_id,
            title=quiz.title,
            description=quiz.description,
            time_limit_minutes=quiz.time_limit_minutes,
            questions=[_question_to_json(q) for q in quiz.questions],
            created_at=quiz.created_at,
        )
        self._session.add(row)
        await self._session.flush()

    async def get(self, quiz_id: UUID) -> QuizDefinition | None:
        stmt = select(QuizRow).where(QuizRow.id == quiz_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_quiz(row)

    async def list_by_creator(self, creator_id: str) -> list[QuizDefinition]:
        stmt = (
            select(QuizRow)
            .where(QuizRow.creator_id == creator_id)
            .order_by(QuizRow.created_at.desc())
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_quiz(r) for r in rows]


def _question_to_json(q: Question) -> dict:
    return {
        "id": q.id,
        "question_text": q.question_text,
        "options": list(q.options),
        "correct_option_index": q.correct_option_index,
    }


def _row_to_quiz(row: QuizRow) -> QuizDefinition:
    return QuizDefinition(
        id=row.id,
        creator_id=row.creator_id,
        title=row.title,
        description=row.description or "",
        time_limit_minutes=row.time_limit_minutes,
        questions=tuple(
            Question(
                id=q["id"],
                question_text=q["question_text"],
                options=tuple(q["options"]),
                correct_option_index=q["correct_option_index"],
            )
            for q in row.questions
        ),
        created_at=ensure_aware(row.created_at),
    )
