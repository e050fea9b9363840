from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID, uuid4

from quiz_service.core.errors import InvalidQuizDefinition


@dataclass(frozen=True, slots=True)
class Question:
    id: str
    question_text: str
    options: tuple[str, ...]
    correct_option_index: int

    def __post_init__(self) -> None:
        if len(self.options) < 2:
            raise InvalidQuizDefinition(
                f"question {self.id!r} needs at least 2 options"
            )
        if not 0 <= self.correct_option_index < len(self.options):
            raise InvalidQuizDefinition(
                f"question {self.id!r} correct_option_index out of range"
            )

    def has_option(self, index: int) -> bool:
        return 0 <= index < len(self.options)


@dataclass(frozen=True, slots=True)
class QuizDefinition:
    """Immutable once published; assignments reference it by id only."""

    id: UUID
    creator_id: str
    title: str
    questions: tuple[Question, ...]
    description: str = ""
    time_limit_minutes: int | None = None  # None or 0 means untimed
    created_at: datetime | None = None

    @property
    def is_timed(self) -> bool:
        return bool(self.time_limit_minutes and self.time_limit_minutes > 0)

    @property
    def time_limit_seconds(self) -> int | None:
        if not self.time_limit_minutes or self.time_limit_minutes <= 0:
            return None
        return self.time_limit_minutes * 60

    def question(self, question_id: str) -> Question | None:
        for q in self.questions:
            if q.id == question_id:
                return q
        return None

    @staticmethod
    def new(
        *,
        creator_id: str,
        title: str,
        questions: tuple[Question, ...],
        description: str = "",
        time_limit_minutes: int | None = None,
        created_at: datetime | None = None,
    ) -> QuizDefinition:
        title = title.strip()
        if not title:
            raise InvalidQuizDefinition("title must be non-empty")
        if not questions:
            raise InvalidQuizDefinition("a quiz needs at least one question")
        ids = [q.id for q in questions]
        if len(set(ids)) != len(ids):
            raise InvalidQuizDefinition("question ids must be unique within a quiz")
        if time_limit_minutes is not None and time_limit_minutes < 0:
            raise InvalidQuizDefinition("time_limit_minutes must not be negative")

        return QuizDefinition(
            id=uuid4(),
            creator_id=creator_id,
            title=title,
            questions=questions,
            description=description.strip(),
            # 0 is stored as untimed
            time_limit_minutes=time_limit_minutes or None,
            created_at=created_at,
        )
