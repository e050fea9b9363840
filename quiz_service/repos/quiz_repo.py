from __future__ import annotations

from typing import Protocol
from uuid import UUID

from quiz_service.models.quiz import QuizDefinition


class QuizRepo(Protocol):
    async def add(self, quiz: QuizDefinition) -> None: ...
    async def get(self, quiz_id: UUID) -> QuizDefinition | None: ...
    async def list_by_creator(self, creator_id: str) -> list[QuizDefinition]: ...


class InMemoryQuizRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, QuizDefinition] = {}

    async def add(self, quiz: QuizDefinition) -> None:
        if quiz.id in self._by_id:
            raise ValueError("quiz already exists")
        self._by_id[quiz.id] = quiz

    async def get(self, quiz_id: UUID) -> QuizDefinition | None:
        return self._by_id.get(quiz_id)

    async def list_by_creator(self, creator_id: str) -> list[QuizDefinition]:
        # Insertion order is creation order; newest first like the source listing
        return [q for q in reversed(self._by_id.values()) if q.creator_id == creator_id]
