"""Shared wiring for service tests: in-memory stores and a recording notifier."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime

from quiz_service.models.assignment import Assignment
from quiz_service.models.quiz import QuizDefinition
from quiz_service.repos.assignment_repo import InMemoryAssignmentRepo
from quiz_service.repos.quiz_repo import InMemoryQuizRepo
from quiz_service.repos.roster_store import InMemoryRosterStore
from quiz_service.repos.stores import Stores
from quiz_service.services.notifications import SubmissionEvent
from tests.conftest import NOW, STUDENT_ID, TEACHER_ID


class RecordingNotifier:
    def __init__(self) -> None:
        self.events: list[SubmissionEvent] = []

    async def publish(self, event: SubmissionEvent) -> None:
        self.events.append(event)


class BrokenAssignmentRepo(InMemoryAssignmentRepo):
    """Accepts creates, fails every completed transition."""

    async def transition_to_completed(self, assignment_id, **kwargs) -> Assignment:
        raise RuntimeError("database went away")


def make_stores(assignments: InMemoryAssignmentRepo | None = None) -> Stores:
    return Stores(
        quizzes=InMemoryQuizRepo(),
        assignments=assignments or InMemoryAssignmentRepo(),
        roster=InMemoryRosterStore(),
    )


def stores_factory(stores: Stores):
    @asynccontextmanager
    async def _open() -> AsyncGenerator[Stores, None]:
        yield stores

    return _open


async def seed(
    stores: Stores,
    quiz: QuizDefinition,
    *,
    student_id: str = STUDENT_ID,
    available_from: datetime | None = None,
    due_by: datetime | None = None,
) -> Assignment:
    await stores.quizzes.add(quiz)
    assignment = Assignment.new(
        quiz_id=quiz.id,
        student_id=student_id,
        assigned_by_teacher_id=TEACHER_ID,
        assigned_at=NOW,
        available_from=available_from,
        due_by=due_by,
    )
    await stores.assignments.create(assignment)
    return assignment


def failing_commit_factory(stores: Stores, error: Exception):
    """Like stores_factory, but the scope raises ``error`` on a clean exit."""

    @asynccontextmanager
    async def _open() -> AsyncGenerator[Stores, None]:
        yield stores
        raise error

    return _open
