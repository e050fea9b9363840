from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime
from typing import Protocol
from uuid import UUID

from quiz_service.core.errors import AlreadyCompleted, AssignmentNotFound
from quiz_service.models.assignment import (
    Assignment,
    AssignmentStatus,
    SubmittedAnswer,
)


class AssignmentRepo(Protocol):
    async def create(self, assignment: Assignment) -> None: ...
    async def get(self, assignment_id: UUID) -> Assignment | None: ...
    async def transition_to_completed(
        self,
        assignment_id: UUID,
        *,
        score: int,
        total_questions: int,
        submitted_answers: tuple[SubmittedAnswer, ...],
        submitted_late: bool,
        completed_at: datetime,
    ) -> Assignment: ...
    async def list_by_student(self, student_id: str) -> list[Assignment]: ...
    async def list_by_teacher(
        self, teacher_id: str, status: AssignmentStatus | None = None
    ) -> list[Assignment]: ...
    async def find_open(self, quiz_id: UUID, student_id: str) -> Assignment | None: ...


def sort_for_listing(assignments: list[Assignment]) -> list[Assignment]:
    """Completed first by completed_at desc, then open ones by assigned_at desc."""
    done = [a for a in assignments if a.completed_at is not None]
    open_ = [a for a in assignments if a.completed_at is None]
    done.sort(key=lambda a: a.completed_at or a.assigned_at, reverse=True)
    open_.sort(key=lambda a: a.assigned_at, reverse=True)
    return done + open_


class InMemoryAssignmentRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Assignment] = {}
        # The completed transition is check-and-set; callers may sit on
        # different threads (TestClient portals, the worker).
        self._lock = threading.Lock()

    async def create(self, assignment: Assignment) -> None:
        with self._lock:
            if assignment.id in self._by_id:
                raise ValueError("assignment already exists")
            self._by_id[assignment.id] = assignment

    async def get(self, assignment_id: UUID) -> Assignment | None:
        return self._by_id.get(assignment_id)

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
        with self._lock:
            current = self._by_id.get(assignment_id)
            if current is None:
                raise AssignmentNotFound(assignment_id)
            if current.status != AssignmentStatus.ASSIGNED:
                raise AlreadyCompleted(assignment_id)

            updated = replace(
                current,
                status=AssignmentStatus.COMPLETED,
                score=score,
                total_questions=total_questions,
                submitted_answers=submitted_answers,
                submitted_late=submitted_late,
                completed_at=completed_at,
            )
            self._by_id[assignment_id] = updated
            return updated

    async def list_by_student(self, student_id: str) -> list[Assignment]:
        return sort_for_listing(
            [a for a in self._by_id.values() if a.student_id == student_id]
        )

    async def list_by_teacher(
        self, teacher_id: str, status: AssignmentStatus | None = None
    ) -> list[Assignment]:
        return sort_for_listing(
            [
                a
                for a in self._by_id.values()
                if a.assigned_by_teacher_id == teacher_id
                and (status is None or a.status == status)
            ]
        )

    async def find_open(self, quiz_id: UUID, student_id: str) -> Assignment | None:
        for a in self._by_id.values():
            if (
                a.quiz_id == quiz_id
                and a.student_id == student_id
                and a.status == AssignmentStatus.ASSIGNED
            ):
                return a
        return None
