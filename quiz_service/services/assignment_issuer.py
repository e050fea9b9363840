"""Assignment issuance: one Assignment per (quiz, student).

Issuance is per-student independent. A duplicate or a storage error for
one student is recorded in the report and the loop moves on; the caller
gets a success count plus the failure list instead of all-or-nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from quiz_service.core.clock import Clock
from quiz_service.core.errors import FetchFailure, InvalidSchedule, NotQuizOwner
from quiz_service.core.metrics import ASSIGNMENTS_ISSUED, ISSUANCE_FAILURES
from quiz_service.models.assignment import Assignment
from quiz_service.repos.stores import Stores
from quiz_service.services.roster_resolver import TargetSelector, resolve_roster

logger = logging.getLogger(__name__)

REASON_DUPLICATE = "duplicate"
REASON_STORAGE = "storage"


@dataclass(frozen=True, slots=True)
class IssuanceFailure:
    student_id: str
    reason: str
    detail: str = ""


@dataclass(slots=True)
class IssuanceReport:
    quiz_id: UUID
    assignments: list[Assignment] = field(default_factory=list)
    failures: list[IssuanceFailure] = field(default_factory=list)

    @property
    def assigned_count(self) -> int:
        return len(self.assignments)

    @property
    def is_partial(self) -> bool:
        return bool(self.failures)


async def issue_assignments(
    stores: Stores,
    *,
    teacher_id: str,
    quiz_id: UUID,
    selector: TargetSelector,
    clock: Clock,
    available_from: datetime | None = None,
    due_by: datetime | None = None,
    reject_open_duplicates: bool = False,
) -> IssuanceReport:
    """Resolve the selector and create an Assignment for every student.

    Raises:
        FetchFailure: quiz does not exist
        NotQuizOwner: quiz belongs to another educator
        InvalidSchedule: a naive bound, or due_by precedes available_from
        InvalidSelector: selector names no student source
    """
    for bound in (available_from, due_by):
        if bound is not None and bound.tzinfo is None:
            raise InvalidSchedule("available_from and due_by must carry a timezone")
    if available_from and due_by and due_by < available_from:
        raise InvalidSchedule("due_by must not be earlier than available_from")

    quiz = await stores.quizzes.get(quiz_id)
    if quiz is None:
        raise FetchFailure(f"quiz {quiz_id} not found")
    if quiz.creator_id != teacher_id:
        raise NotQuizOwner(f"quiz {quiz_id} is not owned by {teacher_id}")

    student_ids = await resolve_roster(
        selector, teacher_id=teacher_id, roster=stores.roster
    )

    report = IssuanceReport(quiz_id=quiz_id)
    assigned_at = clock.now()

    # Sequential on purpose: a database unit of work shares one session,
    # which does not allow concurrent statements.
    for student_id in student_ids:
        if reject_open_duplicates:
            existing = await stores.assignments.find_open(quiz_id, student_id)
            if existing is not None:
                report.failures.append(
                    IssuanceFailure(
                        student_id=student_id,
                        reason=REASON_DUPLICATE,
                        detail=f"open assignment {existing.id} already exists",
                    )
                )
                ISSUANCE_FAILURES.labels(reason=REASON_DUPLICATE).inc()
                continue

        assignment = Assignment.new(
            quiz_id=quiz_id,
            student_id=student_id,
            assigned_by_teacher_id=teacher_id,
            assigned_at=assigned_at,
            available_from=available_from,
            due_by=due_by,
        )
        try:
            await stores.assignments.create(assignment)
        except Exception as e:
            logger.exception(
                "Failed to create assignment quiz=%s student=%s",
                quiz_id,
                student_id,
                extra={"quiz_id": str(quiz_id), "user_id": teacher_id},
            )
            report.failures.append(
                IssuanceFailure(student_id=student_id, reason=REASON_STORAGE, detail=str(e))
            )
            ISSUANCE_FAILURES.labels(reason=REASON_STORAGE).inc()
            continue

        report.assignments.append(assignment)

    ASSIGNMENTS_ISSUED.inc(report.assigned_count)
    log = logger.warning if report.is_partial else logger.info
    log(
        "Issued quiz=%s by teacher=%s: %d assigned, %d failed",
        quiz_id,
        teacher_id,
        report.assigned_count,
        len(report.failures),
        extra={"quiz_id": str(quiz_id), "user_id": teacher_id},
    )
    return report
