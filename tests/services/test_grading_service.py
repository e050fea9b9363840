from __future__ import annotations

import asyncio
from datetime import timedelta
from uuid import uuid4

import pytest

from quiz_service.core.clock import FrozenClock
from quiz_service.core.errors import (
    AlreadyCompleted,
    FetchFailure,
    InvalidAnswer,
    NotAssignmentOwner,
    NotYetAvailable,
    SubmissionFailed,
)
from quiz_service.models.assignment import AssignmentStatus, SubmittedAnswer
from quiz_service.services.grading_service import TRIGGER_AUTO, GradingService
from quiz_service.services.notifications import (
    OUTCOME_ALREADY_COMPLETED,
    OUTCOME_FAILED,
    OUTCOME_GRADED,
)
from tests.conftest import NOW, STUDENT_ID, make_quiz
from tests.services.helpers import (
    BrokenAssignmentRepo,
    RecordingNotifier,
    failing_commit_factory,
    make_stores,
    seed,
    stores_factory,
)

ANSWERS = (
    SubmittedAnswer("q1", 1),
    SubmittedAnswer("q2", 1),
    SubmittedAnswer("q3", 2),
)


def _service(stores, notifier: RecordingNotifier, clock: FrozenClock | None = None):
    return GradingService(
        open_stores=stores_factory(stores),
        clock=clock or FrozenClock(NOW),
        notifier=notifier,
    )


def test_submit_grades_and_completes() -> None:
    stores, notifier = make_stores(), RecordingNotifier()
    assignment = asyncio.run(seed(stores, make_quiz(correct=(1, 0, 2))))

    done = asyncio.run(
        _service(stores, notifier).submit(assignment.id, student_id=STUDENT_ID, answers=ANSWERS)
    )

    assert done.status == AssignmentStatus.COMPLETED
    assert (done.score, done.total_questions) == (2, 3)
    assert done.submitted_late is False
    assert done.completed_at == NOW
    assert [e.outcome for e in notifier.events] == [OUTCOME_GRADED]
    assert notifier.events[0].score == 2


def test_submit_after_due_is_marked_late() -> None:
    stores, notifier = make_stores(), RecordingNotifier()
    assignment = asyncio.run(
        seed(stores, make_quiz(), due_by=NOW - timedelta(seconds=1))
    )

    done = asyncio.run(
        _service(stores, notifier).submit(assignment.id, student_id=STUDENT_ID, answers=ANSWERS)
    )
    assert done.submitted_late is True


def test_second_submission_is_already_completed() -> None:
    stores, notifier = make_stores(), RecordingNotifier()
    assignment = asyncio.run(seed(stores, make_quiz()))
    service = _service(stores, notifier)
    asyncio.run(service.submit(assignment.id, student_id=STUDENT_ID, answers=ANSWERS))

    with pytest.raises(AlreadyCompleted):
        asyncio.run(service.submit(assignment.id, student_id=STUDENT_ID, answers=()))

    assert [e.outcome for e in notifier.events] == [OUTCOME_GRADED, OUTCOME_ALREADY_COMPLETED]
    assert asyncio.run(stores.assignments.get(assignment.id)).score == 2  # type: ignore[union-attr]


def test_unknown_assignment_is_fetch_failure() -> None:
    stores = make_stores()
    with pytest.raises(FetchFailure):
        asyncio.run(
            _service(stores, RecordingNotifier()).submit(uuid4(), student_id=STUDENT_ID, answers=())
        )


def test_other_students_assignment_is_rejected() -> None:
    stores = make_stores()
    assignment = asyncio.run(seed(stores, make_quiz()))
    with pytest.raises(NotAssignmentOwner):
        asyncio.run(
            _service(stores, RecordingNotifier()).submit(
                assignment.id, student_id="someone-else", answers=ANSWERS
            )
        )


def test_submission_before_window_opens_is_rejected() -> None:
    stores = make_stores()
    assignment = asyncio.run(
        seed(stores, make_quiz(), available_from=NOW + timedelta(hours=1))
    )
    with pytest.raises(NotYetAvailable):
        asyncio.run(
            _service(stores, RecordingNotifier()).submit(
                assignment.id, student_id=STUDENT_ID, answers=ANSWERS
            )
        )


def test_missing_quiz_is_fetch_failure() -> None:
    stores = make_stores()
    assignment = asyncio.run(seed(stores, make_quiz()))
    stores.quizzes._by_id.clear()  # type: ignore[attr-defined]
    with pytest.raises(FetchFailure):
        asyncio.run(
            _service(stores, RecordingNotifier()).submit(
                assignment.id, student_id=STUDENT_ID, answers=ANSWERS
            )
        )


def test_store_failure_surfaces_as_submission_failed() -> None:
    stores, notifier = make_stores(BrokenAssignmentRepo()), RecordingNotifier()
    assignment = asyncio.run(seed(stores, make_quiz()))

    with pytest.raises(SubmissionFailed):
        asyncio.run(
            _service(stores, notifier).submit(
                assignment.id, student_id=STUDENT_ID, answers=ANSWERS, trigger=TRIGGER_AUTO
            )
        )

    assert [e.outcome for e in notifier.events] == [OUTCOME_FAILED]
    assert asyncio.run(stores.assignments.get(assignment.id)).status == AssignmentStatus.ASSIGNED  # type: ignore[union-attr]


def test_failed_commit_surfaces_as_submission_failed() -> None:
    stores, notifier = make_stores(), RecordingNotifier()
    assignment = asyncio.run(seed(stores, make_quiz()))
    service = GradingService(
        open_stores=failing_commit_factory(stores, RuntimeError("commit failed")),
        clock=FrozenClock(NOW),
        notifier=notifier,
    )

    with pytest.raises(SubmissionFailed) as exc_info:
        asyncio.run(service.submit(assignment.id, student_id=STUDENT_ID, answers=ANSWERS))

    assert isinstance(exc_info.value.__cause__, RuntimeError)
    assert [e.outcome for e in notifier.events] == [OUTCOME_FAILED]
    assert notifier.events[0].detail == "commit failed"


def test_out_of_range_option_is_invalid_answer() -> None:
    stores, notifier = make_stores(), RecordingNotifier()
    assignment = asyncio.run(seed(stores, make_quiz(correct=(1, 0, 2))))

    with pytest.raises(InvalidAnswer):
        asyncio.run(
            _service(stores, notifier).submit(
                assignment.id,
                student_id=STUDENT_ID,
                answers=(SubmittedAnswer("q1", 1), SubmittedAnswer("q2", 99)),
            )
        )

    assert notifier.events == []
    assert asyncio.run(stores.assignments.get(assignment.id)).status == AssignmentStatus.ASSIGNED  # type: ignore[union-attr]
