"""Attempt sessions: navigation, manual and auto submission, the registry.

The countdown's sleep is injected: ``_fast_sleep`` lets a one-minute quiz
run out within a handful of event-loop turns, ``_never`` keeps the clock
from ever reaching zero.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from uuid import uuid4

import pytest
from prometheus_client import REGISTRY

from quiz_service.core.clock import FrozenClock
from quiz_service.core.errors import (
    AlreadyCompleted,
    FetchFailure,
    IncompleteAttempt,
    InvalidAnswer,
    NavigationBlocked,
    NotAssignmentOwner,
    NotYetAvailable,
    SessionClosed,
    SessionNotFound,
    SubmissionFailed,
)
from quiz_service.models.assignment import AssignmentStatus, SubmittedAnswer
from quiz_service.services.attempt_session import (
    AttemptSession,
    AttemptSessionRegistry,
    SessionState,
)
from quiz_service.services.grading_service import TRIGGER_AUTO, TRIGGER_MANUAL, GradingService
from quiz_service.services.notifications import OUTCOME_GRADED
from tests.conftest import NOW, STUDENT_ID, make_quiz
from tests.services.helpers import (
    BrokenAssignmentRepo,
    RecordingNotifier,
    make_stores,
    seed,
    stores_factory,
)


async def _fast_sleep(_seconds: float) -> None:
    await asyncio.sleep(0)


async def _never(_seconds: float) -> None:
    await asyncio.Event().wait()


async def _wait_until(predicate, turns: int = 1000) -> None:
    for _ in range(turns):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition never became true")


def _session(stores, notifier=None, *, student_id=STUDENT_ID, assignment_id, sleep=_never):
    open_stores = stores_factory(stores)
    clock = FrozenClock(NOW)
    return AttemptSession(
        assignment_id=assignment_id,
        student_id=student_id,
        open_stores=open_stores,
        grading=GradingService(
            open_stores=open_stores, clock=clock, notifier=notifier or RecordingNotifier()
        ),
        clock=clock,
        tick_seconds=1.0,
        sleep=sleep,
    )


# ---- start ----


def test_start_enters_in_progress() -> None:
    stores = make_stores()

    async def scenario():
        assignment = await seed(stores, make_quiz())
        session = _session(stores, assignment_id=assignment.id)
        await session.start()
        return session

    session = asyncio.run(scenario())
    assert session.state == SessionState.IN_PROGRESS
    assert session.current_index == 0
    assert session.current_question.id == "q1"  # type: ignore[union-attr]
    assert session.remaining_seconds is None


def test_timed_quiz_starts_countdown_at_time_limit() -> None:
    stores = make_stores()

    async def scenario():
        assignment = await seed(stores, make_quiz(time_limit_minutes=2))
        session = _session(stores, assignment_id=assignment.id)
        await session.start()
        remaining = session.remaining_seconds
        session.close()
        return remaining

    assert asyncio.run(scenario()) == 120


def test_start_unknown_assignment_is_fetch_failure() -> None:
    stores = make_stores()
    session = _session(stores, assignment_id=uuid4())

    with pytest.raises(FetchFailure):
        asyncio.run(session.start())
    assert session.state == SessionState.ERROR


def test_start_completed_assignment_routes_to_review() -> None:
    stores = make_stores()

    async def scenario():
        assignment = await seed(stores, make_quiz())
        await stores.assignments.transition_to_completed(
            assignment.id,
            score=1,
            total_questions=3,
            submitted_answers=(),
            submitted_late=False,
            completed_at=NOW,
        )
        session = _session(stores, assignment_id=assignment.id)
        with pytest.raises(AlreadyCompleted):
            await session.start()
        return session

    session = asyncio.run(scenario())
    assert session.state == SessionState.COMPLETED


def test_start_before_available_is_rejected() -> None:
    stores = make_stores()

    async def scenario():
        assignment = await seed(stores, make_quiz(), available_from=NOW + timedelta(days=1))
        await _session(stores, assignment_id=assignment.id).start()

    with pytest.raises(NotYetAvailable):
        asyncio.run(scenario())


def test_start_someone_elses_assignment_is_rejected() -> None:
    stores = make_stores()

    async def scenario():
        assignment = await seed(stores, make_quiz())
        await _session(stores, assignment_id=assignment.id, student_id="intruder").start()

    with pytest.raises(NotAssignmentOwner):
        asyncio.run(scenario())


# ---- answering and navigation ----


def _started(stores, quiz=None, **kwargs) -> AttemptSession:
    async def scenario():
        assignment = await seed(stores, quiz or make_quiz())
        session = _session(stores, assignment_id=assignment.id, **kwargs)
        await session.start()
        return session

    return asyncio.run(scenario())


def test_select_answer_overwrites() -> None:
    session = _started(make_stores())
    session.select_answer("q1", 0)
    session.select_answer("q1", 2)
    assert session.answers == (SubmittedAnswer("q1", 2),)


def test_select_answer_validates_question_and_option() -> None:
    session = _started(make_stores())
    with pytest.raises(InvalidAnswer):
        session.select_answer("q9", 0)
    with pytest.raises(InvalidAnswer):
        session.select_answer("q1", 3)


def test_next_requires_current_answer() -> None:
    session = _started(make_stores())
    with pytest.raises(NavigationBlocked):
        session.go_next()

    session.select_answer("q1", 1)
    assert session.go_next() == 1


def test_next_stops_at_last_question() -> None:
    session = _started(make_stores(), make_quiz(correct=(0,)))
    session.select_answer("q1", 0)
    assert session.go_next() == 0


def test_previous_is_free_and_stops_at_first() -> None:
    session = _started(make_stores())
    assert session.go_previous() == 0
    session.select_answer("q1", 1)
    session.go_next()
    assert session.go_previous() == 0


# ---- manual submission ----


def test_manual_submit_with_unanswered_questions_is_rejected() -> None:
    session = _started(make_stores())
    session.select_answer("q1", 1)

    with pytest.raises(IncompleteAttempt) as exc:
        asyncio.run(session.submit())

    assert exc.value.unanswered == 2
    assert session.state == SessionState.IN_PROGRESS


def test_manual_submit_grades_and_completes() -> None:
    stores, notifier = make_stores(), RecordingNotifier()
    session = _started(stores, notifier=notifier)
    for qid, opt in (("q1", 1), ("q2", 1), ("q3", 2)):
        session.select_answer(qid, opt)

    result = asyncio.run(session.submit())

    assert session.state == SessionState.COMPLETED
    assert (result.score, result.total_questions) == (2, 3)  # type: ignore[union-attr]
    assert [(e.trigger, e.outcome) for e in notifier.events] == [(TRIGGER_MANUAL, OUTCOME_GRADED)]


def test_manual_submit_cancels_countdown() -> None:
    stores, notifier = make_stores(), RecordingNotifier()

    async def scenario():
        assignment = await seed(stores, make_quiz(time_limit_minutes=1))
        session = _session(stores, notifier, assignment_id=assignment.id, sleep=_fast_sleep)
        await session.start()
        for qid in ("q1", "q2", "q3"):
            session.select_answer(qid, 0)
        await session.submit()
        # Give a stray countdown every chance to fire
        for _ in range(200):
            await asyncio.sleep(0)
        return session

    session = asyncio.run(scenario())
    assert session.state == SessionState.COMPLETED
    assert session.remaining_seconds > 0  # type: ignore[operator]
    assert [e.trigger for e in notifier.events] == [TRIGGER_MANUAL]


def test_duplicate_submits_join_one_submission() -> None:
    stores, notifier = make_stores(), RecordingNotifier()
    session = _started(stores, notifier=notifier)
    for qid in ("q1", "q2", "q3"):
        session.select_answer(qid, 1)

    async def scenario():
        return await asyncio.gather(session.submit(), session.submit(), session.submit())

    results = asyncio.run(scenario())
    assert len({r.id for r in results}) == 1  # type: ignore[union-attr]
    assert len(notifier.events) == 1


def test_manual_failure_returns_to_in_progress_with_answers() -> None:
    stores = make_stores(BrokenAssignmentRepo())
    session = _started(stores)
    for qid in ("q1", "q2", "q3"):
        session.select_answer(qid, 2)

    with pytest.raises(SubmissionFailed):
        asyncio.run(session.submit())

    assert session.state == SessionState.IN_PROGRESS
    assert len(session.answers) == 3


def test_lost_race_is_benign() -> None:
    stores = make_stores()
    session = _started(stores)
    for qid in ("q1", "q2", "q3"):
        session.select_answer(qid, 0)
    asyncio.run(
        stores.assignments.transition_to_completed(
            session.assignment_id,
            score=3,
            total_questions=3,
            submitted_answers=(),
            submitted_late=False,
            completed_at=NOW,
        )
    )

    assert asyncio.run(session.submit()) is None
    assert session.state == SessionState.COMPLETED


def test_closed_session_rejects_answers() -> None:
    session = _started(make_stores())
    for qid in ("q1", "q2", "q3"):
        session.select_answer(qid, 0)
    asyncio.run(session.submit())

    with pytest.raises(SessionClosed):
        session.select_answer("q1", 1)


# ---- auto submission ----


def test_countdown_expiry_auto_submits_partial_answers() -> None:
    stores, notifier = make_stores(), RecordingNotifier()

    async def scenario():
        assignment = await seed(stores, make_quiz(correct=(1, 0, 2), time_limit_minutes=1))
        session = _session(stores, notifier, assignment_id=assignment.id, sleep=_fast_sleep)
        await session.start()
        session.select_answer("q1", 1)
        session.select_answer("q2", 0)
        await _wait_until(lambda: session.state == SessionState.COMPLETED)
        return session, await stores.assignments.get(assignment.id)

    session, stored = asyncio.run(scenario())
    assert session.remaining_seconds == 0
    assert stored.status == AssignmentStatus.COMPLETED
    assert (stored.score, stored.total_questions) == (2, 3)
    assert len(stored.submitted_answers) == 2
    assert [e.trigger for e in notifier.events] == [TRIGGER_AUTO]


def test_auto_submit_failure_is_terminal() -> None:
    stores = make_stores(BrokenAssignmentRepo())

    async def scenario():
        assignment = await seed(stores, make_quiz(time_limit_minutes=1))
        session = _session(stores, assignment_id=assignment.id, sleep=_fast_sleep)
        await session.start()
        await _wait_until(lambda: session.state == SessionState.ERROR)
        return session

    session = asyncio.run(scenario())
    assert session.error
    with pytest.raises(SessionClosed):
        session.select_answer("q1", 0)


def test_manual_submit_after_expiry_skips_completeness_check() -> None:
    stores = make_stores(BrokenAssignmentRepo())
    session = _started(stores, make_quiz(time_limit_minutes=1))
    session.close()
    session.remaining_seconds = 0

    # Incomplete, but time is up: goes straight to grading
    with pytest.raises(SubmissionFailed):
        asyncio.run(session.submit())


# ---- registry ----


def test_registry_replaces_session_for_same_assignment() -> None:
    stores = make_stores()
    registry = AttemptSessionRegistry()

    async def scenario():
        assignment = await seed(stores, make_quiz(time_limit_minutes=5))
        first = await registry.start(_session(stores, assignment_id=assignment.id))
        second = await registry.start(_session(stores, assignment_id=assignment.id))
        return first, second

    first, second = asyncio.run(scenario())
    assert registry.active_count == 1
    assert registry.get(second.id, student_id=STUDENT_ID) is second
    with pytest.raises(SessionNotFound):
        registry.get(first.id, student_id=STUDENT_ID)
    assert first._countdown is None


def test_registry_checks_owner_and_closes() -> None:
    stores = make_stores()
    registry = AttemptSessionRegistry()

    async def scenario():
        assignment = await seed(stores, make_quiz())
        return await registry.start(_session(stores, assignment_id=assignment.id))

    session = asyncio.run(scenario())
    with pytest.raises(NotAssignmentOwner):
        registry.get(session.id, student_id="intruder")

    registry.close(session.id, student_id=STUDENT_ID)
    assert registry.active_count == 0
    with pytest.raises(SessionNotFound):
        registry.close(session.id, student_id=STUDENT_ID)


def test_failed_start_is_not_registered() -> None:
    registry = AttemptSessionRegistry()
    with pytest.raises(FetchFailure):
        asyncio.run(registry.start(_session(make_stores(), assignment_id=uuid4())))
    assert registry.active_count == 0


def test_registry_drops_completed_session() -> None:
    stores = make_stores()
    registry = AttemptSessionRegistry()

    async def scenario():
        assignment = await seed(stores, make_quiz(correct=(1, 0)))
        session = await registry.start(_session(stores, assignment_id=assignment.id))
        assert registry.active_count == 1
        session.select_answer("q1", 1)
        session.select_answer("q2", 0)
        await session.submit()
        return session

    session = asyncio.run(scenario())
    assert session.state == SessionState.COMPLETED
    assert registry.active_count == 0
    assert REGISTRY.get_sample_value("attempt_sessions_active") == 0
    with pytest.raises(SessionNotFound):
        registry.get(session.id, student_id=STUDENT_ID)


def test_registry_drops_session_after_failed_auto_submission() -> None:
    stores = make_stores(BrokenAssignmentRepo())
    registry = AttemptSessionRegistry()

    async def scenario():
        assignment = await seed(stores, make_quiz(time_limit_minutes=1))
        session = await registry.start(
            _session(stores, assignment_id=assignment.id, sleep=_fast_sleep)
        )
        await _wait_until(lambda: session.state == SessionState.ERROR)
        return session

    asyncio.run(scenario())
    assert registry.active_count == 0


def test_registry_keeps_session_after_failed_manual_submission() -> None:
    stores = make_stores(BrokenAssignmentRepo())
    registry = AttemptSessionRegistry()

    async def scenario():
        assignment = await seed(stores, make_quiz(correct=(1,)))
        session = await registry.start(_session(stores, assignment_id=assignment.id))
        session.select_answer("q1", 1)
        with pytest.raises(SubmissionFailed):
            await session.submit()
        return session

    session = asyncio.run(scenario())
    assert session.state == SessionState.IN_PROGRESS
    assert registry.get(session.id, student_id=STUDENT_ID) is session


def test_replaced_session_finishing_late_leaves_successor_registered() -> None:
    stores = make_stores()
    registry = AttemptSessionRegistry()

    async def scenario():
        assignment = await seed(stores, make_quiz(correct=(1,)))
        first = await registry.start(_session(stores, assignment_id=assignment.id))
        second = await registry.start(_session(stores, assignment_id=assignment.id))
        first.select_answer("q1", 1)
        await first.submit()
        return second

    second = asyncio.run(scenario())
    assert registry.get(second.id, student_id=STUDENT_ID) is second
    assert registry.active_count == 1
