"""Timed attempt sessions.

One AttemptSession drives a student through a single assignment:

  loading -> in_progress -> submitting -> completed
                  ^              |
                  +--------------+  (manual submission failed)

Any state may fall into ``error``; an auto-submission that fails lands
there for good. Sessions live in process memory only, keyed by
assignment in the AttemptSessionRegistry, and do not survive a restart.
The registry drops a session as soon as it reaches ``completed`` or
``error``.

The countdown is an asyncio.Task owned by the session. It ticks once per
``tick_seconds`` and auto-submits whatever has been answered when the
remaining time reaches zero. A manual submit cancels the countdown
before it grades, and a second submit while one is in flight waits on
the same submission instead of starting another.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import StrEnum
from uuid import UUID, uuid4

from quiz_service.core.clock import Clock
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
)
from quiz_service.core.metrics import ACTIVE_ATTEMPT_SESSIONS
from quiz_service.models.assignment import Assignment, SubmittedAnswer
from quiz_service.models.quiz import Question, QuizDefinition
from quiz_service.repos.stores import StoresFactory
from quiz_service.services.grading_service import (
    TRIGGER_AUTO,
    TRIGGER_MANUAL,
    GradingService,
)

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class SessionState(StrEnum):
    LOADING = "loading"
    IN_PROGRESS = "in_progress"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    ERROR = "error"


class AttemptSession:
    def __init__(
        self,
        *,
        assignment_id: UUID,
        student_id: str,
        open_stores: StoresFactory,
        grading: GradingService,
        clock: Clock,
        tick_seconds: float = 1.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.id = uuid4()
        self.assignment_id = assignment_id
        self.student_id = student_id
        self.state = SessionState.LOADING
        self.current_index = 0
        self.remaining_seconds: int | None = None
        self.quiz: QuizDefinition | None = None
        self.assignment: Assignment | None = None
        self.result: Assignment | None = None
        self.error: str | None = None

        self._open_stores = open_stores
        self._grading = grading
        self._clock = clock
        self._tick_seconds = tick_seconds
        self._sleep = sleep
        self._answers: dict[str, int] = {}
        self._countdown: asyncio.Task | None = None
        self._submission: asyncio.Task | None = None
        self._on_finished: Callable[[AttemptSession], None] | None = None

    # -- lifecycle ---------------------------------------------------------

    async def start(self) -> None:
        """Load the assignment and quiz, then enter ``in_progress``.

        Raises FetchFailure, NotAssignmentOwner, AlreadyCompleted or
        NotYetAvailable; the session is unusable afterwards.
        """
        try:
            async with self._open_stores() as stores:
                assignment = await stores.assignments.get(self.assignment_id)
                if assignment is None:
                    raise FetchFailure(f"assignment {self.assignment_id} not found")
                quiz = await stores.quizzes.get(assignment.quiz_id)
                if quiz is None:
                    raise FetchFailure(f"quiz {assignment.quiz_id} not found")
        except FetchFailure as e:
            self._fail(str(e))
            raise
        except Exception as e:
            logger.exception(
                "Failed to load attempt", extra={"assignment_id": str(self.assignment_id)}
            )
            self._fail("could not load the quiz")
            raise FetchFailure("could not load the quiz") from e

        if assignment.student_id != self.student_id:
            self._fail("not your assignment")
            raise NotAssignmentOwner(f"assignment {self.assignment_id} belongs to another student")
        if assignment.is_completed:
            # Nothing to attempt; the caller shows the review instead
            self.state = SessionState.COMPLETED
            self.result = assignment
            raise AlreadyCompleted(self.assignment_id)
        if not assignment.is_available_at(self._clock.now()):
            self._fail("not yet available")
            raise NotYetAvailable(f"assignment {self.assignment_id} is not available yet")

        self.assignment = assignment
        self.quiz = quiz
        self.state = SessionState.IN_PROGRESS
        if quiz.is_timed:
            self.remaining_seconds = quiz.time_limit_seconds
            self._start_countdown()

        logger.info(
            "Attempt session %s started for assignment=%s timed=%s",
            self.id,
            self.assignment_id,
            quiz.is_timed,
            extra={
                "session_id": str(self.id),
                "assignment_id": str(self.assignment_id),
                "user_id": self.student_id,
            },
        )

    def close(self) -> None:
        """Stop the countdown. Safe to call in any state, more than once."""
        self._cancel_countdown()

    # -- answering and navigation -------------------------------------------

    @property
    def questions(self) -> tuple[Question, ...]:
        return self.quiz.questions if self.quiz is not None else ()

    @property
    def current_question(self) -> Question | None:
        if not self.questions:
            return None
        return self.questions[self.current_index]

    @property
    def answers(self) -> tuple[SubmittedAnswer, ...]:
        return tuple(
            SubmittedAnswer(question_id=q.id, selected_option_index=self._answers[q.id])
            for q in self.questions
            if q.id in self._answers
        )

    def selected_option(self, question_id: str) -> int | None:
        return self._answers.get(question_id)

    @property
    def unanswered_count(self) -> int:
        return sum(1 for q in self.questions if q.id not in self._answers)

    @property
    def time_expired(self) -> bool:
        return self.remaining_seconds is not None and self.remaining_seconds <= 0

    def select_answer(self, question_id: str, option_index: int) -> None:
        self._require_in_progress()
        question = self.quiz.question(question_id)  # type: ignore[union-attr]
        if question is None:
            raise InvalidAnswer(f"unknown question {question_id!r}")
        if not question.has_option(option_index):
            raise InvalidAnswer(
                f"option {option_index} out of range for question {question_id!r}"
            )
        self._answers[question_id] = option_index

    def go_next(self) -> int:
        self._require_in_progress()
        question = self.current_question
        if question is not None and question.id not in self._answers:
            raise NavigationBlocked("answer the current question before moving on")
        if self.current_index < len(self.questions) - 1:
            self.current_index += 1
        return self.current_index

    def go_previous(self) -> int:
        self._require_in_progress()
        if self.current_index > 0:
            self.current_index -= 1
        return self.current_index

    # -- submission ------------------------------------------------------------

    async def submit(self, *, trigger: str = TRIGGER_MANUAL) -> Assignment | None:
        """Grade the current answers.

        Returns the completed Assignment, or None when another submission
        completed it first.
        """
        if self._submission is not None:
            return await self._submission
        if self.state == SessionState.COMPLETED:
            return self.result
        self._require_in_progress()

        if trigger == TRIGGER_MANUAL:
            unanswered = self.unanswered_count
            if unanswered and not self.time_expired:
                raise IncompleteAttempt(unanswered)
            self._cancel_countdown()

        self.state = SessionState.SUBMITTING
        self._submission = asyncio.create_task(self._run_submission(trigger))
        return await self._submission

    async def _run_submission(self, trigger: str) -> Assignment | None:
        try:
            result = await self._grading.submit(
                self.assignment_id,
                student_id=self.student_id,
                answers=self.answers,
                trigger=trigger,
            )
        except AlreadyCompleted:
            self.state = SessionState.COMPLETED
            self._finish()
            return None
        except Exception as e:
            self._submission = None
            if trigger == TRIGGER_AUTO:
                self._fail(str(e))
            else:
                # Answers stay put so the student can retry
                self.state = SessionState.IN_PROGRESS
                if self.remaining_seconds:
                    self._start_countdown()
            raise

        self.result = result
        self.state = SessionState.COMPLETED
        self._finish()
        return result

    # -- countdown ------------------------------------------------------------

    def _start_countdown(self) -> None:
        self._countdown = asyncio.create_task(self._run_countdown())

    def _cancel_countdown(self) -> None:
        if self._countdown is not None:
            self._countdown.cancel()
            self._countdown = None

    async def _run_countdown(self) -> None:
        while self.remaining_seconds and self.remaining_seconds > 0:
            await self._sleep(self._tick_seconds)
            self.remaining_seconds -= 1

        # Detach first so the submission cannot cancel the task running it
        self._countdown = None
        if self.state != SessionState.IN_PROGRESS:
            return
        logger.info(
            "Time expired for assignment=%s; auto-submitting %d answer(s)",
            self.assignment_id,
            len(self._answers),
            extra={"session_id": str(self.id), "assignment_id": str(self.assignment_id)},
        )
        try:
            await self.submit(trigger=TRIGGER_AUTO)
        except Exception:
            logger.exception(
                "Auto-submission failed",
                extra={"session_id": str(self.id), "assignment_id": str(self.assignment_id)},
            )

    # -- helpers ------------------------------------------------------------

    def _require_in_progress(self) -> None:
        if self.state != SessionState.IN_PROGRESS:
            raise SessionClosed(f"session is {self.state}")

    def _fail(self, message: str) -> None:
        self._cancel_countdown()
        self.state = SessionState.ERROR
        self.error = message
        self._finish()

    def _finish(self) -> None:
        if self._on_finished is not None:
            self._on_finished(self)


class AttemptSessionRegistry:
    """At most one live session per assignment in this process."""

    def __init__(self) -> None:
        self._by_id: dict[UUID, AttemptSession] = {}
        self._by_assignment: dict[UUID, UUID] = {}

    async def start(self, session: AttemptSession) -> AttemptSession:
        await session.start()

        previous_id = self._by_assignment.get(session.assignment_id)
        if previous_id is not None:
            previous = self._by_id.pop(previous_id, None)
            if previous is not None:
                logger.info(
                    "Replacing attempt session %s for assignment=%s",
                    previous_id,
                    session.assignment_id,
                    extra={"session_id": str(previous_id)},
                )
                previous.close()

        session._on_finished = self._release
        self._by_id[session.id] = session
        self._by_assignment[session.assignment_id] = session.id
        ACTIVE_ATTEMPT_SESSIONS.set(len(self._by_id))
        return session

    def get(self, session_id: UUID, *, student_id: str) -> AttemptSession:
        session = self._by_id.get(session_id)
        if session is None:
            raise SessionNotFound(f"attempt session {session_id} not found")
        if session.student_id != student_id:
            raise NotAssignmentOwner(f"attempt session {session_id} belongs to another student")
        return session

    def close(self, session_id: UUID, *, student_id: str) -> None:
        session = self.get(session_id, student_id=student_id)
        session.close()
        del self._by_id[session_id]
        if self._by_assignment.get(session.assignment_id) == session_id:
            del self._by_assignment[session.assignment_id]
        ACTIVE_ATTEMPT_SESSIONS.set(len(self._by_id))

    def _release(self, session: AttemptSession) -> None:
        # Completed and failed sessions leave the registry on their own
        if self._by_id.get(session.id) is session:
            del self._by_id[session.id]
        if self._by_assignment.get(session.assignment_id) == session.id:
            del self._by_assignment[session.assignment_id]
        ACTIVE_ATTEMPT_SESSIONS.set(len(self._by_id))

    @property
    def active_count(self) -> int:
        return len(self._by_id)

    def close_all(self) -> None:
        for session in self._by_id.values():
            session.close()
        self._by_id.clear()
        self._by_assignment.clear()
        ACTIVE_ATTEMPT_SESSIONS.set(0)


attempt_registry = AttemptSessionRegistry()
