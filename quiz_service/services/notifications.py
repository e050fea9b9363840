"""Submission events for the notification channel.

This service only emits; delivery (toasts, e-mail, push) belongs to the
consumer of the ``submission_events`` queue.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Protocol

from quiz_service.services.task_queue import TaskQueue, task_queue

logger = logging.getLogger(__name__)

SUBMISSION_EVENTS_QUEUE = "submission_events"

OUTCOME_GRADED = "graded"
OUTCOME_ALREADY_COMPLETED = "already_completed"
OUTCOME_FAILED = "failed"


@dataclass(frozen=True, slots=True)
class SubmissionEvent:
    assignment_id: str
    student_id: str
    trigger: str  # manual|auto
    outcome: str  # graded|already_completed|failed
    score: int | None = None
    total_questions: int | None = None
    submitted_late: bool | None = None
    detail: str | None = None


class Notifier(Protocol):
    async def publish(self, event: SubmissionEvent) -> None: ...


class QueueNotifier:
    """Publishes events onto the task queue for the worker to deliver."""

    def __init__(self, queue: TaskQueue, queue_name: str = SUBMISSION_EVENTS_QUEUE) -> None:
        self._queue = queue
        self._queue_name = queue_name

    async def publish(self, event: SubmissionEvent) -> None:
        try:
            await self._queue.enqueue(self._queue_name, asdict(event))
        except Exception:
            # A lost toast must never undo a recorded grade
            logger.exception(
                "Failed to publish submission event",
                extra={"assignment_id": event.assignment_id},
            )


notifier = QueueNotifier(task_queue)
