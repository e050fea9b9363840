"""Background worker process.

RUN:  python -m quiz_service.worker

Same image as the API, different command:
  api:    uvicorn quiz_service.main:app --host 0.0.0.0 --port 8000
  worker: python -m quiz_service.worker

The API enqueues a SubmissionEvent after every submission attempt; this
loop pulls them off the queue and hands each to its handler. Delivering
the toast, e-mail or push itself belongs to the notification platform,
so the handler here turns the event into the student-facing message and
logs it.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from quiz_service.core.config import SETTINGS
from quiz_service.core.logging import setup_logging
from quiz_service.services.notifications import (
    OUTCOME_ALREADY_COMPLETED,
    OUTCOME_GRADED,
    SUBMISSION_EVENTS_QUEUE,
)
from quiz_service.services.task_queue import Task, TaskQueue, task_queue

TaskHandler = Callable[[dict], Coroutine[Any, Any, None]]

logger = logging.getLogger("worker")


# ---------------------------------------------------------------------------
# Handler registry
# ---------------------------------------------------------------------------

HANDLERS: dict[str, TaskHandler] = {}


def register_handler(queue: str):
    """Decorator: register a coroutine as the handler for a queue."""

    def decorator(func):
        HANDLERS[queue] = func
        return func

    return decorator


def describe_submission(payload: dict) -> str:
    outcome = payload.get("outcome")
    if outcome == OUTCOME_GRADED:
        prefix = "Time's up! Quiz submitted." if payload.get("trigger") == "auto" else "Quiz submitted!"
        message = f"{prefix} Score: {payload.get('score')}/{payload.get('total_questions')}"
        if payload.get("submitted_late"):
            message += " (late)"
        return message
    if outcome == OUTCOME_ALREADY_COMPLETED:
        return "This quiz was already submitted."
    return "Failed to submit quiz. Please try again."


@register_handler(SUBMISSION_EVENTS_QUEUE)
async def handle_submission_event(payload: dict) -> None:
    logger.info(
        "Notify student=%s assignment=%s: %s",
        payload.get("student_id"),
        payload.get("assignment_id"),
        describe_submission(payload),
        extra={
            "assignment_id": payload.get("assignment_id"),
            "user_id": payload.get("student_id"),
            "trigger": payload.get("trigger"),
        },
    )


# ---------------------------------------------------------------------------
# Main worker loop
# ---------------------------------------------------------------------------


async def process_one(queue: TaskQueue, queue_name: str, timeout: int = 1) -> Task | None:
    """Dequeue and handle at most one task. Returns the task, if any."""
    task = await queue.dequeue(queue_name, timeout=timeout)
    if task is None:
        return None

    handler = HANDLERS[queue_name]
    try:
        await handler(task.payload)
        logger.info("Task %s on [%s] completed", task.id, queue_name)
    except Exception:
        # At-most-once: a failed notification is logged and dropped
        logger.exception("Task %s on [%s] failed", task.id, queue_name)
    return task


async def run_worker(queue: TaskQueue = task_queue) -> None:
    """Poll all registered queues and dispatch tasks to handlers."""
    queues = list(HANDLERS.keys())
    logger.info("Worker started, listening on queues: %s", queues)

    while True:
        for queue_name in queues:
            await process_one(queue, queue_name)


if __name__ == "__main__":
    setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
    asyncio.run(run_worker())
