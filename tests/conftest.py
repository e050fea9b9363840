from __future__ import annotations

import sys
from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from quiz_service.api.dependencies import get_clock
from quiz_service.core.clock import FrozenClock
from quiz_service.main import app
from quiz_service.models.quiz import Question, QuizDefinition
from quiz_service.repos.stores import assignment_repo, quiz_repo, roster_store
from quiz_service.services import token_service
from quiz_service.services.attempt_session import attempt_registry
from quiz_service.services.task_queue import task_queue

# Ensure repo root is on sys.path so `import quiz_service` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

NOW = datetime(2024, 1, 10, 9, 0, tzinfo=UTC)

TEACHER_ID = "teacher-1"
STUDENT_ID = "student-1"
GUARDIAN_ID = "guardian-1"


@pytest.fixture(autouse=True)
def reset_stores() -> None:
    """Clear the in-memory stores between tests."""
    quiz_repo._by_id.clear()
    assignment_repo._by_id.clear()
    roster_store._students.clear()
    roster_store._classes.clear()
    roster_store._guardian_links.clear()


@pytest.fixture(autouse=True)
def reset_attempt_sessions() -> None:
    """Forget sessions left by a previous test; their event loops are gone."""
    attempt_registry._by_id.clear()
    attempt_registry._by_assignment.clear()


@pytest.fixture(autouse=True)
def reset_task_queue() -> None:
    """Clear task queues between tests."""
    if hasattr(task_queue, "_queues"):
        task_queue._queues.clear()  # type: ignore[union-attr]


@pytest.fixture
def clock() -> Iterator[FrozenClock]:
    frozen = FrozenClock(NOW)
    app.dependency_overrides[get_clock] = lambda: frozen
    yield frozen
    app.dependency_overrides.pop(get_clock, None)


@pytest.fixture
def client(clock: FrozenClock) -> Iterator[TestClient]:
    with TestClient(app) as c:
        yield c


def mint_token(username: str = "test-user", roles: list[str] | None = None) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=username, roles=roles)


def auth(username: str, role: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {mint_token(username, [role])}"}


@pytest.fixture
def teacher_headers() -> dict[str, str]:
    return auth(TEACHER_ID, "teacher")


@pytest.fixture
def student_headers() -> dict[str, str]:
    return auth(STUDENT_ID, "student")


@pytest.fixture
def guardian_headers() -> dict[str, str]:
    return auth(GUARDIAN_ID, "guardian")


# ---------------------------------------------------------------------------
# Domain helpers
# ---------------------------------------------------------------------------


def make_quiz(
    *,
    creator_id: str = TEACHER_ID,
    correct: tuple[int, ...] = (1, 0, 2),
    time_limit_minutes: int | None = None,
) -> QuizDefinition:
    """A quiz with one 3-option question per entry of ``correct``."""
    questions = tuple(
        Question(
            id=f"q{i}",
            question_text=f"Question {i}?",
            options=("a", "b", "c"),
            correct_option_index=idx,
        )
        for i, idx in enumerate(correct, start=1)
    )
    return QuizDefinition.new(
        creator_id=creator_id,
        title="Sample quiz",
        questions=questions,
        time_limit_minutes=time_limit_minutes,
        created_at=NOW,
    )
