"""Unit-of-work bundle of the three stores.

Routes get a Stores through the ``get_stores`` dependency. Code that runs
outside a request (the attempt countdown auto-submitting, the worker)
calls ``open_stores()`` directly. Both share one database session per
unit of work when DATABASE_URL is configured, and the process-wide
in-memory stores otherwise.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass

from quiz_service.db.engine import async_session_factory, session_scope
from quiz_service.repos.assignment_repo import AssignmentRepo, InMemoryAssignmentRepo
from quiz_service.repos.pg_assignment_repo import PgAssignmentRepo
from quiz_service.repos.pg_quiz_repo import PgQuizRepo
from quiz_service.repos.pg_roster_store import PgRosterStore
from quiz_service.repos.quiz_repo import InMemoryQuizRepo, QuizRepo
from quiz_service.repos.roster_store import InMemoryRosterStore, RosterStore


@dataclass(frozen=True, slots=True)
class Stores:
    quizzes: QuizRepo
    assignments: AssignmentRepo
    roster: RosterStore


StoresFactory = Callable[[], AbstractAsyncContextManager[Stores]]

# --- Module-level singletons (used when no DATABASE_URL is configured) ---
quiz_repo = InMemoryQuizRepo()
assignment_repo = InMemoryAssignmentRepo()
roster_store = InMemoryRosterStore()

IN_MEMORY_STORES = Stores(
    quizzes=quiz_repo,
    assignments=assignment_repo,
    roster=roster_store,
)


@asynccontextmanager
async def open_stores() -> AsyncGenerator[Stores, None]:
    if async_session_factory is None:
        yield IN_MEMORY_STORES
        return

    async with session_scope(async_session_factory) as session:
        yield Stores(
            quizzes=PgQuizRepo(session),
            assignments=PgAssignmentRepo(session),
            roster=PgRosterStore(session),
        )


async def get_stores() -> AsyncGenerator[Stores, None]:
    """FastAPI dependency: one unit of work per request."""
    async with open_stores() as stores:
        yield stores
