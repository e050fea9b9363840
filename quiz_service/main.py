from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from quiz_service.api.assignments import router as assignments_router
from quiz_service.api.attempts import router as attempts_router
from quiz_service.api.classes import router as classes_router
from quiz_service.api.guardian import router as guardian_router
from quiz_service.api.health import router as health_router
from quiz_service.api.metrics_endpoint import router as metrics_router
from quiz_service.api.quizzes import router as quizzes_router
from quiz_service.core.config import SETTINGS
from quiz_service.core.logging import setup_logging
from quiz_service.db.engine import lifespan_db
from quiz_service.db.redis import lifespan_redis
from quiz_service.middleware.metrics import MetricsMiddleware
from quiz_service.middleware.request_context import RequestContextMiddleware
from quiz_service.services.attempt_session import attempt_registry

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # Nested so teardown runs in reverse order even if one fails
    async with lifespan_db():
        async with lifespan_redis():
            yield
            # Countdowns must not fire against a closing database
            attempt_registry.close_all()


app = FastAPI(
    title="quiz-service",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

# Last-added runs first: RequestContext (outermost) → Metrics → route handler
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(quizzes_router)
app.include_router(classes_router)
app.include_router(assignments_router)
app.include_router(attempts_router)
app.include_router(guardian_router)

logger.info(
    "quiz-service started  env=%s log_level=%s port=%d docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
)
