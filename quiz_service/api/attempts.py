"""Server-held attempt sessions.

A student opens a session for one of their assignments, answers and
navigates question by question, and submits. For timed quizzes the
countdown runs in this process and auto-submits at zero. Sessions are
in memory only: a restart drops them and the student starts again.
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from quiz_service.api.assignments import AssignmentOut, to_assignment_out
from quiz_service.api.dependencies import get_clock, get_grading_service, require_role
from quiz_service.api.errors import http_error
from quiz_service.core.clock import Clock
from quiz_service.core.config import SETTINGS
from quiz_service.core.errors import QuizServiceError
from quiz_service.models.principal import STUDENT, Principal
from quiz_service.repos.stores import open_stores
from quiz_service.services.attempt_session import AttemptSession, attempt_registry
from quiz_service.services.grading_service import GradingService

router = APIRouter(prefix="/v1/attempts", tags=["attempts"])


class AttemptStartIn(BaseModel):
    assignment_id: UUID


class AnswerSelectIn(BaseModel):
    question_id: str
    option_index: int


class CurrentQuestionOut(BaseModel):
    id: str
    question_text: str
    options: list[str]
    selected_option_index: int | None


class AttemptOut(BaseModel):
    id: str
    assignment_id: str
    state: str
    quiz_title: str | None
    time_limit_minutes: int | None
    remaining_seconds: int | None
    current_index: int
    question_count: int
    answered_count: int
    current_question: CurrentQuestionOut | None
    error: str | None
    result: AssignmentOut | None


def _to_out(session: AttemptSession) -> AttemptOut:
    question = session.current_question
    return AttemptOut(
        id=str(session.id),
        assignment_id=str(session.assignment_id),
        state=session.state.value,
        quiz_title=session.quiz.title if session.quiz else None,
        time_limit_minutes=session.quiz.time_limit_minutes if session.quiz else None,
        remaining_seconds=session.remaining_seconds,
        current_index=session.current_index,
        question_count=len(session.questions),
        answered_count=len(session.answers),
        current_question=(
            None
            if question is None
            else CurrentQuestionOut(
                id=question.id,
                question_text=question.question_text,
                options=list(question.options),
                selected_option_index=session.selected_option(question.id),
            )
        ),
        error=session.error,
        result=to_assignment_out(session.result) if session.result else None,
    )


@router.post("", response_model=AttemptOut, status_code=status.HTTP_201_CREATED)
async def start_attempt(
    body: AttemptStartIn,
    principal: Annotated[Principal, Depends(require_role(STUDENT))],
    grading: Annotated[GradingService, Depends(get_grading_service)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> AttemptOut:
    session = AttemptSession(
        assignment_id=body.assignment_id,
        student_id=principal.user_id,
        open_stores=open_stores,
        grading=grading,
        clock=clock,
        tick_seconds=SETTINGS.attempt_tick_seconds,
    )
    try:
        await attempt_registry.start(session)
    except QuizServiceError as e:
        raise http_error(e) from None
    return _to_out(session)


@router.get("/{session_id}", response_model=AttemptOut)
async def get_attempt(
    session_id: UUID,
    principal: Annotated[Principal, Depends(require_role(STUDENT))],
) -> AttemptOut:
    try:
        session = attempt_registry.get(session_id, student_id=principal.user_id)
    except QuizServiceError as e:
        raise http_error(e) from None
    return _to_out(session)


@router.put("/{session_id}/answers", response_model=AttemptOut)
async def select_answer(
    session_id: UUID,
    body: AnswerSelectIn,
    principal: Annotated[Principal, Depends(require_role(STUDENT))],
) -> AttemptOut:
    try:
        session = attempt_registry.get(session_id, student_id=principal.user_id)
        session.select_answer(body.question_id, body.option_index)
    except QuizServiceError as e:
        raise http_error(e) from None
    return _to_out(session)


@router.post("/{session_id}/next", response_model=AttemptOut)
async def next_question(
    session_id: UUID,
    principal: Annotated[Principal, Depends(require_role(STUDENT))],
) -> AttemptOut:
    try:
        session = attempt_registry.get(session_id, student_id=principal.user_id)
        session.go_next()
    except QuizServiceError as e:
        raise http_error(e) from None
    return _to_out(session)


@router.post("/{session_id}/previous", response_model=AttemptOut)
async def previous_question(
    session_id: UUID,
    principal: Annotated[Principal, Depends(require_role(STUDENT))],
) -> AttemptOut:
    try:
        session = attempt_registry.get(session_id, student_id=principal.user_id)
        session.go_previous()
    except QuizServiceError as e:
        raise http_error(e) from None
    return _to_out(session)


@router.post("/{session_id}/submit", response_model=AttemptOut)
async def submit_attempt(
    session_id: UUID,
    principal: Annotated[Principal, Depends(require_role(STUDENT))],
) -> AttemptOut:
    try:
        session = attempt_registry.get(session_id, student_id=principal.user_id)
        await session.submit()
    except QuizServiceError as e:
        raise http_error(e) from None
    return _to_out(session)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_attempt(
    session_id: UUID,
    principal: Annotated[Principal, Depends(require_role(STUDENT))],
) -> Response:
    try:
        attempt_registry.close(session_id, student_id=principal.user_id)
    except QuizServiceError as e:
        raise http_error(e) from None
    return Response(status_code=status.HTTP_204_NO_CONTENT)
