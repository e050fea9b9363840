"""Quiz definition endpoints.

Teachers create quizzes and list their own. Anyone authenticated may
fetch a quiz, but only its creator sees the correct answers; everyone
else gets the learner view.
"""

from __future__ import annotations

import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from quiz_service.api.dependencies import get_clock, require_role, require_user
from quiz_service.api.errors import http_error
from quiz_service.core.clock import Clock
from quiz_service.core.errors import QuizServiceError
from quiz_service.models.principal import TEACHER, Principal
from quiz_service.models.quiz import QuizDefinition
from quiz_service.repos.stores import Stores, get_stores
from quiz_service.services.quiz_catalog import QuestionDraft, create_quiz

router = APIRouter(prefix="/v1/quizzes", tags=["quizzes"])


# --- Pydantic schemas ---


class QuestionIn(BaseModel):
    id: str | None = None
    question_text: str
    options: list[str]
    correct_option_index: int


class QuizCreateIn(BaseModel):
    title: str
    description: str = ""
    time_limit_minutes: int | None = None
    questions: list[QuestionIn] = Field(default_factory=list)


class LearnerQuestionOut(BaseModel):
    id: str
    question_text: str
    options: list[str]


class QuestionOut(LearnerQuestionOut):
    correct_option_index: int


class LearnerQuizOut(BaseModel):
    id: str
    title: str
    description: str
    time_limit_minutes: int | None
    question_count: int
    questions: list[LearnerQuestionOut]


class QuizOut(LearnerQuizOut):
    creator_id: str
    created_at: datetime.datetime | None
    questions: list[QuestionOut]  # type: ignore[assignment]


def _to_out(quiz: QuizDefinition) -> QuizOut:
    return QuizOut(
        id=str(quiz.id),
        creator_id=quiz.creator_id,
        title=quiz.title,
        description=quiz.description,
        time_limit_minutes=quiz.time_limit_minutes,
        question_count=len(quiz.questions),
        created_at=quiz.created_at,
        questions=[
            QuestionOut(
                id=q.id,
                question_text=q.question_text,
                options=list(q.options),
                correct_option_index=q.correct_option_index,
            )
            for q in quiz.questions
        ],
    )


def _to_learner_out(quiz: QuizDefinition) -> LearnerQuizOut:
    return LearnerQuizOut(
        id=str(quiz.id),
        title=quiz.title,
        description=quiz.description,
        time_limit_minutes=quiz.time_limit_minutes,
        question_count=len(quiz.questions),
        questions=[
            LearnerQuestionOut(id=q.id, question_text=q.question_text, options=list(q.options))
            for q in quiz.questions
        ],
    )


# --- Endpoints ---


@router.post("", response_model=QuizOut, status_code=status.HTTP_201_CREATED)
async def create_quiz_endpoint(
    body: QuizCreateIn,
    principal: Annotated[Principal, Depends(require_role(TEACHER))],
    stores: Annotated[Stores, Depends(get_stores)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> QuizOut:
    try:
        quiz = await create_quiz(
            stores.quizzes,
            creator_id=principal.user_id,
            title=body.title,
            description=body.description,
            time_limit_minutes=body.time_limit_minutes,
            questions=[
                QuestionDraft(
                    id=q.id,
                    question_text=q.question_text,
                    options=q.options,
                    correct_option_index=q.correct_option_index,
                )
                for q in body.questions
            ],
            clock=clock,
        )
    except QuizServiceError as e:
        raise http_error(e) from None
    return _to_out(quiz)


@router.get("", response_model=list[QuizOut])
async def list_my_quizzes(
    principal: Annotated[Principal, Depends(require_role(TEACHER))],
    stores: Annotated[Stores, Depends(get_stores)],
) -> list[QuizOut]:
    quizzes = await stores.quizzes.list_by_creator(principal.user_id)
    return [_to_out(q) for q in quizzes]


@router.get("/{quiz_id}", response_model=None)
async def get_quiz(
    quiz_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
    stores: Annotated[Stores, Depends(get_stores)],
) -> QuizOut | LearnerQuizOut:
    quiz = await stores.quizzes.get(quiz_id)
    if quiz is None:
        raise HTTPException(status_code=404, detail="quiz not found")
    if quiz.creator_id == principal.user_id:
        return _to_out(quiz)
    return _to_learner_out(quiz)
