"""Assignment endpoints: issuing, listing, direct submission and review.

  POST /v1/assignments                      teacher issues a quiz
  GET  /v1/assignments/mine                 student's own assignments
  GET  /v1/assignments/issued               teacher's issued assignments
  GET  /v1/assignments/{id}                 raw record (student/teacher/guardian)
  GET  /v1/assignments/{id}/review          per-question review, completed only
  POST /v1/assignments/{id}/submission      grade answers from a client-run attempt
"""

from __future__ import annotations

import datetime
import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import AwareDatetime, BaseModel, Field

from quiz_service.api.dependencies import (
    get_clock,
    get_grading_service,
    require_role,
    require_user,
)
from quiz_service.api.errors import http_error
from quiz_service.core.clock import Clock
from quiz_service.core.config import SETTINGS
from quiz_service.core.errors import QuizServiceError
from quiz_service.models.assignment import Assignment, AssignmentStatus, SubmittedAnswer
from quiz_service.models.principal import STUDENT, TEACHER, Principal
from quiz_service.models.quiz import QuizDefinition
from quiz_service.repos.quiz_repo import QuizRepo
from quiz_service.repos.stores import Stores, get_stores
from quiz_service.services.assignment_issuer import issue_assignments
from quiz_service.services.grading_service import (
    TRIGGER_AUTO,
    TRIGGER_MANUAL,
    GradingService,
)
from quiz_service.services.review_projector import (
    AssignmentReview,
    authorize_review,
    project_review,
)
from quiz_service.services.roster_resolver import TargetSelector

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/assignments", tags=["assignments"])


# --- Pydantic schemas ---


class AssignIn(BaseModel):
    quiz_id: UUID
    student_ids: list[str] = Field(default_factory=list)
    class_id: UUID | None = None
    all_students: bool = False
    # Compared against an aware clock; naive timestamps are refused with 422
    available_from: AwareDatetime | None = None
    due_by: AwareDatetime | None = None


class IssuanceFailureOut(BaseModel):
    student_id: str
    reason: str
    detail: str


class IssuanceOut(BaseModel):
    quiz_id: str
    assigned_count: int
    assignment_ids: list[str]
    failures: list[IssuanceFailureOut]


class AnswerIn(BaseModel):
    question_id: str
    selected_option_index: int


class SubmissionIn(BaseModel):
    answers: list[AnswerIn] = Field(default_factory=list)
    auto_submit: bool = False


class AnswerOut(BaseModel):
    question_id: str
    selected_option_index: int


class AssignmentOut(BaseModel):
    id: str
    quiz_id: str
    student_id: str
    assigned_by_teacher_id: str
    status: str
    assigned_at: datetime.datetime
    available_from: datetime.datetime | None
    due_by: datetime.datetime | None
    score: int | None
    total_questions: int | None
    submitted_answers: list[AnswerOut] | None
    submitted_late: bool | None
    completed_at: datetime.datetime | None


class AssignmentSummaryOut(BaseModel):
    id: str
    quiz_id: str
    quiz_title: str
    quiz_description: str
    question_count: int
    time_limit_minutes: int | None
    student_id: str
    status: str
    assigned_at: datetime.datetime
    available_from: datetime.datetime | None
    due_by: datetime.datetime | None
    score: int | None
    total_questions: int | None
    submitted_late: bool | None
    completed_at: datetime.datetime | None


class ReviewOptionOut(BaseModel):
    index: int
    text: str
    is_correct: bool
    is_selected: bool


class ReviewQuestionOut(BaseModel):
    question_id: str
    question_text: str
    options: list[ReviewOptionOut]
    selected_option_index: int | None
    correct_option_index: int
    answered: bool
    correct: bool


class ReviewOut(BaseModel):
    assignment_id: str
    quiz_id: str
    quiz_title: str
    student_id: str
    score: int
    total_questions: int
    submitted_late: bool
    completed_at: datetime.datetime | None
    questions: list[ReviewQuestionOut]


# --- Mapping helpers ---


def to_assignment_out(a: Assignment) -> AssignmentOut:
    return AssignmentOut(
        id=str(a.id),
        quiz_id=str(a.quiz_id),
        student_id=a.student_id,
        assigned_by_teacher_id=a.assigned_by_teacher_id,
        status=a.status.value,
        assigned_at=a.assigned_at,
        available_from=a.available_from,
        due_by=a.due_by,
        score=a.score,
        total_questions=a.total_questions,
        submitted_answers=(
            None
            if a.submitted_answers is None
            else [
                AnswerOut(question_id=s.question_id, selected_option_index=s.selected_option_index)
                for s in a.submitted_answers
            ]
        ),
        submitted_late=a.submitted_late,
        completed_at=a.completed_at,
    )


def to_summary_out(a: Assignment, quiz: QuizDefinition | None) -> AssignmentSummaryOut:
    # A quiz removed out from under its assignments still lists, just untitled
    return AssignmentSummaryOut(
        id=str(a.id),
        quiz_id=str(a.quiz_id),
        quiz_title=quiz.title if quiz else "",
        quiz_description=quiz.description if quiz else "",
        question_count=len(quiz.questions) if quiz else 0,
        time_limit_minutes=quiz.time_limit_minutes if quiz else None,
        student_id=a.student_id,
        status=a.status.value,
        assigned_at=a.assigned_at,
        available_from=a.available_from,
        due_by=a.due_by,
        score=a.score,
        total_questions=a.total_questions,
        submitted_late=a.submitted_late,
        completed_at=a.completed_at,
    )


async def summarize(
    assignments: list[Assignment], quizzes: QuizRepo
) -> list[AssignmentSummaryOut]:
    cache: dict[UUID, QuizDefinition | None] = {}
    out = []
    for a in assignments:
        if a.quiz_id not in cache:
            cache[a.quiz_id] = await quizzes.get(a.quiz_id)
        out.append(to_summary_out(a, cache[a.quiz_id]))
    return out


def _to_review_out(review: AssignmentReview) -> ReviewOut:
    return ReviewOut(
        assignment_id=str(review.assignment_id),
        quiz_id=str(review.quiz_id),
        quiz_title=review.quiz_title,
        student_id=review.student_id,
        score=review.score,
        total_questions=review.total_questions,
        submitted_late=review.submitted_late,
        completed_at=review.completed_at,
        questions=[
            ReviewQuestionOut(
                question_id=q.question_id,
                question_text=q.question_text,
                options=[
                    ReviewOptionOut(
                        index=o.index,
                        text=o.text,
                        is_correct=o.is_correct,
                        is_selected=o.is_selected,
                    )
                    for o in q.options
                ],
                selected_option_index=q.selected_option_index,
                correct_option_index=q.correct_option_index,
                answered=q.answered,
                correct=q.correct,
            )
            for q in review.questions
        ],
    )


async def _load_authorized(
    assignment_id: UUID, principal: Principal, stores: Stores
) -> Assignment:
    assignment = await stores.assignments.get(assignment_id)
    if assignment is None:
        raise HTTPException(status_code=404, detail="assignment not found")
    try:
        await authorize_review(principal, assignment, stores.roster)
    except QuizServiceError as e:
        raise http_error(e) from None
    return assignment


# --- Endpoints ---


@router.post(
    "",
    response_model=IssuanceOut,
    status_code=status.HTTP_201_CREATED,
    responses={207: {"model": IssuanceOut, "description": "Some students failed"}},
)
async def assign_quiz(
    body: AssignIn,
    response: Response,
    principal: Annotated[Principal, Depends(require_role(TEACHER))],
    stores: Annotated[Stores, Depends(get_stores)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> IssuanceOut:
    selector = TargetSelector(
        student_ids=tuple(body.student_ids),
        class_id=body.class_id,
        all_students=body.all_students,
    )
    try:
        report = await issue_assignments(
            stores,
            teacher_id=principal.user_id,
            quiz_id=body.quiz_id,
            selector=selector,
            clock=clock,
            available_from=body.available_from,
            due_by=body.due_by,
            reject_open_duplicates=SETTINGS.reject_open_duplicates,
        )
    except QuizServiceError as e:
        raise http_error(e) from None

    if report.is_partial:
        response.status_code = status.HTTP_207_MULTI_STATUS
    return IssuanceOut(
        quiz_id=str(report.quiz_id),
        assigned_count=report.assigned_count,
        assignment_ids=[str(a.id) for a in report.assignments],
        failures=[
            IssuanceFailureOut(student_id=f.student_id, reason=f.reason, detail=f.detail)
            for f in report.failures
        ],
    )


@router.get("/mine", response_model=list[AssignmentSummaryOut])
async def list_my_assignments(
    principal: Annotated[Principal, Depends(require_role(STUDENT))],
    stores: Annotated[Stores, Depends(get_stores)],
) -> list[AssignmentSummaryOut]:
    assignments = await stores.assignments.list_by_student(principal.user_id)
    return await summarize(assignments, stores.quizzes)


@router.get("/issued", response_model=list[AssignmentSummaryOut])
async def list_issued_assignments(
    principal: Annotated[Principal, Depends(require_role(TEACHER))],
    stores: Annotated[Stores, Depends(get_stores)],
    status_filter: Annotated[AssignmentStatus | None, Query(alias="status")] = None,
) -> list[AssignmentSummaryOut]:
    assignments = await stores.assignments.list_by_teacher(
        principal.user_id, status=status_filter
    )
    return await summarize(assignments, stores.quizzes)


@router.get("/{assignment_id}", response_model=AssignmentOut)
async def get_assignment(
    assignment_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
    stores: Annotated[Stores, Depends(get_stores)],
) -> AssignmentOut:
    assignment = await _load_authorized(assignment_id, principal, stores)
    return to_assignment_out(assignment)


@router.get("/{assignment_id}/review", response_model=ReviewOut)
async def review_assignment(
    assignment_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
    stores: Annotated[Stores, Depends(get_stores)],
) -> ReviewOut:
    assignment = await _load_authorized(assignment_id, principal, stores)
    quiz = await stores.quizzes.get(assignment.quiz_id)
    if quiz is None:
        raise HTTPException(status_code=404, detail="quiz not found")
    try:
        review = project_review(assignment, quiz)
    except QuizServiceError as e:
        raise http_error(e) from None
    return _to_review_out(review)


@router.post("/{assignment_id}/submission", response_model=AssignmentOut)
async def submit_assignment(
    assignment_id: UUID,
    body: SubmissionIn,
    principal: Annotated[Principal, Depends(require_role(STUDENT))],
    grading: Annotated[GradingService, Depends(get_grading_service)],
) -> AssignmentOut:
    try:
        completed = await grading.submit(
            assignment_id,
            student_id=principal.user_id,
            answers=[
                SubmittedAnswer(
                    question_id=a.question_id, selected_option_index=a.selected_option_index
                )
                for a in body.answers
            ],
            trigger=TRIGGER_AUTO if body.auto_submit else TRIGGER_MANUAL,
        )
    except QuizServiceError as e:
        raise http_error(e) from None
    return to_assignment_out(completed)
