"""Guardian view of a linked student's completed quizzes."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from quiz_service.api.assignments import AssignmentSummaryOut, summarize
from quiz_service.api.dependencies import require_role
from quiz_service.models.principal import GUARDIAN, Principal
from quiz_service.repos.stores import Stores, get_stores

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/guardian", tags=["guardian"])


@router.get(
    "/students/{student_id}/assignments",
    response_model=list[AssignmentSummaryOut],
)
async def list_student_results(
    student_id: str,
    principal: Annotated[Principal, Depends(require_role(GUARDIAN))],
    stores: Annotated[Stores, Depends(get_stores)],
) -> list[AssignmentSummaryOut]:
    if not await stores.roster.is_guardian_of(principal.user_id, student_id):
        logger.warning(
            "Access denied: guardian=%s not linked to student=%s",
            principal.user_id,
            student_id,
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not linked to this student",
        )

    assignments = await stores.assignments.list_by_student(student_id)
    completed = [a for a in assignments if a.is_completed]
    completed.sort(key=lambda a: a.completed_at or a.assigned_at, reverse=True)
    return await summarize(completed, stores.quizzes)
