"""Class roster endpoints for teachers.

Classes group a teacher's students so an assignment can target a whole
class at once. Only students already linked to the teacher can be put
into one of their classes.
"""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from quiz_service.api.dependencies import require_role
from quiz_service.models.principal import TEACHER, Principal
from quiz_service.models.roster import SchoolClass
from quiz_service.repos.stores import Stores, get_stores

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/classes", tags=["classes"])


class ClassCreateIn(BaseModel):
    class_name: str = Field(min_length=1)
    description: str = ""


class ClassStudentsIn(BaseModel):
    student_ids: list[str]


class ClassOut(BaseModel):
    id: str
    class_name: str
    description: str
    student_ids: list[str]


def _to_out(school_class: SchoolClass) -> ClassOut:
    return ClassOut(
        id=str(school_class.id),
        class_name=school_class.class_name,
        description=school_class.description,
        student_ids=list(school_class.student_ids),
    )


@router.post("", response_model=ClassOut, status_code=status.HTTP_201_CREATED)
async def create_class(
    body: ClassCreateIn,
    principal: Annotated[Principal, Depends(require_role(TEACHER))],
    stores: Annotated[Stores, Depends(get_stores)],
) -> ClassOut:
    school_class = SchoolClass.new(
        teacher_id=principal.user_id,
        class_name=body.class_name,
        description=body.description,
    )
    await stores.roster.add_class(school_class)
    logger.info("Class %s created by teacher=%s", school_class.id, principal.user_id)
    return _to_out(school_class)


@router.get("", response_model=list[ClassOut])
async def list_classes(
    principal: Annotated[Principal, Depends(require_role(TEACHER))],
    stores: Annotated[Stores, Depends(get_stores)],
) -> list[ClassOut]:
    return [_to_out(c) for c in await stores.roster.list_classes(principal.user_id)]


@router.put("/{class_id}/students", response_model=ClassOut)
async def set_class_students(
    class_id: UUID,
    body: ClassStudentsIn,
    principal: Annotated[Principal, Depends(require_role(TEACHER))],
    stores: Annotated[Stores, Depends(get_stores)],
) -> ClassOut:
    school_class = await stores.roster.get_class(class_id)
    if school_class is None or school_class.teacher_id != principal.user_id:
        raise HTTPException(status_code=404, detail="class not found")

    owned = await stores.roster.students_of(principal.user_id)
    kept: list[str] = []
    for student_id in body.student_ids:
        if student_id in owned and student_id not in kept:
            kept.append(student_id)
    dropped = [s for s in body.student_ids if s not in owned]
    if dropped:
        logger.warning(
            "Dropped %d id(s) not linked to teacher=%s from class=%s",
            len(dropped),
            principal.user_id,
            class_id,
        )

    updated = await stores.roster.set_class_students(class_id, tuple(kept))
    if updated is None:
        raise HTTPException(status_code=404, detail="class not found")
    return _to_out(updated)
