"""Roster expansion: turn a target selector into concrete student ids."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from quiz_service.core.errors import InvalidSelector
from quiz_service.repos.roster_store import RosterStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TargetSelector:
    student_ids: tuple[str, ...] = ()
    class_id: UUID | None = None
    all_students: bool = False

    def validate(self) -> None:
        named = any(s.strip() for s in self.student_ids)
        if not named and self.class_id is None and not self.all_students:
            raise InvalidSelector(
                "selector must name students, a class, or all students"
            )


async def resolve_roster(
    selector: TargetSelector, *, teacher_id: str, roster: RosterStore
) -> tuple[str, ...]:
    """Expand the selector to the teacher's students, deduplicated.

    Ids the teacher does not own, and classes that are unknown or belong
    to someone else, are dropped with a warning rather than failing the
    whole selection. Order: explicit ids first, then class members, then
    the rest of "all students" sorted.
    """
    selector.validate()

    owned = await roster.students_of(teacher_id)
    candidates: list[str] = [s.strip() for s in selector.student_ids if s.strip()]

    if selector.class_id is not None:
        school_class = await roster.get_class(selector.class_id)
        if school_class is None or school_class.teacher_id != teacher_id:
            logger.warning(
                "Ignoring class=%s: not found or not owned by teacher=%s",
                selector.class_id,
                teacher_id,
            )
        else:
            candidates.extend(school_class.student_ids)

    if selector.all_students:
        candidates.extend(sorted(owned))

    resolved: list[str] = []
    seen: set[str] = set()
    excluded: list[str] = []
    for student_id in candidates:
        if student_id in seen:
            continue
        seen.add(student_id)
        if student_id not in owned:
            excluded.append(student_id)
            continue
        resolved.append(student_id)

    if excluded:
        logger.warning(
            "Excluded %d id(s) not linked to teacher=%s: %s",
            len(excluded),
            teacher_id,
            excluded,
        )
    logger.debug("Resolved %d student(s) for teacher=%s", len(resolved), teacher_id)
    return tuple(resolved)
