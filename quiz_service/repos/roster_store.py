"""Relationship store: who teaches whom, class rosters, guardian links.

Owned by the surrounding platform; this service reads it to expand
roster selectors and to authorize guardian reviews. The write methods
exist so the class endpoints and tests can populate it.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from quiz_service.models.roster import GuardianLink, SchoolClass


class RosterStore(Protocol):
    async def students_of(self, teacher_id: str) -> set[str]: ...
    async def link_student(self, teacher_id: str, student_id: str) -> None: ...
    async def get_class(self, class_id: UUID) -> SchoolClass | None: ...
    async def list_classes(self, teacher_id: str) -> list[SchoolClass]: ...
    async def add_class(self, school_class: SchoolClass) -> None: ...
    async def set_class_students(
        self, class_id: UUID, student_ids: tuple[str, ...]
    ) -> SchoolClass | None: ...
    async def guardians_of(self, student_id: str) -> set[str]: ...
    async def link_guardian(self, guardian_id: str, student_id: str) -> None: ...
    async def is_guardian_of(self, guardian_id: str, student_id: str) -> bool: ...


class InMemoryRosterStore:
    def __init__(self) -> None:
        self._students: dict[str, set[str]] = {}
        self._classes: dict[UUID, SchoolClass] = {}
        self._guardian_links: set[GuardianLink] = set()

    async def students_of(self, teacher_id: str) -> set[str]:
        return set(self._students.get(teacher_id, ()))

    async def link_student(self, teacher_id: str, student_id: str) -> None:
        self._students.setdefault(teacher_id, set()).add(student_id)

    async def get_class(self, class_id: UUID) -> SchoolClass | None:
        return self._classes.get(class_id)

    async def list_classes(self, teacher_id: str) -> list[SchoolClass]:
        return [c for c in reversed(self._classes.values()) if c.teacher_id == teacher_id]

    async def add_class(self, school_class: SchoolClass) -> None:
        if school_class.id in self._classes:
            raise ValueError("class already exists")
        self._classes[school_class.id] = school_class

    async def set_class_students(
        self, class_id: UUID, student_ids: tuple[str, ...]
    ) -> SchoolClass | None:
        existing = self._classes.get(class_id)
        if existing is None:
            return None
        updated = replace(existing, student_ids=student_ids)
        self._classes[class_id] = updated
        return updated

    async def guardians_of(self, student_id: str) -> set[str]:
        return {link.guardian_id for link in self._guardian_links if link.student_id == student_id}

    async def link_guardian(self, guardian_id: str, student_id: str) -> None:
        self._guardian_links.add(GuardianLink(guardian_id, student_id))

    async def is_guardian_of(self, guardian_id: str, student_id: str) -> bool:
        return GuardianLink(guardian_id, student_id) in self._guardian_links
