from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class SchoolClass:
    id: UUID
    teacher_id: str
    class_name: str
    description: str = ""
    student_ids: tuple[str, ...] = ()

    @staticmethod
    def new(*, teacher_id: str, class_name: str, description: str = "") -> SchoolClass:
        return SchoolClass(
            id=uuid4(),
            teacher_id=teacher_id,
            class_name=class_name.strip(),
            description=description.strip(),
        )


@dataclass(frozen=True, slots=True)
class GuardianLink:
    guardian_id: str
    student_id: str
