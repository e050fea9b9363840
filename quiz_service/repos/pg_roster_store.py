"""PostgreSQL implementation of RosterStore."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from quiz_service.db.tables import GuardianLinkRow, SchoolClassRow, TeacherStudentRow
from quiz_service.models.roster import SchoolClass


class PgRosterStore:
    """Satisfies the RosterStore Protocol using SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def students_of(self, teacher_id: str) -> set[str]:
        stmt = select(TeacherStudentRow.student_id).where(
            TeacherStudentRow.teacher_id == teacher_id
        )
        return set((await self._session.execute(stmt)).scalars().all())

    async def link_student(self, teacher_id: str, student_id: str) -> None:
        if await self._session.get(TeacherStudentRow, (teacher_id, student_id)):
            return
        self._session.add(TeacherStudentRow(teacher_id=teacher_id, student_id=student_id))
        await self._session.flush()

    async def get_class(self, class_id: UUID) -> SchoolClass | None:
        row = await self._session.get(SchoolClassRow, class_id)
        if row is None:
            return None
        return _row_to_class(row)

    async def list_classes(self, teacher_id: str) -> list[SchoolClass]:
        stmt = select(SchoolClassRow).where(SchoolClassRow.teacher_id == teacher_id)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_class(r) for r in rows]

    async def add_class(self, school_class: SchoolClass) -> None:
        self._session.add(
            SchoolClassRow(
                id=school_class.id,
                teacher_id=school_class.teacher_id,
                class_name=school_class.class_name,
                description=school_class.description,
                student_ids=list(school_class.student_ids),
            )
        )
        await self._session.flush()

    async def set_class_students(
        self, class_id: UUID, student_ids: tuple[str, ...]
    ) -> SchoolClass | None:
        stmt = (
            update(SchoolClassRow)
            .where(SchoolClassRow.id == class_id)
            .values(student_ids=list(student_ids))
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            return None
        row = (
            await self._session.execute(
                select(SchoolClassRow)
                .where(SchoolClassRow.id == class_id)
                .execution_options(populate_existing=True)
            )
        ).scalar_one()
        return _row_to_class(row)

    async def guardians_of(self, student_id: str) -> set[str]:
        stmt = select(GuardianLinkRow.guardian_id).where(
            GuardianLinkRow.student_id == student_id
        )
        return set((await self._session.execute(stmt)).scalars().all())

    async def link_guardian(self, guardian_id: str, student_id: str) -> None:
        if await self._session.get(GuardianLinkRow, (guardian_id, student_id)):
            return
        self._session.add(GuardianLinkRow(guardian_id=guardian_id, student_id=student_id))
        await self._session.flush()

    async def is_guardian_of(self, guardian_id: str, student_id: str) -> bool:
        row = await self._session.get(GuardianLinkRow, (guardian_id, student_id))
        return row is not None


def _row_to_class(row: SchoolClassRow) -> SchoolClass:
    return SchoolClass(
        id=row.id,
        teacher_id=row.teacher_id,
        class_name=row.class_name,
        description=row.description or "",
        student_ids=tuple(row.student_ids or ()),
    )
