"""SQLAlchemy table definitions.

These map to the frozen dataclass domain models in quiz_service/models/.
Repos convert between rows and dataclasses. Column types are the generic
SQLAlchemy ones (Uuid, JSON) so the same tables run on PostgreSQL in
production and on SQLite in the repository tests.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from quiz_service.db.engine import Base


class QuizRow(Base):
    __tablename__ = "quizzes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    creator_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    time_limit_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # [{id, question_text, options: [...], correct_option_index}, ...] in order
    questions: Mapped[list[dict]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )


class AssignmentRow(Base):
    __tablename__ = "quiz_assignments"
    __table_args__ = (
        Index("ix_quiz_assignments_quiz_student", "quiz_id", "student_id"),
        Index("ix_quiz_assignments_teacher_status", "assigned_by_teacher_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # No uniqueness on (quiz_id, student_id): re-assignment is a new attempt
    quiz_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("quizzes.id"), nullable=False
    )
    student_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    assigned_by_teacher_id: Mapped[str] = mapped_column(String(128), nullable=False)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default="assigned"
    )  # assigned|completed
    assigned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    available_from: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    due_by: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_questions: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # [{question_id, selected_option_index}, ...]
    submitted_answers: Mapped[list[dict] | None] = mapped_column(JSON, nullable=True)
    submitted_late: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )


class SchoolClassRow(Base):
    __tablename__ = "classes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    teacher_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    class_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    student_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)


class TeacherStudentRow(Base):
    __tablename__ = "teacher_students"

    teacher_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    student_id: Mapped[str] = mapped_column(String(128), primary_key=True)


class GuardianLinkRow(Base):
    __tablename__ = "guardian_links"

    guardian_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    student_id: Mapped[str] = mapped_column(String(128), primary_key=True)
