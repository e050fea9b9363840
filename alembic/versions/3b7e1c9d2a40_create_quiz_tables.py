"""create quiz tables

Revision ID: 3b7e1c9d2a40
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b7e1c9d2a40"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "quizzes",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("creator_id", sa.String(length=128), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("time_limit_minutes", sa.Integer(), nullable=True),
        sa.Column("questions", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_quizzes_creator_id", "quizzes", ["creator_id"])

    op.create_table(
        "quiz_assignments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("quiz_id", sa.Uuid(), sa.ForeignKey("quizzes.id"), nullable=False),
        sa.Column("student_id", sa.String(length=128), nullable=False),
        sa.Column("assigned_by_teacher_id", sa.String(length=128), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="assigned"),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("available_from", sa.DateTime(timezone=True), nullable=True),
        sa.Column("due_by", sa.DateTime(timezone=True), nullable=True),
        sa.Column("score", sa.Integer(), nullable=True),
        sa.Column("total_questions", sa.Integer(), nullable=True),
        sa.Column("submitted_answers", sa.JSON(), nullable=True),
        sa.Column("submitted_late", sa.Boolean(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_quiz_assignments_student_id", "quiz_assignments", ["student_id"])
    op.create_index(
        "ix_quiz_assignments_quiz_student", "quiz_assignments", ["quiz_id", "student_id"]
    )
    op.create_index(
        "ix_quiz_assignments_teacher_status",
        "quiz_assignments",
        ["assigned_by_teacher_id", "status"],
    )

    op.create_table(
        "classes",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("teacher_id", sa.String(length=128), nullable=False),
        sa.Column("class_name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("student_ids", sa.JSON(), nullable=False),
    )
    op.create_index("ix_classes_teacher_id", "classes", ["teacher_id"])

    op.create_table(
        "teacher_students",
        sa.Column("teacher_id", sa.String(length=128), primary_key=True),
        sa.Column("student_id", sa.String(length=128), primary_key=True),
    )

    op.create_table(
        "guardian_links",
        sa.Column("guardian_id", sa.String(length=128), primary_key=True),
        sa.Column("student_id", sa.String(length=128), primary_key=True),
    )


def downgrade() -> None:
    op.drop_table("guardian_links")
    op.drop_table("teacher_students")
    op.drop_index("ix_classes_teacher_id", table_name="classes")
    op.drop_table("classes")
    op.drop_index("ix_quiz_assignments_teacher_status", table_name="quiz_assignments")
    op.drop_index("ix_quiz_assignments_quiz_student", table_name="quiz_assignments")
    op.drop_index("ix_quiz_assignments_student_id", table_name="quiz_assignments")
    op.drop_table("quiz_assignments")
    op.drop_index("ix_quizzes_creator_id", table_name="quizzes")
    op.drop_table("quizzes")
