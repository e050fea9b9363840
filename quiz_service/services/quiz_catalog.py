from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from quiz_service.core.clock import Clock
from quiz_service.models.quiz import Question, QuizDefinition
from quiz_service.repos.quiz_repo import QuizRepo

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class QuestionDraft:
    question_text: str
    options: Sequence[str]
    correct_option_index: int
    id: str | None = None


async def create_quiz(
    quizzes: QuizRepo,
    *,
    creator_id: str,
    title: str,
    questions: Sequence[QuestionDraft],
    clock: Clock,
    description: str = "",
    time_limit_minutes: int | None = None,
) -> QuizDefinition:
    """Validate and store a new quiz definition.

    Questions without an id get a positional one (q1, q2, ...), which is
    stable because order is fixed at creation.

    Raises InvalidQuizDefinition on any structural problem.
    """
    built = tuple(
        Question(
            id=(d.id or f"q{i}").strip(),
            question_text=d.question_text.strip(),
            options=tuple(o.strip() for o in d.options),
            correct_option_index=d.correct_option_index,
        )
        for i, d in enumerate(questions, start=1)
    )
    quiz = QuizDefinition.new(
        creator_id=creator_id,
        title=title,
        questions=built,
        description=description,
        time_limit_minutes=time_limit_minutes,
        created_at=clock.now(),
    )
    await quizzes.add(quiz)
    logger.info(
        "Created quiz id=%s creator=%s questions=%d time_limit=%s",
        quiz.id,
        creator_id,
        len(built),
        quiz.time_limit_minutes,
        extra={"quiz_id": str(quiz.id), "user_id": creator_id},
    )
    return quiz
