"""Demo: teacher issues a quiz, student takes it, guardian reviews it.

Runs entirely in memory through FastAPI's TestClient:
    python scripts/demo_quiz_flow.py
"""

from __future__ import annotations

import asyncio

from fastapi.testclient import TestClient

from quiz_service.main import app
from quiz_service.repos.stores import roster_store
from quiz_service.services import token_service

TEACHER = "demo-teacher"
STUDENT = "demo-student"
GUARDIAN = "demo-guardian"


def _auth(sub: str, role: str) -> dict[str, str]:
    token = token_service.create_access_token(sub=sub, roles=[role])
    return {"Authorization": f"Bearer {token}"}


async def _seed_roster() -> None:
    await roster_store.link_student(TEACHER, STUDENT)
    await roster_store.link_guardian(GUARDIAN, STUDENT)


def main() -> None:
    asyncio.run(_seed_roster())
    teacher, student, guardian = (
        _auth(TEACHER, "teacher"),
        _auth(STUDENT, "student"),
        _auth(GUARDIAN, "guardian"),
    )

    with TestClient(app) as client:
        # ── Step 1: teacher creates a quiz ──────────────────────────
        r = client.post(
            "/v1/quizzes",
            json={
                "title": "Fractions",
                "questions": [
                    {"question_text": "1/2 + 1/2?", "options": ["1", "2"], "correct_option_index": 0},
                    {"question_text": "1/4 of 8?", "options": ["2", "4"], "correct_option_index": 0},
                    {"question_text": "3/3?", "options": ["0", "1"], "correct_option_index": 1},
                ],
            },
            headers=teacher,
        )
        quiz_id = r.json()["id"]
        print(f"1. POST /v1/quizzes          → {r.status_code}  quiz={quiz_id}")

        # ── Step 2: teacher assigns it ──────────────────────────────
        r = client.post(
            "/v1/assignments",
            json={"quiz_id": quiz_id, "student_ids": [STUDENT, "stranger"]},
            headers=teacher,
        )
        assignment_id = r.json()["assignment_ids"][0]
        print(f"2. POST /v1/assignments      → {r.status_code}  assigned={r.json()['assigned_count']}")

        # ── Step 3: student takes it ────────────────────────────────
        r = client.post("/v1/attempts", json={"assignment_id": assignment_id}, headers=student)
        session_id = r.json()["id"]
        print(f"3. POST /v1/attempts         → {r.status_code}  state={r.json()['state']}")

        for question_id, option in (("q1", 0), ("q2", 1), ("q3", 1)):
            client.put(
                f"/v1/attempts/{session_id}/answers",
                json={"question_id": question_id, "option_index": option},
                headers=student,
            )
        r = client.post(f"/v1/attempts/{session_id}/submit", headers=student)
        result = r.json()["result"]
        print(f"4. POST .../submit           → {r.status_code}  score={result['score']}/{result['total_questions']}")

        # ── Step 4: guardian reviews ────────────────────────────────
        r = client.get(f"/v1/assignments/{assignment_id}/review", headers=guardian)
        marks = ["✓" if q["correct"] else "✗" for q in r.json()["questions"]]
        print(f"5. GET  .../review (guardian) → {r.status_code}  {' '.join(marks)}")


if __name__ == "__main__":
    main()
