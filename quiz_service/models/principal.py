from __future__ import annotations

from dataclasses import dataclass

TEACHER = "teacher"
STUDENT = "student"
GUARDIAN = "guardian"


@dataclass(frozen=True, slots=True)
class Principal:
    """Verified caller identity extracted from the bearer JWT.

    The identity provider owns authentication; this service only trusts
    the ``sub`` and ``roles`` claims it signed.
    """

    user_id: str
    roles: frozenset[str]

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def has_any_role(self, roles: set[str]) -> bool:
        return bool(self.roles & roles)

    @property
    def is_teacher(self) -> bool:
        return TEACHER in self.roles

    @property
    def is_student(self) -> bool:
        return STUDENT in self.roles

    @property
    def is_guardian(self) -> bool:
        return GUARDIAN in self.roles
