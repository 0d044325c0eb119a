from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from avashift.core.errors import NotFoundError
from avashift.models import Student, User


@dataclass(frozen=True)
class DirectoryEntry:
    user_id: int
    name: str
    email: str
    role: str
    # student-only
    punctuality_score: float | None = None
    rating: float | None = None


class UserDirectory:
    """Resolves any user id (student, shift leader, gateman, ...) to a display identity."""

    def __init__(self, db: Session):
        self.db = db

    def _entry(self, user: User, student: Student | None) -> DirectoryEntry:
        return DirectoryEntry(
            user_id=user.id,
            name=user.full_name,
            email=user.email,
            role=user.role,
            punctuality_score=student.punctuality_score if student else None,
            rating=student.rating if student else None,
        )

    def get(self, user_id: int) -> DirectoryEntry | None:
        row = self.db.execute(
            select(User, Student).outerjoin(Student, Student.user_id == User.id).where(User.id == user_id)
        ).one_or_none()
        if row is None:
            return None
        return self._entry(row[0], row[1])

    def resolve(self, user_id: int) -> DirectoryEntry:
        entry = self.get(user_id)
        if entry is None:
            raise NotFoundError(f"Requester not found for ID: {user_id}")
        return entry

    def find_by_email(self, email: str) -> DirectoryEntry | None:
        email = (email or "").strip().lower()
        if not email:
            return None
        row = self.db.execute(
            select(User, Student)
            .outerjoin(Student, Student.user_id == User.id)
            .where(func.lower(User.email) == email)
        ).one_or_none()
        if row is None:
            return None
        return self._entry(row[0], row[1])
