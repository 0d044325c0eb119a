"""Student reputation: punctuality score (0-100) and rating (1.0-5.0).

Nothing else writes these two fields.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from avashift.core.config import settings
from avashift.core.errors import NotFoundError, PermissionDeniedError, PreconditionError
from avashift.models import Shift, Student
from avashift.services.shifts import get_held_assignment

log = logging.getLogger("avashift.scoring")

HISTORICAL_WEIGHT = 0.7
SUBMITTED_WEIGHT = 0.3

MIN_RATING = 1.0
MAX_RATING = 5.0
MIN_PUNCTUALITY = 0.0


@dataclass(frozen=True)
class ScoringPolicy:
    rating_deduction: float
    punctuality_deduction: float


@dataclass(frozen=True)
class PenaltyDetails:
    new_rating: float
    new_punctuality: float


def default_policy() -> ScoringPolicy:
    return ScoringPolicy(
        rating_deduction=settings.PENALTY_RATING_DEDUCTION,
        punctuality_deduction=settings.PENALTY_PUNCTUALITY_DEDUCTION,
    )


def calculate_new_rating(current_rating: float, submitted_rating: float) -> float:
    # historical rating dominates so one shift cannot swing it
    return round(current_rating * HISTORICAL_WEIGHT + submitted_rating * SUBMITTED_WEIGHT, 1)


def apply_penalty(rating: float, punctuality: float, policy: ScoringPolicy) -> PenaltyDetails:
    return PenaltyDetails(
        new_rating=round(max(MIN_RATING, rating - policy.rating_deduction), 2),
        new_punctuality=round(max(MIN_PUNCTUALITY, punctuality - policy.punctuality_deduction), 2),
    )


def _get_student(db: Session, student_id: int) -> Student:
    student = db.execute(select(Student).where(Student.user_id == student_id)).scalar_one_or_none()
    if student is None:
        raise NotFoundError("Student not found")
    return student


def penalize_student(db: Session, *, student_id: int, policy: ScoringPolicy) -> PenaltyDetails:
    """Deduct the penalty from a student. Does not commit, the caller owns the transaction."""
    student = _get_student(db, student_id)
    details = apply_penalty(student.rating, student.punctuality_score, policy)
    student.rating = details.new_rating
    student.punctuality_score = details.new_punctuality
    log.info(
        "student %s penalized: rating=%s punctuality=%s", student_id, details.new_rating, details.new_punctuality
    )
    return details


def update_student_rating(
    db: Session,
    *,
    student_id: int,
    submitted_rating: float,
    leader_id: int,
    shift_id: int,
) -> float:
    if not (MIN_RATING <= submitted_rating <= MAX_RATING):
        raise PreconditionError("Rating must be between 1 and 5")

    shift = db.get(Shift, shift_id)
    if shift is None:
        raise NotFoundError("Shift not found")
    if shift.leader_id != leader_id:
        raise PermissionDeniedError("Only the shift leader can rate students of this shift")

    if get_held_assignment(db, shift_id=shift_id, student_id=student_id) is None:
        raise PreconditionError("Student is not assigned to this shift")

    student = _get_student(db, student_id)
    student.rating = calculate_new_rating(student.rating, submitted_rating)
    db.commit()
    return student.rating
