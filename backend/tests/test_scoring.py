import pytest
from sqlalchemy import select

from avashift.core.errors import PermissionDeniedError, PreconditionError
from avashift.models import Student
from avashift.services.scoring import (
    ScoringPolicy,
    apply_penalty,
    calculate_new_rating,
    penalize_student,
    update_student_rating,
)

POLICY = ScoringPolicy(rating_deduction=0.3, punctuality_deduction=2.0)


def _profile(db, user):
    return db.execute(select(Student).where(Student.user_id == user.id)).scalar_one()


def test_new_rating_is_weighted_towards_history():
    assert calculate_new_rating(4.0, 5.0) == 4.3
    assert calculate_new_rating(5.0, 1.0) == 3.8


def test_penalty_floors_rating_and_punctuality():
    details = apply_penalty(1.1, 1.0, POLICY)
    assert details.new_rating == 1.0
    assert details.new_punctuality == 0.0

    details = apply_penalty(4.0, 90.0, POLICY)
    assert details.new_rating == 3.7
    assert details.new_punctuality == 88.0


def test_penalty_never_goes_below_floor_after_many_rounds():
    rating, punctuality = 5.0, 10.0
    for _ in range(30):
        d = apply_penalty(rating, punctuality, POLICY)
        rating, punctuality = d.new_rating, d.new_punctuality
    assert rating == 1.0
    assert punctuality == 0.0


def test_penalize_student_updates_profile_without_commit(db, world):
    profile = _profile(db, world.alice)
    profile.rating = 1.1
    db.commit()

    details = penalize_student(db, student_id=world.alice.id, policy=POLICY)
    assert details.new_rating == 1.0
    assert details.new_punctuality == 98.0

    db.rollback()
    assert _profile(db, world.alice).rating == 1.1


def test_leader_rating_updates_student(db, make, world):
    make.assign(world.shift, world.alice, world.admin)

    profile = _profile(db, world.alice)
    profile.rating = 4.0
    db.commit()

    new_rating = update_student_rating(
        db, student_id=world.alice.id, submitted_rating=5, leader_id=world.leader.id, shift_id=world.shift.id
    )
    assert new_rating == 4.3
    db.expire_all()
    assert _profile(db, world.alice).rating == 4.3


def test_rating_rejected_from_non_leader_or_out_of_range(db, make, world):
    make.assign(world.shift, world.alice, world.admin)

    with pytest.raises(PermissionDeniedError):
        update_student_rating(
            db, student_id=world.alice.id, submitted_rating=4, leader_id=world.gateman.id, shift_id=world.shift.id
        )
    with pytest.raises(PreconditionError):
        update_student_rating(
            db, student_id=world.alice.id, submitted_rating=6, leader_id=world.leader.id, shift_id=world.shift.id
        )


def test_rating_requires_assignment(db, world):
    with pytest.raises(PreconditionError, match="not assigned"):
        update_student_rating(
            db, student_id=world.bob.id, submitted_rating=4, leader_id=world.leader.id, shift_id=world.shift.id
        )
