from datetime import datetime, timedelta

import pytest

from avashift.core.errors import ConflictError
from avashift.models import AdminRequest, Shift, ShiftAssignment, VerificationCode
from avashift.scripts.advance_shift_status import advance
from avashift.services.transitions import can_transition, compare_and_set, predecessors, transition


def test_transition_table():
    assert can_transition(Shift, "draft", "published")
    assert not can_transition(Shift, "published", "completed")
    assert not can_transition(Shift, "draft", "completed")

    assert can_transition(ShiftAssignment, "assigned", "confirmed")
    assert not can_transition(ShiftAssignment, "cancelled", "assigned")
    assert not can_transition(ShiftAssignment, "completed", "cancelled")

    assert not can_transition(VerificationCode, "used", "active")
    assert not can_transition(AdminRequest, "approved", "pending")
    assert not can_transition(AdminRequest, "rejected", "approved")


def test_predecessors():
    assert predecessors(ShiftAssignment, "cancelled") == ["assigned", "confirmed", "pending"]
    assert predecessors(AdminRequest, "approved") == ["pending"]
    assert predecessors(AdminRequest, "pending") == []


def test_transition_rejects_illegal_edge(world):
    with pytest.raises(ConflictError):
        transition(world.shift, "draft")
    transition(world.shift, "in_progress")
    assert world.shift.status == "in_progress"


def test_compare_and_set_has_one_winner(db, session_factory, world):
    req = AdminRequest(request_type="availabilityChange", requester_id=world.alice.id, shift_id=world.shift.id)
    db.add(req)
    db.commit()

    other = session_factory()
    try:
        other.get(AdminRequest, req.id)

        compare_and_set(db, AdminRequest, req.id, "approved", reviewed_by=world.admin.id)
        db.commit()

        with pytest.raises(ConflictError, match="changed by someone else"):
            compare_and_set(other, AdminRequest, req.id, "rejected")
        other.rollback()
    finally:
        other.close()

    db.expire_all()
    assert db.get(AdminRequest, req.id).status == "approved"
    assert db.get(AdminRequest, req.id).reviewed_by == world.admin.id


def test_sweeper_advances_shifts(db, make, world):
    now = datetime.now()
    running = make.shift(world.project, world.leader, world.gateman, start=now - timedelta(hours=1))
    finished = make.shift(world.project, world.leader, world.gateman, start=now - timedelta(days=1))
    draft = Shift(
        project_id=world.project.id,
        date=now.date(),
        day_of_week="monday",
        time_type="day",
        start_time=now - timedelta(days=2),
        stop_time=now - timedelta(days=2) + timedelta(hours=4),
        required_students=1,
        leader_id=world.leader.id,
        gateman_id=world.gateman.id,
    )
    db.add(draft)
    db.commit()

    assert advance(db, now, dry_run=True) == 0
    assert advance(db, now) == 2

    db.expire_all()
    assert running.status == "in_progress"
    assert finished.status == "completed"
    assert draft.status == "draft"
    # tomorrow's shift is untouched
    assert world.shift.status == "published"
