from datetime import datetime, timedelta

import pytest
from sqlalchemy import select

from avashift.core.errors import ConflictError, NotFoundError, PermissionDeniedError, PreconditionError
from avashift.models import AdminRequest, ShiftAssignment, Student
from avashift.services import notify
from avashift.services.notify import notify as real_notify
from avashift.services.requests import (
    apply_for_filler_shift,
    create_shift_cancellation_request,
    get_request_status,
    handle_cancellation_request,
    handle_filler_request,
    list_requests_for_requester,
    reject_request,
    submit_staff_cancellation,
)
from avashift.services.scoring import ScoringPolicy

POLICY = ScoringPolicy(rating_deduction=0.3, punctuality_deduction=2.0)


def _assignments(db, shift_id):
    return db.execute(
        select(ShiftAssignment).where(ShiftAssignment.shift_id == shift_id).order_by(ShiftAssignment.id)
    ).scalars().all()


@pytest.fixture()
def cancellation(db, make, world):
    make.assign(world.shift, world.alice, world.admin)
    res = create_shift_cancellation_request(
        db, shift_id=world.shift.id, student_id=world.alice.id, reason="Exam that day", replacement_email=world.bob.email
    )
    return db.get(AdminRequest, res["request_id"])


# ---------- creation ----------

def test_cancellation_request_references_assignment(db, world, cancellation):
    assert cancellation.request_type == "shiftCancellation"
    assert cancellation.status == "pending"
    assert cancellation.assignment.student_id == world.alice.id
    assert cancellation.replacement_email == world.bob.email


def test_cancellation_validations(db, make, world, cancellation):
    with pytest.raises(ConflictError, match="pending cancellation"):
        create_shift_cancellation_request(db, shift_id=world.shift.id, student_id=world.alice.id, reason="again")

    with pytest.raises(PreconditionError, match="not assigned"):
        create_shift_cancellation_request(db, shift_id=world.shift.id, student_id=world.bob.id, reason="x")

    past = make.shift(world.project, world.leader, world.gateman, start=datetime.now() - timedelta(days=2))
    make.assign(past, world.bob, world.admin)
    with pytest.raises(PreconditionError, match="past shifts"):
        create_shift_cancellation_request(db, shift_id=past.id, student_id=world.bob.id, reason="x")

    with pytest.raises(NotFoundError):
        create_shift_cancellation_request(db, shift_id=999, student_id=world.bob.id, reason="x")


def test_staff_cancellation_only_by_shift_staff(db, world):
    with pytest.raises(PermissionDeniedError):
        submit_staff_cancellation(db, shift_id=world.shift.id, requester_id=world.alice.id, reason="x")

    res = submit_staff_cancellation(db, shift_id=world.shift.id, requester_id=world.leader.id, reason="Sick")
    req = db.get(AdminRequest, res["request_id"])
    assert req.assignment_id is None

    with pytest.raises(ConflictError):
        submit_staff_cancellation(db, shift_id=world.shift.id, requester_id=world.leader.id, reason="Sick")


def test_requester_views(db, world, cancellation):
    items = list_requests_for_requester(db, requester_id=world.alice.id)
    assert [r.id for r in items] == [cancellation.id]
    assert list_requests_for_requester(db, requester_id=world.alice.id, status="approved") == []

    status = get_request_status(db, request_id=cancellation.id, requester_id=world.alice.id)
    assert status["status"] == "pending"
    with pytest.raises(NotFoundError):
        get_request_status(db, request_id=cancellation.id, requester_id=world.bob.id)


# ---------- cancellation approval ----------

def test_approval_swaps_in_exactly_one_replacement(db, world, cancellation, sent):
    res = handle_cancellation_request(
        db,
        request_id=cancellation.id,
        replacement_email=world.bob.email,
        should_penalize=False,
        admin_id=world.admin.id,
        policy=POLICY,
    )
    assert res["success"] is True
    assert res["penalty_details"] is None

    db.expire_all()
    rows = _assignments(db, world.shift.id)
    assert [(a.student_id, a.status) for a in rows] == [(world.alice.id, "cancelled"), (world.bob.id, "assigned")]
    assert rows[1].assigned_by == world.admin.id
    assert db.get(AdminRequest, cancellation.id).status == "approved"
    assert db.get(AdminRequest, cancellation.id).reviewed_by == world.admin.id
    # the replacement takes the vacated slot
    assert world.shift.assigned_count == 1

    templates = [(c["template"], c["to"]) for c in sent]
    assert ("shift_assignment", world.bob.email) in templates
    assert ("request_status_update", world.alice.email) in templates


def test_approval_with_penalty(db, world, cancellation):
    profile = db.execute(select(Student).where(Student.user_id == world.alice.id)).scalar_one()
    profile.rating = 4.0
    db.commit()

    res = handle_cancellation_request(
        db,
        request_id=cancellation.id,
        replacement_email=world.bob.email,
        should_penalize=True,
        admin_id=world.admin.id,
        policy=POLICY,
    )
    assert res["penalty_details"] == {"new_rating": 3.7, "new_punctuality": 98.0}
    db.expire_all()
    assert db.get(AdminRequest, cancellation.id).penalized is True


def test_second_approval_is_rejected(db, world, cancellation):
    handle_cancellation_request(
        db, request_id=cancellation.id, replacement_email=world.bob.email, should_penalize=True,
        admin_id=world.admin.id, policy=POLICY,
    )
    with pytest.raises(ConflictError, match="already been reviewed"):
        handle_cancellation_request(
            db, request_id=cancellation.id, replacement_email=world.carol.email, should_penalize=True,
            admin_id=world.admin.id, policy=POLICY,
        )
    with pytest.raises(ConflictError):
        reject_request(db, request_id=cancellation.id, admin_id=world.admin.id)

    db.expire_all()
    assert db.get(AdminRequest, cancellation.id).status == "approved"
    assert len(_assignments(db, world.shift.id)) == 2
    profile = db.execute(select(Student).where(Student.user_id == world.alice.id)).scalar_one()
    # penalized once
    assert profile.punctuality_score == 98.0


def test_concurrent_approvals_apply_once(db, session_factory, world, cancellation):
    other = session_factory()
    try:
        stale = other.get(AdminRequest, cancellation.id)
        assert stale.status == "pending"

        handle_cancellation_request(
            db, request_id=cancellation.id, replacement_email=world.bob.email, should_penalize=False,
            admin_id=world.admin.id, policy=POLICY,
        )
        with pytest.raises(ConflictError):
            handle_cancellation_request(
                other, request_id=cancellation.id, replacement_email=world.carol.email, should_penalize=False,
                admin_id=world.admin.id, policy=POLICY,
            )
    finally:
        other.close()

    db.expire_all()
    rows = _assignments(db, world.shift.id)
    assert [a.status for a in rows] == ["cancelled", "assigned"]


def test_failed_membership_check_leaves_everything_untouched(db, make, world, cancellation, sent):
    outsider = make.user("student")
    sent.clear()

    with pytest.raises(PreconditionError, match="not an active member"):
        handle_cancellation_request(
            db, request_id=cancellation.id, replacement_email=outsider.email, should_penalize=True,
            admin_id=world.admin.id, policy=POLICY,
        )

    db.expire_all()
    assert db.get(AdminRequest, cancellation.id).status == "pending"
    assert [a.status for a in _assignments(db, world.shift.id)] == ["assigned"]
    profile = db.execute(select(Student).where(Student.user_id == world.alice.id)).scalar_one()
    assert profile.punctuality_score == 100.0
    assert sent == []


def test_unknown_replacement(db, world, cancellation):
    with pytest.raises(NotFoundError, match="Replacement user not found"):
        handle_cancellation_request(
            db, request_id=cancellation.id, replacement_email="nobody@example.com", should_penalize=False,
            admin_id=world.admin.id, policy=POLICY,
        )
    db.expire_all()
    assert db.get(AdminRequest, cancellation.id).status == "pending"


def test_notification_failure_does_not_undo_approval(db, world, cancellation, monkeypatch):
    def broken(*args, **kwargs):
        raise OSError("connection refused")

    monkeypatch.setattr(notify, "notify", real_notify)
    monkeypatch.setattr(notify.settings, "NOTIFY_SERVICE_URL", "http://notify.invalid")
    monkeypatch.setattr(notify.urllib.request, "urlopen", broken)

    res = handle_cancellation_request(
        db, request_id=cancellation.id, replacement_email=world.bob.email, should_penalize=False,
        admin_id=world.admin.id, policy=POLICY,
    )
    assert res["success"] is True
    db.expire_all()
    assert db.get(AdminRequest, cancellation.id).status == "approved"


def test_staff_cancellation_moves_leader_slot(db, make, world):
    new_leader = make.user("shift_leader")
    make.member(world.project, new_leader)
    res = submit_staff_cancellation(db, shift_id=world.shift.id, requester_id=world.leader.id, reason="Travel")

    handle_cancellation_request(
        db, request_id=res["request_id"], replacement_email=new_leader.email, should_penalize=True,
        admin_id=world.admin.id, policy=POLICY,
    )
    db.expire_all()
    assert world.shift.leader_id == new_leader.id
    assert db.get(AdminRequest, res["request_id"]).penalized is False


def test_staff_replacement_needs_matching_membership(db, world):
    res = submit_staff_cancellation(db, shift_id=world.shift.id, requester_id=world.gateman.id, reason="Travel")
    with pytest.raises(PreconditionError):
        handle_cancellation_request(
            db, request_id=res["request_id"], replacement_email=world.bob.email, should_penalize=False,
            admin_id=world.admin.id, policy=POLICY,
        )
    db.expire_all()
    assert world.shift.gateman_id == world.gateman.id


# ---------- filler shifts ----------

@pytest.fixture()
def filler(make, world):
    return make.shift(
        world.project, world.leader, world.gateman,
        start=world.shift.start_time + timedelta(days=1), required_students=1, shift_type="filler",
    )


def test_filler_application_and_approval(db, world, filler, sent):
    res = apply_for_filler_shift(db, shift_id=filler.id, student_id=world.carol.id)
    assert res["success"] is True

    with pytest.raises(ConflictError, match="pending application"):
        apply_for_filler_shift(db, shift_id=filler.id, student_id=world.carol.id)

    out = handle_filler_request(db, request_id=res["request_id"], action="approve", admin_id=world.admin.id)
    assert out["message"] == "Filler request approved successfully"

    db.expire_all()
    rows = _assignments(db, filler.id)
    assert [(a.student_id, a.status) for a in rows] == [(world.carol.id, "assigned")]
    assert filler.assigned_count == 1
    assert sent[-1]["template"] == "request_status_update"
    assert sent[-1]["fields"]["new_status"] == "approved"


def test_filler_rejection_has_no_side_effect(db, world, filler, sent):
    res = apply_for_filler_shift(db, shift_id=filler.id, student_id=world.carol.id)
    handle_filler_request(db, request_id=res["request_id"], action="reject", admin_id=world.admin.id)

    db.expire_all()
    assert _assignments(db, filler.id) == []
    assert db.get(AdminRequest, res["request_id"]).status == "rejected"
    assert sent[-1]["fields"]["new_status"] == "rejected"


def test_filler_validations(db, make, world, filler):
    with pytest.raises(PreconditionError, match="not a filler shift"):
        apply_for_filler_shift(db, shift_id=world.shift.id, student_id=world.carol.id)

    outsider = make.user("student")
    with pytest.raises(PermissionDeniedError):
        apply_for_filler_shift(db, shift_id=filler.id, student_id=outsider.id)

    # overlapping with an assignment elsewhere
    overlapping = make.shift(
        world.project, world.leader, world.gateman,
        start=filler.start_time + timedelta(hours=2), required_students=2,
    )
    make.assign(overlapping, world.bob, world.admin)
    with pytest.raises(PreconditionError, match="during this time"):
        apply_for_filler_shift(db, shift_id=filler.id, student_id=world.bob.id)

    make.assign(filler, world.alice, world.admin)
    with pytest.raises(PreconditionError, match="fully staffed"):
        apply_for_filler_shift(db, shift_id=filler.id, student_id=world.carol.id)


def test_filler_approval_rechecks_capacity(db, make, world, filler):
    res = apply_for_filler_shift(db, shift_id=filler.id, student_id=world.carol.id)
    make.assign(filler, world.alice, world.admin)

    with pytest.raises(PreconditionError, match="fully staffed"):
        handle_filler_request(db, request_id=res["request_id"], action="approve", admin_id=world.admin.id)
    db.expire_all()
    assert db.get(AdminRequest, res["request_id"]).status == "pending"
