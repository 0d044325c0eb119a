from datetime import datetime, timedelta

import pytest
from sqlalchemy import select

from avashift.core.errors import ConflictError, NotFoundError, PreconditionError
from avashift.models import ShiftAssignment
from avashift.services.projects import deactivate_member
from avashift.services.shifts import (
    combine_date_and_time,
    create_assignment,
    create_shift,
    list_shift_assignments,
    set_shift_status,
    update_shift,
)


def test_combine_date_and_time_from_strings():
    assert combine_date_and_time("2026-03-02", "09:30") == datetime(2026, 3, 2, 9, 30)
    assert combine_date_and_time("2026-03-02T00:00:00.000Z", "21:00") == datetime(2026, 3, 2, 21, 0)


def test_create_shift_is_published_and_empty(world):
    s = world.shift
    assert s.status == "published"
    assert s.assigned_count == 0
    assert s.stop_time - s.start_time == timedelta(hours=8)
    assert s.day_of_week == s.start_time.strftime("%A").lower()


def test_create_shift_validates_staff_and_times(db, make, world):
    with pytest.raises(PreconditionError, match="Shift leader"):
        make.shift(world.project, world.alice, world.gateman)
    with pytest.raises(PreconditionError, match="Gateman"):
        make.shift(world.project, world.leader, world.leader)
    with pytest.raises(PreconditionError, match="end after"):
        create_shift(
            db,
            project_id=world.project.id,
            leader_id=world.leader.id,
            gateman_id=world.gateman.id,
            start_date="2026-03-02",
            start_time="17:00",
            end_date="2026-03-02",
            end_time="09:00",
            required_students=2,
            time_type="day",
            created_by=world.admin.id,
        )
    with pytest.raises(NotFoundError):
        create_shift(
            db,
            project_id=999,
            leader_id=world.leader.id,
            gateman_id=world.gateman.id,
            start_date="2026-03-02",
            start_time="09:00",
            end_date="2026-03-02",
            end_time="17:00",
            required_students=2,
            time_type="day",
            created_by=world.admin.id,
        )


def test_night_shift_spans_midnight(db, world):
    s = create_shift(
        db,
        project_id=world.project.id,
        leader_id=world.leader.id,
        gateman_id=world.gateman.id,
        start_date="2026-03-02",
        start_time="22:00",
        end_date="2026-03-03",
        end_time="06:00",
        required_students=2,
        time_type="night",
        created_by=world.admin.id,
    )
    assert s.start_time == datetime(2026, 3, 2, 22, 0)
    assert s.stop_time == datetime(2026, 3, 3, 6, 0)
    assert s.day_of_week == "monday"


def test_assignment_increments_count_and_notifies(db, world, sent):
    a = create_assignment(db, shift_id=world.shift.id, student_id=world.alice.id, assigned_by=world.admin.id)
    assert a.status == "assigned"
    assert a.assigned_by == world.admin.id
    assert a.confirmed_at is None

    db.refresh(world.shift)
    assert world.shift.assigned_count == 1

    assert sent[-1]["template"] == "shift_assignment"
    assert sent[-1]["to"] == world.alice.email
    assert sent[-1]["fields"]["project_name"] == "Harbour Festival"


def test_duplicate_assignment_conflicts(db, make, world):
    make.assign(world.shift, world.alice, world.admin)
    with pytest.raises(ConflictError):
        make.assign(world.shift, world.alice, world.admin)

    db.refresh(world.shift)
    assert world.shift.assigned_count == 1


def test_full_shift_rejects_assignment(db, make, world):
    shift = make.shift(world.project, world.leader, world.gateman, required_students=1)
    make.assign(shift, world.alice, world.admin)
    with pytest.raises(PreconditionError, match="fully staffed"):
        make.assign(shift, world.bob, world.admin)


def test_assignment_requires_active_student_membership(db, make, world):
    deactivate_member(db, project_id=world.project.id, user_id=world.bob.id)
    with pytest.raises(PreconditionError, match="not an active member"):
        make.assign(world.shift, world.bob, world.admin)

    outsider = make.user("student")
    with pytest.raises(PreconditionError):
        make.assign(world.shift, outsider, world.admin)

    db.refresh(world.shift)
    assert world.shift.assigned_count == 0


def test_shift_status_follows_lifecycle(db, world):
    with pytest.raises(ConflictError):
        set_shift_status(db, shift_id=world.shift.id, status="completed")

    assert set_shift_status(db, shift_id=world.shift.id, status="in_progress").status == "in_progress"
    assert set_shift_status(db, shift_id=world.shift.id, status="completed").status == "completed"

    with pytest.raises(ConflictError):
        set_shift_status(db, shift_id=world.shift.id, status="published")


def test_update_shift_keeps_capacity_above_assigned(db, make, world):
    make.assign(world.shift, world.alice, world.admin)
    make.assign(world.shift, world.bob, world.admin)
    s = world.shift

    kwargs = dict(
        shift_id=s.id,
        leader_id=world.leader.id,
        gateman_id=world.gateman.id,
        start_date=s.start_time.date(),
        start_time="10:00",
        end_date=s.start_time.date(),
        end_time="18:00",
        time_type="day",
        shift_type="normal",
    )
    with pytest.raises(PreconditionError, match="cannot require fewer"):
        update_shift(db, required_students=1, **kwargs)

    updated = update_shift(db, required_students=2, **kwargs)
    assert updated.start_time.hour == 10
    assert updated.required_students == 2


def test_list_shift_assignments_includes_cancelled(db, make, world):
    make.assign(world.shift, world.alice, world.admin)
    make.assign(world.shift, world.bob, world.admin)
    a = db.execute(select(ShiftAssignment).where(ShiftAssignment.student_id == world.bob.id)).scalar_one()
    a.status = "cancelled"
    db.commit()

    items = list_shift_assignments(db, shift_id=world.shift.id)
    assert [i.status for i in items] == ["assigned", "cancelled"]


def test_timestamps_use_the_local_naive_clock(db, world):
    db.refresh(world.admin)
    db.refresh(world.project)
    for stamp in (world.admin.created_at, world.project.created_at, world.shift.created_at):
        assert stamp.tzinfo is None
        assert abs(datetime.now() - stamp) < timedelta(minutes=5)
