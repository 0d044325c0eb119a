from __future__ import annotations

import logging
from datetime import date, datetime, time

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from avashift.core.errors import ConflictError, NotFoundError, PreconditionError
from avashift.models import Project, Shift, ShiftAssignment, ShiftType, TimeType, User
from avashift.models.enums import LIVE_ASSIGNMENT_STATUSES
from avashift.services import notify
from avashift.services.projects import get_active_membership
from avashift.services.transitions import transition

log = logging.getLogger("avashift.shifts")


def combine_date_and_time(d: date | str, t: time | str) -> datetime:
    if isinstance(d, str):
        d = date.fromisoformat(d.strip()[:10])
    if isinstance(t, str):
        t = time.fromisoformat(t.strip())
    return datetime.combine(d, t)


def get_shift(db: Session, shift_id: int) -> Shift:
    shift = db.get(Shift, shift_id)
    if shift is None:
        raise NotFoundError("Shift not found")
    return shift


def _validate_staff(db: Session, *, project_id: int, leader_id: int, gateman_id: int) -> None:
    if get_active_membership(db, project_id=project_id, user_id=leader_id, membership_type="shift_leader") is None:
        raise PreconditionError("Shift leader is not an active member of this project")
    if get_active_membership(db, project_id=project_id, user_id=gateman_id, membership_type="gateman") is None:
        raise PreconditionError("Gateman is not an active member of this project")


def _validate_shape(*, start: datetime, stop: datetime, required_students: int, time_type: str, shift_type: str):
    if stop <= start:
        raise PreconditionError("Shift must end after it starts")
    if required_students <= 0:
        raise PreconditionError("Required students must be greater than zero")
    if time_type not in {t.value for t in TimeType}:
        raise PreconditionError(f"Unknown time type: {time_type}")
    if shift_type not in {t.value for t in ShiftType}:
        raise PreconditionError(f"Unknown shift type: {shift_type}")


def create_shift(
    db: Session,
    *,
    project_id: int,
    leader_id: int,
    gateman_id: int,
    start_date: date | str,
    start_time: time | str,
    end_date: date | str,
    end_time: time | str,
    required_students: int,
    time_type: str,
    shift_type: str = "normal",
    day_of_week: str | None = None,
    created_by: int,
) -> Shift:
    if db.get(Project, project_id) is None:
        raise NotFoundError("Project not found")

    start = combine_date_and_time(start_date, start_time)
    stop = combine_date_and_time(end_date, end_time)
    _validate_shape(start=start, stop=stop, required_students=required_students, time_type=time_type, shift_type=shift_type)
    _validate_staff(db, project_id=project_id, leader_id=leader_id, gateman_id=gateman_id)

    shift = Shift(
        project_id=project_id,
        date=start.date(),
        day_of_week=(day_of_week or start.strftime("%A")).lower(),
        time_type=time_type,
        start_time=start,
        stop_time=stop,
        required_students=required_students,
        assigned_count=0,
        shift_type=shift_type,
        status="published",
        leader_id=leader_id,
        gateman_id=gateman_id,
        created_by=created_by,
    )
    db.add(shift)
    db.commit()
    db.refresh(shift)
    log.info("shift %s created for project %s (%s - %s)", shift.id, project_id, start, stop)
    return shift


def update_shift(
    db: Session,
    *,
    shift_id: int,
    leader_id: int,
    gateman_id: int,
    start_date: date | str,
    start_time: time | str,
    end_date: date | str,
    end_time: time | str,
    required_students: int,
    time_type: str,
    shift_type: str,
    day_of_week: str | None = None,
) -> Shift:
    shift = get_shift(db, shift_id)

    start = combine_date_and_time(start_date, start_time)
    stop = combine_date_and_time(end_date, end_time)
    _validate_shape(start=start, stop=stop, required_students=required_students, time_type=time_type, shift_type=shift_type)
    if required_students < shift.assigned_count:
        raise PreconditionError(
            f"Shift already has {shift.assigned_count} students assigned, cannot require fewer"
        )
    _validate_staff(db, project_id=shift.project_id, leader_id=leader_id, gateman_id=gateman_id)

    shift.date = start.date()
    shift.day_of_week = (day_of_week or start.strftime("%A")).lower()
    shift.time_type = time_type
    shift.start_time = start
    shift.stop_time = stop
    shift.required_students = required_students
    shift.shift_type = shift_type
    shift.leader_id = leader_id
    shift.gateman_id = gateman_id
    db.commit()
    return shift


def set_shift_status(db: Session, *, shift_id: int, status: str) -> Shift:
    shift = get_shift(db, shift_id)
    transition(shift, status)
    db.commit()
    log.info("shift %s -> %s", shift_id, status)
    return shift


def get_live_assignment(db: Session, *, shift_id: int, student_id: int) -> ShiftAssignment | None:
    return db.execute(
        select(ShiftAssignment).where(
            ShiftAssignment.shift_id == shift_id,
            ShiftAssignment.student_id == student_id,
            ShiftAssignment.status.in_(LIVE_ASSIGNMENT_STATUSES),
        )
    ).scalar_one_or_none()


def get_held_assignment(db: Session, *, shift_id: int, student_id: int) -> ShiftAssignment | None:
    """Live or completed assignment: the student is (or was) on the shift."""
    return db.execute(
        select(ShiftAssignment).where(
            ShiftAssignment.shift_id == shift_id,
            ShiftAssignment.student_id == student_id,
            ShiftAssignment.status.in_(LIVE_ASSIGNMENT_STATUSES + ("completed",)),
        )
    ).scalar_one_or_none()


def add_assignment(
    db: Session,
    *,
    shift: Shift,
    student_id: int,
    assigned_by: int,
    now: datetime | None = None,
    count_slot: bool = True,
) -> ShiftAssignment:
    """Create an `assigned` assignment inside the caller's transaction.

    `count_slot=False` is used when the student takes over an existing slot
    (cancellation replacement), so assigned_count stays unchanged.
    """
    now = now or datetime.now()

    membership = get_active_membership(db, project_id=shift.project_id, user_id=student_id, membership_type="student")
    if membership is None:
        raise PreconditionError("Student is not an active member of this project")

    existing = db.execute(
        select(ShiftAssignment).where(
            ShiftAssignment.shift_id == shift.id,
            ShiftAssignment.student_id == student_id,
            ShiftAssignment.status != "cancelled",
        )
    ).scalar_one_or_none()
    if existing is not None:
        raise ConflictError("Student is already assigned to this shift")

    if count_slot:
        if shift.is_full:
            raise PreconditionError("Shift is fully staffed")
        shift.assigned_count += 1

    a = ShiftAssignment(
        shift_id=shift.id,
        student_id=student_id,
        project_member_id=membership.id,
        status="assigned",
        assigned_by=assigned_by,
        assigned_at=now,
        confirmed_at=None,
    )
    db.add(a)
    try:
        db.flush()
    except IntegrityError:
        # a concurrent caller assigned the same student first
        raise ConflictError("Student is already assigned to this shift")
    return a


def create_assignment(
    db: Session,
    *,
    shift_id: int,
    student_id: int,
    assigned_by: int,
    now: datetime | None = None,
) -> ShiftAssignment:
    shift = get_shift(db, shift_id)
    try:
        a = add_assignment(db, shift=shift, student_id=student_id, assigned_by=assigned_by, now=now)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(a)
    log.info("student %s assigned to shift %s by %s", student_id, shift_id, assigned_by)

    student = db.get(User, student_id)
    notify.send_assignment_notice(
        student_name=student.full_name,
        student_email=student.email,
        shift=shift,
        project_name=shift.project.name,
    )
    return a


def list_shift_assignments(db: Session, *, shift_id: int) -> list[ShiftAssignment]:
    get_shift(db, shift_id)
    return db.execute(
        select(ShiftAssignment)
        .where(ShiftAssignment.shift_id == shift_id)
        .order_by(ShiftAssignment.assigned_at.asc(), ShiftAssignment.id.asc())
    ).scalars().all()
