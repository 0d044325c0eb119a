from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from avashift.core.config import settings
from avashift.core.errors import PermissionDeniedError, PreconditionError
from avashift.models import AttendanceRecord, StudentNote, User
from avashift.services import notify
from avashift.services.shifts import get_held_assignment, get_live_assignment, get_shift
from avashift.services.transitions import transition

log = logging.getLogger("avashift.attendance")

LEADER_STATUSES = ("present", "late", "absent")


@dataclass(frozen=True)
class HoursSummary:
    tracked_hours: float
    lost_hours: float


def _hours(delta: timedelta) -> float:
    return max(0.0, delta.total_seconds() / 3600)


def compute_hours(
    scheduled_start: datetime,
    scheduled_end: datetime,
    actual_start: datetime,
    actual_end: datetime,
) -> HoursSummary:
    """Worked time inside the scheduled window, and time missed from it.

    Arriving early or leaving late is not counted in either direction. Lost
    time is lateness plus early departure, so a clock-in wholly after the
    slot loses more than the slot itself.
    """
    scheduled = _hours(scheduled_end - scheduled_start)
    overlap = _hours(min(actual_end, scheduled_end) - max(actual_start, scheduled_start))

    late_arrival = _hours(actual_start - scheduled_start)
    early_departure = _hours(scheduled_end - actual_end)

    return HoursSummary(
        tracked_hours=round(min(overlap, scheduled), 2),
        lost_hours=round(late_arrival + early_departure, 2),
    )


def _get_record(db: Session, *, student_id: int, shift_id: int) -> AttendanceRecord | None:
    return db.execute(
        select(AttendanceRecord).where(
            AttendanceRecord.shift_id == shift_id,
            AttendanceRecord.student_id == student_id,
        )
    ).scalar_one_or_none()


def clock_out(db: Session, *, student_id: int, shift_id: int, now: datetime | None = None) -> bool:
    now = now or datetime.now()
    record = db.execute(
        select(AttendanceRecord).where(
            AttendanceRecord.shift_id == shift_id,
            AttendanceRecord.student_id == student_id,
            AttendanceRecord.clock_in_time.is_not(None),
            AttendanceRecord.clock_out_time.is_(None),
        )
    ).scalar_one_or_none()
    if record is None:
        return False

    shift = record.shift
    hours = compute_hours(shift.start_time, shift.stop_time, record.clock_in_time, now)
    record.clock_out_time = now
    record.tracked_hours = hours.tracked_hours
    record.lost_hours = hours.lost_hours

    assignment = get_live_assignment(db, shift_id=shift_id, student_id=student_id)
    if assignment is not None:
        transition(assignment, "completed")

    db.commit()
    log.info(
        "clock-out: student=%s shift=%s tracked=%s lost=%s",
        student_id, shift_id, hours.tracked_hours, hours.lost_hours,
    )
    return True


def mark_attendance(db: Session, *, student_id: int, shift_id: int, status: str, leader_id: int) -> AttendanceRecord:
    if status not in LEADER_STATUSES:
        raise PreconditionError(f"Invalid attendance status: {status}")

    shift = get_shift(db, shift_id)
    if shift.leader_id != leader_id:
        raise PermissionDeniedError("Only the shift leader can mark attendance")
    if get_held_assignment(db, shift_id=shift_id, student_id=student_id) is None:
        raise PreconditionError("Student is not assigned to this shift")

    record = _get_record(db, student_id=student_id, shift_id=shift_id)
    if record is None:
        # leader may mark before (or without) a clock-in, e.g. absent in advance
        record = AttendanceRecord(shift_id=shift_id, student_id=student_id)
        db.add(record)
    record.attendance_status = status
    record.marked_by_leader = leader_id

    db.commit()
    db.refresh(record)
    log.info("attendance marked: student=%s shift=%s status=%s by=%s", student_id, shift_id, status, leader_id)
    return record


def add_student_note(db: Session, *, student_id: int, shift_id: int, note: str, leader_id: int) -> StudentNote:
    """Store a leader's note about a student and forward it to the project owner.

    The note is kept even when the email cannot be delivered.
    """
    note = (note or "").strip()
    if not note:
        raise PreconditionError("Note must not be empty")

    shift = get_shift(db, shift_id)
    if shift.leader_id != leader_id:
        raise PermissionDeniedError("Only the shift leader can leave notes on this shift")
    if get_held_assignment(db, shift_id=shift_id, student_id=student_id) is None:
        raise PreconditionError("Student is not assigned to this shift")

    row = StudentNote(
        student_id=student_id,
        shift_id=shift_id,
        project_id=shift.project_id,
        leader_id=leader_id,
        body=note,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    log.info("student note %s: student=%s shift=%s by=%s", row.id, student_id, shift_id, leader_id)

    project = shift.project
    owner = db.get(User, project.created_by)
    if owner is None:
        log.warning("student note %s not forwarded: project %s has no owner", row.id, project.id)
        return row
    notify.send_student_note(
        admin_name=owner.full_name,
        admin_email=owner.email,
        student_name=row.student.full_name,
        project_name=project.name,
        leader_name=row.leader.full_name,
        note=note,
    )
    return row


def get_attendance_status(db: Session, *, student_id: int, shift_id: int) -> str | None:
    record = _get_record(db, student_id=student_id, shift_id=shift_id)
    return record.attendance_status if record else None


def attendance_stats(db: Session, *, shift_ids: list[int]) -> dict[str, int]:
    stats = {"present": 0, "absent": 0, "timely": 0, "late": 0}
    if not shift_ids:
        return stats

    grace = timedelta(minutes=settings.TIMELY_ARRIVAL_MINUTES)
    records = db.execute(
        select(AttendanceRecord).where(AttendanceRecord.shift_id.in_(shift_ids))
    ).scalars().all()

    for r in records:
        if r.attendance_status == "absent":
            stats["absent"] += 1
        elif r.attendance_status == "present":
            stats["present"] += 1
            if r.clock_in_time is None:
                continue
            if abs(r.clock_in_time - r.shift.start_time) <= grace:
                stats["timely"] += 1
            else:
                stats["late"] += 1
    return stats
