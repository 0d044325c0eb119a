"""Clock-in verification codes.

A student asks for a code, shows it to the gateman at the door, the gateman
confirms it and the student is clocked in. At most one active unread code
exists per (student, shift); asking again returns the same code.

Codes are 4 characters from 0-9A-Z and are not unique across shifts. A code
is only looked up while it is active, and it is only honoured while its
assignment is live and the clock-in window is open.
"""

from __future__ import annotations

import logging
import secrets
import string
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from avashift.core.config import settings
from avashift.core.errors import ConflictError, NotFoundError, PermissionDeniedError, PreconditionError
from avashift.models import AttendanceRecord, Shift, User, VerificationCode
from avashift.services.projects import is_active_member
from avashift.services.shifts import get_live_assignment, get_shift
from avashift.services.transitions import compare_and_set

log = logging.getLogger("avashift.verification")

CODE_ALPHABET = string.digits + string.ascii_uppercase
CODE_LENGTH = 4


def generate_code() -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def _active_code(db: Session, *, student_id: int, shift_id: int) -> VerificationCode | None:
    return db.execute(
        select(VerificationCode).where(
            VerificationCode.student_id == student_id,
            VerificationCode.shift_id == shift_id,
            VerificationCode.status == "active",
            VerificationCode.is_read.is_(False),
        )
    ).scalar_one_or_none()


def _in_clock_in_window(shift: Shift, now: datetime) -> bool:
    opens_at = shift.start_time - timedelta(minutes=settings.CLOCK_IN_EARLY_MINUTES)
    return opens_at <= now <= shift.stop_time


def request_clock_in(db: Session, *, student_id: int, shift_id: int, now: datetime | None = None) -> dict:
    now = now or datetime.now()
    shift = get_shift(db, shift_id)

    if get_live_assignment(db, shift_id=shift_id, student_id=student_id) is None:
        raise NotFoundError("No valid shift assignment found")

    if not _in_clock_in_window(shift, now):
        raise PreconditionError("Outside valid clock-in window")

    existing = _active_code(db, student_id=student_id, shift_id=shift_id)
    if existing is not None:
        return {"success": True, "verification_code": existing.code}

    vc = VerificationCode(
        code=generate_code(),
        student_id=student_id,
        shift_id=shift_id,
        status="active",
        is_read=False,
        created_at=now,
    )
    db.add(vc)
    try:
        db.commit()
    except IntegrityError:
        # another request for the same pair won the insert
        db.rollback()
        existing = _active_code(db, student_id=student_id, shift_id=shift_id)
        if existing is None:
            raise
        return {"success": True, "verification_code": existing.code}

    log.info("clock-in code issued: student=%s shift=%s", student_id, shift_id)
    return {"success": True, "verification_code": vc.code}


def check_verification_status(db: Session, *, student_id: int, shift_id: int) -> dict:
    vc = db.execute(
        select(VerificationCode)
        .where(
            VerificationCode.student_id == student_id,
            VerificationCode.shift_id == shift_id,
            VerificationCode.status.in_(("active", "used")),
        )
        .order_by(VerificationCode.created_at.desc(), VerificationCode.id.desc())
        .limit(1)
    ).scalar_one_or_none()

    if vc is None:
        return {"is_verified": False, "message": "No active verification code found"}
    if vc.is_read:
        return {"is_verified": True, "message": "Clock-in confirmed"}
    return {"is_verified": False, "message": "Waiting for gateman confirmation"}


def _find_active(db: Session, code: str) -> VerificationCode:
    vc = db.execute(
        select(VerificationCode)
        .where(
            VerificationCode.code == (code or "").strip().upper(),
            VerificationCode.status == "active",
            VerificationCode.is_read.is_(False),
        )
        .order_by(VerificationCode.id.desc())
        .limit(1)
    ).scalar_one_or_none()
    if vc is None:
        raise NotFoundError("Invalid or expired code")
    return vc


def _require_usable(db: Session, vc: VerificationCode, shift: Shift, now: datetime) -> None:
    # a code dies with its assignment and with the clock-in window
    if get_live_assignment(db, shift_id=vc.shift_id, student_id=vc.student_id) is None:
        raise NotFoundError("Invalid or expired code")
    if not _in_clock_in_window(shift, now):
        raise NotFoundError("Invalid or expired code")


def _require_guard(db: Session, shift: Shift, guard_id: int) -> None:
    if shift.gateman_id == guard_id:
        return
    if not is_active_member(db, project_id=shift.project_id, user_id=guard_id, membership_type="gateman"):
        raise PermissionDeniedError("Only a gateman of this project can verify codes")


def lookup_code(db: Session, *, code: str, guard_id: int, now: datetime | None = None) -> dict:
    now = now or datetime.now()
    vc = _find_active(db, code)
    shift = db.get(Shift, vc.shift_id)
    _require_guard(db, shift, guard_id)
    _require_usable(db, vc, shift, now)

    student = db.get(User, vc.student_id)
    return {
        "student_id": vc.student_id,
        "student_name": student.full_name if student else "",
        "shift_id": shift.id,
        "project_name": shift.project.name,
        "start_time": shift.start_time,
        "stop_time": shift.stop_time,
    }


def confirm_code(db: Session, *, code: str, guard_id: int, now: datetime | None = None) -> dict:
    now = now or datetime.now()
    vc = _find_active(db, code)
    shift = db.get(Shift, vc.shift_id)
    _require_guard(db, shift, guard_id)
    _require_usable(db, vc, shift, now)

    record = db.execute(
        select(AttendanceRecord).where(
            AttendanceRecord.shift_id == vc.shift_id,
            AttendanceRecord.student_id == vc.student_id,
        )
    ).scalar_one_or_none()
    if record is not None and record.clock_in_time is not None:
        raise ConflictError("Student already clocked in")

    try:
        compare_and_set(
            db,
            VerificationCode,
            vc.id,
            "used",
            VerificationCode.is_read.is_(False),
            is_read=True,
            verified_at=now,
            verified_by=guard_id,
        )
    except ConflictError:
        db.rollback()
        raise NotFoundError("Invalid or expired code") from None

    if record is None:
        record = AttendanceRecord(
            shift_id=vc.shift_id,
            student_id=vc.student_id,
            attendance_status="pending",
        )
        db.add(record)
    # a leader may have set the status before the student arrived; keep it
    record.clock_in_time = now
    record.clock_in_verified_by = guard_id

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Student already clocked in") from None

    log.info("clock-in confirmed: student=%s shift=%s guard=%s", vc.student_id, vc.shift_id, guard_id)
    return {
        "success": True,
        "student_id": vc.student_id,
        "shift_id": vc.shift_id,
        "attendance_status": record.attendance_status,
    }
