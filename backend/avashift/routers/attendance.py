from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from avashift.auth.guards import require_gateman, require_leader, require_student
from avashift.core.db import get_db
from avashift.core.errors import PreconditionError
from avashift.models import User
from avashift.services.attendance import add_student_note, clock_out, mark_attendance
from avashift.services.scoring import update_student_rating
from avashift.services.verification import (
    check_verification_status,
    confirm_code,
    lookup_code,
    request_clock_in,
)

router = APIRouter(tags=["attendance"])


# ---------- Schemas ----------

class AttendanceMarkIn(BaseModel):
    status: str = Field(..., description="present|late|absent")


class RatingIn(BaseModel):
    rating: float = Field(..., ge=1, le=5)


class NoteIn(BaseModel):
    note: str = Field(..., min_length=1, max_length=2000)


# ---------- Student: clock-in / clock-out ----------

@router.post("/shifts/{shift_id}/clock-in")
def clock_in_route(
    shift_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_student),
):
    return request_clock_in(db, student_id=user.id, shift_id=shift_id)


@router.get("/shifts/{shift_id}/clock-in/status")
def clock_in_status_route(
    shift_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_student),
):
    return {"success": True, **check_verification_status(db, student_id=user.id, shift_id=shift_id)}


@router.post("/shifts/{shift_id}/clock-out")
def clock_out_route(
    shift_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_student),
):
    if not clock_out(db, student_id=user.id, shift_id=shift_id):
        raise PreconditionError("Failed to clock out")
    return {"success": True, "message": "Clocked out"}


# ---------- Gateman: code verification ----------

@router.get("/verification-codes/{code}")
def lookup_code_route(
    code: str,
    db: Session = Depends(get_db),
    user: User = Depends(require_gateman),
):
    info = lookup_code(db, code=code, guard_id=user.id)
    return {
        "success": True,
        **info,
        "start_time": info["start_time"].isoformat(),
        "stop_time": info["stop_time"].isoformat(),
    }


@router.post("/verification-codes/{code}/confirm")
def confirm_code_route(
    code: str,
    db: Session = Depends(get_db),
    user: User = Depends(require_gateman),
):
    return confirm_code(db, code=code, guard_id=user.id)


# ---------- Shift leader ----------

@router.put("/shifts/{shift_id}/attendance/{student_id}")
def mark_attendance_route(
    shift_id: int,
    student_id: int,
    payload: AttendanceMarkIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_leader),
):
    record = mark_attendance(db, student_id=student_id, shift_id=shift_id, status=payload.status, leader_id=user.id)
    return {
        "success": True,
        "id": record.id,
        "attendance_status": record.attendance_status,
        "clock_in_time": record.clock_in_time.isoformat() if record.clock_in_time else None,
        "clock_out_time": record.clock_out_time.isoformat() if record.clock_out_time else None,
    }


@router.post("/shifts/{shift_id}/ratings/{student_id}")
def rate_student_route(
    shift_id: int,
    student_id: int,
    payload: RatingIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_leader),
):
    new_rating = update_student_rating(
        db, student_id=student_id, submitted_rating=payload.rating, leader_id=user.id, shift_id=shift_id
    )
    return {"success": True, "rating": new_rating}


@router.post("/shifts/{shift_id}/notes/{student_id}")
def student_note_route(
    shift_id: int,
    student_id: int,
    payload: NoteIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_leader),
):
    row = add_student_note(db, student_id=student_id, shift_id=shift_id, note=payload.note, leader_id=user.id)
    return {"success": True, "id": row.id, "created_at": row.created_at.isoformat()}
