from __future__ import annotations

from datetime import date, time

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from avashift.auth.deps import get_current_user
from avashift.auth.guards import require_admin
from avashift.core.db import get_db
from avashift.core.errors import PermissionDeniedError
from avashift.models import Shift, ShiftAssignment, User
from avashift.services.projects import is_active_member, require_project_admin
from avashift.services.shifts import (
    create_assignment,
    get_shift,
    list_shift_assignments,
    set_shift_status,
    update_shift,
)

router = APIRouter(prefix="/shifts", tags=["shifts"])


# ---------- Schemas ----------

class ShiftUpdateIn(BaseModel):
    leader_id: int = Field(..., gt=0)
    gateman_id: int = Field(..., gt=0)
    start_date: date
    start_time: time
    end_date: date
    end_time: time
    required_students: int = Field(..., gt=0)
    time_type: str = Field(..., description="day|night")
    shift_type: str = Field("normal", description="normal|filler")
    day_of_week: str | None = None


class ShiftStatusIn(BaseModel):
    status: str = Field(..., description="published|in_progress|completed")


class AssignmentCreateIn(BaseModel):
    student_id: int = Field(..., gt=0)


# ---------- Serializers ----------

def shift_out(shift: Shift) -> dict:
    return {
        "id": shift.id,
        "project_id": shift.project_id,
        "date": shift.date.isoformat(),
        "day_of_week": shift.day_of_week,
        "time_type": shift.time_type,
        "start_time": shift.start_time.isoformat(),
        "stop_time": shift.stop_time.isoformat(),
        "required_students": shift.required_students,
        "assigned_count": shift.assigned_count,
        "shift_type": shift.shift_type,
        "status": shift.status,
        "leader_id": shift.leader_id,
        "gateman_id": shift.gateman_id,
    }


def assignment_out(a: ShiftAssignment) -> dict:
    return {
        "id": a.id,
        "shift_id": a.shift_id,
        "student_id": a.student_id,
        "status": a.status,
        "assigned_by": a.assigned_by,
        "assigned_at": a.assigned_at.isoformat() if a.assigned_at else None,
        "confirmed_at": a.confirmed_at.isoformat() if a.confirmed_at else None,
    }


def _require_shift_admin(db: Session, *, shift_id: int, user: User) -> Shift:
    shift = get_shift(db, shift_id)
    require_project_admin(db, project_id=shift.project_id, admin_id=user.id)
    return shift


def _require_shift_viewer(db: Session, *, shift_id: int, user: User) -> Shift:
    shift = get_shift(db, shift_id)
    if user.id in (shift.leader_id, shift.gateman_id):
        return shift
    if user.role == "admin" and (
        shift.project.created_by == user.id
        or is_active_member(db, project_id=shift.project_id, user_id=user.id, membership_type="admin")
    ):
        return shift
    raise PermissionDeniedError("Forbidden")


# ---------- Routes ----------

@router.patch("/{shift_id}")
def update_shift_route(
    shift_id: int,
    payload: ShiftUpdateIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
):
    _require_shift_admin(db, shift_id=shift_id, user=user)
    shift = update_shift(
        db,
        shift_id=shift_id,
        leader_id=payload.leader_id,
        gateman_id=payload.gateman_id,
        start_date=payload.start_date,
        start_time=payload.start_time,
        end_date=payload.end_date,
        end_time=payload.end_time,
        required_students=payload.required_students,
        time_type=payload.time_type,
        shift_type=payload.shift_type,
        day_of_week=payload.day_of_week,
    )
    return {"success": True, "shift": shift_out(shift)}


@router.post("/{shift_id}/status")
def set_shift_status_route(
    shift_id: int,
    payload: ShiftStatusIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
):
    _require_shift_admin(db, shift_id=shift_id, user=user)
    shift = set_shift_status(db, shift_id=shift_id, status=payload.status)
    return {"success": True, "id": shift.id, "status": shift.status}


@router.post("/{shift_id}/assignments")
def create_assignment_route(
    shift_id: int,
    payload: AssignmentCreateIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
):
    _require_shift_admin(db, shift_id=shift_id, user=user)
    a = create_assignment(db, shift_id=shift_id, student_id=payload.student_id, assigned_by=user.id)
    return {"success": True, "assignment": assignment_out(a)}


@router.get("/{shift_id}/assignments")
def list_assignments_route(
    shift_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    _require_shift_viewer(db, shift_id=shift_id, user=user)
    items = list_shift_assignments(db, shift_id=shift_id)
    return {"success": True, "items": [assignment_out(a) for a in items]}
