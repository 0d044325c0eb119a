from __future__ import annotations

from datetime import date, time

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from avashift.auth.guards import require_admin
from avashift.core.db import get_db
from avashift.models import User
from avashift.routers.shifts import shift_out
from avashift.services.projects import add_member, create_project, require_project_admin
from avashift.services.shifts import create_shift

router = APIRouter(prefix="/projects", tags=["projects"])


# ---------- Schemas ----------

class ProjectCreateIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)


class MemberAddIn(BaseModel):
    user_id: int = Field(..., gt=0)
    membership_type: str = Field(..., description="student|shift_leader|gateman|admin|client")


class ShiftCreateIn(BaseModel):
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


# ---------- Routes ----------

@router.post("")
def create_project_route(
    payload: ProjectCreateIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
):
    project = create_project(db, name=payload.name, admin_id=user.id, description=payload.description)
    return {"success": True, "id": project.id, "name": project.name}


@router.post("/{project_id}/members")
def add_member_route(
    project_id: int,
    payload: MemberAddIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
):
    require_project_admin(db, project_id=project_id, admin_id=user.id)
    mem = add_member(db, project_id=project_id, user_id=payload.user_id, membership_type=payload.membership_type)
    return {
        "success": True,
        "member_id": mem.id,
        "user_id": mem.user_id,
        "membership_type": mem.membership_type,
        "status": mem.status,
    }


@router.post("/{project_id}/shifts")
def create_shift_route(
    project_id: int,
    payload: ShiftCreateIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
):
    require_project_admin(db, project_id=project_id, admin_id=user.id)
    shift = create_shift(
        db,
        project_id=project_id,
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
        created_by=user.id,
    )
    return {"success": True, "shift": shift_out(shift)}
