from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from avashift.auth.deps import get_current_user
from avashift.auth.guards import require_role, require_student
from avashift.core.db import get_db
from avashift.models import AdminRequest, User
from avashift.services.requests import (
    apply_for_filler_shift,
    create_shift_cancellation_request,
    get_request_status,
    list_requests_for_requester,
    submit_staff_cancellation,
)

router = APIRouter(tags=["requests"])


# ---------- Schemas ----------

class CancellationIn(BaseModel):
    reason: str = Field(..., min_length=1, max_length=2000)
    replacement_email: str | None = Field(default=None, max_length=255)


def request_out(r: AdminRequest) -> dict:
    return {
        "id": r.id,
        "request_type": r.request_type,
        "shift_id": r.shift_id,
        "assignment_id": r.assignment_id,
        "reason": r.reason,
        "replacement_email": r.replacement_email,
        "status": r.status,
        "penalized": r.penalized,
        "created_at": r.created_at.isoformat(),
        "reviewed_at": r.reviewed_at.isoformat() if r.reviewed_at else None,
    }


# ---------- Routes ----------

@router.post("/shifts/{shift_id}/cancellation-requests")
def cancellation_request_route(
    shift_id: int,
    payload: CancellationIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_role("student", "shift_leader", "gateman")),
):
    if user.role == "student":
        return create_shift_cancellation_request(
            db,
            shift_id=shift_id,
            student_id=user.id,
            reason=payload.reason,
            replacement_email=payload.replacement_email,
        )
    return submit_staff_cancellation(db, shift_id=shift_id, requester_id=user.id, reason=payload.reason)


@router.post("/shifts/{shift_id}/filler-applications")
def filler_application_route(
    shift_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_student),
):
    return apply_for_filler_shift(db, shift_id=shift_id, student_id=user.id)


@router.get("/requests/mine")
def my_requests_route(
    request_type: str | None = Query(default=None),
    status: str | None = Query(default=None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    items = list_requests_for_requester(db, requester_id=user.id, request_type=request_type, status=status)
    return {"success": True, "items": [request_out(r) for r in items]}


@router.get("/requests/{request_id}/status")
def request_status_route(
    request_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    info = get_request_status(db, request_id=request_id, requester_id=user.id)
    info["reviewed_at"] = info["reviewed_at"].isoformat() if info["reviewed_at"] else None
    return {"success": True, **info}
