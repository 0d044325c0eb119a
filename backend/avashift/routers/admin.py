from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from avashift.auth.guards import require_admin
from avashift.core.db import get_db
from avashift.models import User
from avashift.services import admin_review
from avashift.services.reports import hours_report
from avashift.services.requests import get_request

router = APIRouter(prefix="/admin", tags=["admin"])


# ---------- Schemas ----------

class ApproveIn(BaseModel):
    replacement_email: str | None = Field(default=None, max_length=255)
    should_penalize: bool = False


# ---------- Routes ----------

@router.get("/projects/{project_id}/requests/stats")
def request_stats_route(
    project_id: int,
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
):
    stats = admin_review.get_admin_request_stats(
        db, project_id=project_id, admin_id=user.id, date_from=date_from, date_to=date_to
    )
    return {"success": True, **stats}


@router.get("/projects/{project_id}/requests")
def pending_requests_route(
    project_id: int,
    search: str = Query(default=""),
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
):
    items = admin_review.get_admin_requests(
        db, project_id=project_id, admin_id=user.id, search=search, date_from=date_from, date_to=date_to
    )
    return {"success": True, "items": items}


@router.get("/projects/{project_id}/hours")
def hours_report_route(
    project_id: int,
    search: str = Query(default=""),
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
):
    report = hours_report(
        db, project_id=project_id, admin_id=user.id, date_from=date_from, date_to=date_to, search=search
    )
    return {"success": True, **report}


def _fresh_stats(db: Session, *, request_id: int, admin_id: int) -> dict:
    # re-read after the action instead of patching the previous numbers
    project_id = get_request(db, request_id).shift.project_id
    return admin_review.get_admin_request_stats(db, project_id=project_id, admin_id=admin_id)


@router.post("/requests/{request_id}/approve")
def approve_request_route(
    request_id: int,
    payload: ApproveIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
):
    result = admin_review.approve_request(
        db,
        request_id=request_id,
        admin_id=user.id,
        replacement_email=payload.replacement_email,
        should_penalize=payload.should_penalize,
    )
    return {**result, "stats": _fresh_stats(db, request_id=request_id, admin_id=user.id)}


@router.post("/requests/{request_id}/reject")
def reject_request_route(
    request_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
):
    result = admin_review.reject(db, request_id=request_id, admin_id=user.id)
    return {**result, "stats": _fresh_stats(db, request_id=request_id, admin_id=user.id)}


@router.get("/notifications")
def notifications_route(
    limit: int = Query(default=10, ge=1, le=50),
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
):
    return {"success": True, "items": admin_review.get_request_notifications(db, admin_id=user.id, limit=limit)}
