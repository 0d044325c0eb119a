from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from avashift.core.errors import PreconditionError
from avashift.models import AdminRequest, Shift
from avashift.services.directory import UserDirectory
from avashift.services.projects import admin_project_ids, require_project_admin
from avashift.services.requests import (
    get_request,
    handle_cancellation_request,
    handle_filler_request,
    reject_request,
)
from avashift.services.scoring import ScoringPolicy

log = logging.getLogger("avashift.admin_review")

NOTIFICATION_MESSAGES = {
    "shiftCancellation": "{name} requested shift cancellation",
    "fillerShiftApplication": "{name} applied for filler shift",
    "availabilityChange": "{name} requested availability change",
}


def _project_shift_ids(project_id: int):
    return select(Shift.id).where(Shift.project_id == project_id)


def _in_window(stmt, date_from: date | None, date_to: date | None):
    if date_from:
        stmt = stmt.where(AdminRequest.created_at >= datetime.combine(date_from, time.min))
    if date_to:
        stmt = stmt.where(AdminRequest.created_at < datetime.combine(date_to + timedelta(days=1), time.min))
    return stmt


def get_admin_request_stats(
    db: Session,
    *,
    project_id: int,
    admin_id: int,
    date_from: date | None = None,
    date_to: date | None = None,
) -> dict:
    require_project_admin(db, project_id=project_id, admin_id=admin_id)

    base = select(func.count(AdminRequest.id)).where(AdminRequest.shift_id.in_(_project_shift_ids(project_id)))
    base = _in_window(base, date_from, date_to)

    total = db.execute(base).scalar_one()
    reviewed = db.execute(base.where(AdminRequest.status != "pending")).scalar_one()

    return {
        "total_requests": total,
        "reviewed_requests": reviewed,
        "progress_percentage": round(reviewed / total * 100) if total else 0,
    }


def get_admin_requests(
    db: Session,
    *,
    project_id: int,
    admin_id: int,
    search: str = "",
    date_from: date | None = None,
    date_to: date | None = None,
) -> list[dict]:
    """Pending requests on the project's shifts, newest first, with requester and shift details."""
    require_project_admin(db, project_id=project_id, admin_id=admin_id)

    stmt = select(AdminRequest).where(
        AdminRequest.shift_id.in_(_project_shift_ids(project_id)),
        AdminRequest.status == "pending",
    )
    stmt = _in_window(stmt, date_from, date_to)
    rows = db.execute(stmt.order_by(AdminRequest.created_at.desc(), AdminRequest.id.desc())).scalars().all()

    directory = UserDirectory(db)
    needle = (search or "").strip().lower()
    items = []
    for r in rows:
        requester = directory.get(r.requester_id)
        if requester is None:
            log.warning("request %s skipped: requester %s not found", r.id, r.requester_id)
            continue
        if needle and needle not in requester.name.lower():
            continue

        shift = r.shift
        items.append(
            {
                "request_id": r.id,
                "request_type": r.request_type,
                "status": r.status,
                "reason": r.reason,
                "replacement_email": r.replacement_email,
                "created_at": r.created_at,
                "requester": {
                    "user_id": requester.user_id,
                    "name": requester.name,
                    "email": requester.email,
                    "role": requester.role,
                    "punctuality_score": requester.punctuality_score,
                    "rating": requester.rating,
                },
                "shift": {
                    "shift_id": shift.id,
                    "date": shift.date,
                    "start_time": shift.start_time,
                    "stop_time": shift.stop_time,
                    "time_type": shift.time_type,
                    "shift_type": shift.shift_type,
                },
            }
        )
    return items


def _require_request_admin(db: Session, *, request_id: int, admin_id: int) -> AdminRequest:
    req = get_request(db, request_id)
    require_project_admin(db, project_id=req.shift.project_id, admin_id=admin_id)
    return req


def approve_request(
    db: Session,
    *,
    request_id: int,
    admin_id: int,
    replacement_email: str | None = None,
    should_penalize: bool = False,
    policy: ScoringPolicy | None = None,
) -> dict:
    req = _require_request_admin(db, request_id=request_id, admin_id=admin_id)

    if req.request_type == "shiftCancellation":
        email = (replacement_email or req.replacement_email or "").strip()
        if not email:
            raise PreconditionError("Replacement email is required")
        return handle_cancellation_request(
            db,
            request_id=request_id,
            replacement_email=email,
            should_penalize=should_penalize,
            admin_id=admin_id,
            policy=policy,
        )
    if req.request_type == "fillerShiftApplication":
        return handle_filler_request(db, request_id=request_id, action="approve", admin_id=admin_id)

    # availabilityChange requests are recorded only, there is nothing to apply
    raise PreconditionError(f"Requests of type {req.request_type} cannot be approved")


def reject(db: Session, *, request_id: int, admin_id: int) -> dict:
    _require_request_admin(db, request_id=request_id, admin_id=admin_id)
    return reject_request(db, request_id=request_id, admin_id=admin_id)


def get_request_notifications(db: Session, *, admin_id: int, limit: int = 10) -> list[dict]:
    project_ids = admin_project_ids(db, admin_id=admin_id)
    if not project_ids:
        return []

    rows = db.execute(
        select(AdminRequest)
        .join(Shift, Shift.id == AdminRequest.shift_id)
        .where(Shift.project_id.in_(project_ids), AdminRequest.status == "pending")
        .order_by(AdminRequest.created_at.desc(), AdminRequest.id.desc())
        .limit(limit)
    ).scalars().all()

    directory = UserDirectory(db)
    out = []
    for r in rows:
        requester = directory.get(r.requester_id)
        if requester is None:
            log.warning("notification for request %s skipped: requester %s not found", r.id, r.requester_id)
            continue
        out.append(
            {
                "request_id": r.id,
                "type": "cancellation" if r.request_type == "shiftCancellation" else "filler",
                "message": NOTIFICATION_MESSAGES.get(r.request_type, "{name} sent a request").format(name=requester.name),
                "timestamp": r.created_at,
                "source": requester.role,
                "source_name": requester.name,
            }
        )
    return out
