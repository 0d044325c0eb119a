"""Substitution requests: shift cancellations and filler-shift applications.

Every approval or rejection is one transaction. The request row is moved out
of `pending` with a compare-and-set before anything else is touched, so two
admins reviewing the same request cannot both apply it. Notifications are
sent only after the commit.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from avashift.core.errors import ConflictError, NotFoundError, PermissionDeniedError, PreconditionError
from avashift.models import AdminRequest, Shift, ShiftAssignment, Student
from avashift.models.enums import LIVE_ASSIGNMENT_STATUSES
from avashift.services import notify
from avashift.services.directory import UserDirectory
from avashift.services.projects import get_active_membership
from avashift.services.scoring import PenaltyDetails, ScoringPolicy, default_policy, penalize_student
from avashift.services.shifts import add_assignment, get_live_assignment, get_shift
from avashift.services.transitions import compare_and_set

log = logging.getLogger("avashift.requests")

REQUEST_TYPE_LABELS = {
    "shiftCancellation": "Shift Cancellation",
    "fillerShiftApplication": "Filler Shift Application",
    "availabilityChange": "Availability Change",
}


def get_request(db: Session, request_id: int) -> AdminRequest:
    req = db.get(AdminRequest, request_id)
    if req is None:
        raise NotFoundError("Request not found")
    return req


def _pending_request_exists(db: Session, *, shift_id: int, requester_id: int, request_type: str) -> bool:
    return db.execute(
        select(AdminRequest.id).where(
            AdminRequest.shift_id == shift_id,
            AdminRequest.requester_id == requester_id,
            AdminRequest.request_type == request_type,
            AdminRequest.status == "pending",
        ).limit(1)
    ).first() is not None


# ---------- creation ----------

def create_shift_cancellation_request(
    db: Session,
    *,
    shift_id: int,
    student_id: int,
    reason: str,
    replacement_email: str | None = None,
    now: datetime | None = None,
) -> dict:
    now = now or datetime.now()
    shift = get_shift(db, shift_id)

    if shift.start_time <= now:
        raise PreconditionError("Cannot cancel past shifts")

    assignment = get_live_assignment(db, shift_id=shift_id, student_id=student_id)
    if assignment is None:
        raise PreconditionError("You are not assigned to this shift")

    if _pending_request_exists(db, shift_id=shift_id, requester_id=student_id, request_type="shiftCancellation"):
        raise ConflictError("You already have a pending cancellation request for this shift")

    req = AdminRequest(
        request_type="shiftCancellation",
        requester_id=student_id,
        shift_id=shift_id,
        assignment_id=assignment.id,
        reason=reason,
        replacement_email=(replacement_email or "").strip() or None,
        status="pending",
        created_at=now,
    )
    db.add(req)
    db.commit()
    log.info("cancellation request %s opened by student %s for shift %s", req.id, student_id, shift_id)
    return {"success": True, "request_id": req.id}


def submit_staff_cancellation(
    db: Session,
    *,
    shift_id: int,
    requester_id: int,
    reason: str,
    now: datetime | None = None,
) -> dict:
    """Shift leader or gateman asks to be taken off their own shift."""
    now = now or datetime.now()
    shift = get_shift(db, shift_id)

    if requester_id not in (shift.leader_id, shift.gateman_id):
        raise PermissionDeniedError("You are not the shift leader or gateman of this shift")
    if shift.start_time <= now:
        raise PreconditionError("Cannot cancel past shifts")
    if _pending_request_exists(db, shift_id=shift_id, requester_id=requester_id, request_type="shiftCancellation"):
        raise ConflictError("You already have a pending cancellation request for this shift")

    req = AdminRequest(
        request_type="shiftCancellation",
        requester_id=requester_id,
        shift_id=shift_id,
        assignment_id=None,
        reason=reason,
        status="pending",
        created_at=now,
    )
    db.add(req)
    db.commit()
    log.info("staff cancellation request %s opened by %s for shift %s", req.id, requester_id, shift_id)
    return {"success": True, "request_id": req.id}


def _has_overlapping_assignment(db: Session, *, student_id: int, shift: Shift) -> bool:
    return db.execute(
        select(ShiftAssignment.id)
        .join(Shift, Shift.id == ShiftAssignment.shift_id)
        .where(
            ShiftAssignment.student_id == student_id,
            ShiftAssignment.status.in_(LIVE_ASSIGNMENT_STATUSES),
            Shift.id != shift.id,
            Shift.start_time < shift.stop_time,
            Shift.stop_time > shift.start_time,
        )
        .limit(1)
    ).first() is not None


def apply_for_filler_shift(db: Session, *, shift_id: int, student_id: int, now: datetime | None = None) -> dict:
    now = now or datetime.now()
    shift = get_shift(db, shift_id)

    if shift.shift_type != "filler":
        raise PreconditionError("This is not a filler shift")
    if shift.start_time <= now:
        raise PreconditionError("Cannot apply for past shifts")
    if get_active_membership(db, project_id=shift.project_id, user_id=student_id, membership_type="student") is None:
        raise PermissionDeniedError("You are not an active member of this project")
    if shift.is_full:
        raise PreconditionError("This filler shift is already fully staffed")
    if get_live_assignment(db, shift_id=shift_id, student_id=student_id) is not None:
        raise ConflictError("You are already assigned to this shift")
    if _has_overlapping_assignment(db, student_id=student_id, shift=shift):
        raise PreconditionError("You already have a shift scheduled during this time")
    if _pending_request_exists(db, shift_id=shift_id, requester_id=student_id, request_type="fillerShiftApplication"):
        raise ConflictError("You already have a pending application for this shift")

    req = AdminRequest(
        request_type="fillerShiftApplication",
        requester_id=student_id,
        shift_id=shift_id,
        status="pending",
        created_at=now,
    )
    db.add(req)
    db.commit()
    log.info("filler application %s by student %s for shift %s", req.id, student_id, shift_id)
    return {"success": True, "request_id": req.id}


# ---------- requester views ----------

def list_requests_for_requester(
    db: Session,
    *,
    requester_id: int,
    request_type: str | None = None,
    status: str | None = None,
) -> list[AdminRequest]:
    stmt = select(AdminRequest).where(AdminRequest.requester_id == requester_id)
    if request_type:
        stmt = stmt.where(AdminRequest.request_type == request_type)
    if status:
        stmt = stmt.where(AdminRequest.status == status)
    return db.execute(stmt.order_by(AdminRequest.created_at.desc(), AdminRequest.id.desc())).scalars().all()


def get_request_status(db: Session, *, request_id: int, requester_id: int) -> dict:
    req = db.get(AdminRequest, request_id)
    if req is None or req.requester_id != requester_id:
        raise NotFoundError("Request not found")
    return {
        "request_id": req.id,
        "request_type": req.request_type,
        "status": req.status,
        "reviewed_at": req.reviewed_at,
    }


# ---------- review ----------

def _claim(db: Session, req: AdminRequest, new_status: str, *, admin_id: int, now: datetime, **values) -> None:
    compare_and_set(
        db,
        AdminRequest,
        req.id,
        new_status,
        message="Request has already been reviewed",
        reviewed_by=admin_id,
        reviewed_at=now,
        **values,
    )


def _notify_requester(db: Session, req: AdminRequest, new_status: str) -> None:
    entry = UserDirectory(db).get(req.requester_id)
    if entry is None:
        log.warning("request %s: requester %s not found, status update not sent", req.id, req.requester_id)
        return
    shift = req.shift
    notify.send_request_status_update(
        user_name=entry.name,
        user_email=entry.email,
        request_type=REQUEST_TYPE_LABELS.get(req.request_type, req.request_type),
        new_status=new_status,
        shift=shift,
        project_name=shift.project.name,
    )


def _replace_staff(db: Session, *, shift: Shift, requester_id: int, replacement_id: int) -> None:
    if shift.leader_id == requester_id:
        slot, membership_type = "leader_id", "shift_leader"
    elif shift.gateman_id == requester_id:
        slot, membership_type = "gateman_id", "gateman"
    else:
        raise PreconditionError("Requester no longer staffs this shift")

    if get_active_membership(db, project_id=shift.project_id, user_id=replacement_id, membership_type=membership_type) is None:
        raise PreconditionError("Replacement user is not an active member of this project")
    setattr(shift, slot, replacement_id)


def handle_cancellation_request(
    db: Session,
    *,
    request_id: int,
    replacement_email: str,
    should_penalize: bool,
    admin_id: int,
    policy: ScoringPolicy | None = None,
    now: datetime | None = None,
) -> dict:
    now = now or datetime.now()
    policy = policy or default_policy()
    directory = UserDirectory(db)

    req = get_request(db, request_id)
    if req.request_type != "shiftCancellation":
        raise PreconditionError("Not a shift cancellation request")

    replacement_student = False
    penalty: PenaltyDetails | None = None
    try:
        _claim(db, req, "approved", admin_id=admin_id, now=now, replacement_email=replacement_email)

        replacement = directory.find_by_email(replacement_email)
        if replacement is None:
            raise NotFoundError("Replacement user not found")
        if replacement.user_id == req.requester_id:
            raise PreconditionError("Replacement must be a different user")

        shift = req.shift
        if req.assignment_id is not None:
            if get_active_membership(
                db, project_id=shift.project_id, user_id=replacement.user_id, membership_type="student"
            ) is None:
                raise PreconditionError("Replacement user is not an active member of this project")

            compare_and_set(
                db,
                ShiftAssignment,
                req.assignment_id,
                "cancelled",
                message="The original assignment is no longer active",
            )
            # the replacement takes over the vacated slot
            add_assignment(
                db, shift=shift, student_id=replacement.user_id, assigned_by=admin_id, now=now, count_slot=False
            )
            replacement_student = True
        else:
            _replace_staff(db, shift=shift, requester_id=req.requester_id, replacement_id=replacement.user_id)

        requester_is_student = db.execute(
            select(Student.id).where(Student.user_id == req.requester_id)
        ).first() is not None
        if should_penalize and requester_is_student:
            penalty = penalize_student(db, student_id=req.requester_id, policy=policy)
            req.penalized = True

        db.commit()
    except Exception:
        db.rollback()
        raise

    log.info(
        "cancellation request %s approved by %s, replacement=%s penalized=%s",
        req.id, admin_id, replacement.user_id, penalty is not None,
    )

    if replacement_student:
        notify.send_assignment_notice(
            student_name=replacement.name,
            student_email=replacement.email,
            shift=shift,
            project_name=shift.project.name,
        )
    _notify_requester(db, req, "approved")

    return {
        "success": True,
        "message": "Cancellation request processed successfully",
        "penalty_details": (
            {"new_rating": penalty.new_rating, "new_punctuality": penalty.new_punctuality} if penalty else None
        ),
    }


def handle_filler_request(
    db: Session,
    *,
    request_id: int,
    action: str,
    admin_id: int,
    now: datetime | None = None,
) -> dict:
    if action not in ("approve", "reject"):
        raise PreconditionError(f"Unknown action: {action}")

    req = get_request(db, request_id)
    if req.request_type != "fillerShiftApplication":
        raise PreconditionError("Not a filler shift application")

    if action == "reject":
        reject_request(db, request_id=request_id, admin_id=admin_id, now=now)
        return {"success": True, "message": "Filler request rejected successfully"}

    now = now or datetime.now()
    try:
        _claim(db, req, "approved", admin_id=admin_id, now=now)

        shift = req.shift
        if get_active_membership(
            db, project_id=shift.project_id, user_id=req.requester_id, membership_type="student"
        ) is None:
            raise PreconditionError("Requester is not an active member of this project")

        add_assignment(db, shift=shift, student_id=req.requester_id, assigned_by=admin_id, now=now)
        db.commit()
    except Exception:
        db.rollback()
        raise

    log.info("filler request %s approved by %s", req.id, admin_id)
    _notify_requester(db, req, "approved")
    return {"success": True, "message": "Filler request approved successfully"}


def reject_request(db: Session, *, request_id: int, admin_id: int, now: datetime | None = None) -> dict:
    now = now or datetime.now()
    req = get_request(db, request_id)
    try:
        _claim(db, req, "rejected", admin_id=admin_id, now=now)
        db.commit()
    except Exception:
        db.rollback()
        raise

    log.info("request %s (%s) rejected by %s", req.id, req.request_type, admin_id)
    _notify_requester(db, req, "rejected")
    return {"success": True, "message": "Request rejected successfully"}
