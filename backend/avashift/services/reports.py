"""Worked and lost hours per student over a project's closed attendance records."""

from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, time, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from avashift.models import AttendanceRecord, ProjectMember, Shift, User
from avashift.services.attendance import compute_hours
from avashift.services.projects import require_project_admin

# statuses that count as a worked shift
WORKED_STATUSES = ("present", "late")


def hours_report(
    db: Session,
    *,
    project_id: int,
    admin_id: int,
    date_from: date | None = None,
    date_to: date | None = None,
    search: str = "",
) -> dict:
    """One row per active student of the project plus project totals.

    Only records with both a clock-in and a clock-out count. The date range
    filters on the shift's start day and is open-ended on a missing side.
    """
    require_project_admin(db, project_id=project_id, admin_id=admin_id)

    students = db.execute(
        select(User)
        .join(ProjectMember, ProjectMember.user_id == User.id)
        .where(
            ProjectMember.project_id == project_id,
            ProjectMember.membership_type == "student",
            ProjectMember.status == "active",
        )
        .order_by(User.first_name, User.last_name, User.id)
    ).scalars().all()

    stmt = (
        select(AttendanceRecord, Shift)
        .join(Shift, Shift.id == AttendanceRecord.shift_id)
        .where(
            Shift.project_id == project_id,
            AttendanceRecord.attendance_status.in_(WORKED_STATUSES),
            AttendanceRecord.clock_in_time.is_not(None),
            AttendanceRecord.clock_out_time.is_not(None),
        )
    )
    if date_from:
        stmt = stmt.where(Shift.start_time >= datetime.combine(date_from, time.min))
    if date_to:
        stmt = stmt.where(Shift.start_time < datetime.combine(date_to + timedelta(days=1), time.min))

    by_student = defaultdict(list)
    for record, shift in db.execute(stmt).all():
        by_student[record.student_id].append((record, shift))

    needle = (search or "").strip().lower()
    items = []
    summary = {"total_shifts": 0, "total_tracked_hours": 0.0, "total_lost_hours": 0.0}
    for student in students:
        if needle and needle not in student.full_name.lower():
            continue

        tracked = lost = 0.0
        days = set()
        for record, shift in by_student.get(student.id, []):
            hours = compute_hours(shift.start_time, shift.stop_time, record.clock_in_time, record.clock_out_time)
            tracked += hours.tracked_hours
            lost += hours.lost_hours
            days.add(shift.start_time.date())

        worked = len(by_student.get(student.id, []))
        items.append(
            {
                "student_id": student.id,
                "name": student.full_name,
                "shifts_completed": worked,
                "tracked_hours": round(tracked, 2),
                "lost_hours": round(lost, 2),
                "dates_worked": [d.isoformat() for d in sorted(days)],
            }
        )
        summary["total_shifts"] += worked
        summary["total_tracked_hours"] += tracked
        summary["total_lost_hours"] += lost

    summary["total_tracked_hours"] = round(summary["total_tracked_hours"], 2)
    summary["total_lost_hours"] = round(summary["total_lost_hours"], 2)
    return {"items": items, "summary": summary}
