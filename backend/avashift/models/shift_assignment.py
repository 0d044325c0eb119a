from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from avashift.core.db import Base


class ShiftAssignment(Base):
    """Binding of one student to one shift. Cancelled rows are kept as history."""

    __tablename__ = "shift_assignments"

    id: Mapped[int] = mapped_column(primary_key=True)

    shift_id: Mapped[int] = mapped_column(ForeignKey("shifts.id"), index=True)
    student_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    project_member_id: Mapped[int] = mapped_column(ForeignKey("project_members.id"), index=True)

    status: Mapped[str] = mapped_column(String(16), nullable=False, default="assigned")
    assigned_by: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    assigned_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now)
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    shift = relationship("Shift", back_populates="assignments")
    student = relationship("User", foreign_keys=[student_id])
    project_member = relationship("ProjectMember")


# at most one non-cancelled assignment per (shift, student)
Index(
    "uq_shift_assignments_live_student",
    ShiftAssignment.shift_id,
    ShiftAssignment.student_id,
    unique=True,
    postgresql_where=text("status <> 'cancelled'"),
    sqlite_where=text("status <> 'cancelled'"),
)
