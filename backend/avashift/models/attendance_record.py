from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from avashift.core.db import Base


class AttendanceRecord(Base):
    """Clock-in/out of a student on a shift.

    The status is asserted by the gateman (pending on clock-in) or the shift leader,
    it is not derived from the timestamps.
    """

    __tablename__ = "attendance_records"
    __table_args__ = (
        UniqueConstraint("shift_id", "student_id", name="uq_attendance_shift_student"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    shift_id: Mapped[int] = mapped_column(ForeignKey("shifts.id"), index=True)
    student_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)

    clock_in_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    clock_out_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    attendance_status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    clock_in_verified_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    marked_by_leader: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)

    # filled in on clock-out
    tracked_hours: Mapped[float | None] = mapped_column(Float, nullable=True)
    lost_hours: Mapped[float | None] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    shift = relationship("Shift")
    student = relationship("User", foreign_keys=[student_id])
