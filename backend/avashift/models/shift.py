from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Date, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from avashift.core.db import Base


class Shift(Base):
    """A scheduled work slot of a project, staffed by students and run by a leader and a gateman.

    Start/stop are naive server-local datetimes, the same clock used for clock-in/out.
    """

    __tablename__ = "shifts"

    id: Mapped[int] = mapped_column(primary_key=True)

    project_id: Mapped[int] = mapped_column(ForeignKey("projects.id"), index=True)
    date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    day_of_week: Mapped[str] = mapped_column(String(16), nullable=False)
    time_type: Mapped[str] = mapped_column(String(8), nullable=False)  # day | night

    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    stop_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    required_students: Mapped[int] = mapped_column(Integer, nullable=False)
    assigned_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    shift_type: Mapped[str] = mapped_column(String(16), nullable=False, default="normal")  # normal | filler
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="draft", index=True)

    leader_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    gateman_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)

    created_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    project = relationship("Project")
    leader = relationship("User", foreign_keys=[leader_id])
    gateman = relationship("User", foreign_keys=[gateman_id])
    assignments = relationship("ShiftAssignment", back_populates="shift")

    @property
    def is_full(self) -> bool:
        return self.assigned_count >= self.required_students
