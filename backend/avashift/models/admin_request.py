from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from avashift.core.db import Base


class AdminRequest(Base):
    """Substitution request reviewed by an admin (cancellation, filler application, availability change)."""

    __tablename__ = "admin_requests"

    id: Mapped[int] = mapped_column(primary_key=True)

    request_type: Mapped[str] = mapped_column(String(32), nullable=False)
    requester_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    shift_id: Mapped[int] = mapped_column(ForeignKey("shifts.id"), index=True)
    assignment_id: Mapped[int | None] = mapped_column(ForeignKey("shift_assignments.id"), nullable=True)

    reason: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    replacement_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")  # pending | approved | rejected
    reviewed_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    penalized: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now, index=True)

    shift = relationship("Shift")
    assignment = relationship("ShiftAssignment")
    requester = relationship("User", foreign_keys=[requester_id])
    reviewer = relationship("User", foreign_keys=[reviewed_by])


Index("ix_admin_requests_shift_status", AdminRequest.shift_id, AdminRequest.status)
