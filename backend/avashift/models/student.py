from __future__ import annotations

from sqlalchemy import Float, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from avashift.core.db import Base


class Student(Base):
    """Scoring profile of a student user. Only the scoring engine writes the scores."""

    __tablename__ = "students"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), unique=True, index=True)

    punctuality_score: Mapped[float] = mapped_column(Float, nullable=False, default=100.0)  # 0..100
    rating: Mapped[float] = mapped_column(Float, nullable=False, default=5.0)  # 1.0..5.0
    availability_status: Mapped[str] = mapped_column(String(16), nullable=False, default="active")

    user = relationship("User", back_populates="student_profile")
