from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from avashift.core.db import Base


class ProjectMember(Base):
    __tablename__ = "project_members"
    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_project_member"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    project_id: Mapped[int] = mapped_column(ForeignKey("projects.id"), index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)

    membership_type: Mapped[str] = mapped_column(String(32), nullable=False)  # student/shift_leader/gateman/admin/client
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="active")  # active/inactive

    project = relationship("Project", back_populates="members")
    user = relationship("User")
