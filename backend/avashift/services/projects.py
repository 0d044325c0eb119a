from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from avashift.core.errors import NotFoundError, PermissionDeniedError, PreconditionError
from avashift.models import MembershipType, Project, ProjectMember, Student, User


# the creating admin becomes the first member
def create_project(db: Session, *, name: str, admin_id: int, description: str | None = None) -> Project:
    project = Project(name=name.strip(), description=description, created_by=admin_id)
    db.add(project)
    db.flush()  # assigns project.id

    db.add(ProjectMember(project_id=project.id, user_id=admin_id, membership_type="admin", status="active"))

    db.commit()
    db.refresh(project)
    return project


def add_member(db: Session, *, project_id: int, user_id: int, membership_type: str) -> ProjectMember:
    try:
        membership_type = MembershipType(membership_type).value
    except ValueError:
        raise PreconditionError(f"Unknown membership type: {membership_type}")

    project = db.get(Project, project_id)
    if project is None:
        raise NotFoundError("Project not found")
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")

    mem = db.execute(
        select(ProjectMember).where(ProjectMember.project_id == project_id, ProjectMember.user_id == user_id)
    ).scalar_one_or_none()
    if mem:
        mem.membership_type = membership_type
        mem.status = "active"
    else:
        mem = ProjectMember(project_id=project_id, user_id=user_id, membership_type=membership_type, status="active")
        db.add(mem)

    # students always carry a scoring profile
    if membership_type == "student":
        profile = db.execute(select(Student).where(Student.user_id == user_id)).scalar_one_or_none()
        if profile is None:
            db.add(Student(user_id=user_id))

    db.commit()
    db.refresh(mem)
    return mem


def deactivate_member(db: Session, *, project_id: int, user_id: int) -> None:
    mem = db.execute(
        select(ProjectMember).where(ProjectMember.project_id == project_id, ProjectMember.user_id == user_id)
    ).scalar_one_or_none()
    if mem is None:
        raise NotFoundError("Member not found in project")
    mem.status = "inactive"
    db.commit()


def get_active_membership(
    db: Session, *, project_id: int, user_id: int, membership_type: str | None = None
) -> ProjectMember | None:
    stmt = select(ProjectMember).where(
        ProjectMember.project_id == project_id,
        ProjectMember.user_id == user_id,
        ProjectMember.status == "active",
    )
    if membership_type is not None:
        stmt = stmt.where(ProjectMember.membership_type == membership_type)
    return db.execute(stmt).scalar_one_or_none()


def is_active_member(db: Session, *, project_id: int, user_id: int, membership_type: str | None = None) -> bool:
    return get_active_membership(db, project_id=project_id, user_id=user_id, membership_type=membership_type) is not None


def require_project_admin(db: Session, *, project_id: int, admin_id: int) -> Project:
    project = db.get(Project, project_id)
    if project is None:
        raise NotFoundError("Project not found")
    if project.created_by == admin_id:
        return project
    if not is_active_member(db, project_id=project_id, user_id=admin_id, membership_type="admin"):
        raise PermissionDeniedError("Forbidden")
    return project


def admin_project_ids(db: Session, *, admin_id: int) -> list[int]:
    owned = db.execute(select(Project.id).where(Project.created_by == admin_id)).scalars().all()
    administered = db.execute(
        select(ProjectMember.project_id).where(
            ProjectMember.user_id == admin_id,
            ProjectMember.membership_type == "admin",
            ProjectMember.status == "active",
        )
    ).scalars().all()
    return sorted(set(owned) | set(administered))
