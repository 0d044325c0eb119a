from .enums import (
    AssignmentStatus,
    AttendanceStatus,
    CodeStatus,
    MembershipType,
    MemberStatus,
    RequestStatus,
    RequestType,
    ShiftStatus,
    ShiftType,
    TimeType,
    UserRole,
)
from .user import User
from .student import Student
from .project import Project
from .project_member import ProjectMember
from .shift import Shift
from .shift_assignment import ShiftAssignment
from .verification_code import VerificationCode
from .attendance_record import AttendanceRecord
from .admin_request import AdminRequest
from .student_note import StudentNote

__all__ = [
    "AssignmentStatus",
    "AttendanceStatus",
    "CodeStatus",
    "MembershipType",
    "MemberStatus",
    "RequestStatus",
    "RequestType",
    "ShiftStatus",
    "ShiftType",
    "TimeType",
    "UserRole",
    "User",
    "Student",
    "Project",
    "ProjectMember",
    "Shift",
    "ShiftAssignment",
    "VerificationCode",
    "AttendanceRecord",
    "AdminRequest",
    "StudentNote",
]
