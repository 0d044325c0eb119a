import enum


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    STUDENT = "student"
    SHIFT_LEADER = "shift_leader"
    GATEMAN = "gateman"
    CLIENT = "client"


class MembershipType(str, enum.Enum):
    STUDENT = "student"
    SHIFT_LEADER = "shift_leader"
    GATEMAN = "gateman"
    ADMIN = "admin"
    CLIENT = "client"


class MemberStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class ShiftStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ShiftType(str, enum.Enum):
    NORMAL = "normal"
    FILLER = "filler"


class TimeType(str, enum.Enum):
    DAY = "day"
    NIGHT = "night"


class AssignmentStatus(str, enum.Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# assignments that still hold a slot on the shift
LIVE_ASSIGNMENT_STATUSES = (AssignmentStatus.ASSIGNED.value, AssignmentStatus.CONFIRMED.value)


class CodeStatus(str, enum.Enum):
    ACTIVE = "active"
    USED = "used"


class AttendanceStatus(str, enum.Enum):
    PENDING = "pending"
    PRESENT = "present"
    LATE = "late"
    ABSENT = "absent"


class RequestType(str, enum.Enum):
    SHIFT_CANCELLATION = "shiftCancellation"
    FILLER_SHIFT_APPLICATION = "fillerShiftApplication"
    AVAILABILITY_CHANGE = "availabilityChange"


class RequestStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
