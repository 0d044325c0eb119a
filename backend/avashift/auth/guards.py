from __future__ import annotations

from fastapi import Depends, HTTPException, status

from avashift.auth.deps import get_current_user
from avashift.models.user import User


def require_role(*roles: str):
    """Dependency factory: the caller's user role must be one of `roles`."""

    def _guard(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"{' or '.join(roles)} role required",
            )
        return user

    return _guard


require_admin = require_role("admin")
require_student = require_role("student")
require_leader = require_role("shift_leader")
require_gateman = require_role("gateman")
