"""Legal status transitions for every entity that has a lifecycle.

Services never assign `.status` directly: in-memory objects go through
`transition()`, and transitions that two callers may race on go through
`compare_and_set()`, which lets the database decide the winner.
"""

from __future__ import annotations

import logging

from sqlalchemy import update
from sqlalchemy.orm import Session

from avashift.core.errors import ConflictError
from avashift.models import AdminRequest, Shift, ShiftAssignment, VerificationCode

log = logging.getLogger("avashift.transitions")


TRANSITIONS: dict[type, dict[str, frozenset[str]]] = {
    Shift: {
        "draft": frozenset({"published"}),
        "published": frozenset({"in_progress"}),
        "in_progress": frozenset({"completed"}),
        "completed": frozenset(),
    },
    ShiftAssignment: {
        "pending": frozenset({"assigned", "cancelled"}),
        "assigned": frozenset({"confirmed", "completed", "cancelled"}),
        "confirmed": frozenset({"completed", "cancelled"}),
        "completed": frozenset(),
        "cancelled": frozenset(),
    },
    VerificationCode: {
        "active": frozenset({"used"}),
        "used": frozenset(),
    },
    AdminRequest: {
        "pending": frozenset({"approved", "rejected"}),
        "approved": frozenset(),
        "rejected": frozenset(),
    },
}


def can_transition(model: type, current: str, new: str) -> bool:
    return new in TRANSITIONS[model].get(current, frozenset())


def predecessors(model: type, new: str) -> list[str]:
    return sorted(state for state, targets in TRANSITIONS[model].items() if new in targets)


def transition(obj, new_status: str, *, message: str | None = None) -> None:
    model = type(obj)
    if not can_transition(model, obj.status, new_status):
        raise ConflictError(
            message or f"Cannot change {model.__tablename__} #{obj.id} from {obj.status} to {new_status}"
        )
    obj.status = new_status


def compare_and_set(
    db: Session,
    model: type,
    obj_id: int,
    new_status: str,
    *criteria,
    message: str | None = None,
    **values,
) -> None:
    """Move one row to `new_status` only if it is still in a legal predecessor state.

    Extra `criteria` narrow the match further. Raises ConflictError when no row
    matched, i.e. the row is gone or another caller already moved it.
    """
    stmt = (
        update(model)
        .where(model.id == obj_id, model.status.in_(predecessors(model, new_status)), *criteria)
        .values(status=new_status, **values)
        .execution_options(synchronize_session="evaluate")
    )
    result = db.execute(stmt)
    if result.rowcount != 1:
        log.info("compare-and-set lost: %s #%s -> %s", model.__tablename__, obj_id, new_status)
        raise ConflictError(message or f"{model.__tablename__} #{obj_id} was changed by someone else")
