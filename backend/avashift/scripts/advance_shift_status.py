"""Move shifts along their schedule.

Run this script periodically (e.g. every 5 minutes) from the backend environment.
Published shifts whose start has passed become in_progress; in_progress shifts
whose stop has passed become completed. Draft shifts are never touched.

Env:
  - database_url (via avashift.core.config)
  - DRY_RUN=1 only prints matches
"""

from __future__ import annotations

import logging
import os
from datetime import datetime

from sqlalchemy import select

from avashift.core.db import SessionLocal
from avashift.models import Shift
from avashift.services.transitions import transition

log = logging.getLogger("avashift.scripts.advance_shift_status")

DRY_RUN = os.getenv("DRY_RUN", "").strip() in ("1", "true", "yes")


def advance(db, now: datetime, dry_run: bool = False) -> int:
    changed = 0

    started = db.execute(
        select(Shift).where(Shift.status == "published", Shift.start_time <= now)
    ).scalars().all()
    for sh in started:
        if dry_run:
            print(f"DRY_RUN match: shift_id={sh.id} published -> in_progress start={sh.start_time}")
            continue
        transition(sh, "in_progress")
        changed += 1

    # a shift that started and ended between two runs goes straight through
    finished = db.execute(
        select(Shift).where(Shift.status.in_(("published", "in_progress")), Shift.stop_time <= now)
    ).scalars().all()
    for sh in finished:
        if dry_run:
            print(f"DRY_RUN match: shift_id={sh.id} {sh.status} -> completed stop={sh.stop_time}")
            continue
        if sh.status == "published":
            transition(sh, "in_progress")
        transition(sh, "completed")
        if sh not in started:
            changed += 1

    if changed:
        db.commit()
    return changed


def main() -> int:
    with SessionLocal() as db:
        n = advance(db, datetime.now(), dry_run=DRY_RUN)
    log.info("advanced %s shifts", n)
    return n


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    n = main()
    print(f"changed={n}")
