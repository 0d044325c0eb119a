from __future__ import annotations

import json
import logging
import urllib.request
from typing import Any

from avashift.core.config import settings

log = logging.getLogger("avashift.notify")


def notify(
    recipient_email: str,
    recipient_name: str,
    template: str,
    fields: dict[str, Any] | None = None,
) -> bool:
    """Best-effort notification.

    Hands the message to the notification service (email delivery lives there) at
    NOTIFY_SERVICE_URL. Callers invoke this after their transaction is committed,
    so a delivery failure never undoes a state change.

    Returns True if request succeeded, else False. Never raises.
    """
    svc_url = settings.NOTIFY_SERVICE_URL
    if not svc_url:
        log.warning("notify skipped: no NOTIFY_SERVICE_URL (template=%s to=%s)", template, recipient_email)
        return False
    if not recipient_email:
        log.warning("notify skipped: no recipient email (template=%s)", template)
        return False

    secret = settings.NOTIFY_SERVICE_SECRET
    try:
        payload = json.dumps(
            {
                "recipient_name": recipient_name,
                "recipient_email": recipient_email,
                "template": template,
                "fields": fields or {},
            },
            ensure_ascii=False,
            default=str,
        ).encode("utf-8")
        req = urllib.request.Request(
            svc_url.rstrip("/") + "/notify",
            data=payload,
            method="POST",
            headers={
                "Content-Type": "application/json",
                **({"X-Notify-Secret": secret} if secret else {}),
            },
        )
        with urllib.request.urlopen(req, timeout=5) as resp:
            body = resp.read().decode("utf-8", errors="ignore")
            if 200 <= resp.status < 300:
                if not body:
                    return True
                try:
                    js = json.loads(body)
                    return bool(js.get("ok", True))
                except ValueError:
                    return True
            log.warning("notify failed status=%s body=%s", resp.status, body[:300])
            return False
    except Exception as e:
        log.exception("notify exception: %s", e)
        return False


def _shift_fields(shift, project_name: str) -> dict[str, str]:
    return {
        "project_name": project_name,
        "date": shift.start_time.strftime("%d/%m/%Y %I:%M %p"),
        "start_time": shift.start_time.strftime("%d/%m/%Y %I:%M %p"),
        "end_time": shift.stop_time.strftime("%d/%m/%Y %I:%M %p"),
        "time": "Day Shift" if shift.time_type == "day" else "Night Shift",
    }


def send_assignment_notice(*, student_name: str, student_email: str, shift, project_name: str) -> bool:
    return notify(student_email, student_name, "shift_assignment", _shift_fields(shift, project_name))


def send_request_status_update(
    *,
    user_name: str,
    user_email: str,
    request_type: str,
    new_status: str,
    shift,
    project_name: str,
) -> bool:
    fields = _shift_fields(shift, project_name)
    fields.update({"request_type": request_type, "new_status": new_status})
    return notify(user_email, user_name, "request_status_update", fields)


def send_student_note(
    *,
    admin_name: str,
    admin_email: str,
    student_name: str,
    project_name: str,
    leader_name: str,
    note: str,
) -> bool:
    fields = {
        "student_name": student_name,
        "project_name": project_name,
        "leader_name": leader_name,
        "note": note,
    }
    return notify(admin_email, admin_name, "student_note", fields)
