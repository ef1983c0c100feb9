"""
Notification Service - in-app notifications written alongside domain changes.

Functions take the caller's open session so the notification commits (or
rolls back) together with the change that triggered it.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import text
from sqlalchemy.orm import Session


def _now() -> datetime:
    return datetime.now(timezone.utc)


def notify_user(db: Session, user_id: str, kind: str, title: str, message: str) -> str:
    """Create one notification. Returns its id."""
    notification_id = uuid.uuid4().hex
    db.execute(
        text("""
            INSERT INTO notifications (id, user_id, type, title, message, is_read, created_at)
            VALUES (:id, :user_id, :type, :title, :message, FALSE, :created_at)
        """),
        {"id": notification_id, "user_id": user_id, "type": kind, "title": title,
         "message": message, "created_at": _now()}
    )
    return notification_id


def notify_audience(db: Session, audience: str, kind: str, title: str, message: str,
                    exclude_user_id: Optional[str] = None) -> int:
    """Notify every user in an audience ("ALL" or a role). Returns the count."""
    if audience == "ALL":
        rows = db.execute(text("SELECT id FROM users")).fetchall()
    else:
        rows = db.execute(text("SELECT id FROM users WHERE role = :role"), {"role": audience}).fetchall()

    count = 0
    for (user_id,) in rows:
        if user_id == exclude_user_id:
            continue
        notify_user(db, user_id, kind, title, message)
        count += 1
    return count
