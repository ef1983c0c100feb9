"""
Notification Routes

GET /notifications - Own notifications, newest first
PATCH /notifications/{notification_id}/read - Mark one of own notifications read
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text

from ku_connect.db.session import get_db_session, execute_raw_sql
from ku_connect.core.errors import NotFound
from ku_connect.middleware import Authenticate, RateLimit, RequestContext, guard
from ku_connect.middleware import policies
from ku_connect.schemas.schemas import NotificationResponse, NotificationListResponse, MessageResponse

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(ctx: RequestContext = Depends(guard(
    Authenticate(),
    RateLimit(policies.GENERAL),
))):
    rows = execute_raw_sql("""
        SELECT id, type, title, message, is_read, created_at
        FROM notifications WHERE user_id = :uid ORDER BY created_at DESC
    """, {"uid": ctx.identity.id})
    notifications = [NotificationResponse(**r) for r in rows]
    return NotificationListResponse(
        notifications=notifications, unread=sum(1 for n in notifications if not n.is_read)
    )


@router.patch("/{notification_id}/read", response_model=MessageResponse)
async def mark_read(notification_id: str, ctx: RequestContext = Depends(guard(
    Authenticate(),
    RateLimit(policies.WRITE),
))):
    # Scoped to the caller: someone else's notification looks missing
    with get_db_session() as db:
        result = db.execute(
            text("UPDATE notifications SET is_read = TRUE WHERE id = :id AND user_id = :uid"),
            {"id": notification_id, "uid": ctx.identity.id}
        )
        if result.rowcount == 0:
            raise NotFound("Notification not found")
    return MessageResponse(message="Notification marked as read")
