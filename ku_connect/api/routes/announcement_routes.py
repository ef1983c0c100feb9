"""
Announcement Routes

GET /announcements - Announcements visible to the caller's role
POST /announcements - Publish an announcement (admin only)
DELETE /announcements/{announcement_id} - Remove an announcement (admin only)
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy import text

from ku_connect.db.session import get_db_session, execute_raw_sql
from ku_connect.core.errors import NotFound
from ku_connect.middleware import Authenticate, Authorize, RateLimit, RequestContext, Validate, guard
from ku_connect.middleware import policies
from ku_connect.models.identity import AuthorizationRule, Role
from ku_connect.services.notification_service import notify_audience
from ku_connect.schemas.schemas import AnnouncementCreate, AnnouncementResponse, MessageResponse

logger = logging.getLogger("ku_connect.api.announcements")

router = APIRouter(prefix="/announcements", tags=["Announcements"])

ADMINS_ONLY = AuthorizationRule.roles(Role.ADMIN)


@router.get("", response_model=List[AnnouncementResponse])
async def list_announcements(ctx: RequestContext = Depends(guard(
    Authenticate(),
    RateLimit(policies.GENERAL),
))):
    """Admins see everything; everyone else sees ALL plus their own role's audience."""
    if ctx.identity.role == Role.ADMIN:
        rows = execute_raw_sql("SELECT * FROM announcements ORDER BY created_at DESC")
    else:
        rows = execute_raw_sql(
            "SELECT * FROM announcements WHERE audience IN ('ALL', :role) ORDER BY created_at DESC",
            {"role": ctx.identity.role.value}
        )
    return [AnnouncementResponse(**r) for r in rows]


@router.post("", response_model=AnnouncementResponse, status_code=201)
async def create_announcement(ctx: RequestContext = Depends(guard(
    Authenticate(),
    Authorize(ADMINS_ONLY),
    RateLimit(policies.ADMIN_ANNOUNCEMENT),
    Validate(AnnouncementCreate),
))):
    """Publish an announcement and notify its audience."""
    data: AnnouncementCreate = ctx.body
    announcement = AnnouncementResponse(
        id=uuid.uuid4().hex, title=data.title, content=data.content, audience=data.audience.value,
        created_by=ctx.identity.id, created_at=datetime.now(timezone.utc)
    )

    with get_db_session() as db:
        db.execute(
            text("""
                INSERT INTO announcements (id, title, content, audience, created_by, created_at)
                VALUES (:id, :title, :content, :audience, :created_by, :created_at)
            """),
            announcement.model_dump()
        )
        notified = notify_audience(
            db, announcement.audience, "announcement", announcement.title, announcement.content,
            exclude_user_id=ctx.identity.id
        )

    logger.info("Announcement %s sent to %d user(s)", announcement.id, notified)
    return announcement


@router.delete("/{announcement_id}", response_model=MessageResponse)
async def delete_announcement(announcement_id: str, ctx: RequestContext = Depends(guard(
    Authenticate(),
    Authorize(ADMINS_ONLY),
    RateLimit(policies.ADMIN_WRITE),
))):
    with get_db_session() as db:
        result = db.execute(text("DELETE FROM announcements WHERE id = :id"), {"id": announcement_id})
        if result.rowcount == 0:
            raise NotFound("Announcement not found")
    return MessageResponse(message="Announcement deleted")
