"""
Admin Routes

GET /admin/users - List users, optionally by role
PATCH /admin/users/{user_id}/verify - Verify (or un-verify) an account
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text

from ku_connect.db.session import get_db_session, execute_raw_sql
from ku_connect.core.errors import NotFound
from ku_connect.middleware import Authenticate, Authorize, RateLimit, RequestContext, Validate, guard
from ku_connect.middleware import policies
from ku_connect.models.identity import AuthorizationRule, Role
from ku_connect.services.notification_service import notify_user
from ku_connect.schemas.schemas import UserResponse, VerifyUserRequest

logger = logging.getLogger("ku_connect.api.admin")

router = APIRouter(prefix="/admin", tags=["Admin"])

ADMINS_ONLY = AuthorizationRule.roles(Role.ADMIN)


class UserListQuery(BaseModel):
    role: Optional[Role] = None


@router.get("/users", response_model=List[UserResponse])
async def list_users(ctx: RequestContext = Depends(guard(
    Authenticate(),
    Authorize(ADMINS_ONLY),
    RateLimit(policies.ADMIN_READ),
    Validate(UserListQuery, sources=("query",)),
))):
    sql = "SELECT id, email, role, verified, name, phone, created_at FROM users"
    params = {}
    if ctx.body.role:
        sql += " WHERE role = :role"
        params["role"] = ctx.body.role.value
    rows = execute_raw_sql(sql + " ORDER BY created_at", params)
    return [UserResponse(**{**r, "verified": bool(r["verified"])}) for r in rows]


@router.patch("/users/{user_id}/verify", response_model=UserResponse)
async def verify_user(user_id: str, ctx: RequestContext = Depends(guard(
    Authenticate(),
    Authorize(ADMINS_ONLY),
    RateLimit(policies.ADMIN_CRITICAL),
    Validate(VerifyUserRequest, sources=("body", "path")),
))):
    request: VerifyUserRequest = ctx.body
    with get_db_session() as db:
        result = db.execute(
            text("UPDATE users SET verified = :verified WHERE id = :id"),
            {"verified": request.verified, "id": request.user_id}
        )
        if result.rowcount == 0:
            raise NotFound("User not found")
        if request.verified:
            notify_user(db, request.user_id, "approval", "Account verified",
                        "Your account has been verified by an administrator.")

    logger.info("Admin %s set verified=%s on user %s", ctx.identity.id, request.verified, request.user_id)

    rows = execute_raw_sql(
        "SELECT id, email, role, verified, name, phone, created_at FROM users WHERE id = :id",
        {"id": request.user_id}
    )
    return UserResponse(**{**rows[0], "verified": bool(rows[0]["verified"])})
