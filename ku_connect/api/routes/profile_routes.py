"""
Profile Routes

GET /profile/{user_id} - View a profile (owner or admin)
PATCH /profile/{user_id} - Update name/phone (owner or admin)
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text

from ku_connect.db.session import get_db_session
from ku_connect.core.errors import NotFound
from ku_connect.middleware import Authenticate, Authorize, RateLimit, RequestContext, Validate, guard
from ku_connect.middleware import policies
from ku_connect.models.identity import AuthorizationRule
from ku_connect.schemas.schemas import ProfileUpdate, UserResponse

router = APIRouter(prefix="/profile", tags=["Profile"])

OWNER_OR_ADMIN = AuthorizationRule.owner("user_id", admin_bypass=True)


def _load_profile(user_id: str) -> UserResponse:
    with get_db_session() as db:
        row = db.execute(
            text("SELECT id, email, role, verified, name, phone, created_at FROM users WHERE id = :id"),
            {"id": user_id}
        ).fetchone()
    if not row:
        raise NotFound("User not found")
    return UserResponse(
        id=row[0], email=row[1], role=row[2], verified=bool(row[3]),
        name=row[4], phone=row[5], created_at=row[6]
    )


@router.get("/{user_id}", response_model=UserResponse)
async def get_profile(user_id: str, ctx: RequestContext = Depends(guard(
    Authenticate(),
    Authorize(OWNER_OR_ADMIN),
    RateLimit(policies.GENERAL),
))):
    return _load_profile(user_id)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_profile(user_id: str, ctx: RequestContext = Depends(guard(
    Authenticate(),
    Authorize(OWNER_OR_ADMIN),
    RateLimit(policies.WRITE),
    Validate(ProfileUpdate, sources=("body", "path")),
))):
    """Only fields present in the body are changed."""
    update: ProfileUpdate = ctx.body
    changes = update.model_dump(exclude_unset=True, exclude={"user_id"})

    if changes:
        assignments = ", ".join(f"{field} = :{field}" for field in changes)
        with get_db_session() as db:
            result = db.execute(
                text(f"UPDATE users SET {assignments} WHERE id = :id"),
                {**changes, "id": update.user_id}
            )
            if result.rowcount == 0:
                raise NotFound("User not found")

    return _load_profile(update.user_id)
