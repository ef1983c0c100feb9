"""
Student Preference Routes

GET /students/preferences - Get own job preferences
PUT /students/preferences - Create or replace own job preferences
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import text

from ku_connect.db.session import get_db_session, execute_raw_sql
from ku_connect.middleware import Authenticate, Authorize, RateLimit, RequestContext, Validate, guard
from ku_connect.middleware import policies
from ku_connect.models.identity import AuthorizationRule, Role
from ku_connect.schemas.schemas import PreferenceUpdate, PreferenceResponse

router = APIRouter(prefix="/students/preferences", tags=["Student Preferences"])

STUDENTS_ONLY = AuthorizationRule.roles(Role.STUDENT)


@router.get("", response_model=PreferenceResponse)
async def get_preferences(ctx: RequestContext = Depends(guard(
    Authenticate(),
    Authorize(STUDENTS_ONLY),
))):
    """Saved preferences, or the defaults if none were stored yet."""
    rows = execute_raw_sql(
        "SELECT * FROM student_preferences WHERE user_id = :uid", {"uid": ctx.identity.id}
    )
    if not rows:
        return PreferenceResponse(user_id=ctx.identity.id)
    return PreferenceResponse(**rows[0])


@router.put("", response_model=PreferenceResponse)
async def upsert_preferences(ctx: RequestContext = Depends(guard(
    Authenticate(),
    RateLimit(policies.PREFERENCES),
    Authorize(STUDENTS_ONLY),
    Validate(PreferenceUpdate),
))):
    prefs: PreferenceUpdate = ctx.body
    params = {
        "uid": ctx.identity.id,
        "desired_location": prefs.desired_location or None,
        "min_salary": prefs.min_salary,
        "industry": prefs.industry.value if prefs.industry else None,
        "job_type": prefs.job_type.value if prefs.job_type else None,
        "remote_only": prefs.remote_only,
        "updated_at": datetime.now(timezone.utc),
    }

    with get_db_session() as db:
        exists = db.execute(
            text("SELECT user_id FROM student_preferences WHERE user_id = :uid"), {"uid": ctx.identity.id}
        ).fetchone()
        if exists:
            db.execute(
                text("""
                    UPDATE student_preferences
                    SET desired_location = :desired_location, min_salary = :min_salary,
                        industry = :industry, job_type = :job_type, remote_only = :remote_only,
                        updated_at = :updated_at
                    WHERE user_id = :uid
                """),
                params
            )
        else:
            db.execute(
                text("""
                    INSERT INTO student_preferences
                        (user_id, desired_location, min_salary, industry, job_type, remote_only, updated_at)
                    VALUES (:uid, :desired_location, :min_salary, :industry, :job_type, :remote_only, :updated_at)
                """),
                params
            )

    return PreferenceResponse(
        user_id=ctx.identity.id, desired_location=params["desired_location"], min_salary=prefs.min_salary,
        industry=params["industry"], job_type=params["job_type"], remote_only=prefs.remote_only,
        updated_at=params["updated_at"]
    )
