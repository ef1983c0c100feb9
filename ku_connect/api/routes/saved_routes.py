"""
Saved Job Routes - a student's bookmarked postings.

GET /save-jobs/{user_id}/saved - List saved jobs
POST /save-jobs/{user_id}/saved - Save a job
DELETE /save-jobs/{user_id}/saved - Remove a saved job

Students only, and only for their own user_id.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import text

from ku_connect.api.routes.job_routes import JOB_COLUMNS, job_from_row
from ku_connect.db.session import get_db_session, execute_raw_sql
from ku_connect.core.errors import NotFound
from ku_connect.middleware import Authenticate, Authorize, RateLimit, RequestContext, Validate, guard
from ku_connect.middleware import policies
from ku_connect.models.identity import AuthorizationRule, Role
from ku_connect.schemas.schemas import (
    SavedJobsPath, SavedJobRequest, SavedJobListResponse, MessageResponse
)

router = APIRouter(prefix="/save-jobs", tags=["Saved Jobs"])

OWN_SAVED_JOBS = AuthorizationRule.owner("user_id", Role.STUDENT)


@router.get("/{user_id}/saved", response_model=SavedJobListResponse)
async def get_saved(user_id: str, ctx: RequestContext = Depends(guard(
    Authenticate(),
    Authorize(OWN_SAVED_JOBS),
    RateLimit(policies.STRICT),
    Validate(SavedJobsPath, sources=("path",)),
))):
    rows = execute_raw_sql(f"""
        SELECT {JOB_COLUMNS}
        FROM saved_jobs s
        JOIN jobs j ON s.job_id = j.id
        JOIN users u ON j.employer_id = u.id
        WHERE s.user_id = :uid
        ORDER BY s.created_at DESC
    """, {"uid": ctx.body.user_id})
    return SavedJobListResponse(user_id=ctx.body.user_id, jobs=[job_from_row(r, True) for r in rows])


@router.post("/{user_id}/saved", response_model=MessageResponse, status_code=201)
async def post_saved(user_id: str, ctx: RequestContext = Depends(guard(
    Authenticate(),
    Authorize(OWN_SAVED_JOBS),
    RateLimit(policies.WRITE),
    Validate(SavedJobRequest, sources=("body", "path")),
))):
    """Save a job. Saving an already-saved job is a no-op."""
    request: SavedJobRequest = ctx.body
    with get_db_session() as db:
        if not db.execute(text("SELECT id FROM jobs WHERE id = :jid"), {"jid": request.job_id}).fetchone():
            raise NotFound("Job not found")

        existing = db.execute(
            text("SELECT job_id FROM saved_jobs WHERE user_id = :uid AND job_id = :jid"),
            {"uid": request.user_id, "jid": request.job_id}
        ).fetchone()
        if not existing:
            db.execute(
                text("INSERT INTO saved_jobs (user_id, job_id, created_at) VALUES (:uid, :jid, :created_at)"),
                {"uid": request.user_id, "jid": request.job_id, "created_at": datetime.now(timezone.utc)}
            )

    return MessageResponse(message="Job saved")


@router.delete("/{user_id}/saved", response_model=MessageResponse)
async def delete_saved(user_id: str, ctx: RequestContext = Depends(guard(
    Authenticate(),
    Authorize(OWN_SAVED_JOBS),
    RateLimit(policies.WRITE),
    Validate(SavedJobRequest, sources=("body", "path")),
))):
    request: SavedJobRequest = ctx.body
    with get_db_session() as db:
        result = db.execute(
            text("DELETE FROM saved_jobs WHERE user_id = :uid AND job_id = :jid"),
            {"uid": request.user_id, "jid": request.job_id}
        )
        if result.rowcount == 0:
            raise NotFound("Saved job not found")

    return MessageResponse(message="Saved job removed")
