"""
Job Routes

GET /jobs - List open jobs with filters (anonymous or signed in)
GET /jobs/my-applications - Own applications and their status (student only)
GET /jobs/reports - List job reports (admin only)
DELETE /jobs/reports/{report_id} - Delete a job report (admin only)
GET /jobs/{job_id} - Get job details
POST /jobs - Create job posting (verified employer only)
PATCH /jobs/{job_id} - Update job posting (owning employer)
DELETE /jobs/{job_id} - Delete job (owning employer or admin)
POST /jobs/{job_id}/apply - Apply to job (student only)
GET /jobs/{job_id}/applications - List applications (owning employer or admin)
POST /jobs/{job_id}/applicants - Mark an applicant qualified or rejected (owning employer)
POST /jobs/{job_id}/report - Report a job posting (any signed-in user but its owner)
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy import text

from ku_connect.db.session import get_db_session, execute_raw_sql
from ku_connect.core.errors import Forbidden, NotFound, RequestValidationFailed
from ku_connect.middleware import Authenticate, Authorize, RateLimit, RequestContext, Validate, guard
from ku_connect.middleware import policies
from ku_connect.models.identity import AuthorizationRule, Identity, Role
from ku_connect.services.notification_service import notify_user
from ku_connect.schemas.schemas import (
    JobCreate, JobUpdate, JobListQuery, JobResponse, JobListResponse,
    ApplicationCreate, ApplicationResponse, MyApplicationResponse, ApplicationDecision,
    ReportCreate, ReportResponse, MessageResponse
)

logger = logging.getLogger("ku_connect.api.jobs")

router = APIRouter(prefix="/jobs", tags=["Jobs"])

ADMINS_ONLY = AuthorizationRule.roles(Role.ADMIN)

# columns an update may not clear
NOT_NULL_JOB_FIELDS = ("title", "job_type", "status")

JOB_COLUMNS = """
    j.id, j.employer_id, u.name AS employer_name, j.title, j.description, j.location,
    j.job_type, j.min_salary, j.max_salary, j.status, j.created_at
"""


def job_from_row(r: dict, is_saved=None) -> JobResponse:
    return JobResponse(
        id=r["id"], employer_id=r["employer_id"], employer_name=r["employer_name"],
        title=r["title"], description=r["description"], location=r["location"],
        job_type=r["job_type"], min_salary=r["min_salary"], max_salary=r["max_salary"],
        status=r["status"], created_at=r["created_at"], is_saved=is_saved
    )


def _load_job(job_id: str) -> dict:
    results = execute_raw_sql(f"""
        SELECT {JOB_COLUMNS}
        FROM jobs j JOIN users u ON j.employer_id = u.id
        WHERE j.id = :jid
    """, {"jid": job_id})
    if not results:
        raise NotFound("Job not found")
    return results[0]


def _require_job_owner(identity: Identity, job: dict) -> None:
    if identity.role != Role.ADMIN and job["employer_id"] != identity.id:
        raise Forbidden("Access denied. You can only manage your own job postings.")


@router.get("", response_model=JobListResponse)
async def list_jobs(ctx: RequestContext = Depends(guard(
    Authenticate(mode="optional"),
    RateLimit(policies.SEARCH),
    Validate(JobListQuery, sources=("query",)),
))):
    """List open job postings with filters and pagination. Students also see which jobs they saved."""
    query: JobListQuery = ctx.body

    sql = f"""
        SELECT {JOB_COLUMNS}
        FROM jobs j
        JOIN users u ON j.employer_id = u.id
        WHERE j.status = 'open'
    """
    params = {}

    if query.search:
        sql += " AND LOWER(j.title) LIKE :search"
        params["search"] = f"%{query.search.lower()}%"
    if query.location:
        sql += " AND LOWER(j.location) LIKE :location"
        params["location"] = f"%{query.location.lower()}%"
    if query.job_type:
        sql += " AND j.job_type = :job_type"
        params["job_type"] = query.job_type.value

    total = execute_raw_sql(f"SELECT COUNT(*) AS total FROM ({sql}) AS filtered", params)[0]["total"]

    # Paginate
    sql += " ORDER BY j.created_at DESC LIMIT :limit OFFSET :offset"
    params.update({"limit": query.page_size, "offset": (query.page - 1) * query.page_size})
    results = execute_raw_sql(sql, params)

    saved = None
    if ctx.identity is not None and ctx.identity.role == Role.STUDENT:
        saved = {
            r["job_id"] for r in execute_raw_sql(
                "SELECT job_id FROM saved_jobs WHERE user_id = :uid", {"uid": ctx.identity.id}
            )
        }

    jobs = [job_from_row(r, None if saved is None else r["id"] in saved) for r in results]
    return JobListResponse(jobs=jobs, total=total, page=query.page, page_size=query.page_size)


@router.get("/my-applications", response_model=List[MyApplicationResponse])
async def my_applications(ctx: RequestContext = Depends(guard(
    Authenticate(),
    Authorize(AuthorizationRule.roles(Role.STUDENT)),
    RateLimit(policies.STRICT),
))):
    """The student's own applications with their current status, newest first."""
    rows = execute_raw_sql("""
        SELECT a.id, a.job_id, a.student_id, a.status, a.cover_letter, a.created_at,
            j.title AS job_title, u.name AS employer_name
        FROM applications a
        JOIN jobs j ON a.job_id = j.id
        JOIN users u ON j.employer_id = u.id
        WHERE a.student_id = :sid
        ORDER BY a.created_at DESC
    """, {"sid": ctx.identity.id})
    return [MyApplicationResponse(**r) for r in rows]


@router.get("/reports", response_model=List[ReportResponse])
async def list_reports(ctx: RequestContext = Depends(guard(
    RateLimit(policies.STRICT),
    Authenticate(),
    Authorize(ADMINS_ONLY),
))):
    rows = execute_raw_sql("""
        SELECT r.id, r.job_id, j.title AS job_title, r.user_id, u.email AS reporter_email,
            r.reason, r.created_at
        FROM job_reports r
        LEFT JOIN jobs j ON r.job_id = j.id
        LEFT JOIN users u ON r.user_id = u.id
        ORDER BY r.created_at DESC
    """)
    return [ReportResponse(**r) for r in rows]


@router.delete("/reports/{report_id}", response_model=MessageResponse)
async def delete_report(report_id: str, ctx: RequestContext = Depends(guard(
    RateLimit(policies.WRITE),
    Authenticate(),
    Authorize(ADMINS_ONLY),
))):
    with get_db_session() as db:
        result = db.execute(text("DELETE FROM job_reports WHERE id = :id"), {"id": report_id})
        if result.rowcount == 0:
            raise NotFound("Report not found")
    return MessageResponse(message="Report deleted")


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(job_id: str, ctx: RequestContext = Depends(guard(
    Authenticate(mode="optional"),
    RateLimit(policies.GENERAL),
))):
    """Get details of a specific job."""
    job = _load_job(job_id)
    if job["status"] != "open":
        # Closed postings stay visible to their owner and admins only
        if ctx.identity is None:
            raise NotFound("Job not found")
        try:
            _require_job_owner(ctx.identity, job)
        except Forbidden:
            raise NotFound("Job not found") from None
    return job_from_row(job)


@router.post("", response_model=JobResponse, status_code=201)
async def create_job(ctx: RequestContext = Depends(guard(
    Authenticate(),
    Authorize(AuthorizationRule.roles(Role.EMPLOYER, require_verified=True)),
    RateLimit(policies.WRITE),
    Validate(JobCreate),
))):
    """Create a new job posting. Only verified employers can create jobs."""
    job: JobCreate = ctx.body
    job_id = uuid.uuid4().hex

    with get_db_session() as db:
        db.execute(
            text("""
                INSERT INTO jobs (id, employer_id, title, description, location, job_type,
                    min_salary, max_salary, status, created_at)
                VALUES (:id, :employer_id, :title, :description, :location, :job_type,
                    :min_salary, :max_salary, 'open', :created_at)
            """),
            {
                "id": job_id, "employer_id": ctx.identity.id, "title": job.title,
                "description": job.description, "location": job.location,
                "job_type": job.job_type.value, "min_salary": job.min_salary,
                "max_salary": job.max_salary, "created_at": datetime.now(timezone.utc)
            }
        )

    logger.info("Employer %s posted job %s", ctx.identity.id, job_id)
    return job_from_row(_load_job(job_id))


@router.delete("/{job_id}", response_model=MessageResponse)
async def delete_job(job_id: str, ctx: RequestContext = Depends(guard(
    Authenticate(),
    Authorize(AuthorizationRule.roles(Role.EMPLOYER, Role.ADMIN)),
    RateLimit(policies.WRITE),
))):
    """Delete a job posting. Cascades to applications, saved entries and reports."""
    job = _load_job(job_id)
    _require_job_owner(ctx.identity, job)

    with get_db_session() as db:
        db.execute(text("DELETE FROM saved_jobs WHERE job_id = :jid"), {"jid": job_id})
        db.execute(text("DELETE FROM job_reports WHERE job_id = :jid"), {"jid": job_id})
        db.execute(text("DELETE FROM applications WHERE job_id = :jid"), {"jid": job_id})
        db.execute(text("DELETE FROM jobs WHERE id = :jid"), {"jid": job_id})

    return MessageResponse(message="Job deleted successfully")


@router.post("/{job_id}/apply", response_model=ApplicationResponse, status_code=201)
async def apply_to_job(job_id: str, ctx: RequestContext = Depends(guard(
    Authenticate(),
    Authorize(AuthorizationRule.roles(Role.STUDENT)),
    RateLimit(policies.WRITE),
    Validate(ApplicationCreate, sources=("body", "path")),
))):
    """Apply to a job. Students only. Cannot apply twice to same job."""
    application: ApplicationCreate = ctx.body
    job = _load_job(application.job_id)
    if job["status"] != "open":
        raise RequestValidationFailed.single("job_id", "Job is not accepting applications")

    application_id = uuid.uuid4().hex
    created_at = datetime.now(timezone.utc)

    with get_db_session() as db:
        # Check not already applied
        result = db.execute(
            text("SELECT id FROM applications WHERE student_id = :sid AND job_id = :jid"),
            {"sid": ctx.identity.id, "jid": job["id"]}
        )
        if result.fetchone():
            raise RequestValidationFailed.single("job_id", "Already applied to this job")

        db.execute(
            text("""
                INSERT INTO applications (id, job_id, student_id, cover_letter, status, created_at)
                VALUES (:id, :jid, :sid, :cover, 'pending', :created_at)
            """),
            {"id": application_id, "jid": job["id"], "sid": ctx.identity.id,
             "cover": application.cover_letter, "created_at": created_at}
        )

        notify_user(
            db, job["employer_id"], "application",
            "New application",
            f"A student applied to your job posting \"{job['title']}\"."
        )

    return ApplicationResponse(
        id=application_id, job_id=job["id"], student_id=ctx.identity.id, status="pending",
        cover_letter=application.cover_letter, created_at=created_at
    )


@router.get("/{job_id}/applications", response_model=List[ApplicationResponse])
async def list_applications(job_id: str, ctx: RequestContext = Depends(guard(
    Authenticate(),
    Authorize(AuthorizationRule.roles(Role.EMPLOYER, Role.ADMIN)),
    RateLimit(policies.STRICT),
))):
    """Applications received for a job. Owning employer or admin only."""
    job = _load_job(job_id)
    _require_job_owner(ctx.identity, job)

    rows = execute_raw_sql("""
        SELECT id, job_id, student_id, status, cover_letter, created_at
        FROM applications WHERE job_id = :jid ORDER BY created_at
    """, {"jid": job_id})
    return [ApplicationResponse(**r) for r in rows]


@router.patch("/{job_id}", response_model=JobResponse)
async def update_job(job_id: str, ctx: RequestContext = Depends(guard(
    Authenticate(),
    Authorize(AuthorizationRule.roles(Role.EMPLOYER)),
    RateLimit(policies.WRITE),
    Validate(JobUpdate, sources=("body", "path")),
))):
    """Update the employer's own job posting. Only fields present in the body change."""
    update: JobUpdate = ctx.body
    job = _load_job(update.job_id)
    _require_job_owner(ctx.identity, job)

    changes = update.model_dump(mode="json", exclude_unset=True, exclude={"job_id"})
    for field in NOT_NULL_JOB_FIELDS:
        if field in changes and changes[field] is None:
            raise RequestValidationFailed.single(field, f"{field} cannot be null")

    # the range must also hold against the stored value of the other bound
    min_salary = changes.get("min_salary", job["min_salary"])
    max_salary = changes.get("max_salary", job["max_salary"])
    if min_salary is not None and max_salary is not None and max_salary < min_salary:
        raise RequestValidationFailed.single("max_salary", "max_salary must not be below min_salary")

    if changes:
        assignments = ", ".join(f"{field} = :{field}" for field in changes)
        with get_db_session() as db:
            db.execute(text(f"UPDATE jobs SET {assignments} WHERE id = :jid"), {**changes, "jid": job["id"]})

    return job_from_row(_load_job(job["id"]))


@router.post("/{job_id}/applicants", response_model=ApplicationResponse)
async def decide_application(job_id: str, ctx: RequestContext = Depends(guard(
    Authenticate(),
    Authorize(AuthorizationRule.roles(Role.EMPLOYER)),
    RateLimit(policies.WRITE),
    Validate(ApplicationDecision, sources=("body", "path")),
))):
    """Mark an applicant qualified or rejected and notify the student."""
    decision: ApplicationDecision = ctx.body
    job = _load_job(decision.job_id)
    _require_job_owner(ctx.identity, job)

    with get_db_session() as db:
        row = db.execute(
            text("""
                SELECT id, job_id, student_id, status, cover_letter, created_at
                FROM applications WHERE id = :aid AND job_id = :jid
            """),
            {"aid": decision.application_id, "jid": job["id"]}
        ).mappings().fetchone()
        if not row:
            raise NotFound("Application not found")

        db.execute(
            text("UPDATE applications SET status = :status WHERE id = :aid"),
            {"status": decision.status.value, "aid": row["id"]}
        )
        notify_user(
            db, row["student_id"], "approval",
            "Application update",
            f"Your application for \"{job['title']}\" was marked {decision.status.value}."
        )

    logger.info("Employer %s marked application %s %s", ctx.identity.id, row["id"], decision.status.value)
    return ApplicationResponse(**{**row, "status": decision.status.value})


@router.post("/{job_id}/report", response_model=ReportResponse, status_code=201)
async def report_job(job_id: str, ctx: RequestContext = Depends(guard(
    RateLimit(policies.WRITE),
    Authenticate(),
    Validate(ReportCreate, sources=("body", "path")),
))):
    """Report a posting to the admins. Employers cannot report their own jobs."""
    report: ReportCreate = ctx.body
    job = _load_job(report.job_id)
    if job["employer_id"] == ctx.identity.id:
        raise Forbidden("You cannot report your own job posting")

    created = ReportResponse(
        id=uuid.uuid4().hex, job_id=job["id"], job_title=job["title"], user_id=ctx.identity.id,
        reporter_email=ctx.identity.email, reason=report.reason, created_at=datetime.now(timezone.utc)
    )
    with get_db_session() as db:
        existing = db.execute(
            text("SELECT id FROM job_reports WHERE job_id = :jid AND user_id = :uid"),
            {"jid": job["id"], "uid": ctx.identity.id}
        ).fetchone()
        if existing:
            raise RequestValidationFailed.single("job_id", "You have already reported this job")

        db.execute(
            text("""
                INSERT INTO job_reports (id, job_id, user_id, reason, created_at)
                VALUES (:id, :job_id, :user_id, :reason, :created_at)
            """),
            created.model_dump(include={"id", "job_id", "user_id", "reason", "created_at"})
        )

    logger.info("User %s reported job %s", ctx.identity.id, job["id"])
    return created
