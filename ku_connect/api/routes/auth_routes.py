"""
Authentication Routes

POST /auth/register - Register new user
POST /auth/login - Login and get JWT token
GET /auth/me - Get current user info
"""

import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import text

from ku_connect.db.session import get_db_session
from ku_connect.core.auth import hash_password, verify_password, create_access_token
from ku_connect.core.errors import NotFound, RequestValidationFailed, Unauthorized
from ku_connect.middleware import Authenticate, RateLimit, RequestContext, Validate, guard
from ku_connect.middleware import policies
from ku_connect.schemas.schemas import (
    RegisterRequest, LoginRequest, TokenResponse, UserResponse, MessageResponse
)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=MessageResponse, status_code=201)
async def register(ctx: RequestContext = Depends(guard(
    RateLimit(policies.AUTH),
    Validate(RegisterRequest),
))):
    """
    Register a new user account.

    Accounts start unverified; an admin verifies employers before they can post jobs.
    """
    request: RegisterRequest = ctx.body
    email = request.email.lower()

    with get_db_session() as db:
        # Check email exists
        result = db.execute(
            text("SELECT id FROM users WHERE email = :email"),
            {"email": email}
        )
        if result.fetchone():
            raise RequestValidationFailed.single("email", "Email already registered")

        db.execute(
            text("""
                INSERT INTO users (id, email, password_hash, role, verified, name, created_at)
                VALUES (:id, :email, :password_hash, :role, FALSE, :name, :created_at)
            """),
            {
                "id": uuid.uuid4().hex,
                "email": email,
                "password_hash": hash_password(request.password),
                "role": request.role.value,
                "name": request.name,
                "created_at": datetime.now(timezone.utc),
            }
        )

    return MessageResponse(message=f"Registered successfully as {request.role.value}. Please login.")


@router.post("/login", response_model=TokenResponse)
async def login(ctx: RequestContext = Depends(guard(
    RateLimit(policies.AUTH),
    Validate(LoginRequest),
))):
    """
    Login and receive JWT access token.

    Include token in requests: Authorization: Bearer <token>
    """
    request: LoginRequest = ctx.body
    with get_db_session() as db:
        result = db.execute(
            text("SELECT id, password_hash, role FROM users WHERE email = :email"),
            {"email": request.email.lower()}
        )
        user = result.fetchone()

    if not user or not verify_password(request.password, user[1]):
        raise Unauthorized("Invalid email or password")

    user_id, _, role = user
    token = create_access_token(data={"sub": user_id, "role": role})

    return TokenResponse(access_token=token, user_id=user_id, role=role)


@router.get("/me", response_model=UserResponse)
async def get_me(ctx: RequestContext = Depends(guard(Authenticate()))):
    """Get current authenticated user's info."""
    with get_db_session() as db:
        row = db.execute(
            text("SELECT id, email, role, verified, name, phone, created_at FROM users WHERE id = :id"),
            {"id": ctx.identity.id}
        ).fetchone()

    if not row:
        raise NotFound("User not found")

    return UserResponse(
        id=row[0], email=row[1], role=row[2], verified=bool(row[3]),
        name=row[4], phone=row[5], created_at=row[6]
    )
