"""
KU Connect - Main Application

FastAPI backend with:
- SQLAlchemy over PostgreSQL (SQLite for local runs/tests)
- JWT authentication
- Per-route middleware chains: authenticate -> authorize -> rate limit -> validate

Run: uvicorn ku_connect.main:app --reload
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ku_connect.api.routes import api_router
from ku_connect.core.clock import MonotonicClock
from ku_connect.core.config import Settings, get_settings
from ku_connect.core.errors import FieldError, InternalError, PipelineError, RequestValidationFailed
from ku_connect.db.identity_store import SqlIdentityStore
from ku_connect.db.session import check_db_connection
from ku_connect.middleware.authenticator import Authenticator, IdentityStore
from ku_connect.middleware.authorizer import Authorizer
from ku_connect.middleware.dispatcher import Dispatcher
from ku_connect.middleware.policies import build_policies
from ku_connect.middleware.rate_limit import CounterStore, InMemoryCounterStore, RateLimiter
from ku_connect.middleware.request_logging import RequestLoggingMiddleware
from ku_connect.middleware.validator import Validator

logger = logging.getLogger("ku_connect")


def build_dispatcher(settings: Settings, identity_store: IdentityStore, counter_store: CounterStore,
                     clock) -> Dispatcher:
    return Dispatcher(
        authenticator=Authenticator(identity_store),
        authorizer=Authorizer(),
        rate_limiter=RateLimiter(
            counter_store, clock, build_policies(settings).values(), enabled=settings.rate_limit_enabled
        ),
        validator=Validator(),
    )


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(PipelineError)
    async def pipeline_error_handler(request: Request, exc: PipelineError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_body(), headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        # Path/query params FastAPI itself parses; same body shape as the Validate stage
        errors = [
            FieldError(".".join(str(p) for p in err["loc"][1:]) or str(err["loc"][0]), err["msg"])
            for err in exc.errors()
        ]
        failure = RequestValidationFailed(errors)
        return JSONResponse(status_code=failure.status_code, content=failure.to_body())

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        failure = InternalError()
        return JSONResponse(status_code=failure.status_code, content=failure.to_body())


def create_app(settings: Optional[Settings] = None,
               identity_store: Optional[IdentityStore] = None,
               counter_store: Optional[CounterStore] = None,
               clock=None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="KU Connect",
        description="""
        Job board and career services API for students, employers and professors.

        ## Features
        - **Authentication**: JWT bearer tokens
        - **Jobs**: Search, post, apply, save
        - **Students**: Job preferences
        - **Announcements & Notifications**
        - **Reference data**: Degree types

        Every protected route runs a declared chain of authentication, role/ownership
        checks, rate limiting and validation before its handler.
        """,
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.state.settings = settings
    app.state.counter_store = counter_store or InMemoryCounterStore()
    app.state.dispatcher = build_dispatcher(
        settings,
        identity_store or SqlIdentityStore(),
        app.state.counter_store,
        clock or MonotonicClock(),
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    register_error_handlers(app)

    # Include API routes
    app.include_router(api_router, prefix="/api")

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Detailed health check."""
        return {
            "status": "healthy",
            "database": "connected" if check_db_connection() else "disconnected",
        }

    return app


app = create_app()
