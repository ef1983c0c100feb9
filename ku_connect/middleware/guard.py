"""
FastAPI glue - turns a declared stage chain into a route dependency.

Usage:
    @router.post("/jobs")
    async def create_job(ctx: RequestContext = Depends(guard(
        Authenticate(),
        Authorize(AuthorizationRule.roles(Role.EMPLOYER, require_verified=True)),
        RateLimit(policies.WRITE),
        Validate(JobCreate),
    ))):
        job: JobCreate = ctx.body

The dependency returns the populated context to the handler, or raises the
first PipelineError (rendered by the app's exception handler), in which case
the handler is never called.
"""

import json
from typing import Optional

from fastapi import Request, Response

from ku_connect.middleware.context import RequestContext
from ku_connect.middleware.stages import Stage, ensure_valid_chain, needs_body


def client_ip(request: Request, trust_proxy_headers: bool = False) -> str:
    if trust_proxy_headers:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def build_context(request: Request, read_body: bool = False, route_name: str = "") -> RequestContext:
    settings = request.app.state.settings
    ctx = RequestContext(
        method=request.method,
        path=request.url.path,
        client_ip=client_ip(request, settings.trust_proxy_headers),
        headers=request.headers,
        cookies=request.cookies,
        path_params=dict(request.path_params),
        query_params=dict(request.query_params),
        route_name=route_name,
    )
    if read_body:
        raw = await request.body()
        if raw.strip():
            try:
                ctx.raw_body = json.loads(raw)
            except ValueError:
                ctx.body_error = "Request body must be valid JSON"
    return ctx


def guard(*stages: Stage, name: Optional[str] = None):
    chain = ensure_valid_chain(stages)
    read_body = needs_body(chain)

    async def run_chain(request: Request, response: Response) -> RequestContext:
        route = request.scope.get("route")
        ctx = await build_context(request, read_body, name or getattr(route, "path", ""))
        await request.app.state.dispatcher.run(chain, ctx)
        for decision in ctx.rate_limits:
            response.headers.update(decision.headers())
        return ctx

    return run_chain
