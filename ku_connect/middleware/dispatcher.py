"""
Route Dispatcher - interprets a route's ordered stage list in one loop.

The first failing stage ends the request; later stages and the handler never
run. Errors a stage does not own (a store outage, a bug) surface as
InternalError with no detail leaked to the caller.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Sequence

from ku_connect.core.errors import InternalError, PipelineError
from ku_connect.middleware.authenticator import Authenticator
from ku_connect.middleware.authorizer import Authorizer
from ku_connect.middleware.context import RequestContext
from ku_connect.middleware.rate_limit import RateLimiter
from ku_connect.middleware.stages import Authenticate, Authorize, RateLimit, Stage, Validate
from ku_connect.middleware.validator import Validator

logger = logging.getLogger("ku_connect.pipeline")


@dataclass
class DispatchResult:
    status_code: int
    body: Any
    headers: Dict[str, str] = field(default_factory=dict)
    handled: bool = False


class Dispatcher:
    def __init__(self, authenticator: Authenticator, authorizer: Authorizer,
                 rate_limiter: RateLimiter, validator: Validator):
        self.authenticator = authenticator
        self.authorizer = authorizer
        self.rate_limiter = rate_limiter
        self.validator = validator

    async def _run_stage(self, stage: Stage, ctx: RequestContext) -> None:
        if isinstance(stage, Authenticate):
            await self.authenticator.authenticate(ctx, stage.mode)
        elif isinstance(stage, Authorize):
            self.authorizer.authorize(ctx, stage.rule)
        elif isinstance(stage, RateLimit):
            decision = self.rate_limiter.check(ctx, stage.policy)
            if decision is not None:
                ctx.rate_limits.append(decision)
        elif isinstance(stage, Validate):
            ctx.body = self.validator.validate(ctx, stage.schema, stage.sources)
        else:
            raise TypeError(f"Unknown pipeline stage: {stage!r}")

    async def run(self, stages: Sequence[Stage], ctx: RequestContext) -> RequestContext:
        """Run every stage in order. Raises the first PipelineError."""
        for stage in stages:
            try:
                await self._run_stage(stage, ctx)
            except PipelineError as exc:
                logger.info("%s %s rejected at %s: %s", ctx.method, ctx.route_name or ctx.path,
                            stage.kind, exc.kind)
                raise
            except Exception as exc:
                logger.exception("Unexpected failure in %s stage for %s %s", stage.kind, ctx.method,
                                 ctx.route_name or ctx.path)
                raise InternalError() from exc
        return ctx

    async def dispatch(self, stages: Sequence[Stage], ctx: RequestContext,
                       handler: Callable[[RequestContext], Awaitable[Any]]) -> DispatchResult:
        """
        Run the chain and then the handler, returning exactly one terminal result:
        either the handler's (handled=True) or the first error's.

        This is the framework-free form of a route, used where there is no
        FastAPI around the chain. HTTP routes go through guard(), which calls
        run() as a dependency; FastAPI only calls the handler once that
        dependency has returned, and renders a raised PipelineError through
        the app's exception handler, which gives the same one-result guarantee.
        """
        try:
            await self.run(stages, ctx)
        except PipelineError as exc:
            return DispatchResult(exc.status_code, exc.to_body(), dict(exc.headers))

        headers: Dict[str, str] = {}
        for decision in ctx.rate_limits:
            headers.update(decision.headers())
        try:
            body = await handler(ctx)
        except PipelineError as exc:
            return DispatchResult(exc.status_code, exc.to_body(), {**headers, **exc.headers}, handled=True)
        except Exception:
            logger.exception("Handler failed for %s %s", ctx.method, ctx.route_name or ctx.path)
            err = InternalError()
            return DispatchResult(err.status_code, err.to_body(), headers, handled=True)
        return DispatchResult(200, body, headers, handled=True)
