"""
Dispatcher: declared order, short-circuit on the first failure, exactly one
terminal result, and collaborator failures surfacing as InternalError.
"""

import pytest
from pydantic import BaseModel

from ku_connect.core.auth import create_access_token
from ku_connect.core.errors import Forbidden
from ku_connect.middleware.authenticator import Authenticator
from ku_connect.middleware.authorizer import Authorizer
from ku_connect.middleware.context import RequestContext
from ku_connect.middleware.dispatcher import Dispatcher
from ku_connect.middleware.rate_limit import InMemoryCounterStore, RateLimitPolicy, RateLimiter
from ku_connect.middleware.stages import Authenticate, Authorize, RateLimit, Validate, ensure_valid_chain
from ku_connect.middleware.validator import Validator
from ku_connect.models.identity import AuthorizationRule, Identity, Role

from conftest import InMemoryIdentityStore, ManualClock, bearer

STUDENT = Identity(id="stu-1", role=Role.STUDENT, verified=True)
EMPLOYER = Identity(id="emp-1", role=Role.EMPLOYER, verified=True)
WRITE = RateLimitPolicy("write", window_ms=60_000, max_requests=3, message="slow down")


class Body(BaseModel):
    job_id: str


CHAIN = (
    Authenticate(),
    Authorize(AuthorizationRule.roles(Role.STUDENT)),
    RateLimit(WRITE),
    Validate(Body),
)


class BrokenStore:
    def get_identity(self, user_id):
        raise ConnectionError("database at 10.0.0.5 refused connection")


class Handler:
    def __init__(self):
        self.calls = 0

    async def __call__(self, ctx):
        self.calls += 1
        return {"saved": ctx.body.job_id, "by": ctx.identity.id}


def make_dispatcher(store=None):
    store = store or InMemoryIdentityStore(STUDENT, EMPLOYER)
    return Dispatcher(
        Authenticator(store), Authorizer(),
        RateLimiter(InMemoryCounterStore(), ManualClock()), Validator(),
    )


def request(identity=None, body=None):
    headers = {}
    if identity is not None:
        headers = bearer(create_access_token({"sub": identity.id}))
    return RequestContext(method="POST", headers=headers, client_ip="9.9.9.9", raw_body=body,
                          route_name="/save")


@pytest.mark.anyio
async def test_success_runs_handler_once_with_parsed_body():
    handler = Handler()
    result = await make_dispatcher().dispatch(CHAIN, request(STUDENT, {"job_id": "j1"}), handler)
    assert result.status_code == 200
    assert result.handled
    assert result.body == {"saved": "j1", "by": "stu-1"}
    assert result.headers["RateLimit-Remaining"] == "2"
    assert handler.calls == 1


@pytest.mark.anyio
async def test_missing_credential_stops_before_handler():
    handler = Handler()
    result = await make_dispatcher().dispatch(CHAIN, request(None, {"job_id": "j1"}), handler)
    assert result.status_code == 401
    assert result.body == {"error": "Access token required"}
    assert not result.handled
    assert handler.calls == 0


@pytest.mark.anyio
async def test_wrong_role_is_forbidden_and_consumes_no_budget():
    dispatcher = make_dispatcher()
    handler = Handler()
    result = await dispatcher.dispatch(CHAIN, request(EMPLOYER, {"job_id": "j1"}), handler)
    assert result.status_code == 403
    assert handler.calls == 0
    assert dispatcher.rate_limiter.store.get("write:9.9.9.9") is None


@pytest.mark.anyio
async def test_validation_failure_after_rate_limit_keeps_the_increment():
    dispatcher = make_dispatcher()
    handler = Handler()
    result = await dispatcher.dispatch(CHAIN, request(STUDENT, {}), handler)
    assert result.status_code == 400
    assert result.body == {"errors": [{"field": "job_id", "message": "job_id is required"}]}
    assert handler.calls == 0
    assert dispatcher.rate_limiter.store.get("write:9.9.9.9").count == 1


@pytest.mark.anyio
async def test_budget_exhaustion_returns_429_with_message():
    dispatcher = make_dispatcher()
    handler = Handler()
    for _ in range(3):
        assert (await dispatcher.dispatch(CHAIN, request(STUDENT, {"job_id": "j"}), handler)).status_code == 200
    result = await dispatcher.dispatch(CHAIN, request(STUDENT, {"job_id": "j"}), handler)
    assert result.status_code == 429
    assert result.body == {"error": "slow down"}
    assert handler.calls == 3


@pytest.mark.anyio
async def test_successful_request_reinvokes_handler_each_time():
    dispatcher = make_dispatcher()
    handler = Handler()
    for _ in range(2):
        await dispatcher.dispatch(CHAIN, request(STUDENT, {"job_id": "j"}), handler)
    assert handler.calls == 2


@pytest.mark.anyio
async def test_store_outage_is_internal_error_without_detail():
    handler = Handler()
    result = await make_dispatcher(BrokenStore()).dispatch(CHAIN, request(STUDENT, {"job_id": "j"}), handler)
    assert result.status_code == 500
    assert result.body == {"error": "Internal server error"}
    assert "10.0.0.5" not in str(result.body)
    assert handler.calls == 0


@pytest.mark.anyio
async def test_handler_errors_become_terminal_responses():
    async def forbidden_handler(ctx):
        raise Forbidden("Not your job posting")

    async def crashing_handler(ctx):
        raise RuntimeError("boom")

    dispatcher = make_dispatcher()
    result = await dispatcher.dispatch(CHAIN, request(STUDENT, {"job_id": "j"}), forbidden_handler)
    assert (result.status_code, result.body, result.handled) == (403, {"error": "Not your job posting"}, True)

    result = await dispatcher.dispatch(CHAIN, request(STUDENT, {"job_id": "j"}), crashing_handler)
    assert (result.status_code, result.body) == (500, {"error": "Internal server error"})


@pytest.mark.anyio
async def test_rate_limit_before_authentication_counts_anonymous_requests():
    dispatcher = make_dispatcher()
    chain = (RateLimit(WRITE), Authenticate())
    for _ in range(3):
        assert (await dispatcher.dispatch(chain, request(None), Handler())).status_code == 401
    assert (await dispatcher.dispatch(chain, request(STUDENT), Handler())).status_code == 429


def test_chain_declaration_rules():
    with pytest.raises(ValueError):
        ensure_valid_chain([Authorize(AuthorizationRule.roles(Role.ADMIN)), Authenticate()])
    with pytest.raises(ValueError):
        ensure_valid_chain([Authenticate(), Authenticate()])
    with pytest.raises(ValueError):
        ensure_valid_chain([Validate(Body), Validate(Body)])
    with pytest.raises(ValueError):
        ensure_valid_chain([Validate(Body, sources=("headers",))])
    with pytest.raises(TypeError):
        ensure_valid_chain([object()])
    assert ensure_valid_chain(list(CHAIN)) == CHAIN
