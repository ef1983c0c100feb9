"""
Preferences, announcements, notifications, admin, profile and reference data
routes, plus the rate-limit behaviour seen from the HTTP side.
"""

import httpx
import pytest
from fastapi import Depends
from httpx import ASGITransport

from ku_connect.core.config import Settings
from ku_connect.db.schema import DEFAULT_DEGREE_TYPES, seed_degree_types
from ku_connect.main import create_app
from ku_connect.middleware import Authenticate, Authorize, RateLimit, RequestContext, Validate, guard
from ku_connect.middleware import policies
from ku_connect.models.identity import AuthorizationRule, Role
from ku_connect.schemas.schemas import SavedJobsPath

from conftest import bearer

pytestmark = pytest.mark.anyio


async def test_preferences_default_then_upsert(client, make_user):
    student = make_user(Role.STUDENT)
    headers = bearer(student["token"])

    r = await client.get("/api/students/preferences", headers=headers)
    assert r.status_code == 200
    assert r.json()["industry"] is None
    assert r.json()["remote_only"] is False

    r = await client.put("/api/students/preferences", headers=headers,
                         json={"desired_location": "Bangkok", "industry": " it_software ", "remote_only": True})
    assert r.status_code == 200
    assert r.json()["industry"] == "IT_SOFTWARE"

    r = await client.put("/api/students/preferences", headers=headers, json={"min_salary": 20000})
    r = await client.get("/api/students/preferences", headers=headers)
    body = r.json()
    assert body["min_salary"] == 20000
    assert body["desired_location"] is None


async def test_preferences_reject_unknown_fields_and_industry(client, make_user):
    student = make_user(Role.STUDENT)
    r = await client.put("/api/students/preferences", headers=bearer(student["token"]),
                         json={"industry": "FARMING", "user_id": "someone-else"})
    assert r.status_code == 400
    fields = [e["field"] for e in r.json()["errors"]]
    assert fields == ["industry", "user_id"]


async def test_preferences_rate_limit_runs_before_role_check(make_user, db, clock, counter_store):
    app = create_app(settings=Settings(rate_limit_preferences_max=1), clock=clock, counter_store=counter_store)
    employer = make_user(Role.EMPLOYER)
    async with httpx.AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        r = await c.put("/api/students/preferences", json={}, headers=bearer(employer["token"]))
        assert r.status_code == 403
        r = await c.put("/api/students/preferences", json={}, headers=bearer(employer["token"]))
        assert r.status_code == 429


async def test_announcement_audience_and_notifications(client, make_user):
    admin = make_user(Role.ADMIN)
    student = make_user(Role.STUDENT)
    employer = make_user(Role.EMPLOYER)

    r = await client.post("/api/announcements", headers=bearer(admin["token"]),
                          json={"title": "Career fair", "content": "Friday, main hall", "audience": "STUDENT"})
    assert r.status_code == 201
    announcement = r.json()
    assert announcement["created_by"] == admin["id"]

    r = await client.get("/api/announcements", headers=bearer(student["token"]))
    assert [a["id"] for a in r.json()] == [announcement["id"]]
    r = await client.get("/api/announcements", headers=bearer(employer["token"]))
    assert r.json() == []

    r = await client.get("/api/notifications", headers=bearer(student["token"]))
    assert [n["title"] for n in r.json()["notifications"]] == ["Career fair"]
    r = await client.get("/api/notifications", headers=bearer(employer["token"]))
    assert r.json() == {"notifications": [], "unread": 0}

    r = await client.delete(f"/api/announcements/{announcement['id']}", headers=bearer(admin["token"]))
    assert r.status_code == 200
    r = await client.delete(f"/api/announcements/{announcement['id']}", headers=bearer(admin["token"]))
    assert r.status_code == 404


async def test_only_admin_publishes_announcements(client, make_user):
    professor = make_user(Role.PROFESSOR)
    r = await client.post("/api/announcements", headers=bearer(professor["token"]),
                          json={"title": "Hello", "content": "x"})
    assert r.status_code == 403
    assert r.json() == {"error": "Access denied. Required role(s): ADMIN"}


async def test_mark_notification_read_is_scoped_to_owner(client, make_user):
    admin = make_user(Role.ADMIN)
    student = make_user(Role.STUDENT)
    other = make_user(Role.STUDENT)
    await client.post("/api/announcements", headers=bearer(admin["token"]),
                      json={"title": "Reminder", "content": "Update your CV"})

    r = await client.get("/api/notifications", headers=bearer(student["token"]))
    notification_id = r.json()["notifications"][0]["id"]

    r = await client.patch(f"/api/notifications/{notification_id}/read", headers=bearer(other["token"]))
    assert r.status_code == 404

    r = await client.patch(f"/api/notifications/{notification_id}/read", headers=bearer(student["token"]))
    assert r.status_code == 200
    r = await client.get("/api/notifications", headers=bearer(student["token"]))
    assert r.json()["unread"] == 0


async def test_admin_verification_unlocks_job_posting(client, make_user):
    admin = make_user(Role.ADMIN)
    employer = make_user(Role.EMPLOYER, verified=False)
    job = {"title": "Support Engineer"}

    r = await client.post("/api/jobs", json=job, headers=bearer(employer["token"]))
    assert r.status_code == 403

    r = await client.patch(f"/api/admin/users/{employer['id']}/verify", json={},
                           headers=bearer(admin["token"]))
    assert r.status_code == 200
    assert r.json()["verified"] is True

    # the identity is re-read on every request, so the same token now passes
    r = await client.post("/api/jobs", json=job, headers=bearer(employer["token"]))
    assert r.status_code == 201

    r = await client.get("/api/admin/users", params={"role": "EMPLOYER"}, headers=bearer(admin["token"]))
    assert [u["id"] for u in r.json()] == [employer["id"]]


async def test_admin_routes_reject_non_admins(client, make_user):
    professor = make_user(Role.PROFESSOR)
    r = await client.get("/api/admin/users", headers=bearer(professor["token"]))
    assert r.status_code == 403
    r = await client.patch(f"/api/admin/users/{professor['id']}/verify", json={},
                           headers=bearer(professor["token"]))
    assert r.status_code == 403


async def test_verify_unknown_user(client, make_user):
    admin = make_user(Role.ADMIN)
    r = await client.patch("/api/admin/users/ghost/verify", json={}, headers=bearer(admin["token"]))
    assert r.status_code == 404


async def test_profile_owner_or_admin(client, make_user):
    owner = make_user(Role.PROFESSOR, name="Dr. Somchai")
    stranger = make_user(Role.STUDENT)
    admin = make_user(Role.ADMIN)
    url = f"/api/profile/{owner['id']}"

    r = await client.get(url, headers=bearer(stranger["token"]))
    assert r.status_code == 403

    r = await client.patch(url, json={"phone": "081-234-5678"}, headers=bearer(owner["token"]))
    assert r.status_code == 200
    assert r.json()["phone"] == "081-234-5678"
    assert r.json()["name"] == "Dr. Somchai"

    r = await client.get(url, headers=bearer(admin["token"]))
    assert r.status_code == 200
    assert r.json()["phone"] == "081-234-5678"


async def test_degree_types_are_public(client, db):
    seed_degree_types()
    r = await client.get("/api/degree")
    assert r.status_code == 200
    assert sorted(d["name"] for d in r.json()) == sorted(DEFAULT_DEGREE_TYPES)
    assert r.headers["RateLimit-Limit"] == "1000"
    assert r.headers["RateLimit-Remaining"] == "999"


async def test_health_and_request_id(client):
    r = await client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "healthy", "database": "connected"}
    assert r.headers["X-Request-Id"]

    r = await client.get("/health", headers={"X-Request-Id": "abc-123"})
    assert r.headers["X-Request-Id"] == "abc-123"


async def test_window_resets_after_expiry(db, clock, counter_store):
    app = create_app(settings=Settings(rate_limit_general_max=10), clock=clock, counter_store=counter_store)
    transport = ASGITransport(app=app, client=("1.2.3.4", 123))
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        for _ in range(10):
            assert (await c.get("/api/degree")).status_code == 200

        r = await c.get("/api/degree")
        assert r.status_code == 429
        assert r.json() == {"error": "Too many requests from this IP, please try again later."}
        assert int(r.headers["Retry-After"]) > 0
        assert r.headers["RateLimit-Remaining"] == "0"

        clock.advance(900_001)
        r = await c.get("/api/degree")
        assert r.status_code == 200
        assert r.headers["RateLimit-Remaining"] == "9"


async def test_clients_are_counted_separately(db, clock, counter_store):
    app = create_app(settings=Settings(rate_limit_general_max=1), clock=clock, counter_store=counter_store)
    first = httpx.AsyncClient(transport=ASGITransport(app=app, client=("10.0.0.1", 1)), base_url="http://test")
    second = httpx.AsyncClient(transport=ASGITransport(app=app, client=("10.0.0.2", 1)), base_url="http://test")
    async with first, second:
        assert (await first.get("/api/degree")).status_code == 200
        assert (await first.get("/api/degree")).status_code == 429
        assert (await second.get("/api/degree")).status_code == 200


async def test_guarded_handler_runs_once_or_not_at_all(db, clock, counter_store, make_user):
    app = create_app(settings=Settings(rate_limit_write_max=2), clock=clock, counter_store=counter_store)
    calls = []

    @app.post("/counted")
    async def counted(ctx: RequestContext = Depends(guard(
        Authenticate(),
        Authorize(AuthorizationRule.roles(Role.STUDENT)),
        RateLimit(policies.WRITE),
        Validate(SavedJobsPath),
    ))):
        calls.append(ctx.body.user_id)
        return {"ok": True}

    student = make_user(Role.STUDENT)
    employer = make_user(Role.EMPLOYER)
    async with httpx.AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        assert (await c.post("/counted", json={"user_id": "u1"})).status_code == 401
        assert (await c.post("/counted", json={"user_id": "u1"},
                             headers=bearer(employer["token"]))).status_code == 403
        assert (await c.post("/counted", json={}, headers=bearer(student["token"]))).status_code == 400
        assert calls == []

        r = await c.post("/counted", json={"user_id": "u1"}, headers=bearer(student["token"]))
        assert r.status_code == 200
        assert r.json() == {"ok": True}
        assert calls == ["u1"]

        r = await c.post("/counted", json={"user_id": "u1"}, headers=bearer(student["token"]))
        assert r.status_code == 429
        assert calls == ["u1"]
