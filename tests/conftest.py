"""
Shared fixtures: a temporary SQLite database, a manual clock, an app wired to
both, and helpers that create users and tokens directly in the database.
"""

import uuid
from datetime import datetime, timezone
from typing import Dict, Optional

import httpx
import pytest
from httpx import ASGITransport
from sqlalchemy import text

from ku_connect.core.auth import create_access_token, hash_password
from ku_connect.core.config import Settings
from ku_connect.db.schema import init_schema
from ku_connect.db.session import configure_engine, get_db_session
from ku_connect.main import create_app
from ku_connect.middleware.rate_limit import InMemoryCounterStore
from ku_connect.models.identity import Identity, Role

PASSWORD = "correct-horse-battery"
_password_hash: Optional[str] = None


def password_hash() -> str:
    # bcrypt is slow; hash the shared test password once
    global _password_hash
    if _password_hash is None:
        _password_hash = hash_password(PASSWORD)
    return _password_hash


class ManualClock:
    def __init__(self, start_ms: int = 1_000_000):
        self.value = start_ms

    def now_ms(self) -> int:
        return self.value

    def advance(self, ms: int) -> None:
        self.value += ms


class InMemoryIdentityStore:
    def __init__(self, *identities: Identity):
        self.identities: Dict[str, Identity] = {i.id: i for i in identities}
        self.lookups = 0

    def get_identity(self, user_id: str) -> Optional[Identity]:
        self.lookups += 1
        return self.identities.get(user_id)


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def counter_store():
    return InMemoryCounterStore()


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def db(tmp_path):
    engine = configure_engine(f"sqlite:///{tmp_path / 'ku_connect_test.db'}")
    init_schema()
    yield engine
    engine.dispose()


@pytest.fixture
def app(db, settings, clock, counter_store):
    return create_app(settings=settings, counter_store=counter_store, clock=clock)


@pytest.fixture
async def client(app):
    async with httpx.AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


@pytest.fixture
def make_user(db):
    """Insert a user and return {"id", "email", "role", "token"}."""
    def _make(role: Role = Role.STUDENT, verified: bool = True, name: str = "Test User",
              email: Optional[str] = None) -> dict:
        user_id = uuid.uuid4().hex
        email = email or f"{user_id[:8]}@ku.th"
        with get_db_session() as session:
            session.execute(
                text("""
                    INSERT INTO users (id, email, password_hash, role, verified, name, created_at)
                    VALUES (:id, :email, :hash, :role, :verified, :name, :created_at)
                """),
                {"id": user_id, "email": email, "hash": password_hash(), "role": role.value,
                 "verified": verified, "name": name, "created_at": datetime.now(timezone.utc)}
            )
        token = create_access_token({"sub": user_id, "role": role.value})
        return {"id": user_id, "email": email, "role": role, "token": token}
    return _make
