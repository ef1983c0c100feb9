"""
SQL-backed identity lookups for the Authenticator.
"""

from typing import Optional

from sqlalchemy import text

from ku_connect.db.session import get_db_session
from ku_connect.models.identity import Identity


class SqlIdentityStore:
    def get_identity(self, user_id: str) -> Optional[Identity]:
        with get_db_session() as db:
            row = db.execute(
                text("SELECT id, role, verified, email FROM users WHERE id = :id"),
                {"id": user_id}
            ).fetchone()

        if not row:
            return None
        return Identity(id=row[0], role=row[1], verified=bool(row[2]), email=row[3])
