"""
Relational schema - plain DDL that runs on both PostgreSQL and SQLite.

Ids are application-generated strings (uuid4 hex); timestamps are written by
the application in UTC.
"""

import uuid

from sqlalchemy import text

from ku_connect.db.session import get_engine

TABLES = [
    """
    CREATE TABLE IF NOT EXISTS users (
        id VARCHAR(64) PRIMARY KEY,
        email VARCHAR(255) NOT NULL UNIQUE,
        password_hash VARCHAR(255) NOT NULL,
        role VARCHAR(20) NOT NULL,
        verified BOOLEAN NOT NULL DEFAULT FALSE,
        name VARCHAR(200),
        phone VARCHAR(40),
        created_at TIMESTAMP NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS degree_types (
        id VARCHAR(64) PRIMARY KEY,
        name VARCHAR(200) NOT NULL UNIQUE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS jobs (
        id VARCHAR(64) PRIMARY KEY,
        employer_id VARCHAR(64) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        title VARCHAR(200) NOT NULL,
        description TEXT,
        location VARCHAR(200),
        job_type VARCHAR(20) NOT NULL,
        min_salary INTEGER,
        max_salary INTEGER,
        status VARCHAR(20) NOT NULL DEFAULT 'open',
        created_at TIMESTAMP NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS applications (
        id VARCHAR(64) PRIMARY KEY,
        job_id VARCHAR(64) NOT NULL REFERENCES jobs(id) ON DELETE CASCADE,
        student_id VARCHAR(64) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        cover_letter TEXT,
        status VARCHAR(20) NOT NULL DEFAULT 'pending',
        created_at TIMESTAMP NOT NULL,
        UNIQUE (job_id, student_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS saved_jobs (
        user_id VARCHAR(64) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        job_id VARCHAR(64) NOT NULL REFERENCES jobs(id) ON DELETE CASCADE,
        created_at TIMESTAMP NOT NULL,
        PRIMARY KEY (user_id, job_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS job_reports (
        id VARCHAR(64) PRIMARY KEY,
        job_id VARCHAR(64) NOT NULL REFERENCES jobs(id) ON DELETE CASCADE,
        user_id VARCHAR(64) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        reason VARCHAR(300) NOT NULL,
        created_at TIMESTAMP NOT NULL,
        UNIQUE (job_id, user_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS student_preferences (
        user_id VARCHAR(64) PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
        desired_location VARCHAR(255),
        min_salary INTEGER,
        industry VARCHAR(40),
        job_type VARCHAR(20),
        remote_only BOOLEAN NOT NULL DEFAULT FALSE,
        updated_at TIMESTAMP NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS announcements (
        id VARCHAR(64) PRIMARY KEY,
        title VARCHAR(200) NOT NULL,
        content TEXT NOT NULL,
        audience VARCHAR(20) NOT NULL,
        created_by VARCHAR(64) REFERENCES users(id) ON DELETE SET NULL,
        created_at TIMESTAMP NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS notifications (
        id VARCHAR(64) PRIMARY KEY,
        user_id VARCHAR(64) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        type VARCHAR(40) NOT NULL,
        title VARCHAR(200) NOT NULL,
        message TEXT NOT NULL,
        is_read BOOLEAN NOT NULL DEFAULT FALSE,
        created_at TIMESTAMP NOT NULL
    )
    """,
]

DEFAULT_DEGREE_TYPES = [
    "Bachelor of Engineering",
    "Bachelor of Science",
    "Bachelor of Arts",
    "Bachelor of Business Administration",
    "Master of Engineering",
    "Master of Science",
    "Master of Business Administration",
    "Doctor of Philosophy",
]


def init_schema() -> None:
    """Create all tables if missing."""
    with get_engine().begin() as conn:
        for ddl in TABLES:
            conn.execute(text(ddl))


def seed_degree_types(names=None) -> int:
    """Insert any missing degree types. Returns how many were added."""
    added = 0
    with get_engine().begin() as conn:
        existing = {row[0] for row in conn.execute(text("SELECT name FROM degree_types"))}
        for name in names or DEFAULT_DEGREE_TYPES:
            if name in existing:
                continue
            conn.execute(
                text("INSERT INTO degree_types (id, name) VALUES (:id, :name)"),
                {"id": uuid.uuid4().hex, "name": name},
            )
            added += 1
    return added
