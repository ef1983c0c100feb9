#!/usr/bin/env python3
"""
Schema + Degree Type Seed Script

Creates any missing tables and inserts the default degree types.
Usage: python scripts/seed_degree_types.py
"""
import logging

from ku_connect.core.config import get_settings
from ku_connect.db.schema import init_schema, seed_degree_types
from ku_connect.db.session import check_db_connection

logger = logging.getLogger("ku_connect.scripts.seed")


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    settings = get_settings()

    url = settings.sqlalchemy_url
    if settings.database_url is None and settings.postgres_password:
        url = url.replace(settings.postgres_password, "****")
    logger.info("Database: %s", url)

    if not check_db_connection():
        logger.error("Database is not reachable; aborting")
        raise SystemExit(1)

    init_schema()
    added = seed_degree_types()
    logger.info("Schema ready, %d degree type(s) added", added)


if __name__ == "__main__":
    main()
