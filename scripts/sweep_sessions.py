#!/usr/bin/env python3
"""
Remove expired signing sessions from the SQL store.
This can be run manually or via cron job.
"""

import argparse
import sys

from rhodesign.config import Settings
from rhodesign.core.integrity import utcnow
from rhodesign.core.store import SigningSessionStore
from rhodesign.db.session import get_session_factory, init_engine
from rhodesign.db.storage import SqlStorage
from rhodesign.logging_config import configure_logging

logger = configure_logging("rhodesign.sweep", "rhodesign.log")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Delete expired signing sessions")
    parser.add_argument(
        "--database-url",
        default=None,
        help="Database URL (default: ESIGN_DATABASE_URL)"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report how many sessions would be deleted without deleting them"
    )
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    init_engine(args.database_url or settings.database_url)
    storage = SqlStorage(get_session_factory())

    try:
        if args.dry_run:
            expired = storage.count_expired_sessions(utcnow())
            logger.info(f"Dry run: {expired} expired session(s) would be deleted")
            return expired

        removed = SigningSessionStore(storage, ttl=settings.session_ttl).sweep_expired()
        logger.info(f"Sweep completed. Deleted: {removed}, Remaining: {storage.count_sessions()}")
        return removed
    except Exception:
        logger.exception("Error during session sweep")
        sys.exit(1)


if __name__ == "__main__":
    main()
