"""
VESTRY - Audit Retention

Operator command that deletes audit events past the retention window.
Nothing runs it automatically; schedule it (cron, a one-off job) where
a bounded audit trail is wanted.

Usage:
    python -m vestry.api.audit.retention                 # AUDIT_RETENTION_DAYS
    python -m vestry.api.audit.retention --days 365
    python -m vestry.api.audit.retention --before 2025-01-01T00:00:00
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from vestry.api.audit.service import AuditQueryService, as_utc
from vestry.api.config import settings
from vestry.api.db.session import close_db, get_session_maker


logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> None:
    """Setup logging configuration."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Delete audit events older than the retention window",
    )

    cutoff = parser.add_mutually_exclusive_group()
    cutoff.add_argument(
        "--days",
        type=int,
        default=None,
        help="Keep this many days of events (default: AUDIT_RETENTION_DAYS)",
    )
    cutoff.add_argument(
        "--before",
        type=datetime.fromisoformat,
        default=None,
        help="Delete events created before this ISO timestamp (naive means UTC)",
    )

    parser.add_argument(
        "-l", "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )

    args = parser.parse_args(argv)
    if args.days is not None and args.days < 1:
        parser.error("--days must be at least 1")
    return args


def resolve_cutoff(args: argparse.Namespace, now: Optional[datetime] = None) -> Optional[datetime]:
    """Cutoff from the arguments, or None to fall back to AUDIT_RETENTION_DAYS."""
    if args.before is not None:
        return as_utc(args.before)
    if args.days is not None:
        return (now or datetime.now(timezone.utc)) - timedelta(days=args.days)
    return None


async def purge(session_factory: async_sessionmaker, before: Optional[datetime] = None) -> int:
    """Delete expired events in one transaction and return how many went."""
    async with session_factory() as session:
        deleted = await AuditQueryService(session).purge_expired(before)
        await session.commit()
    return deleted


async def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(args.log_level)

    before = resolve_cutoff(args)
    if before is None and settings.AUDIT_RETENTION_DAYS is None:
        logger.error("No cutoff given and AUDIT_RETENTION_DAYS is not set; nothing to do")
        return 1

    try:
        deleted = await purge(get_session_maker(), before)
    finally:
        await close_db()

    logger.info("Retention run complete: %d events deleted", deleted)
    return 0


def run() -> None:
    """Synchronous entry point."""
    try:
        exit_code = asyncio.run(main())
        sys.exit(exit_code)
    except Exception as e:
        logging.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    run()
