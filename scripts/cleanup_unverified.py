#!/usr/bin/env python3
"""
Clean up stale unverified registrations.

Deletes accounts that were never verified and whose verification code
expired more than --grace-hours ago. Should be run periodically
(e.g., daily cron job).

Usage:
    python scripts/cleanup_unverified.py
    python scripts/cleanup_unverified.py --grace-hours 48
    python scripts/cleanup_unverified.py --stats
"""

import argparse
import asyncio
import logging
import sys
from datetime import timedelta
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.config import get_settings
from app.core.verification import utc_now
from app.db.database import get_async_url
from app.services.identity_store import IdentityStore

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def get_user_stats(store: IdentityStore, cutoff) -> dict:
    """Get account statistics."""
    return {
        "total_users": await store.count_users(),
        "verified_users": await store.count_users(verified=True),
        "unverified_users": await store.count_users(verified=False),
        "stale_unverified": await store.count_stale_unverified(cutoff),
    }


async def main_async(grace_hours: int = 24, stats_only: bool = False) -> int:
    """Main async function. Returns the number of deleted accounts."""
    settings = get_settings()
    engine = create_async_engine(
        get_async_url(settings.database_url),
        echo=False,
    )
    session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    cutoff = utc_now() - timedelta(hours=grace_hours)

    try:
        async with session_maker() as session:
            store = IdentityStore(session)
            stats = await get_user_stats(store, cutoff)

            logger.info("Account Statistics:")
            logger.info(f"  Total users: {stats['total_users']:,}")
            logger.info(f"  Verified users: {stats['verified_users']:,}")
            logger.info(f"  Unverified users: {stats['unverified_users']:,}")
            logger.info(
                f"  Stale unverified (expired > {grace_hours}h ago): "
                f"{stats['stale_unverified']:,}"
            )

            if stats_only:
                return 0

            if stats["stale_unverified"] == 0:
                logger.info("No stale registrations to clean up.")
                return 0

            deleted = await store.purge_stale_unverified(cutoff)
            logger.info(f"Cleaned up {deleted:,} stale unverified registrations.")
            return deleted
    finally:
        await engine.dispose()


def main():
    parser = argparse.ArgumentParser(
        description="Clean up stale unverified registrations"
    )
    parser.add_argument(
        "--grace-hours",
        type=int,
        default=24,
        help="Hours past code expiry before an unverified account is removed",
    )
    parser.add_argument(
        "--stats",
        action="store_true",
        help="Only show statistics, don't clean up",
    )

    args = parser.parse_args()
    asyncio.run(main_async(grace_hours=args.grace_hours, stats_only=args.stats))


if __name__ == "__main__":
    main()
