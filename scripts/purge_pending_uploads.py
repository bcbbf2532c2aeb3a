"""Purge pending uploads: remove entries reserved but never published.

Usage:
    python -m scripts.purge_pending_uploads [ttl_minutes]
If ttl_minutes is omitted, PENDING_ENTRY_TTL_MINUTES from config is used.
An entry is pending when its upload was interrupted before the metadata
update (crash, disconnect); it is invisible to readers but holds a row and
possibly a blob.
"""

import asyncio
import sys
from datetime import timedelta

from sharegate.core.config import get_settings
from sharegate.infrastructure.storage.factory import StorageFactory
from sharegate.shared.telemetry.logging import get_logger, setup_logging
from sharegate.shared.utils.datetime import utc_now

logger = get_logger(__name__)


async def main() -> None:
    """Delete pending entries reserved before now - ttl."""
    settings = get_settings()
    setup_logging(settings)
    ttl_minutes = int(sys.argv[1]) if len(sys.argv) > 1 else settings.pending_entry_ttl_minutes
    if ttl_minutes < 1:
        print("ttl_minutes must be >= 1", file=sys.stderr)
        sys.exit(1)

    cutoff = utc_now() - timedelta(minutes=ttl_minutes)
    storage = StorageFactory.create_storage(settings)
    await storage.connect()
    try:
        purged = await storage.purge_pending(cutoff)
    finally:
        await storage.close()

    logger.info("Pending entries older than %d minute(s) purged: %d", ttl_minutes, purged)
    print(f"Done. Total purged: {purged}")


if __name__ == "__main__":
    asyncio.run(main())
