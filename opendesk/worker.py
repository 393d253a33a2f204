"""
Polling worker that purges expired trash.

Every TRASH_SWEEP_INTERVAL_SECONDS it physically removes folders, files
and documents soft-deleted more than TRASH_RETENTION_DAYS ago, removing
file blobs from the object store first.

Usage:
    python -m opendesk.worker
"""

import logging
import time
from datetime import datetime, timezone
from typing import Optional

from .core.config import settings
from .core.logging_config import setup_logging
from .database import SessionLocal, init_schema
from .services.storage_service import StorageService, get_storage
from .services.trash_service import purge_expired_trash

logger = logging.getLogger("opendesk.worker")

# Granularity of the sleep loop, so shutdown is not delayed by a long interval.
TICK_SECONDS = 5


def run_sweep(storage: Optional[StorageService] = None) -> dict:
    """Run one purge sweep in its own session."""
    db = SessionLocal()
    try:
        return purge_expired_trash(db, storage or get_storage(), settings.trash_retention_days)
    finally:
        db.close()


def main() -> None:
    setup_logging(log_level=settings.log_level, log_format=settings.log_format)
    init_schema()
    logger.info(
        "Worker started",
        extra={
            "retention_days": settings.trash_retention_days,
            "interval_seconds": settings.trash_sweep_interval_seconds,
        },
    )

    last_sweep: Optional[datetime] = None
    while True:
        try:
            now = datetime.now(timezone.utc)
            if last_sweep is None or (now - last_sweep).total_seconds() >= settings.trash_sweep_interval_seconds:
                run_sweep()
                last_sweep = now
            time.sleep(TICK_SECONDS)
        except KeyboardInterrupt:
            logger.info("Worker shutting down")
            break
        except Exception:
            # A failed sweep is retried at the next interval.
            logger.exception("Trash sweep failed")
            last_sweep = datetime.now(timezone.utc)
            time.sleep(TICK_SECONDS)


if __name__ == "__main__":
    main()
