#!/usr/bin/env python
"""
Calendar Sync Worker

Background process that syncs every overdue external calendar feed, then
sleeps and repeats. Use it instead of the in-process worker when the API
runs with AUTO_SYNC_ENABLED=false.

Run with:
    python worker.py

Or with environment:
    AUTO_SYNC_POLL_SECONDS=900 python worker.py
"""

import asyncio
import os
import sys
import time
import logging
import signal

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from app.config import settings
from app.database import SessionLocal
from app.services.availability_store import SqlAlchemyAvailabilityStore
from app.services.exceptions import AvailabilityError
from app.services.ical_sync_service import ICalSyncService
from app.utils.logging_config import setup_logging, use_json_logs

setup_logging(settings.log_level, json_format=use_json_logs(settings), include_uvicorn=False)
logger = logging.getLogger("worker")

POLL_INTERVAL = settings.auto_sync_poll_seconds
RUNNING = True


def signal_handler(signum, frame):
    """Handle shutdown signals gracefully"""
    global RUNNING
    logger.info("Received shutdown signal, finishing current batch...")
    RUNNING = False


def run_cycle(cycle: int):
    start_time = time.time()
    db = SessionLocal()
    try:
        results = asyncio.run(ICalSyncService(SqlAlchemyAvailabilityStore(db)).sync_pending())
        if results:
            ok = sum(1 for r in results if r.success)
            logger.info(
                f"Cycle {cycle}: "
                f"Feeds {ok}✓/{len(results) - ok}✗ | "
                f"{time.time() - start_time:.2f}s"
            )
    except AvailabilityError as e:
        logger.error(f"Error in cycle {cycle}: {e.message}")
    finally:
        db.close()


def run_worker():
    """Main worker loop"""
    logger.info("=" * 50)
    logger.info("Starting Calendar Sync Worker")
    logger.info(f"Poll interval: {POLL_INTERVAL}s")
    logger.info("=" * 50)

    cycle = 0
    while RUNNING:
        cycle += 1
        run_cycle(cycle)

        # Sleep in short steps so a signal stops the worker promptly
        waited = 0
        while RUNNING and waited < POLL_INTERVAL:
            time.sleep(1)
            waited += 1

    logger.info("Worker shutdown complete")


if __name__ == "__main__":
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        run_worker()
    except KeyboardInterrupt:
        logger.info("Worker interrupted by user")
