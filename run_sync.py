"""
Run the external calendar sync once.

    python run_sync.py              # overdue feeds only
    python run_sync.py --all        # every active feed
    python run_sync.py --config-id ID
"""
import argparse
import asyncio
import sys
sys.path.insert(0, '.')

from app.config import settings
from app.database import SessionLocal, create_tables
from app.services.availability_store import SqlAlchemyAvailabilityStore
from app.services.exceptions import AvailabilityError
from app.services.ical_sync_service import ICalSyncService
from app.utils.logging_config import setup_logging


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Sync external calendars into room availability")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--all", action="store_true", help="sync every active feed")
    group.add_argument("--pending", action="store_true", help="sync overdue feeds only (default)")
    group.add_argument("--config-id", help="sync a single feed")
    return parser.parse_args(argv)


async def run(args, store) -> list:
    service = ICalSyncService(store)

    if args.config_id:
        config = store.get_config(args.config_id)
        if config is None:
            raise SystemExit(f"Calendar config {args.config_id} not found")
        return [await service.sync_one(config)]
    if args.all:
        return await service.sync_active()
    return await service.sync_pending()


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(settings.log_level, json_format=False, include_uvicorn=False)
    create_tables()

    db = SessionLocal()
    try:
        results = asyncio.run(run(args, SqlAlchemyAvailabilityStore(db)))
    except AvailabilityError as e:
        print(f"Error: {e.message}")
        return 1
    finally:
        db.close()

    print("=" * 50)
    print("Calendar sync results:")
    print("=" * 50)
    for r in results:
        label = r.room_name or r.room_id
        if r.success:
            print(f"  ✅ {label} [{r.platform}]: {r.events_processed} events, {r.dates_blocked} dates blocked")
        else:
            print(f"  ❌ {label} [{r.platform}]: {r.error}")

    failed = sum(1 for r in results if not r.success)
    print("=" * 50)
    if not results:
        print("No feeds to sync.")
    else:
        print(f"{len(results) - failed} succeeded, {failed} failed")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
