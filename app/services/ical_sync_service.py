"""
iCal Sync Service

Mirrors external calendars into a room's date overrides.

Per config:
1. download the feed (allow-listed host, bounded wait)
2. parse it into events
3. drop every override of the room
4. rebuild blocked dates from the events (first classification wins)
5. insert the records in chunks
6. record the outcome on the config

Configs are synced one after another with a short pause between them, so a
batch never hammers the calendar hosts or the database. A failing config is
reported in its own result and the batch carries on.
"""

import asyncio
import time
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from ..config import Settings, get_settings
from ..domain import ICalConfig, SyncResult, SyncStatus
from ..utils.db_helpers import chunked
from ..utils.logging_config import get_logger, sync_config_var
from .blocking_strategy import Classifier, build_override_records, classify_event
from .exceptions import AvailabilityError
from .feed_fetcher import FeedFetcher
from .ical_parser import parse_ical_feed

logger = get_logger(__name__)


def pending_configs(
    configs: Iterable[ICalConfig],
    now: Optional[datetime] = None,
    default_interval_hours: int = 12,
) -> List[ICalConfig]:
    """
    Configs due for a sync: never synced, or synced at least
    ``sync_interval_hours`` ago.
    """
    now = now or datetime.utcnow()
    due = []
    for config in configs:
        if config.last_sync_at is None:
            due.append(config)
            continue
        interval = timedelta(hours=config.sync_interval_hours or default_interval_hours)
        if now - config.last_sync_at >= interval:
            due.append(config)
    return due


class ICalSyncService:
    """
    Calendar sync orchestrator.

    Usage:
        service = ICalSyncService(SqlAlchemyAvailabilityStore(db))
        results = await service.sync_all(store.list_active_configs())
    """

    def __init__(
        self,
        store,
        fetcher: Optional[FeedFetcher] = None,
        classifier: Classifier = classify_event,
        settings: Optional[Settings] = None,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.fetcher = fetcher or FeedFetcher(self.settings)
        self.classifier = classifier

    async def sync_one(self, config: ICalConfig) -> SyncResult:
        """Sync a single feed into its room. Never raises for feed or store failures."""
        token = sync_config_var.set(config.id)
        try:
            return await self._sync_one(config)
        finally:
            sync_config_var.reset(token)

    async def _sync_one(self, config: ICalConfig) -> SyncResult:
        started = time.monotonic()
        logger.sync_started(config.id, config.room_id, config.platform)

        result = SyncResult(
            config_id=config.id,
            room_id=config.room_id,
            platform=config.platform,
            room_name=config.room_name,
            success=False,
        )

        try:
            raw_feed = await self.fetcher.fetch_feed(config.ical_url)
            events = parse_ical_feed(raw_feed)
            records = build_override_records(events, config.room_id, self.classifier)

            self._write_overrides(config.room_id, records)

            result.success = True
            result.events_processed = len(events)
            result.dates_blocked = len(records)
        except AvailabilityError as e:
            result.error = e.message
        except Exception as e:
            # Still recorded below so the config never keeps a stale status
            logger.exception(f"💥 Unexpected error syncing config {config.id}: {e}")
            result.error = str(e) or type(e).__name__
        finally:
            result.duration_ms = int((time.monotonic() - started) * 1000)

        try:
            self.store.update_sync_metadata(
                config.id,
                last_sync_at=datetime.utcnow(),
                status=SyncStatus.SUCCESS if result.success else SyncStatus.ERROR,
                events_processed=result.events_processed,
                dates_blocked=result.dates_blocked,
                error_message=result.error,
            )
        except AvailabilityError as e:
            logger.error(f"❌ Could not record sync outcome for config {config.id}: {e.message}")
            if result.success:
                result.success = False
                result.error = e.message

        if result.success:
            logger.sync_completed(config.id, result.events_processed, result.dates_blocked, result.duration_ms)
        else:
            logger.sync_failed(config.id, result.error or "unknown error", result.duration_ms)

        return result

    def _write_overrides(self, room_id: str, records) -> None:
        batch_size = self.settings.ical_insert_batch_size

        if self.settings.ical_atomic_replace:
            self.store.replace_overrides(room_id, records, batch_size)
            return

        # Readers see the room fully open until the inserts land
        self.store.delete_overrides(room_id)
        for batch in chunked(records, batch_size):
            self.store.insert_overrides(batch)

    async def sync_all(self, configs: Iterable[ICalConfig]) -> List[SyncResult]:
        """Sync configs sequentially; one result per config, whatever happens."""
        configs = list(configs)
        results: List[SyncResult] = []

        for index, config in enumerate(configs):
            if index > 0 and self.settings.ical_sync_delay_seconds > 0:
                await asyncio.sleep(self.settings.ical_sync_delay_seconds)

            try:
                results.append(await self.sync_one(config))
            except Exception as e:
                logger.exception(f"Unexpected error syncing config {config.id}: {e}")
                results.append(SyncResult(
                    config_id=config.id,
                    room_id=config.room_id,
                    platform=config.platform,
                    room_name=config.room_name,
                    success=False,
                    error=str(e),
                ))

        succeeded = sum(1 for r in results if r.success)
        logger.info(f"📅 Calendar sync batch finished: {succeeded}/{len(results)} succeeded")
        return results

    async def sync_pending(self, now: Optional[datetime] = None) -> List[SyncResult]:
        """Sync only the active configs that are overdue."""
        due = pending_configs(
            self.store.list_active_configs(),
            now=now,
            default_interval_hours=self.settings.ical_default_sync_interval_hours,
        )
        if not due:
            logger.info("📅 No calendar feeds due for sync")
            return []
        return await self.sync_all(due)

    async def sync_active(self) -> List[SyncResult]:
        return await self.sync_all(self.store.list_active_configs())
