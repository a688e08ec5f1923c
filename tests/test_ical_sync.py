"""
Tests for the iCal sync orchestrator

Tests cover:
- Overdue selection
- Single config sync: overrides rebuilt, metadata recorded
- Idempotent re-sync
- Failure isolation across a batch
- Chunked inserts and the atomic replace path
- Pluggable classifier
"""

import asyncio
from datetime import datetime, timedelta

import pytest

from app.domain import BlockCategory, ICalConfig, OverrideSource, SyncStatus
from conftest import FakeFeedFetcher, InMemoryAvailabilityStore, d, make_event, make_feed


AIRBNB_URL = "https://www.airbnb.com/calendar/ical/1.ics"
BOOKING_URL = "https://ical.booking.com/v1/export?t=abc"

AIRBNB_FEED = make_feed(
    make_event("a1@airbnb.com", "20251107", "20251111", "Reserved"),
    make_event("a2@airbnb.com", "20251111", "20251112", "Airbnb (Not available)"),
)


def config(config_id="cfg-1", room_id="room-1", url=AIRBNB_URL, platform="airbnb", **kwargs):
    return ICalConfig(id=config_id, room_id=room_id, ical_url=url, platform=platform, **kwargs)


def make_service(store, feeds, settings, **kwargs):
    from app.services.ical_sync_service import ICalSyncService

    return ICalSyncService(store, fetcher=FakeFeedFetcher(feeds), settings=settings, **kwargs)


class TestPendingConfigs:
    """Tests for pending_configs"""

    def test_never_synced_is_due(self):
        from app.services.ical_sync_service import pending_configs

        assert [c.id for c in pending_configs([config()])] == ["cfg-1"]

    def test_interval_respected(self):
        from app.services.ical_sync_service import pending_configs

        now = datetime(2025, 11, 1, 12, 0)
        fresh = config("fresh", last_sync_at=now - timedelta(hours=2), sync_interval_hours=6)
        stale = config("stale", last_sync_at=now - timedelta(hours=7), sync_interval_hours=6)
        exact = config("exact", last_sync_at=now - timedelta(hours=6), sync_interval_hours=6)

        due = pending_configs([fresh, stale, exact], now=now)

        assert [c.id for c in due] == ["stale", "exact"]

    def test_default_interval_used(self):
        from app.services.ical_sync_service import pending_configs

        now = datetime(2025, 11, 1, 12, 0)
        c = config(last_sync_at=now - timedelta(hours=5))

        assert pending_configs([c], now=now, default_interval_hours=4) == [c]
        assert pending_configs([c], now=now, default_interval_hours=12) == []


class TestSyncOne:
    """Tests for a single config"""

    def test_success_rebuilds_overrides(self, test_settings):
        store = InMemoryAvailabilityStore(configs=[config()])
        service = make_service(store, {AIRBNB_URL: AIRBNB_FEED}, test_settings)

        result = asyncio.run(service.sync_one(config()))

        assert result.success
        assert result.events_processed == 2
        assert result.dates_blocked == 5
        by_date = {o.date: o for o in store.overrides}
        assert sorted(by_date) == [d(7), d(8), d(9), d(10), d(11)]
        assert by_date[d(11)].block_category == BlockCategory.PREP_BEFORE
        assert all(o.source == OverrideSource.ICAL and not o.is_available for o in store.overrides)

        meta = store.sync_metadata["cfg-1"]
        assert meta["status"] == SyncStatus.SUCCESS
        assert meta["events_processed"] == 2
        assert meta["dates_blocked"] == 5
        assert meta["error_message"] is None

    def test_resync_is_idempotent(self, test_settings):
        store = InMemoryAvailabilityStore(configs=[config()])
        service = make_service(store, {AIRBNB_URL: AIRBNB_FEED}, test_settings)

        asyncio.run(service.sync_one(config()))
        first = sorted((o.date, o.block_category) for o in store.overrides)
        asyncio.run(service.sync_one(config()))
        second = sorted((o.date, o.block_category) for o in store.overrides)

        assert first == second
        assert len(store.overrides) == 5

    def test_manual_overrides_replaced(self, test_settings):
        """A sync mirrors the feed; whatever the room had before is dropped"""
        from app.domain import DateOverride

        store = InMemoryAvailabilityStore(
            configs=[config()],
            overrides=[DateOverride(room_id="room-1", date=d(25), source=OverrideSource.MANUAL)],
        )
        service = make_service(store, {AIRBNB_URL: AIRBNB_FEED}, test_settings)

        asyncio.run(service.sync_one(config()))

        assert d(25) not in {o.date for o in store.overrides}

    def test_format_error_recorded(self, test_settings):
        store = InMemoryAvailabilityStore(configs=[config()])
        service = make_service(store, {AIRBNB_URL: "<html>login</html>"}, test_settings)

        result = asyncio.run(service.sync_one(config()))

        assert not result.success
        assert "VCALENDAR" in result.error
        assert "delete_overrides" not in store.calls
        assert store.sync_metadata["cfg-1"]["status"] == SyncStatus.ERROR
        assert store.sync_metadata["cfg-1"]["error_message"] == result.error

    def test_network_error_leaves_overrides(self, test_settings):
        from app.domain import DateOverride
        from app.services.exceptions import FeedTimeoutError

        existing = DateOverride(room_id="room-1", date=d(3))
        store = InMemoryAvailabilityStore(configs=[config()], overrides=[existing])
        service = make_service(store, {AIRBNB_URL: FeedTimeoutError("timed out")}, test_settings)

        result = asyncio.run(service.sync_one(config()))

        assert not result.success
        assert result.error == "timed out"
        assert store.overrides == [existing]

    def test_metadata_write_failure_marks_result_failed(self, test_settings):
        from unittest.mock import patch
        from app.services.exceptions import StoreError

        store = InMemoryAvailabilityStore(configs=[config()])
        service = make_service(store, {AIRBNB_URL: AIRBNB_FEED}, test_settings)

        with patch.object(store, "update_sync_metadata", side_effect=StoreError("db down")) as update:
            result = asyncio.run(service.sync_one(config()))

        update.assert_called_once()
        assert not result.success
        assert result.error == "db down"

    def test_chunked_inserts(self, test_settings):
        settings = test_settings.model_copy(update={"ical_insert_batch_size": 2})
        store = InMemoryAvailabilityStore(configs=[config()])
        service = make_service(store, {AIRBNB_URL: AIRBNB_FEED}, settings)

        asyncio.run(service.sync_one(config()))

        assert store.insert_batches == [2, 2, 1]

    def test_atomic_replace_path(self, test_settings):
        settings = test_settings.model_copy(update={"ical_atomic_replace": True})
        store = InMemoryAvailabilityStore(configs=[config()])
        calls = []
        store.replace_overrides = lambda room_id, records, batch_size: calls.append((room_id, len(records)))
        service = make_service(store, {AIRBNB_URL: AIRBNB_FEED}, settings)

        result = asyncio.run(service.sync_one(config()))

        assert result.success
        assert calls == [("room-1", 5)]
        assert "delete_overrides" not in store.calls

    def test_custom_classifier(self, test_settings):
        from app.domain import BlockPolicy
        from app.services.blocking_strategy import Classification

        store = InMemoryAvailabilityStore(configs=[config()])
        service = make_service(
            store, {AIRBNB_URL: AIRBNB_FEED}, test_settings,
            classifier=lambda event: Classification(BlockPolicy.COMPLETE_BLOCK, BlockCategory.PREP_BEFORE),
        )

        asyncio.run(service.sync_one(config()))

        assert {o.block_category for o in store.overrides} == {BlockCategory.PREP_BEFORE}


class TestSyncAll:
    """Tests for batch sync"""

    def test_failure_isolated(self, test_settings):
        """Config A's insert fails, config B still lands"""
        cfg_a = config("cfg-a", room_id="room-a")
        cfg_b = config("cfg-b", room_id="room-b", url=BOOKING_URL, platform="booking")
        store = InMemoryAvailabilityStore(configs=[cfg_a, cfg_b])
        store.fail_inserts_for.add("room-a")
        feeds = {
            AIRBNB_URL: AIRBNB_FEED,
            BOOKING_URL: make_feed(make_event("b1", "20251201", "20251203", "CLOSED - Not available")),
        }
        service = make_service(store, feeds, test_settings)

        results = asyncio.run(service.sync_all([cfg_a, cfg_b]))

        assert [r.config_id for r in results] == ["cfg-a", "cfg-b"]
        assert not results[0].success
        assert results[0].error == "insert rejected"
        assert results[1].success
        assert sorted(o.date for o in store.overrides if o.room_id == "room-b") == [d(1, 12), d(2, 12)]

    def test_unexpected_exception_isolated(self, test_settings):
        cfg_a = config("cfg-a", room_id="room-a")
        cfg_b = config("cfg-b", room_id="room-b", url=BOOKING_URL)
        store = InMemoryAvailabilityStore(configs=[cfg_a, cfg_b])
        feeds = {
            AIRBNB_URL: RuntimeError("boom"),
            BOOKING_URL: make_feed(make_event("b1", "20251201", "20251203")),
        }
        service = make_service(store, feeds, test_settings)

        results = asyncio.run(service.sync_all([cfg_a, cfg_b]))

        assert len(results) == 2
        assert results[0].error == "boom"
        assert results[1].success

    def test_unexpected_exception_recorded_on_config(self, test_settings):
        """A non-domain failure still marks the config as errored"""
        cfg_a = config("cfg-a", room_id="room-a")
        store = InMemoryAvailabilityStore(configs=[cfg_a])
        service = make_service(store, {AIRBNB_URL: RuntimeError("boom")}, test_settings)

        results = asyncio.run(service.sync_all([cfg_a]))

        assert not results[0].success
        assert store.sync_metadata["cfg-a"]["status"] == SyncStatus.ERROR
        assert store.sync_metadata["cfg-a"]["error_message"] == "boom"

    def test_delay_between_configs(self, test_settings, monkeypatch):
        from app.services import ical_sync_service

        delays = []

        async def fake_sleep(seconds):
            delays.append(seconds)

        monkeypatch.setattr(ical_sync_service.asyncio, "sleep", fake_sleep)
        settings = test_settings.model_copy(update={"ical_sync_delay_seconds": 1.0})
        configs = [config(f"cfg-{i}", room_id=f"room-{i}") for i in range(3)]
        store = InMemoryAvailabilityStore(configs=configs)
        service = make_service(store, {AIRBNB_URL: AIRBNB_FEED}, settings)

        asyncio.run(service.sync_all(configs))

        assert delays == [1.0, 1.0]

    def test_sync_pending_only_overdue(self, test_settings):
        now = datetime(2025, 11, 1, 12, 0)
        fresh = config("fresh", room_id="room-f", last_sync_at=now - timedelta(hours=1), sync_interval_hours=12)
        stale = config("stale", room_id="room-s")
        inactive = config("inactive", room_id="room-i", is_active=False)
        store = InMemoryAvailabilityStore(configs=[fresh, stale, inactive])
        service = make_service(store, {AIRBNB_URL: AIRBNB_FEED}, test_settings)

        results = asyncio.run(service.sync_pending(now=now))

        assert [r.config_id for r in results] == ["stale"]
        assert store.configs["stale"].last_sync_status == SyncStatus.SUCCESS
