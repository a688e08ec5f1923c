"""
Shared fixtures: in-memory store, canned feed fetcher, SQLite session.
"""

import os
import sys
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from app.config import Settings
from app.domain import BookingStatus, ConfirmedBooking, DateOverride, ICalConfig, RoomSummary
from app.services.availability_store import AvailabilityStore
from app.services.exceptions import NetworkError, StoreError
from app.services.feed_fetcher import FeedFetcher


class InMemoryAvailabilityStore(AvailabilityStore):
    """AvailabilityStore fake that records every call."""

    def __init__(self, rooms=None, bookings=None, overrides=None, configs=None):
        self.rooms: Dict[str, RoomSummary] = {r.id: r for r in (rooms or [])}
        self.bookings: List[ConfirmedBooking] = list(bookings or [])
        self.overrides: List[DateOverride] = list(overrides or [])
        self.configs: Dict[str, ICalConfig] = {c.id: c for c in (configs or [])}
        self.sync_metadata: Dict[str, dict] = {}
        self.calls: List[str] = []
        self.insert_batches: List[int] = []
        self.fail_inserts_for: set = set()

    def list_confirmed_bookings(self, room_id, window=None):
        self.calls.append("list_confirmed_bookings")
        result = [
            b for b in self.bookings
            if b.room_id == room_id and b.status == BookingStatus.CONFIRMED
        ]
        if window is not None:
            start, end = window
            result = [b for b in result if b.check_in < end and b.check_out > start]
        return result

    def list_overrides(self, room_id, window=None):
        self.calls.append("list_overrides")
        result = [o for o in self.overrides if o.room_id == room_id]
        if window is not None:
            start, end = window
            result = [o for o in result if start <= o.date < end]
        return sorted(result, key=lambda o: o.date)

    def delete_overrides(self, room_id):
        self.calls.append("delete_overrides")
        before = len(self.overrides)
        self.overrides = [o for o in self.overrides if o.room_id != room_id]
        return before - len(self.overrides)

    def insert_overrides(self, records):
        self.calls.append("insert_overrides")
        if any(r.room_id in self.fail_inserts_for for r in records):
            raise StoreError("insert rejected")
        self.insert_batches.append(len(records))
        self.overrides.extend(records)

    def insert_booking(self, booking):
        self.calls.append("insert_booking")
        stored = ConfirmedBooking(
            id=f"booking-{len(self.bookings) + 1}",
            room_id=booking.room_id,
            check_in=booking.check_in,
            check_out=booking.check_out,
            status=booking.status,
            guest_name=booking.guest_name,
        )
        self.bookings.append(stored)
        return stored

    def update_sync_metadata(self, config_id, last_sync_at, status, events_processed=0,
                             dates_blocked=0, error_message=None):
        self.calls.append("update_sync_metadata")
        self.sync_metadata[config_id] = {
            "last_sync_at": last_sync_at,
            "status": status,
            "events_processed": events_processed,
            "dates_blocked": dates_blocked,
            "error_message": error_message,
        }
        if config_id in self.configs:
            self.configs[config_id] = replace(
                self.configs[config_id], last_sync_at=last_sync_at, last_sync_status=status
            )

    def list_active_configs(self):
        return [c for c in self.configs.values() if c.is_active]

    def list_rooms(self, min_capacity=1):
        return [r for r in self.rooms.values() if r.is_active and r.capacity >= min_capacity]

    def get_room(self, room_id):
        return self.rooms.get(room_id)


class FakeFeedFetcher(FeedFetcher):
    """Serves canned feeds by URL; a URL mapped to an exception raises it.

    URL validation is the real allow-list check.
    """

    def __init__(self, feeds: Optional[dict] = None):
        super().__init__()
        self.feeds = feeds or {}
        self.fetched: List[str] = []

    async def fetch_feed(self, url):
        self.fetched.append(url)
        feed = self.feeds.get(url)
        if feed is None:
            raise NetworkError(f"no feed at {url}")
        if isinstance(feed, Exception):
            raise feed
        return feed


def make_feed(*events: str) -> str:
    body = "\r\n".join(events)
    return (
        "BEGIN:VCALENDAR\r\n"
        "VERSION:2.0\r\n"
        "PRODID:-//Test//Calendar//EN\r\n"
        f"{body}\r\n"
        "END:VCALENDAR\r\n"
    )


def make_event(uid: str, start: str, end: str, summary: Optional[str] = "Reserved", extra: str = "") -> str:
    lines = [
        "BEGIN:VEVENT",
        f"UID:{uid}",
        f"DTSTART;VALUE=DATE:{start}",
        f"DTEND;VALUE=DATE:{end}",
    ]
    if summary is not None:
        lines.append(f"SUMMARY:{summary}")
    if extra:
        lines.append(extra)
    lines.append("END:VEVENT")
    return "\r\n".join(lines)


@pytest.fixture
def test_settings():
    return Settings(
        ICAL_SYNC_DELAY_SECONDS=0,
        ICAL_INSERT_BATCH_SIZE=100,
        ICAL_ATOMIC_REPLACE=False,
        AUTO_SYNC_ENABLED=False,
    )


@pytest.fixture
def room():
    return RoomSummary(
        id="room-1",
        name="Garden Room",
        slug="garden-room",
        base_price=Decimal("100.00"),
        high_season_price=Decimal("140.00"),
        capacity=2,
    )


@pytest.fixture
def memory_store(room):
    return InMemoryAvailabilityStore(rooms=[room])


@pytest.fixture
def db_session():
    """Fresh in-memory SQLite database per test"""
    from sqlalchemy import create_engine
    from sqlalchemy.orm import sessionmaker
    from sqlalchemy.pool import StaticPool

    from app.database import Base
    from app import models  # noqa: F401

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def seeded_room(db_session):
    from app.models import Room

    room = Room(
        id="room-1",
        name="Garden Room",
        slug="garden-room",
        base_price=Decimal("100.00"),
        high_season_price=Decimal("140.00"),
        capacity=2,
        is_active=True,
    )
    db_session.add(room)
    db_session.commit()
    return room


def d(day: int, month: int = 11, year: int = 2025) -> date:
    return date(year, month, day)
