"""
FastAPI dependencies

Each request gets a store bound to its own session; services are built on
top of it. Tests swap these out through ``app.dependency_overrides``.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from ..config import get_settings
from ..database import get_db
from ..services.availability_service import AvailabilityService
from ..services.availability_store import SqlAlchemyAvailabilityStore
from ..services.booking_service import BookingService
from ..services.feed_fetcher import FeedFetcher
from ..services.ical_sync_service import ICalSyncService


def get_store(db: Session = Depends(get_db)) -> SqlAlchemyAvailabilityStore:
    return SqlAlchemyAvailabilityStore(db)


def get_availability_service(store: SqlAlchemyAvailabilityStore = Depends(get_store)) -> AvailabilityService:
    return AvailabilityService(store)


def get_booking_service(store: SqlAlchemyAvailabilityStore = Depends(get_store)) -> BookingService:
    return BookingService(store)


def get_feed_fetcher() -> FeedFetcher:
    return FeedFetcher(get_settings())


def get_sync_service(
    store: SqlAlchemyAvailabilityStore = Depends(get_store),
    fetcher: FeedFetcher = Depends(get_feed_fetcher),
) -> ICalSyncService:
    return ICalSyncService(store, fetcher=fetcher, settings=get_settings())
