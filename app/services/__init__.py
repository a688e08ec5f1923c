# Services package
from .exceptions import (
    AvailabilityError, FormatError, NetworkError, FeedTimeoutError, HttpStatusError,
    UnauthorizedSourceError, InvalidRangeError, CapacityError, NotFoundError,
    StoreError, BookingConflictError,
)
from .ical_parser import parse_ical_feed
from .blocking_strategy import Classification, classify_event, dates_to_block, build_override_records
from .availability_service import AvailabilityService, check_availability, nights_between
from .pricing import PriceQuote, quote_stay
from .availability_store import AvailabilityStore, SqlAlchemyAvailabilityStore
from .feed_fetcher import FeedFetcher
from .ical_sync_service import ICalSyncService, pending_configs
from .booking_service import BookingService, BookingRequest, BookingConfirmation

__all__ = [
    "AvailabilityError", "FormatError", "NetworkError", "FeedTimeoutError", "HttpStatusError",
    "UnauthorizedSourceError", "InvalidRangeError", "CapacityError", "NotFoundError",
    "StoreError", "BookingConflictError",
    "parse_ical_feed",
    "Classification", "classify_event", "dates_to_block", "build_override_records",
    "AvailabilityService", "check_availability", "nights_between",
    "PriceQuote", "quote_stay",
    "AvailabilityStore", "SqlAlchemyAvailabilityStore",
    "FeedFetcher",
    "ICalSyncService", "pending_configs",
    "BookingService", "BookingRequest", "BookingConfirmation",
]
