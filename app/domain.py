"""
Availability Domain Types

Plain value objects passed between the availability engine and its
collaborators. The ORM models in ``app.models`` convert to and from these,
so the resolver, the strategist and the sync service never hold a session.
"""

import enum
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional, Union


class BookingStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    PENDING = "pending"
    CANCELLED = "cancelled"


class BlockCategory(str, enum.Enum):
    """Why a date is closed"""
    FULL = "full"                # guest night or closure
    PREP_BEFORE = "prep_before"  # buffer next to a stay


class BlockPolicy(str, enum.Enum):
    """How an external calendar event turns into blocked dates"""
    NIGHT_BASED = "night_based"        # occupied nights only, checkout day stays open
    COMPLETE_BLOCK = "complete_block"  # every date of the interval


class OverrideSource(str, enum.Enum):
    ICAL = "ical"
    MANUAL = "manual"


class SyncStatus(str, enum.Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class CalendarEvent:
    """A booking interval read from an external calendar. ``end_date`` is exclusive."""
    uid: str
    label: str
    start_date: date
    end_date: date
    description: Optional[str] = None


@dataclass
class DateOverride:
    room_id: str
    date: date
    is_available: bool = False
    block_category: BlockCategory = BlockCategory.FULL
    price_override: Optional[Decimal] = None
    source: OverrideSource = OverrideSource.ICAL


@dataclass
class ConfirmedBooking:
    """A stored booking. ``check_out`` is exclusive: that night is not occupied."""
    room_id: str
    check_in: date
    check_out: date
    status: BookingStatus = BookingStatus.CONFIRMED
    guest_name: Optional[str] = None
    id: Optional[str] = None


@dataclass
class CandidateStay:
    room_id: str
    check_in: date
    check_out: date
    guests: int = 1


@dataclass(frozen=True)
class BookingConflict:
    check_in: date
    check_out: date
    guest_label: Optional[str] = None
    type: str = "booking"


@dataclass(frozen=True)
class BlockedDateConflict:
    date: date
    reason: str
    type: str = "blocked"


Conflict = Union[BookingConflict, BlockedDateConflict]


@dataclass
class AvailabilityVerdict:
    is_available: bool
    conflicts: List[Conflict] = field(default_factory=list)

    @property
    def booking_conflicts(self) -> List[BookingConflict]:
        return [c for c in self.conflicts if isinstance(c, BookingConflict)]

    @property
    def blocked_dates(self) -> List[date]:
        return [c.date for c in self.conflicts if isinstance(c, BlockedDateConflict)]


@dataclass
class ICalConfig:
    """One external calendar feed attached to a room"""
    id: str
    room_id: str
    ical_url: str
    platform: str = "other"
    room_name: Optional[str] = None
    is_active: bool = True
    sync_interval_hours: Optional[int] = None
    last_sync_at: Optional[datetime] = None
    last_sync_status: Optional[SyncStatus] = None


@dataclass
class SyncResult:
    config_id: str
    room_id: str
    platform: str
    success: bool
    events_processed: int = 0
    dates_blocked: int = 0
    error: Optional[str] = None
    room_name: Optional[str] = None
    duration_ms: Optional[int] = None


@dataclass
class RoomSummary:
    id: str
    name: str
    slug: str
    base_price: Decimal
    capacity: int
    high_season_price: Optional[Decimal] = None
    is_active: bool = True


@dataclass
class NewBooking:
    """A booking about to be written; ``id`` is assigned by the store."""
    room_id: str
    check_in: date
    check_out: date
    guest_name: str
    guest_email: str
    guests_count: int
    total_nights: int
    total_price: Decimal
    confirmation_number: str
    guest_phone: Optional[str] = None
    guest_country: Optional[str] = None
    special_requests: Optional[str] = None
    status: BookingStatus = BookingStatus.CONFIRMED
