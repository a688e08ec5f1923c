"""
Availability Service

Decides whether a room can take a stay, merging three sources:
- confirmed bookings (half-open [check_in, check_out) intervals)
- per-date overrides written by admins or by the calendar sync
- the candidate stay itself

Same-day turnover: a guest may arrive on the date another guest leaves,
so a booking ending on the candidate's check-in date is not a conflict.

The resolver (``check_availability``) is a pure function over snapshots;
``AvailabilityService`` takes those snapshots from the store at call time
and never caches them.
"""

import time
from dataclasses import dataclass
from datetime import date, timedelta
from typing import TYPE_CHECKING, Iterable, List, Optional, Tuple

from ..domain import (
    AvailabilityVerdict,
    BlockCategory,
    BlockedDateConflict,
    BookingConflict,
    BookingStatus,
    CandidateStay,
    ConfirmedBooking,
    DateOverride,
    OverrideSource,
    RoomSummary,
)
from ..utils.logging_config import get_logger
from .exceptions import InvalidRangeError, NotFoundError

if TYPE_CHECKING:
    from .pricing import PriceQuote

logger = get_logger(__name__)


def nights_between(check_in: date, check_out: date) -> List[date]:
    """Nights of a stay: check_in up to, not including, check_out."""
    if check_out <= check_in:
        raise InvalidRangeError(
            f"check_out ({check_out}) must be after check_in ({check_in})"
        )
    return [check_in + timedelta(days=i) for i in range((check_out - check_in).days)]


def bookings_overlap(booking: ConfirmedBooking, check_in: date, check_out: date) -> bool:
    """Half-open interval overlap; back-to-back stays do not overlap."""
    return booking.check_in < check_out and booking.check_out > check_in


def _block_reason(override: DateOverride) -> str:
    if override.block_category == BlockCategory.PREP_BEFORE:
        return "Preparation buffer"
    if override.source == OverrideSource.ICAL:
        return "Blocked by external calendar sync"
    return "Blocked by admin"


def check_availability(
    candidate: CandidateStay,
    confirmed_bookings: Iterable[ConfirmedBooking],
    overrides: Iterable[DateOverride],
) -> AvailabilityVerdict:
    """
    Availability verdict for one candidate stay.

    - Any confirmed booking overlapping [check_in, check_out) conflicts.
    - The check-in date is refused if it carries any closed override, even a
      prep buffer: a guest cannot arrive while the room is being prepared.
    - Later nights are refused only by FULL closures; a prep buffer inside
      the stay does not block it.

    Raises InvalidRangeError for zero or negative length stays.
    """
    nights = nights_between(candidate.check_in, candidate.check_out)

    booking_conflicts = [
        BookingConflict(check_in=b.check_in, check_out=b.check_out, guest_label=b.guest_name)
        for b in confirmed_bookings
        if b.room_id == candidate.room_id
        and b.status == BookingStatus.CONFIRMED
        and bookings_overlap(b, candidate.check_in, candidate.check_out)
    ]
    booking_conflicts.sort(key=lambda c: c.check_in)

    closed = {
        o.date: o
        for o in overrides
        if o.room_id == candidate.room_id and not o.is_available
    }

    blocked_conflicts: List[BlockedDateConflict] = []
    for night in nights:
        override = closed.get(night)
        if override is None:
            continue
        if night == candidate.check_in or override.block_category == BlockCategory.FULL:
            blocked_conflicts.append(BlockedDateConflict(date=night, reason=_block_reason(override)))

    conflicts = [*booking_conflicts, *blocked_conflicts]
    return AvailabilityVerdict(is_available=not conflicts, conflicts=conflicts)


@dataclass
class RoomSearchResult:
    room: RoomSummary
    verdict: AvailabilityVerdict
    quote: Optional["PriceQuote"] = None


class AvailabilityService:
    """
    Store-backed availability queries.

    Every call reads the store afresh; a sync or a booking committed a moment
    ago is always visible to the next call.
    """

    def __init__(self, store):
        self.store = store

    def check_room(self, candidate: CandidateStay) -> AvailabilityVerdict:
        """Check one stay against the current bookings and overrides."""
        verdict, _ = self.check_room_with_overrides(candidate)
        return verdict

    def check_room_with_overrides(
        self, candidate: CandidateStay
    ) -> Tuple[AvailabilityVerdict, List[DateOverride]]:
        """Like ``check_room``, also handing back the overrides it read so
        callers can price the stay from the same snapshot."""
        started = time.monotonic()

        # Reject bad input before touching the store
        nights_between(candidate.check_in, candidate.check_out)

        window = (candidate.check_in, candidate.check_out)
        bookings = self.store.list_confirmed_bookings(candidate.room_id, window)
        overrides = self.store.list_overrides(candidate.room_id, window)

        verdict = check_availability(candidate, bookings, overrides)

        logger.availability_checked(
            room_id=candidate.room_id,
            check_in=candidate.check_in,
            check_out=candidate.check_out,
            is_available=verdict.is_available,
            conflicts=len(verdict.conflicts),
            duration_ms=round((time.monotonic() - started) * 1000, 2),
        )
        return verdict, overrides

    def unavailable_dates(self, room_id: str, start: date, end: date) -> List[date]:
        """
        Dates a date-picker should grey out in [start, end).

        Occupied nights of confirmed bookings (checkout morning excluded, it
        is a valid arrival day) plus every closed override date.
        """
        window_nights = nights_between(start, end)
        window = set(window_nights)
        unavailable = set()

        for booking in self.store.list_confirmed_bookings(room_id, (start, end)):
            for night in nights_between(booking.check_in, booking.check_out):
                if night in window:
                    unavailable.add(night)

        for override in self.store.list_overrides(room_id, (start, end)):
            if not override.is_available and override.date in window:
                unavailable.add(override.date)

        return sorted(unavailable)

    def search(self, check_in: date, check_out: date, guests: int = 1) -> List[RoomSearchResult]:
        """
        Active rooms that fit the party, each with its verdict and, when
        bookable, a price quote.
        """
        from .pricing import quote_stay

        nights_between(check_in, check_out)

        results: List[RoomSearchResult] = []
        for room in self.store.list_rooms(min_capacity=guests):
            candidate = CandidateStay(room_id=room.id, check_in=check_in, check_out=check_out, guests=guests)
            window = (check_in, check_out)
            overrides = self.store.list_overrides(room.id, window)
            verdict = check_availability(
                candidate,
                self.store.list_confirmed_bookings(room.id, window),
                overrides,
            )
            quote = quote_stay(room, check_in, check_out, overrides) if verdict.is_available else None
            results.append(RoomSearchResult(room=room, verdict=verdict, quote=quote))

        available = sum(1 for r in results if r.verdict.is_available)
        logger.info(f"🔍 Search {check_in} → {check_out} ({guests} guests): {available}/{len(results)} rooms available")
        return results

    def require_room(self, room_id: str) -> RoomSummary:
        room = self.store.get_room(room_id)
        if room is None:
            raise NotFoundError(f"Room {room_id} not found")
        return room

