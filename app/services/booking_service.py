"""
Booking Service

Guest booking submission:
- validate dates and party size
- refuse stays that hit a booking or a blocked date
- price the stay night by night
- insert through the store, which re-checks availability in the same
  transaction as the insert
"""

import secrets
import string
import time
from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..domain import CandidateStay, ConfirmedBooking, NewBooking
from ..utils.logging_config import get_logger
from .availability_service import AvailabilityService, nights_between
from .exceptions import BookingConflictError, CapacityError, NotFoundError
from .pricing import PriceQuote, quote_stay

logger = get_logger(__name__)

_BASE36 = string.digits + string.ascii_uppercase


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_confirmation_number(prefix: str = "BK") -> str:
    """e.g. BK-M2X9K1QZ7F4A: base36 millisecond timestamp + 4 random chars"""
    stamp = _to_base36(int(time.time() * 1000))
    suffix = "".join(secrets.choice(_BASE36) for _ in range(4))
    return f"{prefix}-{stamp}{suffix}"


@dataclass
class BookingRequest:
    room_id: str
    check_in: date
    check_out: date
    guest_name: str
    guest_email: str
    guests_count: int = 1
    guest_phone: Optional[str] = None
    guest_country: Optional[str] = None
    special_requests: Optional[str] = None


@dataclass
class BookingConfirmation:
    booking: ConfirmedBooking
    confirmation_number: str
    room_name: str
    quote: PriceQuote


class BookingService:
    def __init__(self, store):
        self.store = store
        self.availability = AvailabilityService(store)

    def create_booking(self, request: BookingRequest) -> BookingConfirmation:
        started = time.monotonic()

        nights = nights_between(request.check_in, request.check_out)

        if request.guests_count < 1:
            raise CapacityError("At least one guest is required")

        room = self.store.get_room(request.room_id)
        if room is None or not room.is_active:
            raise NotFoundError(f"Room {request.room_id} not found")

        if request.guests_count > room.capacity:
            raise CapacityError(
                f"{room.name} sleeps {room.capacity} guests, {request.guests_count} requested"
            )

        verdict, overrides = self.availability.check_room_with_overrides(CandidateStay(
            room_id=room.id,
            check_in=request.check_in,
            check_out=request.check_out,
            guests=request.guests_count,
        ))
        if not verdict.is_available:
            raise BookingConflictError("Selected dates are not available", verdict=verdict)

        quote = quote_stay(room, request.check_in, request.check_out, overrides)

        confirmation_number = generate_confirmation_number()
        booking = self.store.insert_booking(NewBooking(
            room_id=room.id,
            check_in=request.check_in,
            check_out=request.check_out,
            guest_name=request.guest_name,
            guest_email=request.guest_email,
            guest_phone=request.guest_phone,
            guest_country=request.guest_country,
            guests_count=request.guests_count,
            special_requests=request.special_requests,
            total_nights=len(nights),
            total_price=quote.total_price,
            confirmation_number=confirmation_number,
        ))

        logger.booking_created(
            booking.id,
            room.id,
            float(quote.total_price),
            duration_ms=round((time.monotonic() - started) * 1000, 2),
        )
        return BookingConfirmation(
            booking=booking,
            confirmation_number=confirmation_number,
            room_name=room.name,
            quote=quote,
        )

    def cancel_booking(self, booking_id: str) -> ConfirmedBooking:
        return self.store.cancel_booking(booking_id)
