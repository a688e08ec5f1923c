"""
Tests for guest booking submission

Tests cover:
- Party size validation against room capacity
- Unknown / inactive rooms
- Conflicts refused before insert
- Confirmation number format
- End to end against SQLite
"""

import re
from dataclasses import replace

import pytest

from app.domain import BookingStatus, ConfirmedBooking, DateOverride, OverrideSource
from conftest import InMemoryAvailabilityStore, d


def request(check_in=None, check_out=None, guests=2, room_id="room-1"):
    from app.services.booking_service import BookingRequest

    return BookingRequest(
        room_id=room_id,
        check_in=check_in or d(11),
        check_out=check_out or d(14),
        guest_name="Maria Rossi",
        guest_email="maria@example.com",
        guests_count=guests,
    )


class TestConfirmationNumber:
    """Tests for generate_confirmation_number"""

    def test_format(self):
        from app.services.booking_service import generate_confirmation_number

        number = generate_confirmation_number()

        assert re.fullmatch(r"BK-[0-9A-Z]{12,}", number)

    def test_unique(self):
        from app.services.booking_service import generate_confirmation_number

        numbers = {generate_confirmation_number() for _ in range(50)}

        assert len(numbers) == 50

    def test_base36(self):
        from app.services.booking_service import _to_base36

        assert _to_base36(0) == "0"
        assert _to_base36(35) == "Z"
        assert _to_base36(36) == "10"


class TestCreateBooking:
    """Tests for BookingService.create_booking"""

    def test_creates_priced_booking(self, memory_store):
        from app.services.booking_service import BookingService

        confirmation = BookingService(memory_store).create_booking(request())

        assert confirmation.room_name == "Garden Room"
        assert confirmation.quote.nights == 3
        assert str(confirmation.quote.total_price) == "300.00"
        assert confirmation.booking.status == BookingStatus.CONFIRMED
        assert "insert_booking" in memory_store.calls

    def test_overrides_read_once_for_check_and_price(self, memory_store):
        """The price comes from the same override snapshot as the check"""
        from decimal import Decimal

        from app.services.booking_service import BookingService

        memory_store.overrides.append(DateOverride(
            room_id="room-1", date=d(12), is_available=True,
            price_override=Decimal("150.00"), source=OverrideSource.MANUAL,
        ))

        confirmation = BookingService(memory_store).create_booking(request())

        assert memory_store.calls.count("list_overrides") == 1
        assert str(confirmation.quote.total_price) == "350.00"

    def test_too_many_guests(self, memory_store):
        from app.services.booking_service import BookingService
        from app.services.exceptions import CapacityError

        with pytest.raises(CapacityError):
            BookingService(memory_store).create_booking(request(guests=3))

        assert "insert_booking" not in memory_store.calls

    def test_zero_guests(self, memory_store):
        from app.services.booking_service import BookingService
        from app.services.exceptions import CapacityError

        with pytest.raises(CapacityError):
            BookingService(memory_store).create_booking(request(guests=0))

    def test_unknown_room(self, memory_store):
        from app.services.booking_service import BookingService
        from app.services.exceptions import NotFoundError

        with pytest.raises(NotFoundError):
            BookingService(memory_store).create_booking(request(room_id="nope"))

    def test_inactive_room(self, room):
        from app.services.booking_service import BookingService
        from app.services.exceptions import NotFoundError

        store = InMemoryAvailabilityStore(rooms=[replace(room, is_active=False)])

        with pytest.raises(NotFoundError):
            BookingService(store).create_booking(request())

    def test_invalid_range(self, memory_store):
        from app.services.booking_service import BookingService
        from app.services.exceptions import InvalidRangeError

        with pytest.raises(InvalidRangeError):
            BookingService(memory_store).create_booking(request(check_in=d(14), check_out=d(11)))

        assert memory_store.calls == []

    def test_conflict_refused(self, memory_store):
        from app.services.booking_service import BookingService
        from app.services.exceptions import BookingConflictError

        memory_store.bookings.append(ConfirmedBooking(room_id="room-1", check_in=d(7), check_out=d(12)))

        with pytest.raises(BookingConflictError) as exc_info:
            BookingService(memory_store).create_booking(request())

        assert exc_info.value.verdict.booking_conflicts[0].check_in == d(7)
        assert "insert_booking" not in memory_store.calls

    def test_blocked_check_in_refused(self, memory_store):
        from app.services.booking_service import BookingService
        from app.services.exceptions import BookingConflictError

        memory_store.overrides.append(DateOverride(room_id="room-1", date=d(11)))

        with pytest.raises(BookingConflictError):
            BookingService(memory_store).create_booking(request())


class TestCreateBookingSql:
    """End to end through SqlAlchemyAvailabilityStore"""

    def test_second_overlapping_booking_refused(self, db_session, seeded_room):
        from app.services.availability_store import SqlAlchemyAvailabilityStore
        from app.services.booking_service import BookingService
        from app.services.exceptions import BookingConflictError

        service = BookingService(SqlAlchemyAvailabilityStore(db_session))
        first = service.create_booking(request(check_in=d(7), check_out=d(11)))

        with pytest.raises(BookingConflictError):
            service.create_booking(request(check_in=d(10), check_out=d(12)))

        second = service.create_booking(request(check_in=d(11), check_out=d(14)))

        assert first.confirmation_number != second.confirmation_number
        assert first.booking.id != second.booking.id
