"""
Availability Store

Storage interface used by the availability engine and the calendar sync,
plus its SQLAlchemy implementation.

Responsibilities:
- Read confirmed bookings and date overrides for a room (optionally within
  a half-open date window)
- Replace a room's synced overrides (delete-then-insert, or atomically)
- Record the outcome of each calendar sync on its config
- Insert bookings with an in-transaction overlap re-check
- Admin block/unblock of single dates and ranges
"""

import abc
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import and_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..domain import (
    BlockCategory,
    BookingStatus,
    CandidateStay,
    ConfirmedBooking,
    DateOverride,
    ICalConfig,
    NewBooking,
    OverrideSource,
    RoomSummary,
    SyncStatus,
)
from ..utils.db_helpers import acquire_row_lock, chunked
from ..utils.logging_config import get_logger
from .exceptions import BookingConflictError, NotFoundError, StoreError

logger = get_logger(__name__)

DateWindow = Optional[Tuple[date, date]]


class AvailabilityStore(abc.ABC):
    """
    Persistence seen by the availability engine.

    Implementations must be safe to call from a single request or sync at a
    time; cross-request write serialization is left to the backing database.
    """

    @abc.abstractmethod
    def list_confirmed_bookings(self, room_id: str, window: DateWindow = None) -> List[ConfirmedBooking]:
        """Confirmed bookings of a room, those overlapping ``window`` when given."""

    @abc.abstractmethod
    def list_overrides(self, room_id: str, window: DateWindow = None) -> List[DateOverride]:
        """Overrides of a room, those dated inside ``window`` when given."""

    @abc.abstractmethod
    def delete_overrides(self, room_id: str) -> int:
        ...

    @abc.abstractmethod
    def insert_overrides(self, records: Sequence[DateOverride]) -> None:
        ...

    @abc.abstractmethod
    def insert_booking(self, booking: NewBooking) -> ConfirmedBooking:
        ...

    @abc.abstractmethod
    def update_sync_metadata(
        self,
        config_id: str,
        last_sync_at: datetime,
        status: SyncStatus,
        events_processed: int = 0,
        dates_blocked: int = 0,
        error_message: Optional[str] = None,
    ) -> None:
        ...

    @abc.abstractmethod
    def list_active_configs(self) -> List[ICalConfig]:
        ...

    @abc.abstractmethod
    def list_rooms(self, min_capacity: int = 1) -> List[RoomSummary]:
        ...

    @abc.abstractmethod
    def get_room(self, room_id: str) -> Optional[RoomSummary]:
        ...

    def replace_overrides(self, room_id: str, records: Sequence[DateOverride], batch_size: int = 100) -> None:
        """
        Swap a room's overrides for ``records``.

        The default is delete-then-insert and is not atomic: a reader in
        between sees the room fully open. Stores backed by a transactional
        database override this.
        """
        self.delete_overrides(room_id)
        for batch in chunked(records, batch_size):
            self.insert_overrides(batch)


class SqlAlchemyAvailabilityStore(AvailabilityStore):
    """AvailabilityStore over a SQLAlchemy session"""

    def __init__(self, db: Session):
        self.db = db

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Store write failed ({action}): {e}")
            raise StoreError(f"Failed to {action}") from e

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_confirmed_bookings(self, room_id: str, window: DateWindow = None) -> List[ConfirmedBooking]:
        from ..models.booking import Booking

        try:
            query = self.db.query(Booking).filter(
                Booking.room_id == room_id,
                Booking.status == BookingStatus.CONFIRMED.value,
            )
            if window is not None:
                start, end = window
                query = query.filter(and_(Booking.check_in < end, Booking.check_out > start))
            return [b.to_domain() for b in query.order_by(Booking.check_in).all()]
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to load bookings for room {room_id}") from e

    def list_overrides(self, room_id: str, window: DateWindow = None) -> List[DateOverride]:
        from ..models.room_availability import RoomAvailability

        try:
            query = self.db.query(RoomAvailability).filter(RoomAvailability.room_id == room_id)
            if window is not None:
                start, end = window
                query = query.filter(RoomAvailability.date >= start, RoomAvailability.date < end)
            return [o.to_domain() for o in query.order_by(RoomAvailability.date).all()]
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to load overrides for room {room_id}") from e

    def list_active_configs(self) -> List[ICalConfig]:
        from ..models.ical_config import RoomICalConfig

        try:
            configs = self.db.query(RoomICalConfig).filter(
                RoomICalConfig.is_active == True
            ).order_by(RoomICalConfig.created_at).all()
            return [c.to_domain() for c in configs]
        except SQLAlchemyError as e:
            raise StoreError("Failed to load calendar configs") from e

    def list_configs(self) -> List[ICalConfig]:
        from ..models.ical_config import RoomICalConfig

        try:
            return [c.to_domain() for c in self.db.query(RoomICalConfig).order_by(RoomICalConfig.created_at).all()]
        except SQLAlchemyError as e:
            raise StoreError("Failed to load calendar configs") from e

    def get_config(self, config_id: str) -> Optional[ICalConfig]:
        from ..models.ical_config import RoomICalConfig

        config = self.db.query(RoomICalConfig).filter(RoomICalConfig.id == config_id).first()
        return config.to_domain() if config else None

    def get_config_status(self, config_id: str) -> dict:
        """Last sync counters and error, for the operator status view."""
        from ..models.ical_config import RoomICalConfig

        config = self.db.query(RoomICalConfig).filter(RoomICalConfig.id == config_id).first()
        if config is None:
            raise NotFoundError(f"Calendar config {config_id} not found")
        return {
            "events_last_sync": config.events_last_sync or 0,
            "dates_last_sync": config.dates_last_sync or 0,
            "last_error_message": config.last_error_message,
        }

    def list_rooms(self, min_capacity: int = 1) -> List[RoomSummary]:
        from ..models.room import Room

        rooms = self.db.query(Room).filter(
            Room.is_active == True,
            Room.capacity >= min_capacity,
        ).order_by(Room.base_price).all()
        return [r.to_domain() for r in rooms]

    def get_room(self, room_id: str) -> Optional[RoomSummary]:
        from ..models.room import Room

        room = self.db.query(Room).filter(Room.id == room_id).first()
        return room.to_domain() if room else None

    # ------------------------------------------------------------------
    # Calendar sync writes
    # ------------------------------------------------------------------

    def delete_overrides(self, room_id: str) -> int:
        from ..models.room_availability import RoomAvailability

        try:
            deleted = self.db.query(RoomAvailability).filter(
                RoomAvailability.room_id == room_id
            ).delete(synchronize_session=False)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"Failed to clear overrides for room {room_id}") from e
        self._commit("clear overrides")
        logger.info(f"🗑️ Cleared {deleted} overrides for room {room_id}")
        return deleted

    def insert_overrides(self, records: Sequence[DateOverride]) -> None:
        from ..models.room_availability import RoomAvailability

        if not records:
            return
        self.db.add_all([RoomAvailability.from_domain(r) for r in records])
        self._commit("insert overrides")

    def replace_overrides(self, room_id: str, records: Sequence[DateOverride], batch_size: int = 100) -> None:
        """Delete and re-insert a room's overrides in one transaction."""
        from ..models.room_availability import RoomAvailability

        try:
            self.db.query(RoomAvailability).filter(
                RoomAvailability.room_id == room_id
            ).delete(synchronize_session=False)
            for batch in chunked(records, batch_size):
                self.db.add_all([RoomAvailability.from_domain(r) for r in batch])
                self.db.flush()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"Failed to replace overrides for room {room_id}") from e
        self._commit("replace overrides")

    def update_sync_metadata(
        self,
        config_id: str,
        last_sync_at: datetime,
        status: SyncStatus,
        events_processed: int = 0,
        dates_blocked: int = 0,
        error_message: Optional[str] = None,
    ) -> None:
        from ..models.ical_config import RoomICalConfig

        config = self.db.query(RoomICalConfig).filter(RoomICalConfig.id == config_id).first()
        if config is None:
            raise NotFoundError(f"Calendar config {config_id} not found")

        config.last_sync_at = last_sync_at
        config.last_sync_status = status.value
        config.events_last_sync = events_processed
        config.dates_last_sync = dates_blocked
        config.last_error_message = error_message
        self._commit("record sync outcome")

    def create_config(
        self,
        room_id: str,
        ical_url: str,
        platform: str = "other",
        sync_interval_hours: Optional[int] = None,
        is_active: bool = True,
    ) -> ICalConfig:
        from ..models.ical_config import RoomICalConfig

        if self.get_room(room_id) is None:
            raise NotFoundError(f"Room {room_id} not found")

        config = RoomICalConfig(
            room_id=room_id,
            ical_url=ical_url,
            platform=platform,
            is_active=is_active,
        )
        if sync_interval_hours is not None:
            config.sync_interval_hours = sync_interval_hours
        self.db.add(config)
        self._commit("create calendar config")
        self.db.refresh(config)
        return config.to_domain()

    # ------------------------------------------------------------------
    # Bookings
    # ------------------------------------------------------------------

    def insert_booking(self, booking: NewBooking) -> ConfirmedBooking:
        """
        Insert a booking if the room is still free.

        The room row is locked (PostgreSQL) and the stay re-checked against
        confirmed bookings and overrides in the same transaction, so two
        concurrent requests for overlapping dates cannot both succeed.
        """
        from ..models.booking import Booking
        from ..models.room import Room
        from .availability_service import check_availability

        try:
            room = acquire_row_lock(self.db, Room, Room.id == booking.room_id)
            if room is None:
                self.db.rollback()
                raise NotFoundError(f"Room {booking.room_id} not found")

            candidate = CandidateStay(
                room_id=booking.room_id,
                check_in=booking.check_in,
                check_out=booking.check_out,
                guests=booking.guests_count,
            )
            window = (booking.check_in, booking.check_out)
            verdict = check_availability(
                candidate,
                self.list_confirmed_bookings(booking.room_id, window),
                self.list_overrides(booking.room_id, window),
            )
            if booking.status == BookingStatus.CONFIRMED and not verdict.is_available:
                self.db.rollback()
                raise BookingConflictError("Selected dates are not available", verdict=verdict)

            row = Booking(
                room_id=booking.room_id,
                check_in=booking.check_in,
                check_out=booking.check_out,
                status=booking.status.value,
                guest_name=booking.guest_name,
                guest_email=booking.guest_email,
                guest_phone=booking.guest_phone,
                guest_country=booking.guest_country,
                guests_count=booking.guests_count,
                special_requests=booking.special_requests,
                total_nights=booking.total_nights,
                total_price=booking.total_price,
                confirmation_number=booking.confirmation_number,
            )
            self.db.add(row)
            self.db.commit()
        except IntegrityError as e:
            # exclusion constraint on PostgreSQL
            self.db.rollback()
            raise BookingConflictError("Selected dates are not available") from e
        except StoreError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError("Failed to save booking") from e

        self.db.refresh(row)
        return row.to_domain()

    def cancel_booking(self, booking_id: str) -> ConfirmedBooking:
        from ..models.booking import Booking

        booking = self.db.query(Booking).filter(Booking.id == booking_id).first()
        if booking is None:
            raise NotFoundError(f"Booking {booking_id} not found")

        old_status = booking.status
        booking.status = BookingStatus.CANCELLED.value
        self._commit("cancel booking")
        logger.booking_status_changed(booking_id, old_status, booking.status)
        return booking.to_domain()

    # ------------------------------------------------------------------
    # Admin overrides
    # ------------------------------------------------------------------

    def set_override(
        self,
        room_id: str,
        target_date: date,
        is_available: bool,
        price_override: Optional[Decimal] = None,
        block_type: BlockCategory = BlockCategory.FULL,
        commit: bool = True,
    ) -> DateOverride:
        """Create or update the manual override of one date."""
        from ..models.room_availability import RoomAvailability

        entry = self.db.query(RoomAvailability).filter(
            RoomAvailability.room_id == room_id,
            RoomAvailability.date == target_date,
        ).first()

        if entry is None:
            entry = RoomAvailability(room_id=room_id, date=target_date)
            self.db.add(entry)

        entry.is_available = is_available
        entry.price_override = price_override
        entry.block_type = block_type.value
        entry.sync_source = OverrideSource.MANUAL.value

        if commit:
            self._commit("set override")
        return entry.to_domain()

    def set_overrides_range(
        self,
        room_id: str,
        start: date,
        end: date,
        is_available: bool,
        price_override: Optional[Decimal] = None,
        block_type: BlockCategory = BlockCategory.FULL,
    ) -> List[DateOverride]:
        """Apply the same manual override to every date in [start, end)."""
        from .availability_service import nights_between

        if self.get_room(room_id) is None:
            raise NotFoundError(f"Room {room_id} not found")

        results = [
            self.set_override(room_id, d, is_available, price_override, block_type, commit=False)
            for d in nights_between(start, end)
        ]
        self._commit("set overrides")
        logger.info(
            f"{'🔓 Opened' if is_available else '🔒 Blocked'} {len(results)} dates for room {room_id} ({start} → {end})"
        )
        return results

    def delete_override(self, room_id: str, target_date: date) -> bool:
        from ..models.room_availability import RoomAvailability

        deleted = self.db.query(RoomAvailability).filter(
            RoomAvailability.room_id == room_id,
            RoomAvailability.date == target_date,
        ).delete(synchronize_session=False)
        self._commit("delete override")
        return deleted > 0
