"""
Room Availability Model

Per-date overrides for a room. A row closes a date (``is_available`` false)
and/or carries a custom nightly price. Rows written by the calendar sync are
replaced wholesale on every sync of the room; admins toggle single rows.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, Date, DateTime, Boolean, Numeric, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from ..database import Base
from ..domain import BlockCategory, DateOverride, OverrideSource


class RoomAvailability(Base):
    __tablename__ = "room_availability"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    room_id = Column(String(36), ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)

    is_available = Column(Boolean, default=True, nullable=False)
    block_type = Column(String(20), default=BlockCategory.FULL.value, nullable=False)
    price_override = Column(Numeric(10, 2), nullable=True)

    # ical = written by calendar sync, manual = admin dashboard
    sync_source = Column(String(20), default=OverrideSource.MANUAL.value)

    created_at = Column(DateTime, default=datetime.utcnow)

    room = relationship("Room", back_populates="availability")

    __table_args__ = (
        # One entry per room per date
        UniqueConstraint("room_id", "date", name="uq_room_availability_room_date"),
        Index("ix_room_availability_blocked", "room_id", "is_available", "date"),
    )

    @classmethod
    def from_domain(cls, record: DateOverride) -> "RoomAvailability":
        return cls(
            room_id=record.room_id,
            date=record.date,
            is_available=record.is_available,
            block_type=record.block_category.value,
            price_override=record.price_override,
            sync_source=record.source.value,
        )

    def to_domain(self) -> DateOverride:
        return DateOverride(
            room_id=self.room_id,
            date=self.date,
            is_available=self.is_available,
            block_category=BlockCategory(self.block_type or BlockCategory.FULL.value),
            price_override=self.price_override,
            source=OverrideSource(self.sync_source or OverrideSource.MANUAL.value),
        )

    def __repr__(self):
        status = "open" if self.is_available else f"blocked:{self.block_type}"
        return f"<RoomAvailability {self.room_id} {self.date} {status}>"
