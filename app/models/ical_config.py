"""
External Calendar Configuration Model

One row per external calendar feed (Airbnb, Booking.com, ...) attached to a
room, together with the outcome of its last sync. ``last_sync_status`` and
``last_error_message`` are what the admin status view shows.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, Text, ForeignKey, DateTime, Integer, Boolean, Index
from sqlalchemy.orm import relationship
from ..database import Base
from ..domain import ICalConfig, SyncStatus


class RoomICalConfig(Base):
    __tablename__ = "room_ical_configs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    room_id = Column(String(36), ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False)

    platform = Column(String(50), default="other", nullable=False)  # airbnb, booking, ...
    ical_url = Column(Text, nullable=False)
    is_active = Column(Boolean, default=True)
    sync_interval_hours = Column(Integer, default=12)

    # Sync tracking
    last_sync_at = Column(DateTime, nullable=True)
    last_sync_status = Column(String(20), nullable=True)
    events_last_sync = Column(Integer, default=0)
    dates_last_sync = Column(Integer, default=0)
    last_error_message = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    room = relationship("Room", back_populates="ical_configs")

    __table_args__ = (
        Index("ix_ical_config_active", "is_active", "last_sync_at"),
    )

    def to_domain(self) -> ICalConfig:
        return ICalConfig(
            id=self.id,
            room_id=self.room_id,
            room_name=self.room.name if self.room else None,
            platform=self.platform,
            ical_url=self.ical_url,
            is_active=bool(self.is_active),
            sync_interval_hours=self.sync_interval_hours,
            last_sync_at=self.last_sync_at,
            last_sync_status=SyncStatus(self.last_sync_status) if self.last_sync_status else None,
        )

    def __repr__(self):
        return f"<RoomICalConfig {self.platform} room={self.room_id}>"
