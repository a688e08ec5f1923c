import uuid
from datetime import datetime
from sqlalchemy import Column, String, Numeric, Text, Integer, Boolean, DateTime
from sqlalchemy.orm import relationship
from ..database import Base
from ..domain import RoomSummary


class Room(Base):
    __tablename__ = "rooms"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), nullable=False)
    slug = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)

    # Nightly rates
    base_price = Column(Numeric(10, 2), nullable=False, default=0)
    high_season_price = Column(Numeric(10, 2), nullable=True)

    capacity = Column(Integer, nullable=False, default=2)
    is_active = Column(Boolean, default=True, index=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    bookings = relationship("Booking", back_populates="room", cascade="all, delete-orphan")
    availability = relationship("RoomAvailability", back_populates="room", cascade="all, delete-orphan")
    ical_configs = relationship("RoomICalConfig", back_populates="room", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Room {self.slug}>"

    def to_domain(self) -> RoomSummary:
        return RoomSummary(
            id=self.id,
            name=self.name,
            slug=self.slug,
            base_price=self.base_price,
            high_season_price=self.high_season_price,
            capacity=self.capacity,
            is_active=bool(self.is_active),
        )
