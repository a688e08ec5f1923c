import uuid
from datetime import datetime
from sqlalchemy import Column, String, Date, Numeric, Text, ForeignKey, DateTime, Integer, Index
from sqlalchemy.orm import relationship
from ..database import Base
from ..domain import BookingStatus, ConfirmedBooking


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    room_id = Column(String(36), ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False)

    # Stay - check_out is exclusive (the guest leaves that morning)
    check_in = Column(Date, nullable=False)
    check_out = Column(Date, nullable=False)
    status = Column(String(20), default=BookingStatus.CONFIRMED.value, nullable=False)

    # Guest
    guest_name = Column(String(200), nullable=False)
    guest_email = Column(String(255), nullable=True)
    guest_phone = Column(String(30), nullable=True)
    guest_country = Column(String(80), nullable=True)
    guests_count = Column(Integer, default=1)
    special_requests = Column(Text, nullable=True)

    total_nights = Column(Integer, nullable=False, default=1)
    total_price = Column(Numeric(10, 2), default=0)
    confirmation_number = Column(String(40), nullable=True, unique=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    room = relationship("Room", back_populates="bookings")

    __table_args__ = (
        Index("ix_booking_room_status_dates", "room_id", "status", "check_in"),
    )

    def to_domain(self) -> ConfirmedBooking:
        return ConfirmedBooking(
            id=self.id,
            room_id=self.room_id,
            check_in=self.check_in,
            check_out=self.check_out,
            status=BookingStatus(self.status),
            guest_name=self.guest_name,
        )

    def __repr__(self):
        return f"<Booking {self.guest_name} - {self.check_in}>"
