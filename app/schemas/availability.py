from pydantic import BaseModel, Field, model_validator
from typing import List, Optional, Union
from datetime import date
from decimal import Decimal

from ..domain import BlockCategory


class AvailabilityCheckRequest(BaseModel):
    room_id: str = Field(..., min_length=1, max_length=36)
    check_in: date
    check_out: date
    guests: int = Field(1, ge=1, le=20)


class BookingConflictOut(BaseModel):
    type: str = "booking"
    check_in: date
    check_out: date
    guest_label: Optional[str] = None


class BlockedDateOut(BaseModel):
    type: str = "blocked"
    date: date
    reason: str


class AvailabilityResponse(BaseModel):
    room_id: str
    check_in: date
    check_out: date
    is_available: bool
    conflicts: List[Union[BookingConflictOut, BlockedDateOut]] = []

    @classmethod
    def from_verdict(cls, room_id: str, check_in: date, check_out: date, verdict) -> "AvailabilityResponse":
        conflicts = []
        for c in verdict.conflicts:
            if c.type == "booking":
                conflicts.append(BookingConflictOut(check_in=c.check_in, check_out=c.check_out, guest_label=c.guest_label))
            else:
                conflicts.append(BlockedDateOut(date=c.date, reason=c.reason))
        return cls(
            room_id=room_id,
            check_in=check_in,
            check_out=check_out,
            is_available=verdict.is_available,
            conflicts=conflicts,
        )


class UnavailableDatesResponse(BaseModel):
    room_id: str
    start: date
    end: date
    dates: List[date]


class NightlyPriceOut(BaseModel):
    date: date
    price: Decimal
    is_override: bool = False


class PriceQuoteOut(BaseModel):
    nights: int
    total_price: Decimal
    average_per_night: Decimal
    has_overrides: bool = False
    breakdown: List[NightlyPriceOut] = []

    class Config:
        from_attributes = True


class RoomSearchItem(BaseModel):
    room_id: str
    name: str
    slug: str
    capacity: int
    base_price: Decimal
    is_available: bool
    conflicts: int = 0
    quote: Optional[PriceQuoteOut] = None


class SearchResponse(BaseModel):
    check_in: date
    check_out: date
    guests: int
    available_count: int
    rooms: List[RoomSearchItem]


class OverrideRangeUpdate(BaseModel):
    """Admin block / unblock of [start, end)"""
    start: date
    end: date
    is_available: bool = False
    price_override: Optional[Decimal] = Field(None, ge=0)
    block_type: BlockCategory = BlockCategory.FULL

    @model_validator(mode='after')
    def validate_dates(self):
        if self.end <= self.start:
            raise ValueError('end must be after start')
        return self


class DateOverrideOut(BaseModel):
    room_id: str
    date: date
    is_available: bool
    block_category: BlockCategory
    price_override: Optional[Decimal] = None
    source: str

    class Config:
        from_attributes = True
