"""
Stay Pricing

Nightly price for each night of a stay:
    price_override of the date, if set
    else high_season_price in a high season month (when the room has one)
    else base_price
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Sequence

from ..config import settings
from ..domain import DateOverride, RoomSummary
from .availability_service import nights_between


@dataclass
class NightlyPrice:
    date: date
    price: Decimal
    is_override: bool = False


@dataclass
class PriceQuote:
    room_id: str
    nights: int
    total_price: Decimal
    average_per_night: Decimal
    has_overrides: bool = False
    breakdown: List[NightlyPrice] = field(default_factory=list)


def base_price_for_date(
    room: RoomSummary,
    night: date,
    high_season_months: Optional[Sequence[int]] = None,
) -> Decimal:
    """Seasonal rate for a night, ignoring overrides."""
    months = high_season_months if high_season_months is not None else settings.high_season_month_numbers
    if night.month in months and room.high_season_price is not None:
        return Decimal(room.high_season_price)
    return Decimal(room.base_price)


def quote_stay(
    room: RoomSummary,
    check_in: date,
    check_out: date,
    overrides: Iterable[DateOverride] = (),
    high_season_months: Optional[Sequence[int]] = None,
) -> PriceQuote:
    """
    Price a stay night by night.

    Raises InvalidRangeError when check_out is not after check_in.
    """
    price_by_date = {
        o.date: Decimal(o.price_override)
        for o in overrides
        if o.room_id == room.id and o.price_override is not None
    }

    breakdown: List[NightlyPrice] = []
    for night in nights_between(check_in, check_out):
        if night in price_by_date:
            breakdown.append(NightlyPrice(night, price_by_date[night], is_override=True))
        else:
            breakdown.append(NightlyPrice(night, base_price_for_date(room, night, high_season_months)))

    total = sum((n.price for n in breakdown), Decimal("0"))
    average = (total / len(breakdown)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    return PriceQuote(
        room_id=room.id,
        nights=len(breakdown),
        total_price=total,
        average_per_night=average,
        has_overrides=any(n.is_override for n in breakdown),
        breakdown=breakdown,
    )
