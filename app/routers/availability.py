from fastapi import APIRouter, Depends, Query, Request, status
from datetime import date, timedelta
from typing import List, Optional

from ..domain import CandidateStay
from ..schemas.availability import (
    AvailabilityCheckRequest, AvailabilityResponse, UnavailableDatesResponse,
    SearchResponse, RoomSearchItem, PriceQuoteOut, NightlyPriceOut,
    OverrideRangeUpdate, DateOverrideOut,
)
from ..services.availability_service import AvailabilityService, nights_between
from ..services.availability_store import SqlAlchemyAvailabilityStore
from ..services.exceptions import NotFoundError
from ..utils.dependencies import get_availability_service, get_store
from ..utils.rate_limiter import limiter, get_rate_limit

router = APIRouter(prefix="/api/availability", tags=["Availability"])


def to_override_out(record) -> DateOverrideOut:
    return DateOverrideOut(
        room_id=record.room_id,
        date=record.date,
        is_available=record.is_available,
        block_category=record.block_category,
        price_override=record.price_override,
        source=record.source.value,
    )


def to_quote_out(quote) -> Optional[PriceQuoteOut]:
    if quote is None:
        return None
    return PriceQuoteOut(
        nights=quote.nights,
        total_price=quote.total_price,
        average_per_night=quote.average_per_night,
        has_overrides=quote.has_overrides,
        breakdown=[NightlyPriceOut(date=n.date, price=n.price, is_override=n.is_override) for n in quote.breakdown],
    )


@router.post("/check", response_model=AvailabilityResponse)
@router.post("/check/", response_model=AvailabilityResponse, include_in_schema=False)
@limiter.limit(get_rate_limit("availability_check"))
async def check_availability(
    request: Request,
    payload: AvailabilityCheckRequest,
    service: AvailabilityService = Depends(get_availability_service),
):
    """Can this room take this stay? Lists every conflicting booking and blocked date."""
    nights_between(payload.check_in, payload.check_out)
    service.require_room(payload.room_id)
    verdict = service.check_room(CandidateStay(
        room_id=payload.room_id,
        check_in=payload.check_in,
        check_out=payload.check_out,
        guests=payload.guests,
    ))
    return AvailabilityResponse.from_verdict(payload.room_id, payload.check_in, payload.check_out, verdict)


@router.get("/rooms/{room_id}/unavailable-dates", response_model=UnavailableDatesResponse)
async def get_unavailable_dates(
    room_id: str,
    start: Optional[date] = Query(None, description="Defaults to today"),
    end: Optional[date] = Query(None, description="Exclusive; defaults to start + 365 days"),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Dates the booking calendar should grey out."""
    service.require_room(room_id)
    start = start or date.today()
    end = end or start + timedelta(days=365)
    return UnavailableDatesResponse(
        room_id=room_id,
        start=start,
        end=end,
        dates=service.unavailable_dates(room_id, start, end),
    )


@router.get("/search", response_model=SearchResponse)
@limiter.limit(get_rate_limit("search"))
async def search_rooms(
    request: Request,
    check_in: date,
    check_out: date,
    guests: int = Query(1, ge=1, le=20),
    service: AvailabilityService = Depends(get_availability_service),
):
    results = service.search(check_in, check_out, guests)
    items = [
        RoomSearchItem(
            room_id=r.room.id,
            name=r.room.name,
            slug=r.room.slug,
            capacity=r.room.capacity,
            base_price=r.room.base_price,
            is_available=r.verdict.is_available,
            conflicts=len(r.verdict.conflicts),
            quote=to_quote_out(r.quote),
        )
        for r in results
    ]
    return SearchResponse(
        check_in=check_in,
        check_out=check_out,
        guests=guests,
        available_count=sum(1 for i in items if i.is_available),
        rooms=items,
    )


@router.get("/rooms/{room_id}/overrides", response_model=List[DateOverrideOut])
async def list_overrides(
    room_id: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
    store: SqlAlchemyAvailabilityStore = Depends(get_store),
):
    if store.get_room(room_id) is None:
        raise NotFoundError(f"Room {room_id} not found")
    window = (start, end) if start and end else None
    return [to_override_out(o) for o in store.list_overrides(room_id, window)]


@router.put("/rooms/{room_id}/overrides", response_model=List[DateOverrideOut])
@limiter.limit(get_rate_limit("override_update"))
async def update_overrides(
    request: Request,
    room_id: str,
    payload: OverrideRangeUpdate,
    store: SqlAlchemyAvailabilityStore = Depends(get_store),
):
    """Manually block or reopen [start, end), optionally with a custom nightly price."""
    records = store.set_overrides_range(
        room_id,
        payload.start,
        payload.end,
        is_available=payload.is_available,
        price_override=payload.price_override,
        block_type=payload.block_type,
    )
    return [to_override_out(r) for r in records]


@router.delete("/rooms/{room_id}/overrides/{target_date}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_override(
    room_id: str,
    target_date: date,
    store: SqlAlchemyAvailabilityStore = Depends(get_store),
):
    if not store.delete_override(room_id, target_date):
        raise NotFoundError(f"No override for room {room_id} on {target_date}")
