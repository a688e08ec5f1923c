from fastapi import APIRouter, Depends, Request, status

from ..schemas.booking import BookingCreate, BookingResponse
from ..services.booking_service import BookingRequest, BookingService
from ..utils.dependencies import get_booking_service
from ..utils.rate_limiter import limiter, get_rate_limit

router = APIRouter(prefix="/api/bookings", tags=["Bookings"])


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED, include_in_schema=False)
@limiter.limit(get_rate_limit("booking_create"))
async def create_booking(
    request: Request,
    payload: BookingCreate,
    service: BookingService = Depends(get_booking_service),
):
    """
    Book a room.

    409 with the conflict list when the dates were taken, including by a
    booking committed between the guest's availability check and this call.
    """
    confirmation = service.create_booking(BookingRequest(**payload.model_dump()))
    booking = confirmation.booking
    return BookingResponse(
        id=booking.id,
        confirmation_number=confirmation.confirmation_number,
        room_id=booking.room_id,
        room_name=confirmation.room_name,
        check_in=booking.check_in,
        check_out=booking.check_out,
        status=booking.status.value,
        guest_name=booking.guest_name,
        total_nights=confirmation.quote.nights,
        total_price=confirmation.quote.total_price,
    )


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
@limiter.limit(get_rate_limit("booking_cancel"))
async def cancel_booking(
    request: Request,
    booking_id: str,
    service: BookingService = Depends(get_booking_service),
):
    booking = service.cancel_booking(booking_id)
    return BookingResponse(
        id=booking.id,
        room_id=booking.room_id,
        check_in=booking.check_in,
        check_out=booking.check_out,
        status=booking.status.value,
        guest_name=booking.guest_name,
    )
