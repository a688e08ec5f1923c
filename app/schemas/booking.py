from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import date
from decimal import Decimal
import re


class BookingCreate(BaseModel):
    room_id: str = Field(..., min_length=1, max_length=36)
    check_in: date
    check_out: date
    guest_name: str = Field(..., min_length=1, max_length=200)
    guest_email: str = Field(..., min_length=3, max_length=255)
    guest_phone: Optional[str] = Field(None, max_length=30)
    guest_country: Optional[str] = Field(None, max_length=80)
    guests_count: int = Field(1, ge=1, le=20)
    special_requests: Optional[str] = Field(None, max_length=2000)

    @field_validator('guest_name', 'special_requests', mode='before')
    @classmethod
    def sanitize_text_fields(cls, v):
        """Strip script tags and inline event handlers"""
        if v is None:
            return v
        if isinstance(v, str):
            v = re.sub(r'<script[^>]*>.*?</script>', '', v, flags=re.IGNORECASE | re.DOTALL)
            v = re.sub(r'on\w+\s*=', '', v, flags=re.IGNORECASE)
        return v

    @field_validator('guest_email')
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip().lower()
        if not re.match(r'^[^@\s]+@[^@\s]+\.[^@\s]+$', v):
            raise ValueError('invalid email address')
        return v


class BookingResponse(BaseModel):
    id: str
    confirmation_number: Optional[str] = None
    room_id: str
    room_name: Optional[str] = None
    check_in: date
    check_out: date
    status: str
    guest_name: Optional[str] = None
    total_nights: Optional[int] = None
    total_price: Optional[Decimal] = None

    class Config:
        from_attributes = True
