from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime


class ICalConfigCreate(BaseModel):
    room_id: str = Field(..., min_length=1, max_length=36)
    ical_url: str = Field(..., min_length=10, max_length=2000)
    platform: str = Field("other", max_length=50)
    sync_interval_hours: Optional[int] = Field(None, ge=1, le=168)
    is_active: bool = True

    @field_validator('ical_url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        v = v.strip()
        if not v.lower().startswith(("http://", "https://")):
            raise ValueError('ical_url must be an http(s) URL')
        return v

    @field_validator('platform')
    @classmethod
    def normalize_platform(cls, v: str) -> str:
        return v.strip().lower() or "other"


class ICalConfigResponse(BaseModel):
    id: str
    room_id: str
    room_name: Optional[str] = None
    platform: str
    ical_url: str
    is_active: bool
    sync_interval_hours: Optional[int] = None
    last_sync_at: Optional[datetime] = None
    last_sync_status: Optional[str] = None

    class Config:
        from_attributes = True


class SyncResultResponse(BaseModel):
    config_id: str
    room_id: str
    room_name: Optional[str] = None
    platform: str
    success: bool
    events_processed: int = 0
    dates_blocked: int = 0
    error: Optional[str] = None
    duration_ms: Optional[int] = None

    class Config:
        from_attributes = True


class SyncBatchResponse(BaseModel):
    total: int
    succeeded: int
    failed: int
    results: List[SyncResultResponse]


class ICalStatusItem(ICalConfigResponse):
    events_last_sync: int = 0
    dates_last_sync: int = 0
    last_error_message: Optional[str] = None
    is_overdue: bool = False
