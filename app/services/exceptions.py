"""
Availability Errors

Exception hierarchy for the availability engine and calendar sync.
Routers translate these into HTTP responses (see ``app.main``); the sync
service records them on the failed config's ``SyncResult``.
"""

from typing import Optional

from ..domain import AvailabilityVerdict


class AvailabilityError(Exception):
    """Base class for all availability/sync errors"""
    code = "availability_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class FormatError(AvailabilityError):
    """Feed text is not a calendar (container marker missing or unreadable)"""
    code = "format_error"


class NetworkError(AvailabilityError):
    """Feed download failed"""
    code = "network_error"


class FeedTimeoutError(NetworkError):
    code = "timeout"


class HttpStatusError(NetworkError):
    code = "http_error"

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class UnauthorizedSourceError(AvailabilityError):
    """Feed host is not on the allow-list"""
    code = "unauthorized_source"


class InvalidRangeError(AvailabilityError):
    """check_out is not after check_in"""
    code = "invalid_range"


class CapacityError(AvailabilityError):
    code = "capacity_exceeded"


class NotFoundError(AvailabilityError):
    code = "not_found"


class StoreError(AvailabilityError):
    """Persistence failure, surfaced to the caller without retry"""
    code = "store_error"


class BookingConflictError(AvailabilityError):
    """The requested stay collides with a booking or a blocked date"""
    code = "booking_conflict"

    def __init__(self, message: str, verdict: Optional[AvailabilityVerdict] = None):
        super().__init__(message)
        self.verdict = verdict
