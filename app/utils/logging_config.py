"""
Structured Logging Configuration

JSON lines in production, plain text in development. Every record carries
the current request ID or, inside a calendar sync, the config being synced.
"""

import logging
import json
import sys
from datetime import date, datetime, timezone
from typing import Optional, Any, Dict
from contextvars import ContextVar

# Context variables for request / sync tracking
request_id_var: ContextVar[str] = ContextVar('request_id', default='')
sync_config_var: ContextVar[str] = ContextVar('sync_config_id', default='')

# Attributes set by StructuredLogger.log_with_context
STRUCTURED_FIELDS = ("entity_type", "entity_id", "duration_ms", "extra_data")


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.
    One JSON object per line, ready for a log aggregator.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, var in (("request_id", request_id_var), ("sync_config_id", sync_config_var)):
            value = var.get()
            if value:
                log_data[key] = value

        log_data["source"] = f"{record.module}.{record.funcName}:{record.lineno}"

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for attr in STRUCTURED_FIELDS:
            if hasattr(record, attr):
                log_data["data" if attr == "extra_data" else attr] = getattr(record, attr)

        return json.dumps(log_data, ensure_ascii=False, default=str)


class StructuredLogger(logging.LoggerAdapter):
    """
    Logger adapter that adds structured context to log messages.
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = kwargs.get('extra', {})
        extra.update(self.extra)
        kwargs['extra'] = extra
        return msg, kwargs

    def log_with_context(
        self,
        level: int,
        msg: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        duration_ms: Optional[float] = None,
        **extra_data
    ):
        """Log with additional structured context."""
        extra = {}
        if entity_type:
            extra['entity_type'] = entity_type
        if entity_id:
            extra['entity_id'] = entity_id
        if duration_ms is not None:
            extra['duration_ms'] = duration_ms
        if extra_data:
            extra['extra_data'] = extra_data

        self.log(level, msg, extra=extra)

    def sync_started(self, config_id: str, room_id: str, platform: str):
        self.log_with_context(
            logging.INFO,
            f"🔄 Syncing {platform} calendar for room {room_id}",
            entity_type="ical_config",
            entity_id=config_id,
            room_id=room_id,
            platform=platform,
        )

    def sync_completed(
        self,
        config_id: str,
        events_processed: int,
        dates_blocked: int,
        duration_ms: Optional[float] = None,
    ):
        self.log_with_context(
            logging.INFO,
            f"✅ Calendar sync done: {events_processed} events, {dates_blocked} dates blocked",
            entity_type="ical_config",
            entity_id=config_id,
            duration_ms=duration_ms,
            events_processed=events_processed,
            dates_blocked=dates_blocked,
        )

    def sync_failed(self, config_id: str, error: str, duration_ms: Optional[float] = None):
        self.log_with_context(
            logging.ERROR,
            f"❌ Calendar sync failed: {error}",
            entity_type="ical_config",
            entity_id=config_id,
            duration_ms=duration_ms,
            error=error,
        )

    def booking_created(self, booking_id: str, room_id: str, total_price: float, duration_ms: float = None):
        """Log booking creation with structured data."""
        self.log_with_context(
            logging.INFO,
            f"Booking created for room {room_id}",
            entity_type="booking",
            entity_id=booking_id,
            duration_ms=duration_ms,
            room_id=room_id,
            total_price=total_price
        )

    def booking_status_changed(self, booking_id: str, old_status: str, new_status: str):
        """Log booking status change."""
        self.log_with_context(
            logging.INFO,
            f"Booking status changed: {old_status} → {new_status}",
            entity_type="booking",
            entity_id=booking_id,
            old_status=old_status,
            new_status=new_status
        )

    def availability_checked(
        self,
        room_id: str,
        check_in: date,
        check_out: date,
        is_available: bool,
        conflicts: int = 0,
        duration_ms: Optional[float] = None,
    ):
        self.log_with_context(
            logging.DEBUG,
            f"Availability {room_id} {check_in} → {check_out}: {'free' if is_available else 'taken'}",
            entity_type="room",
            entity_id=room_id,
            duration_ms=duration_ms,
            check_in=check_in,
            check_out=check_out,
            is_available=is_available,
            conflicts=conflicts,
        )

    def api_request(self, method: str, path: str, status_code: int, duration_ms: float):
        self.log_with_context(
            logging.INFO if status_code < 500 else logging.WARNING,
            f"{method} {path} → {status_code}",
            duration_ms=duration_ms,
            method=method,
            path=path,
            status_code=status_code
        )


def use_json_logs(settings) -> bool:
    """JSON lines when asked for, and always in production."""
    return settings.log_json or settings.is_production


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    include_uvicorn: bool = True
) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: Use JSON format (True for production)
        include_uvicorn: Also configure uvicorn loggers
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)

    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]

    app_logger = logging.getLogger("app")
    app_logger.setLevel(log_level)

    if include_uvicorn:
        for logger_name in ["uvicorn", "uvicorn.access", "uvicorn.error"]:
            uvicorn_logger = logging.getLogger(logger_name)
            uvicorn_logger.handlers = [handler]

    # Reduce noise from third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger for the given module."""
    base_logger = logging.getLogger(name)
    return StructuredLogger(base_logger, {})


def set_request_context(request_id: str):
    """Set context for the current request."""
    request_id_var.set(request_id)


def clear_request_context():
    request_id_var.set('')
