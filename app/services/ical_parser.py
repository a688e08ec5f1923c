"""
iCal Feed Parser

Turns an external calendar export (Airbnb, Booking.com, Google, ...) into
``CalendarEvent`` intervals. Pure function, no I/O.

Rules:
- The feed must contain a VCALENDAR container, otherwise ``FormatError``
- A broken VEVENT is skipped, the rest of the feed is still returned
- Cancelled / tentative events are dropped (they never block a date)
- Events whose start is not before their end are dropped
- Date-times are reduced to their calendar date; DTEND stays exclusive
"""

import logging
import uuid
from datetime import date, datetime
from typing import List, Optional, Tuple

from icalendar import Calendar, Event

from ..domain import CalendarEvent
from .exceptions import FormatError

logger = logging.getLogger(__name__)

CONTAINER_MARKER = "BEGIN:VCALENDAR"
DEFAULT_LABEL = "External Booking"
IGNORED_STATUSES = {"CANCELLED", "TENTATIVE"}


def _to_date(value) -> date:
    """Normalize an icalendar DATE or DATE-TIME value to a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raise ValueError(f"not a calendar date: {value!r}")


def _event_from_component(component) -> Optional[CalendarEvent]:
    """
    Build a CalendarEvent from a VEVENT component.

    Returns None for events that are valid but must not block anything.
    Raises ValueError for malformed events.
    """
    status = str(component.get("STATUS", "")).strip().upper()
    if status in IGNORED_STATUSES:
        return None

    dtstart = component.get("DTSTART")
    if dtstart is None:
        raise ValueError("missing DTSTART")
    start = _to_date(getattr(dtstart, "dt", None))

    dtend = component.get("DTEND")
    if dtend is not None:
        end = _to_date(getattr(dtend, "dt", None))
    elif component.get("DURATION") is not None:
        duration = component.get("DURATION").dt
        end = _to_date(getattr(dtstart, "dt") + duration)
    else:
        raise ValueError("missing DTEND and DURATION")

    if start >= end:
        return None

    uid = str(component.get("UID", "")).strip() or f"generated-{uuid.uuid4()}"
    label = str(component.get("SUMMARY", "")).strip() or DEFAULT_LABEL
    description = component.get("DESCRIPTION")

    return CalendarEvent(
        uid=uid,
        label=label,
        start_date=start,
        end_date=end,
        description=str(description) if description else None,
    )


def _split_event_blocks(raw_feed: str) -> List[str]:
    """
    Cut the raw text into BEGIN:VEVENT ... END:VEVENT chunks.

    An event left open ends where the next one begins (or at END:VCALENDAR),
    so a single broken event cannot swallow its neighbours.
    """
    blocks: List[List[str]] = []
    current: Optional[List[str]] = None

    for line in raw_feed.splitlines():
        marker = line.strip().upper()
        if marker == "BEGIN:VEVENT":
            if current is not None:
                blocks.append(current)
            current = [line]
        elif current is None:
            continue
        elif marker == "END:VCALENDAR":
            blocks.append(current)
            current = None
        else:
            current.append(line)
            if marker == "END:VEVENT":
                blocks.append(current)
                current = None

    if current is not None:
        blocks.append(current)

    return ["\r\n".join(block) + "\r\n" for block in blocks]


def _components_event_by_event(raw_feed: str) -> Tuple[list, int]:
    """Parse each VEVENT on its own; returns (components, unparseable count)."""
    components = []
    broken = 0

    for block in _split_event_blocks(raw_feed):
        try:
            components.append(Event.from_ical(block))
        except ValueError as e:
            broken += 1
            logger.warning(f"Skipping unparseable event block: {e}")

    return components, broken


def parse_ical_feed(raw_feed: str) -> List[CalendarEvent]:
    """
    Parse raw iCal text into booking intervals.

    When the calendar as a whole does not parse (an unterminated VEVENT is
    the usual culprit) the events are parsed one by one instead.

    Raises:
        FormatError: when the text is not a calendar at all
    """
    if not raw_feed or CONTAINER_MARKER not in raw_feed.upper():
        raise FormatError("Invalid iCal format - missing VCALENDAR")

    skipped = 0
    try:
        components = Calendar.from_ical(raw_feed).walk("VEVENT")
    except ValueError as e:
        components, skipped = _components_event_by_event(raw_feed)
        if not components and not skipped:
            raise FormatError(f"iCal parsing failed: {e}") from e
        logger.warning(f"⚠️ Calendar did not parse as a whole ({e}), recovered {len(components)} events")

    events: List[CalendarEvent] = []

    for component in components:
        try:
            event = _event_from_component(component)
        except (ValueError, TypeError, AttributeError) as e:
            skipped += 1
            logger.warning(f"Skipping malformed event {component.get('UID', '?')}: {e}")
            continue

        if event is not None:
            events.append(event)

    logger.debug(f"Parsed {len(events)} events ({skipped} malformed skipped)")
    return events
