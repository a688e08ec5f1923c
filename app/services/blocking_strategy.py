"""
Night Blocking Strategy

Decides which dates an external calendar event closes, and why.

The classification is a keyword heuristic over the event label, because OTA
feeds carry no structured metadata. It is isolated here as a plain callable
so the sync service can be handed a different classifier.

Priority (case-insensitive substring match on the label):
1. OTA name + "not available"  -> complete block, prep_before (buffer day)
2. OTA name                    -> night based, full (guest reservation)
3. closure / admin keyword     -> complete block, full
4. anything else               -> night based, full
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, Dict, Iterable, List

from ..domain import BlockCategory, BlockPolicy, CalendarEvent, DateOverride, OverrideSource

OTA_NAMES = ("airbnb", "booking.com", "expedia", "vrbo", "homeaway", "agoda")
NOT_AVAILABLE = "not available"
ADMIN_KEYWORDS = ("closed", NOT_AVAILABLE, "unavailable", "blocked", "maintenance", "owner")


@dataclass(frozen=True)
class Classification:
    policy: BlockPolicy
    block_category: BlockCategory


Classifier = Callable[[CalendarEvent], Classification]


def classify_event(event: CalendarEvent) -> Classification:
    """Classify one event by its label."""
    label = (event.label or "").lower()
    mentions_ota = any(name in label for name in OTA_NAMES)

    if mentions_ota and NOT_AVAILABLE in label:
        return Classification(BlockPolicy.COMPLETE_BLOCK, BlockCategory.PREP_BEFORE)
    if mentions_ota:
        return Classification(BlockPolicy.NIGHT_BASED, BlockCategory.FULL)
    if any(keyword in label for keyword in ADMIN_KEYWORDS):
        return Classification(BlockPolicy.COMPLETE_BLOCK, BlockCategory.FULL)
    return Classification(BlockPolicy.NIGHT_BASED, BlockCategory.FULL)


def date_range(start: date, end: date) -> List[date]:
    """Dates from start (inclusive) to end (exclusive)."""
    return [start + timedelta(days=i) for i in range((end - start).days)]


def dates_to_block(event: CalendarEvent, policy: BlockPolicy) -> List[date]:
    """
    Dates an event closes under the given policy.

    NIGHT_BASED blocks the nights actually slept: check-in up to the night
    before checkout. The checkout date stays open so another guest can arrive
    that afternoon.

    COMPLETE_BLOCK blocks every date of the interval with no turnover
    carve-out. The interval end is exclusive, so both policies yield
    [start, end); they differ in the category the classifier pairs them with
    and in how the resolver treats those dates.
    """
    if event.start_date >= event.end_date:
        return []

    if policy == BlockPolicy.NIGHT_BASED:
        # last night slept is the day before checkout
        return date_range(event.start_date, event.end_date)

    if policy == BlockPolicy.COMPLETE_BLOCK:
        return date_range(event.start_date, event.end_date)

    raise ValueError(f"unknown block policy: {policy}")


def build_override_records(
    events: Iterable[CalendarEvent],
    room_id: str,
    classifier: Classifier = classify_event,
) -> List[DateOverride]:
    """
    Convert parsed events into blocked-date records for one room.

    When two events claim the same date, the first classification wins.
    """
    records: Dict[date, DateOverride] = {}

    for event in events:
        classification = classifier(event)
        for day in dates_to_block(event, classification.policy):
            if day in records:
                continue
            records[day] = DateOverride(
                room_id=room_id,
                date=day,
                is_available=False,
                block_category=classification.block_category,
                source=OverrideSource.ICAL,
            )

    return list(records.values())
