"""
Itinerary editor state.

Day plans are immutable; every command returns a new tuple of days.
Clock values are minutes from midnight (360 = 6:00 AM). Start and end
times of activities are never stored: they are recomputed from durations
and transit times each time they are read.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union
import logging
import uuid

logger = logging.getLogger(__name__)

DEFAULT_TRANSIT_MINS = 15
MIN_DURATION_MINS = 15
DEFAULT_ACTIVITY_MINS = 60
DEFAULT_DAY_START = 360  # 6:00 AM
LATEST_DAY_START = 1380  # 11:00 PM


class EditorError(ValueError):
    """A command's precondition does not hold."""


@dataclass(frozen=True)
class Activity:
    id: str
    name: str
    category: str = "attraction"
    duration_mins: int = DEFAULT_ACTIVITY_MINS
    location_id: Optional[str] = None
    cost: Optional[int] = None
    rating: Optional[float] = None
    transit_mins: Optional[int] = None  # to the next activity
    is_local_gem: bool = False


@dataclass(frozen=True)
class DayPlan:
    day: int
    start_time: int = DEFAULT_DAY_START
    items: Tuple[Activity, ...] = ()
    title: str = ""

    def find(self, item_id: str) -> int:
        for idx, item in enumerate(self.items):
            if item.id == item_id:
                return idx
        raise EditorError(f"Item {item_id} not found on day {self.day}")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Reorder:
    day: int
    item_ids: Tuple[str, ...]


@dataclass(frozen=True)
class Insert:
    day: int
    position: int
    item: Activity


@dataclass(frozen=True)
class Remove:
    day: int
    item_id: str


@dataclass(frozen=True)
class Replace:
    day: int
    item_id: str
    item: Activity


@dataclass(frozen=True)
class AdjustDuration:
    day: int
    item_id: str
    delta: int


@dataclass(frozen=True)
class AdjustStartTime:
    day: int
    delta: int


Command = Union[Reorder, Insert, Remove, Replace, AdjustDuration, AdjustStartTime]


def _fresh_id() -> str:
    return uuid.uuid4().hex


def _day_index(days: Sequence[DayPlan], day: int) -> int:
    for idx, plan in enumerate(days):
        if plan.day == day:
            return idx
    raise EditorError(f"Day {day} does not exist")


def _apply_to_day(plan: DayPlan, command: Command) -> DayPlan:
    if isinstance(command, Reorder):
        by_id = {item.id: item for item in plan.items}
        ids = tuple(command.item_ids)
        if len(ids) != len(by_id) or set(ids) != set(by_id):
            raise EditorError(f"Reorder must list every item of day {plan.day} exactly once")
        return replace(plan, items=tuple(by_id[i] for i in ids))

    if isinstance(command, Insert):
        if not 0 <= command.position <= len(plan.items):
            raise EditorError(
                f"Position {command.position} out of range 0..{len(plan.items)} on day {plan.day}"
            )
        items = list(plan.items)
        items.insert(command.position, replace(command.item, id=_fresh_id()))
        return replace(plan, items=tuple(items))

    if isinstance(command, Remove):
        plan.find(command.item_id)
        return replace(plan, items=tuple(i for i in plan.items if i.id != command.item_id))

    if isinstance(command, Replace):
        idx = plan.find(command.item_id)
        items = list(plan.items)
        items[idx] = replace(command.item, id=_fresh_id())
        return replace(plan, items=tuple(items))

    if isinstance(command, AdjustDuration):
        idx = plan.find(command.item_id)
        items = list(plan.items)
        current = items[idx]
        items[idx] = replace(current, duration_mins=max(MIN_DURATION_MINS, current.duration_mins + command.delta))
        return replace(plan, items=tuple(items))

    if isinstance(command, AdjustStartTime):
        start = max(0, min(LATEST_DAY_START, plan.start_time + command.delta))
        return replace(plan, start_time=start)

    raise EditorError(f"Unknown command: {command!r}")


def apply_command(days: Sequence[DayPlan], command: Command) -> Tuple[DayPlan, ...]:
    """Apply one command and return the new day sequence."""
    idx = _day_index(days, command.day)
    updated = list(days)
    updated[idx] = _apply_to_day(days[idx], command)
    return tuple(updated)


# ---------------------------------------------------------------------------
# Derived values
# ---------------------------------------------------------------------------

def transit_after(item: Activity) -> int:
    return DEFAULT_TRANSIT_MINS if item.transit_mins is None else item.transit_mins


def activity_times(plan: DayPlan) -> List[Tuple[int, int]]:
    """(start, end) of each activity in minutes from midnight."""
    times = []
    current = plan.start_time
    for item in plan.items:
        times.append((current, current + item.duration_mins))
        current += item.duration_mins + transit_after(item)
    return times


def total_duration(plan: DayPlan) -> int:
    """Sum of durations plus transit between activities (none after the last)."""
    total = 0
    for idx, item in enumerate(plan.items):
        total += item.duration_mins
        if idx < len(plan.items) - 1:
            total += transit_after(item)
    return total


def day_end_time(plan: DayPlan) -> int:
    return plan.start_time + total_duration(plan)


def format_time(minutes: int) -> str:
    """390 -> '6:30 AM'"""
    hours = (minutes // 60) % 24
    mins = minutes % 60
    period = "PM" if hours >= 12 else "AM"
    display = 12 if hours == 0 else hours - 12 if hours > 12 else hours
    return f"{display}:{mins:02d} {period}"


def format_duration(minutes: int) -> str:
    """90 -> '1h 30m'"""
    if minutes < 60:
        return f"{minutes}m"
    hours, mins = divmod(minutes, 60)
    return f"{hours}h {mins}m" if mins else f"{hours}h"


def parse_clock(value: Optional[str]) -> Optional[int]:
    """'06:30' -> 390; None for missing or malformed values."""
    if not value:
        return None
    try:
        hours, mins = value.split(":", 1)
        total = int(hours) * 60 + int(mins)
    except ValueError:
        return None
    return total if 0 <= total < 24 * 60 else None


def order_payload(days: Iterable[DayPlan]) -> List[Dict[str, Any]]:
    """
    Dense, zero-based order per day, in the shape accepted by the
    item reorder endpoint.
    """
    return [
        {"id": item.id, "dayNumber": plan.day, "orderIndex": idx}
        for plan in days
        for idx, item in enumerate(plan.items)
    ]


def describe_day(plan: DayPlan) -> Dict[str, Any]:
    """Day plan plus all derived values, ready for JSON."""
    activities = []
    for item, (start, end) in zip(plan.items, activity_times(plan)):
        activities.append({
            "id": item.id,
            "locationId": item.location_id,
            "name": item.name,
            "category": item.category,
            "durationMins": item.duration_mins,
            "transitMins": transit_after(item),
            "rating": item.rating,
            "cost": item.cost,
            "isLocalGem": item.is_local_gem,
            "start": start,
            "end": end,
            "startLabel": format_time(start),
            "endLabel": format_time(end),
        })
    return {
        "day": plan.day,
        "title": plan.title or f"Day {plan.day}",
        "startTime": plan.start_time,
        "startLabel": format_time(plan.start_time),
        "endTime": day_end_time(plan),
        "endLabel": format_time(day_end_time(plan)),
        "totalDurationMins": total_duration(plan),
        "totalDurationLabel": format_duration(total_duration(plan)),
        "activities": activities,
    }


# ---------------------------------------------------------------------------
# Persisted itinerary -> day plans
# ---------------------------------------------------------------------------

def _item_duration(item: Any) -> int:
    if item.duration_mins:
        return item.duration_mins
    start, end = parse_clock(item.start_time), parse_clock(item.end_time)
    if start is not None and end is not None and end > start:
        return end - start
    location = item.location
    if location is not None and location.avg_duration_mins:
        return location.avg_duration_mins
    return DEFAULT_ACTIVITY_MINS


def build_day_plans(itinerary: Any) -> Tuple[DayPlan, ...]:
    """Group an itinerary's items into day plans (days without items included)."""
    by_day: Dict[int, List[Any]] = {}
    for item in itinerary.items:
        by_day.setdefault(item.day_number, []).append(item)

    last_day = max([itinerary.duration_days or 0] + list(by_day))
    plans = []
    for day in range(1, last_day + 1):
        items = sorted(by_day.get(day, []), key=lambda i: i.order_index)
        start = parse_clock(items[0].start_time) if items else None
        activities = tuple(
            Activity(
                id=item.id,
                name=item.location.name if item.location else "",
                category=item.location.category if item.location else "attraction",
                duration_mins=_item_duration(item),
                location_id=item.location_id,
                rating=item.location.rating if item.location else None,
                transit_mins=item.transport_duration,
                is_local_gem=bool(item.location and item.location.is_hidden_gem),
            )
            for item in items
        )
        plans.append(DayPlan(
            day=day,
            start_time=DEFAULT_DAY_START if start is None else start,
            items=activities,
        ))
    return tuple(plans)


# ---------------------------------------------------------------------------
# State container
# ---------------------------------------------------------------------------

@dataclass
class ItineraryEditor:
    """
    Single owner of one itinerary's editing state.

    Edits stay local until the caller persists them (see order_payload);
    there is no conflict detection, the last save wins.
    """
    days: Tuple[DayPlan, ...] = ()
    dirty: bool = False
    history: List[Command] = field(default_factory=list)

    @classmethod
    def from_itinerary(cls, itinerary: Any) -> "ItineraryEditor":
        return cls(days=build_day_plans(itinerary))

    def dispatch(self, command: Command) -> Tuple[DayPlan, ...]:
        self.days = apply_command(self.days, command)
        self.history.append(command)
        self.dirty = True
        logger.debug(f"Applied {type(command).__name__} to day {command.day}")
        return self.days

    def day(self, day: int) -> DayPlan:
        return self.days[_day_index(self.days, day)]

    def reorder_payload(self) -> List[Dict[str, Any]]:
        return order_payload(self.days)

    def mark_saved(self) -> None:
        self.dirty = False
        self.history.clear()
