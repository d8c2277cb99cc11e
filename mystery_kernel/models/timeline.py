"""Timeline — scripted events bound to absolute game times."""

from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from mystery_kernel.models.time import GameTime


class EventType(str, Enum):
    PLACE_CHANGE = "PLACE_CHANGE"
    CHARACTER_MOVEMENT = "CHARACTER_MOVEMENT"
    CRIME = "CRIME"              # Happens before play starts; narrative recall only
    CUSTOM = "CUSTOM"


class TimelineEvent(BaseModel):
    """A scripted occurrence, applied once when the clock crosses its time."""

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    id: str
    time: GameTime
    event_type: EventType
    description: str
    character_id: Optional[str] = None
    place_id: Optional[str] = None

    @property
    def fired_flag(self) -> str:
        """Flag recorded in the world once this event has been applied."""
        return f"{self.id}_fired"


def _by_time(events: List[TimelineEvent]) -> List[TimelineEvent]:
    # sorted() is stable, so ties keep their input order
    return sorted(events, key=lambda e: e.time.minutes)


class Timeline(BaseModel):
    """
    The temporal frame of a case.

    base_time < start_time < end_time, all absolute. CRIME events sit in
    [base_time, start_time); every other event sits in [start_time, end_time].
    Events are kept in insertion order; queries return them sorted by time.
    """

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    base_time: GameTime
    start_time: GameTime
    end_time: GameTime
    events: Tuple[TimelineEvent, ...] = ()

    @property
    def duration_minutes(self) -> int:
        return self.end_time.minutes - self.start_time.minutes

    def get_past_events(self, current_time: GameTime) -> List[TimelineEvent]:
        """Events at or before current_time, ascending."""
        return _by_time([e for e in self.events if e.time.minutes <= current_time.minutes])

    def get_future_events(self, current_time: GameTime) -> List[TimelineEvent]:
        """Events strictly after current_time, ascending."""
        return _by_time([e for e in self.events if e.time.minutes > current_time.minutes])

    def get_events_at_time(self, time: GameTime) -> List[TimelineEvent]:
        return [e for e in self.events if e.time.minutes == time.minutes]

    def get_crime_events(self) -> List[TimelineEvent]:
        return _by_time([e for e in self.events if e.event_type == EventType.CRIME])

    def get_upcoming_events(
        self, current_time: GameTime, limit: int = 5
    ) -> List[TimelineEvent]:
        return self.get_future_events(current_time)[:limit]

    def events_between(self, start: GameTime, end: GameTime) -> List[TimelineEvent]:
        """Events with start < time <= end, ascending. Half-open so a window
        boundary never fires the same event twice."""
        return _by_time([
            e for e in self.events
            if start.minutes < e.time.minutes <= end.minutes
        ])
