"""Data models for calendar events."""
import datetime
from dataclasses import dataclass, field
from functools import total_ordering
from typing import Any, Dict, Optional, Tuple


@total_ordering
@dataclass(frozen=True, eq=True)
class EventTime:
    """
    Start or end of an event.

    An EventTime is either all-day on a date (``time`` is None) or a
    specific minute on that date. Values order by date first; on the same
    date an all-day value sorts before any specific time.
    """
    date: datetime.date
    time: Optional[datetime.time] = None

    @classmethod
    def all_day(cls, day: datetime.date) -> 'EventTime':
        return cls(date=day)

    @classmethod
    def at(cls, day: datetime.date, at_time: datetime.time) -> 'EventTime':
        return cls(date=day, time=at_time)

    @property
    def is_all_day(self) -> bool:
        return self.time is None

    def sort_key(self) -> Tuple[datetime.date, int, datetime.time]:
        """Total ordering key: (date, has-time flag, time of day)."""
        if self.time is None:
            return (self.date, 0, datetime.time.min)
        return (self.date, 1, self.time)

    def __lt__(self, other: 'EventTime') -> bool:
        if not isinstance(other, EventTime):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def __str__(self) -> str:
        day = self.date.strftime('%d %b %Y')
        if self.time is None:
            return f"{day} (All Day)"
        return f"{day} at {self.time.strftime('%H:%M')}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'date': self.date.isoformat(),
            'time': None if self.time is None else self.time.strftime('%H:%M'),
            'all_day': self.is_all_day
        }


@dataclass(frozen=True)
class RawCalendarEvent:
    """CalendarEvent element as decoded from the feed, before normalization."""
    event_id: str
    start_date: str
    end_date: str
    start_time: str
    end_time: Optional[str]
    title: str
    description: Optional[str]
    location: str
    category: str


@dataclass(frozen=True)
class CalendarEvent:
    """Normalized calendar event."""
    event_id: str
    title: str
    description: Optional[str]
    location: str
    start: EventTime
    end: EventTime
    categories: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            'event_id': self.event_id,
            'title': self.title,
            'description': self.description,
            'location': self.location,
            'categories': list(self.categories),
            'start': self.start.to_dict(),
            'end': self.end.to_dict()
        }
