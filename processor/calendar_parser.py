"""Parser for the SOCS calendar XML feed."""
import datetime
import logging
import re
from typing import List, Optional

from bs4 import BeautifulSoup
from lxml import etree

from processor.errors import (
    CalendarError,
    DateFormatError,
    DecodeError,
    TimeFormatError,
)
from processor.models import CalendarEvent, EventTime, RawCalendarEvent

logger = logging.getLogger(__name__)

EVENT_ELEMENT = 'CalendarEvent'
REQUIRED_FIELDS = {
    'event_id': 'EventID',
    'start_date': 'StartDate',
    'end_date': 'EndDate',
    'start_time': 'StartTime',
    'title': 'Title',
    'location': 'Location',
    'category': 'Category',
}
OPTIONAL_FIELDS = {
    'end_time': 'EndTime',
    'description': 'Description',
}

ALL_DAY = 'all day'
TIME_PATTERN = re.compile(r'^[0-9]{2}:[0-9]{2}$')
DEFAULT_DURATION = datetime.timedelta(hours=1)


def parse_calendar_xml(xml_data: str) -> List[CalendarEvent]:
    """
    Parse XML calendar data into structured events.

    Events are returned in document order. The first record that fails to
    normalize aborts the whole parse.

    Args:
        xml_data: Raw feed body

    Returns:
        List of CalendarEvent objects

    Raises:
        DecodeError: If the document is not well-formed or lacks the root structure
        DateFormatError: If a record carries an invalid date
        TimeFormatError: If a record carries an invalid time
    """
    raw_events = decode_calendar_xml(xml_data)
    logger.debug(f"Decoded {len(raw_events)} calendar records")
    return [parse_event(raw_event) for raw_event in raw_events]


def decode_calendar_xml(xml_data: str) -> List[RawCalendarEvent]:
    """Decode the feed document into raw, un-normalized records."""
    if not xml_data or not xml_data.strip():
        raise DecodeError("Failed to parse XML calendar data: empty document")

    _check_well_formed(xml_data)

    soup = BeautifulSoup(xml_data, 'xml')
    root = soup.find(True)
    if root is None:
        raise DecodeError("Failed to parse XML calendar data: no root element")
    if root.name.lower() == 'html':
        raise DecodeError(
            "Failed to parse XML calendar data: received an HTML document"
        )

    return [
        _decode_event_element(element, index)
        for index, element in enumerate(
            root.find_all(EVENT_ELEMENT, recursive=False)
        )
    ]


def _check_well_formed(xml_data: str) -> None:
    # The bs4 xml builder recovers from broken markup, so check strictly first.
    parser = etree.XMLParser(recover=False, resolve_entities=False, no_network=True)
    try:
        etree.fromstring(xml_data.encode('utf-8'), parser)
    except etree.XMLSyntaxError as e:
        raise DecodeError(f"Failed to parse XML calendar data: {e}") from e


def _decode_event_element(element, index: int) -> RawCalendarEvent:
    values = {}
    for attr, tag in REQUIRED_FIELDS.items():
        child = element.find(tag, recursive=False)
        if child is None:
            raise DecodeError(
                f"Failed to parse XML calendar data: {EVENT_ELEMENT} "
                f"#{index + 1} is missing required element <{tag}>"
            )
        values[attr] = child.get_text()

    for attr, tag in OPTIONAL_FIELDS.items():
        child = element.find(tag, recursive=False)
        values[attr] = child.get_text() if child is not None else None

    return RawCalendarEvent(**values)


def parse_event(event: RawCalendarEvent) -> CalendarEvent:
    """
    Normalize a raw record into a CalendarEvent.

    Missing end times default to all-day on the end date for all-day
    events, and to one hour after the start time (on the end date) for
    timed events. The hour is added as a time of day, so 23:30 becomes
    00:30 on the same end date.
    """
    try:
        start_date = _with_context(
            f"Failed to parse start date: {event.start_date}",
            parse_date, event.start_date
        )
        end_date = _with_context(
            f"Failed to parse end date: {event.end_date}",
            parse_date, event.end_date
        )
        start = _with_context(
            f"Failed to parse start time: {event.start_time}",
            parse_event_time, start_date, event.start_time
        )

        if event.end_time is not None and event.end_time.strip():
            end = _with_context(
                f"Failed to parse end time: {event.end_time}",
                parse_event_time, end_date, event.end_time
            )
        elif start.is_all_day:
            end = EventTime.all_day(end_date)
        else:
            end = EventTime.at(end_date, _add_wrapping(start.time, DEFAULT_DURATION))
    except CalendarError as e:
        raise e.add_context(f"Invalid event {event.event_id!r}")

    return CalendarEvent(
        event_id=event.event_id,
        title=event.title,
        description=event.description,
        location=event.location,
        categories=parse_categories(event.category),
        start=start,
        end=end
    )


def _with_context(context: str, func, *args):
    try:
        return func(*args)
    except CalendarError as e:
        raise e.add_context(context)


def _add_wrapping(start: datetime.time, delta: datetime.timedelta) -> datetime.time:
    shifted = datetime.datetime.combine(datetime.date.min, start) + delta
    return shifted.time()


def parse_date(date_str: str) -> datetime.date:
    """
    Parse date in format "10/12/2025" (DD/MM/YYYY).

    Raises:
        DateFormatError: If the value is not three numeric parts forming a
            valid calendar date
    """
    parts = date_str.strip().split('/')
    if len(parts) != 3:
        raise DateFormatError(f"Invalid date format: {date_str}")

    for name, part in zip(('day', 'month', 'year'), parts):
        if not (part.isascii() and part.isdigit()):
            raise DateFormatError(f"Invalid {name}: {part}")

    day, month, year = (int(part) for part in parts)
    try:
        return datetime.date(year, month, day)
    except (ValueError, OverflowError) as e:
        raise DateFormatError(f"Invalid date: {day}/{month}/{year}") from e


def parse_event_time(date: datetime.date, time_str: str) -> EventTime:
    """
    Parse an event time, either "All Day" or "HH:MM".

    An empty value is treated as all-day.

    Raises:
        TimeFormatError: If the value is neither all-day nor a 24-hour HH:MM time
    """
    time_str = time_str.strip()

    if not time_str or time_str.lower() == ALL_DAY:
        return EventTime.all_day(date)

    if not TIME_PATTERN.match(time_str):
        raise TimeFormatError(f"Failed to parse time: {time_str}")
    try:
        parsed = datetime.datetime.strptime(time_str, '%H:%M').time()
    except ValueError as e:
        raise TimeFormatError(f"Failed to parse time: {time_str}") from e

    return EventTime.at(date, parsed)


def parse_categories(category: Optional[str]) -> tuple:
    """Split a comma-separated category field, dropping blank entries."""
    if not category:
        return ()
    return tuple(
        part.strip() for part in category.split(',') if part.strip()
    )
