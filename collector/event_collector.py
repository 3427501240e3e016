"""Collects every event in a date range from the truncating SOCS feed."""
import logging
from datetime import date
from typing import Callable, Dict, List, Optional

from processor.calendar_parser import parse_calendar_xml
from processor.errors import CalendarError, MissingDataError, PaginationLimitError
from processor.models import CalendarEvent
from scraper.socs_client import SocsCalendarClient

logger = logging.getLogger(__name__)

DEFAULT_MAX_REQUESTS = 100


class EventCollector:
    """
    Fetches all events between two dates.

    The feed silently caps the number of events it returns per request and
    provides no cursor. After each batch the collector re-requests from the
    start date of the batch's last event (in feed order) until a batch is
    empty or reaches the end date. The boundary day is fetched again on
    purpose so that same-day events split across batches are not lost;
    the overlap is removed by deduplicating on event id.
    """

    def __init__(
        self,
        client: SocsCalendarClient,
        parser: Callable[[str], List[CalendarEvent]] = parse_calendar_xml,
        max_requests: Optional[int] = DEFAULT_MAX_REQUESTS
    ):
        """
        Initialize the collector.

        Args:
            client: Client used to fetch raw feed pages
            parser: Function turning a raw page into events
            max_requests: Upper bound on fetches per collection, None for no bound
        """
        self.client = client
        self.parser = parser
        self.max_requests = max_requests

    def fetch_all(
        self,
        base_url: str,
        start_date: date,
        end_date: date
    ) -> List[CalendarEvent]:
        """
        Fetch all events between start_date and end_date.

        Args:
            base_url: Feed endpoint including the ID/key query prefix
            start_date: Start of the range (inclusive)
            end_date: End of the range (inclusive)

        Returns:
            Events deduplicated by event_id and sorted by start time

        Raises:
            CalendarError: If any fetch or parse fails, with the date range
                that was being fetched added as context
        """
        all_events: List[CalendarEvent] = []
        current_start = start_date
        requests_made = 0

        while True:
            if self.max_requests is not None and requests_made >= self.max_requests:
                raise PaginationLimitError(
                    f"Stopped after {requests_made} requests without reaching "
                    f"{end_date.isoformat()} (next start {current_start.isoformat()})"
                )

            requests_made += 1
            try:
                raw = self.client.fetch_calendar(base_url, current_start, end_date)
                events = self.parser(raw)
            except CalendarError as e:
                raise e.add_context(
                    f"Failed to fetch events for {current_start.isoformat()} "
                    f"to {end_date.isoformat()}"
                )

            if not events:
                logger.info(
                    f"No events returned from {current_start.isoformat()}, "
                    f"collection complete"
                )
                break

            last_event_date = last_start_date(events)
            all_events.extend(events)
            logger.info(
                f"Fetched {len(events)} events from {current_start.isoformat()}, "
                f"last event on {last_event_date.isoformat()}"
            )

            # Stop if we've reached the end date
            if last_event_date >= end_date:
                break

            if last_event_date <= current_start:
                logger.warning(
                    f"Batch from {current_start.isoformat()} did not advance; "
                    f"the feed may be truncating a single day"
                )

            current_start = last_event_date

        events = deduplicate_and_sort(all_events)
        logger.info(
            f"Collected {len(events)} unique events from {len(all_events)} "
            f"fetched across {requests_made} requests"
        )
        return events


def last_start_date(events: List[CalendarEvent]) -> date:
    """Start date of the final event in feed order."""
    if not events:
        raise MissingDataError("Failed to get last date: batch is empty")
    return events[-1].start.date


def deduplicate_and_sort(events: List[CalendarEvent]) -> List[CalendarEvent]:
    """
    Drop repeated event ids and order by start time.

    The first occurrence of each id is kept.
    """
    unique: Dict[str, CalendarEvent] = {}
    for event in events:
        unique.setdefault(event.event_id, event)
    return sorted(unique.values(), key=lambda event: event.start.sort_key())


def fetch_events_recursive(
    base_url: str,
    start_date: date,
    end_date: date,
    timeout: int = 30,
    max_requests: Optional[int] = DEFAULT_MAX_REQUESTS
) -> List[CalendarEvent]:
    """
    Fetch all calendar events between the given dates.

    Args:
        base_url: Feed endpoint including the ID/key query prefix
        start_date: Start of the range (inclusive)
        end_date: End of the range (inclusive)
        timeout: HTTP request timeout in seconds
        max_requests: Upper bound on fetches, None for no bound

    Returns:
        Events deduplicated by event_id and sorted by start time
    """
    collector = EventCollector(
        client=SocsCalendarClient(timeout=timeout),
        max_requests=max_requests
    )
    return collector.fetch_all(base_url, start_date, end_date)
