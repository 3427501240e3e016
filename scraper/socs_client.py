"""HTTP client for the SOCS calendar XML feed."""
import logging
from datetime import date
from urllib.parse import quote

import requests

from processor.errors import HttpStatusError, TransportError

logger = logging.getLogger(__name__)

MONTH_ABBREVIATIONS = (
    'Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun',
    'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec'
)

# Feed policy: sport and co-curricular fixtures excluded, internal and
# unpublished calendar entries included.
FEED_FLAGS = 'Sport=0&CoCurricular=0&IncludeInternal=1&IncludeUnpublished=1'


def format_date_for_api(day: date) -> str:
    """
    Format a date for the SOCS API in "DD MMM YY" format.

    Args:
        day: Date to format

    Returns:
        Formatted date, e.g. "10 Dec 25"
    """
    return f"{day.day:02d} {MONTH_ABBREVIATIONS[day.month - 1]} {day.year % 100:02d}"


def build_calendar_url(base_url: str, start_date: date, end_date: date) -> str:
    """
    Build the feed URL for a date range.

    Args:
        base_url: Feed endpoint that already carries the ID/key query prefix
        start_date: First day of the range
        end_date: Last day of the range

    Returns:
        Full request URL
    """
    start_str = quote(format_date_for_api(start_date), safe='')
    end_str = quote(format_date_for_api(end_date), safe='')
    return f"{base_url}&startdate={start_str}&enddate={end_str}&{FEED_FLAGS}"


class SocsCalendarClient:
    """Client that fetches raw calendar XML for a date range."""

    def __init__(self, timeout: int = 30):
        """
        Initialize the calendar client.

        Args:
            timeout: HTTP request timeout in seconds (default: 30)
        """
        self.timeout = timeout

    def fetch_calendar(self, base_url: str, start_date: date, end_date: date) -> str:
        """
        Fetch calendar XML for a date range.

        Args:
            base_url: Feed endpoint that already carries the ID/key query prefix
            start_date: First day of the range
            end_date: Last day of the range

        Returns:
            Response body as text

        Raises:
            TransportError: If the request or body read fails
            HttpStatusError: If the feed answers with a non-2xx status
        """
        url = build_calendar_url(base_url, start_date, end_date)
        logger.info(f"Fetching calendar from: {url}")

        try:
            with requests.get(url, timeout=self.timeout, stream=True) as response:
                status = response.status_code
                if not 200 <= status < 300:
                    raise HttpStatusError(status, response.reason)

                try:
                    body = response.text
                except requests.RequestException as e:
                    raise TransportError(
                        f"Failed to read response body: {e}"
                    ) from e
        except requests.RequestException as e:
            raise TransportError(f"Failed to fetch calendar data: {e}") from e

        logger.debug(f"Received status {status} with {len(body)} characters")
        return body
