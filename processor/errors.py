"""Error types raised while fetching and parsing the calendar feed."""
from typing import List, Optional


class CalendarError(Exception):
    """
    Base class for all calendar feed errors.

    Errors carry a chain of context lines that is extended as the error
    propagates outwards, so the final message reads from the outermost
    operation down to the root cause.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
        self.context: List[str] = []

    def add_context(self, context: str) -> 'CalendarError':
        """
        Push an outer context line onto the error.

        Args:
            context: Description of the operation that was running

        Returns:
            The same error, for use in a raise statement
        """
        self.context.insert(0, context)
        return self

    def __str__(self) -> str:
        return ': '.join(self.context + [self.message])


class TransportError(CalendarError):
    """The HTTP request could not be completed."""


class HttpStatusError(CalendarError):
    """The feed answered with a non-2xx status."""

    def __init__(self, status_code: int, reason: Optional[str] = None):
        message = f"HTTP request failed with status: {status_code}"
        if reason:
            message = f"{message} {reason}"
        super().__init__(message)
        self.status_code = status_code


class DecodeError(CalendarError):
    """The feed document is malformed or lacks the expected structure."""


class DateFormatError(CalendarError):
    """A date field is not a valid DD/MM/YYYY date."""


class TimeFormatError(CalendarError):
    """A time field is neither 'All Day' nor a valid HH:MM time."""


class MissingDataError(CalendarError):
    """Data the caller relied on being present was missing."""


class PaginationLimitError(CalendarError):
    """The feed kept returning data after the request limit was reached."""
