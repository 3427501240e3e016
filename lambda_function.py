"""AWS Lambda handler for SOCS Calendar Sync."""
import json
import logging
import os
import time
from datetime import date, timedelta
from typing import Dict, Any, Optional

from collector.event_collector import EventCollector
from processor.errors import CalendarError
from scraper.socs_client import SocsCalendarClient


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


class ConfigurationError(ValueError):
    """Invalid or missing handler configuration."""


def _parse_iso_date(value: Optional[str], name: str) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise ConfigurationError(f"Invalid {name}: {value!r}") from e


def resolve_date_range(event: Dict[str, Any], days_ahead: int) -> tuple[date, date]:
    """
    Work out the date range to collect.

    The invocation payload wins over the START_DATE/END_DATE environment
    variables; without either the range is today plus days_ahead.

    Args:
        event: Invocation payload
        days_ahead: Window length used when no end date is given

    Returns:
        Tuple of (start_date, end_date)

    Raises:
        ConfigurationError: If a date is malformed or the range is reversed
    """
    event = event or {}
    start_date = _parse_iso_date(
        event.get('start_date') or os.environ.get('START_DATE'), 'start_date'
    ) or date.today()
    end_date = _parse_iso_date(
        event.get('end_date') or os.environ.get('END_DATE'), 'end_date'
    ) or start_date + timedelta(days=days_ahead)

    if end_date < start_date:
        raise ConfigurationError(
            f"end_date {end_date.isoformat()} is before start_date "
            f"{start_date.isoformat()}"
        )
    return start_date, end_date


def _error_response(status_code: int, message: str, error: Exception,
                    start_time: float) -> Dict[str, Any]:
    duration = time.time() - start_time
    return {
        'statusCode': status_code,
        'body': json.dumps({
            'message': message,
            'error': str(error),
            'error_type': type(error).__name__,
            'duration_seconds': round(duration, 2)
        })
    }


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler function for SOCS Calendar Sync.

    Args:
        event: Invocation payload, optionally carrying start_date/end_date
        context: Lambda context object

    Returns:
        Response dict with statusCode, summary statistics and events
    """
    base_url = os.environ.get('SOCS_BASE_URL', '')
    log_level = os.environ.get('LOG_LEVEL', 'INFO')

    setup_logging(log_level)
    logger = logging.getLogger(__name__)
    start_time = time.time()

    try:
        days_ahead = int(os.environ.get('DAYS_AHEAD', '90'))
        timeout_seconds = int(os.environ.get('TIMEOUT_SECONDS', '30'))
        max_requests = int(os.environ.get('MAX_REQUESTS', '100')) or None
    except ValueError as e:
        logger.error(f"Invalid numeric configuration: {e}")
        return _error_response(500, 'Invalid configuration', e, start_time)

    if not base_url:
        error = ConfigurationError('SOCS_BASE_URL is not set')
        logger.error(str(error))
        return _error_response(500, 'Invalid configuration', error, start_time)

    try:
        start_date, end_date = resolve_date_range(event, days_ahead)
    except ConfigurationError as e:
        logger.error(f"Invalid date range: {e}")
        return _error_response(400, 'Invalid date range', e, start_time)

    logger.info(
        "Lambda execution started",
        extra={
            'start_date': start_date.isoformat(),
            'end_date': end_date.isoformat(),
            'timeout_seconds': timeout_seconds,
            'max_requests': max_requests
        }
    )

    try:
        client = SocsCalendarClient(timeout=timeout_seconds)
        collector = EventCollector(client=client, max_requests=max_requests)

        try:
            logger.info("Fetching events from calendar")
            events = collector.fetch_all(base_url, start_date, end_date)
        except CalendarError as e:
            logger.error(
                f"Failed to fetch events from calendar: {str(e)}",
                extra={'error_type': type(e).__name__},
                exc_info=True
            )
            return _error_response(
                502, 'Failed to fetch calendar events', e, start_time
            )

        duration = time.time() - start_time
        logger.info(
            "Lambda execution completed successfully",
            extra={
                'duration_seconds': round(duration, 2),
                'events_fetched': len(events)
            }
        )

        return {
            'statusCode': 200,
            'body': json.dumps({
                'message': 'Sync completed successfully',
                'statistics': {
                    'events_fetched': len(events),
                    'start_date': start_date.isoformat(),
                    'end_date': end_date.isoformat(),
                    'duration_seconds': round(duration, 2)
                },
                'events': [calendar_event.to_dict() for calendar_event in events]
            })
        }

    except Exception as e:
        duration = time.time() - start_time
        logger.error(
            f"Lambda execution failed: {str(e)}",
            extra={
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )
        return _error_response(500, 'Sync failed', e, start_time)
