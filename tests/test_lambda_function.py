"""Integration tests for Lambda handler."""
import json
import logging
import os
from datetime import date, time
from unittest.mock import Mock, patch

import pytest

from lambda_function import (
    ConfigurationError,
    JsonFormatter,
    lambda_handler,
    resolve_date_range,
    setup_logging,
)
from processor.errors import HttpStatusError
from processor.models import CalendarEvent, EventTime

BASE_URL = 'https://www.socscms.com/socs/xml/SOCScalendar.ashx?ID=42&key=abc'


@pytest.fixture
def mock_env():
    """Set up environment variables for testing."""
    env_vars = {
        'SOCS_BASE_URL': BASE_URL,
        'LOG_LEVEL': 'INFO',
        'DAYS_AHEAD': '90',
        'TIMEOUT_SECONDS': '30',
        'MAX_REQUESTS': '50'
    }
    with patch.dict(os.environ, env_vars, clear=True):
        yield env_vars


@pytest.fixture
def mock_context():
    """Create a mock Lambda context."""
    context = Mock()
    context.function_name = 'test-function'
    context.memory_limit_in_mb = 512
    context.invoked_function_arn = 'arn:aws:lambda:eu-west-2:123456789012:function:test-function'
    context.aws_request_id = 'test-request-id'
    return context


@pytest.fixture
def sample_events():
    """Create sample calendar events."""
    return [
        CalendarEvent(
            event_id='1001',
            title='Carol Service',
            description='Whole school carol service',
            location='Chapel',
            categories=('Music',),
            start=EventTime.at(date(2025, 12, 10), time(18, 0)),
            end=EventTime.at(date(2025, 12, 10), time(19, 30))
        ),
        CalendarEvent(
            event_id='1002',
            title='End of Term',
            description=None,
            location='',
            categories=(),
            start=EventTime.all_day(date(2025, 12, 12)),
            end=EventTime.all_day(date(2025, 12, 12))
        )
    ]


class TestLambdaHandler:
    """Test cases for Lambda handler."""

    @patch('lambda_function.EventCollector')
    @patch('lambda_function.SocsCalendarClient')
    def test_successful_sync(
        self,
        mock_client_class,
        mock_collector_class,
        mock_env,
        mock_context,
        sample_events
    ):
        """Test successful end-to-end collection."""
        mock_collector = Mock()
        mock_collector.fetch_all.return_value = sample_events
        mock_collector_class.return_value = mock_collector

        event = {'start_date': '2025-12-01', 'end_date': '2025-12-31'}
        response = lambda_handler(event, mock_context)

        assert response['statusCode'] == 200
        body = json.loads(response['body'])
        assert body['message'] == 'Sync completed successfully'
        assert body['statistics']['events_fetched'] == 2
        assert body['statistics']['start_date'] == '2025-12-01'
        assert body['statistics']['end_date'] == '2025-12-31'
        assert 'duration_seconds' in body['statistics']
        assert [item['event_id'] for item in body['events']] == ['1001', '1002']
        assert body['events'][1]['start'] == {
            'date': '2025-12-12', 'time': None, 'all_day': True
        }

        mock_client_class.assert_called_once_with(timeout=30)
        mock_collector_class.assert_called_once_with(
            client=mock_client_class.return_value, max_requests=50
        )
        mock_collector.fetch_all.assert_called_once_with(
            BASE_URL, date(2025, 12, 1), date(2025, 12, 31)
        )

    @patch('lambda_function.EventCollector')
    @patch('lambda_function.SocsCalendarClient')
    def test_calendar_fetch_failure(
        self,
        mock_client_class,
        mock_collector_class,
        mock_env,
        mock_context
    ):
        """Test error handling for calendar fetch failures."""
        mock_collector = Mock()
        mock_collector.fetch_all.side_effect = HttpStatusError(503).add_context(
            'Failed to fetch events for 2025-12-01 to 2025-12-31'
        )
        mock_collector_class.return_value = mock_collector

        response = lambda_handler({}, mock_context)

        assert response['statusCode'] == 502
        body = json.loads(response['body'])
        assert body['message'] == 'Failed to fetch calendar events'
        assert '503' in body['error']
        assert '2025-12-01 to 2025-12-31' in body['error']
        assert body['error_type'] == 'HttpStatusError'
        assert 'duration_seconds' in body

    @patch('lambda_function.EventCollector')
    @patch('lambda_function.SocsCalendarClient')
    def test_unexpected_failure(
        self,
        mock_client_class,
        mock_collector_class,
        mock_env,
        mock_context
    ):
        mock_collector = Mock()
        mock_collector.fetch_all.side_effect = RuntimeError('Unexpected')
        mock_collector_class.return_value = mock_collector

        response = lambda_handler({}, mock_context)

        assert response['statusCode'] == 500
        body = json.loads(response['body'])
        assert body['message'] == 'Sync failed'
        assert body['error_type'] == 'RuntimeError'

    @patch('lambda_function.EventCollector')
    def test_missing_base_url(self, mock_collector_class, mock_context):
        with patch.dict(os.environ, {}, clear=True):
            response = lambda_handler({}, mock_context)

        assert response['statusCode'] == 500
        body = json.loads(response['body'])
        assert body['message'] == 'Invalid configuration'
        assert 'SOCS_BASE_URL' in body['error']
        mock_collector_class.assert_not_called()

    @patch('lambda_function.EventCollector')
    def test_invalid_payload_date(self, mock_collector_class, mock_env, mock_context):
        response = lambda_handler({'start_date': '10/12/2025'}, mock_context)

        assert response['statusCode'] == 400
        body = json.loads(response['body'])
        assert body['error_type'] == 'ConfigurationError'
        mock_collector_class.assert_not_called()

    @patch('lambda_function.EventCollector')
    @patch('lambda_function.SocsCalendarClient')
    def test_max_requests_zero_disables_limit(
        self,
        mock_client_class,
        mock_collector_class,
        mock_env,
        mock_context
    ):
        mock_collector_class.return_value.fetch_all.return_value = []

        with patch.dict(os.environ, {'MAX_REQUESTS': '0'}):
            response = lambda_handler({}, mock_context)

        assert response['statusCode'] == 200
        mock_collector_class.assert_called_once_with(
            client=mock_client_class.return_value, max_requests=None
        )

    @patch('lambda_function.EventCollector')
    @patch('lambda_function.SocsCalendarClient')
    @patch('lambda_function.setup_logging')
    def test_logging_output(
        self,
        mock_setup_logging,
        mock_client_class,
        mock_collector_class,
        mock_env,
        mock_context,
        sample_events,
        caplog
    ):
        """Test that logging output is generated correctly."""
        logger = logging.getLogger('lambda_function')
        logger.setLevel(logging.INFO)

        mock_collector_class.return_value.fetch_all.return_value = sample_events

        with caplog.at_level(logging.INFO, logger='lambda_function'):
            response = lambda_handler({}, mock_context)

        assert response['statusCode'] == 200
        log_messages = [record.message for record in caplog.records]
        assert any('Lambda execution started' in msg for msg in log_messages)
        assert any('Fetching events from calendar' in msg for msg in log_messages)
        assert any('Lambda execution completed successfully' in msg for msg in log_messages)


class TestResolveDateRange:
    """Test cases for date range resolution."""

    def test_payload_dates(self, mock_env):
        start, end = resolve_date_range(
            {'start_date': '2025-09-01', 'end_date': '2026-07-31'}, 90
        )
        assert start == date(2025, 9, 1)
        assert end == date(2026, 7, 31)

    def test_environment_dates(self, mock_env):
        with patch.dict(os.environ, {'START_DATE': '2025-01-01', 'END_DATE': '2025-03-31'}):
            assert resolve_date_range({}, 90) == (date(2025, 1, 1), date(2025, 3, 31))

    def test_days_ahead_window(self, mock_env):
        start, end = resolve_date_range({'start_date': '2025-12-01'}, 30)
        assert start == date(2025, 12, 1)
        assert end == date(2025, 12, 31)

    def test_reversed_range(self, mock_env):
        with pytest.raises(ConfigurationError):
            resolve_date_range({'start_date': '2025-12-31', 'end_date': '2025-12-01'}, 90)


class TestSetupLogging:
    """Test cases for logging setup."""

    def test_setup_logging_default_level(self):
        setup_logging()
        assert logging.getLogger().level == logging.INFO

    def test_setup_logging_debug_level(self):
        setup_logging('DEBUG')
        assert logging.getLogger().level == logging.DEBUG

    def test_setup_logging_installs_json_formatter(self):
        setup_logging('WARNING')
        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0].formatter, JsonFormatter)

    def test_json_formatter_output(self):
        record = logging.LogRecord(
            'collector.event_collector', logging.INFO, __file__, 1,
            'Fetched %d events', (3,), None
        )
        data = json.loads(JsonFormatter().format(record))
        assert data['level'] == 'INFO'
        assert data['message'] == 'Fetched 3 events'
        assert data['logger'] == 'collector.event_collector'
