"""Tests for structured logging and correlation ids"""
import json
import logging
import pytest
from unittest.mock import MagicMock

from intake_service.core.logger import JSONFormatter, StructuredLogger
from intake_service.messaging.errors import TransportError
from intake_service.middleware.correlation_id import correlation_scope, get_correlation_id


@pytest.fixture
def structured_logger():
    log = StructuredLogger(name="intake-service-test")
    log._logger = MagicMock()
    return log


def logged_extra(structured_logger):
    return structured_logger._logger.log.call_args.kwargs["extra"]


class TestStructuredLogger:
    """Test entry construction"""

    def test_metadata_and_correlation_id(self, structured_logger):
        with correlation_scope("corr-7"):
            structured_logger.info("Form created", metadata={"form_id": "f1"})

        level, message = structured_logger._logger.log.call_args.args
        extra = logged_extra(structured_logger)
        assert level == logging.INFO
        assert message == "Form created"
        assert extra["correlationId"] == "corr-7"
        assert extra["metadata"] == {"form_id": "f1"}

    def test_explicit_correlation_id_wins(self, structured_logger):
        with correlation_scope("from-context"):
            structured_logger.warning("Retrying", correlation_id="explicit")

        assert logged_extra(structured_logger)["correlationId"] == "explicit"

    def test_error_details_include_cause(self, structured_logger):
        try:
            try:
                raise ConnectionResetError("peer reset")
            except ConnectionResetError as e:
                raise TransportError("publish failed") from e
        except TransportError as error:
            structured_logger.error("Dispatch failed", error=error)

        details = logged_extra(structured_logger)["metadata"]["error"]
        assert details["type"] == "TransportError"
        assert details["cause"]["type"] == "ConnectionResetError"

    def test_bind_adds_context(self, structured_logger):
        bound = structured_logger.bind(queue="intake_completed_queue")

        bound.info("Received event", metadata={"eventId": "e1"})

        assert logged_extra(structured_logger)["metadata"] == {
            "queue": "intake_completed_queue",
            "eventId": "e1",
        }
        assert structured_logger.context == {}


class TestJSONFormatter:
    """Test JSON output"""

    def test_format(self):
        record = logging.LogRecord("intake", logging.INFO, __file__, 1, "hello", None, None)
        record.correlationId = "corr-1"
        record.metadata = {"k": "v"}

        entry = json.loads(JSONFormatter().format(record))

        assert entry["message"] == "hello"
        assert entry["level"] == "INFO"
        assert entry["correlationId"] == "corr-1"
        assert entry["metadata"] == {"k": "v"}


class TestCorrelationScope:
    """Test context handling of correlation ids"""

    def test_restores_previous_value(self):
        with correlation_scope("outer"):
            with correlation_scope("inner"):
                assert get_correlation_id() == "inner"
            assert get_correlation_id() == "outer"
        assert get_correlation_id() is None

    def test_generates_id_when_missing(self):
        with correlation_scope(None) as correlation_id:
            assert correlation_id
            assert get_correlation_id() == correlation_id
