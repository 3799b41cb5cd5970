"""Unit tests for JSON logging and run correlation."""

import json
import logging

from quote_pricing.observability import JSONFormatter, set_request_id
from quote_pricing.observability.logging_config import RequestIDFilter


def _record(**extra):
    record = logging.LogRecord("quote_pricing.pricing", logging.WARNING, __file__, 10, "AI pricing failed", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Log line shape."""

    def test_core_fields_and_extra(self):
        """Extra fields are emitted next to the standard ones."""
        record = _record(quote_id=7, error="timeout")
        RequestIDFilter().filter(record)

        data = json.loads(JSONFormatter().format(record))

        assert data["level"] == "WARNING"
        assert data["logger"] == "quote_pricing.pricing"
        assert data["message"] == "AI pricing failed"
        assert data["quote_id"] == 7
        assert data["error"] == "timeout"

    def test_request_id_from_context(self):
        """The current run id is attached by the filter."""
        set_request_id("run-123")
        record = _record()
        RequestIDFilter().filter(record)

        data = json.loads(JSONFormatter().format(record))

        assert data["request_id"] == "run-123"
