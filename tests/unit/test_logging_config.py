"""Unit tests for logging configuration."""

import json
import logging

from storeauth.logging_config import (
    JsonFormatter,
    RequestIdFilter,
    SensitiveFieldFilter,
    mask_email,
    request_id_var,
)


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("storeauth.test", logging.INFO, __file__, 1, "Email sent", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestMasking:
    def test_mask_email(self):
        assert mask_email("alice@example.com") == "a***@example.com"
        assert mask_email("nonsense") == "***"
        assert mask_email(None) == "***"

    def test_sensitive_fields_redacted(self):
        record = _record(password="Secret123", token="abc.def.ghi", to_address="alice@example.com", user_id=5)

        SensitiveFieldFilter().filter(record)

        assert record.password == "[redacted]"
        assert record.token == "[redacted]"
        assert record.to_address == "a***@example.com"
        assert record.user_id == 5


class TestJsonFormatter:
    def test_includes_request_id_and_extras(self):
        token = request_id_var.set("req-123")
        try:
            record = _record(user_id=5, template_id="welcome")
            RequestIdFilter().filter(record)
            payload = json.loads(JsonFormatter().format(record))
        finally:
            request_id_var.reset(token)

        assert payload["message"] == "Email sent"
        assert payload["request_id"] == "req-123"
        assert payload["user_id"] == 5
        assert payload["template_id"] == "welcome"

    def test_no_request_id_outside_requests(self):
        record = _record()
        RequestIdFilter().filter(record)

        payload = json.loads(JsonFormatter().format(record))

        assert "request_id" not in payload
