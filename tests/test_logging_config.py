"""Tests for shared logging setup."""

import logging

from common.logging_config import (
    RequestIdFilter,
    reset_request_id,
    set_request_id,
    setup_logging,
)


def make_record():
    return logging.LogRecord("test", logging.INFO, __file__, 1, "message", None, None)


def test_filter_uses_placeholder_outside_requests():
    record = make_record()
    RequestIdFilter().filter(record)
    assert record.request_id == "-"


def test_filter_uses_bound_request_id():
    token = set_request_id("req-42")
    try:
        record = make_record()
        RequestIdFilter().filter(record)
        assert record.request_id == "req-42"
    finally:
        reset_request_id(token)

    record = make_record()
    RequestIdFilter().filter(record)
    assert record.request_id == "-"


def test_setup_logging_installs_one_handler():
    setup_logging("transfer", log_level="DEBUG")
    setup_logging("cli", log_level="WARNING")

    root = logging.getLogger()
    handlers = [h for h in root.handlers if getattr(h, "_adaptive_transfer", False)]
    assert len(handlers) == 1
    assert handlers[0].level == logging.WARNING
