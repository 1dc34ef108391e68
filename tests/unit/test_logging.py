"""Tests for slidebind.utils.logging module."""

from __future__ import annotations

import logging

from slidebind.utils.logging import (
    _add_correlation_ids,
    clear_correlation_context,
    configure_logging,
    get_logger,
    set_correlation_context,
)


def test_configure_logging_sets_root_level() -> None:
    configure_logging(level="WARNING", log_format="console")
    assert logging.getLogger().level == logging.WARNING


def test_configure_logging_json_format_does_not_error() -> None:
    configure_logging(level="INFO", log_format="json")
    assert logging.getLogger().level == logging.INFO


def test_configure_logging_default_settings_do_not_error() -> None:
    configure_logging()


def test_get_logger_returns_logger_proxy() -> None:
    configure_logging(level="DEBUG", log_format="console")
    logger = get_logger("test.module")
    assert hasattr(logger, "info")
    assert hasattr(logger, "debug")
    assert hasattr(logger, "warning")
    assert hasattr(logger, "error")


def test_correlation_fields_added() -> None:
    set_correlation_context(slide="/data/a.svs", operation="read_region")
    event = _add_correlation_ids(logging.getLogger(), "info", {"event": "hello"})
    assert event == {
        "event": "hello",
        "slide": "/data/a.svs",
        "operation": "read_region",
    }


def test_correlation_fields_omitted_when_unset() -> None:
    clear_correlation_context()
    event = _add_correlation_ids(logging.getLogger(), "info", {"event": "hello"})
    assert event == {"event": "hello"}


def test_explicit_slide_field_wins() -> None:
    set_correlation_context(slide="/data/a.svs")
    event = _add_correlation_ids(
        logging.getLogger(), "debug", {"event": "Closed", "slide": "/data/b.svs"}
    )
    assert event["slide"] == "/data/b.svs"


def test_partial_update_keeps_other_field() -> None:
    set_correlation_context(slide="/data/a.svs", operation="info")
    set_correlation_context(operation="properties")
    event = _add_correlation_ids(logging.getLogger(), "info", {"event": "x"})
    assert event["slide"] == "/data/a.svs"
    assert event["operation"] == "properties"
