"""Unit tests for plinth/core/logging.py."""

import io
import logging
from typing import Any

import orjson
import pytest
from loguru import logger

from plinth.core.config import LogConfig
from plinth.core.constants import MASKED
from plinth.core.logging import (
    InterceptHandler,
    MaskedLogger,
    _state,
    get_logger,
    setup_logging,
)


def _json_lines(stream: io.StringIO) -> list[dict[str, Any]]:
    return [orjson.loads(line) for line in stream.getvalue().splitlines() if line]


@pytest.mark.unit
class TestSetupLogging:
    """Test sink configuration."""

    def test_json_format_writes_one_object_per_line(self) -> None:
        stream = io.StringIO()
        setup_logging(LogConfig(log_format="json"), sink=stream)

        logger.bind(correlation_id="abc").info("hello {}", "world")

        lines = _json_lines(stream)
        entry = lines[-1]
        assert entry["message"] == "hello world"
        assert entry["level"] == "INFO"
        assert entry["correlation_id"] == "abc"
        assert {"timestamp", "logger", "function", "line"} <= entry.keys()

    def test_json_format_includes_exception(self) -> None:
        stream = io.StringIO()
        setup_logging(LogConfig(log_format="json"), sink=stream)

        try:
            raise ValueError("bad value")
        except ValueError:
            logger.exception("failed")

        entry = _json_lines(stream)[-1]
        assert entry["exception"]["type"] == "ValueError"
        assert entry["exception"]["value"] == "bad value"
        assert "Traceback" in entry["exception"]["traceback"]

    def test_json_context_cannot_replace_record_fields(self) -> None:
        stream = io.StringIO()
        setup_logging(LogConfig(log_format="json"), sink=stream)

        logger.bind(level="spoofed", message="other", line=0, user="ann").info("real")

        entry = _json_lines(stream)[-1]
        assert entry["level"] == "INFO"
        assert entry["message"] == "real"
        assert entry["line"] != 0
        assert entry["user"] == "ann"
        assert entry["extra"] == {"level": "spoofed", "message": "other", "line": 0}

    def test_pretty_format_renders_context(self) -> None:
        stream = io.StringIO()
        setup_logging(LogConfig(log_format="pretty"), sink=stream)

        logger.bind(
            correlation_id="1234567890abcdef", method="GET", payload="{x} <b>"
        ).info("Request {done}")

        output = stream.getvalue()
        assert "12345678" in output
        assert "1234567890abcdef" not in output
        assert "GET" in output
        assert "payload={x} <b>" in output
        assert "Request {done}" in output

    def test_level_filters_records(self) -> None:
        stream = io.StringIO()
        setup_logging(LogConfig(log_format="json", log_level="WARNING"), sink=stream)

        logger.info("hidden")
        logger.warning("shown")

        assert [e["message"] for e in _json_lines(stream)] == ["shown"]

    def test_configures_only_once(self) -> None:
        first, second = io.StringIO(), io.StringIO()
        setup_logging(LogConfig(log_format="json"), sink=first)
        setup_logging(LogConfig(log_format="json"), sink=second)

        logger.info("once")

        assert second.getvalue() == ""
        assert _state.configured is True

    def test_standard_logging_is_intercepted(self) -> None:
        stream = io.StringIO()
        setup_logging(LogConfig(log_format="json"), sink=stream)

        logging.getLogger("thirdparty").warning("from stdlib")

        entry = _json_lines(stream)[-1]
        assert entry["message"] == "from stdlib"
        assert entry["logger"] == "thirdparty"
        assert any(isinstance(h, InterceptHandler) for h in logging.getLogger().handlers)


@pytest.mark.unit
class TestMaskedLogger:
    """Test the masking facade."""

    def test_get_logger_returns_named_masked_logger(self) -> None:
        log = get_logger("plinth.test")

        assert isinstance(log, MaskedLogger)
        assert log.name == "plinth.test"

    def test_context_is_masked(self, log_records: list[dict[str, Any]]) -> None:
        get_logger("plinth.test").log(
            "Login", context={"body": {"password": "abc123", "user": "ann"}}
        )

        record = log_records[-1]
        assert record["extra"]["body"] == {"password": MASKED, "user": "ann"}
        assert record["extra"]["logger_name"] == "plinth.test"

    def test_configured_sensitive_fields_are_used(
        self, log_records: list[dict[str, Any]]
    ) -> None:
        setup_logging(LogConfig(sensitive_fields=("ssn",)), sink=io.StringIO())
        # setup_logging replaced every sink, so capture again
        captured: list[dict[str, Any]] = []
        logger.add(lambda m: captured.append(m.record), level="TRACE")

        get_logger("plinth.test").log(
            "Profile", context={"ssn": "123", "password": "visible"}
        )

        assert captured[-1]["extra"]["ssn"] == MASKED
        assert captured[-1]["extra"]["password"] == "visible"
        assert log_records == []

    @pytest.mark.parametrize(
        ("method", "level"),
        [("log", "INFO"), ("warn", "WARNING"), ("debug", "DEBUG"), ("verbose", "TRACE")],
    )
    def test_levels(
        self, log_records: list[dict[str, Any]], method: str, level: str
    ) -> None:
        getattr(get_logger("plinth.test"), method)("message")

        assert log_records[-1]["level"].name == level

    def test_error_with_trace_and_exception(
        self, log_records: list[dict[str, Any]]
    ) -> None:
        exc = RuntimeError("boom")

        get_logger("plinth.test").error(
            "It failed", trace="stack text", context={"token": "t"}, exception=exc
        )

        record = log_records[-1]
        assert record["level"].name == "ERROR"
        assert record["extra"]["trace"] == "stack text"
        assert record["extra"]["token"] == MASKED
        assert record["exception"].value is exc

    def test_message_braces_are_not_formatted(
        self, log_records: list[dict[str, Any]]
    ) -> None:
        get_logger("plinth.test").log("literal {braces}")

        assert log_records[-1]["message"] == "literal {braces}"

    def test_caller_location_is_reported(
        self, log_records: list[dict[str, Any]]
    ) -> None:
        get_logger("plinth.test").log("where")

        assert log_records[-1]["function"] == "test_caller_location_is_reported"
