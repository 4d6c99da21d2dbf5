"""Structured logging with sensitive data masking.

This module configures Loguru as the single log pipeline of the process and
exposes ``MaskedLogger``, the facade every component logs through.

Features:
- **Pluggable output**: ``json`` (one object per line) or ``pretty``
  (colorized, human-readable), chosen once at startup
- **Masking**: every structured context passes through the configured
  ``Masker`` before it is attached to a record
- **Context propagation**: correlation IDs bound with
  ``logger.contextualize()`` appear on every record of a request
- **Standard library integration**: uvicorn, SQLAlchemy and httpx logs are
  intercepted and rendered by the same sink
"""

from __future__ import annotations

import logging
import sys
import traceback
from typing import TYPE_CHECKING, Any, Final, TextIO, cast

import orjson
from loguru import logger

from plinth.core.masking import Masker

if TYPE_CHECKING:
    from plinth.core.config import LogConfig
    from plinth.core.types import LogContext


class _LoggingState:
    """Simple state holder to track if logging has been configured."""

    def __init__(self) -> None:
        self.configured = False
        self.masker = Masker()


_state = _LoggingState()

CORRELATION_ID_DISPLAY_LENGTH: Final[int] = 8
MAX_FIELD_VALUE_LENGTH: Final[int] = 200

PRIORITY_FIELDS: Final[tuple[str, ...]] = (
    "correlation_id",
    "event",
    "method",
    "path",
    "status_code",
    "elapsed_ms",
)

# Extra keys that are rendered elsewhere or are internal
_HIDDEN_FIELDS: Final[frozenset[str]] = frozenset({"logger_name"})

# Top-level JSON keys written after the context fields
_JSON_RESERVED_FIELDS: Final[frozenset[str]] = frozenset({"extra", "exception"})


def _escape(value: object) -> str:
    # Braces are format fields and angle brackets are color tags to Loguru
    return str(value).replace("{", "{{").replace("}", "}}").replace("<", r"\<")


def _format_priority_field(field: str, value: object) -> str:
    """Format a priority field for display.

    Args:
        field: The field name.
        value: The field value.

    Returns:
        str: Formatted, brace-escaped value.
    """
    if field == "correlation_id" and len(str(value)) > CORRELATION_ID_DISPLAY_LENGTH:
        return _escape(str(value)[:CORRELATION_ID_DISPLAY_LENGTH])
    if field == "elapsed_ms":
        return f"{_escape(value)}ms"
    if field == "status_code":
        status_str = _escape(value)
        if status_str.startswith("2"):
            return f"<green>{status_str}</green>"
        if status_str.startswith("3"):
            return f"<yellow>{status_str}</yellow>"
        if status_str.startswith("5"):
            return f"<red><bold>{status_str}</bold></red>"
        return f"<red>{status_str}</red>"
    return _escape(value)


def _format_extra_field(key: str, value: object) -> str:
    str_value = str(value)
    if len(str_value) > MAX_FIELD_VALUE_LENGTH:
        str_value = str_value[: MAX_FIELD_VALUE_LENGTH - 3] + "..."
    return f"{_escape(key)}={_escape(str_value)}"


def format_pretty(record: dict[str, Any]) -> str:
    """Format a record for the console with all context fields visible.

    Args:
        record: Loguru record to format.

    Returns:
        str: Loguru format template for the record.
    """
    extra = record.get("extra", {})
    name = extra.get("logger_name") or record.get("name", "")
    parts = [
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green>",
        "<level>{level: <8}</level>",
        f"<cyan>{_escape(name)}:{_escape(record.get('function', ''))}:"
        f"{record.get('line', '')}</cyan>",
    ]

    context_parts = [
        f"[<yellow>{_format_priority_field(field, extra[field])}</yellow>]"
        for field in PRIORITY_FIELDS
        if extra.get(field) is not None
    ]
    context_parts.extend(
        f"[<dim>{_format_extra_field(key, value)}</dim>]"
        for key, value in extra.items()
        if key not in PRIORITY_FIELDS
        and key not in _HIDDEN_FIELDS
        and not key.startswith("_")
        and value is not None
    )
    if context_parts:
        parts.append(" ".join(context_parts))

    parts.append(_escape(record.get("message", "")))
    line = " | ".join(parts) + "\n"
    if record.get("exception"):
        line += "{exception}"
    return line


def serialize_json(record: dict[str, Any]) -> str:
    """Render a record as one JSON object terminated by a newline.

    Args:
        record: Loguru record to format.

    Returns:
        str: The JSON line.
    """
    extra = record.get("extra", {})
    log_entry: dict[str, Any] = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "logger": extra.get("logger_name") or record["name"],
        "function": record["function"],
        "line": record["line"],
    }
    for key, value in extra.items():
        if key in _HIDDEN_FIELDS or key.startswith("_"):
            continue
        if key in log_entry or key in _JSON_RESERVED_FIELDS:
            # Context keys never replace the record's own fields
            log_entry.setdefault("extra", {})[key] = value
        else:
            log_entry[key] = value

    if exc := record.get("exception"):
        log_entry["exception"] = {
            "type": exc.type.__name__ if exc.type else None,
            "value": str(exc.value) if exc.value else None,
            "traceback": "".join(
                traceback.format_exception(exc.type, exc.value, exc.traceback)
            )
            if exc.type
            else None,
        }

    return (
        orjson.dumps(log_entry, default=str, option=orjson.OPT_NON_STR_KEYS).decode()
        + "\n"
    )


class InterceptHandler(logging.Handler):
    """Intercept standard logging and redirect to Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        """Forward log record to Loguru.

        Args:
            record: Standard library LogRecord to forward.
        """
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message
        try:
            frame, depth = sys._getframe(6), 6  # noqa: SLF001
            while frame and frame.f_code.co_filename == logging.__file__:
                if frame.f_back is None:
                    break
                frame = frame.f_back
                depth += 1
        except ValueError:
            # Not enough frames on the stack
            depth = 1

        logger.opt(depth=depth, exception=record.exc_info).bind(
            logger_name=record.name
        ).log(level, record.getMessage())


def setup_logging(
    log_config: LogConfig,
    debug: bool = False,  # noqa: FBT001, FBT002
    sink: TextIO | None = None,
) -> None:
    """Configure Loguru for the process.

    Args:
        log_config: Logging configuration slice.
        debug: Include variable values in tracebacks.
        sink: Stream to write to. Defaults to standard output.

    Note:
        Only the first call configures logging; later calls are ignored.
    """
    if _state.configured:
        return

    stream = sink or sys.stdout
    _state.masker = Masker(log_config.sensitive_fields)

    logger.remove()

    if log_config.log_format == "json":

        def json_sink(message: object) -> None:
            """Write each record as one JSON line."""
            stream.write(serialize_json(message.record))  # type: ignore[attr-defined]
            stream.flush()

        logger.add(
            json_sink,
            level=log_config.log_level,
            diagnose=False,
            backtrace=False,
        )
    else:
        logger.add(
            stream,
            format=cast("Any", format_pretty),
            level=log_config.log_level,
            colorize=stream is sys.stdout,
            diagnose=debug,
            backtrace=debug,
        )

    # Configure standard library logging to use Loguru
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        std_logger = logging.getLogger(logger_name)
        std_logger.handlers = [InterceptHandler()]
        std_logger.propagate = False

    # Only disable truly noisy loggers
    for logger_name in ("httpcore", "httpx"):
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    logger.info(
        "Logging configured with {} formatter",
        log_config.log_format,
        log_format=log_config.log_format,
        log_level=log_config.log_level,
    )

    _state.configured = True


def reset_logging() -> None:
    """Forget the current configuration so ``setup_logging`` runs again."""
    _state.configured = False
    _state.masker = Masker()


class MaskedLogger:
    """Logger facade that masks structured context before emitting it.

    Args:
        name: Logger name, typically ``__name__`` or a component name.
    """

    def __init__(self, name: str) -> None:
        self.name = name

    def _emit(
        self,
        level: str,
        message: str,
        context: LogContext | None,
        exception: BaseException | None = None,
    ) -> None:
        masked = _state.masker.mask(dict(context or {}))
        logger.opt(depth=2, exception=exception).bind(
            **{**masked, "logger_name": self.name}
        ).log(level, message)

    def log(self, message: str, context: LogContext | None = None) -> None:
        """Log an informational message."""
        self._emit("INFO", message, context)

    def warn(self, message: str, context: LogContext | None = None) -> None:
        """Log a warning."""
        self._emit("WARNING", message, context)

    def debug(self, message: str, context: LogContext | None = None) -> None:
        """Log a debug message."""
        self._emit("DEBUG", message, context)

    def verbose(self, message: str, context: LogContext | None = None) -> None:
        """Log a trace-level message."""
        self._emit("TRACE", message, context)

    def error(
        self,
        message: str,
        trace: str | None = None,
        context: LogContext | None = None,
        exception: BaseException | None = None,
    ) -> None:
        """Log an error.

        Args:
            message: The error message.
            trace: Stack trace text, when no exception object is available.
            context: Structured context, masked before emission.
            exception: Exception whose traceback is attached to the record.
        """
        payload = dict(context or {})
        if trace:
            payload["trace"] = trace
        self._emit("ERROR", message, payload, exception)


def get_logger(name: str) -> MaskedLogger:
    """Get a masked logger with the given name.

    Args:
        name: Logger name, typically __name__.

    Returns:
        MaskedLogger: Logger instance bound with the name.
    """
    return MaskedLogger(name)
