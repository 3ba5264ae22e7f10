"""Logging setup for songshelf: console or JSON output, one correlation id per scan pass."""

import contextvars
import logging
import sys
import traceback
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from types import TracebackType
from typing import Any

from pythonjsonlogger import jsonlogger

CONSOLE_FORMAT = (
    "%(asctime)s │ %(levelname)-7s │ %(correlation_id)s │ %(name)s:%(lineno)d │ %(message)s"
)
JSON_FORMAT = "%(timestamp)s %(level)s %(name)s %(message)s"

# Loggers that drown a scan pass in per-request/per-statement lines at INFO.
QUIET_LOGGERS = ("httpx", "httpcore", "aiosqlite", "asyncio", "sqlalchemy.engine")

# Hey future me, every scan pass gets its own correlation id! When someone asks "why has this
# song no cover", grep the logs for the pass that touched it and you see the walk, the tag
# read, the sidecar write and the lookup for that one file. asyncio.to_thread copies the
# context, so lines logged from the extractor thread carry the id too.
correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)


def get_correlation_id() -> str:
    """Current correlation id ("" outside of a scan pass)."""
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Set the correlation id for the current context, a random UUID when None."""
    value = correlation_id if correlation_id is not None else str(uuid.uuid4())
    correlation_id_var.set(value)
    return value


@contextmanager
def scan_correlation() -> Iterator[str]:
    """Run a block under a fresh ``scan-<hex>`` id and restore the previous id afterwards."""
    token = correlation_id_var.set(f"scan-{uuid.uuid4().hex[:12]}")
    try:
        yield correlation_id_var.get()
    finally:
        correlation_id_var.reset(token)


class CorrelationIdFilter(logging.Filter):
    """Stamp the current correlation id onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id()
        return True


def _exception_chain(exc: BaseException) -> list[BaseException]:
    """Causes first, the exception that was actually logged last."""
    chain: list[BaseException] = []
    current: BaseException | None = exc
    while current is not None and current not in chain:
        chain.append(current)
        current = current.__cause__ or current.__context__
    return chain[::-1]


def _package_frames(tb: TracebackType | None, marker: str) -> Iterator[str]:
    for frame in traceback.extract_tb(tb):
        if "/site-packages/" in frame.filename or marker not in frame.filename:
            continue
        yield f'    File "{Path(frame.filename).name}", line {frame.lineno}, in {frame.name}'
        if frame.line:
            yield f"      {frame.line.strip()}"


# Hey future me - a corrupt file makes mutagen raise from ten frames deep inside its parser.
# We only care which of OUR lines hit it, so library frames are dropped and the chain is
# printed root cause first:
#
#   12:00:01 │ WARNING │ scan-3f2a9c1d04be │ songshelf...metadata_extractor:97 │ Could not read tags ...
#   ╰─► HeaderNotFoundError: can't sync to MPEG frame
#       File "metadata_extractor.py", line 88, in _open_tags
class CompactExceptionFormatter(logging.Formatter):
    """Console formatter with short, root-cause-first exception chains."""

    package_marker = "songshelf"

    # Lines outside a scan pass (startup, CLI) and records that skipped the filter show "-".
    def formatMessage(self, record: logging.LogRecord) -> str:
        values = {**record.__dict__, "correlation_id": getattr(record, "correlation_id", "") or "-"}
        return self._fmt % values if self._fmt else record.getMessage()

    def formatException(self, ei: Any) -> str:
        exc_value = ei[1]
        if exc_value is None:
            return ""

        lines: list[str] = []
        for exc in _exception_chain(exc_value):
            lines.append(f"╰─► {type(exc).__name__}: {exc}")
            lines.extend(_package_frames(exc.__traceback__, self.package_marker))
        return "\n".join(lines)


class CustomJsonFormatter(jsonlogger.JsonFormatter):  # type: ignore[name-defined,misc]
    """One JSON object per line, with level, logger, source line and correlation id."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record.update(
            timestamp=self.formatTime(record, self.datefmt),
            level=record.levelname,
            logger=record.name,
            function=record.funcName,
            line=record.lineno,
        )
        if getattr(record, "correlation_id", ""):
            log_record["correlation_id"] = record.correlation_id
        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)


def _build_formatter(json_format: bool) -> logging.Formatter:
    if json_format:
        return CustomJsonFormatter(JSON_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    return CompactExceptionFormatter(fmt=CONSOLE_FORMAT, datefmt="%H:%M:%S")


def configure_logging(
    log_level: str = "INFO",
    json_format: bool = False,
    app_name: str = "songshelf",
) -> None:
    """Install a single stdout handler on the root logger.

    Safe to call more than once (the CLI and every lifespan() entry do): existing
    root handlers are replaced, not stacked.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        json_format: JSON lines for log shipping instead of the console format
        app_name: Reported in the "Logging configured" line
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    root_logger = logging.getLogger()
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(_build_formatter(json_format))
    root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging configured",
        extra={"app_name": app_name, "log_level": log_level, "json_format": json_format},
    )
