"""Structured log lines shared by the scan worker: timed operations and health summaries.

USAGE:
    async with log_operation(logger, "library_scan", root="/music"):
        await scanner.scan_library(stats)

    log_worker_health(logger, "library_scan", 10, 0, 600.0, extra_stats=stats.to_dict())

Field names in ``extra`` must not collide with LogRecord attributes (name, msg, args, ...),
logging raises KeyError for those.
"""

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


# Yo, "<op>.started" / "<op>.completed" / "<op>.failed" with duration_ms. A failure is logged
# with traceback and RE-RAISED, the caller decides what it means.
@asynccontextmanager
async def log_operation(
    logger: logging.Logger,
    operation: str,
    **context: Any,
) -> AsyncIterator[None]:
    """Time an awaited block and log its start and outcome.

    Args:
        logger: Module logger
        operation: Dotted-event prefix, e.g. "library_scan"
        **context: Extra fields attached to every line
    """
    start = time.monotonic()
    logger.info(f"{operation}.started", extra=context)
    try:
        yield
    except Exception as e:
        failure = {"duration_ms": _elapsed_ms(start), "error": str(e), "error_type": type(e).__name__}
        logger.error(f"{operation}.failed", extra={**context, **failure}, exc_info=True)
        raise
    logger.info(f"{operation}.completed", extra={**context, "duration_ms": _elapsed_ms(start)})


def log_worker_health(
    logger: logging.Logger,
    worker_name: str,
    cycles_completed: int,
    errors_total: int,
    uptime_seconds: float,
    extra_stats: dict[str, Any] | None = None,
) -> None:
    """Emit one ``worker.health`` line after every pass (counters plus last pass stats)."""
    fields: dict[str, Any] = dict(extra_stats or {})
    fields.update(
        worker=worker_name,
        cycles_completed=cycles_completed,
        errors_total=errors_total,
        uptime_seconds=int(uptime_seconds),
    )
    logger.info("worker.health", extra=fields)
