"""Observability infrastructure for structured logging."""

from songshelf.infrastructure.observability.error_formatting import (
    describe_oserror,
    format_oserror_message,
)
from songshelf.infrastructure.observability.logger_template import (
    log_operation,
    log_worker_health,
)
from songshelf.infrastructure.observability.logging import (
    configure_logging,
    get_correlation_id,
    set_correlation_id,
)

__all__ = [
    "configure_logging",
    "describe_oserror",
    "format_oserror_message",
    "get_correlation_id",
    "log_operation",
    "log_worker_health",
    "set_correlation_id",
]
