"""Logging setup for loan-engine.

Pipeline code attaches loan and document identifiers with
``extra={"extra": {"loan_id": ..., "kind": ...}}``. Both formatters surface
them, together with the ``context`` of any ``LoanEngineError`` logged via
``exc_info``, so a failed document can be traced back to its loan.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from loan_engine.exceptions import LoanEngineError

# Keys shown first, in this order, by the standard formatter
LOAN_KEYS = ("loan_id", "customer_id", "kind", "installment_number")


def loan_context(record: logging.LogRecord) -> dict[str, Any]:
    """Identifiers and error context carried by ``record``.

    Values passed through ``extra`` win over those of the exception context.
    """
    context: dict[str, Any] = {}
    if record.exc_info and isinstance(record.exc_info[1], LoanEngineError):
        context.update(record.exc_info[1].context)
    context.update(getattr(record, "extra", None) or {})
    return context


class LoanContextFormatter(logging.Formatter):
    """Pipe-separated text format with a trailing ``key=value`` context."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = loan_context(record)
        if not context:
            return line

        ordered = [key for key in LOAN_KEYS if key in context]
        ordered += sorted(key for key in context if key not in LOAN_KEYS)
        pairs = " ".join(f"{key}={context[key]}" for key in ordered)
        head, newline, tail = line.partition("\n")
        # Keep the context on the message line, ahead of any traceback
        return f"{head} | {pairs}{newline}{tail}"


class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
            error = record.exc_info[1]
            if isinstance(error, LoanEngineError):
                log_data["error_type"] = type(error).__name__

        log_data.update(loan_context(record))

        return json.dumps(log_data, default=str)


def setup_logging(
    level: str = "INFO",
    format_type: str = "standard",
) -> None:
    """Configure logging for loan-engine.

    Parameters
    ----------
    level : str
        Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    format_type : str
        Format type: "standard" or "json".
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    formatter = JsonFormatter() if format_type == "json" else LoanContextFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    logging.getLogger("loan_engine").setLevel(log_level)

    # Reduce noise from external libraries
    logging.getLogger("confluent_kafka").setLevel(logging.WARNING)
    logging.getLogger("reportlab").setLevel(logging.WARNING)
    logging.getLogger("faker").setLevel(logging.WARNING)
