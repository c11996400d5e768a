"""
Structured Logging with Structlog.

Bridge log entries carry enum-valued context (event families, states, error
codes) and sometimes receipt payloads. Processors here flatten the enums to
their wire values and keep receipt blobs out of the log stream.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from storekit_bridge.config import settings

# Context keys whose values are base64 receipts or signatures.
RECEIPT_KEYS = frozenset({"receipt", "app_store_receipt", "bundle_signature"})


def add_bridge_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add service identity and buffering policy to all log entries."""
    event_dict["service"] = settings.service_name
    event_dict["version"] = settings.service_version
    event_dict.setdefault("buffering_policy", settings.buffering_policy.value)
    return event_dict


def flatten_enums(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Replace enum members (ErrorCode, TransactionState, ...) by their values."""
    for key, value in event_dict.items():
        if isinstance(value, Enum):
            event_dict[key] = value.value
    return event_dict


def redact_receipts(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Log receipt payloads by size only."""
    for key in RECEIPT_KEYS & event_dict.keys():
        value = event_dict[key]
        if isinstance(value, str):
            event_dict[key] = f"<redacted {len(value)} chars>"
    return event_dict


def setup_logging(log_level: str | None = None, log_format: str | None = None) -> None:
    """
    Configure structured logging with structlog.

    Call once at host application startup. Level and format default to
    settings. JSON output looks like:
    {
        "event": "pending_events_replayed",
        "level": "info",
        "timestamp": "2025-01-08T12:00:00.123456Z",
        "logger": "storekit_bridge.services.pending_events",
        "service": "storekit-bridge",
        "version": "0.1.0",
        "buffering_policy": "until_ready",
        "family": "transaction",
        "count": 2
    }
    """
    level = (log_level or settings.log_level).upper()
    renderer_format = log_format or settings.log_format

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level),
    )

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_bridge_context,
        flatten_enums,
        redact_receipts,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if renderer_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Usage:
        logger = get_logger(__name__)
        logger.info("purchase_requested", product_id=product_id, quantity=1)
    """
    return structlog.get_logger(name)  # type: ignore[no-any-return]


@contextmanager
def log_context(**context: Any) -> Iterator[None]:
    """
    Bind structured logging context for the duration of a block.

    Previously bound values for the same keys are restored on exit.

    Usage:
        with log_context(product_id="com.app.gold"):
            logger.info("purchase_requested")
    """
    with structlog.contextvars.bound_contextvars(**context):
        yield
