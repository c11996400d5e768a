"""
Observability module - Logging, Metrics, and Tracing.
"""

from storekit_bridge.observability.logging import get_logger, log_context, setup_logging
from storekit_bridge.observability.metrics import metrics
from storekit_bridge.observability.tracing import setup_tracing, trace_operation

__all__ = [
    "get_logger",
    "log_context",
    "setup_logging",
    "metrics",
    "setup_tracing",
    "trace_operation",
]
