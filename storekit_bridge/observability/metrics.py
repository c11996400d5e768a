"""
Metrics Collection with Prometheus.

Exposes event-flow metrics for the bridge.
"""

from enum import Enum
from typing import Callable

from prometheus_client import Counter, Info

from storekit_bridge.config import settings


class MetricLabels(str, Enum):
    """Standard metric label names."""

    FAMILY = "family"
    STATE = "state"
    CONTEXT = "context"
    METHOD = "method"
    OUTCOME = "outcome"


class BridgeMetrics:
    """
    Centralized metrics for the StoreKit bridge.

    Covers:
    - Inbound events (received, buffered, replayed)
    - Consumer callback failures
    - Native requests (success/failure)
    """

    def __init__(self) -> None:
        """Initialize all Prometheus metrics."""

        # ====================================================================
        # Service Info
        # ====================================================================
        self.service_info = Info(
            "storekit_bridge_service",
            "Service information",
        )
        self.service_info.info(
            {
                "version": settings.service_version,
                "service_name": settings.service_name,
            }
        )

        # ====================================================================
        # Event Metrics
        # ====================================================================
        self.events_received_total = Counter(
            "storekit_bridge_events_received_total",
            "Inbound events dispatched to a state machine",
            [MetricLabels.FAMILY.value, MetricLabels.STATE.value],
        )

        self.events_buffered_total = Counter(
            "storekit_bridge_events_buffered_total",
            "Inbound events held until their family became dispatchable",
            [MetricLabels.FAMILY.value],
        )

        self.events_replayed_total = Counter(
            "storekit_bridge_events_replayed_total",
            "Buffered events replayed",
            [MetricLabels.FAMILY.value],
        )

        # ====================================================================
        # Callback / Native Metrics
        # ====================================================================
        self.callback_errors_total = Counter(
            "storekit_bridge_callback_errors_total",
            "Exceptions raised by consumer callbacks",
            [MetricLabels.CONTEXT.value],
        )

        self.native_requests_total = Counter(
            "storekit_bridge_native_requests_total",
            "Requests sent to the native transport",
            [MetricLabels.METHOD.value, MetricLabels.OUTCOME.value],
        )

    # ========================================================================
    # Helper Methods
    # ========================================================================

    def record_event(self, family: str, state: str) -> None:
        if settings.metrics_enabled:
            self.events_received_total.labels(family=family, state=state).inc()

    def record_buffered(self, family: str) -> None:
        if settings.metrics_enabled:
            self.events_buffered_total.labels(family=family).inc()

    def record_replayed(self, family: str, count: int) -> None:
        if settings.metrics_enabled and count:
            self.events_replayed_total.labels(family=family).inc(count)

    def record_callback_error(self, context: str) -> None:
        if settings.metrics_enabled:
            self.callback_errors_total.labels(context=context).inc()

    def record_native_request(self, method: str, outcome: str) -> None:
        """Record a native request outcome: sent, success, failure or rejected."""
        if settings.metrics_enabled:
            self.native_requests_total.labels(method=method, outcome=outcome).inc()


# Global metrics instance
metrics = BridgeMetrics()


def get_metrics_handler() -> Callable[[], bytes]:
    """
    Get Prometheus exposition handler.

    Usage:
        handler = get_metrics_handler()
        body = handler()
    """
    from prometheus_client import REGISTRY, generate_latest

    def metrics_endpoint() -> bytes:
        return generate_latest(REGISTRY)

    return metrics_endpoint
