"""
Call Safety Harness - isolates consumer callbacks from the dispatch loop.

Every consumer-visible notification goes through notify(). A callback that
raises is logged and counted; the exception never reaches the caller.
"""

from collections.abc import Callable
from typing import Any

from structlog import get_logger

from storekit_bridge.models.domain import NotifyResult
from storekit_bridge.observability.metrics import metrics

logger = get_logger(__name__)


class CallSafetyHarness:
    """Best-effort invoker for consumer callbacks."""

    def notify(
        self,
        callback: Callable[..., Any] | None,
        context: str,
        *args: Any,
    ) -> NotifyResult:
        """
        Invoke ``callback(*args)`` if present.

        Args:
            callback: Consumer callback, or None
            context: Label identifying the call site (e.g. "options.purchase")
            *args: Positional arguments for the callback

        Returns:
            NotifyResult describing whether the callback ran and what it raised
        """
        if callback is None:
            return NotifyResult(context=context, invoked=False)

        try:
            callback(*args)
        except Exception as exc:
            logger.warning(
                "callback_raised",
                context=context,
                error=str(exc),
                error_type=type(exc).__name__,
                exc_info=True,
            )
            metrics.record_callback_error(context)
            return NotifyResult(context=context, invoked=True, error=exc)

        return NotifyResult(context=context, invoked=True)
