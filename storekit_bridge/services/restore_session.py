"""
Restore Session Tracker - one terminal notification per restore request.
"""

from collections.abc import Callable
from typing import Any

from structlog import get_logger

from storekit_bridge.models.domain import Configuration, NotifyResult
from storekit_bridge.services.call_safety import CallSafetyHarness
from storekit_bridge.services.transport import NativeChannel, NativeMethod

logger = get_logger(__name__)


class RestoreSessionTracker:
    """
    Gates restore-completed / restore-failed notifications.

    Restored transactions themselves arrive as Restored transaction updates;
    this tracker only handles the end-of-restore signal.
    """

    def __init__(
        self,
        harness: CallSafetyHarness,
        channel: NativeChannel,
        configuration: Callable[[], Configuration],
    ) -> None:
        self.harness = harness
        self.channel = channel
        self.configuration = configuration
        self.needs_notification = False

    def begin_restore(self) -> None:
        self.needs_notification = True
        logger.info("restore_requested")
        self.channel.request(
            NativeMethod.RESTORE_COMPLETED_TRANSACTIONS,
            [],
            on_error=self._request_failed,
        )

    def _request_failed(self, message: Any = None) -> None:
        logger.warning("restore_request_failed", error=message)
        self.on_restore_failed(message)

    def on_restore_completed(self) -> NotifyResult | None:
        if not self._consume():
            return None
        logger.info("restore_completed")
        return self.harness.notify(self.configuration().restore_completed, "options.restoreCompleted")

    def on_restore_failed(self, error_code: Any = None) -> NotifyResult | None:
        if not self._consume():
            return None
        logger.info("restore_failed", error_code=error_code)
        return self.harness.notify(
            self.configuration().restore_failed, "options.restoreFailed", error_code
        )

    def _consume(self) -> bool:
        if not self.needs_notification:
            logger.debug("restore_notification_suppressed")
            return False
        self.needs_notification = False
        return True
