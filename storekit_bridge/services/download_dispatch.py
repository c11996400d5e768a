"""
Download State Machine - fans hosted-content download updates out to consumers.

The state set is flat; the native layer owns transition order.
"""

from collections.abc import Callable
from typing import Any

from structlog import get_logger

from storekit_bridge.models.domain import Configuration, DownloadRecord, NotifyResult
from storekit_bridge.models.events import DownloadState, DownloadUpdate, EventFamily
from storekit_bridge.observability.metrics import metrics
from storekit_bridge.services.call_safety import CallSafetyHarness
from storekit_bridge.services.pending_events import PendingEventBuffer

logger = get_logger(__name__)


class DownloadStateMachine:
    """Dispatches download updates to consumer callbacks."""

    def __init__(
        self,
        buffer: PendingEventBuffer,
        harness: CallSafetyHarness,
        configuration: Callable[[], Configuration],
    ) -> None:
        self.buffer = buffer
        self.harness = harness
        self.configuration = configuration

    def on_event(
        self,
        state: str | None,
        error_code: Any = None,
        error_text: str | None = None,
        transaction_id: str | None = None,
        product_id: str | None = None,
        receipt: str | None = None,
        progress: int | None = None,
        time_remaining: float | None = None,
    ) -> None:
        """Inbound download update from the native layer."""
        update = DownloadUpdate(
            state=state,
            error_code=error_code,
            error_text=error_text,
            transaction_id=transaction_id,
            product_id=product_id,
            receipt=receipt,
            progress=progress,
            time_remaining=time_remaining,
        )
        if self.buffer.accept(EventFamily.DOWNLOAD, update):
            return
        self.dispatch(update)

    def dispatch(self, update: DownloadUpdate) -> NotifyResult | None:
        state = DownloadState.parse(update.state)
        if state is None:
            logger.debug("download_state_ignored", state=update.state)
            return None

        record = DownloadRecord(
            transaction_id=update.transaction_id,
            product_id=update.product_id,
            state=state,
            progress=update.progress,
            time_remaining=update.time_remaining,
        )
        metrics.record_event(EventFamily.DOWNLOAD.value, state.name.lower())
        options = self.configuration()
        ids = (record.transaction_id, record.product_id)

        if state is DownloadState.ACTIVE:
            return self.harness.notify(
                options.download_active,
                "options.downloadActive",
                *ids,
                record.progress,
                record.time_remaining,
            )
        elif state is DownloadState.FAILED:
            logger.info(
                "download_failed",
                transaction_id=record.transaction_id,
                product_id=record.product_id,
                error_code=update.error_code,
            )
            return self.harness.notify(
                options.download_failed,
                "options.downloadFailed",
                *ids,
                update.error_code,
                update.error_text,
            )
        elif state is DownloadState.CANCELLED:
            return self.harness.notify(options.download_cancelled, "options.downloadCancelled", *ids)
        elif state is DownloadState.FINISHED:
            return self.harness.notify(options.download_finished, "options.downloadFinished", *ids)
        elif state is DownloadState.PAUSED:
            return self.harness.notify(options.download_paused, "options.downloadPaused", *ids)
        else:
            return self.harness.notify(options.download_waiting, "options.downloadWaiting", *ids)
