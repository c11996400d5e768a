"""
Receipt Manager - loads and refreshes the App Store receipt snapshot.

refresh() is an active request (clears the snapshot and notifies the
configured receipts_refreshed hook); load() is a passive read.
"""

from collections.abc import Callable
from typing import Any

from structlog import get_logger

from storekit_bridge.exceptions import ErrorCode
from storekit_bridge.models.domain import Configuration, ReceiptSnapshot
from storekit_bridge.services.call_safety import CallSafetyHarness
from storekit_bridge.services.transport import NativeChannel, NativeMethod

logger = get_logger(__name__)


class ReceiptManager:
    """Owns the current ReceiptSnapshot."""

    def __init__(
        self,
        harness: CallSafetyHarness,
        channel: NativeChannel,
        configuration: Callable[[], Configuration],
    ) -> None:
        self.harness = harness
        self.channel = channel
        self.configuration = configuration
        self.snapshot: ReceiptSnapshot | None = None

    def _store(self, payload: Any) -> ReceiptSnapshot:
        snapshot = ReceiptSnapshot.from_native(list(payload or []))
        logger.info(
            "receipt_loaded",
            bundle_identifier=snapshot.bundle_identifier,
            bundle_short_version=snapshot.bundle_short_version,
            bundle_numeric_version=snapshot.bundle_numeric_version,
            has_receipt=bool(snapshot.app_store_receipt),
        )
        self.snapshot = snapshot
        return snapshot

    def refresh(
        self,
        success_cb: Callable[..., Any] | None = None,
        error_cb: Callable[..., Any] | None = None,
    ) -> None:
        """Request a fresh receipt; the snapshot stays None until it arrives."""

        def loaded(payload: Any = None) -> None:
            snapshot = self._store(payload)
            self.harness.notify(
                self.configuration().receipts_refreshed, "options.receiptsRefreshed", snapshot
            )
            self.harness.notify(success_cb, "refreshReceipts.success", snapshot)

        def failed(message: Any = None) -> None:
            text = f"Failed to refresh receipt: {message}"
            logger.warning("receipt_refresh_failed", error=message)
            self.harness.notify(
                self.configuration().error, "options.error", ErrorCode.REFRESH_RECEIPTS, text
            )
            self.harness.notify(error_cb, "refreshReceipts.error", ErrorCode.REFRESH_RECEIPTS, text)

        self.snapshot = None
        logger.info("receipt_refresh_requested")
        self.channel.request(NativeMethod.APP_STORE_REFRESH_RECEIPT, [], loaded, failed)

    def load(
        self,
        callback: Callable[..., Any] | None = None,
        error_cb: Callable[..., Any] | None = None,
    ) -> None:
        """Read the receipt the device already has."""

        def loaded(payload: Any = None) -> None:
            snapshot = self._store(payload)
            self.harness.notify(callback, "loadReceipts.callback", snapshot)

        def failed(message: Any = None) -> None:
            text = f"Failed to load receipt: {message}"
            logger.warning("receipt_load_failed", error=message)
            self.harness.notify(
                self.configuration().error, "options.error", ErrorCode.LOAD_RECEIPTS, text
            )
            self.harness.notify(error_cb, "loadReceipts.error", ErrorCode.LOAD_RECEIPTS, text)

        logger.info("receipt_load_requested")
        self.channel.request(NativeMethod.APP_STORE_RECEIPT, [], loaded, failed)
