"""
StoreKit Bridge - reconciles native purchase events with application callbacks.

The native layer may report transactions (for example unfinished ones from a
previous run) before the application has called init(). Such updates are
buffered and replayed, in arrival order and exactly once, as soon as their
event family becomes dispatchable.
"""

from collections.abc import Callable, Mapping
from typing import Any

from structlog import get_logger

from storekit_bridge.config import BufferingPolicy, get_settings
from storekit_bridge.exceptions import ErrorCode
from storekit_bridge.models.domain import Configuration, EngineState, ReceiptSnapshot
from storekit_bridge.models.events import EventFamily
from storekit_bridge.observability.logging import log_context
from storekit_bridge.observability.tracing import trace_operation
from storekit_bridge.services.call_safety import CallSafetyHarness
from storekit_bridge.services.download_dispatch import DownloadStateMachine
from storekit_bridge.services.pending_events import PendingEventBuffer
from storekit_bridge.services.product_catalog import ProductCatalog
from storekit_bridge.services.receipts import ReceiptManager
from storekit_bridge.services.restore_session import RestoreSessionTracker
from storekit_bridge.services.storage import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueStore,
)
from storekit_bridge.services.transaction_dispatch import TransactionStateMachine
from storekit_bridge.services.transaction_index import PersistedTransactionIndex
from storekit_bridge.services.transport import NativeChannel, NativeMethod, NativeTransport
from storekit_bridge.services.watchdog import QueueWatchdog, Scheduler

logger = get_logger(__name__)


class StoreKitBridge:
    """
    Consumer-facing API and native inbound callbacks.

    Usage:
        bridge = StoreKitBridge(transport)
        bridge.init({"purchase": on_purchase, "error": on_error})
        bridge.load(["com.app.gold"], on_products)
        bridge.purchase("com.app.gold")

        # called by the native layer
        bridge.updated_transaction_callback(
            "PaymentTransactionStatePurchased", None, None, "tx1", "com.app.gold", receipt, None
        )
    """

    def __init__(
        self,
        transport: NativeTransport,
        store: KeyValueStore | None = None,
        scheduler: Scheduler | None = None,
        buffering_policy: BufferingPolicy | None = None,
    ) -> None:
        """
        Args:
            transport: Native RPC channel
            store: Durable key-value store (defaults to the configured JSON
                file, or process memory when no storage_path is set)
            scheduler: Timer source for the queue watchdog; without one,
                still-buffered events wait for run_queue() or a re-init
            buffering_policy: Overrides settings.buffering_policy
        """
        settings = get_settings()
        self.buffering_policy = buffering_policy or settings.buffering_policy
        self.state = EngineState.UNINITIALIZED
        self.options = Configuration()

        if store is None:
            store = (
                JsonFileKeyValueStore(settings.storage_path)
                if settings.storage_path
                else InMemoryKeyValueStore()
            )
        self.store = store

        self.harness = CallSafetyHarness()
        self.channel = NativeChannel(transport)
        self.index = PersistedTransactionIndex(store)
        self.buffer = PendingEventBuffer(self.is_dispatchable)
        self.catalog = ProductCatalog(self.harness, self.channel, self._configuration)
        self.transactions = TransactionStateMachine(
            self.buffer,
            self.index,
            self.harness,
            self._configuration,
            self.catalog,
            self.channel,
        )
        self.downloads = DownloadStateMachine(self.buffer, self.harness, self._configuration)
        self.restore_session = RestoreSessionTracker(
            self.harness, self.channel, self._configuration
        )
        self.receipts = ReceiptManager(self.harness, self.channel, self._configuration)
        self.watchdog = QueueWatchdog(scheduler, tick=self.run_queue) if scheduler else None

    def _configuration(self) -> Configuration:
        return self.options

    # ========================================================================
    # Lifecycle
    # ========================================================================

    @property
    def initialized(self) -> bool:
        return self.state is EngineState.READY

    def is_dispatchable(self, family: EventFamily) -> bool:
        """Readiness predicate shared by both event families."""
        if self.state is not EngineState.READY:
            return False
        if self.buffering_policy is BufferingPolicy.UNTIL_LISTENER:
            return self.options.has_listener(family)
        return True

    def init(
        self,
        configuration: Configuration | Mapping[str, Any] | None = None,
        on_success: Callable[..., Any] | None = None,
        on_error: Callable[..., Any] | None = None,
    ) -> None:
        """
        Register consumer callbacks and set up the native layer.

        Calling init again replaces every callback at once.
        """
        if isinstance(configuration, Configuration):
            options = configuration
        else:
            options = Configuration.from_mapping(configuration)
        for name in options.rejected:
            logger.warning("callback_not_callable", callback=name)
        self.options = options

        def setup_ok(*_: Any) -> None:
            policy = self.buffering_policy.value
            with (
                log_context(buffering_policy=policy),
                trace_operation("bridge_setup", policy=policy),
            ):
                logger.info("setup_ok", pending=len(self.buffer))
                self.harness.notify(options.ready, "options.ready")
                self.harness.notify(on_success, "init.success")
                self.state = EngineState.READY
                self.process_pending_updates()

        def setup_failed(*_: Any) -> None:
            logger.error("setup_failed")
            self.harness.notify(options.error, "options.error", ErrorCode.SETUP, "Setup failed")
            self.harness.notify(on_error, "init.error")

        self.channel.request(NativeMethod.SETUP, [], setup_ok, setup_failed)

    def process_pending_updates(self) -> int:
        """Replay buffered transaction updates, then download updates."""
        replayed = self._replay_all()
        self._watch_leftovers()
        return replayed

    def run_queue(self) -> bool:
        """
        Watchdog tick: retry delivery of buffered updates.

        Returns:
            True while updates remain buffered
        """
        self._replay_all()
        return self.buffer.has_pending()

    def _replay_all(self) -> int:
        replayed = self.buffer.drain_and_replay(
            EventFamily.TRANSACTION, self.transactions.dispatch
        )
        replayed += self.buffer.drain_and_replay(EventFamily.DOWNLOAD, self.downloads.dispatch)
        return replayed

    def _watch_leftovers(self) -> None:
        if self.watchdog is None or not self.initialized:
            return
        stuck = [
            family
            for family in EventFamily
            if self.buffer.has_pending(family) and not self.is_dispatchable(family)
        ]
        if not stuck:
            return
        logger.info("pending_events_awaiting_listener", pending=len(self.buffer))
        self.watchdog.start()

    # ========================================================================
    # Native inbound callbacks
    # ========================================================================

    def updated_transaction_callback(
        self,
        state: str | None,
        error_code: Any = None,
        error_text: str | None = None,
        transaction_id: str | None = None,
        product_id: str | None = None,
        receipt: str | None = None,
        original_transaction_id: str | None = None,
    ) -> None:
        self.transactions.on_event(
            state,
            error_code,
            error_text,
            transaction_id,
            product_id,
            receipt,
            original_transaction_id,
        )
        self._watch_leftovers()

    def updated_download_callback(
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
        self.downloads.on_event(
            state,
            error_code,
            error_text,
            transaction_id,
            product_id,
            receipt,
            progress,
            time_remaining,
        )
        self._watch_leftovers()

    def restore_completed_transactions_finished(self) -> None:
        self.restore_session.on_restore_completed()

    def restore_completed_transactions_failed(self, error_code: Any = None) -> None:
        self.restore_session.on_restore_failed(error_code)

    # ========================================================================
    # Consumer API
    # ========================================================================

    def purchase(
        self,
        product_id: str,
        quantity: Any = 1,
        application_username: str | None = None,
        discount: dict[str, Any] | None = None,
    ) -> None:
        self.transactions.purchase(product_id, quantity, application_username, discount)

    def restore(self) -> None:
        self.restore_session.begin_restore()

    def finish(self, transaction_id: str) -> None:
        """Finish a transaction; the Finished update arrives from the native layer."""
        logger.info("finish_requested", transaction_id=transaction_id)
        self.channel.request(NativeMethod.FINISH_TRANSACTION, [transaction_id])

    def load(
        self,
        product_ids: str | list[str] | None,
        on_success: Callable[..., Any] | None = None,
        on_error: Callable[..., Any] | None = None,
    ) -> None:
        self.catalog.load(product_ids, on_success, on_error)

    def refresh_receipts(
        self,
        on_success: Callable[..., Any] | None = None,
        on_error: Callable[..., Any] | None = None,
    ) -> None:
        self.receipts.refresh(on_success, on_error)

    def load_receipts(
        self,
        on_callback: Callable[..., Any] | None = None,
        on_error: Callable[..., Any] | None = None,
    ) -> None:
        self.receipts.load(on_callback, on_error)

    @property
    def receipt(self) -> ReceiptSnapshot | None:
        return self.receipts.snapshot

    @property
    def transaction_for_product(self) -> dict[str, str]:
        return self.index.snapshot()

    def can_make_payments(
        self,
        on_success: Callable[..., Any] | None = None,
        on_error: Callable[..., Any] | None = None,
    ) -> None:
        def allowed(*result: Any) -> None:
            self.harness.notify(on_success, "canMakePayments.success", *result)

        def refused(*error: Any) -> None:
            self.harness.notify(on_error, "canMakePayments.error", *error)

        self.channel.request(NativeMethod.CAN_MAKE_PAYMENTS, [], allowed, refused)

    def pause(self) -> None:
        """Pause all active downloads."""
        self._download_control(NativeMethod.PAUSE, "paused", "Pausing")

    def resume(self) -> None:
        """Resume all paused downloads."""
        self._download_control(NativeMethod.RESUME, "resumed", "Resuming")

    def cancel(self) -> None:
        """Cancel all active downloads."""
        self._download_control(NativeMethod.CANCEL, "cancelled", "Cancelling")

    def _download_control(self, method: NativeMethod, acknowledgement: str, verb: str) -> None:
        def ok(*_: Any) -> None:
            logger.info("download_control_ok", method=method.value)
            self.harness.notify(
                getattr(self.options, acknowledgement), f"options.{acknowledgement}"
            )

        def failed(*_: Any) -> None:
            message = f"{verb} active downloads failed"
            logger.warning("download_control_failed", method=method.value)
            self.harness.notify(self.options.error, "options.error", ErrorCode.DOWNLOAD, message)

        self.channel.request(method, [], ok, failed)

    def manage_subscriptions(self) -> None:
        self.channel.request(NativeMethod.MANAGE_SUBSCRIPTIONS, [])

    def manage_billing(self) -> None:
        self.channel.request(NativeMethod.MANAGE_BILLING, [])

    def present_code_redemption_sheet(self) -> None:
        self.channel.request(NativeMethod.PRESENT_CODE_REDEMPTION_SHEET, [])
