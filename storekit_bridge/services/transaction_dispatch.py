"""
Transaction State Machine - interprets payment transaction updates.

Purchasing -> {Purchased, Failed, Deferred}; Restored and Finished are
reached independently. Every state except Purchasing is terminal for this
dispatcher; Purchasing only notifies and waits for the native follow-up.
"""

from collections.abc import Callable
from typing import Any

from structlog import get_logger

from storekit_bridge.exceptions import ErrorCode
from storekit_bridge.models.domain import (
    Configuration,
    ErrorContext,
    NotifyResult,
    TransactionRecord,
)
from storekit_bridge.models.events import EventFamily, TransactionState, TransactionUpdate
from storekit_bridge.observability.metrics import metrics
from storekit_bridge.services.call_safety import CallSafetyHarness
from storekit_bridge.services.pending_events import PendingEventBuffer
from storekit_bridge.services.product_catalog import ProductCatalog
from storekit_bridge.services.transaction_index import PersistedTransactionIndex
from storekit_bridge.services.transport import NativeChannel, NativeMethod

logger = get_logger(__name__)

UNKNOWN_PRODUCT_MESSAGE = "Trying to purchase an unknown product."


class TransactionStateMachine:
    """Dispatches transaction updates to consumer callbacks."""

    def __init__(
        self,
        buffer: PendingEventBuffer,
        index: PersistedTransactionIndex,
        harness: CallSafetyHarness,
        configuration: Callable[[], Configuration],
        catalog: ProductCatalog,
        channel: NativeChannel,
    ) -> None:
        self.buffer = buffer
        self.index = index
        self.harness = harness
        self.configuration = configuration
        self.catalog = catalog
        self.channel = channel

    def on_event(
        self,
        state: str | None,
        error_code: Any = None,
        error_text: str | None = None,
        transaction_id: str | None = None,
        product_id: str | None = None,
        receipt: str | None = None,
        original_transaction_id: str | None = None,
    ) -> None:
        """Inbound transaction update from the native layer."""
        update = TransactionUpdate(
            state=state,
            error_code=error_code,
            error_text=error_text,
            transaction_id=transaction_id,
            product_id=product_id,
            receipt=receipt,
            original_transaction_id=original_transaction_id,
        )
        if self.buffer.accept(EventFamily.TRANSACTION, update):
            return
        self.dispatch(update)

    def dispatch(self, update: TransactionUpdate) -> NotifyResult | None:
        """
        Apply one update: index it, then notify the matching callback.

        Returns:
            The harness result, or None for unrecognized states
        """
        state = TransactionState.parse(update.state)
        record = TransactionRecord(
            product_id=update.product_id,
            transaction_id=update.transaction_id,
            original_transaction_id=update.original_transaction_id,
            state=state,
        )
        if record.is_indexable():
            logger.info(
                "transaction_in_progress",
                product_id=record.product_id,
                transaction_id=record.transaction_id,
            )
            self.index.record(record.product_id, record.transaction_id)

        if state is None:
            logger.debug("transaction_state_ignored", state=update.state)
            return None

        metrics.record_event(EventFamily.TRANSACTION.value, state.name.lower())
        options = self.configuration()

        if state is TransactionState.PURCHASING:
            return self.harness.notify(options.purchasing, "options.purchasing", record.product_id)
        elif state is TransactionState.PURCHASED:
            return self.harness.notify(
                options.purchase,
                "options.purchase",
                record.transaction_id,
                record.product_id,
                record.original_transaction_id,
            )
        elif state is TransactionState.DEFERRED:
            return self.harness.notify(options.deferred, "options.deferred", record.product_id)
        elif state is TransactionState.FAILED:
            return self.harness.notify(
                options.error,
                "options.error",
                update.error_code,
                update.error_text,
                ErrorContext(product_id=record.product_id),
            )
        elif state is TransactionState.RESTORED:
            return self.harness.notify(
                options.restore, "options.restore", record.transaction_id, record.product_id
            )
        else:
            # FINISHED; needs no prior record for the product.
            return self.harness.notify(
                options.finish, "options.finish", record.transaction_id, record.product_id
            )

    def purchase(
        self,
        product_id: str,
        quantity: Any = 1,
        application_username: str | None = None,
        discount: dict[str, Any] | None = None,
    ) -> None:
        """
        Ask the native layer to start a purchase.

        Only products from the last successful load may be purchased. The
        native success callback means the payment was queued; the outcome
        arrives later as a transaction update.
        """
        quantity = _coerce_quantity(quantity)
        options = self.configuration()

        if not self.catalog.is_known(product_id):
            logger.warning(
                "purchase_unknown_product",
                product_id=product_id,
                hint="load the product with load() before purchasing it",
            )
            self.harness.notify(
                options.error,
                "options.error",
                ErrorCode.PURCHASE,
                UNKNOWN_PRODUCT_MESSAGE,
                product_id,
                quantity,
            )
            return

        def enqueued(*_: Any) -> None:
            logger.info("purchase_enqueued", product_id=product_id, quantity=quantity)
            self.harness.notify(
                self.configuration().purchase_enqueued,
                "options.purchaseEnqueued",
                product_id,
                quantity,
            )

        def failed(*_: Any) -> None:
            message = f"Purchasing {product_id} failed"
            logger.warning("purchase_failed", product_id=product_id, quantity=quantity)
            self.harness.notify(
                self.configuration().error,
                "options.error",
                ErrorCode.PURCHASE,
                message,
                product_id,
                quantity,
            )

        self.channel.request(
            NativeMethod.PURCHASE,
            [product_id, quantity, application_username, discount or {}],
            enqueued,
            failed,
        )


def _coerce_quantity(quantity: Any) -> int:
    """Positive integer quantity; anything else means 1."""
    try:
        value = int(quantity)
    except (TypeError, ValueError):
        return 1
    return value if value > 0 else 1
