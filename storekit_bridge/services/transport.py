"""
Native Transport Protocol - the RPC boundary to the purchase subsystem.

Requests are fire-and-forget: the transport later calls exactly one of the
success or error callbacks. Anything the native layer pushes on its own
(transaction updates, restore completion) arrives through the bridge's
inbound callbacks instead.
"""

from collections.abc import Callable
from enum import Enum
from typing import Any, Protocol

from structlog import get_logger

from storekit_bridge.exceptions import TransportError
from storekit_bridge.observability.metrics import metrics

logger = get_logger(__name__)

SuccessCallback = Callable[..., Any]
ErrorCallback = Callable[..., Any]


class NativeMethod(str, Enum):
    """Native methods used by the bridge."""

    SETUP = "setup"
    PURCHASE = "purchase"
    RESTORE_COMPLETED_TRANSACTIONS = "restoreCompletedTransactions"
    FINISH_TRANSACTION = "finishTransaction"
    LOAD = "load"
    APP_STORE_RECEIPT = "appStoreReceipt"
    APP_STORE_REFRESH_RECEIPT = "appStoreRefreshReceipt"
    CAN_MAKE_PAYMENTS = "canMakePayments"
    PAUSE = "pause"
    RESUME = "resume"
    CANCEL = "cancel"
    MANAGE_SUBSCRIPTIONS = "manageSubscriptions"
    MANAGE_BILLING = "manageBilling"
    PRESENT_CODE_REDEMPTION_SHEET = "presentCodeRedemptionSheet"


class NativeTransport(Protocol):
    """
    Native transport protocol.

    Implementations may raise TransportError when a request cannot be
    submitted at all; the bridge treats that as a failure of the request.
    """

    def invoke(
        self,
        method: str,
        args: list[Any],
        on_success: SuccessCallback | None,
        on_error: ErrorCallback | None,
    ) -> None:
        """
        Submit a native request.

        Args:
            method: Native method name (see NativeMethod)
            args: Positional arguments for the native method
            on_success: Called with the native result payload
            on_error: Called with the native error message
        """
        ...


class NativeChannel:
    """
    Wraps a NativeTransport with logging, metrics and TransportError handling.

    A request the transport refuses synchronously is reported through the
    request's own ``on_error`` with the transport's message, exactly like an
    asynchronous native failure.
    """

    def __init__(self, transport: NativeTransport) -> None:
        self.transport = transport

    def request(
        self,
        method: NativeMethod,
        args: list[Any] | None = None,
        on_success: SuccessCallback | None = None,
        on_error: ErrorCallback | None = None,
    ) -> None:
        name = method.value

        def succeeded(*result: Any) -> None:
            metrics.record_native_request(name, "success")
            if on_success is not None:
                on_success(*result)

        def failed(*error: Any) -> None:
            metrics.record_native_request(name, "failure")
            logger.info("native_request_failed", method=name, error=error[0] if error else None)
            if on_error is not None:
                on_error(*error)

        metrics.record_native_request(name, "sent")
        logger.debug("native_request_sent", method=name, arg_count=len(args or []))
        try:
            self.transport.invoke(name, list(args or []), succeeded, failed)
        except TransportError as exc:
            metrics.record_native_request(name, "rejected")
            logger.error("native_request_rejected", method=name, error=exc.message)
            if on_error is not None:
                on_error(exc.message)
