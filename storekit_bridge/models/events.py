"""
Inbound event models - the native layer's event vocabulary.

States arrive as strings; they are parsed into closed enums and anything
unrecognized parses to None so dispatchers can ignore it explicitly.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class EventFamily(str, Enum):
    """Inbound event families, each with its own queue and state machine."""

    TRANSACTION = "transaction"
    DOWNLOAD = "download"


class TransactionState(str, Enum):
    """Payment transaction states reported by the native layer."""

    PURCHASING = "PaymentTransactionStatePurchasing"
    PURCHASED = "PaymentTransactionStatePurchased"
    DEFERRED = "PaymentTransactionStateDeferred"
    FAILED = "PaymentTransactionStateFailed"
    RESTORED = "PaymentTransactionStateRestored"
    FINISHED = "PaymentTransactionStateFinished"

    @classmethod
    def parse(cls, value: Any) -> "TransactionState | None":
        try:
            return cls(value)
        except ValueError:
            return None


class DownloadState(str, Enum):
    """Hosted-content download states reported by the native layer."""

    ACTIVE = "DownloadStateActive"
    CANCELLED = "DownloadStateCancelled"
    FAILED = "DownloadStateFailed"
    FINISHED = "DownloadStateFinished"
    PAUSED = "DownloadStatePaused"
    WAITING = "DownloadStateWaiting"

    @classmethod
    def parse(cls, value: Any) -> "DownloadState | None":
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass(frozen=True)
class TransactionUpdate:
    """Raw transaction callback arguments, in native positional order."""

    state: str | None
    error_code: Any = None
    error_text: str | None = None
    transaction_id: str | None = None
    product_id: str | None = None
    receipt: str | None = None
    original_transaction_id: str | None = None


@dataclass(frozen=True)
class DownloadUpdate:
    """Raw download callback arguments, in native positional order."""

    state: str | None
    error_code: Any = None
    error_text: str | None = None
    transaction_id: str | None = None
    product_id: str | None = None
    receipt: str | None = None
    progress: int | None = None
    time_remaining: float | None = None


@dataclass(frozen=True)
class PendingEvent:
    """An inbound update held until its family becomes dispatchable."""

    family: EventFamily
    update: TransactionUpdate | DownloadUpdate
    sequence: int  # arrival order across both families
