"""
Domain Models - Internal bridge state using dataclasses.

NO DICTIONARIES - All data structures are strongly typed dataclasses.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any

from storekit_bridge.models.events import DownloadState, EventFamily, TransactionState


def noop(*args: Any) -> None:
    """Default consumer callback."""
    return None


class EngineState(str, Enum):
    """Bridge lifecycle."""

    UNINITIALIZED = "uninitialized"
    READY = "ready"


@dataclass(frozen=True)
class TransactionRecord:
    """A transaction event as seen by the dispatcher."""

    product_id: str | None
    transaction_id: str | None
    original_transaction_id: str | None
    state: TransactionState | None  # None for states this bridge does not know

    def is_indexable(self) -> bool:
        """Only events carrying both ids update the product index."""
        return bool(self.product_id and self.transaction_id)


@dataclass(frozen=True)
class DownloadRecord:
    """A download event; lives only for the duration of one dispatch."""

    transaction_id: str | None
    product_id: str | None
    state: DownloadState
    progress: int | None = None  # 0-100
    time_remaining: float | None = None  # seconds


@dataclass(frozen=True)
class ErrorContext:
    """Extra argument of ``error`` for failed transactions."""

    product_id: str | None


@dataclass(frozen=True)
class ReceiptSnapshot:
    """App Store receipt and bundle info returned by the native layer."""

    app_store_receipt: str  # base64
    bundle_identifier: str | None
    bundle_short_version: str | None
    bundle_numeric_version: str | None
    bundle_signature: str | None

    @classmethod
    def from_native(cls, args: list[Any]) -> "ReceiptSnapshot":
        """Build from the native 5-element payload; missing trailing values become None."""
        padded = list(args) + [None] * (5 - len(args))
        return cls(
            app_store_receipt=padded[0],
            bundle_identifier=padded[1],
            bundle_short_version=padded[2],
            bundle_numeric_version=padded[3],
            bundle_signature=padded[4],
        )


@dataclass(frozen=True)
class NotifyResult:
    """Outcome of one harness call. Dispatch ignores it; tests don't."""

    context: str
    invoked: bool
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


# Listeners whose presence makes a family dispatchable under the
# until_listener buffering policy.
_FAMILY_LISTENERS: dict[EventFamily, tuple[str, ...]] = {
    EventFamily.TRANSACTION: ("purchase", "error", "restore"),
    EventFamily.DOWNLOAD: (
        "download_active",
        "download_cancelled",
        "download_failed",
        "download_finished",
        "download_paused",
        "download_waiting",
    ),
}

# Original JavaScript option names accepted by from_mapping().
_CAMEL_CASE_ALIASES: dict[str, str] = {
    "purchaseEnqueued": "purchase_enqueued",
    "restoreCompleted": "restore_completed",
    "restoreFailed": "restore_failed",
    "receiptsRefreshed": "receipts_refreshed",
    "downloadActive": "download_active",
    "downloadCancelled": "download_cancelled",
    "downloadFailed": "download_failed",
    "downloadFinished": "download_finished",
    "downloadPaused": "download_paused",
    "downloadWaiting": "download_waiting",
}


@dataclass(frozen=True)
class Configuration:
    """
    Consumer callbacks supplied at init.

    Missing or non-callable entries are replaced by ``noop`` on construction,
    so every callback is safe to invoke. Names of rejected non-callables are
    kept in ``rejected`` for the bridge to report.
    """

    ready: Callable[..., Any] = noop
    error: Callable[..., Any] = noop
    purchase: Callable[..., Any] = noop
    purchase_enqueued: Callable[..., Any] = noop
    purchasing: Callable[..., Any] = noop
    deferred: Callable[..., Any] = noop
    finish: Callable[..., Any] = noop
    restore: Callable[..., Any] = noop
    restore_completed: Callable[..., Any] = noop
    restore_failed: Callable[..., Any] = noop
    receipts_refreshed: Callable[..., Any] = noop
    download_active: Callable[..., Any] = noop
    download_cancelled: Callable[..., Any] = noop
    download_failed: Callable[..., Any] = noop
    download_finished: Callable[..., Any] = noop
    download_paused: Callable[..., Any] = noop
    download_waiting: Callable[..., Any] = noop
    paused: Callable[..., Any] = noop
    resumed: Callable[..., Any] = noop
    cancelled: Callable[..., Any] = noop
    rejected: tuple[str, ...] = field(default=(), compare=False)

    def __post_init__(self) -> None:
        rejected = list(self.rejected)
        for name in self.callback_names():
            value = getattr(self, name)
            if value is None:
                object.__setattr__(self, name, noop)
            elif not callable(value):
                object.__setattr__(self, name, noop)
                rejected.append(name)
        object.__setattr__(self, "rejected", tuple(rejected))

    @classmethod
    def callback_names(cls) -> list[str]:
        return [f.name for f in fields(cls) if f.name != "rejected"]

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any] | None) -> "Configuration":
        """Build from a mapping of snake_case or camelCase names; unknown keys are dropped."""
        known = set(cls.callback_names())
        kwargs: dict[str, Any] = {}
        for key, value in (options or {}).items():
            name = _CAMEL_CASE_ALIASES.get(key, key)
            if name in known:
                kwargs[name] = value
        return cls(**kwargs)

    def has_listener(self, family: EventFamily) -> bool:
        """True when at least one non-default consumer is registered for the family."""
        return any(getattr(self, name) is not noop for name in _FAMILY_LISTENERS[family])
