"""
Pytest Configuration and Centralized Fixtures.

Provides reusable fakes for testing the bridge:
- A native transport that records requests and lets tests answer them
- A callback recorder that captures consumer notifications in order
- A manual scheduler for the queue watchdog
- Bridges in uninitialized and ready states
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import pytest

from storekit_bridge.bridge import StoreKitBridge
from storekit_bridge.config import BufferingPolicy
from storekit_bridge.exceptions import TransportError
from storekit_bridge.services.storage import InMemoryKeyValueStore

# ============================================================================
# Native transport
# ============================================================================


@dataclass
class NativeCall:
    """One request submitted to the fake transport."""

    method: str
    args: list[Any]
    on_success: Callable[..., Any] | None
    on_error: Callable[..., Any] | None


class FakeTransport:
    """Records native requests; tests resolve them with succeed()/fail()."""

    def __init__(self) -> None:
        self.calls: list[NativeCall] = []
        self.rejected_methods: set[str] = set()

    def invoke(
        self,
        method: str,
        args: list[Any],
        on_success: Callable[..., Any] | None,
        on_error: Callable[..., Any] | None,
    ) -> None:
        if method in self.rejected_methods:
            raise TransportError(method, "bridge not attached")
        self.calls.append(NativeCall(method, args, on_success, on_error))

    def methods(self) -> list[str]:
        return [call.method for call in self.calls]

    def last(self, method: str) -> NativeCall:
        for call in reversed(self.calls):
            if call.method == method:
                return call
        raise AssertionError(f"no native call to {method}; calls: {self.methods()}")

    def succeed(self, method: str, *payload: Any) -> None:
        call = self.last(method)
        assert call.on_success is not None
        call.on_success(*payload)

    def fail(self, method: str, *error: Any) -> None:
        call = self.last(method)
        assert call.on_error is not None
        call.on_error(*error)


# ============================================================================
# Consumer callbacks
# ============================================================================


@dataclass
class CallbackRecorder:
    """Creates named callbacks that append (name, args) to one shared log."""

    calls: list[tuple[str, tuple[Any, ...]]] = field(default_factory=list)

    def callback(self, name: str) -> Callable[..., None]:
        def _record(*args: Any) -> None:
            self.calls.append((name, args))

        return _record

    def raising(self, name: str, exc: Exception | None = None) -> Callable[..., None]:
        def _raise(*args: Any) -> None:
            self.calls.append((name, args))
            raise exc or RuntimeError(f"{name} exploded")

        return _raise

    def named(self, name: str) -> list[tuple[Any, ...]]:
        return [args for call_name, args in self.calls if call_name == name]

    def names(self) -> list[str]:
        return [call_name for call_name, _ in self.calls]

    def options(self, *names: str) -> dict[str, Callable[..., None]]:
        return {name: self.callback(name) for name in names}


ALL_CALLBACKS = (
    "ready",
    "error",
    "purchase",
    "purchase_enqueued",
    "purchasing",
    "deferred",
    "finish",
    "restore",
    "restore_completed",
    "restore_failed",
    "receipts_refreshed",
    "download_active",
    "download_cancelled",
    "download_failed",
    "download_finished",
    "download_paused",
    "download_waiting",
    "paused",
    "resumed",
    "cancelled",
)


# ============================================================================
# Scheduler
# ============================================================================


class ManualHandle:
    def __init__(self, scheduler: "ManualScheduler", delay: float, callback: Callable[[], None]):
        self.scheduler = scheduler
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Timer source advanced explicitly by tests."""

    def __init__(self) -> None:
        self.handles: list[ManualHandle] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualHandle:
        handle = ManualHandle(self, delay, callback)
        self.handles.append(handle)
        return handle

    def pending(self) -> list[ManualHandle]:
        return [handle for handle in self.handles if not handle.cancelled]

    def fire(self) -> int:
        """Fire every timer scheduled so far; returns how many fired."""
        due = self.pending()
        for handle in due:
            handle.cancelled = True
            handle.callback()
        return len(due)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def recorder() -> CallbackRecorder:
    return CallbackRecorder()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def bridge(transport: FakeTransport, store: InMemoryKeyValueStore) -> StoreKitBridge:
    """Uninitialized bridge using the default buffering policy."""
    return StoreKitBridge(transport, store=store, buffering_policy=BufferingPolicy.UNTIL_READY)


@pytest.fixture
def ready_bridge(
    bridge: StoreKitBridge, transport: FakeTransport, recorder: CallbackRecorder
) -> StoreKitBridge:
    """Bridge initialized with every callback recorded."""
    bridge.init(recorder.options(*ALL_CALLBACKS))
    transport.succeed("setup")
    recorder.calls.clear()
    return bridge

