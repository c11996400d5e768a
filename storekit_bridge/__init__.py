"""
StoreKit Bridge - purchase and download event reconciliation.
"""

from storekit_bridge.bridge import StoreKitBridge
from storekit_bridge.config import BufferingPolicy, Settings, get_settings
from storekit_bridge.exceptions import (
    BridgeError,
    ConfigurationError,
    ErrorCode,
    StorageError,
    TransportError,
)
from storekit_bridge.models.domain import Configuration, EngineState, ReceiptSnapshot
from storekit_bridge.services.storage import InMemoryKeyValueStore, JsonFileKeyValueStore
from storekit_bridge.services.transport import NativeMethod, NativeTransport
from storekit_bridge.services.watchdog import AsyncioScheduler

__all__ = [
    "AsyncioScheduler",
    "BridgeError",
    "BufferingPolicy",
    "Configuration",
    "ConfigurationError",
    "EngineState",
    "ErrorCode",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "NativeMethod",
    "NativeTransport",
    "ReceiptSnapshot",
    "Settings",
    "StorageError",
    "StoreKitBridge",
    "TransportError",
    "get_settings",
]
