"""
Exception Classes and Error Codes.

Failures caused by the native subsystem are never raised at consumers; they
are reported to the configured ``error`` callback with an ``ErrorCode``.
The exception hierarchy covers the bridge's own collaborators.
"""

from enum import IntEnum


class ErrorCode(IntEnum):
    """Error codes passed as the first argument of ``error`` callbacks."""

    SETUP = 6777001
    LOAD = 6777002
    PURCHASE = 6777003
    LOAD_RECEIPTS = 6777004
    REFRESH_RECEIPTS = 6777011
    DOWNLOAD = 6777021


class BridgeError(Exception):
    """Base exception for all bridge errors."""

    pass


class ConfigurationError(BridgeError):
    """Raised when critical configuration is missing or invalid."""

    pass


class TransportError(BridgeError):
    """Raised by a native transport that cannot even submit a request."""

    def __init__(self, method: str, message: str) -> None:
        self.method = method
        self.message = message
        super().__init__(f"Native call {method} failed: {message}")


class StorageError(BridgeError):
    """Raised when the persisted key-value store cannot be read or written."""

    def __init__(self, key: str, message: str) -> None:
        self.key = key
        self.message = message
        super().__init__(f"Storage error for key {key}: {message}")
