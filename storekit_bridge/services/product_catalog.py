"""
Product Catalog - loads product info and remembers which ids may be purchased.
"""

import json
from collections.abc import Callable
from typing import Any

from structlog import get_logger

from storekit_bridge.exceptions import ErrorCode
from storekit_bridge.models.domain import Configuration
from storekit_bridge.services.call_safety import CallSafetyHarness
from storekit_bridge.services.transport import NativeChannel, NativeMethod

logger = get_logger(__name__)


class ProductCatalog:
    """Tracks the product ids of the most recent successful load."""

    def __init__(
        self,
        harness: CallSafetyHarness,
        channel: NativeChannel,
        configuration: Callable[[], Configuration],
    ) -> None:
        self.harness = harness
        self.channel = channel
        self.configuration = configuration
        self.known_product_ids: frozenset[str] = frozenset()

    def is_known(self, product_id: str) -> bool:
        return product_id in self.known_product_ids

    def load(
        self,
        product_ids: str | list[str] | None,
        on_success: Callable[..., Any] | None = None,
        on_error: Callable[..., Any] | None = None,
    ) -> None:
        """
        Fetch product information from the native layer.

        Args:
            product_ids: A product id or a list of them
            on_success: Called with (valid_products, invalid_product_ids)
            on_error: Called with (ErrorCode.LOAD, message)
        """
        if isinstance(product_ids, str):
            product_ids = [product_ids]
        if not product_ids:
            self.harness.notify(on_success, "load.success", [], [])
            return

        requested = list(product_ids)
        if not all(isinstance(product_id, str) for product_id in requested):
            message = f"invalid productIds given to store.load: {json.dumps(requested, default=str)}"
            logger.warning("product_load_rejected", product_ids=repr(requested))
            self._report(on_error, message)
            return

        def loaded(result: Any = None) -> None:
            payload = list(result or [])
            valid = payload[0] if len(payload) > 0 else []
            invalid = payload[1] if len(payload) > 1 else []
            self.known_product_ids = frozenset(requested)
            logger.info("products_loaded", valid_count=len(valid), invalid=list(invalid))
            self.harness.notify(on_success, "load.success", valid, invalid)

        def failed(message: Any = None) -> None:
            logger.warning("product_load_failed", error=message)
            self._report(on_error, f"Load failed: {message}")

        logger.info("products_load_requested", product_ids=requested)
        self.channel.request(NativeMethod.LOAD, [requested], loaded, failed)

    def _report(self, on_error: Callable[..., Any] | None, message: str) -> None:
        self.harness.notify(self.configuration().error, "options.error", ErrorCode.LOAD, message)
        self.harness.notify(on_error, "load.error", ErrorCode.LOAD, message)
