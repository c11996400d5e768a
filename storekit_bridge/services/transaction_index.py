"""
Persisted Transaction Index - product id -> in-flight transaction id.

Last writer wins. Entries are never removed; stale ones only affect
diagnostic correlation.
"""

from pydantic import TypeAdapter, ValidationError
from structlog import get_logger

from storekit_bridge.config import settings
from storekit_bridge.exceptions import StorageError
from storekit_bridge.services.storage import KeyValueStore

logger = get_logger(__name__)

_INDEX_ADAPTER: TypeAdapter[dict[str, str]] = TypeAdapter(dict[str, str])


class PersistedTransactionIndex:
    """
    Durable mapping of product id to its latest transaction id.

    Loaded once from the key-value store; every update rewrites the key.
    Unreadable or malformed data starts an empty index instead of failing.
    """

    def __init__(
        self,
        store: KeyValueStore,
        key: str | None = None,
        legacy_keys: tuple[str, ...] | None = None,
    ) -> None:
        self.store = store
        self.key = key or settings.transaction_index_key
        self._entries: dict[str, str] = self._load()

        for legacy_key in (settings.legacy_receipt_key,) if legacy_keys is None else legacy_keys:
            self._drop_legacy(legacy_key)

    def _load(self) -> dict[str, str]:
        try:
            raw = self.store.get(self.key)
        except StorageError as exc:
            logger.warning("transaction_index_unreadable", key=self.key, error=str(exc))
            return {}
        if raw is None:
            return {}
        try:
            entries = _INDEX_ADAPTER.validate_json(raw)
        except ValidationError as exc:
            logger.warning(
                "transaction_index_malformed",
                key=self.key,
                error_count=exc.error_count(),
            )
            return {}
        logger.info("transaction_index_loaded", key=self.key, count=len(entries))
        return entries

    def _drop_legacy(self, legacy_key: str) -> None:
        try:
            if self.store.get(legacy_key) is not None:
                self.store.delete(legacy_key)
                logger.info("legacy_storage_key_removed", key=legacy_key)
        except StorageError as exc:
            logger.warning("legacy_storage_key_cleanup_failed", key=legacy_key, error=str(exc))

    def record(self, product_id: str, transaction_id: str) -> None:
        """Associate product_id with transaction_id and persist the index."""
        self._entries[product_id] = transaction_id
        try:
            self.store.set(self.key, _INDEX_ADAPTER.dump_json(self._entries).decode("utf-8"))
        except StorageError as exc:
            # The in-memory association still holds for this process.
            logger.error(
                "transaction_index_persist_failed",
                key=self.key,
                product_id=product_id,
                error=str(exc),
            )

    def get(self, product_id: str) -> str | None:
        return self._entries.get(product_id)

    def snapshot(self) -> dict[str, str]:
        """Copy of the current associations."""
        return dict(self._entries)

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
