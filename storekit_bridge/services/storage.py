"""
Key-Value Storage - durable string storage for bridge state.

The bridge only needs get/set/delete by string key. Two implementations are
provided: an in-memory store and a JSON file store that replaces its file
atomically on every write so a crash never leaves partial state behind.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Protocol

from structlog import get_logger

from storekit_bridge.exceptions import StorageError

logger = get_logger(__name__)


class KeyValueStore(Protocol):
    """Persisted key-value storage protocol."""

    def get(self, key: str) -> str | None:
        """Return the stored value, or None if the key is absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""
        ...

    def delete(self, key: str) -> None:
        """Remove a key; absent keys are ignored."""
        ...


class InMemoryKeyValueStore:
    """Process-local store. Survives bridge instances, not restarts."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._data


class JsonFileKeyValueStore:
    """
    Store backed by a single JSON object file.

    Writes go to a temporary file in the same directory which then replaces
    the target with os.replace(), so readers see either the old or the new
    content.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _read_all(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise StorageError(str(self.path), f"unreadable store file: {exc}") from exc
        if not isinstance(data, dict):
            raise StorageError(str(self.path), "store file is not a JSON object")
        return data

    def _write_all(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, self.path)
        except OSError as exc:
            Path(tmp_path).unlink(missing_ok=True)
            raise StorageError(str(self.path), f"write failed: {exc}") from exc

    def get(self, key: str) -> str | None:
        value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)
        logger.debug("storage_key_written", key=key, path=str(self.path))

    def delete(self, key: str) -> None:
        data = self._read_all()
        if key in data:
            del data[key]
            self._write_all(data)
            logger.debug("storage_key_deleted", key=key, path=str(self.path))
