"""
Tests for the key-value stores.
"""

import json

import pytest

from storekit_bridge.exceptions import StorageError
from storekit_bridge.services.storage import InMemoryKeyValueStore, JsonFileKeyValueStore


class TestInMemoryKeyValueStore:
    """Tests for InMemoryKeyValueStore."""

    def test_get_missing_returns_none(self):
        assert InMemoryKeyValueStore().get("missing") is None

    def test_set_then_get(self):
        store = InMemoryKeyValueStore()
        store.set("k", "v")
        assert store.get("k") == "v"
        assert "k" in store

    def test_delete_missing_key_is_ignored(self):
        store = InMemoryKeyValueStore({"k": "v"})
        store.delete("other")
        store.delete("k")
        assert store.get("k") is None


class TestJsonFileKeyValueStore:
    """Tests for JsonFileKeyValueStore."""

    def test_missing_file_reads_as_empty(self, tmp_path):
        store = JsonFileKeyValueStore(tmp_path / "state.json")
        assert store.get("anything") is None

    def test_values_survive_new_instance(self, tmp_path):
        path = tmp_path / "nested" / "state.json"
        JsonFileKeyValueStore(path).set("k", "v")
        assert JsonFileKeyValueStore(path).get("k") == "v"

    def test_set_keeps_other_keys(self, tmp_path):
        store = JsonFileKeyValueStore(tmp_path / "state.json")
        store.set("a", "1")
        store.set("b", "2")
        assert json.loads((tmp_path / "state.json").read_text()) == {"a": "1", "b": "2"}

    def test_write_leaves_no_temp_files(self, tmp_path):
        store = JsonFileKeyValueStore(tmp_path / "state.json")
        store.set("a", "1")
        store.set("a", "2")
        assert sorted(p.name for p in tmp_path.iterdir()) == ["state.json"]

    def test_delete(self, tmp_path):
        store = JsonFileKeyValueStore(tmp_path / "state.json")
        store.set("a", "1")
        store.delete("a")
        assert store.get("a") is None

    def test_corrupt_file_raises_storage_error(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{not json")
        with pytest.raises(StorageError, match="unreadable"):
            JsonFileKeyValueStore(path).get("a")

    def test_non_object_file_raises_storage_error(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("[1, 2]")
        with pytest.raises(StorageError, match="not a JSON object"):
            JsonFileKeyValueStore(path).get("a")
