"""
Tests for product loading.
"""

from storekit_bridge.exceptions import ErrorCode


class TestLoad:
    """Tests for load()."""

    def test_empty_input_succeeds_without_native_call(self, ready_bridge, transport, recorder):
        ready_bridge.load([], recorder.callback("ok"))
        ready_bridge.load(None, recorder.callback("ok"))
        assert recorder.calls == [("ok", ([], [])), ("ok", ([], []))]
        assert "load" not in transport.methods()

    def test_single_string_is_wrapped(self, ready_bridge, transport):
        ready_bridge.load("com.app.gold")
        assert transport.last("load").args == [["com.app.gold"]]

    def test_success_passes_valid_and_invalid(self, ready_bridge, transport, recorder):
        ready_bridge.load(["com.app.gold", "com.app.bogus"], recorder.callback("ok"))
        product = {"id": "com.app.gold", "title": "Gold", "price": "$0.99"}
        transport.succeed("load", [[product], ["com.app.bogus"]])
        assert recorder.calls == [("ok", ([product], ["com.app.bogus"]))]
        assert ready_bridge.catalog.is_known("com.app.gold")

    def test_requested_ids_become_known_only_on_success(self, ready_bridge, transport):
        ready_bridge.load(["com.app.gold"])
        assert not ready_bridge.catalog.is_known("com.app.gold")
        transport.succeed("load", [[], []])
        assert ready_bridge.catalog.is_known("com.app.gold")

    def test_latest_successful_load_replaces_known_set(self, ready_bridge, transport):
        ready_bridge.load(["a"])
        transport.succeed("load", [[], []])
        ready_bridge.load(["b"])
        transport.succeed("load", [[], []])
        assert ready_bridge.catalog.known_product_ids == frozenset({"b"})

    def test_non_string_ids_rejected(self, ready_bridge, transport, recorder):
        ready_bridge.load([42], recorder.callback("ok"), recorder.callback("error_cb"))
        expected = (ErrorCode.LOAD, "invalid productIds given to store.load: [42]")
        assert recorder.calls == [("error", expected), ("error_cb", expected)]
        assert "load" not in transport.methods()

    def test_native_failure(self, ready_bridge, transport, recorder):
        ready_bridge.load(["com.app.gold"], None, recorder.callback("error_cb"))
        transport.fail("load", "timeout")
        expected = (ErrorCode.LOAD, "Load failed: timeout")
        assert recorder.calls == [("error", expected), ("error_cb", expected)]
