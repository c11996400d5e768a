"""
Tests for the receipt manager.
"""

from storekit_bridge.exceptions import ErrorCode
from storekit_bridge.models.domain import ReceiptSnapshot

NATIVE_RECEIPT = ["TUlJVC4uLg==", "com.app", "1.2", "120", "c2ln"]
SNAPSHOT = ReceiptSnapshot(
    app_store_receipt="TUlJVC4uLg==",
    bundle_identifier="com.app",
    bundle_short_version="1.2",
    bundle_numeric_version="120",
    bundle_signature="c2ln",
)


class TestRefreshReceipts:
    """Tests for refresh_receipts()."""

    def test_success_notifies_hook_then_caller(self, ready_bridge, transport, recorder):
        ready_bridge.refresh_receipts(recorder.callback("success_cb"), recorder.callback("error_cb"))
        transport.succeed("appStoreRefreshReceipt", NATIVE_RECEIPT)
        assert recorder.calls == [
            ("receipts_refreshed", (SNAPSHOT,)),
            ("success_cb", (SNAPSHOT,)),
        ]
        assert ready_bridge.receipt == SNAPSHOT

    def test_snapshot_cleared_while_outstanding(self, ready_bridge, transport):
        ready_bridge.load_receipts()
        transport.succeed("appStoreReceipt", NATIVE_RECEIPT)
        assert ready_bridge.receipt == SNAPSHOT
        ready_bridge.refresh_receipts()
        assert ready_bridge.receipt is None

    def test_failure_scenario(self, ready_bridge, transport, recorder):
        """Both error channels receive the refresh error; snapshot stays None."""
        ready_bridge.refresh_receipts(recorder.callback("success_cb"), recorder.callback("error_cb"))
        transport.fail("appStoreRefreshReceipt", "network down")
        expected = (ErrorCode.REFRESH_RECEIPTS, "Failed to refresh receipt: network down")
        assert recorder.calls == [("error", expected), ("error_cb", expected)]
        assert ready_bridge.receipt is None

    def test_transport_rejection_is_reported_as_failure(self, ready_bridge, transport, recorder):
        transport.rejected_methods.add("appStoreRefreshReceipt")
        ready_bridge.refresh_receipts(None, recorder.callback("error_cb"))
        assert recorder.named("error_cb") == [
            (ErrorCode.REFRESH_RECEIPTS, "Failed to refresh receipt: bridge not attached")
        ]


class TestLoadReceipts:
    """Tests for load_receipts()."""

    def test_success_is_passive(self, ready_bridge, transport, recorder):
        ready_bridge.load_receipts(recorder.callback("loaded"))
        transport.succeed("appStoreReceipt", NATIVE_RECEIPT)
        assert recorder.calls == [("loaded", (SNAPSHOT,))]

    def test_does_not_clear_snapshot(self, ready_bridge, transport):
        ready_bridge.load_receipts()
        transport.succeed("appStoreReceipt", NATIVE_RECEIPT)
        ready_bridge.load_receipts()
        assert ready_bridge.receipt == SNAPSHOT

    def test_failure(self, ready_bridge, transport, recorder):
        ready_bridge.load_receipts(recorder.callback("loaded"), recorder.callback("error_cb"))
        transport.fail("appStoreReceipt", "no receipt")
        expected = (ErrorCode.LOAD_RECEIPTS, "Failed to load receipt: no receipt")
        assert recorder.calls == [("error", expected), ("error_cb", expected)]


class TestReceiptSnapshot:
    """Tests for ReceiptSnapshot.from_native."""

    def test_short_payload_pads_with_none(self):
        snapshot = ReceiptSnapshot.from_native(["abc"])
        assert snapshot.app_store_receipt == "abc"
        assert snapshot.bundle_signature is None
