"""
Tests for the restore session tracker.
"""

from storekit_bridge.models.events import TransactionState


class TestRestoreSession:
    """Exactly one terminal notification per restore()."""

    def test_restore_requests_native_restore(self, ready_bridge, transport):
        ready_bridge.restore()
        assert transport.last("restoreCompletedTransactions").args == []
        assert ready_bridge.restore_session.needs_notification is True

    def test_completed_notifies_once(self, ready_bridge, recorder):
        ready_bridge.restore()
        ready_bridge.restore_completed_transactions_finished()
        ready_bridge.restore_completed_transactions_finished()
        assert recorder.calls == [("restore_completed", ())]

    def test_failed_notifies_once_with_code(self, ready_bridge, recorder):
        ready_bridge.restore()
        ready_bridge.restore_completed_transactions_failed(6777006)
        ready_bridge.restore_completed_transactions_failed(6777006)
        assert recorder.calls == [("restore_failed", (6777006,))]

    def test_both_events_yield_single_notification(self, ready_bridge, recorder):
        ready_bridge.restore()
        ready_bridge.restore_completed_transactions_finished()
        ready_bridge.restore_completed_transactions_failed(1)
        assert recorder.names() == ["restore_completed"]

    def test_unsolicited_events_are_silent(self, ready_bridge, recorder):
        ready_bridge.restore_completed_transactions_finished()
        ready_bridge.restore_completed_transactions_failed(1)
        assert recorder.calls == []
        assert ready_bridge.restore_session.on_restore_completed() is None

    def test_rejected_restore_request_reports_failure(self, ready_bridge, transport, recorder):
        transport.rejected_methods.add("restoreCompletedTransactions")
        ready_bridge.restore()
        assert recorder.calls == [("restore_failed", ("bridge not attached",))]
        assert ready_bridge.restore_session.needs_notification is False

        ready_bridge.restore_completed_transactions_finished()
        assert recorder.names() == ["restore_failed"]

    def test_native_restore_error_reports_failure_once(self, ready_bridge, transport, recorder):
        ready_bridge.restore()
        transport.fail("restoreCompletedTransactions", "not signed in")
        ready_bridge.restore_completed_transactions_failed(6777006)
        assert recorder.calls == [("restore_failed", ("not signed in",))]

    def test_each_restore_gets_its_own_notification(self, ready_bridge, recorder):
        ready_bridge.restore()
        ready_bridge.restore_completed_transactions_finished()
        ready_bridge.restore()
        ready_bridge.restore_completed_transactions_failed(3)
        assert recorder.calls == [("restore_completed", ()), ("restore_failed", (3,))]

    def test_restored_transactions_flow_through_state_machine(self, ready_bridge, recorder):
        ready_bridge.restore()
        ready_bridge.updated_transaction_callback(
            TransactionState.RESTORED.value, None, None, "tx1", "com.app.gold"
        )
        ready_bridge.updated_transaction_callback(
            TransactionState.RESTORED.value, None, None, "tx2", "com.app.silver"
        )
        ready_bridge.restore_completed_transactions_finished()
        assert recorder.names() == ["restore", "restore", "restore_completed"]
