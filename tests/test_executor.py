"""
Tests for the Transition Executor.
"""

from unittest.mock import Mock

import pytest

from cal_engine.audit import AuditLogger
from cal_engine.connectors import ConnectorResult
from cal_engine.models import TransitionKind
from cal_engine.workflows import TransitionExecutor

from conftest import HOLDING


class TestTransitionExecutor:
    """Test cases for TransitionExecutor."""

    @pytest.fixture
    def connector(self):
        connector = Mock()
        connector.relocate.return_value = ConnectorResult(True, "moved")
        connector.set_enabled.return_value = ConnectorResult(True, "disabled")
        connector.remove.return_value = ConnectorResult(True, "removed")
        return connector

    @pytest.fixture
    def executor(self, connector):
        return TransitionExecutor(connector, HOLDING, pass_id="pass-1")

    def test_dry_run_reports_without_mutating(self, executor, connector, make_account):
        accounts = [make_account("A"), make_account("B")]

        batch = executor.execute(accounts, TransitionKind.MOVE, dry_run=True)

        assert batch.account_names == ["A", "B"]
        assert all(not o.executed for o in batch.outcomes)
        assert batch.errors == []
        connector.relocate.assert_not_called()
        connector.set_enabled.assert_not_called()
        connector.remove.assert_not_called()

    @pytest.mark.parametrize("kind,method", [
        (TransitionKind.MOVE, "relocate"),
        (TransitionKind.DISABLE, "set_enabled"),
        (TransitionKind.DELETE, "remove"),
    ])
    def test_applies_matching_connector_method(self, executor, connector, make_account, kind, method):
        account = make_account("A")

        batch = executor.execute([account], kind, dry_run=False)

        assert batch.account_names == ["A"]
        assert batch.outcomes[0].executed is True
        assert getattr(connector, method).call_count == 1

    def test_move_targets_holding_location(self, executor, connector, make_account):
        account = make_account("A")

        executor.execute([account], TransitionKind.MOVE, dry_run=False)

        connector.relocate.assert_called_once_with(account, HOLDING)

    def test_disable_sets_enabled_false(self, executor, connector, make_account):
        account = make_account("A")

        executor.execute([account], TransitionKind.DISABLE, dry_run=False)

        connector.set_enabled.assert_called_once_with(account, False)

    def test_failed_mutation_is_excluded_and_reported(self, executor, connector, make_account):
        connector.remove.side_effect = [
            ConnectorResult(False, "rejected", error="insufficientAccessRights"),
            ConnectorResult(True, "removed"),
        ]

        batch = executor.execute([make_account("A"), make_account("B")], TransitionKind.DELETE, dry_run=False)

        assert batch.account_names == ["B"]
        assert len(batch.errors) == 1
        assert "A" in batch.errors[0]
        assert "insufficientAccessRights" in batch.errors[0]
        assert connector.remove.call_count == 2

    def test_connector_exception_does_not_abort_batch(self, executor, connector, make_account):
        connector.relocate.side_effect = [RuntimeError("socket closed"), ConnectorResult(True, "moved")]

        batch = executor.execute([make_account("A"), make_account("B")], TransitionKind.MOVE, dry_run=False)

        assert batch.account_names == ["B"]
        assert "socket closed" in batch.errors[0]

    def test_duplicate_accounts_attempted_once(self, executor, connector, make_account):
        account = make_account("A")

        batch = executor.execute([account, account], TransitionKind.DELETE, dry_run=False)

        assert connector.remove.call_count == 1
        assert batch.account_names == ["A"]

    def test_none_transition_rejected(self, executor, make_account):
        with pytest.raises(ValueError):
            executor.execute([make_account("A")], TransitionKind.NONE, dry_run=True)

    def test_attempts_are_audited(self, connector, make_account, tmp_path):
        audit_logger = AuditLogger(str(tmp_path))
        connector.set_enabled.return_value = ConnectorResult(False, "rejected", error="busy")
        executor = TransitionExecutor(connector, HOLDING, audit_logger=audit_logger, pass_id="pass-9")

        executor.execute([make_account("A")], TransitionKind.DISABLE, dry_run=False)

        records = audit_logger.get_events()
        assert len(records) == 1
        assert records[0].pass_id == "pass-9"
        assert records[0].account_name == "A"
        assert records[0].action == "DISABLE"
        assert records[0].success is False
        assert records[0].error_message == "busy"

    def test_audit_write_failure_keeps_committed_outcome(self, connector, make_account):
        audit_logger = Mock()
        audit_logger.log_event.side_effect = OSError("disk full")
        executor = TransitionExecutor(connector, HOLDING, audit_logger=audit_logger)

        batch = executor.execute([make_account("A"), make_account("B")], TransitionKind.MOVE, dry_run=False)

        assert batch.account_names == ["A", "B"]
        assert all(o.executed for o in batch.outcomes)
        assert connector.relocate.call_count == 2
        assert batch.errors == ["audit MOVE A: disk full", "audit MOVE B: disk full"]

    def test_dry_run_is_not_audited(self, connector, make_account, tmp_path):
        audit_logger = AuditLogger(str(tmp_path))
        executor = TransitionExecutor(connector, HOLDING, audit_logger=audit_logger)

        executor.execute([make_account("A")], TransitionKind.MOVE, dry_run=True)

        assert audit_logger.get_events() == []

    def test_execution_summary(self, executor, connector, make_account):
        connector.remove.side_effect = [ConnectorResult(False, "no", error="no"), ConnectorResult(True, "ok")]

        executor.execute([make_account("A"), make_account("B")], TransitionKind.DELETE, dry_run=False)
        summary = executor.get_execution_summary()

        assert summary["total_steps"] == 2
        assert summary["successful_steps"] == 1
        assert summary["failed_steps"] == 1
