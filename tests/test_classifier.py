"""
Tests for the Lifecycle Classifier.
"""

from datetime import timedelta

import pytest

from cal_engine.engine import classify, classify_account, select_eligible
from cal_engine.models import TransitionKind


class TestClassify:
    """Test cases for classify."""

    def test_age_must_be_strictly_older(self, make_account, now):
        account = make_account("WS01", days=60)
        exactly = account.credential_changed_at

        assert classify(account, exactly, TransitionKind.MOVE) is False
        assert classify(account, exactly + timedelta(seconds=1), TransitionKind.MOVE) is True

    def test_move_ignores_enabled_flag(self, make_account, now):
        compare = now - timedelta(days=60)
        assert classify(make_account("A", enabled=True), compare, TransitionKind.MOVE)
        assert classify(make_account("B", enabled=False), compare, TransitionKind.MOVE)

    def test_delete_requires_disabled_account(self, make_account, now):
        compare = now - timedelta(days=90)
        disabled = make_account("B", days=100, enabled=False)
        enabled = make_account("E", days=100, enabled=True)

        assert classify(disabled, compare, TransitionKind.DELETE) is True
        eligible, diagnostic = classify_account(enabled, compare, TransitionKind.DELETE)
        assert eligible is False
        assert "still enabled" in diagnostic

    def test_young_enabled_account_gets_no_delete_diagnostic(self, make_account, now):
        account = make_account("E", days=80, enabled=True)

        eligible, diagnostic = classify_account(account, now - timedelta(days=90), TransitionKind.DELETE)

        assert eligible is False
        assert diagnostic is None

    def test_disable_requires_enabled_account(self, make_account, now):
        compare = now - timedelta(days=75)

        assert classify(make_account("E", days=100, enabled=True), compare, TransitionKind.DISABLE) is True
        assert classify(make_account("D", days=100, enabled=False), compare, TransitionKind.DISABLE) is False

    def test_none_transition_is_never_eligible(self, make_account, now):
        assert classify(make_account("A", days=500), now, TransitionKind.NONE) is False

    @pytest.mark.parametrize("enabled", [True, False])
    def test_never_eligible_for_both_disable_and_delete(self, make_account, now, enabled):
        account = make_account("X", days=365, enabled=enabled)

        disable = classify(account, now - timedelta(days=75), TransitionKind.DISABLE)
        delete = classify(account, now - timedelta(days=90), TransitionKind.DELETE)

        assert disable != delete


class TestSelectEligible:
    """Test cases for select_eligible."""

    def test_returns_eligible_accounts_and_diagnostics(self, make_account, now):
        accounts = [
            make_account("OLD-DISABLED", days=120, enabled=False),
            make_account("OLD-ENABLED", days=120, enabled=True),
            make_account("YOUNG", days=30, enabled=False),
        ]

        eligible, diagnostics = select_eligible(accounts, now - timedelta(days=90), TransitionKind.DELETE)

        assert [a.name for a in eligible] == ["OLD-DISABLED"]
        assert len(diagnostics) == 1
        assert "OLD-ENABLED" in diagnostics[0]
