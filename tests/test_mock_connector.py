"""
Tests for the in-memory directory connector.
"""

import pytest

from conftest import HOLDING, WORKSTATIONS


class TestMockDirectoryConnector:
    """Test cases for MockDirectoryConnector mutations."""

    @pytest.fixture
    def directory(self, make_account, make_directory):
        return make_directory([make_account("WS01"), make_account("WS02", enabled=False)])

    def test_relocate_moves_account(self, directory, make_account):
        result = directory.relocate(make_account("WS01"), HOLDING)

        assert result.success is True
        assert directory.accounts["WS01"].container == HOLDING
        assert directory.accounts["WS01"].distinguished_name == f"CN=WS01,{HOLDING}"

    def test_injected_relocate_failure_leaves_account_in_place(self, directory, make_account):
        directory.fail_on("relocate", "WS01")

        result = directory.relocate(make_account("WS01"), HOLDING)

        assert result.success is False
        assert result.error == "insufficient access rights"
        assert directory.accounts["WS01"].container == WORKSTATIONS
        assert directory.calls == [("relocate", "WS01")]

    def test_injected_disable_failure_keeps_account_enabled(self, directory, make_account):
        directory.fail_on("set_enabled", "WS01")

        result = directory.set_enabled(make_account("WS01"), False)

        assert result.success is False
        assert directory.accounts["WS01"].enabled is True

    def test_injected_remove_failure_keeps_account(self, directory, make_account):
        directory.fail_on("remove", "WS02")

        result = directory.remove(make_account("WS02", enabled=False))

        assert result.success is False
        assert "WS02" in directory.accounts

    @pytest.mark.parametrize("operation", ["relocate", "set_enabled", "remove"])
    def test_unknown_account_is_rejected(self, directory, make_account, operation):
        ghost = make_account("GHOST")
        args = {"relocate": (HOLDING,), "set_enabled": (False,), "remove": ()}[operation]

        result = getattr(directory, operation)(ghost, *args)

        assert result.success is False
        assert result.error == "Account GHOST not found"
        assert "GHOST" not in directory.accounts
