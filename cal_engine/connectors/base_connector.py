"""
Base Connector Classes for the Computer Account Lifecycle Engine.

This module provides the Directory Gateway abstraction the engine works
against, with both a real directory implementation and an in-memory
mock backend for testing and report-only rehearsals.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Set, Tuple

from ..models import AccountRecord, Platform

logger = logging.getLogger(__name__)


class ConnectorResult:
    """Result of a connector operation."""

    def __init__(self, success: bool, message: str = "", data: Optional[Any] = None,
                 error: Optional[str] = None):
        self.success = success
        self.message = message
        self.data = data
        self.error = error

    def __bool__(self):
        return self.success

    def __str__(self):
        return f"{'✓' if self.success else '✗'} {self.message}"


class BaseDirectoryConnector(ABC):
    """
    Abstract base class for directory connectors.

    The lifecycle engine never speaks the directory protocol itself; it
    reads account snapshots and requests mutations through this interface.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, mock_mode: bool = False):
        """
        Initialize the connector.

        Args:
            config: Connection settings (server URI, bind DN, search base, etc.)
            mock_mode: If True, use an in-memory directory instead of a real one
        """
        self.config = config or {}
        self.mock_mode = mock_mode

        logger.info(f"Initialized {self.__class__.__name__} (mock_mode={mock_mode})")

    @abstractmethod
    def query_accounts(self, older_than: datetime, platform: Platform) -> List[AccountRecord]:
        """
        Read machine accounts whose credentials were last rotated before a date.

        Args:
            older_than: Only accounts with credentials strictly older are returned
            platform: Platform classification to restrict the query to

        Returns:
            List of account snapshots
        """
        pass

    @abstractmethod
    def resolve_container(self, identifier: str) -> Tuple[Optional[str], int]:
        """
        Resolve a container name or path.

        Args:
            identifier: Container name or full path

        Returns:
            Tuple of (container path if exactly one matched, number of matches)
        """
        pass

    @abstractmethod
    def relocate(self, account: AccountRecord, target_container: str) -> ConnectorResult:
        """Move an account into another container."""
        pass

    @abstractmethod
    def set_enabled(self, account: AccountRecord, enabled: bool) -> ConnectorResult:
        """Enable or disable an account."""
        pass

    @abstractmethod
    def remove(self, account: AccountRecord) -> ConnectorResult:
        """Delete an account from the directory."""
        pass

    def close(self) -> None:
        """Release any connection held by the connector."""
        pass


class MockDirectoryConnector(BaseDirectoryConnector):
    """
    In-memory directory for tests and rehearsals.

    Holds account snapshots keyed by name, a list of container paths, and
    a log of every mutation call so tests can assert on gateway traffic.
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        accounts: Optional[List[AccountRecord]] = None,
        containers: Optional[List[str]] = None,
    ):
        super().__init__(config, mock_mode=True)

        self.accounts: Dict[str, AccountRecord] = {a.name: a for a in (accounts or [])}
        self.containers: List[str] = list(containers or [])
        self.calls: List[Tuple[str, str]] = []  # (operation, account name)
        self.failures: Set[Tuple[str, str]] = set()  # (operation, account name) to reject

    def fail_on(self, operation: str, account_name: str) -> None:
        """Make a mutation against one account fail."""
        self.failures.add((operation, account_name))

    def query_accounts(self, older_than: datetime, platform: Platform) -> List[AccountRecord]:
        """Mock query in name order."""
        return [
            account for _, account in sorted(self.accounts.items())
            if account.credential_changed_at < older_than and account.platform == platform
        ]

    def resolve_container(self, identifier: str) -> Tuple[Optional[str], int]:
        """Mock container lookup by full path or by leading name component."""
        wanted = identifier.strip().lower()
        matches = [
            dn for dn in self.containers
            if dn.lower() == wanted or _leading_name(dn).lower() == wanted
        ]
        if len(matches) == 1:
            return matches[0], 1
        return None, len(matches)

    def relocate(self, account: AccountRecord, target_container: str) -> ConnectorResult:
        """Mock move."""
        rejected = self._record("relocate", account)
        if rejected is not None:
            return rejected

        rdn = account.distinguished_name.split(",", 1)[0]
        self.accounts[account.name] = account.model_copy(update={
            "container": target_container,
            "distinguished_name": f"{rdn},{target_container}",
        })
        logger.info(f"Mock moved {account.name} to {target_container}")
        return ConnectorResult(True, f"Moved {account.name} to {target_container}")

    def set_enabled(self, account: AccountRecord, enabled: bool) -> ConnectorResult:
        """Mock enable/disable."""
        rejected = self._record("set_enabled", account)
        if rejected is not None:
            return rejected

        self.accounts[account.name] = self.accounts[account.name].model_copy(update={"enabled": enabled})
        logger.info(f"Mock set enabled={enabled} on {account.name}")
        return ConnectorResult(True, f"Set enabled={enabled} on {account.name}")

    def remove(self, account: AccountRecord) -> ConnectorResult:
        """Mock delete."""
        rejected = self._record("remove", account)
        if rejected is not None:
            return rejected

        del self.accounts[account.name]
        logger.info(f"Mock removed {account.name}")
        return ConnectorResult(True, f"Removed {account.name}")

    def _record(self, operation: str, account: AccountRecord) -> Optional[ConnectorResult]:
        self.calls.append((operation, account.name))

        if account.name not in self.accounts:
            return ConnectorResult(False, f"Account {account.name} not found",
                                   error=f"Account {account.name} not found")
        if (operation, account.name) in self.failures:
            return ConnectorResult(False, f"{operation} rejected for {account.name}",
                                   error="insufficient access rights")
        return None


def _leading_name(dn: str) -> str:
    first = dn.split(",", 1)[0]
    return first.split("=", 1)[1] if "=" in first else first
