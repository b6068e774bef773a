"""
Connectors Package for the Computer Account Lifecycle Engine.

This package provides the Directory Gateway implementations: Active
Directory over LDAP and an in-memory mock directory.
"""

from typing import Any, Dict, Optional

from .base_connector import BaseDirectoryConnector, ConnectorResult, MockDirectoryConnector


def create_connector(config: Optional[Dict[str, Any]] = None, mock: bool = False) -> BaseDirectoryConnector:
    """Create the directory connector for the given settings."""
    if mock or (config or {}).get("mock_mode"):
        return MockDirectoryConnector(config, containers=(config or {}).get("containers"))

    # Imported lazily so mock runs never open an LDAP connection
    from .ad_connector import ActiveDirectoryConnector

    return ActiveDirectoryConnector(config)


__all__ = [
    "BaseDirectoryConnector",
    "MockDirectoryConnector",
    "ConnectorResult",
    "create_connector",
]
