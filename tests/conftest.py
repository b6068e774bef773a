"""Shared fixtures for the CAL Engine tests."""

from datetime import datetime, timedelta, timezone

import pytest

from cal_engine.config import ExemptionConfig, LifecycleConfig
from cal_engine.connectors import MockDirectoryConnector
from cal_engine.models import AccountRecord, DryRunFlags

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)
HOLDING = "OU=Stale Computers,DC=example,DC=com"
WORKSTATIONS = "OU=Workstations,DC=example,DC=com"


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_account():
    """Factory for account snapshots aged relative to NOW."""
    def _make(name, days=100, enabled=True, container=WORKSTATIONS, description=None,
              operating_system="Windows 10 Enterprise", managed_by=None):
        return AccountRecord(
            name=name,
            distinguished_name=f"CN={name},{container}",
            credential_changed_at=NOW - timedelta(days=days),
            enabled=enabled,
            description=description,
            operating_system=operating_system,
            container=container,
            managed_by=managed_by,
        )
    return _make


@pytest.fixture
def make_config():
    """Factory for configurations using the 45/60/75/90 day thresholds."""
    def _make(applied=False, name_patterns=None, description_patterns=None, holding_location=HOLDING):
        return LifecycleConfig(
            holding_location=holding_location,
            exemptions=ExemptionConfig(
                name_patterns=name_patterns or [],
                description_patterns=description_patterns or [],
            ),
            dry_run=DryRunFlags(move=not applied, disable=not applied, delete=not applied),
        )
    return _make


@pytest.fixture
def make_directory():
    """Factory for an in-memory directory holding the two standard containers."""
    def _make(accounts):
        return MockDirectoryConnector(accounts=accounts, containers=[HOLDING, WORKSTATIONS])
    return _make
