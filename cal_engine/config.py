"""
Configuration loading for the Computer Account Lifecycle Engine.

Reads a YAML configuration file and validates it into a LifecycleConfig
holding thresholds, the holding location, exemption patterns, dry-run
switches, and directory/notification connection settings.
"""

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .exceptions import ConfigurationError
from .models import DryRunFlags, ExemptionRules, ThresholdSet

logger = logging.getLogger(__name__)

BIND_PASSWORD_ENV = "CAL_BIND_PASSWORD"


class ThresholdDays(BaseModel):
    """Age thresholds in days since last credential rotation."""
    report_days: int = Field(45, description="Eligible to appear in the report")
    move_days: int = Field(60, description="Relocate to the holding location")
    disable_days: int = Field(75, description="Disable inside the holding location")
    remove_days: int = Field(90, description="Remove from the holding location")

    @field_validator('report_days', 'move_days', 'disable_days', 'remove_days')
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError('Threshold days must not be negative')
        return v

    @model_validator(mode='after')
    def warn_on_ordering(self) -> "ThresholdDays":
        # Misordered thresholds are allowed; results just stop being monotonic.
        if not self.is_ordered():
            logger.warning(
                f"Thresholds are not ordered report <= move <= disable <= remove: "
                f"{self.report_days}/{self.move_days}/{self.disable_days}/{self.remove_days}"
            )
        return self

    def is_ordered(self) -> bool:
        return self.report_days <= self.move_days <= self.disable_days <= self.remove_days

    def to_threshold_set(self, now: datetime) -> ThresholdSet:
        return ThresholdSet.from_days(
            now, self.report_days, self.move_days, self.disable_days, self.remove_days
        )


class ExemptionConfig(BaseModel):
    """Exemption patterns as written in the configuration file."""
    name_patterns: List[str] = Field(default_factory=list)
    description_patterns: List[str] = Field(default_factory=list)

    def to_rules(self) -> ExemptionRules:
        return ExemptionRules(
            name_patterns=tuple(self.name_patterns),
            description_patterns=tuple(self.description_patterns),
        )


class DirectoryConfig(BaseModel):
    """Directory service connection settings."""
    server_uri: Optional[str] = Field(None, description="ldap:// or ldaps:// URI")
    bind_dn: Optional[str] = None
    bind_password: Optional[str] = Field(None, description=f"Falls back to ${BIND_PASSWORD_ENV}")
    search_base: Optional[str] = None
    page_size: int = 500
    receive_timeout: int = 15
    mock_mode: bool = Field(False, description="Use the in-memory directory instead of LDAP")

    def resolved_password(self) -> Optional[str]:
        return self.bind_password or os.environ.get(BIND_PASSWORD_ENV)


class NotificationConfig(BaseModel):
    """SMTP settings for mailing the pass report."""
    enabled: bool = False
    smtp_host: str = "localhost"
    smtp_port: int = 25
    use_tls: bool = False
    username: Optional[str] = None
    password: Optional[str] = None
    sender: str = "cal-engine@localhost"
    recipients: List[str] = Field(default_factory=list)
    subject: str = "Stale computer account report"
    timeout: int = 30

    @field_validator('recipients')
    @classmethod
    def validate_recipients(cls, v: List[str]) -> List[str]:
        for address in v:
            if '@' not in address:
                raise ValueError(f'Invalid recipient address: {address}')
        return v


class LifecycleConfig(BaseModel):
    """Complete configuration for a lifecycle pass."""
    thresholds: ThresholdDays = Field(default_factory=ThresholdDays)
    holding_location: str = Field(..., description="Container aging accounts are moved into")
    exemptions: ExemptionConfig = Field(default_factory=ExemptionConfig)
    dry_run: DryRunFlags = Field(default_factory=DryRunFlags)
    directory: DirectoryConfig = Field(default_factory=DirectoryConfig)
    notification: NotificationConfig = Field(default_factory=NotificationConfig)
    audit_dir: str = "audit"
    report_dir: str = "reports"

    @field_validator('holding_location')
    @classmethod
    def validate_holding_location(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError('Holding location is required')
        return v.strip()

    def connector_settings(self) -> Dict[str, Any]:
        """Settings handed to create_connector, with the bind password resolved."""
        settings = self.directory.model_dump()
        settings["bind_password"] = self.directory.resolved_password()
        # Lets an empty mock directory resolve the holding location
        settings["containers"] = [self.holding_location]
        return settings


def load_config(path: Union[str, Path], overrides: Optional[Dict[str, Any]] = None) -> LifecycleConfig:
    """
    Load and validate the lifecycle configuration.

    Args:
        path: Path to the YAML configuration file
        overrides: Top-level keys replacing values read from the file

    Returns:
        Validated LifecycleConfig

    Raises:
        ConfigurationError: If the file is missing, unreadable, or invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to read configuration {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration {config_path} must be a mapping")

    if overrides:
        data.update(overrides)

    try:
        config = LifecycleConfig(**data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration {config_path}: {e}") from e

    logger.info(f"Loaded configuration from {config_path}")
    return config
