"""
Core data models for the Computer Account Lifecycle Engine.

This module defines the Pydantic models used throughout the system
for machine-account snapshots, age thresholds, exemption rules,
transition outcomes, pass results, and audit records.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Platform(str, Enum):
    """Platform classification derived from the operating-system string."""
    WINDOWS = "WINDOWS"
    NON_WINDOWS = "NON_WINDOWS"

    @classmethod
    def from_operating_system(cls, operating_system: Optional[str]) -> "Platform":
        """Classify an operating-system string; absent values count as non-windows."""
        if operating_system and "windows" in operating_system.lower():
            return cls.WINDOWS
        return cls.NON_WINDOWS


class TransitionKind(str, Enum):
    """Lifecycle transitions a pass can apply to an account."""
    NONE = "NONE"
    MOVE = "MOVE"
    DISABLE = "DISABLE"
    DELETE = "DELETE"


class AccountRecord(BaseModel):
    """Read-only snapshot of a machine account taken at the start of a pass."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Account name, unique within a pass")
    distinguished_name: str = Field(..., description="Full directory path of the object")
    credential_changed_at: datetime = Field(..., description="Last credential rotation")
    enabled: bool = Field(True, description="Whether the account is currently enabled")
    description: Optional[str] = Field(None, description="Free-text description attribute")
    operating_system: Optional[str] = Field(None, description="Operating-system string")
    container: str = Field(..., description="Path of the container holding the object")
    managed_by: Optional[str] = Field(None, description="Owning-user reference")
    created_at: Optional[datetime] = Field(None, description="Object creation time")
    modified_at: Optional[datetime] = Field(None, description="Object modification time")

    @field_validator('credential_changed_at', 'created_at', 'modified_at')
    @classmethod
    def ensure_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Treat naive timestamps as UTC so comparisons never mix naive and aware values."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def platform(self) -> Platform:
        return Platform.from_operating_system(self.operating_system)

    def is_in_container(self, container_dn: str) -> bool:
        """Check whether the account sits directly inside the given container."""
        return _normalize_dn(self.container) == _normalize_dn(container_dn)

    def days_inactive(self, now: datetime) -> int:
        """Whole days elapsed since the last credential rotation."""
        return max((now - self.credential_changed_at).days, 0)


def _normalize_dn(dn: str) -> str:
    return ",".join(part.strip() for part in dn.split(",")).lower()


class ThresholdSet(BaseModel):
    """Four compare dates, each "now minus N days"."""
    model_config = ConfigDict(frozen=True)

    report_before: datetime
    move_before: datetime
    disable_before: datetime
    remove_before: datetime

    @classmethod
    def from_days(cls, now: datetime, report_days: int, move_days: int,
                  disable_days: int, remove_days: int) -> "ThresholdSet":
        return cls(
            report_before=now - timedelta(days=report_days),
            move_before=now - timedelta(days=move_days),
            disable_before=now - timedelta(days=disable_days),
            remove_before=now - timedelta(days=remove_days),
        )

    def is_ordered(self) -> bool:
        """True when report <= move <= disable <= remove in elapsed days."""
        return self.report_before >= self.move_before >= self.disable_before >= self.remove_before

    def for_transition(self, transition: TransitionKind) -> datetime:
        """Get the compare date that gates a transition kind."""
        mapping = {
            TransitionKind.MOVE: self.move_before,
            TransitionKind.DISABLE: self.disable_before,
            TransitionKind.DELETE: self.remove_before,
        }
        if transition not in mapping:
            raise ValueError(f"No threshold for transition {transition}")
        return mapping[transition]


class ExemptionRules(BaseModel):
    """Name and description glob patterns that exempt accounts from a pass."""
    model_config = ConfigDict(frozen=True)

    name_patterns: Tuple[str, ...] = Field(default_factory=tuple)
    description_patterns: Tuple[str, ...] = Field(default_factory=tuple)


class DryRunFlags(BaseModel):
    """Per-transition report-only switches. All default to report-only."""
    move: bool = True
    disable: bool = True
    delete: bool = True

    def for_transition(self, transition: TransitionKind) -> bool:
        mapping = {
            TransitionKind.MOVE: self.move,
            TransitionKind.DISABLE: self.disable,
            TransitionKind.DELETE: self.delete,
        }
        return mapping.get(transition, True)


class TransitionOutcome(BaseModel):
    """A transition that was applied, or would have been applied under dry-run."""
    kind: TransitionKind
    account: AccountRecord
    executed: bool = Field(..., description="False when only reported under dry-run")


class ExecutionBatch(BaseModel):
    """Outcomes and failures of executing one transition kind over a set of accounts."""
    kind: TransitionKind
    dry_run: bool
    outcomes: List[TransitionOutcome] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)

    @property
    def account_names(self) -> List[str]:
        return [outcome.account.name for outcome in self.outcomes]


class ReportEntry(BaseModel):
    """One row of the pass report. Missing directory values render as empty strings."""
    name: str
    days_inactive: int
    owner: str = ""
    description: str = ""
    credential_changed_at: datetime
    modified_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    platform: Platform
    operating_system: str = ""
    container: str = ""
    enabled: bool = True

    @classmethod
    def from_account(cls, account: AccountRecord, now: datetime) -> "ReportEntry":
        return cls(
            name=account.name,
            days_inactive=account.days_inactive(now),
            owner=account.managed_by or "",
            description=account.description or "",
            credential_changed_at=account.credential_changed_at,
            modified_at=account.modified_at,
            created_at=account.created_at,
            platform=account.platform,
            operating_system=account.operating_system or "",
            container=account.container,
            enabled=account.enabled,
        )


REPORT_CATEGORIES = ("reviewed", "ignored", "in_holding", "moved", "disabled", "deleted")


class PlatformResult(BaseModel):
    """Per-platform categories of a pass."""
    platform: Platform
    reviewed: List[ReportEntry] = Field(default_factory=list)
    ignored: List[ReportEntry] = Field(default_factory=list)
    in_holding: List[ReportEntry] = Field(default_factory=list)
    moved: List[TransitionOutcome] = Field(default_factory=list)
    disabled: List[TransitionOutcome] = Field(default_factory=list)
    deleted: List[TransitionOutcome] = Field(default_factory=list)

    def counts(self) -> Dict[str, int]:
        return {category: len(getattr(self, category)) for category in REPORT_CATEGORIES}


class PassResult(BaseModel):
    """Aggregated result of one lifecycle pass."""
    pass_id: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    holding_location: str
    thresholds: ThresholdSet
    dry_run: DryRunFlags
    platforms: List[PlatformResult] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    diagnostics: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        """A completed pass is successful even when individual mutations failed."""
        return self.completed_at is not None

    def get_platform(self, platform: Platform) -> Optional[PlatformResult]:
        for result in self.platforms:
            if result.platform == platform:
                return result
        return None

    def counts(self) -> Dict[str, Dict[str, int]]:
        """Counts per platform and category, plus a "total" row."""
        counts = {result.platform.value: result.counts() for result in self.platforms}
        counts["total"] = {
            category: sum(row[category] for row in counts.values())
            for category in REPORT_CATEGORIES
        }
        return counts

    def outcomes(self, kind: TransitionKind) -> List[TransitionOutcome]:
        """All outcomes of one transition kind across platforms."""
        attribute = {
            TransitionKind.MOVE: "moved",
            TransitionKind.DISABLE: "disabled",
            TransitionKind.DELETE: "deleted",
        }.get(kind)
        if attribute is None:
            return []
        return [outcome for result in self.platforms for outcome in getattr(result, attribute)]


class AuditRecord(BaseModel):
    """Audit record for every attempted directory mutation."""
    id: str = Field(..., description="Unique audit record ID")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    pass_id: str = Field(..., description="Pass that attempted the mutation")
    account_name: str
    distinguished_name: str
    action: str = Field(..., description="Transition applied (MOVE, DISABLE, DELETE)")
    target: Optional[str] = Field(None, description="Target container for moves")
    success: bool = Field(..., description="Whether the mutation succeeded")
    error_message: Optional[str] = Field(None, description="Error details if failed")
    metadata: Dict[str, Any] = Field(default_factory=dict)
