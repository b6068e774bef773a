"""
Transition Executor for the Computer Account Lifecycle Engine.

Applies classified transitions through the directory connector, honouring
the dry-run switch of each transition kind and recording every attempt.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Set

from ..audit.audit_logger import AuditLogger
from ..connectors import BaseDirectoryConnector, ConnectorResult
from ..models import AccountRecord, AuditRecord, ExecutionBatch, TransitionKind, TransitionOutcome

logger = logging.getLogger(__name__)


class TransitionStep:
    """A single directory mutation attempted during a pass."""

    def __init__(self, kind: TransitionKind, account: AccountRecord, target: Optional[str] = None):
        self.kind = kind
        self.account = account
        self.target = target
        self.executed_at: Optional[datetime] = None
        self.success: bool = False
        self.error: Optional[str] = None
        self.audit_error: Optional[str] = None

    def mark_success(self):
        """Mark step as successful."""
        self.executed_at = datetime.now(timezone.utc)
        self.success = True

    def mark_failure(self, error: str):
        """Mark step as failed."""
        self.executed_at = datetime.now(timezone.utc)
        self.success = False
        self.error = error

    def to_dict(self) -> Dict[str, Any]:
        """Convert step to dictionary for serialization."""
        return {
            "kind": self.kind.value,
            "account": self.account.name,
            "target": self.target,
            "executed_at": self.executed_at.isoformat() if self.executed_at else None,
            "success": self.success,
            "error": self.error,
        }


class TransitionExecutor:
    """
    Executes one transition kind over a set of eligible accounts.

    Each eligible account gets at most one mutation attempt. Failures are
    never retried; they drop the account from the outcomes and are
    reported as errors so the pass can continue.
    """

    def __init__(
        self,
        connector: BaseDirectoryConnector,
        holding_location: str,
        audit_logger: Optional[AuditLogger] = None,
        pass_id: Optional[str] = None,
    ):
        """
        Initialize the executor.

        Args:
            connector: Directory connector used for mutations
            holding_location: Resolved container path accounts are moved into
            audit_logger: Optional audit log receiving every attempt
            pass_id: Identifier of the pass the mutations belong to
        """
        self.connector = connector
        self.holding_location = holding_location
        self.audit_logger = audit_logger
        self.pass_id = pass_id or str(uuid.uuid4())
        self.steps: List[TransitionStep] = []

    def execute(
        self, eligible_accounts: Iterable[AccountRecord], kind: TransitionKind, dry_run: bool
    ) -> ExecutionBatch:
        """
        Execute a transition over eligible accounts.

        Args:
            eligible_accounts: Accounts the classifier marked eligible
            kind: Transition to apply
            dry_run: If True, report only and never call the connector

        Returns:
            ExecutionBatch with outcomes and failure messages
        """
        if kind == TransitionKind.NONE:
            raise ValueError("Cannot execute a NONE transition")

        outcomes: List[TransitionOutcome] = []
        errors: List[str] = []
        seen: Set[str] = set()

        for account in eligible_accounts:
            key = account.name.lower()
            if key in seen:
                logger.warning(f"Skipping duplicate {kind.value} for {account.name}")
                continue
            seen.add(key)

            if dry_run:
                logger.info(f"[dry-run] Would {kind.value} {account.name}")
                outcomes.append(TransitionOutcome(kind=kind, account=account, executed=False))
                continue

            step = self._execute_step(kind, account)
            if step.success:
                outcomes.append(TransitionOutcome(kind=kind, account=account, executed=True))
            else:
                errors.append(f"{kind.value} {account.name}: {step.error}")
            if step.audit_error:
                errors.append(f"audit {kind.value} {account.name}: {step.audit_error}")

        logger.info(
            f"{kind.value}: {len(outcomes)} outcome(s), {len(errors)} failure(s)"
            f"{' (dry-run)' if dry_run else ''}"
        )
        return ExecutionBatch(kind=kind, dry_run=dry_run, outcomes=outcomes, errors=errors)

    def _execute_step(self, kind: TransitionKind, account: AccountRecord) -> TransitionStep:
        """Attempt one mutation and audit it."""
        target = self.holding_location if kind == TransitionKind.MOVE else None
        step = TransitionStep(kind, account, target)
        self.steps.append(step)

        try:
            result = self._call_connector_method(kind, account)
            if result.success:
                step.mark_success()
            else:
                step.mark_failure(result.error or result.message or "Unknown error")
        except Exception as e:
            # Connector bugs must not abort the rest of the pass
            step.mark_failure(f"Exception during {kind.value}: {e}")
            logger.error(f"Exception during {kind.value} of {account.name}: {e}")

        self._log_audit_event(step)
        return step

    def _call_connector_method(self, kind: TransitionKind, account: AccountRecord) -> ConnectorResult:
        method_map = {
            TransitionKind.MOVE: lambda c, a: c.relocate(a, self.holding_location),
            TransitionKind.DISABLE: lambda c, a: c.set_enabled(a, False),
            TransitionKind.DELETE: lambda c, a: c.remove(a),
        }
        return method_map[kind](self.connector, account)

    def _log_audit_event(self, step: TransitionStep) -> Optional[str]:
        if not self.audit_logger:
            return None

        record = AuditRecord(
            id=str(uuid.uuid4()),
            pass_id=self.pass_id,
            account_name=step.account.name,
            distinguished_name=step.account.distinguished_name,
            action=step.kind.value,
            target=step.target,
            success=step.success,
            error_message=step.error,
        )
        try:
            return self.audit_logger.log_event(record)
        except OSError as e:
            # The mutation is already committed; the pass carries on
            step.audit_error = str(e)
            logger.error(f"Failed to audit {step.kind.value} of {step.account.name}: {e}")
            return None

    def get_execution_summary(self) -> Dict[str, Any]:
        """Get summary of attempted mutations."""
        successful_steps = len([s for s in self.steps if s.success])
        total_steps = len(self.steps)

        return {
            "pass_id": self.pass_id,
            "total_steps": total_steps,
            "successful_steps": successful_steps,
            "failed_steps": total_steps - successful_steps,
            "steps": [s.to_dict() for s in self.steps],
        }
