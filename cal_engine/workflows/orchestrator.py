"""
Lifecycle Orchestrator for the Computer Account Lifecycle Engine.

Runs one pass end to end: resolve the holding location, query aging
accounts per platform, apply exemptions, then delete, disable and move
in that fixed order before aggregating the results.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

from ..audit.audit_logger import AuditLogger
from ..config import LifecycleConfig
from ..connectors import BaseDirectoryConnector
from ..engine import partition, select_eligible
from ..exceptions import HoldingLocationError
from ..models import (
    AccountRecord,
    ExecutionBatch,
    PassResult,
    Platform,
    PlatformResult,
    ReportEntry,
    ThresholdSet,
    TransitionKind,
)
from .executor import TransitionExecutor
from .helpers import split_by_container

logger = logging.getLogger(__name__)


class LifecycleOrchestrator:
    """
    Sequences a lifecycle pass.

    The stage order is fixed: deletions and disables only ever look at
    accounts already inside the holding location, and they run before
    moves so an account relocated this pass is never touched again until
    the next one.
    """

    def __init__(
        self,
        connector: BaseDirectoryConnector,
        config: LifecycleConfig,
        audit_logger: Optional[AuditLogger] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            connector: Directory connector for queries and mutations
            config: Validated lifecycle configuration
            audit_logger: Optional audit log for mutation attempts
            clock: Returns "now"; defaults to the current UTC time
        """
        self.connector = connector
        self.config = config
        self.audit_logger = audit_logger
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def resolve_holding_location(self) -> str:
        """Resolve the holding location to exactly one container or fail the pass."""
        identifier = self.config.holding_location
        container, match_count = self.connector.resolve_container(identifier)
        if match_count != 1 or not container:
            raise HoldingLocationError(identifier, match_count)
        logger.info(f"Holding location resolved to {container}")
        return container

    def run_pass(self) -> PassResult:
        """
        Run one lifecycle pass.

        Returns:
            PassResult with per-platform categories and any failures

        Raises:
            HoldingLocationError: If the holding location is missing or ambiguous
        """
        pass_id = str(uuid.uuid4())
        started_at = self.clock()
        logger.info(f"Starting lifecycle pass {pass_id}")

        holding_location = self.resolve_holding_location()
        thresholds = self.config.thresholds.to_threshold_set(started_at)
        executor = TransitionExecutor(
            self.connector, holding_location, audit_logger=self.audit_logger, pass_id=pass_id
        )

        platform_results: List[PlatformResult] = []
        errors: List[str] = []
        diagnostics: List[str] = []

        # Every platform is read before any stage runs, so a failed query
        # aborts the pass with nothing mutated.
        snapshots = [self._collect_platform(platform, thresholds, holding_location) for platform in Platform]

        for platform, to_review, to_ignore, inside, outside in snapshots:
            result, platform_errors, platform_diagnostics = self._run_platform(
                platform, to_review, to_ignore, inside, outside, thresholds, executor, started_at
            )
            platform_results.append(result)
            errors.extend(platform_errors)
            diagnostics.extend(platform_diagnostics)

        pass_result = PassResult(
            pass_id=pass_id,
            started_at=started_at,
            completed_at=self.clock(),
            holding_location=holding_location,
            thresholds=thresholds,
            dry_run=self.config.dry_run.model_copy(),
            platforms=platform_results,
            errors=errors,
            diagnostics=diagnostics,
        )

        totals = pass_result.counts()["total"]
        logger.info(
            f"Completed lifecycle pass {pass_id}: {totals['reviewed']} reviewed, "
            f"{totals['ignored']} ignored, {totals['moved']} moved, {totals['disabled']} disabled, "
            f"{totals['deleted']} deleted, {len(errors)} errors"
        )
        return pass_result

    def _collect_platform(
        self, platform: Platform, thresholds: ThresholdSet, holding_location: str
    ) -> Tuple[Platform, List[AccountRecord], List[AccountRecord], List[AccountRecord], List[AccountRecord]]:
        """Query one platform and split it into review/ignore and inside/outside sets."""
        accounts = self.connector.query_accounts(thresholds.report_before, platform)

        exemptions = self.config.exemptions.to_rules()
        to_review, to_ignore = partition(
            accounts, exemptions.name_patterns, exemptions.description_patterns
        )

        # Must happen before any move classification so nothing already in
        # the holding location is moved again.
        inside, outside = split_by_container(to_review, holding_location)
        return platform, to_review, to_ignore, inside, outside

    def _run_platform(
        self,
        platform: Platform,
        to_review: List[AccountRecord],
        to_ignore: List[AccountRecord],
        inside: List[AccountRecord],
        outside: List[AccountRecord],
        thresholds: ThresholdSet,
        executor: TransitionExecutor,
        now: datetime,
    ) -> Tuple[PlatformResult, List[str], List[str]]:
        """Run all stages for one platform classification."""
        deleted, delete_notes = self._run_stage(executor, inside, thresholds, TransitionKind.DELETE)
        disabled, disable_notes = self._run_stage(executor, inside, thresholds, TransitionKind.DISABLE)
        moved, move_notes = self._run_stage(executor, outside, thresholds, TransitionKind.MOVE)

        errors = deleted.errors + disabled.errors + moved.errors
        diagnostics = delete_notes + disable_notes + move_notes

        result = PlatformResult(
            platform=platform,
            reviewed=[ReportEntry.from_account(a, now) for a in to_review],
            ignored=[ReportEntry.from_account(a, now) for a in to_ignore],
            in_holding=[ReportEntry.from_account(a, now) for a in inside],
            moved=moved.outcomes,
            disabled=disabled.outcomes,
            deleted=deleted.outcomes,
        )
        return result, errors, diagnostics

    def _run_stage(
        self,
        executor: TransitionExecutor,
        accounts: List[AccountRecord],
        thresholds: ThresholdSet,
        kind: TransitionKind,
    ) -> Tuple[ExecutionBatch, List[str]]:
        """Classify and execute one transition kind. Returns the batch and guard diagnostics."""
        eligible, diagnostics = select_eligible(accounts, thresholds.for_transition(kind), kind)
        batch = executor.execute(eligible, kind, self.config.dry_run.for_transition(kind))
        return batch, diagnostics
