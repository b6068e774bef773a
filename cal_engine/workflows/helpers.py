"""
Workflow Helper Functions for the Computer Account Lifecycle Engine.

Utility functions shared by the orchestrator, the CLI and the API.
"""

import logging
from typing import Any, Dict, Iterable, List, Tuple

from ..models import AccountRecord, PassResult, TransitionKind

logger = logging.getLogger(__name__)


def split_by_container(
    accounts: Iterable[AccountRecord], container_dn: str
) -> Tuple[List[AccountRecord], List[AccountRecord]]:
    """
    Split accounts into those directly inside a container and all others.

    Args:
        accounts: Accounts to split
        container_dn: Resolved container path

    Returns:
        Tuple of (inside, outside), each in input order
    """
    inside: List[AccountRecord] = []
    outside: List[AccountRecord] = []
    for account in accounts:
        (inside if account.is_in_container(container_dn) else outside).append(account)
    return inside, outside


def create_pass_summary(result: PassResult) -> Dict[str, Any]:
    """
    Create a summary of a pass for logs, the CLI and the API.

    Args:
        result: Completed pass result

    Returns:
        Dictionary with timings, dry-run switches, counts and messages
    """
    executed = {
        kind.value: len([o for o in result.outcomes(kind) if o.executed])
        for kind in (TransitionKind.MOVE, TransitionKind.DISABLE, TransitionKind.DELETE)
    }

    return {
        'pass_id': result.pass_id,
        'started_at': result.started_at.isoformat(),
        'completed_at': result.completed_at.isoformat() if result.completed_at else None,
        'success': result.success,
        'holding_location': result.holding_location,
        'dry_run': result.dry_run.model_dump(),
        'counts': result.counts(),
        'executed': executed,
        'error_count': len(result.errors),
        'errors': result.errors,
        'diagnostics': result.diagnostics,
        'warnings': result.warnings,
    }
