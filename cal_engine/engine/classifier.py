"""
Lifecycle Classifier for the Computer Account Lifecycle Engine.

Decides whether a transition applies to an account based on credential
age and the enabled-flag guards that keep disable and delete apart.
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from ..models import AccountRecord, TransitionKind

logger = logging.getLogger(__name__)


def classify_account(
    account: AccountRecord, compare_date: datetime, transition: TransitionKind
) -> Tuple[bool, Optional[str]]:
    """
    Classify one account for one transition.

    The enabled flag comes from the snapshot taken at the start of the pass,
    so an account disabled during this pass still reads as enabled and can
    never become delete-eligible before the next pass.

    Args:
        account: Account snapshot
        compare_date: Credentials must be strictly older than this
        transition: Transition being evaluated

    Returns:
        Tuple of (eligible, diagnostic). The diagnostic is set only when the
        age condition holds but a guard skipped the account.
    """
    if transition == TransitionKind.NONE:
        return False, None

    if not account.credential_changed_at < compare_date:
        return False, None

    if transition == TransitionKind.DELETE and account.enabled:
        diagnostic = (
            f"{account.name} is old enough to delete but still enabled; "
            f"skipping delete until it has been disabled"
        )
        logger.warning(diagnostic)
        return False, diagnostic

    if transition == TransitionKind.DISABLE and not account.enabled:
        logger.debug(f"{account.name} is already disabled; skipping disable")
        return False, None

    return True, None


def classify(account: AccountRecord, compare_date: datetime, transition: TransitionKind) -> bool:
    """Check whether a transition currently applies to an account."""
    eligible, _ = classify_account(account, compare_date, transition)
    return eligible


def select_eligible(
    accounts: Iterable[AccountRecord], compare_date: datetime, transition: TransitionKind
) -> Tuple[List[AccountRecord], List[str]]:
    """
    Select the accounts eligible for a transition.

    Returns:
        Tuple of (eligible accounts, guard diagnostics)
    """
    eligible: List[AccountRecord] = []
    diagnostics: List[str] = []

    for account in accounts:
        is_eligible, diagnostic = classify_account(account, compare_date, transition)
        if is_eligible:
            eligible.append(account)
        if diagnostic:
            diagnostics.append(diagnostic)

    logger.info(f"{len(eligible)} account(s) eligible for {transition.value}")
    return eligible, diagnostics
