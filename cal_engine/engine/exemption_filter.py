"""
Exemption Filter for the Computer Account Lifecycle Engine.

Splits queried accounts into those subject to lifecycle processing and
those exempted by name or description glob patterns.
"""

import fnmatch
import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from ..models import AccountRecord

logger = logging.getLogger(__name__)


def matches_any(value: Optional[str], patterns: Sequence[str]) -> Optional[str]:
    """
    Find the first pattern matching a value.

    Matching is case-insensitive glob. Empty patterns and absent values
    never match.

    Args:
        value: Attribute value to test
        patterns: Glob patterns, evaluated in order

    Returns:
        The matching pattern, or None
    """
    if not value:
        return None

    lowered = value.lower()
    for pattern in patterns:
        if pattern and fnmatch.fnmatchcase(lowered, pattern.lower()):
            return pattern
    return None


def partition(
    accounts: Iterable[AccountRecord],
    name_patterns: Sequence[str],
    description_patterns: Sequence[str],
) -> Tuple[List[AccountRecord], List[AccountRecord]]:
    """
    Partition accounts into (to_review, to_ignore).

    Name patterns take precedence: an account whose name matches is ignored
    without looking at its description. Input order is preserved in both
    lists and the input is never modified.

    Args:
        accounts: Accounts returned by the directory query
        name_patterns: Glob patterns matched against the account name
        description_patterns: Glob patterns matched against the description

    Returns:
        Tuple of (accounts to review, exempt accounts)
    """
    to_review: List[AccountRecord] = []
    to_ignore: List[AccountRecord] = []

    for account in accounts:
        pattern = matches_any(account.name, name_patterns)
        if pattern:
            logger.debug(f"{account.name} exempt by name pattern '{pattern}'")
            to_ignore.append(account)
            continue

        pattern = matches_any(account.description, description_patterns)
        if pattern:
            logger.debug(f"{account.name} exempt by description pattern '{pattern}'")
            to_ignore.append(account)
            continue

        to_review.append(account)

    return to_review, to_ignore
