"""
Lifecycle Engine Package.

This package provides the pure decision components of a pass: the
exemption filter and the lifecycle classifier.
"""

from .classifier import classify, classify_account, select_eligible
from .exemption_filter import matches_any, partition

__all__ = [
    "classify",
    "classify_account",
    "select_eligible",
    "matches_any",
    "partition",
]
