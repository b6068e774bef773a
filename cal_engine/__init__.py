"""
Computer Account Lifecycle Engine (CAL Engine)

Audits machine accounts in a directory service and advances stale ones
through a bounded lifecycle: relocation to a holding location, then
disabling, then removal, based on time since last credential rotation.
"""

__version__ = "1.0.0"
__author__ = "CAL Engine Team"
__email__ = "team@example.com"

from .config import LifecycleConfig, load_config
from .engine import classify, partition
from .workflows import LifecycleOrchestrator, TransitionExecutor

__all__ = [
    "LifecycleConfig",
    "load_config",
    "classify",
    "partition",
    "LifecycleOrchestrator",
    "TransitionExecutor",
]
