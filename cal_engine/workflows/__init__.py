"""
Workflows Package for the Computer Account Lifecycle Engine.

This package provides the transition executor and the orchestrator that
sequences a complete lifecycle pass.
"""

from .executor import TransitionExecutor, TransitionStep
from .helpers import create_pass_summary, split_by_container
from .orchestrator import LifecycleOrchestrator

__all__ = [
    "TransitionExecutor",
    "TransitionStep",
    "LifecycleOrchestrator",
    "split_by_container",
    "create_pass_summary",
]
