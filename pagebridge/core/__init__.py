"""
pagebridge/core/__init__.py

Asynchronous coordination engine: lifecycle tracking, script evaluation,
waiting and navigation.
"""

from pagebridge.core.eval_bridge import EvalBridge, PendingEvaluation
from pagebridge.core.lifecycle_tracker import LifecycleTracker, navigation_failure_from_event
from pagebridge.core.navigation_controller import NavigationController, NavigationWaitMode
from pagebridge.core.wait_engine import WaitEngine

__all__ = [
    "EvalBridge",
    "LifecycleTracker",
    "NavigationController",
    "NavigationWaitMode",
    "PendingEvaluation",
    "WaitEngine",
    "navigation_failure_from_event",
]
