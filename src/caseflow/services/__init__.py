"""Application services: lifecycle transitions, archival lock, termination."""

from caseflow.services.archival import CountdownController, ensure_collaboration_allowed
from caseflow.services.dispute import TerminationTracker
from caseflow.services.inflight import InflightGuard
from caseflow.services.lifecycle_service import LifecycleService

__all__ = [
    "CountdownController",
    "InflightGuard",
    "LifecycleService",
    "TerminationTracker",
    "ensure_collaboration_allowed",
]
