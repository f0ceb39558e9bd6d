"""Domain layer: status vocabulary, predicates and transition guards."""

from caseflow.domain.enums import (
    CaseBucket,
    CaseState,
    CaseStatus,
    CollaborationSurface,
    ErrorKind,
    InviteDecision,
    TerminationStatus,
    ViewerRole,
)
from caseflow.domain.exceptions import (
    BackendError,
    CaseflowError,
    TransitionRejected,
)
from caseflow.domain.normalizer import normalize_status
from caseflow.domain.payment_protocol import PaymentConfirmer, PaymentOutcome
from caseflow.domain.viewer import Viewer

__all__ = [
    "CaseBucket",
    "CaseState",
    "CaseStatus",
    "CollaborationSurface",
    "ErrorKind",
    "InviteDecision",
    "TerminationStatus",
    "ViewerRole",
    "BackendError",
    "CaseflowError",
    "TransitionRejected",
    "normalize_status",
    "PaymentConfirmer",
    "PaymentOutcome",
    "Viewer",
]
