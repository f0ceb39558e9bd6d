"""Pydantic schemas for case records and transition responses."""

from caseflow.schemas.case import Applicant, Case, Invite, Termination, ref_id
from caseflow.schemas.transitions import (
    CompleteResult,
    EscrowIntent,
    PaymentMethodStatus,
    TerminateResult,
)

__all__ = [
    "Applicant",
    "Case",
    "Invite",
    "Termination",
    "ref_id",
    "CompleteResult",
    "EscrowIntent",
    "PaymentMethodStatus",
    "TerminateResult",
]
