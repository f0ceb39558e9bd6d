"""Status normalizer.

Funnels every raw status spelling the backend may emit into the canonical
CaseStatus vocabulary. Nothing else in the package branches on raw strings.

    in_progress, active, awaiting_documents,
    reviewing, funded_in_progress           -> "in progress"
    cancelled, canceled                     -> "closed"
    assigned, awaiting_funding              -> "open"
    unknown or empty                        -> ""
"""

from __future__ import annotations

from typing import Any

from caseflow.domain.enums import CaseStatus

_ALIASES: dict[str, CaseStatus] = {
    "in_progress": CaseStatus.IN_PROGRESS,
    "active": CaseStatus.IN_PROGRESS,
    "awaiting_documents": CaseStatus.IN_PROGRESS,
    "reviewing": CaseStatus.IN_PROGRESS,
    "funded_in_progress": CaseStatus.IN_PROGRESS,
    "cancelled": CaseStatus.CLOSED,
    "canceled": CaseStatus.CLOSED,
    # A tentatively attached paralegal still groups with open cases; see
    # resolve_case_state for the pending_funding distinction.
    "assigned": CaseStatus.OPEN,
    "awaiting_funding": CaseStatus.OPEN,
}

_CANONICAL: dict[str, CaseStatus] = {
    s.value: s for s in CaseStatus if s is not CaseStatus.UNKNOWN
}


def normalize_status(raw: Any) -> CaseStatus:
    """Map a raw backend status to its canonical value.

    Total and pure: never raises, returns CaseStatus.UNKNOWN ("") for
    None, non-strings that stringify to nothing, and unrecognised values.
    Already-canonical input maps to itself, so the function is idempotent.
    """
    if raw is None:
        return CaseStatus.UNKNOWN
    try:
        key = str(raw).strip().lower()
    except Exception:
        return CaseStatus.UNKNOWN
    if not key:
        return CaseStatus.UNKNOWN
    if key in _ALIASES:
        return _ALIASES[key]
    return _CANONICAL.get(key, CaseStatus.UNKNOWN)


def display_status(raw: Any) -> CaseStatus:
    """Status for list display: unknown input shows as open."""
    status = normalize_status(raw)
    return status or CaseStatus.OPEN
