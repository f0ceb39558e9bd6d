"""Eligibility predicates over a Case.

Every collaboration surface (chat, file exchange, checklist, dashboard
buckets, hire/apply buttons) asks these functions rather than re-deriving
the rules from raw fields.

All predicates are pure: no I/O, no mutation, and they return False (or a
canonical default) for malformed input instead of raising.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from caseflow.domain.enums import CaseBucket, CaseState, CaseStatus, TerminationStatus

if TYPE_CHECKING:
    from caseflow.domain.viewer import Viewer
    from caseflow.schemas.case import Case

TERMINAL_STATUSES = frozenset({CaseStatus.COMPLETED, CaseStatus.CLOSED, CaseStatus.CANCELLED})
WORKSPACE_STATUSES = frozenset({CaseStatus.IN_PROGRESS})
RELIST_STATUSES = frozenset({CaseStatus.OPEN, CaseStatus.CLOSED})


def _utc(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def _now(now: datetime | None) -> datetime:
    return _utc(now) if now is not None else datetime.now(UTC)


# ---------------------------------------------------------------------------
# End states
# ---------------------------------------------------------------------------


def is_terminal_case(case: Case) -> bool:
    """Completed, closed or cancelled, or already paid out."""
    return bool(case.payment_released) or case.status in TERMINAL_STATUSES


def is_final_case(case: Case) -> bool:
    """Paid out or completed. Final cases can never be restored from archive."""
    return bool(case.payment_released) or case.status is CaseStatus.COMPLETED


# ---------------------------------------------------------------------------
# Collaboration gate
# ---------------------------------------------------------------------------


def is_workspace_eligible(case: Case) -> bool:
    """Gate for messaging, file exchange, chat and checklist.

    Requires all of: not archived, not paid out, canonical status in the
    funded/active family, a funded escrow intent, and a hired paralegal.
    """
    return (
        not case.archived
        and not case.payment_released
        and case.status in WORKSPACE_STATUSES
        and case.escrow_funded
        and case.has_paralegal
    )


def resolve_case_state(case: Case, viewer_id: str | None = None) -> CaseState | CaseStatus:
    """Viewer-facing engagement state.

    Unlike normalize_status, this separates a hired-but-unfunded case
    (PENDING_FUNDING) from an open one, and an open case the viewer has
    applied to (APPLIED). Other statuses pass through in canonical form.
    """
    status = case.status
    if not status:
        return CaseStatus.UNKNOWN
    if case.escrow_funded and case.has_paralegal and status in WORKSPACE_STATUSES:
        return CaseState.FUNDED_IN_PROGRESS
    if status is CaseStatus.DRAFT:
        return CaseState.DRAFT
    if status is CaseStatus.APPLIED:
        return CaseState.APPLIED
    if status is CaseStatus.OPEN:
        if case.has_paralegal:
            return CaseState.PENDING_FUNDING
        return CaseState.APPLIED if case.viewer_applied(viewer_id) else CaseState.OPEN
    return status


# ---------------------------------------------------------------------------
# Dashboard buckets
# ---------------------------------------------------------------------------


def categorize_case(case: Case) -> CaseBucket:
    if case.archived:
        return CaseBucket.ARCHIVED
    if case.local_draft or case.status is CaseStatus.DRAFT:
        return CaseBucket.DRAFT
    if not case.has_paralegal and case.applicant_total > 0:
        return CaseBucket.INQUIRIES
    return CaseBucket.ACTIVE


# ---------------------------------------------------------------------------
# Dispute / relist
# ---------------------------------------------------------------------------


def is_dispute_locked(case: Case) -> bool:
    """A disputed case is locked for hiring and termination until an admin acts."""
    return (
        case.termination.status is TerminationStatus.DISPUTED
        or case.status is CaseStatus.DISPUTED
    )


def is_relist(case: Case) -> bool:
    """The case is being reopened after an engagement was cancelled."""
    return case.termination.status is TerminationStatus.AUTO_CANCELLED


def relist_hold_active(case: Case, now: datetime | None = None) -> bool:
    """True while the post-dispute hold deadline is still in the future."""
    deadline = case.dispute_deadline_at
    if deadline is None:
        return False
    return _utc(deadline) > _now(now)


# ---------------------------------------------------------------------------
# Engagement actions
# ---------------------------------------------------------------------------


def can_hire(viewer: Viewer, case: Case, now: datetime | None = None) -> bool:
    """Owner or admin may hire (or invite) on an open, unhired, unlocked case.

    Relists additionally wait for the hold deadline and a finalized payout.
    """
    if is_dispute_locked(case) or relist_hold_active(case, now):
        return False
    if not viewer.can_manage(case):
        return False
    if case.has_paralegal or case.read_only or is_final_case(case):
        return False
    if is_relist(case):
        return case.status in RELIST_STATUSES and case.payout_finalized
    return case.status is CaseStatus.OPEN


def can_apply(viewer: Viewer, case: Case, already_applied: bool | None = None) -> bool:
    """A paralegal may apply once to an open, unhired, unpaid case."""
    if not viewer.is_paralegal or is_dispute_locked(case):
        return False
    if already_applied is None:
        already_applied = case.viewer_applied(viewer.user_id)
    return (
        case.status is CaseStatus.OPEN
        and not case.has_paralegal
        and not already_applied
        and not case.read_only
        and not case.payment_released
        and not is_final_case(case)
    )


def can_respond_to_invite(viewer: Viewer, case: Case) -> bool:
    return (
        viewer.is_paralegal
        and case.pending_invite_for(viewer.user_id)
        and not case.read_only
        and not is_final_case(case)
    )


def can_fund_escrow(case: Case) -> bool:
    return case.has_paralegal and not case.escrow_funded and not case.read_only


def can_complete(viewer: Viewer, case: Case) -> bool:
    return (
        viewer.can_manage(case)
        and case.has_paralegal
        and not case.payment_released
        and not case.read_only
    )


def can_terminate(viewer: Viewer, case: Case) -> bool:
    if is_dispute_locked(case):
        return False
    return (
        viewer.can_manage(case)
        and case.has_paralegal
        and not case.read_only
        and case.status not in {CaseStatus.CLOSED, CaseStatus.CANCELLED}
        and case.termination.status is TerminationStatus.NONE
    )


def can_restore(case: Case) -> bool:
    return case.archived and not is_final_case(case)


def hire_block_reason(viewer: Viewer, case: Case, now: datetime | None = None) -> str | None:
    """Why can_hire is False, phrased for the viewer. None when hiring is allowed."""
    if is_dispute_locked(case):
        return "This case is under dispute. Hiring is locked until an admin resolves it."
    if relist_hold_active(case, now):
        return "This case is on hold until the dispute window closes."
    if not viewer.can_manage(case):
        return "Only the case attorney can hire for this case."
    if case.read_only:
        return "Case is archived. Hiring is disabled."
    if is_final_case(case):
        return "Completed cases cannot be reopened for hiring."
    if case.has_paralegal:
        return "A paralegal is already in progress for this case."
    if is_relist(case) and not case.payout_finalized:
        return "Relisting is available once the prior payout is finalized."
    if not can_hire(viewer, case, now):
        return "Applications are available while the case is open."
    return None
