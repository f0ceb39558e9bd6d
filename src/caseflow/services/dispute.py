"""Termination and dispute sub-state.

A termination request is resolved by the backend inside the same call:
either cancelled on the spot (no work started) or escalated to an
admin-reviewed dispute. ``requested`` only exists while the call is in
flight, so the tracker holds it in memory and never writes it to the cache.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from caseflow.domain.enums import CaseStatus, TerminationStatus
from caseflow.domain.state_machine import TerminationStateMachine
from caseflow.logging_config import get_logger

if TYPE_CHECKING:
    from caseflow.schemas.case import Case

logger = get_logger(__name__)


class TerminationTracker:
    """Holds the in-flight termination machine for each case."""

    def __init__(self) -> None:
        self._machines: dict[str, TerminationStateMachine] = {}

    def in_flight(self, case_id: str) -> bool:
        return str(case_id) in self._machines

    def status(self, case: Case) -> TerminationStatus:
        """REQUESTED while a call is pending, otherwise the cached status."""
        if self.in_flight(case.id):
            return TerminationStatus.REQUESTED
        return case.termination.status

    def begin(self, case: Case) -> None:
        """Enter ``requested``.

        Raises:
            TransitionNotAllowed: A request is already pending or resolved.
        """
        machine = self._machines.get(case.id)
        if machine is None:
            machine = TerminationStateMachine(case.termination.status.value)
        machine.request()
        self._machines[case.id] = machine
        logger.debug("termination.requested", case_id=case.id)

    def resolve(self, case_id: str, requires_admin: bool) -> TerminationStatus:
        """Leave ``requested`` for the outcome the backend chose."""
        machine = self._machines.pop(str(case_id))
        if requires_admin:
            machine.escalate()
        else:
            machine.auto_cancel()
        outcome = TerminationStatus(machine.status)
        logger.info("termination.resolved", case_id=str(case_id), outcome=outcome.value)
        return outcome

    def abort(self, case_id: str) -> None:
        """The call failed: drop back to the prior status."""
        machine = self._machines.pop(str(case_id), None)
        if machine is not None:
            machine.abort()
            logger.debug("termination.aborted", case_id=str(case_id))


def apply_termination(
    case: Case,
    outcome: TerminationStatus,
    reason: str,
    requested_by: str | None,
    now: datetime,
) -> Case:
    """Local effect of a resolved termination when the response has no case body."""
    fields: dict = {
        "status": outcome,
        "reason": reason,
        "requested_at": now,
        "requested_by": requested_by,
    }
    update: dict = {}
    if outcome is TerminationStatus.AUTO_CANCELLED:
        fields["terminated_at"] = now
        update.update(
            status=CaseStatus.CLOSED,
            raw_status="cancelled",
            paralegal=None,
            paralegal_id=None,
            pending_paralegal=None,
            pending_paralegal_id=None,
            pending_paralegal_invited_at=None,
        )
    update["termination"] = case.termination.model_copy(update=fields)
    return case.model_copy(update=update)


def with_outcome(case: Case, outcome: TerminationStatus) -> Case:
    """Make sure a server-returned case reflects the arbitration outcome."""
    if case.termination.status is outcome:
        return case
    termination = case.termination.model_copy(update={"status": outcome})
    return case.model_copy(update={"termination": termination})
