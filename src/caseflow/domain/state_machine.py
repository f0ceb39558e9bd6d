"""Case lifecycle state machine guards.

Uses python-statemachine to enforce legal transitions on the client before
any request is issued. The backend stays the final arbiter; these guards
only stop requests that could never succeed.

Engagement transitions:
    open            -> pending_funding  (hire, accept_invite)
    pending_funding -> in progress      (fund)
    pending_funding -> completed        (complete)
    in progress     -> completed        (complete)
    open            -> closed           (cancel)
    pending_funding -> closed           (cancel)
    in progress     -> closed           (cancel)
    pending_funding -> disputed         (dispute)
    in progress     -> disputed         (dispute)
    closed          -> open             (relist)

Termination sub-state:
    none      -> requested       (request)
    requested -> auto_cancelled  (auto_cancel)
    requested -> disputed        (escalate)
    requested -> none            (abort)

Purge window:
    active    -> read_only  (lock)
    read_only -> purged     (purge)
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

from caseflow.domain.enums import CaseStatus
from caseflow.domain.predicates import is_dispute_locked, is_final_case

if TYPE_CHECKING:
    from caseflow.schemas.case import Case


class _GuardMachine(StateMachine):
    """Shared start-value validation and helpers."""

    def __init__(self, current_status: str | None = None) -> None:
        valid_values = {s.value for s in self.states}
        if current_status is None:
            super().__init__()
            return
        if current_status not in valid_values:
            valid = ", ".join(sorted(valid_values))
            raise ValueError(f"Unknown state '{current_status}'. Valid states: {valid}")
        super().__init__(start_value=current_status)

    @property
    def status(self) -> str:
        return str(self.current_state.value)

    def get_allowed_events(self) -> list[str]:
        return [event.id for event in self.allowed_events]


class EngagementStateMachine(_GuardMachine):
    """Hire -> fund -> work -> complete/terminate."""

    open = State("Open", value="open", initial=True)
    pending_funding = State("Pending funding", value="pending_funding")
    in_progress = State("In progress", value="in progress")
    completed = State("Completed", value="completed", final=True)
    closed = State("Closed", value="closed")
    disputed = State("Disputed", value="disputed", final=True)

    hire = open.to(pending_funding)
    accept_invite = open.to(pending_funding)
    fund = pending_funding.to(in_progress)
    complete = in_progress.to(completed) | pending_funding.to(completed)
    cancel = open.to(closed) | pending_funding.to(closed) | in_progress.to(closed)
    dispute = pending_funding.to(disputed) | in_progress.to(disputed)
    relist = closed.to(open)


class TerminationStateMachine(_GuardMachine):
    """Termination request resolution. Disputed is terminal for the client."""

    none = State("None", value="none", initial=True)
    requested = State("Requested", value="requested")
    auto_cancelled = State("Auto cancelled", value="auto_cancelled", final=True)
    disputed = State("Disputed", value="disputed", final=True)

    request = none.to(requested)
    auto_cancel = requested.to(auto_cancelled)
    escalate = requested.to(disputed)
    abort = requested.to(none)


class PurgeStateMachine(_GuardMachine):
    """Archival lock and countdown. Reaching purged never deletes anything."""

    active = State("Active", value="active", initial=True)
    read_only = State("Read only", value="read_only")
    purged = State("Purged", value="purged", final=True)

    lock = active.to(read_only)
    purge = read_only.to(purged)


# ---------------------------------------------------------------------------
# Case -> machine state
# ---------------------------------------------------------------------------


def engagement_state(case: Case) -> str:
    """Project a Case onto an EngagementStateMachine state value."""
    if is_dispute_locked(case):
        return "disputed"
    if is_final_case(case):
        return "completed"
    if case.status in {CaseStatus.CLOSED, CaseStatus.CANCELLED}:
        return "closed"
    if case.has_paralegal:
        if case.escrow_funded and case.status is CaseStatus.IN_PROGRESS:
            return "in progress"
        return "pending_funding"
    return "open"


def purge_state(case: Case, now: datetime) -> str:
    """Project a Case onto a PurgeStateMachine state value."""
    if not case.read_only:
        return "active"
    deadline = case.purge_scheduled_for
    if deadline is not None:
        if deadline.tzinfo is None:
            deadline = deadline.replace(tzinfo=now.tzinfo)
        if deadline <= now:
            return "purged"
    return "read_only"


def validate_transition(machine_cls: type[_GuardMachine], current: str, event_name: str) -> str:
    """Fire ``event_name`` on a throwaway machine and return the new state.

    Raises:
        TransitionNotAllowed: If the transition is illegal from ``current``.
        ValueError: If the state or event name is unknown.
    """
    sm = machine_cls(current_status=current)
    event_method = getattr(sm, event_name, None)
    if event_method is None or not callable(event_method):
        raise ValueError(
            f"Unknown event '{event_name}'. "
            f"Allowed events from {current}: {sm.get_allowed_events()}"
        )
    event_method()
    return sm.status


def is_transition_allowed(machine_cls: type[_GuardMachine], current: str, event_name: str) -> bool:
    try:
        validate_transition(machine_cls, current, event_name)
    except TransitionNotAllowed:
        return False
    return True
