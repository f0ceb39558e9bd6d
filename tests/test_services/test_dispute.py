"""Tests for the termination tracker and its local effects."""

from __future__ import annotations

import pytest
from factories import ATTORNEY_ID, NOW, make_hired_case
from statemachine.exceptions import TransitionNotAllowed

from caseflow.domain.enums import CaseStatus, TerminationStatus
from caseflow.services.dispute import TerminationTracker, apply_termination, with_outcome


class TestTerminationTracker:
    def test_requested_only_while_in_flight(self) -> None:
        tracker = TerminationTracker()
        case = make_hired_case()

        tracker.begin(case)
        assert tracker.status(case) is TerminationStatus.REQUESTED
        assert case.termination.status is TerminationStatus.NONE

        assert tracker.resolve(case.id, requires_admin=False) is TerminationStatus.AUTO_CANCELLED
        assert not tracker.in_flight(case.id)

    def test_second_request_while_pending(self) -> None:
        tracker = TerminationTracker()
        case = make_hired_case()
        tracker.begin(case)
        with pytest.raises(TransitionNotAllowed):
            tracker.begin(case)

    def test_escalation(self) -> None:
        tracker = TerminationTracker()
        case = make_hired_case()
        tracker.begin(case)
        assert tracker.resolve(case.id, requires_admin=True) is TerminationStatus.DISPUTED

    def test_abort(self) -> None:
        tracker = TerminationTracker()
        case = make_hired_case()
        tracker.begin(case)
        tracker.abort(case.id)
        assert tracker.status(case) is TerminationStatus.NONE
        tracker.abort(case.id)

    def test_disputed_case_cannot_request(self) -> None:
        case = make_hired_case(termination={"status": "disputed"})
        with pytest.raises(TransitionNotAllowed):
            TerminationTracker().begin(case)


class TestLocalEffects:
    def test_auto_cancel_detaches_paralegal(self) -> None:
        case = make_hired_case()
        updated = apply_termination(
            case, TerminationStatus.AUTO_CANCELLED, "Scope changed", ATTORNEY_ID, NOW
        )

        assert updated.status is CaseStatus.CLOSED
        assert not updated.has_paralegal
        assert updated.termination.terminated_at == NOW
        assert updated.termination.requested_by == ATTORNEY_ID
        assert case.has_paralegal
        assert case.termination.status is TerminationStatus.NONE

    def test_dispute_keeps_engagement(self) -> None:
        updated = apply_termination(
            make_hired_case(), TerminationStatus.DISPUTED, "Quality", ATTORNEY_ID, NOW
        )
        assert updated.status is CaseStatus.IN_PROGRESS
        assert updated.has_paralegal
        assert updated.termination.terminated_at is None

    def test_with_outcome(self) -> None:
        case = make_hired_case()
        assert with_outcome(case, TerminationStatus.NONE) is case
        assert with_outcome(case, TerminationStatus.DISPUTED).termination.status is (
            TerminationStatus.DISPUTED
        )
