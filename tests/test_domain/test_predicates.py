"""Tests for the eligibility predicates.

These tests verify that:
    1. The workspace gate needs every one of its five conditions.
    2. Dashboard bucketing follows archived > draft > inquiries > active.
    3. Disputes and final cases lock hiring, applying and termination.
    4. Relists wait for the hold deadline and a finalized payout.
"""

from __future__ import annotations

from datetime import timedelta

import pytest
from factories import ATTORNEY_ID, NOW, PARALEGAL_ID, make_case, make_hired_case

from caseflow.domain.enums import CaseBucket, ViewerRole
from caseflow.domain.predicates import (
    can_apply,
    can_complete,
    can_hire,
    can_respond_to_invite,
    can_restore,
    can_terminate,
    categorize_case,
    hire_block_reason,
    is_dispute_locked,
    is_final_case,
    is_terminal_case,
    is_workspace_eligible,
    relist_hold_active,
)
from caseflow.domain.viewer import Viewer

OWNER = Viewer(ViewerRole.ATTORNEY, ATTORNEY_ID)
OTHER_ATTORNEY = Viewer(ViewerRole.ATTORNEY, "att-2")
PARALEGAL = Viewer(ViewerRole.PARALEGAL, PARALEGAL_ID)
ADMIN = Viewer(ViewerRole.ADMIN, "admin-1")


class TestWorkspaceEligibility:
    """Messaging and files need all five conditions at once."""

    def test_funded_in_progress_case_is_eligible(self) -> None:
        assert is_workspace_eligible(make_hired_case())

    @pytest.mark.parametrize(
        "overrides",
        [
            {"archived": True},
            {"paymentReleased": True},
            {"status": "open"},
            {"escrowStatus": "awaiting_funding"},
            {"paralegal": None},
        ],
        ids=["archived", "paid-out", "not-in-progress", "unfunded", "no-paralegal"],
    )
    def test_each_missing_condition_blocks(self, overrides: dict) -> None:
        assert not is_workspace_eligible(make_hired_case(**overrides))

    def test_escrow_status_without_intent_is_not_funded(self) -> None:
        assert not is_workspace_eligible(make_hired_case(escrowIntentId=None))

    def test_alias_statuses_count_as_in_progress(self) -> None:
        for raw in ("active", "funded_in_progress", "reviewing"):
            assert is_workspace_eligible(make_hired_case(status=raw))

    @pytest.mark.parametrize(
        "status", ["in_progress", "completed", "cancelled", "closed", "open", "garbage"]
    )
    @pytest.mark.parametrize("released", [False, True])
    def test_eligible_is_never_terminal(self, status: str, released: bool) -> None:
        case = make_hired_case(status=status, paymentReleased=released)
        assert not (is_workspace_eligible(case) and is_terminal_case(case))


class TestCategorize:
    def test_applicant_then_archive(self) -> None:
        case = make_case(paralegal=None, applicants=[])
        assert categorize_case(case) is CaseBucket.ACTIVE
        with_applicant = make_case(applicants=[{"paralegalId": "p-1"}])
        assert categorize_case(with_applicant) is CaseBucket.INQUIRIES
        archived = make_case(applicants=[{"paralegalId": "p-1"}], archived=True)
        assert categorize_case(archived) is CaseBucket.ARCHIVED

    def test_buckets(self) -> None:
        assert categorize_case(make_case(archived=True, status="draft")) is CaseBucket.ARCHIVED
        assert categorize_case(make_case(status="draft")) is CaseBucket.DRAFT
        assert categorize_case(make_case(localDraft=True)) is CaseBucket.DRAFT
        assert categorize_case(make_case(applicants=3)) is CaseBucket.INQUIRIES
        assert categorize_case(make_case()) is CaseBucket.ACTIVE
        assert categorize_case(make_hired_case(applicants=2)) is CaseBucket.ACTIVE

    def test_dashboard_scenario(self) -> None:
        """Open with applicants, archived completed, and funded work."""
        cases = [
            make_case(_id="a", applicants=[{"paralegalId": "p-1"}, {"paralegalId": "p-2"}]),
            make_case(_id="b", status="completed", archived=True, paymentReleased=True),
            make_hired_case(_id="c"),
        ]
        assert [categorize_case(c) for c in cases] == [
            CaseBucket.INQUIRIES,
            CaseBucket.ARCHIVED,
            CaseBucket.ACTIVE,
        ]
        assert [is_workspace_eligible(c) for c in cases] == [False, False, True]


class TestFinalAndTerminal:
    def test_paid_out_is_final_whatever_the_status(self) -> None:
        case = make_case(status="open", paymentReleased=True)
        assert is_final_case(case)
        assert is_terminal_case(case)

    def test_closed_is_terminal_not_final(self) -> None:
        case = make_case(status="cancelled")
        assert is_terminal_case(case)
        assert not is_final_case(case)

    def test_final_case_cannot_be_hired_or_restored(self) -> None:
        case = make_case(status="completed", archived=True)
        assert not can_hire(OWNER, case, NOW)
        assert not can_restore(case)
        assert not can_apply(PARALEGAL, case)

    def test_archived_open_case_can_be_restored(self) -> None:
        assert can_restore(make_case(archived=True))


class TestHire:
    def test_owner_and_admin_can_hire_open_case(self) -> None:
        case = make_case()
        assert can_hire(OWNER, case, NOW)
        assert can_hire(ADMIN, case, NOW)
        assert hire_block_reason(OWNER, case, NOW) is None

    def test_other_roles_cannot_hire(self) -> None:
        case = make_case()
        assert not can_hire(OTHER_ATTORNEY, case, NOW)
        assert not can_hire(PARALEGAL, case, NOW)
        assert hire_block_reason(PARALEGAL, case, NOW) == (
            "Only the case attorney can hire for this case."
        )

    def test_case_without_owner_only_admin_can_hire(self) -> None:
        case = make_case(attorney=None)
        assert case.owner_id is None
        assert not can_hire(OTHER_ATTORNEY, case, NOW)
        assert not can_hire(OWNER, case, NOW)
        assert can_hire(ADMIN, case, NOW)

    def test_attorney_without_id_owns_nothing(self) -> None:
        anonymous = Viewer(ViewerRole.ATTORNEY, None)
        case = make_case()
        assert not anonymous.owns(case)
        assert not can_hire(anonymous, case, NOW)
        assert not can_complete(anonymous, make_hired_case())
        assert not can_terminate(anonymous, make_hired_case())

    def test_already_hired(self) -> None:
        case = make_hired_case()
        assert not can_hire(OWNER, case, NOW)
        assert "already in progress" in hire_block_reason(OWNER, case, NOW)

    def test_read_only(self) -> None:
        case = make_case(readOnly=True)
        assert hire_block_reason(OWNER, case, NOW) == "Case is archived. Hiring is disabled."


class TestDisputeLockout:
    @pytest.mark.parametrize(
        "overrides",
        [{"termination": {"status": "disputed"}}, {"status": "disputed"}],
        ids=["termination-disputed", "status-disputed"],
    )
    def test_disputed_case_is_locked(self, overrides: dict) -> None:
        case = make_hired_case(**overrides)
        assert is_dispute_locked(case)
        assert not can_hire(OWNER, case, NOW)
        assert not can_hire(ADMIN, case, NOW)
        assert not can_terminate(OWNER, case)
        assert "under dispute" in hire_block_reason(OWNER, case, NOW)

    def test_dispute_overrides_apply(self) -> None:
        case = make_case(termination={"status": "disputed"})
        assert can_apply(PARALEGAL, make_case())
        assert not can_apply(PARALEGAL, case)

    def test_flat_termination_field_is_folded(self) -> None:
        case = make_hired_case(terminationStatus="disputed")
        assert is_dispute_locked(case)

    def test_resolved_dispute_reenables_termination(self) -> None:
        case = make_hired_case(termination={"status": "resolved"})
        assert not is_dispute_locked(case)
        assert can_terminate(OWNER, case)


class TestRelist:
    def _relist(self, **overrides: object):
        fields = {
            "status": "closed",
            "termination": {"status": "auto_cancelled"},
            "payoutFinalized": True,
        }
        fields.update(overrides)
        return make_case(**fields)

    def test_relist_after_payout(self) -> None:
        assert can_hire(OWNER, self._relist(), NOW)

    def test_relist_waits_for_payout(self) -> None:
        case = self._relist(payoutFinalized=False)
        assert not can_hire(OWNER, case, NOW)
        assert "payout" in hire_block_reason(OWNER, case, NOW)

    def test_relist_hold_deadline(self) -> None:
        deadline = (NOW + timedelta(hours=2)).isoformat()
        case = self._relist(disputeDeadlineAt=deadline)
        assert relist_hold_active(case, NOW)
        assert not can_hire(OWNER, case, NOW)
        assert can_hire(OWNER, case, NOW + timedelta(hours=3))

    def test_closed_without_relist_is_not_hireable(self) -> None:
        assert not can_hire(OWNER, make_case(status="closed"), NOW)


class TestApplyAndInvite:
    def test_paralegal_can_apply_once(self) -> None:
        case = make_case()
        assert can_apply(PARALEGAL, case)
        applied = make_case(applicants=[{"paralegal": {"_id": PARALEGAL_ID}}])
        assert not can_apply(PARALEGAL, applied)
        assert not can_apply(OWNER, case)

    def test_apply_blocked_when_hired_or_read_only(self) -> None:
        assert not can_apply(PARALEGAL, make_hired_case())
        assert not can_apply(PARALEGAL, make_case(readOnly=True))

    def test_respond_needs_pending_invite(self) -> None:
        invited = make_case(invites=[{"paralegalId": PARALEGAL_ID, "status": "pending"}])
        assert can_respond_to_invite(PARALEGAL, invited)
        declined = make_case(invites=[{"paralegalId": PARALEGAL_ID, "status": "declined"}])
        assert not can_respond_to_invite(PARALEGAL, declined)
        pending = make_case(pendingParalegalId=PARALEGAL_ID)
        assert can_respond_to_invite(PARALEGAL, pending)


class TestCompleteAndTerminate:
    def test_complete_needs_owner_and_paralegal(self) -> None:
        assert can_complete(OWNER, make_hired_case())
        assert not can_complete(OWNER, make_case())
        assert not can_complete(PARALEGAL, make_hired_case())
        assert not can_complete(OWNER, make_hired_case(paymentReleased=True))

    def test_terminate_needs_active_engagement(self) -> None:
        assert can_terminate(OWNER, make_hired_case())
        assert not can_terminate(OWNER, make_case())
        assert not can_terminate(OWNER, make_hired_case(readOnly=True))
        assert not can_terminate(OWNER, make_hired_case(termination={"status": "auto_cancelled"}))
