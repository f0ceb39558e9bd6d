"""Lifecycle Service: the only writer of case state.

Every state-changing call (hire, invite, respond to invite, apply, fund
escrow, complete, terminate, archive/restore, delete) goes through here,
as do the list and detail fetches that rebuild the case cache. Each
operation:

    1. checks the eligibility predicates and the engagement state machine,
       refusing with a typed rejection before any request when they fail;
    2. claims the control in the InflightGuard;
    3. issues the backend call, translating BackendError into the
       operation's rejection;
    4. merges the resulting case into the CaseStore only after success.

apply() is the one optimistic write: the applicant is added before the
call and rolled back if it fails. restore() and delete() carry the one
compensating retry: on a status-validation rejection they PATCH the case
back to ``open``/unarchived and try exactly once more.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, NoReturn

import structlog
from pydantic import ValidationError
from statemachine.exceptions import TransitionNotAllowed

from caseflow.domain.enums import (
    CaseStatus,
    ErrorKind,
    InviteDecision,
    InviteStatus,
    TerminationStatus,
)
from caseflow.domain.exceptions import (
    FINAL_CASE_RESTORE_MESSAGE,
    PAYMENT_METHOD_REQUIRED_MESSAGE,
    STRIPE_CONNECT_REQUIRED_MESSAGE,
    ApplyRejected,
    ArchiveToggleFailed,
    BackendError,
    CompletionRejected,
    DeleteRejected,
    HireRejected,
    InviteRejected,
    InviteResponseRejected,
    NotFound,
    PaymentFailed,
    PaymentRequired,
    TerminationRejected,
    TransitionRejected,
    ValidationConflict,
)
from caseflow.domain.predicates import (
    can_apply,
    can_complete,
    can_fund_escrow,
    can_hire,
    can_respond_to_invite,
    can_terminate,
    hire_block_reason,
    is_dispute_locked,
    is_final_case,
    is_relist,
)
from caseflow.domain.state_machine import (
    EngagementStateMachine,
    PurgeStateMachine,
    engagement_state,
    is_transition_allowed,
    purge_state,
    validate_transition,
)
from caseflow.logging_config import get_logger
from caseflow.schemas.case import Applicant, Case, Invite
from caseflow.schemas.transitions import (
    CompleteResult,
    EscrowIntent,
    PaymentMethodStatus,
    TerminateResult,
)
from caseflow.services.dispute import TerminationTracker, apply_termination, with_outcome
from caseflow.services.inflight import InflightGuard

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from caseflow.domain.payment_protocol import PaymentConfirmer
    from caseflow.domain.viewer import Viewer
    from caseflow.infrastructure.api_client import CaseApiClient
    from caseflow.infrastructure.case_store import CaseStore

logger = get_logger(__name__)

_STATUS_CONFLICT_MARKERS = ("status", "enum", "only open", "archived")
_FINAL_CONFLICT_MARKERS = ("completed", "paid out", "payment released", "funds released")
_RELIST_EVENTS = frozenset({"hire", "accept_invite"})


def _utcnow() -> datetime:
    return datetime.now(UTC)


def is_stripe_connect_error(err: BackendError) -> bool:
    text = err.message.lower()
    return "stripe" in text and ("connect" in text or "onboard" in text)


def is_final_case_conflict(err: BackendError) -> bool:
    """The backend refused because the case is already completed/paid out."""
    if not isinstance(err, ValidationConflict):
        return False
    text = err.message.lower()
    return any(marker in text for marker in _FINAL_CONFLICT_MARKERS)


def is_status_conflict(err: BackendError) -> bool:
    """The backend refused because of the case's status/archived state."""
    if not isinstance(err, ValidationConflict) or is_final_case_conflict(err):
        return False
    text = err.message.lower()
    return any(marker in text for marker in _STATUS_CONFLICT_MARKERS)


def user_message(err: BackendError) -> str:
    """Backend text verbatim, except for the Stripe Connect gate."""
    if is_stripe_connect_error(err):
        return STRIPE_CONNECT_REQUIRED_MESSAGE
    return err.message


def case_from_payload(payload: Any) -> Case | None:
    """Extract a case from a transition response, if it carries one."""
    if not isinstance(payload, dict):
        return None
    candidate = payload.get("case") if isinstance(payload.get("case"), dict) else payload
    if not (candidate.get("id") or candidate.get("_id")):
        return None
    return Case.model_validate(candidate)


class LifecycleService:
    """Transition service and sole mutator of the CaseStore."""

    def __init__(
        self,
        api: CaseApiClient,
        store: CaseStore,
        viewer: Viewer,
        *,
        payment_confirmer: PaymentConfirmer | None = None,
        guard: InflightGuard | None = None,
        tracker: TerminationTracker | None = None,
        clock: Callable[[], datetime] = _utcnow,
        cases_limit: int = 100,
        archived_limit: int = 100,
    ) -> None:
        self._api = api
        self._store = store
        self._viewer = viewer
        self._payment_confirmer = payment_confirmer
        self._guard = guard or InflightGuard()
        self._tracker = tracker or TerminationTracker()
        self._clock = clock
        self._cases_limit = cases_limit
        self._archived_limit = archived_limit

    @property
    def store(self) -> CaseStore:
        return self._store

    @property
    def viewer(self) -> Viewer:
        return self._viewer

    @property
    def guard(self) -> InflightGuard:
        return self._guard

    @property
    def terminations(self) -> TerminationTracker:
        return self._tracker

    # ------------------------------------------------------------------
    # Fetch routines
    # ------------------------------------------------------------------

    async def load_cases(self) -> tuple[Case, ...]:
        """Rebuild the active case list from GET /api/cases/my."""
        rows = await self._api.list_cases(archived=False, limit=self._cases_limit)
        self._store.rebuild(Case.model_validate(row) for row in rows)
        logger.debug("cases.loaded", count=len(self._store.cases))
        return self._store.cases

    async def load_archived(self) -> tuple[Case, ...]:
        rows = await self._api.list_cases(archived=True, limit=self._archived_limit)
        self._store.rebuild_archived(Case.model_validate(row) for row in rows)
        logger.debug("cases.archived_loaded", count=len(self._store.cases_archived))
        return self._store.cases_archived

    async def refresh_case(self, case_id: str) -> Case:
        """Fetch one case (with applicants and invites) and merge it."""
        case = Case.model_validate(await self._api.get_case(case_id))
        self._store.merge(case)
        return case

    async def has_default_payment_method(self) -> bool:
        try:
            payload = await self._api.default_payment_method()
        except (PaymentRequired, NotFound):
            return False
        return PaymentMethodStatus.model_validate(payload).has_payment_method

    # ------------------------------------------------------------------
    # Hiring
    # ------------------------------------------------------------------

    async def hire(self, case_id: str, paralegal_id: str) -> Case:
        """Hire a paralegal. The returned case may still need escrow funding."""
        case = await self._current(case_id, HireRejected)
        reason = hire_block_reason(self._viewer, case, self._clock())
        if reason is not None:
            self._reject(HireRejected, case.id, reason, operation="hire")
        self._guard_engagement(case, "hire", HireRejected)
        if not paralegal_id:
            self._reject(HireRejected, case.id, "Missing paralegal identifier.", operation="hire")

        async with self._guard.hold("hire", case.id):
            with structlog.contextvars.bound_contextvars(case_id=case.id, operation="hire"):
                try:
                    has_method = await self.has_default_payment_method()
                except BackendError as err:
                    raise HireRejected(case.id, user_message(err), err.kind) from err
                if not has_method:
                    self._reject(
                        HireRejected,
                        case.id,
                        PAYMENT_METHOD_REQUIRED_MESSAGE,
                        kind=ErrorKind.PAYMENT_REQUIRED,
                        operation="hire",
                    )
                payload = await self._call(HireRejected, case.id, self._api.hire(case.id, paralegal_id))
                updated = case_from_payload(payload) or self._hired_locally(case, paralegal_id)
                self._store.merge(updated)
                logger.info(
                    "case.hired",
                    paralegal_id=paralegal_id,
                    escrow_funded=updated.escrow_funded,
                )
        return updated

    async def invite(self, case_id: str, paralegal_id: str) -> Case:
        case = await self._current(case_id, InviteRejected)
        reason = hire_block_reason(self._viewer, case, self._clock())
        if reason is not None:
            self._reject(InviteRejected, case.id, reason, operation="invite")
        if not paralegal_id:
            self._reject(InviteRejected, case.id, "Missing paralegal identifier.", operation="invite")

        async with self._guard.hold("invite", case.id):
            with structlog.contextvars.bound_contextvars(case_id=case.id, operation="invite"):
                payload = await self._call(
                    InviteRejected, case.id, self._api.invite(case.id, paralegal_id)
                )
                updated = case_from_payload(payload) or self._invited_locally(case, paralegal_id)
                self._store.merge(updated)
                logger.info("case.invited", paralegal_id=paralegal_id)
        return updated

    async def respond_to_invite(self, case_id: str, decision: InviteDecision | str) -> Case:
        """Accept (behaves like being hired) or decline the viewer's invitation."""
        case = await self._current(case_id, InviteResponseRejected)
        try:
            decision = InviteDecision(str(decision).lower())
        except ValueError:
            self._reject(
                InviteResponseRejected, case.id, f"Unknown decision '{decision}'.", operation="respond"
            )
        if not can_respond_to_invite(self._viewer, case):
            message = (
                "Completed cases cannot accept new responses."
                if is_final_case(case)
                else "No pending invitation for this case."
            )
            self._reject(InviteResponseRejected, case.id, message, operation="respond")
        if decision is InviteDecision.ACCEPT:
            self._guard_engagement(case, "accept_invite", InviteResponseRejected)

        async with self._guard.hold("respond-invite", case.id):
            with structlog.contextvars.bound_contextvars(case_id=case.id, operation="respond"):
                payload = await self._call(
                    InviteResponseRejected,
                    case.id,
                    self._api.respond_invite(case.id, decision.value),
                )
                updated = case_from_payload(payload) or self._responded_locally(case, decision)
                self._store.merge(updated)
                logger.info("case.invite_answered", decision=decision.value)
        return updated

    async def apply(self, case_id: str, note: str = "") -> Case:
        """Apply to a case. The local entry is optimistic until the reload."""
        case = await self._current(case_id, ApplyRejected)
        if not can_apply(self._viewer, case):
            if case.viewer_applied(self._viewer.user_id):
                message = "You have already applied to this case."
            elif is_dispute_locked(case):
                message = "This case is under dispute."
            else:
                message = "Applications are available while the case is open."
            self._reject(ApplyRejected, case.id, message, operation="apply")

        async with self._guard.hold("apply", case.id):
            with structlog.contextvars.bound_contextvars(case_id=case.id, operation="apply"):
                optimistic = Applicant(
                    paralegal_id=self._viewer.user_id or "",
                    applied_at=self._clock(),
                    cover_letter=note,
                )
                self._store.append_applicant(case.id, optimistic)
                try:
                    await self._api.apply(case.id, note)
                except BackendError as err:
                    self._store.merge(case)
                    logger.warning("case.apply_rejected", error=err.message)
                    raise ApplyRejected(case.id, user_message(err), err.kind) from err

                logger.info("case.applied")
                return await self._reconcile(case.id)

    # ------------------------------------------------------------------
    # Escrow
    # ------------------------------------------------------------------

    async def fund_escrow(self, case_id: str, payment_method_token: str) -> Case:
        """Start the escrow intent and confirm it through the payment provider."""
        case = await self._current(case_id, PaymentFailed)
        if not can_fund_escrow(case):
            if case.escrow_funded:
                message = "Escrow is already funded."
            elif case.read_only:
                message = "Case is archived. Funding is disabled."
            else:
                message = "Hire a paralegal before funding escrow."
            self._reject(PaymentFailed, case.id, message, operation="fund")
        self._guard_engagement(case, "fund", PaymentFailed)
        if self._payment_confirmer is None:
            self._reject(
                PaymentFailed, case.id, "Escrow funding is currently unavailable.", operation="fund"
            )

        async with self._guard.hold("fund", case.id):
            with structlog.contextvars.bound_contextvars(case_id=case.id, operation="fund"):
                payload = await self._call(PaymentFailed, case.id, self._api.start_escrow(case.id))
                intent = EscrowIntent.model_validate(payload)
                outcome = await self._payment_confirmer.confirm(
                    intent.client_secret, payment_method_token
                )
                if not outcome.succeeded:
                    reason = outcome.error or "Payment not completed."
                    logger.warning("case.payment_failed", status=outcome.status, reason=reason)
                    raise PaymentFailed(
                        case.id,
                        reason,
                        kind=ErrorKind.PAYMENT_REQUIRED,
                        decline_reason=outcome.error,
                    )

                funded = case.model_copy(
                    update={
                        "escrow_status": "funded",
                        "escrow_intent_id": case.escrow_intent_id
                        or intent.client_secret.split("_secret_")[0],
                    }
                )
                self._store.merge(funded)
                logger.info("case.escrow_funded")
                return await self._reconcile(case.id)

    # ------------------------------------------------------------------
    # Completion and termination
    # ------------------------------------------------------------------

    async def complete_case(self, case_id: str) -> CompleteResult:
        """Release funds, lock the case and start the purge window."""
        case = await self._current(case_id, CompletionRejected)
        if not can_complete(self._viewer, case):
            if not self._viewer.can_manage(case):
                message = "Only the case attorney may close this case."
            elif not case.has_paralegal:
                message = "Assign a paralegal before completing the case."
            else:
                message = "This case has already been completed."
            self._reject(CompletionRejected, case.id, message, operation="complete")
        self._guard_engagement(case, "complete", CompletionRejected)

        async with self._guard.hold("complete", case.id):
            with structlog.contextvars.bound_contextvars(case_id=case.id, operation="complete"):
                payload = await self._call(
                    CompletionRejected, case.id, self._api.complete(case.id)
                )
                result = CompleteResult.model_validate(payload)
                lock = PurgeStateMachine(purge_state(case, self._clock()))
                if lock.status == "active":
                    lock.lock()
                completed = case.model_copy(
                    update={
                        "status": CaseStatus.COMPLETED,
                        "raw_status": "completed",
                        "payment_released": True,
                        "read_only": True,
                        "archived": True,
                        "purge_scheduled_for": result.purge_scheduled_for,
                    }
                )
                self._store.merge(completed)
                logger.info(
                    "case.completed",
                    purge_scheduled_for=str(result.purge_scheduled_for),
                    purge_state=lock.status,
                )
        return result

    async def terminate(self, case_id: str, reason: str = "") -> TerminateResult:
        """End the engagement. The backend cancels outright or opens a dispute."""
        case = await self._current(case_id, TerminationRejected)
        if not can_terminate(self._viewer, case):
            if is_dispute_locked(case):
                message = "This case is under dispute."
            elif case.termination.status is not TerminationStatus.NONE:
                message = "A termination request is already in progress."
            elif not case.has_paralegal:
                message = "No paralegal is currently assigned to this case."
            elif case.read_only:
                message = "Case is archived. Termination is disabled."
            else:
                message = "This case is already closed."
            self._reject(TerminationRejected, case.id, message, operation="terminate")

        async with self._guard.hold("terminate", case.id):
            with structlog.contextvars.bound_contextvars(case_id=case.id, operation="terminate"):
                try:
                    self._tracker.begin(case)
                except TransitionNotAllowed as err:
                    raise TerminationRejected(
                        case.id, "A termination request is already in progress."
                    ) from err
                try:
                    payload = await self._api.terminate(case.id, reason)
                except BackendError as err:
                    self._tracker.abort(case.id)
                    logger.warning("case.terminate_rejected", error=err.message)
                    raise TerminationRejected(case.id, user_message(err), err.kind) from err
                try:
                    result = TerminateResult.model_validate(payload)
                except ValidationError as err:
                    self._tracker.abort(case.id)
                    logger.warning("case.terminate_unreadable", errors=err.error_count())
                    raise TerminationRejected(
                        case.id, "Unexpected termination response.", ErrorKind.BACKEND
                    ) from err

                outcome = self._tracker.resolve(case.id, result.requires_admin)
                if result.case is not None:
                    updated = with_outcome(result.case, outcome)
                else:
                    updated = apply_termination(
                        case, outcome, reason, self._viewer.user_id, self._clock()
                    )
                self._store.merge(updated)
                logger.info("case.terminated", outcome=outcome.value)
        return result.model_copy(update={"case": updated})

    # ------------------------------------------------------------------
    # Archive, restore, delete
    # ------------------------------------------------------------------

    async def archive(self, case_id: str) -> Case:
        case = await self._current(case_id, ArchiveToggleFailed)
        if not self._viewer.can_manage(case):
            self._reject(
                ArchiveToggleFailed,
                case.id,
                "Only the case attorney can archive this case",
                operation="archive",
            )

        async with self._guard.hold("archive", case.id):
            with structlog.contextvars.bound_contextvars(case_id=case.id, operation="archive"):
                payload = await self._call(
                    ArchiveToggleFailed, case.id, self._api.set_archived(case.id, True)
                )
                updated = case_from_payload(payload) or case.model_copy(update={"archived": True})
                self._store.merge(updated)
                logger.info("case.archived", read_only=updated.read_only)
        return updated

    async def restore(self, case_id: str) -> Case:
        """Unarchive a case. Final cases are refused without a request."""
        case = await self._current(case_id, ArchiveToggleFailed)
        if not self._viewer.can_manage(case):
            self._reject(
                ArchiveToggleFailed,
                case.id,
                "Only the case attorney can restore this case",
                operation="restore",
            )
        if is_final_case(case):
            self._reject(ArchiveToggleFailed, case.id, FINAL_CASE_RESTORE_MESSAGE, operation="restore")

        async with self._guard.hold("archive", case.id):
            with structlog.contextvars.bound_contextvars(case_id=case.id, operation="restore"):
                payload = await self._with_status_correction(
                    case.id,
                    ArchiveToggleFailed,
                    first=lambda: self._api.set_archived(case.id, False),
                    retry=lambda: self._api.set_archived(case.id, False),
                )
                updated = case_from_payload(payload) or case.model_copy(
                    update={"archived": False}
                )
                self._store.merge(updated)
                logger.info("case.restored")
        return updated

    async def delete_case(self, case_id: str) -> None:
        """Permanently delete a case, normalizing it to open/unarchived first."""
        case = await self._current(case_id, DeleteRejected)
        if not self._viewer.can_manage(case):
            self._reject(
                DeleteRejected, case.id, "Only the case attorney can delete this case", operation="delete"
            )
        if is_final_case(case):
            self._reject(DeleteRejected, case.id, FINAL_CASE_RESTORE_MESSAGE, operation="delete")
        # The corrective PATCH would reopen a live engagement.
        if case.has_paralegal:
            self._reject(
                DeleteRejected,
                case.id,
                "Cannot delete a case after hiring a paralegal",
                operation="delete",
            )

        async with self._guard.hold("delete", case.id):
            with structlog.contextvars.bound_contextvars(case_id=case.id, operation="delete"):
                if case.archived or case.status is not CaseStatus.OPEN:
                    await self._normalize_for_retry(case.id, DeleteRejected)
                await self._with_status_correction(
                    case.id,
                    DeleteRejected,
                    first=lambda: self._api.delete_case(case.id),
                    retry=lambda: self._api.delete_case(case.id),
                )
                self._store.prune(case.id)
                logger.info("case.deleted")

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _current(self, case_id: str, rejection: type[TransitionRejected]) -> Case:
        """Cached case, fetched once if the cache does not have it yet."""
        case = self._store.get(case_id)
        if case is not None:
            return case
        try:
            return await self.refresh_case(case_id)
        except BackendError as err:
            raise rejection(str(case_id), user_message(err), err.kind) from err

    async def _call(
        self,
        rejection: type[TransitionRejected],
        case_id: str,
        request: Awaitable[Any],
    ) -> Any:
        try:
            return await request
        except BackendError as err:
            logger.warning(
                "case.transition_rejected",
                rejection=rejection.__name__,
                kind=err.kind.value,
                error=err.message,
            )
            raise rejection(case_id, user_message(err), err.kind) from err

    async def _with_status_correction(
        self,
        case_id: str,
        rejection: type[TransitionRejected],
        *,
        first: Callable[[], Awaitable[Any]],
        retry: Callable[[], Awaitable[Any]],
    ) -> Any:
        """Attempt, correct the status once on a status conflict, attempt again."""
        try:
            return await first()
        except BackendError as err:
            if is_final_case_conflict(err):
                raise rejection(case_id, FINAL_CASE_RESTORE_MESSAGE, err.kind) from err
            if not is_status_conflict(err):
                raise rejection(case_id, user_message(err), err.kind) from err
            logger.info("case.status_correction", error=err.message)

        await self._normalize_for_retry(case_id, rejection)
        try:
            return await retry()
        except BackendError as err:
            message = FINAL_CASE_RESTORE_MESSAGE if is_final_case_conflict(err) else user_message(err)
            logger.warning("case.status_correction_failed", error=err.message)
            raise rejection(case_id, message, err.kind) from err

    async def _normalize_for_retry(
        self, case_id: str, rejection: type[TransitionRejected]
    ) -> None:
        try:
            await self._api.patch_case(
                case_id, {"status": CaseStatus.OPEN.value, "archived": False}
            )
        except BackendError as err:
            message = FINAL_CASE_RESTORE_MESSAGE if is_final_case_conflict(err) else user_message(err)
            raise rejection(case_id, message, err.kind) from err

    async def _reconcile(self, case_id: str) -> Case:
        """Authoritative refetch after an optimistic or partial local write."""
        try:
            return await self.refresh_case(case_id)
        except BackendError as err:
            logger.warning("case.reconcile_deferred", error=err.message)
            return self._store.get(case_id)

    def _guard_engagement(
        self, case: Case, event: str, rejection: type[TransitionRejected]
    ) -> None:
        state = engagement_state(case)
        if state == "closed" and is_relist(case) and event in _RELIST_EVENTS:
            state = validate_transition(EngagementStateMachine, state, "relist")
        if not is_transition_allowed(EngagementStateMachine, state, event):
            self._reject(
                rejection,
                case.id,
                f"Cannot {event.replace('_', ' ')} while the case is {state.replace('_', ' ')}.",
                operation=event,
            )

    def _reject(
        self,
        rejection: type[TransitionRejected],
        case_id: str,
        message: str,
        *,
        kind: ErrorKind = ErrorKind.PRECONDITION,
        operation: str,
    ) -> NoReturn:
        logger.info(
            "case.transition_refused",
            case_id=case_id,
            operation=operation,
            kind=kind.value,
            reason=message,
        )
        raise rejection(case_id, message, kind)

    def _hired_locally(self, case: Case, paralegal_id: str) -> Case:
        return case.model_copy(
            update={
                "paralegal_id": paralegal_id,
                "pending_paralegal": None,
                "pending_paralegal_id": None,
                "pending_paralegal_invited_at": None,
                "escrow_status": "funded" if case.escrow_funded else "awaiting_funding",
            }
        )

    def _invited_locally(self, case: Case, paralegal_id: str) -> Case:
        now = self._clock()
        invites = [i for i in case.invites if i.paralegal_id != paralegal_id]
        invites.append(Invite(paralegal_id=paralegal_id, status=InviteStatus.PENDING, invited_at=now))
        return case.model_copy(
            update={
                "invites": invites,
                "pending_paralegal_id": paralegal_id,
                "pending_paralegal_invited_at": now,
            }
        )

    def _responded_locally(self, case: Case, decision: InviteDecision) -> Case:
        viewer_id = self._viewer.user_id or ""
        if decision is InviteDecision.ACCEPT:
            invites = [
                i.model_copy(update={"status": InviteStatus.ACCEPTED})
                if i.paralegal_id == viewer_id
                else i
                for i in case.invites
            ]
            hired = self._hired_locally(case, viewer_id)
            return hired.model_copy(update={"invites": invites})
        invites = [i for i in case.invites if i.paralegal_id != viewer_id]
        update: dict[str, Any] = {"invites": invites}
        if case.pending_invite_for(viewer_id):
            update.update(
                pending_paralegal=None,
                pending_paralegal_id=None,
                pending_paralegal_invited_at=None,
            )
        return case.model_copy(update=update)
