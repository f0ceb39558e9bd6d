"""Domain exceptions for the case engagement core.

Two families live here:

    BackendError and subclasses
        Raised by the HTTP boundary. They classify a failed backend call
        (network, auth, conflict, payment, missing) and carry the backend's
        own error text verbatim.

    TransitionRejected and subclasses
        Raised by the lifecycle service. One class per state-changing
        operation, so callers can restore the triggering control and show
        the message without inspecting the backend failure.
"""

from caseflow.domain.enums import CollaborationSurface, ErrorKind

STRIPE_CONNECT_REQUIRED_MESSAGE = (
    "Stripe Connect is required to receive payment. Connect it from your dashboard."
)
FINAL_CASE_RESTORE_MESSAGE = "Completed cases cannot be restored"
PAYMENT_METHOD_REQUIRED_MESSAGE = "Add a payment method to hire."


class CaseflowError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, code: str = "CASEFLOW_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


# --- Backend Errors ---


class BackendError(CaseflowError):
    """A backend call failed. ``message`` is the backend's error/msg string."""

    kind = ErrorKind.BACKEND

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str = "BACKEND_ERROR",
    ) -> None:
        super().__init__(message=message, code=code)
        self.status_code = status_code


class NetworkFailure(BackendError):
    """The request never produced a response (connect/read failure, timeout)."""

    kind = ErrorKind.NETWORK_FAILURE

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=None, code="NETWORK_FAILURE")


class Unauthorized(BackendError):
    """401/403. The login redirect is handled upstream."""

    kind = ErrorKind.UNAUTHORIZED

    def __init__(self, message: str, status_code: int = 401) -> None:
        super().__init__(message, status_code=status_code, code="UNAUTHORIZED")


class ValidationConflict(BackendError):
    """State enum or precondition violated server-side."""

    kind = ErrorKind.VALIDATION_CONFLICT

    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message, status_code=status_code, code="VALIDATION_CONFLICT")


class PaymentRequired(BackendError):
    """No default payment method, or Stripe Connect not set up."""

    kind = ErrorKind.PAYMENT_REQUIRED

    def __init__(self, message: str, status_code: int = 402) -> None:
        super().__init__(message, status_code=status_code, code="PAYMENT_REQUIRED")


class NotFound(BackendError):
    """Case deleted or not visible to the viewer."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=404, code="NOT_FOUND")


# --- Transition Rejections ---


class TransitionRejected(CaseflowError):
    """Base for every lifecycle operation failure.

    ``kind`` is PRECONDITION when the client refused the call before any
    request was made, otherwise the kind of the chained BackendError.
    """

    code_name = "TRANSITION_REJECTED"

    def __init__(
        self,
        case_id: str,
        message: str,
        kind: ErrorKind = ErrorKind.PRECONDITION,
    ) -> None:
        super().__init__(message=message, code=self.code_name)
        self.case_id = case_id
        self.kind = kind

    @property
    def attempted_request(self) -> bool:
        return self.kind is not ErrorKind.PRECONDITION


class HireRejected(TransitionRejected):
    code_name = "HIRE_REJECTED"


class InviteRejected(TransitionRejected):
    code_name = "INVITE_REJECTED"


class InviteResponseRejected(TransitionRejected):
    code_name = "INVITE_RESPONSE_REJECTED"


class ApplyRejected(TransitionRejected):
    code_name = "APPLY_REJECTED"


class PaymentFailed(TransitionRejected):
    """Escrow funding failed. ``decline_reason`` is the card processor's text."""

    code_name = "PAYMENT_FAILED"

    def __init__(
        self,
        case_id: str,
        message: str,
        kind: ErrorKind = ErrorKind.PRECONDITION,
        decline_reason: str | None = None,
    ) -> None:
        super().__init__(case_id, message, kind)
        self.decline_reason = decline_reason


class CompletionRejected(TransitionRejected):
    code_name = "COMPLETION_REJECTED"


class TerminationRejected(TransitionRejected):
    code_name = "TERMINATION_REJECTED"


class ArchiveToggleFailed(TransitionRejected):
    code_name = "ARCHIVE_TOGGLE_FAILED"


class DeleteRejected(TransitionRejected):
    code_name = "DELETE_REJECTED"


# --- Local Guards ---


class CollaborationLocked(CaseflowError):
    """A case refused a message or upload (archived, or workspace not unlocked)."""

    def __init__(
        self,
        case_id: str,
        surface: CollaborationSurface,
        message: str | None = None,
    ) -> None:
        super().__init__(
            message=message or f"Case is archived. {surface.value.capitalize()} is disabled.",
            code="COLLABORATION_LOCKED",
        )
        self.case_id = case_id
        self.surface = surface


class ControlBusy(CaseflowError):
    """A second activation of a control arrived while the first is in flight."""

    def __init__(self, control: str, case_id: str) -> None:
        super().__init__(
            message=f"{control} already in progress for case {case_id}",
            code="CONTROL_BUSY",
        )
        self.control = control
        self.case_id = case_id
