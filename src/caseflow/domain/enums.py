"""Domain enumerations for the case engagement core.

These enums define the canonical vocabulary used throughout the client.
They are framework-agnostic (no httpx, no pydantic imports).
"""

import enum


class CaseStatus(enum.StrEnum):
    """Canonical case statuses produced by the status normalizer.

    The backend emits many spellings (in_progress, funded_in_progress,
    awaiting_funding, canceled, ...). Everything funnels through
    domain/normalizer.py into one of these values, or "" for unknown input.
    """

    DRAFT = "draft"
    OPEN = "open"
    APPLIED = "applied"
    IN_PROGRESS = "in progress"
    COMPLETED = "completed"
    CLOSED = "closed"
    CANCELLED = "cancelled"
    DISPUTED = "disputed"
    UNKNOWN = ""


class CaseState(enum.StrEnum):
    """Viewer-facing engagement state derived from status, escrow and hire.

    PENDING_FUNDING separates "a paralegal is attached but escrow is not
    funded" from truly open cases without changing status normalization.
    """

    DRAFT = "draft"
    OPEN = "open"
    APPLIED = "applied"
    PENDING_FUNDING = "pending_funding"
    FUNDED_IN_PROGRESS = "funded_in_progress"


class TerminationStatus(enum.StrEnum):
    """Termination sub-state. REQUESTED is only ever observed in flight."""

    NONE = "none"
    REQUESTED = "requested"
    AUTO_CANCELLED = "auto_cancelled"
    DISPUTED = "disputed"


class InviteStatus(enum.StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class ApplicantStatus(enum.StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class InviteDecision(enum.StrEnum):
    ACCEPT = "accept"
    DECLINE = "decline"


class ViewerRole(enum.StrEnum):
    """Role of the signed-in user looking at a case."""

    ATTORNEY = "attorney"
    PARALEGAL = "paralegal"
    ADMIN = "admin"


class CaseBucket(enum.StrEnum):
    """List buckets on the attorney case dashboard."""

    ARCHIVED = "archived"
    DRAFT = "draft"
    INQUIRIES = "inquiries"
    ACTIVE = "active"


class CollaborationSurface(enum.StrEnum):
    """Controls that the archival lock can disable."""

    COMPOSER = "composer"
    UPLOADS = "uploads"
    HIRE = "hire"
    INVITE = "invite"
    APPLY = "apply"
    TERMINATE = "terminate"


class ErrorKind(enum.StrEnum):
    """Why a transition was rejected."""

    PRECONDITION = "precondition"
    NETWORK_FAILURE = "network_failure"
    UNAUTHORIZED = "unauthorized"
    VALIDATION_CONFLICT = "validation_conflict"
    PAYMENT_REQUIRED = "payment_required"
    NOT_FOUND = "not_found"
    BACKEND = "backend"
