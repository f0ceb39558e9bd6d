"""Pydantic schemas for the Case record.

The backend owns the Case; the client treats it as a value object rebuilt
from every GET and replaced (never edited in place) after every transition.
Field names are snake_case with camelCase aliases matching the API payloads.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from caseflow.domain.enums import (
    ApplicantStatus,
    CaseStatus,
    InviteStatus,
    TerminationStatus,
)
from caseflow.domain.normalizer import normalize_status

_TERMINATION_FLAT_FIELDS = {
    "terminationStatus": "status",
    "terminationReason": "reason",
    "terminationRequestedAt": "requestedAt",
    "terminationRequestedBy": "requestedBy",
    "terminationDisputeId": "disputeId",
    "terminatedAt": "terminatedAt",
}


def ref_id(value: Any) -> str | None:
    """Return the id of a reference that may be a bare id or a populated object."""
    if value is None or value == "":
        return None
    if isinstance(value, dict):
        inner = value.get("_id") or value.get("id")
        return str(inner) if inner else None
    return str(value)


class _ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


class Applicant(_ApiModel):
    """One paralegal's application to a case."""

    paralegal_id: str = Field(
        validation_alias=AliasChoices("paralegalId", "paralegal_id", "paralegal"),
    )
    status: ApplicantStatus = ApplicantStatus.PENDING
    applied_at: datetime | None = None
    cover_letter: str = ""
    profile_snapshot: dict = Field(default_factory=dict)
    resume_url: str | None = Field(
        default=None, validation_alias=AliasChoices("resumeURL", "resumeUrl", "resume_url")
    )
    linked_in_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("linkedInURL", "linkedInUrl", "linked_in_url"),
    )

    @field_validator("paralegal_id", mode="before")
    @classmethod
    def _paralegal_ref(cls, value: Any) -> str:
        return ref_id(value) or ""

    @field_validator("status", mode="before")
    @classmethod
    def _applicant_status(cls, value: Any) -> ApplicantStatus:
        try:
            return ApplicantStatus(str(value or "pending").lower())
        except ValueError:
            return ApplicantStatus.PENDING


class Invite(_ApiModel):
    """An invitation from the case owner to a specific paralegal."""

    paralegal_id: str = Field(
        validation_alias=AliasChoices("paralegalId", "paralegal_id", "paralegal"),
    )
    status: InviteStatus = InviteStatus.PENDING
    invited_at: datetime | None = None

    @field_validator("paralegal_id", mode="before")
    @classmethod
    def _paralegal_ref(cls, value: Any) -> str:
        return ref_id(value) or ""

    @field_validator("status", mode="before")
    @classmethod
    def _invite_status(cls, value: Any) -> InviteStatus:
        try:
            return InviteStatus(str(value or "pending").lower())
        except ValueError:
            return InviteStatus.PENDING


class Termination(_ApiModel):
    """Termination sub-state of a case."""

    status: TerminationStatus = TerminationStatus.NONE
    reason: str = ""
    requested_at: datetime | None = None
    requested_by: str | None = None
    dispute_id: str | None = None
    terminated_at: datetime | None = None

    @field_validator("status", mode="before")
    @classmethod
    def _termination_status(cls, value: Any) -> TerminationStatus:
        # "resolved" is an admin outcome that re-enables termination.
        try:
            return TerminationStatus(str(value or "none").lower())
        except ValueError:
            return TerminationStatus.NONE

    @field_validator("requested_by", mode="before")
    @classmethod
    def _requester_ref(cls, value: Any) -> str | None:
        return ref_id(value)


class Case(_ApiModel):
    """Authoritative case record as seen by the viewer.

    ``status`` is always canonical; the backend's spelling is kept in
    ``raw_status`` for diagnostics only.
    """

    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    title: str = ""
    practice_area: str = ""
    details: str = ""

    status: CaseStatus = CaseStatus.UNKNOWN
    raw_status: str = ""
    local_draft: bool = False

    archived: bool = False
    read_only: bool = False
    purge_scheduled_for: datetime | None = None

    attorney: dict | str | None = None
    attorney_id: dict | str | None = None
    paralegal: dict | str | None = None
    paralegal_id: dict | str | None = None
    pending_paralegal: dict | str | None = None
    pending_paralegal_id: dict | str | None = None
    pending_paralegal_invited_at: datetime | None = None
    paralegal_name_snapshot: str = ""

    invites: list[Invite] = Field(default_factory=list)
    applicants: list[Applicant] = Field(default_factory=list)
    applicant_count: int = 0

    escrow_intent_id: str | None = None
    escrow_status: str | None = None
    payment_released: bool = False
    payout_finalized: bool = False

    termination: Termination = Field(default_factory=Termination)
    dispute_deadline_at: datetime | None = None

    created_at: datetime | None = None
    updated_at: datetime | None = None

    @model_validator(mode="before")
    @classmethod
    def _fold_backend_shape(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)

        if "rawStatus" not in data and "raw_status" not in data:
            raw = data.get("status")
            data["rawStatus"] = "" if raw is None else str(raw)

        # List endpoints send an applicant count instead of the entries.
        applicants = data.get("applicants")
        if isinstance(applicants, int | float) and not isinstance(applicants, bool):
            data["applicantCount"] = int(applicants)
            data["applicants"] = []

        if "termination" not in data:
            folded = {
                target: data[source]
                for source, target in _TERMINATION_FLAT_FIELDS.items()
                if source in data
            }
            if folded:
                data["termination"] = folded
        return data

    @field_validator("status", mode="before")
    @classmethod
    def _canonical_status(cls, value: Any) -> CaseStatus:
        return normalize_status(value)

    @field_validator("termination", mode="before")
    @classmethod
    def _termination_default(cls, value: Any) -> Any:
        return value if value is not None else {}

    # ------------------------------------------------------------------
    # Derived facts
    # ------------------------------------------------------------------

    @property
    def owner_id(self) -> str | None:
        return ref_id(self.attorney) or ref_id(self.attorney_id)

    @property
    def hired_paralegal_id(self) -> str | None:
        return ref_id(self.paralegal) or ref_id(self.paralegal_id)

    @property
    def has_paralegal(self) -> bool:
        return bool(self.paralegal or self.paralegal_id)

    @property
    def escrow_funded(self) -> bool:
        """Funded only when an escrow intent exists and reports "funded"."""
        if not self.escrow_intent_id:
            return False
        return str(self.escrow_status or "").lower() == "funded"

    @property
    def applicant_total(self) -> int:
        return max(len(self.applicants), self.applicant_count)

    def viewer_applied(self, viewer_id: str | None) -> bool:
        if not viewer_id:
            return False
        target = str(viewer_id)
        return any(entry.paralegal_id == target for entry in self.applicants)

    def pending_invite_for(self, paralegal_id: str | None) -> bool:
        """True if the paralegal holds an outstanding invitation."""
        if not paralegal_id:
            return False
        target = str(paralegal_id)
        pending_ref = ref_id(self.pending_paralegal) or ref_id(self.pending_paralegal_id)
        if pending_ref == target:
            return True
        return any(
            invite.paralegal_id == target and invite.status is InviteStatus.PENDING
            for invite in self.invites
        )

    def search_text(self) -> str:
        """Lowercased haystack for dashboard search."""
        paralegal = self.paralegal if isinstance(self.paralegal, dict) else {}
        parts = [
            self.title,
            self.practice_area,
            self.details,
            paralegal.get("name"),
            paralegal.get("firstName"),
            paralegal.get("lastName"),
            self.paralegal_name_snapshot,
        ]
        return " ".join(p for p in parts if p).lower()
