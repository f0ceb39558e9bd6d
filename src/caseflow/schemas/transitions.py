"""Pydantic schemas for transition responses.

These are the non-Case bodies returned by the lifecycle endpoints. Bodies
that carry a full case are parsed with schemas.case.Case instead.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from caseflow.schemas.case import Case


class _ResponseModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class CompleteResult(_ResponseModel):
    """Body of POST /api/cases/:id/complete."""

    download_path: str = ""
    purge_scheduled_for: datetime | None = None
    archive_ready_at: datetime | None = None
    already_closed: bool = False


class TerminateResult(_ResponseModel):
    """Body of POST /api/cases/:id/terminate.

    ``requires_admin`` is True when work had started and the request was
    escalated to a dispute instead of cancelling immediately.
    """

    requires_admin: bool = False
    case: Case | None = None


class EscrowIntent(_ResponseModel):
    """Body of POST /api/payments/start-escrow."""

    client_secret: str = Field(min_length=1)


class PaymentMethodStatus(_ResponseModel):
    """Body of GET /api/payments/payment-method/default."""

    payment_method: dict | str | None = None

    @property
    def has_payment_method(self) -> bool:
        return bool(self.payment_method)
