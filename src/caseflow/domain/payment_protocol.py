"""Payment Confirmer Protocol.

The card payment SDK lives outside this package. The lifecycle service
hands it the client secret returned by start-escrow and a tokenised payment
method, and expects a PaymentOutcome back.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class PaymentOutcome:
    """Result of confirming an escrow payment intent.

    Attributes:
        status: Provider intent status ("succeeded", "requires_action", ...).
        error: Decline or validation message from the card processor.
    """

    status: str
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.status == "succeeded"


@runtime_checkable
class PaymentConfirmer(Protocol):
    """Confirms a payment intent with the external payment provider."""

    async def confirm(self, client_secret: str, payment_method_token: str) -> PaymentOutcome:
        ...
