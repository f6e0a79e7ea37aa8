"""Outbound refund port.

Charges are reported back to the storefront by the processor (see
``RecordTransactionOutcome``); refunds are the one money movement the
storefront starts itself, so they are the only call that goes out.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RefundRequest:
    payment_id: str
    sale_reference: str | None
    amount: float
    currency: str
    reason: str | None = None


@dataclass(frozen=True)
class RefundOutcome:
    approved: bool
    reference: str | None = None
    decline_reason: str | None = None


class RefundGateway(ABC):
    @abstractmethod
    def refund(self, request: RefundRequest) -> RefundOutcome:
        """Return ``request.amount`` against the original sale."""
