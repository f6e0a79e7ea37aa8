"""Refund gateway that never leaves the process.

Approves by default and keeps every request it saw in ``requests``.
"""

from uuid import uuid4

from storefront.payment.gateway.port import RefundGateway, RefundOutcome, RefundRequest


class InMemoryRefundGateway(RefundGateway):
    def __init__(self) -> None:
        self.requests: list[RefundRequest] = []
        self._decline_reason: str | None = None

    def decline(self, reason: str = "Refund declined") -> None:
        self._decline_reason = reason

    def approve(self) -> None:
        self._decline_reason = None

    def refund(self, request: RefundRequest) -> RefundOutcome:
        self.requests.append(request)
        if self._decline_reason is not None:
            return RefundOutcome(approved=False, decline_reason=self._decline_reason)
        return RefundOutcome(approved=True, reference=f"re_{uuid4().hex[:16]}")
