"""Error taxonomy shared across the storefront.

Malformed input is reported with Protean's ``ValidationError`` and missing
records with ``ObjectNotFoundError``. Requests that are well formed but
collide with current state (not enough stock, coupon rules, refund ceiling,
illegal status change) raise ``ConflictError``, which carries a stable
``reason`` code plus structured ``details`` for callers.
"""

from protean.exceptions import ValidationError


class ConflictError(ValidationError):
    """The request is valid but the current state does not allow it."""

    def __init__(self, reason: str, message: str, field: str = "_entity", **details):
        self.reason = reason
        self.details = details
        super().__init__({field: [message]})

    def to_dict(self) -> dict:
        return {
            "reason": self.reason,
            "details": self.details,
            "messages": self.messages,
        }


class InsufficientStock(ConflictError):
    def __init__(self, message: str, **details):
        super().__init__("insufficient_stock", message, field="quantity", **details)


class CouponRejected(ConflictError):
    def __init__(self, reason: str, message: str, **details):
        super().__init__(reason, message, field="coupon_code", **details)


class InvalidTransition(ConflictError):
    def __init__(self, current: str, target: str):
        super().__init__(
            "invalid_transition",
            f"Cannot transition from {current} to {target}",
            field="status",
            current=current,
            target=target,
        )


class RefundExceedsCeiling(ConflictError):
    def __init__(self, requested: float, refundable: float):
        super().__init__(
            "exceeds_refundable",
            f"Refund amount ({requested}) exceeds refundable amount ({refundable})",
            field="amount",
            requested=requested,
            refundable=refundable,
        )


class InternalError(Exception):
    """Unexpected failure while running a storefront operation."""

    def __init__(self, operation: str, cause: Exception):
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation} failed: {cause}")
