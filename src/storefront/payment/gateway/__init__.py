"""Process-wide refund gateway.

The in-memory gateway is installed lazily; a deployment wires a real
processor adapter with ``use_gateway`` during startup.
"""

from storefront.payment.gateway.fake_adapter import InMemoryRefundGateway
from storefront.payment.gateway.port import RefundGateway, RefundOutcome, RefundRequest

__all__ = [
    "InMemoryRefundGateway",
    "RefundGateway",
    "RefundOutcome",
    "RefundRequest",
    "get_gateway",
    "reset_gateway",
    "use_gateway",
]

_installed: dict[str, RefundGateway] = {}


def get_gateway() -> RefundGateway:
    if "refunds" not in _installed:
        _installed["refunds"] = InMemoryRefundGateway()
    return _installed["refunds"]


def use_gateway(gateway: RefundGateway) -> None:
    _installed["refunds"] = gateway


def reset_gateway() -> None:
    _installed.clear()
