# services/payments/base.py
"""
Abstract interface + simple event model for the payment gateway.
Adapters must implement PaymentGateway.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any, Protocol


class CaptureError(RuntimeError):
    """The gateway refused the capture or could not be reached."""


class EventKind(Enum):
    PAYMENT_AUTHORIZED = "payment.authorized"
    PAYMENT_CAPTURED = "payment.captured"
    OTHER = "other"

    @classmethod
    def from_name(cls, name: Optional[str]) -> "EventKind":
        for k in (cls.PAYMENT_AUTHORIZED, cls.PAYMENT_CAPTURED):
            if name == k.value:
                return k
        return cls.OTHER


@dataclass
class WebhookEvent:
    kind: EventKind
    name: Optional[str]            # event name as sent, e.g. 'refund.processed'
    raw: bytes                     # exact bytes the gateway signed
    payload: Any                   # parsed body (only after verification)

    @property
    def payment_entity(self) -> Dict[str, Any]:
        """payload.payment.entity, or {} when the body has another shape."""
        node = self.payload
        for key in ("payload", "payment", "entity"):
            node = node.get(key) if isinstance(node, dict) else None
        return node if isinstance(node, dict) else {}


@dataclass
class CaptureResult:
    payment_id: str
    status: str                   # gateway status after capture, e.g. 'captured'
    amount: Optional[int] = None
    currency: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)


class PaymentGateway(Protocol):
    name: str

    def capture(self, payment_id: str, amount: Any, currency: str) -> CaptureResult:
        """
        Convert an authorized payment into a settled charge.
        Raise CaptureError on any failure (declined, timeout, bad response).
        """
