# services/webhook_dispatcher.py
"""
Payment webhook handling, one request at a time.

  verify signature (raw bytes) -> parse JSON -> branch on event name
    payment.authorized  capture right away; always acknowledged
    payment.captured    load order bundle, render, e-mail the purchaser
    anything else       acknowledged and ignored

Nothing here raises to the caller: every path ends in a WebhookOutcome that
the controller turns into an HTTP response.
"""

from __future__ import annotations
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from services.mailer import Mailer
from services.metrics import CAPTURE_ATTEMPTS, CONFIRMATION_EMAILS
from services.order_bundle import OrderBundle, OrderBundleError, fetch_order_bundle
from services.payments.base import EventKind, PaymentGateway, WebhookEvent
from services.signature import verify_signature

logger = logging.getLogger(__name__)


# ---------- outcomes ----------

@dataclass(frozen=True)
class WebhookOutcome:
    status_code: int
    status: Optional[str] = None    # JSON {"status": ...} on success
    error: Optional[str] = None     # short text body on failure

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


CAPTURED_FROM_AUTHORIZED = WebhookOutcome(200, status="captured_from_authorized")
CONFIRMATION_SENT = WebhookOutcome(200, status="ok")
IGNORED_EVENT = WebhookOutcome(200, status="ignored_event")
BAD_JSON = WebhookOutcome(400, error="Bad JSON")
INVALID_SIGNATURE = WebhookOutcome(400, error="Invalid signature")
MISSING_ORDER_ID = WebhookOutcome(400, error="Missing internal_order_id")
INVALID_ORDER_ID = WebhookOutcome(400, error="Invalid internal_order_id")
PROCESSING_ERROR = WebhookOutcome(500, error="error")


# ---------- errors ----------

class MalformedEvent(ValueError):
    outcome = WebhookOutcome(400, error="Malformed event")


class MissingOrderId(MalformedEvent):
    outcome = MISSING_ORDER_ID


class InvalidOrderId(MalformedEvent):
    outcome = INVALID_ORDER_ID


class DeadlineExceeded(RuntimeError):
    pass


def parse_order_id(value: Any) -> int:
    """Internal order ids are non-negative integers, as int or digit string."""
    if value is None or value == "":
        raise MissingOrderId("internal_order_id missing")
    if isinstance(value, bool):
        raise InvalidOrderId(f"internal_order_id {value!r} is not an integer")
    if isinstance(value, int):
        if value < 0:
            raise InvalidOrderId(f"internal_order_id {value!r} is negative")
        return value
    if isinstance(value, str):
        s = value.strip()
        if s.isascii() and s.isdigit():
            return int(s)
    raise InvalidOrderId(f"internal_order_id {value!r} is not a non-negative integer")


def parse_event(raw: bytes) -> WebhookEvent:
    """Raises ValueError when the body is not JSON. Call only after verification."""
    payload = json.loads(raw)
    name = payload.get("event") if isinstance(payload, dict) else None
    if not isinstance(name, str):
        name = None
    return WebhookEvent(kind=EventKind.from_name(name), name=name, raw=raw, payload=payload)


# ---------- dispatcher ----------

class WebhookDispatcher:
    def __init__(self, *, secret: Optional[str], gateway: PaymentGateway, mailer: Mailer,
                 render: Callable[[OrderBundle], Any],
                 fetch_bundle: Callable[[int], OrderBundle] = fetch_order_bundle,
                 settlement_currency: str = "INR",
                 deadline_sec: Optional[float] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.secret = secret
        self.gateway = gateway
        self.mailer = mailer
        self.render = render
        self.fetch_bundle = fetch_bundle
        self.settlement_currency = settlement_currency
        self.deadline_sec = deadline_sec
        self.clock = clock

    def handle(self, raw: bytes, signature: Optional[str]) -> tuple[Optional[WebhookEvent], WebhookOutcome]:
        """Returns the parsed event (None if rejected before parsing) and the outcome."""
        if not verify_signature(raw, signature, self.secret):
            logger.warning("webhook rejected: signature mismatch (%d bytes)", len(raw))
            return None, INVALID_SIGNATURE

        try:
            event = parse_event(raw)
        except ValueError:
            logger.warning("webhook rejected: body is not valid JSON")
            return None, BAD_JSON

        logger.info("webhook event received: %s", event.name)
        if event.kind is EventKind.PAYMENT_AUTHORIZED:
            return event, self.on_authorized(event)
        if event.kind is EventKind.PAYMENT_CAPTURED:
            return event, self.on_captured(event)

        logger.info("ignored event type: %s", event.name)
        return event, IGNORED_EVENT

    # --- payment.authorized ---

    def on_authorized(self, event: WebhookEvent) -> WebhookOutcome:
        entity = event.payment_entity
        payment_id = entity.get("id")
        amount = entity.get("amount")
        if not payment_id:
            logger.error("payment.authorized without payment id; capture skipped")
            CAPTURE_ATTEMPTS.labels(outcome="skipped").inc()
            return CAPTURED_FROM_AUTHORIZED

        logger.info("payment.authorized -> capture payment=%s amount=%s %s",
                    payment_id, amount, self.settlement_currency)
        try:
            result = self.gateway.capture(payment_id, amount, self.settlement_currency)
        except Exception:
            # at most one attempt; the gateway's own auth expiry covers the rest
            logger.exception("capture failed for payment=%s", payment_id)
            CAPTURE_ATTEMPTS.labels(outcome="failed").inc()
        else:
            logger.info("payment captured: %s status=%s", result.payment_id, result.status)
            CAPTURE_ATTEMPTS.labels(outcome="ok").inc()
        return CAPTURED_FROM_AUTHORIZED

    # --- payment.captured ---

    def on_captured(self, event: WebhookEvent) -> WebhookOutcome:
        notes = event.payment_entity.get("notes")
        raw_id = notes.get("internal_order_id") if isinstance(notes, dict) else None
        try:
            order_id = parse_order_id(raw_id)
        except MalformedEvent as e:
            logger.warning("payment.captured rejected: %s", e)
            return e.outcome

        started = self.clock()
        try:
            bundle = self.fetch_bundle(order_id)
            self._check_deadline(started, "fetch")
            msg = self.render(bundle)
            self._check_deadline(started, "render")
            self.mailer.send(msg.to, msg.subject, msg.html)
        except OrderBundleError as e:
            logger.error("order %s: confirmation abandoned, %s", order_id, e)
            CONFIRMATION_EMAILS.labels(outcome="failed").inc()
            return PROCESSING_ERROR
        except Exception:
            logger.exception("order %s: confirmation failed", order_id)
            CONFIRMATION_EMAILS.labels(outcome="failed").inc()
            return PROCESSING_ERROR

        logger.info("order %s: confirmation sent to %s", order_id, msg.to)
        CONFIRMATION_EMAILS.labels(outcome="sent").inc()
        return CONFIRMATION_SENT

    def _check_deadline(self, started: float, stage: str) -> None:
        if self.deadline_sec and self.clock() - started > self.deadline_sec:
            raise DeadlineExceeded(f"webhook deadline of {self.deadline_sec}s exceeded after {stage}")
