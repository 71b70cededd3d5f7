# tests/utils.py
import json
from datetime import datetime, timezone
from decimal import Decimal

from services.signature import compute_signature

WEBHOOK_SECRET = "whsec_test_secret"
ADMIN_PASSWORD = "correct horse battery staple"


def signed(body: bytes, secret: str = WEBHOOK_SECRET) -> dict:
    return {"X-Razorpay-Signature": compute_signature(body, secret),
            "Content-Type": "application/json"}


def event_body(event: str, entity: dict | None = None) -> bytes:
    return json.dumps({
        "entity": "event",
        "event": event,
        "payload": {"payment": {"entity": entity or {}}},
    }).encode("utf-8")


def authorized_body(payment_id="pay_123", amount=50000) -> bytes:
    return event_body("payment.authorized", {"id": payment_id, "amount": amount, "currency": "INR"})


def captured_body(order_id="42") -> bytes:
    notes = {} if order_id is None else {"internal_order_id": order_id}
    return event_body("payment.captured", {"id": "pay_123", "amount": 50000, "notes": notes})


class FakeStore:
    """In-memory stand-in for models.orders_store."""

    def __init__(self, order=None, user=None, address=None, items=None):
        self.order = order
        self.user = user
        self.address = address
        self.items = items if items is not None else []
        self.calls = []

    def get_order(self, order_id):
        self.calls.append(("order", order_id))
        return self.order

    def get_user(self, user_id):
        self.calls.append(("user", user_id))
        return self.user

    def get_address(self, address_id):
        self.calls.append(("address", address_id))
        return self.address

    def get_order_items(self, order_id):
        self.calls.append(("items", order_id))
        return self.items


def order_row(**overrides) -> dict:
    row = {
        "order_id": 42,
        "user_id": "u-1",
        "order_date": datetime(2025, 3, 1, 10, 30, tzinfo=timezone.utc),
        "total_amount": Decimal("30.00"),
        "status": "paid",
        "payment_id": "pay_123",
        "shipping_address_id": 7,
        "currency": "INR",
        "base_currency": "INR",
        "display_currency": None,
        "display_total_amount": None,
        "payment_method": None,
    }
    row.update(overrides)
    return row


def user_row(**overrides) -> dict:
    row = {"id": "u-1", "name": "Asha", "email": "asha@example.com"}
    row.update(overrides)
    return row


def address_row(**overrides) -> dict:
    row = {
        "id": 7, "address_line1": "12 MG Road", "address_line2": None,
        "city": "Pune", "state": "MH", "zip_code": "411001", "phone": "+91 90000 00000",
    }
    row.update(overrides)
    return row


def item_row(title="Linen Shirt", price="10", quantity=3, total_price=None,
             size=None, image=None, item_id=1) -> dict:
    return {
        "id": item_id,
        "quantity": quantity,
        "price": Decimal(price) if price is not None else None,
        "total_price": Decimal(total_price) if total_price is not None else None,
        "product": {"product_title": title, "image1": image, "slug": "linen-shirt"},
        "variant": {"size_or_age": size} if size else None,
    }


def full_store(**kw) -> FakeStore:
    return FakeStore(
        order=kw.get("order", order_row()),
        user=kw.get("user", user_row()),
        address=kw.get("address", address_row()),
        items=kw.get("items", [item_row()]),
    )
