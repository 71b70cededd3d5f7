# services/order_bundle.py
"""
Assemble everything the confirmation e-mail needs for one order.

The lookups depend on each other (purchaser and address come from the order
row), so they run as an ordered pipeline that stops at the first miss. Each
miss has its own exception so logs name the real root cause.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Optional

from sqlalchemy.exc import SQLAlchemyError

from models import orders_store


# ---------- errors ----------

class OrderBundleError(LookupError):
    """Base for every reason a bundle could not be built."""
    code = "bundle_error"

    def __init__(self, order_id: int, detail: str = ""):
        self.order_id = order_id
        self.detail = detail
        msg = f"{self.code} (order {order_id})"
        super().__init__(f"{msg}: {detail}" if detail else msg)


class OrderNotFound(OrderBundleError):
    code = "order_not_found"


class PurchaserNotFound(OrderBundleError):
    """Purchaser row missing, or present without an e-mail address."""
    code = "user_not_found_or_no_email"


class AddressNotFound(OrderBundleError):
    code = "address_not_found"


class ItemsNotFound(OrderBundleError):
    code = "items_not_found"


class DatastoreUnavailable(OrderBundleError):
    code = "datastore_error"


# ---------- bundle ----------

def _dec(v: Any) -> Optional[Decimal]:
    if v is None:
        return None
    try:
        return Decimal(str(v))
    except (InvalidOperation, ValueError):
        return None


@dataclass(frozen=True)
class Order:
    order_id: int
    user_id: Optional[str]
    order_date: Optional[datetime]
    total_amount: Optional[Decimal]
    status: Optional[str]
    payment_id: Optional[str]
    shipping_address_id: Optional[int]
    currency: Optional[str]
    base_currency: Optional[str] = None
    display_currency: Optional[str] = None
    display_total_amount: Optional[Decimal] = None
    payment_method: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "Order":
        return cls(
            order_id=row["order_id"],
            user_id=row.get("user_id"),
            order_date=row.get("order_date"),
            total_amount=_dec(row.get("total_amount")),
            status=row.get("status"),
            payment_id=row.get("payment_id"),
            shipping_address_id=row.get("shipping_address_id"),
            currency=row.get("currency"),
            base_currency=row.get("base_currency"),
            display_currency=row.get("display_currency"),
            display_total_amount=_dec(row.get("display_total_amount")),
            payment_method=row.get("payment_method"),
        )


@dataclass(frozen=True)
class Purchaser:
    id: str
    name: Optional[str]
    email: str


@dataclass(frozen=True)
class ShippingAddress:
    address_line1: Optional[str]
    address_line2: Optional[str]
    city: Optional[str]
    state: Optional[str]
    zip_code: Optional[str]
    phone: Optional[str]


@dataclass(frozen=True)
class ProductSnapshot:
    title: Optional[str] = None
    image: Optional[str] = None
    slug: Optional[str] = None


@dataclass(frozen=True)
class VariantSnapshot:
    size_or_age: Optional[str] = None


@dataclass(frozen=True)
class LineItem:
    id: Optional[int]
    quantity: int
    price: Optional[Decimal]
    total_price: Optional[Decimal] = None
    product: ProductSnapshot = field(default_factory=ProductSnapshot)
    variant: VariantSnapshot = field(default_factory=VariantSnapshot)

    @property
    def line_total(self) -> Decimal:
        if self.total_price is not None:
            return self.total_price
        return (self.price or Decimal("0")) * self.quantity

    @classmethod
    def from_row(cls, row: dict) -> "LineItem":
        p = row.get("product") or {}
        v = row.get("variant") or {}
        return cls(
            id=row.get("id"),
            quantity=int(row.get("quantity") or 0),
            price=_dec(row.get("price")),
            total_price=_dec(row.get("total_price")),
            product=ProductSnapshot(
                title=p.get("product_title"), image=p.get("image1"), slug=p.get("slug")),
            variant=VariantSnapshot(size_or_age=v.get("size_or_age")),
        )


@dataclass(frozen=True)
class OrderBundle:
    order: Order
    purchaser: Purchaser
    address: ShippingAddress
    items: tuple[LineItem, ...]


# ---------- pipeline ----------

def _load_order(store, order_id: int, acc: dict) -> None:
    row = store.get_order(order_id)
    if not row:
        raise OrderNotFound(order_id)
    acc["order"] = Order.from_row(row)


def _load_purchaser(store, order_id: int, acc: dict) -> None:
    order: Order = acc["order"]
    row = store.get_user(order.user_id)
    if not row:
        raise PurchaserNotFound(order_id, f"user {order.user_id!r} missing")
    email = (row.get("email") or "").strip()
    if not email:
        raise PurchaserNotFound(order_id, f"user {order.user_id!r} has no email")
    acc["purchaser"] = Purchaser(id=row["id"], name=row.get("name"), email=email)


def _load_address(store, order_id: int, acc: dict) -> None:
    order: Order = acc["order"]
    row = store.get_address(order.shipping_address_id)
    if not row:
        raise AddressNotFound(order_id, f"address {order.shipping_address_id!r} missing")
    acc["address"] = ShippingAddress(
        address_line1=row.get("address_line1"),
        address_line2=row.get("address_line2"),
        city=row.get("city"),
        state=row.get("state"),
        zip_code=row.get("zip_code"),
        phone=row.get("phone"),
    )


def _load_items(store, order_id: int, acc: dict) -> None:
    rows = store.get_order_items(order_id)
    if not rows:
        raise ItemsNotFound(order_id)
    acc["items"] = tuple(LineItem.from_row(r) for r in rows)


PIPELINE: tuple[tuple[str, Callable], ...] = (
    ("order", _load_order),
    ("purchaser", _load_purchaser),
    ("address", _load_address),
    ("items", _load_items),
)


def fetch_order_bundle(order_id: int, store=orders_store) -> OrderBundle:
    """
    Run the lookups in order. Raises an OrderBundleError subclass on the first
    missing entity; a datastore error aborts the whole fetch (no retry).
    """
    acc: dict = {}
    for step, load in PIPELINE:
        try:
            load(store, order_id, acc)
        except SQLAlchemyError as e:
            raise DatastoreUnavailable(order_id, f"{step} lookup failed: {e}") from e
    return OrderBundle(**acc)
