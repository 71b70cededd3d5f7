# models/orders_store.py (Postgres / SQLAlchemy)
from __future__ import annotations
from typing import Optional

from sqlalchemy import select
from models.base import session_scope
from models.schema import Order, OrderItem, Product, ProductVariant, ShopUser, UserAddress

_ORDER_COLS = (
    "order_id", "user_id", "order_date", "total_amount", "status", "payment_id",
    "shipping_address_id", "currency", "base_currency", "display_currency",
    "display_total_amount", "payment_method",
)
_ADDRESS_COLS = ("id", "address_line1", "address_line2",
                 "city", "state", "zip_code", "phone")


def get_order(order_id: int) -> Optional[dict]:
    with session_scope() as s:
        o = s.get(Order, order_id)
        if not o:
            return None
        return {c: getattr(o, c) for c in _ORDER_COLS}


def get_user(user_id: str) -> Optional[dict]:
    if user_id is None:
        return None
    with session_scope() as s:
        u = s.get(ShopUser, str(user_id))
        if not u:
            return None
        return {"id": u.id, "name": u.name, "email": u.email}


def get_address(address_id: int) -> Optional[dict]:
    if address_id is None:
        return None
    with session_scope() as s:
        a = s.get(UserAddress, address_id)
        if not a:
            return None
        return {c: getattr(a, c) for c in _ADDRESS_COLS}


def get_order_items(order_id: int) -> list[dict]:
    """Items of an order, each with its product and variant snapshot."""
    stmt = (
        select(OrderItem, Product, ProductVariant)
        .outerjoin(Product, Product.id == OrderItem.product_id)
        .outerjoin(ProductVariant, ProductVariant.id == OrderItem.variant_id)
        .where(OrderItem.order_id == order_id)
        .order_by(OrderItem.id)
    )
    with session_scope() as s:
        rows = s.execute(stmt).all()
        return [
            {
                "id": it.id,
                "quantity": it.quantity,
                "price": it.price,
                "total_price": it.total_price,
                "product": {
                    "product_title": p.product_title,
                    "image1": p.image1,
                    "slug": p.slug,
                } if p else None,
                "variant": {"size_or_age": v.size_or_age} if v else None,
            }
            for it, p, v in rows
        ]
