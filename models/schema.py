# models/schema.py
# Storefront tables. The checkout app owns them; this service only reads.
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import (
    String, Text, Integer, DateTime, Numeric, ForeignKey, Index
)
from models.base import Base


# --- PURCHASERS

class ShopUser(Base):
    __tablename__ = "users"
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str | None] = mapped_column(String)
    email: Mapped[str | None] = mapped_column(String)


class UserAddress(Base):
    __tablename__ = "user_addresses"
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"))
    address_line1: Mapped[str | None] = mapped_column(Text)
    address_line2: Mapped[str | None] = mapped_column(Text)
    city: Mapped[str | None] = mapped_column(String)
    state: Mapped[str | None] = mapped_column(String)
    zip_code: Mapped[str | None] = mapped_column(String(16))
    phone: Mapped[str | None] = mapped_column(String(32))


# --- CATALOG

class Product(Base):
    __tablename__ = "products"
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True)
    product_title: Mapped[str | None] = mapped_column(String)
    image1: Mapped[str | None] = mapped_column(Text)   # public image URL
    slug: Mapped[str | None] = mapped_column(String)


class ProductVariant(Base):
    __tablename__ = "product_variants"
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("products.id", ondelete="CASCADE"))
    size_or_age: Mapped[str | None] = mapped_column(String)


# --- ORDERS

class Order(Base):
    __tablename__ = "orders"
    order_id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("users.id"))
    order_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True))

    # settlement amount, what the gateway actually charges
    total_amount: Mapped[Decimal | None] = mapped_column(Numeric(18, 2))
    currency: Mapped[str | None] = mapped_column(String(3))
    base_currency: Mapped[str | None] = mapped_column(String(3))

    # purchaser-facing amount, may differ from settlement
    display_currency: Mapped[str | None] = mapped_column(String(3))
    display_total_amount: Mapped[Decimal | None] = mapped_column(
        Numeric(18, 2))

    status: Mapped[str | None] = mapped_column(String)
    payment_id: Mapped[str | None] = mapped_column(String)   # gateway ref
    payment_method: Mapped[str | None] = mapped_column(String)
    shipping_address_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("user_addresses.id"))


class OrderItem(Base):
    __tablename__ = "order_items"
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("orders.order_id", ondelete="CASCADE"), nullable=False)
    product_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("products.id"))
    variant_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("product_variants.id"))
    quantity: Mapped[int | None] = mapped_column(Integer)
    price: Mapped[Decimal | None] = mapped_column(Numeric(18, 2))   # unit
    total_price: Mapped[Decimal | None] = mapped_column(Numeric(18, 2))

    __table_args__ = (
        Index("idx_order_items_order", "order_id"),
    )
