# services/notifications.py
"""
Order-confirmation e-mail rendering.

The template is plain HTML with {{ name }} placeholders. Substitution is a
pure string function; every value coming from the database or config is
escaped before it goes in. Only items_html is inserted raw, and it is built
from escaped pieces.
"""

from __future__ import annotations
import re
import threading
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from pathlib import Path
from typing import Any, Mapping, Optional

from markupsafe import escape

from services.datetimex import dt_local, now_utc
from services.order_bundle import LineItem, OrderBundle

SHIPPING_EPSILON = Decimal("0.0001")
DEFAULT_CURRENCY = "INR"
DEFAULT_TEMPLATE_PATH = str(
    Path(__file__).resolve().parent.parent / "templates" / "emails" / "order_confirmation.html")

_PLACEHOLDER_RX = re.compile(r"{{\s*([a-zA-Z0-9_]+)\s*}}")


@dataclass(frozen=True)
class RenderedNotification:
    to: str
    subject: str
    html: str


@dataclass(frozen=True)
class Branding:
    brand_name: str = "NEW OF YOU"
    base_site_url: Optional[str] = None
    support_url: Optional[str] = None
    instagram_url: Optional[str] = None
    facebook_url: Optional[str] = None
    youtube_url: Optional[str] = None
    linkedin_url: Optional[str] = None
    unsubscribe_url: Optional[str] = None

    @classmethod
    def from_config(cls, cfg: Mapping[str, Any]) -> "Branding":
        return cls(
            brand_name=cfg.get("MAIL_BRAND_NAME") or cls.brand_name,
            base_site_url=cfg.get("BASE_SITE_URL"),
            support_url=cfg.get("SUPPORT_URL"),
            instagram_url=cfg.get("INSTAGRAM_URL"),
            facebook_url=cfg.get("FACEBOOK_URL"),
            youtube_url=cfg.get("YOUTUBE_URL"),
            linkedin_url=cfg.get("LINKEDIN_URL"),
            unsubscribe_url=cfg.get("UNSUBSCRIBE_URL"),
        )

    @property
    def order_status_url(self) -> str:
        if not self.base_site_url:
            return "#"
        return f"{self.base_site_url.rstrip('/')}/profile"


# ---------- template loading ----------

_TEMPLATE_CACHE: dict[str, str] = {}
_TEMPLATE_LOCK = threading.Lock()


def load_template(path: str = DEFAULT_TEMPLATE_PATH) -> str:
    """Read the template once per process; later calls hit the cache."""
    tpl = _TEMPLATE_CACHE.get(path)
    if tpl is not None:
        return tpl
    with _TEMPLATE_LOCK:
        if path not in _TEMPLATE_CACHE:
            _TEMPLATE_CACHE[path] = Path(path).read_text(encoding="utf-8")
        return _TEMPLATE_CACHE[path]


def render_placeholders(template: str, values: Mapping[str, Any]) -> str:
    def _sub(m: re.Match) -> str:
        v = values.get(m.group(1))
        return "" if v is None else str(v)
    return _PLACEHOLDER_RX.sub(_sub, template)


# ---------- money ----------

def currency_symbol(code: Optional[str]) -> str:
    c = (code or DEFAULT_CURRENCY).upper()
    if c == "USD":
        return "$"
    if c == "EUR":
        return "€"
    return "₹"


def fmt_money(amount: Decimal) -> str:
    return str(Decimal(amount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def compute_subtotal(items) -> Decimal:
    return sum((it.line_total for it in items), Decimal("0"))


def compute_grand_total(bundle: OrderBundle) -> Decimal:
    o = bundle.order
    if o.display_total_amount is not None:
        return o.display_total_amount
    return o.total_amount or Decimal("0")


def compute_shipping(grand: Decimal, subtotal: Decimal) -> Decimal:
    shipping = grand - subtotal
    if shipping < SHIPPING_EPSILON:
        return Decimal("0")
    return shipping


def shipping_display(shipping: Decimal, sym: str) -> str:
    return f"{sym}{fmt_money(shipping)}" if shipping > 0 else "Free"


# ---------- markup ----------

_IMG_STYLE = "width:60px;height:60px;object-fit:cover;border-radius:6px;border:1px solid #eee;"
_NO_IMG = (
    '<div style="width:60px;height:60px;border:1px solid #eee;border-radius:6px;'
    'background:#fafafa;font-size:11px;display:flex;align-items:center;'
    'justify-content:center;color:#888;">No Img</div>'
)
_CELL = "padding:8px;border:1px solid #e5e5e5;"


def item_row_html(item: LineItem, sym: str) -> str:
    title = item.product.title or "Product"
    variant = f" • {item.variant.size_or_age}" if item.variant.size_or_age else ""
    if item.product.image:
        img = f'<img src="{escape(item.product.image)}" alt="{escape(title)}" style="{_IMG_STYLE}" />'
    else:
        img = _NO_IMG
    return f"""
      <tr>
        <td style="{_CELL}text-align:center;">{img}</td>
        <td style="{_CELL}">
          <div style="font-weight:600;font-size:14px;line-height:1.3;">{escape(title)}{escape(variant)}</div>
          <div style="font-size:12px;color:#666;margin-top:2px;">Qty: {item.quantity}</div>
        </td>
        <td style="{_CELL}text-align:right;font-size:14px;font-weight:600;">
          {escape(sym)}{fmt_money(item.line_total)}
        </td>
      </tr>
    """


def build_items_html(items, sym: str) -> str:
    return "".join(item_row_html(it, sym) for it in items)


def _payment_method(bundle: OrderBundle) -> str:
    o = bundle.order
    return (o.payment_method or ("ONLINE" if o.payment_id else "UNKNOWN")).upper()


def render_order_confirmation(bundle: OrderBundle, template: str, branding: Branding,
                              display_tz: Optional[str] = None, now=None) -> RenderedNotification:
    now = now or now_utc()
    o, user, addr = bundle.order, bundle.purchaser, bundle.address

    sym = currency_symbol(o.display_currency or o.currency)
    subtotal = compute_subtotal(bundle.items)
    grand = compute_grand_total(bundle)
    shipping = compute_shipping(grand, subtotal)

    text_values = {
        "customer_name": user.name or "Customer",
        "order_id": o.order_id,
        "order_date": dt_local(o.order_date or now, display_tz),
        "payment_method": _payment_method(bundle),
        "status": o.status,
        "currency_symbol": sym,
        "subtotal": fmt_money(subtotal),
        "shipping_display": shipping_display(shipping, sym),
        "grand_total": fmt_money(grand),
        "address_line1": addr.address_line1,
        "address_line2": addr.address_line2 or "",
        "city": addr.city,
        "state": addr.state,
        "pincode": addr.zip_code,
        "phone": addr.phone,
        "order_status_url": branding.order_status_url,
        "support_url": branding.support_url or "#",
        "instagram_url": branding.instagram_url or "#",
        "facebook_url": branding.facebook_url or "#",
        "youtube_url": branding.youtube_url or "#",
        "linkedin_url": branding.linkedin_url or "#",
        "unsubscribe_url": branding.unsubscribe_url or "#",
        "current_year": now.year,
    }
    values = {k: (None if v is None else escape(v)) for k, v in text_values.items()}
    values["items_html"] = build_items_html(bundle.items, sym)

    return RenderedNotification(
        to=user.email,
        subject=f"Your {branding.brand_name} Order #{o.order_id} Confirmation",
        html=render_placeholders(template, values),
    )


class OrderConfirmationRenderer:
    """Callable handed to the dispatcher; loads the cached template per call."""

    def __init__(self, template_path: Optional[str] = None, branding: Optional[Branding] = None,
                 display_tz: Optional[str] = None):
        self.template_path = template_path or DEFAULT_TEMPLATE_PATH
        self.branding = branding or Branding()
        self.display_tz = display_tz

    def __call__(self, bundle: OrderBundle) -> RenderedNotification:
        return render_order_confirmation(
            bundle, load_template(self.template_path), self.branding, self.display_tz)
