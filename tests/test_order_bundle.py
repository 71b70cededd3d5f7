from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from services.order_bundle import (
    AddressNotFound, DatastoreUnavailable, ItemsNotFound, OrderBundleError,
    OrderNotFound, PurchaserNotFound, fetch_order_bundle,
)
from tests.utils import FakeStore, full_store, item_row, user_row


def test_fetch_assembles_bundle_in_lookup_order():
    store = full_store(items=[item_row(item_id=1), item_row(title="Cap", price="5", quantity=1, item_id=2)])
    b = fetch_order_bundle(42, store=store)

    assert [c[0] for c in store.calls] == ["order", "user", "address", "items"]
    # purchaser and address keys come from the order row
    assert store.calls[1] == ("user", "u-1")
    assert store.calls[2] == ("address", 7)
    assert b.order.order_id == 42
    assert b.purchaser.email == "asha@example.com"
    assert b.address.city == "Pune"
    assert [it.product.title for it in b.items] == ["Linen Shirt", "Cap"]
    assert b.items[0].line_total == Decimal("30")


def test_missing_order_stops_pipeline():
    store = FakeStore(order=None)
    with pytest.raises(OrderNotFound):
        fetch_order_bundle(1, store=store)
    assert store.calls == [("order", 1)]


@pytest.mark.parametrize("user", [None, user_row(email=None), user_row(email="   ")])
def test_missing_purchaser_or_email(user):
    store = full_store(user=user)
    with pytest.raises(PurchaserNotFound) as ei:
        fetch_order_bundle(42, store=store)
    assert ei.value.order_id == 42
    assert ("address", 7) not in store.calls


def test_missing_address():
    with pytest.raises(AddressNotFound):
        fetch_order_bundle(42, store=full_store(address=None))


def test_no_items_is_a_failure():
    with pytest.raises(ItemsNotFound):
        fetch_order_bundle(42, store=full_store(items=[]))


def test_all_failures_share_a_lookup_error_base():
    for exc in (OrderNotFound, PurchaserNotFound, AddressNotFound, ItemsNotFound, DatastoreUnavailable):
        assert issubclass(exc, OrderBundleError)
        assert issubclass(exc, LookupError)


def test_datastore_error_aborts_without_retry():
    class Flaky(FakeStore):
        def get_user(self, user_id):
            self.calls.append(("user", user_id))
            raise OperationalError("SELECT 1", {}, Exception("connection reset"))

    store = Flaky(order=full_store().order)
    with pytest.raises(DatastoreUnavailable) as ei:
        fetch_order_bundle(42, store=store)
    assert "purchaser" in str(ei.value)
    assert [c[0] for c in store.calls] == ["order", "user"]


def test_item_defaults_when_snapshots_missing():
    row = {"id": 3, "quantity": None, "price": None, "total_price": None,
           "product": None, "variant": None}
    b = fetch_order_bundle(42, store=full_store(items=[row]))
    it = b.items[0]
    assert it.quantity == 0
    assert it.line_total == Decimal("0")
    assert it.product.title is None and it.variant.size_or_age is None


def test_bundle_is_immutable():
    b = fetch_order_bundle(42, store=full_store())
    with pytest.raises(Exception):
        b.order.status = "changed"
