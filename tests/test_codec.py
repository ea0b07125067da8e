import json
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from tillbook.bills import PaymentMethod, PaymentStatus, Pricing, Tender
from tillbook.errors import ValidationError
from tillbook.identity import OrderIdentity
from tillbook.lifecycle import OrderStatus
from tillbook.orders import Customer, check_invariants, create, quote
from tillbook.storage import (
    MemoryOrderStore,
    order_from_document,
    order_to_document,
    parse_order_status,
    parse_payment_method,
    parse_payment_status,
)

from tests._helpers import ADMIN, NOW, TAX_38, err, latte_and_muffin, make_service, ok, run


def make_order():
    priced = ok(quote(latte_and_muffin(), Pricing(tax=TAX_38), Tender(cash=Decimal("18"), online=Decimal("100"))))
    identity = OrderIdentity("ORD-240305-0001", "ord_20240305101500_abcdef012345")
    return ok(
        create(
            priced,
            identity,
            owner_user_id="u1",
            created_at=NOW,
            customer=Customer(name="Ana", phone="0917", guests=2),
            table_id="T4",
            notes="no sugar",
        )
    )


def test_document_layout():
    doc = order_to_document(make_order())

    assert doc["orderNumber"] == "ORD-240305-0001"
    assert doc["paymentMethod"] == "Mixed"
    assert doc["paymentStatus"] == "partial"
    assert doc["bills"]["totalWithTax"] == "418.00"
    assert doc["bills"]["remainingBalance"] == "300.00"
    assert doc["bills"]["onlineMethod"] == "Online-GCASH"
    assert doc["items"][0] == {
        "name": "Latte",
        "quantity": 2,
        "unitPrice": "150.00",
        "lineTotal": "300.00",
        "isRedeemed": False,
        "isPwdSeniorDiscounted": False,
        "category": "other",
    }
    assert doc["createdAt"] == "2024-03-05T10:15:00+00:00"
    assert doc["customer"] == {"name": "Ana", "phone": "0917", "guests": 2}
    json.dumps(doc)


def test_document_decodes_to_the_same_order():
    order = make_order()

    assert ok(order_from_document(json.loads(json.dumps(order_to_document(order))))) == order


def test_legacy_document_is_recomputed_from_items():
    doc = {
        "_id": "64f0c0ffee",
        "orderNumber": "ORD-230101-0001",
        "customerDetails": {"name": "Ben", "guests": 3},
        "items": [
            {"name": "Latte", "quantity": 2, "price": 150, "total": 300},
            {"name": "Muffin", "quantity": 1, "price": 80, "total": 80},
        ],
        "bills": {"total": 380, "tax": 38, "totalWithTax": 418},
        "user": "u1",
        "paymentMethod": "card",
        "paymentStatus": "paid",
        "orderStatus": "Completed",
        "createdAt": "2023-01-01T08:00:00.000Z",
        "table": 7,
    }

    order = ok(order_from_document(doc))

    assert order.order_id == "64f0c0ffee"
    assert order.owner_user_id == "u1"
    assert order.customer == Customer(name="Ben", phone="N/A", guests=3)
    assert order.table_id == "7"
    assert order.payment_method is PaymentMethod.ONLINE_BDO
    assert order.payment_status is PaymentStatus.COMPLETED
    assert order.order_status is OrderStatus.COMPLETED
    assert order.bills.total_with_tax == Decimal("418.00")
    assert order.bills.online_amount == Decimal("418.00")
    assert order.created_at == datetime(2023, 1, 1, 8, tzinfo=timezone.utc)
    assert order.updated_at == order.created_at
    assert ok(check_invariants(order)) == order


def test_total_amount_document_infers_tax():
    doc = {
        "_id": "64f0decade",
        "orderNumber": "ORD-230101-0002",
        "items": [{"name": "Tea", "quantity": 1, "price": 100}],
        "totalAmount": 112,
        "user": "u2",
        "paymentMethod": "cash",
        "paymentStatus": "Pending",
        "orderStatus": "pending",
        "orderDate": "2023-01-01T09:30:00",
    }

    order = ok(order_from_document(doc))

    assert order.bills.tax == Decimal("12.00")
    assert order.bills.total_with_tax == Decimal("112.00")
    assert order.payment_status is PaymentStatus.PENDING
    assert order.created_at.tzinfo is not None


def test_legacy_refund_status_is_kept():
    doc = {
        "_id": "64f0feed",
        "orderNumber": "ORD-230101-0003",
        "items": [{"name": "Tea", "quantity": 1, "price": 100}],
        "bills": {"tax": 0},
        "user": "u2",
        "paymentMethod": "upi",
        "paymentStatus": "refunded",
        "orderStatus": "cancelled",
        "createdAt": "2023-01-01T09:30:00Z",
    }

    order = ok(order_from_document(doc))

    assert order.payment_status is PaymentStatus.REFUNDED
    assert order.payment_method is PaymentMethod.ONLINE_GCASH


def test_document_missing_a_field_is_rejected():
    doc = order_to_document(make_order())
    del doc["orderNumber"]

    e = err(order_from_document(doc))

    assert isinstance(e, ValidationError)
    assert e.context["field"] == "orderNumber"


def test_malformed_value_is_rejected():
    doc = order_to_document(make_order())
    doc["orderStatus"] = "teleported"

    assert isinstance(err(order_from_document(doc)), ValidationError)


def test_parsers_accept_legacy_spellings():
    assert parse_payment_method("Online-BDO") is PaymentMethod.ONLINE_BDO
    assert parse_payment_method("Wallet") is PaymentMethod.ONLINE_GCASH
    assert parse_payment_status("PAID") is PaymentStatus.COMPLETED
    assert parse_order_status(" In-Progress ") is OrderStatus.IN_PROGRESS
    with pytest.raises(ValueError):
        parse_payment_method("barter")


def test_total_only_item_is_priced_in_cents():
    doc = {
        "_id": "64f0abba",
        "orderNumber": "ORD-230101-0004",
        "items": [{"name": "Tea", "quantity": 3, "total": 100}],
        "bills": {"tax": 0},
        "user": "u3",
        "paymentMethod": "cash",
        "paymentStatus": "pending",
        "orderStatus": "pending",
        "createdAt": "2023-01-01T10:00:00Z",
    }

    order = ok(order_from_document(doc))

    assert order.items[0].unit_price == Decimal("33.33")
    assert order.bills.subtotal == Decimal("99.99")
    assert ok(check_invariants(order)) == order
    assert ok(order_from_document(json.loads(json.dumps(order_to_document(order))))) == order


def test_total_only_order_takes_payment_after_reload():
    doc = {
        "_id": "64f0abbb",
        "orderNumber": "ORD-230101-0005",
        "items": [{"name": "Tea", "quantity": 3, "total": 100}],
        "bills": {"tax": 0},
        "user": "u3",
        "paymentMethod": "cash",
        "paymentStatus": "pending",
        "orderStatus": "pending",
        "createdAt": "2023-01-01T10:00:00Z",
    }
    store = MemoryOrderStore()
    service = make_service(store)

    async def main():
        ok(await store.insert(ok(order_from_document(doc))))
        return await service.record_payment(ADMIN, "64f0abbb", Tender(cash=Decimal("99.99")))

    paid = ok(run(main()))

    assert paid.payment_status is PaymentStatus.COMPLETED
    assert paid.bills.remaining_balance == Decimal("0.00")


def test_null_method_and_statuses_read_as_defaults():
    doc = order_to_document(make_order())
    doc["paymentMethod"] = None
    doc["paymentStatus"] = None
    doc["orderStatus"] = None

    order = ok(order_from_document(doc))

    assert order.payment_method is PaymentMethod.CASH
    assert order.order_status is OrderStatus.PENDING


def test_null_items_read_as_empty():
    doc = {
        "_id": "64f0abbc",
        "orderNumber": "ORD-230101-0006",
        "items": None,
        "bills": {"tax": 0},
        "user": "u3",
        "paymentMethod": None,
        "paymentStatus": None,
        "orderStatus": None,
        "createdAt": "2023-01-01T10:00:00Z",
    }

    order = ok(order_from_document(doc))

    assert order.items == ()
    assert order.payment_method is PaymentMethod.CASH
    assert order.payment_status is PaymentStatus.COMPLETED
    assert order.order_status is OrderStatus.PENDING


def test_non_string_method_is_rejected():
    doc = order_to_document(make_order())
    doc["paymentMethod"] = 5

    assert isinstance(err(order_from_document(doc)), ValidationError)
