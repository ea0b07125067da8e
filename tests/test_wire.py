import pytest
from fastapi.testclient import TestClient

from tillbook.config import Settings
from tillbook.wire import build_app, create_app

from tests._helpers import TAX_38, make_service

CASHIER = {"X-User-Id": "cashier-1"}
OTHER = {"X-User-Id": "cashier-2", "X-User-Role": "cashier"}
ADMIN = {"X-User-Id": "admin-1", "X-User-Role": "admin"}

CART = {
    "items": [
        {"name": "Latte", "quantity": 2, "unitPrice": "150"},
        {"name": "Muffin", "quantity": 1, "unitPrice": 80},
    ],
}


@pytest.fixture
def client():
    with TestClient(create_app(make_service())) as c:
        yield c


def open_order(client, payment=None, headers=CASHIER):
    body = {**CART, "payment": payment or {}}
    response = client.post("/orders", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_create_order(client):
    order = open_order(client, {"cash": 500})

    assert order["orderNumber"] == "ORD-240305-0001"
    assert order["ownerUserId"] == "cashier-1"
    assert order["paymentStatus"] == "completed"
    assert order["paymentMethod"] == "Cash"
    assert order["orderStatus"] == "pending"
    assert order["bills"]["subtotal"] == "380.00"
    assert order["bills"]["totalWithTax"] == "418.00"
    assert order["bills"]["change"] == "82.00"
    assert order["customer"]["name"] == "Walk-in Customer"
    assert order["items"][0]["lineTotal"] == "300.00"


def test_partial_payment_then_complete(client):
    order = open_order(client, {"cash": "200"})
    assert order["bills"]["remainingBalance"] == "218.00"
    assert order["bills"]["isPartialPayment"] is True

    url = f"/orders/{order['orderId']}"
    early = client.put(f"{url}/status", json={"orderStatus": "completed"}, headers=CASHIER)
    paid = client.post(f"{url}/payments", json={"cash": "200", "online": "218"}, headers=CASHIER)
    done = client.put(f"{url}/status", json={"orderStatus": "completed"}, headers=CASHIER)

    assert early.status_code == 409
    assert early.json()["code"] == "INVALID_TRANSITION"
    assert paid.json()["paymentMethod"] == "Mixed"
    assert done.status_code == 200
    assert done.json()["orderStatus"] == "completed"


def test_add_item(client):
    order = open_order(client)

    response = client.post(
        f"/orders/{order['orderId']}/items",
        json={"name": "Tea", "quantity": 1, "unitPrice": "20", "isPwdSeniorDiscounted": True},
        headers=CASHIER,
    )

    assert response.status_code == 200
    assert response.json()["bills"]["totalWithTax"] == "438.00"
    assert response.json()["items"][-1]["isPwdSeniorDiscounted"] is True


def test_missing_user_header_is_denied(client):
    response = client.post("/orders", json=CART)

    assert response.status_code == 403
    assert response.json()["code"] == "ACCESS_DENIED"


def test_unknown_role_is_denied(client):
    response = client.get("/orders", headers={"X-User-Id": "u1", "X-User-Role": "owner"})

    assert response.status_code == 403


def test_invalid_line_item_is_a_bad_request(client):
    body = {"items": [{"name": "Latte", "quantity": 0, "unitPrice": "150"}]}

    response = client.post("/orders", json=body, headers=CASHIER)

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_LINE_ITEM"


def test_malformed_body_is_a_bad_request(client):
    response = client.post("/orders", json={"items": "latte please"}, headers=CASHIER)

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_negative_payment_is_a_bad_request(client):
    order = open_order(client)

    response = client.post(f"/orders/{order['orderId']}/payments", json={"cash": "-1"}, headers=CASHIER)

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_PAYMENT_AMOUNT"


def test_orders_are_scoped_to_their_owner(client):
    mine = open_order(client)
    theirs = open_order(client, headers=OTHER)

    peek = client.get(f"/orders/{theirs['orderId']}", headers=CASHIER)
    listed = client.get("/orders", headers=CASHIER)
    admin_listed = client.get("/orders", headers=ADMIN)

    assert peek.status_code == 403
    assert [o["orderId"] for o in listed.json()] == [mine["orderId"]]
    assert len(admin_listed.json()) == 2


def test_list_filters(client):
    open_order(client, {"cash": 418})
    open_order(client)

    paid = client.get("/orders", params={"paymentStatus": "completed"}, headers=CASHIER)
    limited = client.get("/orders", params={"limit": 1}, headers=CASHIER)
    bad_limit = client.get("/orders", params={"limit": 0}, headers=CASHIER)

    assert [o["paymentStatus"] for o in paid.json()] == ["completed"]
    assert len(limited.json()) == 1
    assert bad_limit.status_code == 400


def test_unknown_order_is_not_found(client):
    response = client.get("/orders/ord_missing", headers=ADMIN)

    assert response.status_code == 404
    assert response.json()["context"] == {"order_id": "ord_missing"}


def test_settlements_require_admin(client):
    order = open_order(client)
    body = {"events": [{"orderId": order["orderId"], "amountSettled": "418"}]}

    denied = client.post("/payments/settlements", json=body, headers=CASHIER)
    settled = client.post(
        "/payments/settlements",
        json={"events": [*body["events"], {"orderId": "ord_missing", "amountSettled": "1"}]},
        headers=ADMIN,
    )

    assert denied.status_code == 403
    first, missing = settled.json()
    assert first["order"]["paymentStatus"] == "completed"
    assert first["order"]["bills"]["onlineMethod"] == "Online-GCASH"
    assert first["error"] is None
    assert missing["error"]["code"] == "ORDER_NOT_FOUND"


def test_sales_stats(client):
    order = open_order(client, {"cash": 418})
    client.put(f"/orders/{order['orderId']}/status", json={"orderStatus": "completed"}, headers=CASHIER)

    response = client.get("/sales/stats", headers=ADMIN)

    assert response.status_code == 200
    report = response.json()
    assert report["stats"]["totalOrders"] == 1
    assert report["stats"]["totalRevenue"] == "418.00"
    assert report["monthlySales"][0]["month"] == 3
    assert report["topSellingItems"][0]["name"] == "Latte"
    assert report["payments"]["byMethod"] == {"Cash": 1}


def test_sub_cent_unit_price_is_a_bad_request(client):
    body = {"items": [{"name": "Tea", "quantity": 3, "unitPrice": "10.005"}]}

    response = client.post("/orders", json=body, headers=CASHIER)

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_LINE_ITEM"


def test_sales_range(client):
    order = open_order(client, {"cash": 418})
    client.put(f"/orders/{order['orderId']}/status", json={"orderStatus": "completed"}, headers=CASHIER)
    open_order(client)

    response = client.get(
        "/sales/range",
        params={"start": "2024-03-05T00:00:00Z", "end": "2024-03-05T23:59:59Z"},
        headers=ADMIN,
    )

    assert response.status_code == 200
    sales = response.json()
    assert sales["totalOrders"] == 1
    assert sales["totalSales"] == "418.00"
    assert [o["orderId"] for o in sales["orders"]] == [order["orderId"]]


def test_sales_range_needs_both_bounds(client):
    response = client.get("/sales/range", params={"start": "2024-03-05T00:00:00Z"}, headers=ADMIN)

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_sales_range_end_before_start_is_a_bad_request(client):
    response = client.get(
        "/sales/range",
        params={"start": "2024-03-05T00:00:00Z", "end": "2024-03-04T00:00:00Z"},
        headers=ADMIN,
    )

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_built_app_serves_orders_from_the_database(tmp_path):
    settings = (
        Settings()
        .with_database_url(f"sqlite+aiosqlite:///{tmp_path / 'app.db'}")
        .with_tax(TAX_38)
    )

    with TestClient(build_app(settings)) as c:
        created = c.post("/orders", json=CART, headers=CASHIER)
        listed = c.get("/orders", headers=CASHIER)

    assert created.status_code == 201
    assert created.json()["bills"]["totalWithTax"] == "418.00"
    assert [o["orderId"] for o in listed.json()] == [created.json()["orderId"]]
