from __future__ import annotations

import pytest


def _order_body(*lines, **extra):
    return {
        "shipping_address": "100 Queen St W, Toronto",
        "payment_method": "Credit Card",
        "order_items": [{"product_id": pid, "quantity": qty} for pid, qty in lines],
        **extra,
    }


def _stock(client, product_id):
    return client.get(f"/products/{product_id}").json()["stock_quantity"]


@pytest.fixture
def catalog(create_product):
    return {
        "mug": create_product(name="Mug", price=19.99, stock_quantity=10),
        "pen": create_product(name="Pen", price=0.335, stock_quantity=5),
    }


def test_create_order_computes_totals_and_decrements_stock(client, customer, customer_headers, catalog):
    mug, pen = catalog["mug"], catalog["pen"]

    r = client.post("/orders", json=_order_body((mug.product_id, 3), (pen.product_id, 1)), headers=customer_headers)
    assert r.status_code == 201
    order = r.json()

    assert order["user_id"] == customer.user_id
    assert order["status"] == "pending"
    lines = {i["product_id"]: i for i in order["order_items"]}
    assert lines[mug.product_id]["unit_price"] == 19.99
    assert lines[mug.product_id]["total_price"] == 59.97
    # Half-up rounding to cents.
    assert lines[pen.product_id]["unit_price"] == 0.34
    assert order["total_amount"] == 60.31
    assert order["user"]["email"] == "customer@mail.com"
    assert lines[mug.product_id]["product"]["name"] == "Mug"

    assert _stock(client, mug.product_id) == 7
    assert _stock(client, pen.product_id) == 4


def test_create_order_rejects_missing_product(client, customer_headers, catalog):
    r = client.post("/orders", json=_order_body((catalog["mug"].product_id, 1), (999, 1)), headers=customer_headers)
    assert r.status_code == 400
    assert r.json()["detail"] == "Product with ID 999 does not exist"
    # Nothing was written.
    assert _stock(client, catalog["mug"].product_id) == 10


def test_create_order_rejects_insufficient_stock(client, customer_headers, catalog):
    pen = catalog["pen"]
    r = client.post("/orders", json=_order_body((pen.product_id, 3), (pen.product_id, 3)), headers=customer_headers)
    assert r.status_code == 400
    assert r.json()["detail"] == "Not enough stock for product Pen. Available: 5, Requested: 6"
    assert _stock(client, pen.product_id) == 5


def test_create_order_validation(client, customer_headers, catalog):
    r = client.post("/orders", json=_order_body(), headers=customer_headers)
    assert r.status_code == 422
    r = client.post("/orders", json=_order_body((catalog["mug"].product_id, 0)), headers=customer_headers)
    assert r.status_code == 422


def test_order_on_behalf_of_someone_else(client, customer, customer_headers, admin_headers, create_user, catalog):
    other = create_user()
    body = _order_body((catalog["mug"].product_id, 1), user_id=other.user_id)

    assert client.post("/orders", json=body, headers=customer_headers).status_code == 403

    r = client.post("/orders", json=body, headers=admin_headers)
    assert r.status_code == 201
    assert r.json()["user_id"] == other.user_id

    r = client.post("/orders", json={**body, "user_id": 4040}, headers=admin_headers)
    assert r.status_code == 400


def test_list_orders_is_scoped_for_customers(
    client, customer_headers, admin_headers, create_user, auth_headers, catalog
):
    other = create_user()
    mug = catalog["mug"].product_id
    client.post("/orders", json=_order_body((mug, 1)), headers=customer_headers)
    client.post("/orders", json=_order_body((mug, 1)), headers=auth_headers(other))

    mine = client.get("/orders", headers=customer_headers).json()
    assert mine["pagination"]["total"] == 1

    # A customer cannot widen the scope with a user_id filter.
    r = client.get("/orders", params={"user_id": other.user_id}, headers=customer_headers)
    assert r.json()["pagination"]["total"] == 1

    everything = client.get("/orders", headers=admin_headers).json()
    assert everything["pagination"]["total"] == 2

    r = client.get("/orders", params={"include": "order_items.product,user"}, headers=admin_headers)
    first = r.json()["data"][0]
    assert first["order_items"][0]["product"]["name"] == "Mug"
    assert "password_hash" not in first["user"]


def test_get_order_owner_or_staff(client, customer_headers, moderator_headers, create_user, auth_headers, catalog):
    other_headers = auth_headers(create_user())
    order = client.post("/orders", json=_order_body((catalog["mug"].product_id, 1)), headers=customer_headers).json()
    path = f"/orders/{order['order_id']}"

    assert client.get(path, headers=customer_headers).status_code == 200
    assert client.get(path, headers=moderator_headers).status_code == 200
    assert client.get(path, headers=other_headers).status_code == 403
    assert client.get("/orders/777", headers=moderator_headers).status_code == 404


def test_orders_for_user_newest_first(client, customer, customer_headers, create_user, auth_headers, catalog):
    mug = catalog["mug"].product_id
    first = client.post("/orders", json=_order_body((mug, 1)), headers=customer_headers).json()
    second = client.post("/orders", json=_order_body((mug, 2)), headers=customer_headers).json()

    r = client.get(f"/orders/user/{customer.user_id}", headers=customer_headers)
    assert r.status_code == 200
    assert [o["order_id"] for o in r.json()] == [second["order_id"], first["order_id"]]
    assert r.json()[0]["order_items"][0]["product"]["name"] == "Mug"

    stranger = auth_headers(create_user())
    assert client.get(f"/orders/user/{customer.user_id}", headers=stranger).status_code == 403


def test_customer_update_limits(client, customer_headers, moderator_headers, catalog):
    order = client.post("/orders", json=_order_body((catalog["mug"].product_id, 1)), headers=customer_headers).json()
    path = f"/orders/{order['order_id']}"

    r = client.patch(path, json={"notes": "Leave at the door"}, headers=customer_headers)
    assert r.status_code == 200
    assert r.json()["notes"] == "Leave at the door"

    assert client.patch(path, json={"status": "shipped"}, headers=customer_headers).status_code == 403
    assert client.patch(path, json={"tracking_number": "X1"}, headers=customer_headers).status_code == 403

    r = client.patch(path, json={"status": "shipped", "tracking_number": "TRK-1"}, headers=moderator_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "shipped"
    assert r.json()["tracking_number"] == "TRK-1"


def test_status_endpoint_and_cancellation_restores_stock(client, customer_headers, moderator_headers, catalog):
    mug = catalog["mug"].product_id
    order = client.post("/orders", json=_order_body((mug, 4)), headers=customer_headers).json()
    path = f"/orders/{order['order_id']}/status"
    assert _stock(client, mug) == 6

    assert client.patch(path, json={"status": "processing"}, headers=customer_headers).status_code == 403
    assert client.patch(path, json={"status": "lost"}, headers=moderator_headers).status_code == 422

    r = client.patch(path, json={"status": "cancelled"}, headers=moderator_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "cancelled"
    assert _stock(client, mug) == 10

    # Cancelling twice does not restock twice; reopening is not allowed.
    assert client.patch(path, json={"status": "cancelled"}, headers=moderator_headers).status_code == 200
    assert _stock(client, mug) == 10
    r = client.patch(path, json={"status": "pending"}, headers=moderator_headers)
    assert r.status_code == 400


def test_delete_order_restores_stock(client, customer_headers, admin_headers, moderator_headers, catalog):
    mug = catalog["mug"].product_id
    order = client.post("/orders", json=_order_body((mug, 2)), headers=customer_headers).json()
    path = f"/orders/{order['order_id']}"

    assert client.delete(path, headers=moderator_headers).status_code == 403
    assert client.delete(path, headers=admin_headers).status_code == 204
    assert _stock(client, mug) == 10
    assert client.get(path, headers=admin_headers).status_code == 404


def test_orders_require_authentication(client):
    assert client.get("/orders").status_code == 401
    assert client.post("/orders", json=_order_body((1, 1))).status_code == 401


def test_deleting_a_cancelled_order_does_not_restock_twice(
    client, customer_headers, moderator_headers, admin_headers, catalog
):
    mug = catalog["mug"].product_id
    order = client.post("/orders", json=_order_body((mug, 3)), headers=customer_headers).json()
    assert _stock(client, mug) == 7

    r = client.patch(
        f"/orders/{order['order_id']}/status", json={"status": "cancelled"}, headers=moderator_headers
    )
    assert r.status_code == 200
    assert _stock(client, mug) == 10

    assert client.delete(f"/orders/{order['order_id']}", headers=admin_headers).status_code == 204
    assert _stock(client, mug) == 10


def test_cancelling_through_order_update_restores_stock(client, customer_headers, moderator_headers, catalog):
    mug, pen = catalog["mug"].product_id, catalog["pen"].product_id
    order = client.post("/orders", json=_order_body((mug, 2), (pen, 5)), headers=customer_headers).json()
    path = f"/orders/{order['order_id']}"
    assert (_stock(client, mug), _stock(client, pen)) == (8, 0)

    body = {"status": "cancelled", "notes": "Customer changed their mind"}
    r = client.patch(path, json=body, headers=moderator_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "cancelled"
    assert r.json()["notes"] == "Customer changed their mind"
    assert (_stock(client, mug), _stock(client, pen)) == (10, 5)

    assert client.patch(path, json={"status": "processing"}, headers=moderator_headers).status_code == 400
    assert (_stock(client, mug), _stock(client, pen)) == (10, 5)
