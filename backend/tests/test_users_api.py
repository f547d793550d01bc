from __future__ import annotations


def test_list_users_requires_staff(client, customer_headers, moderator_headers):
    r = client.get("/users", headers=customer_headers)
    assert r.status_code == 403
    assert r.json()["detail"] == "Access denied. Required roles: admin, moderator"

    r = client.get("/users", headers=moderator_headers)
    assert r.status_code == 200
    assert r.json()["pagination"]["total"] == 2


def test_list_users_search_filters_and_pagination(client, admin_headers, create_user):
    create_user(first_name="Alice", city="Toronto")
    create_user(first_name="Bob", city="Ottawa")
    create_user(first_name="Carol", city="toronto")

    r = client.get("/users", params={"search": "TORONTO"}, headers=admin_headers)
    assert r.status_code == 200
    assert sorted(u["first_name"] for u in r.json()["data"]) == ["Alice", "Carol"]

    r = client.get("/users", params={"city": "ottawa"}, headers=admin_headers)
    assert [u["first_name"] for u in r.json()["data"]] == ["Bob"]

    r = client.get(
        "/users",
        params={"limit": 2, "page": 2, "sortBy": "user_id", "sortOrder": "asc"},
        headers=admin_headers,
    )
    body = r.json()
    assert body["pagination"] == {
        "page": 2,
        "limit": 2,
        "total": 4,
        "totalPages": 2,
        "hasNext": False,
        "hasPrev": True,
    }
    assert all("password_hash" not in u for u in body["data"])


def test_list_users_rejects_bad_query(client, admin_headers):
    assert client.get("/users", params={"limit": 500}, headers=admin_headers).status_code == 422
    assert client.get("/users", params={"sortOrder": "sideways"}, headers=admin_headers).status_code == 422
    assert client.get("/users", params={"sortBy": "password"}, headers=admin_headers).status_code == 400


def test_get_user_self_or_staff(client, customer, customer_headers, moderator_headers, create_user):
    other = create_user()

    r = client.get(f"/users/{customer.user_id}", headers=customer_headers)
    assert r.status_code == 200
    assert r.json()["email"] == "customer@mail.com"

    r = client.get(f"/users/{other.user_id}", headers=customer_headers)
    assert r.status_code == 403
    assert r.json()["detail"] == "You can only access your own profile"

    assert client.get(f"/users/{other.user_id}", headers=moderator_headers).status_code == 200
    assert client.get("/users/9999", headers=moderator_headers).status_code == 404


def test_update_self_rehashes_password(client, customer, customer_headers):
    r = client.patch(
        f"/users/{customer.user_id}",
        json={"first_name": "Renamed", "password": "brand-new-pass"},
        headers=customer_headers,
    )
    assert r.status_code == 200
    assert r.json()["first_name"] == "Renamed"

    login = client.post("/auth/login", json={"email": "customer@mail.com", "password": "brand-new-pass"})
    assert login.status_code == 200


def test_non_admin_cannot_change_role_or_status(client, customer, customer_headers, moderator_headers):
    r = client.patch(f"/users/{customer.user_id}", json={"role": "admin"}, headers=customer_headers)
    assert r.status_code == 403

    # Moderators are staff but not admins.
    r = client.patch(f"/users/{customer.user_id}", json={"is_active": False}, headers=moderator_headers)
    assert r.status_code == 403


def test_admin_can_change_role_and_deactivate(client, customer, admin_headers, customer_headers):
    r = client.patch(
        f"/users/{customer.user_id}", json={"role": "moderator", "is_active": False}, headers=admin_headers
    )
    assert r.status_code == 200
    assert r.json()["role"] == "moderator"
    assert r.json()["is_active"] is False

    r = client.get("/auth/profile", headers=customer_headers)
    assert r.status_code == 401


def test_update_email_must_stay_unique(client, customer, customer_headers, create_user):
    create_user(email="taken@mail.com")
    r = client.patch(f"/users/{customer.user_id}", json={"email": "Taken@mail.com"}, headers=customer_headers)
    assert r.status_code == 409


def test_delete_user_admin_only(client, admin_headers, customer_headers, create_user):
    victim = create_user()

    assert client.delete(f"/users/{victim.user_id}", headers=customer_headers).status_code == 403

    r = client.delete(f"/users/{victim.user_id}", headers=admin_headers)
    assert r.status_code == 204
    assert r.content == b""
    assert client.delete(f"/users/{victim.user_id}", headers=admin_headers).status_code == 404


def test_delete_user_with_orders_is_conflict(client, admin_headers, customer, customer_headers, create_product):
    product = create_product(stock_quantity=5)
    order = client.post(
        "/orders",
        json={
            "shipping_address": "1 King St",
            "payment_method": "Card",
            "order_items": [{"product_id": product.product_id, "quantity": 1}],
        },
        headers=customer_headers,
    )
    assert order.status_code == 201

    r = client.delete(f"/users/{customer.user_id}", headers=admin_headers)
    assert r.status_code == 409
