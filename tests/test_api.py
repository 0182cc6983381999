"""HTTP surface: auth, status codes and the checkout flow end to end."""
from decimal import Decimal

import pytest

from storefront.domain.errors import PaymentDeclinedError
from storefront.repos.cart_repo import CartRepo

from conftest import ADMIN_ID, OTHER_USER_ID, USER_ID, auth_header, make_token

ADMIN = auth_header(ADMIN_ID, "admin")
USER = auth_header(USER_ID)

SHIPPING = {"address": "1 Main St", "city": "Springfield", "postalCode": "12345", "country": "US"}


def create_product(client, name="Widget", price=10, stock=5):
    resp = client.post("/products/", json={"name": name, "price": price, "stock": stock}, headers=ADMIN)
    assert resp.status_code == 201, resp.text
    return resp.json()


def add_to_cart(client, product_id, quantity, headers=USER):
    resp = client.post("/cart/items", json={"productId": product_id, "quantity": quantity}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def place_order(client, headers=USER, **body):
    body.setdefault("shippingInfo", SHIPPING)
    return client.post("/orders/", json=body, headers=headers)


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_missing_token(client):
    resp = client.post("/orders/", json={"shippingInfo": SHIPPING})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "No token provided"


def test_token_with_wrong_secret(client):
    token = make_token(USER_ID, secret="not-the-storefront-secret-0123456789")
    resp = client.get("/orders/", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Unauthorized"


def test_checkout_and_confirm_flow(client, notifier):
    product = create_product(client, price=10, stock=5)
    cart = add_to_cart(client, product["id"], 2)
    assert Decimal(cart["total"]) == Decimal("20")

    resp = place_order(client, paymentMethod="cod")
    assert resp.status_code == 201, resp.text
    order = resp.json()
    assert order["status"] == "pending"
    assert Decimal(order["total"]) == Decimal("20")
    assert order["items"][0]["quantity"] == 2
    assert order["shipping_info"]["postal_code"] == "12345"

    assert client.get("/cart/", headers=USER).json()["items"] == []
    assert client.get(f"/products/{product['id']}").json()["stock"] == 5

    resp = client.put(f"/orders/{order['id']}", json={"status": "confirmed"}, headers=ADMIN)
    assert resp.status_code == 200, resp.text
    assert resp.json()["status"] == "confirmed"
    assert client.get(f"/products/{product['id']}").json()["stock"] == 3

    # second confirm is a no-op
    resp = client.put(f"/orders/{order['id']}", json={"status": "confirmed"}, headers=ADMIN)
    assert resp.status_code == 200
    assert client.get(f"/products/{product['id']}").json()["stock"] == 3

    resp = client.put(f"/orders/{order['id']}", json={"status": "cancelled"}, headers=ADMIN)
    assert resp.json()["status"] == "cancelled"
    assert client.get(f"/products/{product['id']}").json()["stock"] == 5

    assert [n[2] for n in notifier.sent] == ["pending", "confirmed", "cancelled"]


def test_empty_cart(client):
    resp = place_order(client)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Cart is empty"


def test_missing_shipping_field(client):
    product = create_product(client)
    add_to_cart(client, product["id"], 1)

    resp = place_order(client, shippingInfo={"address": "1 Main St", "city": "Springfield", "country": "US"})

    assert resp.status_code == 400
    assert resp.json()["detail"] == "Missing shipping fields: postal_code"


def test_declined_payment(client, gateway):
    gateway.error = PaymentDeclinedError("Your card was declined.")
    product = create_product(client)
    add_to_cart(client, product["id"], 1)

    resp = place_order(client, paymentMethod="pm_card_chargeDeclined")

    assert resp.status_code == 402
    assert client.get("/orders/", headers=USER).json() == []
    assert len(client.get("/cart/", headers=USER).json()["items"]) == 1


def test_list_orders_resolves_products(client):
    product = create_product(client, name="Lamp", price=25, stock=4)
    add_to_cart(client, product["id"], 1)
    place_order(client)

    [order] = client.get("/orders/", headers=USER).json()

    assert order["items"][0]["product"]["name"] == "Lamp"
    assert client.get("/orders/", headers=auth_header(OTHER_USER_ID)).json() == []


def test_get_order_of_another_user(client):
    product = create_product(client)
    add_to_cart(client, product["id"], 1)
    order = place_order(client).json()

    assert client.get(f"/orders/{order['id']}", headers=USER).status_code == 200
    assert client.get(f"/orders/{order['id']}", headers=auth_header(OTHER_USER_ID)).status_code == 403
    assert client.get("/orders/999", headers=USER).status_code == 404


def test_admin_order_list(client):
    product = create_product(client)
    add_to_cart(client, product["id"], 1)
    add_to_cart(client, product["id"], 1, headers=auth_header(OTHER_USER_ID))
    place_order(client)
    place_order(client, headers=auth_header(OTHER_USER_ID))

    assert client.get("/orders/admin", headers=USER).status_code == 403
    orders = client.get("/orders/admin", headers=ADMIN).json()
    assert {o["user_id"] for o in orders} == {USER_ID, OTHER_USER_ID}


@pytest.mark.parametrize(
    "headers, order_id, status, expected",
    [
        (USER, None, "confirmed", 403),
        (ADMIN, None, "archived", 400),
        (ADMIN, 999, "confirmed", 404),
        (ADMIN, None, "delivered", 400),
    ],
)
def test_status_update_errors(client, headers, order_id, status, expected):
    product = create_product(client)
    add_to_cart(client, product["id"], 1)
    order = place_order(client).json()

    resp = client.put(f"/orders/{order_id or order['id']}", json={"status": status}, headers=headers)

    assert resp.status_code == expected
    assert client.get(f"/products/{product['id']}").json()["stock"] == 5


def test_confirm_with_insufficient_stock(client):
    product = create_product(client, stock=2)
    add_to_cart(client, product["id"], 2)
    first = place_order(client).json()
    add_to_cart(client, product["id"], 1)
    second = place_order(client).json()

    assert client.put(f"/orders/{first['id']}", json={"status": "confirmed"}, headers=ADMIN).status_code == 200
    resp = client.put(f"/orders/{second['id']}", json={"status": "confirmed"}, headers=ADMIN)

    assert resp.status_code == 400
    assert resp.json()["detail"] == "Insufficient stock for product Widget"
    assert client.get(f"/products/{product['id']}").json()["stock"] == 0
    assert client.get(f"/orders/{second['id']}", headers=USER).json()["status"] == "pending"


def test_status_update_while_locked(client, lock_service):
    product = create_product(client)
    add_to_cart(client, product["id"], 1)
    order = place_order(client).json()
    lock_service.held[order["id"]] = "someone-else"

    resp = client.put(f"/orders/{order['id']}", json={"status": "confirmed"}, headers=ADMIN)

    assert resp.status_code == 409


def test_deleted_product_is_pruned_from_cart(client):
    kept = create_product(client, name="Kept")
    gone = create_product(client, name="Gone")
    add_to_cart(client, kept["id"], 1)
    add_to_cart(client, gone["id"], 1)

    assert client.delete(f"/products/{gone['id']}", headers=ADMIN).status_code == 204

    cart = client.get("/cart/", headers=USER).json()
    assert [i["name"] for i in cart["items"]] == ["Kept"]


def test_catalog_admin_only(client):
    resp = client.post("/products/", json={"name": "X", "price": 1, "stock": 1}, headers=USER)
    assert resp.status_code == 403


def test_cart_update_and_remove(client):
    product = create_product(client)
    add_to_cart(client, product["id"], 1)

    cart = client.put(f"/cart/items/{product['id']}", json={"quantity": 3}, headers=USER).json()
    assert cart["items"][0]["quantity"] == 3

    cart = client.delete(f"/cart/items/{product['id']}", headers=USER).json()
    assert cart["items"] == []


def test_get_cart_when_prune_loses_race(client, monkeypatch):
    kept = create_product(client, name="Kept")
    gone = create_product(client, name="Gone")
    add_to_cart(client, kept["id"], 1)
    add_to_cart(client, gone["id"], 1)
    client.delete(f"/products/{gone['id']}", headers=ADMIN)
    monkeypatch.setattr(CartRepo, "update_cart_version", lambda self, cart_id, old_version: 0)

    resp = client.get("/cart/", headers=USER)

    assert resp.status_code == 200
    assert [i["name"] for i in resp.json()["items"]] == ["Kept"]


def test_null_shipping_info_is_400(client):
    product = create_product(client)
    add_to_cart(client, product["id"], 1)

    resp = place_order(client, shippingInfo=None)

    assert resp.status_code == 400
    assert resp.json()["detail"] == "Missing shipping fields: address, city, postal_code, country"
