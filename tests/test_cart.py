import pytest

from tests.conftest import auth_header


def test_repeat_add_accumulates_quantity(client, user_headers):
    client.post("/api/carrito/add", json={"productId": "p1", "quantity": 2}, headers=user_headers)
    res = client.post("/api/carrito/add", json={"productId": "p1", "quantity": 3}, headers=user_headers)
    assert res.status_code == 200
    assert res.json()["cart"] == [{"productId": "p1", "quantity": 5}]

    items = client.get("/api/carrito", headers=user_headers).json()["items"]
    assert len(items) == 1
    assert items[0]["productId"] == "p1"
    assert items[0]["quantity"] == 5


def test_add_keeps_insertion_order(client, user_headers):
    for pid in ("p3", "p1", "p3"):
        client.post("/api/carrito/add", json={"productId": pid, "quantity": 1}, headers=user_headers)
    items = client.get("/api/carrito", headers=user_headers).json()["items"]
    assert [(i["productId"], i["quantity"]) for i in items] == [("p3", 2), ("p1", 1)]


@pytest.mark.parametrize(
    "payload",
    [{"productId": "p1"}, {"quantity": 1}, {"productId": "", "quantity": 1}, {"productId": "p1", "quantity": 0}],
)
def test_add_missing_fields_is_bad_request(client, user_headers, payload):
    assert client.post("/api/carrito/add", json=payload, headers=user_headers).status_code == 400


def test_add_requires_auth(client):
    assert client.post("/api/carrito/add", json={"productId": "p1", "quantity": 1}).status_code == 401


def test_view_joins_current_product_data(client, user_headers, admin_headers):
    client.post("/api/carrito/add", json={"productId": "p2", "quantity": 1}, headers=user_headers)
    client.put("/api/productos/p2", json={"price": 30000}, headers=admin_headers)

    item = client.get("/api/carrito", headers=user_headers).json()["items"][0]
    assert item["product"]["price"] == 30000
    assert item["product"]["name"] == "Kumara K552"


def test_view_shows_null_product_once_deleted(client, user_headers, admin_headers):
    client.post("/api/carrito/add", json={"productId": "p2", "quantity": 1}, headers=user_headers)
    client.delete("/api/productos/p2", headers=admin_headers)
    item = client.get("/api/carrito", headers=user_headers).json()["items"][0]
    assert item["product"] is None


def test_view_empty_cart(client, user_headers):
    assert client.get("/api/carrito", headers=user_headers).json() == {"items": []}


def test_remove_item(client, user_headers):
    client.post("/api/carrito/add", json={"productId": "p1", "quantity": 1}, headers=user_headers)
    client.post("/api/carrito/add", json={"productId": "p2", "quantity": 1}, headers=user_headers)
    res = client.delete("/api/carrito/p1", headers=user_headers)
    assert res.status_code == 200
    assert res.json()["cart"] == [{"productId": "p2", "quantity": 1}]


def test_remove_without_cart_is_not_found(client, user_headers):
    assert client.delete("/api/carrito/p1", headers=user_headers).status_code == 404


def test_carts_are_per_user(client, register, user_headers):
    other = auth_header(register(email="bea@innova.com")["accessToken"])
    client.post("/api/carrito/add", json={"productId": "p1", "quantity": 1}, headers=user_headers)
    assert client.get("/api/carrito", headers=other).json() == {"items": []}
