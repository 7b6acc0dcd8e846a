from catalog import models
from conftest import ADMIN_EMAIL, ADMIN_PASSWORD, WIDGET, login, register


def seed_products(client, *names):
    login(client, ADMIN_EMAIL, ADMIN_PASSWORD)
    ids = [client.post("/api/products", json=dict(WIDGET, name=n)).json()["id"] for n in names]
    client.cookies.clear()
    return ids


def test_cart_requires_session(client):
    client.cookies.clear()
    assert client.get("/api/cart").status_code == 401
    assert client.get("/api/cart/summary").status_code == 401
    assert client.post("/api/cart/add", json={"product_id": 1, "quantity": 1}).status_code == 401


def test_add_twice_increments_single_row(client):
    (pid,) = seed_products(client, "Widget")
    register(client, "cart@shop.io")

    r1 = client.post("/api/cart/add", json={"product_id": pid, "quantity": 2})
    assert r1.status_code == 201
    assert r1.json()["quantity"] == 2

    r2 = client.post("/api/cart/add", json={"product_id": pid, "quantity": 3})
    assert r2.status_code == 200
    assert r2.json() == {"message": "Cart updated successfully", "cart_item_id": r1.json()["cart_item_id"], "quantity": 5}

    items = client.get("/api/cart").json()
    assert len(items) == 1
    assert items[0]["quantity"] == 5
    assert items[0]["product"]["name"] == "Widget"
    assert items[0]["product"]["price"] == 9.99


def test_add_defaults_and_validation(client):
    (pid,) = seed_products(client, "Widget")
    register(client, "cart@shop.io")

    r = client.post("/api/cart/add", json={"product_id": pid})
    assert r.status_code == 201
    assert r.json()["quantity"] == 1

    assert client.post("/api/cart/add", json={"product_id": pid, "quantity": 0}).status_code == 400
    assert client.post("/api/cart/add", json={"product_id": 4242, "quantity": 1}).status_code == 404


def test_update_remove_and_summary(client):
    a, b = seed_products(client, "A", "B")
    register(client, "cart@shop.io")
    item_a = client.post("/api/cart/add", json={"product_id": a, "quantity": 1}).json()["cart_item_id"]
    item_b = client.post("/api/cart/add", json={"product_id": b, "quantity": 1}).json()["cart_item_id"]

    r = client.put(f"/api/cart/{item_a}", json={"quantity": 4})
    assert r.status_code == 200
    assert r.json()["quantity"] == 4
    assert client.put(f"/api/cart/{item_a}", json={"quantity": 0}).status_code == 400

    summary = client.get("/api/cart/summary").json()
    assert summary["total_items"] == 2
    assert summary["total_quantity"] == 5
    assert summary["total_price"] == 49.95

    assert client.delete(f"/api/cart/{item_b}").status_code == 200
    assert client.delete(f"/api/cart/{item_b}").status_code == 404
    assert [i["id"] for i in client.get("/api/cart").json()] == [item_a]

    r = client.delete("/api/cart")
    assert r.json() == {"message": "Cart cleared successfully"}
    assert client.get("/api/cart/summary").json() == {"total_items": 0, "total_quantity": 0, "total_price": 0.0}


def test_cannot_touch_another_users_cart(client):
    (pid,) = seed_products(client, "Widget")
    register(client, "owner@shop.io")
    item = client.post("/api/cart/add", json={"product_id": pid, "quantity": 1}).json()["cart_item_id"]

    register(client, "intruder@shop.io")
    assert client.put(f"/api/cart/{item}", json={"quantity": 9}).status_code == 404
    assert client.delete(f"/api/cart/{item}").status_code == 404
    assert client.get("/api/cart").json() == []

    login(client, "owner@shop.io", "secret1")
    items = client.get("/api/cart").json()
    assert items[0]["quantity"] == 1


def test_add_after_user_deleted_ends_session(client, db_session, session_store):
    (pid,) = seed_products(client, "Widget")
    user = register(client, "gone@shop.io")
    token = client.cookies.get("sessionId")
    db_session.delete(db_session.get(models.User, user["id"]))
    db_session.commit()

    r = client.post("/api/cart/add", json={"product_id": pid, "quantity": 1})
    assert r.status_code == 401
    assert r.json() == {"error": "User not found"}
    assert session_store.get(token) is None
    assert client.get("/api/cart").status_code == 401


def test_oversized_item_id_is_rejected(client):
    register(client, "big@shop.io")
    huge = 10**20
    assert client.put(f"/api/cart/{huge}", json={"quantity": 1}).status_code == 400
    assert client.delete(f"/api/cart/{huge}").status_code == 400
