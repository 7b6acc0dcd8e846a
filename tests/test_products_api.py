from conftest import WIDGET


def create(client, **overrides):
    r = client.post("/api/products", json=dict(WIDGET, **overrides))
    assert r.status_code == 201, r.text
    return r.json()


def test_list_filters_are_combined(admin_client):
    create(admin_client, name="Alpha Kit", license="MIT", rating=5, category="UI Kits")
    create(admin_client, name="Beta Kit", license="GPL", rating=5, category="UI Kits")
    create(admin_client, name="Gamma Font", license="MIT", rating=3, category="Fonts", description="a kit of glyphs")

    names = lambda r: sorted(p["name"] for p in r.json())

    assert names(admin_client.get("/api/products", params={"search": "kit"})) == ["Alpha Kit", "Beta Kit", "Gamma Font"]
    assert names(admin_client.get("/api/products", params={"search": "KIT", "license": "MIT"})) == ["Alpha Kit", "Gamma Font"]
    assert names(admin_client.get("/api/products", params={"license": "MIT", "rating": "5"})) == ["Alpha Kit"]
    assert names(admin_client.get("/api/products", params={"category": "Fonts"})) == ["Gamma Font"]
    # empty filter values are ignored
    assert len(admin_client.get("/api/products", params={"search": "", "rating": "", "featured": ""}).json()) == 3


def test_list_orders_featured_first_then_newest(admin_client):
    create(admin_client, name="Old")
    create(admin_client, name="Star", is_featured=True)
    create(admin_client, name="New")

    r = admin_client.get("/api/products")
    assert [p["name"] for p in r.json()] == ["Star", "New", "Old"]

    featured = admin_client.get("/api/products", params={"featured": "true"}).json()
    assert [p["name"] for p in featured] == ["Star"]
    plain = admin_client.get("/api/products", params={"featured": "false"}).json()
    assert [p["name"] for p in plain] == ["New", "Old"]


def test_list_shapes_fields(admin_client):
    create(admin_client)
    product = admin_client.get("/api/products").json()[0]
    assert product["gallery_images"] == []
    assert isinstance(product["price"], float)
    assert product["is_featured"] is False
    assert product["download_count"] == 0


def test_invalid_rating_filter(admin_client):
    r = admin_client.get("/api/products", params={"rating": "five"})
    assert r.status_code == 400


def test_create_validation_errors(admin_client):
    for bad in (
        dict(WIDGET, rating=6),
        dict(WIDGET, rating=0),
        dict(WIDGET, price=-1),
        dict(WIDGET, name=""),
        dict(WIDGET, gallery_images=["not a url"]),
        dict(WIDGET, support_email="nope"),
        dict(WIDGET, unknown_field=1),
    ):
        r = admin_client.post("/api/products", json=bad)
        assert r.status_code == 400, bad
        assert "error" in r.json()

    missing = {k: v for k, v in WIDGET.items() if k != "category"}
    r = admin_client.post("/api/products", json=missing)
    assert r.status_code == 400
    assert "category" in r.json()["error"]


def test_data_uri_images_are_accepted(admin_client):
    product = create(admin_client, main_image_url="data:image/png;base64,iVBORw0KGgo=")
    assert product["main_image_url"].startswith("data:image/png")


def test_gallery_round_trip_preserves_order(admin_client):
    gallery = ["https://cdn.io/3.png", "https://cdn.io/1.png", "https://cdn.io/2.png"]
    product = create(admin_client, gallery_images=gallery)
    assert admin_client.get(f"/api/products/{product['id']}").json()["gallery_images"] == gallery
    listed = admin_client.get("/api/products").json()
    assert listed[0]["gallery_images"] == gallery


def test_partial_update(admin_client):
    product = create(admin_client, feature_1="Fast")
    r = admin_client.put(f"/api/products/{product['id']}", json={"price": 19.5, "is_featured": True, "feature_1": ""})
    assert r.status_code == 200
    body = r.json()
    assert body["price"] == 19.5
    assert body["is_featured"] is True
    assert body["feature_1"] is None
    assert body["name"] == "Widget"


def test_update_errors(admin_client):
    product = create(admin_client)
    r = admin_client.put(f"/api/products/{product['id']}", json={})
    assert r.status_code == 400
    assert r.json() == {"error": "No valid fields to update"}

    r = admin_client.put(f"/api/products/{product['id']}", json={"name": None})
    assert r.status_code == 400

    r = admin_client.put("/api/products/9999", json={"name": "x"})
    assert r.status_code == 404


def test_delete_product(admin_client):
    product = create(admin_client)
    r = admin_client.delete(f"/api/products/{product['id']}")
    assert r.status_code == 200
    assert r.json() == {"message": "Product deleted successfully"}

    assert admin_client.delete(f"/api/products/{product['id']}").status_code == 404
    assert admin_client.get(f"/api/products/{product['id']}").status_code == 404


def test_categories_are_seeded(client):
    names = [c["name"] for c in client.get("/api/categories").json()]
    assert "Tools" in names
    assert names == sorted(names)


def test_out_of_range_ids_are_rejected(admin_client):
    for pid in (10**20, 0):
        assert admin_client.get(f"/api/products/{pid}").status_code == 400
        assert admin_client.put(f"/api/products/{pid}", json={"name": "x"}).status_code == 400
        assert admin_client.delete(f"/api/products/{pid}").status_code == 400
