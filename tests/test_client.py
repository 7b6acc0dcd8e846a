import pytest

from catalog.client import ApiError, CatalogClient
from conftest import ADMIN_EMAIL, ADMIN_PASSWORD, WIDGET


@pytest.fixture
def api(client):
    client.cookies.clear()
    return CatalogClient(client)


def test_client_flow(api):
    assert api.health()["status"] == "OK"
    assert api.current_user() is None

    api.login(ADMIN_EMAIL, ADMIN_PASSWORD)
    product = api.create_product(dict(WIDGET, is_featured=True))
    assert api.update_product(product["id"], {"rating": 4})["rating"] == 4
    assert [p["id"] for p in api.list_products(featured=True, rating=4)] == [product["id"]]
    api.logout()

    api.register("buyer@shop.io", "secret1")
    assert api.current_user()["email"] == "buyer@shop.io"
    added = api.add_to_cart(product["id"], 2)
    api.update_cart_item(added["cart_item_id"], 3)
    assert api.cart_summary()["total_quantity"] == 3
    assert len(api.get_cart()) == 1
    api.clear_cart()
    assert api.get_cart() == []


def test_client_raises_api_error(api):
    with pytest.raises(ApiError) as excinfo:
        api.get_product(9999)
    assert excinfo.value.status_code == 404
    assert excinfo.value.message == "Product not found"

    with pytest.raises(ApiError) as excinfo:
        api.admin_stats()
    assert excinfo.value.status_code == 401
