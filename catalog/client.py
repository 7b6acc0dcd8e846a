"""HTTP client mirroring the catalog API.

Wraps an ``httpx.Client`` so the session cookie set by login/register is
replayed on later calls. Any ``httpx.Client`` works, including FastAPI's
``TestClient``::

    client = CatalogClient.connect("http://localhost:8000")
    client.login("admin@admin.com", "admin123")
    client.add_to_cart(product_id=1, quantity=2)
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)


class ApiError(Exception):
    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"{status_code}: {message}")


class CatalogClient:
    def __init__(self, http: httpx.Client, prefix: str = "/api"):
        self.http = http
        self.prefix = prefix.rstrip("/")

    @classmethod
    def connect(cls, base_url: str, timeout: float = 10.0) -> "CatalogClient":
        return cls(httpx.Client(base_url=base_url, timeout=timeout))

    def close(self):
        self.http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        response = self.http.request(method, f"{self.prefix}{path}", **kwargs)
        if response.is_error:
            try:
                message = response.json().get("error", response.reason_phrase)
            except ValueError:
                message = response.text or response.reason_phrase
            # 401 on /auth/me just means "not logged in"
            if not (response.status_code == 401 and path == "/auth/me"):
                logger.debug("%s %s failed: %s %s", method, path, response.status_code, message)
            raise ApiError(response.status_code, message)
        return response.json()

    # -------------------- Products --------------------

    def list_products(
        self,
        search: Optional[str] = None,
        license: Optional[str] = None,
        rating: Optional[int] = None,
        category: Optional[str] = None,
        featured: Optional[bool] = None,
    ) -> List[Dict[str, Any]]:
        params = {}
        if search:
            params["search"] = search
        if license:
            params["license"] = license
        if rating is not None:
            params["rating"] = str(rating)
        if category:
            params["category"] = category
        if featured is not None:
            params["featured"] = "true" if featured else "false"
        return self._request("GET", "/products", params=params)

    def get_product(self, product_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/products/{product_id}")

    def create_product(self, product: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/products", json=product)

    def update_product(self, product_id: int, changes: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("PUT", f"/products/{product_id}", json=changes)

    def delete_product(self, product_id: int) -> Dict[str, Any]:
        return self._request("DELETE", f"/products/{product_id}")

    def list_categories(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/categories")

    def health(self) -> Dict[str, Any]:
        return self._request("GET", "/health")

    # -------------------- Auth --------------------

    def login(self, email: str, password: str) -> Dict[str, Any]:
        return self._request("POST", "/auth/login", json={"email": email, "password": password})

    def register(self, email: str, password: str, is_admin: bool = False) -> Dict[str, Any]:
        payload = {"email": email, "password": password}
        if is_admin:
            payload["is_admin"] = True
        return self._request("POST", "/auth/register", json=payload)

    def logout(self) -> Dict[str, Any]:
        return self._request("POST", "/auth/logout")

    def current_user(self) -> Optional[Dict[str, Any]]:
        """Return the logged-in user, or None when there is no session."""
        try:
            return self._request("GET", "/auth/me")["user"]
        except ApiError as e:
            if e.status_code == 401:
                return None
            raise

    # -------------------- Cart --------------------

    def get_cart(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/cart")

    def add_to_cart(self, product_id: int, quantity: int = 1) -> Dict[str, Any]:
        return self._request("POST", "/cart/add", json={"product_id": product_id, "quantity": quantity})

    def update_cart_item(self, item_id: int, quantity: int) -> Dict[str, Any]:
        return self._request("PUT", f"/cart/{item_id}", json={"quantity": quantity})

    def remove_from_cart(self, item_id: int) -> Dict[str, Any]:
        return self._request("DELETE", f"/cart/{item_id}")

    def clear_cart(self) -> Dict[str, Any]:
        return self._request("DELETE", "/cart")

    def cart_summary(self) -> Dict[str, Any]:
        return self._request("GET", "/cart/summary")

    # -------------------- Admin --------------------

    def list_users(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/admin/users")

    def admin_stats(self) -> Dict[str, Any]:
        return self._request("GET", "/admin/stats")
