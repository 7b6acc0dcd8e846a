from locust import HttpUser, task, between
import random

class CatalogUser(HttpUser):
    wait_time = between(0.1, 0.5)

    def on_start(self):
        # Register a shopper for this simulated client; the session cookie sticks to self.client
        email = f"shopper_{random.randint(1, 1_000_000)}@loadtest.io"
        self.client.post("/api/auth/register", json={"email": email, "password": "loadtest1"})
        r = self.client.get("/api/products")
        self.product_ids = [p["id"] for p in r.json()] if r.status_code == 200 else []

    @task(5)
    def browse(self):
        self.client.get("/api/products", params={"search": random.choice(["kit", "template", "api", ""])})

    @task(3)
    def view_product(self):
        if not self.product_ids:
            return
        pid = random.choice(self.product_ids)
        self.client.get(f"/api/products/{pid}", name="/api/products/[id]")

    @task(2)
    def add_to_cart(self):
        if not self.product_ids:
            return
        self.client.post("/api/cart/add", json={"product_id": random.choice(self.product_ids), "quantity": 1})

    @task(1)
    def cart_summary(self):
        self.client.get("/api/cart/summary")
