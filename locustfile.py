from locust import HttpUser, task, between
import random

ACCOUNTS = [
    ("admin@zenith.com", "admin123"),
    ("customer@zenith.com", "customer123"),
    ("factory@zenith.com", "factory123"),
]


class ApiUser(HttpUser):
    wait_time = between(0.1, 0.5)

    def on_start(self):
        # Log in as one of the demo accounts for this simulated client
        email, password = random.choice(ACCOUNTS)
        r = self.client.post("/trpc/users.login", json={"email": email, "password": password})
        if r.status_code == 200:
            body = r.json()
            self.user_id = body["user"]["id"]
            self.role = body["user"]["role"]
            self.client.headers["Authorization"] = f"Bearer {body['token']}"
        else:
            self.user_id = None
            self.role = None

    @task(3)
    def my_orders(self):
        if not getattr(self, "user_id", None):
            return
        self.client.get("/trpc/orders.getByUserId", params={"userId": self.user_id},
                        name="/trpc/orders.getByUserId")

    @task(1)
    def role_view(self):
        if self.role == "admin":
            self.client.get("/trpc/orders.getAnalytics")
        elif self.role == "factory":
            self.client.get("/trpc/orders.getByStatus", params={"status": "manufacturing"},
                            name="/trpc/orders.getByStatus")
