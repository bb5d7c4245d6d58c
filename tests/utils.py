from fastapi.testclient import TestClient

ADMIN_EMAIL = "admin@pocketbook.test"
API = "/api/v1"


def signup(client: TestClient, email: str, password: str = "123456", name: str = "Test"):
    return client.post(f"{API}/signup", json={"name": name, "email": email, "password": password})


def auth_headers(client: TestClient, email: str, password: str = "123456") -> dict:
    signup(client, email, password)
    response = client.post(f"{API}/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access']}"}


def current_user_id(client: TestClient, headers: dict) -> int:
    return client.get(f"{API}/me", headers=headers).json()["id"]
