from typing import Dict

from fastapi.testclient import TestClient


def register_user(client: TestClient, username: str, email: str, password: str = "secret123") -> dict:
    response = client.post(
        "/api/auth/register",
        json={"username": username, "email": email, "password": password},
    )
    assert response.status_code == 201, response.text
    return response.json()


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def create_task(client: TestClient, headers: Dict[str, str], **fields) -> dict:
    response = client.post("/api/tasks", json=fields, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]
