"""Shared pytest fixtures for API tests."""

from typing import Dict, Generator

import pytest
from fastapi.testclient import TestClient

from appeal_prospect.auth import SessionGuard
from appeal_prospect.core.secret_settings import SecretSettings
from appeal_prospect.web.main import create_app

TEST_EMAIL = "counsel@example.com"
TEST_PASSWORD = "Correct1Horse"
ADMIN_EMAIL = "admin@example.com"


@pytest.fixture
def test_app(guard: SessionGuard, secret_settings: SecretSettings) -> Generator[TestClient, None, None]:
    """
    Provide a FastAPI TestClient wired to the test guard.

    The guard uses in-memory stores, cheap hashing parameters and the
    fake clock, so tests can advance time between requests.
    """
    app = create_app(guard=guard, secret_settings=secret_settings)
    with TestClient(app, raise_server_exceptions=True) as client:
        yield client


def csrf_headers(client: TestClient) -> Dict[str, str]:
    """Fetch the session's CSRF token and return it as a request header."""
    token = client.get("/auth/csrf").json()["csrf_token"]
    return {"X-CSRF-Token": token}


def login(client: TestClient, email: str = TEST_EMAIL, password: str = TEST_PASSWORD):
    """Sign in through the API and return the response."""
    return client.post(
        "/auth/login",
        json={"email": email, "password": password},
        headers=csrf_headers(client),
    )


@pytest.fixture
def signed_in_client(test_app: TestClient, registered_user) -> TestClient:
    """Provide a client signed in as a regular user."""
    response = login(test_app)
    assert response.status_code == 200
    return test_app


@pytest.fixture
def admin_client(test_app: TestClient, users) -> TestClient:
    """Provide a client signed in as a privileged user."""
    users.register(ADMIN_EMAIL, TEST_PASSWORD, "Admin", is_privileged=True)
    response = login(test_app, ADMIN_EMAIL)
    assert response.status_code == 200
    return test_app
