"""Tests for privileged admin routes."""

from fastapi.testclient import TestClient

OPENAI_KEY = "sk-test-abcdefghijklmnopqrstuvwxyz"


def session_token(client: TestClient) -> str:
    return client.get("/auth/me").json()["csrf_token"]


class TestAdminAccess:
    """Tests for privilege enforcement on /admin."""

    def test_anonymous_rejected(self, test_app: TestClient):
        """Test that anonymous requests are sent to the login page."""
        response = test_app.get("/admin/ping")
        assert response.status_code == 401
        assert response.json()["redirect_to"] == "/login"

    def test_unprivileged_rejected(self, signed_in_client: TestClient, audit_sink):
        """Test that a signed-in but unprivileged subject gets 403."""
        response = signed_in_client.get("/admin/ping")
        assert response.status_code == 403
        assert response.json()["error_type"] == "privilege_required"

    def test_privileged_allowed(self, admin_client: TestClient):
        """Test that a privileged subject reaches the route."""
        response = admin_client.get("/admin/ping")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestApiKeys:
    """Tests for provider API key management."""

    def test_status_unconfigured(self, admin_client: TestClient):
        """Test that a provider without a key reports unconfigured."""
        response = admin_client.get("/admin/settings/api-keys/openai")
        assert response.status_code == 200
        assert response.json() == {"provider": "openai", "configured": False}

    def test_store_key(self, admin_client: TestClient, secret_settings):
        """Test that a stored key is encrypted at rest and readable through the facade."""
        response = admin_client.put(
            "/admin/settings/api-keys/openai",
            json={"api_key": OPENAI_KEY},
            headers={"X-CSRF-Token": session_token(admin_client)},
        )
        assert response.status_code == 200
        assert response.json()["configured"] is True

        stored = secret_settings.store.get("openai_api_key")
        assert stored.is_encrypted is True
        assert stored.value != OPENAI_KEY
        assert secret_settings.get_api_key("openai") == OPENAI_KEY

    def test_store_key_requires_csrf(self, admin_client: TestClient):
        """Test that key updates need a CSRF token."""
        response = admin_client.put(
            "/admin/settings/api-keys/openai", json={"api_key": OPENAI_KEY}
        )
        assert response.status_code == 403

    def test_invalid_key_rejected(self, admin_client: TestClient):
        """Test that malformed keys are rejected with the offending field."""
        response = admin_client.put(
            "/admin/settings/api-keys/openai",
            json={"api_key": "not-an-openai-key"},
            headers={"X-CSRF-Token": session_token(admin_client)},
        )
        assert response.status_code == 400
        assert response.json()["field"] == "api_key"

    def test_unknown_provider(self, admin_client: TestClient):
        """Test that only supported providers are accepted."""
        response = admin_client.get("/admin/settings/api-keys/acme")
        assert response.status_code == 422

    def test_settings_list_masks_secrets(self, admin_client: TestClient, secret_settings):
        """Test that encrypted values never leave the server."""
        secret_settings.set_api_key("openai", OPENAI_KEY)
        secret_settings.set("default_model", "gpt-4o-mini")

        response = admin_client.get("/admin/settings")
        assert response.status_code == 200
        items = {item["key"]: item for item in response.json()["items"]}
        assert items["openai_api_key"]["value"] == "********"
        assert items["default_model"]["value"] == "gpt-4o-mini"
        assert OPENAI_KEY not in response.text
