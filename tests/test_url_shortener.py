import json

import pytest
from fastapi.testclient import TestClient

from main import app
from linksnap_app.dependencies import get_url_service
from linksnap_app.exceptions import BackendError
from linksnap_app.services.url_service import (
    CODE_TAKEN_MESSAGE,
    URL_LIMIT_MESSAGE,
    URLService,
)
from linksnap_app.validators import INVALID_CODE_MESSAGE, INVALID_URL_MESSAGE, SHORT_CODE_PATTERN


class TestShortenerAPI:
    """Test creating short URLs"""

    def test_create_short_url(self, client: TestClient, alice, alice_headers):
        """Test creating a short URL with a generated code"""
        response = client.post("/api/v1/urls/", json={"url": "https://www.google.com/"}, headers=alice_headers)
        assert response.status_code == 201

        data = response.json()
        assert SHORT_CODE_PATTERN.fullmatch(data["short_code"])
        assert data["short_url"].endswith(f"/{data['short_code']}")
        assert data["original_url"] == "https://www.google.com/"
        assert data["user_id"] == alice.user.id
        assert data["clicks"] == 0
        assert data["is_custom"] is False

    def test_create_with_custom_code(self, client: TestClient, alice_headers):
        payload = {"url": "https://example.com", "use_custom_code": True, "custom_code": "my-link"}

        response = client.post("/api/v1/urls/", json=payload, headers=alice_headers)
        assert response.status_code == 201
        assert response.json()["short_code"] == "my-link"
        assert response.json()["is_custom"] is True

    def test_custom_code_ignored_when_mode_off(self, client: TestClient, alice_headers):
        payload = {"url": "https://example.com", "use_custom_code": False, "custom_code": "my-link"}

        response = client.post("/api/v1/urls/", json=payload, headers=alice_headers)
        assert response.status_code == 201
        assert response.json()["short_code"] != "my-link"
        assert response.json()["is_custom"] is False

    def test_empty_custom_code_falls_back_to_random(self, client: TestClient, alice_headers):
        payload = {"url": "https://example.com", "use_custom_code": True, "custom_code": "   "}

        response = client.post("/api/v1/urls/", json=payload, headers=alice_headers)
        assert response.status_code == 201
        assert response.json()["is_custom"] is False

    def test_invalid_url(self, client: TestClient, alice_headers):
        response = client.post("/api/v1/urls/", json={"url": "not-a-valid-url"}, headers=alice_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == INVALID_URL_MESSAGE

    def test_invalid_custom_code(self, client: TestClient, alice_headers):
        payload = {"url": "https://example.com", "use_custom_code": True, "custom_code": "no spaces!"}

        response = client.post("/api/v1/urls/", json=payload, headers=alice_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == INVALID_CODE_MESSAGE

    def test_one_url_per_user(self, client: TestClient, alice_headers):
        first = client.post("/api/v1/urls/", json={"url": "https://example.com/1"}, headers=alice_headers)
        assert first.status_code == 201

        second = client.post("/api/v1/urls/", json={"url": "https://example.com/2"}, headers=alice_headers)
        assert second.status_code == 409
        assert second.json()["detail"] == URL_LIMIT_MESSAGE

    def test_custom_code_taken(self, client: TestClient, bob, alice_headers):
        bob_headers = {"Authorization": f"Bearer {bob.access_token}"}
        payload = {"url": "https://example.com", "use_custom_code": True, "custom_code": "shared"}
        assert client.post("/api/v1/urls/", json=payload, headers=bob_headers).status_code == 201

        response = client.post("/api/v1/urls/", json=payload, headers=alice_headers)
        assert response.status_code == 409
        assert response.json()["detail"] == CODE_TAKEN_MESSAGE

    def test_requires_session(self, client: TestClient):
        response = client.post("/api/v1/urls/", json={"url": "https://example.com"})
        assert response.status_code == 401

    def test_rejects_unknown_token(self, client: TestClient):
        headers = {"Authorization": "Bearer not-a-session"}
        response = client.post("/api/v1/urls/", json={"url": "https://example.com"}, headers=headers)
        assert response.status_code == 401


class TestURLListAPI:
    """Test listing and deleting"""

    def test_list_only_own_urls(self, client: TestClient, bob, alice_headers):
        bob_headers = {"Authorization": f"Bearer {bob.access_token}"}
        client.post("/api/v1/urls/", json={"url": "https://alice.example.com"}, headers=alice_headers)
        client.post("/api/v1/urls/", json={"url": "https://bob.example.com"}, headers=bob_headers)

        response = client.get("/api/v1/urls/", headers=alice_headers)
        assert response.status_code == 200
        urls = response.json()
        assert [url["original_url"] for url in urls] == ["https://alice.example.com"]

    def test_empty_list(self, client: TestClient, alice_headers):
        response = client.get("/api/v1/urls/", headers=alice_headers)
        assert response.status_code == 200
        assert response.json() == []

    def test_delete_url(self, client: TestClient, alice_headers):
        created = client.post("/api/v1/urls/", json={"url": "https://www.python.org"}, headers=alice_headers)
        url_id = created.json()["id"]

        response = client.delete(f"/api/v1/urls/{url_id}", headers=alice_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "URL deleted successfully"

        assert client.get("/api/v1/urls/", headers=alice_headers).json() == []

        # The limit is lifted once the URL is gone
        again = client.post("/api/v1/urls/", json={"url": "https://www.python.org"}, headers=alice_headers)
        assert again.status_code == 201

    def test_cannot_delete_someone_elses_url(self, client: TestClient, bob, alice_headers):
        bob_headers = {"Authorization": f"Bearer {bob.access_token}"}
        created = client.post("/api/v1/urls/", json={"url": "https://bob.example.com"}, headers=bob_headers)

        response = client.delete(f"/api/v1/urls/{created.json()['id']}", headers=alice_headers)
        assert response.status_code == 404
        assert len(client.get("/api/v1/urls/", headers=bob_headers).json()) == 1

    def test_delete_nonexistent_url(self, client: TestClient, alice_headers):
        response = client.delete("/api/v1/urls/nonexistent", headers=alice_headers)
        assert response.status_code == 404
        assert response.json()["detail"] == "URL not found"


class TestQRCodeAPI:
    """Test QR code rendering and download"""

    def _create(self, client, headers, code="qr-link"):
        payload = {"url": "https://example.com", "use_custom_code": True, "custom_code": code}
        return client.post("/api/v1/urls/", json=payload, headers=headers).json()

    def test_svg_by_default(self, client: TestClient, alice_headers):
        url = self._create(client, alice_headers)

        response = client.get(f"/api/v1/urls/{url['id']}/qr", headers=alice_headers)
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("image/svg+xml")
        assert b"<svg" in response.content
        assert "content-disposition" not in response.headers

    def test_png_download(self, client: TestClient, alice_headers):
        url = self._create(client, alice_headers)

        response = client.get(
            f"/api/v1/urls/{url['id']}/qr",
            params={"format": "png", "download": "true"},
            headers=alice_headers,
        )
        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert response.content.startswith(b"\x89PNG")
        assert response.headers["content-disposition"] == 'attachment; filename="qr-qr-link.png"'

    def test_unknown_url(self, client: TestClient, alice_headers):
        response = client.get("/api/v1/urls/nonexistent/qr", headers=alice_headers)
        assert response.status_code == 404


class TestDashboardAPI:
    """Test the session gate and analytics"""

    def test_redirects_to_auth_without_session(self, client: TestClient):
        response = client.get("/", follow_redirects=False)
        assert response.status_code == 302
        assert response.headers["location"] == "/auth"

    def test_dashboard(self, client: TestClient, alice, alice_headers):
        created = client.post("/api/v1/urls/", json={"url": "https://example.com"}, headers=alice_headers).json()
        client.get(f"/{created['short_code']}", follow_redirects=False)
        client.get(f"/{created['short_code']}", follow_redirects=False)

        response = client.get("/", headers=alice_headers)
        assert response.status_code == 200

        data = response.json()
        assert data["user"]["email"] == "alice@example.com"
        assert data["analytics"] == {"total_clicks": 2, "total_urls": 1, "average_clicks": 2.0}
        assert [url["short_code"] for url in data["urls"]] == [created["short_code"]]

    def test_analytics_without_urls(self, client: TestClient, alice_headers):
        response = client.get("/api/v1/analytics", headers=alice_headers)
        assert response.status_code == 200
        assert response.json() == {"total_clicks": 0, "total_urls": 0, "average_clicks": 0}


class TestAuthAPI:
    """Test sign-up, sign-in and sign-out against the local backend"""

    credentials = {"email": "carol@example.com", "password": "s3cret-pass"}

    def test_auth_page(self, client: TestClient):
        response = client.get("/auth")
        assert response.status_code == 200
        assert response.json()["signin_url"] == "/api/v1/auth/signin"

    def test_signup_signin_signout(self, client: TestClient):
        signup = client.post("/api/v1/auth/signup", json=self.credentials)
        assert signup.status_code == 201
        assert signup.json()["user"]["email"] == "carol@example.com"

        signin = client.post("/api/v1/auth/signin", json=self.credentials)
        assert signin.status_code == 200
        headers = {"Authorization": f"Bearer {signin.json()['access_token']}"}

        assert client.get("/api/v1/auth/session", headers=headers).json()["email"] == "carol@example.com"

        signout = client.post("/api/v1/auth/signout", headers=headers)
        assert signout.status_code == 200
        client.cookies.clear()
        assert client.get("/api/v1/auth/session", headers=headers).status_code == 401

    def test_session_cookie(self, client: TestClient):
        client.post("/api/v1/auth/signup", json=self.credentials)

        # The signup response set the cookie; no header needed
        response = client.get("/", follow_redirects=False)
        assert response.status_code == 200

    def test_duplicate_signup(self, client: TestClient):
        client.post("/api/v1/auth/signup", json=self.credentials)
        response = client.post("/api/v1/auth/signup", json=self.credentials)
        assert response.status_code == 400

    def test_wrong_password(self, client: TestClient):
        client.post("/api/v1/auth/signup", json=self.credentials)
        response = client.post("/api/v1/auth/signin", json={**self.credentials, "password": "wrong-pass"})
        assert response.status_code == 401


class TestDatabaseFailureAPI:
    """Database errors surface as 502 with the user-facing message"""

    def test_list_fails_with_message(self, client: TestClient, alice_headers, broken_urls_table):
        response = client.get("/api/v1/urls/", headers=alice_headers)
        assert response.status_code == 502
        assert response.json()["detail"] == "Failed to load your URLs"

    def test_create_fails_with_message(self, client: TestClient, alice_headers, broken_urls_table):
        response = client.post("/api/v1/urls/", json={"url": "https://example.com"}, headers=alice_headers)
        assert response.status_code == 502
        assert response.json()["detail"] == "Failed to create short URL"

    def test_dashboard_fails_with_message(self, client: TestClient, alice_headers, broken_urls_table):
        response = client.get("/", headers=alice_headers)
        assert response.status_code == 502


class TestChangeStreamAPI:
    """
    Test the server-sent event stream.

    Without a change feed the stream sends the current list once and ends,
    which lets the test client read the whole response.
    """

    @pytest.fixture
    def single_shot(self, client, backend, cache):
        app.dependency_overrides[get_url_service] = lambda: URLService(backend=backend, cache=cache)

    def test_first_frame_is_current_list(self, client: TestClient, alice_headers, single_shot):
        created = client.post("/api/v1/urls/", json={"url": "https://example.com"}, headers=alice_headers).json()

        response = client.get("/api/v1/urls/changes", headers=alice_headers)
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")

        event_line, data_line = response.text.strip().split("\n")
        assert event_line == "event: urls"
        urls = json.loads(data_line[len("data: "):])
        assert [url["short_code"] for url in urls] == [created["short_code"]]
        assert urls[0]["short_url"] == created["short_url"]

    def test_error_frame(self, client: TestClient, backend, alice_headers, single_shot, monkeypatch):
        async def broken_list(user_id, access_token=None):
            raise BackendError("connection reset")

        monkeypatch.setattr(backend, "list_urls", broken_list)

        response = client.get("/api/v1/urls/changes", headers=alice_headers)
        assert response.status_code == 200
        assert response.text == 'event: error\ndata: {"detail": "Failed to load your URLs"}\n\n'

    def test_requires_session(self, client: TestClient):
        response = client.get("/api/v1/urls/changes")
        assert response.status_code == 401
