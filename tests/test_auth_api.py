"""Tests for admin authentication."""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from formchat.main import app


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def mock_supabase():
    with patch("formchat.db.supabase_client.get_supabase") as mock_middleware, patch(
        "formchat.api.auth.get_client"
    ) as mock_api:
        supabase = MagicMock()
        mock_middleware.return_value = supabase
        mock_api.return_value = supabase
        yield supabase


def test_login(client, mock_supabase):
    mock_supabase.auth.sign_in_with_password.return_value = SimpleNamespace(
        session=SimpleNamespace(access_token="tok", refresh_token="ref", expires_at=123),
        user=SimpleNamespace(id="u1", email="admin@example.com"),
    )

    response = client.post("/api/auth/login", json={"email": "admin@example.com", "password": "pw"})

    assert response.status_code == 200
    data = response.json()
    assert data["access_token"] == "tok"
    assert data["user"]["email"] == "admin@example.com"


def test_login_bad_password(client, mock_supabase):
    mock_supabase.auth.sign_in_with_password.side_effect = Exception("Invalid login credentials")

    response = client.post("/api/auth/login", json={"email": "admin@example.com", "password": "no"})

    assert response.status_code == 401


def test_me_with_bearer_token(client, mock_supabase):
    mock_supabase.auth.get_user.return_value = SimpleNamespace(
        user=SimpleNamespace(id="u1", email="admin@example.com")
    )

    response = client.get("/api/auth/me", headers={"Authorization": "Bearer tok"})

    assert response.status_code == 200
    assert response.json() == {
        "user": {"id": "u1", "email": "admin@example.com"},
        "auth_method": "bearer",
    }
    mock_supabase.auth.get_user.assert_called_once_with("tok")


def test_me_with_api_key(client, admin_headers):
    response = client.get("/api/auth/me", headers=admin_headers)

    assert response.json()["auth_method"] == "api_key"


def test_me_rejects_bad_api_key(client):
    assert client.get("/api/auth/me", headers={"X-API-Key": "wrong"}).status_code == 401
