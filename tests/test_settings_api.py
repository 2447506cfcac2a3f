"""Tests for settings endpoints and the settings db layer."""

from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError

from formchat.api.deps import get_gateway
from formchat.core.config import get_settings
from formchat.core.schemas_settings import LLMProfile
from formchat.db.settings import check_settings_update, load_llm_settings, update_settings
from formchat.main import app


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def gateway():
    gateway = MagicMock()
    app.dependency_overrides[get_gateway] = lambda: gateway
    yield gateway
    app.dependency_overrides.clear()


@pytest.fixture
def mock_supabase():
    """Mock Supabase client."""
    with patch("formchat.db.settings.get_supabase") as mock:
        yield mock.return_value


class TestSettingsDb:
    def test_update_settings_upserts_flattened_keys(self, mock_supabase):
        keys = update_settings({"MODELS": {"CHAT": "gpt-4o", "OUTPUT": ""}, "RATE_LIMIT": {"MAX_REQUESTS_PER_MIN": 30}})

        assert keys == ["MODELS.CHAT", "RATE_LIMIT.MAX_REQUESTS_PER_MIN"]
        rows = [c.args[0] for c in mock_supabase.table.return_value.upsert.call_args_list]
        assert rows[0]["key"] == "MODELS.CHAT"
        assert rows[0]["value"] == '"gpt-4o"'
        assert rows[1]["value"] == "30"

    def test_load_llm_settings_falls_back_to_env(self, mock_supabase):
        mock_supabase.table.return_value.select.return_value.execute.return_value = MagicMock(
            data=[{"key": "MODELS.OUTPUT", "value": '"gpt-4o"'}]
        )

        llm = load_llm_settings(get_settings())

        assert llm.resolve(LLMProfile.OUTPUT).model == "gpt-4o"
        assert llm.resolve(LLMProfile.CHAT).model == get_settings().LLM_DEFAULT_MODEL
        assert llm.max_requests_per_minute == get_settings().LLM_MAX_REQUESTS_PER_MIN

    def test_check_settings_update_merges_over_stored(self, mock_supabase):
        mock_supabase.table.return_value.select.return_value.execute.return_value = MagicMock(
            data=[
                {"key": "MODELS.OUTPUT", "value": '"gpt-4o"'},
                {"key": "RATE_LIMIT.MAX_REQUESTS_PER_MIN", "value": "20"},
            ]
        )

        llm = check_settings_update({"MODELS": {"CHAT": "gpt-4.1"}}, get_settings())

        assert llm.resolve(LLMProfile.OUTPUT).model == "gpt-4o"
        assert llm.resolve(LLMProfile.CHAT).model == "gpt-4.1"
        assert llm.max_requests_per_minute == 20
        mock_supabase.table.return_value.upsert.assert_not_called()

    @pytest.mark.parametrize(
        "updates",
        [
            {"MODELS": {"VALIDATION": 5}},
            {"CHAT_PROCESSING": {"MAX_TOKENS": {"OUTPUT": "lots"}}},
            {"RATE_LIMIT": {"MAX_REQUESTS_PER_MIN": -1}},
        ],
    )
    def test_check_settings_update_rejects_wrong_types(self, mock_supabase, updates):
        mock_supabase.table.return_value.select.return_value.execute.return_value = MagicMock(data=[])

        with pytest.raises(ValidationError):
            check_settings_update(updates, get_settings())


class TestSettingsApi:
    def test_requires_admin(self, client):
        assert client.get("/api/settings").status_code == 401

    def test_get_settings(self, client, admin_headers):
        with patch("formchat.db.settings.get_settings_tree", return_value={"MODELS": {"CHAT": "gpt-4o"}}):
            response = client.get("/api/settings", headers=admin_headers)

        assert response.json() == {"MODELS": {"CHAT": "gpt-4o"}}

    def test_post_settings_reconfigures_gateway(self, client, admin_headers, gateway):
        loaded = MagicMock()
        with (
            patch("formchat.db.settings.check_settings_update"),
            patch("formchat.db.settings.update_settings") as mock_update,
            patch("formchat.db.settings.load_llm_settings", return_value=loaded),
        ):
            response = client.post(
                "/api/settings", json={"MODELS": {"CHAT": "gpt-4o"}}, headers=admin_headers
            )

        assert response.status_code == 200
        mock_update.assert_called_once_with({"MODELS": {"CHAT": "gpt-4o"}})
        gateway.reconfigure.assert_called_once_with(loaded)

    def test_delete_setting(self, client, admin_headers, gateway):
        with (
            patch("formchat.db.settings.delete_setting") as mock_delete,
            patch("formchat.db.settings.load_llm_settings"),
        ):
            response = client.delete("/api/settings/MODELS.CHAT", headers=admin_headers)

        assert response.status_code == 200
        mock_delete.assert_called_once_with("MODELS.CHAT")

    def test_post_wrongly_typed_value_writes_nothing(self, client, admin_headers, gateway):
        with patch("formchat.db.settings.get_supabase") as mock_get:
            supabase = mock_get.return_value
            supabase.table.return_value.select.return_value.execute.return_value = MagicMock(data=[])

            response = client.post(
                "/api/settings", json={"MODELS": {"VALIDATION": 5}}, headers=admin_headers
            )

        assert response.status_code == 422
        supabase.table.return_value.upsert.assert_not_called()
        gateway.reconfigure.assert_not_called()
