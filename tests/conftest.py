"""Pytest configuration and fixtures."""

import os

import pytest

# Set before any test module imports formchat.main
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-key")
os.environ.setdefault("OPENAI_API_KEY", "test-openai-key")
os.environ.setdefault("FORMCHAT_ENV", "test")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")

ADMIN_HEADERS = {"X-API-Key": "test-admin-key"}


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return dict(ADMIN_HEADERS)
