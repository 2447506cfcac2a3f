"""Database operations for the key/value settings table."""

from datetime import datetime, timezone
from typing import Any

from formchat.core.config import Settings
from formchat.core.llm import default_llm_settings
from formchat.core.logging import get_logger
from formchat.core.schemas_settings import (
    LLMSettings,
    encode_setting_value,
    flatten_settings,
    merge_settings,
    unflatten_settings,
)
from formchat.db.supabase_client import get_supabase

logger = get_logger(__name__)


def get_settings_tree() -> dict[str, Any]:
    """All stored settings, unflattened into a nested dict."""
    supabase = get_supabase()

    response = supabase.table("settings").select("key, value").execute()
    flat = {row["key"]: row["value"] for row in response.data or []}
    return unflatten_settings(flat)


def load_llm_settings(app_settings: Settings) -> LLMSettings:
    """
    Read the LLM profile settings, falling back to environment defaults.

    Args:
        app_settings: Application settings supplying the fallbacks

    Returns:
        LLMSettings built from the stored tree
    """
    defaults = default_llm_settings(app_settings)
    llm_settings = LLMSettings.from_nested(
        get_settings_tree(),
        default_model=defaults.default_model,
        default_max_tokens=defaults.default_max_tokens,
        default_temperature=defaults.default_temperature,
    )
    if llm_settings.max_requests_per_minute is None:
        llm_settings.max_requests_per_minute = defaults.max_requests_per_minute
    return llm_settings


def check_settings_update(updates: dict[str, Any], app_settings: Settings) -> LLMSettings:
    """
    LLM settings as they would be after applying ``updates``; nothing is written.

    Raises:
        pydantic.ValidationError: If a merged value has the wrong type
    """
    defaults = default_llm_settings(app_settings)
    return LLMSettings.from_nested(
        merge_settings(get_settings_tree(), updates),
        default_model=defaults.default_model,
        default_max_tokens=defaults.default_max_tokens,
        default_temperature=defaults.default_temperature,
    )


def update_setting(key: str, value: Any) -> None:
    """Upsert one dotted key; a None value deletes it."""
    if value is None:
        delete_setting(key)
        return

    supabase = get_supabase()
    supabase.table("settings").upsert(
        {
            "key": key,
            "value": encode_setting_value(value),
            "updated_at": datetime.now(timezone.utc).isoformat(),
        },
        on_conflict="key",
    ).execute()


def update_settings(settings: dict[str, Any]) -> list[str]:
    """
    Flatten a nested settings dict and upsert every non-empty leaf.

    Returns:
        Keys that were written
    """
    flat = flatten_settings(settings)
    for key, value in flat.items():
        update_setting(key, value)

    logger.info(f"Updated {len(flat)} settings: {', '.join(flat)}")
    return list(flat.keys())


def delete_setting(key: str) -> None:
    supabase = get_supabase()
    supabase.table("settings").delete().eq("key", key).execute()
    logger.info(f"Deleted setting {key}")
