"""LLM profile settings and the flattened key/value settings format.

Settings are stored one row per dotted key, e.g.::

    MODELS.VALIDATION                      -> "gpt-4o-mini"
    CHAT_PROCESSING.MAX_TOKENS.VALIDATION  -> 1000
    CHAT_PROCESSING.TEMPERATURE.VALIDATION -> 0.3
    RATE_LIMIT.MAX_REQUESTS_PER_MIN        -> 20

Values are JSON encoded in storage and decoded when unflattened.
"""

import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class LLMProfile(str, Enum):
    """Call profile; selects model, token budget and temperature."""

    CHAT = "CHAT"
    CONVERSATIONAL = "CONVERSATIONAL"
    VALIDATION = "VALIDATION"
    GUIDANCE = "GUIDANCE"
    WELCOME = "WELCOME"
    OUTPUT = "OUTPUT"


class ProfileParams(BaseModel):
    model: str
    max_tokens: int
    temperature: float


class LLMSettings(BaseModel):
    """Per-profile LLM parameters plus the global request rate."""

    models: dict[str, str] = Field(default_factory=dict)
    max_tokens: dict[str, int] = Field(default_factory=dict)
    temperatures: dict[str, float] = Field(default_factory=dict)
    max_requests_per_minute: int | None = Field(default=None, gt=0)

    default_model: str = "gpt-4o-mini"
    default_max_tokens: int = 1000
    default_temperature: float = 0.7

    def resolve(self, profile: LLMProfile | str) -> ProfileParams:
        """Parameters for ``profile``; each missing key falls back to its default."""
        key = profile.value if isinstance(profile, LLMProfile) else str(profile)
        model = self.models.get(key)
        max_tokens = self.max_tokens.get(key)
        temperature = self.temperatures.get(key)
        return ProfileParams(
            model=model or self.default_model,
            max_tokens=max_tokens if max_tokens is not None else self.default_max_tokens,
            temperature=temperature if temperature is not None else self.default_temperature,
        )

    @classmethod
    def from_nested(cls, nested: dict[str, Any], **defaults: Any) -> "LLMSettings":
        """Build from the unflattened settings tree; unknown keys are ignored."""
        processing = _section(nested, "CHAT_PROCESSING")
        rate_limit = _section(nested, "RATE_LIMIT")
        max_rpm = rate_limit.get("MAX_REQUESTS_PER_MIN")
        return cls(
            models=_only_scalars(nested.get("MODELS")),
            max_tokens=_only_scalars(processing.get("MAX_TOKENS")),
            temperatures=_only_scalars(processing.get("TEMPERATURE")),
            max_requests_per_minute=max_rpm or None,
            **defaults,
        )


def _section(nested: dict[str, Any], key: str) -> dict[str, Any]:
    value = nested.get(key)
    return value if isinstance(value, dict) else {}


def _only_scalars(section: Any) -> dict[str, Any]:
    if not isinstance(section, dict):
        return {}
    return {k: v for k, v in section.items() if v is not None and not isinstance(v, dict)}


DEFAULT_SETTINGS: dict[str, Any] = {
    "MODELS": {
        "CHAT": "gpt-4o-mini",
        "CONVERSATIONAL": "gpt-4o-mini",
        "WELCOME": "gpt-4o-mini",
        "VALIDATION": "gpt-4o-mini",
        "GUIDANCE": "gpt-4o-mini",
        "OUTPUT": "gpt-4o-mini",
    },
    "CHAT_PROCESSING": {
        "MAX_TOKENS": {
            "CONVERSATIONAL": 1000,
            "WELCOME": 100,
            "VALIDATION": 1000,
            "GUIDANCE": 1000,
            "OUTPUT": 2000,
        },
        "TEMPERATURE": {
            "CONVERSATIONAL": 0.7,
            "WELCOME": 0.7,
            "VALIDATION": 0.3,
            "GUIDANCE": 0.7,
            "OUTPUT": 0.7,
        },
    },
    "RATE_LIMIT": {
        "MAX_REQUESTS_PER_MIN": 20,
    },
}


def flatten_settings(settings: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    """Flatten a nested dict into dotted keys, skipping null and empty values."""
    flat: dict[str, Any] = {}
    for key, value in settings.items():
        full_key = f"{prefix}.{key}" if prefix else key
        if isinstance(value, dict):
            flat.update(flatten_settings(value, full_key))
        elif value is not None and value != "":
            flat[full_key] = value
    return flat


def merge_settings(base: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    """Nested copy of ``base`` with the non-empty leaves of ``updates`` laid over it."""
    merged = dict(base)
    for key, value in updates.items():
        if isinstance(value, dict):
            current = merged.get(key)
            merged[key] = merge_settings(current if isinstance(current, dict) else {}, value)
        elif value is not None and value != "":
            merged[key] = value
    return merged


def unflatten_settings(flat: dict[str, Any]) -> dict[str, Any]:
    """Inverse of :func:`flatten_settings`; JSON-decodes string values when possible."""
    result: dict[str, Any] = {}
    for key, value in flat.items():
        parts = key.split(".")
        current = result
        for part in parts[:-1]:
            node = current.get(part)
            if not isinstance(node, dict):
                node = {}
                current[part] = node
            current = node
        current[parts[-1]] = _decode(value)
    return result


def _decode(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except (json.JSONDecodeError, ValueError):
        return value


def encode_setting_value(value: Any) -> str:
    """Storage encoding for one settings value."""
    return json.dumps(value)
