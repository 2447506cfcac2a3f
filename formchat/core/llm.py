"""LLM gateway: throttled, profile-aware access to the chat-completions API."""

import asyncio
import logging
import time
from collections.abc import Sequence
from typing import Any

from openai import APIError, APIStatusError, AsyncOpenAI
from pydantic import BaseModel, Field

from formchat.core.config import Settings
from formchat.core.errors import ProtocolError, ProviderError
from formchat.core.logging import get_logger, log_with_context
from formchat.core.rate_limiter import RequestThrottle
from formchat.core.schemas_settings import LLMProfile, LLMSettings

logger = get_logger(__name__)

# Characters of the first message kept in the request log line
_LOG_PREVIEW_CHARS = 100


class LLMUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class LLMResult(BaseModel):
    """Text and metadata returned for one chat call."""

    content: str
    model: str
    usage: LLMUsage = Field(default_factory=LLMUsage)
    finish_reason: str | None = None


class LLMGateway:
    """
    Owns the provider connection and the process-wide request throttle.

    Constructed once by the application's composition root and shared by every
    session; calls from all sessions queue on the same throttle.
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        settings: LLMSettings | None = None,
        *,
        timeout: float = 45.0,
        throttle: RequestThrottle | None = None,
    ):
        self._client = client
        self.settings = settings or LLMSettings()
        self.timeout = timeout
        self.throttle = throttle or RequestThrottle(
            requests_per_minute=self.settings.max_requests_per_minute or 20
        )

    def reconfigure(self, settings: LLMSettings) -> None:
        """Swap profile settings; rebuild the throttle if the rate changed."""
        old_rpm = self.throttle.requests_per_minute
        self.settings = settings
        new_rpm = settings.max_requests_per_minute or old_rpm
        if new_rpm != old_rpm:
            self.throttle = RequestThrottle(requests_per_minute=new_rpm)
        logger.info(f"LLM gateway reconfigured (rate limit {new_rpm}/min)")

    async def chat(
        self,
        messages: Sequence[dict[str, str]],
        profile: LLMProfile = LLMProfile.CHAT,
    ) -> LLMResult:
        """
        Send role-tagged messages and return the generated text.

        Args:
            messages: Ordered ``{"role", "content"}`` dicts
            profile: Call profile selecting model/tokens/temperature

        Returns:
            LLMResult with content, usage and finish reason

        Raises:
            ProviderError: Network/provider failure or timeout (not retried)
            ProtocolError: Response without a usable choice or content
        """
        return await self.throttle.schedule(self._complete, list(messages), profile)

    async def _complete(self, messages: list[dict[str, str]], profile: LLMProfile) -> LLMResult:
        params = self.settings.resolve(profile)
        profile_name = profile.value if isinstance(profile, LLMProfile) else str(profile)

        first = messages[0].get("content", "") if messages else ""
        log_with_context(
            logger,
            logging.INFO,
            "LLM request",
            profile=profile_name,
            model=params.model,
            max_tokens=params.max_tokens,
            temperature=params.temperature,
            message_count=len(messages),
            first_message=first[:_LOG_PREVIEW_CHARS],
        )

        start = time.monotonic()
        try:
            completion = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=params.model,
                    messages=messages,
                    max_tokens=params.max_tokens,
                    temperature=params.temperature,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            self._log_failure(profile_name, params.model, start, "timeout", None, str(e))
            raise ProviderError(
                f"LLM request timed out after {self.timeout}s", error_type="timeout"
            ) from e
        except APIStatusError as e:
            self._log_failure(profile_name, params.model, start, type(e).__name__, e.status_code, str(e))
            raise ProviderError(
                f"LLM provider error: {e}", status_code=e.status_code, error_type=type(e).__name__
            ) from e
        except APIError as e:
            self._log_failure(profile_name, params.model, start, type(e).__name__, None, str(e))
            raise ProviderError(f"LLM provider error: {e}", error_type=type(e).__name__) from e

        duration_ms = int((time.monotonic() - start) * 1000)
        result = _parse_completion(completion, params.model)

        log_with_context(
            logger,
            logging.INFO,
            "LLM response",
            profile=profile_name,
            model=result.model,
            duration_ms=duration_ms,
            prompt_tokens=result.usage.prompt_tokens,
            completion_tokens=result.usage.completion_tokens,
            total_tokens=result.usage.total_tokens,
            finish_reason=result.finish_reason,
            response_length=len(result.content),
            content=result.content,
        )
        return result

    def _log_failure(
        self,
        profile: str,
        model: str,
        start: float,
        error_type: str,
        status_code: int | None,
        error: str,
    ) -> None:
        log_with_context(
            logger,
            logging.ERROR,
            "LLM request failed",
            profile=profile,
            model=model,
            duration_ms=int((time.monotonic() - start) * 1000),
            error_type=error_type,
            status_code=status_code,
            error=error,
        )


def _parse_completion(completion: Any, requested_model: str) -> LLMResult:
    choices = getattr(completion, "choices", None)
    if not choices:
        logger.error("LLM response has no choices")
        raise ProtocolError("LLM response has no choices")

    choice = choices[0]
    message = getattr(choice, "message", None)
    content = getattr(message, "content", None) if message is not None else None
    if content is None:
        logger.error("LLM response choice has no content")
        raise ProtocolError("LLM response choice has no content")

    usage = getattr(completion, "usage", None)
    return LLMResult(
        content=content,
        model=getattr(completion, "model", None) or requested_model,
        usage=LLMUsage(
            prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            completion_tokens=getattr(usage, "completion_tokens", 0) or 0,
            total_tokens=getattr(usage, "total_tokens", 0) or 0,
        ),
        finish_reason=getattr(choice, "finish_reason", None),
    )


def build_gateway(settings: Settings, llm_settings: LLMSettings | None = None) -> LLMGateway:
    """
    Construct the gateway from application settings.

    Args:
        settings: Application settings (API key, defaults, timeout)
        llm_settings: Stored profile settings; env defaults are used when None

    Returns:
        LLMGateway ready to use
    """
    if llm_settings is None:
        llm_settings = default_llm_settings(settings)

    # Retries are the caller's decision, never the SDK's
    client = AsyncOpenAI(api_key=settings.OPENAI_API_KEY, max_retries=0)
    return LLMGateway(
        client,
        llm_settings,
        timeout=settings.LLM_REQUEST_TIMEOUT_SECONDS,
        throttle=RequestThrottle(
            requests_per_minute=llm_settings.max_requests_per_minute
            or settings.LLM_MAX_REQUESTS_PER_MIN
        ),
    )


def default_llm_settings(settings: Settings) -> LLMSettings:
    """LLMSettings carrying only the environment defaults."""
    return LLMSettings(
        max_requests_per_minute=settings.LLM_MAX_REQUESTS_PER_MIN,
        default_model=settings.LLM_DEFAULT_MODEL,
        default_max_tokens=settings.LLM_DEFAULT_MAX_TOKENS,
        default_temperature=settings.LLM_DEFAULT_TEMPERATURE,
    )
