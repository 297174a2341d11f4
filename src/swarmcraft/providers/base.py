"""Model backend abstraction with retry logic.

A backend is opened once per agent, used for any number of completions, and
closed when the agent is discarded.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Optional, Protocol, runtime_checkable

import httpx

from ..core.errors import BackendError, TransientBackendError
from ..models.provider import CompletionResult
from ..utils.sanitize import sanitize_error

PROVIDER_NAMES = ("anthropic", "openai", "ollama", "mock")

TRANSIENT_MARKERS = ("429", "500", "502", "503", "504", "timeout", "timed out")
PERMANENT_MARKERS = ("400", "401", "403", "404")


@runtime_checkable
class ModelBackend(Protocol):
    """The only capability the pipeline needs from a model."""

    name: str

    async def open(self) -> None: ...

    async def run(self, prompt: str, options: Optional[dict] = None) -> str: ...

    async def aclose(self) -> None: ...


def is_retryable_error(error_msg: str) -> bool:
    return any(code in error_msg for code in TRANSIENT_MARKERS) and not any(
        code in error_msg for code in PERMANENT_MARKERS
    )


class BaseProvider:
    """Base class with shared retry logic, config handling and client lifecycle."""

    name: str = "base"

    def __init__(self, provider_config: dict, common_config: dict):
        self.config = provider_config
        self.common = common_config
        self.max_attempts = common_config.get("retry_attempts", 3)
        self.retry_delay = common_config.get("retry_delay_seconds", 5)
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def model(self) -> str:
        return self.config.get("model", "")

    @property
    def is_open(self) -> bool:
        return self._client is not None

    async def check(self) -> None:
        """Verify the backend is usable. Providers override to probe or validate."""

    async def open(self) -> None:
        """Create the HTTP client and verify the backend. Idempotent."""
        if self._client is not None:
            return
        client = httpx.AsyncClient(timeout=self.common.get("timeout_seconds", 300))
        self._client = client
        try:
            await self.check()
        except BaseException:
            self._client = None
            await client.aclose()
            raise

    async def aclose(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()

    async def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            await self.open()
        return self._client

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: Optional[float] = None,
        max_tokens: int = 0,
    ) -> CompletionResult:
        raise NotImplementedError

    async def complete_with_retry(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: Optional[float] = None,
        max_tokens: int = 0,
    ) -> CompletionResult:
        """Wrap complete() with retry logic including rate-limit handling."""
        rate_limit_max = max(self.max_attempts, 5)
        last_result: Optional[CompletionResult] = None

        for attempt in range(1, rate_limit_max + 1):
            result = await self.complete(system_prompt, user_prompt, temperature, max_tokens)
            last_result = result

            if result.success:
                return result

            error_msg = result.error or ""
            is_rate_limit = "429" in error_msg
            is_retryable = result.transient or is_retryable_error(error_msg)

            effective_max = rate_limit_max if is_rate_limit else self.max_attempts
            if not is_retryable or attempt >= effective_max:
                result.error = sanitize_error(error_msg)
                result.transient = is_retryable
                return result

            # Rate limits: 30s base. Others: standard backoff.
            base_delay = 30 if is_rate_limit else self.retry_delay
            wait_time = base_delay * min(attempt, 3)
            await asyncio.sleep(wait_time)

        return last_result or CompletionResult(success=False, error="Max retries exceeded")

    async def run(self, prompt: str, options: Optional[dict] = None) -> str:
        """Complete ``prompt`` and return the text, raising on failure."""
        options = options or {}
        result = await self.complete_with_retry(
            system_prompt=options.get("system_prompt", ""),
            user_prompt=prompt,
            temperature=options.get("temperature"),
            max_tokens=options.get("max_tokens", 0),
        )
        if result.success:
            return result.content or ""
        error_cls = TransientBackendError if result.transient else BackendError
        raise error_cls(
            f"{self.name} completion failed: {result.error}",
            provider=self.name,
            status_code=result.status_code,
        )

    def _http_error_result(self, e: httpx.HTTPStatusError) -> CompletionResult:
        error_body = ""
        try:
            error_body = e.response.text
        except httpx.ResponseNotRead:
            pass
        return CompletionResult(
            success=False,
            error=f"{e.response.status_code} | {error_body}",
            status_code=e.response.status_code,
        )


def split_model_name(model_name: str, default_provider: str) -> tuple[str, str]:
    """Split ``"provider/model"``; a bare name belongs to the default provider."""
    prefix, sep, rest = model_name.partition("/")
    if sep and prefix in PROVIDER_NAMES:
        return prefix, rest
    return default_provider, model_name


def get_ai_provider(
    config: dict,
    provider_override: Optional[str] = None,
    model_override: Optional[str] = None,
    endpoint_override: Optional[str] = None,
) -> BaseProvider:
    """Factory function to create the configured AI provider."""
    ai_config = config.get("ai", {})
    provider_name = provider_override or ai_config.get("provider", "openai")

    # Get provider-specific config
    provider_config = dict(ai_config.get(provider_name, {}))

    if model_override:
        provider_config["model"] = model_override
    if endpoint_override:
        provider_config["endpoint"] = endpoint_override

    # Build common config (ai section minus provider sub-configs)
    common_config = {
        k: v
        for k, v in ai_config.items()
        if k not in PROVIDER_NAMES
    }

    # Import and instantiate provider
    if provider_name == "anthropic":
        from .anthropic import AnthropicProvider
        return AnthropicProvider(provider_config, common_config)
    elif provider_name == "openai":
        from .openai_provider import OpenAIProvider
        return OpenAIProvider(provider_config, common_config)
    elif provider_name == "ollama":
        from .ollama import OllamaProvider
        return OllamaProvider(provider_config, common_config)
    elif provider_name == "mock":
        from .mock import MockProvider
        return MockProvider(provider_config, common_config)
    else:
        raise ValueError(f"Unknown AI provider: {provider_name}")


def backend_factory_from_config(config: dict) -> Callable[[str], BaseProvider]:
    """Return the ``model_name -> backend`` factory used by the pipeline."""
    default_provider = config.get("ai", {}).get("provider", "openai")

    def factory(model_name: str) -> BaseProvider:
        provider_name, model = split_model_name(model_name, default_provider)
        return get_ai_provider(config, provider_override=provider_name, model_override=model or None)

    return factory
