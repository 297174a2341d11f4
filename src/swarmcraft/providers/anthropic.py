"""Anthropic Claude API provider."""

from __future__ import annotations

import os
from typing import Optional

import httpx

from ..core.errors import BackendError
from ..models.provider import CompletionResult
from .base import BaseProvider


class AnthropicProvider(BaseProvider):
    name = "anthropic"
    API_URL = "https://api.anthropic.com/v1/messages"

    def _get_api_key(self) -> Optional[str]:
        env_var = self.config.get("api_key_env", "ANTHROPIC_API_KEY")
        return self.config.get("api_key") or os.environ.get(env_var)

    @property
    def model(self) -> str:
        return self.config.get("model", "claude-sonnet-4-5-20250929")

    async def check(self) -> None:
        if not self._get_api_key():
            env_var = self.config.get("api_key_env", "ANTHROPIC_API_KEY")
            raise BackendError(
                f"API key not found in environment variable: {env_var}",
                provider=self.name,
            )

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: Optional[float] = None,
        max_tokens: int = 0,
    ) -> CompletionResult:
        api_key = self._get_api_key()
        if not api_key:
            env_var = self.config.get("api_key_env", "ANTHROPIC_API_KEY")
            return CompletionResult(
                success=False,
                error=f"API key not found in environment variable: {env_var}",
            )

        body = {
            "model": self.model,
            "max_tokens": max_tokens or self.config.get("max_tokens", 8000),
            "temperature": temperature if temperature is not None else self.common.get("temperature", 0.5),
            "messages": [{"role": "user", "content": user_prompt}],
        }
        if system_prompt:
            body["system"] = system_prompt

        headers = {
            "x-api-key": api_key,
            "anthropic-version": "2023-06-01",
            "content-type": "application/json",
        }

        try:
            client = await self._http()
            response = await client.post(self.API_URL, json=body, headers=headers)
            response.raise_for_status()
            data = response.json()

            content = None
            for block in data.get("content", []):
                if block.get("type") == "text":
                    content = block.get("text")
                    break

            usage = data.get("usage", {})
            tokens = {
                "input": usage.get("input_tokens", 0),
                "output": usage.get("output_tokens", 0),
            }

            return CompletionResult(success=True, content=content, tokens_used=tokens)
        except httpx.HTTPStatusError as e:
            return self._http_error_result(e)
        except httpx.TransportError as e:
            return CompletionResult(success=False, error=f"transport error: {e}", transient=True)
