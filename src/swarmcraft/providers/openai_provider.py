"""OpenAI chat completions provider."""

from __future__ import annotations

import os
from typing import Optional

import httpx

from ..core.errors import BackendError
from ..models.provider import CompletionResult
from .base import BaseProvider


class OpenAIProvider(BaseProvider):
    name = "openai"
    API_URL = "https://api.openai.com/v1/chat/completions"

    def _get_api_key(self) -> Optional[str]:
        env_var = self.config.get("api_key_env", "OPENAI_API_KEY")
        return self.config.get("api_key") or os.environ.get(env_var)

    @property
    def model(self) -> str:
        return self.config.get("model", "gpt-4o")

    async def check(self) -> None:
        if not self._get_api_key():
            env_var = self.config.get("api_key_env", "OPENAI_API_KEY")
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
            env_var = self.config.get("api_key_env", "OPENAI_API_KEY")
            return CompletionResult(
                success=False,
                error=f"API key not found in environment variable: {env_var}",
            )

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_prompt})

        body = {
            "model": self.model,
            "max_tokens": max_tokens or self.config.get("max_tokens", 8000),
            "temperature": temperature if temperature is not None else self.common.get("temperature", 0.5),
            "messages": messages,
        }

        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        url = self.config.get("endpoint") or self.API_URL

        try:
            client = await self._http()
            response = await client.post(url, json=body, headers=headers)
            response.raise_for_status()
            data = response.json()

            content = data["choices"][0]["message"]["content"]
            usage = data.get("usage", {})
            tokens = {
                "input": usage.get("prompt_tokens", 0),
                "output": usage.get("completion_tokens", 0),
            }

            return CompletionResult(success=True, content=content, tokens_used=tokens)
        except httpx.HTTPStatusError as e:
            return self._http_error_result(e)
        except httpx.TransportError as e:
            return CompletionResult(success=False, error=f"transport error: {e}", transient=True)
        except (KeyError, IndexError) as e:
            return CompletionResult(success=False, error=f"malformed response: missing {e}")
