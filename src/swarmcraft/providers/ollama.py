"""Ollama local inference provider."""

from __future__ import annotations

from typing import Optional

import httpx

from ..core.errors import BackendError, TransientBackendError
from ..models.provider import CompletionResult
from .base import BaseProvider


class OllamaProvider(BaseProvider):
    name = "ollama"

    @property
    def endpoint(self) -> str:
        return self.config.get("endpoint", "http://localhost:11434").rstrip("/")

    @property
    def model(self) -> str:
        return self.config.get("model", "llama3.1")

    async def check(self) -> None:
        """Probe the server so an unreachable daemon fails at construction time."""
        try:
            response = await self._client.get(f"{self.endpoint}/api/tags")
        except httpx.TransportError as e:
            raise TransientBackendError(
                f"Ollama not reachable at {self.endpoint}: {e}", provider=self.name
            ) from e
        if response.status_code >= 500:
            raise TransientBackendError(
                f"Ollama returned {response.status_code}", provider=self.name,
                status_code=response.status_code,
            )
        if response.status_code >= 400:
            raise BackendError(
                f"Ollama returned {response.status_code}", provider=self.name,
                status_code=response.status_code,
            )

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: Optional[float] = None,
        max_tokens: int = 0,
    ) -> CompletionResult:
        body = {
            "model": self.model,
            "system": system_prompt,
            "prompt": user_prompt,
            "stream": False,
            "options": {
                "temperature": temperature if temperature is not None else self.common.get("temperature", 0.5),
                "num_predict": max_tokens or self.config.get("max_tokens", 8000),
            },
        }

        try:
            client = await self._http()
            response = await client.post(f"{self.endpoint}/api/generate", json=body)
            response.raise_for_status()
            data = response.json()

            return CompletionResult(
                success=True,
                content=data.get("response", ""),
                tokens_used=None,
            )
        except httpx.HTTPStatusError as e:
            return self._http_error_result(e)
        except httpx.TransportError as e:
            return CompletionResult(success=False, error=f"transport error: {e}", transient=True)
