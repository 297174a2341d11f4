"""Offline mock provider for dry runs and tests.

Model names select the behaviour:
- ``echo``: return the user prompt unchanged
- anything else: return a canned acknowledgement naming the model
"""

from __future__ import annotations

from typing import Optional

from ..models.provider import CompletionResult
from .base import BaseProvider


class MockProvider(BaseProvider):
    name = "mock"

    def __init__(self, provider_config: dict, common_config: dict):
        super().__init__(provider_config, common_config)
        self._opened = False
        self.calls: list[dict] = []

    @property
    def model(self) -> str:
        return self.config.get("model", "echo")

    @property
    def is_open(self) -> bool:
        return self._opened

    async def open(self) -> None:
        self._opened = True

    async def aclose(self) -> None:
        self._opened = False

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: Optional[float] = None,
        max_tokens: int = 0,
    ) -> CompletionResult:
        self.calls.append({"system": system_prompt, "user": user_prompt, "temperature": temperature})
        if self.model == "echo":
            content = user_prompt
        else:
            content = self.config.get("response") or f"[{self.model}] processed: {user_prompt[:200]}"
        return CompletionResult(success=True, content=content, tokens_used={"input": 0, "output": 0})
