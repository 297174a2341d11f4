"""Shared fixtures for Swarmcraft tests."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Callable, Optional

import pytest

from swarmcraft.core.errors import TransientBackendError


class FakeBackend:
    """In-memory model backend.

    ``fail_opens`` transient failures are raised by ``open()`` before it
    succeeds. ``reply`` maps a prompt to the text returned by ``run()``.
    """

    name = "fake"

    def __init__(
        self,
        model_name: str = "fake-model",
        fail_opens: int = 0,
        open_error: Optional[BaseException] = None,
        reply: Optional[Callable[[str], str]] = None,
        delay: float = 0,
    ):
        self.model_name = model_name
        self.fail_opens = fail_opens
        self.open_error = open_error
        self.reply = reply
        self.delay = delay
        self.open_attempts = 0
        self.open_handles = 0
        self.closed = 0
        self.prompts: list[str] = []

    async def open(self) -> None:
        self.open_attempts += 1
        if self.open_attempts <= self.fail_opens:
            raise TransientBackendError("connection refused", provider=self.name)
        if self.open_error is not None:
            raise self.open_error
        self.open_handles += 1

    async def aclose(self) -> None:
        self.closed += 1
        self.open_handles = max(0, self.open_handles - 1)

    async def run(self, prompt: str, options: Optional[dict] = None) -> str:
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.reply is not None:
            return self.reply(prompt)
        return f"{self.model_name} says: {prompt.splitlines()[-1]}"


class SpyBackendFactory:
    """Backend factory that records every model name it was asked for."""

    def __init__(self, **backend_kwargs):
        self.backend_kwargs = backend_kwargs
        self.calls: list[str] = []
        self.backends: list[FakeBackend] = []

    def __call__(self, model_name: str) -> FakeBackend:
        self.calls.append(model_name)
        backend = FakeBackend(model_name=model_name, **self.backend_kwargs)
        self.backends.append(backend)
        return backend


class StubAgent:
    """Minimal router participant with a scripted behaviour."""

    def __init__(self, name: str, delay: float = 0, fail: bool = False, transform: Optional[Callable[[str], str]] = None):
        self.name = name
        self.delay = delay
        self.fail = fail
        self.transform = transform
        self.received: list[str] = []

    async def run(self, task: str) -> str:
        self.received.append(task)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError(f"{self.name} exploded")
        if self.transform is not None:
            return self.transform(task)
        return f"{self.name}({task})"


@pytest.fixture
def fake_backend_cls() -> type:
    return FakeBackend


@pytest.fixture
def spy_factory() -> SpyBackendFactory:
    return SpyBackendFactory()


@pytest.fixture
def spy_factory_cls() -> type:
    return SpyBackendFactory


@pytest.fixture
def stub_agent_cls() -> type:
    return StubAgent


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    ws = tmp_path / "workspace"
    ws.mkdir()
    return ws


@pytest.fixture
def fast_config() -> dict:
    """Effective-config shaped dict with zero backoff so retries do not sleep."""
    return {
        "agents": {"default_model": "fake-model"},
        "construction": {
            "retry_attempts": 3,
            "min_delay_seconds": 0,
            "max_delay_seconds": 0,
        },
        "ai": {"provider": "mock"},
    }


@pytest.fixture
def single_agent_yaml() -> str:
    return """
agents:
  - agent_name: "A"
    system_prompt: "do X"
"""


@pytest.fixture
def concurrent_swarm_yaml() -> str:
    return """
agents:
  - agent_name: "A"
    system_prompt: "You are agent A."
  - agent_name: "B"
    system_prompt: "You are agent B."

swarm_architecture:
  name: "pair"
  swarm_type: "Concurrent"
  task: "T"
"""
