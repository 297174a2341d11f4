"""Execution result models."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel

from .swarm import SwarmType


class AgentOutcome(BaseModel):
    agent_name: str
    loop: int = 1
    output: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ExecutionOutput(BaseModel):
    """Unified result of one router dispatch.

    ``output`` is a string for Sequential, Rearrange and MixtureOfAgents, and
    a list of per-agent outputs (``None`` for failed agents) for Concurrent.
    """

    name: str = ""
    swarm_type: SwarmType
    output: Any = None
    outcomes: list[AgentOutcome] = []
    loops: int = 1

    def to_json(self) -> str:
        return self.model_dump_json(indent=2)


class TaskResult(BaseModel):
    agent_name: str
    task: str
    output: Optional[str] = None
    error: Optional[str] = None
