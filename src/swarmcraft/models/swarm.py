"""Swarm architecture models."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SwarmType(str, Enum):
    SEQUENTIAL = "Sequential"
    CONCURRENT = "Concurrent"
    REARRANGE = "Rearrange"
    MIXTURE_OF_AGENTS = "MixtureOfAgents"
    AUTO = "Auto"


class SwarmSpec(BaseModel):
    """The optional ``swarm_architecture:`` block of a document."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = ""
    description: str = ""
    max_loops: int = Field(default=1, ge=1, strict=True)
    swarm_type: SwarmType
    task: Optional[str] = None
    flow: Optional[str] = None
    autosave: bool = True
    return_json: bool = False
    rules: str = ""
    aggregator_agent: Optional[str] = None
