"""Agent configuration models."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class OutputType(str, Enum):
    STR = "str"


class AgentSpec(BaseModel):
    """One agent's declarative configuration, as found under ``agents:``."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    agent_name: str = Field(min_length=1)
    system_prompt: str = Field(strict=True)
    model_name: str = "gpt-4o"
    max_loops: int = Field(default=1, ge=1, strict=True)
    autosave: bool = True
    dashboard: bool = False
    verbose: bool = False
    dynamic_temperature_enabled: bool = False
    auto_generate_prompt: bool = False
    artifacts_on: bool = False
    saved_state_path: Optional[str] = None
    user_name: str = "default_user"
    context_length: int = Field(default=100000, ge=1, strict=True)
    retry_attempts: int = Field(default=3, ge=0, strict=True)
    return_step_meta: bool = False
    output_type: OutputType = OutputType.STR
    artifacts_file_extension: str = ".md"
    artifacts_output_path: str = ""
    task: Optional[str] = None

    @field_validator("agent_name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must be a non-empty string")
        return value

    @field_validator("system_prompt")
    @classmethod
    def _prompt_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("System prompt must be a non-empty string")
        return value
