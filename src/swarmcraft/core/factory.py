"""Resilient agent construction."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from ..models.agent import AgentSpec
from ..providers.base import ModelBackend
from .agent import Agent
from .errors import AgentConstructionError, ValidationError
from .retry import RetryExhausted, RetryPolicy

logger = logging.getLogger(__name__)


async def _release(backend: ModelBackend, agent_name: str) -> None:
    try:
        await backend.aclose()
    except Exception as e:
        logger.warning("Releasing backend for agent %s failed: %s", agent_name, e)


async def create_agent_with_retry(
    spec: AgentSpec,
    backend: ModelBackend,
    policy: Optional[RetryPolicy] = None,
    workspace_dir: Union[str, Path] = "agent_workspace",
) -> Agent:
    """Build and start one agent, retrying transient backend failures.

    The attempt budget is ``spec.retry_attempts`` unless an explicit policy is
    given. A failed attempt releases the backend before the next one.
    """
    if policy is None:
        policy = RetryPolicy(max_attempts=spec.retry_attempts)

    async def attempt(number: int) -> Agent:
        agent = Agent(spec, backend, workspace_dir=workspace_dir, retry_policy=policy)
        try:
            await agent.start()
        except BaseException:
            await _release(backend, spec.agent_name)
            raise
        return agent

    try:
        agent = await policy.call(attempt)
    except RetryExhausted as e:
        raise AgentConstructionError(
            f"Failed to create agent '{spec.agent_name}' after {e.attempts} attempt(s): {e.last_error}",
            agent_name=spec.agent_name,
            attempts=e.attempts,
        ) from e.last_error
    except ValidationError:
        raise
    except Exception as e:
        logger.error("Error creating agent %s: %s", spec.agent_name, e)
        raise AgentConstructionError(
            f"Failed to create agent '{spec.agent_name}': {e}",
            agent_name=spec.agent_name,
            attempts=1,
        ) from e

    logger.info("Agent %s created successfully.", spec.agent_name)
    return agent
