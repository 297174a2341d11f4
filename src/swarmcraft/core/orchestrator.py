"""Pipeline coordinator: YAML document -> agents -> optional swarm -> result."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Optional, Union

from ..models.agent import AgentSpec
from ..models.result import TaskResult
from ..providers.base import ModelBackend, backend_factory_from_config
from .agent import Agent
from .config import get_effective_config
from .errors import AgentConstructionError, SwarmNotDeclaredError, UnsupportedReturnTypeError
from .factory import create_agent_with_retry
from .loader import load_yaml_safely
from .retry import RetryPolicy
from .router import SwarmRouter
from .validator import validate_agent, validate_document

logger = logging.getLogger(__name__)

RETURN_TYPES = ("auto", "swarm", "agents", "both", "tasks", "run_swarm")

BackendFactory = Callable[[str], ModelBackend]


async def _close_all(agents: list[Agent]) -> None:
    for agent in agents:
        try:
            await agent.aclose()
        except Exception as e:
            logger.warning("Closing agent %s failed: %s", agent.name, e)


async def build_agents(
    specs: list[AgentSpec],
    backend_factory: BackendFactory,
    config: dict,
    workspace_dir: Union[str, Path],
) -> list[Agent]:
    """Construct every agent in declaration order; all or nothing.

    An agent's own ``retry_attempts`` wins over ``construction.retry_attempts``.
    """
    agents: list[Agent] = []
    try:
        for spec in specs:
            logger.info("Creating agent: %s", spec.agent_name)
            try:
                backend = backend_factory(spec.model_name)
            except Exception as e:
                logger.error("No backend for agent %s (%s): %s", spec.agent_name, spec.model_name, e)
                raise AgentConstructionError(
                    f"Failed to create agent '{spec.agent_name}': no backend for model '{spec.model_name}': {e}",
                    agent_name=spec.agent_name,
                    attempts=0,
                ) from e
            attempts = spec.retry_attempts if "retry_attempts" in spec.model_fields_set else None
            policy = RetryPolicy.from_config(config, max_attempts=attempts)
            agents.append(
                await create_agent_with_retry(spec, backend, policy=policy, workspace_dir=workspace_dir)
            )
    except BaseException:
        # No partial agent lists: release what was already built
        await _close_all(agents)
        raise
    return agents


async def run_agent_tasks(agents: list[Agent]) -> list[TaskResult]:
    """Run each agent's own declared task, in declaration order."""
    results: list[TaskResult] = []
    for agent in agents:
        if not agent.spec.task:
            continue
        try:
            output = await agent.run(agent.spec.task)
        except Exception as e:
            logger.error("Task for agent %s failed: %s", agent.name, e)
            results.append(TaskResult(agent_name=agent.name, task=agent.spec.task, error=str(e)))
        else:
            results.append(TaskResult(agent_name=agent.name, task=agent.spec.task, output=output))
    return results


async def create_agents_from_yaml(
    yaml_file: Optional[Union[str, Path]] = None,
    yaml_string: Optional[str] = None,
    return_type: str = "auto",
    model: Optional[str] = None,
    backend_factory: Optional[BackendFactory] = None,
    workspace_dir: Optional[Union[str, Path]] = None,
    config: Optional[dict] = None,
) -> Any:
    """Create agents and/or a SwarmRouter from a YAML document.

    ``return_type`` selects the result:

    - ``agents``: the single agent when one is declared, else the list
    - ``swarm``: the SwarmRouter
    - ``run_swarm``: the ExecutionOutput of running the swarm on its task
    - ``both``: ``(router_or_None, agents)``
    - ``tasks``: a list of TaskResult, one per agent that declares a task
    - ``auto``: the router if declared, else as ``agents``

    Nothing is constructed until the document has fully validated.
    """
    if return_type not in RETURN_TYPES:
        raise UnsupportedReturnTypeError(
            f"Invalid return_type '{return_type}'. Must be one of: {', '.join(RETURN_TYPES)}",
            {"return_type": return_type},
        )

    if config is None:
        config = get_effective_config(Path(workspace_dir) if workspace_dir else None)
    workspace = Path(workspace_dir or config.get("workspace_dir", "agent_workspace"))
    default_model = model or config.get("agents", {}).get("default_model", "gpt-4o")

    try:
        tree = load_yaml_safely(yaml_file=yaml_file, yaml_string=yaml_string)
        specs, swarm_spec = validate_document(tree, default_model_name=default_model)
        if return_type in ("swarm", "run_swarm") and swarm_spec is None:
            raise SwarmNotDeclaredError(
                f"return_type '{return_type}' requires a 'swarm_architecture' block in the document"
            )

        agents = await build_agents(
            specs, backend_factory or backend_factory_from_config(config), config, workspace
        )
    except Exception as e:
        logger.error("Critical error in create_agents_from_yaml: %s", e)
        raise

    router = None
    if swarm_spec is not None:
        try:
            router = SwarmRouter(swarm_spec, agents)
        except BaseException:
            await _close_all(agents)
            raise

    if return_type == "run_swarm":
        try:
            return await router.run(swarm_spec.task)
        finally:
            await _close_all(agents)
    if return_type == "tasks":
        try:
            return await run_agent_tasks(agents)
        finally:
            await _close_all(agents)
    if return_type == "swarm":
        return router
    if return_type == "agents":
        return agents[0] if len(agents) == 1 else agents
    if return_type == "both":
        return router, agents
    return router or (agents[0] if len(agents) == 1 else agents)


async def run_agent_by_name(
    name: str,
    system_prompt: str,
    model_name: str,
    task: str,
    max_loops: int = 1,
    backend_factory: Optional[BackendFactory] = None,
    workspace_dir: Optional[Union[str, Path]] = None,
    config: Optional[dict] = None,
) -> str:
    """Build a one-off agent from arguments and run a single task on it."""
    if config is None:
        config = get_effective_config(Path(workspace_dir) if workspace_dir else None)
    workspace = Path(workspace_dir or config.get("workspace_dir", "agent_workspace"))
    spec = validate_agent(
        {
            "agent_name": name,
            "system_prompt": system_prompt,
            "model_name": model_name,
            "max_loops": max_loops,
        },
        prefix="agent",
    )
    agents = await build_agents([spec], backend_factory or backend_factory_from_config(config), config, workspace)
    try:
        return await agents[0].run(task)
    finally:
        await _close_all(agents)
