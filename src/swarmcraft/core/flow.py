"""Parsing of Rearrange flow strings.

A flow is a chain of steps separated by ``->``. Each step is one agent name
or several comma-separated names that run in parallel on the same input::

    "Researcher -> Writer, Critic -> Editor"
"""

from __future__ import annotations

from typing import Iterable, Optional

from ..models.swarm import SwarmSpec, SwarmType
from .errors import DispatchError

STEP_SEPARATOR = "->"
PARALLEL_SEPARATOR = ","


def parse_flow(flow: str, agent_names: Iterable[str]) -> list[list[str]]:
    """Parse ``flow`` into an ordered list of steps, each a list of agent names."""
    known = list(agent_names)
    if not flow or not flow.strip():
        raise DispatchError("Flow is empty", {"flow": flow})

    steps: list[list[str]] = []
    for position, raw_step in enumerate(flow.split(STEP_SEPARATOR), start=1):
        if not raw_step.strip():
            raise DispatchError(f"Flow step {position} is empty", {"flow": flow})
        names = [n.strip() for n in raw_step.split(PARALLEL_SEPARATOR)]
        if any(not n for n in names):
            raise DispatchError(f"Flow step {position} has an empty agent name", {"flow": flow})
        unknown = [n for n in names if n not in known]
        if unknown:
            raise DispatchError(
                f"Flow references unknown agent(s): {', '.join(unknown)}. "
                f"Available: {', '.join(known)}",
                {"flow": flow, "unknown": unknown},
            )
        if len(set(names)) != len(names):
            raise DispatchError(f"Flow step {position} lists an agent twice", {"flow": flow})
        steps.append(names)
    return steps


def format_flow(steps: list[list[str]]) -> str:
    return f" {STEP_SEPARATOR} ".join(", ".join(step) for step in steps)


def plan_swarm(spec: SwarmSpec, agent_names: Iterable[str]) -> Optional[list[list[str]]]:
    """Check ``spec`` against the agents it will run over and return its flow plan.

    Raises DispatchError for an unknown aggregator or a malformed flow. The plan
    is ``None`` unless a flow is given or the swarm is a Rearrange.
    """
    names = list(agent_names)
    if spec.aggregator_agent:
        if spec.aggregator_agent not in names:
            raise DispatchError(
                f"Aggregator agent '{spec.aggregator_agent}' is not one of: {', '.join(names)}",
                {"aggregator_agent": spec.aggregator_agent},
            )
        if len(names) < 2 and spec.swarm_type == SwarmType.MIXTURE_OF_AGENTS:
            raise DispatchError("MixtureOfAgents with an aggregator needs at least one other agent")

    if spec.flow:
        return parse_flow(spec.flow, names)
    if spec.swarm_type == SwarmType.REARRANGE:
        return [[name] for name in names]
    return None
