"""Swarm router: runs a fixed set of agents under one of five topologies.

Topology selection is a pure function of ``swarm_type`` (and, for ``Auto``,
of the task and agent set). The router keeps no state between ``run`` calls.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Optional, Protocol, Sequence

from ..models.result import AgentOutcome, ExecutionOutput
from ..models.swarm import SwarmSpec, SwarmType
from .errors import DispatchError
from .flow import format_flow, plan_swarm

logger = logging.getLogger(__name__)


class RunnableAgent(Protocol):
    name: str

    async def run(self, task: str) -> Any: ...


# Checked in this order; the first family with a match wins.
_AUTO_KEYWORDS: tuple[tuple[SwarmType, re.Pattern], ...] = (
    (
        SwarmType.MIXTURE_OF_AGENTS,
        re.compile(r"\b(synthesi[sz]e|aggregate|combine|consensus|merge|mixture)\b", re.IGNORECASE),
    ),
    (
        SwarmType.CONCURRENT,
        re.compile(r"\b(parallel|concurrent(ly)?|independent(ly)?|simultaneous(ly)?|each|compare)\b", re.IGNORECASE),
    ),
    (
        SwarmType.SEQUENTIAL,
        re.compile(r"\b(then|after|step|steps|pipeline|first|finally|sequence)\b", re.IGNORECASE),
    ),
)


def auto_select_swarm_type(
    task: str,
    agent_names: Sequence[str],
    flow: Optional[str] = None,
    aggregator_agent: Optional[str] = None,
) -> SwarmType:
    """Pick a concrete topology for ``Auto`` swarms.

    Deterministic placeholder rule, in order: an explicit flow means
    Rearrange; a single agent means Sequential; a designated aggregator means
    MixtureOfAgents; otherwise the first keyword family found in the task;
    otherwise Sequential.
    """
    if flow:
        return SwarmType.REARRANGE
    if len(agent_names) <= 1:
        return SwarmType.SEQUENTIAL
    if aggregator_agent:
        return SwarmType.MIXTURE_OF_AGENTS
    for swarm_type, pattern in _AUTO_KEYWORDS:
        if pattern.search(task or ""):
            return swarm_type
    return SwarmType.SEQUENTIAL


def _join_outputs(pairs: Sequence[tuple[str, str]], labelled: bool = False) -> str:
    if labelled:
        return "\n\n".join(f"[{name}]: {output}" for name, output in pairs)
    return "\n\n".join(output for _, output in pairs)


class SwarmRouter:
    def __init__(self, spec: SwarmSpec, agents: Sequence[RunnableAgent]):
        if not agents:
            raise DispatchError("SwarmRouter requires at least one agent")
        self.spec = spec
        self.agents = tuple(agents)
        self.agent_names = [a.name for a in self.agents]
        if len(set(self.agent_names)) != len(self.agent_names):
            raise DispatchError("Agent names in a swarm must be unique", {"agents": self.agent_names})
        self.swarm_type = SwarmType(spec.swarm_type)

        # Aggregator and flow are checked here so malformed plans never reach run()
        self.plan: Optional[list[list[str]]] = plan_swarm(spec, self.agent_names)
        self.aggregator: Optional[RunnableAgent] = (
            self._agent(spec.aggregator_agent) if spec.aggregator_agent else None
        )

        logger.info(
            "SwarmRouter '%s' created: %s over %d agent(s)",
            spec.name, self.swarm_type.value, len(self.agents),
        )

    def __repr__(self) -> str:
        return f"SwarmRouter(name={self.spec.name!r}, swarm_type={self.swarm_type.value!r}, agents={self.agent_names})"

    @property
    def flow(self) -> Optional[str]:
        return format_flow(self.plan) if self.plan else None

    def select_swarm_type(self, task: str) -> SwarmType:
        if self.swarm_type != SwarmType.AUTO:
            return self.swarm_type
        return auto_select_swarm_type(task, self.agent_names, self.spec.flow, self.spec.aggregator_agent)

    def _with_rules(self, task: str) -> str:
        if not self.spec.rules:
            return task
        return f"{task}\n\nRules:\n{self.spec.rules}"

    def _agent(self, name: str) -> RunnableAgent:
        return self.agents[self.agent_names.index(name)]

    async def run(self, task: Optional[str] = None) -> ExecutionOutput:
        """Execute the topology ``max_loops`` times, feeding each pass the previous result."""
        task = task if task is not None else self.spec.task
        if task is None:
            raise DispatchError(f"No task given to swarm '{self.spec.name}'")

        swarm_type = self.select_swarm_type(task)
        strategy = {
            SwarmType.SEQUENTIAL: self._run_sequential,
            SwarmType.CONCURRENT: self._run_concurrent,
            SwarmType.REARRANGE: self._run_rearrange,
            SwarmType.MIXTURE_OF_AGENTS: self._run_mixture,
        }[swarm_type]
        logger.info("Running swarm '%s' as %s", self.spec.name, swarm_type.value)

        outcomes: list[AgentOutcome] = []
        current = task
        output: Any = None
        for loop in range(1, self.spec.max_loops + 1):
            output, loop_outcomes = await strategy(current, loop)
            outcomes.extend(loop_outcomes)
            if isinstance(output, str):
                current = output
            else:
                joined = _join_outputs([(o.agent_name, o.output) for o in loop_outcomes if o.ok])
                current = joined or current

        return ExecutionOutput(
            name=self.spec.name,
            swarm_type=swarm_type,
            output=output,
            outcomes=outcomes,
            loops=self.spec.max_loops,
        )

    async def _run_sequential(self, task: str, loop: int) -> tuple[str, list[AgentOutcome]]:
        outcomes: list[AgentOutcome] = []
        current = task
        for agent in self.agents:
            try:
                current = str(await agent.run(self._with_rules(current)))
            except Exception as e:
                raise DispatchError(
                    f"Sequential chain aborted at agent '{agent.name}': {e}",
                    {"agent_name": agent.name, "loop": loop},
                ) from e
            outcomes.append(AgentOutcome(agent_name=agent.name, loop=loop, output=current))
        return current, outcomes

    async def _fan_out(self, agents: Sequence[RunnableAgent], task: str, loop: int) -> list[AgentOutcome]:
        """Run ``agents`` in parallel on ``task``; outcomes follow input order.

        A failing agent does not cancel its siblings. Cancelling the caller
        cancels every in-flight agent call.
        """
        prompt = self._with_rules(task)
        results = await asyncio.gather(*(agent.run(prompt) for agent in agents), return_exceptions=True)

        outcomes = []
        for agent, result in zip(agents, results):
            if isinstance(result, Exception):
                logger.warning("Agent %s failed in loop %d: %s", agent.name, loop, result)
                outcomes.append(AgentOutcome(agent_name=agent.name, loop=loop, error=str(result) or type(result).__name__))
            elif isinstance(result, BaseException):
                raise result
            else:
                outcomes.append(AgentOutcome(agent_name=agent.name, loop=loop, output=str(result)))
        return outcomes

    async def _run_concurrent(self, task: str, loop: int) -> tuple[list[Optional[str]], list[AgentOutcome]]:
        outcomes = await self._fan_out(self.agents, task, loop)
        return [o.output for o in outcomes], outcomes

    async def _run_mixture(self, task: str, loop: int) -> tuple[str, list[AgentOutcome]]:
        workers = [a for a in self.agents if a is not self.aggregator]
        outcomes = await self._fan_out(workers, task, loop)
        succeeded = [(o.agent_name, o.output) for o in outcomes if o.ok]
        if not succeeded:
            raise DispatchError(
                "MixtureOfAgents: every agent failed",
                {"errors": {o.agent_name: o.error for o in outcomes}},
            )

        if self.aggregator is None:
            return _join_outputs(succeeded), outcomes

        prompt = (
            f"Original task:\n{task}\n\n"
            f"Responses from {len(succeeded)} agents:\n\n{_join_outputs(succeeded, labelled=True)}\n\n"
            "Synthesize these responses into a single, improved answer."
        )
        try:
            aggregated = str(await self.aggregator.run(self._with_rules(prompt)))
        except Exception as e:
            raise DispatchError(f"Aggregator '{self.aggregator.name}' failed: {e}") from e
        outcomes.append(AgentOutcome(agent_name=self.aggregator.name, loop=loop, output=aggregated))
        return aggregated, outcomes

    async def _run_rearrange(self, task: str, loop: int) -> tuple[str, list[AgentOutcome]]:
        plan = self.plan or [[name] for name in self.agent_names]
        outcomes: list[AgentOutcome] = []
        current = task
        for position, step in enumerate(plan, start=1):
            step_outcomes = await self._fan_out([self._agent(n) for n in step], current, loop)
            outcomes.extend(step_outcomes)
            failed = [o for o in step_outcomes if not o.ok]
            if failed:
                raise DispatchError(
                    f"Flow step {position} failed at agent '{failed[0].agent_name}': {failed[0].error}",
                    {"step": position, "loop": loop},
                )
            pairs = [(o.agent_name, o.output) for o in step_outcomes]
            current = pairs[0][1] if len(pairs) == 1 else _join_outputs(pairs, labelled=True)
        return current, outcomes


async def dispatch(spec: SwarmSpec, agents: Sequence[RunnableAgent], task: Optional[str] = None) -> ExecutionOutput:
    """Build a router for ``spec`` and run it once."""
    return await SwarmRouter(spec, agents).run(task)
