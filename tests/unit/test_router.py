"""Tests for core/router.py."""

from __future__ import annotations

import asyncio
import json

import pytest

from swarmcraft.core.errors import DispatchError
from swarmcraft.core.router import SwarmRouter, auto_select_swarm_type, dispatch
from swarmcraft.models.swarm import SwarmSpec, SwarmType


def _spec(swarm_type: str, **kwargs) -> SwarmSpec:
    return SwarmSpec(name="test-swarm", swarm_type=swarm_type, **kwargs)


class CancellableAgent:
    def __init__(self, name: str):
        self.name = name
        self.cancelled = False

    async def run(self, task: str) -> str:
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return task


class TestConstruction:
    def test_requires_agents(self):
        with pytest.raises(DispatchError, match="at least one agent"):
            SwarmRouter(_spec("Sequential"), [])

    def test_duplicate_agent_names(self, stub_agent_cls):
        with pytest.raises(DispatchError, match="unique"):
            SwarmRouter(_spec("Sequential"), [stub_agent_cls("A"), stub_agent_cls("A")])

    def test_malformed_flow_fails_at_construction(self, stub_agent_cls):
        with pytest.raises(DispatchError):
            SwarmRouter(_spec("Rearrange", flow="A -> -> B"), [stub_agent_cls("A"), stub_agent_cls("B")])

    def test_unknown_flow_agent_fails_at_construction(self, stub_agent_cls):
        with pytest.raises(DispatchError, match="unknown"):
            SwarmRouter(_spec("Rearrange", flow="A -> Q"), [stub_agent_cls("A")])

    def test_unknown_aggregator(self, stub_agent_cls):
        with pytest.raises(DispatchError, match="Aggregator"):
            SwarmRouter(_spec("MixtureOfAgents", aggregator_agent="Z"), [stub_agent_cls("A")])

    def test_rearrange_without_flow_defaults_to_declared_order(self, stub_agent_cls):
        router = SwarmRouter(_spec("Rearrange"), [stub_agent_cls("A"), stub_agent_cls("B")])
        assert router.flow == "A -> B"

    @pytest.mark.asyncio
    async def test_missing_task(self, stub_agent_cls):
        router = SwarmRouter(_spec("Sequential"), [stub_agent_cls("A")])
        with pytest.raises(DispatchError, match="No task"):
            await router.run()


class TestSequential:
    @pytest.mark.asyncio
    async def test_output_chains(self, stub_agent_cls):
        agents = [stub_agent_cls("A"), stub_agent_cls("B"), stub_agent_cls("C")]
        result = await SwarmRouter(_spec("Sequential"), agents).run("T")
        assert result.output == "C(B(A(T)))"
        assert [o.agent_name for o in result.outcomes] == ["A", "B", "C"]
        assert agents[1].received == ["A(T)"]

    @pytest.mark.asyncio
    async def test_first_failure_aborts(self, stub_agent_cls):
        agents = [stub_agent_cls("A"), stub_agent_cls("B", fail=True), stub_agent_cls("C")]
        with pytest.raises(DispatchError, match="'B'") as exc:
            await SwarmRouter(_spec("Sequential"), agents).run("T")
        assert agents[2].received == []
        assert isinstance(exc.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_uses_spec_task_by_default(self, stub_agent_cls):
        result = await SwarmRouter(_spec("Sequential", task="default"), [stub_agent_cls("A")]).run()
        assert result.output == "A(default)"

    @pytest.mark.asyncio
    async def test_rules_passed_through(self, stub_agent_cls):
        agent = stub_agent_cls("A")
        await SwarmRouter(_spec("Sequential", rules="Be brief."), [agent]).run("T")
        assert agent.received[0].endswith("Rules:\nBe brief.")

    @pytest.mark.asyncio
    async def test_max_loops_reruns_topology(self, stub_agent_cls):
        agents = [stub_agent_cls("A"), stub_agent_cls("B")]
        result = await SwarmRouter(_spec("Sequential", max_loops=2), agents).run("T")
        assert result.output == "B(A(B(A(T))))"
        assert result.loops == 2
        assert [o.loop for o in result.outcomes] == [1, 1, 2, 2]


class TestConcurrent:
    @pytest.mark.asyncio
    async def test_order_follows_input_not_completion(self, stub_agent_cls):
        finished = []

        def tracker(name):
            def transform(task):
                finished.append(name)
                return f"result{name}"
            return transform

        agents = [
            stub_agent_cls("A", delay=0.06, transform=tracker("A")),
            stub_agent_cls("B", delay=0.03, transform=tracker("B")),
            stub_agent_cls("C", delay=0.0, transform=tracker("C")),
        ]
        result = await SwarmRouter(_spec("Concurrent"), agents).run("T")
        assert finished == ["C", "B", "A"]
        assert result.output == ["resultA", "resultB", "resultC"]
        assert [o.agent_name for o in result.outcomes] == ["A", "B", "C"]

    @pytest.mark.asyncio
    async def test_all_receive_same_task(self, stub_agent_cls):
        agents = [stub_agent_cls("A"), stub_agent_cls("B")]
        await SwarmRouter(_spec("Concurrent"), agents).run("T")
        assert agents[0].received == agents[1].received == ["T"]

    @pytest.mark.asyncio
    async def test_failure_does_not_cancel_siblings(self, stub_agent_cls):
        agents = [stub_agent_cls("A", delay=0.02), stub_agent_cls("B", fail=True), stub_agent_cls("C", delay=0.04)]
        result = await SwarmRouter(_spec("Concurrent"), agents).run("T")
        assert result.output == ["A(T)", None, "C(T)"]
        assert result.outcomes[1].error == "B exploded"
        assert not result.outcomes[1].ok

    @pytest.mark.asyncio
    async def test_runs_in_parallel(self, stub_agent_cls):
        agents = [stub_agent_cls(name, delay=0.1) for name in "ABCDE"]
        loop = asyncio.get_running_loop()
        start = loop.time()
        await SwarmRouter(_spec("Concurrent"), agents).run("T")
        assert loop.time() - start < 0.4

    @pytest.mark.asyncio
    async def test_cancellation_propagates_to_agents(self):
        agents = [CancellableAgent("A"), CancellableAgent("B")]
        router = SwarmRouter(_spec("Concurrent"), agents)
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(router.run("T"), timeout=0.05)
        assert all(a.cancelled for a in agents)

    @pytest.mark.asyncio
    async def test_json_output(self, stub_agent_cls):
        result = await SwarmRouter(_spec("Concurrent", return_json=True), [stub_agent_cls("A")]).run("T")
        data = json.loads(result.to_json())
        assert data["swarm_type"] == "Concurrent"
        assert data["outcomes"][0]["output"] == "A(T)"


class TestMixtureOfAgents:
    @pytest.mark.asyncio
    async def test_concatenation_without_aggregator(self, stub_agent_cls):
        agents = [
            stub_agent_cls("A", delay=0.03),
            stub_agent_cls("B", delay=0.01),
            stub_agent_cls("C"),
        ]
        result = await SwarmRouter(_spec("MixtureOfAgents"), agents).run("T")
        assert result.output == "A(T)\n\nB(T)\n\nC(T)"
        assert [o.agent_name for o in result.outcomes] == ["A", "B", "C"]

    @pytest.mark.asyncio
    async def test_aggregator_synthesizes(self, stub_agent_cls):
        aggregator = stub_agent_cls("Judge", transform=lambda prompt: "final answer")
        agents = [stub_agent_cls("A"), stub_agent_cls("B"), aggregator]
        result = await SwarmRouter(_spec("MixtureOfAgents", aggregator_agent="Judge"), agents).run("T")
        assert result.output == "final answer"
        prompt = aggregator.received[0]
        assert "[A]: A(T)" in prompt
        assert "[B]: B(T)" in prompt
        assert prompt.index("[A]") < prompt.index("[B]")
        # The aggregator does not take part in the fan-out
        assert len(aggregator.received) == 1
        assert [o.agent_name for o in result.outcomes] == ["A", "B", "Judge"]

    @pytest.mark.asyncio
    async def test_partial_failure_keeps_order(self, stub_agent_cls):
        agents = [stub_agent_cls("A", fail=True), stub_agent_cls("B")]
        result = await SwarmRouter(_spec("MixtureOfAgents"), agents).run("T")
        assert result.output == "B(T)"
        assert [o.ok for o in result.outcomes] == [False, True]

    @pytest.mark.asyncio
    async def test_all_failed(self, stub_agent_cls):
        agents = [stub_agent_cls("A", fail=True), stub_agent_cls("B", fail=True)]
        with pytest.raises(DispatchError, match="every agent failed"):
            await SwarmRouter(_spec("MixtureOfAgents"), agents).run("T")


class TestRearrange:
    @pytest.mark.asyncio
    async def test_fan_out_and_join(self, stub_agent_cls):
        agents = [stub_agent_cls(n) for n in "ABCD"]
        router = SwarmRouter(_spec("Rearrange", flow="A -> B, C -> D"), agents)
        result = await router.run("T")
        assert agents[1].received == ["A(T)"]
        assert agents[2].received == ["A(T)"]
        assert agents[3].received == ["[B]: B(A(T))\n\n[C]: C(A(T))"]
        assert result.output.startswith("D(")
        assert [o.agent_name for o in result.outcomes] == ["A", "B", "C", "D"]

    @pytest.mark.asyncio
    async def test_step_failure_aborts(self, stub_agent_cls):
        agents = [stub_agent_cls("A"), stub_agent_cls("B", fail=True), stub_agent_cls("C")]
        with pytest.raises(DispatchError, match="step 2"):
            await SwarmRouter(_spec("Rearrange", flow="A -> B -> C"), agents).run("T")
        assert agents[2].received == []


class TestAuto:
    def test_flow_means_rearrange(self):
        assert auto_select_swarm_type("anything", ["A", "B"], flow="A -> B") == SwarmType.REARRANGE

    def test_single_agent_is_sequential(self):
        assert auto_select_swarm_type("compare in parallel", ["A"]) == SwarmType.SEQUENTIAL

    def test_aggregator_means_mixture(self):
        assert auto_select_swarm_type("write", ["A", "B"], aggregator_agent="B") == SwarmType.MIXTURE_OF_AGENTS

    @pytest.mark.parametrize(
        "task,expected",
        [
            ("Synthesize a market view", SwarmType.MIXTURE_OF_AGENTS),
            ("Analyze each region independently", SwarmType.CONCURRENT),
            ("First research, then write", SwarmType.SEQUENTIAL),
            ("Write a poem", SwarmType.SEQUENTIAL),
        ],
    )
    def test_keywords(self, task, expected):
        assert auto_select_swarm_type(task, ["A", "B"]) == expected

    def test_deterministic(self):
        picks = {auto_select_swarm_type("compare the options", ["A", "B"]) for _ in range(20)}
        assert picks == {SwarmType.CONCURRENT}

    @pytest.mark.asyncio
    async def test_auto_dispatches_resolved_strategy(self, stub_agent_cls):
        agents = [stub_agent_cls("A"), stub_agent_cls("B")]
        result = await SwarmRouter(_spec("Auto"), agents).run("Review each file in parallel")
        assert result.swarm_type == SwarmType.CONCURRENT
        assert result.output == ["A(Review each file in parallel)", "B(Review each file in parallel)"]


@pytest.mark.asyncio
async def test_dispatch_helper(stub_agent_cls):
    result = await dispatch(_spec("Sequential"), [stub_agent_cls("A")], "T")
    assert result.output == "A(T)"
    assert result.name == "test-swarm"
