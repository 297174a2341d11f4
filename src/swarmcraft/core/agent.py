"""Agent runtime: a validated spec bound to one model backend."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, Union

from rich.console import Console
from rich.panel import Panel

from ..models.agent import AgentSpec
from ..providers.base import ModelBackend
from .artifacts import Artifact
from .retry import RetryExhausted, RetryPolicy

logger = logging.getLogger(__name__)
console = Console()

CHARS_PER_TOKEN = 4

PROMPT_GENERATOR = (
    "You write system prompts for autonomous LLM agents. Expand the draft below into "
    "a complete, precise system prompt covering role, goals, constraints and output "
    "format. Reply with the prompt only.\n\nDRAFT:\n"
)


class Agent:
    """A single model-backed agent.

    The agent owns its conversation history; nothing is shared between agents.
    """

    def __init__(
        self,
        spec: AgentSpec,
        backend: ModelBackend,
        workspace_dir: Union[str, Path] = "agent_workspace",
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.spec = spec
        self.backend = backend
        self.retry_policy = retry_policy or RetryPolicy()
        self.workspace_dir = Path(workspace_dir)
        self.system_prompt = spec.system_prompt
        self.history: list[dict] = []
        self.artifact: Optional[Artifact] = None
        self._prompt_generated = False

    @property
    def name(self) -> str:
        return self.spec.agent_name

    def __repr__(self) -> str:
        return f"Agent(name={self.name!r}, model={self.spec.model_name!r})"

    async def start(self) -> None:
        """Acquire the backend handle. Raises whatever the backend raises."""
        await self.backend.open()
        if self.spec.dashboard:
            console.print(
                Panel(
                    f"Model: {self.spec.model_name}\n"
                    f"Max loops: {self.spec.max_loops}\n"
                    f"User: {self.spec.user_name}\n"
                    f"Context length: {self.spec.context_length}",
                    title=f"Agent {self.name}",
                )
            )

    async def aclose(self) -> None:
        await self.backend.aclose()

    def _temperature(self, loop: int) -> Optional[float]:
        if not self.spec.dynamic_temperature_enabled:
            return None
        # Deterministic schedule: start cool, warm up on refinement loops
        return round(min(1.0, 0.3 + 0.2 * (loop - 1)), 2)

    def _trim_history(self) -> None:
        budget = self.spec.context_length * CHARS_PER_TOKEN
        while len(self.history) > 1 and sum(len(m["content"]) for m in self.history) > budget:
            self.history.pop(0)

    def _render_prompt(self) -> str:
        return "\n\n".join(f"{m['role']}: {m['content']}" for m in self.history)

    async def _generate_system_prompt(self) -> None:
        async def attempt(number: int) -> str:
            return await self.backend.run(PROMPT_GENERATOR + self.spec.system_prompt)

        try:
            generated = await self.retry_policy.call(attempt)
        except RetryExhausted as e:
            logger.error("Prompt generation for agent %s failed after %d attempt(s)", self.name, e.attempts)
            raise e.last_error from None
        if generated.strip():
            self.system_prompt = generated.strip()
        self._prompt_generated = True

    async def run(self, task: str) -> str:
        """Run ``task`` for ``max_loops`` refinement loops and return the final reply."""
        if self.spec.auto_generate_prompt and not self._prompt_generated:
            await self._generate_system_prompt()

        self.history.append({"role": self.spec.user_name, "content": str(task)})
        response = ""
        for loop in range(1, self.spec.max_loops + 1):
            if loop > 1:
                self.history.append(
                    {"role": self.spec.user_name, "content": "Review and improve your previous answer."}
                )
            self._trim_history()
            options = {"system_prompt": self.system_prompt}
            temperature = self._temperature(loop)
            if temperature is not None:
                options["temperature"] = temperature

            response = await self.backend.run(self._render_prompt(), options)
            self.history.append({"role": self.name, "content": response})
            if self.spec.verbose:
                logger.info("Agent %s loop %d/%d: %s", self.name, loop, self.spec.max_loops, response[:200])

        if self.spec.artifacts_on:
            self._record_artifact(response)
        if self.spec.autosave:
            self.save_state()
        return response

    def _record_artifact(self, content: str) -> None:
        try:
            if self.artifact is None:
                self.artifact = Artifact(
                    file_path=f"{self.name}{self.spec.artifacts_file_extension}",
                    folder_path=self.spec.artifacts_output_path or str(self.workspace_dir / "artifacts"),
                )
                self.artifact.create(content)
            else:
                self.artifact.edit(content)
            self.artifact.save()
        except (OSError, ValueError) as e:
            logger.warning("Artifact for agent %s not saved: %s", self.name, e)

    def state_path(self) -> Path:
        if self.spec.saved_state_path:
            return Path(self.spec.saved_state_path)
        return self.workspace_dir / f"{self.name}_state.json"

    def save_state(self) -> None:
        """Persist configuration and history. Best-effort: failures are only logged."""
        state = {
            "agent_name": self.name,
            "config": self.spec.model_dump(mode="json"),
            "system_prompt": self.system_prompt,
            "history": self.history,
        }
        path = self.state_path()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(state, indent=2), encoding="utf-8")
        except OSError as e:
            logger.warning("Could not save state for agent %s to %s: %s", self.name, path, e)
