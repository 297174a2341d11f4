"""Auto-generation of swarm configurations.

A builder agent turns a plain-language task into a swarm YAML document, which
is then run through the normal pipeline.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Optional, Union

from ..models.agent import AgentSpec
from ..providers.base import backend_factory_from_config
from .agent import Agent
from .config import get_effective_config
from .errors import ConfigError, ConfigParseError, ValidationError
from .orchestrator import BackendFactory, create_agents_from_yaml
from .retry import RetryExhausted, RetryPolicy, is_transient

logger = logging.getLogger(__name__)

AUTO_GEN_PROMPT = """
You are a specialized agent responsible for creating YAML configuration files for
multi-agent swarms. Given a task, design a team of agents and a swarm architecture
that will accomplish it.

Reply with a single fenced ```yaml block using exactly this shape:

```yaml
agents:
  - agent_name: "Researcher"
    system_prompt: "You research ..."
    max_loops: 1
  - agent_name: "Writer"
    system_prompt: "You write ..."
    max_loops: 1

swarm_architecture:
  name: "Research-Team"
  description: "What the swarm does"
  swarm_type: "Sequential"
  max_loops: 1
  task: "The task to run"
```

swarm_type must be one of: Sequential, Concurrent, Rearrange, MixtureOfAgents, Auto.
For Rearrange, add a flow such as "Researcher -> Writer". Every agent needs a
non-empty system_prompt and a unique agent_name.
"""

_YAML_BLOCK = re.compile(r"```yaml\s*\n(.*?)```", re.DOTALL)


def prepare_yaml_for_parsing(raw_yaml: str) -> str:
    """Fix the spacing mistakes models commonly make in generated YAML."""
    fixed = re.sub(r"^(\w+):[ \t]*-[ \t]+", r"\1:\n  - ", raw_yaml.replace("\xa0", " "), flags=re.MULTILINE)
    fixed = re.sub(r"(\b[A-Za-z_]\w*):([^\s/:])", r"\1: \2", fixed)
    fixed = re.sub(r"[ \t]+\n", "\n", fixed)
    return fixed.strip()


def parse_yaml_from_swarm_markdown(markdown_text: str) -> str:
    """Extract and clean the first ```yaml block of a builder reply."""
    match = _YAML_BLOCK.search(markdown_text or "")
    if not match:
        raise ConfigParseError("No YAML content found in the 'Auto-Swarm-Builder' output.")
    return prepare_yaml_for_parsing(match.group(1).strip())


def _retry_generation(exc: BaseException) -> bool:
    # Generated YAML is non-deterministic; a bad document is worth regenerating
    return is_transient(exc) or isinstance(exc, (ConfigError, ValidationError))


async def generate_swarm_config(
    task: str,
    file_name: str = "swarm_config_output.yaml",
    model_name: str = "gpt-4o",
    backend_factory: Optional[BackendFactory] = None,
    workspace_dir: Optional[Union[str, Path]] = None,
    config: Optional[dict] = None,
    policy: Optional[RetryPolicy] = None,
) -> Any:
    """Generate a swarm for ``task``, save its YAML, and run it."""
    if config is None:
        config = get_effective_config(Path(workspace_dir) if workspace_dir else None)
    workspace = Path(workspace_dir or config.get("workspace_dir", "agent_workspace"))
    factory = backend_factory or backend_factory_from_config(config)
    if policy is None:
        policy = RetryPolicy.from_config(config, retry_on=_retry_generation)

    builder_spec = AgentSpec(
        agent_name="Auto-Swarm-Builder",
        system_prompt=AUTO_GEN_PROMPT,
        model_name=model_name,
        max_loops=1,
        autosave=False,
        user_name="swarms_corp",
    )

    async def attempt(number: int) -> Any:
        logger.info("Auto generating swarm (attempt %d)", number)
        builder = Agent(builder_spec, factory(model_name), workspace_dir=workspace)
        try:
            await builder.start()
            raw_output = await builder.run(task)
        finally:
            await builder.aclose()

        yaml_content = parse_yaml_from_swarm_markdown(raw_output)
        output_path = workspace / file_name
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_text(yaml_content, encoding="utf-8")
        except OSError as e:
            logger.warning("Could not save generated swarm config to %s: %s", output_path, e)

        return await create_agents_from_yaml(
            yaml_string=yaml_content,
            return_type="run_swarm",
            backend_factory=factory,
            workspace_dir=workspace,
            config=config,
        )

    try:
        return await policy.call(attempt)
    except RetryExhausted as e:
        logger.error("Swarm generation failed after %d attempt(s)", e.attempts)
        raise e.last_error from None
