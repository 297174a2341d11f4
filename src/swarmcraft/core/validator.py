"""Validation of raw document nodes into typed agent and swarm specs.

All checks live here so the rest of the pipeline only ever sees
``AgentSpec`` and ``SwarmSpec`` instances.
"""

from __future__ import annotations

from typing import Any, Optional

import pydantic

from ..models.agent import AgentSpec
from ..models.swarm import SwarmSpec, SwarmType
from .errors import ValidationError
from .flow import plan_swarm

SWARM_TYPES = tuple(t.value for t in SwarmType)


def _drop_nulls(node: dict) -> dict:
    # YAML `key:` with no value means "use the default"
    return {k: v for k, v in node.items() if v is not None}


def _convert_error(exc: pydantic.ValidationError, prefix: str) -> ValidationError:
    """Turn the first pydantic error into a ValidationError naming the field."""
    err = exc.errors()[0]
    loc = ".".join(str(part) for part in err.get("loc", ()))
    field = f"{prefix}.{loc}" if loc else prefix
    constraint = err.get("type", "invalid")
    msg = err.get("msg", "invalid value")
    if constraint == "enum" and loc == "swarm_type":
        msg = f"Swarm type must be one of: {', '.join(SWARM_TYPES)}"
    return ValidationError(f"{field}: {msg}", field=field, constraint=constraint)


def validate_agent(
    raw: Any,
    default_model_name: Optional[str] = None,
    prefix: str = "agents",
) -> AgentSpec:
    """Validate one raw agent node. Unknown keys are ignored."""
    if not isinstance(raw, dict):
        raise ValidationError(
            f"{prefix}: agent configuration must be a mapping",
            field=prefix,
            constraint="mapping_type",
        )
    node = _drop_nulls(raw)
    if default_model_name and "model_name" not in node:
        node["model_name"] = default_model_name
    try:
        return AgentSpec.model_validate(node)
    except pydantic.ValidationError as e:
        raise _convert_error(e, prefix) from None


def validate_swarm(raw: Any) -> SwarmSpec:
    """Validate the ``swarm_architecture`` node."""
    prefix = "swarm_architecture"
    if not isinstance(raw, dict):
        raise ValidationError(
            f"{prefix}: must be a mapping",
            field=prefix,
            constraint="mapping_type",
        )
    node = _drop_nulls(raw)
    if "swarm_type" not in node:
        raise ValidationError(
            f"{prefix}.swarm_type: Swarm type must be one of: {', '.join(SWARM_TYPES)}",
            field=f"{prefix}.swarm_type",
            constraint="missing",
        )
    try:
        return SwarmSpec.model_validate(node)
    except pydantic.ValidationError as e:
        raise _convert_error(e, prefix) from None


def validate_document(
    tree: dict,
    default_model_name: Optional[str] = None,
) -> tuple[list[AgentSpec], Optional[SwarmSpec]]:
    """Validate every agent node and the optional swarm node of a loaded tree.

    A malformed flow or unknown aggregator raises DispatchError.
    """
    specs: list[AgentSpec] = []
    seen: set[str] = set()
    for i, raw in enumerate(tree["agents"]):
        spec = validate_agent(raw, default_model_name, prefix=f"agents[{i}]")
        if spec.agent_name in seen:
            raise ValidationError(
                f"agents[{i}].agent_name: duplicate agent name '{spec.agent_name}'",
                field=f"agents[{i}].agent_name",
                constraint="unique",
            )
        seen.add(spec.agent_name)
        specs.append(spec)

    swarm = None
    if tree.get("swarm_architecture") is not None:
        swarm = validate_swarm(tree["swarm_architecture"])
        # Flow and aggregator only name agents, so they are checked before any construction
        plan_swarm(swarm, [spec.agent_name for spec in specs])

    return specs, swarm
