"""3-layer configuration system for Swarmcraft.

Loads and merges configuration from:
1. Default settings (built-in)
2. Workspace config (<workspace>/.swarmcraft/config.yaml)
3. Caller / CLI overrides
"""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_WORKSPACE_DIR = "agent_workspace"

DEFAULT_CONFIG: dict = {
    "workspace_dir": DEFAULT_WORKSPACE_DIR,
    "agents": {
        "default_model": "gpt-4o",
    },
    "construction": {
        "retry_attempts": 3,
        "min_delay_seconds": 4,
        "max_delay_seconds": 10,
        "multiplier": 1,
        "jitter": False,
    },
    "logging": {
        "level": "INFO",
        "log_folder": "swarmcraft",
    },
    "ai": {
        "provider": "openai",
        "temperature": 0.5,
        "timeout_seconds": 300,
        "retry_attempts": 3,
        "retry_delay_seconds": 5,
        "anthropic": {
            "model": "claude-sonnet-4-5-20250929",
            "api_key_env": "ANTHROPIC_API_KEY",
            "max_tokens": 8000,
        },
        "openai": {
            "model": "gpt-4o",
            "api_key_env": "OPENAI_API_KEY",
            "max_tokens": 8000,
        },
        "ollama": {
            "endpoint": "http://localhost:11434",
            "model": "llama3.1",
            "max_tokens": 8000,
        },
        "mock": {},
    },
}


def deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge ``override`` into a copy of ``base``. Lists are replaced."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_workspace_config(workspace_dir: Path) -> dict:
    """Load workspace configuration from .swarmcraft/config.yaml."""
    config_path = Path(workspace_dir) / ".swarmcraft" / "config.yaml"
    if not config_path.exists():
        return {}
    try:
        content = config_path.read_text(encoding="utf-8-sig")  # utf-8-sig strips BOM
        loaded = yaml.safe_load(content) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Ignoring unreadable workspace config %s: %s", config_path, e)
        return {}
    if not isinstance(loaded, dict):
        logger.warning("Ignoring workspace config %s: top level is not a mapping", config_path)
        return {}
    return loaded


def get_effective_config(
    workspace_dir: Optional[Path] = None,
    overrides: Optional[dict] = None,
) -> dict:
    """Get the fully resolved configuration for a pipeline run."""
    config = copy.deepcopy(DEFAULT_CONFIG)
    workspace = Path(workspace_dir or DEFAULT_WORKSPACE_DIR)

    workspace_config = load_workspace_config(workspace)
    if workspace_config:
        config = deep_merge(config, workspace_config)

    if overrides:
        config = deep_merge(config, overrides)

    # An explicit workspace argument always wins over file contents
    if workspace_dir is not None:
        config["workspace_dir"] = str(workspace_dir)

    return config
