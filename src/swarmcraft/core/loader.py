"""YAML document loading."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

import yaml

from .errors import ConfigParseError, ConfigSourceError, ConfigStructureError


def load_yaml_safely(
    yaml_file: Optional[Union[str, Path]] = None,
    yaml_string: Optional[str] = None,
) -> dict:
    """Load a swarm document from a file or an in-memory string.

    Exactly one source must be given. The parsed tree must contain a non-empty
    ``agents`` sequence; every other check is left to the validator.
    """
    if yaml_file is not None and yaml_string is not None:
        raise ConfigSourceError("Provide either yaml_file or yaml_string, not both")
    if yaml_file is None and yaml_string is None:
        raise ConfigSourceError("Either yaml_file or yaml_string must be provided")

    if yaml_file is not None:
        path = Path(yaml_file)
        if not path.is_file():
            raise ConfigSourceError(f"YAML file {path} not found.", {"path": str(path)})
        try:
            text = path.read_text(encoding="utf-8-sig")
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigSourceError(f"Cannot read YAML file {path}: {e}", {"path": str(path)}) from e
    else:
        text = yaml_string

    try:
        tree = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigParseError(f"Invalid YAML: {e}") from e

    if not isinstance(tree, dict):
        raise ConfigStructureError("Invalid YAML: top level must be a mapping with an 'agents' key.")

    agents = tree.get("agents")
    if not isinstance(agents, list) or len(agents) < 1:
        raise ConfigStructureError("Invalid YAML: Must contain at least one agent configuration.")

    return tree
