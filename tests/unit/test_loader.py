"""Tests for core/loader.py."""

from __future__ import annotations

from pathlib import Path

import pytest

from swarmcraft.core.errors import ConfigParseError, ConfigSourceError, ConfigStructureError
from swarmcraft.core.loader import load_yaml_safely


class TestSources:
    def test_from_string(self, single_agent_yaml: str):
        tree = load_yaml_safely(yaml_string=single_agent_yaml)
        assert tree["agents"][0]["agent_name"] == "A"

    def test_from_file(self, tmp_path: Path, single_agent_yaml: str):
        path = tmp_path / "agents.yaml"
        path.write_text(single_agent_yaml, encoding="utf-8")
        tree = load_yaml_safely(yaml_file=path)
        assert len(tree["agents"]) == 1

    def test_file_with_bom(self, tmp_path: Path, single_agent_yaml: str):
        path = tmp_path / "agents.yaml"
        path.write_text("\ufeff" + single_agent_yaml, encoding="utf-8")
        assert load_yaml_safely(yaml_file=str(path))["agents"][0]["system_prompt"] == "do X"

    def test_no_source(self):
        with pytest.raises(ConfigSourceError, match="Either"):
            load_yaml_safely()

    def test_both_sources(self, tmp_path: Path, single_agent_yaml: str):
        with pytest.raises(ConfigSourceError, match="not both"):
            load_yaml_safely(yaml_file=tmp_path / "x.yaml", yaml_string=single_agent_yaml)

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigSourceError, match="not found"):
            load_yaml_safely(yaml_file=tmp_path / "missing.yaml")


class TestParsing:
    def test_syntax_error(self):
        with pytest.raises(ConfigParseError, match="Invalid YAML"):
            load_yaml_safely(yaml_string="agents: [unclosed")

    def test_missing_agents(self):
        with pytest.raises(ConfigStructureError):
            load_yaml_safely(yaml_string="swarm_architecture:\n  swarm_type: Sequential\n")

    def test_empty_agents(self):
        with pytest.raises(ConfigStructureError, match="at least one agent"):
            load_yaml_safely(yaml_string="agents: []\n")

    def test_agents_not_a_sequence(self):
        with pytest.raises(ConfigStructureError):
            load_yaml_safely(yaml_string="agents:\n  agent_name: A\n")

    def test_scalar_document(self):
        with pytest.raises(ConfigStructureError):
            load_yaml_safely(yaml_string="just a string")

    def test_empty_document(self):
        with pytest.raises(ConfigStructureError):
            load_yaml_safely(yaml_string="")

    def test_unknown_top_level_keys_kept(self, single_agent_yaml: str):
        tree = load_yaml_safely(yaml_string=single_agent_yaml + "extra: 1\n")
        assert tree["extra"] == 1
