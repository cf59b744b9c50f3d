"""Tests for marketclaw.config."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from marketclaw.config import AgentConfigEntry, AgentsConfig, MarketClawConfig


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path) -> None:
    monkeypatch.chdir(tmp_path)
    for var in ("MARKETCLAW_MODEL", "MARKETCLAW_AGENTS_DIR", "MARKETCLAW_TASK_TIMEOUT_MS"):
        monkeypatch.delenv(var, raising=False)


class TestModels:
    def test_defaults(self) -> None:
        config = MarketClawConfig()
        assert config.agents.enabled is True
        assert config.agents.builtins == "all"
        assert config.agents.max_iterations == 10
        assert config.agents.task_timeout_ms == 120_000
        assert config.agents.agents == {}

    def test_builtins_list(self) -> None:
        assert AgentsConfig(builtins=["twitter"]).builtins == ["twitter"]

    def test_bad_builtins(self) -> None:
        with pytest.raises(ValidationError):
            AgentsConfig(builtins="some")

    def test_bad_voice(self) -> None:
        with pytest.raises(ValidationError):
            AgentConfigEntry(voice="angry")

    def test_bad_timeout(self) -> None:
        with pytest.raises(ValidationError):
            AgentsConfig(task_timeout_ms=0)


class TestLoad:
    def test_no_file(self) -> None:
        config = MarketClawConfig.load(None)
        assert config.llm.model.startswith("anthropic/")

    def test_yaml_file(self, tmp_path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text(
            "llm:\n"
            "  model: openai/gpt-4o\n"
            "agents:\n"
            "  builtins: [twitter, email]\n"
            "  agents:\n"
            "    twitter:\n"
            "      name: Birdie\n"
            "      model: openai/gpt-4o-mini\n",
            encoding="utf-8",
        )
        config = MarketClawConfig.load(str(path))
        assert config.llm.model == "openai/gpt-4o"
        assert config.agents.builtins == ["twitter", "email"]
        assert config.agents.agents["twitter"].name == "Birdie"
        assert config.agents.agents["twitter"].enabled is None

    def test_json_file(self, tmp_path) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"agents": {"enabled": False}}), encoding="utf-8")
        assert MarketClawConfig.load(str(path)).agents.enabled is False

    def test_env_overrides_file(self, tmp_path, monkeypatch) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"llm": {"model": "openai/gpt-4o"}}), encoding="utf-8")
        monkeypatch.setenv("MARKETCLAW_MODEL", "gemini/gemini-2.0-flash")
        monkeypatch.setenv("MARKETCLAW_AGENTS_DIR", "/tmp/agents")
        monkeypatch.setenv("MARKETCLAW_TASK_TIMEOUT_MS", "5000")

        config = MarketClawConfig.load(str(path))
        assert config.llm.model == "gemini/gemini-2.0-flash"
        assert config.agents.custom_dir == "/tmp/agents"
        assert config.agents.task_timeout_ms == 5000
