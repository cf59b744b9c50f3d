"""Configuration: Pydantic models for marketclaw settings."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field

from marketclaw.agent.types import DEFAULT_MAX_ITERATIONS, DEFAULT_TASK_TIMEOUT_MS


class LLMConfig(BaseModel):
    """LLM provider configuration.

    Model names use litellm's provider-prefix format:
        "anthropic/claude-sonnet-4-5-20250929"
        "openai/gpt-4o-mini"
        "gemini/gemini-2.0-flash"

    API keys are read from env vars automatically by litellm
    (ANTHROPIC_API_KEY, GEMINI_API_KEY, OPENAI_API_KEY).
    """

    model: str = Field(default="anthropic/claude-sonnet-4-5-20250929")
    temperature: float | None = Field(default=None)
    max_tokens: int | None = Field(default=None)


class AgentConfigEntry(BaseModel):
    """Per-agent overrides. Unset fields keep the manifest's values."""

    enabled: bool | None = None
    name: str | None = None
    emoji: str | None = None
    persona: str | None = None
    voice: Literal["professional", "casual", "friendly", "playful"] | None = None
    model: str | None = Field(default=None, description="Model override (litellm format)")


class AgentsConfig(BaseModel):
    """Sub-agent configuration."""

    enabled: bool = Field(default=True, description="Enable/disable all sub-agents")
    builtins: Literal["all", "none"] | list[str] = Field(
        default="all", description="Which built-in specialists to register"
    )
    custom_dir: str | None = Field(
        default="~/.marketclaw/agents", description="Directory for custom agent manifests"
    )
    agents: dict[str, AgentConfigEntry] = Field(default_factory=dict)
    max_iterations: int = Field(default=DEFAULT_MAX_ITERATIONS, ge=1)
    task_timeout_ms: int = Field(default=DEFAULT_TASK_TIMEOUT_MS, gt=0)


class MarketClawConfig(BaseModel):
    """Top-level marketclaw configuration."""

    llm: LLMConfig = Field(default_factory=LLMConfig)
    agents: AgentsConfig = Field(default_factory=AgentsConfig)

    @classmethod
    def load(cls, config_path: str | None = None) -> MarketClawConfig:
        """Load config from file, env vars, or defaults.

        Priority: env vars > config file > defaults. ``.yaml``/``.yml`` files
        are parsed as YAML, anything else as JSON.

        Env vars:
            MARKETCLAW_MODEL            - Override the default model (litellm format)
            MARKETCLAW_AGENTS_DIR       - Override the custom agents directory
            MARKETCLAW_TASK_TIMEOUT_MS  - Override the per-task timeout
        """
        from dotenv import load_dotenv

        load_dotenv(override=True)

        config_data: dict[str, Any] = {}

        if config_path and os.path.exists(config_path):
            text = Path(config_path).read_text(encoding="utf-8")
            if config_path.endswith((".yaml", ".yml")):
                import yaml

                config_data = yaml.safe_load(text) or {}
            else:
                import json

                config_data = json.loads(text)

        llm = config_data.get("llm") or {}
        agents = config_data.get("agents") or {}

        env_model = os.environ.get("MARKETCLAW_MODEL")
        if env_model:
            llm["model"] = env_model

        env_agents_dir = os.environ.get("MARKETCLAW_AGENTS_DIR")
        if env_agents_dir:
            agents["custom_dir"] = env_agents_dir

        env_timeout = os.environ.get("MARKETCLAW_TASK_TIMEOUT_MS")
        if env_timeout:
            agents["task_timeout_ms"] = int(env_timeout)

        if llm:
            config_data["llm"] = llm
        if agents:
            config_data["agents"] = agents

        return cls.model_validate(config_data)
