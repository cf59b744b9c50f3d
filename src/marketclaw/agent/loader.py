"""Sub-agent loader: built-ins, per-agent overrides and custom manifests."""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING, Any

from marketclaw.agent.errors import InvalidManifestError
from marketclaw.agent.specialists import load_builtin_specialists
from marketclaw.agent.types import AgentVoice, SubAgentManifest

if TYPE_CHECKING:
    from marketclaw.agent.registry import SubAgentRegistry
    from marketclaw.config import AgentConfigEntry, AgentsConfig

logger = logging.getLogger(__name__)


def initialize_agents(registry: SubAgentRegistry, config: AgentsConfig) -> None:
    """Register built-in and custom agents according to ``config``."""
    if not config.enabled:
        logger.info("Sub-agents disabled")
        return

    if config.builtins != "none":
        count = 0
        for manifest in load_builtin_specialists():
            if isinstance(config.builtins, list) and manifest.id not in config.builtins:
                continue
            if _register(registry, manifest, config.agents.get(manifest.id), config):
                count += 1
        logger.info("Built-in agents loaded: %d", count)

    if config.custom_dir:
        load_custom_agents(registry, config.custom_dir, config.agents, config)


def load_custom_agents(
    registry: SubAgentRegistry,
    agents_dir: str | Path,
    entries: dict[str, AgentConfigEntry] | None = None,
    config: AgentsConfig | None = None,
) -> int:
    """Load manifests from ``agents_dir``.

    Picks up ``*.json``, ``*.md`` and ``<subdir>/manifest.json``. Invalid
    manifests are logged and skipped. Returns the number registered.
    """
    agents_dir = Path(agents_dir).expanduser()
    if not agents_dir.is_dir():
        return 0

    entries = entries or {}
    count = 0
    for path in sorted(agents_dir.iterdir()):
        if path.is_dir():
            path = path / "manifest.json"
            if not path.is_file():
                continue
        elif path.suffix not in (".json", ".md"):
            continue

        try:
            manifest = SubAgentManifest.from_file(path)
        except (InvalidManifestError, OSError) as e:
            logger.warning("Skipping invalid agent manifest %s: %s", path, e)
            continue

        if _register(registry, manifest, entries.get(manifest.id), config):
            logger.info("Custom agent loaded: %s (%s)", manifest.id, path)
            count += 1
    return count


def create_custom_agent(
    registry: SubAgentRegistry,
    manifest: SubAgentManifest,
    agents_dir: str | Path,
) -> Path:
    """Persist ``manifest`` as ``<agents_dir>/<id>/manifest.json`` and register it."""
    agent_dir = Path(agents_dir).expanduser() / manifest.id
    agent_dir.mkdir(parents=True, exist_ok=True)

    manifest_path = agent_dir / "manifest.json"
    manifest_path.write_text(
        json.dumps(manifest.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8"
    )

    registry.register_from_manifest(manifest)
    logger.info("Custom agent created: %s", manifest.id)
    return manifest_path


def _register(
    registry: SubAgentRegistry,
    manifest: SubAgentManifest,
    entry: AgentConfigEntry | None,
    config: AgentsConfig | None,
) -> bool:
    if entry is not None and entry.enabled is False:
        return False

    overrides: dict[str, Any] = {}
    if config is not None:
        overrides["max_iterations"] = config.max_iterations
        overrides["task_timeout_ms"] = config.task_timeout_ms

    if entry is not None:
        manifest = _apply_identity(manifest, entry)
        if entry.model:
            overrides["model"] = entry.model

    registry.register_from_manifest(manifest, overrides)
    return True


def _apply_identity(manifest: SubAgentManifest, entry: AgentConfigEntry) -> SubAgentManifest:
    changes: dict[str, Any] = {}
    if entry.name:
        changes["name"] = entry.name
    if entry.emoji:
        changes["emoji"] = entry.emoji
    if entry.persona:
        changes["persona"] = entry.persona
    if entry.voice:
        changes["voice"] = AgentVoice(entry.voice)
    if not changes:
        return manifest
    return replace(manifest, identity=replace(manifest.identity, **changes))
