"""Sub-agent data model: identities, specialties, configs, tasks, manifests.

Manifests can be written as JSON or as markdown files with YAML frontmatter:

    ---
    id: researcher
    name: Scout
    emoji: 🔍
    persona: a market research and competitive intelligence specialist
    voice: casual
    display_name: Research Specialist
    description: Expert in market research and competitor analysis
    tools: [store_knowledge, query_knowledge]
    ---

    You specialize in market research...

The markdown body becomes the specialty's system prompt.
"""

from __future__ import annotations

import enum
import re
import secrets
import string
import time
from collections import deque
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from marketclaw.agent.errors import InvalidManifestError

DEFAULT_MAX_ITERATIONS = 10
DEFAULT_TASK_TIMEOUT_MS = 120_000
MAX_COMPLETED_TASKS = 50

_BASE36 = string.digits + string.ascii_lowercase


class AgentVoice(enum.Enum):
    PROFESSIONAL = "professional"
    CASUAL = "casual"
    FRIENDLY = "friendly"
    PLAYFUL = "playful"


class TaskStatus(enum.Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED)


@dataclass
class AgentIdentity:
    name: str
    emoji: str
    persona: str | None = None
    voice: AgentVoice | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AgentIdentity:
        if not data.get("name"):
            raise ValueError("identity.name is required")
        voice = data.get("voice")
        return cls(
            name=data["name"],
            emoji=data.get("emoji", ""),
            persona=data.get("persona"),
            voice=AgentVoice(voice) if voice else None,
        )


@dataclass
class AgentSpecialty:
    id: str
    display_name: str
    description: str
    system_prompt: str
    tools: list[str] | None = None  # Allowlist; empty or None means all tools
    required_tools: list[str] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any], specialty_id: str = "") -> AgentSpecialty:
        if not data.get("display_name"):
            raise ValueError("specialty.display_name is required")
        return cls(
            id=data.get("id") or specialty_id,
            display_name=data["display_name"],
            description=data.get("description", ""),
            system_prompt=data.get("system_prompt", ""),
            tools=_name_list(data.get("tools"), "tools"),
            required_tools=_name_list(data.get("required_tools"), "required_tools"),
        )


@dataclass
class SubAgentConfig:
    identity: AgentIdentity
    specialty: AgentSpecialty
    model: str | None = None  # Override model for this agent
    enabled: bool = True
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    task_timeout_ms: int = DEFAULT_TASK_TIMEOUT_MS
    max_concurrent: int | None = None  # Unused: execution is globally serial


@dataclass
class AgentTask:
    id: str
    agent_id: str
    prompt: str
    context: dict[str, Any] | None = None
    model: str | None = None  # Agent's model override at spawn time
    status: TaskStatus = TaskStatus.PENDING
    result: str | None = None
    error: str | None = None
    created_at: datetime = field(default_factory=lambda: utcnow())
    started_at: datetime | None = None
    completed_at: datetime | None = None
    notify_on_complete: bool = False
    notify_target: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def snapshot(self) -> AgentTask:
        """Copy of the task as it is right now (for event payloads)."""
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        for key in ("created_at", "started_at", "completed_at"):
            if data[key] is not None:
                data[key] = data[key].isoformat()
        return data


@dataclass
class SubAgentState:
    """Runtime state of a registered sub-agent."""

    config: SubAgentConfig
    active_tasks: list[AgentTask] = field(default_factory=list)
    completed_tasks: deque[AgentTask] = field(
        default_factory=lambda: deque(maxlen=MAX_COMPLETED_TASKS)
    )
    is_running: bool = True


@dataclass
class SpawnOptions:
    context: dict[str, Any] | None = None
    notify_on_complete: bool = False
    notify_target: str | None = None


@dataclass
class SubAgentManifest:
    """Modular definition of a sub-agent (built-in or loaded from disk)."""

    id: str
    identity: AgentIdentity
    specialty: AgentSpecialty
    version: str = "1.0.0"
    default_model: str | None = None
    author: str | None = None
    description: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SubAgentManifest:
        """Build a manifest from JSON-shaped data.

        Keys may be snake_case or camelCase (``displayName``, ``systemPrompt``,
        ``defaultModel``, ...).
        """
        if not isinstance(data, dict):
            raise InvalidManifestError("Manifest must be a JSON object")
        data = _snake_keys(data)
        manifest_id = data.get("id")
        identity = data.get("identity")
        specialty = data.get("specialty")
        if not manifest_id or not isinstance(identity, dict) or not isinstance(specialty, dict):
            raise InvalidManifestError("Manifest requires 'id', 'identity' and 'specialty'")

        try:
            return cls(
                id=str(manifest_id),
                identity=AgentIdentity.from_dict(identity),
                specialty=AgentSpecialty.from_dict(specialty, specialty_id=str(manifest_id)),
                version=str(data.get("version", "1.0.0")),
                default_model=data.get("default_model"),
                author=data.get("author"),
                description=data.get("description"),
            )
        except (KeyError, ValueError) as e:
            raise InvalidManifestError(f"Invalid manifest '{manifest_id}': {e}") from e

    @classmethod
    def from_markdown(cls, content: str) -> SubAgentManifest:
        """Parse a markdown manifest with flat YAML frontmatter."""
        meta, body = _parse_frontmatter(content)
        if not meta:
            raise InvalidManifestError("Markdown manifest has no frontmatter")
        if not isinstance(meta, dict):
            raise InvalidManifestError("Frontmatter must be a mapping")

        return cls.from_dict(
            {
                "id": meta.get("id"),
                "version": meta.get("version", "1.0.0"),
                "identity": {
                    "name": meta.get("name"),
                    "emoji": meta.get("emoji", ""),
                    "persona": meta.get("persona"),
                    "voice": meta.get("voice"),
                },
                "specialty": {
                    "display_name": meta.get("display_name"),
                    "description": meta.get("description", ""),
                    "system_prompt": body.strip(),
                    "tools": meta.get("tools"),
                    "required_tools": meta.get("required_tools"),
                },
                "default_model": meta.get("model"),
                "author": meta.get("author"),
            }
        )

    @classmethod
    def from_file(cls, path: str | Path) -> SubAgentManifest:
        import json

        path = Path(path)
        try:
            content = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise InvalidManifestError(f"{path}: not valid UTF-8 ({e.reason})") from e
        if path.suffix == ".md":
            return cls.from_markdown(content)
        try:
            return cls.from_dict(json.loads(content))
        except json.JSONDecodeError as e:
            raise InvalidManifestError(f"{path}: {e}") from e

    def to_dict(self) -> dict[str, Any]:
        specialty = asdict(self.specialty)
        specialty.pop("id")
        identity = asdict(self.identity)
        identity["voice"] = self.identity.voice.value if self.identity.voice else None
        return {
            "id": self.id,
            "version": self.version,
            "identity": identity,
            "specialty": specialty,
            "default_model": self.default_model,
            "author": self.author,
            "description": self.description,
        }


def generate_task_id() -> str:
    """``task_<epoch ms>_<6 base36 chars>``."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"task_{int(time.time() * 1000)}_{suffix}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


_CAMEL = re.compile(r"(?<!^)(?=[A-Z])")


def _name_list(value: Any, field_name: str) -> list[str] | None:
    if value is None:
        return None
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"specialty.{field_name} must be a list of tool names")
    return list(value)


def _snake_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {_CAMEL.sub("_", k).lower(): _snake_keys(v) for k, v in value.items()}
    return value


def _parse_frontmatter(content: str) -> tuple[dict[str, Any], str]:
    """Parse YAML frontmatter from markdown content.

    Returns (meta_dict, body_text).
    """
    import yaml  # lazy import: only needed when loading markdown manifests

    pattern = re.compile(r"^---\s*\n(.*?)\n---\s*\n(.*)", re.DOTALL)
    match = pattern.match(content)

    if not match:
        return {}, content

    try:
        meta = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError as e:
        raise InvalidManifestError(f"Invalid frontmatter: {e}") from e

    return meta, match.group(2)
