"""Tools that let an orchestrating model manage and delegate to sub-agents."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import TYPE_CHECKING, ClassVar, Literal

from pydantic import BaseModel, Field

from marketclaw.agent.errors import SubAgentError, TaskWaitTimeoutError
from marketclaw.agent.loader import create_custom_agent
from marketclaw.agent.types import (
    AgentIdentity,
    AgentSpecialty,
    AgentVoice,
    SpawnOptions,
    SubAgentManifest,
    TaskStatus,
)
from marketclaw.tool.base import BaseTool, ToolError, ToolOk, ToolResult

if TYPE_CHECKING:
    from marketclaw.agent.registry import SubAgentRegistry

logger = logging.getLogger(__name__)

DELEGATE_WAIT_TIMEOUT_MS = 120_000

_AGENT_ID = re.compile(r"^[a-z0-9][a-z0-9_-]*$")


# ---------------------------------------------------------------------------
# Tool: list_agents
# ---------------------------------------------------------------------------


class ListAgentsParams(BaseModel):
    show_disabled: bool = Field(default=False, description="Include disabled agents")


class ListAgentsTool(BaseTool[ListAgentsParams]):
    name: ClassVar[str] = "list_agents"
    description: ClassVar[str] = "List all available sub-agents and their specialties"
    param_model: ClassVar[type[BaseModel]] = ListAgentsParams

    def __init__(self, registry: SubAgentRegistry) -> None:
        self._registry = registry

    async def execute(self, params: ListAgentsParams) -> ToolResult:
        states = self._registry.list() if params.show_disabled else self._registry.list_enabled()
        agents = [
            {
                "id": s.config.specialty.id,
                "name": s.config.identity.name,
                "emoji": s.config.identity.emoji,
                "specialty": s.config.specialty.display_name,
                "enabled": s.config.enabled,
                "active_tasks": len(s.active_tasks),
            }
            for s in states
        ]
        return ToolOk(message=f"{len(agents)} agents available", data={"agents": agents})


# ---------------------------------------------------------------------------
# Tool: delegate_task
# ---------------------------------------------------------------------------


class DelegateTaskParams(BaseModel):
    agent_id: str = Field(
        description='Agent ID to delegate to (e.g. "twitter", "email", "researcher")',
    )
    task: str = Field(
        description=(
            "Clear, specific task description for the agent. "
            "Include audience, tone and any constraints."
        ),
    )
    context: str = Field(
        default="",
        description="Additional context as a JSON object (optional)",
    )
    wait: bool = Field(
        default=True,
        description=(
            "Wait for the task to complete. Use false for long-running work "
            "(research, analysis); the requester is notified on completion."
        ),
    )


class DelegateTaskTool(BaseTool[DelegateTaskParams]):
    """Delegate a task to a specialist sub-agent."""

    name: ClassVar[str] = "delegate_task"
    description: ClassVar[str] = (
        "Delegate a task to a specialized sub-agent. Use this when a task matches "
        "an agent's expertise. For tasks that take more than a few seconds, use "
        "wait=false and the user will be notified when the task completes."
    )
    param_model: ClassVar[type[BaseModel]] = DelegateTaskParams

    def __init__(self, registry: SubAgentRegistry, notify_target: str | None = None) -> None:
        self._registry = registry
        self._notify_target = notify_target

    async def execute(self, params: DelegateTaskParams) -> ToolResult:
        state = self._registry.get(params.agent_id)
        if state is None:
            return ToolError(
                message=(
                    f"Agent not found: {params.agent_id}. "
                    f"Available agents: {', '.join(self._registry.ids())}"
                )
            )
        if not state.config.enabled:
            return ToolError(message=f"Agent is disabled: {params.agent_id}")

        context = None
        if params.context.strip():
            try:
                context = json.loads(params.context)
            except json.JSONDecodeError:
                return ToolError(message="Invalid context JSON")
            if not isinstance(context, dict):
                return ToolError(message="Context must be a JSON object")

        logger.info(
            "Delegating to %s (wait=%s): %s", params.agent_id, params.wait, params.task[:100]
        )
        identity = state.config.identity
        task = self._registry.spawn(
            params.agent_id,
            params.task,
            SpawnOptions(
                context=context,
                notify_on_complete=not params.wait,
                notify_target=self._notify_target if not params.wait else None,
            ),
        )

        if not params.wait:
            return ToolOk(
                message=(
                    f"{identity.emoji} Handed to {identity.name}. "
                    "You'll be notified when it's done."
                ),
                data={"task_id": task.id, "agent_id": params.agent_id, "async": True},
            )

        try:
            done = await self._registry.wait_for_task(task.id, DELEGATE_WAIT_TIMEOUT_MS)
        except TaskWaitTimeoutError:
            return ToolError(
                message="Task timed out. Check status with get_task_status.",
                data={"task_id": task.id},
            )
        except SubAgentError as e:
            return ToolError(message=f"Could not wait for task: {e}", data={"task_id": task.id})

        if done.status is TaskStatus.COMPLETED:
            return ToolOk(
                message=f"{identity.emoji} {identity.name} completed the task",
                data={"task_id": task.id, "agent_name": identity.name, "result": done.result},
            )
        return ToolError(message=f"Task failed: {done.error}", data={"task_id": task.id})


# ---------------------------------------------------------------------------
# Tool: get_task_status
# ---------------------------------------------------------------------------


class GetTaskStatusParams(BaseModel):
    task_id: str = Field(description="The task ID to check")


class GetTaskStatusTool(BaseTool[GetTaskStatusParams]):
    name: ClassVar[str] = "get_task_status"
    description: ClassVar[str] = "Check the status of a delegated task"
    param_model: ClassVar[type[BaseModel]] = GetTaskStatusParams

    def __init__(self, registry: SubAgentRegistry) -> None:
        self._registry = registry

    async def execute(self, params: GetTaskStatusParams) -> ToolResult:
        task = self._registry.get_task(params.task_id)
        if task is None:
            return ToolError(message=f"Task not found: {params.task_id}")

        data = task.to_dict()
        data.pop("prompt")
        data.pop("context")
        return ToolOk(message=f"Task status: {task.status.value}", data=data)


# ---------------------------------------------------------------------------
# Tool: agent_info
# ---------------------------------------------------------------------------


class AgentInfoParams(BaseModel):
    agent_id: str = Field(description="Agent ID")


class AgentInfoTool(BaseTool[AgentInfoParams]):
    name: ClassVar[str] = "agent_info"
    description: ClassVar[str] = "Get detailed information about a specific sub-agent"
    param_model: ClassVar[type[BaseModel]] = AgentInfoParams

    def __init__(self, registry: SubAgentRegistry) -> None:
        self._registry = registry

    async def execute(self, params: AgentInfoParams) -> ToolResult:
        state = self._registry.get(params.agent_id)
        if state is None:
            return ToolError(message=f"Agent not found: {params.agent_id}")

        config = state.config
        identity = config.identity
        return ToolOk(
            message=f"{identity.emoji} {identity.name}",
            data={
                "id": config.specialty.id,
                "identity": {
                    "name": identity.name,
                    "emoji": identity.emoji,
                    "persona": identity.persona,
                    "voice": identity.voice.value if identity.voice else None,
                },
                "specialty": {
                    "name": config.specialty.display_name,
                    "description": config.specialty.description,
                    "tools": config.specialty.tools,
                },
                "enabled": config.enabled,
                "model": config.model or "default",
                "active_tasks": len(state.active_tasks),
                "completed_tasks": len(state.completed_tasks),
            },
        )


# ---------------------------------------------------------------------------
# Tool: set_agent_model / list_agent_models
# ---------------------------------------------------------------------------


class SetAgentModelParams(BaseModel):
    agent_id: str = Field(description='Agent ID (e.g. "twitter", "creative")')
    model: str = Field(
        description='Model to use (litellm format, e.g. "openai/gpt-4o-mini") or "default"',
    )


class SetAgentModelTool(BaseTool[SetAgentModelParams]):
    name: ClassVar[str] = "set_agent_model"
    description: ClassVar[str] = (
        "Set the AI model used by a sub-agent. Use \"default\" to reset to the "
        "global model. Applies to tasks delegated afterwards."
    )
    param_model: ClassVar[type[BaseModel]] = SetAgentModelParams

    def __init__(self, registry: SubAgentRegistry) -> None:
        self._registry = registry

    async def execute(self, params: SetAgentModelParams) -> ToolResult:
        state = self._registry.get(params.agent_id)
        if state is None:
            return ToolError(message=f"Agent not found: {params.agent_id}")

        model = None if params.model == "default" else params.model
        self._registry.set_model(params.agent_id, model)

        shown = model or "default (global)"
        identity = state.config.identity
        return ToolOk(
            message=f"{identity.emoji} {identity.name} now uses: {shown}",
            data={"agent_id": params.agent_id, "model": shown},
        )


class ListAgentModelsParams(BaseModel):
    pass


class ListAgentModelsTool(BaseTool[ListAgentModelsParams]):
    name: ClassVar[str] = "list_agent_models"
    description: ClassVar[str] = "Show which model each sub-agent is configured to use"
    param_model: ClassVar[type[BaseModel]] = ListAgentModelsParams

    def __init__(self, registry: SubAgentRegistry) -> None:
        self._registry = registry

    async def execute(self, params: ListAgentModelsParams) -> ToolResult:
        agents = [
            {
                "id": s.config.specialty.id,
                "name": s.config.identity.name,
                "emoji": s.config.identity.emoji,
                "model": s.config.model or "default",
            }
            for s in self._registry.list_enabled()
        ]
        lines = "\n".join(f"{a['emoji']} {a['name']}: {a['model']}" for a in agents)
        return ToolOk(message=f"Agent models:\n{lines}", data={"agents": agents})


# ---------------------------------------------------------------------------
# Tool: recommend_agent_model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ModelProfile:
    strengths: tuple[str, ...]
    cost: Literal["low", "medium", "high"]
    speed: Literal["fast", "medium", "slow"]
    reasoning: Literal["basic", "good", "excellent"]


@dataclass(frozen=True)
class ModelRecommendation:
    recommended: str
    reason: str
    alternatives: tuple[str, ...]


MODEL_PROFILES: dict[str, ModelProfile] = {
    "openai/gpt-4o-mini": ModelProfile(
        ("short-form", "fast", "cheap", "creative-writing"), "low", "fast", "basic"
    ),
    "openai/gpt-4o": ModelProfile(
        ("general", "balanced", "vision", "coding"), "medium", "medium", "good"
    ),
    "anthropic/claude-3-5-sonnet-20241022": ModelProfile(
        ("analysis", "reasoning", "research", "nuance", "long-form"),
        "medium",
        "medium",
        "excellent",
    ),
    "anthropic/claude-3-opus-20240229": ModelProfile(
        ("deep-research", "complex-analysis", "synthesis", "strategy"),
        "high",
        "slow",
        "excellent",
    ),
    "anthropic/claude-3-haiku-20240307": ModelProfile(
        ("fast", "cheap", "simple-tasks", "high-volume"), "low", "fast", "basic"
    ),
    "gemini/gemini-2.0-flash": ModelProfile(
        ("vision", "fast", "multimodal", "images"), "low", "fast", "good"
    ),
}

_SONNET = "anthropic/claude-3-5-sonnet-20241022"
_OPUS = "anthropic/claude-3-opus-20240229"

MODEL_RECOMMENDATIONS: dict[str, ModelRecommendation] = {
    "twitter": ModelRecommendation(
        "openai/gpt-4o-mini",
        "Fast and cheap for short-form content. Tweets are simple, high-volume.",
        ("anthropic/claude-3-haiku-20240307", "gemini/gemini-2.0-flash"),
    ),
    "linkedin": ModelRecommendation(
        _SONNET,
        "B2B content needs nuance and professional tone. Quality over speed.",
        ("openai/gpt-4o", _OPUS),
    ),
    "email": ModelRecommendation(
        _SONNET,
        "Cold outreach needs good reasoning for personalization.",
        ("openai/gpt-4o", "openai/gpt-4o-mini"),
    ),
    "creative": ModelRecommendation(
        "gemini/gemini-2.0-flash",
        "Best for image prompts and visual tasks. Fast multimodal.",
        ("openai/gpt-4o", _SONNET),
    ),
    "analyst": ModelRecommendation(
        _SONNET,
        "Data analysis needs strong reasoning and pattern recognition.",
        (_OPUS, "openai/gpt-4o"),
    ),
    "researcher": ModelRecommendation(
        _OPUS,
        "Deep research benefits from excellent reasoning and synthesis.",
        (_SONNET, "openai/gpt-4o"),
    ),
    "producthunt": ModelRecommendation(
        _SONNET,
        "Launch content is critical. Needs quality and strategic thinking.",
        ("openai/gpt-4o", _OPUS),
    ),
}


class RecommendAgentModelParams(BaseModel):
    agent_id: str | None = Field(
        default=None,
        description="Agent ID to get recommendations for (omit to cover every enabled agent)",
    )


class RecommendAgentModelTool(BaseTool[RecommendAgentModelParams]):
    """Suggest a model per specialist and flag agents that could be optimized."""

    name: ClassVar[str] = "recommend_agent_model"
    description: ClassVar[str] = (
        "Get AI model recommendations for a sub-agent based on its specialty "
        "and task requirements"
    )
    param_model: ClassVar[type[BaseModel]] = RecommendAgentModelParams

    def __init__(self, registry: SubAgentRegistry) -> None:
        self._registry = registry

    async def execute(self, params: RecommendAgentModelParams) -> ToolResult:
        if params.agent_id:
            return self._recommend_one(params.agent_id)

        recommendations = []
        for state in self._registry.list_enabled():
            agent_id = state.config.specialty.id
            rec = MODEL_RECOMMENDATIONS.get(agent_id)
            current = state.config.model or "default"
            recommendations.append(
                {
                    "id": agent_id,
                    "name": state.config.identity.name,
                    "emoji": state.config.identity.emoji,
                    "current": current,
                    "recommended": rec.recommended if rec else "default",
                    "reason": rec.reason if rec else "No specific recommendation",
                    "is_optimal": current == (rec.recommended if rec else "default"),
                }
            )

        lines = "\n".join(
            f"{r['emoji']} {r['name']}: {r['current']}"
            + (" (optimal)" if r["is_optimal"] else f" -> {r['recommended']}")
            for r in recommendations
        )
        to_update = sum(1 for r in recommendations if not r["is_optimal"])
        summary = (
            f"{to_update} agent(s) could be optimized."
            if to_update
            else "All agents are using optimal models."
        )
        return ToolOk(
            message=f"Agent model recommendations:\n{lines}\n\n{summary}",
            data={"recommendations": recommendations, "could_optimize": to_update},
        )

    def _recommend_one(self, agent_id: str) -> ToolResult:
        state = self._registry.get(agent_id)
        if state is None:
            return ToolError(message=f"Agent not found: {agent_id}")

        rec = MODEL_RECOMMENDATIONS.get(agent_id)
        if rec is None:
            return ToolOk(
                message=f"No specific recommendation for {agent_id}. The default model is fine.",
                data={"agent_id": agent_id, "recommended": "default"},
            )

        current = state.config.model or "default"
        is_optimal = current == rec.recommended
        profile = MODEL_PROFILES.get(rec.recommended)
        identity = state.config.identity
        return ToolOk(
            message=(
                f"{identity.emoji} {identity.name}\n"
                f"Recommended: {rec.recommended}\n"
                f"Reason: {rec.reason}\n"
                f"Alternatives: {', '.join(rec.alternatives)}\n"
                f"Current: {current}{' (optimal)' if is_optimal else ''}"
            ),
            data={
                "agent_id": agent_id,
                "current": current,
                "recommended": rec.recommended,
                "reason": rec.reason,
                "alternatives": list(rec.alternatives),
                "is_optimal": is_optimal,
                "profile": asdict(profile) if profile else None,
            },
        )


# ---------------------------------------------------------------------------
# Tool: create_agent
# ---------------------------------------------------------------------------


class CreateAgentParams(BaseModel):
    id: str = Field(description="Unique agent ID (lowercase, no spaces)")
    name: str = Field(description="Agent display name")
    emoji: str = Field(description="Agent emoji")
    persona: str | None = Field(
        default=None, description='Persona (e.g. "a sarcastic copywriter")'
    )
    voice: Literal["professional", "casual", "friendly", "playful"] = Field(
        default="friendly", description="Communication style"
    )
    specialty_name: str = Field(description="Specialty display name")
    specialty_description: str = Field(description="What this agent specializes in")
    system_prompt: str = Field(description="Detailed system prompt for the agent's expertise")
    tools: str = Field(
        default="",
        description="Comma-separated tool names this agent can use (empty = all)",
    )
    model: str | None = Field(
        default=None, description="Model for this agent (defaults to the global model)"
    )


class CreateAgentTool(BaseTool[CreateAgentParams]):
    name: ClassVar[str] = "create_agent"
    description: ClassVar[str] = (
        "Create a new custom sub-agent with a specific personality and expertise"
    )
    param_model: ClassVar[type[BaseModel]] = CreateAgentParams

    def __init__(self, registry: SubAgentRegistry, agents_dir: str | Path) -> None:
        self._registry = registry
        self._agents_dir = agents_dir

    async def execute(self, params: CreateAgentParams) -> ToolResult:
        if not _AGENT_ID.match(params.id):
            return ToolError(message=f"Invalid agent ID: {params.id}")
        if self._registry.get(params.id) is not None:
            return ToolError(message=f"Agent already exists: {params.id}")

        tools = [t.strip() for t in params.tools.split(",") if t.strip()]
        manifest = SubAgentManifest(
            id=params.id,
            identity=AgentIdentity(
                name=params.name,
                emoji=params.emoji,
                persona=params.persona,
                voice=AgentVoice(params.voice),
            ),
            specialty=AgentSpecialty(
                id=params.id,
                display_name=params.specialty_name,
                description=params.specialty_description,
                system_prompt=params.system_prompt,
                tools=tools or None,
            ),
            default_model=params.model,
        )

        try:
            path = create_custom_agent(self._registry, manifest, self._agents_dir)
        except (OSError, SubAgentError) as e:
            return ToolError(message=f"Failed to create agent: {e}")

        return ToolOk(
            message=f"{params.emoji} Created agent {params.name} ({params.id})",
            data={"agent_id": params.id, "path": str(path)},
        )


def create_agent_tools(
    registry: SubAgentRegistry,
    agents_dir: str | Path,
    notify_target: str | None = None,
) -> list[BaseTool]:
    """All agent-management tools, ready for a ``ToolRegistry``."""
    return [
        ListAgentsTool(registry),
        DelegateTaskTool(registry, notify_target=notify_target),
        GetTaskStatusTool(registry),
        AgentInfoTool(registry),
        SetAgentModelTool(registry),
        ListAgentModelsTool(registry),
        RecommendAgentModelTool(registry),
        CreateAgentTool(registry, agents_dir),
    ]
