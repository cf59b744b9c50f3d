"""Sub-agent system: types, registry, agentic loop, loader, tools."""

from marketclaw.agent.errors import (
    AgentDisabledError,
    AgentNotFoundError,
    InvalidManifestError,
    NoProviderError,
    RegistryClosedError,
    SubAgentError,
    TaskNotFoundError,
    TaskTimeoutError,
    TaskWaitTimeoutError,
)
from marketclaw.agent.loader import create_custom_agent, initialize_agents, load_custom_agents
from marketclaw.agent.loop import LoopResult, TurnOutcome, run_task_loop
from marketclaw.agent.prompt import build_agent_prompt
from marketclaw.agent.registry import SubAgentRegistry
from marketclaw.agent.specialists import load_builtin_specialists
from marketclaw.agent.tools import create_agent_tools
from marketclaw.agent.types import (
    AgentIdentity,
    AgentSpecialty,
    AgentTask,
    AgentVoice,
    SpawnOptions,
    SubAgentConfig,
    SubAgentManifest,
    SubAgentState,
    TaskStatus,
)

__all__ = [
    "AgentIdentity",
    "AgentSpecialty",
    "AgentTask",
    "AgentVoice",
    "SpawnOptions",
    "SubAgentConfig",
    "SubAgentManifest",
    "SubAgentState",
    "TaskStatus",
    "SubAgentRegistry",
    "build_agent_prompt",
    "run_task_loop",
    "LoopResult",
    "TurnOutcome",
    "initialize_agents",
    "load_custom_agents",
    "create_custom_agent",
    "load_builtin_specialists",
    "create_agent_tools",
    "SubAgentError",
    "AgentNotFoundError",
    "AgentDisabledError",
    "RegistryClosedError",
    "NoProviderError",
    "TaskTimeoutError",
    "TaskWaitTimeoutError",
    "TaskNotFoundError",
    "InvalidManifestError",
]
