"""Sub-agent error types."""

from __future__ import annotations


class SubAgentError(Exception):
    """Base class for sub-agent registry errors."""


class AgentNotFoundError(SubAgentError):
    def __init__(self, agent_id: str) -> None:
        self.agent_id = agent_id
        super().__init__(f"Sub-agent not found: {agent_id}")


class AgentDisabledError(SubAgentError):
    def __init__(self, agent_id: str) -> None:
        self.agent_id = agent_id
        super().__init__(f"Sub-agent is disabled: {agent_id}")


class RegistryClosedError(SubAgentError):
    """Raised by ``spawn`` once the registry has been closed."""


class NoProviderError(SubAgentError):
    def __init__(self) -> None:
        super().__init__("No AI provider configured")


class TaskTimeoutError(SubAgentError):
    """A task ran past its agent's ``task_timeout_ms``."""

    def __init__(self, timeout_ms: int) -> None:
        self.timeout_ms = timeout_ms
        super().__init__(f"Task timed out after {timeout_ms}ms")


class TaskWaitTimeoutError(SubAgentError):
    """``wait_for_task`` gave up; the task itself may still be running."""

    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f"Task timeout: {task_id}")


class TaskNotFoundError(SubAgentError):
    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f"Task not found: {task_id}")


class InvalidManifestError(SubAgentError, ValueError):
    """A sub-agent manifest is missing required fields or is malformed."""
