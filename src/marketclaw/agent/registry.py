"""Sub-agent registry: agent catalog, task queue and the drain loop.

Tasks are executed strictly one at a time across all agents: ``spawn``
enqueues and returns immediately, and a single drain loop (an asyncio task
guarded by ``_processing``) pops tasks in FIFO order and runs each through
the agentic loop. The queue and the per-agent task lists are only mutated
on the event loop thread, so no locking is needed while execution stays
serial.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections import defaultdict, deque
from dataclasses import fields, replace
from typing import Any, Protocol

from marketclaw.agent.errors import (
    AgentDisabledError,
    AgentNotFoundError,
    NoProviderError,
    RegistryClosedError,
    TaskNotFoundError,
    TaskWaitTimeoutError,
)
from marketclaw.agent.loop import resolve_tools, run_task_loop
from marketclaw.agent.prompt import build_agent_prompt
from marketclaw.agent.types import (
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_TASK_TIMEOUT_MS,
    AgentTask,
    SpawnOptions,
    SubAgentConfig,
    SubAgentManifest,
    SubAgentState,
    TaskStatus,
    generate_task_id,
    utcnow,
)
from marketclaw.llm.provider import ChatProvider
from marketclaw.session.wire import Wire
from marketclaw.tool.registry import ToolCatalog

logger = logging.getLogger(__name__)

DEFAULT_WAIT_TIMEOUT_MS = 300_000

_CONFIG_FIELDS = {f.name for f in fields(SubAgentConfig)}


class ProviderSource(Protocol):
    """Anything that can hand out the currently active LLM provider."""

    def get_active(self) -> ChatProvider | None: ...


class SubAgentRegistry:
    """Registry of sub-agents and the serialized task executor.

    Construct one per application and inject it where needed:

        registry = SubAgentRegistry(providers, tool_registry)
        registry.register_from_manifest(manifest)
        task = registry.spawn("researcher", "find competitors")
        done = await registry.wait_for_task(task.id)
        await registry.close()
    """

    def __init__(
        self,
        providers: ProviderSource,
        tools: ToolCatalog,
        wire: Wire | None = None,
    ) -> None:
        self._providers = providers
        self._tools = tools
        self.wire = wire if wire is not None else Wire()

        self._agents: dict[str, SubAgentState] = {}
        self._queue: deque[AgentTask] = deque()
        self._processing = False
        self._drain_task: asyncio.Task[None] | None = None
        self._waiters: dict[str, list[asyncio.Future[AgentTask]]] = defaultdict(list)
        self._closed = False

    # ------------------------------------------------------------------
    # Agent catalog
    # ------------------------------------------------------------------

    def register(self, agent_id: str, config: SubAgentConfig) -> None:
        """Register (or replace) a sub-agent with fresh task lists."""
        if agent_id in self._agents:
            logger.warning("Agent %s already registered, updating", agent_id)

        self._agents[agent_id] = SubAgentState(config=config, is_running=config.enabled)
        logger.info(
            "Sub-agent registered: %s (%s, %s)",
            agent_id,
            config.identity.name,
            config.specialty.display_name,
        )

    def register_from_manifest(
        self,
        manifest: SubAgentManifest,
        overrides: dict[str, Any] | None = None,
    ) -> None:
        """Register an agent from a manifest, applying config overrides."""
        config = SubAgentConfig(
            identity=manifest.identity,
            specialty=replace(manifest.specialty, id=manifest.id),
            model=manifest.default_model,
            enabled=True,
        )
        if overrides:
            config = replace(config, **overrides)

        self.register(manifest.id, config)

    def get(self, agent_id: str) -> SubAgentState | None:
        return self._agents.get(agent_id)

    def list(self) -> list[SubAgentState]:
        return list(self._agents.values())

    def list_enabled(self) -> list[SubAgentState]:
        return [a for a in self._agents.values() if a.config.enabled]

    def ids(self) -> list[str]:
        return list(self._agents.keys())

    def set_enabled(self, agent_id: str, enabled: bool) -> None:
        """Enable/disable an agent. Unknown ids are ignored."""
        state = self._agents.get(agent_id)
        if state:
            state.config.enabled = enabled
            state.is_running = enabled

    def set_model(self, agent_id: str, model: str | None) -> bool:
        """Set the model override; ``None`` resets to the provider default.

        Only tasks spawned afterwards use the new model.
        """
        state = self._agents.get(agent_id)
        if state is None:
            return False

        state.config.model = model
        logger.info("Agent %s model updated: %s", agent_id, model or "default")
        return True

    def get_model(self, agent_id: str) -> str | None:
        state = self._agents.get(agent_id)
        return state.config.model if state else None

    def update_config(self, agent_id: str, **changes: Any) -> bool:
        """Shallow-merge ``changes`` into the agent's config.

        Raises:
            TypeError: A key is not a ``SubAgentConfig`` field.
        """
        state = self._agents.get(agent_id)
        if state is None:
            return False

        unknown = set(changes) - _CONFIG_FIELDS
        if unknown:
            raise TypeError(f"Unknown config field(s): {', '.join(sorted(unknown))}")

        for key, value in changes.items():
            setattr(state.config, key, value)
        if "enabled" in changes:
            state.is_running = state.config.enabled
        return True

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def spawn(
        self,
        agent_id: str,
        prompt: str,
        options: SpawnOptions | None = None,
    ) -> AgentTask:
        """Queue a task for an agent and return it without waiting.

        Must be called from a running event loop.

        Raises:
            AgentNotFoundError: No agent with that id.
            AgentDisabledError: The agent is disabled.
            RegistryClosedError: ``close()`` was called.
        """
        loop = asyncio.get_running_loop()

        if self._closed:
            raise RegistryClosedError("Sub-agent registry is closed")

        state = self._agents.get(agent_id)
        if state is None:
            raise AgentNotFoundError(agent_id)
        if not state.config.enabled:
            raise AgentDisabledError(agent_id)

        options = options or SpawnOptions()
        task = AgentTask(
            id=generate_task_id(),
            agent_id=agent_id,
            prompt=prompt,
            context=options.context,
            model=state.config.model,
            notify_on_complete=options.notify_on_complete,
            notify_target=options.notify_target,
        )

        state.active_tasks.append(task)
        self._queue.append(task)
        logger.info("Task %s spawned for %s: %s", task.id, agent_id, prompt[:50])

        self._ensure_draining(loop)
        return task

    def get_task(self, task_id: str) -> AgentTask | None:
        """Find a task among all agents' active and completed tasks."""
        for state in self._agents.values():
            for task in state.active_tasks:
                if task.id == task_id:
                    return task
            for task in state.completed_tasks:
                if task.id == task_id:
                    return task
        return None

    async def wait_for_task(
        self, task_id: str, timeout_ms: int = DEFAULT_WAIT_TIMEOUT_MS
    ) -> AgentTask:
        """Wait until a task is completed or failed.

        Raises:
            TaskNotFoundError: Unknown (or already evicted) task id.
            TaskWaitTimeoutError: ``timeout_ms`` elapsed first. The task is
                not touched and may still finish later.
        """
        task = self.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        if task.is_terminal:
            return task

        waiter: asyncio.Future[AgentTask] = asyncio.get_running_loop().create_future()
        self._waiters[task_id].append(waiter)
        try:
            return await asyncio.wait_for(waiter, timeout=timeout_ms / 1000)
        except asyncio.TimeoutError:
            raise TaskWaitTimeoutError(task_id) from None
        finally:
            waiters = self._waiters.get(task_id)
            if waiters is not None:
                if waiter in waiters:
                    waiters.remove(waiter)
                if not waiters:
                    del self._waiters[task_id]

    @property
    def queued(self) -> int:
        """Number of tasks waiting to start."""
        return len(self._queue)

    @property
    def is_processing(self) -> bool:
        return self._processing

    async def join(self) -> None:
        """Wait until the queue is drained."""
        while self._processing and self._drain_task is not None:
            await asyncio.shield(self._drain_task)

    async def close(self) -> None:
        """Stop accepting tasks, finish the queue, close the wire."""
        self._closed = True
        await self.join()
        self.wire.close()

    async def __aenter__(self) -> SubAgentRegistry:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Drain loop
    # ------------------------------------------------------------------

    def _ensure_draining(self, loop: asyncio.AbstractEventLoop) -> None:
        if self._processing:
            return
        self._processing = True
        self._drain_task = loop.create_task(self._process_queue())

    async def _process_queue(self) -> None:
        try:
            while self._queue:
                task = self._queue.popleft()
                try:
                    await self._execute_task(task)
                except Exception as e:
                    logger.exception("Task %s execution failed", task.id)
                    if not task.is_terminal:
                        self._fail(task, str(e) or type(e).__name__)
        finally:
            self._processing = False

    async def _execute_task(self, task: AgentTask) -> None:
        state = self._agents.get(task.agent_id)
        if state is None:
            task.status = TaskStatus.FAILED
            task.error = "Agent not found"
            task.completed_at = utcnow()
            self._resolve_waiters(task)
            return

        task.status = TaskStatus.RUNNING
        task.started_at = utcnow()
        started = time.monotonic()
        self.wire.send_task_start(task)

        config = state.config
        try:
            provider = self._providers.get_active()
            if provider is None:
                raise NoProviderError()

            system_prompt = build_agent_prompt(config.identity, config.specialty)
            if task.context is not None:
                system_prompt += (
                    "\n\n# Task Context\n"
                    + json.dumps(task.context, indent=2, ensure_ascii=False, default=str)
                )

            tools = resolve_tools(self._tools, config.specialty.tools)

            result = await run_task_loop(
                prompt=task.prompt,
                system_prompt=system_prompt,
                provider=provider,
                tool_catalog=self._tools,
                tools=tools,
                model=task.model,
                max_iterations=config.max_iterations or DEFAULT_MAX_ITERATIONS,
                timeout_ms=config.task_timeout_ms or DEFAULT_TASK_TIMEOUT_MS,
                started=started,
                label=f"{task.agent_id}/{task.id}",
            )
        except Exception as e:
            self._fail(task, str(e) or type(e).__name__)
            return

        task.status = TaskStatus.COMPLETED
        task.result = result.content
        task.completed_at = utcnow()
        self._archive(task)

        self.wire.send_task_complete(task)
        logger.info("Task %s completed (%s)", task.id, task.agent_id)
        self._resolve_waiters(task)

    def _fail(self, task: AgentTask, error: str) -> None:
        task.status = TaskStatus.FAILED
        task.error = error
        task.completed_at = utcnow()
        self._archive(task)

        self.wire.send_task_error(task)
        logger.error("Task %s failed (%s): %s", task.id, task.agent_id, error)
        self._resolve_waiters(task)

    def _archive(self, task: AgentTask) -> None:
        """Move a finished task from active to the bounded history."""
        state = self._agents.get(task.agent_id)
        if state is None:
            return
        for i, active in enumerate(state.active_tasks):
            if active.id == task.id:
                del state.active_tasks[i]
                break
        # deque(maxlen=...) drops the oldest entry
        state.completed_tasks.append(task)

    def _resolve_waiters(self, task: AgentTask) -> None:
        for waiter in self._waiters.pop(task.id, []):
            if not waiter.done():
                waiter.set_result(task)
