"""The agentic loop: one task, bounded by iterations and wall-clock time."""

from __future__ import annotations

import asyncio
import enum
import json
import logging
import time
from collections.abc import Awaitable
from dataclasses import asdict, dataclass, field, is_dataclass
from typing import Any, Callable, TypeVar

from marketclaw.agent.errors import TaskTimeoutError
from marketclaw.agent.types import DEFAULT_MAX_ITERATIONS, DEFAULT_TASK_TIMEOUT_MS
from marketclaw.llm.message import Message
from marketclaw.llm.provider import ChatProvider, CompletionRequest, CompletionResponse
from marketclaw.tool.base import ToolDefinition
from marketclaw.tool.registry import ToolCatalog

logger = logging.getLogger(__name__)

R = TypeVar("R")


class TurnOutcome(enum.Enum):
    """Why did the loop end?"""

    COMPLETE = "complete"  # Model answered without tool calls
    MAX_ITERATIONS = "max_iterations"  # Ran out of rounds while still calling tools


@dataclass
class LoopResult:
    content: str
    outcome: TurnOutcome
    iterations: int
    messages: list[Message] = field(default_factory=list)


def resolve_tools(
    catalog: ToolCatalog, allowlist: list[str] | None
) -> list[ToolDefinition]:
    """Full catalog, or exactly the allowlisted definitions when one is set."""
    definitions = catalog.get_definitions()
    if allowlist:
        definitions = [d for d in definitions if d.name in allowlist]
    return definitions


async def run_task_loop(
    prompt: str,
    system_prompt: str,
    provider: ChatProvider,
    tool_catalog: ToolCatalog,
    tools: list[ToolDefinition],
    model: str | None = None,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    timeout_ms: int = DEFAULT_TASK_TIMEOUT_MS,
    started: float | None = None,
    label: str = "",
    on_iteration: Callable[[int, CompletionResponse], None] | None = None,
) -> LoopResult:
    """Run the ask-model / run-tools cycle for one task.

    Each round:
    1. Check the deadline (``started`` + ``timeout_ms``)
    2. Call the provider with the full history, system prompt, tools, model
    3. No tool calls -> that content is the answer
    4. Otherwise record the assistant message, execute each tool call in
       order, record each result, and go again

    Provider and tool calls are also bounded by the time left before the
    deadline, so a single slow call surfaces as ``TaskTimeoutError`` too.

    Args:
        prompt: The task prompt (first user message).
        system_prompt: Fully rendered system prompt, task context included.
        provider: LLM provider.
        tool_catalog: Where tool calls are executed.
        tools: Definitions the model is allowed to see.
        model: Per-agent model override; ``None`` uses the provider default.
        max_iterations: Maximum number of provider calls.
        timeout_ms: Wall-clock budget for the whole task.
        started: ``time.monotonic()`` reading when the task started.
        label: Used in log lines (usually ``agent_id/task_id``).
        on_iteration: Callback after each provider response.

    Raises:
        TaskTimeoutError: The deadline passed.
        Exception: Anything the provider or tool catalog raises.
    """
    if started is None:
        started = time.monotonic()
    deadline = started + timeout_ms / 1000

    history: list[Message] = [Message.user(prompt)]

    iteration = 0
    while iteration < max_iterations:
        if time.monotonic() > deadline:
            raise TaskTimeoutError(timeout_ms)

        iteration += 1
        logger.debug("Task %s: iteration %d/%d", label, iteration, max_iterations)

        response = await _bounded(
            provider.complete(
                CompletionRequest(
                    messages=list(history),
                    system_prompt=system_prompt,
                    tools=tools if tools else None,
                    model=model,
                )
            ),
            deadline,
            timeout_ms,
        )
        if on_iteration:
            on_iteration(iteration, response)

        if not response.tool_calls:
            logger.info("Task %s answered after %d iteration(s)", label, iteration)
            return LoopResult(
                content=response.content,
                outcome=TurnOutcome.COMPLETE,
                iterations=iteration,
                messages=history,
            )

        history.append(Message.assistant(response.content, response.tool_calls))

        for tool_call in response.tool_calls:
            logger.info("Task %s: calling tool %s", label, tool_call.name)
            result = await _bounded(
                tool_catalog.execute(tool_call.name, tool_call.arguments),
                deadline,
                timeout_ms,
            )
            history.append(Message.tool_result(tool_call.id, _serialize_result(result)))

    # Text riding along with tool calls is not an answer.
    logger.warning("Task %s hit max iterations (%d)", label, max_iterations)
    return LoopResult(
        content="",
        outcome=TurnOutcome.MAX_ITERATIONS,
        iterations=iteration,
        messages=history,
    )


async def _bounded(awaitable: Awaitable[R], deadline: float, timeout_ms: int) -> R:
    """Await ``awaitable`` but give up once ``deadline`` passes."""
    remaining = deadline - time.monotonic()
    if remaining <= 0:
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise TaskTimeoutError(timeout_ms)

    call = asyncio.ensure_future(awaitable)
    try:
        done, _ = await asyncio.wait({call}, timeout=remaining)
    except asyncio.CancelledError:
        call.cancel()
        raise

    if call not in done:
        call.cancel()
        await asyncio.gather(call, return_exceptions=True)
        raise TaskTimeoutError(timeout_ms)

    # Exceptions raised by the call itself (even its own TimeoutError)
    # propagate unchanged as ordinary execution errors.
    return call.result()


def _serialize_result(result: Any) -> str:
    if is_dataclass(result) and not isinstance(result, type):
        payload = asdict(result)
    else:
        payload = result
    try:
        return json.dumps(payload, default=str)
    except (TypeError, ValueError):
        return str(result)
