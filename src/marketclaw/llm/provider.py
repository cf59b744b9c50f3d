"""LLM provider abstraction: unified via litellm.

litellm handles all provider-specific details (Anthropic, OpenAI, Gemini,
Groq, Ollama, OpenRouter, ...) and normalizes responses to the OpenAI
chat-completion shape. We convert that shape into ``CompletionResponse``.

Sub-agents only ever talk to "the active provider", which is picked by the
``ProviderRegistry`` owned by the composition root.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    before_sleep_log,
)

from marketclaw.llm.message import Message, TokenUsage, ToolCall

if TYPE_CHECKING:
    from litellm import ModelResponse

    from marketclaw.tool.base import ToolDefinition

logger = logging.getLogger(__name__)


@dataclass
class ProviderConfig:
    """Configuration for an LLM provider."""

    model: str
    temperature: float | None = None
    max_tokens: int | None = None


@dataclass
class CompletionRequest:
    """One non-streaming completion call."""

    messages: list[Message]
    system_prompt: str = ""
    tools: list[ToolDefinition] | None = None
    model: str | None = None  # Overrides the provider's default model
    temperature: float | None = None
    max_tokens: int | None = None


@dataclass
class CompletionResponse:
    """The provider's answer: text content and/or tool calls."""

    content: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
    model: str = ""
    usage: TokenUsage = field(default_factory=TokenUsage)
    stop_reason: str | None = None

    @property
    def has_tool_calls(self) -> bool:
        return len(self.tool_calls) > 0


@runtime_checkable
class ChatProvider(Protocol):
    """Protocol for LLM providers."""

    @property
    def config(self) -> ProviderConfig: ...

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """Run one chat completion."""
        ...


# ---------------------------------------------------------------------------
# litellm provider
# ---------------------------------------------------------------------------


@dataclass
class LiteLLMProvider:
    """Unified LLM provider using litellm.

    litellm handles provider detection from the model string prefix
    (e.g. "anthropic/claude-...", "gemini/gemini-...", "openai/gpt-...")
    and reads API keys from environment variables automatically.
    """

    _config: ProviderConfig

    @property
    def config(self) -> ProviderConfig:
        return self._config

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        api_messages: list[dict[str, Any]] = []
        if request.system_prompt:
            api_messages.append({"role": "system", "content": request.system_prompt})
        api_messages.extend(m.to_openai_dict() for m in request.messages)

        model = request.model or self._config.model
        kwargs: dict[str, Any] = {"model": model, "messages": api_messages}

        if request.tools:
            kwargs["tools"] = [t.to_openai_spec() for t in request.tools]

        temperature = (
            request.temperature
            if request.temperature is not None
            else self._config.temperature
        )
        if temperature is not None:
            kwargs["temperature"] = temperature

        max_tokens = request.max_tokens or self._config.max_tokens
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens

        response = await _acompletion_with_retry(**kwargs)
        return _response_to_completion(response, model)


@retry(
    retry=retry_if_exception_type((ConnectionError, TimeoutError, OSError)),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=30),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
async def _acompletion_with_retry(**kwargs: Any) -> ModelResponse:
    """Call litellm.acompletion with retry on transient errors."""
    import litellm

    return await litellm.acompletion(**kwargs)


def _response_to_completion(response: Any, model: str) -> CompletionResponse:
    """Convert a litellm ModelResponse into a CompletionResponse.

    litellm responses have the same shape as OpenAI ChatCompletion objects:
      response.choices[0].message.{content, tool_calls},
      response.choices[0].finish_reason, response.usage
    """
    result = CompletionResponse(model=getattr(response, "model", None) or model)

    choices = getattr(response, "choices", None)
    if choices:
        choice = choices[0]
        message = choice.message
        result.stop_reason = getattr(choice, "finish_reason", None)
        result.content = getattr(message, "content", None) or ""

        for tc in getattr(message, "tool_calls", None) or []:
            func = getattr(tc, "function", None)
            result.tool_calls.append(
                ToolCall.from_openai(
                    {
                        "id": getattr(tc, "id", ""),
                        "function": {
                            "name": getattr(func, "name", "") if func else "",
                            "arguments": getattr(func, "arguments", "") if func else "",
                        },
                    }
                )
            )

    usage = getattr(response, "usage", None)
    if usage:
        result.usage = TokenUsage(
            input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            output_tokens=getattr(usage, "completion_tokens", 0) or 0,
            total_tokens=getattr(usage, "total_tokens", 0) or 0,
        )

    return result


# ---------------------------------------------------------------------------
# Active provider selection
# ---------------------------------------------------------------------------


class ProviderRegistry:
    """Named providers with one active selection.

    The first registered provider becomes active.
    """

    def __init__(self) -> None:
        self._providers: dict[str, ChatProvider] = {}
        self._active: str | None = None

    def register(self, name: str, provider: ChatProvider) -> None:
        if name in self._providers:
            logger.warning("Provider %s already registered, overwriting", name)
        self._providers[name] = provider
        if self._active is None:
            self._active = name

    def get(self, name: str) -> ChatProvider | None:
        return self._providers.get(name)

    def get_active(self) -> ChatProvider | None:
        if self._active is None:
            return None
        return self._providers.get(self._active)

    def set_active(self, name: str) -> None:
        if name not in self._providers:
            raise KeyError(f"Provider not registered: {name}")
        self._active = name
        logger.info("Active provider set to %s", name)

    @property
    def active_name(self) -> str | None:
        return self._active

    def names(self) -> list[str]:
        return list(self._providers.keys())


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def create_provider(
    model: str,
    temperature: float | None = None,
    max_tokens: int | None = None,
) -> ChatProvider:
    """Create a LiteLLM provider.

    Args:
        model: Model name with provider prefix (e.g. "anthropic/claude-sonnet-4-5-20250929",
               "openai/gpt-4o", "gemini/gemini-2.0-flash"). litellm detects the
               provider from the prefix and reads API keys from env vars.
        temperature: Sampling temperature.
        max_tokens: Max output tokens.
    """
    config = ProviderConfig(model=model, temperature=temperature, max_tokens=max_tokens)
    return LiteLLMProvider(_config=config)
