"""LLM abstraction layer: unified via litellm."""

from marketclaw.llm.message import Message, TokenUsage, ToolCall
from marketclaw.llm.provider import (
    ChatProvider,
    CompletionRequest,
    CompletionResponse,
    LiteLLMProvider,
    ProviderConfig,
    ProviderRegistry,
    create_provider,
)

__all__ = [
    "Message",
    "ToolCall",
    "TokenUsage",
    "ChatProvider",
    "CompletionRequest",
    "CompletionResponse",
    "LiteLLMProvider",
    "ProviderConfig",
    "ProviderRegistry",
    "create_provider",
]
