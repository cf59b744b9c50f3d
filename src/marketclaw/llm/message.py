"""Message types for the LLM abstraction."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Literal

logger = logging.getLogger(__name__)

Role = Literal["system", "user", "assistant", "tool"]


@dataclass
class ToolCall:
    """A complete tool call extracted from a model response."""

    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_openai(cls, data: dict[str, Any]) -> ToolCall:
        """Build from an OpenAI-format ``tool_calls`` entry.

        Arguments arrive as a JSON string; malformed JSON degrades to ``{}``.
        """
        func = data.get("function") or {}
        raw = func.get("arguments") or ""
        if isinstance(raw, dict):
            args = raw
        else:
            try:
                args = json.loads(raw) if raw else {}
            except json.JSONDecodeError:
                logger.warning(
                    "Failed to parse tool call arguments for %s: %s",
                    func.get("name"),
                    raw[:200],
                )
                args = {}
        return cls(id=data.get("id") or "", name=func.get("name") or "", arguments=args)

    def to_openai_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": json.dumps(self.arguments)},
        }


@dataclass
class TokenUsage:
    """Token usage stats from an LLM call."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0


@dataclass
class Message:
    """A conversation message.

    Assistant messages may carry ``tool_calls``; tool messages carry the
    ``tool_call_id`` they answer.
    """

    role: Role
    content: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
    tool_call_id: str | None = None

    # --- Convenience constructors ---

    @classmethod
    def system(cls, text: str) -> Message:
        return cls(role="system", content=text)

    @classmethod
    def user(cls, text: str) -> Message:
        return cls(role="user", content=text)

    @classmethod
    def assistant(
        cls, text: str = "", tool_calls: list[ToolCall] | None = None
    ) -> Message:
        return cls(role="assistant", content=text, tool_calls=list(tool_calls or []))

    @classmethod
    def tool_result(cls, tool_call_id: str, content: str) -> Message:
        return cls(role="tool", content=content, tool_call_id=tool_call_id)

    def to_openai_dict(self) -> dict[str, Any]:
        """Convert to OpenAI API format."""
        if self.role == "tool":
            return {
                "role": "tool",
                "tool_call_id": self.tool_call_id or "",
                "content": self.content,
            }

        if self.role == "assistant":
            result: dict[str, Any] = {
                "role": "assistant",
                "content": self.content or None,
            }
            if self.tool_calls:
                result["tool_calls"] = [tc.to_openai_dict() for tc in self.tool_calls]
            return result

        # system or user
        return {"role": self.role, "content": self.content}
