"""Tool registry: register, describe, and execute tools."""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

from marketclaw.tool.base import BaseTool, ToolDefinition, ToolError, ToolResult

logger = logging.getLogger(__name__)


@runtime_checkable
class ToolCatalog(Protocol):
    """What the agentic loop needs from a tool source."""

    def get_definitions(self) -> list[ToolDefinition]: ...

    async def execute(self, name: str, arguments: dict[str, Any]) -> ToolResult: ...


class ToolRegistry:
    """Registry of available tools.

    Manages tool registration, lookup, and execution. Tools are registered
    by name; sub-agents see either all of them or an allowlisted subset.
    """

    def __init__(self) -> None:
        self._tools: dict[str, BaseTool] = {}

    def register(self, tool: BaseTool) -> None:
        """Register a tool instance."""
        if tool.name in self._tools:
            logger.warning("Tool %s already registered, overwriting", tool.name)
        self._tools[tool.name] = tool

    def register_many(self, tools: list[BaseTool]) -> None:
        for tool in tools:
            self.register(tool)

    def get(self, name: str) -> BaseTool | None:
        return self._tools.get(name)

    def get_definitions(self, names: list[str] | None = None) -> list[ToolDefinition]:
        """Get tool definitions, optionally filtered by name.

        Args:
            names: If provided, only return definitions for these tools.
                   If None, return all.
        """
        tools = self._tools.values()
        if names is not None:
            tools = [t for t in tools if t.name in names]
        return [t.definition() for t in tools]

    def names(self) -> list[str]:
        return list(self._tools.keys())

    async def execute(self, name: str, arguments: dict[str, Any]) -> ToolResult:
        """Execute a tool by name.

        Unknown tools produce a ``ToolError`` rather than raising.
        """
        tool = self._tools.get(name)
        if tool is None:
            return ToolError(
                message=f"Tool not found: {name}. Available tools: {', '.join(self.names())}"
            )

        return await tool(arguments)

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools
