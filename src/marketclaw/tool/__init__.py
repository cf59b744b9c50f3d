"""Tool system: base classes and registry."""

from marketclaw.tool.base import (
    BaseTool,
    ToolDefinition,
    ToolError,
    ToolOk,
    ToolResult,
)
from marketclaw.tool.registry import ToolCatalog, ToolRegistry

__all__ = [
    "BaseTool",
    "ToolDefinition",
    "ToolResult",
    "ToolOk",
    "ToolError",
    "ToolCatalog",
    "ToolRegistry",
]
