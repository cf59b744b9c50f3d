"""Base tool classes with Pydantic parameter validation."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


@dataclass
class ToolDefinition:
    """What the model sees of a tool: name, description, JSON Schema."""

    name: str
    description: str = ""
    parameters: dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )

    def to_openai_spec(self) -> dict[str, Any]:
        """Convert to OpenAI function tool specification."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


@dataclass
class ToolResult:
    """Base result from a tool execution."""

    success: bool = True
    message: str = ""
    data: Any = None


@dataclass
class ToolOk(ToolResult):
    """Successful tool result."""

    success: bool = True


@dataclass
class ToolError(ToolResult):
    """Failed tool result."""

    success: bool = False


class BaseTool(ABC, Generic[T]):
    """Base class for all tools.

    Each tool declares its parameters as a Pydantic model (the type parameter T).

    Usage:
        class MyParams(BaseModel):
            agent_id: str
            wait: bool = True

        class MyTool(BaseTool[MyParams]):
            name = "my_tool"
            description = "Does something useful"
            param_model = MyParams

            async def execute(self, params: MyParams) -> ToolResult:
                return ToolOk(message="done")
    """

    name: ClassVar[str]
    description: ClassVar[str]
    param_model: ClassVar[type[BaseModel]]

    async def __call__(self, arguments: dict[str, Any]) -> ToolResult:
        """Validate arguments and execute.

        Validation failures and exceptions become ``ToolError`` results so the
        model can see what went wrong.
        """
        try:
            params = self.param_model.model_validate(arguments or {})
        except Exception as e:
            return ToolError(message=f"Invalid parameters: {e}")

        try:
            return await self.execute(params)  # type: ignore[arg-type]
        except Exception as e:
            logger.error("Tool %s execution error: %s", self.name, e, exc_info=True)
            return ToolError(message=f"Error executing {self.name}: {e}")

    @abstractmethod
    async def execute(self, params: T) -> ToolResult:
        """Execute the tool with validated parameters."""
        ...

    def definition(self) -> ToolDefinition:
        schema = self.param_model.model_json_schema()
        # Strip the title and $defs that Pydantic adds; LLMs don't need them
        schema.pop("title", None)
        schema.pop("$defs", None)
        return ToolDefinition(
            name=self.name, description=self.description, parameters=schema
        )

    def to_openai_spec(self) -> dict[str, Any]:
        return self.definition().to_openai_spec()
