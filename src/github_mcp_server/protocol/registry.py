"""
Tool registry for the MCP server.

Holds the static, ordered mapping from tool name to its descriptor and
handler. Populated once at startup and only read afterwards, so it is
shared by all sessions without locking.
"""

from typing import Any, Awaitable, Callable, Dict, Iterator, List, Mapping

import structlog

from .schemas import Tool, ToolNotFoundError

logger = structlog.get_logger(__name__)

ToolHandler = Callable[[Mapping[str, Any]], Awaitable[Any]]


class ToolRegistry:
    """Registration-ordered collection of tools."""

    def __init__(self) -> None:
        self._tools: Dict[str, Tool] = {}
        self._handlers: Dict[str, ToolHandler] = {}

    def register(self, tool: Tool, handler: ToolHandler) -> None:
        """
        Register a tool with its handler.

        Args:
            tool: Tool descriptor
            handler: Async callable invoked with the call arguments

        Raises:
            ValueError: If a tool with the same name is already registered
        """
        if tool.name in self._tools:
            raise ValueError(f"Tool already registered: {tool.name}")

        self._tools[tool.name] = tool
        self._handlers[tool.name] = handler
        logger.info("Registered tool", tool_name=tool.name)

    def list(self) -> List[Tool]:
        """Return all descriptors in registration order."""
        return list(self._tools.values())

    def resolve(self, name: Any) -> ToolHandler:
        """
        Look up the handler for a tool name.

        Raises:
            ToolNotFoundError: If no tool is registered under ``name``
        """
        if not isinstance(name, str) or name not in self._handlers:
            raise ToolNotFoundError(name)
        return self._handlers[name]

    def get(self, name: str) -> Tool:
        if name not in self._tools:
            raise ToolNotFoundError(name)
        return self._tools[name]

    @property
    def names(self) -> List[str]:
        return list(self._tools.keys())

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[Tool]:
        return iter(self.list())
