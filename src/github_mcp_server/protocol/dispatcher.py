"""
Tool call dispatcher.

Resolves a call by name, invokes the handler and normalizes the outcome
into a ``ToolResult``. Handler failures never escape as protocol faults.
"""

from typing import Any, Mapping, Optional

import structlog

from .registry import ToolRegistry
from .schemas import ToolNotFoundError, ToolResult

logger = structlog.get_logger(__name__)


def error_message(error: BaseException) -> str:
    """Human-readable message for an exception."""
    message = getattr(error, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(error) or type(error).__name__


class ToolDispatcher:
    """Invokes registered tool handlers on behalf of the router."""

    def __init__(self, registry: ToolRegistry):
        self.registry = registry

    async def call(self, name: Optional[str], arguments: Any = None) -> ToolResult:
        """
        Execute a tool call.

        Args:
            name: Tool name, possibly missing
            arguments: Call arguments; anything but a mapping becomes ``{}``

        Returns:
            Successful result with pretty-printed JSON text, or an error
            result with ``isError`` set
        """
        try:
            handler = self.registry.resolve(name)
        except ToolNotFoundError as e:
            logger.warning("Unknown tool requested", tool_name=name)
            return ToolResult.error(e.message)

        args = dict(arguments) if isinstance(arguments, Mapping) else {}
        logger.info("Calling tool", tool_name=name, arguments=args)

        try:
            value = await handler(args)
        except Exception as e:
            logger.warning(
                "Tool execution failed",
                tool_name=name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return ToolResult.error(error_message(e))

        logger.info("Tool execution completed", tool_name=name)
        return ToolResult.from_data(value)
