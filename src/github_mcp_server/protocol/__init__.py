"""MCP protocol core: envelopes, registry, dispatch, sessions and transports."""

from .dispatcher import ToolDispatcher
from .handlers import MCPHandler
from .registry import ToolRegistry
from .schemas import MCPError, MCPRequest, MCPResponse, Tool, ToolResult
from .sessions import PushChannel, SessionStore
from .transport import HttpTransport, StdioTransport

__all__ = [
    "HttpTransport",
    "MCPError",
    "MCPHandler",
    "MCPRequest",
    "MCPResponse",
    "PushChannel",
    "SessionStore",
    "StdioTransport",
    "Tool",
    "ToolDispatcher",
    "ToolRegistry",
    "ToolResult",
]
