"""
MCP Protocol message handlers.

Implements the request router: maps each incoming request onto the
initialize / tools/list / tools/call handlers, builds the response
envelope and applies the delivery policy for the session's push channel.
"""

from typing import Any, Dict, List, Optional

import structlog

from .dispatcher import ToolDispatcher
from .registry import ToolRegistry
from .schemas import (
    CallToolParams,
    InitializeParams,
    MCPError,
    MCPInternalError,
    MCPMethodNotFoundError,
    MCPNotification,
    MCPRequest,
    MCPResponse,
    ServerInfo,
)
from .sessions import SessionStore

logger = structlog.get_logger(__name__)

DEFAULT_PROTOCOL_VERSION = "2024-11-05"
SUPPORTED_PROTOCOL_VERSIONS = ("2024-11-05", "2025-03-26", "2025-06-18")

DEFAULT_SESSION_ID = "default"


class MCPHandler:
    """
    Main handler for MCP protocol messages.

    Stateless per message: everything that outlives a request lives in the
    session store.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        sessions: Optional[SessionStore] = None,
        server_info: Optional[ServerInfo] = None,
        protocol_version: str = DEFAULT_PROTOCOL_VERSION,
    ):
        self.registry = registry
        self.dispatcher = ToolDispatcher(registry)
        self.sessions = sessions if sessions is not None else SessionStore()
        self.server_info = server_info or ServerInfo()
        self.protocol_version = protocol_version

        # Protocol capabilities
        self._capabilities: Dict[str, Any] = {"tools": {}}

    async def handle_request(
        self,
        request: MCPRequest,
        session_id: str = DEFAULT_SESSION_ID,
        mirror: bool = True,
    ) -> MCPResponse:
        """
        Handle incoming MCP request.

        Args:
            request: Incoming request
            session_id: Session the request belongs to
            mirror: Also push the response to the session's live channel

        Returns:
            Response to send back on the synchronous channel
        """
        logger.debug(
            "Handling request",
            method=request.method,
            request_id=request.id,
            session_id=session_id,
        )

        try:
            if request.method == "initialize":
                response = await self._handle_initialize(request, session_id)
                if mirror:
                    await self.sessions.enqueue(session_id, response)
                return response
            elif request.method == "tools/list":
                response = await self._handle_list_tools(request)
            elif request.method == "tools/call":
                response = await self._handle_call_tool(request)
            elif request.method == "ping":
                response = MCPResponse(id=request.id, result={})
            else:
                raise MCPMethodNotFoundError(request.method)

        except MCPError as e:
            logger.warning(
                "MCP error handling request",
                method=request.method,
                request_id=request.id,
                error_code=e.code,
                error_message=e.message,
            )
            response = MCPResponse.from_error(request.id, e)

        except Exception as e:
            logger.error(
                "Unexpected error handling request",
                method=request.method,
                request_id=request.id,
                error=str(e),
                exc_info=True,
            )
            response = MCPResponse.from_error(
                request.id, MCPInternalError(data={"details": str(e)})
            )

        if mirror:
            await self.sessions.publish(session_id, response)
        return response

    async def handle_notification(self, notification: MCPNotification) -> None:
        """Notifications are acknowledged by logging only."""
        logger.info("Received notification", method=notification.method)

    async def _handle_initialize(self, request: MCPRequest, session_id: str) -> MCPResponse:
        """Handle initialize request."""
        params = InitializeParams.parse(request.params)

        logger.info(
            "Initializing MCP session",
            session_id=session_id,
            protocol_version=params.protocolVersion,
            client_info=params.clientInfo.model_dump() if params.clientInfo else None,
        )

        protocol_version = params.protocolVersion
        if protocol_version not in SUPPORTED_PROTOCOL_VERSIONS:
            if protocol_version is not None:
                logger.warning(
                    "Unsupported protocol version",
                    requested=protocol_version,
                    supported=SUPPORTED_PROTOCOL_VERSIONS,
                )
            protocol_version = self.protocol_version

        self.sessions.get_or_create(session_id)

        return MCPResponse(
            id=request.id,
            result={
                "protocolVersion": protocol_version,
                "version": self.server_info.version,
                "capabilities": self._capabilities,
                "serverInfo": self.server_info.model_dump(),
            },
        )

    async def _handle_list_tools(self, request: MCPRequest) -> MCPResponse:
        """Handle list tools request."""
        tools = self.registry.list()
        logger.info("Listing tools", tool_count=len(tools))
        return MCPResponse(id=request.id, result={"tools": [tool.to_dict() for tool in tools]})

    async def _handle_call_tool(self, request: MCPRequest) -> MCPResponse:
        """Handle call tool request."""
        params = CallToolParams(request.params)
        result = await self.dispatcher.call(params.name, params.arguments)

        logger.info(
            "Tool call answered",
            tool_name=params.name,
            request_id=request.id,
            success=not result.is_error,
        )
        return MCPResponse(id=request.id, result=result.to_dict())

    @property
    def capabilities(self) -> Dict[str, Any]:
        return dict(self._capabilities)

    @property
    def tools(self) -> List[Any]:
        """Get list of registered tools."""
        return self.registry.list()
