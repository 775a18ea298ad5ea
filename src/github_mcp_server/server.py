"""
Main GitHub MCP Server implementation.

Coordinates all components: the GitHub client, the tool registry, the
session store, the request router and the two transports.
"""

import asyncio
import signal
import sys
from typing import Dict, Optional

import structlog

from .client.github_client import GitHubClient
from .config.settings import Config
from .protocol.handlers import MCPHandler
from .protocol.registry import ToolRegistry
from .protocol.schemas import ServerInfo
from .protocol.sessions import SessionStore
from .protocol.transport import HttpTransport, StdioTransport
from .tools import BaseTool, create_tools

logger = structlog.get_logger(__name__)


class GitHubMCPServer:
    """
    Main MCP server for GitHub lookups.

    Owns the process-wide session store and tool registry, and runs one of
    the transports until it finishes or a shutdown signal arrives.
    """

    def __init__(self, config: Config, client: Optional[GitHubClient] = None):
        """
        Initialize the MCP server.

        Args:
            config: Server configuration
            client: GitHub client to use instead of building one from config
        """
        self.config = config
        self._running = False
        self._shutdown_event = asyncio.Event()

        self.github_client = client or GitHubClient(config.github)

        self.registry = ToolRegistry()
        self._tools: Dict[str, BaseTool] = {}
        self._register_tools()

        self.sessions = SessionStore(push_timeout=config.server.push_timeout_seconds)
        self.mcp_handler = MCPHandler(
            registry=self.registry,
            sessions=self.sessions,
            server_info=ServerInfo(name=config.server.name, version=config.version),
            protocol_version=config.server.protocol_version,
        )

    def _register_tools(self) -> None:
        """Register all available tools with the registry."""
        for tool in create_tools(self.github_client):
            self.registry.register(tool.get_schema(), tool)
            self._tools[tool.name] = tool

        logger.info("Tools registered successfully", enabled_tools=self.registry.names)

    async def start(self) -> None:
        """Open upstream connections."""
        if self._running:
            return

        logger.info("Starting GitHub MCP Server", version=self.config.version)
        await self.github_client.connect()
        self._shutdown_event.clear()
        self._running = True

    async def stop(self) -> None:
        """Release upstream connections and wake any waiting runner."""
        if not self._running:
            return

        logger.info("Stopping GitHub MCP Server")
        self._running = False
        self._shutdown_event.set()
        await self.github_client.disconnect()
        logger.info("Server stopped")

    async def run_stdio(self, transport: Optional[StdioTransport] = None) -> None:
        """
        Run the server over stdin/stdout until EOF or shutdown.

        Args:
            transport: Preconfigured transport (tests inject streams this way)
        """
        transport = transport or StdioTransport(self.mcp_handler)

        await self.start()
        self._setup_signal_handlers()
        try:
            transport_task = asyncio.create_task(transport.start())
            shutdown_task = asyncio.create_task(self._shutdown_event.wait())

            await asyncio.wait(
                {transport_task, shutdown_task},
                return_when=asyncio.FIRST_COMPLETED,
            )

            shutdown_task.cancel()
            if not transport_task.done():
                await transport.stop()
                transport_task.cancel()
            try:
                await transport_task
            except asyncio.CancelledError:
                logger.info("Stdio transport cancelled")
        finally:
            await self.stop()

    async def run_http(self, transport: Optional[HttpTransport] = None) -> None:
        """Run the HTTP transport until a shutdown signal arrives."""
        server_config = self.config.server
        transport = transport or HttpTransport(
            self.mcp_handler,
            host=server_config.host,
            port=server_config.port,
            path=server_config.path,
            keepalive_interval=server_config.keepalive_interval_seconds,
        )

        await self.start()
        self._setup_signal_handlers()
        try:
            await transport.start()
            await self._shutdown_event.wait()
        finally:
            await transport.stop()
            await self.stop()

    def request_shutdown(self) -> None:
        self._shutdown_event.set()

    def _setup_signal_handlers(self) -> None:
        """Set up signal handlers for graceful shutdown."""
        if sys.platform == "win32":
            return

        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, self._on_signal, signum)
            except (NotImplementedError, RuntimeError):
                # Not available off the main thread
                pass

    def _on_signal(self, signum: int) -> None:
        logger.info("Received signal, initiating shutdown", signal=signum)
        self.request_shutdown()

    @property
    def running(self) -> bool:
        """Check if server is running."""
        return self._running

    @property
    def tools(self) -> Dict[str, BaseTool]:
        """Get registered tools."""
        return self._tools.copy()
