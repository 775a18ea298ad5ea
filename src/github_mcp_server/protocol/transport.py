"""
Transport layer for MCP protocol communication.

Implements the stdio transport (newline-delimited JSON on stdin/stdout)
and the HTTP transport (one path serving an event-stream subscription on
GET and message submission on POST).
"""

import asyncio
import json
import random
import string
import sys
import time
from typing import Any, AsyncIterator, Dict, Optional, Set, TextIO

import structlog
from aiohttp import web

from .handlers import DEFAULT_SESSION_ID, MCPHandler
from .schemas import (
    MCPError,
    MCPInternalError,
    MCPInvalidRequestError,
    MCPNotification,
    MCPResponse,
    decode_message,
)
from .sessions import PushChannel

logger = structlog.get_logger(__name__)

SESSION_HEADER = "Mcp-Session-Id"
STDIO_SESSION_ID = "stdio"
DEFAULT_KEEPALIVE_SECONDS = 30.0

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": f"Content-Type, {SESSION_HEADER}",
}


class TransportError(Exception):
    """Base exception for transport errors."""

    pass


class StdioTransport:
    """
    Stdio transport for MCP communication.

    Handles JSON-RPC message exchange over stdin/stdout, one request at a
    time, on a single implicit session.
    """

    def __init__(
        self,
        handler: MCPHandler,
        stdin: Optional[TextIO] = None,
        stdout: Optional[TextIO] = None,
        session_id: str = STDIO_SESSION_ID,
    ):
        self.handler = handler
        self.session_id = session_id
        self._stdin = stdin
        self._stdout = stdout
        self._running = False

    async def start(self) -> None:
        """Run the read/route/write loop until EOF or ``stop()``."""
        if self._running:
            raise TransportError("Transport is already running")

        self._running = True
        logger.info("Starting stdio transport", session_id=self.session_id)

        try:
            async for line in self._read_lines():
                response = await self.process_line(line)
                if response is not None:
                    await self.send_response(response)
        finally:
            self._running = False
            logger.info("Stdio transport stopped")

    async def stop(self) -> None:
        """Stop the stdio transport."""
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def process_line(self, line: str) -> Optional[MCPResponse]:
        """
        Decode and route a single line.

        Returns:
            The response to write, or ``None`` for notifications
        """
        try:
            message = decode_message(line)
        except MCPInvalidRequestError as e:
            logger.error("Invalid request format", error=e.message)
            return MCPResponse.from_error(e.request_id, e)
        except MCPError as e:
            logger.error("Invalid JSON received", error=e.message, line=line[:100])
            return MCPResponse.from_error(None, e)

        if isinstance(message, MCPNotification):
            await self.handler.handle_notification(message)
            return None

        logger.info("Processing request", method=message.method, request_id=message.id)
        return await self.handler.handle_request(message, session_id=self.session_id, mirror=False)

    async def send_response(self, response: MCPResponse) -> None:
        """Write one response as a JSON line."""
        logger.debug(
            "Sending MCP response",
            response_id=response.id,
            has_error=response.is_error,
        )
        try:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self._write_line, response.to_json())
        except (OSError, ValueError) as e:
            logger.error("Failed to send message", error=str(e))
            raise TransportError(f"Failed to send message: {e}")

    def _write_line(self, payload: str) -> None:
        stdout = self._stdout or sys.stdout
        stdout.write(payload + "\n")
        stdout.flush()

    async def _read_lines(self) -> AsyncIterator[str]:
        """Yield non-blank lines from stdin until EOF."""
        loop = asyncio.get_running_loop()
        stdin = self._stdin or sys.stdin

        while self._running:
            line = await loop.run_in_executor(None, stdin.readline)
            if not line:
                logger.info("Received EOF on stdin")
                break

            line = line.strip()
            if line:
                yield line


class SSEChannel(PushChannel):
    """Push channel backed by an open ``text/event-stream`` response."""

    def __init__(self, response: web.StreamResponse):
        self.response = response
        self.closed = asyncio.Event()

    async def send(self, envelope: MCPResponse) -> None:
        await self._write(f"data: {envelope.to_json()}\n\n")

    def close(self) -> None:
        self.closed.set()

    async def ping(self) -> None:
        await self._write(": ping\n\n")

    async def _write(self, frame: str) -> None:
        if self.closed.is_set():
            raise ConnectionResetError("Event stream is closed")
        try:
            await self.response.write(frame.encode("utf-8"))
        except (ConnectionError, RuntimeError) as e:
            self.closed.set()
            raise ConnectionResetError(str(e)) from e


def generate_session_id() -> str:
    """Mint ``session-<epoch ms>-<9 base36 chars>``."""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))  # nosec B311
    return f"session-{int(time.time() * 1000)}-{suffix}"


class HttpTransport:
    """
    HTTP transport for MCP communication.

    Serves a single path: GET subscribes to the session's push channel as
    server-sent events, POST submits one JSON-RPC message and returns the
    response in the body.
    """

    def __init__(
        self,
        handler: MCPHandler,
        host: str = "0.0.0.0",
        port: int = 3000,
        path: str = "/mcp",
        keepalive_interval: float = DEFAULT_KEEPALIVE_SECONDS,
    ):
        self.handler = handler
        self.host = host
        self.port = port
        self.path = path
        self.keepalive_interval = keepalive_interval
        self._runner: Optional[web.AppRunner] = None
        self._channels: Set[SSEChannel] = set()

    @property
    def sessions(self):
        return self.handler.sessions

    def create_app(self) -> web.Application:
        """Build the aiohttp application serving the MCP path."""
        app = web.Application()
        app.router.add_route("*", self.path, self._handle_mcp)
        app.router.add_route("*", "/{tail:.*}", self._handle_not_found)
        return app

    async def start(self) -> None:
        """Start listening."""
        if self._runner is not None:
            raise TransportError("Transport is already running")

        # Cancel handlers when the client disconnects so subscribers clean up promptly
        self._runner = web.AppRunner(self.create_app(), handler_cancellation=True)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()

        logger.info(
            "HTTP transport listening",
            url=f"http://{self.host}:{self.port}{self.path}",
        )

    async def stop(self) -> None:
        """Stop HTTP server."""
        if self._runner is None:
            return
        # Release open subscriptions so their handlers finish before cleanup
        for channel in list(self._channels):
            channel.closed.set()
        await self._runner.cleanup()
        self._runner = None
        logger.info("HTTP transport stopped")

    async def _handle_mcp(self, request: web.Request) -> web.StreamResponse:
        if request.method == "OPTIONS":
            return web.Response(status=200, headers=CORS_HEADERS)
        if request.method == "GET":
            return await self._handle_subscribe(request)
        if request.method == "POST":
            return await self._handle_submit(request)
        return await self._handle_not_found(request)

    async def _handle_not_found(self, request: web.Request) -> web.Response:
        return web.json_response({"error": "Not found"}, status=404, headers=CORS_HEADERS)

    async def _handle_subscribe(self, request: web.Request) -> web.StreamResponse:
        """Open the event stream for a session and hold it until the peer goes away."""
        session_id = (
            request.query.get(SESSION_HEADER)
            or request.headers.get(SESSION_HEADER)
            or DEFAULT_SESSION_ID
        )

        response = web.StreamResponse(
            status=200,
            headers={
                **CORS_HEADERS,
                "Content-Type": "text/event-stream",
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                SESSION_HEADER: session_id,
            },
        )
        await response.prepare(request)

        channel = SSEChannel(response)
        keepalive: Optional[asyncio.Task] = None
        self._channels.add(channel)
        logger.info("Subscriber connected", session_id=session_id)

        try:
            await self.sessions.attach(session_id, channel)
            keepalive = asyncio.create_task(self._keepalive(channel, session_id))
            await channel.closed.wait()
        except asyncio.CancelledError:
            logger.info("Subscriber disconnected", session_id=session_id)
            raise
        finally:
            channel.closed.set()
            self._channels.discard(channel)
            if keepalive is not None:
                keepalive.cancel()
            await self.sessions.detach(session_id, channel)

        return response

    async def _keepalive(self, channel: SSEChannel, session_id: str) -> None:
        while True:
            await asyncio.sleep(self.keepalive_interval)
            try:
                await channel.ping()
            except ConnectionError as e:
                logger.info("Keep-alive failed, closing stream", session_id=session_id, error=str(e))
                return

    async def _handle_submit(self, request: web.Request) -> web.Response:
        """Route one JSON-RPC message and answer it in the response body."""
        session_id = (
            request.headers.get(SESSION_HEADER)
            or request.query.get(SESSION_HEADER)
            or generate_session_id()
        )

        try:
            body = await request.read()
            message = decode_message(body)
        except MCPError as e:
            logger.error("Rejected malformed request body", session_id=session_id, error=e.message)
            fault = MCPInternalError(e.message, data=e.data)
            return self._json_response(MCPResponse.from_error(None, fault).model_dump(), status=500)

        headers = {
            SESSION_HEADER: session_id,
            "Access-Control-Expose-Headers": SESSION_HEADER,
        }

        if isinstance(message, MCPNotification):
            if message.is_notification_method:
                await self.handler.handle_notification(message)
                return web.Response(status=202, headers={**CORS_HEADERS, **headers})
            # Every other POST gets an envelope, with id null when none was sent
            message = message.as_request()

        response = await self.handler.handle_request(message, session_id=session_id)
        return self._json_response(response.model_dump(), headers=headers)

    @staticmethod
    def _json_response(
        payload: Dict[str, Any],
        status: int = 200,
        headers: Optional[Dict[str, str]] = None,
    ) -> web.Response:
        return web.Response(
            text=json.dumps(payload, ensure_ascii=False),
            status=status,
            content_type="application/json",
            headers={**CORS_HEADERS, **(headers or {})},
        )
