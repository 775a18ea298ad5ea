"""
Pytest configuration and fixtures for GitHub MCP Server tests.
"""

import asyncio
from typing import List
from unittest.mock import AsyncMock

import pytest
from aiohttp.test_utils import TestClient, TestServer

from github_mcp_server.client.github_client import GitHubClient
from github_mcp_server.config.settings import Config, GitHubConfig, ServerConfig
from github_mcp_server.protocol.handlers import MCPHandler
from github_mcp_server.protocol.registry import ToolRegistry
from github_mcp_server.protocol.schemas import MCPResponse, Tool, ToolParameter, ToolSchema
from github_mcp_server.protocol.sessions import PushChannel, SessionStore
from github_mcp_server.protocol.transport import HttpTransport
from github_mcp_server.tools import create_tools


class RecordingChannel(PushChannel):
    """Push channel that keeps what it was sent."""

    def __init__(self, fail: bool = False):
        self.sent: List[MCPResponse] = []
        self.fail = fail

    async def send(self, envelope: MCPResponse) -> None:
        if self.fail:
            raise ConnectionResetError("peer went away")
        self.sent.append(envelope)

    @property
    def ids(self):
        return [envelope.id for envelope in self.sent]


class BlockingChannel(PushChannel):
    """Push channel whose writes wait until released."""

    def __init__(self):
        self.release = asyncio.Event()
        self.entered = asyncio.Event()
        self.sent: List[MCPResponse] = []
        self.closed = False

    async def send(self, envelope: MCPResponse) -> None:
        self.entered.set()
        await self.release.wait()
        self.sent.append(envelope)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def test_config():
    """Create a test configuration."""
    return Config(
        version="1.0.0-test",
        github=GitHubConfig(
            api_url="http://localhost:8000",
            token="test-token",
            timeout_seconds=5,
            max_retries=1,
        ),
        server=ServerConfig(log_level="DEBUG", port=3000),
    )


@pytest.fixture
def mock_github_client():
    """Create a mock GitHub client."""
    client = AsyncMock(spec=GitHubClient)
    client.connected = True

    client.get_user.return_value = {"login": "octocat"}
    client.get_authenticated_user.return_value = {"login": "me", "id": 1}
    client.get_repository.return_value = {"full_name": "octocat/Hello-World", "private": False}
    client.list_user_repositories.return_value = [{"name": "Hello-World"}]
    client.list_organization_repositories.return_value = [{"name": "docs"}, {"name": "linguist"}]

    return client


@pytest.fixture
def registry(mock_github_client):
    """Registry holding the real tools over the mocked client."""
    registry = ToolRegistry()
    for tool in create_tools(mock_github_client):
        registry.register(tool.get_schema(), tool)
    return registry


@pytest.fixture
def sessions():
    return SessionStore()


@pytest.fixture
def handler(registry, sessions):
    """Create MCP handler instance."""
    return MCPHandler(registry=registry, sessions=sessions)


@pytest.fixture
def sample_tool():
    """Create a sample tool for testing."""
    return Tool(
        name="echo",
        description="Echo the message back",
        inputSchema=ToolSchema(
            type="object",
            properties={"message": ToolParameter(type="string", description="Test message")},
            required=["message"],
        ),
    )


@pytest.fixture
def recording_channel():
    return RecordingChannel()


@pytest.fixture
def make_channel():
    """Factory for recording channels (``fail=True`` raises on every write)."""
    return RecordingChannel


@pytest.fixture
def blocking_channel():
    return BlockingChannel()


@pytest.fixture
def http_transport(handler):
    """HTTP transport with a short keep-alive so tests observe pings quickly."""
    return HttpTransport(handler, host="127.0.0.1", port=0, keepalive_interval=0.05)


@pytest.fixture
async def http_client(http_transport):
    """Test client bound to the transport's application."""
    async with TestClient(TestServer(http_transport.create_app())) as client:
        yield client
