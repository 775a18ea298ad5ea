"""
GitHub MCP tools implementation.

This module provides the tool implementations that expose GitHub lookups
through the MCP protocol.
"""

from typing import List

from ..client.github_client import GitHubClient
from .base import BaseTool, ToolError, ToolExecutionError, ToolValidationError
from .repositories import GetRepositoryTool, ListOrganizationRepositoriesTool, ListUserRepositoriesTool
from .users import GetAuthenticatedUserTool, GetUserTool

TOOL_CLASSES = [
    GetUserTool,
    GetAuthenticatedUserTool,
    GetRepositoryTool,
    ListUserRepositoriesTool,
    ListOrganizationRepositoriesTool,
]


def create_tools(client: GitHubClient) -> List[BaseTool]:
    """Instantiate every tool, in registration order."""
    return [tool_class(client) for tool_class in TOOL_CLASSES]


__all__ = [
    "BaseTool",
    "ToolError",
    "ToolValidationError",
    "ToolExecutionError",
    "GetUserTool",
    "GetAuthenticatedUserTool",
    "GetRepositoryTool",
    "ListUserRepositoriesTool",
    "ListOrganizationRepositoriesTool",
    "TOOL_CLASSES",
    "create_tools",
]
