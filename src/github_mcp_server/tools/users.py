"""
User lookup tools.

Implements get_user and get_authenticated_user on top of the GitHub
users endpoints.
"""

from typing import Any, Dict

from ..protocol.schemas import Tool
from .base import BaseTool


class GetUserTool(BaseTool):
    """Fetch a public GitHub profile by login."""

    name = "get_user"
    description = "Get information about a GitHub user by username"

    def build_schema(self) -> Tool:
        return self._create_schema(
            parameters={
                "username": self._create_parameter(
                    "string", 'GitHub username (for example, "octocat")'
                ),
            },
            required=["username"],
        )

    async def execute(self, arguments: Dict[str, Any]) -> Any:
        username = self._require_text(arguments, "username", "Username is required")
        return await self.client.get_user(username)


class GetAuthenticatedUserTool(BaseTool):
    """Fetch the profile of the token owner."""

    name = "get_authenticated_user"
    description = "Get information about the authenticated user (uses the token from GITHUB_TOKEN)"

    def build_schema(self) -> Tool:
        return self._create_schema(parameters={}, required=[])

    async def execute(self, arguments: Dict[str, Any]) -> Any:
        return await self.client.get_authenticated_user()
