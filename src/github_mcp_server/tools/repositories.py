"""
Repository lookup tools.

Implements get_repository, list_user_repositories and
list_organization_repositories.
"""

from typing import Any, Dict, List

from ..protocol.schemas import Tool, ToolParameter
from .base import BaseTool

SORT_FIELDS = ["created", "updated", "pushed", "full_name"]
DIRECTIONS = ["asc", "desc"]


class GetRepositoryTool(BaseTool):
    """Fetch one repository by owner and name."""

    name = "get_repository"
    description = "Get information about a GitHub repository by owner and repo name"

    def build_schema(self) -> Tool:
        return self._create_schema(
            parameters={
                "owner": self._create_parameter(
                    "string", "Repository owner (username or organization name)"
                ),
                "repo": self._create_parameter("string", "Repository name"),
            },
            required=["owner", "repo"],
        )

    async def execute(self, arguments: Dict[str, Any]) -> Any:
        owner = self._require_text(arguments, "owner", "Owner and repo are required")
        repo = self._require_text(arguments, "repo", "Owner and repo are required")
        return await self.client.get_repository(owner, repo)


class _ListRepositoriesTool(BaseTool):
    """Shared schema and argument handling for the paginated listings."""

    owner_param = ""
    owner_description = ""
    owner_required_message = ""
    type_values: List[str] = []

    def build_schema(self) -> Tool:
        return self._create_schema(
            parameters={
                self.owner_param: self._create_parameter("string", self.owner_description),
                **self._listing_parameters(),
            },
            required=[self.owner_param],
        )

    def _listing_parameters(self) -> Dict[str, ToolParameter]:
        return {
            "type": self._create_parameter(
                "string", "Type of repositories to return. Default: all", enum=self.type_values
            ),
            "sort": self._create_parameter(
                "string", "Field to sort by. Default: full_name", enum=SORT_FIELDS
            ),
            "direction": self._create_parameter(
                "string", "Sort direction. Default: desc", enum=DIRECTIONS
            ),
            "per_page": self._create_parameter(
                "number", "Results per page (1-100). Default: 30", minimum=1, maximum=100
            ),
            "page": self._create_parameter("number", "Page number. Default: 1", minimum=1),
        }

    def _listing_options(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "type": arguments.get("type"),
            "sort": arguments.get("sort"),
            "direction": arguments.get("direction"),
            "per_page": self._optional_int(arguments, "per_page"),
            "page": self._optional_int(arguments, "page"),
        }


class ListUserRepositoriesTool(_ListRepositoriesTool):
    """List repositories owned by a user."""

    name = "list_user_repositories"
    description = "List repositories of a GitHub user"
    owner_param = "username"
    owner_description = "GitHub username"
    owner_required_message = "Username is required"
    type_values = ["all", "owner", "member"]

    async def execute(self, arguments: Dict[str, Any]) -> Any:
        username = self._require_text(arguments, "username", self.owner_required_message)
        return await self.client.list_user_repositories(username, **self._listing_options(arguments))


class ListOrganizationRepositoriesTool(_ListRepositoriesTool):
    """List repositories of an organization."""

    name = "list_organization_repositories"
    description = "List repositories of a GitHub organization"
    owner_param = "org"
    owner_description = "GitHub organization name"
    owner_required_message = "Organization name is required"
    type_values = ["all", "public", "private", "forks", "sources", "member"]

    async def execute(self, arguments: Dict[str, Any]) -> Any:
        org = self._require_text(arguments, "org", self.owner_required_message)
        return await self.client.list_organization_repositories(
            org, **self._listing_options(arguments)
        )
