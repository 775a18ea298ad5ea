"""
Unit tests for MCP tools.
"""

import pytest

from github_mcp_server.client.github_client import GitHubClientError
from github_mcp_server.tools import (
    GetAuthenticatedUserTool,
    GetRepositoryTool,
    GetUserTool,
    ListOrganizationRepositoriesTool,
    ListUserRepositoriesTool,
    ToolError,
    ToolExecutionError,
    ToolValidationError,
)


class TestUserTools:
    """Test user lookup tools."""

    @pytest.fixture
    def get_user(self, mock_github_client):
        return GetUserTool(mock_github_client)

    def test_get_schema(self, get_user):
        schema = get_user.get_schema()

        assert schema.name == "get_user"
        assert "username" in schema.inputSchema.properties
        assert schema.inputSchema.required == ["username"]

    @pytest.mark.asyncio
    async def test_execute_success(self, get_user, mock_github_client):
        result = await get_user({"username": "octocat"})

        assert result == {"login": "octocat"}
        mock_github_client.get_user.assert_called_once_with("octocat")

    @pytest.mark.asyncio
    async def test_missing_username(self, get_user, mock_github_client):
        with pytest.raises(ToolValidationError) as exc_info:
            await get_user({})

        assert exc_info.value.code == "validation_error"
        assert exc_info.value.details == {"missing_parameter": "username"}
        mock_github_client.get_user.assert_not_called()

    @pytest.mark.asyncio
    async def test_blank_username(self, get_user):
        with pytest.raises(ToolError) as exc_info:
            await get_user({"username": "   "})

        assert exc_info.value.message == "Username is required"

    @pytest.mark.asyncio
    async def test_wrong_type(self, get_user):
        with pytest.raises(ToolValidationError) as exc_info:
            await get_user({"username": 42})

        assert "must be a string" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_authenticated_user(self, mock_github_client):
        tool = GetAuthenticatedUserTool(mock_github_client)

        assert tool.get_schema().inputSchema.required == []
        assert await tool({}) == {"login": "me", "id": 1}

    @pytest.mark.asyncio
    async def test_client_errors_become_execution_errors(self, get_user, mock_github_client):
        upstream = GitHubClientError("Not Found", status=404)
        mock_github_client.get_user.side_effect = upstream

        with pytest.raises(ToolExecutionError) as exc_info:
            await get_user({"username": "ghost"})

        assert exc_info.value.code == "execution_error"
        assert exc_info.value.message == "Not Found"
        assert exc_info.value.details == {"status": 404}
        assert exc_info.value.__cause__ is upstream
        assert isinstance(exc_info.value, ToolError)


class TestRepositoryTools:
    """Test repository lookup tools."""

    @pytest.mark.asyncio
    async def test_get_repository(self, mock_github_client):
        tool = GetRepositoryTool(mock_github_client)

        result = await tool({"owner": "octocat", "repo": "Hello-World"})

        assert result["full_name"] == "octocat/Hello-World"
        mock_github_client.get_repository.assert_called_once_with("octocat", "Hello-World")

    @pytest.mark.asyncio
    async def test_get_repository_requires_both(self, mock_github_client):
        tool = GetRepositoryTool(mock_github_client)

        with pytest.raises(ToolValidationError):
            await tool({"owner": "octocat"})

    def test_list_user_schema(self, mock_github_client):
        schema = ListUserRepositoriesTool(mock_github_client).get_schema()
        properties = schema.inputSchema.properties

        assert schema.inputSchema.required == ["username"]
        assert properties["type"].enum == ["all", "owner", "member"]
        assert properties["sort"].enum == ["created", "updated", "pushed", "full_name"]
        assert properties["direction"].enum == ["asc", "desc"]
        assert properties["per_page"].type == "number"

    def test_list_org_schema(self, mock_github_client):
        schema = ListOrganizationRepositoriesTool(mock_github_client).get_schema()

        assert schema.inputSchema.required == ["org"]
        assert "sources" in schema.inputSchema.properties["type"].enum

    @pytest.mark.asyncio
    async def test_list_user_repositories_options(self, mock_github_client):
        tool = ListUserRepositoriesTool(mock_github_client)

        await tool(
            {"username": "octocat", "sort": "updated", "direction": "asc", "per_page": 50.0}
        )

        mock_github_client.list_user_repositories.assert_called_once_with(
            "octocat",
            type=None,
            sort="updated",
            direction="asc",
            per_page=50,
            page=None,
        )

    @pytest.mark.asyncio
    async def test_list_org_repositories(self, mock_github_client):
        tool = ListOrganizationRepositoriesTool(mock_github_client)

        result = await tool({"org": "github", "type": "public", "page": 2})

        assert [repo["name"] for repo in result] == ["docs", "linguist"]
        mock_github_client.list_organization_repositories.assert_called_once_with(
            "github",
            type="public",
            sort=None,
            direction=None,
            per_page=None,
            page=2,
        )

    @pytest.mark.asyncio
    async def test_enum_is_enforced(self, mock_github_client):
        tool = ListOrganizationRepositoriesTool(mock_github_client)

        with pytest.raises(ToolValidationError) as exc_info:
            await tool({"org": "github", "type": "owner"})

        assert "must be one of" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_per_page_bounds(self, mock_github_client):
        tool = ListUserRepositoriesTool(mock_github_client)

        with pytest.raises(ToolValidationError):
            await tool({"username": "octocat", "per_page": 500})

    @pytest.mark.asyncio
    async def test_blank_org(self, mock_github_client):
        tool = ListOrganizationRepositoriesTool(mock_github_client)

        with pytest.raises(ToolValidationError) as exc_info:
            await tool({"org": ""})

        assert exc_info.value.message == "Organization name is required"
