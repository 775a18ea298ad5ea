"""
Unit tests for the GitHub REST client.
"""

import aiohttp
import pytest
from aiohttp import test_utils, web

from github_mcp_server.client.github_client import GitHubClient, GitHubClientError
from github_mcp_server.config.settings import GitHubConfig


def fake_github_app(seen):
    """Minimal stand-in for api.github.com that records what it receives."""

    async def user(request):
        seen.append(request)
        login = request.match_info["login"]
        if login == "ghost":
            return web.json_response({"message": "Not Found"}, status=404)
        if login == "broken":
            return web.Response(text="upstream exploded", status=502)
        if login == "limited":
            return web.json_response(
                {"login": login},
                headers={"x-ratelimit-remaining": "0", "x-ratelimit-reset": "1700000000"},
            )
        return web.json_response({"login": login})

    async def authenticated(request):
        seen.append(request)
        return web.json_response({"login": "me"})

    async def repository(request):
        seen.append(request)
        info = request.match_info
        return web.json_response({"full_name": f"{info['owner']}/{info['repo']}"})

    async def listing(request):
        seen.append(request)
        return web.json_response([{"name": "one"}, {"name": "two"}])

    app = web.Application()
    app.router.add_get("/user", authenticated)
    app.router.add_get("/users/{login}", user)
    app.router.add_get("/users/{login}/repos", listing)
    app.router.add_get("/orgs/{org}/repos", listing)
    app.router.add_get("/repos/{owner}/{repo}", repository)
    return app


@pytest.fixture
def seen():
    return []


@pytest.fixture
async def github_server(seen):
    async with test_utils.TestServer(fake_github_app(seen)) as server:
        yield server


@pytest.fixture
async def client(github_server):
    config = GitHubConfig(api_url=str(github_server.make_url("/")), token="t0k", max_retries=1)
    client = GitHubClient(config)
    yield client
    await client.disconnect()


class TestGitHubClient:
    """Test requests, headers and error translation."""

    @pytest.mark.asyncio
    async def test_get_user_sends_headers(self, client, seen):
        assert await client.get_user("octocat") == {"login": "octocat"}

        headers = seen[0].headers
        assert headers["Authorization"] == "Bearer t0k"
        assert headers["Accept"] == "application/vnd.github+json"
        assert headers["X-GitHub-Api-Version"] == "2022-11-28"
        assert client.connected

    @pytest.mark.asyncio
    async def test_endpoints(self, client, seen):
        assert await client.get_authenticated_user() == {"login": "me"}
        assert await client.get_repository("octocat", "Hello-World") == {
            "full_name": "octocat/Hello-World"
        }

        assert [request.path for request in seen] == ["/user", "/repos/octocat/Hello-World"]

    @pytest.mark.asyncio
    async def test_listing_passes_only_given_options(self, client, seen):
        await client.list_user_repositories("octocat", sort="updated", per_page=10)
        await client.list_organization_repositories("github", type="public", page=3)

        assert seen[0].path == "/users/octocat/repos"
        assert dict(seen[0].query) == {"sort": "updated", "per_page": "10"}
        assert seen[1].path == "/orgs/github/repos"
        assert dict(seen[1].query) == {"type": "public", "page": "3"}

    @pytest.mark.asyncio
    async def test_api_error_uses_message(self, client):
        with pytest.raises(GitHubClientError) as exc_info:
            await client.get_user("ghost")

        assert exc_info.value.message == "Not Found"
        assert exc_info.value.status == 404

    @pytest.mark.asyncio
    async def test_api_error_without_json(self, client):
        with pytest.raises(GitHubClientError) as exc_info:
            await client.get_user("broken")

        assert exc_info.value.message == "HTTP 502: Bad Gateway"

    @pytest.mark.asyncio
    async def test_rate_limit(self, client):
        with pytest.raises(GitHubClientError) as exc_info:
            await client.get_user("limited")

        assert exc_info.value.message == "Rate limit exceeded. Reset at: 2023-11-14T22:13:20+00:00"

    @pytest.mark.asyncio
    async def test_api_errors_are_not_retried(self, github_server, seen):
        config = GitHubConfig(api_url=str(github_server.make_url("/")), token="t0k", max_retries=3)
        client = GitHubClient(config)
        try:
            with pytest.raises(GitHubClientError):
                await client.get_user("ghost")
        finally:
            await client.disconnect()

        assert len(seen) == 1

    @pytest.mark.asyncio
    async def test_connection_failure(self):
        port = test_utils.unused_port()
        client = GitHubClient(
            GitHubConfig(api_url=f"http://127.0.0.1:{port}", token="t0k", max_retries=1)
        )
        try:
            with pytest.raises(GitHubClientError) as exc_info:
                await client.get_user("octocat")
        finally:
            await client.disconnect()

        assert exc_info.value.message.startswith("GitHub API request failed")
        assert exc_info.value.original_error is not None

    def test_token_is_required(self, monkeypatch):
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)

        with pytest.raises(GitHubClientError) as exc_info:
            GitHubClient(GitHubConfig())

        assert exc_info.value.message == "GITHUB_TOKEN environment variable is required"

    @pytest.mark.asyncio
    async def test_disconnect_keeps_external_session(self, github_server):
        async with aiohttp.ClientSession() as session:
            client = GitHubClient(
                GitHubConfig(api_url=str(github_server.make_url("/")), token="t0k"),
                session=session,
            )
            assert await client.get_user("octocat") == {"login": "octocat"}

            await client.disconnect()

            assert not session.closed
