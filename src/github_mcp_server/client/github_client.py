"""
GitHub REST API client for the MCP server.

Thin asynchronous wrapper over the endpoints the tools expose, handling
authentication headers, connection pooling, error translation and rate
limit detection.
"""

import asyncio
import random
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Dict, List, Optional

import aiohttp
import structlog

from ..config.settings import GitHubConfig

logger = structlog.get_logger(__name__)


class GitHubClientError(Exception):
    """Base exception for GitHub client errors."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.original_error = original_error


def retry_with_backoff(max_retries=3, base_delay=1.0, max_delay=10.0):
    """
    Decorator for retrying transient network failures with exponential backoff.

    Only connection errors and timeouts are retried; API errors are raised
    immediately. ``self.max_retries`` overrides ``max_retries`` when present.

    Args:
        max_retries: Maximum number of attempts
        base_delay: Initial delay between retries in seconds
        max_delay: Maximum delay between retries in seconds
    """

    def decorator(func):
        @wraps(func)
        async def wrapper(self, *args, **kwargs):
            attempts = max(1, getattr(self, "max_retries", max_retries))
            last_exception = None

            for attempt in range(attempts):
                try:
                    return await func(self, *args, **kwargs)
                except (aiohttp.ClientConnectionError, asyncio.TimeoutError) as e:
                    last_exception = e

                    if attempt < attempts - 1:
                        delay = min(base_delay * (2**attempt) + random.uniform(0, 1), max_delay)  # nosec B311
                        logger.warning(
                            "Request failed, retrying",
                            attempt=attempt + 1,
                            max_attempts=attempts,
                            delay=round(delay, 2),
                            error=str(e) or type(e).__name__,
                        )
                        await asyncio.sleep(delay)
                    else:
                        logger.error("All retry attempts failed", error=str(e) or type(e).__name__)

            raise GitHubClientError(
                f"GitHub API request failed: {str(last_exception) or type(last_exception).__name__}",
                original_error=last_exception,
            )

        return wrapper

    return decorator


class GitHubClient:
    """
    Client for the GitHub REST API.

    The underlying ``aiohttp.ClientSession`` is created lazily on first use
    (or by ``connect()``) so the client can be built outside an event loop.
    """

    def __init__(self, config: GitHubConfig, session: Optional[aiohttp.ClientSession] = None):
        """
        Initialize GitHub client.

        Args:
            config: GitHub connection settings
            session: Externally owned session to use instead of creating one

        Raises:
            GitHubClientError: If no access token is configured
        """
        if not config.token:
            raise GitHubClientError("GITHUB_TOKEN environment variable is required")

        self.config = config
        self.base_url = config.api_url
        self.max_retries = config.max_retries
        self._session = session
        self._owns_session = session is None
        self._connection_lock = asyncio.Lock()

    async def connect(self) -> None:
        """Create the pooled HTTP session if it does not exist yet."""
        async with self._connection_lock:
            if self._session is not None and not self._session.closed:
                return

            self._session = aiohttp.ClientSession(
                connector=aiohttp.TCPConnector(limit=100, limit_per_host=30, ttl_dns_cache=300),
                timeout=aiohttp.ClientTimeout(total=self.config.timeout_seconds),
            )
            self._owns_session = True
            logger.info("GitHub client session opened", api_url=self.base_url)

    async def disconnect(self) -> None:
        """Close the HTTP session if this client created it."""
        async with self._connection_lock:
            if self._session is None or not self._owns_session:
                return
            try:
                await self._session.close()
                logger.info("GitHub client session closed")
            except Exception as e:
                logger.warning("Error during disconnect", error=str(e))
            finally:
                self._session = None

    @property
    def connected(self) -> bool:
        return self._session is not None and not self._session.closed

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": self.config.api_version,
            "Authorization": f"Bearer {self.config.token}",
        }

    @retry_with_backoff()
    async def _request(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Perform a GET request and decode the JSON body.

        Raises:
            GitHubClientError: On non-2xx responses or an exhausted rate limit
        """
        if not self.connected:
            await self.connect()

        url = f"{self.base_url}{endpoint}"
        query = {key: str(value) for key, value in (params or {}).items() if value is not None}

        logger.debug("GitHub API request", url=url, params=query)

        async with self._session.get(url, headers=self._get_headers(), params=query) as resp:
            if resp.status >= 400:
                raise GitHubClientError(await self._error_message(resp), status=resp.status)

            if resp.headers.get("x-ratelimit-remaining") == "0":
                reset = resp.headers.get("x-ratelimit-reset")
                reset_at = (
                    datetime.fromtimestamp(int(reset), tz=timezone.utc)
                    if reset and reset.isdigit()
                    else datetime.now(timezone.utc)
                )
                raise GitHubClientError(
                    f"Rate limit exceeded. Reset at: {reset_at.isoformat()}",
                    status=resp.status,
                )

            return await resp.json(content_type=None)

    @staticmethod
    async def _error_message(resp: aiohttp.ClientResponse) -> str:
        fallback = f"HTTP {resp.status}: {resp.reason}"
        try:
            data = await resp.json(content_type=None)
        except (aiohttp.ContentTypeError, ValueError):
            return fallback
        if isinstance(data, dict) and data.get("message"):
            return str(data["message"])
        return f"GitHub API error: {resp.status} {resp.reason}"

    async def get_user(self, username: str) -> Dict[str, Any]:
        return await self._request(f"/users/{username}")

    async def get_authenticated_user(self) -> Dict[str, Any]:
        return await self._request("/user")

    async def get_repository(self, owner: str, repo: str) -> Dict[str, Any]:
        return await self._request(f"/repos/{owner}/{repo}")

    async def list_user_repositories(
        self,
        username: str,
        type: Optional[str] = None,
        sort: Optional[str] = None,
        direction: Optional[str] = None,
        per_page: Optional[int] = None,
        page: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """List public repositories for a user."""
        params = {
            "type": type,
            "sort": sort,
            "direction": direction,
            "per_page": per_page,
            "page": page,
        }
        return await self._request(f"/users/{username}/repos", params=params)

    async def list_organization_repositories(
        self,
        org: str,
        type: Optional[str] = None,
        sort: Optional[str] = None,
        direction: Optional[str] = None,
        per_page: Optional[int] = None,
        page: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """List repositories for an organization."""
        params = {
            "type": type,
            "sort": sort,
            "direction": direction,
            "per_page": per_page,
            "page": page,
        }
        return await self._request(f"/orgs/{org}/repos", params=params)
