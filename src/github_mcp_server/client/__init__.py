"""GitHub REST API client."""

from .github_client import GitHubClient, GitHubClientError

__all__ = ["GitHubClient", "GitHubClientError"]
