"""Configuration management."""

from .settings import Config, GitHubConfig, ServerConfig, load_config

__all__ = ["Config", "GitHubConfig", "ServerConfig", "load_config"]
