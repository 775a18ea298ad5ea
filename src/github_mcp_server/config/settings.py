"""
Configuration management for GitHub MCP Server.

Handles loading, validation, and management of server configuration
from an optional JSON file, a ``.env`` file and environment variables.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator


class GitHubConfig(BaseModel):
    """Configuration for the GitHub REST API connection."""

    api_url: str = Field(default="https://api.github.com", description="GitHub API base URL")
    api_version: str = Field(default="2022-11-28", description="X-GitHub-Api-Version header")
    token: Optional[str] = Field(default=None, validate_default=True, description="Access token")
    timeout_seconds: float = Field(default=30.0, description="Request timeout in seconds")
    max_retries: int = Field(default=3, description="Attempts for transient network failures")

    @field_validator("token", mode="before")
    @classmethod
    def resolve_token(cls, v: Optional[str]) -> Optional[str]:
        """Resolve the token from the environment if needed."""
        if v is None:
            return os.getenv("GITHUB_TOKEN") or None
        if isinstance(v, str) and v.startswith("${") and v.endswith("}"):
            return os.getenv(v[2:-1]) or None
        return v

    @field_validator("api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class ServerConfig(BaseModel):
    """Configuration for MCP server behavior."""

    name: str = Field(default="github-mcp-server", description="Server name reported on initialize")
    log_level: str = Field(default="INFO", description="Logging level")
    host: str = Field(default="0.0.0.0", description="HTTP listen address")  # nosec B104
    port: int = Field(default=3000, description="HTTP listen port")
    path: str = Field(default="/mcp", description="HTTP path serving the protocol")
    keepalive_interval_seconds: float = Field(
        default=30.0, description="Interval between event-stream keep-alive comments"
    )
    push_timeout_seconds: float = Field(
        default=5.0, description="Longest wait for one event-stream write before the stream is dropped"
    )
    protocol_version: str = Field(default="2024-11-05", description="Default MCP protocol version")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not 0 < v < 65536:
            raise ValueError(f"Invalid port: {v}")
        return v


class Config(BaseModel):
    """Main configuration object."""

    model_config = ConfigDict(extra="forbid")

    version: str = Field(default="1.0.0", description="Server version")
    github: GitHubConfig = Field(default_factory=GitHubConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)


# Environment variable -> (section, key)
ENV_OVERRIDES = {
    "MCP_PORT": ("server", "port"),
    "MCP_HOST": ("server", "host"),
    "GITHUB_MCP_LOG_LEVEL": ("server", "log_level"),
    "GITHUB_API_URL": ("github", "api_url"),
}


def load_config(config_path: Optional[Path] = None, dotenv: bool = True) -> Config:
    """
    Load configuration from file and environment variables.

    Args:
        config_path: Path to a JSON configuration file. If None, looks for
                    the GITHUB_MCP_CONFIG_PATH environment variable.
        dotenv: Load a ``.env`` file into the environment first

    Returns:
        Loaded and validated configuration

    Raises:
        FileNotFoundError: If config file specified but not found
        ValueError: If configuration is invalid
    """
    if dotenv:
        load_dotenv(find_dotenv(usecwd=True))

    if config_path is None:
        env_path = os.getenv("GITHUB_MCP_CONFIG_PATH")
        if env_path:
            config_path = Path(env_path)

    config_data: Dict[str, Any] = {}
    if config_path and config_path.exists():
        with open(config_path, "r") as f:
            config_data = json.load(f)
    elif config_path:
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    env_overrides: Dict[str, Any] = {}
    for env_var, (section, key) in ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value:
            env_overrides.setdefault(section, {})[key] = value

    if env_overrides:
        config_data = _deep_merge(config_data, env_overrides)

    return Config(**config_data)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Override dictionary

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result
