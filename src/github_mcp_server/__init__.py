"""
GitHub MCP Server

A Model Context Protocol server exposing GitHub user and repository
lookups over stdio and over HTTP with a server-sent-events push channel.
"""

__version__ = "1.0.0"
__license__ = "MIT"

from .config.settings import Config, load_config
from .server import GitHubMCPServer

__all__ = [
    "GitHubMCPServer",
    "Config",
    "load_config",
    "__version__",
    "__license__",
]
