"""
Main entry point for GitHub MCP Server.

Provides the command-line interface: one command per transport. All
settings come from the environment (GITHUB_TOKEN, MCP_PORT, ...).
"""

import asyncio
import sys

import click

from .config.settings import Config, load_config
from .server import GitHubMCPServer
from .utils.logging import get_logger, setup_logging


def _prepare() -> Config:
    """Load configuration, set up logging and check the token."""
    config = load_config()
    setup_logging(config.server.log_level)
    logger = get_logger(__name__)

    if not config.github.token:
        logger.error("GITHUB_TOKEN environment variable is required")
        sys.exit(1)

    return config


def _run(config: Config, transport: str) -> None:
    logger = get_logger(__name__)
    try:
        server = GitHubMCPServer(config)
        if transport == "http":
            asyncio.run(server.run_http())
        else:
            asyncio.run(server.run_stdio())
    except KeyboardInterrupt:
        logger.info("Server shutdown requested")
    except Exception as e:
        logger.error("Server startup failed", error=str(e), exc_info=True)
        sys.exit(1)


@click.command()
@click.version_option(package_name="github-mcp-server")
def stdio() -> None:
    """Serve MCP over stdin/stdout."""
    config = _prepare()
    get_logger(__name__).info(
        "Starting GitHub MCP Server on stdio",
        version=config.version,
        log_level=config.server.log_level,
    )
    _run(config, "stdio")


@click.command()
@click.version_option(package_name="github-mcp-server")
def http() -> None:
    """Serve MCP over HTTP with an event-stream push channel."""
    config = _prepare()
    get_logger(__name__).info(
        "Starting GitHub MCP Server on HTTP",
        version=config.version,
        url=f"http://localhost:{config.server.port}{config.server.path}",
    )
    _run(config, "http")


@click.group()
@click.version_option(package_name="github-mcp-server")
def cli() -> None:
    """GitHub MCP Server CLI."""
    pass


cli.add_command(stdio, name="stdio")
cli.add_command(http, name="http")


if __name__ == "__main__":
    cli()
