"""Utility modules for GitHub MCP Server."""

from .logging import get_logger, setup_logging

__all__ = ["get_logger", "setup_logging"]
