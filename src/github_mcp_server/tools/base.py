"""
Base classes for MCP tools.

Provides common functionality and interfaces for all GitHub tools,
including schema construction and argument validation.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional

import structlog

from ..client.github_client import GitHubClient, GitHubClientError
from ..protocol.schemas import Tool, ToolParameter, ToolSchema

logger = structlog.get_logger(__name__)

_TYPE_CHECKS = {
    "string": lambda v: isinstance(v, str),
    "number": lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    "integer": lambda v: isinstance(v, int) and not isinstance(v, bool),
    "boolean": lambda v: isinstance(v, bool),
    "object": lambda v: isinstance(v, dict),
    "array": lambda v: isinstance(v, list),
}


class ToolError(Exception):
    """Base exception for tool execution errors."""

    def __init__(
        self, message: str, code: str = "tool_error", details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


class ToolValidationError(ToolError):
    """Error for invalid tool arguments."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="validation_error", details=details)


class ToolExecutionError(ToolError):
    """Error raised when the GitHub API call behind a tool fails."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="execution_error", details=details)


class BaseTool(ABC):
    """
    Base class for all MCP tools.

    A tool instance is the handler registered for its name: calling it
    validates the arguments against the schema, then runs ``execute``.
    Failures are raised and left to the dispatcher to report.
    """

    # Tool metadata (must be defined by subclasses)
    name: str = ""
    description: str = ""

    def __init__(self, client: GitHubClient):
        """
        Initialize tool.

        Args:
            client: GitHub API client shared by all tools
        """
        self.client = client
        self.logger = logger.bind(tool=self.name)
        self._schema: Optional[Tool] = None

    @abstractmethod
    def build_schema(self) -> Tool:
        """Build the tool schema definition."""

    def get_schema(self) -> Tool:
        """Tool schema for the MCP protocol, built once."""
        if self._schema is None:
            self._schema = self.build_schema()
        return self._schema

    @abstractmethod
    async def execute(self, arguments: Dict[str, Any]) -> Any:
        """
        Execute the tool with validated arguments.

        Args:
            arguments: Tool arguments from MCP request

        Returns:
            JSON-serializable result

        Raises:
            ToolError: If the arguments are unusable
            GitHubClientError: If the upstream request fails
        """

    async def __call__(self, arguments: Mapping[str, Any]) -> Any:
        """Validate and execute; used as the registry handler."""
        arguments = dict(arguments)
        self.logger.info("Executing tool", arguments=arguments)
        self._validate_arguments(arguments)
        try:
            return await self.execute(arguments)
        except GitHubClientError as e:
            self.logger.warning("GitHub request failed", error=e.message, status=e.status)
            raise ToolExecutionError(e.message, details={"status": e.status}) from e

    def _validate_arguments(self, arguments: Dict[str, Any]) -> None:
        """
        Validate tool arguments against schema.

        Raises:
            ToolValidationError: If validation fails
        """
        schema = self.get_schema().inputSchema

        for required_param in schema.required:
            if arguments.get(required_param) is None:
                raise ToolValidationError(
                    f"Missing required parameter: {required_param}",
                    details={"missing_parameter": required_param},
                )

        for param_name, param_value in arguments.items():
            param_def = schema.properties.get(param_name)
            if param_def is not None and param_value is not None:
                self._validate_parameter(param_name, param_value, param_def)

    def _validate_parameter(self, name: str, value: Any, definition: ToolParameter) -> None:
        check = _TYPE_CHECKS.get(definition.type)
        if check is not None and not check(value):
            raise ToolValidationError(
                f"Parameter '{name}' must be a {definition.type}",
                details={
                    "parameter": name,
                    "expected_type": definition.type,
                    "actual_type": type(value).__name__,
                },
            )

        if definition.enum and value not in definition.enum:
            raise ToolValidationError(
                f"Parameter '{name}' must be one of: {definition.enum}",
                details={"parameter": name, "allowed_values": definition.enum},
            )

        if definition.minimum is not None and value < definition.minimum:
            raise ToolValidationError(f"Parameter '{name}' must be >= {definition.minimum:g}")
        if definition.maximum is not None and value > definition.maximum:
            raise ToolValidationError(f"Parameter '{name}' must be <= {definition.maximum:g}")

    def _create_parameter(
        self,
        param_type: str,
        description: str,
        enum: Optional[List[str]] = None,
        minimum: Optional[float] = None,
        maximum: Optional[float] = None,
    ) -> ToolParameter:
        """Helper to create JSON Schema parameter definitions."""
        return ToolParameter(
            type=param_type,
            description=description,
            enum=enum,
            minimum=minimum,
            maximum=maximum,
        )

    def _create_schema(self, parameters: Dict[str, ToolParameter], required: List[str]) -> Tool:
        """Helper to create tool schema with proper JSON Schema format."""
        return Tool(
            name=self.name,
            description=self.description,
            inputSchema=ToolSchema(type="object", properties=parameters, required=required),
        )

    @staticmethod
    def _require_text(arguments: Dict[str, Any], key: str, message: str) -> str:
        value = arguments.get(key)
        if not isinstance(value, str) or not value.strip():
            raise ToolValidationError(message, details={"parameter": key})
        return value.strip()

    @staticmethod
    def _optional_int(arguments: Dict[str, Any], key: str) -> Optional[int]:
        value = arguments.get(key)
        return int(value) if value is not None else None
