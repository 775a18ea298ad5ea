"""
MCP Protocol message schemas and data structures.

Defines the JSON-RPC 2.0 message formats for the Model Context Protocol,
including requests, notifications, responses, tool descriptors and the
error hierarchy used at the protocol boundary.
"""

import json
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

JSONRPC_VERSION = "2.0"

# JSON-RPC error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

RequestId = Union[str, int]

NOTIFICATION_PREFIX = "notifications/"


class MCPError(Exception):
    """Base exception for MCP protocol errors."""

    def __init__(
        self,
        message: str,
        code: int = -32000,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.data = data or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to JSON-RPC error format."""
        error_dict: Dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.data:
            error_dict["data"] = self.data
        return error_dict


class MCPParseError(MCPError):
    """Error for payloads that are not valid JSON."""

    def __init__(self, message: str = "Parse error", data: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=PARSE_ERROR, data=data)


class MCPInvalidRequestError(MCPError):
    """Error for JSON payloads that are not a valid JSON-RPC message."""

    def __init__(
        self,
        message: str = "Invalid Request",
        request_id: Optional[RequestId] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, code=INVALID_REQUEST, data=data)
        self.request_id = request_id


class MCPMethodNotFoundError(MCPError):
    """Error for unknown method calls."""

    def __init__(self, method: Optional[str] = None):
        super().__init__("Method not found", code=METHOD_NOT_FOUND)
        self.method = method


class MCPInternalError(MCPError):
    """Error for internal server issues."""

    def __init__(self, message: str = "Internal error", data: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=INTERNAL_ERROR, data=data)


class ToolNotFoundError(MCPError):
    """Raised by the registry when a tool name is not registered."""

    def __init__(self, name: Any):
        super().__init__(f"Unknown tool: {name}", code=METHOD_NOT_FOUND)
        self.name = name


# Base message types
class MCPMessage(BaseModel):
    """Base class for all MCP messages."""

    model_config = ConfigDict(extra="forbid")

    jsonrpc: str = Field(default=JSONRPC_VERSION, description="JSON-RPC version")


class MCPRequest(MCPMessage):
    """A request expecting exactly one response.

    Carrying an ``id`` key makes a message a request, even when the id is
    ``null``. ``params`` is kept as sent; the router reads it leniently.
    """

    id: Optional[RequestId] = Field(description="Request ID")
    method: str = Field(description="Method name")
    params: Optional[Any] = Field(default=None, description="Method parameters")


class MCPNotification(MCPMessage):
    """A message without an id."""

    method: str = Field(description="Method name")
    params: Optional[Any] = Field(default=None, description="Method parameters")

    @property
    def is_notification_method(self) -> bool:
        return self.method.startswith(NOTIFICATION_PREFIX)

    def as_request(self) -> "MCPRequest":
        """Treat an id-less message as a request answered with ``id: null``."""
        return MCPRequest(id=None, method=self.method, params=self.params)


class MCPResponse(MCPMessage):
    """Result or error answering a request."""

    id: Optional[RequestId] = Field(default=None, description="Request ID")
    result: Optional[Dict[str, Any]] = Field(default=None, description="Response result")
    error: Optional[Dict[str, Any]] = Field(default=None, description="Error information")

    def model_dump(self, **kwargs: Any) -> Dict[str, Any]:
        """Serialize with exactly one of ``result`` or ``error``."""
        data = super().model_dump(**kwargs)
        # JSON-RPC 2.0: a response carries either result or error, never both
        if self.error is not None:
            data.pop("result", None)
        else:
            data.pop("error", None)
            if data.get("result") is None:
                data["result"] = {}
        return data

    def to_json(self) -> str:
        """Compact JSON form used on the wire."""
        return json.dumps(self.model_dump(), separators=(",", ":"), ensure_ascii=False)

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @classmethod
    def from_error(cls, request_id: Optional[RequestId], error: MCPError) -> "MCPResponse":
        return cls(id=request_id, error=error.to_dict())


# Server info
class ServerInfo(BaseModel):
    """Information about the MCP server."""

    name: str = Field(default="github-mcp-server", description="Server name")
    version: str = Field(default="1.0.0", description="Server version")


# Tool structures
class ToolParameter(BaseModel):
    """Tool parameter definition."""

    type: str = Field(description="Parameter type")
    description: Optional[str] = Field(default=None, description="Parameter description")
    enum: Optional[List[str]] = Field(default=None, description="Allowed values")
    default: Optional[Any] = Field(default=None, description="Default value")
    minimum: Optional[float] = Field(default=None, description="Minimum numeric value")
    maximum: Optional[float] = Field(default=None, description="Maximum numeric value")


class ToolSchema(BaseModel):
    """Tool input schema definition."""

    type: str = Field(default="object", description="Schema type")
    properties: Dict[str, ToolParameter] = Field(default_factory=dict, description="Tool parameters")
    required: List[str] = Field(default_factory=list, description="Required parameters")


class Tool(BaseModel):
    """Tool definition advertised by ``tools/list``."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Tool name")
    description: str = Field(description="Tool description")
    inputSchema: ToolSchema = Field(description="Tool input schema")

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ToolResult:
    """Outcome of a tool call, always well-formed even on failure."""

    def __init__(self, content: List[Dict[str, Any]], is_error: bool = False):
        self.content = content
        self.is_error = is_error

    @classmethod
    def text(cls, text: str) -> "ToolResult":
        return cls(content=[{"type": "text", "text": text}])

    @classmethod
    def from_data(cls, data: Any) -> "ToolResult":
        """Wrap a JSON-serializable value as pretty-printed text content."""
        return cls.text(json.dumps(data, indent=2, ensure_ascii=False, default=str))

    @classmethod
    def error(cls, message: str) -> "ToolResult":
        return cls(content=[{"type": "text", "text": f"Error: {message}"}], is_error=True)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format for MCP response."""
        result: Dict[str, Any] = {"content": self.content}
        if self.is_error:
            result["isError"] = True
        return result


# Initialize
class ClientInfo(BaseModel):
    """Information about the MCP client."""

    name: str = Field(description="Client name")
    version: str = Field(description="Client version")


class InitializeParams(BaseModel):
    """Lenient view over ``initialize`` params."""

    protocolVersion: Optional[str] = None
    clientInfo: Optional[ClientInfo] = None
    capabilities: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def parse(cls, params: Any) -> "InitializeParams":
        try:
            return cls.model_validate(params or {})
        except ValidationError:
            return cls()


class CallToolParams:
    """Lenient view over ``tools/call`` params.

    Missing or malformed params are not a protocol fault: the name may be
    ``None`` and the arguments fall back to an empty mapping.
    """

    def __init__(self, params: Any):
        params = params if isinstance(params, Mapping) else {}
        self.name: Optional[str] = params.get("name")
        arguments = params.get("arguments")
        self.arguments: Dict[str, Any] = dict(arguments) if isinstance(arguments, Mapping) else {}


def decode_message(raw: Union[str, bytes]) -> Union[MCPRequest, MCPNotification]:
    """
    Decode one wire payload into a request or notification.

    Args:
        raw: JSON text of a single JSON-RPC message, as text or UTF-8 bytes

    Returns:
        ``MCPRequest`` when the message carries an id, else ``MCPNotification``

    Raises:
        MCPParseError: If the payload is not UTF-8 encoded JSON
        MCPInvalidRequestError: If the JSON is not a JSON-RPC message
    """
    try:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise MCPParseError(data={"details": str(e)})

    if not isinstance(data, dict):
        raise MCPInvalidRequestError("Invalid Request: expected a JSON object")

    request_id = data.get("id")
    if not isinstance(request_id, (str, int)) or isinstance(request_id, bool):
        request_id = None

    try:
        if "id" in data:
            return MCPRequest.model_validate(data)
        return MCPNotification.model_validate(data)
    except ValidationError as e:
        raise MCPInvalidRequestError(
            f"Invalid Request: {e.errors()[0]['msg']}",
            request_id=request_id,
        )
