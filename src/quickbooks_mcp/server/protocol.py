"""MCP protocol models used by the tool server.

Only the slice of the protocol a tools-only server needs: the handshake,
tool listing and tool calls, plus JSON-RPC envelopes and error codes.
Python attribute names are snake_case; the wire format is camelCase.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

PROTOCOL_VERSION = "2025-06-18"
JSONRPC_VERSION = "2.0"

# JSON-RPC error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


class ProtocolModel(BaseModel):
    """Base for all protocol objects."""

    model_config = ConfigDict(populate_by_name=True)

    def to_protocol(self) -> dict[str, Any]:
        """Serialize to the wire representation."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class Error(ProtocolModel):
    """A JSON-RPC error object."""

    code: int
    message: str
    data: Any | None = None


class Implementation(ProtocolModel):
    """Name and version string of the server or client."""

    name: str
    version: str


class ToolsCapability(ProtocolModel):
    """Capabilities for tool execution and change notifications."""

    list_changed: bool | None = Field(default=None, alias="listChanged")


class ServerCapabilities(ProtocolModel):
    """Capabilities that the server supports, sent during initialization."""

    tools: ToolsCapability | None = None


class InitializeRequest(ProtocolModel):
    """Params of the ``initialize`` request."""

    protocol_version: str = Field(default=PROTOCOL_VERSION, alias="protocolVersion")
    client_info: Implementation | None = Field(default=None, alias="clientInfo")
    capabilities: dict[str, Any] = Field(default_factory=dict)


class InitializeResult(ProtocolModel):
    """
    Server's response to initialization, completing the MCP handshake.
    """

    protocol_version: str = Field(default=PROTOCOL_VERSION, alias="protocolVersion")
    capabilities: ServerCapabilities
    server_info: Implementation = Field(alias="serverInfo")
    instructions: str | None = None


class EmptyResult(ProtocolModel):
    pass


class TextContent(ProtocolModel):
    """Plain text content for tool results."""

    type: Literal["text"] = "text"
    text: str


class Tool(ProtocolModel):
    """A callable tool: name, description and JSON Schema for its arguments."""

    name: str
    description: str | None = None
    input_schema: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object"}, alias="inputSchema"
    )


class ListToolsRequest(ProtocolModel):
    cursor: str | None = None


class ListToolsResult(ProtocolModel):
    tools: list[Tool]
    next_cursor: str | None = Field(default=None, alias="nextCursor")


class CallToolRequest(ProtocolModel):
    """Params of a ``tools/call`` request."""

    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class CallToolResult(ProtocolModel):
    """
    Outcome of a tool call.

    Tool failures are reported here with ``is_error`` set rather than as
    JSON-RPC errors, so the model can see what went wrong.
    """

    content: list[TextContent]
    is_error: bool = Field(default=False, alias="isError")


class CancelledNotification(ProtocolModel):
    request_id: str | int = Field(alias="requestId")
    reason: str | None = None


def response_message(request_id: str | int, result: ProtocolModel) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result.to_protocol()}


def error_message(request_id: str | int | None, error: Error) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error.to_protocol()}
