"""Tool registry and dispatch for the MCP server."""

from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable

from pydantic import ValidationError

from quickbooks_mcp.errors import QuickBooksError
from quickbooks_mcp.server.protocol import (
    CallToolRequest,
    CallToolResult,
    ListToolsRequest,
    ListToolsResult,
    TextContent,
    Tool,
)

logger = logging.getLogger(__name__)

ToolHandler = Callable[[dict[str, Any]], Awaitable[Any]]


def json_result(payload: Any, is_error: bool = False) -> CallToolResult:
    """Wrap a JSON-serializable payload as pretty-printed text content."""
    return CallToolResult(
        content=[TextContent(text=json.dumps(payload, indent=2, default=str))],
        is_error=is_error,
    )


def error_payload(error: Exception) -> dict[str, Any]:
    """Describe an exception as a JSON object for the tool result channel."""
    if isinstance(error, ValidationError):
        return {
            "error": "InvalidArguments",
            "message": "Tool arguments failed validation",
            "details": [
                {
                    "field": ".".join(str(part) for part in err["loc"]),
                    "message": err["msg"],
                }
                for err in error.errors()
            ],
        }

    payload: dict[str, Any] = {
        "error": type(error).__name__,
        "message": str(error),
    }
    status = getattr(error, "status", None)
    if status is not None:
        payload["status"] = status
    body = getattr(error, "body", None)
    if body:
        payload["body"] = body
    return payload


class ToolManager:
    """Registers tools and dispatches ``tools/call`` requests to them.

    Handlers receive the raw argument dict and return any JSON-serializable
    value; the manager turns that value, or the exception the handler
    raised, into a ``CallToolResult``.
    """

    def __init__(self):
        self.registered: dict[str, Tool] = {}
        self.handlers: dict[str, ToolHandler] = {}

    def register(self, tool: Tool, handler: ToolHandler) -> None:
        """Register a tool with its handler function.

        Args:
            tool: Tool definition with name, description, and schema.
            handler: Async function taking the call arguments.
        """
        self.registered[tool.name] = tool
        self.handlers[tool.name] = handler

    async def handle_list(self, request: ListToolsRequest) -> ListToolsResult:
        """Return all registered tools."""
        return ListToolsResult(tools=list(self.registered.values()))

    async def handle_call(self, request: CallToolRequest) -> CallToolResult:
        """Execute a tool call request.

        Failures inside the handler are returned as a result with
        ``is_error=True`` and a JSON description of the error. Unknown tools
        raise KeyError for the session to convert to a protocol error.

        Raises:
            KeyError: If the requested tool is not registered
        """
        handler = self.handlers[request.name]  # Can raise KeyError

        try:
            result = await handler(request.arguments)
        except (QuickBooksError, ValidationError) as e:
            logger.warning(f"Tool {request.name} failed: {e}")
            return json_result(error_payload(e), is_error=True)
        except Exception as e:
            logger.exception(f"Tool {request.name} raised unexpectedly")
            return json_result(error_payload(e), is_error=True)

        return json_result(result)
