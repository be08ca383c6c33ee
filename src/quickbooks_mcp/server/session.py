"""Tools-only MCP server session.

Reads JSON-RPC messages from the transport, routes requests to typed
handlers, and writes responses back. Each request runs as its own task so a
slow tool call never blocks the message loop.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Protocol

from pydantic import ValidationError

from quickbooks_mcp.server.protocol import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PROTOCOL_VERSION,
    CallToolRequest,
    CallToolResult,
    CancelledNotification,
    EmptyResult,
    Error,
    Implementation,
    InitializeRequest,
    InitializeResult,
    ListToolsRequest,
    ListToolsResult,
    ProtocolModel,
    ServerCapabilities,
    ToolsCapability,
    error_message,
    response_message,
)
from quickbooks_mcp.server.tools import ToolManager

logger = logging.getLogger(__name__)

SUPPORTED_PROTOCOL_VERSIONS = ("2024-11-05", "2025-03-26", PROTOCOL_VERSION)

RequestHandler = Callable[[dict[str, Any]], Awaitable[ProtocolModel | Error]]
NotificationHandler = Callable[[dict[str, Any]], Awaitable[None]]


class ServerTransport(Protocol):
    async def send(self, message: dict[str, Any]) -> None: ...

    def messages(self) -> AsyncIterator[dict[str, Any]]: ...


@dataclass
class ServerConfig:
    info: Implementation
    capabilities: ServerCapabilities = field(
        default_factory=lambda: ServerCapabilities(tools=ToolsCapability())
    )
    instructions: str | None = None
    protocol_version: str = PROTOCOL_VERSION


class ServerSession:
    """MCP server session for a single client."""

    def __init__(self, transport: ServerTransport, config: ServerConfig):
        self.transport = transport
        self.server_config = config
        self.tools = ToolManager()

        self.initialized = False
        self.client_info: Implementation | None = None

        self._in_flight: dict[str | int, asyncio.Task[None]] = {}
        self._request_handlers: dict[str, RequestHandler] = {}
        self._notification_handlers: dict[str, NotificationHandler] = {}
        self._register_handlers()

    # ================================
    # Message loop
    # ================================

    async def run(self) -> None:
        """Process messages until the transport's stream ends.

        Requests still running when input closes are allowed to finish so
        their responses are delivered.
        """
        async for payload in self.transport.messages():
            try:
                await self._handle_message(payload)
            except Exception:
                logger.exception("Error handling message")

        if self._in_flight:
            await asyncio.gather(*self._in_flight.values(), return_exceptions=True)

    async def _handle_message(self, payload: dict[str, Any]) -> None:
        method = payload.get("method")
        if isinstance(method, str) and "id" in payload:
            await self._handle_request(payload)
        elif isinstance(method, str):
            await self._handle_notification(payload)
        elif "id" in payload and ("result" in payload or "error" in payload):
            logger.debug(f"Ignoring response to request {payload['id']}")
        else:
            await self.transport.send(
                error_message(
                    payload.get("id"),
                    Error(code=INVALID_REQUEST, message="Invalid JSON-RPC message"),
                )
            )

    async def _handle_request(self, payload: dict[str, Any]) -> None:
        method = payload["method"]
        request_id = payload["id"]

        handler = self._request_handlers.get(method)
        if handler is None:
            await self.transport.send(
                error_message(
                    request_id,
                    Error(code=METHOD_NOT_FOUND, message=f"Unknown method: {method}"),
                )
            )
            return

        params = payload.get("params") or {}
        task = asyncio.create_task(
            self._execute_request_handler(handler, params, request_id),
            name=f"handle_{method}_{request_id}",
        )
        self._in_flight[request_id] = task
        task.add_done_callback(lambda t: self._in_flight.pop(request_id, None))

    async def _execute_request_handler(
        self,
        handler: RequestHandler,
        params: dict[str, Any],
        request_id: str | int,
    ) -> None:
        try:
            result_or_error = await handler(params)
        except asyncio.CancelledError:
            # Cancelled by the client; no response is sent
            logger.info(f"Request {request_id} cancelled")
            return
        except ValidationError as e:
            result_or_error = Error(
                code=INVALID_PARAMS, message=f"Invalid params: {e.errors()}"
            )
        except Exception as e:
            logger.exception(f"Handler for request {request_id} failed")
            result_or_error = Error(code=INTERNAL_ERROR, message=f"Handler error: {e}")

        if isinstance(result_or_error, Error):
            message = error_message(request_id, result_or_error)
        else:
            message = response_message(request_id, result_or_error)
        await self.transport.send(message)

    async def _handle_notification(self, payload: dict[str, Any]) -> None:
        method = payload["method"]
        handler = self._notification_handlers.get(method)
        if handler is None:
            logger.debug(f"Ignoring notification {method}")
            return
        await handler(payload.get("params") or {})

    # ================================
    # Handlers
    # ================================

    async def _handle_initialize(self, params: dict[str, Any]) -> InitializeResult:
        """Record client info and answer with our capabilities.

        Echoes the client's protocol version when we support it, otherwise
        offers our own.
        """
        request = InitializeRequest.model_validate(params)
        self.client_info = request.client_info

        protocol_version = (
            request.protocol_version
            if request.protocol_version in SUPPORTED_PROTOCOL_VERSIONS
            else self.server_config.protocol_version
        )
        return InitializeResult(
            protocol_version=protocol_version,
            capabilities=self.server_config.capabilities,
            server_info=self.server_config.info,
            instructions=self.server_config.instructions,
        )

    async def _handle_initialized(self, params: dict[str, Any]) -> None:
        self.initialized = True
        logger.info("Client initialized")

    async def _handle_ping(self, params: dict[str, Any]) -> EmptyResult:
        return EmptyResult()

    async def _handle_list_tools(self, params: dict[str, Any]) -> ListToolsResult:
        return await self.tools.handle_list(ListToolsRequest.model_validate(params))

    async def _handle_call_tool(
        self, params: dict[str, Any]
    ) -> CallToolResult | Error:
        request = CallToolRequest.model_validate(params)
        try:
            return await self.tools.handle_call(request)
        except KeyError:
            return Error(code=METHOD_NOT_FOUND, message=f"Unknown tool: {request.name}")

    async def _handle_cancelled(self, params: dict[str, Any]) -> None:
        notification = CancelledNotification.model_validate(params)
        task = self._in_flight.pop(notification.request_id, None)
        if task is not None:
            task.cancel()

    def _register_handlers(self) -> None:
        self._request_handlers = {
            "initialize": self._handle_initialize,
            "ping": self._handle_ping,
            "tools/list": self._handle_list_tools,
            "tools/call": self._handle_call_tool,
        }
        self._notification_handlers = {
            "notifications/initialized": self._handle_initialized,
            "notifications/cancelled": self._handle_cancelled,
        }
