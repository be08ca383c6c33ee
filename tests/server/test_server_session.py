"""Tests for JSON-RPC routing in the server session."""

import asyncio
import json

from quickbooks_mcp.server.protocol import (
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PROTOCOL_VERSION,
    Implementation,
    Tool,
)
from quickbooks_mcp.server.session import ServerConfig, ServerSession


class MockTransport:
    """Feeds a fixed list of messages and records what is sent back."""

    def __init__(self, *incoming):
        self.incoming = list(incoming)
        self.sent: list[dict] = []

    async def send(self, message: dict) -> None:
        self.sent.append(message)

    async def messages(self):
        for message in self.incoming:
            yield message

    def response_to(self, request_id) -> dict:
        return next(m for m in self.sent if m.get("id") == request_id)


def make_session(*incoming) -> tuple[ServerSession, MockTransport]:
    transport = MockTransport(*incoming)
    session = ServerSession(
        transport,
        ServerConfig(
            info=Implementation(name="quickbooks", version="0.1.0"),
            instructions="Use the tools.",
        ),
    )
    return session, transport


async def add(arguments):
    return {"sum": arguments["a"] + arguments["b"]}


class TestInitialization:
    async def test_initialize_returns_capabilities_and_server_info(self):
        # Arrange
        session, transport = make_session(
            {
                "jsonrpc": "2.0",
                "id": 1,
                "method": "initialize",
                "params": {
                    "protocolVersion": "2025-03-26",
                    "capabilities": {},
                    "clientInfo": {"name": "test-client", "version": "1.0"},
                },
            },
            {"jsonrpc": "2.0", "method": "notifications/initialized"},
        )

        # Act
        await session.run()

        # Assert
        result = transport.response_to(1)["result"]
        assert result == {
            "protocolVersion": "2025-03-26",
            "capabilities": {"tools": {}},
            "serverInfo": {"name": "quickbooks", "version": "0.1.0"},
            "instructions": "Use the tools.",
        }
        assert session.client_info.name == "test-client"
        assert session.initialized

    async def test_unsupported_protocol_version_gets_ours(self):
        # Arrange
        session, transport = make_session(
            {
                "jsonrpc": "2.0",
                "id": 1,
                "method": "initialize",
                "params": {"protocolVersion": "1999-01-01", "capabilities": {}},
            }
        )

        # Act
        await session.run()

        # Assert
        assert transport.response_to(1)["result"]["protocolVersion"] == PROTOCOL_VERSION

    async def test_ping(self):
        # Arrange
        session, transport = make_session({"jsonrpc": "2.0", "id": "p", "method": "ping"})

        # Act
        await session.run()

        # Assert
        assert transport.sent == [{"jsonrpc": "2.0", "id": "p", "result": {}}]


class TestTools:
    async def test_list_and_call(self):
        # Arrange
        session, transport = make_session(
            {"jsonrpc": "2.0", "id": 1, "method": "tools/list"},
            {
                "jsonrpc": "2.0",
                "id": 2,
                "method": "tools/call",
                "params": {"name": "add", "arguments": {"a": 1, "b": 2}},
            },
        )
        session.tools.register(
            Tool(
                name="add",
                description="Add two numbers",
                input_schema={"type": "object", "properties": {"a": {}, "b": {}}},
            ),
            add,
        )

        # Act
        await session.run()

        # Assert
        tools = transport.response_to(1)["result"]["tools"]
        assert tools == [
            {
                "name": "add",
                "description": "Add two numbers",
                "inputSchema": {"type": "object", "properties": {"a": {}, "b": {}}},
            }
        ]
        call_result = transport.response_to(2)["result"]
        assert call_result["isError"] is False
        assert json.loads(call_result["content"][0]["text"]) == {"sum": 3}

    async def test_unknown_tool_is_method_not_found(self):
        # Arrange
        session, transport = make_session(
            {
                "jsonrpc": "2.0",
                "id": 1,
                "method": "tools/call",
                "params": {"name": "nope", "arguments": {}},
            }
        )

        # Act
        await session.run()

        # Assert
        error = transport.response_to(1)["error"]
        assert error["code"] == METHOD_NOT_FOUND
        assert error["message"] == "Unknown tool: nope"

    async def test_malformed_params_are_invalid_params(self):
        # Arrange
        session, transport = make_session(
            {"jsonrpc": "2.0", "id": 1, "method": "tools/call", "params": {"arguments": {}}}
        )

        # Act
        await session.run()

        # Assert
        assert transport.response_to(1)["error"]["code"] == INVALID_PARAMS

    async def test_cancelled_request_gets_no_response(self):
        # Arrange
        async def never_finishes(arguments):
            await asyncio.Event().wait()

        session, transport = make_session(
            {
                "jsonrpc": "2.0",
                "id": 7,
                "method": "tools/call",
                "params": {"name": "slow", "arguments": {}},
            },
            {
                "jsonrpc": "2.0",
                "method": "notifications/cancelled",
                "params": {"requestId": 7, "reason": "user aborted"},
            },
        )
        session.tools.register(Tool(name="slow"), never_finishes)

        # Act
        await asyncio.wait_for(session.run(), timeout=1)

        # Assert
        assert transport.sent == []


class TestRouting:
    async def test_unknown_method(self):
        # Arrange
        session, transport = make_session(
            {"jsonrpc": "2.0", "id": 1, "method": "resources/list"}
        )

        # Act
        await session.run()

        # Assert
        error = transport.response_to(1)["error"]
        assert error["code"] == METHOD_NOT_FOUND
        assert "resources/list" in error["message"]

    async def test_unknown_notification_is_ignored(self):
        # Arrange
        session, transport = make_session(
            {"jsonrpc": "2.0", "method": "notifications/roots/list_changed"}
        )

        # Act
        await session.run()

        # Assert
        assert transport.sent == []

    async def test_responses_from_client_are_ignored(self):
        # Arrange
        session, transport = make_session({"jsonrpc": "2.0", "id": 3, "result": {}})

        # Act
        await session.run()

        # Assert
        assert transport.sent == []

    async def test_message_without_method_is_invalid_request(self):
        # Arrange
        session, transport = make_session({"jsonrpc": "2.0", "id": 4})

        # Act
        await session.run()

        # Assert
        assert transport.response_to(4)["error"]["code"] == INVALID_REQUEST
