"""Stdio transport: newline-delimited JSON-RPC over stdin/stdout.

stdout carries protocol messages only; diagnostics go to stderr through
``logging``.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any, AsyncIterator, TextIO

logger = logging.getLogger(__name__)


def parse_json_message(line: str) -> dict[str, Any] | None:
    """Parse a line as JSON message.

    Returns:
        Parsed message dict, or None if the line is blank or not a JSON object
    """
    line = line.strip()
    if not line:
        return None

    try:
        message = json.loads(line)
    except json.JSONDecodeError:
        return None
    if not isinstance(message, dict):
        return None
    return message


def serialize_message(message: dict[str, Any]) -> str:
    """Serialize message to a single-line JSON string.

    Raises:
        ValueError: If the message is not JSON-serializable
    """
    try:
        return json.dumps(message, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Failed to serialize message to JSON: {e}") from e


class StdioServerTransport:
    """Stdio server transport for 1:1 client-server communication.

    The client launches us as a subprocess and owns our lifetime; end of
    input ends the message stream.
    """

    def __init__(self, stdin: TextIO | None = None, stdout: TextIO | None = None):
        self._stdin = stdin or sys.stdin
        self._stdout = stdout or sys.stdout
        self._reader: asyncio.StreamReader | None = None
        self._write_lock = asyncio.Lock()

    async def _setup_reader(self) -> asyncio.StreamReader:
        if self._reader is None:
            self._reader = asyncio.StreamReader()
            protocol = asyncio.StreamReaderProtocol(self._reader)
            await asyncio.get_running_loop().connect_read_pipe(
                lambda: protocol, self._stdin
            )
        return self._reader

    async def send(self, message: dict[str, Any]) -> None:
        """Write one message to stdout.

        Raises:
            ValueError: If message is invalid
            ConnectionError: If stdout is closed or write fails
        """
        line = serialize_message(message)
        async with self._write_lock:
            try:
                self._stdout.write(line + "\n")
                self._stdout.flush()
            except (OSError, ValueError) as e:
                raise ConnectionError(f"Failed to send message: {e}") from e

    async def messages(self) -> AsyncIterator[dict[str, Any]]:
        """Yield messages from stdin until it closes."""
        reader = await self._setup_reader()

        while True:
            line_bytes = await reader.readline()
            if not line_bytes:
                logger.info("stdin closed")
                return

            try:
                line = line_bytes.decode("utf-8")
            except UnicodeDecodeError as e:
                logger.warning(f"Undecodable line received: {e}")
                continue

            message = parse_json_message(line)
            if message is None:
                if line.strip():
                    logger.warning(f"Invalid JSON received: {line.strip()}")
                continue
            yield message
