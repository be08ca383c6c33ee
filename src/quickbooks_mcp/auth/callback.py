"""Single-use local HTTP listener for the OAuth redirect."""

from __future__ import annotations

import asyncio
import logging
import socket

import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response
from starlette.routing import Route

from quickbooks_mcp.auth.models import AuthorizationResponse
from quickbooks_mcp.errors import AuthorizationCancelledError, AuthorizationError

logger = logging.getLogger(__name__)


class CallbackListener:
    """Captures exactly one authorization callback.

    Serves ``GET <path>`` on a local port. The first request resolves a
    future with the parsed callback parameters; later requests are turned
    away. The owner must call ``stop()`` once it has the outcome so the
    socket does not outlive the flow.
    """

    def __init__(self, host: str = "localhost", port: int = 3000, path: str = "/callback"):
        self.host = host
        self.port = port
        self.path = path

        self._app = Starlette(
            routes=[Route(path, self._handle_callback, methods=["GET"])]
        )
        self._server: uvicorn.Server | None = None
        self._serve_task: asyncio.Task[None] | None = None
        self._outcome: asyncio.Future[AuthorizationResponse] | None = None

    @property
    def app(self) -> Starlette:
        return self._app

    @property
    def running(self) -> bool:
        return self._serve_task is not None and not self._serve_task.done()

    def _pending(self) -> asyncio.Future[AuthorizationResponse]:
        if self._outcome is None:
            self._outcome = asyncio.get_running_loop().create_future()
        return self._outcome

    async def start(self) -> None:
        """Bind the port and wait until the server is accepting.

        The socket is bound here rather than by uvicorn so that a busy port
        surfaces as an exception instead of a process exit. Port 0 binds an
        ephemeral port, reflected in ``self.port`` afterwards.

        Raises:
            AuthorizationError: If the port cannot be bound or the server
                exits before it starts accepting
        """
        if self.running:
            return

        try:
            sock = socket.create_server((self.host, self.port))
        except OSError as e:
            raise AuthorizationError(
                f"Callback listener failed to start on {self.host}:{self.port}: {e}"
            ) from e
        self.port = sock.getsockname()[1]

        self._pending()
        config = uvicorn.Config(
            app=self._app,
            host=self.host,
            port=self.port,
            log_level="warning",
            lifespan="off",
        )
        self._server = uvicorn.Server(config)
        self._serve_task = asyncio.create_task(self._serve(self._server, sock))

        while not self._server.started:
            if self._serve_task.done():
                failed, self._serve_task = self._serve_task, None
                error = None if failed.cancelled() else failed.exception()
                raise AuthorizationError(
                    f"Callback listener failed to start on {self.host}:{self.port}"
                ) from error
            await asyncio.sleep(0.05)

        logger.info(f"Listening on {self.host}:{self.port} for callback")

    async def _serve(self, server: uvicorn.Server, sock: socket.socket) -> None:
        try:
            await server.serve(sockets=[sock])
        except SystemExit as e:
            # uvicorn exits the process on startup failures
            raise AuthorizationError(
                f"Callback listener exited with status {e.code}"
            ) from e
        finally:
            sock.close()

    async def wait_for_callback(
        self, timeout: float | None = None
    ) -> AuthorizationResponse:
        """Wait for the provider to redirect back.

        Args:
            timeout: Seconds to wait, or None to wait indefinitely

        Raises:
            AuthorizationCancelledError: If no callback arrives in time
        """
        try:
            return await asyncio.wait_for(asyncio.shield(self._pending()), timeout)
        except asyncio.TimeoutError as e:
            raise AuthorizationCancelledError(
                f"No authorization callback received within {timeout} seconds"
            ) from e

    async def stop(self) -> None:
        """Stop accepting connections. Safe to call more than once."""
        if self._server is not None:
            self._server.should_exit = True
        if self._serve_task is not None:
            await self._serve_task
            self._serve_task = None
            logger.debug("Callback listener stopped")

    async def _handle_callback(self, request: Request) -> Response:
        outcome = self._pending()
        if outcome.done():
            return PlainTextResponse(
                "Authorization already completed", status_code=410
            )

        params = request.query_params
        auth_response = AuthorizationResponse(
            code=params.get("code"),
            state=params.get("state"),
            realm_id=params.get("realmId"),
            error=params.get("error"),
            error_description=params.get("error_description"),
        )
        outcome.set_result(auth_response)

        if auth_response.is_success():
            return PlainTextResponse(
                "Authorization received. You can close this window."
            )
        if auth_response.is_error():
            return PlainTextResponse(
                f"Authorization failed: {auth_response.error}", status_code=400
            )
        return PlainTextResponse("No code provided", status_code=400)
