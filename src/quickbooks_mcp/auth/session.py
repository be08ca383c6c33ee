"""OAuth session: owns the in-memory credentials and their lifecycle.

Coordinates the interactive authorization code flow, refresh-token
exchange, and persistence through the token store.
"""

from __future__ import annotations

import asyncio
import logging
import webbrowser
from enum import Enum
from typing import Callable

from quickbooks_mcp.auth.callback import CallbackListener
from quickbooks_mcp.auth.models import (
    AuthorizationRequest,
    CredentialBundle,
    RefreshTokenRequest,
    TokenRequest,
)
from quickbooks_mcp.auth.security import generate_state, validate_state
from quickbooks_mcp.auth.store import TokenStore
from quickbooks_mcp.auth.tokens import OAuth2TokenManager
from quickbooks_mcp.config import Settings
from quickbooks_mcp.errors import AuthorizationError, RefreshUnavailableError

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHORIZATION_PENDING = "authorization_pending"
    AUTHENTICATED = "authenticated"


class OAuthSession:
    """Holds the credential bundle for the process and keeps it current.

    The bundle is only replaced after a successful authorization or refresh,
    and every replacement is written to the token store before it is used.
    Refreshes are serialized so concurrent 401s trigger a single token call.
    """

    def __init__(
        self,
        settings: Settings,
        store: TokenStore,
        token_manager: OAuth2TokenManager,
        listener_factory: Callable[[], CallbackListener] | None = None,
        open_url: Callable[[str], object] = webbrowser.open,
    ):
        """Initialize the session.

        Args:
            settings: Client credentials, endpoints and redirect target
            store: Where the credential bundle is persisted
            token_manager: Token endpoint client
            listener_factory: Builds the callback listener for each flow
            open_url: Presents the authorization URL to the user
        """
        self.settings = settings
        self._store = store
        self._token_manager = token_manager
        self._listener_factory = listener_factory or (
            lambda: CallbackListener(
                host=settings.callback_host,
                port=settings.callback_port,
                path=settings.callback_path,
            )
        )
        self._open_url = open_url
        self._refresh_lock = asyncio.Lock()

        self.bundle: CredentialBundle | None = None
        self.state = SessionState.UNAUTHENTICATED

    @classmethod
    def from_settings(
        cls, settings: Settings, open_url: Callable[[str], object] = webbrowser.open
    ) -> OAuthSession:
        """Build a session wired to the configured store and token endpoint."""
        return cls(
            settings,
            TokenStore(settings.credentials_path),
            OAuth2TokenManager(
                settings.token_endpoint,
                settings.client_id,
                settings.client_secret,
                timeout=settings.http_timeout,
            ),
            open_url=open_url,
        )

    @property
    def access_token(self) -> str | None:
        return self.bundle.access_token if self.bundle else None

    @property
    def realm_id(self) -> str | None:
        return self.bundle.realm_id if self.bundle else None

    def load(self) -> CredentialBundle | None:
        """Load stored credentials into memory.

        Returns:
            The stored bundle, or None when nothing has been saved yet

        Raises:
            PersistenceError: If the stored file is corrupt
        """
        bundle = self._store.load()
        if bundle is None:
            logger.info("No stored credentials found")
            return None

        self._set_bundle(bundle)
        return bundle

    def _set_bundle(self, bundle: CredentialBundle) -> None:
        self.bundle = bundle
        self.state = (
            SessionState.AUTHENTICATED
            if bundle.has_access_token()
            else SessionState.UNAUTHENTICATED
        )

    # ================================
    # Interactive authorization
    # ================================

    def build_authorization_request(self, state: str) -> AuthorizationRequest:
        return AuthorizationRequest(
            authorization_endpoint=self.settings.authorization_endpoint,
            client_id=self.settings.client_id,
            redirect_uri=self.settings.redirect_uri,
            scope=self.settings.scope,
            state=state,
        )

    async def begin_interactive_authorization(
        self, timeout: float | None = None
    ) -> CredentialBundle:
        """Run the authorization code flow to completion.

        Starts the callback listener, sends the user to the provider, waits
        for the redirect, then exchanges the code and persists the result.
        The listener is stopped on every exit path.

        Args:
            timeout: Seconds to wait for the callback, or None for no limit

        Returns:
            CredentialBundle: The newly issued credentials

        Raises:
            AuthorizationError: If the callback is invalid, carries an error,
                lacks a code, or never arrives
            TokenExchangeError: If the code cannot be exchanged
            PersistenceError: If the credentials cannot be saved
        """
        state = generate_state()
        auth_url = self.build_authorization_request(state).build_authorization_url()

        listener = self._listener_factory()
        await listener.start()
        previous_state = self.state
        self.state = SessionState.AUTHORIZATION_PENDING

        try:
            logger.info(f"Open this URL to authorize: {auth_url}")
            self._open_url(auth_url)

            auth_response = await listener.wait_for_callback(timeout)
            validate_state(state, auth_response.state)

            if auth_response.is_error():
                raise AuthorizationError(
                    f"Authorization failed: {auth_response.error} - "
                    f"{auth_response.error_description or 'no description'}"
                )
            if not auth_response.is_success():
                raise AuthorizationError("Authorization callback missing code")

            data = await self._token_manager.exchange_code_for_token(
                TokenRequest(
                    code=auth_response.code,
                    redirect_uri=self.settings.redirect_uri,
                )
            )
            bundle = CredentialBundle.from_token_response(data)
            if auth_response.realm_id:
                bundle = bundle.merged({"realm_id": auth_response.realm_id})

            self._store.save(bundle)
        except BaseException:
            self.state = previous_state
            raise
        finally:
            await listener.stop()

        self._set_bundle(bundle)
        logger.info("Authorization complete; credentials saved")
        return bundle

    # ================================
    # Refresh
    # ================================

    async def refresh(self, stale_access_token: str | None = None) -> CredentialBundle:
        """Exchange the refresh token for new credentials.

        The response is merged over the current bundle: returned fields
        replace old ones, everything else is kept. The merged bundle is
        persisted before it becomes current.

        Args:
            stale_access_token: Access token that was just rejected. If the
                session already holds a different token once the refresh
                lock is acquired, a concurrent caller has refreshed and no
                new token call is made.

        Returns:
            CredentialBundle: The current credentials after refresh

        Raises:
            RefreshUnavailableError: If no refresh token is held
            RefreshFailedError: If the token endpoint rejects the refresh
            PersistenceError: If the merged bundle cannot be saved
        """
        async with self._refresh_lock:
            if (
                stale_access_token is not None
                and self.bundle is not None
                and self.bundle.access_token != stale_access_token
            ):
                logger.debug("Credentials already refreshed by a concurrent call")
                return self.bundle

            if self.bundle is None or not self.bundle.can_refresh():
                raise RefreshUnavailableError()

            data = await self._token_manager.refresh_access_token(
                RefreshTokenRequest(refresh_token=self.bundle.refresh_token)
            )
            bundle = self.bundle.merged(data)
            self._store.save(bundle)
            self._set_bundle(bundle)

            logger.info("Access token refreshed")
            return bundle

    async def close(self) -> None:
        await self._token_manager.close()
