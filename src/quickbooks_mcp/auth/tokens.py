"""OAuth 2.0 token endpoint client.

Implements the RFC 6749 token endpoint interactions used by QuickBooks:
authorization code exchange and refresh, both authenticated with HTTP Basic
client credentials and sent as application/x-www-form-urlencoded bodies.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from quickbooks_mcp.auth.models import (
    RefreshTokenRequest,
    TokenRequest,
    TokenResponse,
)
from quickbooks_mcp.errors import RefreshFailedError, TokenError, TokenExchangeError

logger = logging.getLogger(__name__)


class OAuth2TokenManager:
    """Manages OAuth 2.0 token exchange and refresh operations.

    Returns the raw token response so that provider-specific fields (for
    example ``x_refresh_token_expires_in``) reach the credential bundle.
    """

    def __init__(
        self,
        token_endpoint: str,
        client_id: str,
        client_secret: str,
        timeout: float = 30.0,
    ):
        """Initialize OAuth token manager.

        Args:
            token_endpoint: Provider token endpoint URL
            client_id: OAuth client id
            client_secret: OAuth client secret
            timeout: HTTP request timeout in seconds
        """
        self.token_endpoint = token_endpoint
        self.client_id = client_id
        self._client_secret = client_secret
        self._http_client = httpx.AsyncClient(timeout=timeout)

    async def exchange_code_for_token(
        self, token_request: TokenRequest
    ) -> dict[str, Any]:
        """Exchange authorization code for access token.

        Args:
            token_request: Token exchange request parameters

        Returns:
            The token endpoint's JSON response

        Raises:
            TokenExchangeError: If the endpoint rejects the code or is unreachable
        """
        logger.debug(f"Exchanging authorization code at {self.token_endpoint}")

        data = await self._post_form(token_request.to_form_data(), TokenExchangeError)
        if not data.get("access_token"):
            raise TokenExchangeError("Token response missing required access_token")

        logger.info("Token exchange successful")
        return data

    async def refresh_access_token(
        self, refresh_request: RefreshTokenRequest
    ) -> dict[str, Any]:
        """Refresh an access token using a refresh token.

        Args:
            refresh_request: Refresh token request parameters

        Returns:
            The token endpoint's JSON response

        Raises:
            RefreshFailedError: If the endpoint rejects the refresh or is unreachable
        """
        logger.debug(f"Refreshing access token at {self.token_endpoint}")

        data = await self._post_form(refresh_request.to_form_data(), RefreshFailedError)

        logger.info("Token refresh successful")
        return data

    async def _post_form(
        self, form_data: dict[str, str], error_cls: type[TokenError]
    ) -> dict[str, Any]:
        """POST a form to the token endpoint and parse the JSON reply.

        Raises:
            error_cls: On transport failure, non-2xx status or a malformed body
        """
        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }

        logger.debug(
            f"Token request: grant_type={form_data['grant_type']}, "
            f"client_id={self.client_id}"
        )

        try:
            response = await self._http_client.post(
                self.token_endpoint,
                data=form_data,
                headers=headers,
                auth=(self.client_id, self._client_secret),
            )
        except httpx.HTTPError as e:
            raise error_cls(f"HTTP error calling token endpoint: {e}") from e

        if not 200 <= response.status_code < 300:
            logger.warning(
                f"Token endpoint returned {response.status_code}: {response.text}"
            )
            raise error_cls(
                f"Token request failed: {response.status_code} - {response.text}",
                status=response.status_code,
                body=response.text,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise error_cls(
                f"Invalid token response format: {e}",
                status=response.status_code,
                body=response.text,
            ) from e

        try:
            token_response = TokenResponse.model_validate(data)
        except ValidationError as e:
            raise error_cls(
                f"Invalid token response format: {e}",
                status=response.status_code,
                body=response.text,
            ) from e
        return token_response.to_dict()

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._http_client.aclose()
