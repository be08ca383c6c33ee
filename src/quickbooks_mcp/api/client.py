"""Authenticated request executor for the QuickBooks Online API.

Attaches bearer credentials from the OAuth session, appends the API minor
version, and performs a single refresh-and-retry when the access token is
rejected.
"""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import quote

import httpx

from quickbooks_mcp.auth.session import OAuthSession
from quickbooks_mcp.errors import (
    ConfigurationError,
    NotAuthenticatedError,
    RemoteApiError,
    UnauthorizedAfterRefreshError,
)

logger = logging.getLogger(__name__)


class _NeedsRefresh(Exception):
    """The API rejected the access token (HTTP 401)."""

    def __init__(self, body: str):
        super().__init__(body)
        self.body = body


class QuickBooksClient:
    """Issues API calls on behalf of the authenticated company.

    Credentials are read from the session on every attempt, so a refresh
    performed by one call is picked up by the next.
    """

    def __init__(
        self,
        session: OAuthSession,
        base_url: str,
        minor_version: int,
        realm_id: str | None = None,
        timeout: float = 30.0,
    ):
        """Initialize the client.

        Args:
            session: OAuth session holding the credential bundle
            base_url: Company API root, e.g. ``.../v3/company``
            minor_version: Value of the ``minorversion`` query parameter
            realm_id: Company id; defaults to the one stored with the credentials
            timeout: HTTP request timeout in seconds
        """
        self.session = session
        self.base_url = base_url.rstrip("/")
        self.minor_version = minor_version
        self._realm_id = realm_id
        self._http_client = httpx.AsyncClient(timeout=timeout)

    @property
    def realm_id(self) -> str:
        realm_id = self._realm_id or self.session.realm_id
        if not realm_id:
            raise ConfigurationError(
                "No QuickBooks company id: set QB_REALM_ID or re-run auth"
            )
        return realm_id

    def build_url(self, endpoint: str) -> str:
        """Build the full API URL for ``endpoint`` including the minor version."""
        url = f"{self.base_url}/{self.realm_id}/{endpoint.lstrip('/')}"
        separator = "&" if "?" in url else "?"
        return f"{url}{separator}minorversion={self.minor_version}"

    async def execute(
        self,
        endpoint: str,
        method: str = "GET",
        body: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Call the API, refreshing credentials once if they are rejected.

        Args:
            endpoint: Path below the company root, optionally with a query string
            method: HTTP method
            body: JSON body to send, if any
            headers: Extra headers; these override the defaults

        Returns:
            The parsed JSON response (an empty dict for an empty body)

        Raises:
            NotAuthenticatedError: If no access token is held
            RemoteApiError: On any non-2xx response other than 401
            UnauthorizedAfterRefreshError: If the retried request gets 401 again
            RefreshUnavailableError: If a refresh is needed but impossible
            RefreshFailedError: If the token endpoint rejects the refresh
        """
        if not self.session.access_token:
            raise NotAuthenticatedError()

        url = self.build_url(endpoint)
        access_token = self.session.access_token

        try:
            return await self._send(url, method, body, headers, access_token)
        except _NeedsRefresh:
            logger.info("Access token rejected; refreshing and retrying once")

        await self.session.refresh(stale_access_token=access_token)

        try:
            return await self._send(
                url, method, body, headers, self.session.access_token
            )
        except _NeedsRefresh as e:
            raise UnauthorizedAfterRefreshError(e.body) from None

    async def query(self, statement: str) -> dict[str, Any]:
        """Run a query-language statement against the ``query`` endpoint."""
        return await self.execute(f"query?query={quote(statement, safe='')}")

    async def _send(
        self,
        url: str,
        method: str,
        body: dict[str, Any] | None,
        headers: dict[str, str] | None,
        access_token: str | None,
    ) -> dict[str, Any]:
        request_headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        }
        if body is not None:
            request_headers["Content-Type"] = "application/json"
        request_headers.update(headers or {})

        logger.info(f"Requesting: {method} {url}")
        try:
            response = await self._http_client.request(
                method,
                url,
                headers=request_headers,
                content=json.dumps(body) if body is not None else None,
            )
        except httpx.HTTPError as e:
            raise RemoteApiError(f"HTTP error calling QuickBooks API: {e}") from e

        text = response.text
        logger.info(f"Response status: {response.status_code}")
        logger.debug(f"Response body: {text}")

        if response.status_code == 401:
            raise _NeedsRefresh(text)
        if not 200 <= response.status_code < 300:
            raise RemoteApiError(
                f"QuickBooks API error: {response.status_code} - {text}",
                status=response.status_code,
                body=text,
            )

        if not text.strip():
            return {}
        try:
            return json.loads(text)
        except ValueError as e:
            raise RemoteApiError(
                f"QuickBooks API returned invalid JSON: {e}",
                status=response.status_code,
                body=text,
            ) from e

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._http_client.aclose()
