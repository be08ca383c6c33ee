"""Credential and authorization flow models for OAuth 2.0.

Contains the persisted credential bundle plus the immutable request and
callback models used during the authorization code and refresh flows.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field, fields, replace
from typing import Any
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict


class TokenResponse(BaseModel):
    """OAuth 2.0 token endpoint response (RFC 6749 Section 5.1).

    Unknown provider fields are allowed and kept; ``to_dict`` returns only
    what the provider actually sent.
    """

    model_config = ConfigDict(extra="allow")

    access_token: str | None = None
    token_type: str = "bearer"
    expires_in: int | None = None
    refresh_token: str | None = None
    x_refresh_token_expires_in: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class StoredCredentials(TokenResponse):
    """Shape of the credentials file: a token response plus local state."""

    expires_at: float | None = None
    realm_id: str | None = None


@dataclass(frozen=True)
class CredentialBundle:
    """OAuth credentials issued by the provider.

    Known fields are typed; anything else the token endpoint returns is
    kept verbatim in ``extra`` so it survives a save/load round trip.
    Instances are replaced, never mutated, on authorization and refresh.
    """

    access_token: str | None = None
    refresh_token: str | None = None
    token_type: str = "bearer"
    expires_in: int | None = None  # Seconds, as issued
    x_refresh_token_expires_in: int | None = None
    expires_at: float | None = None  # Unix timestamp
    realm_id: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def known_fields(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls) if f.name != "extra")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CredentialBundle:
        """Build a bundle from a flat mapping (token response or stored file)."""
        known = {name: data[name] for name in cls.known_fields() if name in data}
        extra = {k: v for k, v in data.items() if k not in known}
        return cls(**known, extra=extra)

    @classmethod
    def from_token_response(
        cls, data: dict[str, Any], now: float | None = None
    ) -> CredentialBundle:
        """Build a bundle from a token endpoint response, stamping expires_at."""
        return cls().merged(data, now=now)

    def to_dict(self) -> dict[str, Any]:
        """Flatten to the JSON object written to disk."""
        data = dict(self.extra)
        for name in self.known_fields():
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        return data

    def merged(
        self, data: dict[str, Any], now: float | None = None
    ) -> CredentialBundle:
        """Return a new bundle with ``data`` laid over this one.

        Fields present in ``data`` win; fields absent from it keep their old
        values. A fresh ``expires_in`` recomputes ``expires_at``.
        """
        update = CredentialBundle.from_dict(data)
        changes = {
            name: getattr(update, name)
            for name in self.known_fields()
            if name in data
        }
        if "expires_in" in data and update.expires_in is not None:
            issued_at = time.time() if now is None else now
            changes["expires_at"] = issued_at + int(update.expires_in)
        return replace(self, **changes, extra={**self.extra, **update.extra})

    def has_access_token(self) -> bool:
        return bool(self.access_token)

    def can_refresh(self) -> bool:
        return bool(self.refresh_token)

    def is_expired(self, buffer_seconds: float = 30.0) -> bool:
        """Check whether the access token is past (or near) its expiry."""
        if self.expires_at is None:
            return False
        return time.time() >= self.expires_at - buffer_seconds


@dataclass(frozen=True)
class TokenRequest:
    """Authorization code exchange parameters (RFC 6749 Section 4.1.3).

    Client authentication travels in the HTTP Basic header, so the client
    id is not part of the form body.
    """

    code: str
    redirect_uri: str
    grant_type: str = "authorization_code"

    def to_form_data(self) -> dict[str, str]:
        return {
            "grant_type": self.grant_type,
            "code": self.code,
            "redirect_uri": self.redirect_uri,
        }


@dataclass(frozen=True)
class RefreshTokenRequest:
    """Refresh token request parameters (RFC 6749 Section 6)."""

    refresh_token: str
    grant_type: str = "refresh_token"

    def to_form_data(self) -> dict[str, str]:
        return {
            "grant_type": self.grant_type,
            "refresh_token": self.refresh_token,
        }


@dataclass(frozen=True)
class AuthorizationRequest:
    """Authorization request parameters for the OAuth 2.0 code flow."""

    authorization_endpoint: str
    client_id: str
    redirect_uri: str
    scope: str
    state: str

    def build_authorization_url(self) -> str:
        """Build the complete authorization URL."""
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": self.scope,
            "state": self.state,
        }
        return f"{self.authorization_endpoint}?{urlencode(params)}"


@dataclass(frozen=True)
class AuthorizationResponse:
    code: str | None = None
    state: str | None = None
    realm_id: str | None = None
    error: str | None = None
    error_description: str | None = None

    def is_success(self) -> bool:
        return self.error is None and bool(self.code)

    def is_error(self) -> bool:
        return self.error is not None
