"""Tests for the credential bundle and OAuth request models."""

from urllib.parse import parse_qs, urlparse

from quickbooks_mcp.auth.models import (
    AuthorizationRequest,
    AuthorizationResponse,
    CredentialBundle,
    RefreshTokenRequest,
    TokenRequest,
)


class TestCredentialBundle:
    def test_from_token_response_stamps_expiry(self):
        # Arrange
        data = {
            "access_token": "at",
            "refresh_token": "rt",
            "token_type": "bearer",
            "expires_in": 3600,
            "x_refresh_token_expires_in": 8726400,
        }

        # Act
        bundle = CredentialBundle.from_token_response(data, now=1000.0)

        # Assert
        assert bundle.access_token == "at"
        assert bundle.refresh_token == "rt"
        assert bundle.expires_in == 3600
        assert bundle.x_refresh_token_expires_in == 8726400
        assert bundle.expires_at == 4600.0
        assert bundle.extra == {}

    def test_unknown_fields_are_kept_in_extra(self):
        # Act
        bundle = CredentialBundle.from_dict({"access_token": "at", "id_token": "jwt"})

        # Assert
        assert bundle.extra == {"id_token": "jwt"}
        assert bundle.to_dict()["id_token"] == "jwt"

    def test_merge_overwrites_returned_fields_and_keeps_the_rest(self):
        # Arrange
        bundle = CredentialBundle(
            access_token="old-at",
            refresh_token="rt",
            expires_in=3600,
            expires_at=4600.0,
            realm_id="9130",
        )

        # Act
        merged = bundle.merged({"access_token": "new-at", "expires_in": 3600}, now=5000.0)

        # Assert
        assert merged.access_token == "new-at"
        assert merged.refresh_token == "rt"
        assert merged.realm_id == "9130"
        assert merged.expires_at == 8600.0

    def test_merge_replaces_refresh_token_when_rotated(self):
        # Arrange
        bundle = CredentialBundle(access_token="at", refresh_token="rt-1")

        # Act
        merged = bundle.merged({"access_token": "at-2", "refresh_token": "rt-2"})

        # Assert
        assert merged.refresh_token == "rt-2"

    def test_merge_does_not_mutate_original(self):
        # Arrange
        bundle = CredentialBundle(access_token="at", extra={"a": 1})

        # Act
        merged = bundle.merged({"access_token": "at-2", "b": 2})

        # Assert
        assert bundle.access_token == "at"
        assert bundle.extra == {"a": 1}
        assert merged.extra == {"a": 1, "b": 2}

    def test_to_dict_omits_unset_fields(self):
        # Act
        data = CredentialBundle(access_token="at").to_dict()

        # Assert
        assert data == {"access_token": "at", "token_type": "bearer"}

    def test_is_expired(self):
        assert not CredentialBundle(access_token="at").is_expired()
        assert CredentialBundle(access_token="at", expires_at=0.0).is_expired()
        assert not CredentialBundle(
            access_token="at", expires_at=4102444800.0
        ).is_expired()

    def test_can_refresh_requires_refresh_token(self):
        assert CredentialBundle(refresh_token="rt").can_refresh()
        assert not CredentialBundle(access_token="at").can_refresh()


class TestRequests:
    def test_token_request_form_data(self):
        # Act
        form = TokenRequest(
            code="auth-code", redirect_uri="http://localhost:3000/callback"
        ).to_form_data()

        # Assert
        assert form == {
            "grant_type": "authorization_code",
            "code": "auth-code",
            "redirect_uri": "http://localhost:3000/callback",
        }

    def test_refresh_request_form_data(self):
        # Act
        form = RefreshTokenRequest(refresh_token="rt").to_form_data()

        # Assert
        assert form == {"grant_type": "refresh_token", "refresh_token": "rt"}

    def test_authorization_url_carries_all_parameters(self):
        # Arrange
        request = AuthorizationRequest(
            authorization_endpoint="https://appcenter.intuit.com/connect/oauth2",
            client_id="client-123",
            redirect_uri="http://localhost:3000/callback",
            scope="com.intuit.quickbooks.accounting",
            state="state-abc",
        )

        # Act
        url = request.build_authorization_url()

        # Assert
        parsed = urlparse(url)
        params = parse_qs(parsed.query)
        assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == (
            "https://appcenter.intuit.com/connect/oauth2"
        )
        assert params == {
            "client_id": ["client-123"],
            "redirect_uri": ["http://localhost:3000/callback"],
            "response_type": ["code"],
            "scope": ["com.intuit.quickbooks.accounting"],
            "state": ["state-abc"],
        }


class TestAuthorizationResponse:
    def test_success_requires_code_and_no_error(self):
        assert AuthorizationResponse(code="c", state="s").is_success()
        assert not AuthorizationResponse(state="s").is_success()
        assert not AuthorizationResponse(code="c", error="access_denied").is_success()

    def test_error(self):
        assert AuthorizationResponse(error="access_denied").is_error()
        assert not AuthorizationResponse(code="c").is_error()
