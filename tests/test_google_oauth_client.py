"""
Google OAuth 클라이언트 어댑터 테스트
"""

from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from adapters.external.google_oauth_client import TOKEN_ENDPOINT, GoogleOAuthClientAdapter
from core.domain.exceptions import NetworkUnavailableError, ProviderTransportError, TokenEndpointError


def _client(logger, handler):
    return GoogleOAuthClientAdapter(logger, transport=httpx.MockTransport(handler))


def test_build_authorization_url(logger):
    client = GoogleOAuthClientAdapter(logger)

    url = client.build_authorization_url(
        client_id="client-123",
        redirect_uri="http://localhost:8080",
        scopes=["https://www.googleapis.com/auth/gmail.readonly", "openid"],
        state="state-abc",
        code_challenge="challenge-xyz",
    )

    parts = urlsplit(url)
    params = {key: values[0] for key, values in parse_qs(parts.query).items()}
    assert parts.netloc == "accounts.google.com"
    assert params["response_type"] == "code"
    assert params["redirect_uri"] == "http://localhost:8080"
    assert params["scope"] == "https://www.googleapis.com/auth/gmail.readonly openid"
    assert params["state"] == "state-abc"
    assert params["code_challenge"] == "challenge-xyz"
    assert params["code_challenge_method"] == "S256"
    assert params["access_type"] == "offline"
    assert params["prompt"] == "consent"


@pytest.mark.asyncio
async def test_exchange_code_posts_pkce_form(logger):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["form"] = parse_qs(request.content.decode())
        return httpx.Response(200, json={
            "access_token": "access-1",
            "refresh_token": "refresh-1",
            "expires_in": 3599,
            "token_type": "Bearer",
            "scope": "openid",
        })

    grant = await _client(logger, handler).exchange_code(
        client_id="client-123",
        client_secret="secret",
        code="auth-code",
        code_verifier="verifier",
        redirect_uri="http://localhost:8080",
    )

    assert seen["url"] == TOKEN_ENDPOINT
    assert seen["form"]["grant_type"] == ["authorization_code"]
    assert seen["form"]["code_verifier"] == ["verifier"]
    assert seen["form"]["client_secret"] == ["secret"]
    assert grant.access_token == "access-1"
    assert grant.refresh_token == "refresh-1"
    assert grant.expires_in == 3599


@pytest.mark.asyncio
async def test_exchange_code_without_secret_omits_field(logger):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["form"] = parse_qs(request.content.decode())
        return httpx.Response(200, json={"access_token": "access-1"})

    grant = await _client(logger, handler).exchange_code(
        client_id="client-123",
        client_secret=None,
        code="auth-code",
        code_verifier="verifier",
        redirect_uri="http://localhost:8080",
    )

    assert "client_secret" not in seen["form"]
    assert grant.refresh_token is None
    assert grant.expires_in == 3600


@pytest.mark.asyncio
async def test_refresh_error_is_parsed(logger):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={
            "error": "invalid_grant",
            "error_description": "Token has been expired or revoked.",
        })

    with pytest.raises(TokenEndpointError) as exc_info:
        await _client(logger, handler).refresh_access_token("client-123", "secret", "refresh-0")

    error = exc_info.value
    assert error.status_code == 400
    assert error.error_code == "invalid_grant"
    assert error.is_invalid_grant()
    assert not error.is_client_authentication_failure()


@pytest.mark.asyncio
async def test_unauthorized_counts_as_client_failure(logger):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, text="Unauthorized")

    with pytest.raises(TokenEndpointError) as exc_info:
        await _client(logger, handler).refresh_access_token("client-123", "secret", "refresh-0")

    assert exc_info.value.is_client_authentication_failure()
    assert exc_info.value.error_code is None


@pytest.mark.asyncio
async def test_connect_error_is_network_unavailable(logger):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(NetworkUnavailableError):
        await _client(logger, handler).refresh_access_token("client-123", "secret", "refresh-0")


@pytest.mark.asyncio
async def test_read_timeout_is_transport_error(logger):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(ProviderTransportError):
        await _client(logger, handler).refresh_access_token("client-123", "secret", "refresh-0")
