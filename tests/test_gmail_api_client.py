"""
Gmail API 클라이언트와 네트워크 프로브 어댑터 테스트
"""

import httpx
import pytest

from adapters.external.gmail_api_client import GmailApiClientAdapter
from adapters.external.network_probe import HttpNetworkProbeAdapter
from core.domain.exceptions import NetworkUnavailableError, ProviderApiError, UnauthorizedError


def _client(logger, handler):
    return GmailApiClientAdapter(logger, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_get_unread_count_reads_inbox_label(logger):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["auth"] = request.headers["Authorization"]
        return httpx.Response(200, json={"id": "INBOX", "messagesUnread": 7, "messagesTotal": 120})

    count = await _client(logger, handler).get_unread_count("access-1")

    assert count == 7
    assert seen["path"] == "/gmail/v1/users/me/labels/INBOX"
    assert seen["auth"] == "Bearer access-1"


@pytest.mark.asyncio
async def test_missing_unread_field_is_zero(logger):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"id": "INBOX"})

    assert await _client(logger, handler).get_unread_count("access-1") == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [
    httpx.Response(200, text="<html>로그인이 필요합니다</html>"),
    httpx.Response(200, json=[{"messagesUnread": 3}]),
    httpx.Response(200, json={"messagesUnread": "many"}),
])
async def test_unreadable_unread_body_is_provider_error(logger, response):
    with pytest.raises(ProviderApiError) as exc_info:
        await _client(logger, lambda request: response).get_unread_count("access-1")
    assert exc_info.value.status_code == 200


@pytest.mark.asyncio
async def test_get_user_info(logger):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={
            "sub": "1234",
            "email": "alice@example.com",
            "name": "Alice",
            "picture": "https://lh3.googleusercontent.com/a/photo",
        })

    info = await _client(logger, handler).get_user_info("access-1")

    assert info.email == "alice@example.com"
    assert info.name == "Alice"
    assert info.picture.endswith("/photo")


@pytest.mark.asyncio
async def test_unauthorized_response(logger):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": "invalid_token"})

    with pytest.raises(UnauthorizedError) as exc_info:
        await _client(logger, handler).get_user_info("expired")
    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_forbidden_response_is_provider_error(logger):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"error": {"message": "Insufficient Permission"}})

    with pytest.raises(ProviderApiError) as exc_info:
        await _client(logger, handler).get_unread_count("access-1")

    assert not isinstance(exc_info.value, UnauthorizedError)
    assert exc_info.value.status_code == 403


@pytest.mark.asyncio
async def test_connect_error_is_network_unavailable(logger):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("no route to host", request=request)

    with pytest.raises(NetworkUnavailableError):
        await _client(logger, handler).get_unread_count("access-1")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status_code, expected",
    [(204, True), (200, True), (503, False)],
)
async def test_network_probe_status(logger, status_code, expected):
    probe = HttpNetworkProbeAdapter(
        logger,
        transport=httpx.MockTransport(lambda request: httpx.Response(status_code)),
    )

    assert await probe.probe() is expected


@pytest.mark.asyncio
async def test_network_probe_transport_failure(logger):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    probe = HttpNetworkProbeAdapter(logger, transport=httpx.MockTransport(handler))

    assert await probe.probe() is False
