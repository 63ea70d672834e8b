"""
인증 플로우 유즈케이스 테스트
"""

import base64
import hashlib
from unittest.mock import Mock

import pytest

from core.domain.entities import CallbackResult, CallbackStatus, OAuthClientConfig, TokenGrant, UserInfo
from core.domain.exceptions import (
    AuthorizationDeniedError,
    AuthorizationTimeoutError,
    ConfigurationError,
    CsrfStateMismatchError,
    MalformedCallbackError,
    MissingRefreshTokenError,
    PortsExhaustedError,
    TokenEndpointError,
    TokenExchangeError,
)
from core.domain.ports import (
    BrowserLauncherPort,
    CallbackListenerPort,
    MailApiClientPort,
    OAuthClientPort,
)
from core.usecases.authentication import (
    AuthorizationFlowUseCase,
    generate_code_challenge,
    generate_code_verifier,
)


class FakeListener(CallbackListenerPort):
    """콜백 결과를 미리 정해 두는 리스너

    respond()에는 state를 받아 CallbackResult를 만드는 함수를 넘깁니다.
    """

    def __init__(self, respond, bound_port: int = 8080):
        self.respond = respond
        self.bound_port = bound_port
        self.bound_ports = None
        self.closed = False
        self.expected_state = None

    def bind(self, ports: range) -> int:
        self.bound_ports = ports
        if self.bound_port not in ports:
            raise PortsExhaustedError(ports)
        return self.bound_port

    async def wait_for_callback(self, timeout: float) -> CallbackResult:
        return self.respond(self.expected_state)

    async def close(self) -> None:
        self.closed = True


def received(state):
    return CallbackResult(status=CallbackStatus.RECEIVED, code="auth-code", state=state)


@pytest.fixture
def oauth_client():
    client = Mock(spec=OAuthClientPort)
    client.build_authorization_url.side_effect = (
        lambda **kwargs: f"https://accounts.google.com/auth?state={kwargs['state']}"
    )
    client.exchange_code.return_value = TokenGrant(
        access_token="access-1", refresh_token="refresh-1", expires_in=3600
    )
    return client


@pytest.fixture
def mail_api_client():
    client = Mock(spec=MailApiClientPort)
    client.get_user_info.return_value = UserInfo(
        email="Alice@Example.com", name="Alice", picture="https://example.com/a.png"
    )
    return client


@pytest.fixture
def browser():
    launcher = Mock(spec=BrowserLauncherPort)
    launcher.open_url.return_value = True
    return launcher


@pytest.fixture
def make_flow(client_config, oauth_client, mail_api_client, repository, cipher, browser, logger):
    def _make_flow(listener, config: OAuthClientConfig = None):
        def listener_factory():
            return listener

        flow = AuthorizationFlowUseCase(
            client_config=config or client_config,
            oauth_client=oauth_client,
            mail_api_client=mail_api_client,
            account_repository=repository,
            cipher=cipher,
            browser_launcher=browser,
            listener_factory=listener_factory,
            logger=logger,
        )

        # 생성된 state를 리스너가 돌려주도록 연결
        real_build = flow.build_request

        def build_request(bound_listener):
            request = real_build(bound_listener)
            listener.expected_state = request.state
            return request

        flow.build_request = build_request
        return flow

    return _make_flow


def test_pkce_pair():
    verifier = generate_code_verifier()
    expected = base64.urlsafe_b64encode(hashlib.sha256(verifier.encode()).digest()).rstrip(b"=").decode()

    assert 43 <= len(verifier) <= 128
    assert "=" not in verifier
    assert generate_code_challenge(verifier) == expected


@pytest.mark.asyncio
async def test_successful_flow_saves_account(make_flow, repository, cipher, oauth_client, browser):
    listener = FakeListener(received)
    flow = make_flow(listener)

    account = await flow.authorize()

    assert account.email == "alice@example.com"
    assert account.display_name == "Alice"
    assert account.decrypt_refresh_token(cipher) == "refresh-1"
    assert [a.email for a in repository.accounts] == ["alice@example.com"]
    assert listener.closed
    assert list(listener.bound_ports) == list(range(8080, 8090))
    browser.open_url.assert_called_once()

    exchange_kwargs = oauth_client.exchange_code.await_args.kwargs
    assert exchange_kwargs["redirect_uri"] == "http://localhost:8080"
    assert exchange_kwargs["client_secret"] == "client-secret"
    challenge = oauth_client.build_authorization_url.call_args.kwargs["code_challenge"]
    assert challenge == generate_code_challenge(exchange_kwargs["code_verifier"])


@pytest.mark.asyncio
async def test_redirect_uses_bound_port(make_flow, oauth_client):
    flow = make_flow(FakeListener(received, bound_port=8083))

    await flow.authorize()

    assert oauth_client.build_authorization_url.call_args.kwargs["redirect_uri"] == "http://localhost:8083"


@pytest.mark.asyncio
async def test_state_mismatch_is_rejected(make_flow, oauth_client, repository):
    listener = FakeListener(lambda state: received(state + "-forged"))
    flow = make_flow(listener)

    with pytest.raises(CsrfStateMismatchError):
        await flow.authorize()

    oauth_client.exchange_code.assert_not_called()
    assert repository.accounts == []
    assert listener.closed


@pytest.mark.asyncio
async def test_state_comparison_is_case_sensitive(make_flow):
    flow = make_flow(FakeListener(lambda state: received(state.swapcase())))

    with pytest.raises(CsrfStateMismatchError):
        await flow.authorize()


@pytest.mark.asyncio
async def test_denied_callback(make_flow):
    flow = make_flow(FakeListener(
        lambda state: CallbackResult(status=CallbackStatus.DENIED, error="access_denied", state=state)
    ))

    with pytest.raises(AuthorizationDeniedError) as exc_info:
        await flow.authorize()
    assert exc_info.value.error == "access_denied"


@pytest.mark.asyncio
async def test_timeout_callback(make_flow):
    flow = make_flow(FakeListener(lambda state: CallbackResult.timeout()))

    with pytest.raises(AuthorizationTimeoutError):
        await flow.authorize()


@pytest.mark.asyncio
async def test_malformed_callback(make_flow):
    flow = make_flow(FakeListener(
        lambda state: CallbackResult(status=CallbackStatus.MALFORMED, code="auth-code")
    ))

    with pytest.raises(MalformedCallbackError):
        await flow.authorize()


@pytest.mark.asyncio
async def test_ports_exhausted(make_flow, browser):
    listener = FakeListener(received, bound_port=9999)
    flow = make_flow(listener)

    with pytest.raises(PortsExhaustedError):
        await flow.authorize()
    browser.open_url.assert_not_called()
    assert listener.closed


@pytest.mark.asyncio
async def test_public_client_retry(make_flow, oauth_client, repository):
    oauth_client.exchange_code.side_effect = [
        TokenEndpointError(401, "invalid_client", "Unauthorized"),
        TokenGrant(access_token="access-1", refresh_token="refresh-1"),
    ]
    flow = make_flow(FakeListener(received))

    await flow.authorize()

    assert oauth_client.exchange_code.await_count == 2
    secrets_sent = [call.kwargs["client_secret"] for call in oauth_client.exchange_code.await_args_list]
    assert secrets_sent == ["client-secret", None]
    assert len(repository.accounts) == 1


@pytest.mark.asyncio
async def test_public_client_retry_failure(make_flow, oauth_client):
    oauth_client.exchange_code.side_effect = [
        TokenEndpointError(400, "invalid_client"),
        TokenEndpointError(400, "invalid_request"),
    ]
    flow = make_flow(FakeListener(received))

    with pytest.raises(TokenExchangeError):
        await flow.authorize()
    assert oauth_client.exchange_code.await_count == 2


@pytest.mark.asyncio
async def test_other_exchange_errors_are_not_retried(make_flow, oauth_client):
    oauth_client.exchange_code.side_effect = TokenEndpointError(400, "invalid_grant")
    flow = make_flow(FakeListener(received))

    with pytest.raises(TokenExchangeError):
        await flow.authorize()
    assert oauth_client.exchange_code.await_count == 1


@pytest.mark.asyncio
async def test_missing_refresh_token_is_fatal(make_flow, oauth_client, mail_api_client, repository):
    oauth_client.exchange_code.return_value = TokenGrant(access_token="access-1")
    flow = make_flow(FakeListener(received))

    with pytest.raises(MissingRefreshTokenError):
        await flow.authorize()
    mail_api_client.get_user_info.assert_not_called()
    assert repository.accounts == []


@pytest.mark.asyncio
async def test_display_name_falls_back_to_local_part(make_flow, mail_api_client):
    mail_api_client.get_user_info.return_value = UserInfo(email="bob@example.com")
    flow = make_flow(FakeListener(received))

    account = await flow.authorize()

    assert account.display_name == "bob"


@pytest.mark.asyncio
async def test_browser_failure_is_not_fatal(make_flow, browser):
    browser.open_url.return_value = False
    shown = []
    flow = make_flow(FakeListener(received))

    account = await flow.authorize(on_authorization_url=lambda url, opened: shown.append((url, opened)))

    assert account.email == "alice@example.com"
    assert shown and shown[0][1] is False


@pytest.mark.asyncio
async def test_placeholder_blocks_before_network(make_flow, oauth_client, browser):
    placeholder = OAuthClientConfig(
        client_id="YOUR_CLIENT_ID.apps.googleusercontent.com",
        client_secret="YOUR_CLIENT_SECRET",
    )
    listener = FakeListener(received)
    flow = make_flow(listener, config=placeholder)

    with pytest.raises(ConfigurationError):
        await flow.authorize()

    assert listener.bound_ports is None
    oauth_client.build_authorization_url.assert_not_called()
    browser.open_url.assert_not_called()
