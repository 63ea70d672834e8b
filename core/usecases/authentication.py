"""
인증 유즈케이스

Gmail OAuth 2.0 Authorization Code + PKCE 플로우를 구현합니다.
- 인증 요청 생성 (PKCE S256, CSRF state, 루프백 리다이렉트)
- 로컬 콜백 대기
- 인증 코드 교환 (공개 클라이언트 재시도 포함)
- 사용자 프로필 조회 및 계정 저장

한 번에 하나의 플로우만 실행하는 것은 호출자의 책임입니다.
"""

import base64
import hashlib
import secrets
from typing import Callable, Optional

from ..domain.entities import (
    Account,
    AuthorizationRequest,
    CallbackResult,
    CallbackStatus,
    OAuthClientConfig,
    TokenGrant,
    UserInfo,
    mask_secret,
)
from ..domain.exceptions import (
    AuthorizationDeniedError,
    AuthorizationTimeoutError,
    ConfigurationError,
    CsrfStateMismatchError,
    MalformedCallbackError,
    MissingRefreshTokenError,
    NetworkError,
    TokenEndpointError,
    TokenExchangeError,
)
from ..domain.ports import (
    AccountRepositoryPort,
    BrowserLauncherPort,
    CallbackListenerPort,
    LoggerPort,
    MailApiClientPort,
    OAuthClientPort,
    TokenCipherPort,
)


def generate_code_verifier() -> str:
    """PKCE code_verifier 생성 (43자 base64url)"""
    return base64.urlsafe_b64encode(secrets.token_bytes(32)).rstrip(b"=").decode("ascii")


def generate_code_challenge(code_verifier: str) -> str:
    """S256 code_challenge 계산"""
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def generate_state() -> str:
    """CSRF 방지용 state 생성"""
    return secrets.token_urlsafe(32)


class AuthorizationFlowUseCase:
    """인증 플로우 유즈케이스"""

    def __init__(
        self,
        client_config: OAuthClientConfig,
        oauth_client: OAuthClientPort,
        mail_api_client: MailApiClientPort,
        account_repository: AccountRepositoryPort,
        cipher: TokenCipherPort,
        browser_launcher: BrowserLauncherPort,
        listener_factory: Callable[[], CallbackListenerPort],
        logger: LoggerPort,
    ):
        self.client_config = client_config
        self.oauth_client = oauth_client
        self.mail_api_client = mail_api_client
        self.account_repository = account_repository
        self.cipher = cipher
        self.browser_launcher = browser_launcher
        self.listener_factory = listener_factory
        self.logger = logger

    async def authorize(
        self,
        on_authorization_url: Optional[Callable[[str, bool], None]] = None,
    ) -> Account:
        """
        인증 플로우 전체를 실행하고 저장된 계정을 반환합니다.

        Args:
            on_authorization_url: 인증 URL과 브라우저 실행 성공 여부를 받는 콜백

        Raises:
            ConfigurationError: 클라이언트 자격 증명이 플레이스홀더인 경우
            AuthorizationError: 플로우 단계별 실패
        """
        if self.client_config.is_placeholder():
            raise ConfigurationError(
                "OAuth 클라이언트 설정이 필요합니다. GMAIL_CLIENT_ID와 GMAIL_CLIENT_SECRET을 설정하세요"
            )

        self.logger.info("Gmail 인증 플로우 시작")
        await self.cipher.prepare()
        listener = self.listener_factory()
        try:
            request = self.build_request(listener)

            opened = self.browser_launcher.open_url(request.authorization_url)
            if not opened:
                self.logger.warning("브라우저를 열지 못했습니다. 인증 URL을 직접 여세요")
            if on_authorization_url is not None:
                on_authorization_url(request.authorization_url, opened)

            callback = await listener.wait_for_callback(self.client_config.callback_timeout_seconds)
            code = self.validate_callback(callback, request.state)

            grant = await self.exchange_code(code, request)
            if not grant.refresh_token:
                self.logger.error("토큰 응답에 refresh_token이 없습니다")
                raise MissingRefreshTokenError(
                    "refresh_token을 받지 못했습니다. 계정 권한을 해제한 뒤 다시 인증하세요"
                )

            user_info = await self.mail_api_client.get_user_info(grant.access_token)
            account = self._build_account(user_info, grant)
            await self.account_repository.save_account(account)
        finally:
            await listener.close()

        self.logger.info(f"Gmail 인증 완료: {account.email}")
        return account

    def build_request(self, listener: CallbackListenerPort) -> AuthorizationRequest:
        """콜백 포트를 바인딩하고 PKCE 인증 요청을 생성합니다."""
        port = listener.bind(self.client_config.port_candidates())
        redirect_uri = self.client_config.redirect_uri_for(port)

        code_verifier = generate_code_verifier()
        state = generate_state()
        authorization_url = self.oauth_client.build_authorization_url(
            client_id=self.client_config.client_id,
            redirect_uri=redirect_uri,
            scopes=self.client_config.scopes,
            state=state,
            code_challenge=generate_code_challenge(code_verifier),
        )

        self.logger.debug(f"인증 요청 생성: redirect_uri={redirect_uri}, state={mask_secret(state)}")
        return AuthorizationRequest(
            authorization_url=authorization_url,
            state=state,
            code_verifier=code_verifier,
            redirect_uri=redirect_uri,
            port=port,
        )

    def validate_callback(self, callback: CallbackResult, expected_state: str) -> str:
        """콜백 결과를 검증하고 인증 코드를 반환합니다."""
        if callback.status == CallbackStatus.DENIED:
            raise AuthorizationDeniedError(callback.error or "access_denied")

        if callback.status == CallbackStatus.TIMEOUT:
            raise AuthorizationTimeoutError(
                f"{self.client_config.callback_timeout_seconds:g}초 안에 인증이 완료되지 않았습니다"
            )

        if callback.status == CallbackStatus.MALFORMED or not callback.code:
            raise MalformedCallbackError("콜백 요청에 인증 코드 또는 state가 없습니다")

        if callback.state != expected_state:
            self.logger.error(f"state 불일치: 수신={mask_secret(callback.state)}")
            raise CsrfStateMismatchError("state 값이 일치하지 않습니다 (CSRF 의심)")

        return callback.code

    async def exchange_code(self, code: str, request: AuthorizationRequest) -> TokenGrant:
        """
        인증 코드를 토큰으로 교환합니다.

        클라이언트 인증 실패(invalid_client 또는 401) 시 시크릿 없이 한 번 재시도합니다.
        """
        try:
            return await self.oauth_client.exchange_code(
                client_id=self.client_config.client_id,
                client_secret=self.client_config.client_secret,
                code=code,
                code_verifier=request.code_verifier,
                redirect_uri=request.redirect_uri,
            )
        except TokenEndpointError as e:
            if not e.is_client_authentication_failure():
                raise TokenExchangeError(f"토큰 교환 실패: {str(e)}") from e
            self.logger.warning("클라이언트 인증 실패, 공개 클라이언트로 재시도")
        except NetworkError as e:
            raise TokenExchangeError(f"토큰 교환 중 네트워크 오류: {str(e)}") from e

        try:
            return await self.oauth_client.exchange_code(
                client_id=self.client_config.client_id,
                client_secret=None,
                code=code,
                code_verifier=request.code_verifier,
                redirect_uri=request.redirect_uri,
            )
        except (TokenEndpointError, NetworkError) as e:
            raise TokenExchangeError(f"토큰 교환 실패 (공개 클라이언트 재시도): {str(e)}") from e

    def _build_account(self, user_info: UserInfo, grant: TokenGrant) -> Account:
        """프로필과 토큰으로 계정 엔티티를 생성합니다."""
        display_name = user_info.name or user_info.email.split("@")[0]
        return Account.create(
            email=user_info.email,
            display_name=display_name,
            access_token=grant.access_token,
            refresh_token=grant.refresh_token,
            expires_in_seconds=grant.expires_in,
            cipher=self.cipher,
        )
