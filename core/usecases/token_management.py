"""
토큰 관리 유즈케이스

계정 하나의 액세스 토큰 유효성을 보장합니다.
- 만료 임박 시 선갱신
- 강제 갱신 (API 401 응답 후)
- 갱신 실패 분류 (재인증 필요 / 재시도 가능)
"""

from typing import Optional

from ..domain.entities import Account, OAuthClientConfig
from ..domain.exceptions import (
    CryptoError,
    InvalidGrantError,
    NetworkError,
    RetryableRefreshError,
    TokenEndpointError,
)
from ..domain.ports import AccountRepositoryPort, LoggerPort, OAuthClientPort, TokenCipherPort


# 재인증 필요 시 사용자에게 보여주는 메시지
REAUTHORIZATION_MESSAGE = "토큰이 무효이거나 만료되었습니다. 다시 인증해 주세요"


class TokenManager:
    """계정 단위 토큰 관리자

    계정 엔티티를 제자리에서 갱신하며, 저장소가 주어지면 갱신 후 저장합니다.
    """

    def __init__(
        self,
        account: Account,
        oauth_client: OAuthClientPort,
        client_config: OAuthClientConfig,
        cipher: TokenCipherPort,
        logger: LoggerPort,
        repository: Optional[AccountRepositoryPort] = None,
        threshold_minutes: int = 5,
    ):
        self._account = account
        self.oauth_client = oauth_client
        self.client_config = client_config
        self.cipher = cipher
        self.logger = logger
        self.repository = repository
        self.threshold_minutes = threshold_minutes
        self.refresh_count = 0
        self.last_persist_error: Optional[Exception] = None

    @property
    def account(self) -> Account:
        return self._account

    async def get_valid_token(self) -> str:
        """
        유효한 액세스 토큰을 반환합니다.

        만료까지 threshold_minutes 이하로 남았으면 먼저 갱신합니다.

        Raises:
            InvalidGrantError: 재인증이 필요한 경우
            RetryableRefreshError: 일시적인 갱신 실패
            CryptoError: 저장된 토큰을 복호화할 수 없는 경우
        """
        if self._account.is_token_expiring(self.threshold_minutes):
            self.logger.info(f"토큰 만료 임박, 갱신 시작: {self._account.email}")
            await self._refresh()

        return self._account.decrypt_access_token(self.cipher)

    async def force_refresh(self) -> str:
        """만료 여부와 관계없이 토큰을 갱신하고 새 액세스 토큰을 반환합니다."""
        self.logger.info(f"토큰 강제 갱신: {self._account.email}")
        await self._refresh()
        return self._account.decrypt_access_token(self.cipher)

    async def _refresh(self) -> None:
        """refresh_token으로 토큰을 갱신합니다. 실패 시 계정은 변경되지 않습니다."""
        email = self._account.email
        refresh_token = self._account.decrypt_refresh_token(self.cipher)

        try:
            grant = await self.oauth_client.refresh_access_token(
                client_id=self.client_config.client_id,
                client_secret=self.client_config.client_secret or None,
                refresh_token=refresh_token,
            )
        except TokenEndpointError as e:
            if e.is_invalid_grant():
                self.logger.warning(f"Refresh Token 무효, 재인증 필요: {email} ({e.error_code})")
                raise InvalidGrantError(REAUTHORIZATION_MESSAGE) from e
            self.logger.error(f"토큰 갱신 실패: {email} - {str(e)}")
            raise RetryableRefreshError(f"토큰 갱신 실패: {str(e)}") from e
        except NetworkError as e:
            self.logger.error(f"토큰 갱신 중 네트워크 오류: {email} - {str(e)}")
            raise RetryableRefreshError(f"토큰 갱신 중 네트워크 오류: {str(e)}") from e

        try:
            self._account.update_access_token(grant.access_token, grant.expires_in, self.cipher)
        except CryptoError as e:
            raise RetryableRefreshError(f"새 토큰 암호화 실패: {str(e)}") from e

        self.refresh_count += 1
        self.logger.info(
            f"토큰 갱신 완료: {email} (만료: {self._account.expires_at.isoformat()})"
        )
        await self._persist()

    async def _persist(self) -> None:
        """갱신된 계정을 저장합니다. 실패해도 메모리의 새 토큰은 유지됩니다."""
        if self.repository is None:
            return

        try:
            await self.repository.save_account(self._account)
            self.last_persist_error = None
        except Exception as e:
            self.last_persist_error = e
            self.logger.error(f"갱신된 토큰 저장 실패: {self._account.email} - {str(e)}")
