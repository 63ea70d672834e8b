"""
어댑터 팩토리

모든 어댑터들을 생성하고 의존성을 주입하는 팩토리 클래스입니다.
클린 아키텍처의 의존성 역전 원칙을 구현합니다.
"""

from typing import Optional

from core.domain.ports import (
    AccountRepositoryPort,
    BrowserLauncherPort,
    CallbackListenerPort,
    ConfigPort,
    KeyDerivationPort,
    LoggerPort,
    MailApiClientPort,
    NetworkProbePort,
    OAuthClientPort,
    TokenCipherPort,
)
from core.usecases.account_management import AccountManagementUseCase
from core.usecases.authentication import AuthorizationFlowUseCase
from core.usecases.mail_sync import SyncEngine
from core.usecases.network_check import NetworkAvailabilityChecker
from core.usecases.token_management import TokenManager
from core.domain.entities import Account

from .external.browser_launcher import SystemBrowserLauncherAdapter
from .external.encryption_service import EncryptionServiceAdapter
from .external.gmail_api_client import GmailApiClientAdapter
from .external.google_oauth_client import GoogleOAuthClientAdapter
from .external.machine_key import MachineKeyDerivationAdapter
from .external.network_probe import HttpNetworkProbeAdapter
from .logger import LoggerAdapter
from .storage.account_file_repository import AccountFileRepositoryAdapter
from .web.callback_server import LoopbackCallbackServer
from config.adapters import get_config


class AdapterFactory:
    """어댑터 팩토리"""

    def __init__(self, config: Optional[ConfigPort] = None):
        self.config = config or get_config()
        self._logger: Optional[LoggerPort] = None
        self._key_derivation: Optional[KeyDerivationPort] = None
        self._cipher: Optional[TokenCipherPort] = None
        self._account_repository: Optional[AccountRepositoryPort] = None
        self._oauth_client: Optional[OAuthClientPort] = None
        self._mail_api_client: Optional[MailApiClientPort] = None
        self._sync_engine: Optional[SyncEngine] = None

    def create_logger(self) -> LoggerPort:
        """로거 어댑터를 생성합니다."""
        if self._logger is None:
            self._logger = LoggerAdapter(
                name="gmail_pulse",
                level=self.config.get_log_level(),
                format_string=self.config.get_log_format(),
            )
        return self._logger

    def create_key_derivation(self) -> KeyDerivationPort:
        """기기 바인딩 키 파생 어댑터를 생성합니다."""
        if self._key_derivation is None:
            self._key_derivation = MachineKeyDerivationAdapter(logger=self.create_logger())
        return self._key_derivation

    def create_cipher(self) -> TokenCipherPort:
        """토큰 암호화 어댑터를 생성합니다. 키는 첫 사용 시 한 번만 파생됩니다."""
        if self._cipher is None:
            self._cipher = EncryptionServiceAdapter(
                key_derivation=self.create_key_derivation(),
                logger=self.create_logger(),
            )
        return self._cipher

    def create_account_repository(self) -> AccountRepositoryPort:
        """계정 저장소 어댑터를 생성합니다."""
        if self._account_repository is None:
            self._account_repository = AccountFileRepositoryAdapter(
                file_path=self.config.get_accounts_file(),
                logger=self.create_logger(),
            )
        return self._account_repository

    def create_oauth_client(self) -> OAuthClientPort:
        """Google OAuth 클라이언트 어댑터를 생성합니다."""
        if self._oauth_client is None:
            self._oauth_client = GoogleOAuthClientAdapter(
                logger=self.create_logger(),
                timeout=self.config.get_http_timeout_seconds(),
            )
        return self._oauth_client

    def create_mail_api_client(self) -> MailApiClientPort:
        """Gmail API 클라이언트 어댑터를 생성합니다."""
        if self._mail_api_client is None:
            self._mail_api_client = GmailApiClientAdapter(
                logger=self.create_logger(),
                timeout=self.config.get_http_timeout_seconds(),
            )
        return self._mail_api_client

    def create_network_probe(self) -> NetworkProbePort:
        """네트워크 프로브 어댑터를 생성합니다."""
        network_config = self.config.get_network_check_config()
        return HttpNetworkProbeAdapter(
            logger=self.create_logger(),
            check_url=network_config["url"],
            timeout=network_config["timeout"],
        )

    def create_network_checker(self) -> NetworkAvailabilityChecker:
        """네트워크 가용성 검사기를 생성합니다."""
        network_config = self.config.get_network_check_config()
        return NetworkAvailabilityChecker(
            probe=self.create_network_probe(),
            logger=self.create_logger(),
            max_attempts=network_config["max_attempts"],
            initial_delay=network_config["initial_delay"],
            max_delay=network_config["max_delay"],
        )

    def create_browser_launcher(self) -> BrowserLauncherPort:
        """브라우저 실행 어댑터를 생성합니다."""
        return SystemBrowserLauncherAdapter(logger=self.create_logger())

    def create_callback_listener(self) -> CallbackListenerPort:
        """인증 시도 한 번에 사용할 콜백 리스너를 생성합니다."""
        return LoopbackCallbackServer(logger=self.create_logger())

    def create_account_management_usecase(self) -> AccountManagementUseCase:
        """계정 관리 유즈케이스를 생성합니다."""
        return AccountManagementUseCase(
            account_repository=self.create_account_repository(),
            logger=self.create_logger(),
        )

    def create_authorization_flow_usecase(self) -> AuthorizationFlowUseCase:
        """인증 플로우 유즈케이스를 생성합니다."""
        return AuthorizationFlowUseCase(
            client_config=self.config.get_oauth_client_config(),
            oauth_client=self.create_oauth_client(),
            mail_api_client=self.create_mail_api_client(),
            account_repository=self.create_account_repository(),
            cipher=self.create_cipher(),
            browser_launcher=self.create_browser_launcher(),
            listener_factory=self.create_callback_listener,
            logger=self.create_logger(),
        )

    def create_token_manager(self, account: Account) -> TokenManager:
        """계정 하나의 토큰 관리자를 생성합니다."""
        return TokenManager(
            account=account,
            oauth_client=self.create_oauth_client(),
            client_config=self.config.get_oauth_client_config(),
            cipher=self.create_cipher(),
            logger=self.create_logger(),
            repository=self.create_account_repository(),
            threshold_minutes=self.config.get_token_refresh_threshold_minutes(),
        )

    def create_sync_engine(self) -> SyncEngine:
        """동기화 엔진을 생성합니다."""
        if self._sync_engine is None:
            self._sync_engine = SyncEngine(
                account_repository=self.create_account_repository(),
                oauth_client=self.create_oauth_client(),
                mail_api_client=self.create_mail_api_client(),
                client_config=self.config.get_oauth_client_config(),
                cipher=self.create_cipher(),
                network_checker=self.create_network_checker(),
                logger=self.create_logger(),
                threshold_minutes=self.config.get_token_refresh_threshold_minutes(),
                interval_seconds=self.config.get_sync_interval_seconds(),
                initial_delay_seconds=self.config.get_sync_initial_delay_seconds(),
            )
        return self._sync_engine

    def get_config(self) -> ConfigPort:
        """설정 객체를 반환합니다."""
        return self.config


# 전역 팩토리 인스턴스
_factory: Optional[AdapterFactory] = None


def get_adapter_factory() -> AdapterFactory:
    """전역 어댑터 팩토리 인스턴스를 반환합니다."""
    global _factory
    if _factory is None:
        _factory = AdapterFactory()
    return _factory


def initialize_adapter_factory(config: Optional[ConfigPort] = None) -> AdapterFactory:
    """어댑터 팩토리를 초기화합니다."""
    global _factory
    _factory = AdapterFactory(config)
    return _factory
