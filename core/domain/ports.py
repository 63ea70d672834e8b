"""
포트 인터페이스 정의

클린 아키텍처의 핵심으로, Core 레이어와 외부 어댑터 간의 계약을 정의합니다.
모든 포트는 추상 기본 클래스(ABC)로 정의되어 구현을 강제합니다.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

from .entities import (
    Account,
    AccountSyncResult,
    CallbackResult,
    OAuthClientConfig,
    SyncCycleReport,
    TokenGrant,
    UserInfo,
)


class AccountRepositoryPort(ABC):
    """계정 저장소 포트

    모든 쓰기는 전체 계정 목록을 덮어쓰며, 동시 쓰기 시 마지막 쓰기가 반영됩니다.
    """

    @abstractmethod
    async def load_accounts(self) -> List[Account]:
        """저장된 모든 계정 조회 (파일이 없으면 빈 목록)"""
        pass

    @abstractmethod
    async def save_accounts(self, accounts: List[Account]) -> None:
        """계정 목록 전체 저장 (덮어쓰기)"""
        pass

    @abstractmethod
    async def save_account(self, account: Account) -> None:
        """이메일 기준 계정 추가 또는 갱신"""
        pass

    @abstractmethod
    async def delete_account(self, email: str) -> bool:
        """계정 삭제"""
        pass


class KeyDerivationPort(ABC):
    """기기 바인딩 키 파생 포트"""

    @abstractmethod
    def derive_key(self) -> bytes:
        """현재 기기에서 항상 같은 32바이트 키를 반환"""
        pass


class TokenCipherPort(ABC):
    """토큰 암호화 포트"""

    @abstractmethod
    def encrypt(self, plaintext: str) -> str:
        """평문을 'encrypted:' 형식으로 암호화"""
        pass

    @abstractmethod
    def decrypt(self, encrypted: str) -> str:
        """'encrypted:' 형식 문자열 복호화"""
        pass

    @abstractmethod
    def is_encrypted(self, value: str) -> bool:
        """암호화 형식 여부 확인"""
        pass

    @abstractmethod
    async def prepare(self) -> None:
        """키를 이벤트 루프 밖에서 미리 파생 (이후 encrypt/decrypt는 즉시 실행)"""
        pass


class OAuthClientPort(ABC):
    """OAuth 2.0 제공자 클라이언트 포트"""

    @abstractmethod
    def build_authorization_url(
        self,
        client_id: str,
        redirect_uri: str,
        scopes: List[str],
        state: str,
        code_challenge: str,
    ) -> str:
        """PKCE 인증 URL 생성"""
        pass

    @abstractmethod
    async def exchange_code(
        self,
        client_id: str,
        client_secret: Optional[str],
        code: str,
        code_verifier: str,
        redirect_uri: str,
    ) -> TokenGrant:
        """인증 코드를 토큰으로 교환 (client_secret이 None이면 공개 클라이언트)"""
        pass

    @abstractmethod
    async def refresh_access_token(
        self,
        client_id: str,
        client_secret: Optional[str],
        refresh_token: str,
    ) -> TokenGrant:
        """리프레시 토큰으로 액세스 토큰 갱신"""
        pass


class MailApiClientPort(ABC):
    """메일 제공자 API 클라이언트 포트"""

    @abstractmethod
    async def get_unread_count(self, access_token: str) -> int:
        """받은편지함 읽지 않은 메일 수 조회"""
        pass

    @abstractmethod
    async def get_user_info(self, access_token: str) -> UserInfo:
        """사용자 프로필 조회"""
        pass


class NetworkProbePort(ABC):
    """네트워크 도달 가능성 프로브 포트"""

    @abstractmethod
    async def probe(self) -> bool:
        """한 번의 경량 요청으로 네트워크 연결 확인"""
        pass


class BrowserLauncherPort(ABC):
    """브라우저 실행 포트"""

    @abstractmethod
    def open_url(self, url: str) -> bool:
        """기본 브라우저로 URL 열기 (실패해도 예외를 던지지 않음)"""
        pass


class CallbackListenerPort(ABC):
    """OAuth 리다이렉트 콜백 리스너 포트

    인스턴스 하나는 한 번의 인증 시도에만 사용됩니다.
    """

    @abstractmethod
    def bind(self, ports: range) -> int:
        """후보 포트를 순서대로 시도하여 바인딩된 포트 반환"""
        pass

    @abstractmethod
    async def wait_for_callback(self, timeout: float) -> CallbackResult:
        """콜백 요청 한 건 또는 타임아웃까지 대기"""
        pass

    @abstractmethod
    async def close(self) -> None:
        """리스너 종료"""
        pass


class SyncEventSinkPort(ABC):
    """동기화 결과 수신 포트

    백그라운드 스케줄러 컨텍스트에서 호출됩니다.
    UI 스레드로의 전달은 구현체가 담당합니다.
    """

    @abstractmethod
    def on_account_result(self, result: AccountSyncResult) -> None:
        """계정별 동기화 결과"""
        pass

    @abstractmethod
    def on_network_unavailable(self, report: SyncCycleReport) -> None:
        """네트워크 불가로 주기 전체가 중단됨"""
        pass


class LoggerPort(ABC):
    """로거 포트"""

    @abstractmethod
    def info(self, message: str, **kwargs) -> None:
        """정보 로그"""
        pass

    @abstractmethod
    def warning(self, message: str, **kwargs) -> None:
        """경고 로그"""
        pass

    @abstractmethod
    def error(self, message: str, **kwargs) -> None:
        """오류 로그"""
        pass

    @abstractmethod
    def debug(self, message: str, **kwargs) -> None:
        """디버그 로그"""
        pass


class ConfigPort(ABC):
    """설정 포트"""

    # 환경 설정
    @abstractmethod
    def get_environment(self) -> str:
        """환경 조회 (development, production, testing)"""
        pass

    @abstractmethod
    def is_debug(self) -> bool:
        """디버그 모드 여부"""
        pass

    # 저장 위치
    @abstractmethod
    def get_data_dir(self) -> Path:
        """애플리케이션 데이터 디렉터리"""
        pass

    @abstractmethod
    def get_accounts_file(self) -> Path:
        """계정 파일 경로"""
        pass

    # OAuth 설정
    @abstractmethod
    def get_oauth_client_config(self) -> OAuthClientConfig:
        """OAuth 클라이언트 설정 조회"""
        pass

    @abstractmethod
    def is_placeholder(self) -> bool:
        """OAuth 자격 증명이 플레이스홀더인지 확인"""
        pass

    # 토큰 설정
    @abstractmethod
    def get_token_refresh_threshold_minutes(self) -> int:
        """토큰 선갱신 기준 시간(분)"""
        pass

    # 동기화 설정
    @abstractmethod
    def get_sync_interval_seconds(self) -> float:
        """동기화 간격(초)"""
        pass

    @abstractmethod
    def get_sync_initial_delay_seconds(self) -> float:
        """첫 동기화 지연(초)"""
        pass

    # 네트워크 설정
    @abstractmethod
    def get_network_check_config(self) -> dict:
        """네트워크 프로브 설정 조회"""
        pass

    @abstractmethod
    def get_http_timeout_seconds(self) -> float:
        """HTTP 요청 타임아웃(초)"""
        pass

    # 로깅 설정
    @abstractmethod
    def get_log_level(self) -> str:
        """로그 레벨 조회"""
        pass

    @abstractmethod
    def get_log_format(self) -> str:
        """로그 포맷 조회"""
        pass
