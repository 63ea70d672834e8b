"""
도메인 엔티티 정의

비즈니스 핵심 개념을 나타내는 엔티티들을 정의합니다.
모든 엔티티는 Pydantic 모델을 기반으로 하여 타입 안정성을 보장합니다.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

if TYPE_CHECKING:
    from .ports import TokenCipherPort


# 암호화된 문자열 접두사
ENCRYPTED_PREFIX = "encrypted:"

# 계정 저장 시 사용하는 제공자 타입
ACCOUNT_TYPE_GMAIL = "gmail"

# 기본 토큰 유효 시간 (초)
DEFAULT_TOKEN_TTL_SECONDS = 3600


def utc_now() -> datetime:
    """현재 UTC 시간"""
    return datetime.now(timezone.utc)


def mask_secret(value: Optional[str], visible: int = 6) -> str:
    """로그 출력용으로 비밀 값을 앞부분만 남기고 가립니다."""
    if not value:
        return "<empty>"
    if len(value) <= visible:
        return "*" * len(value)
    return f"{value[:visible]}..."


class CallbackStatus(str, Enum):
    """로컬 콜백 대기 결과"""
    RECEIVED = "received"
    DENIED = "denied"
    MALFORMED = "malformed"
    TIMEOUT = "timeout"


class Account(BaseModel):
    """Gmail 계정 엔티티

    토큰 필드는 항상 'encrypted:' 접두사가 붙은 암호문만 보관합니다.
    평문 토큰은 생성자 호출과 복호화 호출의 반환값으로만 존재합니다.
    """

    model_config = ConfigDict(validate_assignment=True)

    email: str = Field(..., frozen=True, description="계정 이메일 주소 (식별자)")
    display_name: str = Field(..., description="표시 이름")
    access_token: str = Field(..., description="암호화된 액세스 토큰")
    refresh_token: str = Field(..., description="암호화된 리프레시 토큰")
    expires_at: datetime = Field(..., description="액세스 토큰 만료 시간 (UTC)")
    is_active: bool = Field(default=True, description="활성 여부")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        """이메일 형식 검증"""
        if "@" not in v:
            raise ValueError("유효한 이메일 주소가 아닙니다")
        return v.strip().lower()

    @field_validator("access_token", "refresh_token")
    @classmethod
    def validate_encrypted_token(cls, v: str) -> str:
        """토큰 필드는 암호화 형식이어야 함"""
        if not v.startswith(ENCRYPTED_PREFIX):
            raise ValueError(f"토큰 형식 오류: 암호화 형식({ENCRYPTED_PREFIX}...)이어야 합니다")
        return v

    @field_validator("expires_at")
    @classmethod
    def validate_expires_at(cls, v: datetime) -> datetime:
        """만료 시간은 UTC 기준으로 보관"""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @classmethod
    def create(
        cls,
        email: str,
        display_name: str,
        access_token: str,
        refresh_token: str,
        expires_in_seconds: int,
        cipher: "TokenCipherPort",
    ) -> "Account":
        """평문 토큰으로 계정을 생성합니다. 토큰은 즉시 암호화됩니다."""
        return cls(
            email=email,
            display_name=display_name,
            access_token=cipher.encrypt(access_token),
            refresh_token=cipher.encrypt(refresh_token),
            expires_at=utc_now() + timedelta(seconds=expires_in_seconds),
        )

    def decrypt_access_token(self, cipher: "TokenCipherPort") -> str:
        """액세스 토큰 복호화"""
        return cipher.decrypt(self.access_token)

    def decrypt_refresh_token(self, cipher: "TokenCipherPort") -> str:
        """리프레시 토큰 복호화"""
        return cipher.decrypt(self.refresh_token)

    def is_token_expiring(self, threshold_minutes: int) -> bool:
        """토큰이 threshold_minutes 이내에 만료되는지 확인"""
        return self.expires_at <= utc_now() + timedelta(minutes=threshold_minutes)

    def update_access_token(
        self,
        new_token: str,
        expires_in_seconds: int,
        cipher: "TokenCipherPort",
    ) -> None:
        """액세스 토큰과 만료 시간을 함께 갱신합니다."""
        # 암호화가 실패하면 어떤 필드도 바뀌지 않음
        encrypted = cipher.encrypt(new_token)
        expires_at = utc_now() + timedelta(seconds=expires_in_seconds)
        self.access_token = encrypted
        self.expires_at = expires_at

    def update_display_name(self, display_name: Optional[str]) -> None:
        """표시 이름 갱신"""
        if display_name:
            self.display_name = display_name

    def activate(self) -> None:
        """계정 활성화"""
        self.is_active = True

    def deactivate(self) -> None:
        """계정 비활성화"""
        self.is_active = False


class OAuthClientConfig(BaseModel):
    """OAuth 클라이언트 설정"""

    client_id: str = Field(..., description="OAuth 클라이언트 ID")
    client_secret: str = Field(..., description="OAuth 클라이언트 시크릿")
    redirect_base_uri: str = Field(default="http://localhost", description="리다이렉트 베이스 URI")
    scopes: List[str] = Field(default_factory=list, description="요청 권한 범위")
    port_start: int = Field(default=8080, description="콜백 포트 범위 시작")
    port_end: int = Field(default=8089, description="콜백 포트 범위 끝 (포함)")
    callback_timeout_seconds: float = Field(default=60, description="콜백 대기 시간")

    @field_validator("redirect_base_uri")
    @classmethod
    def validate_redirect_base_uri(cls, v: str) -> str:
        """리다이렉트 URI 검증"""
        if not v.startswith(("http://", "https://")):
            raise ValueError("유효한 URL이 아닙니다")
        return v.rstrip("/")

    def is_placeholder(self) -> bool:
        """실제 클라이언트 자격 증명이 설정되지 않았는지 확인"""
        return (
            not self.client_id
            or not self.client_secret
            or "YOUR_CLIENT_ID" in self.client_id
            or "YOUR_CLIENT_SECRET" in self.client_secret
        )

    def port_candidates(self) -> range:
        """콜백 리스너 후보 포트"""
        return range(self.port_start, self.port_end + 1)

    def redirect_uri_for(self, port: int) -> str:
        """포트에 대한 리다이렉트 URI"""
        return f"{self.redirect_base_uri}:{port}"


class AuthorizationRequest(BaseModel):
    """PKCE 인증 요청 정보"""

    authorization_url: str
    state: str
    code_verifier: str
    redirect_uri: str
    port: int


class CallbackResult(BaseModel):
    """로컬 콜백 리스너 결과"""

    status: CallbackStatus
    code: Optional[str] = None
    state: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def timeout(cls) -> "CallbackResult":
        return cls(status=CallbackStatus.TIMEOUT)


class TokenGrant(BaseModel):
    """토큰 엔드포인트 응답"""

    access_token: str
    refresh_token: Optional[str] = None
    expires_in: int = DEFAULT_TOKEN_TTL_SECONDS
    token_type: str = "Bearer"
    scope: Optional[str] = None


class UserInfo(BaseModel):
    """사용자 프로필 (OIDC userinfo)"""

    email: str
    name: Optional[str] = None
    picture: Optional[str] = None


class AccountSyncInfo(BaseModel):
    """계정 한 번의 동기화 결과 (저장되지 않음)"""

    email: str
    unread_count: int = 0
    avatar_url: str = ""
    display_name: str = ""
    error_message: Optional[str] = None
    network_issue: bool = False


class AccountSyncResult(BaseModel):
    """싱크에 전달되는 계정별 결과

    성공 시 info, 실패 시 error가 채워집니다.
    """

    email: str
    info: Optional[AccountSyncInfo] = None
    error: Optional[str] = None
    requires_reauthorization: bool = False
    network_unavailable: bool = False

    @classmethod
    def success(
        cls,
        info: AccountSyncInfo,
        requires_reauthorization: bool = False,
        network_unavailable: bool = False,
    ) -> "AccountSyncResult":
        return cls(
            email=info.email,
            info=info,
            requires_reauthorization=requires_reauthorization,
            network_unavailable=network_unavailable,
        )

    @classmethod
    def failure(
        cls,
        email: str,
        error: str,
        requires_reauthorization: bool = False,
        network_unavailable: bool = False,
    ) -> "AccountSyncResult":
        return cls(
            email=email,
            error=error,
            requires_reauthorization=requires_reauthorization,
            network_unavailable=network_unavailable,
        )

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def error_message(self) -> Optional[str]:
        """실패 메시지 또는 부분 성공 시의 오류 메시지"""
        if self.error is not None:
            return self.error
        return self.info.error_message if self.info else None


class SyncCycleReport(BaseModel):
    """동기화 한 주기의 요약"""

    started_at: datetime = Field(default_factory=utc_now)
    completed_at: Optional[datetime] = None
    results: List[AccountSyncResult] = Field(default_factory=list)
    skipped_accounts: List[str] = Field(default_factory=list)
    network_issue: bool = False
    network_error: Optional[str] = None

    def mark_completed(self) -> None:
        self.completed_at = utc_now()

    @property
    def failed_count(self) -> int:
        return sum(1 for result in self.results if not result.is_success)
