"""
도메인 예외 정의

인증, 토큰 갱신, 암호화, 동기화 과정에서 발생하는 오류를 원인별로 구분합니다.
상위 레이어는 예외 타입으로 복구 방법(재설치, 재인증, 재시도)을 결정합니다.
"""

from typing import Optional


class MailPulseError(Exception):
    """모든 도메인 예외의 기본 클래스"""


# 설정 오류
class ConfigurationError(MailPulseError):
    """OAuth 클라이언트 설정이 없거나 플레이스홀더인 경우"""


# 네트워크 오류
class NetworkError(MailPulseError):
    """전송 계층 오류 기본 클래스"""


class NetworkUnavailableError(NetworkError):
    """네트워크에 연결할 수 없는 경우 (프로브 재시도 소진 포함)"""


class ProviderTransportError(NetworkError):
    """요청 타임아웃 등 개별 요청의 전송 실패"""


# 인증 플로우 오류
class AuthorizationError(MailPulseError):
    """인증 플로우 오류 기본 클래스"""


class PortsExhaustedError(AuthorizationError):
    """콜백 리스너를 바인딩할 수 있는 포트가 없는 경우"""

    def __init__(self, ports: range):
        self.ports = ports
        super().__init__(
            f"모든 콜백 포트가 사용 중입니다: {ports.start}-{ports.stop - 1}"
        )


class AuthorizationDeniedError(AuthorizationError):
    """사용자 또는 제공자가 인증을 거부한 경우"""

    def __init__(self, error: str):
        self.error = error
        super().__init__(f"사용자가 인증을 거부했습니다: {error}")


class AuthorizationTimeoutError(AuthorizationError):
    """제한 시간 내에 콜백이 도착하지 않은 경우"""


class MalformedCallbackError(AuthorizationError):
    """콜백 요청에 필요한 파라미터가 누락된 경우"""


class CsrfStateMismatchError(AuthorizationError):
    """콜백 state 값이 요청 시 생성한 값과 다른 경우"""


class TokenExchangeError(AuthorizationError):
    """인증 코드를 토큰으로 교환하지 못한 경우"""


class MissingRefreshTokenError(AuthorizationError):
    """토큰 교환 응답에 refresh_token이 없는 경우"""


# 제공자 API 오류
class ProviderApiError(MailPulseError):
    """메일 제공자 API가 오류 응답을 반환한 경우"""

    def __init__(self, message: str, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class UnauthorizedError(ProviderApiError):
    """API가 401을 반환한 경우 (토큰 만료 또는 폐기)"""


class TokenEndpointError(MailPulseError):
    """토큰 엔드포인트가 오류 응답을 반환한 경우"""

    def __init__(
        self,
        status_code: int,
        error_code: Optional[str] = None,
        description: Optional[str] = None,
    ):
        self.status_code = status_code
        self.error_code = error_code
        self.description = description
        super().__init__(
            f"토큰 엔드포인트 오류: {status_code} - {error_code or 'unknown_error'}"
            + (f" ({description})" if description else "")
        )

    def is_client_authentication_failure(self) -> bool:
        """클라이언트가 공개(시크릿 없는) 클라이언트로 취급되는 오류인지 확인"""
        return self.error_code == "invalid_client" or self.status_code == 401

    def is_invalid_grant(self) -> bool:
        """refresh_token 자체가 무효화된 오류인지 확인"""
        return self.error_code == "invalid_grant" or self.status_code == 401


# 토큰 갱신 오류
class TokenRefreshError(MailPulseError):
    """토큰 갱신 오류 기본 클래스"""


class InvalidGrantError(TokenRefreshError):
    """Refresh Token이 만료되었거나 폐기됨 - 사용자 재인증 필요"""

    requires_reauthorization = True


class RetryableRefreshError(TokenRefreshError):
    """네트워크, 5xx 등 호출자가 나중에 다시 시도할 수 있는 갱신 실패"""


# 암호화 오류
class CryptoError(MailPulseError):
    """암호화 오류 기본 클래스"""

    stage = "unknown"


class KeyDerivationError(CryptoError):
    """기기 식별자를 읽지 못했거나 키 파생에 실패한 경우"""

    stage = "key_derivation"


class MissingPrefixError(CryptoError):
    """'encrypted:' 접두사가 없는 경우"""

    stage = "format"


class SecretDecodeError(CryptoError):
    """Base64 디코딩 실패"""

    stage = "decode"


class TruncatedSecretError(CryptoError):
    """디코딩된 데이터가 nonce 길이보다 짧은 경우"""

    stage = "length"


class AuthenticationTagError(CryptoError):
    """인증 태그 검증 실패 (다른 기기의 키 또는 손상된 데이터)"""

    stage = "auth_tag"


class SecretEncodingError(CryptoError):
    """복호화 결과가 유효한 UTF-8이 아닌 경우"""

    stage = "utf8"


# 저장소 오류
class AccountStorageError(MailPulseError):
    """계정 파일 읽기/쓰기 실패"""


class AccountSerializationError(AccountStorageError):
    """계정 레코드 형식이 잘못된 경우 (토큰 필드 접두사 누락 등)"""


def is_network_unavailable(error: BaseException) -> bool:
    """예외 체인에 네트워크 불가 오류가 포함되어 있는지 확인합니다."""
    current: Optional[BaseException] = error
    while current is not None:
        if isinstance(current, NetworkUnavailableError):
            return True
        current = current.__cause__
    return False
