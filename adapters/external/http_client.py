"""
공용 HTTP 클라이언트 설정

모든 외부 어댑터가 같은 타임아웃, User-Agent, 전송 계층 오류 변환을 사용합니다.
"""

from typing import Optional

import httpx

from core.domain.exceptions import NetworkError, NetworkUnavailableError, ProviderTransportError


USER_AGENT = "GmailPulse/1.0 (+httpx)"
DEFAULT_TIMEOUT = 30.0
CONNECT_TIMEOUT = 10.0


def create_http_client(
    timeout: float = DEFAULT_TIMEOUT,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """요청 단위로 사용할 AsyncClient를 생성합니다."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout, connect=min(CONNECT_TIMEOUT, timeout)),
        headers={"User-Agent": USER_AGENT},
        follow_redirects=True,
        transport=transport,
    )


def map_transport_error(error: httpx.TransportError, action: str) -> NetworkError:
    """httpx 전송 오류를 도메인 네트워크 오류로 변환합니다."""
    if isinstance(error, (httpx.ConnectError, httpx.ConnectTimeout)):
        return NetworkUnavailableError(f"{action} 실패 (네트워크 연결 불가): {error}")
    return ProviderTransportError(f"{action} 실패: {error.__class__.__name__}: {error}")
