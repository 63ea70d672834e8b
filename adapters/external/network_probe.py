"""
네트워크 프로브 어댑터

잘 알려진 204 엔드포인트에 짧은 타임아웃으로 요청하여 연결 가능 여부를 확인합니다.
"""

from typing import Optional

import httpx

from core.domain.ports import LoggerPort, NetworkProbePort

from .http_client import create_http_client


DEFAULT_CHECK_URL = "https://www.google.com/generate_204"


class HttpNetworkProbeAdapter(NetworkProbePort):
    """HTTP 네트워크 프로브 어댑터"""

    def __init__(
        self,
        logger: LoggerPort,
        check_url: str = DEFAULT_CHECK_URL,
        timeout: float = 3.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.logger = logger
        self.check_url = check_url
        self.timeout = timeout
        self._transport = transport

    async def probe(self) -> bool:
        """한 번 요청하여 2xx 응답이면 True를 반환합니다."""
        try:
            async with create_http_client(self.timeout, self._transport) as client:
                response = await client.get(self.check_url)
        except httpx.TimeoutException:
            self.logger.warning(f"네트워크 검사 타임아웃 ({self.timeout}s)")
            return False
        except httpx.TransportError as e:
            self.logger.warning(f"네트워크 검사 요청 실패: {str(e)}")
            return False

        if response.is_success:
            self.logger.debug(f"네트워크 검사 성공 (HTTP {response.status_code})")
            return True

        self.logger.warning(f"네트워크 검사가 성공 이외의 상태를 반환: {response.status_code}")
        return False
