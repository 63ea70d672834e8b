"""
Gmail API 클라이언트 어댑터

받은편지함 읽지 않은 메일 수와 사용자 프로필(OIDC userinfo)을 조회합니다.
"""

from typing import Optional

import httpx

from core.domain.entities import UserInfo
from core.domain.exceptions import ProviderApiError, UnauthorizedError
from core.domain.ports import LoggerPort, MailApiClientPort

from .http_client import DEFAULT_TIMEOUT, create_http_client, map_transport_error


GMAIL_API_BASE_URL = "https://gmail.googleapis.com/gmail/v1"
USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"


class GmailApiClientAdapter(MailApiClientPort):
    """Gmail API 클라이언트 어댑터"""

    def __init__(
        self,
        logger: LoggerPort,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        base_url: str = GMAIL_API_BASE_URL,
        userinfo_url: str = USERINFO_URL,
    ):
        self.logger = logger
        self.timeout = timeout
        self.base_url = base_url
        self.userinfo_url = userinfo_url
        self._transport = transport

    async def get_unread_count(self, access_token: str) -> int:
        """INBOX 라벨의 messagesUnread 값을 조회합니다."""
        self.logger.debug("읽지 않은 메일 수 조회")

        url = f"{self.base_url}/users/me/labels/INBOX"
        response = await self._get(url, access_token, "INBOX 라벨 조회")

        try:
            result = response.json()
            if not isinstance(result, dict):
                raise ValueError(f"JSON 객체가 아닙니다: {type(result).__name__}")
            unread_count = int(result.get("messagesUnread") or 0)
        except (ValueError, TypeError) as e:
            self.logger.error(f"INBOX 라벨 응답 파싱 실패: {str(e)}")
            raise ProviderApiError(
                f"INBOX 라벨 응답 파싱 실패: {e}", response.status_code, response.text
            ) from e

        self.logger.debug(f"읽지 않은 메일 수 조회 성공: {unread_count}")
        return unread_count

    async def get_user_info(self, access_token: str) -> UserInfo:
        """사용자 프로필을 조회합니다."""
        self.logger.debug("사용자 프로필 조회")

        response = await self._get(self.userinfo_url, access_token, "사용자 프로필 조회")

        try:
            info = UserInfo.model_validate(response.json())
        except ValueError as e:
            raise ProviderApiError(
                f"사용자 프로필 응답 파싱 실패: {e}", response.status_code, response.text
            ) from e

        self.logger.debug(
            f"사용자 프로필 조회 성공: {info.email} (프로필 사진: {info.picture is not None})"
        )
        return info

    async def _get(self, url: str, access_token: str, action: str) -> httpx.Response:
        """Bearer 토큰으로 GET 요청을 보냅니다."""
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        }

        try:
            async with create_http_client(self.timeout, self._transport) as client:
                response = await client.get(url, headers=headers)
        except httpx.TransportError as e:
            self.logger.error(f"{action} 요청 실패: {str(e)}")
            raise map_transport_error(e, action) from e

        if response.status_code == 401:
            error_msg = f"{action} 실패: 401 Unauthorized (토큰 만료 또는 폐기)"
            self.logger.warning(error_msg)
            raise UnauthorizedError(error_msg, 401, response.text)

        if response.status_code != 200:
            if response.status_code in (403, 404):
                self.logger.warning(f"{action} 실패, 권한 범위 누락 가능성: {response.status_code}")
            error_msg = f"{action} 실패: {response.status_code} - {response.text[:200]}"
            self.logger.error(error_msg)
            raise ProviderApiError(error_msg, response.status_code, response.text)

        return response
