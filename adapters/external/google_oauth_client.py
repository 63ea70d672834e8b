"""
Google OAuth 2.0 클라이언트 어댑터

인증 URL 생성, 인증 코드 교환, 토큰 갱신을 담당합니다.
"""

from typing import List, Optional
from urllib.parse import urlencode

import httpx

from core.domain.entities import TokenGrant, mask_secret
from core.domain.exceptions import TokenEndpointError
from core.domain.ports import LoggerPort, OAuthClientPort

from .http_client import DEFAULT_TIMEOUT, create_http_client, map_transport_error


AUTHORIZATION_ENDPOINT = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"


class GoogleOAuthClientAdapter(OAuthClientPort):
    """Google OAuth 2.0 클라이언트 어댑터"""

    def __init__(
        self,
        logger: LoggerPort,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        auth_url: str = AUTHORIZATION_ENDPOINT,
        token_url: str = TOKEN_ENDPOINT,
    ):
        self.logger = logger
        self.timeout = timeout
        self.auth_url = auth_url
        self.token_url = token_url
        self._transport = transport

    def build_authorization_url(
        self,
        client_id: str,
        redirect_uri: str,
        scopes: List[str],
        state: str,
        code_challenge: str,
    ) -> str:
        """인증 URL을 생성합니다."""
        params = {
            "client_id": client_id,
            "response_type": "code",
            "redirect_uri": redirect_uri,
            "scope": " ".join(scopes),
            "state": state,
            "code_challenge": code_challenge,
            "code_challenge_method": "S256",
            # refresh_token 발급을 위해 오프라인 접근과 동의 화면을 강제
            "access_type": "offline",
            "prompt": "consent",
        }

        url = f"{self.auth_url}?{urlencode(params)}"
        self.logger.debug(f"인증 URL 생성: redirect_uri={redirect_uri}")
        return url

    async def exchange_code(
        self,
        client_id: str,
        client_secret: Optional[str],
        code: str,
        code_verifier: str,
        redirect_uri: str,
    ) -> TokenGrant:
        """인증 코드를 토큰으로 교환합니다."""
        self.logger.debug(
            f"토큰 교환: client_id={mask_secret(client_id, 12)}, "
            f"public_client={client_secret is None}"
        )

        data = {
            "client_id": client_id,
            "code": code,
            "code_verifier": code_verifier,
            "redirect_uri": redirect_uri,
            "grant_type": "authorization_code",
        }
        if client_secret:
            data["client_secret"] = client_secret

        result = await self._post_token_request(data, "토큰 교환")
        self.logger.debug("토큰 교환 성공")
        return result

    async def refresh_access_token(
        self,
        client_id: str,
        client_secret: Optional[str],
        refresh_token: str,
    ) -> TokenGrant:
        """토큰을 갱신합니다."""
        self.logger.debug(f"토큰 갱신: client_id={mask_secret(client_id, 12)}")

        data = {
            "client_id": client_id,
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        }
        if client_secret:
            data["client_secret"] = client_secret

        result = await self._post_token_request(data, "토큰 갱신")
        self.logger.debug("토큰 갱신 성공")
        return result

    async def _post_token_request(self, data: dict, action: str) -> TokenGrant:
        """토큰 엔드포인트 호출"""
        try:
            async with create_http_client(self.timeout, self._transport) as client:
                response = await client.post(
                    self.token_url,
                    data=data,
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
        except httpx.TransportError as e:
            self.logger.error(f"{action} 요청 실패: {str(e)}")
            raise map_transport_error(e, action) from e

        if response.status_code != 200:
            error = self._parse_error(response)
            self.logger.error(f"{action} 실패: {error}")
            raise error

        try:
            return TokenGrant.model_validate(response.json())
        except ValueError as e:
            raise TokenEndpointError(
                response.status_code, "invalid_response", f"응답 파싱 실패: {e}"
            ) from e

    @staticmethod
    def _parse_error(response: httpx.Response) -> TokenEndpointError:
        """오류 응답에서 error / error_description을 추출합니다."""
        error_code = None
        description = None
        try:
            payload = response.json()
        except ValueError:
            payload = None

        if isinstance(payload, dict):
            error_code = payload.get("error")
            description = payload.get("error_description")
        if description is None and response.text:
            description = response.text[:200]

        return TokenEndpointError(response.status_code, error_code, description)
