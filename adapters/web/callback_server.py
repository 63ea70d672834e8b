"""
OAuth 콜백 서버

인증 시도 한 번 동안만 루프백 주소에서 리다이렉트 요청을 받는 FastAPI 앱입니다.
포트는 미리 소켓으로 바인딩하고, uvicorn 서버는 그 소켓으로 실행합니다.
"""

import asyncio
import html
import os
import socket
from typing import Callable, Optional

import uvicorn
from fastapi import BackgroundTasks, FastAPI, Query
from fastapi.responses import HTMLResponse

from core.domain.entities import CallbackResult, CallbackStatus, mask_secret
from core.domain.exceptions import AuthorizationError, PortsExhaustedError
from core.domain.ports import CallbackListenerPort, LoggerPort


LOOPBACK_HOST = "127.0.0.1"

SUCCESS_HTML = """
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>인증 완료</title>
    <style>
        body { font-family: Arial; padding: 40px; max-width: 600px; margin: 0 auto; text-align: center; }
        .success { color: #2e7d32; background: #e8f5e9; padding: 20px; border-radius: 8px; }
    </style>
</head>
<body>
    <h1>✓ 인증 완료</h1>
    <div class="success">
        <p>Gmail 계정 인증이 완료되었습니다.</p>
        <p>이 창을 닫고 애플리케이션으로 돌아가세요.</p>
    </div>
</body>
</html>
"""

FAILURE_HTML_TEMPLATE = """
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>인증 실패</title>
    <style>
        body {{ font-family: Arial; padding: 40px; max-width: 600px; margin: 0 auto; text-align: center; }}
        .error {{ color: #d32f2f; background: #ffebee; padding: 20px; border-radius: 8px; }}
    </style>
</head>
<body>
    <h1>✗ 인증 실패</h1>
    <div class="error">
        <p><strong>오류:</strong> {error}</p>
        <p>이 창을 닫고 애플리케이션에서 다시 시도하세요.</p>
    </div>
</body>
</html>
"""


def render_failure_page(error: str) -> str:
    return FAILURE_HTML_TEMPLATE.format(error=html.escape(error))


def create_callback_app(
    on_result: Callable[[CallbackResult], None],
    logger: LoggerPort,
) -> FastAPI:
    """
    콜백 요청 하나를 CallbackResult로 변환하는 앱을 생성합니다.

    결과는 브라우저에 응답 페이지를 보낸 뒤 on_result로 전달됩니다.
    code와 error가 모두 없는 요청(예: 파비콘)은 무시합니다.
    """
    app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None)

    # 이벤트 루프에서 실행되도록 코루틴으로 감쌈
    async def publish(result: CallbackResult) -> None:
        on_result(result)

    @app.get("/", response_class=HTMLResponse)
    async def oauth_callback(
        background_tasks: BackgroundTasks,
        code: Optional[str] = Query(None, description="인증 코드"),
        state: Optional[str] = Query(None, description="State 값"),
        error: Optional[str] = Query(None, description="오류 코드"),
    ):
        logger.info(
            f"인증 콜백 수신: code={mask_secret(code)}, state={mask_secret(state)}, error={error}"
        )

        if error:
            background_tasks.add_task(
                publish,
                CallbackResult(status=CallbackStatus.DENIED, state=state, error=error),
            )
            return HTMLResponse(content=render_failure_page(error))

        if code and state:
            background_tasks.add_task(
                publish,
                CallbackResult(status=CallbackStatus.RECEIVED, code=code, state=state),
            )
            return HTMLResponse(content=SUCCESS_HTML)

        if code:
            logger.error("콜백에 state 파라미터가 없습니다")
            background_tasks.add_task(
                publish,
                CallbackResult(status=CallbackStatus.MALFORMED, code=code),
            )
            return HTMLResponse(
                content=render_failure_page("필수 파라미터가 누락되었습니다"),
                status_code=400,
            )

        return HTMLResponse(
            content=render_failure_page("인증 응답이 아닙니다"),
            status_code=404,
        )

    return app


class LoopbackCallbackServer(CallbackListenerPort):
    """루프백 콜백 리스너

    bind()로 포트를 확보하고 wait_for_callback()에서 서버를 실행합니다.
    인스턴스 하나는 인증 시도 한 번에만 사용합니다.
    """

    def __init__(self, logger: LoggerPort, host: str = LOOPBACK_HOST):
        self.logger = logger
        self.host = host
        self.port: Optional[int] = None
        self._socket: Optional[socket.socket] = None
        self._server: Optional[uvicorn.Server] = None
        self._serve_task: Optional[asyncio.Task] = None
        self._result: Optional[asyncio.Future] = None

    def bind(self, ports: range) -> int:
        """후보 포트를 순서대로 바인딩합니다."""
        for port in ports:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            if os.name != "nt":
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            try:
                sock.bind((self.host, port))
            except OSError as e:
                self.logger.debug(f"포트 {port} 사용 불가: {str(e)}")
                sock.close()
                continue

            self._socket = sock
            self.port = sock.getsockname()[1]
            self.logger.info(f"콜백 리스너 포트 바인딩: {self.host}:{self.port}")
            return self.port

        self.logger.error(f"사용 가능한 콜백 포트 없음: {ports.start}-{ports.stop - 1}")
        raise PortsExhaustedError(ports)

    async def wait_for_callback(self, timeout: float) -> CallbackResult:
        """
        콜백 요청 한 건을 기다립니다.

        제한 시간이 지나면 TIMEOUT 결과를 반환하며, 반환 전에 서버를 종료합니다.
        """
        if self._socket is None:
            raise AuthorizationError("콜백 리스너가 바인딩되지 않았습니다")

        loop = asyncio.get_running_loop()
        self._result = loop.create_future()

        app = create_callback_app(self._publish, self.logger)
        config = uvicorn.Config(
            app,
            log_level="warning",
            log_config=None,
            access_log=False,
            lifespan="off",
        )
        self._server = uvicorn.Server(config)
        self._serve_task = asyncio.create_task(self._server.serve(sockets=[self._socket]))

        try:
            done, _ = await asyncio.wait(
                {self._result, self._serve_task},
                timeout=timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )

            if self._result in done:
                result = self._result.result()
                self.logger.info(f"콜백 처리 결과: {result.status.value}")
                return result

            if self._serve_task in done:
                error = self._serve_task.exception()
                raise AuthorizationError(f"콜백 서버가 예기치 않게 종료되었습니다: {error}")

            self.logger.warning(f"콜백 대기 시간 초과 ({timeout}s)")
            return CallbackResult.timeout()
        finally:
            await self.close()

    async def close(self) -> None:
        """서버와 소켓을 정리합니다."""
        if self._server is not None:
            self._server.should_exit = True

        if self._serve_task is not None:
            task, self._serve_task = self._serve_task, None
            try:
                await task
            except Exception as e:
                self.logger.warning(f"콜백 서버 종료 중 오류: {str(e)}")

        if self._socket is not None:
            self._socket.close()
            self._socket = None
            self.logger.debug("콜백 리스너 종료")

        if self._result is not None and not self._result.done():
            self._result.cancel()

    def _publish(self, result: CallbackResult) -> None:
        """첫 번째 결과만 반영합니다."""
        if self._result is not None and not self._result.done():
            self._result.set_result(result)
