"""
네트워크 가용성 검사 유즈케이스

동기화 주기 시작 전에 프로브를 재시도하며 네트워크 연결을 확인합니다.
재시도 간격은 지수적으로 늘어나며 상한이 있습니다.
"""

import asyncio
from typing import Awaitable, Callable

from tenacity import AsyncRetrying, RetryCallState, RetryError, retry_if_result, stop_after_attempt, wait_exponential

from ..domain.exceptions import NetworkUnavailableError
from ..domain.ports import LoggerPort, NetworkProbePort


class NetworkAvailabilityChecker:
    """네트워크 가용성 검사기"""

    def __init__(
        self,
        probe: NetworkProbePort,
        logger: LoggerPort,
        max_attempts: int = 4,
        initial_delay: float = 1.0,
        max_delay: float = 30.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts는 1 이상이어야 합니다")
        self.probe = probe
        self.logger = logger
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self._sleep = sleep

    async def ensure_available(self) -> int:
        """
        네트워크가 사용 가능할 때까지 프로브를 재시도합니다.

        Returns:
            성공 전에 실패한 시도 횟수 (0이면 첫 시도에 성공)

        Raises:
            NetworkUnavailableError: 모든 시도가 실패한 경우
        """
        failed_attempts = 0

        async def probe_once() -> bool:
            nonlocal failed_attempts
            available = await self.probe.probe()
            if not available:
                failed_attempts += 1
            return available

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.initial_delay, max=self.max_delay),
            retry=retry_if_result(lambda available: not available),
            before_sleep=self._log_retry,
            sleep=self._sleep,
        )

        try:
            await retrying(probe_once)
        except RetryError as e:
            self.logger.error(f"네트워크 연결 불가: {self.max_attempts}회 시도 모두 실패")
            raise NetworkUnavailableError(
                f"네트워크에 연결할 수 없습니다 ({self.max_attempts}회 시도)"
            ) from e

        if failed_attempts:
            self.logger.info(f"네트워크 연결 복구 ({failed_attempts}회 실패 후 성공)")
        return failed_attempts

    def _log_retry(self, retry_state: RetryCallState) -> None:
        delay = retry_state.next_action.sleep if retry_state.next_action else 0
        self.logger.warning(
            f"네트워크 검사 실패 ({retry_state.attempt_number}/{self.max_attempts}), "
            f"{delay:.1f}초 후 재시도"
        )
