"""
메일 동기화 유즈케이스

저장된 계정마다 읽지 않은 메일 수와 프로필을 주기적으로 조회합니다.
- 주기 시작 시 네트워크 검사 (재시도 소진 시 주기 중단)
- 계정별 토큰 확보, 읽지 않은 메일 수, 프로필 조회
- 프로필 401 응답 시 강제 갱신 후 한 번 재시도
- 계정 하나의 실패는 나머지 계정에 영향을 주지 않음
"""

import asyncio
import threading
from typing import Dict, Optional

from ..domain.entities import (
    Account,
    AccountSyncInfo,
    AccountSyncResult,
    OAuthClientConfig,
    SyncCycleReport,
)
from ..domain.exceptions import (
    CryptoError,
    InvalidGrantError,
    MailPulseError,
    NetworkUnavailableError,
    UnauthorizedError,
    is_network_unavailable,
)
from ..domain.ports import (
    AccountRepositoryPort,
    LoggerPort,
    MailApiClientPort,
    OAuthClientPort,
    SyncEventSinkPort,
    TokenCipherPort,
)
from .network_check import NetworkAvailabilityChecker
from .token_management import REAUTHORIZATION_MESSAGE, TokenManager


class SyncEngine:
    """동기화 엔진

    주기 루프는 asyncio 태스크 하나로 실행되며, 실행 플래그는 다른 스레드에서도
    request_stop()으로 내릴 수 있습니다. 같은 계정의 동시 동기화 요청은
    진행 중인 작업의 결과를 함께 기다립니다.
    """

    def __init__(
        self,
        account_repository: AccountRepositoryPort,
        oauth_client: OAuthClientPort,
        mail_api_client: MailApiClientPort,
        client_config: OAuthClientConfig,
        cipher: TokenCipherPort,
        network_checker: NetworkAvailabilityChecker,
        logger: LoggerPort,
        threshold_minutes: int = 5,
        interval_seconds: float = 300,
        initial_delay_seconds: float = 3,
    ):
        self.account_repository = account_repository
        self.oauth_client = oauth_client
        self.mail_api_client = mail_api_client
        self.client_config = client_config
        self.cipher = cipher
        self.network_checker = network_checker
        self.logger = logger
        self.threshold_minutes = threshold_minutes
        self.interval_seconds = interval_seconds
        self.initial_delay_seconds = initial_delay_seconds

        self._running = threading.Event()
        self._wakeup: Optional[asyncio.Event] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._task: Optional[asyncio.Task] = None
        self._in_flight: Dict[str, asyncio.Task] = {}
        self.cycle_count = 0

    @property
    def is_running(self) -> bool:
        return self._running.is_set()

    def start(self, sink: SyncEventSinkPort) -> asyncio.Task:
        """주기 동기화 루프를 시작합니다. 이미 실행 중이면 기존 태스크를 반환합니다."""
        if self._task is not None and not self._task.done():
            self.logger.warning("동기화 루프가 이미 실행 중입니다")
            return self._task

        self._loop = asyncio.get_running_loop()
        self._wakeup = asyncio.Event()
        self._running.set()
        self._task = asyncio.create_task(self._run_loop(sink))
        return self._task

    def request_stop(self) -> None:
        """실행 플래그를 내립니다. 어느 스레드에서 호출해도 됩니다."""
        self._running.clear()
        if self._loop is not None and self._wakeup is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._wakeup.set)

    async def stop(self) -> None:
        """루프에 중지를 요청하고 현재 주기가 끝날 때까지 기다립니다."""
        self.request_stop()
        if self._task is not None:
            task, self._task = self._task, None
            await task

    async def sync_now(self, sink: Optional[SyncEventSinkPort] = None) -> SyncCycleReport:
        """주기와 별개로 즉시 한 번 동기화합니다."""
        self.logger.info("수동 동기화 요청")
        return await self.run_cycle(sink)

    async def _run_loop(self, sink: SyncEventSinkPort) -> None:
        self.logger.info(
            f"동기화 루프 시작 (간격 {self.interval_seconds:g}s, 첫 실행 지연 {self.initial_delay_seconds:g}s)"
        )
        try:
            await self._wait(self.initial_delay_seconds)
            while self._running.is_set():
                try:
                    await self.run_cycle(sink)
                except MailPulseError as e:
                    self.logger.error(f"동기화 주기 실패: {str(e)}")
                except Exception as e:
                    # 다음 주기는 계속 실행
                    self.logger.error(f"동기화 주기 중 예기치 않은 오류: {e.__class__.__name__}: {str(e)}")

                if not self._running.is_set():
                    break
                await self._wait(self.interval_seconds)
        finally:
            self._running.clear()
            self.logger.info("동기화 루프 종료")

    async def _wait(self, seconds: float) -> None:
        """중지 요청 시 즉시 깨어나는 대기"""
        if seconds <= 0 or self._wakeup is None:
            return
        try:
            await asyncio.wait_for(self._wakeup.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def run_cycle(self, sink: Optional[SyncEventSinkPort] = None) -> SyncCycleReport:
        """
        동기화 한 주기를 실행합니다.

        계정이 없으면 네트워크 요청과 이벤트 없이 빈 보고서를 반환합니다.
        네트워크 검사가 최종 실패하면 on_network_unavailable 이벤트 하나만 전달합니다.
        """
        self.cycle_count += 1
        report = SyncCycleReport()

        accounts = await self.account_repository.load_accounts()
        active_accounts = [account for account in accounts if account.is_active]
        if not active_accounts:
            self.logger.debug("동기화할 활성 계정이 없습니다")
            report.mark_completed()
            return report

        try:
            await self.cipher.prepare()
        except CryptoError as e:
            # 계정별 복호화 단계에서 재인증 필요로 보고됨
            self.logger.error(f"암호화 키 준비 실패: {str(e)}")

        try:
            failed_attempts = await self.network_checker.ensure_available()
        except NetworkUnavailableError as e:
            report.network_issue = True
            report.network_error = str(e)
            report.skipped_accounts = [account.email for account in active_accounts]
            report.mark_completed()
            self.logger.warning(f"네트워크 불가로 동기화 주기 중단 ({len(active_accounts)}개 계정)")
            if sink is not None:
                self._emit_network_unavailable(sink, report)
            return report

        report.network_issue = failed_attempts > 0
        self.logger.info(f"동기화 주기 시작: {len(active_accounts)}개 계정")

        for index, account in enumerate(active_accounts):
            result = await self.sync_account(account, network_issue=report.network_issue)
            report.results.append(result)
            if sink is not None:
                self._emit_result(sink, result)

            if result.network_unavailable:
                report.network_issue = True
                report.network_error = result.error_message
                report.skipped_accounts = [a.email for a in active_accounts[index + 1:]]
                self.logger.warning(
                    f"네트워크 불가, 남은 계정 건너뜀: {len(report.skipped_accounts)}개"
                )
                break

        report.mark_completed()
        self.logger.info(
            f"동기화 주기 완료: 성공 {len(report.results) - report.failed_count}, "
            f"실패 {report.failed_count}, 건너뜀 {len(report.skipped_accounts)}"
        )
        return report

    async def sync_account(self, account: Account, network_issue: bool = False) -> AccountSyncResult:
        """계정 하나를 동기화합니다. 같은 계정이 진행 중이면 그 결과를 기다립니다."""
        email = account.email
        task = self._in_flight.get(email)
        if task is None:
            task = asyncio.create_task(self._sync_account(account, network_issue))
            self._in_flight[email] = task
            task.add_done_callback(lambda _: self._in_flight.pop(email, None))
        else:
            self.logger.debug(f"이미 동기화 중인 계정, 결과 대기: {email}")

        return await asyncio.shield(task)

    async def _sync_account(self, account: Account, network_issue: bool) -> AccountSyncResult:
        email = account.email
        self.logger.info(f"계정 동기화: {email}")

        manager = TokenManager(
            account=account,
            oauth_client=self.oauth_client,
            client_config=self.client_config,
            cipher=self.cipher,
            logger=self.logger,
            repository=self.account_repository,
            threshold_minutes=self.threshold_minutes,
        )

        try:
            access_token = await manager.get_valid_token()
            unread_count = await self.mail_api_client.get_unread_count(access_token)
        except InvalidGrantError as e:
            self.logger.error(f"계정 재인증 필요: {email}")
            return AccountSyncResult.failure(email, str(e), requires_reauthorization=True)
        except CryptoError as e:
            self.logger.error(f"저장된 토큰 복호화 실패, 재인증 필요: {email} ({e.stage})")
            return AccountSyncResult.failure(email, str(e), requires_reauthorization=True)
        except MailPulseError as e:
            self.logger.error(f"계정 동기화 실패: {email} - {str(e)}")
            return AccountSyncResult.failure(
                email, str(e), network_unavailable=is_network_unavailable(e)
            )

        info = AccountSyncInfo(
            email=email,
            unread_count=unread_count,
            display_name=account.display_name,
            network_issue=network_issue,
        )
        result = await self._apply_user_info(manager, access_token, info)

        self.logger.info(f"계정 동기화 완료: {email} (읽지 않음 {unread_count})")
        return result

    async def _apply_user_info(
        self,
        manager: TokenManager,
        access_token: str,
        info: AccountSyncInfo,
    ) -> AccountSyncResult:
        """
        프로필을 조회해 info에 반영하고 계정 결과를 만듭니다.

        프로필 조회 실패는 저장된 표시 이름으로 대체하고 error_message에 남깁니다.
        재인증 표시는 갱신 토큰이 무효이거나 갱신 후에도 401이 반복될 때만 붙습니다.
        """
        try:
            user_info = await self.mail_api_client.get_user_info(access_token)
        except UnauthorizedError:
            self.logger.warning(f"프로필 조회 401, 토큰 강제 갱신 후 재시도: {info.email}")
            try:
                access_token = await manager.force_refresh()
                user_info = await self.mail_api_client.get_user_info(access_token)
            except (InvalidGrantError, CryptoError, UnauthorizedError) as e:
                self.logger.error(f"프로필 재시도 실패, 재인증 필요: {info.email} - {str(e)}")
                info.error_message = REAUTHORIZATION_MESSAGE
                return AccountSyncResult.success(info, requires_reauthorization=True)
            except MailPulseError as e:
                return self._profile_failure(info, e)
        except MailPulseError as e:
            return self._profile_failure(info, e)

        info.avatar_url = user_info.picture or ""
        if user_info.name:
            info.display_name = user_info.name
        return AccountSyncResult.success(info)

    def _profile_failure(self, info: AccountSyncInfo, error: MailPulseError) -> AccountSyncResult:
        """읽지 않은 메일 수는 유지하고 프로필 오류만 기록합니다."""
        self.logger.warning(f"프로필 조회 실패 (저장된 정보 사용): {info.email} - {str(error)}")
        info.error_message = f"사용자 정보 조회 실패: {str(error)}"

        network_unavailable = is_network_unavailable(error)
        if network_unavailable:
            info.network_issue = True
        return AccountSyncResult.success(info, network_unavailable=network_unavailable)

    def _emit_result(self, sink: SyncEventSinkPort, result: AccountSyncResult) -> None:
        try:
            sink.on_account_result(result)
        except Exception as e:
            self.logger.error(f"동기화 결과 전달 실패: {result.email} - {str(e)}")

    def _emit_network_unavailable(self, sink: SyncEventSinkPort, report: SyncCycleReport) -> None:
        try:
            sink.on_network_unavailable(report)
        except Exception as e:
            self.logger.error(f"네트워크 불가 이벤트 전달 실패: {str(e)}")
