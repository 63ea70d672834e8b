"""
계정 관리 유즈케이스

저장된 Gmail 계정의 조회, 삭제, 활성화/비활성화 등의 비즈니스 로직을 구현합니다.
계정 추가는 인증 플로우(AuthorizationFlowUseCase)를 통해서만 이루어집니다.
"""

from typing import List, Optional

from ..domain.entities import Account
from ..domain.ports import AccountRepositoryPort, LoggerPort


class AccountManagementUseCase:
    """계정 관리 유즈케이스"""

    def __init__(
        self,
        account_repository: AccountRepositoryPort,
        logger: LoggerPort,
    ):
        self.account_repository = account_repository
        self.logger = logger

    async def list_accounts(self, active_only: bool = False) -> List[Account]:
        """
        저장된 계정 목록을 저장 순서대로 조회합니다.

        Args:
            active_only: 활성 계정만 조회할지 여부

        Returns:
            계정 목록
        """
        accounts = await self.account_repository.load_accounts()
        if active_only:
            accounts = [account for account in accounts if account.is_active]

        self.logger.debug(f"계정 목록 조회: {len(accounts)}개 (active_only={active_only})")
        return accounts

    async def get_account(self, email: str) -> Optional[Account]:
        """이메일로 계정을 조회합니다."""
        normalized = email.strip().lower()
        for account in await self.account_repository.load_accounts():
            if account.email == normalized:
                return account

        self.logger.debug(f"계정을 찾을 수 없음: {email}")
        return None

    async def remove_account(self, email: str) -> bool:
        """
        계정을 삭제합니다.

        Returns:
            삭제 성공 여부 (계정이 없으면 False)
        """
        self.logger.info(f"계정 삭제: {email}")

        deleted = await self.account_repository.delete_account(email.strip().lower())
        if deleted:
            self.logger.info(f"계정 삭제 완료: {email}")
        else:
            self.logger.warning(f"존재하지 않는 계정 삭제 시도: {email}")
        return deleted

    async def set_active(self, email: str, active: bool) -> Optional[Account]:
        """
        계정의 활성 상태를 변경합니다. 비활성 계정은 동기화에서 제외됩니다.

        Returns:
            변경된 계정 엔티티 또는 None
        """
        self.logger.info(f"계정 {'활성화' if active else '비활성화'}: {email}")

        account = await self.get_account(email)
        if not account:
            self.logger.warning(f"존재하지 않는 계정 상태 변경 시도: {email}")
            return None

        if account.is_active == active:
            self.logger.debug(f"상태 변경 없음: {email} (is_active={active})")
            return account

        if active:
            account.activate()
        else:
            account.deactivate()
        await self.account_repository.save_account(account)

        self.logger.info(f"계정 상태 변경 완료: {email}")
        return account

    async def activate_account(self, email: str) -> Optional[Account]:
        """계정을 활성화합니다."""
        return await self.set_active(email, True)

    async def deactivate_account(self, email: str) -> Optional[Account]:
        """계정을 비활성화합니다."""
        return await self.set_active(email, False)
