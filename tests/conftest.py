"""
공용 테스트 픽스처
"""

from datetime import timedelta
from typing import List

import pytest

from adapters.external.encryption_service import EncryptionServiceAdapter
from core.domain.entities import Account, OAuthClientConfig, utc_now
from core.domain.ports import AccountRepositoryPort, KeyDerivationPort, LoggerPort


TEST_KEY = bytes(range(32))


class RecordingLogger(LoggerPort):
    """로그 메시지를 레벨별로 기록하는 로거"""

    def __init__(self):
        self.records = []

    def _record(self, level: str, message: str) -> None:
        self.records.append((level, message))

    def info(self, message: str, **kwargs) -> None:
        self._record("info", message)

    def warning(self, message: str, **kwargs) -> None:
        self._record("warning", message)

    def error(self, message: str, **kwargs) -> None:
        self._record("error", message)

    def debug(self, message: str, **kwargs) -> None:
        self._record("debug", message)

    def messages(self, level: str = None) -> List[str]:
        return [message for lvl, message in self.records if level is None or lvl == level]


class StaticKeyDerivation(KeyDerivationPort):
    """고정 키를 반환하고 호출 횟수를 센다"""

    def __init__(self, key: bytes = TEST_KEY):
        self.key = key
        self.calls = 0

    def derive_key(self) -> bytes:
        self.calls += 1
        return self.key


class InMemoryAccountRepository(AccountRepositoryPort):
    """메모리 계정 저장소"""

    def __init__(self, accounts: List[Account] = None):
        self.accounts: List[Account] = list(accounts or [])
        self.load_calls = 0
        self.save_calls = 0
        self.fail_on_save = False

    async def load_accounts(self) -> List[Account]:
        self.load_calls += 1
        return [account.model_copy() for account in self.accounts]

    async def save_accounts(self, accounts: List[Account]) -> None:
        self.save_calls += 1
        if self.fail_on_save:
            raise OSError("disk full")
        self.accounts = [account.model_copy() for account in accounts]

    async def save_account(self, account: Account) -> None:
        self.save_calls += 1
        if self.fail_on_save:
            raise OSError("disk full")
        for index, existing in enumerate(self.accounts):
            if existing.email == account.email:
                self.accounts[index] = account.model_copy()
                return
        self.accounts.append(account.model_copy())

    async def delete_account(self, email: str) -> bool:
        before = len(self.accounts)
        self.accounts = [account for account in self.accounts if account.email != email]
        return len(self.accounts) != before


@pytest.fixture
def logger():
    return RecordingLogger()


@pytest.fixture
def key_derivation():
    return StaticKeyDerivation()


@pytest.fixture
def cipher(key_derivation, logger):
    return EncryptionServiceAdapter(key_derivation, logger)


@pytest.fixture
def client_config():
    return OAuthClientConfig(
        client_id="client-123.apps.googleusercontent.com",
        client_secret="client-secret",
        redirect_base_uri="http://localhost",
        scopes=["https://www.googleapis.com/auth/gmail.readonly", "openid"],
        port_start=8080,
        port_end=8089,
        callback_timeout_seconds=5,
    )


@pytest.fixture
def make_account(cipher):
    """평문 토큰으로 계정을 만드는 팩토리"""

    def _make_account(
        email: str = "alice@example.com",
        display_name: str = "Alice",
        access_token: str = "access-0",
        refresh_token: str = "refresh-0",
        expires_in_seconds: int = 3600,
        is_active: bool = True,
    ) -> Account:
        account = Account.create(
            email=email,
            display_name=display_name,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in_seconds=expires_in_seconds,
            cipher=cipher,
        )
        if not is_active:
            account.deactivate()
        return account

    return _make_account


@pytest.fixture
def expired_account(make_account):
    account = make_account(access_token="stale-access")
    account.expires_at = utc_now() - timedelta(minutes=1)
    return account


@pytest.fixture
def repository():
    return InMemoryAccountRepository()


@pytest.fixture
def make_repository():
    """계정 목록으로 채운 메모리 저장소 팩토리"""
    return InMemoryAccountRepository
