"""
계정 파일 저장소 어댑터

계정 목록을 데이터 디렉터리의 JSON 문서 하나로 보관합니다.
{"version": "1.0", "accounts": [{"type": "gmail", ...}]}

모든 쓰기는 임시 파일에 기록한 뒤 교체하므로 중간 상태의 파일이 남지 않습니다.
"""

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import List

from pydantic import ValidationError

from core.domain.entities import ACCOUNT_TYPE_GMAIL, Account
from core.domain.exceptions import AccountSerializationError, AccountStorageError
from core.domain.ports import AccountRepositoryPort, LoggerPort


STORAGE_VERSION = "1.0"


class AccountFileRepositoryAdapter(AccountRepositoryPort):
    """JSON 파일 기반 계정 저장소"""

    def __init__(self, file_path: Path, logger: LoggerPort):
        self.file_path = Path(file_path)
        self.logger = logger
        self._write_lock = asyncio.Lock()

    async def load_accounts(self) -> List[Account]:
        """저장된 모든 계정을 조회합니다."""
        return await asyncio.to_thread(self._read_accounts)

    async def save_accounts(self, accounts: List[Account]) -> None:
        """계정 목록 전체를 저장합니다."""
        async with self._write_lock:
            await asyncio.to_thread(self._write_accounts, list(accounts))

    async def save_account(self, account: Account) -> None:
        """이메일 기준으로 계정을 추가하거나 갱신합니다."""
        async with self._write_lock:
            accounts = await asyncio.to_thread(self._read_accounts)

            for index, existing in enumerate(accounts):
                if existing.email == account.email:
                    self.logger.debug(f"기존 계정 갱신: {account.email}")
                    accounts[index] = account
                    break
            else:
                self.logger.debug(f"새 계정 추가: {account.email}")
                accounts.append(account)

            await asyncio.to_thread(self._write_accounts, accounts)

    async def delete_account(self, email: str) -> bool:
        """계정을 삭제합니다."""
        async with self._write_lock:
            accounts = await asyncio.to_thread(self._read_accounts)
            remaining = [account for account in accounts if account.email != email]
            if len(remaining) == len(accounts):
                return False

            await asyncio.to_thread(self._write_accounts, remaining)
            return True

    def _read_accounts(self) -> List[Account]:
        if not self.file_path.exists():
            self.logger.debug("계정 파일이 없어 빈 목록을 반환합니다")
            return []

        try:
            content = self.file_path.read_text(encoding="utf-8")
            document = json.loads(content) if content.strip() else {}
        except OSError as e:
            raise AccountStorageError(f"계정 파일 읽기 실패: {self.file_path} - {str(e)}") from e
        except json.JSONDecodeError as e:
            raise AccountStorageError(f"계정 파일 파싱 실패 (파일 손상 가능): {str(e)}") from e

        if not isinstance(document, dict):
            raise AccountStorageError("계정 파일 형식이 올바르지 않습니다")

        version = document.get("version", STORAGE_VERSION)
        if version != STORAGE_VERSION:
            self.logger.warning(
                f"계정 파일 버전 불일치 (기대: {STORAGE_VERSION}, 실제: {version}), 호환 모드로 로드합니다"
            )

        accounts = []
        for index, entry in enumerate(document.get("accounts") or []):
            if not isinstance(entry, dict):
                raise AccountSerializationError(f"계정 레코드 형식 오류: #{index}")

            record = dict(entry)
            account_type = record.pop("type", ACCOUNT_TYPE_GMAIL)
            if account_type != ACCOUNT_TYPE_GMAIL:
                self.logger.warning(f"지원하지 않는 계정 타입 건너뜀: {account_type}")
                continue

            try:
                accounts.append(Account.model_validate(record))
            except ValidationError as e:
                raise AccountSerializationError(
                    f"계정 레코드 #{index} ({record.get('email', '?')}) 역직렬화 실패: {e}"
                ) from e

        self.logger.debug(f"계정 {len(accounts)}개 로드")
        return accounts

    def _write_accounts(self, accounts: List[Account]) -> None:
        document = {
            "version": STORAGE_VERSION,
            "accounts": [
                {"type": ACCOUNT_TYPE_GMAIL, **account.model_dump(mode="json")}
                for account in accounts
            ],
        }

        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(
                prefix=f".{self.file_path.name}.", suffix=".tmp", dir=self.file_path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(document, f, ensure_ascii=False, indent=2)
                os.replace(temp_path, self.file_path)
            except BaseException:
                if os.path.exists(temp_path):
                    os.unlink(temp_path)
                raise
        except OSError as e:
            raise AccountStorageError(f"계정 파일 쓰기 실패: {self.file_path} - {str(e)}") from e

        self.logger.debug(f"계정 {len(accounts)}개 저장: {self.file_path}")
