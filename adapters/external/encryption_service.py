"""
암호화 서비스 어댑터

토큰 및 민감한 데이터의 암호화/복호화를 담당하는 어댑터입니다.
AES-256-GCM을 사용하며 키는 기기 식별자에서 파생합니다.

형식: "encrypted:" + Base64(nonce[12] + ciphertext + tag)
"""

import asyncio
import base64
import binascii
import os
import threading
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from core.domain.entities import ENCRYPTED_PREFIX
from core.domain.exceptions import (
    AuthenticationTagError,
    MailPulseError,
    MissingPrefixError,
    SecretDecodeError,
    SecretEncodingError,
    TruncatedSecretError,
)
from core.domain.ports import KeyDerivationPort, LoggerPort, TokenCipherPort


NONCE_SIZE = 12


class EncryptionServiceAdapter(TokenCipherPort):
    """암호화 서비스 어댑터"""

    def __init__(self, key_derivation: KeyDerivationPort, logger: LoggerPort):
        self.logger = logger
        self._key_derivation = key_derivation
        self._key: Optional[bytes] = None
        self._lock = threading.Lock()

    def _get_cipher(self) -> AESGCM:
        """파생 키로 AESGCM 인스턴스를 생성합니다. 키는 한 번만 파생합니다."""
        if self._key is None:
            with self._lock:
                if self._key is None:
                    self._key = self._key_derivation.derive_key()
        return AESGCM(self._key)

    def encrypt(self, plaintext: str) -> str:
        """데이터를 암호화합니다."""
        cipher = self._get_cipher()
        nonce = os.urandom(NONCE_SIZE)
        ciphertext = cipher.encrypt(nonce, plaintext.encode("utf-8"), None)

        result = ENCRYPTED_PREFIX + base64.b64encode(nonce + ciphertext).decode("ascii")
        self.logger.debug("데이터 암호화 성공")
        return result

    def decrypt(self, encrypted: str) -> str:
        """암호화된 데이터를 복호화합니다."""
        if not self.is_encrypted(encrypted):
            raise MissingPrefixError(f"암호화 데이터 형식 오류: '{ENCRYPTED_PREFIX}' 접두사가 없습니다")

        try:
            combined = base64.b64decode(encrypted[len(ENCRYPTED_PREFIX):], validate=True)
        except (binascii.Error, ValueError) as e:
            raise SecretDecodeError(f"Base64 디코딩 실패: {e}") from e

        if len(combined) < NONCE_SIZE:
            raise TruncatedSecretError(
                f"암호화 데이터 길이 부족 (최소 {NONCE_SIZE}바이트 필요, 실제 {len(combined)}바이트)"
            )

        nonce, ciphertext = combined[:NONCE_SIZE], combined[NONCE_SIZE:]
        cipher = self._get_cipher()

        try:
            decrypted = cipher.decrypt(nonce, ciphertext, None)
        except InvalidTag as e:
            raise AuthenticationTagError(
                "AES-GCM 복호화 실패 (다른 기기의 키이거나 데이터가 손상되었습니다)"
            ) from e

        try:
            result = decrypted.decode("utf-8")
        except UnicodeDecodeError as e:
            raise SecretEncodingError(f"복호화된 데이터가 유효한 UTF-8이 아닙니다: {e}") from e

        self.logger.debug("데이터 복호화 성공")
        return result

    def is_encrypted(self, value: str) -> bool:
        """암호화 형식인지 확인합니다."""
        return value.startswith(ENCRYPTED_PREFIX)

    async def prepare(self) -> None:
        """키 파생(Argon2id, 기기 식별자 조회)을 작업 스레드에서 실행합니다."""
        if self._key is None:
            await asyncio.to_thread(self._get_cipher)

    def verify_key(self, test_data: str = "test_encryption") -> bool:
        """현재 기기에서 암호화 키가 동작하는지 검증합니다."""
        try:
            return self.decrypt(self.encrypt(test_data)) == test_data
        except MailPulseError as e:
            self.logger.error(f"암호화 키 검증 실패: {str(e)}")
            return False
