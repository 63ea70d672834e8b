"""
토큰 암호화 어댑터 테스트
"""

import base64
import threading

import pytest

from adapters.external.encryption_service import NONCE_SIZE, EncryptionServiceAdapter
from core.domain.entities import ENCRYPTED_PREFIX
from core.domain.exceptions import (
    AuthenticationTagError,
    CryptoError,
    MissingPrefixError,
    SecretDecodeError,
    SecretEncodingError,
    TruncatedSecretError,
)
from core.domain.ports import KeyDerivationPort


# AES-GCM 인증 태그 길이
TAG_SIZE = 16


def _payload(encrypted: str) -> bytes:
    return base64.b64decode(encrypted[len(ENCRYPTED_PREFIX):])


def _wrap(payload: bytes) -> str:
    return ENCRYPTED_PREFIX + base64.b64encode(payload).decode("ascii")


@pytest.mark.parametrize(
    "plaintext",
    ["ya29.a0AfH6SMBx-token", "", "토큰 값 ✓", "x" * 4096],
)
def test_round_trip(cipher, plaintext):
    encrypted = cipher.encrypt(plaintext)

    assert encrypted.startswith(ENCRYPTED_PREFIX)
    assert cipher.is_encrypted(encrypted)
    assert cipher.decrypt(encrypted) == plaintext


def test_encrypt_uses_fresh_nonce(cipher):
    first = cipher.encrypt("same-token")
    second = cipher.encrypt("same-token")

    assert first != second
    assert _payload(first)[:NONCE_SIZE] != _payload(second)[:NONCE_SIZE]


def test_key_is_derived_once(cipher, key_derivation):
    for _ in range(3):
        cipher.decrypt(cipher.encrypt("token"))

    assert key_derivation.calls == 1


@pytest.mark.parametrize(
    "position",
    [0, NONCE_SIZE - 1, NONCE_SIZE, -TAG_SIZE - 1, -TAG_SIZE, -1],
    ids=["nonce-first", "nonce-last", "ciphertext-first", "ciphertext-last", "tag-first", "tag-last"],
)
def test_tampered_byte_is_rejected(cipher, position):
    payload = bytearray(_payload(cipher.encrypt("refresh-token")))
    payload[position] ^= 0x01

    with pytest.raises(AuthenticationTagError) as exc_info:
        cipher.decrypt(_wrap(bytes(payload)))
    assert exc_info.value.stage == "auth_tag"


class OtherMachineKey(KeyDerivationPort):
    def derive_key(self) -> bytes:
        return b"\xff" * 32


def test_other_machine_key_is_rejected(cipher, logger):
    other = EncryptionServiceAdapter(OtherMachineKey(), logger)

    with pytest.raises(AuthenticationTagError):
        other.decrypt(cipher.encrypt("refresh-token"))


def test_missing_prefix(cipher):
    with pytest.raises(MissingPrefixError):
        cipher.decrypt("plain-refresh-token")
    assert not cipher.is_encrypted("plain-refresh-token")


def test_invalid_base64(cipher):
    with pytest.raises(SecretDecodeError):
        cipher.decrypt(ENCRYPTED_PREFIX + "not*base64!")


def test_payload_shorter_than_nonce(cipher):
    with pytest.raises(TruncatedSecretError):
        cipher.decrypt(_wrap(b"\x00" * (NONCE_SIZE - 1)))


def test_invalid_utf8_plaintext(key_derivation, cipher):
    from cryptography.hazmat.primitives.ciphers.aead import AESGCM

    nonce = b"\x00" * NONCE_SIZE
    ciphertext = AESGCM(key_derivation.key).encrypt(nonce, b"\xff\xfe\xfd", None)

    with pytest.raises(SecretEncodingError):
        cipher.decrypt(_wrap(nonce + ciphertext))


def test_errors_share_crypto_base(cipher):
    for bad in ["no-prefix", ENCRYPTED_PREFIX + "%%%", _wrap(b"short")]:
        with pytest.raises(CryptoError):
            cipher.decrypt(bad)


def test_verify_key(cipher):
    assert cipher.verify_key() is True


class ThreadRecordingKey(KeyDerivationPort):
    def __init__(self):
        self.threads = []

    def derive_key(self) -> bytes:
        self.threads.append(threading.get_ident())
        return bytes(range(32))


@pytest.mark.asyncio
async def test_prepare_derives_key_off_event_loop_thread(logger):
    derivation = ThreadRecordingKey()
    cipher = EncryptionServiceAdapter(derivation, logger)

    await cipher.prepare()
    await cipher.prepare()
    cipher.decrypt(cipher.encrypt("token"))

    assert len(derivation.threads) == 1
    assert derivation.threads[0] != threading.get_ident()
