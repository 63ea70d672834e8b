"""
기기 바인딩 키 파생 어댑터

운영체제가 제공하는 기기 고유 식별자를 Argon2id로 해싱하여
256비트 대칭 키를 만듭니다. 같은 기기에서는 항상 같은 키가 나오고,
다른 기기로 복사된 암호문은 복호화할 수 없습니다.
"""

import platform
import re
import subprocess
from pathlib import Path
from typing import Callable, Optional, Sequence

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.kdf.argon2 import Argon2id

from core.domain.exceptions import KeyDerivationError
from core.domain.ports import KeyDerivationPort, LoggerPort


# 고정 salt - 키의 고유성은 기기 식별자에서만 나옴
FIXED_SALT = b"GmailPulse.v1.2025"

KEY_LENGTH = 32

# Argon2id 파라미터 (19 MiB, 2 passes, 1 lane)
ARGON2_MEMORY_COST_KIB = 19 * 1024
ARGON2_ITERATIONS = 2
ARGON2_LANES = 1

LINUX_MACHINE_ID_PATHS = (
    Path("/etc/machine-id"),
    Path("/var/lib/dbus/machine-id"),
)


def _read_windows_machine_guid() -> str:
    """레지스트리 HKLM\\SOFTWARE\\Microsoft\\Cryptography\\MachineGuid 조회"""
    import winreg

    try:
        with winreg.OpenKey(
            winreg.HKEY_LOCAL_MACHINE,
            r"SOFTWARE\Microsoft\Cryptography",
            0,
            winreg.KEY_READ | winreg.KEY_WOW64_64KEY,
        ) as key:
            value, _ = winreg.QueryValueEx(key, "MachineGuid")
    except OSError as e:
        raise KeyDerivationError(f"MachineGuid를 읽을 수 없습니다 (권한 확인 필요): {e}") from e
    return str(value)


def _read_macos_platform_uuid() -> str:
    """ioreg의 IOPlatformUUID 조회"""
    try:
        output = subprocess.run(
            ["ioreg", "-rd1", "-c", "IOPlatformExpertDevice"],
            capture_output=True,
            text=True,
            check=True,
            timeout=5,
        ).stdout
    except (OSError, subprocess.SubprocessError) as e:
        raise KeyDerivationError(f"IOPlatformUUID를 읽을 수 없습니다: {e}") from e

    match = re.search(r'"IOPlatformUUID"\s*=\s*"([^"]+)"', output)
    if not match:
        raise KeyDerivationError("ioreg 출력에 IOPlatformUUID가 없습니다")
    return match.group(1)


def _read_linux_machine_id(paths: Sequence[Path] = LINUX_MACHINE_ID_PATHS) -> str:
    """/etc/machine-id 또는 dbus machine-id 조회"""
    for path in paths:
        try:
            value = path.read_text(encoding="utf-8").strip()
        except OSError:
            continue
        if value:
            return value
    raise KeyDerivationError(
        "machine-id를 읽을 수 없습니다: " + ", ".join(str(p) for p in paths)
    )


def read_machine_id() -> str:
    """현재 운영체제에서 기기 고유 식별자를 읽습니다."""
    system = platform.system()
    if system == "Windows":
        return _read_windows_machine_guid()
    if system == "Darwin":
        return _read_macos_platform_uuid()
    return _read_linux_machine_id()


class MachineKeyDerivationAdapter(KeyDerivationPort):
    """기기 식별자 기반 키 파생 어댑터"""

    def __init__(
        self,
        logger: LoggerPort,
        machine_id_reader: Optional[Callable[[], str]] = None,
        salt: bytes = FIXED_SALT,
        key_length: int = KEY_LENGTH,
    ):
        self.logger = logger
        self._read_machine_id = machine_id_reader or read_machine_id
        self._salt = salt
        self._key_length = key_length

    def derive_key(self) -> bytes:
        """기기 식별자로부터 32바이트 키를 파생합니다."""
        try:
            machine_id = self._read_machine_id()
        except KeyDerivationError:
            raise
        except Exception as e:
            raise KeyDerivationError(f"기기 식별자를 읽을 수 없습니다: {e}") from e

        if not machine_id:
            raise KeyDerivationError("기기 식별자가 비어 있습니다")

        self.logger.debug(f"기기 식별자 읽기 성공: {machine_id[:8]}...")

        try:
            kdf = Argon2id(
                salt=self._salt,
                length=self._key_length,
                iterations=ARGON2_ITERATIONS,
                lanes=ARGON2_LANES,
                memory_cost=ARGON2_MEMORY_COST_KIB,
            )
            key = kdf.derive(machine_id.encode("utf-8"))
        except (UnsupportedAlgorithm, ValueError) as e:
            raise KeyDerivationError(f"Argon2id 해싱 실패: {e}") from e

        if len(key) < KEY_LENGTH:
            raise KeyDerivationError(f"해시 길이가 {KEY_LENGTH}바이트보다 짧습니다 (실제: {len(key)})")

        self.logger.debug("암호화 키 파생 성공 (256-bit)")
        return key[:KEY_LENGTH]
