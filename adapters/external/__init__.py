"""
외부 서비스 어댑터 패키지

외부 API, 서비스와의 통신을 담당하는 어댑터들을 포함합니다.
"""

from .browser_launcher import SystemBrowserLauncherAdapter
from .encryption_service import EncryptionServiceAdapter
from .gmail_api_client import GmailApiClientAdapter
from .google_oauth_client import GoogleOAuthClientAdapter
from .machine_key import MachineKeyDerivationAdapter
from .network_probe import HttpNetworkProbeAdapter

__all__ = [
    "SystemBrowserLauncherAdapter",
    "EncryptionServiceAdapter",
    "GmailApiClientAdapter",
    "GoogleOAuthClientAdapter",
    "MachineKeyDerivationAdapter",
    "HttpNetworkProbeAdapter",
]
