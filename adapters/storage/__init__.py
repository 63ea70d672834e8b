"""
저장소 어댑터 패키지
"""

from .account_file_repository import AccountFileRepositoryAdapter

__all__ = ["AccountFileRepositoryAdapter"]
