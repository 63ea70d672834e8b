"""
설정 어댑터

환경 변수, .env 파일, 데이터 디렉터리의 config.toml [oauth] 섹션 순서로 설정을 읽습니다.
아무 곳에도 OAuth 자격 증명이 없으면 플레이스홀더 값이 사용됩니다.
"""

import os
import tomllib
from pathlib import Path
from typing import Annotated, Any, Dict, List, Optional, Tuple, Type
from urllib.parse import urlsplit

from pydantic import Field, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    NoDecode,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from core.domain.entities import OAuthClientConfig
from core.domain.exceptions import ConfigurationError
from core.domain.ports import ConfigPort


APP_DIR_NAME = "GmailPulse"
ACCOUNTS_FILE_NAME = "accounts.json"
CONFIG_FILE_NAME = "config.toml"

PLACEHOLDER_CLIENT_ID = "YOUR_CLIENT_ID.apps.googleusercontent.com"
PLACEHOLDER_CLIENT_SECRET = "YOUR_CLIENT_SECRET"

DEFAULT_SCOPES = [
    "https://www.googleapis.com/auth/gmail.readonly",
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
    "openid",
]


def default_data_dir() -> Path:
    """플랫폼별 기본 데이터 디렉터리"""
    appdata = os.getenv("APPDATA")
    if os.name == "nt" and appdata:
        return Path(appdata) / APP_DIR_NAME

    xdg_config_home = os.getenv("XDG_CONFIG_HOME")
    base = Path(xdg_config_home) if xdg_config_home else Path.home() / ".config"
    return base / APP_DIR_NAME


def resolve_data_dir() -> Path:
    """DATA_DIR 환경 변수가 있으면 우선 사용"""
    data_dir = os.getenv("DATA_DIR")
    return Path(data_dir).expanduser() if data_dir else default_data_dir()


class OAuthTomlSettingsSource(PydanticBaseSettingsSource):
    """config.toml의 [oauth] 섹션을 읽는 설정 소스"""

    # [oauth] 키 -> 설정 필드
    KEY_MAP = {
        "client_id": "gmail_client_id",
        "client_secret": "gmail_client_secret",
        "redirect_uri": "oauth_redirect_base_uri",
        "scopes": "oauth_scopes",
    }

    def __init__(self, settings_cls: Type[BaseSettings], config_file: Optional[Path] = None):
        super().__init__(settings_cls)
        self.config_file = config_file or resolve_data_dir() / CONFIG_FILE_NAME
        self._values = self._load()

    def _load(self) -> Dict[str, Any]:
        if not self.config_file.is_file():
            return {}

        try:
            with open(self.config_file, "rb") as f:
                document = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigurationError(f"설정 파일을 읽을 수 없습니다: {self.config_file} - {e}") from e

        section = document.get("oauth")
        if not isinstance(section, dict):
            return {}

        values = {}
        for key, field_name in self.KEY_MAP.items():
            if key in section:
                values[field_name] = section[key]

        # redirect_uri에 포트가 포함되어 있으면 제거 (포트는 범위에서 선택)
        redirect_uri = values.get("oauth_redirect_base_uri")
        if isinstance(redirect_uri, str):
            parts = urlsplit(redirect_uri)
            if parts.scheme and parts.hostname:
                values["oauth_redirect_base_uri"] = f"{parts.scheme}://{parts.hostname}"
        return values

    def get_field_value(self, field, field_name: str) -> Tuple[Any, str, bool]:
        return self._values.get(field_name), field_name, False

    def __call__(self) -> Dict[str, Any]:
        return dict(self._values)


class BaseConfig(BaseSettings, ConfigPort):
    """기본 설정 클래스"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # 환경 설정
    environment: str = Field(default="development")
    debug: bool = Field(default=False)

    # OAuth 설정
    gmail_client_id: str = Field(default=PLACEHOLDER_CLIENT_ID)
    gmail_client_secret: str = Field(default=PLACEHOLDER_CLIENT_SECRET)
    oauth_redirect_base_uri: str = Field(default="http://localhost")
    oauth_scopes: Annotated[List[str], NoDecode] = Field(default_factory=lambda: list(DEFAULT_SCOPES))
    oauth_port_start: int = Field(default=8080)
    oauth_port_end: int = Field(default=8089)
    oauth_callback_timeout_seconds: float = Field(default=60)

    # 저장 위치
    data_dir: Optional[Path] = Field(default=None)

    # 토큰 설정
    token_refresh_threshold_minutes: int = Field(default=5)

    # 동기화 설정
    sync_interval_seconds: float = Field(default=300)
    sync_initial_delay_seconds: float = Field(default=3)

    # 네트워크 설정
    network_check_url: str = Field(default="https://www.google.com/generate_204")
    network_check_timeout_seconds: float = Field(default=3)
    network_check_max_attempts: int = Field(default=4)
    network_backoff_initial_seconds: float = Field(default=1)
    network_backoff_max_seconds: float = Field(default=30)
    http_timeout_seconds: float = Field(default=30)

    # 로깅 설정
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            OAuthTomlSettingsSource(settings_cls),
            file_secret_settings,
        )

    @field_validator("oauth_scopes", mode="before")
    @classmethod
    def split_scopes(cls, v):
        """쉼표 또는 공백으로 구분된 문자열 허용"""
        if isinstance(v, str):
            return [scope for scope in v.replace(",", " ").split() if scope]
        return v

    @field_validator("oauth_port_end")
    @classmethod
    def validate_port_range(cls, v, info):
        """포트 범위 검증"""
        start = info.data.get("oauth_port_start")
        if start is not None and v < start:
            raise ValueError("OAUTH_PORT_END는 OAUTH_PORT_START 이상이어야 합니다")
        return v

    @field_validator("network_check_max_attempts")
    @classmethod
    def validate_max_attempts(cls, v):
        if v < 1:
            raise ValueError("네트워크 검사 시도 횟수는 1 이상이어야 합니다")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """로그 레벨 검증"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"로그 레벨은 {valid_levels} 중 하나여야 합니다")
        return v.upper()

    # ConfigPort 인터페이스 구현
    def get_environment(self) -> str:
        return self.environment

    def is_debug(self) -> bool:
        return self.debug

    def get_data_dir(self) -> Path:
        return Path(self.data_dir).expanduser() if self.data_dir else default_data_dir()

    def get_accounts_file(self) -> Path:
        return self.get_data_dir() / ACCOUNTS_FILE_NAME

    def get_config_file(self) -> Path:
        return self.get_data_dir() / CONFIG_FILE_NAME

    def get_oauth_client_config(self) -> OAuthClientConfig:
        """OAuth 클라이언트 설정 조회"""
        return OAuthClientConfig(
            client_id=self.gmail_client_id,
            client_secret=self.gmail_client_secret,
            redirect_base_uri=self.oauth_redirect_base_uri,
            scopes=list(self.oauth_scopes),
            port_start=self.oauth_port_start,
            port_end=self.oauth_port_end,
            callback_timeout_seconds=self.oauth_callback_timeout_seconds,
        )

    def is_placeholder(self) -> bool:
        return self.get_oauth_client_config().is_placeholder()

    def get_token_refresh_threshold_minutes(self) -> int:
        return self.token_refresh_threshold_minutes

    def get_sync_interval_seconds(self) -> float:
        return self.sync_interval_seconds

    def get_sync_initial_delay_seconds(self) -> float:
        return self.sync_initial_delay_seconds

    def get_network_check_config(self) -> dict:
        """네트워크 프로브 설정 조회"""
        return {
            "url": self.network_check_url,
            "timeout": self.network_check_timeout_seconds,
            "max_attempts": self.network_check_max_attempts,
            "initial_delay": self.network_backoff_initial_seconds,
            "max_delay": self.network_backoff_max_seconds,
        }

    def get_http_timeout_seconds(self) -> float:
        return self.http_timeout_seconds

    def get_log_level(self) -> str:
        return self.log_level

    def get_log_format(self) -> str:
        return self.log_format

    def get_log_config(self) -> dict:
        """로그 설정 조회"""
        return {
            "level": self.log_level,
            "format": self.log_format,
        }


class DevelopmentConfig(BaseConfig):
    """개발 환경 설정"""

    environment: str = "development"
    debug: bool = True
    log_level: str = "DEBUG"


class ProductionConfig(BaseConfig):
    """운영 환경 설정"""

    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"

    @model_validator(mode="after")
    def validate_production_credentials(self):
        """운영 환경에서는 실제 OAuth 자격 증명이 필수"""
        if self.is_placeholder():
            raise ValueError("운영 환경에서는 실제 OAuth 클라이언트 자격 증명이 필요합니다")
        return self


class TestingConfig(BaseConfig):
    """테스트 환경 설정"""

    model_config = SettingsConfigDict(
        env_file=None,
        case_sensitive=False,
        extra="ignore",
    )

    environment: str = "testing"
    debug: bool = True
    log_level: str = "WARNING"

    gmail_client_id: str = "test-client-id.apps.googleusercontent.com"
    gmail_client_secret: str = "test-client-secret"
    sync_initial_delay_seconds: float = 0

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        # 테스트는 사용자 config.toml의 영향을 받지 않음
        return (init_settings, env_settings)


class ConfigAdapter:
    """설정 어댑터 팩토리"""

    @staticmethod
    def create_config() -> ConfigPort:
        """환경에 따른 설정 객체를 생성합니다."""
        environment = os.getenv("ENVIRONMENT", "development").lower()

        if environment == "production":
            return ProductionConfig()
        elif environment == "testing":
            return TestingConfig()
        else:
            return DevelopmentConfig()


# 전역 설정 인스턴스
_config: Optional[ConfigPort] = None


def get_config() -> ConfigPort:
    """전역 설정 인스턴스를 반환합니다."""
    global _config
    if _config is None:
        _config = ConfigAdapter.create_config()
    return _config


def initialize_config() -> ConfigPort:
    """설정을 초기화합니다."""
    global _config
    _config = ConfigAdapter.create_config()
    return _config
