"""
설정 로더

settings.yaml 로드 및 실행 설정 생성.
파일이 없으면 기본값 사용.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from core.constants import Defaults, Paths

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DatabaseConfig:
    """DB 설정"""

    path: Path = Paths.LEDGER_DB
    busy_timeout_ms: int = Defaults.BUSY_TIMEOUT_MS


@dataclass(frozen=True)
class RetryConfig:
    """Service 계층 재시도 정책

    conflict_max_attempts: ConcurrentAppendConflict 재조회 후 재시도 횟수
    storage_max_attempts: StorageUnavailable 지수 백오프 재시도 횟수
    """

    conflict_max_attempts: int = Defaults.CONFLICT_MAX_ATTEMPTS
    storage_max_attempts: int = Defaults.STORAGE_MAX_ATTEMPTS
    backoff_base_sec: float = Defaults.BACKOFF_BASE_SEC
    backoff_max_sec: float = Defaults.BACKOFF_MAX_SEC


@dataclass(frozen=True)
class CacheConfig:
    """잔액 캐시 설정"""

    enabled: bool = True
    max_entries: int = Defaults.CACHE_MAX_ENTRIES


@dataclass(frozen=True)
class LoggingConfig:
    """로깅 설정"""

    level: str = Defaults.LOG_LEVEL


@dataclass(frozen=True)
class WebConfig:
    """Web 서버 설정"""

    host: str = Defaults.WEB_HOST
    port: int = Defaults.WEB_PORT


@dataclass(frozen=True)
class AppConfig:
    """전체 설정 (불변)"""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    web: WebConfig = field(default_factory=WebConfig)


class ConfigLoadError(Exception):
    """설정 로드 실패 예외"""

    pass


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigLoadError(f"settings.yaml의 '{name}' 섹션은 매핑이어야 합니다")
    return value


def _positive_int(section: dict[str, Any], key: str, default: int, name: str) -> int:
    value = section.get(key, default)
    try:
        result = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigLoadError(f"{name}.{key}는 정수여야 합니다: {value!r}") from e
    if result < 1:
        raise ConfigLoadError(f"{name}.{key}는 1 이상이어야 합니다: {value!r}")
    return result


def _non_negative_float(section: dict[str, Any], key: str, default: float, name: str) -> float:
    value = section.get(key, default)
    try:
        result = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigLoadError(f"{name}.{key}는 숫자여야 합니다: {value!r}") from e
    if result < 0:
        raise ConfigLoadError(f"{name}.{key}는 0 이상이어야 합니다: {value!r}")
    return result


def load_config(path: Path | None = None) -> AppConfig:
    """settings.yaml 파일 로드

    Args:
        path: settings.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        AppConfig 인스턴스 (파일이 없으면 기본값)

    Raises:
        ConfigLoadError: 형식이 잘못된 경우
    """
    if path is None:
        path = Paths.SETTINGS_FILE

    if not path.exists():
        logger.info(f"settings.yaml 없음, 기본 설정 사용: {path}")
        return AppConfig()

    try:
        content = path.read_text(encoding="utf-8")
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigLoadError(f"settings.yaml 파싱 실패: {e}") from e

    if data is None:
        return AppConfig()

    if not isinstance(data, dict):
        raise ConfigLoadError("settings.yaml 최상위는 매핑이어야 합니다")

    db = _section(data, "database")
    retry = _section(data, "retry")
    cache = _section(data, "cache")
    log = _section(data, "logging")
    web = _section(data, "web")

    # DB 경로: 상대 경로는 설정 파일 기준
    db_path = Path(db.get("path", Paths.LEDGER_DB))
    if not db_path.is_absolute():
        db_path = (path.parent / db_path).resolve()

    level = str(log.get("level", Defaults.LOG_LEVEL)).upper()
    if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        raise ConfigLoadError(f"유효하지 않은 로그 레벨입니다: '{level}'")

    return AppConfig(
        database=DatabaseConfig(
            path=db_path,
            busy_timeout_ms=_positive_int(
                db, "busy_timeout_ms", Defaults.BUSY_TIMEOUT_MS, "database"
            ),
        ),
        retry=RetryConfig(
            conflict_max_attempts=_positive_int(
                retry, "conflict_max_attempts", Defaults.CONFLICT_MAX_ATTEMPTS, "retry"
            ),
            storage_max_attempts=_positive_int(
                retry, "storage_max_attempts", Defaults.STORAGE_MAX_ATTEMPTS, "retry"
            ),
            backoff_base_sec=_non_negative_float(
                retry, "backoff_base_sec", Defaults.BACKOFF_BASE_SEC, "retry"
            ),
            backoff_max_sec=_non_negative_float(
                retry, "backoff_max_sec", Defaults.BACKOFF_MAX_SEC, "retry"
            ),
        ),
        cache=CacheConfig(
            enabled=bool(cache.get("enabled", True)),
            max_entries=_positive_int(
                cache, "max_entries", Defaults.CACHE_MAX_ENTRIES, "cache"
            ),
        ),
        logging=LoggingConfig(level=level),
        web=WebConfig(
            host=str(web.get("host", Defaults.WEB_HOST)),
            port=_positive_int(web, "port", Defaults.WEB_PORT, "web"),
        ),
    )


class Settings:
    """애플리케이션 설정 (싱글턴 패턴)

    settings.yaml을 로드하고 관련 설정을 제공
    """

    _instance: "Settings | None" = None
    _config: AppConfig | None = None

    def __new__(cls, settings_path: Path | None = None) -> "Settings":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, settings_path: Path | None = None) -> None:
        if self._config is None:
            self._config = load_config(settings_path)

    @property
    def config(self) -> AppConfig:
        """전체 설정"""
        assert self._config is not None
        return self._config

    @property
    def db_path(self) -> Path:
        """원장 DB 경로"""
        return self.config.database.path

    @property
    def database(self) -> DatabaseConfig:
        return self.config.database

    @property
    def retry(self) -> RetryConfig:
        return self.config.retry

    @property
    def cache(self) -> CacheConfig:
        return self.config.cache

    @property
    def logging(self) -> LoggingConfig:
        return self.config.logging

    @property
    def web(self) -> WebConfig:
        return self.config.web

    @classmethod
    def reset(cls) -> None:
        """싱글턴 인스턴스 초기화 (테스트용)"""
        cls._instance = None
        cls._config = None


def get_settings(settings_path: Path | None = None) -> Settings:
    """Settings 인스턴스 반환

    Args:
        settings_path: settings.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        Settings 싱글턴 인스턴스
    """
    return Settings(settings_path)
